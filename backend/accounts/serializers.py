from rest_framework import serializers

from .models import Review


class ReviewSerializer(serializers.ModelSerializer):
    reviewer_id = serializers.IntegerField(read_only=True)
    reviewee_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = Review
        fields = ['id', 'stars', 'comment', 'reviewer_id', 'reviewee_id', 'created_at']
        read_only_fields = fields


class ReviewCreateSerializer(serializers.Serializer):
    stars = serializers.IntegerField(min_value=1, max_value=5)
    comment = serializers.CharField(max_length=250)
