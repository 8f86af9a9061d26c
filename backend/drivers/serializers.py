from rest_framework import serializers
from drivers.models import DriverProfile


class DriverProfileSerializer(serializers.ModelSerializer):
    """
    Driver profile with last reported position
    """
    username = serializers.CharField(source="user.username", read_only=True)
    completed_rides = serializers.IntegerField(source="user.completed_rides", read_only=True)

    class Meta:
        model = DriverProfile
        fields = [
            "id",
            "username",
            "completed_rides",
            "vehicle_number",
            "current_latitude",
            "current_longitude",
            "last_location_update",
        ]
        read_only_fields = ["id", "current_latitude", "current_longitude", "last_location_update"]


class LocationUpdateSerializer(serializers.Serializer):
    """
    Serializer for updating driver GPS location.
    """
    latitude = serializers.DecimalField(max_digits=9, decimal_places=6, min_value=-90, max_value=90)
    longitude = serializers.DecimalField(max_digits=9, decimal_places=6, min_value=-180, max_value=180)
