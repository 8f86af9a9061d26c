from rest_framework import status
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from common.api import error_response, invalid_input
from services.exceptions import RideServiceError

from accounts import services
from accounts.serializers import ReviewCreateSerializer, ReviewSerializer


class UserReviewsView(APIView):
    """
    GET: reviews left for the account, with its average rating.
    POST: review the account (stars 1-5 and a comment).
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, user_id):
        try:
            account = services.get_account(user_id)
        except RideServiceError as e:
            return error_response(e)

        rating, num_ratings = services.get_user_rating(account.id)
        return Response({
            "user_id": account.id,
            "username": account.username,
            "completed_rides": account.completed_rides,
            "rating": rating,
            "num_ratings": num_ratings,
            "reviews": ReviewSerializer(services.get_reviews_for_user(account.id), many=True).data,
        })

    def post(self, request, user_id):
        serializer = ReviewCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_input(serializer)

        try:
            review = services.create_review(
                request.user,
                user_id,
                serializer.validated_data["stars"],
                serializer.validated_data["comment"],
            )
        except RideServiceError as e:
            return error_response(e)

        return Response(
            {**ReviewSerializer(review).data, "message": "Review created successfully"},
            status=status.HTTP_201_CREATED,
        )
