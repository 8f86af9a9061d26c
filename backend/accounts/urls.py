from django.urls import path

from .views import UserReviewsView

urlpatterns = [
    path("<int:user_id>/reviews/", UserReviewsView.as_view(), name="user-reviews"),
]
