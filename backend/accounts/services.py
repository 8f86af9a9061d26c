"""Account reviews: one star rating per reviewer/reviewee pair."""

import logging
from typing import List, Optional, Tuple

from django.db import IntegrityError, transaction
from django.db.models import Avg, Count

from accounts.models import Review, User
from services.exceptions import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

MIN_STARS = 1
MAX_STARS = 5
MAX_COMMENT_LENGTH = 250


def get_account(user_id: int) -> User:
    try:
        return User.objects.get(id=user_id)
    except User.DoesNotExist:
        raise NotFoundError("User to review not found")


def create_review(reviewer, reviewee_id: int, stars: int, comment: str) -> Review:
    """
    Leave a review for another account.

    Raises:
        ValidationError: stars outside 1-5, empty or long comment, self-review
        NotFoundError: unknown reviewee
        ConflictError: reviewer already reviewed this account
    """
    if not MIN_STARS <= stars <= MAX_STARS:
        raise ValidationError(f"Stars must be between {MIN_STARS} and {MAX_STARS}")
    comment = (comment or "").strip()
    if not comment or len(comment) > MAX_COMMENT_LENGTH:
        raise ValidationError(f"Comment is required, at most {MAX_COMMENT_LENGTH} characters")
    if reviewer.id == reviewee_id:
        raise ValidationError("You cannot review yourself")

    reviewee = get_account(reviewee_id)
    if Review.objects.filter(reviewer=reviewer, reviewee=reviewee).exists():
        raise ConflictError("You have already reviewed this user")

    try:
        with transaction.atomic():
            review = Review.objects.create(
                reviewer=reviewer,
                reviewee=reviewee,
                stars=stars,
                comment=comment,
            )
    except IntegrityError:
        # A concurrent request wrote the same pair first
        raise ConflictError("You have already reviewed this user")

    logger.info("Account %s reviewed %s with %s stars", reviewer.id, reviewee.id, stars)
    return review


def get_reviews_for_user(user_id: int) -> List[Review]:
    return list(Review.objects.filter(reviewee_id=user_id).order_by("-created_at", "-id"))


def get_user_rating(user_id: int) -> Tuple[Optional[float], int]:
    """Average stars (None without reviews) and the number of reviews."""
    result = Review.objects.filter(reviewee_id=user_id).aggregate(rating=Avg("stars"), count=Count("id"))
    rating = result["rating"]
    return (round(float(rating), 2) if rating is not None else None), result["count"]
