from django.db import models
from django.contrib.auth.models import AbstractUser


class User(AbstractUser):
    """Extended user model with role selection"""
    ROLE_CHOICES = [
        ('passenger', 'Passenger'),
        ('driver', 'Driver'),
    ]
    
    # Role & basic info
    role = models.CharField(max_length=10, choices=ROLE_CHOICES)
    phone_number = models.CharField(max_length=15, blank=True)
    completed_rides = models.IntegerField(default=0)
    
    class Meta:
        db_table = 'users'

    @property
    def is_driver(self):
        return self.role == 'driver'

    @property
    def is_passenger(self):
        return self.role == 'passenger'
        
    def __str__(self):
        return f"{self.username} ({self.get_role_display()})"


class Review(models.Model):
    """Star rating one account leaves for another, at most once per pair"""

    reviewer = models.ForeignKey(User, on_delete=models.CASCADE, related_name='reviews_given')
    reviewee = models.ForeignKey(User, on_delete=models.CASCADE, related_name='reviews_received')
    stars = models.PositiveSmallIntegerField()
    comment = models.CharField(max_length=250)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'reviews'
        ordering = ['-created_at', '-id']
        constraints = [
            models.UniqueConstraint(fields=['reviewer', 'reviewee'], name='unique_review_per_pair'),
            models.CheckConstraint(condition=models.Q(stars__gte=1, stars__lte=5), name='review_stars_range'),
            models.CheckConstraint(condition=~models.Q(reviewer=models.F('reviewee')), name='review_not_self'),
        ]

    def __str__(self):
        return f"{self.reviewer_id} -> {self.reviewee_id}: {self.stars}*"
