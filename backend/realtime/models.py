from django.db import models
from django.conf import settings


class Notification(models.Model):
    """Durable outbound notification, pushed to the account's socket group by the dispatcher."""

    TYPE_RIDE_UPDATES = 'ride_updates'
    TYPE_PROXIMITY = 'proximity'

    TYPE_CHOICES = [
        (TYPE_RIDE_UPDATES, 'Ride Updates'),
        (TYPE_PROXIMITY, 'Proximity'),
    ]

    account = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='notifications'
    )

    notification_type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    message = models.TextField()
    payload = models.JSONField(null=True, blank=True)

    # Proximity notifications are deduplicated per (ride, driver, passenger)
    ride = models.ForeignKey(
        'rides.Ride',
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='notifications'
    )
    driver = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='+'
    )

    is_sent = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    sent_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'notifications'
        ordering = ['created_at', 'id']
        constraints = [
            models.UniqueConstraint(
                fields=['account', 'driver', 'ride'],
                condition=models.Q(notification_type='proximity'),
                name='unique_proximity_notification'
            )
        ]

    def __str__(self):
        return f"Notification #{self.id} -> {self.account_id} ({self.notification_type})"
