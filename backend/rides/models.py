from django.db import models
from django.conf import settings

from common.utils.geo import Coordinates


class Ride(models.Model):
    """Aggregate trip a driver runs, bundling one or more Proposals."""

    STATUS_PENDING = 'pending'
    STATUS_IN_PROGRESS = 'in_progress'
    STATUS_REJECTED = 'rejected'
    STATUS_COMPLETED = 'completed'

    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_IN_PROGRESS, 'In Progress'),
        (STATUS_REJECTED, 'Rejected'),
        (STATUS_COMPLETED, 'Completed'),
    ]

    # Status only ever moves forward along these edges
    ALLOWED_TRANSITIONS = {
        STATUS_PENDING: {STATUS_IN_PROGRESS, STATUS_REJECTED},
        STATUS_IN_PROGRESS: {STATUS_COMPLETED},
        STATUS_REJECTED: set(),
        STATUS_COMPLETED: set(),
    }

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)

    destination_latitude = models.DecimalField(max_digits=9, decimal_places=6)
    destination_longitude = models.DecimalField(max_digits=9, decimal_places=6)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'rides'
        ordering = ['-created_at']

    def can_transition_to(self, new_status: str) -> bool:
        return new_status in self.ALLOWED_TRANSITIONS.get(self.status, set())

    @property
    def destination(self) -> Coordinates:
        return Coordinates(float(self.destination_latitude), float(self.destination_longitude))

    def __str__(self):
        return f"Ride #{self.id} - {self.status}"


class RideRequest(models.Model):
    """A passenger's posted trip, open until a Ride is linked to it"""

    passenger = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='ride_requests'
    )

    # Pickup location
    pickup_latitude = models.DecimalField(max_digits=9, decimal_places=6)
    pickup_longitude = models.DecimalField(max_digits=9, decimal_places=6)
    pickup_address = models.TextField(blank=True, default='')

    # Dropoff location
    dropoff_latitude = models.DecimalField(max_digits=9, decimal_places=6)
    dropoff_longitude = models.DecimalField(max_digits=9, decimal_places=6)
    dropoff_address = models.TextField(blank=True, default='')

    compensation = models.DecimalField(max_digits=8, decimal_places=2)

    # Null while the request is open and discoverable by drivers
    ride = models.ForeignKey(
        Ride,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='requests'
    )

    visited = models.BooleanField(default=False)
    notifications_created = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'ride_requests'
        ordering = ['-created_at']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(compensation__gt=0),
                name='ride_request_compensation_positive'
            )
        ]

    @property
    def is_open(self) -> bool:
        return self.ride_id is None

    @property
    def pickup(self) -> Coordinates:
        return Coordinates(float(self.pickup_latitude), float(self.pickup_longitude))

    @property
    def dropoff(self) -> Coordinates:
        return Coordinates(float(self.dropoff_latitude), float(self.dropoff_longitude))

    def __str__(self):
        return f"Request #{self.id} - {self.passenger} - {'open' if self.is_open else 'linked'}"


class Proposal(models.Model):
    """One driver's offer against one RideRequest, grouped under a Ride."""

    STATUS_PENDING = 'pending'
    STATUS_ACCEPTED = 'accepted'
    STATUS_REJECTED = 'rejected'

    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_ACCEPTED, 'Accepted'),
        (STATUS_REJECTED, 'Rejected'),
    ]

    request = models.ForeignKey(
        RideRequest,
        on_delete=models.CASCADE,
        related_name='proposals'
    )

    ride = models.ForeignKey(
        Ride,
        on_delete=models.CASCADE,
        related_name='proposals'
    )

    driver = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='ride_proposals',
        limit_choices_to={'role': 'driver'}
    )

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'proposals'
        ordering = ['id']
        constraints = [
            models.UniqueConstraint(
                fields=['ride', 'request'],
                name='unique_ride_request'
            )
        ]

    def __str__(self):
        return f"Proposal #{self.id} - Ride {self.ride_id} -> Request {self.request_id} ({self.status})"
