from django.urls import path
from .views import (
    DriverProfileView,
    DriverLocationUpdateView,
)

urlpatterns = [
    path("profile/", DriverProfileView.as_view(), name="driver-profile"),
    path("location/", DriverLocationUpdateView.as_view(), name="driver-location"),
]
