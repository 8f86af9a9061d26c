from typing import Optional

from django.utils import timezone

from common.utils.geo import Coordinates
from drivers.models import DriverProfile


def get_or_create_profile(user) -> DriverProfile:
    profile, _ = DriverProfile.objects.get_or_create(user=user)
    return profile


# DRIVER LOCATION UPDATE
def update_driver_location(profile: DriverProfile, lat, lon):
    """
    Store the driver's last reported position. Used by:
    - HTTP fallback
    - WebSocket driver tracking events
    """
    profile.current_latitude = lat
    profile.current_longitude = lon
    profile.last_location_update = timezone.now()
    profile.save(update_fields=["current_latitude", "current_longitude", "last_location_update"])
    return profile


def get_driver_position(driver_id: int) -> Optional[Coordinates]:
    """Last reported position, or None if the driver never sent one."""
    profile = DriverProfile.objects.filter(user_id=driver_id).first()
    if profile is None or not profile.has_location:
        return None
    return Coordinates(float(profile.current_latitude), float(profile.current_longitude))
