"""Driver WebSocket consumer for live location updates and notifications."""

import logging
from typing import Dict, Any

from channels.db import database_sync_to_async

from .base import BaseConsumer
from common.utils import validate_coordinates

logger = logging.getLogger(__name__)


@database_sync_to_async
def _store_driver_location(user_id: int, lat: float, lon: float):
    from drivers.models import DriverProfile
    from drivers.services import update_driver_location

    profile, _ = DriverProfile.objects.get_or_create(user_id=user_id)
    return update_driver_location(profile, lat, lon)


class DriverConsumer(BaseConsumer):
    """
    WebSocket consumer for drivers.
    
    Handles:
        - Driver location updates (feed ride routes and proximity checks)
        - Ride notifications
    """

    async def on_connect(self):
        if self.role != "driver":
            await self.send_error("This endpoint is for drivers only")
            await self.close()
            return

        await self.send_json({
            "type": "connection_established",
            "user_id": self.user_id,
            "role": self.role,
            "message": "Driver connected successfully",
        })

    async def handle_message(self, msg_type: str, data: Dict[str, Any]):
        if msg_type == "driver_location_update":
            await self._handle_location_update(data)
        else:
            await super().handle_message(msg_type, data)

    async def _handle_location_update(self, data: Dict[str, Any]):
        lat = data.get("latitude")
        lon = data.get("longitude")

        if lat is None or lon is None:
            await self.send_error("driver_location_update requires latitude and longitude")
            return

        try:
            lat = float(lat)
            lon = float(lon)
        except (TypeError, ValueError):
            await self.send_error("latitude and longitude must be numbers")
            return

        if not validate_coordinates(lat, lon):
            await self.send_error("latitude/longitude out of range")
            return

        await _store_driver_location(self.user_id, lat, lon)
        await self.send_json({
            "type": "location_updated",
            "latitude": lat,
            "longitude": lon,
        })
