"""Realtime consumers for WebSocket communication."""

from .base import BaseConsumer, NotificationConsumer
from .driver_consumer import DriverConsumer

__all__ = [
    "BaseConsumer",
    "NotificationConsumer",
    "DriverConsumer",
]
