"""WebSocket URL routing for the realtime app."""

from django.urls import re_path

from .consumers import DriverConsumer, NotificationConsumer

websocket_urlpatterns = [
    # Driver location feed + notifications
    # URL: ws://localhost:8000/ws/driver/
    re_path(
        r"ws/driver/$",
        DriverConsumer.as_asgi(),
        name="driver-ws"
    ),
    
    # Notification stream for any account
    # URL: ws://localhost:8000/ws/notifications/
    re_path(
        r"ws/notifications/$",
        NotificationConsumer.as_asgi(),
        name="notifications-ws"
    ),
]
