"""
Realtime app for WebSocket delivery of ride notifications.

Key Components:
    - models.py: durable Notification records
    - notifications.py: publish notifications and dispatch pending ones to user_<id> groups
    - consumers/: WebSocket consumers (notification stream, driver location feed)

Usage:
    from realtime.notifications import publish_notification, dispatch_pending_notifications
    from realtime.consumers import DriverConsumer, NotificationConsumer
"""
