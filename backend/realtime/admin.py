from django.contrib import admin

from .models import Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ("id", "account", "notification_type", "is_sent", "created_at", "sent_at")
    list_filter = ("notification_type", "is_sent")
    search_fields = ("account__username", "message")
    readonly_fields = ("created_at", "sent_at")
