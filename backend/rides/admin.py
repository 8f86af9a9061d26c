"""Tells what to show in the Django admin interface for rides app"""

from django.contrib import admin
from .models import Ride, RideRequest, Proposal


class ProposalInline(admin.TabularInline):
    model = Proposal
    extra = 0
    readonly_fields = ("request", "driver", "status", "created_at", "updated_at")


@admin.register(Ride)
class RideAdmin(admin.ModelAdmin):
    """Ride admin"""
    list_display = ['id', 'status', 'destination_latitude', 'destination_longitude', 'created_at', 'updated_at']
    list_filter = ['status', 'created_at']
    readonly_fields = ['created_at', 'updated_at']
    date_hierarchy = 'created_at'
    inlines = [ProposalInline]


@admin.register(RideRequest)
class RideRequestAdmin(admin.ModelAdmin):
    """Ride Request admin"""
    list_display = ['id', 'passenger', 'ride', 'compensation', 'visited', 'notifications_created', 'created_at']
    list_filter = ['visited', 'notifications_created', 'created_at']
    search_fields = ['passenger__username', 'pickup_address', 'dropoff_address']
    readonly_fields = ['created_at']
    date_hierarchy = 'created_at'


@admin.register(Proposal)
class ProposalAdmin(admin.ModelAdmin):
    list_display = ("id", "ride", "request", "driver", "status", "created_at")
    list_filter = ("status",)
    search_fields = ("ride__id", "driver__username")
