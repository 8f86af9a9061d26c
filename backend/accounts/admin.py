from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.db.models import Count, Q

from accounts.models import Review, User
from drivers.models import DriverProfile


class DriverProfileInline(admin.StackedInline):
    model = DriverProfile
    can_delete = False
    fields = ("vehicle_number", "current_latitude", "current_longitude", "last_location_update")
    readonly_fields = ("last_location_update",)
    extra = 0


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """Passengers and drivers, with their ride counters"""

    list_display = ["username", "role", "phone_number", "completed_rides", "open_requests"]
    list_filter = ["role", "is_active"]
    search_fields = ["username", "email", "phone_number"]
    ordering = ("username",)
    inlines = [DriverProfileInline]

    fieldsets = BaseUserAdmin.fieldsets + (
        ("Ride Sharing", {"fields": ("role", "phone_number", "completed_rides")}),
    )
    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ("Ride Sharing", {"fields": ("role", "phone_number")}),
    )

    def get_queryset(self, request):
        return super().get_queryset(request).annotate(
            _open_requests=Count("ride_requests", filter=Q(ride_requests__ride__isnull=True))
        )

    @admin.display(ordering="_open_requests", description="Open requests")
    def open_requests(self, obj):
        return obj._open_requests

    def get_inlines(self, request, obj):
        # Only drivers carry a vehicle and position
        if obj is None or not obj.is_driver:
            return []
        return super().get_inlines(request, obj)


@admin.register(Review)
class ReviewAdmin(admin.ModelAdmin):
    list_display = ["reviewer", "reviewee", "stars", "created_at"]
    list_filter = ["stars"]
    search_fields = ["reviewer__username", "reviewee__username", "comment"]
    list_select_related = ["reviewer", "reviewee"]
