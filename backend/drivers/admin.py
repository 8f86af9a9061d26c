from django.contrib import admin
from drivers.models import DriverProfile


@admin.register(DriverProfile)
class DriverProfileAdmin(admin.ModelAdmin):
    """Vehicles and last reported positions"""

    list_display = ["user", "vehicle_number", "position", "last_location_update"]
    list_filter = ["last_location_update"]
    search_fields = ["user__username", "vehicle_number"]
    readonly_fields = ["last_location_update"]
    list_select_related = ["user"]
    ordering = ("-last_location_update",)

    @admin.display(description="Position")
    def position(self, obj):
        if not obj.has_location:
            return "-"
        return f"{obj.current_latitude}, {obj.current_longitude}"
