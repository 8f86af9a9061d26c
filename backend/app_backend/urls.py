from django.contrib import admin
from django.urls import path, include

from rides import views as ride_views
from .views import health_check

urlpatterns = [
    path('admin/', admin.site.urls),
    path("health/", health_check), # Health check endpoint

    # Account reviews and ratings
    path('api/accounts/', include('accounts.urls')),

    # Driver APIs (profile, location)
    path('api/driver/', include('drivers.urls')),

    # Rides endpoints (at /api/rides/)
    path('api/rides/', include('rides.urls')),      # requests, drafts, proposals and ride actions

    # Maps (point-to-point route)
    path('api/maps/route/', ride_views.direct_route, name='maps-route'),
]
