from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from drivers.serializers import DriverProfileSerializer, LocationUpdateSerializer

from drivers import services

# Utility: Ensure request.user is a driver
def require_driver(user):
    if user.role != "driver":
        return False, Response(
            {"success": False, "error": "forbidden", "message": "Only drivers allowed"},
            status=403,
        )
    return True, services.get_or_create_profile(user)


class DriverProfileView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        ok, profile = require_driver(request.user)
        if ok is False:
            return profile  # Response object

        serializer = DriverProfileSerializer(profile)
        return Response(serializer.data)

    def post(self, request):
        ok, profile = require_driver(request.user)
        if ok is False:
            return profile

        vehicle_number = request.data.get("vehicle_number", profile.vehicle_number)
        profile.vehicle_number = vehicle_number
        profile.save(update_fields=["vehicle_number"])

        serializer = DriverProfileSerializer(profile)
        return Response(serializer.data, status=200)


#    WS driver_location_update does the same; this is the HTTP fallback.
class DriverLocationUpdateView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        ok, profile = require_driver(request.user)
        if ok is False:
            return profile

        return Response({
            "latitude": float(profile.current_latitude) if profile.has_location else None,
            "longitude": float(profile.current_longitude) if profile.has_location else None,
            "last_updated": profile.last_location_update,
        })

    def post(self, request):
        ok, profile = require_driver(request.user)
        if ok is False:
            return profile

        serializer = LocationUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        lat = serializer.validated_data["latitude"]
        lon = serializer.validated_data["longitude"]

        services.update_driver_location(profile, lat, lon)

        return Response({
            "message": "Location updated",
            "latitude": float(lat),
            "longitude": float(lon),
        })
