from rest_framework import serializers

from .models import Ride, RideRequest, Proposal


class RideRequestSerializer(serializers.ModelSerializer):
    """Serializer for Ride Requests"""
    passenger_id = serializers.IntegerField(read_only=True)
    ride_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = RideRequest
        fields = ['id', 'passenger_id', 'pickup_latitude', 'pickup_longitude', 'pickup_address',
                  'dropoff_latitude', 'dropoff_longitude', 'dropoff_address',
                  'compensation', 'ride_id', 'visited', 'created_at']
        read_only_fields = fields


class RideRequestCreateSerializer(serializers.Serializer):
    """Serializer for creating ride requests"""
    pickup_latitude = serializers.FloatField(min_value=-90, max_value=90)
    pickup_longitude = serializers.FloatField(min_value=-180, max_value=180)
    pickup_address = serializers.CharField(required=False, allow_blank=True, default='')
    dropoff_latitude = serializers.FloatField(min_value=-90, max_value=90)
    dropoff_longitude = serializers.FloatField(min_value=-180, max_value=180)
    dropoff_address = serializers.CharField(required=False, allow_blank=True, default='')
    compensation = serializers.DecimalField(max_digits=8, decimal_places=2)


class DriverRequestQuerySerializer(serializers.Serializer):
    """Query parameters of the driver's request listing"""
    dropoff_lat = serializers.FloatField(min_value=-90, max_value=90)
    dropoff_lon = serializers.FloatField(min_value=-180, max_value=180)
    compensation = serializers.DecimalField(max_digits=8, decimal_places=2, required=False)
    distance_m = serializers.FloatField(required=False, min_value=0)
    time_s = serializers.IntegerField(required=False, min_value=0)


class DetourCandidateSerializer(serializers.Serializer):
    """One open request with its detour cost for the browsing driver"""

    def to_representation(self, detour):
        data = RideRequestSerializer(detour.request).data
        data['detour_distance_m'] = round(detour.distance_meters, 1)
        data['detour_time_s'] = detour.duration_s
        data['detour_route'] = detour.polyline
        return data


class RideDraftSerializer(serializers.Serializer):
    """Serializer for drafting a ride from a set of requests"""
    request_ids = serializers.ListField(child=serializers.IntegerField(min_value=1), allow_empty=False)
    destination_lat = serializers.FloatField(min_value=-90, max_value=90)
    destination_lon = serializers.FloatField(min_value=-180, max_value=180)


class ProposalConfirmSerializer(serializers.Serializer):
    confirm = serializers.ChoiceField(choices=['accept', 'reject'])


class PositionSerializer(serializers.Serializer):
    current_lat = serializers.FloatField(min_value=-90, max_value=90)
    current_lon = serializers.FloatField(min_value=-180, max_value=180)


class CompensationEstimateSerializer(serializers.Serializer):
    start_latitude = serializers.FloatField(min_value=-90, max_value=90)
    start_longitude = serializers.FloatField(min_value=-180, max_value=180)
    end_latitude = serializers.FloatField(min_value=-90, max_value=90)
    end_longitude = serializers.FloatField(min_value=-180, max_value=180)


class ProposalSerializer(serializers.ModelSerializer):
    request_id = serializers.IntegerField(read_only=True)
    ride_id = serializers.IntegerField(read_only=True)
    driver_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = Proposal
        fields = ['id', 'request_id', 'ride_id', 'driver_id', 'status', 'created_at', 'updated_at']
        read_only_fields = fields


class ProposalWithRequestSerializer(serializers.ModelSerializer):
    """Proposal inside a ride summary, request expanded"""
    driver_id = serializers.IntegerField(read_only=True)
    request = RideRequestSerializer(read_only=True)

    class Meta:
        model = Proposal
        fields = ['id', 'status', 'driver_id', 'request']
        read_only_fields = fields


class RideSerializer(serializers.ModelSerializer):
    destination_lat = serializers.FloatField(source='destination_latitude', read_only=True)
    destination_lon = serializers.FloatField(source='destination_longitude', read_only=True)

    class Meta:
        model = Ride
        fields = ['id', 'status', 'destination_lat', 'destination_lon', 'created_at', 'updated_at']
        read_only_fields = fields
