import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import AllowAny, IsAuthenticated

from common.api import error_response, invalid_input
from common.utils.geo import Coordinates, estimate_compensation, validate_coordinates
from drivers.services import get_driver_position
from .serializers import (
    CompensationEstimateSerializer,
    DetourCandidateSerializer,
    DriverRequestQuerySerializer,
    PositionSerializer,
    ProposalConfirmSerializer,
    ProposalSerializer,
    ProposalWithRequestSerializer,
    RideDraftSerializer,
    RideRequestCreateSerializer,
    RideRequestSerializer,
    RideSerializer,
)

# Import from services layer
from services import ride_management
from services.exceptions import ForbiddenError, RideServiceError, ValidationError
from services.matching import find_candidate_requests
from services.routing import get_route_composer

logger = logging.getLogger(__name__)


def require_role(user, role: str, action: str):
    if getattr(user, 'role', None) != role:
        raise ForbiddenError(f"Only {role}s can {action}")


# ==================== Requests ====================

@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def ride_requests(request):
    """
    POST: passenger posts a new request.
    GET: passengers see their own open requests; drivers see open requests
    ranked by detour against their trip to dropoff_lat/dropoff_lon.
    """
    try:
        if request.method == 'POST':
            return _create_ride_request(request)
        if request.user.role == 'driver':
            return _list_requests_for_driver(request)
        if request.user.role == 'passenger':
            requests = ride_management.get_active_ride_requests(passenger=request.user)
            return Response({'requests': RideRequestSerializer(requests, many=True).data})
        raise ForbiddenError("Only drivers and passengers can view ride requests")
    except RideServiceError as e:
        return error_response(e)


def _create_ride_request(request):
    require_role(request.user, 'passenger', 'create ride requests')

    serializer = RideRequestCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return invalid_input(serializer)
    data = serializer.validated_data

    ride_request = ride_management.create_ride_request(
        request.user,
        pickup=Coordinates(data['pickup_latitude'], data['pickup_longitude']),
        dropoff=Coordinates(data['dropoff_latitude'], data['dropoff_longitude']),
        compensation=data['compensation'],
        pickup_address=data['pickup_address'],
        dropoff_address=data['dropoff_address'],
    )
    return Response(RideRequestSerializer(ride_request).data, status=status.HTTP_201_CREATED)


def _list_requests_for_driver(request):
    serializer = DriverRequestQuerySerializer(data=request.query_params)
    if not serializer.is_valid():
        return invalid_input(serializer)
    params = serializer.validated_data

    position = get_driver_position(request.user.id)
    if position is None:
        raise ValidationError("Current location required to calculate detour distance and time")

    ids = request.query_params.getlist('ids')
    requests = ride_management.get_active_ride_requests(
        ids=[int(i) for i in ids if i.isdigit()] or None,
        max_compensation=params.get('compensation'),
    )
    listing = find_candidate_requests(
        position,
        Coordinates(params['dropoff_lat'], params['dropoff_lon']),
        requests=requests,
        max_detour_meters=params.get('distance_m'),
        max_detour_seconds=params.get('time_s'),
    )
    return Response({
        'polyline': listing.polyline,
        'requests': DetourCandidateSerializer(listing.candidates, many=True).data,
        'failures': listing.failures,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def ride_request_detail(request, request_id):
    """A single request; passengers only see their own"""
    try:
        ride_request = ride_management.get_ride_request(request_id)
        if request.user.role != 'driver' and ride_request.passenger_id != request.user.id:
            raise ForbiddenError("You are not allowed to view this ride request")
    except RideServiceError as e:
        return error_response(e)

    return Response(RideRequestSerializer(ride_request).data)


@api_view(['POST'])
@permission_classes([AllowAny])
def compensation_estimate(request):
    """Suggested compensation for a straight-line trip"""
    serializer = CompensationEstimateSerializer(data=request.data)
    if not serializer.is_valid():
        return invalid_input(serializer)
    data = serializer.validated_data

    distance_km, estimate = estimate_compensation(
        data['start_latitude'], data['start_longitude'],
        data['end_latitude'], data['end_longitude'],
    )
    return Response({'distance_km': distance_km, 'estimated_comp': estimate})


# ==================== Drafts & Proposals ====================

@api_view(['POST'])
@permission_classes([IsAuthenticated])
def draft_ride(request):
    """Driver commits to a set of open requests"""
    serializer = RideDraftSerializer(data=request.data)
    if not serializer.is_valid():
        return invalid_input(serializer)
    data = serializer.validated_data

    try:
        require_role(request.user, 'driver', 'create ride proposals')
        ride, proposals = ride_management.draft_ride(
            data['request_ids'],
            request.user,
            Coordinates(data['destination_lat'], data['destination_lon']),
        )
    except RideServiceError as e:
        return error_response(e)

    return Response({
        **RideSerializer(ride).data,
        'proposals': ProposalSerializer(proposals, many=True).data,
    }, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def proposal_detail(request, proposal_id):
    """Proposal with the driver's planned route to the passenger's dropoff"""
    try:
        require_role(request.user, 'passenger', 'view ride proposals')
        proposal, route = ride_management.get_proposal_route(proposal_id, passenger=request.user)
    except RideServiceError as e:
        return error_response(e)

    return Response({
        **ProposalSerializer(proposal).data,
        'polyline': route.polyline,
        'duration': route.duration,
        'distance': route.distance,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def confirm_proposal(request, proposal_id):
    """Passenger accepts or rejects a proposal"""
    serializer = ProposalConfirmSerializer(data=request.data)
    if not serializer.is_valid():
        return invalid_input(serializer)

    try:
        require_role(request.user, 'passenger', 'respond to ride proposals')
        proposal = ride_management.confirm_proposal(
            proposal_id,
            serializer.validated_data['confirm'],
            passenger=request.user,
        )
        ride = ride_management.get_ride(proposal.ride_id)
    except RideServiceError as e:
        return error_response(e)

    return Response({
        'id': proposal.id,
        'request_id': proposal.request_id,
        'proposal_status': proposal.status,
        'ride_status': ride.status,
        'driver_id': proposal.driver_id,
        'ride_id': ride.id,
        'created_at': proposal.created_at,
        'updated_at': proposal.updated_at,
    })


# ==================== Rides ====================

@api_view(['GET'])
@permission_classes([IsAuthenticated])
def ride_summary(request, ride_id):
    try:
        ride, proposals = ride_management.get_ride_summary(ride_id, request.user)
    except RideServiceError as e:
        return error_response(e)

    return Response({
        **RideSerializer(ride).data,
        'proposals': ProposalWithRequestSerializer(proposals, many=True).data,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def ride_route(request, ride_id):
    """Live route through the remaining pickups of an in-progress ride"""
    try:
        route = ride_management.get_ride_route(ride_id, account=request.user)
    except RideServiceError as e:
        return error_response(e)

    return Response({
        'ride_id': ride_id,
        **route.as_dict(),
        'waypoints': [{'lat': w.lat, 'lng': w.lon} for w in route.waypoints],
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def mark_request_visited(request, ride_id):
    """Driver reports arrival at the nearest pickup"""
    serializer = PositionSerializer(data=request.data)
    if not serializer.is_valid():
        return invalid_input(serializer)
    data = serializer.validated_data

    try:
        require_role(request.user, 'driver', 'mark pickups')
        ride_request = ride_management.mark_request_visited(
            ride_id,
            Coordinates(data['current_lat'], data['current_lon']),
            driver=request.user,
        )
    except RideServiceError as e:
        return error_response(e)

    return Response({
        'success': True,
        'message': 'Pickup marked as visited',
        'request': RideRequestSerializer(ride_request).data,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def complete_ride(request, ride_id):
    """Mark an in-progress ride completed (Driver action)"""
    try:
        require_role(request.user, 'driver', 'complete rides')
        ride = ride_management.complete_ride(ride_id, driver=request.user)
    except RideServiceError as e:
        return error_response(e)

    return Response({
        'success': True,
        'message': 'Ride completed successfully',
        'ride': RideSerializer(ride).data,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def ride_history(request):
    """Most recent rides of the current account"""
    try:
        limit = min(max(int(request.query_params.get('limit', 5)), 1), 50)
        offset = max(int(request.query_params.get('offset', 0)), 0)
    except ValueError:
        return error_response(ValidationError("limit and offset must be integers"))

    rides = []
    for ride, requests in ride_management.get_ride_history(request.user, limit=limit, offset=offset):
        rides.append({
            **RideSerializer(ride).data,
            'requests': RideRequestSerializer(requests, many=True).data,
        })
    return Response({'rides': rides})


# ==================== Maps ====================

@api_view(['GET'])
@permission_classes([IsAuthenticated])
def direct_route(request):
    """Point-to-point route between start_lat/start_lng and end_lat/end_lng"""
    try:
        start = Coordinates(float(request.query_params['start_lat']), float(request.query_params['start_lng']))
        end = Coordinates(float(request.query_params['end_lat']), float(request.query_params['end_lng']))
    except (KeyError, ValueError):
        return error_response(ValidationError("start_lat, start_lng, end_lat and end_lng are required numbers"))
    if not (validate_coordinates(*start) and validate_coordinates(*end)):
        return error_response(ValidationError("Coordinates are out of range"))

    try:
        route = get_route_composer().direct_route(start, end)
    except RideServiceError as e:
        return error_response(e)

    return Response(route.as_dict())
