"""
Ride management service - Request, Proposal and Ride lifecycle.

This module handles:
    - Creating ride requests
    - Drafting rides with one proposal per request
    - Accepting/rejecting proposals and recomputing the ride
    - Marking pickups visited and completing rides
    - Querying requests, rides, history and route views
"""

from services.exceptions import (
    RideServiceError,
    ValidationError,
    NotFoundError,
    ConflictError,
    StateError,
    ForbiddenError,
    ProviderError,
)

from .ride_lifecycle import (
    create_ride_request,
    draft_ride,
    confirm_proposal,
    complete_ride,
    mark_request_visited,
)

from .ride_queries import (
    get_ride_request,
    get_ride,
    get_proposal,
    get_active_ride_requests,
    get_ride_with_proposals,
    get_ride_summary,
    get_ride_history,
    get_proposal_route,
    get_ride_route,
)

__all__ = [
    # Lifecycle operations
    "create_ride_request",
    "draft_ride",
    "confirm_proposal",
    "complete_ride",
    "mark_request_visited",
    # Queries
    "get_ride_request",
    "get_ride",
    "get_proposal",
    "get_active_ride_requests",
    "get_ride_with_proposals",
    "get_ride_summary",
    "get_ride_history",
    "get_proposal_route",
    "get_ride_route",
    # Exceptions
    "RideServiceError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "StateError",
    "ForbiddenError",
    "ProviderError",
]
