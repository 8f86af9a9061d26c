"""HTTP helpers shared by the API views."""

import logging

from rest_framework import status
from rest_framework.response import Response

from services.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ProviderError,
    RideServiceError,
    StateError,
    ValidationError,
)

logger = logging.getLogger(__name__)

ERROR_STATUS = [
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (ForbiddenError, status.HTTP_403_FORBIDDEN),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (StateError, status.HTTP_409_CONFLICT),
    (ProviderError, status.HTTP_502_BAD_GATEWAY),
]


def error_response(exc: RideServiceError) -> Response:
    """Map a service error to its HTTP status and error body."""
    code = status.HTTP_500_INTERNAL_SERVER_ERROR
    for error_class, http_status in ERROR_STATUS:
        if isinstance(exc, error_class):
            code = http_status
            break
    if code >= 500:
        logger.warning("Service error %s: %s", exc.code, exc.message)
    return Response(
        {'success': False, 'error': exc.code, 'message': exc.message},
        status=code
    )


def invalid_input(serializer) -> Response:
    return Response(
        {'success': False, 'error': ValidationError.code, 'message': serializer.errors},
        status=status.HTTP_400_BAD_REQUEST
    )
