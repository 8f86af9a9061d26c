"""Service-layer error taxonomy, shared by routing, matching and ride management."""


class RideServiceError(Exception):
    """Base class for errors surfaced to the serving layer."""
    code = "ride_error"

    def __init__(self, message: str = "", code: str = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code


class ValidationError(RideServiceError):
    """Raised for malformed or out-of-range input. Nothing is mutated."""
    code = "validation_error"


class NotFoundError(RideServiceError):
    """Raised when a Ride, RideRequest or Proposal cannot be found."""
    code = "not_found"


class ConflictError(RideServiceError):
    """Raised when a request is already bound, or the driver is too far from a pickup."""
    code = "conflict"


class StateError(RideServiceError):
    """Raised on an illegal Ride/Proposal transition."""
    code = "invalid_state"


class ForbiddenError(RideServiceError):
    """Raised when the account is not a participant of the Ride/Proposal."""
    code = "forbidden"


class ProviderError(RideServiceError):
    """Raised when the routing provider failed after all retries."""
    code = "routing_provider_error"
