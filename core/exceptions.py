"""
Domain errors raised by the marketplace services.

Every error carries a stable machine-readable ``code`` and the HTTP status the
API layer answers with. Views turn them into the ``{"success": false, "error":
{...}}`` envelope; service callers can catch them directly.
"""
from rest_framework import status
from rest_framework.exceptions import APIException


class MarketplaceError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'The operation could not be completed.'
    default_code = 'marketplace_error'

    @property
    def code(self):
        return self.default_code

    @property
    def message(self):
        return str(self.detail)

    def as_dict(self):
        return {'code': self.code, 'message': self.message}


class ValidationError(MarketplaceError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Invalid input.'
    default_code = 'validation_error'


class AuthenticationError(MarketplaceError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = 'Authentication required.'
    default_code = 'authentication_required'


class AuthorizationError(MarketplaceError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = 'You are not allowed to perform this action.'
    default_code = 'not_authorized'


class NotFoundError(MarketplaceError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Not found.'
    default_code = 'not_found'


class StateConflictError(MarketplaceError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'The operation is not allowed in the current state.'
    default_code = 'state_conflict'


class CapacityError(MarketplaceError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'This job has reached its application limit.'
    default_code = 'capacity_reached'


class InsufficientFundsError(MarketplaceError):
    status_code = status.HTTP_402_PAYMENT_REQUIRED
    default_detail = 'Insufficient wallet balance.'
    default_code = 'insufficient_funds'


class IntegrityError(MarketplaceError):
    """A post-write verification did not match: a concurrent update was lost."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = 'Balance verification failed.'
    default_code = 'integrity_error'


class DependencyError(MarketplaceError):
    """An auxiliary side channel failed. Logged and swallowed, never surfaced."""
    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = 'An auxiliary service failed.'
    default_code = 'dependency_error'
