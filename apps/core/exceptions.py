"""
Exception taxonomy and DRF exception handler for the access core.
"""
import logging
from rest_framework.views import exception_handler
from rest_framework.response import Response
from rest_framework import status
from rest_framework import exceptions as drf_exceptions

logger = logging.getLogger(__name__)


class AccessCoreException(Exception):
    """Base exception for access-core errors."""

    status_code = 400
    code = 'ERROR'

    def __init__(self, message, details=None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class Unauthenticated(AccessCoreException):
    """Raised when no verified identity is attached to the request."""
    status_code = 401
    code = 'UNAUTHENTICATED'


class MissingBusinessId(AccessCoreException):
    """Raised when no business id could be extracted from the request."""
    status_code = 400
    code = 'MISSING_BUSINESS_ID'


class Forbidden(AccessCoreException):
    """Raised when the caller may not perform the operation."""
    status_code = 403
    code = 'FORBIDDEN'


class NoMembership(Forbidden):
    """Raised when the user has no active membership in the business."""
    pass


class BusinessNotFound(AccessCoreException):
    """Raised when a membership operation targets an unknown business."""
    status_code = 404
    code = 'NOT_FOUND'


class MembershipNotFound(AccessCoreException):
    """Raised when a membership mutation targets a user not in the business."""
    status_code = 404
    code = 'NOT_FOUND'


class InvalidRole(AccessCoreException):
    """Raised when a role is unknown or cannot be assigned."""
    code = 'INVALID_ROLE'


class InvalidPermissionOverride(AccessCoreException):
    """Raised when a custom permission map contains unknown keys or non-boolean values."""
    code = 'INVALID_PERMISSIONS'


class OwnerRemovalNotAllowed(AccessCoreException):
    """Raised when attempting to remove the business owner."""
    code = 'OWNER_REMOVAL_NOT_ALLOWED'


class MembershipConflict(AccessCoreException):
    """Raised when a concurrent request created the same membership first."""
    status_code = 409
    code = 'CONFLICT'


def error_payload(code, message, details=None, request_id=None):
    """Build the standard error body shared by middleware and views."""
    error_data = {
        'error': {
            'code': code,
            'message': message,
        }
    }
    if details:
        error_data['error']['details'] = details
    if request_id:
        error_data['request_id'] = request_id
    return error_data


def custom_exception_handler(exc, context):
    """
    Custom exception handler that logs errors and returns consistent format.
    """
    request = context.get('request')
    request_id = getattr(request, 'request_id', None) if request else None

    if isinstance(exc, AccessCoreException):
        logger.warning(
            f"Access core exception: {exc.__class__.__name__}",
            extra={
                'exception': exc.message,
                'request_id': request_id,
                'path': request.path if request else None,
                'method': request.method if request else None,
            }
        )
        return Response(
            error_payload(exc.code, exc.message, exc.details, request_id),
            status=exc.status_code
        )

    # Call DRF's default exception handler first
    response = exception_handler(exc, context)

    if response is None:
        logger.error(
            f"API Exception: {exc.__class__.__name__}",
            extra={
                'exception': str(exc),
                'request_id': request_id,
                'path': request.path if request else None,
                'method': request.method if request else None,
            },
            exc_info=True
        )
        return Response(
            error_payload('INTERNAL_ERROR', 'An unexpected error occurred', request_id=request_id),
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    logger.info(
        f"API Exception: {exc.__class__.__name__}",
        extra={
            'exception': str(exc),
            'request_id': request_id,
            'path': request.path if request else None,
        }
    )

    # Re-shape DRF's payload into the shared error envelope
    if isinstance(exc, (drf_exceptions.NotAuthenticated, drf_exceptions.AuthenticationFailed)):
        code = Unauthenticated.code
    elif isinstance(exc, drf_exceptions.PermissionDenied):
        code = Forbidden.code
    else:
        code = getattr(exc, 'default_code', 'error').upper()
    data = response.data
    if isinstance(data, dict) and set(data.keys()) == {'detail'}:
        response.data = error_payload(code, str(data['detail']), request_id=request_id)
    else:
        response.data = error_payload(code, 'Invalid request', details=data, request_id=request_id)

    return response
