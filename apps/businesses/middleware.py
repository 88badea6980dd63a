"""
Business context middleware for multi-tenant authorization.

Resolves who is acting on which business once per request, before any
view runs, and attaches the result as ``request.business_context``.
"""
import logging

from django.conf import settings
from django.http import JsonResponse
from django.utils.deprecation import MiddlewareMixin

from apps.core.exceptions import AccessCoreException, error_payload
from apps.core.logging import SecurityLogger
from apps.core.middleware import set_log_context
from apps.rbac.context import Identity, extract_business_id, parse_json_body
from apps.rbac.services import BusinessContextService

logger = logging.getLogger(__name__)


class BusinessContextMiddleware(MiddlewareMixin):
    """
    Extract the target business and resolve the caller's context.

    This middleware:
    1. Skips exempt paths (health checks, permission catalog, schema, admin)
    2. Extracts the business id: header, then URL parameter, then JSON body
       ``businessId``, then query ``businessId``
    3. Resolves a BusinessContext for the authenticated user
    4. Rejects the request with 401/400/403 when resolution fails

    Runs in ``process_view`` so URL parameters are available. Must come
    after AuthenticationMiddleware.
    """

    DEFAULT_EXEMPT_PATHS = [
        '/v1/health',
        '/v1/permissions',
        '/v1/me/',
    '/v1/users/',
        '/schema',
        '/admin/',
    ]

    def __init__(self, get_response=None):
        super().__init__(get_response)
        self.service = BusinessContextService()

    @property
    def exempt_paths(self):
        return getattr(settings, 'RBAC_CONTEXT_EXEMPT_PATHS', self.DEFAULT_EXEMPT_PATHS)

    @property
    def header_name(self):
        return getattr(settings, 'RBAC_BUSINESS_ID_HEADER', 'X-Business-ID')

    def process_request(self, request):
        request.business_context = None

    def process_view(self, request, view_func, view_args, view_kwargs):
        if self._is_exempt_path(request.path):
            return None

        request_id = getattr(request, 'request_id', None)
        identity = Identity.from_user(getattr(request, 'user', None))

        business_id, source = extract_business_id(
            header=request.headers.get(self.header_name),
            path_kwargs=view_kwargs,
            body=parse_json_body(request),
            query=request.GET,
        )

        try:
            ctx = self.service.resolve(
                identity, business_id, source=source, request_id=request_id
            )
        except AccessCoreException as exc:
            SecurityLogger.log_context_denied(
                user_id=identity.user_id if identity else None,
                business_id=business_id,
                code=exc.code,
                reason=exc.message,
                request_id=request_id,
            )
            return self._error_response(
                exc.code, exc.message, status=exc.status_code, request_id=request_id
            )

        request.business_context = ctx
        set_log_context(business_id=ctx.business_id)

        logger.debug(
            f"Business context set: {ctx.user_id} @ {ctx.business_id} as {ctx.role}",
            extra={'request_id': request_id, 'source': source}
        )
        return None

    def _is_exempt_path(self, path):
        """Check if path is exempt from business context resolution."""
        return any(path.startswith(exempt) for exempt in self.exempt_paths)

    def _error_response(self, code, message, status=400, request_id=None):
        """Generate standardized error response."""
        return JsonResponse(
            error_payload(code, message, request_id=request_id),
            status=status
        )
