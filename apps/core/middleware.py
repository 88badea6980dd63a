"""
Core middleware for request processing.
"""
import logging
import threading
import uuid

from django.utils.deprecation import MiddlewareMixin

logger = logging.getLogger(__name__)

# Per-thread logging context for the request being served
_log_context = threading.local()

MAX_REQUEST_ID_LENGTH = 64


def set_log_context(**values):
    for key, value in values.items():
        setattr(_log_context, key, value)


def clear_log_context():
    _log_context.__dict__.clear()


class RequestIDMiddleware(MiddlewareMixin):
    """
    Inject a unique request_id into each request for tracing.
    The request_id is added to the request object and to log records.
    """

    def process_request(self, request):
        """Generate and attach request_id to the request."""
        request_id = request.headers.get('X-Request-ID') or str(uuid.uuid4())
        request_id = request_id[:MAX_REQUEST_ID_LENGTH]
        request.request_id = request_id

        clear_log_context()
        set_log_context(request_id=request_id)

    def process_response(self, request, response):
        """Add request_id to response headers."""
        if hasattr(request, 'request_id'):
            response['X-Request-ID'] = request.request_id
        clear_log_context()
        return response


class LoggingFilter(logging.Filter):
    """
    Add request_id and business_id to log records from the per-thread context.
    """

    def filter(self, record):
        for key in ('request_id', 'business_id'):
            value = getattr(_log_context, key, None)
            if value is not None and not hasattr(record, key):
                setattr(record, key, value)
        return True
