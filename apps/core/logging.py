"""
Custom logging formatters for structured JSON logging and security events.
"""
import json
import logging
import re
import traceback
from datetime import datetime, timezone as dt_timezone
from django.utils import timezone
import sentry_sdk


class PIIMasker:
    """
    Utility class to mask sensitive data in logs.
    """

    EMAIL_PATTERN = re.compile(r'\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Z|a-z]{2,}\b')
    TOKEN_PATTERN = re.compile(r'(api[_-]?key|token|secret|password|authorization)["\']?\s*[:=]\s*["\']?([^"\'\s,}]+)', re.IGNORECASE)

    SENSITIVE_FIELDS = {
        'password', 'secret', 'token', 'authorization', 'api_key', 'cookie',
    }

    @classmethod
    def mask_text(cls, text):
        """Mask email addresses and credentials in free text."""
        if not isinstance(text, str):
            return text

        def mask_email_match(match):
            username, _, domain = match.group(0).partition('@')
            masked = username[0] + '*' * (len(username) - 1) if len(username) > 1 else username
            return f"{masked}@{domain}"

        text = cls.EMAIL_PATTERN.sub(mask_email_match, text)
        return cls.TOKEN_PATTERN.sub(r'\1: ********', text)

    @classmethod
    def mask_dict(cls, data):
        """Recursively mask sensitive data in dictionaries."""
        if not isinstance(data, dict):
            return data

        masked = {}
        for key, value in data.items():
            if any(sensitive in key.lower() for sensitive in cls.SENSITIVE_FIELDS):
                masked[key] = '********' if value and not isinstance(value, (dict, list)) else value
            elif isinstance(value, dict):
                masked[key] = cls.mask_dict(value)
            elif isinstance(value, str):
                masked[key] = cls.mask_text(value)
            else:
                masked[key] = value
        return masked


# Attributes every LogRecord carries; anything else came in through ``extra``
_RESERVED_ATTRS = {
    'name', 'msg', 'args', 'created', 'filename', 'funcName',
    'levelname', 'levelno', 'lineno', 'module', 'msecs', 'message',
    'pathname', 'process', 'processName', 'relativeCreated',
    'thread', 'threadName', 'exc_info', 'exc_text', 'stack_info',
    'taskName', 'request_id', 'business_id',
}


class JSONFormatter(logging.Formatter):
    """
    Format log records as JSON for structured logging.
    Includes request_id and business_id from extra fields if available.
    """

    def format(self, record):
        log_data = {
            'timestamp': datetime.now(dt_timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': PIIMasker.mask_text(record.getMessage()),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
        }

        if getattr(record, 'request_id', None):
            log_data['request_id'] = record.request_id

        if getattr(record, 'business_id', None):
            log_data['business_id'] = str(record.business_id)

        if record.exc_info:
            log_data['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': PIIMasker.mask_text(str(record.exc_info[1])),
                'traceback': [PIIMasker.mask_text(line) for line in traceback.format_exception(*record.exc_info)],
            }

        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS or key.startswith('_'):
                continue
            try:
                if isinstance(value, dict):
                    value = PIIMasker.mask_dict(value)
                elif isinstance(value, str):
                    value = PIIMasker.mask_text(value)
                json.dumps(value)
                log_data[key] = value
            except (TypeError, ValueError):
                log_data[key] = PIIMasker.mask_text(str(value))

        return json.dumps(log_data)


class SecurityLogger:
    """
    Centralized logging for authorization events.

    Denials and context-resolution failures are observability records,
    not audit rows. Critical events are also sent to Sentry.
    """

    CRITICAL_EVENTS = {
        'context_resolution_error',
    }

    @staticmethod
    def log_event(event_type: str, level: str = 'warning', **context):
        """
        Log a security event with structured data.

        Example:
            >>> SecurityLogger.log_event(
            ...     'permission_denied',
            ...     user_id='42',
            ...     business_id='7c0e...',
            ...     required_permission='invoice:delete'
            ... )
        """
        logger = logging.getLogger('security')

        log_data = {
            'event_type': event_type,
            'timestamp': timezone.now().isoformat(),
        }
        log_data.update(context)
        log_data = PIIMasker.mask_dict(log_data)

        log_method = getattr(logger, level, logger.warning)
        log_method(
            f"Security event: {event_type}",
            extra=log_data
        )

        if event_type in SecurityLogger.CRITICAL_EVENTS:
            sentry_sdk.capture_message(
                f"Critical security event: {event_type}",
                level='error',
            )

    @staticmethod
    def log_permission_denied(user_id, business_id, required_permission, reason=None, request_id=None):
        """
        Log a permission denial.

        Only the required permission is recorded, never the caller's full set.
        """
        SecurityLogger.log_event(
            'permission_denied',
            level='warning',
            user_id=user_id,
            business_id=str(business_id) if business_id else None,
            required_permission=str(required_permission) if required_permission else None,
            reason=reason,
            request_id=request_id,
        )

    @staticmethod
    def log_context_denied(user_id, business_id, code, reason, request_id=None):
        """Log a request rejected while resolving its business context."""
        SecurityLogger.log_event(
            'context_denied',
            level='warning',
            user_id=user_id,
            business_id=str(business_id) if business_id else None,
            code=code,
            reason=reason,
            request_id=request_id,
        )

    @staticmethod
    def log_context_resolution_error(user_id, business_id, error, request_id=None):
        """Log an internal failure while resolving a business context (fail-closed)."""
        SecurityLogger.log_event(
            'context_resolution_error',
            level='error',
            user_id=user_id,
            business_id=str(business_id) if business_id else None,
            error=error,
            request_id=request_id,
        )

    @staticmethod
    def log_legacy_fallback(user_id, business_id, request_id=None):
        """Log an owner-equivalent grant to a user without membership."""
        SecurityLogger.log_event(
            'legacy_owner_fallback',
            level='warning',
            user_id=user_id,
            business_id=str(business_id) if business_id else None,
            request_id=request_id,
        )


class SanitizingFilter(logging.Filter):
    """
    Logging filter that masks credentials and emails in log messages.

    Applied to handlers that use a plain text formatter; JSONFormatter masks
    on its own.
    """

    def filter(self, record):
        if isinstance(record.msg, str):
            record.msg = PIIMasker.mask_text(record.msg)

        if record.args and isinstance(record.args, tuple):
            record.args = tuple(PIIMasker.mask_text(arg) for arg in record.args)

        return True
