"""
Tests for structured logging, PII masking and security events.
"""
import json
import logging
from unittest.mock import patch

from apps.core.logging import JSONFormatter, PIIMasker, SanitizingFilter, SecurityLogger
from apps.core.middleware import LoggingFilter, clear_log_context, set_log_context


def make_record(msg='hello', args=None, **extra):
    record = logging.LogRecord(
        name='apps.test', level=logging.WARNING, pathname=__file__, lineno=1,
        msg=msg, args=args, exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestPIIMasker:
    """Test PIIMasker."""

    def test_mask_email(self):
        assert PIIMasker.mask_text('contact alice@example.com') == 'contact a****@example.com'

    def test_mask_token(self):
        masked = PIIMasker.mask_text('token=abc123')
        assert 'abc123' not in masked

    def test_mask_dict_sensitive_keys(self):
        masked = PIIMasker.mask_dict({'password': 'hunter2', 'user_id': '42', 'nested': {'api_key': 'k'}})

        assert masked['password'] == '********'
        assert masked['user_id'] == '42'
        assert masked['nested']['api_key'] == '********'

    def test_non_string_passthrough(self):
        assert PIIMasker.mask_text(42) == 42


class TestJSONFormatter:
    """Test JSONFormatter."""

    def test_basic_fields(self):
        output = json.loads(JSONFormatter().format(make_record()))

        assert output['level'] == 'WARNING'
        assert output['logger'] == 'apps.test'
        assert output['message'] == 'hello'
        assert 'request_id' not in output

    def test_context_and_extra(self):
        record = make_record(request_id='req-1', business_id='b-1', required_permission='invoice:delete')

        output = json.loads(JSONFormatter().format(record))

        assert output['request_id'] == 'req-1'
        assert output['business_id'] == 'b-1'
        assert output['required_permission'] == 'invoice:delete'

    def test_message_is_masked(self):
        output = json.loads(JSONFormatter().format(make_record('invite bob@example.com')))
        assert 'bob@example.com' not in output['message']

    def test_unserialisable_extra(self):
        output = json.loads(JSONFormatter().format(make_record(when=object())))
        assert isinstance(output['when'], str)


class TestFilters:
    """Test LoggingFilter and SanitizingFilter."""

    def teardown_method(self):
        clear_log_context()

    def test_logging_filter_adds_context(self):
        set_log_context(request_id='req-9', business_id='b-9')
        record = make_record()

        assert LoggingFilter().filter(record) is True
        assert record.request_id == 'req-9'
        assert record.business_id == 'b-9'

    def test_logging_filter_keeps_explicit_values(self):
        set_log_context(request_id='req-9')
        record = make_record(request_id='explicit')

        LoggingFilter().filter(record)

        assert record.request_id == 'explicit'

    def test_logging_filter_without_context(self):
        record = make_record()
        LoggingFilter().filter(record)
        assert not hasattr(record, 'request_id')

    def test_sanitizing_filter(self):
        record = make_record('user %s', args=('carol@example.com',))

        SanitizingFilter().filter(record)

        assert 'carol@example.com' not in record.getMessage()


class TestSecurityLogger:
    """Test SecurityLogger events."""

    def test_permission_denied_event(self):
        with patch('apps.core.logging.logging.getLogger') as mock_get_logger:
            SecurityLogger.log_permission_denied(
                user_id='42', business_id='b-1', required_permission='invoice:delete',
                reason='You do not have permission: invoice:delete', request_id='req-1',
            )

        mock_logger = mock_get_logger.return_value
        mock_logger.warning.assert_called_once()
        extra = mock_logger.warning.call_args.kwargs['extra']
        assert extra['event_type'] == 'permission_denied'
        assert extra['required_permission'] == 'invoice:delete'
        assert 'permissions' not in extra

    def test_context_resolution_error_goes_to_sentry(self):
        with patch('apps.core.logging.sentry_sdk.capture_message') as mock_capture:
            SecurityLogger.log_context_resolution_error(
                user_id='42', business_id='b-1', error='db down'
            )

        mock_capture.assert_called_once()

    def test_denials_do_not_go_to_sentry(self):
        with patch('apps.core.logging.sentry_sdk.capture_message') as mock_capture:
            SecurityLogger.log_context_denied(
                user_id='42', business_id='b-1', code='FORBIDDEN', reason='nope'
            )

        mock_capture.assert_not_called()
