"""
Tests for the business permission class and decorators.
"""
import uuid
from unittest.mock import Mock, patch

import pytest
from django.test import RequestFactory
from rest_framework.views import APIView

from apps.core.exceptions import Forbidden
from apps.core.permissions import HasBusinessPermission, requires_operation, requires_permission
from apps.rbac.context import BusinessContext, Decision
from apps.rbac.services import EffectivePermissionResolver

BUSINESS_ID = '7c0e5e1c-6a55-4c43-9a6f-3a3f0a0c1b11'


def context_for(role, is_owner=False):
    return BusinessContext(
        business_id=BUSINESS_ID,
        user_id='user-1',
        role=role,
        is_owner=is_owner,
        permissions=EffectivePermissionResolver().resolve(role),
    )


@pytest.fixture
def request_factory():
    """Provide Django request factory."""
    return RequestFactory()


@pytest.fixture
def mock_view():
    """Provide mock view instance."""
    view = Mock(spec=APIView)
    view.kwargs = {}
    view.get = Mock(spec=[])
    return view


@pytest.fixture
def mock_request(request_factory):
    """Provide request with a resolved employee context."""
    request = request_factory.get('/test')
    request.request_id = 'req-123'
    request.business_context = context_for('employee')
    return request


class TestHasBusinessPermission:
    """Test HasBusinessPermission permission class."""

    def test_no_requirement_allows_access(self, mock_request, mock_view):
        """Test that views without a declared permission allow access."""
        permission = HasBusinessPermission()

        assert permission.has_permission(mock_request, mock_view) is True

    def test_no_requirement_allows_without_context(self, mock_request, mock_view):
        mock_request.business_context = None
        assert HasBusinessPermission().has_permission(mock_request, mock_view) is True

    def test_permission_in_set(self, mock_request, mock_view):
        mock_view.required_permission = 'invoice:create'

        assert HasBusinessPermission().has_permission(mock_request, mock_view) is True

    def test_permission_missing_raises(self, mock_request, mock_view):
        mock_view.required_permission = 'invoice:delete'

        with pytest.raises(Forbidden) as exc_info:
            HasBusinessPermission().has_permission(mock_request, mock_view)

        assert exc_info.value.message == 'You do not have permission: invoice:delete'
        assert exc_info.value.details == {'required_permission': 'invoice:delete'}

    def test_missing_context_denies(self, mock_request, mock_view):
        mock_request.business_context = None
        mock_view.required_permission = 'invoice:read'

        with pytest.raises(Forbidden):
            HasBusinessPermission().has_permission(mock_request, mock_view)

    def test_owner_allowed(self, mock_request, mock_view):
        mock_request.business_context = context_for('viewer', is_owner=True)
        mock_view.required_permission = 'business:delete'

        assert HasBusinessPermission().has_permission(mock_request, mock_view) is True

    def test_handler_declaration_wins(self, mock_request, mock_view):
        """Test that a permission on the handler overrides the class one."""
        mock_view.required_permission = 'invoice:read'
        mock_view.get.required_permission = 'invoice:delete'

        with pytest.raises(Forbidden):
            HasBusinessPermission().has_permission(mock_request, mock_view)

    def test_operation_declaration(self, mock_request, mock_view):
        mock_view.required_operation = 'business.users.view'

        with pytest.raises(Forbidden) as exc_info:
            HasBusinessPermission().has_permission(mock_request, mock_view)

        assert exc_info.value.details == {'required_permission': 'user:view'}

    def test_operation_checked_through_registry(self, mock_request, mock_view):
        mock_view.required_operation = 'invoice.anything'

        with patch('apps.rbac.operations.registry.check', return_value=Decision(allowed=True)) as mock_check:
            assert HasBusinessPermission().has_permission(mock_request, mock_view) is True

        mock_check.assert_called_once_with('invoice.anything', mock_request.business_context, request=mock_request)

    def test_unknown_operation_denied(self, mock_request, mock_view):
        mock_view.required_operation = 'invoice.fly'

        with pytest.raises(Forbidden) as exc_info:
            HasBusinessPermission().has_permission(mock_request, mock_view)

        assert exc_info.value.message == 'Unknown operation: invoice.fly'

    def test_path_business_mismatch(self, mock_request, mock_view):
        mock_view.required_permission = 'invoice:read'
        mock_view.kwargs = {'business_id': '00000000-0000-0000-0000-000000000001'}

        with pytest.raises(Forbidden) as exc_info:
            HasBusinessPermission().has_permission(mock_request, mock_view)

        assert exc_info.value.message == 'Business context does not match the requested business'

    def test_path_business_mismatch_allowed_for_superadmin(self, mock_request, mock_view):
        mock_request.business_context = BusinessContext(
            business_id=BUSINESS_ID,
            user_id='root',
            role='superadmin',
            is_superadmin=True,
        )
        mock_view.required_permission = 'business:delete'
        mock_view.kwargs = {'business_id': '00000000-0000-0000-0000-000000000001'}

        assert HasBusinessPermission().has_permission(mock_request, mock_view) is True

    def test_path_business_match(self, mock_request, mock_view):
        mock_view.required_permission = 'invoice:read'
        mock_view.kwargs = {'business_id': uuid.UUID(BUSINESS_ID)}

        assert HasBusinessPermission().has_permission(mock_request, mock_view) is True


class TestDecorators:
    """Test requires_permission and requires_operation."""

    def test_requires_permission_on_class(self):
        @requires_permission('audit:view')
        class AuditView(APIView):
            pass

        assert AuditView.required_permission == 'audit:view'

    def test_requires_permission_stringifies_enum(self):
        from apps.rbac.catalog import Permission

        @requires_permission(Permission.USER_VIEW)
        def handler(self, request):
            pass

        assert handler.required_permission == 'user:view'
        assert type(handler.required_permission) is str

    def test_requires_operation_on_handler(self):
        class MemberView(APIView):
            @requires_operation('business.users.view')
            def get(self, request):
                pass

        assert MemberView.get.required_operation == 'business.users.view'
        assert not hasattr(MemberView, 'required_operation')

    def test_decorated_handler_is_enforced(self, request_factory):
        class MemberView(APIView):
            @requires_operation('business.users.view')
            def get(self, request):
                pass

        request = request_factory.get('/test')
        request.business_context = context_for('viewer')
        view = MemberView()
        view.kwargs = {}

        with pytest.raises(Forbidden):
            HasBusinessPermission().has_permission(request, view)
