"""
Tests for the operation registry.
"""
from unittest.mock import patch

import pytest

from apps.core.exceptions import Forbidden
from apps.rbac.catalog import ALL_PERMISSIONS, Permission
from apps.rbac.context import BusinessContext
from apps.rbac.operations import OperationRegistry, registry
from apps.rbac.services import EffectivePermissionResolver


def context_for(role):
    return BusinessContext(
        business_id='b-1',
        user_id='u-1',
        role=role,
        permissions=EffectivePermissionResolver().resolve(role),
    )


class TestOperationRegistry:
    """Test registration and checks."""

    def setup_method(self):
        self.registry = OperationRegistry()

    def test_register_and_get(self):
        operation = self.registry.register('invoice.create', Permission.INVOICE_CREATE)

        assert operation.name == 'invoice.create'
        assert operation.required_permission == 'invoice:create'
        assert self.registry.get('invoice.create') is operation
        assert 'invoice.create' in self.registry

    def test_register_is_idempotent(self):
        first = self.registry.register('invoice.create', 'invoice:create')
        second = self.registry.register('invoice.create', Permission.INVOICE_CREATE)

        assert first is second
        assert len(list(self.registry)) == 1

    def test_conflicting_registration_rejected(self):
        self.registry.register('invoice.create', 'invoice:create')

        with pytest.raises(ValueError):
            self.registry.register('invoice.create', 'invoice:delete')

    def test_unknown_permission_rejected(self):
        with pytest.raises(ValueError):
            self.registry.register('invoice.fly', 'invoice:fly')

    def test_check_uses_required_permission(self):
        self.registry.register('invoice.create', 'invoice:create')

        assert self.registry.check('invoice.create', context_for('employee')).allowed is True
        assert self.registry.check('invoice.create', context_for('viewer')).allowed is False

    def test_unknown_operation_denied(self):
        with patch('apps.rbac.operations.SecurityLogger.log_permission_denied') as mock_log:
            decision = self.registry.check('invoice.fly', context_for('employee'))

        assert decision.allowed is False
        assert decision.reason == 'Unknown operation: invoice.fly'
        mock_log.assert_called_once()

    def test_unknown_operation_denied_for_superadmin(self):
        ctx = BusinessContext(
            business_id='b-1', user_id='u-1', role='superadmin',
            is_superadmin=True, permissions=ALL_PERMISSIONS,
        )
        assert self.registry.check('invoice.fly', ctx).allowed is False

    def test_authorize_raises_with_details(self):
        self.registry.register('invoice.delete', 'invoice:delete')

        with pytest.raises(Forbidden) as exc_info:
            self.registry.authorize('invoice.delete', context_for('employee'))

        assert exc_info.value.details == {
            'operation': 'invoice.delete',
            'required_permission': 'invoice:delete',
        }


class TestDefaultRegistry:
    """Test the operations declared for the membership API."""

    def test_membership_operations_registered(self):
        expected = {
            'business.users.view': 'user:view',
            'business.users.assign': 'user:assign',
            'business.users.update_role': 'user:update_role',
            'business.users.update_permissions': 'user:update_role',
            'business.users.remove': 'user:remove',
            'business.audit_logs.view': 'audit:view',
        }
        for name, permission in expected.items():
            assert registry.get(name).required_permission == permission

    def test_every_registered_permission_is_in_catalog(self):
        for operation in registry:
            assert operation.required_permission in ALL_PERMISSIONS
