"""
Tests for the role and permission catalog.
"""
import pytest

from apps.rbac.catalog import (
    ALL_PERMISSIONS,
    ASSIGNABLE_ROLES,
    ROLE_PERMISSIONS,
    Permission,
    Role,
    default_roles_for,
    permission_catalog,
    role_defaults,
)


class TestRolePermissions:
    """Test the role -> default permission table."""

    def test_every_role_has_an_entry(self):
        """Test that the table covers every role."""
        assert set(ROLE_PERMISSIONS.keys()) == {role.value for role in Role}

    def test_catalog_size(self):
        assert len(ALL_PERMISSIONS) == 33

    def test_owner_and_superadmin_get_full_catalog(self):
        assert ROLE_PERMISSIONS['owner'] == ALL_PERMISSIONS
        assert ROLE_PERMISSIONS['superadmin'] == ALL_PERMISSIONS

    def test_admin_exclusions(self):
        """Test that admin gets everything except business edits and payment deletion."""
        admin = ROLE_PERMISSIONS['admin']

        assert 'business:update' not in admin
        assert 'business:delete' not in admin
        assert 'payment:delete' not in admin
        assert ALL_PERMISSIONS - admin == {'business:update', 'business:delete', 'payment:delete'}

    def test_employee_defaults(self):
        employee = ROLE_PERMISSIONS['employee']

        assert 'invoice:create' in employee
        assert 'invoice:read' in employee
        assert 'invoice:delete' not in employee
        assert 'user:view' not in employee
        assert 'audit:view' not in employee

    def test_viewer_is_read_only(self):
        """Test that viewer defaults contain no mutating permissions."""
        mutating = ('create', 'update', 'delete', 'cancel', 'adjust', 'assign', 'remove', 'invite')
        for permission in ROLE_PERMISSIONS['viewer']:
            assert permission.split(':')[1] not in mutating

    def test_accountant_has_reports(self):
        accountant = ROLE_PERMISSIONS['accountant']
        assert {'report:view', 'report:gst', 'report:export', 'report:financial'} <= accountant

    def test_role_sets_only_use_catalog_permissions(self):
        for permissions in ROLE_PERMISSIONS.values():
            assert permissions <= ALL_PERMISSIONS

    def test_table_is_read_only(self):
        with pytest.raises(TypeError):
            ROLE_PERMISSIONS['viewer'] = ALL_PERMISSIONS
        assert 'business:delete' not in ROLE_PERMISSIONS['viewer']

    def test_unknown_role_has_no_permissions(self):
        assert role_defaults('janitor') == frozenset()

    def test_role_defaults_accepts_enum(self):
        assert role_defaults(Role.EMPLOYEE) == ROLE_PERMISSIONS['employee']

    def test_superadmin_is_not_assignable(self):
        assert 'superadmin' not in ASSIGNABLE_ROLES
        assert 'owner' in ASSIGNABLE_ROLES


class TestPermissionCatalog:
    """Test the grouped catalog used for UI rendering."""

    def test_catalog_lists_every_permission_once(self):
        keys = [
            permission['key']
            for category in permission_catalog()
            for permission in category['permissions']
        ]

        assert len(keys) == len(set(keys))
        assert set(keys) == ALL_PERMISSIONS

    def test_catalog_groups_by_category(self):
        catalog = {category['key']: category for category in permission_catalog()}

        assert set(catalog) == {
            'business', 'user', 'invoice', 'party', 'inventory', 'payment', 'report', 'audit'
        }
        assert catalog['invoice']['name'] == 'Invoice Management'
        for permission in catalog['invoice']['permissions']:
            assert permission['key'].startswith('invoice:')

    def test_catalog_entry_shape(self):
        entry = permission_catalog()[0]['permissions'][0]

        assert set(entry) == {'key', 'label', 'description', 'defaultRoles'}

    def test_default_roles_match_role_table(self):
        """Test that catalog metadata agrees with the enforcement table."""
        for category in permission_catalog():
            for permission in category['permissions']:
                expected = [
                    role for role, perms in ROLE_PERMISSIONS.items()
                    if permission['key'] in perms
                ]
                assert sorted(permission['defaultRoles']) == sorted(expected)

    def test_default_roles_for_payment_delete(self):
        assert default_roles_for(Permission.PAYMENT_DELETE) == ['superadmin', 'owner']
