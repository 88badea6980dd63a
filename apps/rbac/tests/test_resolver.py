"""
Tests for effective permission resolution.
"""
from apps.rbac.catalog import ALL_PERMISSIONS, ROLE_PERMISSIONS
from apps.rbac.services import EffectivePermissionResolver


class TestEffectivePermissionResolver:
    """Test role defaults combined with per-user overrides."""

    def setup_method(self):
        self.resolver = EffectivePermissionResolver()

    def test_no_overrides_returns_role_defaults(self):
        assert self.resolver.resolve('employee') == ROLE_PERMISSIONS['employee']
        assert self.resolver.resolve('employee', None) == ROLE_PERMISSIONS['employee']
        assert self.resolver.resolve('employee', {}) == ROLE_PERMISSIONS['employee']

    def test_false_override_removes_default(self):
        effective = self.resolver.resolve('employee', {'invoice:create': False})

        assert 'invoice:create' not in effective
        assert 'invoice:read' in effective

    def test_true_override_grants_extra(self):
        effective = self.resolver.resolve('employee', {'party:create': True})

        assert 'party:create' in effective
        assert effective == ROLE_PERMISSIONS['employee'] | {'party:create'}

    def test_true_override_on_default_is_noop(self):
        effective = self.resolver.resolve('employee', {'invoice:read': True})
        assert effective == ROLE_PERMISSIONS['employee']

    def test_false_override_on_missing_permission_is_noop(self):
        effective = self.resolver.resolve('viewer', {'invoice:delete': False})
        assert effective == ROLE_PERMISSIONS['viewer']

    def test_mixed_overrides(self):
        """Test a deny and a grant together."""
        overrides = {'invoice:create': False, 'party:create': True}
        effective = self.resolver.resolve('employee', overrides)

        assert 'invoice:create' not in effective
        assert 'party:create' in effective
        assert effective == (ROLE_PERMISSIONS['employee'] - {'invoice:create'}) | {'party:create'}

    def test_override_order_does_not_matter(self):
        forward = {'invoice:create': False, 'party:create': True, 'invoice:export': False}
        backward = dict(reversed(list(forward.items())))

        assert self.resolver.resolve('employee', forward) == self.resolver.resolve('employee', backward)

    def test_owner_overrides_are_applied_by_resolver(self):
        """Owner short-circuit lives in the enforcer, not the resolver."""
        effective = self.resolver.resolve('owner', {'business:delete': False})
        assert 'business:delete' not in effective

    def test_unknown_role_is_empty(self):
        assert self.resolver.resolve('janitor') == frozenset()

    def test_unknown_role_with_grant(self):
        assert self.resolver.resolve('janitor', {'invoice:read': True}) == frozenset({'invoice:read'})

    def test_non_boolean_values_are_ignored(self):
        effective = self.resolver.resolve('employee', {'invoice:create': 'no', 'party:create': 1})
        assert effective == ROLE_PERMISSIONS['employee']

    def test_result_is_frozen(self):
        assert isinstance(self.resolver.resolve('viewer'), frozenset)

    def test_resolve_does_not_mutate_role_table(self):
        self.resolver.resolve('admin', {'user:view': False})
        assert 'user:view' in ROLE_PERMISSIONS['admin']

    def test_injected_role_table(self):
        resolver = EffectivePermissionResolver({'clerk': frozenset({'invoice:read'})})

        assert resolver.resolve('clerk') == frozenset({'invoice:read'})
        assert resolver.resolve('owner') == frozenset()

    def test_resolved_sets_stay_within_catalog_without_grants(self):
        for role in ROLE_PERMISSIONS:
            assert self.resolver.resolve(role) <= ALL_PERMISSIONS
