"""
Role and permission catalog.

Defines:
- Role: flat set of membership roles (superadmin comes from the identity)
- Permission: ``resource:action`` capabilities
- ROLE_PERMISSIONS: read-only role -> default permission set
- permission_catalog(): grouped metadata for UI rendering

ROLE_PERMISSIONS is authoritative for enforcement. The catalog metadata
is descriptive only.
"""
from enum import Enum
from types import MappingProxyType


class Role(str, Enum):
    SUPERADMIN = 'superadmin'
    OWNER = 'owner'
    ADMIN = 'admin'
    EMPLOYEE = 'employee'
    ACCOUNTANT = 'accountant'
    SALESMAN = 'salesman'
    VIEWER = 'viewer'

    def __str__(self):
        return self.value


class Permission(str, Enum):
    # Business Management
    BUSINESS_VIEW = 'business:view'
    BUSINESS_UPDATE = 'business:update'
    BUSINESS_DELETE = 'business:delete'
    BUSINESS_SETTINGS = 'business:settings'

    # User Management
    USER_INVITE = 'user:invite'
    USER_ASSIGN = 'user:assign'
    USER_REMOVE = 'user:remove'
    USER_UPDATE_ROLE = 'user:update_role'
    USER_VIEW = 'user:view'

    # Invoices
    INVOICE_CREATE = 'invoice:create'
    INVOICE_READ = 'invoice:read'
    INVOICE_UPDATE = 'invoice:update'
    INVOICE_DELETE = 'invoice:delete'
    INVOICE_CANCEL = 'invoice:cancel'
    INVOICE_EXPORT = 'invoice:export'

    # Parties
    PARTY_CREATE = 'party:create'
    PARTY_READ = 'party:read'
    PARTY_UPDATE = 'party:update'
    PARTY_DELETE = 'party:delete'

    # Inventory
    INVENTORY_CREATE = 'inventory:create'
    INVENTORY_READ = 'inventory:read'
    INVENTORY_UPDATE = 'inventory:update'
    INVENTORY_DELETE = 'inventory:delete'
    INVENTORY_ADJUST = 'inventory:adjust'

    # Payments
    PAYMENT_CREATE = 'payment:create'
    PAYMENT_READ = 'payment:read'
    PAYMENT_UPDATE = 'payment:update'
    PAYMENT_DELETE = 'payment:delete'

    # Reports
    REPORT_VIEW = 'report:view'
    REPORT_GST = 'report:gst'
    REPORT_EXPORT = 'report:export'
    REPORT_FINANCIAL = 'report:financial'

    # Audit Logs
    AUDIT_VIEW = 'audit:view'

    def __str__(self):
        return self.value

    @property
    def category(self):
        return self.value.split(':', 1)[0]

    @property
    def action(self):
        return self.value.split(':', 1)[1]


ALL_PERMISSIONS = frozenset(p.value for p in Permission)

# Roles that may be stored on a membership
ASSIGNABLE_ROLES = frozenset(r.value for r in Role if r is not Role.SUPERADMIN)


def _perms(*permissions):
    return frozenset(p.value for p in permissions)


_INVOICE_WORK = (
    Permission.INVOICE_CREATE,
    Permission.INVOICE_READ,
    Permission.INVOICE_UPDATE,
    Permission.INVOICE_EXPORT,
)

_PARTY_WORK = (
    Permission.PARTY_CREATE,
    Permission.PARTY_READ,
    Permission.PARTY_UPDATE,
)

_REPORTS = (
    Permission.REPORT_VIEW,
    Permission.REPORT_GST,
    Permission.REPORT_EXPORT,
    Permission.REPORT_FINANCIAL,
)


ROLE_PERMISSIONS = MappingProxyType({
    # =====================================================
    # SUPERADMIN / OWNER: full catalog
    # =====================================================
    Role.SUPERADMIN.value: ALL_PERMISSIONS,
    Role.OWNER.value: ALL_PERMISSIONS,

    # =====================================================
    # ADMIN: cannot edit or delete the business, cannot delete payments
    # =====================================================
    Role.ADMIN.value: ALL_PERMISSIONS - _perms(
        Permission.BUSINESS_UPDATE,
        Permission.BUSINESS_DELETE,
        Permission.PAYMENT_DELETE,
    ),

    # =====================================================
    # EMPLOYEE
    # =====================================================
    Role.EMPLOYEE.value: _perms(
        *_INVOICE_WORK,
        Permission.PARTY_READ,
        Permission.INVENTORY_READ,
        Permission.PAYMENT_READ,
    ),

    # =====================================================
    # ACCOUNTANT
    # =====================================================
    Role.ACCOUNTANT.value: _perms(
        *_INVOICE_WORK,
        *_PARTY_WORK,
        Permission.INVENTORY_READ,
        Permission.PAYMENT_CREATE,
        Permission.PAYMENT_READ,
        Permission.PAYMENT_UPDATE,
        *_REPORTS,
    ),

    # =====================================================
    # SALESMAN
    # =====================================================
    Role.SALESMAN.value: _perms(
        *_INVOICE_WORK,
        *_PARTY_WORK,
        Permission.INVENTORY_READ,
        Permission.PAYMENT_READ,
    ),

    # =====================================================
    # VIEWER: read-only
    # =====================================================
    Role.VIEWER.value: _perms(
        Permission.INVOICE_READ,
        Permission.INVOICE_EXPORT,
        Permission.PARTY_READ,
        Permission.INVENTORY_READ,
        Permission.PAYMENT_READ,
        Permission.REPORT_VIEW,
    ),
})


def role_defaults(role):
    """Default permission set for a role; unknown roles get an empty set."""
    return ROLE_PERMISSIONS.get(str(role), frozenset())


def default_roles_for(permission):
    """Roles whose default set includes ``permission``, in catalog order."""
    return [
        role.value for role in Role
        if str(permission) in ROLE_PERMISSIONS.get(role.value, frozenset())
    ]


def permission_catalog():
    """
    Permissions grouped by category, for UI rendering.

    Returns:
        List of ``{'key', 'name', 'permissions': [...]}`` where each permission
        carries ``key``, ``label``, ``description`` and ``defaultRoles``.
    """
    categories = {}
    for perm in Permission:
        category, action = perm.category, perm.action
        if category not in categories:
            categories[category] = {
                'key': category,
                'name': f"{category.capitalize()} Management",
                'permissions': [],
            }
        readable_action = action.replace('_', ' ')
        categories[category]['permissions'].append({
            'key': perm.value,
            'label': f"{readable_action.capitalize()} {category}",
            'description': f"Allow user to {readable_action} {category}",
            'defaultRoles': default_roles_for(perm),
        })
    return list(categories.values())
