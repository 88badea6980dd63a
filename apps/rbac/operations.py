"""
Operation registry.

Domain services declare each protected operation once, with the single
permission it requires, and authorize through the registry:

    registry.register('invoice.create', Permission.INVOICE_CREATE)
    registry.authorize('invoice.create', request.business_context)

Unknown operation names are denied.
"""
from dataclasses import dataclass
from typing import Dict, Optional

from apps.core.exceptions import Forbidden
from apps.core.logging import SecurityLogger
from apps.rbac.catalog import ALL_PERMISSIONS, Permission
from apps.rbac.context import Decision
from apps.rbac.services import AuthorizationEnforcer, enforcer as default_enforcer


@dataclass(frozen=True)
class Operation:
    """A protected operation and the permission it requires."""
    name: str
    required_permission: str


class OperationRegistry:
    """Name -> Operation table checked through AuthorizationEnforcer."""

    def __init__(self, enforcer: Optional[AuthorizationEnforcer] = None):
        self.enforcer = enforcer or default_enforcer
        self._operations: Dict[str, Operation] = {}

    def register(self, name: str, permission) -> Operation:
        """
        Declare an operation.

        Raises:
            ValueError: Unknown permission, or the name is already
                registered with a different permission
        """
        permission = str(permission)
        if permission not in ALL_PERMISSIONS:
            raise ValueError(f"Unknown permission: {permission}")

        existing = self._operations.get(name)
        if existing is not None:
            if existing.required_permission != permission:
                raise ValueError(
                    f"Operation {name} already requires {existing.required_permission}"
                )
            return existing

        operation = Operation(name=name, required_permission=permission)
        self._operations[name] = operation
        return operation

    def get(self, name: str) -> Optional[Operation]:
        return self._operations.get(name)

    def __contains__(self, name):
        return name in self._operations

    def __iter__(self):
        return iter(self._operations.values())

    def check(self, name: str, ctx, request=None) -> Decision:
        operation = self._operations.get(name)
        if operation is None:
            reason = f"Unknown operation: {name}"
            SecurityLogger.log_permission_denied(
                user_id=getattr(ctx, 'user_id', None),
                business_id=getattr(ctx, 'business_id', None),
                required_permission=None,
                reason=reason,
                request_id=getattr(request, 'request_id', None) if request else None,
            )
            return Decision(allowed=False, reason=reason)
        return self.enforcer.check(operation.required_permission, ctx, request=request)

    def authorize(self, name: str, ctx, request=None) -> Decision:
        """
        Authorize an operation for a resolved context.

        Raises:
            Forbidden: If the operation is unknown or not permitted
        """
        decision = self.check(name, ctx, request=request)
        if not decision.allowed:
            raise Forbidden(
                decision.reason,
                details={'operation': name, 'required_permission': decision.required},
            )
        return decision


registry = OperationRegistry()

# Membership administration, as exposed by the HTTP API
registry.register('business.users.view', Permission.USER_VIEW)
registry.register('business.users.assign', Permission.USER_ASSIGN)
registry.register('business.users.update_role', Permission.USER_UPDATE_ROLE)
registry.register('business.users.update_permissions', Permission.USER_UPDATE_ROLE)
registry.register('business.users.remove', Permission.USER_REMOVE)
registry.register('business.audit_logs.view', Permission.AUDIT_VIEW)
