"""
DRF permission classes and decorators for business permission enforcement.

This module provides:
- HasBusinessPermission: DRF permission class that enforces a declared permission
- @requires_permission: Decorator to declare the permission a view or handler needs
- @requires_operation: Decorator to declare a registered operation instead
"""
import logging

from rest_framework.permissions import BasePermission

from apps.core.exceptions import Forbidden

logger = logging.getLogger(__name__)


def _declared(view, request, attr):
    """Handler-level declaration wins over a class-level one."""
    handler = getattr(view, (request.method or '').lower(), None)
    value = getattr(handler, attr, None)
    if value is None:
        value = getattr(view, attr, None)
    return value


class HasBusinessPermission(BasePermission):
    """
    DRF permission class that enforces business permissions on API endpoints.

    This permission class:
    1. Reads the requirement declared on the handler or view
       (``required_operation`` or ``required_permission``)
    2. Checks it against ``request.business_context`` (set by
       BusinessContextMiddleware) through the AuthorizationEnforcer
    3. Refuses requests whose path business differs from the context business
       (superadmins excepted)
    4. Raises Forbidden with the denial reason, so the error body names only
       the missing permission

    Usage in views:
        class InvoiceView(APIView):
            permission_classes = [HasBusinessPermission]
            required_permission = Permission.INVOICE_READ

    Or with decorators:
        class MemberListView(APIView):
            permission_classes = [HasBusinessPermission]

            @requires_permission(Permission.USER_VIEW)
            def get(self, request, business_id):
                pass
    """

    message = 'Permission denied'

    def has_permission(self, request, view):
        from apps.rbac.operations import registry
        from apps.rbac.services import enforcer

        ctx = getattr(request, 'business_context', None)
        operation = _declared(view, request, 'required_operation')
        required = _declared(view, request, 'required_permission')

        if not operation and not required:
            return True

        if ctx is not None and not ctx.is_superadmin:
            path_business_id = view.kwargs.get('business_id') if hasattr(view, 'kwargs') else None
            if path_business_id and str(path_business_id) != ctx.business_id:
                logger.warning(
                    "Business context does not match path business",
                    extra={
                        'context_business_id': ctx.business_id,
                        'path_business_id': str(path_business_id),
                        'view': view.__class__.__name__,
                        'request_id': getattr(request, 'request_id', None),
                    }
                )
                raise Forbidden("Business context does not match the requested business")

        if operation:
            decision = registry.check(operation, ctx, request=request)
        else:
            decision = enforcer.check(required, ctx, request=request)

        if decision.allowed:
            logger.debug(
                "Permission granted",
                extra={
                    'required_permission': decision.required,
                    'view': view.__class__.__name__,
                }
            )
            return True

        self.message = decision.reason
        raise Forbidden(
            decision.reason,
            details={'required_permission': decision.required} if decision.required else None,
        )


def requires_permission(permission):
    """
    Decorator to declare the permission a view class or handler requires.

    Sets ``required_permission``, which HasBusinessPermission checks before
    the handler runs.

    Usage:
        @requires_permission(Permission.AUDIT_VIEW)
        class AuditLogListView(APIView):
            permission_classes = [HasBusinessPermission]

    Or on individual handlers:
        class MemberListView(APIView):
            @requires_permission(Permission.USER_VIEW)
            def get(self, request, business_id):
                pass
    """
    def decorator(view_or_method):
        view_or_method.required_permission = str(permission)
        return view_or_method

    return decorator


def requires_operation(name):
    """
    Decorator to declare a registered operation on a view class or handler.

    The operation's permission comes from apps.rbac.operations.registry;
    names missing from the registry are denied.
    """
    def decorator(view_or_method):
        view_or_method.required_operation = name
        return view_or_method

    return decorator
