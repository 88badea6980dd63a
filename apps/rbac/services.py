"""
RBAC services.

Implements:
- EffectivePermissionResolver: role defaults + per-user overrides
- BusinessContextService: per-request (business, user) -> BusinessContext
- AuthorizationEnforcer: fail-closed permission checks
- AuditService: synchronous, append-only audit recording and queries
- MembershipService: assign, role/permission updates, removal, summaries
"""
import logging
import uuid
from typing import Any, Dict, FrozenSet, List, Mapping, Optional

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import Count
from django.utils import timezone

from apps.businesses.models import Business
from apps.core.exceptions import (
    AccessCoreException,
    BusinessNotFound,
    Forbidden,
    InvalidPermissionOverride,
    InvalidRole,
    MembershipConflict,
    MembershipNotFound,
    MissingBusinessId,
    NoMembership,
    OwnerRemovalNotAllowed,
    Unauthenticated,
)
from apps.core.logging import SecurityLogger
from apps.rbac.catalog import (
    ALL_PERMISSIONS,
    ASSIGNABLE_ROLES,
    ROLE_PERMISSIONS,
    Role,
)
from apps.rbac.context import BusinessContext, Decision, Identity
from apps.rbac.models import AuditLog, Membership

logger = logging.getLogger(__name__)


class EffectivePermissionResolver:
    """
    Compute the effective permission set for a role and its overrides.

    Pure: no I/O, no caching. The role table is injected so callers and
    tests can supply their own.
    """

    def __init__(self, role_permissions: Mapping[str, FrozenSet[str]] = ROLE_PERMISSIONS):
        self.role_permissions = role_permissions

    def role_defaults(self, role) -> FrozenSet[str]:
        """Default permissions of a role; unknown roles get an empty set."""
        return frozenset(self.role_permissions.get(str(role), frozenset()))

    def resolve(self, role, overrides: Optional[Mapping[str, bool]] = None) -> FrozenSet[str]:
        """
        Resolve effective permissions.

        Every ``False`` override removes a permission and every ``True``
        override adds one. Each key carries one value, so the order the
        overrides are applied in does not matter.

        Args:
            role: Role name or Role member
            overrides: Optional {permission: bool} map; null or empty means
                role defaults

        Returns:
            frozenset of permission strings
        """
        effective = set(self.role_defaults(role))
        if not overrides:
            return frozenset(effective)

        for permission, allowed in overrides.items():
            if allowed is True:
                effective.add(str(permission))
            elif allowed is False:
                effective.discard(str(permission))

        return frozenset(effective)


default_resolver = EffectivePermissionResolver()


def _normalise_business_id(business_id) -> str:
    try:
        return str(uuid.UUID(str(business_id)))
    except ValueError:
        return str(business_id)


class BusinessContextService:
    """
    Resolve the authorization context for a (user, business) pair.

    Runs once per request from BusinessContextMiddleware. Every failure is
    an AccessCoreException; unexpected errors are logged and mapped to
    Forbidden so resolution always fails closed.
    """

    def __init__(self, resolver: Optional[EffectivePermissionResolver] = None,
                 legacy_owner_fallback: Optional[bool] = None):
        self.resolver = resolver or default_resolver
        self._legacy_owner_fallback = legacy_owner_fallback

    @property
    def legacy_owner_fallback(self) -> bool:
        if self._legacy_owner_fallback is not None:
            return self._legacy_owner_fallback
        return bool(getattr(settings, 'RBAC_LEGACY_OWNER_FALLBACK', False))

    def resolve(self, identity: Optional[Identity], business_id: Optional[str],
                source: Optional[str] = None, request_id: Optional[str] = None) -> BusinessContext:
        """
        Build the BusinessContext for one request.

        Raises:
            Unauthenticated: No verified identity
            MissingBusinessId: No business id in the request
            Forbidden: Unknown business, no usable membership, or an
                internal failure during resolution
        """
        if identity is None or not identity.user_id:
            raise Unauthenticated("Authentication required")

        if not business_id:
            raise MissingBusinessId("Business ID is required")

        business_id = _normalise_business_id(business_id)

        if identity.is_superadmin:
            return BusinessContext(
                business_id=business_id,
                user_id=identity.user_id,
                role=Role.SUPERADMIN.value,
                is_owner=False,
                is_superadmin=True,
                permissions=ALL_PERMISSIONS,
                source=source,
            )

        try:
            return self._resolve_member(identity, business_id, source, request_id)
        except AccessCoreException:
            raise
        except Exception as exc:
            SecurityLogger.log_context_resolution_error(
                user_id=identity.user_id,
                business_id=business_id,
                error=str(exc),
                request_id=request_id,
            )
            logger.error(
                "Business context resolution failed",
                extra={'business_id': business_id, 'request_id': request_id},
                exc_info=True,
            )
            raise Forbidden("Access denied") from exc

    def _resolve_member(self, identity, business_id, source, request_id):
        user_id = identity.user_id

        business = Business.objects.by_id(business_id)
        if business is None:
            raise Forbidden("Business not found or access denied")

        if business.is_owned_by(user_id):
            return BusinessContext(
                business_id=str(business.id),
                user_id=user_id,
                role=Role.OWNER.value,
                is_owner=True,
                permissions=self.resolver.resolve(Role.OWNER, None),
                source=source,
            )

        membership = Membership.objects.get_membership(business.id, user_id)

        if membership is not None and membership.status == Membership.STATUS_ACTIVE:
            return BusinessContext(
                business_id=str(business.id),
                user_id=user_id,
                role=membership.role,
                is_owner=False,
                permissions=self.resolver.resolve(membership.role, membership.custom_permissions),
                membership_id=str(membership.id),
                source=source,
            )

        if membership is not None and membership.status in (
            Membership.STATUS_INVITED, Membership.STATUS_SUSPENDED
        ):
            raise Forbidden(f"Membership is {membership.status}")

        # No membership, or a removed one
        if self.legacy_owner_fallback:
            SecurityLogger.log_legacy_fallback(
                user_id=user_id,
                business_id=business.id,
                request_id=request_id,
            )
            return BusinessContext(
                business_id=str(business.id),
                user_id=user_id,
                role=Role.OWNER.value,
                is_owner=False,
                permissions=self.resolver.resolve(Role.OWNER, None),
                source=source,
            )

        raise NoMembership("You do not have access to this business")


class AuthorizationEnforcer:
    """
    Decide whether a resolved context may perform an operation.

    Order: no requirement allows; a missing context denies; superadmin and
    owner short-circuit to allow; otherwise the permission must be in the
    effective set. Any error while deciding denies.
    """

    def check(self, required, ctx: Optional[BusinessContext], request=None) -> Decision:
        if not required:
            return Decision(allowed=True)

        required = str(required)
        try:
            decision = self._evaluate(required, ctx)
        except Exception:
            logger.error(
                "Authorization check failed",
                extra={'required_permission': required},
                exc_info=True,
            )
            decision = Decision(
                allowed=False,
                required=required,
                reason="Authorization check failed",
            )

        if not decision.allowed:
            self._record_denial(decision, ctx, request)

        return decision

    def authorize(self, required, ctx: Optional[BusinessContext], request=None) -> Decision:
        """
        Like check(), but raises Forbidden on deny.
        """
        decision = self.check(required, ctx, request=request)
        if not decision.allowed:
            raise Forbidden(
                decision.reason,
                details={'required_permission': decision.required},
            )
        return decision

    @staticmethod
    def _evaluate(required, ctx):
        if ctx is None:
            return Decision(False, required, "Business context not resolved")
        if ctx.is_superadmin:
            return Decision(True, required)
        if ctx.is_owner:
            return Decision(True, required)
        if required in ctx.permissions:
            return Decision(True, required)
        return Decision(False, required, f"You do not have permission: {required}")

    @staticmethod
    def _record_denial(decision, ctx, request):
        request_id = getattr(request, 'request_id', None) if request else None
        SecurityLogger.log_permission_denied(
            user_id=ctx.user_id if ctx else None,
            business_id=ctx.business_id if ctx else None,
            required_permission=decision.required,
            reason=decision.reason,
            request_id=request_id,
        )

        if ctx is not None and getattr(settings, 'RBAC_AUDIT_DENIALS', False):
            AuditService.log_access_denied(
                business_id=ctx.business_id,
                user_id=ctx.user_id,
                required_permission=decision.required,
                reason=decision.reason,
                request=request,
            )


enforcer = AuthorizationEnforcer()


class AuditService:
    """
    Append-only audit recording.

    Writes are synchronous and errors propagate, so a failed audit write
    rolls back the surrounding transaction.
    """

    DEFAULT_LIMIT = 100

    @classmethod
    def record(cls, action, business_id, target_user_id, actor_user_id=None,
               old_value=None, new_value=None, resource='business_user',
               resource_id=None, notes='', request=None) -> AuditLog:
        """
        Write one audit row.

        Args:
            action: One of the AuditLog.ACTION_* values
            business_id: Business the change belongs to
            target_user_id: User affected by the change
            actor_user_id: User who made the change (None for system)
            old_value: State before
            new_value: State after
            resource: Resource type
            resource_id: Resource identifier
            notes: Free-form context
            request: Django request (for IP, user agent, request ID)

        Raises:
            ValueError: If action, business_id or target_user_id is missing
        """
        if not action:
            raise ValueError("Audit action is required")
        if not business_id:
            raise ValueError("Audit business_id is required")
        if not target_user_id:
            raise ValueError("Audit target_user_id is required")

        if action == AuditLog.ACTION_PERMISSION_UPDATE:
            old_value = cls._normalise_permissions(old_value)
            new_value = cls._normalise_permissions(new_value)

        log_data = {
            'action': action,
            'business_id': business_id,
            'actor_user_id': str(actor_user_id) if actor_user_id else None,
            'target_user_id': str(target_user_id),
            'resource': resource,
            'resource_id': str(resource_id) if resource_id else None,
            'old_value': old_value,
            'new_value': new_value,
            'notes': notes or '',
        }

        if request is not None:
            log_data['ip_address'] = cls._get_client_ip(request)
            log_data['user_agent'] = request.META.get('HTTP_USER_AGENT', '')
            log_data['request_id'] = getattr(request, 'request_id', None)

        return AuditLog.objects.create(**log_data)

    @staticmethod
    def _normalise_permissions(value):
        if value is None:
            return {'permissions': {}}
        if isinstance(value, dict) and 'permissions' in value:
            return {'permissions': dict(value['permissions'] or {})}
        return {'permissions': dict(value)}

    @staticmethod
    def _get_client_ip(request):
        """Extract client IP from request."""
        x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
        if x_forwarded_for:
            return x_forwarded_for.split(',')[0].strip()
        return request.META.get('REMOTE_ADDR')

    @classmethod
    def log_role_change(cls, business_id, user_id, old_role, new_role, actor_user_id, request=None):
        return cls.record(
            AuditLog.ACTION_ROLE_UPDATE,
            business_id=business_id,
            target_user_id=user_id,
            actor_user_id=actor_user_id,
            old_value={'role': old_role},
            new_value={'role': new_role},
            notes=f"Role changed from {old_role} to {new_role} for user {user_id}",
            request=request,
        )

    @classmethod
    def log_permission_change(cls, business_id, user_id, old_permissions, new_permissions,
                              actor_user_id, request=None):
        return cls.record(
            AuditLog.ACTION_PERMISSION_UPDATE,
            business_id=business_id,
            target_user_id=user_id,
            actor_user_id=actor_user_id,
            old_value={'permissions': old_permissions},
            new_value={'permissions': new_permissions},
            notes=f"Permissions updated for user {user_id} in business {business_id}",
            request=request,
        )

    @classmethod
    def log_user_assignment(cls, business_id, user_id, role, actor_user_id,
                            old_value=None, request=None):
        return cls.record(
            AuditLog.ACTION_USER_ASSIGN,
            business_id=business_id,
            target_user_id=user_id,
            actor_user_id=actor_user_id,
            old_value=old_value,
            new_value={'role': role, 'status': Membership.STATUS_ACTIVE},
            notes=f"User {user_id} assigned to business {business_id} with role {role}",
            request=request,
        )

    @classmethod
    def log_user_removal(cls, business_id, user_id, actor_user_id, old_value=None, request=None):
        return cls.record(
            AuditLog.ACTION_USER_REMOVE,
            business_id=business_id,
            target_user_id=user_id,
            actor_user_id=actor_user_id,
            old_value=old_value,
            new_value={'status': Membership.STATUS_REMOVED},
            notes=f"User {user_id} removed from business {business_id}",
            request=request,
        )

    @classmethod
    def log_access_denied(cls, business_id, user_id, required_permission, reason=None, request=None):
        return cls.record(
            AuditLog.ACTION_ACCESS_DENIED,
            business_id=business_id,
            target_user_id=user_id,
            actor_user_id=user_id,
            resource='permission',
            resource_id=required_permission,
            new_value={'required_permission': required_permission},
            notes=reason or '',
            request=request,
        )

    @classmethod
    def query(cls, business_id, action=None, user_id=None, target_user_id=None,
              start_date=None, end_date=None, limit=DEFAULT_LIMIT, offset=0) -> Dict[str, Any]:
        """
        Query audit logs of one business.

        Ordered newest first (``created_at`` desc, then ``id`` desc).
        ``total`` counts the filtered set before paging.

        Returns:
            {'total': int, 'logs': [AuditLog, ...]}
        """
        qs = AuditLog.objects.for_business(business_id)

        if action:
            qs = qs.filter(action=action)
        if user_id:
            qs = qs.filter(actor_user_id=str(user_id))
        if target_user_id:
            qs = qs.filter(target_user_id=str(target_user_id))
        if start_date:
            qs = qs.filter(created_at__gte=start_date)
        if end_date:
            qs = qs.filter(created_at__lte=end_date)

        max_limit = getattr(settings, 'RBAC_AUDIT_MAX_LIMIT', 500)
        limit = max(0, min(int(limit), max_limit))
        offset = max(0, int(offset))

        total = qs.count()
        logs = list(qs.order_by('-created_at', '-id')[offset:offset + limit])

        return {'total': total, 'logs': logs}

    @classmethod
    def for_user(cls, user_id, business_id=None, action=None,
                 start_date=None, end_date=None, limit=DEFAULT_LIMIT) -> Dict[str, Any]:
        """
        Audit trail of one user (as the affected user), across businesses.

        Filters apply before ``limit``; ``total`` counts the filtered set.
        """
        qs = AuditLog.objects.for_target_user(user_id)

        if business_id:
            qs = qs.filter(business_id=business_id)
        if action:
            qs = qs.filter(action=action)
        if start_date:
            qs = qs.filter(created_at__gte=start_date)
        if end_date:
            qs = qs.filter(created_at__lte=end_date)

        max_limit = getattr(settings, 'RBAC_AUDIT_MAX_LIMIT', 500)
        limit = max(0, min(int(limit), max_limit))

        total = qs.count()
        logs = list(qs.order_by('-created_at', '-id')[:limit])

        return {'total': total, 'logs': logs}

    @classmethod
    def statistics(cls, business_id) -> Dict[str, Any]:
        """Per-action counts for one business."""
        rows = (
            AuditLog.objects.for_business(business_id)
            .values('action')
            .annotate(count=Count('id'))
            .order_by('action')
        )
        by_action = {row['action']: row['count'] for row in rows}
        return {'total': sum(by_action.values()), 'byAction': by_action}


class MembershipService:
    """
    Membership mutations and read models.

    Each mutation and its audit rows run in one transaction with the
    membership row locked; if an audit write fails the change rolls back.
    """

    resolver = default_resolver

    @staticmethod
    def _get_business(business_id) -> Business:
        business = Business.objects.by_id(business_id)
        if business is None:
            raise BusinessNotFound("Business not found")
        return business

    @staticmethod
    def _validate_role(role) -> str:
        role = str(role) if role is not None else ''
        if role not in ASSIGNABLE_ROLES:
            raise InvalidRole(
                f"Invalid role: {role or '<empty>'}",
                details={'allowed_roles': sorted(ASSIGNABLE_ROLES)},
            )
        return role

    @staticmethod
    def validate_overrides(overrides) -> Optional[Dict[str, bool]]:
        """
        Validate a custom permission map.

        Keys must be catalog permissions and values booleans. An empty map
        is normalised to None (role defaults).

        Raises:
            InvalidPermissionOverride: On unknown keys or non-boolean values
        """
        if overrides is None:
            return None
        if not isinstance(overrides, dict):
            raise InvalidPermissionOverride("Permissions must be an object of {permission: boolean}")

        unknown = sorted(key for key in overrides if key not in ALL_PERMISSIONS)
        if unknown:
            raise InvalidPermissionOverride(
                "Unknown permissions",
                details={'unknown_permissions': unknown},
            )

        non_boolean = sorted(key for key, value in overrides.items() if not isinstance(value, bool))
        if non_boolean:
            raise InvalidPermissionOverride(
                "Permission values must be booleans",
                details={'invalid_values': non_boolean},
            )

        return dict(overrides) or None

    @staticmethod
    def _lock_membership(business, user_id, active_only=True) -> Membership:
        qs = Membership.objects.select_for_update().filter(business=business, user_id=str(user_id))
        if active_only:
            qs = qs.filter(status=Membership.STATUS_ACTIVE)
        else:
            qs = qs.exclude(status=Membership.STATUS_REMOVED)
        membership = qs.first()
        if membership is None:
            raise MembershipNotFound("User not assigned to business")
        return membership

    @classmethod
    def assign_user(cls, business_id, user_id, role, actor_user_id, request=None) -> Membership:
        """
        Assign a user to a business, or reassign an existing member.

        New memberships start active with role defaults. Existing rows are
        reactivated if removed, get the new role, and have their overrides
        reset.

        Raises:
            BusinessNotFound: Unknown business
            InvalidRole: Role is unknown or superadmin
            MembershipConflict: A concurrent request created the membership
        """
        role = cls._validate_role(role)
        if not user_id:
            raise ValueError("user_id is required")
        user_id = str(user_id)

        with transaction.atomic():
            business = cls._get_business(business_id)
            membership = (
                Membership.objects.select_for_update()
                .filter(business=business, user_id=user_id)
                .first()
            )
            now = timezone.now()

            if membership is None:
                try:
                    with transaction.atomic():
                        membership = Membership.objects.create(
                            business=business,
                            user_id=user_id,
                            role=role,
                            status=Membership.STATUS_ACTIVE,
                            custom_permissions=None,
                            invited_by=str(actor_user_id) if actor_user_id else None,
                            invited_at=now,
                            joined_at=now,
                        )
                except IntegrityError as exc:
                    logger.warning(
                        "Concurrent membership assignment",
                        extra={'business_id': business.id, 'target_user_id': user_id}
                    )
                    raise MembershipConflict("User is already being assigned to this business") from exc

                AuditService.log_user_assignment(
                    business.id, user_id, role, actor_user_id, request=request
                )
                logger.info(
                    "Assigned user to business",
                    extra={'business_id': business.id, 'target_user_id': user_id, 'role': role}
                )
                return membership

            old_role = membership.role
            old_status = membership.status
            old_permissions = membership.custom_permissions

            membership.role = role
            membership.custom_permissions = None
            update_fields = ['role', 'custom_permissions', 'updated_at']

            if old_status != Membership.STATUS_ACTIVE:
                membership.status = Membership.STATUS_ACTIVE
                membership.joined_at = now
                membership.removed_at = None
                membership.removed_by = None
                update_fields += ['status', 'joined_at', 'removed_at', 'removed_by']

            membership.save(update_fields=update_fields)

            if old_role != role:
                AuditService.log_role_change(
                    business.id, user_id, old_role, role, actor_user_id, request=request
                )
            if old_permissions:
                AuditService.log_permission_change(
                    business.id, user_id, old_permissions, None, actor_user_id, request=request
                )
            AuditService.log_user_assignment(
                business.id, user_id, role, actor_user_id,
                old_value={'role': old_role, 'status': old_status},
                request=request,
            )

        logger.info(
            "Reassigned user to business",
            extra={'business_id': business.id, 'target_user_id': user_id, 'role': role}
        )
        return membership

    @classmethod
    def update_role(cls, business_id, user_id, role, actor_user_id, request=None) -> Membership:
        """
        Change an active member's role. Overrides are kept.

        Emits role:update only when the role actually changes.
        """
        role = cls._validate_role(role)

        with transaction.atomic():
            business = cls._get_business(business_id)
            membership = cls._lock_membership(business, user_id)

            old_role = membership.role
            if old_role == role:
                return membership

            membership.role = role
            membership.save(update_fields=['role', 'updated_at'])
            AuditService.log_role_change(
                business.id, membership.user_id, old_role, role, actor_user_id, request=request
            )

        return membership

    @classmethod
    def update_permissions(cls, business_id, user_id, overrides, actor_user_id, request=None) -> Membership:
        """
        Replace an active member's custom permission map.

        ``{}`` and None both reset to role defaults. One permission:update
        row is written with the full old and new maps.

        Raises:
            InvalidPermissionOverride: Unknown keys or non-boolean values
            MembershipNotFound: No active membership
        """
        overrides = cls.validate_overrides(overrides)

        with transaction.atomic():
            business = cls._get_business(business_id)
            membership = cls._lock_membership(business, user_id)

            old_permissions = membership.custom_permissions
            membership.custom_permissions = overrides
            membership.save(update_fields=['custom_permissions', 'updated_at'])

            AuditService.log_permission_change(
                business.id, membership.user_id, old_permissions, overrides,
                actor_user_id, request=request
            )

        return membership

    @classmethod
    def reset_permissions(cls, business_id, user_id, actor_user_id, request=None) -> Membership:
        """Reset an active member to role defaults."""
        return cls.update_permissions(business_id, user_id, None, actor_user_id, request=request)

    @classmethod
    def remove_user(cls, business_id, user_id, actor_user_id, request=None) -> Membership:
        """
        Soft-remove a member.

        Raises:
            OwnerRemovalNotAllowed: Target is the business owner
            MembershipNotFound: No non-removed membership
        """
        with transaction.atomic():
            business = cls._get_business(business_id)
            if business.is_owned_by(user_id):
                raise OwnerRemovalNotAllowed("Cannot remove business owner")

            membership = cls._lock_membership(business, user_id, active_only=False)
            old_status = membership.status

            membership.status = Membership.STATUS_REMOVED
            membership.removed_at = timezone.now()
            membership.removed_by = str(actor_user_id) if actor_user_id else None
            membership.save(update_fields=['status', 'removed_at', 'removed_by', 'updated_at'])

            AuditService.log_user_removal(
                business.id, membership.user_id, actor_user_id,
                old_value={'role': membership.role, 'status': old_status},
                request=request,
            )

        logger.info(
            "Removed user from business",
            extra={'business_id': business.id, 'target_user_id': membership.user_id}
        )
        return membership

    @classmethod
    def get_member(cls, business_id, user_id) -> Dict[str, Any]:
        """
        Role of a user in a business.

        The business owner is reported even without a membership row.

        Returns:
            {'role', 'is_owner', 'membership'}
        """
        business = cls._get_business(business_id)
        if business.is_owned_by(user_id):
            return {
                'role': Role.OWNER.value,
                'is_owner': True,
                'membership': Membership.objects.get_membership(business.id, user_id),
            }

        membership = Membership.objects.get_membership(business.id, user_id)
        if membership is None or membership.status != Membership.STATUS_ACTIVE:
            raise MembershipNotFound("User not assigned to business")

        return {'role': membership.role, 'is_owner': False, 'membership': membership}

    @classmethod
    def permission_summary(cls, business_id, user_id) -> Dict[str, Any]:
        """
        Describe how a member's effective permissions are derived.
        """
        member = cls.get_member(business_id, user_id)
        role = member['role']
        membership = member['membership']
        overrides = None
        if membership is not None and not member['is_owner']:
            overrides = membership.custom_permissions or None

        role_permissions = cls.resolver.role_defaults(role)
        effective = cls.resolver.resolve(role, overrides)
        restricted = sorted(key for key, allowed in (overrides or {}).items() if allowed is False)

        return {
            'userId': str(user_id),
            'businessId': str(business_id),
            'role': role,
            'isOwner': member['is_owner'],
            'permissionMode': 'custom' if overrides else 'role_defaults',
            'rolePermissions': sorted(role_permissions),
            'customPermissions': overrides,
            'effectivePermissions': sorted(effective),
            'permissionSummary': {
                'total': len(role_permissions),
                'allowed': len(effective),
                'restricted': len(restricted),
            },
        }

    @classmethod
    def list_members(cls, business_id) -> List[Membership]:
        """Active and invited members of a business."""
        business = cls._get_business(business_id)
        return list(
            Membership.objects.filter(
                business=business,
                status__in=[Membership.STATUS_ACTIVE, Membership.STATUS_INVITED],
            ).order_by('created_at')
        )

    @classmethod
    def user_businesses(cls, user_id) -> List[Dict[str, Any]]:
        """
        Businesses a user can reach: owned ones plus active memberships.

        When a user both owns and is a member of a business, the owner
        entry wins.
        """
        user_id = str(user_id)
        entries = {}

        for membership in Membership.objects.for_user(user_id).select_related('business'):
            entries[membership.business_id] = {
                'id': str(membership.business_id),
                'name': membership.business.name,
                'role': membership.role,
                'isOwner': False,
            }

        for business in Business.objects.owned_by(user_id):
            entries[business.id] = {
                'id': str(business.id),
                'name': business.name,
                'role': Role.OWNER.value,
                'isOwner': True,
            }

        return sorted(entries.values(), key=lambda entry: entry['name'])
