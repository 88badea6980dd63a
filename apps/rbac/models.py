"""
RBAC models for per-business access control.

Implements:
- Membership: a user's role in one business, with optional per-user
  permission overrides (deviations from the role defaults only)
- AuditLog: append-only trail of membership and permission changes
"""
from django.db import models
from django.utils import timezone

from apps.core.models import BaseModel
from apps.rbac.catalog import Role


class MembershipManager(models.Manager):
    """Manager for Membership queries."""

    def for_business(self, business_id):
        """All non-removed memberships of a business."""
        return self.filter(business_id=business_id).exclude(
            status=Membership.STATUS_REMOVED
        )

    def for_user(self, user_id):
        """All active memberships of a user, across businesses."""
        return self.filter(user_id=str(user_id), status=Membership.STATUS_ACTIVE)

    def get_membership(self, business_id, user_id):
        """Membership row for (business, user) in any status, or None."""
        return self.filter(business_id=business_id, user_id=str(user_id)).first()

    def active(self):
        return self.filter(status=Membership.STATUS_ACTIVE)


class Membership(BaseModel):
    """
    Association between a user and a business.

    ``custom_permissions`` stores deviations from the role defaults only:
    ``False`` removes a default permission, ``True`` grants an extra one,
    and an absent key means "use the role default". Null means no overrides.

    Rows are never hard-deleted; removal sets ``status`` to ``removed``.
    """

    STATUS_ACTIVE = 'active'
    STATUS_INVITED = 'invited'
    STATUS_SUSPENDED = 'suspended'
    STATUS_REMOVED = 'removed'

    STATUS_CHOICES = [
        (STATUS_ACTIVE, 'Active'),
        (STATUS_INVITED, 'Invited'),
        (STATUS_SUSPENDED, 'Suspended'),
        (STATUS_REMOVED, 'Removed'),
    ]

    ROLE_CHOICES = [
        (role.value, role.value.capitalize())
        for role in Role if role is not Role.SUPERADMIN
    ]

    business = models.ForeignKey(
        'businesses.Business',
        on_delete=models.CASCADE,
        related_name='memberships',
        db_index=True,
        help_text="Business this membership belongs to"
    )
    user_id = models.CharField(
        max_length=64,
        db_index=True,
        help_text="User id from the identity provider"
    )
    role = models.CharField(
        max_length=20,
        choices=ROLE_CHOICES,
        default=Role.VIEWER.value,
        help_text="Role within the business"
    )
    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default=STATUS_ACTIVE,
        db_index=True,
        help_text="Membership status"
    )
    custom_permissions = models.JSONField(
        null=True,
        blank=True,
        help_text="Per-user overrides: {permission: bool}; null means role defaults"
    )

    # Invitation Tracking
    invited_by = models.CharField(
        max_length=64,
        null=True,
        blank=True,
        help_text="User id that added this member"
    )
    invited_at = models.DateTimeField(
        default=timezone.now,
        help_text="When the membership was created or re-created"
    )
    joined_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the membership became active"
    )

    # Removal Tracking
    removed_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the member was removed"
    )
    removed_by = models.CharField(
        max_length=64,
        null=True,
        blank=True,
        help_text="User id that removed this member"
    )

    objects = MembershipManager()

    class Meta:
        db_table = 'business_users'
        unique_together = [('business', 'user_id')]
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['business', 'user_id', 'status']),
            models.Index(fields=['user_id', 'status']),
        ]

    def __str__(self):
        return f"{self.user_id} @ {self.business_id} ({self.role}, {self.status})"

    @property
    def is_active(self):
        return self.status == self.STATUS_ACTIVE

    @property
    def has_overrides(self):
        return bool(self.custom_permissions)


class AppendOnlyError(Exception):
    """Raised when code tries to modify or delete an audit record."""


class AuditLogManager(models.Manager):
    """Manager for AuditLog queries with business scoping."""

    def for_business(self, business_id):
        return self.filter(business_id=business_id)

    def for_target_user(self, user_id):
        """Rows about one user, across businesses."""
        return self.filter(target_user_id=str(user_id))

    def by_action(self, action):
        return self.filter(action=action)

    def by_request(self, request_id):
        """Get all audit logs for a specific request."""
        return self.filter(request_id=request_id)


class AuditLog(BaseModel):
    """
    Append-only audit trail for membership and permission changes.

    Written in the same transaction as the change it describes. Rows are
    immutable once stored: ``save()`` on an existing row and ``delete()``
    raise AppendOnlyError.
    """

    ACTION_USER_ASSIGN = 'user:assign'
    ACTION_USER_REMOVE = 'user:remove'
    ACTION_ROLE_UPDATE = 'role:update'
    ACTION_PERMISSION_UPDATE = 'permission:update'
    ACTION_ACCESS_DENIED = 'access:denied'

    ACTION_CHOICES = [
        (ACTION_USER_ASSIGN, 'User assigned'),
        (ACTION_USER_REMOVE, 'User removed'),
        (ACTION_ROLE_UPDATE, 'Role updated'),
        (ACTION_PERMISSION_UPDATE, 'Permissions updated'),
        (ACTION_ACCESS_DENIED, 'Access denied'),
    ]

    business_id = models.UUIDField(
        db_index=True,
        help_text="Business this action belongs to"
    )
    actor_user_id = models.CharField(
        max_length=64,
        null=True,
        blank=True,
        db_index=True,
        help_text="User who performed the action (null for system actions)"
    )
    target_user_id = models.CharField(
        max_length=64,
        null=True,
        blank=True,
        db_index=True,
        help_text="User affected by the action"
    )

    # Action Details
    action = models.CharField(
        max_length=50,
        choices=ACTION_CHOICES,
        db_index=True,
        help_text="Action performed (e.g., 'role:update')"
    )
    resource = models.CharField(
        max_length=50,
        default='business_user',
        help_text="Type of resource changed"
    )
    resource_id = models.CharField(
        max_length=64,
        null=True,
        blank=True,
        help_text="ID of the changed resource"
    )

    # Change Tracking
    old_value = models.JSONField(
        null=True,
        blank=True,
        help_text="State before the change"
    )
    new_value = models.JSONField(
        null=True,
        blank=True,
        help_text="State after the change"
    )

    # Request Context
    ip_address = models.GenericIPAddressField(
        null=True,
        blank=True,
        help_text="IP address of the request"
    )
    user_agent = models.TextField(
        blank=True,
        default='',
        help_text="User agent string"
    )
    request_id = models.CharField(
        max_length=64,
        null=True,
        blank=True,
        db_index=True,
        help_text="Request ID for tracing"
    )
    notes = models.TextField(
        blank=True,
        default='',
        help_text="Free-form context"
    )

    objects = AuditLogManager()

    class Meta:
        db_table = 'audit_logs'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['business_id', 'created_at']),
            models.Index(fields=['business_id', 'action', 'created_at']),
            models.Index(fields=['target_user_id', 'created_at']),
        ]

    def __str__(self):
        actor = self.actor_user_id or 'System'
        return f"{self.business_id} - {actor} - {self.action}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise AppendOnlyError("Audit log entries cannot be modified")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise AppendOnlyError("Audit log entries cannot be deleted")
