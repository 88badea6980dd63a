"""
RBAC serializers for REST API endpoints.

Provides serialization for:
- Memberships and membership mutations
- Audit logs and audit log queries
"""
from rest_framework import serializers

from apps.rbac.models import AuditLog, Membership


class MembershipSerializer(serializers.ModelSerializer):
    """Serializer for Membership model."""

    business_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = Membership
        fields = [
            'id', 'business_id', 'user_id', 'role', 'status',
            'custom_permissions', 'invited_by', 'invited_at', 'joined_at',
            'removed_at', 'removed_by', 'created_at', 'updated_at',
        ]
        read_only_fields = fields


class AssignUserSerializer(serializers.Serializer):
    """Serializer for assigning a user to a business."""

    user_id = serializers.CharField(required=True, max_length=64)
    role = serializers.CharField(
        required=True,
        max_length=20,
        help_text="owner, admin, employee, accountant, salesman or viewer"
    )

    def validate_user_id(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("User id cannot be empty.")
        return value


class UpdateRoleSerializer(serializers.Serializer):
    """Serializer for changing a member's role."""

    role = serializers.CharField(required=True, max_length=20)


class UpdatePermissionsSerializer(serializers.Serializer):
    """
    Serializer for replacing a member's custom permission map.

    Key and value validation happens in MembershipService so that API and
    in-process callers share the same rules.
    """

    permissions = serializers.JSONField(
        required=True,
        allow_null=True,
        help_text="{permission: boolean}; null or {} resets to role defaults"
    )


class AuditLogSerializer(serializers.ModelSerializer):
    """Serializer for AuditLog model."""

    class Meta:
        model = AuditLog
        fields = [
            'id', 'business_id', 'actor_user_id', 'target_user_id',
            'action', 'resource', 'resource_id', 'old_value', 'new_value',
            'ip_address', 'user_agent', 'request_id', 'notes', 'created_at',
        ]
        read_only_fields = fields


class UserAuditLogQuerySerializer(serializers.Serializer):
    """Query parameters for a user's audit trail."""

    businessId = serializers.UUIDField(required=False)
    action = serializers.ChoiceField(
        choices=[choice[0] for choice in AuditLog.ACTION_CHOICES],
        required=False,
    )
    startDate = serializers.DateTimeField(required=False)
    endDate = serializers.DateTimeField(required=False)
    limit = serializers.IntegerField(required=False, min_value=1, default=100)

    def validate(self, attrs):
        start, end = attrs.get('startDate'), attrs.get('endDate')
        if start and end and start > end:
            raise serializers.ValidationError("startDate must be before endDate.")
        return attrs


class AuditLogQuerySerializer(serializers.Serializer):
    """Query parameters for the audit log endpoint."""

    action = serializers.ChoiceField(
        choices=[choice[0] for choice in AuditLog.ACTION_CHOICES],
        required=False,
    )
    userId = serializers.CharField(required=False, max_length=64)
    targetUserId = serializers.CharField(required=False, max_length=64)
    startDate = serializers.DateTimeField(required=False)
    endDate = serializers.DateTimeField(required=False)
    limit = serializers.IntegerField(required=False, min_value=1, default=100)
    offset = serializers.IntegerField(required=False, min_value=0, default=0)

    def validate(self, attrs):
        start, end = attrs.get('startDate'), attrs.get('endDate')
        if start and end and start > end:
            raise serializers.ValidationError("startDate must be before endDate.")
        return attrs
