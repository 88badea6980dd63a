"""
Django admin configuration for RBAC app.

Both models are read-only here: membership changes must go through
MembershipService so they are audited.
"""
from django.contrib import admin
from .models import AuditLog, Membership


class ReadOnlyAdmin(admin.ModelAdmin):

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Membership)
class MembershipAdmin(ReadOnlyAdmin):
    list_display = ['user_id', 'business', 'role', 'status', 'joined_at', 'removed_at']
    list_filter = ['role', 'status']
    search_fields = ['user_id', 'business__name']
    ordering = ['-created_at']


@admin.register(AuditLog)
class AuditLogAdmin(ReadOnlyAdmin):
    list_display = ['created_at', 'business_id', 'action', 'actor_user_id', 'target_user_id']
    list_filter = ['action']
    search_fields = ['actor_user_id', 'target_user_id', 'request_id']
    ordering = ['-created_at']
