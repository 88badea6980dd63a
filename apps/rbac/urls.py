"""
RBAC API URLs.

Provides endpoints for:
- Permission catalog and the caller's businesses
- Membership management (assign, role, permission overrides, removal)
- Audit log viewing, per business and per user
"""
from django.urls import path
from apps.rbac.views import (
    PermissionCatalogView,
    MyBusinessesView,
    BusinessContextView,
    MemberListView,
    MemberDetailView,
    MemberRoleView,
    MemberPermissionsView,
    AuditLogListView,
    AuditLogStatsView,
    UserAuditLogView,
)

app_name = 'rbac'

urlpatterns = [
    # Context-free endpoints
    path('permissions', PermissionCatalogView.as_view(), name='permission-catalog'),
    path('me/businesses', MyBusinessesView.as_view(), name='my-businesses'),

    # Business-scoped endpoints
    path('businesses/<uuid:business_id>/context', BusinessContextView.as_view(), name='business-context'),
    path('businesses/<uuid:business_id>/users', MemberListView.as_view(), name='member-list'),
    path('businesses/<uuid:business_id>/users/<str:user_id>', MemberDetailView.as_view(), name='member-detail'),
    path('businesses/<uuid:business_id>/users/<str:user_id>/role', MemberRoleView.as_view(), name='member-role'),
    path('businesses/<uuid:business_id>/users/<str:user_id>/permissions', MemberPermissionsView.as_view(), name='member-permissions'),

    # Audit log endpoints
    path('businesses/<uuid:business_id>/audit-logs', AuditLogListView.as_view(), name='audit-log-list'),
    path('businesses/<uuid:business_id>/audit-logs/stats', AuditLogStatsView.as_view(), name='audit-log-stats'),
    path('users/<str:user_id>/audit-logs', UserAuditLogView.as_view(), name='user-audit-log-list'),
]
