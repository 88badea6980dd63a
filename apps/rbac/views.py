"""
RBAC REST API views.

Implements endpoints for:
- Permission catalog and the caller's businesses
- Business context of the current request
- Membership management (assign, role, permission overrides, removal)
- Audit log viewing, per business and per user
"""
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from drf_spectacular.utils import extend_schema, extend_schema_view, OpenApiParameter, OpenApiExample
from drf_spectacular.types import OpenApiTypes

from apps.core.exceptions import Forbidden
from apps.core.permissions import HasBusinessPermission, requires_operation, requires_permission
from apps.rbac.catalog import Permission, permission_catalog
from apps.rbac.services import AuditService, MembershipService
from apps.rbac.serializers import (
    AssignUserSerializer,
    AuditLogQuerySerializer,
    AuditLogSerializer,
    MembershipSerializer,
    UpdatePermissionsSerializer,
    UpdateRoleSerializer,
    UserAuditLogQuerySerializer,
)


def _actor_id(request):
    ctx = getattr(request, 'business_context', None)
    if ctx is not None:
        return ctx.user_id
    return str(request.user.pk)


@extend_schema_view(
    get=extend_schema(
        tags=['RBAC - Permissions'],
        summary='Permission catalog',
        description='''
List every permission grouped by category, with the roles that have it
by default. Intended for building permission editors.

**No permission required** and no business context needed.
        ''',
        responses={200: OpenApiTypes.OBJECT},
        examples=[
            OpenApiExample(
                'Catalog',
                value=[
                    {
                        'key': 'invoice',
                        'name': 'Invoice Management',
                        'permissions': [
                            {
                                'key': 'invoice:create',
                                'label': 'Create invoice',
                                'description': 'Allow user to create invoice',
                                'defaultRoles': ['superadmin', 'owner', 'admin', 'employee', 'accountant', 'salesman'],
                            }
                        ]
                    }
                ],
                response_only=True
            )
        ]
    )
)
class PermissionCatalogView(APIView):
    """
    GET /v1/permissions

    Permission catalog grouped by category.
    """

    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(permission_catalog())


@extend_schema_view(
    get=extend_schema(
        tags=['RBAC - Members'],
        summary='List my businesses',
        description='Businesses the caller owns or is an active member of. Owner entries win over memberships.',
        responses={200: OpenApiTypes.OBJECT},
    )
)
class MyBusinessesView(APIView):
    """
    GET /v1/me/businesses

    Businesses the authenticated user can reach.
    """

    permission_classes = [IsAuthenticated]

    def get(self, request):
        businesses = MembershipService.user_businesses(request.user.pk)
        return Response({'count': len(businesses), 'businesses': businesses})


@extend_schema_view(
    get=extend_schema(
        tags=['RBAC - Permissions'],
        summary='Current business context',
        description='Role and effective permissions of the caller in this business.',
        responses={200: OpenApiTypes.OBJECT, 403: OpenApiTypes.OBJECT},
    )
)
class BusinessContextView(APIView):
    """
    GET /v1/businesses/{business_id}/context

    No permission required beyond a resolvable context.
    """

    permission_classes = [IsAuthenticated, HasBusinessPermission]

    def get(self, request, business_id):
        return Response(request.business_context.to_dict())


@extend_schema_view(
    get=extend_schema(
        tags=['RBAC - Members'],
        summary='List business members',
        description='Active and invited members.\n\n**Required permission:** `user:view`',
        responses={200: MembershipSerializer(many=True)},
    ),
    post=extend_schema(
        tags=['RBAC - Members'],
        summary='Assign user to business',
        description='''
Add a user to the business, or reassign an existing member.

Existing members get the new role and their custom permissions reset to
the role defaults. Removed members are reactivated.

**Required permission:** `user:assign`
        ''',
        request=AssignUserSerializer,
        responses={201: MembershipSerializer, 400: OpenApiTypes.OBJECT, 403: OpenApiTypes.OBJECT, 409: OpenApiTypes.OBJECT},
        examples=[
            OpenApiExample(
                'Assign Request',
                value={'user_id': 'user-42', 'role': 'employee'},
                request_only=True
            )
        ]
    )
)
class MemberListView(APIView):
    """
    GET  /v1/businesses/{business_id}/users
    POST /v1/businesses/{business_id}/users
    """

    permission_classes = [IsAuthenticated, HasBusinessPermission]

    @requires_operation('business.users.view')
    def get(self, request, business_id):
        members = MembershipService.list_members(business_id)
        serializer = MembershipSerializer(members, many=True)
        return Response({'count': len(members), 'users': serializer.data})

    @requires_operation('business.users.assign')
    def post(self, request, business_id):
        serializer = AssignUserSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        membership = MembershipService.assign_user(
            business_id,
            serializer.validated_data['user_id'],
            serializer.validated_data['role'],
            actor_user_id=_actor_id(request),
            request=request,
        )
        return Response(MembershipSerializer(membership).data, status=status.HTTP_201_CREATED)


@extend_schema_view(
    get=extend_schema(
        tags=['RBAC - Members'],
        summary='Get member',
        description='Role of a user in the business. The owner is reported even without a membership row.\n\n**Required permission:** `user:view`',
        responses={200: OpenApiTypes.OBJECT, 404: OpenApiTypes.OBJECT},
    ),
    delete=extend_schema(
        tags=['RBAC - Members'],
        summary='Remove member',
        description='Soft-remove a member. The business owner cannot be removed.\n\n**Required permission:** `user:remove`',
        responses={204: None, 400: OpenApiTypes.OBJECT, 404: OpenApiTypes.OBJECT},
    )
)
class MemberDetailView(APIView):
    """
    GET    /v1/businesses/{business_id}/users/{user_id}
    DELETE /v1/businesses/{business_id}/users/{user_id}
    """

    permission_classes = [IsAuthenticated, HasBusinessPermission]

    @requires_operation('business.users.view')
    def get(self, request, business_id, user_id):
        member = MembershipService.get_member(business_id, user_id)
        membership = member['membership']
        return Response({
            'user_id': user_id,
            'business_id': str(business_id),
            'role': member['role'],
            'is_owner': member['is_owner'],
            'membership': MembershipSerializer(membership).data if membership else None,
        })

    @requires_operation('business.users.remove')
    def delete(self, request, business_id, user_id):
        MembershipService.remove_user(
            business_id,
            user_id,
            actor_user_id=_actor_id(request),
            request=request,
        )
        return Response(status=status.HTTP_204_NO_CONTENT)


@extend_schema_view(
    patch=extend_schema(
        tags=['RBAC - Members'],
        summary='Update member role',
        description='Change an active member\'s role. Custom permissions are kept.\n\n**Required permission:** `user:update_role`',
        request=UpdateRoleSerializer,
        responses={200: MembershipSerializer, 400: OpenApiTypes.OBJECT, 404: OpenApiTypes.OBJECT},
    )
)
class MemberRoleView(APIView):
    """
    PATCH /v1/businesses/{business_id}/users/{user_id}/role
    """

    permission_classes = [IsAuthenticated, HasBusinessPermission]

    @requires_operation('business.users.update_role')
    def patch(self, request, business_id, user_id):
        serializer = UpdateRoleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        membership = MembershipService.update_role(
            business_id,
            user_id,
            serializer.validated_data['role'],
            actor_user_id=_actor_id(request),
            request=request,
        )
        return Response(MembershipSerializer(membership).data)


@extend_schema_view(
    get=extend_schema(
        tags=['RBAC - Permissions'],
        summary='Get member permissions',
        description='Role defaults, custom overrides and effective permissions.\n\n**Required permission:** `user:view`',
        responses={200: OpenApiTypes.OBJECT, 404: OpenApiTypes.OBJECT},
    ),
    patch=extend_schema(
        tags=['RBAC - Permissions'],
        summary='Update member permissions',
        description='''
Replace the member's custom permission map.

`false` removes a role default, `true` adds a permission the role lacks.
`null` or `{}` resets to the role defaults.

**Required permission:** `user:update_role`
        ''',
        request=UpdatePermissionsSerializer,
        responses={200: MembershipSerializer, 400: OpenApiTypes.OBJECT, 404: OpenApiTypes.OBJECT},
        examples=[
            OpenApiExample(
                'Deny invoice deletion',
                value={'permissions': {'invoice:delete': False}},
                request_only=True
            )
        ]
    ),
    delete=extend_schema(
        tags=['RBAC - Permissions'],
        summary='Reset member permissions',
        description='Reset the member to role defaults.\n\n**Required permission:** `user:update_role`',
        responses={200: MembershipSerializer, 404: OpenApiTypes.OBJECT},
    )
)
class MemberPermissionsView(APIView):
    """
    GET    /v1/businesses/{business_id}/users/{user_id}/permissions
    PATCH  /v1/businesses/{business_id}/users/{user_id}/permissions
    DELETE /v1/businesses/{business_id}/users/{user_id}/permissions
    """

    permission_classes = [IsAuthenticated, HasBusinessPermission]

    @requires_operation('business.users.view')
    def get(self, request, business_id, user_id):
        return Response(MembershipService.permission_summary(business_id, user_id))

    @requires_operation('business.users.update_permissions')
    def patch(self, request, business_id, user_id):
        serializer = UpdatePermissionsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        membership = MembershipService.update_permissions(
            business_id,
            user_id,
            serializer.validated_data['permissions'],
            actor_user_id=_actor_id(request),
            request=request,
        )
        return Response(MembershipSerializer(membership).data)

    @requires_operation('business.users.update_permissions')
    def delete(self, request, business_id, user_id):
        membership = MembershipService.reset_permissions(
            business_id,
            user_id,
            actor_user_id=_actor_id(request),
            request=request,
        )
        return Response(MembershipSerializer(membership).data)


@extend_schema_view(
    get=extend_schema(
        tags=['RBAC - Audit'],
        summary='List audit logs',
        description='''
Audit trail of membership and permission changes, newest first.
`total` counts all matching rows before `limit`/`offset` are applied.

**Required permission:** `audit:view`
        ''',
        parameters=[
            OpenApiParameter('action', OpenApiTypes.STR, description='Filter by action (e.g. role:update)'),
            OpenApiParameter('userId', OpenApiTypes.STR, description='Filter by acting user'),
            OpenApiParameter('targetUserId', OpenApiTypes.STR, description='Filter by affected user'),
            OpenApiParameter('startDate', OpenApiTypes.DATETIME, description='Created at or after'),
            OpenApiParameter('endDate', OpenApiTypes.DATETIME, description='Created at or before'),
            OpenApiParameter('limit', OpenApiTypes.INT, description='Page size (default 100)'),
            OpenApiParameter('offset', OpenApiTypes.INT, description='Rows to skip'),
        ],
        responses={200: OpenApiTypes.OBJECT, 403: OpenApiTypes.OBJECT},
    )
)
@requires_permission(Permission.AUDIT_VIEW)
class AuditLogListView(APIView):
    """
    GET /v1/businesses/{business_id}/audit-logs
    """

    permission_classes = [IsAuthenticated, HasBusinessPermission]

    def get(self, request, business_id):
        query = AuditLogQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data

        result = AuditService.query(
            business_id,
            action=params.get('action'),
            user_id=params.get('userId'),
            target_user_id=params.get('targetUserId'),
            start_date=params.get('startDate'),
            end_date=params.get('endDate'),
            limit=params['limit'],
            offset=params['offset'],
        )

        return Response({
            'businessId': str(business_id),
            'total': result['total'],
            'logs': AuditLogSerializer(result['logs'], many=True).data,
        })


@extend_schema_view(
    get=extend_schema(
        tags=['RBAC - Audit'],
        summary='Audit log statistics',
        description='Number of audit rows per action.\n\n**Required permission:** `audit:view`',
        responses={200: OpenApiTypes.OBJECT},
    )
)
@requires_permission(Permission.AUDIT_VIEW)
class AuditLogStatsView(APIView):
    """
    GET /v1/businesses/{business_id}/audit-logs/stats
    """

    permission_classes = [IsAuthenticated, HasBusinessPermission]

    def get(self, request, business_id):
        stats = AuditService.statistics(business_id)
        stats['businessId'] = str(business_id)
        return Response(stats)


@extend_schema_view(
    get=extend_schema(
        tags=['RBAC - Audit'],
        summary='User audit trail',
        description='''
Audit rows about one user across all businesses, newest first.
`total` counts all matching rows before `limit` is applied.

Users may only read their own trail; superadmins may read any.
No business context needed.
        ''',
        parameters=[
            OpenApiParameter('businessId', OpenApiTypes.UUID, description='Only rows of this business'),
            OpenApiParameter('action', OpenApiTypes.STR, description='Filter by action (e.g. role:update)'),
            OpenApiParameter('startDate', OpenApiTypes.DATETIME, description='Created at or after'),
            OpenApiParameter('endDate', OpenApiTypes.DATETIME, description='Created at or before'),
            OpenApiParameter('limit', OpenApiTypes.INT, description='Page size (default 100)'),
        ],
        responses={200: OpenApiTypes.OBJECT, 403: OpenApiTypes.OBJECT},
    )
)
class UserAuditLogView(APIView):
    """
    GET /v1/users/{user_id}/audit-logs
    """

    permission_classes = [IsAuthenticated]

    def get(self, request, user_id):
        if not request.user.is_superuser and str(request.user.pk) != str(user_id):
            raise Forbidden("You can only view your own audit logs")

        query = UserAuditLogQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data

        result = AuditService.for_user(
            user_id,
            business_id=params.get('businessId'),
            action=params.get('action'),
            start_date=params.get('startDate'),
            end_date=params.get('endDate'),
            limit=params['limit'],
        )

        return Response({
            'userId': str(user_id),
            'total': result['total'],
            'logs': AuditLogSerializer(result['logs'], many=True).data,
        })
