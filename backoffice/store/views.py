import logging
from collections import OrderedDict
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.shortcuts import get_object_or_404
from backoffice.core.utils import create_audit_log
from .defaults import OWNER_ROLE
from .models import Permission, StoreRole, StoreUser
from .serializers import (
    StoreSettingsSerializer, ReviewSettingsSerializer, MethodListSerializer, VisibilitySerializer,
    PermissionSerializer, StoreRoleSerializer, StoreUserSerializer
)
from .services import get_current_store, get_store_settings, has_permission, seed_permissions

logger = logging.getLogger(__name__)


def permission_denied():
    return Response({'error': 'Permission denied'}, status=status.HTTP_403_FORBIDDEN)


def can_change(request, permission):
    """Reads are open to any signed-in user; writes need the named permission"""
    return request.method == 'GET' or has_permission(request.user, permission)


# Settings views
@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated])
def store_settings(request):
    """Store settings; the store and its defaults are created on first access"""
    settings_obj = get_store_settings()
    if request.method == 'GET':
        return Response(StoreSettingsSerializer(settings_obj).data)

    if not can_change(request, 'settings.manage'):
        return permission_denied()
    serializer = StoreSettingsSerializer(settings_obj, data=request.data, partial=True)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    serializer.save()
    create_audit_log(request, 'settings_update', 'StoreSettings', settings_obj.id,
                     object_name=settings_obj.store.name, changes=dict(request.data))
    return Response(serializer.data)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def review_settings(request):
    settings_obj = get_store_settings()
    if request.method == 'GET':
        return Response(ReviewSettingsSerializer(settings_obj).data)

    if not can_change(request, 'settings.manage'):
        return permission_denied()
    serializer = ReviewSettingsSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    for field, value in serializer.validated_data.items():
        setattr(settings_obj, field, value)
    settings_obj.save()
    create_audit_log(request, 'settings_update', 'StoreSettings', settings_obj.id,
                     object_name='reviews', changes=dict(request.data))
    return Response({'success': True, **ReviewSettingsSerializer(settings_obj).data})


def method_settings(request, field):
    """GET/PUT handler shared by the shipping and payment method lists"""
    settings_obj = get_store_settings()
    if request.method == 'GET':
        return Response({field: getattr(settings_obj, field)})

    if not can_change(request, 'settings.manage'):
        return permission_denied()
    methods = request.data if isinstance(request.data, list) else request.data.get(field, request.data.get('methods'))
    serializer = MethodListSerializer(data={'methods': methods})
    if not serializer.is_valid():
        return Response(serializer.errors.get('methods', serializer.errors), status=status.HTTP_400_BAD_REQUEST)
    setattr(settings_obj, field, serializer.validated_data['methods'])
    settings_obj.save(update_fields=[field, 'updated_at'])
    create_audit_log(request, 'settings_update', 'StoreSettings', settings_obj.id, object_name=field,
                     changes={'enabled': [m['id'] for m in serializer.validated_data['methods'] if m['enabled']]})
    return Response({field: getattr(settings_obj, field)})


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated])
def shipping_settings(request):
    return method_settings(request, 'shipping_methods')


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated])
def payment_settings(request):
    return method_settings(request, 'payment_methods')


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated])
def visibility_settings(request):
    settings_obj = get_store_settings()
    if request.method == 'GET':
        return Response({'site_visibility': settings_obj.site_visibility})

    if not can_change(request, 'settings.manage'):
        return permission_denied()
    serializer = VisibilitySerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    settings_obj.site_visibility = serializer.validated_data['site_visibility']
    settings_obj.save(update_fields=['site_visibility', 'updated_at'])
    logger.info(f"Site visibility set to {settings_obj.site_visibility}")
    create_audit_log(request, 'settings_update', 'StoreSettings', settings_obj.id, object_name='visibility',
                     changes={'site_visibility': settings_obj.site_visibility})
    return Response({'site_visibility': settings_obj.site_visibility})


# Roles and permissions
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def permission_list(request):
    """Permission catalog grouped by category"""
    if not Permission.objects.exists():
        seed_permissions()
    grouped = OrderedDict()
    for permission in Permission.objects.all():
        grouped.setdefault(permission.category, []).append(PermissionSerializer(permission).data)
    return Response(grouped)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def role_list_create(request):
    store = get_current_store()
    if request.method == 'GET':
        roles = StoreRole.objects.filter(store=store)
        return Response(StoreRoleSerializer(roles, many=True).data)

    if not can_change(request, 'staff.manage'):
        return permission_denied()
    serializer = StoreRoleSerializer(data=request.data, context={'store': store})
    if serializer.is_valid():
        role = serializer.save(store=store)
        create_audit_log(request, 'create', 'StoreRole', role.id, object_name=role.name,
                         changes={'permissions': role.permissions})
        return Response(StoreRoleSerializer(role).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def role_detail(request, pk):
    store = get_current_store()
    role = get_object_or_404(StoreRole, pk=pk, store=store)

    if request.method == 'GET':
        return Response(StoreRoleSerializer(role).data)
    if not has_permission(request.user, 'staff.manage'):
        return permission_denied()

    if request.method in ('PUT', 'PATCH'):
        old_permissions = list(role.permissions)
        serializer = StoreRoleSerializer(role, data=request.data, partial=request.method == 'PATCH',
                                         context={'store': store})
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        role = serializer.save()
        create_audit_log(request, 'role_change', 'StoreRole', role.id, object_name=role.name,
                         changes={'before': old_permissions, 'after': role.permissions})
        return Response(StoreRoleSerializer(role).data)

    # DELETE
    if role.name == OWNER_ROLE:
        return Response({'error': 'The Owner role cannot be deleted'}, status=status.HTTP_400_BAD_REQUEST)
    create_audit_log(request, 'delete', 'StoreRole', role.id, object_name=role.name)
    role.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


# Store users
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def store_user_list_create(request):
    store = get_current_store()
    if request.method == 'GET':
        members = StoreUser.objects.filter(store=store).select_related('user', 'role')
        status_filter = request.query_params.get('status')
        if status_filter:
            members = members.filter(status=status_filter)
        return Response(StoreUserSerializer(members, many=True).data)

    if not can_change(request, 'staff.manage'):
        return permission_denied()
    serializer = StoreUserSerializer(data=request.data, context={'store': store})
    if serializer.is_valid():
        member = serializer.save(store=store)
        create_audit_log(request, 'create', 'StoreUser', member.id, object_name=member.user.username,
                         changes={'role': member.role.name if member.role else None, 'status': member.status})
        return Response(StoreUserSerializer(member).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def store_user_detail(request, pk):
    store = get_current_store()
    member = get_object_or_404(StoreUser.objects.select_related('user', 'role'), pk=pk, store=store)

    if request.method == 'GET':
        return Response(StoreUserSerializer(member).data)
    if not has_permission(request.user, 'staff.manage'):
        return permission_denied()

    if request.method == 'PATCH':
        old_role = member.role.name if member.role else None
        data = {key: value for key, value in request.data.items() if key != 'user_id'}
        serializer = StoreUserSerializer(member, data=data, partial=True, context={'store': store})
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        member = serializer.save()
        create_audit_log(request, 'role_change', 'StoreUser', member.id, object_name=member.user.username,
                         changes={'role': [old_role, member.role.name if member.role else None],
                                  'status': member.status})
        return Response(StoreUserSerializer(member).data)

    # DELETE
    if member.user_id == request.user.pk:
        return Response({'error': 'You cannot remove yourself from the store'}, status=status.HTTP_400_BAD_REQUEST)
    create_audit_log(request, 'delete', 'StoreUser', member.id, object_name=member.user.username)
    member.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)
