from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, IsAdminUser
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer, TokenRefreshSerializer
from rest_framework_simplejwt.exceptions import AuthenticationFailed, InvalidToken, TokenError
from rest_framework_simplejwt.settings import api_settings
from django.contrib.auth import get_user_model
from django.core.exceptions import ObjectDoesNotExist
from django.shortcuts import get_object_or_404
from django.db.models import Q
from django.utils.dateparse import parse_date
from .models import AuditLog
from .serializers import UserSerializer, UserCreateSerializer, ProfileSerializer, AuditLogSerializer
from .utils import create_audit_log, paginated_response

User = get_user_model()

SEARCH_LIMIT = 20


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    def validate(self, attrs):
        data = super().validate(attrs)
        if not self.user.is_active:
            raise AuthenticationFailed('User account is disabled.')
        return data

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['username'] = user.username
        token['groups'] = list(user.groups.values_list('name', flat=True))
        return token


class CustomTokenObtainPairView(TokenObtainPairView):
    serializer_class = CustomTokenObtainPairSerializer


class CustomTokenRefreshSerializer(TokenRefreshSerializer):
    """Token refresh that reports deleted users as an invalid token"""
    def validate(self, attrs):
        try:
            refresh = self.token_class(attrs['refresh'])
        except TokenError:
            raise InvalidToken('Token is invalid or expired.')
        user_id = refresh.payload.get(api_settings.USER_ID_CLAIM)
        if not User.objects.filter(**{api_settings.USER_ID_FIELD: user_id}).exists():
            raise InvalidToken('Token is invalid. User no longer exists.')
        try:
            return super().validate(attrs)
        except (InvalidToken, TokenError):
            raise InvalidToken('Token is invalid or expired.')
        except ObjectDoesNotExist:
            raise InvalidToken('Token is invalid. User no longer exists.')


class CustomTokenRefreshView(TokenRefreshView):
    serializer_class = CustomTokenRefreshSerializer


# User views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
def user_list_create(request):
    """List all staff users or create a new one"""
    if request.method == 'GET':
        users = User.objects.all().order_by('username')
        serializer = UserSerializer(users, many=True)
        return Response(serializer.data)
    else:
        serializer = UserCreateSerializer(data=request.data)
        if serializer.is_valid():
            user = serializer.save()
            create_audit_log(request, 'create', 'User', user.id, object_name=user.username)
            return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminUser])
def user_detail(request, pk):
    """Retrieve, update or delete a user"""
    user = get_object_or_404(User, pk=pk)

    if request.method == 'GET':
        serializer = UserSerializer(user)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = UserSerializer(user, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            create_audit_log(request, 'update', 'User', user.id, object_name=user.username,
                             changes=dict(request.data))
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        if user.pk == request.user.pk:
            return Response({'error': 'You cannot delete your own account'}, status=status.HTTP_400_BAD_REQUEST)
        create_audit_log(request, 'delete', 'User', user.id, object_name=user.username)
        user.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated])
def user_me(request):
    """Current user with groups, store role and effective permissions"""
    from backoffice.store.services import get_store_user, get_user_permissions

    user = request.user
    if request.method == 'PATCH':
        serializer = ProfileSerializer(user, data=request.data, partial=True)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        serializer.save()

    user_data = UserSerializer(user).data
    user_data['groups'] = list(user.groups.values_list('name', flat=True))

    store_user = get_store_user(user)
    user_data['role'] = store_user.role.name if store_user and store_user.role else None
    user_data['permissions'] = get_user_permissions(user)
    user_data['is_admin'] = user.is_superuser or user.is_staff or user_data['role'] == 'Owner'
    return Response(user_data)


# AuditLog views (read-only)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def audit_log_list(request):
    """List audit logs with filtering"""
    queryset = AuditLog.objects.select_related('user')

    # Non-staff only see their own entries
    if not request.user.is_staff:
        queryset = queryset.filter(user=request.user)

    action_filter = request.query_params.get('action')
    if action_filter:
        queryset = queryset.filter(action=action_filter)

    model_filter = request.query_params.get('model')
    if model_filter:
        queryset = queryset.filter(model_name=model_filter)

    for param, lookup in (('date_from', 'created_at__date__gte'), ('date_to', 'created_at__date__lte')):
        value = request.query_params.get(param)
        if not value:
            continue
        try:
            day = parse_date(value)
        except ValueError:
            day = None
        if day is None:
            return Response({'error': f'{param} must be a date (YYYY-MM-DD)'},
                            status=status.HTTP_400_BAD_REQUEST)
        queryset = queryset.filter(**{lookup: day})

    return paginated_response(request, queryset.order_by('-created_at'), AuditLogSerializer)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def audit_log_detail(request, pk):
    """Retrieve an audit log"""
    audit_log = get_object_or_404(AuditLog, pk=pk)

    if not request.user.is_staff and audit_log.user != request.user:
        return Response({'error': 'Permission denied'}, status=status.HTTP_403_FORBIDDEN)

    serializer = AuditLogSerializer(audit_log)
    return Response(serializer.data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def global_search(request):
    """Search products, orders, customers, discounts and collections"""
    query = request.query_params.get('q', '').strip()

    if not query:
        return Response({
            'products': [],
            'orders': [],
            'customers': [],
            'discounts': [],
            'collections': [],
        })

    from backoffice.catalog.models import Product, Collection
    from backoffice.catalog.serializers import ProductListSerializer, CollectionSerializer
    from backoffice.customers.models import Customer
    from backoffice.customers.serializers import CustomerSerializer
    from backoffice.orders.models import Order
    from backoffice.orders.serializers import OrderListSerializer
    from backoffice.discounts.models import Discount
    from backoffice.discounts.serializers import DiscountSerializer

    results = {}

    products = Product.objects.filter(
        Q(title__icontains=query) |
        Q(sku__icontains=query) |
        Q(vendor__icontains=query)
    ).select_related('collection')[:SEARCH_LIMIT]
    results['products'] = ProductListSerializer(products, many=True).data

    orders = Order.objects.filter(
        Q(order_number__icontains=query) |
        Q(customer_name__icontains=query) |
        Q(customer_email__icontains=query)
    ).order_by('-created_at')[:SEARCH_LIMIT]
    results['orders'] = OrderListSerializer(orders, many=True).data

    customers = Customer.objects.filter(
        Q(first_name__icontains=query) |
        Q(last_name__icontains=query) |
        Q(email__icontains=query) |
        Q(phone__icontains=query)
    )[:SEARCH_LIMIT]
    results['customers'] = CustomerSerializer(customers, many=True).data

    discounts = Discount.objects.filter(
        Q(code__icontains=query) |
        Q(description__icontains=query)
    )[:SEARCH_LIMIT]
    results['discounts'] = DiscountSerializer(discounts, many=True).data

    collections = Collection.objects.filter(name__icontains=query)[:SEARCH_LIMIT]
    results['collections'] = CollectionSerializer(collections, many=True).data

    return Response(results)
