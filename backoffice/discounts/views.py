import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db import transaction
from django.db.models import Q
from django.shortcuts import get_object_or_404
from django.utils import timezone
from .models import Discount
from .serializers import DiscountSerializer, CouponValidateSerializer
from .services import DiscountError, validate_discount, compute_discount_amount, filter_by_status
from backoffice.core.utils import create_audit_log, paginated_response, parse_id_list

logger = logging.getLogger(__name__)

DISCOUNT_BULK_ACTIONS = ('activate', 'deactivate', 'delete')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def discount_list_create(request):
    """List discounts (search `q`, `status`) or create a new discount"""
    if request.method == 'GET':
        queryset = Discount.objects.prefetch_related('products', 'collections').order_by('-created_at')
        query = request.query_params.get('q', '').strip()
        if query:
            queryset = queryset.filter(Q(code__icontains=query) | Q(description__icontains=query))
        status_filter = request.query_params.get('status')
        if status_filter and status_filter != 'all':
            queryset = filter_by_status(queryset, status_filter)
        return paginated_response(request, queryset, DiscountSerializer)

    serializer = DiscountSerializer(data=request.data)
    if serializer.is_valid():
        discount = serializer.save()
        create_audit_log(request, 'create', 'Discount', discount.id, object_reference=discount.code)
        logger.info(f"Discount {discount.code} created")
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def discount_detail(request, pk):
    """Retrieve, update or delete a discount"""
    discount = get_object_or_404(Discount, pk=pk)

    if request.method == 'GET':
        serializer = DiscountSerializer(discount)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = DiscountSerializer(discount, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            create_audit_log(request, 'update', 'Discount', discount.id, object_reference=discount.code,
                             changes={'fields': sorted(serializer.validated_data.keys())})
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        create_audit_log(request, 'delete', 'Discount', discount.id, object_reference=discount.code)
        discount.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def discount_bulk(request):
    """Activate, deactivate or delete the discounts listed in `ids`"""
    action = request.data.get('action')
    ids = parse_id_list(request.data.get('ids'))

    if action not in DISCOUNT_BULK_ACTIONS:
        return Response({'error': f"action must be one of: {', '.join(DISCOUNT_BULK_ACTIONS)}"},
                        status=status.HTTP_400_BAD_REQUEST)
    if not ids:
        return Response({'error': 'ids is required'}, status=status.HTTP_400_BAD_REQUEST)

    discounts = Discount.objects.filter(id__in=ids)
    object_ids = ','.join(str(i) for i in ids)
    with transaction.atomic():
        if action == 'delete':
            count = discounts.count()
            discounts.delete()
            create_audit_log(request, 'bulk_delete', 'Discount', object_ids, changes={'ids': ids})
            return Response({'deleted': count})
        count = discounts.update(is_active=action == 'activate', updated_at=timezone.now())

    create_audit_log(request, 'bulk_update', 'Discount', object_ids, changes={'ids': ids, 'action': action})
    return Response({'updated': count})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def coupon_validate(request):
    """
    Check a coupon code against an order total.

    Returns 400 only for missing or malformed input; a code that cannot be
    used answers {"valid": false, "error": ...}.
    """
    data = {
        'code': request.data.get('code'),
        'order_total': request.data.get('order_total', request.data.get('orderTotal')),
    }
    if not data['code'] or data['order_total'] in (None, ''):
        return Response({'error': 'Coupon code and order total are required'}, status=status.HTTP_400_BAD_REQUEST)

    serializer = CouponValidateSerializer(data=data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    code = serializer.validated_data['code']
    order_total = serializer.validated_data['order_total']
    try:
        discount = validate_discount(code, order_total)
    except DiscountError as e:
        logger.info(f"Coupon {code} rejected: {e}")
        return Response({'valid': False, 'error': str(e)})

    return Response({
        'valid': True,
        'coupon_id': discount.id,
        'discount_amount': compute_discount_amount(discount, order_total),
        'type': discount.discount_type,
        'value': discount.discount_value,
        'description': discount.description or f'{discount.code} discount',
    })
