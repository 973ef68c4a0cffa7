import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db.models import Q, Sum
from django.http import HttpResponse
from django.shortcuts import get_object_or_404
from django.utils import timezone
from .models import Order
from .serializers import (
    OrderListSerializer, OrderDetailSerializer, OrderCreateSerializer, OrderUpdateSerializer,
    OrderStatusSerializer, FulfillSerializer
)
from .services import (
    OrderError, create_order, update_order_status, mark_paid, fulfill_order, apply_discount
)
from .receipts import build_receipt_pdf, build_packing_slip_pdf
from backoffice.customers.services import refresh_customer_totals
from backoffice.discounts.services import DiscountError
from backoffice.reports.analytics import filter_by_timeframe, compute_order_stats
from backoffice.core.utils import create_audit_log, paginated_response
from backoffice.core.exports import csv_response

logger = logging.getLogger(__name__)

ORDER_TABS = {
    'open': Q(is_open=True),
    'unfulfilled': Q(fulfillment_status='unfulfilled'),
    'fulfilled': Q(fulfillment_status='fulfilled'),
    'unpaid': ~Q(payment_status='paid'),
    'paid': Q(payment_status='paid'),
}

ORDER_EXPORT_HEADERS = [
    'Order', 'Date', 'Customer', 'Email', 'Payment Status', 'Fulfillment Status',
    'Items', 'Subtotal', 'Discount', 'Shipping', 'Tax', 'Total'
]


def search_orders(queryset, params):
    """
    Apply the order list filters: timeframe, then search or tab.

    A search term replaces the tab filter. Returns (timeframe_queryset,
    filtered_queryset) so header stats can ignore tab and search.
    """
    queryset = filter_by_timeframe(queryset, params.get('timeframe', 'all'))
    filtered = queryset

    search = (params.get('search') or params.get('q') or '').strip()
    if search:
        filtered = filtered.filter(
            Q(order_number__icontains=search) |
            Q(customer_name__icontains=search) |
            Q(customer_email__icontains=search)
        )
    else:
        tab_filter = ORDER_TABS.get(params.get('tab', 'all'))
        if tab_filter is not None:
            filtered = filtered.filter(tab_filter)
    return queryset, filtered


def order_for_detail(pk):
    queryset = Order.objects.select_related('customer', 'created_by').prefetch_related(
        'items__product', 'history__created_by'
    )
    return get_object_or_404(queryset, pk=pk)


def store_details():
    from backoffice.store.services import get_store_details
    return get_store_details()


# Order views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def order_list_create(request):
    """List orders with tab/timeframe/search filters and header stats, or create an order"""
    if request.method == 'GET':
        base, orders = search_orders(Order.objects.all(), request.query_params)
        stats = compute_order_stats(base.only('total', 'payment_status', 'fulfillment_status'))
        orders = orders.annotate(annotated_item_count=Sum('items__quantity')).order_by('-created_at')
        return paginated_response(request, orders, OrderListSerializer, extra={'stats': stats})

    serializer = OrderCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        order = create_order(serializer.validated_data, request.user)
    except DiscountError as e:
        return Response({'discount_code': [str(e)]}, status=status.HTTP_400_BAD_REQUEST)
    except OrderError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(request, 'order_create', 'Order', order.id, object_name=order.order_number,
                     object_reference=order.order_number, changes={'total': str(order.total)})
    return Response(OrderDetailSerializer(order_for_detail(order.pk)).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def order_detail(request, pk):
    """Retrieve an order with items, addresses and history; update notes/customer; delete"""
    order = order_for_detail(pk)

    if request.method == 'GET':
        return Response(OrderDetailSerializer(order).data)
    elif request.method == 'PATCH':
        old_customer = order.customer
        serializer = OrderUpdateSerializer(order, data=request.data, partial=True)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        order = serializer.save()
        if old_customer != order.customer:
            for customer in (old_customer, order.customer):
                if customer is not None:
                    refresh_customer_totals(customer)
        create_audit_log(request, 'update', 'Order', order.id, object_name=order.order_number,
                         object_reference=order.order_number,
                         changes={key: str(value) for key, value in serializer.validated_data.items()})
        return Response(OrderDetailSerializer(order_for_detail(order.pk)).data)
    else:  # DELETE
        customer = order.customer
        create_audit_log(request, 'delete', 'Order', order.id, object_name=order.order_number,
                         object_reference=order.order_number)
        order.delete()
        if customer is not None:
            refresh_customer_totals(customer)
        logger.info(f"Order {pk} deleted")
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def order_status(request, pk):
    """Change payment and/or fulfillment status"""
    order = get_object_or_404(Order, pk=pk)
    serializer = OrderStatusSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    before = {'payment_status': order.payment_status, 'fulfillment_status': order.fulfillment_status}
    try:
        changes = update_order_status(order, user=request.user, **serializer.validated_data)
    except OrderError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    if changes:
        create_audit_log(request, 'order_status', 'Order', order.id, object_name=order.order_number,
                         object_reference=order.order_number,
                         changes={'before': before, 'after': {
                             'payment_status': order.payment_status,
                             'fulfillment_status': order.fulfillment_status,
                         }})
    return Response(OrderDetailSerializer(order_for_detail(order.pk)).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def order_mark_paid(request, pk):
    order = get_object_or_404(Order, pk=pk)
    try:
        mark_paid(order, request.user)
    except OrderError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    create_audit_log(request, 'order_payment', 'Order', order.id, object_name=order.order_number,
                     object_reference=order.order_number, changes={'total': str(order.total)})
    return Response(OrderDetailSerializer(order_for_detail(order.pk)).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def order_fulfill(request, pk):
    """
    Fulfill an order with one or more shipments.

    Body: {"tracking_info": [{"tracking_number", "carrier"}], "notify_customer": bool}
    """
    order = get_object_or_404(Order, pk=pk)
    serializer = FulfillSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        order, email_sent = fulfill_order(
            order,
            serializer.validated_data['tracking_info'],
            notify_customer=serializer.validated_data['notify_customer'],
            user=request.user,
        )
    except OrderError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(request, 'order_fulfill', 'Order', order.id, object_name=order.order_number,
                     object_reference=order.order_number, changes={'tracking_info': order.tracking_info})
    data = OrderDetailSerializer(order_for_detail(order.pk)).data
    data['email_sent'] = email_sent
    return Response(data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def order_apply_discount(request, pk):
    order = get_object_or_404(Order, pk=pk)
    code = (request.data.get('code') or request.data.get('discount_code') or '').strip()
    if not code:
        return Response({'error': 'Discount code is required'}, status=status.HTTP_400_BAD_REQUEST)

    try:
        apply_discount(order, code, request.user)
    except DiscountError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(request, 'discount_apply', 'Order', order.id, object_name=order.order_number,
                     object_reference=order.discount_code,
                     changes={'discount': str(order.discount), 'total': str(order.total)})
    return Response(OrderDetailSerializer(order_for_detail(order.pk)).data)


def pdf_response(content, filename):
    response = HttpResponse(content, content_type='application/pdf')
    response['Content-Disposition'] = f'inline; filename="{filename}"'
    return response


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def order_receipt(request, pk):
    """PDF receipt for an order"""
    order = order_for_detail(pk)
    return pdf_response(build_receipt_pdf(order, store_details()), f"receipt-{order.order_number}.pdf")


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def order_packing_slip(request, pk):
    """PDF packing slip for an order"""
    order = order_for_detail(pk)
    return pdf_response(build_packing_slip_pdf(order, store_details()), f"packing-slip-{order.order_number}.pdf")


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def order_export(request):
    """Download the filtered order list as CSV"""
    _, orders = search_orders(Order.objects.all(), request.query_params)
    orders = orders.annotate(annotated_item_count=Sum('items__quantity')).order_by('-created_at')
    rows = (
        [
            o.order_number, timezone.localtime(o.created_at).strftime('%Y-%m-%d %H:%M'),
            o.customer_name or 'Guest', o.customer_email, o.payment_status, o.fulfillment_status,
            o.annotated_item_count or 0, o.subtotal, o.discount, o.shipping, o.tax, o.total,
        ]
        for o in orders
    )
    filename = f"orders-{timezone.localdate().isoformat()}.csv"
    return csv_response(filename, ORDER_EXPORT_HEADERS, rows)
