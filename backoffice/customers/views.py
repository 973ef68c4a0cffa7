import logging
from decimal import Decimal, InvalidOperation
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, parser_classes
from rest_framework.parsers import JSONParser, MultiPartParser, FormParser
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.core.exceptions import ValidationError
from django.core.validators import validate_email
from django.db import transaction
from django.db.models import Q
from django.shortcuts import get_object_or_404
from django.utils import timezone
from .models import Customer
from .serializers import CustomerSerializer, CustomerDetailSerializer
from backoffice.core.utils import create_audit_log, paginated_response, parse_id_list
from backoffice.core.exports import csv_response, read_csv_upload, CSVImportError

logger = logging.getLogger(__name__)

CUSTOMER_EXPORT_HEADERS = [
    'Name', 'Email', 'Email Subscription', 'Location', 'Orders', 'Amount Spent', 'Date Joined'
]

SUBSCRIBED = 'Subscribed'
NOT_SUBSCRIBED = 'Not subscribed'

# Column limits of Customer.total_spent (12 digits, 2 places) and total_orders
MAX_AMOUNT_SPENT = Decimal('9999999999.99')
MAX_ORDERS = 2147483647


def search_customers(queryset, search):
    """Match every word of `search` against first name, last name or email"""
    for word in search.split():
        queryset = queryset.filter(
            Q(first_name__icontains=word) |
            Q(last_name__icontains=word) |
            Q(email__icontains=word)
        )
    return queryset


def split_name(name):
    """Split a full name into first name and the remainder: 'Ada King Lovelace' -> ('Ada', 'King Lovelace')"""
    parts = (name or '').split()
    if not parts:
        return '', ''
    return parts[0], ' '.join(parts[1:])


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def customer_list_create(request):
    """List customers (searchable, paginated) or create a new customer"""
    if request.method == 'GET':
        queryset = Customer.objects.all().order_by('-created_at')
        search = (request.query_params.get('search') or request.query_params.get('q') or '').strip()
        if search:
            queryset = search_customers(queryset, search)
        subscribed = request.query_params.get('subscribed')
        if subscribed in ('true', 'false'):
            queryset = queryset.filter(email_subscription=subscribed == 'true')
        return paginated_response(request, queryset, CustomerSerializer)

    serializer = CustomerSerializer(data=request.data)
    if serializer.is_valid():
        customer = serializer.save()
        create_audit_log(request, 'create', 'Customer', customer.id,
                         object_name=customer.full_name, object_reference=customer.email)
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def customer_detail(request, pk):
    """Retrieve (with recent orders), update or delete a customer"""
    customer = get_object_or_404(Customer, pk=pk)

    if request.method == 'GET':
        serializer = CustomerDetailSerializer(customer)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = CustomerSerializer(customer, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            create_audit_log(request, 'update', 'Customer', customer.id, object_name=customer.full_name,
                             changes={'fields': sorted(serializer.validated_data.keys())})
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        create_audit_log(request, 'delete', 'Customer', customer.id, object_name=customer.full_name)
        customer.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def customer_bulk_delete(request):
    """Delete the customers listed in `ids`"""
    ids = parse_id_list(request.data.get('ids'))
    if not ids:
        return Response({'error': 'ids is required'}, status=status.HTTP_400_BAD_REQUEST)

    with transaction.atomic():
        customers = Customer.objects.filter(id__in=ids)
        count = customers.count()
        customers.delete()

    create_audit_log(request, 'bulk_delete', 'Customer', ','.join(str(i) for i in ids), changes={'ids': ids})
    logger.info(f"Bulk deleted {count} customers")
    return Response({'deleted': count})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def customer_export(request):
    """Download customers as CSV; `ids=1,2,3` limits the export to a selection"""
    queryset = Customer.objects.all().order_by('-created_at')
    ids = parse_id_list(request.query_params.get('ids'))
    if ids:
        queryset = queryset.filter(id__in=ids)
    search = request.query_params.get('search', '').strip()
    if search:
        queryset = search_customers(queryset, search)

    rows = (
        [
            c.full_name, c.email, SUBSCRIBED if c.email_subscription else NOT_SUBSCRIBED,
            c.location, c.total_orders, f"{c.total_spent:.2f}", c.created_at.strftime('%Y-%m-%d'),
        ]
        for c in queryset
    )
    filename = f"customers-{timezone.localdate().isoformat()}.csv"
    return csv_response(filename, CUSTOMER_EXPORT_HEADERS, rows)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@parser_classes([MultiPartParser, FormParser, JSONParser])
def customer_import(request):
    """
    Create customers from an uploaded CSV.

    Columns: name, email, emailSubscription ("Subscribed"), location (country),
    orders, amountSpent. The first word of name is the first name, the rest
    the last name.
    """
    try:
        rows = read_csv_upload(request.FILES.get('file'))
    except CSVImportError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    customers = []
    errors = []
    for line, row in enumerate(rows, start=2):
        first_name, last_name = split_name(row.get('name'))
        email = row.get('email') or ''
        if not first_name:
            errors.append({'row': line, 'error': 'name is required'})
            continue
        if email:
            try:
                validate_email(email)
            except ValidationError:
                errors.append({'row': line, 'error': f'invalid email: {email}'})
                continue
        try:
            total_orders = int(row.get('orders') or 0)
            total_spent = Decimal(row.get('amountSpent') or '0')
        except (ValueError, InvalidOperation):
            errors.append({'row': line, 'error': 'orders and amountSpent must be numbers'})
            continue
        if not total_spent.is_finite() or abs(total_spent) > MAX_AMOUNT_SPENT or abs(total_orders) > MAX_ORDERS:
            errors.append({'row': line, 'error': 'orders or amountSpent out of range'})
            continue

        customers.append(Customer(
            first_name=first_name,
            last_name=last_name,
            email=email,
            email_subscription=(row.get('emailSubscription') or '').strip().lower() == SUBSCRIBED.lower(),
            country=row.get('location') or '',
            total_orders=max(total_orders, 0),
            total_spent=max(total_spent, Decimal('0.00')).quantize(Decimal('0.01')),
        ))

    with transaction.atomic():
        created = Customer.objects.bulk_create(customers)

    if created:
        create_audit_log(request, 'import', 'Customer', 'bulk',
                         changes={'created': len(created), 'failed': len(errors)})
    logger.info(f"Customer import: {len(created)} created, {len(errors)} failed")
    return Response({'created': len(created), 'errors': errors},
                    status=status.HTTP_201_CREATED if created else status.HTTP_400_BAD_REQUEST)
