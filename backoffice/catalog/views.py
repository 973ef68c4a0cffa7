import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, parser_classes
from rest_framework.parsers import JSONParser, MultiPartParser, FormParser
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db import transaction
from django.db.models import Count, Q
from django.shortcuts import get_object_or_404
from django.utils import timezone
from .models import Collection, Product, ProductImage
from .serializers import (
    CollectionSerializer, ProductSerializer, ProductListSerializer,
    ProductImageSerializer, InventorySerializer, BulkPriceSerializer
)
from .filters import ProductFilter
from .utils import generate_unique_sku, generate_unique_slug, move_item, apply_positions
from .label_generator import generate_label_image
from backoffice.core.utils import create_audit_log, paginated_response, parse_id_list
from backoffice.core.exports import csv_response, read_csv_upload, CSVImportError

logger = logging.getLogger(__name__)

PRODUCT_BULK_ACTIONS = ('delete', 'activate', 'draft', 'archive', 'set_collection', 'set_price')

PRODUCT_EXPORT_HEADERS = [
    'ID', 'Title', 'SKU', 'Status', 'Price', 'Compare At Price', 'Cost Per Item',
    'Quantity', 'Collection', 'Vendor', 'Product Type', 'Tags', 'Created At'
]


def filtered_products(request):
    queryset = Product.objects.select_related('collection').prefetch_related('images')
    filterset = ProductFilter(request.query_params, queryset=queryset)
    return filterset.qs.order_by('-created_at')


def parse_index(value):
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


# Product views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def product_list_create(request):
    """List products (filtered, newest first) or create a new product"""
    if request.method == 'GET':
        return paginated_response(request, filtered_products(request), ProductListSerializer)

    serializer = ProductSerializer(data=request.data)
    if serializer.is_valid():
        product = serializer.save()
        create_audit_log(request, 'create', 'Product', product.id,
                         object_name=product.title, object_reference=product.sku)
        logger.info(f"Product {product.id} created: {product.title}")
        return Response(ProductSerializer(product).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def product_detail(request, pk):
    """Retrieve, update or delete a product"""
    product = get_object_or_404(Product.objects.select_related('collection'), pk=pk)

    if request.method == 'GET':
        serializer = ProductSerializer(product)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        old_price = product.price
        serializer = ProductSerializer(product, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            product = serializer.save()
            if product.price != old_price:
                create_audit_log(request, 'price_change', 'Product', product.id, object_name=product.title,
                                 object_reference=product.sku,
                                 changes={'old_price': str(old_price), 'new_price': str(product.price)})
            create_audit_log(request, 'update', 'Product', product.id, object_name=product.title,
                             object_reference=product.sku, changes={'fields': sorted(serializer.validated_data.keys())})
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        create_audit_log(request, 'delete', 'Product', product.id,
                         object_name=product.title, object_reference=product.sku)
        product.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def product_duplicate(request, pk):
    """Copy a product with a "(Copy)" title, a fresh SKU and slug, and its images"""
    source = get_object_or_404(Product, pk=pk)
    title = f"{source.title} (Copy)"

    with transaction.atomic():
        copy = Product.objects.create(
            title=title,
            slug=generate_unique_slug(title, Product.objects.all()),
            description=source.description,
            price=source.price,
            compare_at_price=source.compare_at_price,
            cost_per_item=source.cost_per_item,
            sku=generate_unique_sku(source.title, Product.objects.all()),
            quantity=source.quantity,
            track_inventory=source.track_inventory,
            status=source.status,
            collection=source.collection,
            vendor=source.vendor,
            product_type=source.product_type,
            tags=list(source.tags or []),
        )
        ProductImage.objects.bulk_create([
            ProductImage(product=copy, url=image.url, alt_text=image.alt_text, position=image.position)
            for image in source.images.all()
        ])

    create_audit_log(request, 'create', 'Product', copy.id, object_name=copy.title,
                     object_reference=copy.sku, changes={'duplicated_from': source.id})
    return Response(ProductSerializer(copy).data, status=status.HTTP_201_CREATED)


@api_view(['PATCH'])
@permission_classes([IsAuthenticated])
def product_update_quantity(request, pk):
    """Set the inventory quantity of a product"""
    product = get_object_or_404(Product, pk=pk)
    quantity = parse_index(request.data.get('quantity'))
    if quantity is None or quantity < 0:
        return Response({'error': 'quantity must be a non-negative integer'}, status=status.HTTP_400_BAD_REQUEST)

    old_quantity = product.quantity
    product.quantity = quantity
    product.save(update_fields=['quantity', 'updated_at'])
    create_audit_log(request, 'stock_adjust', 'Product', product.id, object_name=product.title,
                     object_reference=product.sku, changes={'old_quantity': old_quantity, 'new_quantity': quantity})
    return Response(InventorySerializer(product).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def product_bulk(request):
    """
    Apply one action to many products.

    Body: {"action": "...", "ids": [..]} plus "collection" for set_collection
    and "price" for set_price.
    """
    action = request.data.get('action')
    ids = parse_id_list(request.data.get('ids'))

    if action not in PRODUCT_BULK_ACTIONS:
        return Response({'error': f"action must be one of: {', '.join(PRODUCT_BULK_ACTIONS)}"},
                        status=status.HTTP_400_BAD_REQUEST)
    if not ids:
        return Response({'error': 'ids is required'}, status=status.HTTP_400_BAD_REQUEST)

    products = Product.objects.filter(id__in=ids)
    changes = {'ids': ids, 'action': action}

    with transaction.atomic():
        if action == 'delete':
            count = products.count()
            products.delete()
            create_audit_log(request, 'bulk_delete', 'Product', ','.join(str(i) for i in ids), changes=changes)
            return Response({'deleted': count})

        now = timezone.now()
        if action in ('activate', 'draft', 'archive'):
            new_status = {'activate': 'active', 'draft': 'draft', 'archive': 'archived'}[action]
            count = products.update(status=new_status, updated_at=now)
        elif action == 'set_collection':
            collection_id = request.data.get('collection')
            collection = None
            if collection_id not in (None, '', 'uncategorized'):
                collection = get_object_or_404(Collection, pk=collection_id)
            count = products.update(collection=collection, updated_at=now)
            changes['collection'] = collection.id if collection else None
        else:  # set_price
            price_serializer = BulkPriceSerializer(data={'price': request.data.get('price')})
            if not price_serializer.is_valid():
                return Response(price_serializer.errors, status=status.HTTP_400_BAD_REQUEST)
            price = price_serializer.validated_data['price']
            count = products.update(price=price, updated_at=now)
            changes['price'] = str(price)

    create_audit_log(request, 'bulk_update', 'Product', ','.join(str(i) for i in ids), changes=changes)
    logger.info(f"Bulk {action} applied to {count} products")
    return Response({'updated': count})


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def product_images(request, pk):
    """List a product's images or append a new one"""
    product = get_object_or_404(Product, pk=pk)

    if request.method == 'GET':
        serializer = ProductImageSerializer(product.images.all(), many=True)
        return Response(serializer.data)

    serializer = ProductImageSerializer(data=request.data)
    if serializer.is_valid():
        image = serializer.save(product=product, position=product.images.count())
        return Response(ProductImageSerializer(image).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['DELETE'])
@permission_classes([IsAuthenticated])
def product_image_delete(request, pk, image_id):
    """Remove an image and close the gap in positions"""
    product = get_object_or_404(Product, pk=pk)
    image = get_object_or_404(ProductImage, pk=image_id, product=product)
    with transaction.atomic():
        image.delete()
        remaining = list(product.images.order_by('position', 'id'))
        ProductImage.objects.bulk_update(apply_positions(remaining), ['position'])
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def product_images_reorder(request, pk):
    """Drag-reorder a product's images: move old_index to new_index"""
    product = get_object_or_404(Product, pk=pk)
    old_index = parse_index(request.data.get('old_index'))
    new_index = parse_index(request.data.get('new_index'))
    if old_index is None or new_index is None:
        return Response({'error': 'old_index and new_index are required'}, status=status.HTTP_400_BAD_REQUEST)

    images = list(product.images.order_by('position', 'id'))
    try:
        images = move_item(images, old_index, new_index)
    except IndexError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    with transaction.atomic():
        ProductImage.objects.bulk_update(apply_positions(images), ['position'])

    return Response(ProductImageSerializer(images, many=True).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def product_export(request):
    """Download the filtered product list as CSV"""
    products = filtered_products(request)
    rows = (
        [
            p.id, p.title, p.sku, p.status, p.price, p.compare_at_price, p.cost_per_item,
            p.quantity, p.collection.name if p.collection else '', p.vendor, p.product_type,
            ', '.join(p.tags or []), p.created_at.strftime('%Y-%m-%d %H:%M'),
        ]
        for p in products
    )
    filename = f"products-{timezone.localdate().isoformat()}.csv"
    return csv_response(filename, PRODUCT_EXPORT_HEADERS, rows)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@parser_classes([MultiPartParser, FormParser, JSONParser])
def product_import(request):
    """
    Create products from an uploaded CSV.

    Columns: title, description, price, compare_at_price, sku, quantity,
    status, vendor, product_type, tags. Rows that fail validation are
    reported with their line number and skipped.
    """
    try:
        rows = read_csv_upload(request.FILES.get('file'))
    except CSVImportError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    created = []
    errors = []
    for line, row in enumerate(rows, start=2):
        data = {
            'title': row.get('title') or row.get('Title') or '',
            'description': row.get('description', ''),
            'price': row.get('price') or '0',
            'sku': row.get('sku') or None,
            'quantity': row.get('quantity') or 0,
            'status': (row.get('status') or 'draft').lower(),
            'vendor': row.get('vendor', ''),
            'product_type': row.get('product_type', ''),
            'tags': row.get('tags', ''),
        }
        if row.get('compare_at_price'):
            data['compare_at_price'] = row['compare_at_price']
        serializer = ProductSerializer(data=data)
        if serializer.is_valid():
            created.append(serializer.save().id)
        else:
            errors.append({'row': line, 'errors': serializer.errors})

    if created:
        create_audit_log(request, 'import', 'Product', ','.join(str(i) for i in created),
                         changes={'created': len(created), 'failed': len(errors)})
    logger.info(f"Product import: {len(created)} created, {len(errors)} failed")
    return Response({'created': len(created), 'ids': created, 'errors': errors},
                    status=status.HTTP_201_CREATED if created else status.HTTP_400_BAD_REQUEST)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def product_label(request, pk):
    """Printable SKU barcode label for a product"""
    product = get_object_or_404(Product, pk=pk)
    if not product.sku:
        return Response({'error': 'Product has no SKU'}, status=status.HTTP_400_BAD_REQUEST)

    label = generate_label_image(title=product.title, sku=product.sku, price=f"${product.price:.2f}")
    return Response({'product_id': product.id, 'sku': product.sku, 'label': label})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def inventory_list(request):
    """Tracked products with their stock label"""
    queryset = Product.objects.filter(track_inventory=True).order_by('quantity', 'title')
    search = request.query_params.get('search', '').strip()
    if search:
        queryset = queryset.filter(Q(title__icontains=search) | Q(sku__icontains=search))
    return paginated_response(request, queryset, InventorySerializer)


# Collection views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def collection_list_create(request):
    """List collections in drag order with product counts, or create one"""
    if request.method == 'GET':
        collections = Collection.objects.annotate(
            annotated_product_count=Count('products')
        ).order_by('position', 'name')
        serializer = CollectionSerializer(collections, many=True)
        return Response(serializer.data)

    serializer = CollectionSerializer(data=request.data)
    if serializer.is_valid():
        collection = serializer.save()
        create_audit_log(request, 'create', 'Collection', collection.id, object_name=collection.name)
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def collection_detail(request, pk):
    """Retrieve, update or delete a collection"""
    collection = get_object_or_404(Collection, pk=pk)

    if request.method == 'GET':
        serializer = CollectionSerializer(collection)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = CollectionSerializer(collection, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            create_audit_log(request, 'update', 'Collection', collection.id, object_name=collection.name)
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        create_audit_log(request, 'delete', 'Collection', collection.id, object_name=collection.name)
        with transaction.atomic():
            collection.delete()
            remaining = list(Collection.objects.order_by('position', 'name'))
            Collection.objects.bulk_update(apply_positions(remaining), ['position'])
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def collection_reorder(request):
    """
    Reorder collections.

    Accepts either {"old_index", "new_index"} for a single drag move, or
    {"order": [ids...]}; ids missing from "order" keep their relative order
    after the listed ones.
    """
    collections = list(Collection.objects.order_by('position', 'name'))

    if 'order' in request.data:
        order = parse_id_list(request.data.get('order'))
        by_id = {c.id: c for c in collections}
        unknown = [i for i in order if i not in by_id]
        if unknown:
            return Response({'error': f'Unknown collection ids: {unknown}'}, status=status.HTTP_400_BAD_REQUEST)
        listed = []
        for collection_id in order:
            if by_id[collection_id] not in listed:
                listed.append(by_id[collection_id])
        collections = listed + [c for c in collections if c not in listed]
    else:
        old_index = parse_index(request.data.get('old_index'))
        new_index = parse_index(request.data.get('new_index'))
        if old_index is None or new_index is None:
            return Response({'error': 'Provide order or old_index and new_index'}, status=status.HTTP_400_BAD_REQUEST)
        try:
            collections = move_item(collections, old_index, new_index)
        except IndexError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    with transaction.atomic():
        changed = apply_positions(collections)
        Collection.objects.bulk_update(changed, ['position'])

    create_audit_log(request, 'reorder', 'Collection', ','.join(str(c.id) for c in collections),
                     changes={'order': [c.id for c in collections]})
    return Response(CollectionSerializer(collections, many=True).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def collection_toggle(request, pk):
    """Flip a collection between active (featured and visible) and inactive"""
    collection = get_object_or_404(Collection, pk=pk)
    active = not collection.is_featured
    collection.is_featured = active
    collection.is_visible = active
    collection.save(update_fields=['is_featured', 'is_visible', 'updated_at'])
    create_audit_log(request, 'update', 'Collection', collection.id, object_name=collection.name,
                     changes={'is_featured': active, 'is_visible': active})
    return Response(CollectionSerializer(collection).data)
