import django_filters
from django.db.models import Q
from .models import Product
from .utils import LOW_STOCK_THRESHOLD


class ProductFilter(django_filters.FilterSet):
    """Filter for the product list, export and bulk screens"""

    # Searches title, SKU, description and vendor
    search = django_filters.CharFilter(method='filter_search', label='Search')

    status = django_filters.ChoiceFilter(choices=Product.STATUS_CHOICES)
    # Collection id, or "uncategorized" for products without one
    collection = django_filters.CharFilter(method='filter_collection', label='Collection')
    price_min = django_filters.NumberFilter(field_name='price', lookup_expr='gte')
    price_max = django_filters.NumberFilter(field_name='price', lookup_expr='lte')
    stock_status = django_filters.ChoiceFilter(
        method='filter_stock_status',
        choices=[('in_stock', 'In Stock'), ('out_of_stock', 'Out of Stock'), ('low_stock', 'Low Stock')],
        label='Stock Status',
    )
    vendor = django_filters.CharFilter(field_name='vendor', lookup_expr='iexact')

    class Meta:
        model = Product
        fields = ['search', 'status', 'collection', 'price_min', 'price_max', 'stock_status', 'vendor']

    def filter_search(self, queryset, name, value):
        search = value.strip() if value else ''
        if not search:
            return queryset
        return queryset.filter(
            Q(title__icontains=search) |
            Q(sku__icontains=search) |
            Q(description__icontains=search) |
            Q(vendor__icontains=search)
        )

    def filter_collection(self, queryset, name, value):
        if not value or value == 'all':
            return queryset
        if value == 'uncategorized':
            return queryset.filter(collection__isnull=True)
        try:
            return queryset.filter(collection_id=int(value))
        except (TypeError, ValueError):
            return queryset.none()

    def filter_stock_status(self, queryset, name, value):
        if value == 'in_stock':
            return queryset.filter(quantity__gt=0)
        if value == 'out_of_stock':
            return queryset.filter(quantity__lte=0)
        if value == 'low_stock':
            return queryset.filter(quantity__gte=1, quantity__lte=LOW_STOCK_THRESHOLD)
        return queryset
