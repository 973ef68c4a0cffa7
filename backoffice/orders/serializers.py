from rest_framework import serializers
from backoffice.catalog.models import Product
from backoffice.customers.models import Customer
from .models import Order, OrderItem, ShippingAddress, BillingAddress, OrderHistory

ADDRESS_FIELDS = ['first_name', 'last_name', 'address_line1', 'address_line2', 'city', 'state',
                  'postal_code', 'country', 'phone']


class OrderItemSerializer(serializers.ModelSerializer):
    product_id = serializers.IntegerField(source='product.id', read_only=True, allow_null=True)
    sku = serializers.CharField(source='product.sku', read_only=True, allow_null=True)

    class Meta:
        model = OrderItem
        fields = ['id', 'product_id', 'sku', 'product_name', 'quantity', 'price', 'total', 'options']


class ShippingAddressSerializer(serializers.ModelSerializer):
    class Meta:
        model = ShippingAddress
        fields = ['id'] + ADDRESS_FIELDS


class BillingAddressSerializer(serializers.ModelSerializer):
    class Meta:
        model = BillingAddress
        fields = ['id'] + ADDRESS_FIELDS


class OrderHistorySerializer(serializers.ModelSerializer):
    created_by_name = serializers.CharField(source='created_by.username', read_only=True, allow_null=True)

    class Meta:
        model = OrderHistory
        fields = ['id', 'status_from', 'status_to', 'notes', 'created_by', 'created_by_name', 'created_at']


class OrderListSerializer(serializers.ModelSerializer):
    item_count = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = ['id', 'order_number', 'customer', 'customer_name', 'customer_email', 'payment_status',
                  'fulfillment_status', 'total', 'is_open', 'item_count', 'created_at']

    def get_item_count(self, obj):
        if hasattr(obj, 'annotated_item_count'):
            return obj.annotated_item_count or 0
        return sum(item.quantity for item in obj.items.all())


class OrderDetailSerializer(serializers.ModelSerializer):
    items = OrderItemSerializer(many=True, read_only=True)
    shipping_address = serializers.SerializerMethodField()
    billing_address = serializers.SerializerMethodField()
    history = OrderHistorySerializer(many=True, read_only=True)
    created_by_name = serializers.CharField(source='created_by.username', read_only=True, allow_null=True)

    class Meta:
        model = Order
        fields = ['id', 'order_number', 'customer', 'customer_name', 'customer_email', 'payment_status',
                  'fulfillment_status', 'subtotal', 'tax', 'shipping', 'discount', 'total',
                  'discount_code', 'notes', 'is_open', 'tracking_info', 'items', 'shipping_address',
                  'billing_address', 'history', 'created_by', 'created_by_name', 'created_at', 'updated_at']

    def get_shipping_address(self, obj):
        address = getattr(obj, 'shipping_address', None)
        return ShippingAddressSerializer(address).data if address else None

    def get_billing_address(self, obj):
        address = getattr(obj, 'billing_address', None)
        return BillingAddressSerializer(address).data if address else None


class AddressInputSerializer(serializers.Serializer):
    first_name = serializers.CharField(max_length=150, required=False, allow_blank=True)
    last_name = serializers.CharField(max_length=150, required=False, allow_blank=True)
    address_line1 = serializers.CharField(max_length=255, required=False, allow_blank=True)
    address_line2 = serializers.CharField(max_length=255, required=False, allow_blank=True)
    city = serializers.CharField(max_length=120, required=False, allow_blank=True)
    state = serializers.CharField(max_length=120, required=False, allow_blank=True)
    postal_code = serializers.CharField(max_length=20, required=False, allow_blank=True)
    country = serializers.CharField(max_length=120)
    phone = serializers.CharField(max_length=30, required=False, allow_blank=True)


class OrderItemInputSerializer(serializers.Serializer):
    product_id = serializers.PrimaryKeyRelatedField(
        queryset=Product.objects.all(), source='product', required=False, allow_null=True
    )
    product_name = serializers.CharField(max_length=255, required=False, allow_blank=True)
    quantity = serializers.IntegerField(min_value=1)
    price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0, required=False, allow_null=True)
    options = serializers.DictField(required=False)

    def validate(self, attrs):
        product = attrs.get('product')
        if product is None:
            # Custom line items carry their own name and price
            if not attrs.get('product_name'):
                raise serializers.ValidationError('product_name is required for custom items')
            if attrs.get('price') is None:
                raise serializers.ValidationError('price is required for custom items')
        return attrs


class OrderCreateSerializer(serializers.Serializer):
    customer_id = serializers.PrimaryKeyRelatedField(
        queryset=Customer.objects.all(), source='customer', required=False, allow_null=True
    )
    customer_name = serializers.CharField(max_length=255, required=False, allow_blank=True)
    customer_email = serializers.EmailField(required=False, allow_blank=True)
    items = OrderItemInputSerializer(many=True)
    tax = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False)
    shipping = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False)
    discount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False)
    discount_code = serializers.CharField(max_length=50, required=False, allow_blank=True)
    payment_status = serializers.ChoiceField(choices=Order.PAYMENT_STATUS_CHOICES, required=False)
    fulfillment_status = serializers.ChoiceField(choices=Order.FULFILLMENT_STATUS_CHOICES, required=False)
    notes = serializers.CharField(required=False, allow_blank=True)
    shipping_address = AddressInputSerializer(required=False, allow_null=True)
    billing_address = AddressInputSerializer(required=False, allow_null=True)

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError('At least one item is required')
        return value


class OrderUpdateSerializer(serializers.ModelSerializer):
    class Meta:
        model = Order
        fields = ['customer', 'customer_name', 'customer_email', 'notes', 'is_open']


class OrderStatusSerializer(serializers.Serializer):
    payment_status = serializers.ChoiceField(choices=Order.PAYMENT_STATUS_CHOICES, required=False)
    fulfillment_status = serializers.ChoiceField(choices=Order.FULFILLMENT_STATUS_CHOICES, required=False)
    notes = serializers.CharField(required=False, allow_blank=True)

    def validate(self, attrs):
        if not attrs.get('payment_status') and not attrs.get('fulfillment_status'):
            raise serializers.ValidationError('payment_status or fulfillment_status is required')
        return attrs


class TrackingInfoSerializer(serializers.Serializer):
    tracking_number = serializers.CharField(max_length=100, allow_blank=True, required=False)
    carrier = serializers.CharField(max_length=100, allow_blank=True, required=False)


class FulfillSerializer(serializers.Serializer):
    tracking_info = TrackingInfoSerializer(many=True)
    notify_customer = serializers.BooleanField(default=False)
