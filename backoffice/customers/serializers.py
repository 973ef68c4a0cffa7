from rest_framework import serializers
from .models import Customer


class CustomerSerializer(serializers.ModelSerializer):
    full_name = serializers.CharField(read_only=True)
    location = serializers.CharField(read_only=True)

    class Meta:
        model = Customer
        fields = ['id', 'first_name', 'last_name', 'full_name', 'email', 'phone', 'email_subscription',
                  'address', 'city', 'state', 'postal_code', 'country', 'location', 'notes',
                  'total_orders', 'total_spent', 'created_at', 'updated_at']
        read_only_fields = ['total_orders', 'total_spent', 'created_at', 'updated_at']

    def validate_first_name(self, value):
        if not value.strip():
            raise serializers.ValidationError('First name is required')
        return value.strip()


class CustomerDetailSerializer(CustomerSerializer):
    recent_orders = serializers.SerializerMethodField()

    class Meta(CustomerSerializer.Meta):
        fields = CustomerSerializer.Meta.fields + ['recent_orders']

    def get_recent_orders(self, obj):
        from backoffice.orders.serializers import OrderListSerializer
        orders = obj.orders.order_by('-created_at')[:10]
        return OrderListSerializer(orders, many=True).data
