from rest_framework import serializers
from backoffice.catalog.models import Product, Collection
from .models import Discount


class DiscountSerializer(serializers.ModelSerializer):
    products = serializers.PrimaryKeyRelatedField(many=True, queryset=Product.objects.all(), required=False)
    collections = serializers.PrimaryKeyRelatedField(many=True, queryset=Collection.objects.all(), required=False)
    status = serializers.CharField(read_only=True)

    class Meta:
        model = Discount
        fields = ['id', 'code', 'description', 'discount_type', 'discount_value', 'min_purchase_amount',
                  'max_discount_amount', 'starts_at', 'expires_at', 'usage_limit', 'usage_count',
                  'is_active', 'applies_to', 'products', 'collections', 'status', 'created_at', 'updated_at']
        read_only_fields = ['usage_count', 'created_at', 'updated_at']
        # Uniqueness is checked case-insensitively in validate_code
        extra_kwargs = {'code': {'validators': []}}

    def validate_code(self, value):
        code = value.strip().upper()
        if not code:
            raise serializers.ValidationError('Discount code is required')
        existing = Discount.objects.filter(code__iexact=code)
        if self.instance is not None:
            existing = existing.exclude(pk=self.instance.pk)
        if existing.exists():
            raise serializers.ValidationError('A discount with this code already exists')
        return code

    def validate(self, attrs):
        discount_type = attrs.get('discount_type', getattr(self.instance, 'discount_type', 'percentage'))
        value = attrs.get('discount_value', getattr(self.instance, 'discount_value', None))
        if discount_type == 'percentage' and value is not None and value > 100:
            raise serializers.ValidationError({'discount_value': 'Percentage discount cannot exceed 100'})

        starts_at = attrs.get('starts_at', getattr(self.instance, 'starts_at', None))
        expires_at = attrs.get('expires_at', getattr(self.instance, 'expires_at', None))
        if starts_at and expires_at and expires_at <= starts_at:
            raise serializers.ValidationError({'expires_at': 'End date must be after the start date'})

        applies_to = attrs.get('applies_to', getattr(self.instance, 'applies_to', 'all'))
        if applies_to == 'products' and 'products' in attrs and not attrs['products']:
            raise serializers.ValidationError({'products': 'Select at least one product'})
        if applies_to == 'collections' and 'collections' in attrs and not attrs['collections']:
            raise serializers.ValidationError({'collections': 'Select at least one collection'})
        return attrs


class CouponValidateSerializer(serializers.Serializer):
    code = serializers.CharField()
    order_total = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
