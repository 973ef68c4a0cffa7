from rest_framework import serializers
from .models import Collection, Product, ProductImage
from .utils import generate_unique_sku, generate_unique_slug


class CollectionSerializer(serializers.ModelSerializer):
    product_count = serializers.SerializerMethodField()

    class Meta:
        model = Collection
        fields = ['id', 'name', 'slug', 'description', 'image_url', 'is_featured', 'is_visible',
                  'position', 'product_count', 'created_at', 'updated_at']
        read_only_fields = ['position', 'created_at', 'updated_at']
        extra_kwargs = {'slug': {'required': False}}

    def get_product_count(self, obj):
        # List view annotates the count
        if hasattr(obj, 'annotated_product_count'):
            return obj.annotated_product_count
        return obj.products.count()

    def create(self, validated_data):
        if not validated_data.get('slug'):
            validated_data['slug'] = generate_unique_slug(validated_data['name'], Collection.objects.all())
        last = Collection.objects.order_by('-position').values_list('position', flat=True).first()
        validated_data['position'] = 0 if last is None else last + 1
        return super().create(validated_data)


class ProductImageSerializer(serializers.ModelSerializer):
    class Meta:
        model = ProductImage
        fields = ['id', 'product', 'url', 'alt_text', 'position', 'created_at']
        read_only_fields = ['product', 'position', 'created_at']


class ProductSerializer(serializers.ModelSerializer):
    images = ProductImageSerializer(many=True, read_only=True)

    # For reading: return the nested collection
    collection = CollectionSerializer(read_only=True)

    # For writing: accept integer IDs
    collection_id = serializers.PrimaryKeyRelatedField(
        queryset=Collection.objects.all(),
        source='collection',
        write_only=True,
        required=False,
        allow_null=True
    )
    image_urls = serializers.ListField(
        child=serializers.URLField(max_length=1000),
        write_only=True,
        required=False
    )
    inventory_status = serializers.CharField(read_only=True)
    discount_percentage = serializers.IntegerField(read_only=True)

    class Meta:
        model = Product
        fields = ['id', 'title', 'slug', 'description', 'price', 'compare_at_price', 'cost_per_item',
                  'sku', 'quantity', 'track_inventory', 'status', 'collection', 'collection_id',
                  'vendor', 'product_type', 'tags', 'images', 'image_urls', 'inventory_status',
                  'discount_percentage', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']
        extra_kwargs = {'slug': {'required': False}}

    def validate_title(self, value):
        if not value.strip():
            raise serializers.ValidationError('Product title is required')
        return value.strip()

    def validate_sku(self, value):
        # Blank SKU means "generate one"
        return value.strip() if value and value.strip() else None

    def validate_tags(self, value):
        if isinstance(value, str):
            value = value.split(',')
        if not isinstance(value, list):
            raise serializers.ValidationError('Tags must be a list of strings')
        return [str(tag).strip() for tag in value if str(tag).strip()]

    def create(self, validated_data):
        image_urls = validated_data.pop('image_urls', [])
        if not validated_data.get('slug'):
            validated_data['slug'] = generate_unique_slug(validated_data['title'], Product.objects.all())
        if not validated_data.get('sku'):
            validated_data['sku'] = generate_unique_sku(validated_data['title'], Product.objects.all())
        product = super().create(validated_data)
        for position, url in enumerate(image_urls):
            ProductImage.objects.create(product=product, url=url, position=position)
        return product

    def update(self, instance, validated_data):
        validated_data.pop('image_urls', None)
        if 'slug' in validated_data and not validated_data['slug']:
            validated_data['slug'] = generate_unique_slug(
                validated_data.get('title', instance.title), Product.objects.all(), exclude_pk=instance.pk
            )
        if 'sku' in validated_data and not validated_data['sku']:
            validated_data['sku'] = instance.sku or generate_unique_sku(instance.title, Product.objects.all())
        return super().update(instance, validated_data)


class ProductListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for product lists and search results"""
    collection_name = serializers.CharField(source='collection.name', read_only=True, default=None)
    image = serializers.SerializerMethodField()
    inventory_status = serializers.CharField(read_only=True)

    class Meta:
        model = Product
        fields = ['id', 'title', 'slug', 'sku', 'price', 'compare_at_price', 'quantity', 'status',
                  'collection', 'collection_name', 'vendor', 'product_type', 'image', 'inventory_status',
                  'created_at']

    def get_image(self, obj):
        images = list(obj.images.all())
        return images[0].url if images else None


class InventorySerializer(serializers.ModelSerializer):
    inventory_status = serializers.CharField(read_only=True)

    class Meta:
        model = Product
        fields = ['id', 'title', 'sku', 'quantity', 'status', 'inventory_status', 'updated_at']


class BulkPriceSerializer(serializers.Serializer):
    """Price for the set_price bulk action; same limits as Product.price"""
    price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)
