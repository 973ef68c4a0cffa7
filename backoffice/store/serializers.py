from django.contrib.auth import get_user_model
from rest_framework import serializers
from .defaults import PERMISSIONS
from .models import StoreSettings, Permission, StoreRole, StoreUser

User = get_user_model()

PERMISSION_NAMES = {name for name, _, _ in PERMISSIONS}
ADDRESS_KEYS = ('line1', 'line2', 'city', 'state', 'postcode', 'country')


class StoreSettingsSerializer(serializers.ModelSerializer):
    name = serializers.CharField(source='store.name', max_length=255)

    class Meta:
        model = StoreSettings
        fields = ['name', 'logo_url', 'hero_image_url', 'address', 'time_zone', 'auto_dst', 'currency',
                  'language', 'reviews_enabled', 'star_ratings_enabled', 'star_ratings_required',
                  'shipping_methods', 'payment_methods', 'site_visibility', 'updated_at']
        read_only_fields = ['shipping_methods', 'payment_methods', 'updated_at']

    def validate_name(self, value):
        if not value.strip():
            raise serializers.ValidationError('Store name is required')
        return value.strip()

    def validate_address(self, value):
        if not isinstance(value, dict):
            raise serializers.ValidationError('Address must be an object')
        unknown = set(value) - set(ADDRESS_KEYS)
        if unknown:
            raise serializers.ValidationError(f"Unknown address fields: {', '.join(sorted(unknown))}")
        return {key: str(value.get(key) or '') for key in ADDRESS_KEYS}

    def update(self, instance, validated_data):
        store_data = validated_data.pop('store', None)
        if store_data and 'name' in store_data:
            instance.store.name = store_data['name']
            instance.store.save(update_fields=['name', 'updated_at'])
        return super().update(instance, validated_data)


class ReviewSettingsSerializer(serializers.Serializer):
    reviewsEnabled = serializers.BooleanField(source='reviews_enabled')
    starRatingsEnabled = serializers.BooleanField(source='star_ratings_enabled')
    starRatingsRequired = serializers.BooleanField(source='star_ratings_required')


class MethodSerializer(serializers.Serializer):
    """A shipping or payment method entry"""
    id = serializers.CharField(max_length=50)
    name = serializers.CharField(max_length=100)
    enabled = serializers.BooleanField()
    settings = serializers.DictField(required=False, default=dict)


class MethodListSerializer(serializers.Serializer):
    methods = MethodSerializer(many=True)

    def validate_methods(self, value):
        ids = [method['id'] for method in value]
        if len(ids) != len(set(ids)):
            raise serializers.ValidationError('Method ids must be unique')
        return value


class VisibilitySerializer(serializers.Serializer):
    site_visibility = serializers.ChoiceField(choices=StoreSettings._meta.get_field('site_visibility').choices)


class PermissionSerializer(serializers.ModelSerializer):
    class Meta:
        model = Permission
        fields = ['id', 'name', 'description', 'category']


class StoreRoleSerializer(serializers.ModelSerializer):
    member_count = serializers.SerializerMethodField()

    class Meta:
        model = StoreRole
        fields = ['id', 'name', 'description', 'permissions', 'member_count', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def get_member_count(self, obj):
        return obj.members.count()

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Role name is required')
        store = self.context.get('store')
        duplicates = StoreRole.objects.filter(store=store, name__iexact=value)
        if self.instance is not None:
            duplicates = duplicates.exclude(pk=self.instance.pk)
        if duplicates.exists():
            raise serializers.ValidationError('A role with this name already exists')
        return value

    def validate_permissions(self, value):
        if not isinstance(value, list):
            raise serializers.ValidationError('Permissions must be a list of names')
        unknown = [name for name in value if name not in PERMISSION_NAMES]
        if unknown:
            raise serializers.ValidationError(f"Unknown permissions: {', '.join(map(str, unknown))}")
        # Keep order, drop duplicates
        return list(dict.fromkeys(value))


class StoreUserSerializer(serializers.ModelSerializer):
    user_id = serializers.PrimaryKeyRelatedField(queryset=User.objects.all(), source='user')
    username = serializers.CharField(source='user.username', read_only=True)
    email = serializers.EmailField(source='user.email', read_only=True)
    role_id = serializers.PrimaryKeyRelatedField(
        queryset=StoreRole.objects.all(), source='role', required=False, allow_null=True
    )
    role_name = serializers.CharField(source='role.name', read_only=True, allow_null=True)

    class Meta:
        model = StoreUser
        fields = ['id', 'user_id', 'username', 'email', 'role_id', 'role_name', 'status', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate(self, attrs):
        store = self.context.get('store')
        role = attrs.get('role')
        if role is not None and store is not None and role.store_id != store.id:
            raise serializers.ValidationError({'role_id': 'Role belongs to another store'})
        user = attrs.get('user')
        if user is not None and self.instance is None:
            if StoreUser.objects.filter(store=store, user=user).exists():
                raise serializers.ValidationError({'user_id': 'User is already a member of this store'})
        return attrs
