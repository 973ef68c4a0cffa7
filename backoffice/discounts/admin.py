from django.contrib import admin
from .models import Discount


@admin.register(Discount)
class DiscountAdmin(admin.ModelAdmin):
    list_display = ['code', 'discount_type', 'discount_value', 'usage_count', 'usage_limit',
                    'is_active', 'starts_at', 'expires_at']
    list_filter = ['discount_type', 'is_active', 'applies_to']
    search_fields = ['code', 'description']
    ordering = ['-created_at']
    readonly_fields = ['usage_count', 'created_at', 'updated_at']
    filter_horizontal = ['products', 'collections']
