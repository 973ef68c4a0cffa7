from django.contrib import admin
from .models import Collection, Product, ProductImage


class ProductImageInline(admin.TabularInline):
    model = ProductImage
    extra = 0
    fields = ['url', 'alt_text', 'position']


@admin.register(Collection)
class CollectionAdmin(admin.ModelAdmin):
    list_display = ['name', 'slug', 'is_featured', 'is_visible', 'position', 'created_at']
    list_filter = ['is_featured', 'is_visible']
    search_fields = ['name', 'slug']
    ordering = ['position', 'name']
    prepopulated_fields = {'slug': ('name',)}


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['title', 'sku', 'price', 'quantity', 'status', 'collection', 'created_at']
    list_filter = ['status', 'track_inventory', 'collection', 'created_at']
    search_fields = ['title', 'sku', 'description', 'vendor']
    ordering = ['-created_at']
    readonly_fields = ['created_at', 'updated_at']
    inlines = [ProductImageInline]
