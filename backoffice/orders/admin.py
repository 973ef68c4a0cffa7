from django.contrib import admin
from .models import Order, OrderItem, ShippingAddress, BillingAddress, OrderHistory


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    fields = ['product', 'product_name', 'quantity', 'price', 'total']


class ShippingAddressInline(admin.StackedInline):
    model = ShippingAddress
    extra = 0


class BillingAddressInline(admin.StackedInline):
    model = BillingAddress
    extra = 0


class OrderHistoryInline(admin.TabularInline):
    model = OrderHistory
    extra = 0
    readonly_fields = ['status_from', 'status_to', 'notes', 'created_by', 'created_at']
    can_delete = False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ['order_number', 'customer_name', 'payment_status', 'fulfillment_status', 'total', 'created_at']
    list_filter = ['payment_status', 'fulfillment_status', 'is_open', 'created_at']
    search_fields = ['order_number', 'customer_name', 'customer_email']
    ordering = ['-created_at']
    readonly_fields = ['created_at', 'updated_at', 'created_by']
    inlines = [OrderItemInline, ShippingAddressInline, BillingAddressInline, OrderHistoryInline]
