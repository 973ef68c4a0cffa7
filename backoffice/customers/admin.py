from django.contrib import admin
from .models import Customer


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ['first_name', 'last_name', 'email', 'phone', 'email_subscription', 'country',
                    'total_orders', 'total_spent', 'created_at']
    list_filter = ['email_subscription', 'country', 'created_at']
    search_fields = ['first_name', 'last_name', 'email', 'phone']
    ordering = ['-created_at']
    readonly_fields = ['total_orders', 'total_spent', 'created_at', 'updated_at']
