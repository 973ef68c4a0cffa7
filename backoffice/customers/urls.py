from django.urls import path
from .views import (
    customer_list_create, customer_detail, customer_bulk_delete,
    customer_export, customer_import
)

urlpatterns = [
    path('customers/', customer_list_create, name='customer-list-create'),
    path('customers/bulk-delete/', customer_bulk_delete, name='customer-bulk-delete'),
    path('customers/export/', customer_export, name='customer-export'),
    path('customers/import/', customer_import, name='customer-import'),
    path('customers/<int:pk>/', customer_detail, name='customer-detail'),
]
