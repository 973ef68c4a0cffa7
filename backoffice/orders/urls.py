from django.urls import path
from .views import (
    order_list_create, order_detail, order_status, order_mark_paid, order_fulfill,
    order_apply_discount, order_receipt, order_packing_slip, order_export
)

urlpatterns = [
    path('orders/', order_list_create, name='order-list-create'),
    path('orders/export/', order_export, name='order-export'),
    path('orders/<int:pk>/', order_detail, name='order-detail'),
    path('orders/<int:pk>/status/', order_status, name='order-status'),
    path('orders/<int:pk>/mark-paid/', order_mark_paid, name='order-mark-paid'),
    path('orders/<int:pk>/fulfill/', order_fulfill, name='order-fulfill'),
    path('orders/<int:pk>/apply-discount/', order_apply_discount, name='order-apply-discount'),
    path('orders/<int:pk>/receipt/', order_receipt, name='order-receipt'),
    path('orders/<int:pk>/packing-slip/', order_packing_slip, name='order-packing-slip'),
]
