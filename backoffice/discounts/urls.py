from django.urls import path
from .views import discount_list_create, discount_detail, discount_bulk, coupon_validate

urlpatterns = [
    path('discounts/', discount_list_create, name='discount-list-create'),
    path('discounts/bulk/', discount_bulk, name='discount-bulk'),
    path('discounts/<int:pk>/', discount_detail, name='discount-detail'),
    path('coupons/validate/', coupon_validate, name='coupon-validate'),
]
