from django.urls import path
from .views import (
    store_settings, review_settings, shipping_settings, payment_settings, visibility_settings,
    permission_list, role_list_create, role_detail, store_user_list_create, store_user_detail
)

urlpatterns = [
    # Settings
    path('store/settings/', store_settings, name='store-settings'),
    path('store/settings/reviews/', review_settings, name='store-settings-reviews'),
    path('store/settings/shipping/', shipping_settings, name='store-settings-shipping'),
    path('store/settings/payments/', payment_settings, name='store-settings-payments'),
    path('store/settings/visibility/', visibility_settings, name='store-settings-visibility'),

    # Roles and staff
    path('store/permissions/', permission_list, name='store-permissions'),
    path('store/roles/', role_list_create, name='store-role-list-create'),
    path('store/roles/<int:pk>/', role_detail, name='store-role-detail'),
    path('store/users/', store_user_list_create, name='store-user-list-create'),
    path('store/users/<int:pk>/', store_user_detail, name='store-user-detail'),
]
