from django.urls import path
from .views import (
    product_list_create, product_detail, product_duplicate, product_update_quantity,
    product_bulk, product_images, product_image_delete, product_images_reorder,
    product_export, product_import, product_label,
    inventory_list,
    collection_list_create, collection_detail, collection_reorder, collection_toggle
)

urlpatterns = [
    # Product endpoints
    path('products/', product_list_create, name='product-list-create'),
    path('products/bulk/', product_bulk, name='product-bulk'),
    path('products/export/', product_export, name='product-export'),
    path('products/import/', product_import, name='product-import'),
    path('products/<int:pk>/', product_detail, name='product-detail'),
    path('products/<int:pk>/duplicate/', product_duplicate, name='product-duplicate'),
    path('products/<int:pk>/quantity/', product_update_quantity, name='product-quantity'),
    path('products/<int:pk>/label/', product_label, name='product-label'),
    path('products/<int:pk>/images/', product_images, name='product-images'),
    path('products/<int:pk>/images/reorder/', product_images_reorder, name='product-images-reorder'),
    path('products/<int:pk>/images/<int:image_id>/', product_image_delete, name='product-image-delete'),

    # Inventory
    path('inventory/', inventory_list, name='inventory-list'),

    # Collection endpoints
    path('collections/', collection_list_create, name='collection-list-create'),
    path('collections/reorder/', collection_reorder, name='collection-reorder'),
    path('collections/<int:pk>/', collection_detail, name='collection-detail'),
    path('collections/<int:pk>/toggle/', collection_toggle, name='collection-toggle'),
]
