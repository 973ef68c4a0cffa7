"""
URL configuration for the store back-office.

Every app mounts its API routes under /api/v1/.
"""
from django.contrib import admin
from django.urls import path, include

admin.site.site_header = "Store Back-Office"
admin.site.site_title = "Store Back-Office Portal"
admin.site.index_title = "Store administration"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('backoffice.core.urls')),
    path('api/v1/', include('backoffice.catalog.urls')),
    path('api/v1/', include('backoffice.customers.urls')),
    path('api/v1/', include('backoffice.discounts.urls')),
    path('api/v1/', include('backoffice.orders.urls')),
    path('api/v1/', include('backoffice.reports.urls')),
    path('api/v1/', include('backoffice.notifications.urls')),
    path('api/v1/', include('backoffice.store.urls')),
]
