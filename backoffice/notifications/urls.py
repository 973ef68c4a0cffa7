from django.urls import path
from .views import notification_list_create, notification_read, notification_read_all, notification_delete

urlpatterns = [
    path('notifications/', notification_list_create, name='notification-list-create'),
    path('notifications/read-all/', notification_read_all, name='notification-read-all'),
    path('notifications/<int:pk>/', notification_delete, name='notification-delete'),
    path('notifications/<int:pk>/read/', notification_read, name='notification-read'),
]
