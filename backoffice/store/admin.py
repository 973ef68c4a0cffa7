from django.contrib import admin
from .models import Store, StoreSettings, Permission, StoreRole, StoreUser


class StoreSettingsInline(admin.StackedInline):
    model = StoreSettings
    can_delete = False


@admin.register(Store)
class StoreAdmin(admin.ModelAdmin):
    list_display = ['name', 'owner', 'created_at']
    inlines = [StoreSettingsInline]


@admin.register(Permission)
class PermissionAdmin(admin.ModelAdmin):
    list_display = ['name', 'category', 'description']
    list_filter = ['category']
    search_fields = ['name', 'description']


@admin.register(StoreRole)
class StoreRoleAdmin(admin.ModelAdmin):
    list_display = ['name', 'store', 'created_at']
    search_fields = ['name']


@admin.register(StoreUser)
class StoreUserAdmin(admin.ModelAdmin):
    list_display = ['user', 'store', 'role', 'status', 'created_at']
    list_filter = ['status', 'role']
    search_fields = ['user__username', 'user__email']
