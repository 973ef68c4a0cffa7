from django.apps import AppConfig


class CoreConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'backoffice.core'

    def ready(self):
        """Import signals when app is ready"""
        import backoffice.core.cache_signals  # noqa: F401  # Analytics cache invalidation
