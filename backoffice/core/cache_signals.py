"""
Signal handlers that drop cached analytics when the underlying rows change
"""
import logging
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver
from .cache_utils import invalidate_analytics_cache

logger = logging.getLogger(__name__)


@receiver(post_save, sender='orders.Order')
@receiver(post_delete, sender='orders.Order')
def invalidate_on_order_change(sender, instance, **kwargs):
    logger.debug(f"Order {instance.pk} changed, invalidating analytics cache")
    invalidate_analytics_cache()


@receiver(post_save, sender='catalog.Product')
@receiver(post_delete, sender='catalog.Product')
def invalidate_on_product_change(sender, instance, **kwargs):
    # Dashboard shows active product count
    invalidate_analytics_cache()
