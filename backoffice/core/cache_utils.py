"""
Caching utilities for analytics queries
Uses Redis (django-redis) when configured, local memory otherwise
"""
from django.core.cache import cache
from functools import wraps
import hashlib
import logging

logger = logging.getLogger(__name__)

# Cache TTLs (in seconds)
DASHBOARD_CACHE_TTL = 300  # 5 minutes
FINANCE_CACHE_TTL = 300  # 5 minutes

ANALYTICS_PREFIXES = ('dashboard', 'finance')


def make_cache_key(prefix, *args, **kwargs):
    """Generate a unique cache key from arguments"""
    key_data = f"{prefix}:{args}:{sorted(kwargs.items())}"
    # Hash it to keep key length reasonable
    key_hash = hashlib.md5(key_data.encode()).hexdigest()
    return f"{prefix}:{key_hash}"


def cached_query(cache_ttl=60, key_prefix="query"):
    """
    Decorator to cache expensive queries

    Usage:
        @cached_query(cache_ttl=120, key_prefix="dashboard")
        def build_dashboard(period_days):
            return data
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            cache_key = make_cache_key(key_prefix, *args, **kwargs)

            cached_data = cache.get(cache_key)
            if cached_data is not None:
                logger.debug(f"Cache HIT for {key_prefix}: {cache_key}")
                return cached_data

            logger.debug(f"Cache MISS for {key_prefix}: {cache_key}")
            result = func(*args, **kwargs)
            cache.set(cache_key, result, cache_ttl)
            return result
        return wrapper
    return decorator


def invalidate_cache_pattern(pattern):
    """
    Invalidate all cache keys matching a pattern.
    Backends without pattern deletion (local memory) are cleared entirely.
    """
    delete_pattern = getattr(cache, 'delete_pattern', None)
    try:
        if delete_pattern is None:
            cache.clear()
            return
        deleted = delete_pattern(f"*{pattern}*")
        logger.info(f"Invalidated {deleted} cache keys matching pattern: {pattern}")
    except Exception as e:
        logger.warning(f"Could not invalidate cache pattern {pattern}: {str(e)}")


def invalidate_analytics_cache():
    """Invalidate dashboard and finance analytics"""
    for prefix in ANALYTICS_PREFIXES:
        invalidate_cache_pattern(prefix)
