"""
Post listing cache.

Listing responses are cached per filter combination. Every key embeds a
generation number; invalidation bumps the generation, which orphans all
cached listings at once on any cache backend.
"""
import logging
from urllib.parse import urlencode

from django.core.cache import caches

from .conf import blog_settings

logger = logging.getLogger(__name__)


def _cache():
    return caches[blog_settings.POST_CACHE_ALIAS]


def _generation_key():
    return f"{blog_settings.POST_CACHE_PREFIX}:generation"


def current_generation():
    return _cache().get_or_set(_generation_key(), 1, None)


def listing_key(filters):
    """Cache key for a listing with the given filter mapping."""
    query = urlencode(sorted((k, v) for k, v in filters.items() if v not in (None, "")))
    return f"{blog_settings.POST_CACHE_PREFIX}:{current_generation()}:list:{query}"


def get_listing(key):
    return _cache().get(key)


def set_listing(key, payload):
    """Store a listing under a key taken before it was built."""
    _cache().set(key, payload, blog_settings.POST_CACHE_TIMEOUT)


def invalidate_post_caches():
    """Drop every cached post listing. Errors are logged, never raised."""
    cache = _cache()
    key = _generation_key()
    try:
        try:
            generation = cache.incr(key)
        except ValueError:
            # Key expired or never set
            cache.set(key, 2, None)
            generation = 2
    except Exception:
        logger.warning("Could not invalidate post caches", exc_info=True)
        return None
    logger.info("Invalidated post listing caches (generation %s)", generation)
    return generation
