"""
Search engine URL submission (IndexNow protocol).

Submissions are fire-and-forget: failures are logged and dropped, never
retried and never reported to the caller.
"""
import logging
import threading
from urllib.parse import urlparse

import requests

from .conf import blog_settings, build_post_url

logger = logging.getLogger(__name__)


def build_payload(urls):
    site_url = blog_settings.SITE_URL.rstrip("/")
    key = blog_settings.SEARCH_INDEX_KEY
    return {
        "host": urlparse(site_url).hostname,
        "key": key,
        "keyLocation": f"{site_url}/{key}.txt",
        "urlList": list(urls),
    }


def submit_urls(urls):
    """
    POST urls to the configured endpoint.

    Returns True on a 2xx answer. Network errors and other statuses are
    logged and reported as False.
    """
    try:
        response = requests.post(
            blog_settings.SEARCH_INDEX_ENDPOINT,
            json=build_payload(urls),
            timeout=blog_settings.SEARCH_INDEX_TIMEOUT,
        )
        response.raise_for_status()
    except requests.RequestException as exc:
        logger.warning("Search index submission failed for %s: %s", urls, exc)
        return False
    logger.info("Submitted %d URL(s) to search index (status %s)", len(urls), response.status_code)
    return True


def submit_post_to_index(slug):
    """Submit a post URL, in a daemon thread unless SEARCH_INDEX_ASYNC is off."""
    if not blog_settings.SEARCH_INDEX_ENABLED:
        return
    urls = [build_post_url(slug)]
    if blog_settings.SEARCH_INDEX_ASYNC:
        t = threading.Thread(target=submit_urls, args=(urls,), daemon=True)
        t.start()
    else:
        submit_urls(urls)
