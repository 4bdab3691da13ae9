"""
Configuration settings for django-blog-workflow.

Override these in your Django settings.py:

    BLOG_WORKFLOW = {
        'ADMIN_GROUP': 'Editors',
        'SITE_URL': 'https://example.com',
        'SEARCH_INDEX_ENABLED': True,
        'SEARCH_INDEX_KEY': '...',
        ...
    }
"""
from django.conf import settings

DEFAULTS = {
    # Roles: staff users and members of this group act as admins
    "ADMIN_GROUP": "Admin",

    # Public URLs
    "SITE_URL": "http://localhost:8000",
    "POST_PATH": "/blog/{slug}",

    # Posts
    "POSTS_PER_PAGE": 10,
    "SLUG_MAX_LENGTH": 100,
    "WORDS_PER_MINUTE": 200,
    "EXCERPT_LENGTH": 297,

    # Comments
    "MODERATE_COMMENTS": True,
    "COMMENT_MAX_LENGTH": 1000,

    # Notifications
    "NOTIFICATIONS_PER_PAGE": 20,
    "NOTIFICATION_DEDUP_SECONDS": 300,

    # Post listing cache
    "POST_CACHE_ALIAS": "default",
    "POST_CACHE_TIMEOUT": 300,
    "POST_CACHE_PREFIX": "posts",

    # Search engine URL submission (IndexNow protocol)
    "SEARCH_INDEX_ENABLED": False,
    "SEARCH_INDEX_ENDPOINT": "https://api.indexnow.org/IndexNow",
    "SEARCH_INDEX_KEY": "",
    "SEARCH_INDEX_TIMEOUT": 10,
    "SEARCH_INDEX_ASYNC": True,
}


class BlogWorkflowSettings:
    """
    Lazy settings object that reads from Django settings.

    Access via: from blog_workflow.conf import blog_settings
    """

    def __getattr__(self, name):
        if name not in DEFAULTS:
            raise AttributeError(f"Invalid blog_workflow setting: {name}")

        user_settings = getattr(settings, "BLOG_WORKFLOW", {})
        return user_settings.get(name, DEFAULTS[name])


blog_settings = BlogWorkflowSettings()


def build_post_url(slug):
    """Return the absolute public URL of a post."""
    path = blog_settings.POST_PATH.format(slug=slug)
    return blog_settings.SITE_URL.rstrip("/") + path
