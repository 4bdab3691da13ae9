"""
django-blog-workflow - Editorial workflow for multi-author Django blogs.

Features:
- Post lifecycle: draft, pending review, published, rejected
- Admin approval gate with explicit author/admin roles
- Revisions of live posts that stay online until approved
- Peer draft reviews with positioned inline comments
- Threaded comments with moderation and likes
- Best-effort notifications
- Denormalized per-category published post counters
- Post listing cache invalidation and search engine URL submission
"""

__version__ = "0.1.0"
