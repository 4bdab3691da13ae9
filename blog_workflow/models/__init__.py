"""
Models for django-blog-workflow.

All models are importable from blog_workflow.models:

    from blog_workflow.models import Post, Category, Revision, Notification
"""
from .posts import Category, Tag, Post
from .revisions import Revision
from .versions import PostVersion
from .comments import Comment
from .reviews import DraftReview, ReviewComment
from .notifications import Notification
from .stats import AuthorStats

__all__ = [
    # Posts
    "Category",
    "Tag",
    "Post",
    "Revision",
    "PostVersion",
    # Feedback
    "Comment",
    "DraftReview",
    "ReviewComment",
    # Side records
    "Notification",
    "AuthorStats",
]
