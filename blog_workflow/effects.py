"""
Side effects of post status changes.

``transition_effects`` is the one place that decides what a status change
implies. It returns plain effect values; ``run_effects`` performs them.

Counter adjustments run in the caller's transaction. Everything else is
best-effort: notifications and stats refreshes swallow their failures, and
cache invalidation and search index submission wait for the commit.
"""
import logging
from dataclasses import dataclass
from functools import partial

from django.db import transaction

from . import cache, indexing
from .models import AuthorStats, Category, Notification, Post

logger = logging.getLogger(__name__)

PUBLISHED = Post.Status.PUBLISHED


@dataclass(frozen=True)
class AdjustCategoryCount:
    category_id: int
    delta: int


@dataclass(frozen=True)
class Notify:
    recipient_id: int
    sender_id: int
    type: str
    post_id: int
    message: str
    link: str
    comment_id: int = None


@dataclass(frozen=True)
class RefreshAuthorStats:
    user_id: int


@dataclass(frozen=True)
class InvalidatePostCaches:
    pass


@dataclass(frozen=True)
class SubmitToSearchIndex:
    slug: str


def transition_effects(
    post, old_status, new_status, actor, old_category_id=None, content_changed=False
):
    """
    Effects implied by moving ``post`` from ``old_status`` to ``new_status``.

    ``post`` carries the new state. ``old_category_id`` is the category the
    post was in before the change, when it differs from ``post.category_id``.
    ``new_status`` is None when the post is being deleted. An unchanged
    status, category and content yields no effects.
    """
    if old_category_id is None:
        old_category_id = post.category_id
    was_published = old_status == PUBLISHED
    is_published = new_status == PUBLISHED
    moved = old_category_id != post.category_id

    effects = []
    if was_published and (not is_published or moved):
        effects.append(AdjustCategoryCount(old_category_id, -1))
    if is_published and (not was_published or moved):
        effects.append(AdjustCategoryCount(post.category_id, 1))

    if is_published and not was_published:
        effects.append(Notify(
            recipient_id=post.author_id,
            sender_id=actor.id,
            type=Notification.Type.POST_PUBLISHED,
            post_id=post.pk,
            message=f'Your post "{post.title}" has been published',
            link=post.get_absolute_url(),
        ))

    entered_rejected = new_status == Post.Status.REJECTED and old_status != new_status
    if was_published != is_published or entered_rejected:
        effects.append(RefreshAuthorStats(post.author_id))

    live_edit = is_published and was_published and (moved or content_changed)
    if was_published != is_published or live_edit:
        effects.append(InvalidatePostCaches())
    if is_published and (not was_published or content_changed):
        effects.append(SubmitToSearchIndex(post.slug))
    return effects


def notify(**kwargs):
    """Create a notification; failures are logged and yield None."""
    try:
        with transaction.atomic():
            return Notification.create_notification(**kwargs)
    except Exception:
        logger.warning("Could not create %s notification", kwargs.get("type"), exc_info=True)
        return None


def refresh_author_stats(user_id):
    try:
        with transaction.atomic():
            return AuthorStats.refresh_for(user_id)
    except Exception:
        logger.warning("Could not refresh stats for user %s", user_id, exc_info=True)
        return None


def _after_commit_quietly(func, *args):
    try:
        func(*args)
    except Exception:
        logger.warning("After-commit effect %s failed", func.__name__, exc_info=True)


def run_effects(effects):
    """Execute effect values in order."""
    for effect in effects:
        if isinstance(effect, AdjustCategoryCount):
            if effect.delta > 0:
                Category.increment_post_count(effect.category_id)
            else:
                Category.decrement_post_count(effect.category_id)
        elif isinstance(effect, Notify):
            notify(
                recipient=effect.recipient_id,
                sender=effect.sender_id,
                type=effect.type,
                post=effect.post_id,
                comment=effect.comment_id,
                message=effect.message,
                link=effect.link,
            )
        elif isinstance(effect, RefreshAuthorStats):
            refresh_author_stats(effect.user_id)
        elif isinstance(effect, InvalidatePostCaches):
            transaction.on_commit(partial(_after_commit_quietly, cache.invalidate_post_caches))
        elif isinstance(effect, SubmitToSearchIndex):
            transaction.on_commit(
                partial(_after_commit_quietly, indexing.submit_post_to_index, effect.slug)
            )
        else:
            raise TypeError(f"Unknown effect: {effect!r}")
