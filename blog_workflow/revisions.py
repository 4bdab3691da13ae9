"""
Revisions of published posts.

A contributor editing a live post does not change what readers see. The
edit is stored as the post's revision and an admin approves or rejects it.
There is at most one revision per post; submitting again replaces it.
"""
import logging

from django.db import models, transaction
from django.utils import timezone

from .effects import notify
from .exceptions import (
    InvalidTransition,
    PermissionDenied,
    TransitionConflict,
    WorkflowValidationError,
)
from .models import Notification, Post, Revision, Tag
from .workflow import commit_change, require_actor, require_admin

logger = logging.getLogger(__name__)


def submit_revision(post, actor, changes):
    """
    Store ``changes`` as the pending revision of a published post.

    ``changes`` maps post field names (``title``, ``body``, ``excerpt``,
    ``featured_image_url``, ``category``, ``tags``) to new values; fields
    left out keep the post's current value. ``tags`` is a list of names.
    """
    require_actor(actor)
    if not post.is_contributor(actor):
        raise PermissionDenied("Unauthorized - You can only edit your own posts")
    if post.status != Post.Status.PUBLISHED:
        raise InvalidTransition("Revisions can only be submitted for published posts")

    if "tags" in changes:
        tags = [str(name).strip() for name in changes["tags"] if str(name).strip()]
    else:
        tags = list(post.tags.values_list("name", flat=True))

    revision, created = Revision.objects.update_or_create(
        post=post,
        defaults={
            "title": changes.get("title", post.title),
            "body": changes.get("body", post.body),
            "excerpt": changes.get("excerpt", post.excerpt),
            "featured_image_url": changes.get("featured_image_url", post.featured_image_url),
            "category": changes.get("category", post.category),
            "tags": tags,
            "submitted_by_id": actor.id,
            "submitted_at": timezone.now(),
        },
    )
    logger.info(
        "%s revision for post %s by user %s",
        "Stored" if created else "Replaced",
        post.pk,
        actor.id,
    )
    return revision


def _pending_revision(post, message):
    revision = Revision.objects.filter(post=post).first()
    if revision is None:
        raise InvalidTransition(message)
    return revision


def approve_revision(post, actor):
    """Copy the pending revision onto the post and discard it."""
    require_admin(actor)
    revision = _pending_revision(post, "No pending revision to approve")

    old_category_id = post.category_id
    post.title = revision.title
    post.body = revision.body
    post.excerpt = revision.excerpt
    post.featured_image_url = revision.featured_image_url
    post.category_id = revision.category_id
    tags = Tag.from_names(revision.tags)

    with transaction.atomic():
        commit_change(
            post,
            actor,
            post.status,
            old_category_id=old_category_id,
            content_changed=True,
            tags=tags,
            edit_reason="Approved revision",
        )
        deleted, _ = Revision.objects.filter(
            pk=revision.pk, submitted_at=revision.submitted_at
        ).delete()
        if not deleted:
            raise TransitionConflict("Revision was modified by another request")
    logger.info("Revision of post %s approved by user %s", post.pk, actor.id)
    return post


def reject_revision(post, actor, reason=""):
    """
    Discard the pending revision. The post is left as it is.

    The submitter is told, with the reason when one is given.
    """
    require_admin(actor)
    revision = _pending_revision(post, "No pending revision to reject")
    reason = (reason or "").strip()
    if len(reason) > 500:
        raise WorkflowValidationError("Rejection reason cannot be more than 500 characters")

    deleted, _ = Revision.objects.filter(
        pk=revision.pk, submitted_at=revision.submitted_at
    ).delete()
    if not deleted:
        raise TransitionConflict("Revision was modified by another request")
    logger.info("Revision of post %s rejected by user %s", post.pk, actor.id)

    if revision.submitted_by_id:
        message = f'Your changes to "{post.title}" were not approved'
        if reason:
            message = f"{message}: {reason}"
        notify(
            recipient=revision.submitted_by_id,
            sender=actor.id,
            type=Notification.Type.REVISION_REJECTED,
            post=post,
            message=message[:255],
            link=post.get_absolute_url(),
        )
    return reason

def pending_revisions(actor, search=None):
    """Published posts with a pending revision, newest revision first."""
    require_admin(actor)
    posts = (
        Post.objects.published()
        .filter(revision__isnull=False)
        .select_related("author", "category", "revision")
        .order_by("-revision__submitted_at")
    )
    if search:
        posts = posts.filter(
            models.Q(title__icontains=search)
            | models.Q(author__username__icontains=search)
            | models.Q(author__first_name__icontains=search)
            | models.Q(author__last_name__icontains=search)
        )
    return posts
