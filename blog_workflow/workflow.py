"""
Post lifecycle state machine.

    draft ──submit──> pending_review ──approve──> published
      ^                 ^      │
      │                 │      └──reject──> rejected
      └─────────────────┴──────submit─────────┘

Every operation takes the acting user explicitly as an ``Actor``. Guards run
before any write: authentication, then role/ownership, then the current
status. Status writes are compare-and-swap on ``(status, version)``, so two
requests racing on the same post cannot both succeed.
"""
import logging

from django.db import models, transaction
from django.utils import timezone

from .actions import Approve, Feature, Like, Reject, Submit, ToggleComments, Unlike
from .effects import notify, run_effects, transition_effects
from .exceptions import (
    AuthenticationRequired,
    InvalidTransition,
    PermissionDenied,
    TransitionConflict,
    WorkflowValidationError,
)
from .models import Notification, Post, PostVersion

logger = logging.getLogger(__name__)

Status = Post.Status

# Statuses an author may set on their own post through a plain update
AUTHOR_SETTABLE = (Status.DRAFT, Status.PENDING_REVIEW)

# Columns that a workflow write never touches
_SKIP_ON_WRITE = {"id", "created_at", "version", "view_count"}


def require_actor(actor):
    if actor is None:
        raise AuthenticationRequired()
    return actor


def require_admin(actor):
    require_actor(actor)
    if not actor.is_admin:
        raise PermissionDenied("Unauthorized - Admin access required")
    return actor


def write_post(post, expected_status):
    """
    Persist ``post`` if the stored row still has ``expected_status`` and the
    version the post was loaded with. Bumps the version.

    Raises TransitionConflict when the row moved on in the meantime.
    """
    post.prepare_for_save()
    post.updated_at = timezone.now()
    values = {
        field.attname: getattr(post, field.attname)
        for field in Post._meta.concrete_fields
        if field.name not in _SKIP_ON_WRITE
    }
    updated = Post.objects.filter(
        pk=post.pk, status=expected_status, version=post.version
    ).update(version=models.F("version") + 1, **values)
    if not updated:
        logger.warning(
            "Rejected stale write to post %s (expected status %s, version %s)",
            post.pk,
            expected_status,
            post.version,
        )
        raise TransitionConflict()
    post.version += 1


def commit_change(
    post, actor, old_status, old_category_id=None, content_changed=False, tags=None, edit_reason=""
):
    """
    Write a changed post and run the effects of the change, atomically.

    A content change also records the new content as the post's next
    version.

    On conflict the in-memory post is reloaded and the error re-raised.
    """
    try:
        with transaction.atomic():
            write_post(post, old_status)
            if tags is not None:
                post.tags.set(tags)
            if content_changed:
                PostVersion.create_version(post, actor.id, edit_reason)
            run_effects(transition_effects(
                post,
                old_status,
                post.status,
                actor,
                old_category_id=old_category_id,
                content_changed=content_changed,
            ))
    except TransitionConflict:
        post.refresh_from_db()
        raise
    if old_status != post.status:
        logger.info(
            "Post %s moved from %s to %s by user %s",
            post.pk,
            old_status,
            post.status,
            actor.id,
        )
    return post


def submit(post, actor):
    """Author sends a draft or rejected post to the review queue."""
    require_actor(actor)
    if not post.is_owner(actor):
        raise PermissionDenied("Unauthorized - You can only submit your own posts")
    if post.status not in (Status.DRAFT, Status.REJECTED):
        raise InvalidTransition(
            "Post must be in draft or rejected status to submit for review"
        )

    old_status = post.status
    post.status = Status.PENDING_REVIEW
    post.reviewed_by = None
    post.reviewed_at = None
    post.rejection_reason = ""
    return commit_change(post, actor, old_status)


def approve(post, actor):
    """Admin publishes a post waiting for review."""
    require_admin(actor)
    if post.status != Status.PENDING_REVIEW:
        raise InvalidTransition("Post is not pending review")

    now = timezone.now()
    old_status = post.status
    post.status = Status.PUBLISHED
    post.published_at = now
    post.reviewed_by_id = actor.id
    post.reviewed_at = now
    post.rejection_reason = ""
    return commit_change(post, actor, old_status)


def reject(post, actor, reason):
    """Admin sends a post waiting for review back to its author."""
    require_admin(actor)
    if post.status != Status.PENDING_REVIEW:
        raise InvalidTransition("Post is not pending review")
    reason = (reason or "").strip()
    if not reason:
        raise WorkflowValidationError("Rejection reason is required")
    if len(reason) > 500:
        raise WorkflowValidationError("Rejection reason cannot be more than 500 characters")

    old_status = post.status
    post.status = Status.REJECTED
    post.reviewed_by_id = actor.id
    post.reviewed_at = timezone.now()
    post.rejection_reason = reason
    return commit_change(post, actor, old_status)


def apply_status(post, actor, new_status, rejection_reason=None):
    """
    Set ``post.status`` in memory for a plain update, enforcing who may set
    what. The caller persists the post with ``commit_change``.

    Admins may set any status. The owner may only save as draft or send to
    review. Review metadata follows the status that was set.
    """
    require_actor(actor)
    if new_status not in Status.values:
        raise WorkflowValidationError("Invalid status")
    if new_status == post.status:
        return post

    old_status = post.status
    if actor.is_admin:
        post.status = new_status
        if new_status == Status.PUBLISHED and old_status == Status.PENDING_REVIEW:
            post.reviewed_by_id = actor.id
            post.reviewed_at = timezone.now()
            post.rejection_reason = ""
        elif new_status == Status.REJECTED:
            post.reviewed_by_id = actor.id
            post.reviewed_at = timezone.now()
            if rejection_reason:
                post.rejection_reason = rejection_reason.strip()
    elif post.is_owner(actor):
        if new_status not in AUTHOR_SETTABLE:
            raise PermissionDenied("Authors can only save as draft or submit for review")
        post.status = new_status
        if new_status == Status.PENDING_REVIEW:
            post.reviewed_by = None
            post.reviewed_at = None
            post.rejection_reason = ""
    else:
        raise PermissionDenied("Unauthorized - Only the post owner can change its status")
    return post


def like(post, actor):
    """
    Add the actor to the post's likes. Liking twice changes nothing.

    Returns True when this call added the like.
    """
    require_actor(actor)
    if post.status != Status.PUBLISHED:
        raise InvalidTransition("Can only like published posts")
    if post.likes.filter(pk=actor.id).exists():
        return False

    post.likes.add(actor.id)
    notify(
        recipient=post.author_id,
        sender=actor.id,
        type=Notification.Type.LIKE_POST,
        post=post,
        message="liked your post",
        link=post.get_absolute_url(),
    )
    return True


def unlike(post, actor):
    """Remove the actor's like; a no-op when there is none."""
    require_actor(actor)
    if post.status != Status.PUBLISHED:
        raise InvalidTransition("Can only unlike published posts")
    post.likes.remove(actor.id)


def toggle_feature(post, actor):
    require_admin(actor)
    post.is_featured = not post.is_featured
    post.save(update_fields=["is_featured", "updated_at"])
    return post.is_featured


def toggle_comments(post, actor):
    require_actor(actor)
    if not (actor.is_admin or post.is_owner(actor)):
        raise PermissionDenied("Unauthorized - You can only manage your own posts")
    post.allow_comments = not post.allow_comments
    post.save(update_fields=["allow_comments", "updated_at"])
    return post.allow_comments


def delete_post(post, actor):
    """Delete a post, taking it out of its category counter if published."""
    require_actor(actor)
    if not (actor.is_admin or post.is_owner(actor)):
        raise PermissionDenied("Unauthorized - You can only delete your own posts")

    effects = transition_effects(post, post.status, None, actor)
    with transaction.atomic():
        deleted, _ = Post.objects.filter(pk=post.pk, status=post.status).delete()
        if not deleted:
            raise TransitionConflict()
        run_effects(effects)
    logger.info("Post %s deleted by user %s", post.pk, actor.id)


def perform_action(post, actor, action):
    """
    Run a parsed action against a post.

    Returns ``(message, extra)`` where ``extra`` holds action-specific
    response fields.
    """
    if isinstance(action, Submit):
        submit(post, actor)
        return "Post submitted for review successfully", {}
    if isinstance(action, Approve):
        approve(post, actor)
        return "Post approved and published successfully", {}
    if isinstance(action, Reject):
        reject(post, actor, action.reason)
        return "Post rejected successfully", {}
    if isinstance(action, Like):
        like(post, actor)
        return "Post liked successfully", {"likeCount": post.like_count}
    if isinstance(action, Unlike):
        unlike(post, actor)
        return "Post unliked successfully", {"likeCount": post.like_count}
    if isinstance(action, Feature):
        featured = toggle_feature(post, actor)
        state = "featured" if featured else "unfeatured"
        return f"Post {state} successfully", {"isFeatured": featured}
    if isinstance(action, ToggleComments):
        allowed = toggle_comments(post, actor)
        state = "enabled" if allowed else "disabled"
        return f"Comments {state} successfully", {"allowComments": allowed}
    raise WorkflowValidationError("Invalid action")


def review_queue(actor):
    """Posts waiting for an admin decision, oldest first."""
    require_admin(actor)
    return (
        Post.objects.pending_review()
        .select_related("author", "category")
        .order_by("created_at", "pk")
    )
