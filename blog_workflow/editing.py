"""
Creating and updating posts from JSON request data.

Request keys use the API's camelCase names and are translated to model
fields here. Status changes made through an update follow the same rules
and side effects as the workflow operations.
"""
import logging

from django.db import transaction

from . import revisions
from .effects import run_effects, transition_effects
from .exceptions import PermissionDenied, WorkflowValidationError
from .models import Category, Post, PostVersion, Tag
from .workflow import apply_status, commit_change, require_actor

logger = logging.getLogger(__name__)

# JSON key -> model field, for content a revision can carry
CONTENT_KEYS = {
    "title": "title",
    "body": "body",
    "excerpt": "excerpt",
    "featuredImageUrl": "featured_image_url",
    "category": "category",
    "tags": "tags",
}


def clean_content(data, post=None):
    """
    Validate the content keys present in ``data``.

    Returns a dict of model field names to cleaned values. ``post`` is None
    when creating, in which case title, body and category are required.
    """
    creating = post is None
    changes = {}

    if "title" in data or creating:
        title = data.get("title")
        if not isinstance(title, str) or not title.strip():
            raise WorkflowValidationError("Post title is required")
        title = title.strip()
        if len(title) > 200:
            raise WorkflowValidationError("Title cannot be more than 200 characters")
        changes["title"] = title

    if "body" in data or creating:
        body = data.get("body")
        if not isinstance(body, str) or not body.strip():
            raise WorkflowValidationError("Post content is required")
        changes["body"] = body.strip()

    if "excerpt" in data:
        changes["excerpt"] = (data["excerpt"] or "").strip()

    if "featuredImageUrl" in data:
        changes["featured_image_url"] = data["featuredImageUrl"] or ""

    category_id = data.get("category")
    if category_id or creating:
        if not category_id:
            raise WorkflowValidationError("Category is required")
        if creating or str(category_id) != str(post.category_id):
            try:
                changes["category"] = Category.objects.get(pk=category_id)
            except (Category.DoesNotExist, ValueError, TypeError):
                raise WorkflowValidationError("Invalid category")

    if "tags" in data:
        tags = data["tags"] or []
        if not isinstance(tags, list):
            raise WorkflowValidationError("Tags must be a list")
        changes["tags"] = [str(name).strip() for name in tags if str(name).strip()]

    return changes


def create_post(actor, data):
    """
    Create a post owned by ``actor``.

    Authors create drafts or send straight to review; admins may create a
    post in any status.
    """
    require_actor(actor)
    changes = clean_content(data)
    tag_names = changes.pop("tags", [])
    status = data.get("status") or Post.Status.DRAFT

    post = Post(author_id=actor.id, **changes)
    if status not in Post.Status.values:
        raise WorkflowValidationError("Invalid status")
    if not actor.is_admin and status not in (Post.Status.DRAFT, Post.Status.PENDING_REVIEW):
        raise PermissionDenied("Authors can only save as draft or submit for review")
    post.status = status
    if "allowComments" in data:
        post.allow_comments = bool(data["allowComments"])
    if actor.is_admin and "isFeatured" in data:
        post.is_featured = bool(data["isFeatured"])
    if status == Post.Status.PUBLISHED:
        post.reviewed_by_id = actor.id
    post.full_clean(exclude=["slug", "author", "category"])

    with transaction.atomic():
        post.save()
        post.tags.set(Tag.from_names(tag_names))
        PostVersion.create_version(post, actor.id, "Initial version")
        run_effects(transition_effects(post, None, post.status, actor))
    logger.info("Post %s created by user %s as %s", post.pk, actor.id, post.status)
    return post


def update_post(post, actor, data):
    """
    Apply a JSON update to ``post``.

    Returns ``(message, revision)``; ``revision`` is the stored revision when
    the content change was held back for review, else None.
    """
    require_actor(actor)
    if not (actor.is_admin or post.is_contributor(actor)):
        raise PermissionDenied("Unauthorized - You can only edit your own posts")

    # The stored revision and the post write commit together or not at all
    with transaction.atomic():
        return _apply_update(post, actor, data)


def _apply_update(post, actor, data):
    if data.get("approveRevision"):
        revisions.approve_revision(post, actor)
        return "Revision approved successfully", None
    if data.get("rejectRevision"):
        revisions.reject_revision(post, actor, data.get("rejectionReason", ""))
        return "Revision rejected successfully", None

    changes = clean_content(data, post)

    revision = None
    if changes and post.is_published and not actor.is_admin:
        revision = revisions.submit_revision(post, actor, changes)
        changes = {}

    old_status = post.status
    old_category_id = post.category_id
    tags = None
    if "tags" in changes:
        tags = Tag.from_names(changes.pop("tags"))
    for field, value in changes.items():
        setattr(post, field, value)

    if "status" in data and data["status"] != post.status:
        apply_status(post, actor, data["status"], data.get("rejectionReason"))
    if "allowComments" in data:
        if not (actor.is_admin or post.is_owner(actor)):
            raise PermissionDenied("Unauthorized - You can only manage your own posts")
        post.allow_comments = bool(data["allowComments"])
    if "isFeatured" in data and actor.is_admin:
        post.is_featured = bool(data["isFeatured"])

    post.full_clean(exclude=["slug", "author", "category"])
    commit_change(
        post,
        actor,
        old_status,
        old_category_id=old_category_id,
        content_changed=bool(changes) or tags is not None,
        tags=tags,
    )
    if revision is not None:
        return "Changes submitted for review. The live post is unchanged until approved.", revision
    return "Post updated successfully", None
