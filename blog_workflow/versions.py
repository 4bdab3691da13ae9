"""
Version history of posts: listing past content and restoring it.
"""
import logging

from . import revisions
from .exceptions import NotFound, PermissionDenied, WorkflowValidationError
from .models import PostVersion, Tag
from .workflow import commit_change, require_actor

logger = logging.getLogger(__name__)


def _require_contributor(post, actor):
    require_actor(actor)
    if not (actor.is_admin or post.is_contributor(actor)):
        raise PermissionDenied("Access denied")


def version_history(post, actor):
    """Versions of ``post``, newest first."""
    _require_contributor(post, actor)
    return post.versions.select_related("edited_by")


def restore_version(post, actor, number, reason=""):
    """
    Put the content of version ``number`` back on ``post``.

    Returns ``(message, revision)``. Restoring a published post as a
    non-admin stores the old content as the post's revision, like any other
    edit of a live post.
    """
    _require_contributor(post, actor)
    if not number:
        raise WorkflowValidationError("Version number is required")
    try:
        version = post.versions.select_related("category").get(number=number)
    except (PostVersion.DoesNotExist, ValueError, TypeError):
        raise NotFound("Version not found")

    content = version.content()
    if post.is_published and not actor.is_admin:
        revision = revisions.submit_revision(post, actor, content)
        return (
            f"Version {version.number} submitted for review. "
            "The live post is unchanged until approved.",
            revision,
        )

    old_category_id = post.category_id
    tags = Tag.from_names(content.pop("tags"))
    for field, value in content.items():
        setattr(post, field, value)
    reason = (reason or "").strip()
    edit_reason = f"Restored to version {version.number}"
    if reason:
        edit_reason = f"{edit_reason}: {reason}"
    commit_change(
        post,
        actor,
        post.status,
        old_category_id=old_category_id,
        content_changed=True,
        tags=tags,
        edit_reason=edit_reason,
    )
    logger.info("Post %s restored to version %s by user %s", post.pk, version.number, actor.id)
    return "Version restored successfully", None
