"""
Co-author management. Co-authors may edit a post's content; only the owner
or an admin changes who they are.
"""
import logging

from django.contrib.auth import get_user_model

from .exceptions import NotFound, PermissionDenied, WorkflowValidationError
from .workflow import require_actor

logger = logging.getLogger(__name__)


def _user_pk(user_id):
    if not user_id:
        raise WorkflowValidationError("User ID is required")
    try:
        return int(user_id)
    except (TypeError, ValueError):
        raise WorkflowValidationError("Invalid user ID")


def add_co_author(post, actor, user_id):
    require_actor(actor)
    pk = _user_pk(user_id)
    if not (actor.is_admin or post.is_owner(actor)):
        raise PermissionDenied("Only the author or admin can add co-authors")

    User = get_user_model()
    try:
        user = User.objects.get(pk=pk)
    except User.DoesNotExist:
        raise NotFound("User not found")
    if user.pk == post.author_id:
        raise WorkflowValidationError("The post author cannot be a co-author")
    if post.co_authors.filter(pk=user.pk).exists():
        raise WorkflowValidationError("User is already a co-author")

    post.co_authors.add(user)
    logger.info("User %s added as co-author of post %s by user %s", user.pk, post.pk, actor.id)
    return user


def remove_co_author(post, actor, user_id):
    """Remove a co-author. Removing someone who is not one changes nothing."""
    require_actor(actor)
    pk = _user_pk(user_id)
    if not (actor.is_admin or post.is_owner(actor)):
        raise PermissionDenied("Only the author or admin can remove co-authors")

    post.co_authors.remove(pk)
    logger.info("User %s removed as co-author of post %s by user %s", pk, post.pk, actor.id)
