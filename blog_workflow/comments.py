"""
Comment operations: adding, moderating, liking and reporting.
"""
import logging

from django.core.exceptions import ValidationError
from django.core.validators import validate_email

from .conf import blog_settings
from .effects import notify
from .exceptions import NotFound, PermissionDenied, WorkflowValidationError
from .models import Comment, Notification
from .workflow import require_actor

logger = logging.getLogger(__name__)

MODERATION_VERBS = {"approve": "approved", "reject": "rejected"}


def _comment_link(post, comment):
    return f"{post.get_absolute_url()}#comment-{comment.pk}"


def add_comment(post, actor, user, body, parent_id=None, guest_name="", guest_email=""):
    """
    Add a comment from ``actor`` (``user`` is the matching Django user), or
    from a guest when ``actor`` is None.

    Admin comments are approved at once; others wait for moderation when
    MODERATE_COMMENTS is on. Notifications go out only for approved comments.
    """
    body = (body or "").strip()
    if not body:
        raise WorkflowValidationError("Comment content is required")
    max_length = blog_settings.COMMENT_MAX_LENGTH
    if len(body) > max_length:
        raise WorkflowValidationError(f"Comment cannot be more than {max_length} characters")
    if not post.is_published and not (actor and (actor.is_admin or post.is_contributor(actor))):
        raise NotFound("Post not found")
    if not post.allow_comments:
        raise PermissionDenied("Comments are disabled for this post")

    parent = None
    if parent_id:
        try:
            parent = post.comments.get(pk=parent_id)
        except (Comment.DoesNotExist, ValueError):
            raise NotFound("Parent comment not found")

    comment = Comment(
        post=post,
        parent=parent,
        body=body,
        is_approved=not blog_settings.MODERATE_COMMENTS,
    )
    if actor is not None:
        comment.author = user
        if actor.is_admin:
            comment.is_approved = True
    else:
        guest_name = (guest_name or "").strip()
        guest_email = (guest_email or "").strip()
        if not guest_name or not guest_email:
            raise WorkflowValidationError(
                "Guest name and email are required for guest comments"
            )
        try:
            validate_email(guest_email)
        except ValidationError:
            raise WorkflowValidationError("Please provide a valid email address")
        comment.guest_name = guest_name
        comment.guest_email = guest_email
    comment.save()
    logger.info("Comment %s added to post %s", comment.pk, post.pk)

    if actor is not None and comment.is_approved:
        _notify_new_comment(post, comment, actor.id)
    return comment


def _notify_new_comment(post, comment, sender_id):
    if comment.parent and comment.parent.author_id:
        notify(
            recipient=comment.parent.author_id,
            sender=sender_id,
            type=Notification.Type.REPLY_COMMENT,
            post=post,
            comment=comment,
            message="replied to your comment",
            link=_comment_link(post, comment),
        )
    else:
        notify(
            recipient=post.author_id,
            sender=sender_id,
            type=Notification.Type.COMMENT_POST,
            post=post,
            comment=comment,
            message="commented on your post",
            link=_comment_link(post, comment),
        )


def moderate_comment(comment, actor, action):
    """Approve a comment, or reject it, which deletes it."""
    require_actor(actor)
    if not actor.is_admin:
        raise PermissionDenied("Only admins can moderate comments")
    if action not in MODERATION_VERBS:
        raise WorkflowValidationError("Valid action (approve/reject) is required")
    logger.info("Comment %s %s by user %s", comment.pk, action, actor.id)
    if action == "approve":
        comment.approve()
        if comment.author_id:
            _notify_new_comment(comment.post, comment, comment.author_id)
    else:
        comment.delete()
    return f"Comment {MODERATION_VERBS[action]} successfully"


def toggle_comment_like(comment, actor, user):
    """Like or unlike a comment. Returns True when it is now liked."""
    require_actor(actor)
    liked = comment.toggle_like(user)
    if liked and comment.author_id:
        notify(
            recipient=comment.author_id,
            sender=actor.id,
            type=Notification.Type.LIKE_COMMENT,
            post=comment.post_id,
            comment=comment,
            message="liked your comment",
            link=_comment_link(comment.post, comment),
        )
    return liked


def report_comment(comment, actor):
    require_actor(actor)
    comment.report()
    logger.info("Comment %s reported (%s reports)", comment.pk, comment.report_count)
    return comment.report_count


def threaded_comments(post, include_pending=False):
    """
    Top-level comments newest first, each with its replies oldest first.

    Returns a list of ``(comment, replies)`` pairs where ``replies`` is the
    same structure for the next level down.
    """
    comments = post.comments.select_related("author").order_by("created_at")
    if not include_pending:
        comments = comments.filter(is_approved=True)

    children = {}
    for comment in comments:
        children.setdefault(comment.parent_id, []).append(comment)

    def build(parent_id):
        return [(c, build(c.pk)) for c in children.get(parent_id, [])]

    return list(reversed(build(None)))
