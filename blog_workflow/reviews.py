"""
Draft review threads. These are feedback only and never change a post's status.
"""
import logging

from django.contrib.auth import get_user_model

from .exceptions import NotFound, PermissionDenied, WorkflowValidationError
from .models import DraftReview, ReviewComment
from .workflow import require_actor

logger = logging.getLogger(__name__)

REVIEW_ACTIONS = ("add-comment", "resolve-comment", "complete-review")


def reviews_for(post, actor):
    """Reviews of a post, for those who can see it and for its reviewers."""
    require_actor(actor)
    if not (post.can_view(actor) or post.draft_reviews.filter(reviewer_id=actor.id).exists()):
        raise NotFound("Post not found")
    return post.draft_reviews.select_related("reviewer", "requested_by").prefetch_related(
        "comments"
    )


def request_review(post, actor, reviewer_id):
    require_actor(actor)
    if not reviewer_id:
        raise WorkflowValidationError("Reviewer ID is required")
    if not post.is_contributor(actor):
        raise PermissionDenied("Only authors can request reviews")
    try:
        reviewer = get_user_model().objects.get(pk=reviewer_id)
    except (get_user_model().DoesNotExist, ValueError):
        raise NotFound("Reviewer not found")

    review = DraftReview.request_review(post, reviewer, requested_by=actor.id)
    logger.info("Review of post %s requested from user %s", post.pk, reviewer.pk)
    return review


def update_review(review, actor, action, data):
    """
    Run one of the review actions.

    The reviewer or an admin may comment and complete; resolving is also open
    to the post's contributors.
    """
    require_actor(actor)
    if action not in REVIEW_ACTIONS:
        raise WorkflowValidationError("Invalid action")
    data = data or {}
    is_reviewer = review.reviewer_id == actor.id or actor.is_admin

    if action == "add-comment":
        if not is_reviewer:
            raise PermissionDenied("Only the reviewer can comment on this review")
        content = (data.get("content") or "").strip()
        if not content:
            raise WorkflowValidationError("Comment content is required")
        return review.add_comment(
            content,
            position=data.get("position") or 0,
            selected_text=data.get("selectedText") or "",
        )

    if action == "resolve-comment":
        if not (is_reviewer or review.post.is_contributor(actor)):
            raise PermissionDenied("Unauthorized - You cannot resolve comments on this review")
        comment_id = data.get("commentId")
        if not comment_id:
            raise WorkflowValidationError("Comment ID is required")
        try:
            return review.resolve_comment(comment_id, actor.id)
        except (ReviewComment.DoesNotExist, ValueError):
            raise NotFound("Comment not found")

    if not is_reviewer:
        raise PermissionDenied("Only the reviewer can complete this review")
    status = data.get("status")
    if not status:
        raise WorkflowValidationError("Review status is required")
    review.complete_review(status, data.get("feedback", ""))
    logger.info("Review %s completed as %s", review.pk, status)
    return review
