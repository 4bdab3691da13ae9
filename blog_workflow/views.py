"""
JSON views for django-blog-workflow.

Every view builds the acting user once from ``request.user`` and hands it
to the workflow modules. Workflow errors become ``{"error": ...}`` responses
with the status code the error carries.
"""
import json
import logging

from django.core.exceptions import ObjectDoesNotExist, ValidationError
from django.core.paginator import Paginator
from django.http import JsonResponse
from django.views import View

from . import cache, coauthors, comments, editing, reviews, revisions, versions, workflow
from .actions import parse_action
from .actors import Actor
from .conf import blog_settings
from .exceptions import NotFound, WorkflowError, WorkflowValidationError
from .models import Comment, DraftReview, Notification, Post
from .serializers import (
    comment_data,
    notification_data,
    post_data,
    post_summary,
    review_data,
    revision_data,
    version_data,
)

logger = logging.getLogger(__name__)


class JsonView(View):
    """Base view: JSON body parsing, actor lookup and error translation."""

    def dispatch(self, request, *args, **kwargs):
        self.actor = Actor.from_user(request.user)
        try:
            return super().dispatch(request, *args, **kwargs)
        except WorkflowError as exc:
            return JsonResponse({"error": exc.message}, status=exc.status_code)
        except ValidationError as exc:
            return JsonResponse({"error": ", ".join(exc.messages)}, status=400)
        except ObjectDoesNotExist:
            return JsonResponse({"error": "Not found"}, status=404)
        except Exception:
            logger.exception("Unhandled error in %s", type(self).__name__)
            return JsonResponse({"error": "Internal server error"}, status=500)

    def json_body(self):
        if not self.request.body:
            return {}
        try:
            data = json.loads(self.request.body)
        except (ValueError, UnicodeDecodeError):
            raise WorkflowValidationError("Invalid JSON body")
        if not isinstance(data, dict):
            raise WorkflowValidationError("Invalid request body")
        return data

    def get_post(self, pk):
        try:
            return Post.objects.select_related(
                "author", "category", "reviewed_by"
            ).get(pk=pk)
        except Post.DoesNotExist:
            raise NotFound("Post not found")


def _page_number(request):
    try:
        return max(1, int(request.GET.get("page", 1)))
    except ValueError:
        return 1


def _pagination(page):
    return {
        "page": page.number,
        "pages": page.paginator.num_pages,
        "total": page.paginator.count,
        "hasNext": page.has_next(),
    }


class PostCollectionView(JsonView):
    """Published post listing and post creation."""

    def get(self, request):
        filters = {
            "category": request.GET.get("category"),
            "tag": request.GET.get("tag"),
            "page": _page_number(request),
        }
        key = cache.listing_key(filters)
        payload = cache.get_listing(key)
        if payload is None:
            payload = self._build_listing(filters)
            cache.set_listing(key, payload)
        return JsonResponse(payload)

    def _build_listing(self, filters):
        posts = (
            Post.objects.published()
            .select_related("author", "category")
            .order_by("-published_at")
        )
        if filters["category"]:
            posts = posts.filter(category__slug=filters["category"])
        if filters["tag"]:
            posts = posts.filter(tags__slug=filters["tag"])
        page = Paginator(posts, blog_settings.POSTS_PER_PAGE).get_page(filters["page"])
        return {
            "posts": [post_summary(post) for post in page],
            "pagination": _pagination(page),
        }

    def post(self, request):
        workflow.require_actor(self.actor)
        post = editing.create_post(self.actor, self.json_body())
        return JsonResponse(
            {"message": "Post created successfully", "post": post_data(post)},
            status=201,
        )


class PendingReviewListView(JsonView):
    def get(self, request):
        posts = workflow.review_queue(self.actor)
        return JsonResponse({"posts": [post_summary(post) for post in posts]})


class PendingRevisionListView(JsonView):
    def get(self, request):
        posts = revisions.pending_revisions(self.actor, request.GET.get("search"))
        results = []
        for post in posts:
            data = post_summary(post)
            data["revision"] = revision_data(post.revision)
            results.append(data)
        return JsonResponse({"posts": results, "total": len(results)})


class PostDetailView(JsonView):
    def get(self, request, pk):
        post = self.get_post(pk)
        if not post.can_view(self.actor):
            raise NotFound("Post not found")
        if post.is_published and not post.is_owner(self.actor):
            post.increment_view_count()
        privileged = self.actor is not None and (
            self.actor.is_admin or post.is_contributor(self.actor)
        )
        return JsonResponse({"post": post_data(post, include_revision=privileged)})

    def put(self, request, pk):
        workflow.require_actor(self.actor)
        data = self.json_body()
        post = self.get_post(pk)
        message, revision = editing.update_post(post, self.actor, data)
        response = {"message": message, "post": post_data(post)}
        if revision is not None:
            response["revision"] = revision_data(revision)
        return JsonResponse(response)

    def delete(self, request, pk):
        workflow.require_actor(self.actor)
        post = self.get_post(pk)
        workflow.delete_post(post, self.actor)
        return JsonResponse({"message": "Post deleted successfully"})


class PostActionView(JsonView):
    """Run one lifecycle action: submit, approve, reject, like, unlike..."""

    def post(self, request, pk):
        workflow.require_actor(self.actor)
        action = parse_action(self.json_body())
        post = self.get_post(pk)
        message, extra = workflow.perform_action(post, self.actor, action)
        return JsonResponse({"message": message, "post": post_data(post), **extra})


class PostVersionView(JsonView):
    """Version history of a post, and restoring an earlier version."""

    def get(self, request, pk):
        workflow.require_actor(self.actor)
        post = self.get_post(pk)
        found = versions.version_history(post, self.actor)
        try:
            limit = max(1, int(request.GET.get("limit", 20)))
            skip = max(0, int(request.GET.get("skip", 0)))
        except ValueError:
            raise WorkflowValidationError("limit and skip must be numbers")
        total = found.count()
        page = list(found[skip:skip + limit])
        return JsonResponse({
            "versions": [version_data(version) for version in page],
            "total": total,
            "hasMore": skip + len(page) < total,
        })

    def post(self, request, pk):
        workflow.require_actor(self.actor)
        data = self.json_body()
        post = self.get_post(pk)
        message, revision = versions.restore_version(
            post, self.actor, data.get("version"), data.get("reason", "")
        )
        response = {"message": message, "post": post_data(post)}
        if revision is not None:
            response["revision"] = revision_data(revision)
        return JsonResponse(response)


class PostAuthorsView(JsonView):
    """Adding and removing co-authors."""

    def post(self, request, pk):
        workflow.require_actor(self.actor)
        data = self.json_body()
        post = self.get_post(pk)
        coauthors.add_co_author(post, self.actor, data.get("userId"))
        return JsonResponse({"message": "Co-author added successfully", "post": post_data(post)})

    def delete(self, request, pk):
        workflow.require_actor(self.actor)
        post = self.get_post(pk)
        coauthors.remove_co_author(post, self.actor, request.GET.get("userId"))
        return JsonResponse({"message": "Co-author removed successfully", "post": post_data(post)})


class DraftReviewView(JsonView):
    def get(self, request, pk):
        post = self.get_post(pk)
        found = reviews.reviews_for(post, self.actor)
        return JsonResponse({"reviews": [review_data(review) for review in found]})

    def post(self, request, pk):
        workflow.require_actor(self.actor)
        data = self.json_body()
        post = self.get_post(pk)
        review = reviews.request_review(post, self.actor, data.get("reviewerId"))
        return JsonResponse(
            {"message": "Review requested successfully", "review": review_data(review)},
            status=201,
        )

    def put(self, request, pk):
        workflow.require_actor(self.actor)
        data = self.json_body()
        if not data.get("reviewId") or not data.get("action"):
            raise WorkflowValidationError("Review ID and action are required")
        post = self.get_post(pk)
        try:
            review = post.draft_reviews.get(pk=data["reviewId"])
        except (DraftReview.DoesNotExist, ValueError):
            raise NotFound("Review not found")
        reviews.update_review(review, self.actor, data["action"], data.get("data"))
        review.refresh_from_db()
        return JsonResponse(
            {"message": "Review updated successfully", "review": review_data(review)}
        )


class CommentMixin:
    def get_comment(self, post, comment_pk):
        try:
            return post.comments.select_related("author", "parent").get(pk=comment_pk)
        except Comment.DoesNotExist:
            raise NotFound("Comment not found")


def _thread_data(thread):
    return [comment_data(comment, _thread_data(replies)) for comment, replies in thread]


class CommentView(JsonView):
    def get(self, request, pk):
        post = self.get_post(pk)
        if not post.can_view(self.actor):
            raise NotFound("Post not found")
        include_pending = (
            request.GET.get("include_pending") == "true"
            and self.actor is not None
            and (self.actor.is_admin or post.is_owner(self.actor))
        )
        thread = comments.threaded_comments(post, include_pending=include_pending)
        return JsonResponse({"comments": _thread_data(thread)})

    def post(self, request, pk):
        data = self.json_body()
        post = self.get_post(pk)
        comment = comments.add_comment(
            post,
            self.actor,
            request.user if self.actor else None,
            data.get("body"),
            parent_id=data.get("parentId"),
            guest_name=data.get("guestName", ""),
            guest_email=data.get("guestEmail", ""),
        )
        message = (
            "Comment added successfully"
            if comment.is_approved
            else "Comment submitted for approval"
        )
        return JsonResponse(
            {
                "message": message,
                "comment": comment_data(comment),
                "needsApproval": not comment.is_approved,
            },
            status=201,
        )


class CommentModerateView(CommentMixin, JsonView):
    def patch(self, request, pk, comment_pk):
        workflow.require_actor(self.actor)
        data = self.json_body()
        comment = self.get_comment(self.get_post(pk), comment_pk)
        message = comments.moderate_comment(comment, self.actor, data.get("action"))
        return JsonResponse({"message": message})


class CommentLikeView(CommentMixin, JsonView):
    def post(self, request, pk, comment_pk):
        workflow.require_actor(self.actor)
        comment = self.get_comment(self.get_post(pk), comment_pk)
        liked = comments.toggle_comment_like(comment, self.actor, request.user)
        return JsonResponse({"liked": liked, "likeCount": comment.likes.count()})


class CommentReportView(CommentMixin, JsonView):
    def post(self, request, pk, comment_pk):
        workflow.require_actor(self.actor)
        comment = self.get_comment(self.get_post(pk), comment_pk)
        count = comments.report_comment(comment, self.actor)
        return JsonResponse({
            "message": "Comment reported successfully. Our moderators will review it.",
            "reportCount": count,
        })


class NotificationView(JsonView):
    """The acting user's notifications."""

    def get(self, request):
        workflow.require_actor(self.actor)
        found = Notification.objects.filter(recipient_id=self.actor.id).select_related("sender")
        if request.GET.get("unreadOnly") == "true":
            found = found.filter(is_read=False)
        page = Paginator(found, blog_settings.NOTIFICATIONS_PER_PAGE).get_page(
            _page_number(request)
        )
        return JsonResponse({
            "notifications": [notification_data(n) for n in page],
            "unreadCount": Notification.unread_count(self.actor.id),
            "pagination": _pagination(page),
        })

    def put(self, request):
        workflow.require_actor(self.actor)
        data = self.json_body()
        if data.get("markAll"):
            Notification.mark_all_read(self.actor.id)
        elif isinstance(data.get("notificationIds"), list):
            Notification.mark_read(data["notificationIds"], self.actor.id)
        else:
            raise WorkflowValidationError("notificationIds or markAll is required")
        return JsonResponse({
            "message": "Notifications marked as read",
            "unreadCount": Notification.unread_count(self.actor.id),
        })

    def delete(self, request):
        workflow.require_actor(self.actor)
        notification_id = request.GET.get("id")
        if not notification_id:
            raise WorkflowValidationError("Notification ID is required")
        try:
            deleted, _ = Notification.objects.filter(
                pk=notification_id, recipient_id=self.actor.id
            ).delete()
        except ValueError:
            deleted = 0
        if not deleted:
            raise NotFound("Notification not found")
        return JsonResponse({"message": "Notification deleted"})
