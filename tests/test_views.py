"""
Tests for the JSON endpoints.
"""
import json

import pytest
from django.urls import reverse

from blog_workflow.models import Category, Comment, DraftReview, Notification, Post, Revision

Status = Post.Status


def send(client, method, url, data=None):
    return getattr(client, method)(
        url, data=json.dumps(data) if data is not None else "", content_type="application/json"
    )


@pytest.fixture
def author_client(client, user):
    client.force_login(user)
    return client


@pytest.fixture
def admin_client(client, admin_user):
    client.force_login(admin_user)
    return client


@pytest.fixture
def reader_client(client, other_user):
    client.force_login(other_user)
    return client


def action_url(post):
    return reverse("blog_workflow:post_actions", args=[post.pk])


def detail_url(post):
    return reverse("blog_workflow:post_detail", args=[post.pk])


class TestPostActions:
    def test_requires_login(self, client, draft):
        response = send(client, "post", action_url(draft), {"action": "submit"})
        assert response.status_code == 401
        assert response.json() == {"error": "Authentication required"}

    def test_action_required(self, author_client, draft):
        response = send(author_client, "post", action_url(draft), {})
        assert response.status_code == 400
        assert response.json()["error"] == "Action is required"

    def test_invalid_action(self, author_client, draft):
        response = send(author_client, "post", action_url(draft), {"action": "archive"})
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid action"

    def test_invalid_json(self, author_client, draft):
        response = author_client.post(
            action_url(draft), data="{not json", content_type="application/json"
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid JSON body"

    def test_unknown_post(self, author_client):
        response = send(
            author_client, "post", reverse("blog_workflow:post_actions", args=[999]), {"action": "submit"}
        )
        assert response.status_code == 404
        assert response.json()["error"] == "Post not found"

    def test_submit(self, author_client, draft):
        response = send(author_client, "post", action_url(draft), {"action": "submit"})
        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Post submitted for review successfully"
        assert body["post"]["status"] == "pending_review"

    def test_submit_from_pending_is_400(self, author_client, pending):
        response = send(author_client, "post", action_url(pending), {"action": "submit"})
        assert response.status_code == 400
        assert response.json()["error"] == (
            "Post must be in draft or rejected status to submit for review"
        )

    def test_author_cannot_approve(self, author_client, pending):
        response = send(author_client, "post", action_url(pending), {"action": "approve"})
        assert response.status_code == 403

    def test_approve(self, admin_client, pending, category):
        response = send(admin_client, "post", action_url(pending), {"action": "approve"})
        assert response.status_code == 200
        assert response.json()["post"]["status"] == "published"
        category.refresh_from_db()
        assert category.post_count == 1

    def test_reject_requires_reason(self, admin_client, pending):
        response = send(admin_client, "post", action_url(pending), {"action": "reject"})
        assert response.status_code == 400
        assert response.json()["error"] == "Rejection reason is required"
        pending.refresh_from_db()
        assert pending.status == Status.PENDING_REVIEW

    def test_reject(self, admin_client, pending):
        response = send(
            admin_client, "post", action_url(pending), {"action": "reject", "reason": "needs more detail"}
        )
        assert response.status_code == 200
        assert response.json()["post"]["rejectionReason"] == "needs more detail"

    def test_like_returns_count(self, reader_client, published):
        response = send(reader_client, "post", action_url(published), {"action": "like"})
        assert response.json()["likeCount"] == 1
        response = send(reader_client, "post", action_url(published), {"action": "like"})
        assert response.json()["likeCount"] == 1

    def test_conflict_is_409(self, admin_client, pending, monkeypatch):
        from blog_workflow import workflow
        from blog_workflow.exceptions import TransitionConflict

        def conflicting(post, actor):
            raise TransitionConflict()

        monkeypatch.setattr(workflow, "approve", conflicting)
        response = send(admin_client, "post", action_url(pending), {"action": "approve"})
        assert response.status_code == 409

    def test_unexpected_error_is_500(self, admin_client, pending, monkeypatch):
        from blog_workflow import workflow

        def broken(post, actor):
            raise RuntimeError("boom")

        monkeypatch.setattr(workflow, "approve", broken)
        response = send(admin_client, "post", action_url(pending), {"action": "approve"})
        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}


class TestPostDetail:
    def test_anonymous_sees_published_only(self, client, draft, published):
        assert client.get(detail_url(published)).status_code == 200
        assert client.get(detail_url(draft)).status_code == 404

    def test_view_counted_for_others(self, client, published):
        client.get(detail_url(published))
        published.refresh_from_db()
        assert published.view_count == 1

    def test_owner_view_not_counted(self, author_client, published):
        author_client.get(detail_url(published))
        published.refresh_from_db()
        assert published.view_count == 0

    def test_put_author_edit_of_published_stores_revision(self, author_client, published):
        response = send(author_client, "put", detail_url(published), {"title": "New Title"})
        assert response.status_code == 200
        body = response.json()
        assert body["post"]["title"] == "Test Post"
        assert body["revision"]["title"] == "New Title"

    def test_put_author_cannot_publish(self, author_client, draft):
        response = send(author_client, "put", detail_url(draft), {"status": "published"})
        assert response.status_code == 403
        assert response.json()["error"] == "Authors can only save as draft or submit for review"

    def test_put_validation_errors_joined(self, author_client, draft):
        response = send(author_client, "put", detail_url(draft), {"featuredImageUrl": "nope"})
        assert response.status_code == 400
        assert "Enter a valid URL." in response.json()["error"]

    def test_put_approve_revision(self, admin_client, published, user):
        Revision.objects.create(
            post=published,
            title="New Title",
            body=published.body,
            category=published.category,
            submitted_by=user,
            submitted_at=published.created_at,
        )
        response = send(admin_client, "put", detail_url(published), {"approveRevision": True})
        assert response.status_code == 200
        assert response.json()["post"]["title"] == "New Title"

    def test_delete(self, author_client, published, category):
        response = author_client.delete(detail_url(published))
        assert response.status_code == 200
        category.refresh_from_db()
        assert category.post_count == 0


class TestPostCollection:
    def test_listing_is_cached_until_publish(
        self, admin_client, pending, published, django_capture_on_commit_callbacks
    ):
        url = reverse("blog_workflow:post_list")
        assert admin_client.get(url).json()["pagination"]["total"] == 1

        # A publish after the listing was cached must show up
        with django_capture_on_commit_callbacks(execute=True):
            send(admin_client, "post", action_url(pending), {"action": "approve"})
        assert admin_client.get(url).json()["pagination"]["total"] == 2

    def test_listing_built_across_invalidation_not_served_stale(
        self, client, make_post, monkeypatch
    ):
        from blog_workflow import cache, views

        build = views.PostCollectionView._build_listing

        def build_then_invalidate(view, filters):
            payload = build(view, filters)
            cache.invalidate_post_caches()
            return payload

        url = reverse("blog_workflow:post_list")
        monkeypatch.setattr(views.PostCollectionView, "_build_listing", build_then_invalidate)
        assert client.get(url).json()["posts"] == []
        monkeypatch.undo()

        make_post(Status.PUBLISHED, title="Fresh")
        assert [p["title"] for p in client.get(url).json()["posts"]] == ["Fresh"]

    def test_filters(self, client, make_post, other_category):
        make_post(Status.PUBLISHED)
        make_post(Status.PUBLISHED, category=other_category)
        url = reverse("blog_workflow:post_list")
        response = client.get(url, {"category": "other-category"})
        assert response.json()["pagination"]["total"] == 1

    def test_create(self, author_client, category):
        response = send(
            author_client,
            "post",
            reverse("blog_workflow:post_list"),
            {"title": "Fresh", "body": "Text", "category": category.pk},
        )
        assert response.status_code == 201
        assert response.json()["post"]["status"] == "draft"

    def test_create_requires_login(self, client, category):
        response = send(
            client, "post", reverse("blog_workflow:post_list"), {"title": "T", "body": "B", "category": category.pk}
        )
        assert response.status_code == 401


class TestQueues:
    def test_pending_queue_admin_only(self, author_client, pending):
        assert author_client.get(reverse("blog_workflow:pending_posts")).status_code == 403

    def test_pending_queue(self, admin_client, pending, draft):
        response = admin_client.get(reverse("blog_workflow:pending_posts"))
        assert [p["id"] for p in response.json()["posts"]] == [pending.pk]

    def test_pending_revisions(self, admin_client, published, user):
        Revision.objects.create(
            post=published,
            title="New Title",
            body=published.body,
            category=published.category,
            submitted_by=user,
            submitted_at=published.created_at,
        )
        response = admin_client.get(
            reverse("blog_workflow:pending_revisions"), {"search": "test"}
        )
        body = response.json()
        assert body["total"] == 1
        assert body["posts"][0]["revision"]["title"] == "New Title"


class TestComments:
    def comments_url(self, post):
        return reverse("blog_workflow:post_comments", args=[post.pk])

    def test_guest_comment_needs_name_and_email(self, client, published):
        response = send(client, "post", self.comments_url(published), {"body": "Hi"})
        assert response.status_code == 400
        response = send(
            client,
            "post",
            self.comments_url(published),
            {"body": "Hi", "guestName": "Guest", "guestEmail": "not-an-email"},
        )
        assert response.json()["error"] == "Please provide a valid email address"

    def test_guest_comment_waits_for_moderation(self, client, published):
        response = send(
            client,
            "post",
            self.comments_url(published),
            {"body": "Hi", "guestName": "Guest", "guestEmail": "guest@example.com"},
        )
        assert response.status_code == 201
        assert response.json()["needsApproval"] is True
        assert client.get(self.comments_url(published)).json()["comments"] == []

    def test_no_moderation_setting_approves_at_once(self, reader_client, published, settings):
        settings.BLOG_WORKFLOW = {"MODERATE_COMMENTS": False}
        response = send(reader_client, "post", self.comments_url(published), {"body": "Hi"})
        assert response.json()["needsApproval"] is False
        assert Comment.objects.get().is_approved

    def test_comments_disabled(self, reader_client, published):
        published.allow_comments = False
        published.save()
        response = send(reader_client, "post", self.comments_url(published), {"body": "Hi"})
        assert response.status_code == 403

    def test_too_long(self, reader_client, published):
        response = send(reader_client, "post", self.comments_url(published), {"body": "x" * 1001})
        assert response.status_code == 400

    def test_unknown_parent(self, reader_client, published):
        response = send(
            reader_client, "post", self.comments_url(published), {"body": "Hi", "parentId": 999}
        )
        assert response.status_code == 404

    def test_admin_comment_approved_and_notifies(self, admin_client, published, user):
        response = send(admin_client, "post", self.comments_url(published), {"body": "Nice"})
        assert response.json()["needsApproval"] is False
        assert Notification.objects.filter(
            recipient=user, type=Notification.Type.COMMENT_POST
        ).exists()

    def test_moderation_and_threading(self, client, published, user, other_user, admin_user):
        root = Comment.objects.create(post=published, author=user, body="Root", is_approved=True)
        reply = Comment.objects.create(post=published, author=other_user, body="Reply", parent=root)

        client.force_login(admin_user)
        url = reverse("blog_workflow:comment_moderate", args=[published.pk, reply.pk])
        response = send(client, "patch", url, {"action": "approve"})
        assert response.json()["message"] == "Comment approved successfully"
        assert Notification.objects.filter(
            recipient=user, type=Notification.Type.REPLY_COMMENT
        ).exists()

        client.logout()
        comments = client.get(self.comments_url(published)).json()["comments"]
        assert len(comments) == 1
        assert comments[0]["replies"][0]["body"] == "Reply"

    def test_moderate_reject_deletes(self, admin_client, published, user):
        comment = Comment.objects.create(post=published, author=user, body="Spam")
        url = reverse("blog_workflow:comment_moderate", args=[published.pk, comment.pk])
        response = send(admin_client, "patch", url, {"action": "reject"})
        assert response.json()["message"] == "Comment rejected successfully"
        assert not Comment.objects.filter(pk=comment.pk).exists()

    def test_moderate_admin_only(self, reader_client, published, user):
        comment = Comment.objects.create(post=published, author=user, body="Hi")
        url = reverse("blog_workflow:comment_moderate", args=[published.pk, comment.pk])
        assert send(reader_client, "patch", url, {"action": "approve"}).status_code == 403

    def test_like_and_report(self, reader_client, published, user):
        comment = Comment.objects.create(post=published, author=user, body="Hi", is_approved=True)
        like_url = reverse("blog_workflow:comment_like", args=[published.pk, comment.pk])
        assert reader_client.post(like_url).json() == {"liked": True, "likeCount": 1}
        assert Notification.objects.filter(type=Notification.Type.LIKE_COMMENT).count() == 1
        assert reader_client.post(like_url).json() == {"liked": False, "likeCount": 0}

        report_url = reverse("blog_workflow:comment_report", args=[published.pk, comment.pk])
        assert reader_client.post(report_url).json()["reportCount"] == 1

    def test_owner_sees_pending_on_request(self, author_client, published, other_user):
        Comment.objects.create(post=published, author=other_user, body="Pending")
        url = self.comments_url(published)
        assert author_client.get(url).json()["comments"] == []
        assert len(author_client.get(url, {"include_pending": "true"}).json()["comments"]) == 1


class TestDraftReviews:
    def reviews_url(self, post):
        return reverse("blog_workflow:post_reviews", args=[post.pk])

    def test_request_and_complete(self, client, draft, user, other_user):
        client.force_login(user)
        response = send(client, "post", self.reviews_url(draft), {"reviewerId": other_user.pk})
        assert response.status_code == 201
        review_id = response.json()["review"]["id"]

        duplicate = send(client, "post", self.reviews_url(draft), {"reviewerId": other_user.pk})
        assert duplicate.status_code == 400

        client.force_login(other_user)
        response = send(
            client,
            "put",
            self.reviews_url(draft),
            {"reviewId": review_id, "action": "add-comment", "data": {"content": "Typo", "position": 4}},
        )
        assert response.json()["review"]["unresolvedComments"] == 1
        comment_id = response.json()["review"]["comments"][0]["id"]

        client.force_login(user)
        response = send(
            client,
            "put",
            self.reviews_url(draft),
            {"reviewId": review_id, "action": "resolve-comment", "data": {"commentId": comment_id}},
        )
        assert response.json()["review"]["unresolvedComments"] == 0

        response = send(
            client,
            "put",
            self.reviews_url(draft),
            {"reviewId": review_id, "action": "complete-review", "data": {"status": "approved"}},
        )
        assert response.status_code == 403

        client.force_login(other_user)
        response = send(
            client,
            "put",
            self.reviews_url(draft),
            {"reviewId": review_id, "action": "complete-review", "data": {"status": "approved"}},
        )
        assert response.json()["review"]["status"] == "approved"
        draft.refresh_from_db()
        assert draft.status == Status.DRAFT

    def test_only_authors_request(self, reader_client, draft, admin_user):
        response = send(reader_client, "post", self.reviews_url(draft), {"reviewerId": admin_user.pk})
        assert response.status_code == 403
        assert DraftReview.objects.count() == 0

    def test_reviews_of_hidden_draft_not_listed(self, reader_client, draft, user, admin_user):
        DraftReview.request_review(draft, admin_user, user)
        response = reader_client.get(self.reviews_url(draft))
        assert response.status_code == 404

    def test_reviewer_lists_reviews_of_draft(self, reader_client, draft, user, other_user):
        DraftReview.request_review(draft, other_user, user)
        response = reader_client.get(self.reviews_url(draft))
        assert response.status_code == 200
        assert len(response.json()["reviews"]) == 1

    def test_missing_fields(self, author_client, draft):
        response = send(author_client, "put", self.reviews_url(draft), {"action": "add-comment"})
        assert response.json()["error"] == "Review ID and action are required"


class TestVersionEndpoints:
    def versions_url(self, post):
        return reverse("blog_workflow:post_versions", args=[post.pk])

    def test_history_and_restore(self, author_client, draft):
        send(author_client, "put", detail_url(draft), {"title": "One"})
        send(author_client, "put", detail_url(draft), {"title": "Two"})

        body = author_client.get(self.versions_url(draft), {"limit": 1}).json()
        assert body["total"] == 2
        assert body["hasMore"] is True
        assert body["versions"][0]["version"] == 2
        assert body["versions"][0]["diff"]["fieldsChanged"] == ["title"]

        response = send(author_client, "post", self.versions_url(draft), {"version": 1})
        assert response.status_code == 200
        assert response.json()["message"] == "Version restored successfully"
        assert response.json()["post"]["title"] == "One"

    def test_restore_requires_version(self, author_client, draft):
        response = send(author_client, "post", self.versions_url(draft), {})
        assert response.status_code == 400
        assert response.json()["error"] == "Version number is required"

    def test_stranger_refused(self, reader_client, draft):
        response = reader_client.get(self.versions_url(draft))
        assert response.status_code == 403
        assert response.json()["error"] == "Access denied"

    def test_requires_login(self, client, draft):
        assert client.get(self.versions_url(draft)).status_code == 401


class TestCoAuthorEndpoints:
    def authors_url(self, post):
        return reverse("blog_workflow:post_authors", args=[post.pk])

    def test_add_and_remove(self, author_client, draft, other_user):
        response = send(author_client, "post", self.authors_url(draft), {"userId": other_user.pk})
        assert response.status_code == 200
        assert response.json()["post"]["coAuthors"] == [other_user.pk]

        response = author_client.delete(f"{self.authors_url(draft)}?userId={other_user.pk}")
        assert response.json()["message"] == "Co-author removed successfully"
        assert response.json()["post"]["coAuthors"] == []

    def test_user_id_required(self, author_client, draft):
        response = send(author_client, "post", self.authors_url(draft), {})
        assert response.status_code == 400
        assert response.json()["error"] == "User ID is required"

    def test_only_owner_or_admin(self, reader_client, draft, admin_user):
        response = send(reader_client, "post", self.authors_url(draft), {"userId": admin_user.pk})
        assert response.status_code == 403


class TestNotifications:
    url = "/api/notifications/"

    @pytest.fixture
    def notifications(self, draft, user, other_user):
        return [
            Notification.objects.create(
                recipient=user,
                sender=other_user,
                type=Notification.Type.LIKE_POST,
                post=draft,
                message=f"note {i}",
                link="/blog/test-post",
            )
            for i in range(3)
        ]

    def test_requires_login(self, client):
        assert client.get(self.url).status_code == 401

    def test_list_and_mark(self, author_client, notifications):
        body = author_client.get(self.url).json()
        assert body["unreadCount"] == 3
        assert len(body["notifications"]) == 3

        response = send(author_client, "put", self.url, {"notificationIds": [notifications[0].pk]})
        assert response.json()["unreadCount"] == 2
        assert len(author_client.get(self.url, {"unreadOnly": "true"}).json()["notifications"]) == 2

        response = send(author_client, "put", self.url, {"markAll": True})
        assert response.json()["unreadCount"] == 0

    def test_put_requires_ids(self, author_client):
        response = send(author_client, "put", self.url, {})
        assert response.status_code == 400

    def test_delete_own_only(self, reader_client, notifications):
        target = notifications[0]
        response = reader_client.delete(f"{self.url}?id={target.pk}")
        assert response.status_code == 404

    def test_delete(self, author_client, notifications):
        target = notifications[0]
        response = author_client.delete(f"{self.url}?id={target.pk}")
        assert response.status_code == 200
        assert not Notification.objects.filter(pk=target.pk).exists()


def test_category_counter_untouched_by_failed_transition(admin_client, draft):
    send(admin_client, "post", action_url(draft), {"action": "approve"})
    assert Category.objects.get().post_count == 0
