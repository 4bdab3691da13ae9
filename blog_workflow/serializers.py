"""
Plain-dict renderings of models for JSON responses.
"""


def _iso(value):
    return value.isoformat() if value else None


def user_data(user):
    if user is None:
        return None
    return {
        "id": user.pk,
        "username": user.get_username(),
        "name": user.get_full_name() or user.get_username(),
    }


def category_data(category):
    return {
        "id": category.pk,
        "name": category.name,
        "slug": category.slug,
        "color": category.color,
        "postCount": category.post_count,
    }


def revision_data(revision):
    if revision is None:
        return None
    return {
        "id": revision.pk,
        "title": revision.title,
        "body": revision.body,
        "excerpt": revision.excerpt,
        "featuredImageUrl": revision.featured_image_url,
        "category": revision.category_id,
        "tags": list(revision.tags),
        "submittedBy": revision.submitted_by_id,
        "submittedAt": _iso(revision.submitted_at),
    }


def post_summary(post):
    """Fields shown in listings."""
    return {
        "id": post.pk,
        "title": post.title,
        "slug": post.slug,
        "excerpt": post.excerpt,
        "featuredImageUrl": post.featured_image_url,
        "author": user_data(post.author),
        "category": category_data(post.category),
        "status": post.status,
        "publishedAt": _iso(post.published_at),
        "readingTime": post.reading_time,
        "viewCount": post.view_count,
        "isFeatured": post.is_featured,
        "createdAt": _iso(post.created_at),
    }


def post_data(post, include_revision=False):
    data = post_summary(post)
    data.update({
        "body": post.body,
        "tags": list(post.tags.values_list("name", flat=True)),
        "coAuthors": list(post.co_authors.values_list("pk", flat=True)),
        "likeCount": post.like_count,
        "allowComments": post.allow_comments,
        "reviewedBy": user_data(post.reviewed_by),
        "reviewedAt": _iso(post.reviewed_at),
        "rejectionReason": post.rejection_reason,
        "version": post.version,
        "updatedAt": _iso(post.updated_at),
    })
    if include_revision:
        data["revision"] = revision_data(getattr(post, "revision", None))
    return data


def comment_data(comment, replies=None):
    data = {
        "id": comment.pk,
        "post": comment.post_id,
        "parent": comment.parent_id,
        "author": user_data(comment.author) if comment.author_id else None,
        "authorName": comment.author_name,
        "body": comment.body,
        "isApproved": comment.is_approved,
        "likeCount": comment.likes.count(),
        "createdAt": _iso(comment.created_at),
    }
    if replies is not None:
        data["replies"] = replies
    return data


def review_comment_data(comment):
    return {
        "id": comment.pk,
        "content": comment.content,
        "position": comment.position,
        "selectedText": comment.selected_text,
        "resolved": comment.resolved,
        "resolvedBy": comment.resolved_by_id,
        "resolvedAt": _iso(comment.resolved_at),
        "createdAt": _iso(comment.created_at),
    }


def review_data(review):
    return {
        "id": review.pk,
        "post": review.post_id,
        "reviewer": user_data(review.reviewer),
        "requestedBy": user_data(review.requested_by),
        "status": review.status,
        "overallFeedback": review.overall_feedback,
        "comments": [review_comment_data(c) for c in review.comments.all()],
        "unresolvedComments": review.unresolved_comments_count,
        "reviewedAt": _iso(review.reviewed_at),
        "createdAt": _iso(review.created_at),
    }


def notification_data(notification):
    return {
        "id": notification.pk,
        "type": notification.type,
        "sender": user_data(notification.sender),
        "post": notification.post_id,
        "comment": notification.comment_id,
        "message": notification.message,
        "link": notification.link,
        "isRead": notification.is_read,
        "createdAt": _iso(notification.created_at),
    }


def version_data(version):
    return {
        "id": version.pk,
        "version": version.number,
        "title": version.title,
        "body": version.body,
        "excerpt": version.excerpt,
        "featuredImageUrl": version.featured_image_url,
        "category": version.category_id,
        "tags": list(version.tags),
        "editedBy": user_data(version.edited_by),
        "editReason": version.edit_reason,
        "changesSummary": version.changes_summary,
        "diff": {
            "fieldsChanged": list(version.fields_changed),
            "addedTags": list(version.added_tags),
            "removedTags": list(version.removed_tags),
            "contentLengthChange": version.content_length_change,
        },
        "createdAt": _iso(version.created_at),
    }
