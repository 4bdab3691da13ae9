"""
Notification model for django-blog-workflow.
"""
from datetime import timedelta

from django.conf import settings
from django.db import models
from django.utils import timezone

from ..conf import blog_settings


class Notification(models.Model):
    """
    Alert addressed to a user about something another user did.

    Notifications are created as side effects of other actions and never
    modify the post or comment they point at.
    """

    class Type(models.TextChoices):
        LIKE_POST = "like_post", "Liked your post"
        LIKE_COMMENT = "like_comment", "Liked your comment"
        COMMENT_POST = "comment_post", "Commented on your post"
        REPLY_COMMENT = "reply_comment", "Replied to your comment"
        POST_PUBLISHED = "post_published", "Your post was published"
        REVISION_REJECTED = "revision_rejected", "Your revision was rejected"
        FOLLOW = "follow", "Followed you"

    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="workflow_notifications",
    )
    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="sent_workflow_notifications",
    )
    type = models.CharField(max_length=20, choices=Type.choices)
    post = models.ForeignKey(
        "blog_workflow.Post",
        null=True,
        blank=True,
        on_delete=models.CASCADE,
        related_name="notifications",
    )
    comment = models.ForeignKey(
        "blog_workflow.Comment",
        null=True,
        blank=True,
        on_delete=models.CASCADE,
        related_name="notifications",
    )
    message = models.CharField(max_length=255)
    link = models.CharField(max_length=500)
    is_read = models.BooleanField(default=False, db_index=True)
    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["recipient", "-created_at"]),
            models.Index(fields=["recipient", "is_read", "-created_at"]),
        ]

    def __str__(self):
        return f"{self.type} for {self.recipient}"

    @classmethod
    def create_notification(
        cls, *, recipient, sender, type, message, link, post=None, comment=None
    ):
        """
        Create a notification unless it would be addressed to its sender.

        A notification identical to one created within the dedup window is
        not duplicated: the existing one gets a fresh timestamp instead.

        Returns the notification, or None when nothing was created.
        """
        recipient_id = getattr(recipient, "pk", recipient)
        sender_id = getattr(sender, "pk", sender)
        if recipient_id == sender_id:
            return None

        post_id = getattr(post, "pk", post)
        comment_id = getattr(comment, "pk", comment)
        window = timedelta(seconds=blog_settings.NOTIFICATION_DEDUP_SECONDS)
        now = timezone.now()

        recent = cls.objects.filter(
            recipient_id=recipient_id,
            sender_id=sender_id,
            type=type,
            post_id=post_id,
            comment_id=comment_id,
            created_at__gte=now - window,
        ).first()
        if recent:
            recent.created_at = now
            recent.save(update_fields=["created_at"])
            return recent

        return cls.objects.create(
            recipient_id=recipient_id,
            sender_id=sender_id,
            type=type,
            post_id=post_id,
            comment_id=comment_id,
            message=message,
            link=link,
        )

    @classmethod
    def unread_count(cls, user):
        return cls.objects.filter(recipient=user, is_read=False).count()

    @classmethod
    def mark_read(cls, ids, user):
        """Mark the given notifications of user as read."""
        return cls.objects.filter(pk__in=ids, recipient=user, is_read=False).update(
            is_read=True
        )

    @classmethod
    def mark_all_read(cls, user):
        return cls.objects.filter(recipient=user, is_read=False).update(is_read=True)
