"""
Comment model for django-blog-workflow.
"""
from django.conf import settings
from django.db import models

from ..conf import blog_settings


class Comment(models.Model):
    """
    Comment on a post.

    Supports:
    - Threaded replies via parent field
    - Moderation workflow
    - Guest comments with name and email
    - Likes and abuse reports
    """

    post = models.ForeignKey(
        "blog_workflow.Post",
        on_delete=models.CASCADE,
        related_name="comments",
    )
    author = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.CASCADE,
        related_name="workflow_comments",
    )
    guest_name = models.CharField(max_length=50, blank=True)
    guest_email = models.EmailField(blank=True)
    parent = models.ForeignKey(
        "self",
        null=True,
        blank=True,
        on_delete=models.CASCADE,
        related_name="replies",
    )
    body = models.TextField(max_length=blog_settings.COMMENT_MAX_LENGTH)
    is_approved = models.BooleanField(
        default=False,
        help_text="Whether comment is approved and visible",
    )
    likes = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        blank=True,
        related_name="liked_workflow_comments",
    )
    is_reported = models.BooleanField(default=False)
    report_count = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["post", "is_approved", "created_at"]),
        ]

    def __str__(self):
        return f"Comment by {self.author_name} on {self.post}"

    @property
    def author_name(self):
        if self.author_id:
            return self.author.get_full_name() or self.author.get_username()
        return self.guest_name or "Anonymous"

    @property
    def preview(self):
        """Return truncated body for admin display."""
        if len(self.body) > 100:
            return self.body[:100] + "..."
        return self.body

    def approve(self):
        """Approve the comment for display."""
        self.is_approved = True
        self.save(update_fields=["is_approved", "updated_at"])

    def report(self):
        """Flag the comment for moderator attention."""
        Comment.objects.filter(pk=self.pk).update(
            is_reported=True,
            report_count=models.F("report_count") + 1,
        )
        self.refresh_from_db(fields=["is_reported", "report_count"])

    def toggle_like(self, user):
        """
        Add or remove a like from user.

        Returns True when the comment is now liked by user.
        """
        if self.likes.filter(pk=user.pk).exists():
            self.likes.remove(user)
            return False
        self.likes.add(user)
        return True
