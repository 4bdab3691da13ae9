"""
Draft review models for django-blog-workflow.

Draft reviews are peer feedback threads on a post. They do not gate
publication; the admin approve/reject gate is separate.
"""
from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MaxLengthValidator
from django.db import models
from django.utils import timezone


class DraftReview(models.Model):
    """Review request addressed to one reviewer for one post."""

    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        APPROVED = "approved", "Approved"
        CHANGES_REQUESTED = "changes_requested", "Changes requested"
        REJECTED = "rejected", "Rejected"

    COMPLETED_STATUSES = (Status.APPROVED, Status.CHANGES_REQUESTED, Status.REJECTED)

    post = models.ForeignKey(
        "blog_workflow.Post",
        on_delete=models.CASCADE,
        related_name="draft_reviews",
    )
    reviewer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="draft_reviews_assigned",
    )
    requested_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="draft_reviews_requested",
    )
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING,
        db_index=True,
    )
    overall_feedback = models.TextField(
        max_length=2000,
        blank=True,
        validators=[MaxLengthValidator(2000)],
    )
    reviewed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["post", "status"]),
            models.Index(fields=["reviewer", "status"]),
        ]

    def __str__(self):
        return f"Review of {self.post} by {self.reviewer}"

    @classmethod
    def request_review(cls, post, reviewer, requested_by):
        """Open a review, refusing a second pending one for the same reviewer."""
        reviewer_id = getattr(reviewer, "pk", reviewer)
        if cls.objects.filter(post=post, reviewer_id=reviewer_id, status=cls.Status.PENDING).exists():
            raise ValidationError("A pending review already exists for this reviewer")
        return cls.objects.create(
            post=post,
            reviewer_id=reviewer_id,
            requested_by_id=getattr(requested_by, "pk", requested_by),
        )

    @property
    def unresolved_comments_count(self):
        return self.comments.filter(resolved=False).count()

    def add_comment(self, content, position=0, selected_text=""):
        comment = ReviewComment(
            review=self,
            content=content,
            position=position or 0,
            selected_text=selected_text or "",
        )
        comment.full_clean(exclude=["review"])
        comment.save()
        return comment

    def resolve_comment(self, comment_id, user):
        """Mark an inline comment resolved. Raises ReviewComment.DoesNotExist."""
        comment = self.comments.get(pk=comment_id)
        comment.resolved = True
        comment.resolved_by_id = getattr(user, "pk", user)
        comment.resolved_at = timezone.now()
        comment.save(update_fields=["resolved", "resolved_by", "resolved_at"])
        return comment

    def complete_review(self, status, feedback=""):
        if status not in self.COMPLETED_STATUSES:
            raise ValidationError("Invalid review status")
        self.status = status
        self.overall_feedback = feedback or ""
        self.reviewed_at = timezone.now()
        self.full_clean(exclude=["post", "reviewer", "requested_by"])
        self.save()


class ReviewComment(models.Model):
    """Inline review comment anchored to a character position in the body."""

    review = models.ForeignKey(
        DraftReview,
        on_delete=models.CASCADE,
        related_name="comments",
    )
    content = models.TextField(max_length=1000, validators=[MaxLengthValidator(1000)])
    position = models.PositiveIntegerField(default=0)
    selected_text = models.CharField(max_length=200, blank=True)
    resolved = models.BooleanField(default=False)
    resolved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )
    resolved_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["position", "created_at"]

    def __str__(self):
        return f"Comment at {self.position} on {self.review}"
