"""
Revision model for django-blog-workflow.

A revision is a proposed edit to a post that is already live. The post keeps
serving its current content until an admin approves the revision.
"""
from django.conf import settings
from django.db import models


class Revision(models.Model):
    """
    Pending edit snapshot for a published post.

    At most one revision exists per post. Submitting again overwrites it;
    approving or rejecting it deletes the row.
    """

    post = models.OneToOneField(
        "blog_workflow.Post",
        on_delete=models.CASCADE,
        related_name="revision",
    )
    title = models.CharField(max_length=200)
    body = models.TextField()
    excerpt = models.CharField(max_length=300, blank=True)
    featured_image_url = models.URLField(max_length=500, blank=True)
    category = models.ForeignKey(
        "blog_workflow.Category",
        on_delete=models.PROTECT,
        related_name="+",
    )
    tags = models.JSONField(default=list, blank=True)

    submitted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        on_delete=models.SET_NULL,
        related_name="submitted_revisions",
    )
    submitted_at = models.DateTimeField()

    class Meta:
        ordering = ["-submitted_at"]

    def __str__(self):
        return f"Revision of {self.post}"
