"""
Post version history for django-blog-workflow.
"""
from django.conf import settings
from django.db import models


class PostVersion(models.Model):
    """
    Snapshot of a post's content after a content write.

    Versions are numbered per post from 1. Each one also records what changed
    compared to the version before it.
    """

    post = models.ForeignKey(
        "blog_workflow.Post",
        on_delete=models.CASCADE,
        related_name="versions",
    )
    number = models.PositiveIntegerField()

    # Snapshot
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

    # Change metadata
    edited_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        on_delete=models.SET_NULL,
        related_name="post_versions",
    )
    edit_reason = models.CharField(max_length=500, blank=True)
    changes_summary = models.CharField(max_length=1000, blank=True)
    fields_changed = models.JSONField(default=list, blank=True)
    added_tags = models.JSONField(default=list, blank=True)
    removed_tags = models.JSONField(default=list, blank=True)
    content_length_change = models.IntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    # Compared between consecutive versions
    COMPARED_FIELDS = ("title", "body", "excerpt", "featured_image_url", "category_id")

    class Meta:
        ordering = ["-number"]
        constraints = [
            models.UniqueConstraint(fields=["post", "number"], name="unique_post_version_number"),
        ]

    def __str__(self):
        return f"{self.post} v{self.number}"

    @classmethod
    def create_version(cls, post, edited_by_id, edit_reason=""):
        """
        Record the current content of ``post`` as its next version.

        Call inside the transaction that wrote the post, after its tags are set.
        """
        previous = cls.objects.filter(post=post).order_by("-number").first()
        tags = list(post.tags.order_by("name").values_list("name", flat=True))
        version = cls(
            post=post,
            number=previous.number + 1 if previous else 1,
            title=post.title,
            body=post.body,
            excerpt=post.excerpt,
            featured_image_url=post.featured_image_url,
            category_id=post.category_id,
            tags=tags,
            edited_by_id=edited_by_id,
            edit_reason=(edit_reason or "")[:500],
        )
        if previous is not None:
            version.fields_changed = [
                name.removesuffix("_id")
                for name in cls.COMPARED_FIELDS
                if getattr(version, name) != getattr(previous, name)
            ]
            version.added_tags = [t for t in tags if t not in previous.tags]
            version.removed_tags = [t for t in previous.tags if t not in tags]
            version.content_length_change = len(version.body) - len(previous.body)
        version.changes_summary = version.summarize()[:1000]
        version.save()
        return version

    def summarize(self):
        if self.edit_reason:
            return self.edit_reason
        parts = []
        if self.fields_changed:
            parts.append("Updated: " + ", ".join(self.fields_changed))
        if self.added_tags:
            parts.append("Added tags: " + ", ".join(self.added_tags))
        if self.removed_tags:
            parts.append("Removed tags: " + ", ".join(self.removed_tags))
        return " | ".join(parts)

    def content(self):
        """Snapshot as post field values, ``tags`` as a list of names."""
        return {
            "title": self.title,
            "body": self.body,
            "excerpt": self.excerpt,
            "featured_image_url": self.featured_image_url,
            "category": self.category,
            "tags": list(self.tags),
        }
