"""
Author aggregate statistics for django-blog-workflow.
"""
from django.conf import settings
from django.db import models


class AuthorStats(models.Model):
    """Totals over an author's published posts."""

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="workflow_stats",
    )
    total_posts = models.PositiveIntegerField(default=0)
    total_views = models.PositiveIntegerField(default=0)
    total_likes = models.PositiveIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Author stats"
        verbose_name_plural = "Author stats"

    def __str__(self):
        return f"Stats for {self.user}"

    @classmethod
    def refresh_for(cls, user_id):
        """Recompute the totals of one author from their published posts."""
        from .posts import Post

        published = Post.objects.published().filter(author_id=user_id)
        totals = published.aggregate(views=models.Sum("view_count"))
        stats, _ = cls.objects.update_or_create(
            user_id=user_id,
            defaults={
                "total_posts": published.count(),
                "total_views": totals["views"] or 0,
                "total_likes": Post.likes.through.objects.filter(
                    post__in=published
                ).count(),
            },
        )
        return stats
