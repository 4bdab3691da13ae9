"""
Post, Category, and Tag models for django-blog-workflow.
"""
import math
import re

from django.conf import settings
from django.core.validators import RegexValidator
from django.db import models
from django.db.models.functions import Greatest
from django.utils import timezone
from django.utils.text import slugify

from ..conf import blog_settings

TAG_RE = re.compile(r"<[^>]*>")


class Category(models.Model):
    """
    Category for organizing posts.

    ``post_count`` is a denormalized count of the published posts in this
    category. It is maintained with explicit increment/decrement calls at
    every status boundary; ``recount_post_count`` rebuilds it from posts.
    """

    name = models.CharField(max_length=50, unique=True)
    slug = models.SlugField(max_length=100, unique=True)
    description = models.CharField(max_length=200, blank=True)
    color = models.CharField(
        max_length=7,
        default="#3B82F6",
        validators=[
            RegexValidator(
                r"^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$",
                "Please provide a valid hex color",
            )
        ],
    )
    post_count = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        verbose_name_plural = "Categories"

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = slugify(self.name)[:blog_settings.SLUG_MAX_LENGTH]
        super().save(*args, **kwargs)

    @classmethod
    def increment_post_count(cls, category_id):
        """Atomically add one published post to the category counter."""
        return cls.objects.filter(pk=category_id).update(
            post_count=models.F("post_count") + 1
        )

    @classmethod
    def decrement_post_count(cls, category_id):
        """Atomically remove one published post, never going below zero."""
        return cls.objects.filter(pk=category_id).update(
            post_count=Greatest(models.F("post_count") - 1, 0)
        )

    def recount_post_count(self):
        """Rebuild the counter from posts. Returns the new count."""
        count = self.posts.filter(status=Post.Status.PUBLISHED).count()
        Category.objects.filter(pk=self.pk).update(post_count=count)
        self.post_count = count
        return count


class Tag(models.Model):
    """Flat tag for posts."""

    name = models.CharField(max_length=30, unique=True)
    slug = models.SlugField(max_length=100, unique=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = slugify(self.name)[:blog_settings.SLUG_MAX_LENGTH]
        super().save(*args, **kwargs)

    @classmethod
    def from_names(cls, names):
        """Return Tag instances for the given names, creating missing ones."""
        tags = []
        for name in names:
            name = str(name).strip()
            if not name:
                continue
            tag, _ = cls.objects.get_or_create(name=name)
            tags.append(tag)
        return tags


class PostQuerySet(models.QuerySet):
    def published(self):
        return self.filter(status=Post.Status.PUBLISHED)

    def pending_review(self):
        return self.filter(status=Post.Status.PENDING_REVIEW)


class Post(models.Model):
    """
    Blog post.

    The ``status`` field is owned by the workflow in ``blog_workflow.workflow``;
    views and admin actions go through it rather than writing the field.
    """

    class Status(models.TextChoices):
        DRAFT = "draft", "Draft"
        PENDING_REVIEW = "pending_review", "Pending review"
        PUBLISHED = "published", "Published"
        REJECTED = "rejected", "Rejected"

    # Content
    title = models.CharField(max_length=200)
    slug = models.SlugField(max_length=255, unique=True, blank=True)
    body = models.TextField()
    excerpt = models.CharField(
        max_length=300,
        blank=True,
        help_text="Optional manual excerpt. Auto-generated if blank.",
    )
    featured_image_url = models.URLField(max_length=500, blank=True)

    # Ownership
    author = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="workflow_posts",
    )
    co_authors = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        blank=True,
        related_name="co_authored_posts",
    )

    # Taxonomy
    category = models.ForeignKey(
        Category,
        on_delete=models.PROTECT,
        related_name="posts",
    )
    tags = models.ManyToManyField(Tag, related_name="posts", blank=True)

    # Lifecycle
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.DRAFT,
        db_index=True,
    )
    published_at = models.DateTimeField(null=True, blank=True, db_index=True)
    reviewed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="reviewed_workflow_posts",
    )
    reviewed_at = models.DateTimeField(null=True, blank=True)
    rejection_reason = models.CharField(max_length=500, blank=True)
    version = models.PositiveIntegerField(
        default=0,
        help_text="Bumped on every status transition",
    )

    # Engagement
    likes = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        blank=True,
        related_name="liked_workflow_posts",
    )
    view_count = models.PositiveIntegerField(default=0)
    reading_time = models.PositiveSmallIntegerField(default=1)

    # Flags
    is_featured = models.BooleanField(default=False)
    allow_comments = models.BooleanField(default=True)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = PostQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "-published_at"]),
            models.Index(fields=["author", "-created_at"]),
            models.Index(fields=["category", "status"]),
        ]

    def __str__(self):
        return self.title

    def save(self, *args, **kwargs):
        self.prepare_for_save()
        super().save(*args, **kwargs)

    def prepare_for_save(self):
        """Fill in the derived fields: slug, reading time, excerpt, published_at."""
        # Slug is derived once, from the first saved title
        if not self.slug and self.title:
            base_slug = slugify(self.title)[:blog_settings.SLUG_MAX_LENGTH] or "post"
            slug = base_slug
            counter = 1
            while Post.objects.filter(slug=slug).exclude(pk=self.pk).exists():
                counter += 1
                slug = f"{base_slug}-{counter}"
            self.slug = slug

        if self.body:
            self.reading_time = self.estimate_reading_time(self.body)
            if not self.excerpt:
                self.excerpt = self.make_excerpt(self.body)

        self.sync_published_at()

    def sync_published_at(self, now=None):
        """Keep published_at set exactly while the post is published."""
        if self.status == self.Status.PUBLISHED:
            if not self.published_at:
                self.published_at = now or timezone.now()
        else:
            self.published_at = None

    @staticmethod
    def make_excerpt(body):
        length = blog_settings.EXCERPT_LENGTH
        plain = TAG_RE.sub("", body).strip()
        if len(plain) > length:
            return plain[:length] + "..."
        return plain

    @staticmethod
    def estimate_reading_time(body):
        words = len(TAG_RE.sub(" ", body).split())
        return max(1, math.ceil(words / blog_settings.WORDS_PER_MINUTE))

    @property
    def is_published(self):
        return self.status == self.Status.PUBLISHED

    @property
    def like_count(self):
        return self.likes.count()

    def is_owner(self, actor):
        return actor is not None and self.author_id == actor.id

    def is_contributor(self, actor):
        """Owner or co-author."""
        if actor is None:
            return False
        return self.is_owner(actor) or self.co_authors.filter(pk=actor.id).exists()

    def can_view(self, actor):
        if self.is_published:
            return True
        if actor is None:
            return False
        return actor.is_admin or self.is_contributor(actor)

    def get_absolute_url(self):
        return blog_settings.POST_PATH.format(slug=self.slug)

    def increment_view_count(self):
        """Increment view count atomically."""
        Post.objects.filter(pk=self.pk).update(view_count=models.F("view_count") + 1)
