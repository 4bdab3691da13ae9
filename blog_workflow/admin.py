"""
Django admin configuration for blog_workflow.

Status changes made from the admin go through the workflow, so counters,
notifications and caches stay consistent with the JSON API.
"""
from django.contrib import admin, messages

from . import comments, revisions, workflow
from .actors import Actor
from .exceptions import WorkflowError
from .models import (
    AuthorStats,
    Category,
    Comment,
    DraftReview,
    Notification,
    Post,
    PostVersion,
    ReviewComment,
    Revision,
    Tag,
)

CONTENT_FIELDS = {"title", "body", "excerpt", "featured_image_url", "category", "tags"}


def _run_for_each(modeladmin, request, queryset, operation, verb):
    actor = Actor.from_user(request.user)
    done = 0
    for post in queryset:
        try:
            operation(post, actor)
        except WorkflowError as exc:
            modeladmin.message_user(request, f"{post}: {exc.message}", messages.WARNING)
        else:
            done += 1
    modeladmin.message_user(request, f"{done} posts {verb}.")


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ["name", "slug", "post_count", "is_active"]
    list_filter = ["is_active"]
    search_fields = ["name", "slug", "description"]
    prepopulated_fields = {"slug": ("name",)}
    readonly_fields = ["post_count", "created_at", "updated_at"]
    actions = ["recount_posts"]

    @admin.action(description="Recount published posts")
    def recount_posts(self, request, queryset):
        for category in queryset:
            category.recount_post_count()
        self.message_user(request, f"{queryset.count()} categories recounted.")


@admin.register(Tag)
class TagAdmin(admin.ModelAdmin):
    list_display = ["name", "slug"]
    search_fields = ["name", "slug"]
    prepopulated_fields = {"slug": ("name",)}


class RevisionInline(admin.StackedInline):
    model = Revision
    extra = 0
    can_delete = False
    readonly_fields = [
        "title",
        "body",
        "excerpt",
        "featured_image_url",
        "category",
        "tags",
        "submitted_by",
        "submitted_at",
    ]

    def has_add_permission(self, request, obj=None):
        return False


class PostVersionInline(admin.TabularInline):
    model = PostVersion
    extra = 0
    can_delete = False
    fields = ["number", "title", "changes_summary", "edited_by", "created_at"]
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Post)
class PostAdmin(admin.ModelAdmin):
    list_display = [
        "title_preview",
        "author",
        "status",
        "is_featured",
        "category",
        "view_count",
        "published_at",
    ]
    list_filter = ["status", "is_featured", "allow_comments", "category", "created_at"]
    search_fields = ["title", "body", "author__username"]
    raw_id_fields = ["author", "category", "reviewed_by"]
    filter_horizontal = ["tags", "co_authors"]
    date_hierarchy = "created_at"
    inlines = [RevisionInline, PostVersionInline]
    readonly_fields = [
        "status",
        "published_at",
        "reviewed_by",
        "reviewed_at",
        "rejection_reason",
        "version",
        "view_count",
        "reading_time",
        "created_at",
        "updated_at",
    ]

    fieldsets = (
        (None, {
            "fields": ("title", "slug", "body", "excerpt", "featured_image_url", "author", "co_authors")
        }),
        ("Taxonomy", {
            "fields": ("category", "tags")
        }),
        ("Review", {
            "fields": (
                "status",
                "published_at",
                "reviewed_by",
                "reviewed_at",
                "rejection_reason",
                "version",
            )
        }),
        ("Flags", {
            "fields": ("is_featured", "allow_comments")
        }),
        ("Metadata", {
            "fields": ("view_count", "reading_time", "created_at", "updated_at"),
            "classes": ("collapse",),
        }),
    )

    actions = ["approve_posts", "approve_revisions", "reject_revisions"]

    def get_readonly_fields(self, request, obj=None):
        fields = list(super().get_readonly_fields(request, obj))
        # Moving a live post between categories must go through a revision
        if obj is not None and obj.is_published:
            fields.append("category")
        return fields

    def save_model(self, request, obj, form, change):
        if not change:
            super().save_model(request, obj, form, change)
            return
        content_changed = bool(set(form.changed_data) & CONTENT_FIELDS)
        tags = form.cleaned_data.get("tags") if "tags" in form.changed_data else None
        workflow.commit_change(
            obj,
            Actor.from_user(request.user),
            obj.status,
            old_category_id=form.initial.get("category"),
            content_changed=content_changed,
            tags=tags,
            edit_reason="Edited in admin" if content_changed else "",
        )

    def save_related(self, request, form, formsets, change):
        super().save_related(request, form, formsets, change)
        if not change:
            PostVersion.create_version(form.instance, request.user.pk, "Created in admin")

    def delete_model(self, request, obj):
        workflow.delete_post(obj, Actor.from_user(request.user))

    def delete_queryset(self, request, queryset):
        actor = Actor.from_user(request.user)
        for post in queryset:
            try:
                workflow.delete_post(post, actor)
            except WorkflowError as exc:
                self.message_user(request, f"{post}: {exc.message}", messages.WARNING)

    def title_preview(self, obj):
        """Truncated title for list display."""
        return obj.title[:60] + "..." if len(obj.title) > 60 else obj.title

    title_preview.short_description = "Title"

    @admin.action(description="Approve and publish selected posts")
    def approve_posts(self, request, queryset):
        _run_for_each(self, request, queryset, workflow.approve, "published")

    @admin.action(description="Approve pending revisions")
    def approve_revisions(self, request, queryset):
        _run_for_each(self, request, queryset, revisions.approve_revision, "updated")

    @admin.action(description="Reject pending revisions")
    def reject_revisions(self, request, queryset):
        _run_for_each(self, request, queryset, revisions.reject_revision, "left unchanged")


@admin.register(Comment)
class CommentAdmin(admin.ModelAdmin):
    list_display = [
        "preview",
        "author_name",
        "post",
        "is_approved",
        "report_count",
        "created_at",
    ]
    list_filter = ["is_approved", "is_reported", "created_at"]
    search_fields = ["body", "author__username", "guest_name", "post__title"]
    raw_id_fields = ["post", "author", "parent"]
    readonly_fields = ["report_count", "created_at", "updated_at"]
    actions = ["approve_comments", "reject_comments"]

    @admin.action(description="Approve selected comments")
    def approve_comments(self, request, queryset):
        self._moderate(request, queryset.filter(is_approved=False), "approve")

    @admin.action(description="Reject selected comments")
    def reject_comments(self, request, queryset):
        self._moderate(request, queryset, "reject")

    def _moderate(self, request, queryset, action):
        actor = Actor.from_user(request.user)
        done = 0
        for comment in queryset.select_related("post"):
            try:
                comments.moderate_comment(comment, actor, action)
            except WorkflowError as exc:
                self.message_user(request, f"{comment}: {exc.message}", messages.WARNING)
            else:
                done += 1
        verb = comments.MODERATION_VERBS[action]
        self.message_user(request, f"{done} comments {verb}.")


class ReviewCommentInline(admin.TabularInline):
    model = ReviewComment
    extra = 0
    raw_id_fields = ["resolved_by"]


@admin.register(DraftReview)
class DraftReviewAdmin(admin.ModelAdmin):
    list_display = ["post", "reviewer", "requested_by", "status", "created_at"]
    list_filter = ["status", "created_at"]
    raw_id_fields = ["post", "reviewer", "requested_by"]
    inlines = [ReviewCommentInline]


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ["recipient", "sender", "type", "is_read", "created_at"]
    list_filter = ["type", "is_read", "created_at"]
    search_fields = ["recipient__username", "sender__username", "message"]
    raw_id_fields = ["recipient", "sender", "post", "comment"]


@admin.register(AuthorStats)
class AuthorStatsAdmin(admin.ModelAdmin):
    list_display = ["user", "total_posts", "total_views", "total_likes", "updated_at"]
    search_fields = ["user__username"]
    readonly_fields = ["total_posts", "total_views", "total_likes", "updated_at"]
