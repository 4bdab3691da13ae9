"""Django app configuration for blog_workflow."""
from django.apps import AppConfig


class BlogWorkflowConfig(AppConfig):
    """Configuration for the blog workflow app."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "blog_workflow"
    verbose_name = "Blog Workflow"
