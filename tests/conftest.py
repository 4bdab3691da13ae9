"""
Shared fixtures for django-blog-workflow tests.
"""
from unittest import mock

import pytest
from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from django.core.cache import cache

from blog_workflow.actors import Actor
from blog_workflow.models import Category, Post

User = get_user_model()


@pytest.fixture(autouse=True)
def clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture(autouse=True)
def index_post():
    """Patch the outgoing search index request."""
    with mock.patch("blog_workflow.indexing.requests.post") as post:
        post.return_value.status_code = 200
        yield post


@pytest.fixture
def user(db):
    """Create a test author."""
    return User.objects.create_user(
        username="author",
        email="author@example.com",
        password="testpass123",
    )


@pytest.fixture
def other_user(db):
    return User.objects.create_user(
        username="reader",
        email="reader@example.com",
        password="testpass123",
    )


@pytest.fixture
def admin_user(db):
    """Create an admin through group membership, not is_staff."""
    admin = User.objects.create_user(
        username="editor",
        email="editor@example.com",
        password="testpass123",
    )
    group, _ = Group.objects.get_or_create(name="Admin")
    admin.groups.add(group)
    return admin


@pytest.fixture
def author(user):
    return Actor.from_user(user)


@pytest.fixture
def reader(other_user):
    return Actor.from_user(other_user)


@pytest.fixture
def admin(admin_user):
    return Actor.from_user(admin_user)


@pytest.fixture
def category(db):
    """Create a test category."""
    return Category.objects.create(name="Test Category", slug="test-category")


@pytest.fixture
def other_category(db):
    return Category.objects.create(name="Other Category", slug="other-category")


@pytest.fixture
def make_post(db, user, category):
    """Factory for posts in a given status, bypassing the workflow."""

    def make(status=Post.Status.DRAFT, **kwargs):
        kwargs.setdefault("title", "Test Post")
        kwargs.setdefault("body", "This is a test post body.")
        kwargs.setdefault("author", user)
        kwargs.setdefault("category", category)
        return Post.objects.create(status=status, **kwargs)

    return make


@pytest.fixture
def draft(make_post):
    return make_post()


@pytest.fixture
def pending(make_post):
    return make_post(Post.Status.PENDING_REVIEW)


@pytest.fixture
def published(make_post, category):
    """A published post, counted in its category."""
    post = make_post(Post.Status.PUBLISHED)
    Category.increment_post_count(category.pk)
    return post
