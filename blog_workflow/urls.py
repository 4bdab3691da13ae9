"""
URL configuration for django-blog-workflow.

Include in your project urls.py:

    path('api/', include('blog_workflow.urls')),
"""
from django.urls import path

from . import views

app_name = "blog_workflow"

urlpatterns = [
    # Posts
    path("posts/", views.PostCollectionView.as_view(), name="post_list"),
    path("posts/pending/", views.PendingReviewListView.as_view(), name="pending_posts"),
    path(
        "posts/revisions/pending/",
        views.PendingRevisionListView.as_view(),
        name="pending_revisions",
    ),
    path("posts/<int:pk>/", views.PostDetailView.as_view(), name="post_detail"),
    path("posts/<int:pk>/actions/", views.PostActionView.as_view(), name="post_actions"),
    path("posts/<int:pk>/versions/", views.PostVersionView.as_view(), name="post_versions"),
    path("posts/<int:pk>/authors/", views.PostAuthorsView.as_view(), name="post_authors"),

    # Draft reviews
    path("posts/<int:pk>/reviews/", views.DraftReviewView.as_view(), name="post_reviews"),

    # Comments
    path("posts/<int:pk>/comments/", views.CommentView.as_view(), name="post_comments"),
    path(
        "posts/<int:pk>/comments/<int:comment_pk>/moderate/",
        views.CommentModerateView.as_view(),
        name="comment_moderate",
    ),
    path(
        "posts/<int:pk>/comments/<int:comment_pk>/like/",
        views.CommentLikeView.as_view(),
        name="comment_like",
    ),
    path(
        "posts/<int:pk>/comments/<int:comment_pk>/report/",
        views.CommentReportView.as_view(),
        name="comment_report",
    ),

    # Notifications
    path("notifications/", views.NotificationView.as_view(), name="notifications"),
]
