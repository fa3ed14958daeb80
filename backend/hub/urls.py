"""
Hub App URL Configuration
"""
from django.urls import path

from .views import (
    AnalyticsView,
    CommentCreateView,
    CommentDeleteView,
    CommunityPostCommentsView,
    CommunityPostDetailView,
    CommunityPostLikeStatusView,
    CommunityPostLikeView,
    CommunityPostListCreateView,
    CurrentUserView,
    FeaturedProjectsView,
    HealthView,
    LogoutView,
    MockLoginView,
    MyBookmarksView,
    ProjectBookmarkView,
    ProjectCommentsView,
    ProjectDetailView,
    ProjectLikeStatusView,
    ProjectLikeView,
    ProjectListCreateView,
    SyncCountsView,
    TrendingProjectsView,
    UserProjectsView,
)

urlpatterns = [
    # Projects
    path('projects/', ProjectListCreateView.as_view(), name='project-list'),
    path('projects/featured/', FeaturedProjectsView.as_view(), name='project-featured'),
    path('projects/trending/', TrendingProjectsView.as_view(), name='project-trending'),
    path('projects/<uuid:project_id>/', ProjectDetailView.as_view(), name='project-detail'),
    path('projects/<uuid:project_id>/like/', ProjectLikeView.as_view(), name='project-like'),
    path('projects/<uuid:project_id>/like-status/', ProjectLikeStatusView.as_view(), name='project-like-status'),
    path('projects/<uuid:project_id>/bookmark/', ProjectBookmarkView.as_view(), name='project-bookmark'),
    path('projects/<uuid:project_id>/comments/', ProjectCommentsView.as_view(), name='project-comments'),

    # Users
    path('users/me/bookmarks/', MyBookmarksView.as_view(), name='my-bookmarks'),
    path('users/<int:user_id>/projects/', UserProjectsView.as_view(), name='user-projects'),

    # Community
    path('community/posts/', CommunityPostListCreateView.as_view(), name='post-list'),
    path('community/posts/<uuid:post_id>/', CommunityPostDetailView.as_view(), name='post-detail'),
    path('community/posts/<uuid:post_id>/like/', CommunityPostLikeView.as_view(), name='post-like'),
    path('community/posts/<uuid:post_id>/like-status/', CommunityPostLikeStatusView.as_view(), name='post-like-status'),
    path('community/posts/<uuid:post_id>/comments/', CommunityPostCommentsView.as_view(), name='post-comments'),

    # Comments
    path('comments/', CommentCreateView.as_view(), name='comment-create'),
    path('comments/<uuid:comment_id>/', CommentDeleteView.as_view(), name='comment-delete'),

    # Analytics / operations
    path('analytics/', AnalyticsView.as_view(), name='analytics'),
    path('health/', HealthView.as_view(), name='health'),
    path('admin/sync-counts/', SyncCountsView.as_view(), name='sync-counts'),

    # Auth
    path('auth/user/', CurrentUserView.as_view(), name='current-user'),
    path('auth/mock-login/', MockLoginView.as_view(), name='mock-login'),
    path('auth/logout/', LogoutView.as_view(), name='logout'),
]
