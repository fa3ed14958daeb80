"""
DRF Views
=========

API endpoints for SidesHub.

Views stay thin:
- serializers validate input
- services.py does every write (and the counter maintenance with it)
- queries.py does every read (cached counters, no live recount)

Like / bookmark endpoints answer 200 {"success": false} when nothing
changed (already liked, not liked) - that is an idempotent no-op, not an
error.
"""

import logging
from dataclasses import asdict

from django.conf import settings
from django.contrib.auth import login, logout
from django.core.exceptions import ValidationError
from django.core.validators import validate_ipv46_address
from django.db import DatabaseError, connection
from rest_framework import generics, permissions, status
from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response
from rest_framework.views import APIView

from .count_sync import sync_all_counts
from .queries import (
    get_analytics,
    get_community_post,
    get_community_posts,
    get_featured_projects,
    get_post_comments,
    get_project,
    get_project_comments,
    get_projects,
    get_trending_projects,
    get_user_bookmarks,
    get_user_projects,
    is_post_liked,
    is_project_bookmarked,
    is_project_liked,
)
from .serializers import (
    CommentCreateSerializer,
    CommentSerializer,
    CommunityPostSerializer,
    CommunityPostWriteSerializer,
    CountSyncResultSerializer,
    ProjectSerializer,
    ProjectWriteSerializer,
    UserSerializer,
)
from .services import (
    bookmark_project,
    create_comment,
    create_community_post,
    create_project,
    delete_comment,
    delete_community_post,
    delete_project,
    get_mock_user,
    like_community_post,
    like_project,
    record_project_view,
    unbookmark_project,
    unlike_community_post,
    unlike_project,
    update_community_post,
    update_project,
)

logger = logging.getLogger(__name__)


def _split_param(value):
    """'react, vue' -> ['react', 'vue']; empty -> None"""
    if not value:
        return None
    return [item.strip() for item in value.split(',') if item.strip()] or None


def _valid_ip(value):
    try:
        validate_ipv46_address(value)
    except ValidationError:
        return None
    return value


def _client_ip(request):
    """
    First X-Forwarded-For hop when it is a real address, else REMOTE_ADDR.

    Anything else is client-controlled text and must not reach the
    inet column; None is stored instead.
    """
    forwarded = request.META.get('HTTP_X_FORWARDED_FOR', '')
    first_hop = _valid_ip(forwarded.split(',')[0].strip()) if forwarded else None
    return first_hop or _valid_ip(request.META.get('REMOTE_ADDR', ''))


def _not_found(what):
    return Response({'error': f'{what} not found'}, status=status.HTTP_404_NOT_FOUND)


class CommunityPagination(PageNumberPagination):
    """
    ?page=2&limit=10

    Offset pagination is fine here: the board is small and pinned posts
    must stay on top, which a created_at cursor can't express.
    """
    page_size = 10
    page_size_query_param = 'limit'
    max_page_size = 50


# ============================================================================
# PROJECTS
# ============================================================================

class ProjectListCreateView(APIView):
    """
    GET /api/projects/?search=&tags=a,b&tech_stack=x,y&sort_by=recent|oldest|likes
    POST /api/projects/
    """
    permission_classes = [permissions.IsAuthenticatedOrReadOnly]

    def get(self, request):
        params = request.query_params
        projects = get_projects(
            search=params.get('search'),
            tags=_split_param(params.get('tags')),
            tech_stack=_split_param(params.get('tech_stack')),
            sort_by=params.get('sort_by'),
        )
        return Response(ProjectSerializer(projects, many=True).data)

    def post(self, request):
        serializer = ProjectWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        project = create_project(request.user, **serializer.validated_data)
        return Response(
            ProjectSerializer(get_project(project.id)).data,
            status=status.HTTP_201_CREATED
        )


class FeaturedProjectsView(APIView):
    """GET /api/projects/featured/"""
    permission_classes = [permissions.AllowAny]

    def get(self, request):
        return Response(ProjectSerializer(get_featured_projects(), many=True).data)


class TrendingProjectsView(APIView):
    """GET /api/projects/trending/ - ranked by cached likes + comments"""
    permission_classes = [permissions.AllowAny]

    def get(self, request):
        return Response(ProjectSerializer(get_trending_projects(), many=True).data)


class ProjectDetailView(APIView):
    """
    GET /api/projects/<id>/      (records a view)
    PUT/PATCH /api/projects/<id>/ (owner only)
    DELETE /api/projects/<id>/   (owner only)

    The GET response carries the counters as read, before this view is
    added - the next read sees it.
    """
    permission_classes = [permissions.IsAuthenticatedOrReadOnly]

    def get(self, request, project_id):
        project = get_project(project_id)
        if not project:
            return _not_found('Project')

        record_project_view(project.id, request.user, _client_ip(request))
        return Response(ProjectSerializer(project).data)

    def put(self, request, project_id):
        serializer = ProjectWriteSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)

        # Non-owners get the same 404 as a missing project
        if update_project(request.user, project_id, serializer.validated_data) is None:
            return _not_found('Project')
        return Response(ProjectSerializer(get_project(project_id)).data)

    patch = put

    def delete(self, request, project_id):
        if not delete_project(request.user, project_id):
            return _not_found('Project')
        return Response({'message': 'Project deleted successfully'})


class ProjectLikeView(APIView):
    """
    POST /api/projects/<id>/like/    → like
    DELETE /api/projects/<id>/like/  → unlike
    """
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, project_id):
        try:
            success = like_project(request.user, project_id)
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        return Response({'success': success})

    def delete(self, request, project_id):
        return Response({'success': unlike_project(request.user, project_id)})


class ProjectBookmarkView(APIView):
    """
    POST /api/projects/<id>/bookmark/
    DELETE /api/projects/<id>/bookmark/
    """
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, project_id):
        try:
            success = bookmark_project(request.user, project_id)
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        return Response({'success': success})

    def delete(self, request, project_id):
        return Response({'success': unbookmark_project(request.user, project_id)})


class ProjectLikeStatusView(APIView):
    """GET /api/projects/<id>/like-status/"""
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, project_id):
        return Response({
            'is_liked': is_project_liked(project_id, request.user.id),
            'is_bookmarked': is_project_bookmarked(project_id, request.user.id),
        })


class ProjectCommentsView(APIView):
    """GET /api/projects/<id>/comments/"""
    permission_classes = [permissions.AllowAny]

    def get(self, request, project_id):
        return Response(CommentSerializer(get_project_comments(project_id), many=True).data)


# ============================================================================
# USERS
# ============================================================================

class UserProjectsView(APIView):
    """GET /api/users/<id>/projects/"""
    permission_classes = [permissions.AllowAny]

    def get(self, request, user_id):
        return Response(ProjectSerializer(get_user_projects(user_id), many=True).data)


class MyBookmarksView(APIView):
    """GET /api/users/me/bookmarks/"""
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        return Response(ProjectSerializer(get_user_bookmarks(request.user.id), many=True).data)


# ============================================================================
# COMMUNITY
# ============================================================================

class CommunityPostListCreateView(generics.ListAPIView):
    """
    GET /api/community/posts/?page=1&limit=10
    POST /api/community/posts/
    """
    serializer_class = CommunityPostSerializer
    pagination_class = CommunityPagination
    permission_classes = [permissions.IsAuthenticatedOrReadOnly]

    def get_queryset(self):
        return get_community_posts()

    def post(self, request):
        serializer = CommunityPostWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        post = create_community_post(request.user, **serializer.validated_data)
        return Response(
            CommunityPostSerializer(get_community_post(post.id)).data,
            status=status.HTTP_201_CREATED
        )


class CommunityPostDetailView(APIView):
    """
    GET /api/community/posts/<id>/
    PUT/PATCH /api/community/posts/<id>/ (owner only)
    DELETE /api/community/posts/<id>/    (owner only)
    """
    permission_classes = [permissions.IsAuthenticatedOrReadOnly]

    def get(self, request, post_id):
        post = get_community_post(post_id)
        if not post:
            return _not_found('Post')
        return Response(CommunityPostSerializer(post).data)

    def put(self, request, post_id):
        serializer = CommunityPostWriteSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)

        if update_community_post(request.user, post_id, serializer.validated_data) is None:
            return _not_found('Post')
        return Response(CommunityPostSerializer(get_community_post(post_id)).data)

    patch = put

    def delete(self, request, post_id):
        if not delete_community_post(request.user, post_id):
            return _not_found('Post')
        return Response({'message': 'Post deleted successfully'})


class CommunityPostLikeView(APIView):
    """
    POST /api/community/posts/<id>/like/
    DELETE /api/community/posts/<id>/like/
    """
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, post_id):
        try:
            success = like_community_post(request.user, post_id)
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        return Response({'success': success})

    def delete(self, request, post_id):
        return Response({'success': unlike_community_post(request.user, post_id)})


class CommunityPostLikeStatusView(APIView):
    """GET /api/community/posts/<id>/like-status/"""
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, post_id):
        return Response({'is_liked': is_post_liked(post_id, request.user.id)})


class CommunityPostCommentsView(APIView):
    """GET /api/community/posts/<id>/comments/"""
    permission_classes = [permissions.AllowAny]

    def get(self, request, post_id):
        return Response(CommentSerializer(get_post_comments(post_id), many=True).data)


# ============================================================================
# COMMENTS
# ============================================================================

class CommentCreateView(APIView):
    """
    POST /api/comments/

    Body:
    {
        "content": "Nice work!",
        "project": "<uuid>"   // exactly one of project / post
    }
    """
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):
        serializer = CommentCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            comment = create_comment(
                request.user,
                data['content'],
                project_id=data.get('project'),
                post_id=data.get('post'),
            )
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)

        return Response(CommentSerializer(comment).data, status=status.HTTP_201_CREATED)


class CommentDeleteView(APIView):
    """DELETE /api/comments/<id>/ - own comments only"""
    permission_classes = [permissions.IsAuthenticated]

    def delete(self, request, comment_id):
        if not delete_comment(request.user, comment_id):
            return _not_found('Comment')
        return Response({'message': 'Comment deleted successfully'})


# ============================================================================
# ANALYTICS / OPERATIONS
# ============================================================================

class AnalyticsView(APIView):
    """GET /api/analytics/"""
    permission_classes = [permissions.AllowAny]

    def get(self, request):
        return Response(get_analytics())


class HealthView(APIView):
    """
    GET /api/health/

    200 when the database answers, 503 otherwise.
    """
    permission_classes = [permissions.AllowAny]
    authentication_classes = []

    def get(self, request):
        try:
            with connection.cursor() as cursor:
                cursor.execute('SELECT 1')
        except DatabaseError as exc:
            logger.error(f"Health check failed: {exc}")
            return Response(
                {'status': 'unhealthy', 'database': str(exc)},
                status=status.HTTP_503_SERVICE_UNAVAILABLE
            )
        return Response({'status': 'healthy', 'database': 'ok'})


class SyncCountsView(APIView):
    """
    POST /api/admin/sync-counts/

    Staff-only trigger for a full reconciliation pass, e.g. after a bulk
    import. Same code path as `manage.py sync_counts`.
    """
    permission_classes = [permissions.IsAdminUser]

    def post(self, request):
        result = sync_all_counts()
        return Response(CountSyncResultSerializer(asdict(result)).data)


# ============================================================================
# AUTH
# ============================================================================

class CurrentUserView(APIView):
    """
    GET /api/auth/user/

    401 for anonymous callers. Session auth has no WWW-Authenticate
    challenge, so IsAuthenticated alone would answer 403.
    """
    permission_classes = [permissions.AllowAny]

    def get(self, request):
        if not request.user.is_authenticated:
            return Response({'error': 'Unauthorized'}, status=status.HTTP_401_UNAUTHORIZED)
        return Response(UserSerializer(request.user).data)


class MockLoginView(APIView):
    """
    POST /api/auth/mock-login/

    DEVELOPMENT ONLY (LOCAL_AUTH=True): logs the caller in as the one
    fixed mock user. The request body is ignored, so this can never be
    used to sign in as someone else.
    """
    permission_classes = [permissions.AllowAny]

    def post(self, request):
        if not getattr(settings, 'LOCAL_AUTH', False):
            return _not_found('Endpoint')

        user = get_mock_user()
        if user is None:
            logger.warning("Mock login refused: mock username belongs to a privileged account")
            return Response(
                {'error': 'Mock login is unavailable'},
                status=status.HTTP_403_FORBIDDEN
            )

        login(request, user, backend='django.contrib.auth.backends.ModelBackend')
        logger.info(f"Mock login for {user.username}")

        return Response(UserSerializer(user).data)


class LogoutView(APIView):
    """POST /api/auth/logout/"""
    permission_classes = [permissions.AllowAny]

    def post(self, request):
        logout(request)
        return Response({'message': 'Logged out'})
