"""
Read Queries
============

Everything the list/detail endpoints read.

CACHED COUNTERS ONLY:
---------------------
like_count / comment_count / view_count are read straight off the row.
No JOIN + COUNT(*) GROUP BY on the read path:

    SELECT project.*, user.* FROM project JOIN user ... ORDER BY ...

instead of

    SELECT project.*, COUNT(like.id), COUNT(comment.id)
    FROM project LEFT JOIN like ... LEFT JOIN comment ... GROUP BY project.id

(the second one also multiplies likes by comments unless you add DISTINCT).
The price is a drift window, closed by count_sync.py.

N+1 PREVENTION:
---------------
Every queryset that gets serialized with its owner uses
select_related('user', 'user__profile').
"""

from collections import Counter
from typing import Iterable, List, Optional

from django.contrib.auth.models import User
from django.db.models import F, Q

from .models import (
    Comment,
    CommunityPost,
    PostLike,
    Project,
    ProjectBookmark,
    ProjectLike,
)

FEATURED_LIMIT = 6
TRENDING_LIMIT = 8
TOP_ANALYTICS_LIMIT = 4

SORT_ORDERINGS = {
    'recent': ['-created_at'],
    'oldest': ['created_at'],
    'likes': ['-like_count', '-created_at'],
}


def _projects():
    return Project.objects.select_related('user', 'user__profile')


def _contains_any(values: Iterable[str], wanted: List[str]) -> bool:
    # Exact, case-sensitive element match
    present = set(values or [])
    return any(item in present for item in wanted)


def get_projects(
    search: Optional[str] = None,
    tags: Optional[List[str]] = None,
    tech_stack: Optional[List[str]] = None,
    sort_by: Optional[str] = None,
) -> List[Project]:
    """
    Browse/search projects.

    - search: case-insensitive match on title or short description
    - tags / tech_stack: project must contain ANY of the given values
      (exact element match, case-sensitive)
    - sort_by: 'recent' (default) | 'oldest' | 'likes'

    Tag filtering is done in Python: JSON containment lookups are not
    available on every backend (SQLite), and the listing is unpaginated
    anyway.
    """
    queryset = _projects()

    if search:
        queryset = queryset.filter(
            Q(title__icontains=search) | Q(short_description__icontains=search)
        )

    queryset = queryset.order_by(*SORT_ORDERINGS.get(sort_by, SORT_ORDERINGS['recent']))

    projects = list(queryset)
    if tags:
        projects = [p for p in projects if _contains_any(p.tags, tags)]
    if tech_stack:
        projects = [p for p in projects if _contains_any(p.tech_stack, tech_stack)]
    return projects


def get_featured_projects() -> List[Project]:
    return list(
        _projects()
        .filter(is_featured=True)
        .order_by('-created_at')[:FEATURED_LIMIT]
    )


def get_trending_projects() -> List[Project]:
    """Top projects by cached likes + comments."""
    return list(
        _projects()
        .alias(engagement=F('like_count') + F('comment_count'))
        .order_by('-engagement', '-created_at')[:TRENDING_LIMIT]
    )


def get_project(project_id) -> Optional[Project]:
    return _projects().filter(id=project_id).first()


def get_user_projects(user_id: int) -> List[Project]:
    return list(_projects().filter(user_id=user_id).order_by('-created_at'))


def get_user_bookmarks(user_id: int) -> List[Project]:
    """Bookmarked projects, most recently bookmarked first."""
    bookmarks = (
        ProjectBookmark.objects
        .filter(user_id=user_id)
        .select_related('project__user', 'project__user__profile')
        .order_by('-created_at')
    )
    return [bookmark.project for bookmark in bookmarks]


def get_community_posts():
    """Pinned first, then newest. Returned lazily so the paginator can slice it."""
    return (
        CommunityPost.objects
        .select_related('user', 'user__profile')
        .order_by('-is_pinned', '-created_at')
    )


def get_community_post(post_id) -> Optional[CommunityPost]:
    return (
        CommunityPost.objects
        .select_related('user', 'user__profile')
        .filter(id=post_id)
        .first()
    )


def get_project_comments(project_id) -> List[Comment]:
    return list(
        Comment.objects
        .filter(project_id=project_id)
        .select_related('user', 'user__profile')
        .order_by('-created_at')
    )


def get_post_comments(post_id) -> List[Comment]:
    return list(
        Comment.objects
        .filter(post_id=post_id)
        .select_related('user', 'user__profile')
        .order_by('-created_at')
    )


def is_project_liked(project_id, user_id: int) -> bool:
    return ProjectLike.objects.filter(project_id=project_id, user_id=user_id).exists()


def is_project_bookmarked(project_id, user_id: int) -> bool:
    return ProjectBookmark.objects.filter(project_id=project_id, user_id=user_id).exists()


def is_post_liked(post_id, user_id: int) -> bool:
    return PostLike.objects.filter(post_id=post_id, user_id=user_id).exists()


def _top_values(lists, limit: int) -> List[dict]:
    counter = Counter()
    for values in lists:
        # A project listing the same tag twice still counts once
        counter.update(list(dict.fromkeys(values or [])))
    return [{'name': name, 'count': count} for name, count in counter.most_common(limit)]


def get_analytics() -> dict:
    """
    Site-wide totals plus the most used tech stacks and tags.

    QUERIES: 3 COUNTs + 1 values_list over projects
    """
    stacks_and_tags = list(Project.objects.values_list('tech_stack', 'tags'))

    return {
        'total_projects': len(stacks_and_tags),
        'total_users': User.objects.count(),
        'total_likes': ProjectLike.objects.count(),
        'total_comments': Comment.objects.count(),
        'top_tech_stacks': _top_values((stack for stack, _ in stacks_and_tags), TOP_ANALYTICS_LIMIT),
        'top_tags': _top_values((tags for _, tags in stacks_and_tags), TOP_ANALYTICS_LIMIT),
    }
