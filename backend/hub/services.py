"""
Interaction Services (Inline Counter Maintenance)
=================================================

Every like / unlike / comment / view goes through this module so the
cached counters on Project and CommunityPost stay approximately right
at write time.

CONCURRENCY STRATEGY:
---------------------
Problem: two users liking the same project at the same moment
Naive: read like_count → add 1 in Python → save → LOST UPDATE!

Solution: F() expression
    Project.objects.filter(id=pk).update(like_count=F('like_count') + 1)
    → UPDATE project SET like_count = like_count + 1 WHERE id = pk
    The database applies each +1 atomically, nothing is lost.

Duplicate likes: Unique Constraint + IntegrityError (optimistic)
    - Try to insert
    - DB rejects duplicate
    - Return False - this is expected, not an error

TRANSACTION STRATEGY:
--------------------
Interaction row + counter delta run in the same transaction.atomic()
block, so they commit or roll back together. Anything that still slips
through (raw SQL, admin edits, bulk deletes) is fixed by count_sync.py.

NON-NEGATIVITY:
---------------
Decrements are filtered on counter >= 1. A decrement that finds nothing
to update means the cache had already drifted; it is logged and the
counter stays at 0.
"""

import logging
from typing import Optional

from django.conf import settings
from django.contrib.auth.models import User
from django.db import IntegrityError, transaction
from django.db.models import F

from . import count_sync
from .models import (
    Comment,
    CommunityPost,
    PostLike,
    Project,
    ProjectBookmark,
    ProjectLike,
    ProjectView,
    UserProfile,
)

logger = logging.getLogger(__name__)


# ============================================================================
# COUNTER PRIMITIVES
# ============================================================================

def _increment(model, pk, counter: str) -> None:
    model.objects.filter(pk=pk).update(**{counter: F(counter) + 1})


def _decrement(model, pk, counter: str) -> None:
    updated = (
        model.objects
        .filter(pk=pk, **{f'{counter}__gte': 1})
        .update(**{counter: F(counter) - 1})
    )
    if not updated:
        logger.warning(
            f"{model.__name__} {pk}: {counter} already 0 on decrement, "
            f"cache has drifted - run sync_counts"
        )


def _schedule_resync(model, pk) -> None:
    """
    Optionally recount the entity once the surrounding transaction commits.

    Off by default (COUNT_SYNC_ON_WRITE=False): the write path stays a
    single delta update and exactness is left to the batch reconciler.
    """
    if not getattr(settings, 'COUNT_SYNC_ON_WRITE', False):
        return
    if model is Project:
        transaction.on_commit(lambda: count_sync.sync_single_project_counts(pk))
    else:
        transaction.on_commit(lambda: count_sync.sync_single_post_counts(pk))


def _get_or_raise(model, pk, label: str):
    try:
        return model.objects.only('pk').get(pk=pk)
    except model.DoesNotExist:
        raise ValueError(f"{label} {pk} does not exist")


def _create_unique(model, **fields) -> bool:
    """Insert a row guarded by a unique constraint. False if it already exists."""
    try:
        with transaction.atomic():
            model.objects.create(**fields)
    except IntegrityError:
        return False
    return True


# ============================================================================
# LIKES
# ============================================================================

def like_project(user: User, project_id) -> bool:
    """
    Like a project atomically.

    OPERATION:
    1. Verify project exists (ValueError if not)
    2. Insert ProjectLike (unique constraint rejects duplicates)
    3. On success: like_count + 1 via F()

    RETURNS: True if a like was recorded, False if it already existed.
    """
    _get_or_raise(Project, project_id, 'Project')

    try:
        with transaction.atomic():
            ProjectLike.objects.create(project_id=project_id, user=user)
            _increment(Project, project_id, 'like_count')
    except IntegrityError:
        # Already liked - expected outcome, counter untouched
        return False

    _schedule_resync(Project, project_id)
    return True


def unlike_project(user: User, project_id) -> bool:
    """Remove a like. Decrements only if a like row was actually deleted."""
    with transaction.atomic():
        deleted_count, _ = ProjectLike.objects.filter(
            project_id=project_id,
            user=user
        ).delete()

        if not deleted_count:
            return False

        _decrement(Project, project_id, 'like_count')

    _schedule_resync(Project, project_id)
    return True


def like_community_post(user: User, post_id) -> bool:
    """Same pattern as like_project, on CommunityPost."""
    _get_or_raise(CommunityPost, post_id, 'Post')

    try:
        with transaction.atomic():
            PostLike.objects.create(post_id=post_id, user=user)
            _increment(CommunityPost, post_id, 'like_count')
    except IntegrityError:
        return False

    _schedule_resync(CommunityPost, post_id)
    return True


def unlike_community_post(user: User, post_id) -> bool:
    with transaction.atomic():
        deleted_count, _ = PostLike.objects.filter(
            post_id=post_id,
            user=user
        ).delete()

        if not deleted_count:
            return False

        _decrement(CommunityPost, post_id, 'like_count')

    _schedule_resync(CommunityPost, post_id)
    return True


# ============================================================================
# BOOKMARKS (no cached counter)
# ============================================================================

def bookmark_project(user: User, project_id) -> bool:
    _get_or_raise(Project, project_id, 'Project')
    return _create_unique(ProjectBookmark, project_id=project_id, user=user)


def unbookmark_project(user: User, project_id) -> bool:
    deleted_count, _ = ProjectBookmark.objects.filter(
        project_id=project_id,
        user=user
    ).delete()
    return deleted_count > 0


# ============================================================================
# COMMENTS
# ============================================================================

def create_comment(user: User, content: str, project_id=None, post_id=None) -> Comment:
    """
    Create a comment on exactly one parent and bump that parent's comment_count.

    The serializer already rejects both/neither; this is the last guard.
    """
    if (project_id is None) == (post_id is None):
        raise ValueError("A comment needs exactly one of project or post")

    if project_id is not None:
        parent_model, parent_id = Project, project_id
        _get_or_raise(Project, project_id, 'Project')
    else:
        parent_model, parent_id = CommunityPost, post_id
        _get_or_raise(CommunityPost, post_id, 'Post')

    with transaction.atomic():
        comment = Comment.objects.create(
            content=content,
            project_id=project_id,
            post_id=post_id,
            user=user
        )
        _increment(parent_model, parent_id, 'comment_count')

    _schedule_resync(parent_model, parent_id)
    return comment


def delete_comment(user: User, comment_id) -> bool:
    """
    Delete a comment owned by `user`.

    The parent is read BEFORE the delete - once the row is gone there is
    nothing left to tell us which counter to decrement.
    """
    parent = (
        Comment.objects
        .filter(id=comment_id, user=user)
        .values('project_id', 'post_id')
        .first()
    )
    if parent is None:
        # Missing, or owned by someone else
        return False

    if parent['project_id'] is not None:
        parent_model, parent_id = Project, parent['project_id']
    else:
        parent_model, parent_id = CommunityPost, parent['post_id']

    with transaction.atomic():
        deleted_count, _ = Comment.objects.filter(id=comment_id, user=user).delete()
        if not deleted_count:
            # Lost a race with a concurrent delete
            return False
        _decrement(parent_model, parent_id, 'comment_count')

    _schedule_resync(parent_model, parent_id)
    return True


# ============================================================================
# VIEWS
# ============================================================================

def record_project_view(project_id, user: Optional[User] = None, ip_address: Optional[str] = None) -> None:
    """
    Append a ProjectView row and bump view_count.

    No uniqueness - every call counts, including repeat views.
    """
    if user is not None and not user.is_authenticated:
        user = None

    with transaction.atomic():
        ProjectView.objects.create(
            project_id=project_id,
            user=user,
            ip_address=ip_address
        )
        _increment(Project, project_id, 'view_count')

    _schedule_resync(Project, project_id)


# ============================================================================
# OWNED ENTITIES
# ============================================================================
# Ownership is checked in the WHERE clause, so a non-owner simply
# matches nothing. Likes, bookmarks, comments and views go with the
# parent through on_delete=CASCADE.

PROJECT_EDITABLE_FIELDS = (
    'title', 'short_description', 'detailed_description', 'thumbnail_url',
    'demo_url', 'source_url', 'tags', 'tech_stack', 'is_featured',
)

POST_EDITABLE_FIELDS = ('title', 'content', 'is_pinned')


def create_project(user: User, **data) -> Project:
    return Project.objects.create(user=user, **data)


def update_project(user: User, project_id, data: dict) -> Optional[Project]:
    project = Project.objects.filter(id=project_id, user=user).first()
    if project is None:
        return None

    for name in PROJECT_EDITABLE_FIELDS:
        if name in data:
            setattr(project, name, data[name])
    # Never write the cached counters from a possibly stale instance
    project.save(update_fields=[n for n in PROJECT_EDITABLE_FIELDS if n in data] + ['updated_at'])
    return project


def delete_project(user: User, project_id) -> bool:
    deleted_count, _ = Project.objects.filter(id=project_id, user=user).delete()
    return deleted_count > 0


def create_community_post(user: User, **data) -> CommunityPost:
    return CommunityPost.objects.create(user=user, **data)


def update_community_post(user: User, post_id, data: dict) -> Optional[CommunityPost]:
    post = CommunityPost.objects.filter(id=post_id, user=user).first()
    if post is None:
        return None

    for name in POST_EDITABLE_FIELDS:
        if name in data:
            setattr(post, name, data[name])
    post.save(update_fields=[n for n in POST_EDITABLE_FIELDS if n in data] + ['updated_at'])
    return post


def delete_community_post(user: User, post_id) -> bool:
    deleted_count, _ = CommunityPost.objects.filter(id=post_id, user=user).delete()
    return deleted_count > 0


# ============================================================================
# USERS
# ============================================================================

def upsert_user(claims: dict) -> User:
    """
    Create or refresh a user from identity-provider claims.

    `sub` is the stable identity key and becomes the username.
    """
    user, _ = User.objects.update_or_create(
        username=claims['sub'],
        defaults={
            'email': claims.get('email') or '',
            'first_name': claims.get('first_name') or '',
            'last_name': claims.get('last_name') or '',
        }
    )
    UserProfile.objects.update_or_create(
        user=user,
        defaults={'profile_image_url': claims.get('profile_image_url')}
    )
    return user


MOCK_USER_CLAIMS = {
    'sub': 'local-dev-user',
    'email': 'dev@localhost.localdomain',
    'first_name': 'Local',
    'last_name': 'Developer',
}


def get_mock_user() -> Optional[User]:
    """
    The single identity used by the local mock login.

    Created on first use and never rewritten afterwards. Returns None when
    the mock username is taken by a staff or superuser account, so mock
    login can never hand out elevated privileges.
    """
    user, created = User.objects.get_or_create(
        username=MOCK_USER_CLAIMS['sub'],
        defaults={
            'email': MOCK_USER_CLAIMS['email'],
            'first_name': MOCK_USER_CLAIMS['first_name'],
            'last_name': MOCK_USER_CLAIMS['last_name'],
        }
    )
    if not created and (user.is_staff or user.is_superuser):
        return None
    return user
