"""
Cached Count Reconciliation
===========================

Recomputes every cached counter from the normalized tables and overwrites
the cache. The normalized tables are ground truth; the cache is only ever
replaced, never merged.

WHY THIS EXISTS:
----------------
services.py keeps counters close with F() delta updates, but a counter
can still drift: rows inserted by scripts or the admin, bulk deletes
that skip the services, raw SQL fixes.
This module is the authority of last resort.

PROPERTIES:
-----------
- Idempotent: re-running with no intervening writes changes nothing but
  counts_last_updated
- Restartable: each entity is an independent overwrite, a partial run
  can simply be run again
- Safe with live traffic: a reader may see a stale count for entities
  not visited yet, nothing worse

Invoked by `manage.py sync_counts`, the admin actions and the
admin-only sync endpoint - never on a timer inside the web process.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from django.db import DatabaseError, transaction
from django.utils import timezone

from .models import Comment, CommunityPost, PostLike, Project, ProjectLike, ProjectView

logger = logging.getLogger(__name__)


@dataclass
class CountSyncResult:
    projects_updated: int = 0
    posts_updated: int = 0
    errors: List[str] = field(default_factory=list)


def sync_single_project_counts(project_id) -> bool:
    """
    Recount views, likes and comments for one project and overwrite the cache.

    QUERIES: 3 COUNTs + 1 UPDATE

    Returns False if the project no longer exists.
    """
    view_count = ProjectView.objects.filter(project_id=project_id).count()
    like_count = ProjectLike.objects.filter(project_id=project_id).count()
    comment_count = Comment.objects.filter(project_id=project_id).count()

    # QuerySet.update() leaves updated_at alone (auto_now only fires on save())
    updated = Project.objects.filter(id=project_id).update(
        view_count=view_count,
        like_count=like_count,
        comment_count=comment_count,
        counts_last_updated=timezone.now(),
    )
    return updated > 0


def sync_single_post_counts(post_id) -> bool:
    """Recount likes and comments for one community post."""
    like_count = PostLike.objects.filter(post_id=post_id).count()
    comment_count = Comment.objects.filter(post_id=post_id).count()

    updated = CommunityPost.objects.filter(id=post_id).update(
        like_count=like_count,
        comment_count=comment_count,
        counts_last_updated=timezone.now(),
    )
    return updated > 0


def _sync_each(ids, sync_one, label: str, errors: Optional[List[str]]) -> int:
    updated_count = 0
    for entity_id in ids:
        try:
            # Own savepoint per entity: one failure must not poison the
            # connection for the rest of the batch
            with transaction.atomic():
                if sync_one(entity_id):
                    updated_count += 1
        except DatabaseError as exc:
            message = f"Failed to sync counts for {label} {entity_id}: {exc}"
            logger.error(message)
            if errors is not None:
                errors.append(message)
    return updated_count


def sync_project_counts(errors: Optional[List[str]] = None) -> int:
    """
    Recount every project.

    Failing to enumerate projects is fatal and propagates; a failure on a
    single project is logged, appended to `errors` and skipped.
    """
    project_ids = list(Project.objects.values_list('id', flat=True))
    updated_count = _sync_each(
        project_ids,
        sync_single_project_counts,
        'project',
        errors,
    )
    logger.info(f"Synced counts for {updated_count} of {len(project_ids)} projects")
    return updated_count


def sync_community_post_counts(errors: Optional[List[str]] = None) -> int:
    """Recount every community post. Same failure rules as sync_project_counts."""
    post_ids = list(CommunityPost.objects.values_list('id', flat=True))
    updated_count = _sync_each(
        post_ids,
        sync_single_post_counts,
        'community post',
        errors,
    )
    logger.info(f"Synced counts for {updated_count} of {len(post_ids)} community posts")
    return updated_count


def sync_all_counts() -> CountSyncResult:
    """
    Full reconciliation pass over projects, then community posts.

    Returns a summary with per-type updated counts and any per-entity errors.
    """
    result = CountSyncResult()

    logger.info("Starting count synchronization")
    result.projects_updated = sync_project_counts(result.errors)
    result.posts_updated = sync_community_post_counts(result.errors)

    if result.errors:
        logger.warning(
            f"Count sync finished with {len(result.errors)} error(s): "
            f"{result.projects_updated} projects, {result.posts_updated} posts updated"
        )
    else:
        logger.info(
            f"Count sync completed: {result.projects_updated} projects, "
            f"{result.posts_updated} posts updated"
        )
    return result
