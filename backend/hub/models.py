"""
Data Models for SidesHub
========================

Design Philosophy:
------------------
1. Separate like tables per target (ProjectLike / PostLike)
   - Each table has a unique (target, user) constraint at DB level
   - Counting likes for one entity is a single indexed COUNT

2. Cached counters live on the owning row (like_count, comment_count, view_count)
   - List/detail endpoints read them directly, no live aggregation
   - Kept approximately right by services.py (F() delta updates)
   - Made exact again by count_sync.py (recount + overwrite)

3. ProjectView is an append-only log
   - NEVER update or delete - only insert
   - Source of truth for Project.view_count

4. Comment attaches to exactly one parent (project XOR post)
   - Enforced by a CheckConstraint, validated again by the serializer

Indexes Strategy:
-----------------
- like.target + like.user: uniqueness + "did I like this" lookups
- comment.project/post + created_at: fetching comments for one parent
- projectview.project: recount during reconciliation
"""

import uuid

from django.contrib.auth.models import User
from django.db import models
from django.db.models import Q
from django.utils import timezone


class UserProfile(models.Model):
    """
    Extra identity-provider fields for Django's built-in User.

    Created automatically by signals.create_user_profile.
    """
    user = models.OneToOneField(
        User,
        on_delete=models.CASCADE,
        related_name='profile'
    )
    profile_image_url = models.URLField(max_length=500, blank=True, null=True)

    def __str__(self):
        return f"Profile of {self.user.username}"


class Project(models.Model):
    """
    A side-project listing. Owned by its creator, readable by anyone.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    title = models.CharField(max_length=255)
    short_description = models.CharField(max_length=500)
    detailed_description = models.TextField()
    thumbnail_url = models.CharField(max_length=500, blank=True, null=True)
    demo_url = models.CharField(max_length=500, blank=True, null=True)
    source_url = models.CharField(max_length=500, blank=True, null=True)
    tags = models.JSONField(default=list, blank=True)
    tech_stack = models.JSONField(default=list, blank=True)
    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='projects',
        db_index=True
    )
    is_featured = models.BooleanField(default=False)

    # Cached counters - updated inline by services.py, recomputed by count_sync.py
    view_count = models.PositiveIntegerField(default=0)
    like_count = models.PositiveIntegerField(default=0, db_index=True)
    comment_count = models.PositiveIntegerField(default=0)
    # Only the reconciler writes this
    counts_last_updated = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', '-created_at'], name='project_user_created_idx'),
            models.Index(fields=['is_featured', '-created_at'], name='project_featured_created_idx'),
        ]

    def __str__(self):
        return f"{self.title[:50]} by {self.user.username}"


class CommunityPost(models.Model):
    """
    A discussion board post. Same ownership model as Project.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    title = models.CharField(max_length=255)
    content = models.TextField()
    is_pinned = models.BooleanField(default=False)
    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='community_posts',
        db_index=True
    )

    like_count = models.PositiveIntegerField(default=0)
    comment_count = models.PositiveIntegerField(default=0)
    counts_last_updated = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-is_pinned', '-created_at']

    def __str__(self):
        return f"{self.title[:50]} by {self.user.username}"


class ProjectLike(models.Model):
    """
    One row per (project, user).

    CONCURRENCY STRATEGY:
    - Unique constraint enforced at DB level
    - services.like_project inserts and catches IntegrityError
    - No check-then-insert race possible
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    project = models.ForeignKey(
        Project,
        on_delete=models.CASCADE,
        related_name='likes'
    )
    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='project_likes'
    )
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=['project', 'user'],
                name='unique_project_like_per_user'
            )
        ]

    def __str__(self):
        return f"{self.user.username} liked project {self.project_id}"


class ProjectBookmark(models.Model):
    """
    Same uniqueness rule as ProjectLike, but no cached counter anywhere.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    project = models.ForeignKey(
        Project,
        on_delete=models.CASCADE,
        related_name='bookmarks'
    )
    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='project_bookmarks'
    )
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=['project', 'user'],
                name='unique_project_bookmark_per_user'
            )
        ]
        indexes = [
            models.Index(fields=['user', '-created_at'], name='bookmark_user_created_idx'),
        ]

    def __str__(self):
        return f"{self.user.username} bookmarked project {self.project_id}"


class PostLike(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    post = models.ForeignKey(
        CommunityPost,
        on_delete=models.CASCADE,
        related_name='likes'
    )
    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='post_likes'
    )
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=['post', 'user'],
                name='unique_post_like_per_user'
            )
        ]

    def __str__(self):
        return f"{self.user.username} liked post {self.post_id}"


class Comment(models.Model):
    """
    A comment on either a Project or a CommunityPost - never both, never neither.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    content = models.TextField()
    project = models.ForeignKey(
        Project,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='comments'
    )
    post = models.ForeignKey(
        CommunityPost,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='comments'
    )
    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='comments'
    )
    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(project__isnull=False, post__isnull=True) |
                    Q(project__isnull=True, post__isnull=False)
                ),
                name='comment_has_exactly_one_parent'
            )
        ]
        indexes = [
            models.Index(fields=['project', '-created_at'], name='comment_project_created_idx'),
            models.Index(fields=['post', '-created_at'], name='comment_post_created_idx'),
        ]

    def __str__(self):
        parent = f"project {self.project_id}" if self.project_id else f"post {self.post_id}"
        return f"Comment by {self.user.username} on {parent}"


class ProjectView(models.Model):
    """
    Append-only view log. Repeat views by the same viewer all count.

    user is null for anonymous visitors, who are recorded by IP instead.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    project = models.ForeignKey(
        Project,
        on_delete=models.CASCADE,
        related_name='views'
    )
    user = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='project_views'
    )
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        indexes = [
            models.Index(fields=['project', 'created_at'], name='view_project_created_idx'),
        ]

    def __str__(self):
        viewer = self.user.username if self.user_id else (self.ip_address or 'anonymous')
        return f"{viewer} viewed project {self.project_id}"
