"""
Tests for SidesHub

Focus areas:
1. Inline counter maintenance (F() deltas, uniqueness, non-negativity)
2. Reconciliation (convergence, idempotence, per-entity error isolation)
3. REST layer reads cached counters and maps booleans to responses
"""

import threading
from io import StringIO
from unittest.mock import patch

from django.contrib.auth.models import User
from django.core.management import CommandError, call_command
from django.db import DatabaseError, IntegrityError, connection, transaction
from django.test import TestCase, TransactionTestCase, override_settings, skipUnlessDBFeature
from django.test.utils import CaptureQueriesContext
from rest_framework.test import APITestCase

from . import count_sync
from .count_sync import (
    sync_all_counts,
    sync_community_post_counts,
    sync_project_counts,
    sync_single_post_counts,
    sync_single_project_counts,
)
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
from .queries import get_analytics, get_projects, get_trending_projects
from .services import (
    bookmark_project,
    create_comment,
    delete_comment,
    delete_project,
    like_community_post,
    like_project,
    record_project_view,
    unbookmark_project,
    unlike_community_post,
    unlike_project,
    update_project,
    upsert_user,
)


def make_project(user, **kwargs):
    fields = {
        'title': 'Side Project',
        'short_description': 'A weekend build',
        'detailed_description': 'Longer description of the weekend build',
    }
    fields.update(kwargs)
    return Project.objects.create(user=user, **fields)


def make_post(user, **kwargs):
    fields = {'title': 'Discussion', 'content': 'What are you building?'}
    fields.update(kwargs)
    return CommunityPost.objects.create(user=user, **fields)


class ModelConstraintTestCase(TestCase):
    """DB-level invariants the services rely on."""

    def setUp(self):
        self.owner = User.objects.create_user('owner', 'o@test.com', 'pass')
        self.user = User.objects.create_user('user', 'u@test.com', 'pass')
        self.project = make_project(self.owner)
        self.post = make_post(self.owner)

    def test_profile_created_for_new_user(self):
        self.assertTrue(UserProfile.objects.filter(user=self.user).exists())

    def test_duplicate_project_like_rejected(self):
        ProjectLike.objects.create(project=self.project, user=self.user)
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                ProjectLike.objects.create(project=self.project, user=self.user)

    def test_duplicate_bookmark_rejected(self):
        ProjectBookmark.objects.create(project=self.project, user=self.user)
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                ProjectBookmark.objects.create(project=self.project, user=self.user)

    def test_comment_needs_exactly_one_parent(self):
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                Comment.objects.create(content='both', project=self.project, post=self.post, user=self.user)
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                Comment.objects.create(content='neither', user=self.user)

    def test_deleting_project_cascades_to_interactions(self):
        like_project(self.user, self.project.id)
        bookmark_project(self.user, self.project.id)
        create_comment(self.user, 'Nice', project_id=self.project.id)
        record_project_view(self.project.id, self.user)

        self.project.delete()

        self.assertEqual(ProjectLike.objects.count(), 0)
        self.assertEqual(ProjectBookmark.objects.count(), 0)
        self.assertEqual(Comment.objects.count(), 0)
        self.assertEqual(ProjectView.objects.count(), 0)

    def test_deleting_post_cascades_to_likes_and_comments(self):
        like_community_post(self.user, self.post.id)
        create_comment(self.user, 'Hello', post_id=self.post.id)

        self.post.delete()

        self.assertEqual(PostLike.objects.count(), 0)
        self.assertEqual(Comment.objects.count(), 0)


class ProjectLikeTestCase(TestCase):

    def setUp(self):
        self.owner = User.objects.create_user('owner', 'o@test.com', 'pass')
        self.user_a = User.objects.create_user('user_a', 'a@test.com', 'pass')
        self.project = make_project(self.owner)

    def test_like_unlike_scenario(self):
        """
        like → True (1), like again → False (1),
        unlike → True (0), unlike again → False (0)
        """
        self.assertEqual(self.project.like_count, 0)

        self.assertTrue(like_project(self.user_a, self.project.id))
        self.project.refresh_from_db()
        self.assertEqual(self.project.like_count, 1)

        self.assertFalse(like_project(self.user_a, self.project.id))
        self.project.refresh_from_db()
        self.assertEqual(self.project.like_count, 1)
        self.assertEqual(ProjectLike.objects.filter(project=self.project).count(), 1)

        self.assertTrue(unlike_project(self.user_a, self.project.id))
        self.project.refresh_from_db()
        self.assertEqual(self.project.like_count, 0)

        self.assertFalse(unlike_project(self.user_a, self.project.id))
        self.project.refresh_from_db()
        self.assertEqual(self.project.like_count, 0)

    def test_like_missing_project_raises(self):
        self.project.delete()
        with self.assertRaises(ValueError):
            like_project(self.user_a, self.project.id)

    def test_like_is_single_delta_update(self):
        """The counter change must be an UPDATE ... SET like_count = like_count + 1."""
        with CaptureQueriesContext(connection) as context:
            like_project(self.user_a, self.project.id)

        updates = [q['sql'] for q in context.captured_queries if q['sql'].startswith('UPDATE')]
        self.assertEqual(len(updates), 1)
        self.assertIn('"like_count" + 1', updates[0])

    def test_like_applies_delta_to_current_value(self):
        """
        Interleaved writers: the counter moved after our caller last read it.
        The +1 lands on the stored value, not on the stale copy.
        """
        stale = Project.objects.get(id=self.project.id)
        Project.objects.filter(id=self.project.id).update(like_count=7)

        like_project(self.user_a, stale.id)

        self.assertEqual(stale.like_count, 0)
        self.assertEqual(Project.objects.get(id=self.project.id).like_count, 8)

    def test_unlike_never_underflows(self):
        """Like row exists but the cache already drifted to 0."""
        ProjectLike.objects.create(project=self.project, user=self.user_a)

        with self.assertLogs('hub.services', level='WARNING'):
            self.assertTrue(unlike_project(self.user_a, self.project.id))

        self.project.refresh_from_db()
        self.assertEqual(self.project.like_count, 0)

    def test_like_does_not_touch_counts_last_updated(self):
        like_project(self.user_a, self.project.id)
        self.project.refresh_from_db()
        self.assertIsNone(self.project.counts_last_updated)


class CommunityPostLikeTestCase(TestCase):

    def setUp(self):
        self.owner = User.objects.create_user('owner', 'o@test.com', 'pass')
        self.user = User.objects.create_user('user', 'u@test.com', 'pass')
        self.post = make_post(self.owner)

    def test_like_and_unlike_post(self):
        self.assertTrue(like_community_post(self.user, self.post.id))
        self.assertFalse(like_community_post(self.user, self.post.id))
        self.post.refresh_from_db()
        self.assertEqual(self.post.like_count, 1)

        self.assertTrue(unlike_community_post(self.user, self.post.id))
        self.assertFalse(unlike_community_post(self.user, self.post.id))
        self.post.refresh_from_db()
        self.assertEqual(self.post.like_count, 0)

    def test_likes_from_different_users_accumulate(self):
        for i in range(3):
            liker = User.objects.create_user(f'liker{i}', f'l{i}@test.com', 'pass')
            self.assertTrue(like_community_post(liker, self.post.id))
        self.post.refresh_from_db()
        self.assertEqual(self.post.like_count, 3)


class BookmarkTestCase(TestCase):

    def setUp(self):
        self.owner = User.objects.create_user('owner', 'o@test.com', 'pass')
        self.user = User.objects.create_user('user', 'u@test.com', 'pass')
        self.project = make_project(self.owner)

    def test_bookmark_uniqueness_without_counter(self):
        self.assertTrue(bookmark_project(self.user, self.project.id))
        self.assertFalse(bookmark_project(self.user, self.project.id))
        self.assertEqual(ProjectBookmark.objects.count(), 1)

        self.project.refresh_from_db()
        self.assertEqual(
            (self.project.like_count, self.project.comment_count, self.project.view_count),
            (0, 0, 0)
        )

        self.assertTrue(unbookmark_project(self.user, self.project.id))
        self.assertFalse(unbookmark_project(self.user, self.project.id))


class CommentCounterTestCase(TestCase):

    def setUp(self):
        self.owner = User.objects.create_user('owner', 'o@test.com', 'pass')
        self.commenter = User.objects.create_user('commenter', 'c@test.com', 'pass')
        self.project = make_project(self.owner)
        self.post = make_post(self.owner)

    def test_post_comment_scenario(self):
        """create → 1, delete by owner → 0, delete again → False, stays 0"""
        comment = create_comment(self.commenter, 'First!', post_id=self.post.id)
        self.post.refresh_from_db()
        self.assertEqual(self.post.comment_count, 1)

        self.assertTrue(delete_comment(self.commenter, comment.id))
        self.post.refresh_from_db()
        self.assertEqual(self.post.comment_count, 0)

        self.assertFalse(delete_comment(self.commenter, comment.id))
        self.post.refresh_from_db()
        self.assertEqual(self.post.comment_count, 0)

    def test_comment_increments_only_its_parent(self):
        create_comment(self.commenter, 'On the project', project_id=self.project.id)

        self.project.refresh_from_db()
        self.post.refresh_from_db()
        self.assertEqual(self.project.comment_count, 1)
        self.assertEqual(self.post.comment_count, 0)

    def test_delete_never_underflows_drifted_counter(self):
        """Comment row exists but comment_count already drifted to 0."""
        comment = Comment.objects.create(content='Imported', post=self.post, user=self.commenter)

        with self.assertLogs('hub.services', level='WARNING') as logs:
            self.assertTrue(delete_comment(self.commenter, comment.id))

        self.assertIn('comment_count', logs.output[0])
        self.post.refresh_from_db()
        self.assertEqual(self.post.comment_count, 0)
        self.assertFalse(Comment.objects.filter(id=comment.id).exists())

    def test_only_owner_can_delete(self):
        comment = create_comment(self.commenter, 'Mine', project_id=self.project.id)

        self.assertFalse(delete_comment(self.owner, comment.id))
        self.assertTrue(Comment.objects.filter(id=comment.id).exists())
        self.project.refresh_from_db()
        self.assertEqual(self.project.comment_count, 1)

    def test_parent_must_be_exactly_one(self):
        with self.assertRaises(ValueError):
            create_comment(self.commenter, 'both', project_id=self.project.id, post_id=self.post.id)
        with self.assertRaises(ValueError):
            create_comment(self.commenter, 'neither')
        self.assertEqual(Comment.objects.count(), 0)


class ProjectViewTestCase(TestCase):

    def setUp(self):
        self.owner = User.objects.create_user('owner', 'o@test.com', 'pass')
        self.viewer = User.objects.create_user('viewer', 'v@test.com', 'pass')
        self.project = make_project(self.owner)

    def test_repeat_views_all_count(self):
        record_project_view(self.project.id, self.viewer)
        record_project_view(self.project.id, self.viewer)
        record_project_view(self.project.id, ip_address='203.0.113.7')

        self.project.refresh_from_db()
        self.assertEqual(self.project.view_count, 3)
        self.assertEqual(ProjectView.objects.filter(project=self.project).count(), 3)
        self.assertEqual(ProjectView.objects.filter(user__isnull=True, ip_address='203.0.113.7').count(), 1)


class ReconciliationTestCase(TestCase):
    """
    CRITICAL: after a sync the cache equals the normalized row counts,
    whatever state it was in before.
    """

    def setUp(self):
        self.owner = User.objects.create_user('owner', 'o@test.com', 'pass')
        self.users = [
            User.objects.create_user(f'user{i}', f'u{i}@test.com', 'pass')
            for i in range(5)
        ]
        self.project = make_project(self.owner)
        self.post = make_post(self.owner)

    def test_drifted_likes_converge(self):
        """5 likes inserted behind the services' back, cache still 0."""
        for user in self.users:
            ProjectLike.objects.create(project=self.project, user=user)
        self.project.refresh_from_db()
        self.assertEqual(self.project.like_count, 0)

        self.assertTrue(sync_single_project_counts(self.project.id))

        self.project.refresh_from_db()
        self.assertEqual(self.project.like_count, 5)
        self.assertIsNotNone(self.project.counts_last_updated)

    def test_overcounted_cache_is_overwritten(self):
        Project.objects.filter(id=self.project.id).update(like_count=99, comment_count=7, view_count=3)
        Comment.objects.create(content='only one', project=self.project, user=self.owner)

        sync_single_project_counts(self.project.id)

        self.project.refresh_from_db()
        self.assertEqual(
            (self.project.like_count, self.project.comment_count, self.project.view_count),
            (0, 1, 0)
        )

    def test_post_counts_converge(self):
        for user in self.users[:3]:
            PostLike.objects.create(post=self.post, user=user)
        Comment.objects.create(content='hi', post=self.post, user=self.owner)

        self.assertTrue(sync_single_post_counts(self.post.id))

        self.post.refresh_from_db()
        self.assertEqual(self.post.like_count, 3)
        self.assertEqual(self.post.comment_count, 1)
        self.assertIsNotNone(self.post.counts_last_updated)

    def test_sync_leaves_updated_at_alone(self):
        before = Project.objects.get(id=self.project.id).updated_at
        sync_single_project_counts(self.project.id)
        self.assertEqual(Project.objects.get(id=self.project.id).updated_at, before)

    def test_sync_missing_entity_returns_false(self):
        project_id = self.project.id
        self.project.delete()
        self.assertFalse(sync_single_project_counts(project_id))

    def test_sync_all_is_idempotent(self):
        make_project(self.owner, title='Second')
        for user in self.users[:2]:
            ProjectLike.objects.create(project=self.project, user=user)
            ProjectView.objects.create(project=self.project, user=user)
        PostLike.objects.create(post=self.post, user=self.users[0])

        first = sync_all_counts()
        snapshot = list(Project.objects.order_by('id').values_list('id', 'like_count', 'comment_count', 'view_count'))
        post_snapshot = list(CommunityPost.objects.order_by('id').values_list('id', 'like_count', 'comment_count'))

        second = sync_all_counts()

        self.assertEqual((first.projects_updated, first.posts_updated, first.errors), (2, 1, []))
        self.assertEqual((second.projects_updated, second.posts_updated, second.errors), (2, 1, []))
        self.assertEqual(
            snapshot,
            list(Project.objects.order_by('id').values_list('id', 'like_count', 'comment_count', 'view_count'))
        )
        self.assertEqual(
            post_snapshot,
            list(CommunityPost.objects.order_by('id').values_list('id', 'like_count', 'comment_count'))
        )

    def test_per_entity_failure_does_not_abort_batch(self):
        broken = make_project(self.owner, title='Broken')
        ProjectLike.objects.create(project=self.project, user=self.users[0])
        real_sync = count_sync.sync_single_project_counts

        def flaky(project_id):
            if project_id == broken.id:
                raise DatabaseError('row lock timeout')
            return real_sync(project_id)

        with patch('hub.count_sync.sync_single_project_counts', side_effect=flaky):
            with self.assertLogs('hub.count_sync', level='ERROR'):
                result = sync_all_counts()

        self.assertEqual(result.projects_updated, 1)
        self.assertEqual(result.posts_updated, 1)
        self.assertEqual(len(result.errors), 1)
        self.assertIn(str(broken.id), result.errors[0])

        self.project.refresh_from_db()
        self.assertEqual(self.project.like_count, 1)

    def test_enumeration_failure_is_fatal(self):
        with patch.object(Project.objects, 'values_list', side_effect=DatabaseError('connection refused')):
            with self.assertRaises(DatabaseError):
                sync_all_counts()

    def test_halves_are_usable_independently(self):
        errors = []
        self.assertEqual(sync_project_counts(errors), 1)
        self.assertEqual(sync_community_post_counts(errors), 1)
        self.assertEqual(errors, [])


class SyncOnWriteTestCase(TestCase):
    """COUNT_SYNC_ON_WRITE couples the inline path to a targeted recount."""

    def setUp(self):
        self.owner = User.objects.create_user('owner', 'o@test.com', 'pass')
        self.user = User.objects.create_user('user', 'u@test.com', 'pass')
        self.project = make_project(self.owner)

    def test_decoupled_by_default(self):
        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            like_project(self.user, self.project.id)
        self.assertEqual(len(callbacks), 0)

    @override_settings(COUNT_SYNC_ON_WRITE=True)
    def test_resync_after_commit(self):
        # Pre-existing drift gets fixed by the recount that follows the like
        other = User.objects.create_user('other', 'x@test.com', 'pass')
        ProjectLike.objects.create(project=self.project, user=other)

        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            like_project(self.user, self.project.id)

        self.assertEqual(len(callbacks), 1)
        self.project.refresh_from_db()
        self.assertEqual(self.project.like_count, 2)
        self.assertIsNotNone(self.project.counts_last_updated)


class ConcurrentLikeTestCase(TransactionTestCase):
    """
    N concurrent likes → N rows, counter N.

    Needs a database with real row locking (PostgreSQL); SQLite serializes
    writers on a file lock and would just raise "database is locked".
    """

    @skipUnlessDBFeature('has_select_for_update')
    def test_concurrent_likes_all_counted(self):
        owner = User.objects.create_user('owner', 'o@test.com', 'pass')
        project = make_project(owner)
        likers = [User.objects.create_user(f'liker{i}', f'l{i}@test.com', 'pass') for i in range(10)]
        results = []
        barrier = threading.Barrier(len(likers))

        def worker(user):
            try:
                barrier.wait()
                results.append(like_project(user, project.id))
            finally:
                connection.close()

        threads = [threading.Thread(target=worker, args=(user,)) for user in likers]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(results, [True] * len(likers))
        self.assertEqual(ProjectLike.objects.filter(project=project).count(), len(likers))
        project.refresh_from_db()
        self.assertEqual(project.like_count, len(likers))

        sync_single_project_counts(project.id)
        project.refresh_from_db()
        self.assertEqual(project.like_count, len(likers))


class SyncCountsCommandTestCase(TestCase):

    def setUp(self):
        self.owner = User.objects.create_user('owner', 'o@test.com', 'pass')
        self.user = User.objects.create_user('user', 'u@test.com', 'pass')
        self.project = make_project(self.owner)
        self.post = make_post(self.owner)
        ProjectLike.objects.create(project=self.project, user=self.user)
        PostLike.objects.create(post=self.post, user=self.user)

    def test_full_run(self):
        out = StringIO()
        call_command('sync_counts', stdout=out)

        self.assertIn('1 projects, 1 posts', out.getvalue())
        self.project.refresh_from_db()
        self.post.refresh_from_db()
        self.assertEqual(self.project.like_count, 1)
        self.assertEqual(self.post.like_count, 1)

    def test_projects_only(self):
        call_command('sync_counts', '--projects-only', stdout=StringIO())

        self.project.refresh_from_db()
        self.post.refresh_from_db()
        self.assertEqual(self.project.like_count, 1)
        self.assertEqual(self.post.like_count, 0)

    def test_single_post(self):
        call_command('sync_counts', '--post', str(self.post.id), stdout=StringIO())

        self.post.refresh_from_db()
        self.assertEqual(self.post.like_count, 1)

    def test_single_missing_project(self):
        project_id = self.project.id
        self.project.delete()
        with self.assertRaises(CommandError):
            call_command('sync_counts', '--project', str(project_id), stdout=StringIO())


class QueryTestCase(TestCase):

    def setUp(self):
        self.owner = User.objects.create_user('owner', 'o@test.com', 'pass')
        self.quiet = make_project(self.owner, title='Quiet CLI', tags=['CLI'], tech_stack=['Go'])
        self.popular = make_project(
            self.owner,
            title='Popular Web App',
            tags=['Web Apps', 'AI'],
            tech_stack=['React', 'Django'],
        )
        Project.objects.filter(id=self.popular.id).update(like_count=10, comment_count=2)

    def test_filters_and_sorting(self):
        self.assertEqual([p.id for p in get_projects(search='web')], [self.popular.id])
        self.assertEqual([p.id for p in get_projects(tags=['CLI'])], [self.quiet.id])
        self.assertEqual([p.id for p in get_projects(tech_stack=['Go', 'React'], sort_by='likes')],
                         [self.popular.id, self.quiet.id])
        self.assertEqual([p.id for p in get_projects(sort_by='oldest')], [self.quiet.id, self.popular.id])

    def test_tag_filter_is_exact_and_case_sensitive(self):
        self.assertEqual(get_projects(tags=['cli']), [])
        self.assertEqual(get_projects(tags=['Web']), [])
        self.assertEqual([p.id for p in get_projects(tech_stack=['django', 'Django'])], [self.popular.id])

    def test_trending_uses_cached_counters(self):
        self.assertEqual(get_trending_projects()[0].id, self.popular.id)

    def test_analytics(self):
        analytics = get_analytics()
        self.assertEqual(analytics['total_projects'], 2)
        self.assertEqual(analytics['total_users'], 1)
        self.assertEqual(analytics['top_tags'][0]['count'], 1)
        self.assertEqual(len(analytics['top_tech_stacks']), 3)


class OwnedEntityServiceTestCase(TestCase):

    def setUp(self):
        self.owner = User.objects.create_user('owner', 'o@test.com', 'pass')
        self.stranger = User.objects.create_user('stranger', 's@test.com', 'pass')
        self.project = make_project(self.owner)

    def test_update_is_owner_scoped_and_keeps_counters(self):
        Project.objects.filter(id=self.project.id).update(like_count=4)

        self.assertIsNone(update_project(self.stranger, self.project.id, {'title': 'Hijacked'}))
        updated = update_project(self.owner, self.project.id, {'title': 'Renamed'})

        self.assertEqual(updated.title, 'Renamed')
        self.project.refresh_from_db()
        self.assertEqual(self.project.like_count, 4)

    def test_delete_is_owner_scoped(self):
        self.assertFalse(delete_project(self.stranger, self.project.id))
        self.assertTrue(delete_project(self.owner, self.project.id))

    def test_upsert_user_updates_existing(self):
        upsert_user({'sub': 'oidc-123', 'email': 'a@test.com', 'first_name': 'Ada'})
        user = upsert_user({
            'sub': 'oidc-123',
            'email': 'ada@test.com',
            'first_name': 'Ada',
            'profile_image_url': 'https://img.test/ada.png',
        })

        self.assertEqual(User.objects.filter(username='oidc-123').count(), 1)
        self.assertEqual(user.email, 'ada@test.com')
        self.assertEqual(user.profile.profile_image_url, 'https://img.test/ada.png')


class ApiTestCase(APITestCase):
    """REST layer: booleans → responses, cached counters on reads."""

    def setUp(self):
        self.owner = User.objects.create_user('owner', 'o@test.com', 'pass')
        self.user = User.objects.create_user('user', 'u@test.com', 'pass')
        self.project = make_project(self.owner, tags=['Tools'])
        self.post = make_post(self.owner)

    def test_list_returns_cached_counter_without_recount(self):
        Project.objects.filter(id=self.project.id).update(like_count=42)

        response = self.client.get('/api/projects/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data[0]['like_count'], 42)

    def test_like_endpoints(self):
        self.client.force_authenticate(self.user)
        url = f'/api/projects/{self.project.id}/like/'

        self.assertEqual(self.client.post(url).data, {'success': True})
        self.assertEqual(self.client.post(url).data, {'success': False})

        status_response = self.client.get(f'/api/projects/{self.project.id}/like-status/')
        self.assertEqual(status_response.data, {'is_liked': True, 'is_bookmarked': False})

        self.assertEqual(self.client.delete(url).data, {'success': True})
        self.assertEqual(self.client.delete(url).data, {'success': False})

    def test_like_requires_authentication(self):
        response = self.client.post(f'/api/projects/{self.project.id}/like/')
        self.assertIn(response.status_code, (401, 403))
        self.assertIn('error', response.data)

    def test_like_unknown_project_is_404(self):
        self.client.force_authenticate(self.user)
        project_id = self.project.id
        self.project.delete()

        response = self.client.post(f'/api/projects/{project_id}/like/')
        self.assertEqual(response.status_code, 404)

    def test_detail_records_view(self):
        response = self.client.get(f'/api/projects/{self.project.id}/')

        self.assertEqual(response.status_code, 200)
        self.project.refresh_from_db()
        self.assertEqual(self.project.view_count, 1)
        view = ProjectView.objects.get(project=self.project)
        self.assertIsNone(view.user)
        self.assertEqual(view.ip_address, '127.0.0.1')

    def test_detail_ignores_malformed_forwarded_for(self):
        response = self.client.get(
            f'/api/projects/{self.project.id}/',
            HTTP_X_FORWARDED_FOR='not-an-ip, 10.0.0.1'
        )

        self.assertEqual(response.status_code, 200)
        view = ProjectView.objects.get(project=self.project)
        self.assertEqual(view.ip_address, '127.0.0.1')

    def test_detail_uses_valid_forwarded_for(self):
        self.client.get(
            f'/api/projects/{self.project.id}/',
            HTTP_X_FORWARDED_FOR='203.0.113.9, 10.0.0.1'
        )
        self.assertEqual(ProjectView.objects.get(project=self.project).ip_address, '203.0.113.9')

    def test_comment_create_and_delete(self):
        self.client.force_authenticate(self.user)

        response = self.client.post(
            '/api/comments/',
            {'content': 'Great work', 'post': str(self.post.id)},
            format='json'
        )
        self.assertEqual(response.status_code, 201)
        comment_id = response.data['id']

        detail = self.client.get(f'/api/community/posts/{self.post.id}/')
        self.assertEqual(detail.data['comment_count'], 1)

        self.client.force_authenticate(self.owner)
        self.assertEqual(self.client.delete(f'/api/comments/{comment_id}/').status_code, 404)

        self.client.force_authenticate(self.user)
        self.assertEqual(self.client.delete(f'/api/comments/{comment_id}/').status_code, 200)
        self.assertEqual(self.client.delete(f'/api/comments/{comment_id}/').status_code, 404)

    def test_comment_with_both_parents_rejected(self):
        self.client.force_authenticate(self.user)

        response = self.client.post(
            '/api/comments/',
            {'content': 'x', 'post': str(self.post.id), 'project': str(self.project.id)},
            format='json'
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(Comment.objects.count(), 0)

    def test_community_posts_pinned_first_and_paginated(self):
        pinned = make_post(self.owner, title='Rules', is_pinned=True)
        for i in range(3):
            make_post(self.owner, title=f'Post {i}')

        response = self.client.get('/api/community/posts/', {'limit': 2})

        self.assertEqual(response.data['count'], 5)
        self.assertEqual(len(response.data['results']), 2)
        self.assertEqual(response.data['results'][0]['id'], str(pinned.id))

    def test_non_owner_cannot_update_project(self):
        self.client.force_authenticate(self.user)
        response = self.client.patch(f'/api/projects/{self.project.id}/', {'title': 'Mine now'}, format='json')
        self.assertEqual(response.status_code, 404)

    def test_create_project_and_list_bookmarks(self):
        self.client.force_authenticate(self.user)
        response = self.client.post('/api/projects/', {
            'title': 'New thing',
            'short_description': 'Short',
            'detailed_description': 'Long',
            'tags': ['Games'],
            'tech_stack': ['Rust'],
        }, format='json')
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data['like_count'], 0)
        self.assertEqual(response.data['user']['username'], 'user')

        self.client.post(f'/api/projects/{self.project.id}/bookmark/')
        bookmarks = self.client.get('/api/users/me/bookmarks/')
        self.assertEqual([p['id'] for p in bookmarks.data], [str(self.project.id)])

    def test_sync_endpoint_is_staff_only(self):
        ProjectLike.objects.create(project=self.project, user=self.user)

        self.client.force_authenticate(self.user)
        self.assertEqual(self.client.post('/api/admin/sync-counts/').status_code, 403)

        staff = User.objects.create_user('staff', 's@test.com', 'pass', is_staff=True)
        self.client.force_authenticate(staff)
        response = self.client.post('/api/admin/sync-counts/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data, {'projects_updated': 1, 'posts_updated': 1, 'errors': []})
        self.project.refresh_from_db()
        self.assertEqual(self.project.like_count, 1)

    def test_health(self):
        response = self.client.get('/api/health/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['status'], 'healthy')

    def test_current_user_requires_login(self):
        self.assertEqual(self.client.get('/api/auth/user/').status_code, 401)

    @override_settings(LOCAL_AUTH=True)
    def test_mock_login_session(self):
        response = self.client.post('/api/auth/mock-login/', {}, format='json')
        self.assertEqual(response.status_code, 200)

        me = self.client.get('/api/auth/user/')
        self.assertEqual(me.status_code, 200)
        self.assertEqual(me.data['username'], 'local-dev-user')

    @override_settings(LOCAL_AUTH=True)
    def test_mock_login_ignores_requested_identity(self):
        """A body naming a staff account still logs in as the fixed mock user."""
        admin = User.objects.create_user('admin', 'admin@test.com', 'pass', is_staff=True)

        response = self.client.post('/api/auth/mock-login/', {'sub': 'admin'}, format='json')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['username'], 'local-dev-user')

        admin.refresh_from_db()
        self.assertEqual(admin.email, 'admin@test.com')
        self.assertEqual(self.client.post('/api/admin/sync-counts/').status_code, 403)

    @override_settings(LOCAL_AUTH=True)
    def test_mock_login_keeps_existing_profile(self):
        User.objects.create_user('local-dev-user', 'me@test.com', 'pass', first_name='Me')

        self.client.post('/api/auth/mock-login/', {}, format='json')

        user = User.objects.get(username='local-dev-user')
        self.assertEqual((user.email, user.first_name), ('me@test.com', 'Me'))

    @override_settings(LOCAL_AUTH=True)
    def test_mock_login_refuses_privileged_account(self):
        User.objects.create_user('local-dev-user', 'x@test.com', 'pass', is_superuser=True)

        response = self.client.post('/api/auth/mock-login/', {}, format='json')

        self.assertEqual(response.status_code, 403)
        self.assertEqual(self.client.get('/api/auth/user/').status_code, 401)

    @override_settings(LOCAL_AUTH=False)
    def test_mock_login_disabled(self):
        response = self.client.post('/api/auth/mock-login/', {}, format='json')
        self.assertEqual(response.status_code, 404)
