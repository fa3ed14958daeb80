"""
Management command to reconcile cached counters with the normalized tables.

Usage:
    python manage.py sync_counts                  # one full pass
    python manage.py sync_counts --projects-only
    python manage.py sync_counts --project <uuid>
    python manage.py sync_counts --interval 900   # repeat every 15 minutes

Meant to be run by an operator or an external scheduler (cron, a
platform job runner). --interval keeps this process looping for setups
without one; the web process itself never schedules anything.
"""

import time

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.management.base import BaseCommand, CommandError

from hub.count_sync import (
    CountSyncResult,
    sync_all_counts,
    sync_community_post_counts,
    sync_project_counts,
    sync_single_post_counts,
    sync_single_project_counts,
)


class Command(BaseCommand):
    help = 'Recompute cached like/comment/view counts from the normalized tables'

    def add_arguments(self, parser):
        scope = parser.add_mutually_exclusive_group()
        scope.add_argument(
            '--projects-only',
            action='store_true',
            help='Only sync project counts'
        )
        scope.add_argument(
            '--posts-only',
            action='store_true',
            help='Only sync community post counts'
        )
        scope.add_argument(
            '--project',
            metavar='ID',
            help='Sync a single project'
        )
        scope.add_argument(
            '--post',
            metavar='ID',
            help='Sync a single community post'
        )
        parser.add_argument(
            '--interval',
            type=int,
            default=getattr(settings, 'COUNT_SYNC_INTERVAL', 0),
            help='Repeat every N seconds until interrupted (0 = run once)'
        )

    def handle(self, *args, **options):
        if options['project'] or options['post']:
            self._sync_single(options)
            return

        interval = options['interval']
        if interval < 0:
            raise CommandError('--interval must be >= 0')

        while True:
            self.stdout.write('Starting count synchronization...')
            result = self._run_batch(options)
            self._report(result)

            if not interval:
                break
            self.stdout.write(f'Next run in {interval}s (Ctrl+C to stop)')
            try:
                time.sleep(interval)
            except KeyboardInterrupt:
                self.stdout.write('Stopped.')
                break

        if result.errors and not interval:
            raise CommandError(f'{len(result.errors)} entities failed to sync')

    def _run_batch(self, options) -> CountSyncResult:
        if options['projects_only']:
            result = CountSyncResult()
            result.projects_updated = sync_project_counts(result.errors)
            return result
        if options['posts_only']:
            result = CountSyncResult()
            result.posts_updated = sync_community_post_counts(result.errors)
            return result
        return sync_all_counts()

    def _report(self, result: CountSyncResult):
        for error in result.errors:
            self.stderr.write(self.style.ERROR(error))

        summary = (
            f'Synced counts: {result.projects_updated} projects, '
            f'{result.posts_updated} posts'
        )
        if result.errors:
            self.stdout.write(self.style.WARNING(f'{summary} ({len(result.errors)} errors)'))
        else:
            self.stdout.write(self.style.SUCCESS(summary))

    def _sync_single(self, options):
        if options['project']:
            label, entity_id, sync_one = 'Project', options['project'], sync_single_project_counts
        else:
            label, entity_id, sync_one = 'Post', options['post'], sync_single_post_counts

        try:
            updated = sync_one(entity_id)
        except ValidationError:
            raise CommandError(f"'{entity_id}' is not a valid id")

        if not updated:
            raise CommandError(f'{label} {entity_id} does not exist')
        self.stdout.write(self.style.SUCCESS(f'Synced counts for {label.lower()} {entity_id}'))
