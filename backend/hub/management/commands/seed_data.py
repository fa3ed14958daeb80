"""
Management command to seed the database with sample data.

Usage: python manage.py seed_data

All interactions go through services.py, so the cached counters come
out consistent; run `sync_counts` afterwards to double check.
"""

import random
from datetime import timedelta

from django.contrib.auth.models import User
from django.core.management.base import BaseCommand
from django.utils import timezone

from hub.models import Comment, CommunityPost, PostLike, Project, ProjectBookmark, ProjectLike, ProjectView
from hub.services import (
    bookmark_project,
    create_comment,
    like_community_post,
    like_project,
    record_project_view,
    upsert_user,
)

TECH = ['React', 'Vue.js', 'Node.js', 'Python', 'Django', 'Go', 'Rust', 'PostgreSQL', 'Tailwind']
TAGS = ['Web Apps', 'Mobile Apps', 'Games', 'Tools', 'AI', 'Open Source', 'CLI']


class Command(BaseCommand):
    help = 'Seed the database with sample data for testing'

    def add_arguments(self, parser):
        parser.add_argument(
            '--users',
            type=int,
            default=10,
            help='Number of users to create'
        )
        parser.add_argument(
            '--projects',
            type=int,
            default=20,
            help='Number of projects to create'
        )
        parser.add_argument(
            '--posts',
            type=int,
            default=10,
            help='Number of community posts to create'
        )
        parser.add_argument(
            '--comments',
            type=int,
            default=60,
            help='Number of comments to create'
        )
        parser.add_argument(
            '--clear',
            action='store_true',
            help='Clear existing data before seeding'
        )

    def handle(self, *args, **options):
        if options['clear']:
            self.stdout.write('Clearing existing data...')
            ProjectView.objects.all().delete()
            ProjectLike.objects.all().delete()
            ProjectBookmark.objects.all().delete()
            PostLike.objects.all().delete()
            Comment.objects.all().delete()
            Project.objects.all().delete()
            CommunityPost.objects.all().delete()
            User.objects.filter(is_superuser=False).delete()

        self.stdout.write('Creating users...')
        users = self._create_users(options['users'])

        self.stdout.write('Creating projects...')
        projects = self._create_projects(users, options['projects'])

        self.stdout.write('Creating community posts...')
        posts = self._create_posts(users, options['posts'])

        self.stdout.write('Creating comments...')
        comment_count = self._create_comments(users, projects, posts, options['comments'])

        self.stdout.write('Creating likes, bookmarks and views...')
        self._create_interactions(users, projects, posts)

        self.stdout.write(self.style.SUCCESS(
            f'Successfully created:\n'
            f'  - {len(users)} users\n'
            f'  - {len(projects)} projects\n'
            f'  - {len(posts)} community posts\n'
            f'  - {comment_count} comments\n'
            f'  - Likes, bookmarks and views'
        ))

    def _create_users(self, count):
        return [
            upsert_user({
                'sub': f'user{i + 1}',
                'email': f'user{i + 1}@example.com',
                'first_name': 'User',
                'last_name': str(i + 1),
            })
            for i in range(count)
        ]

    def _create_projects(self, users, count):
        titles = [
            "Habit tracker that lives in your terminal",
            "Recipe scaler with unit conversion",
            "Pixel-art editor in the browser",
            "Self-hosted link shortener",
            "Markdown slide deck generator",
            "Bird song classifier",
        ]
        projects = []
        for i in range(count):
            projects.append(Project.objects.create(
                user=random.choice(users),
                title=f"{random.choice(titles)} #{i + 1}",
                short_description="A small side project built over a few weekends.",
                detailed_description="Started as an experiment, ended up being useful.\n\n" * 3,
                tags=random.sample(TAGS, k=2),
                tech_stack=random.sample(TECH, k=3),
                is_featured=random.random() < 0.2,
                created_at=timezone.now() - timedelta(days=random.randint(0, 30)),
            ))
        return projects

    def _create_posts(self, users, count):
        titles = [
            "How do you pick your next side project?",
            "Show & tell: weekend builds",
            "Hosting recommendations for hobby apps?",
            "Finished my first open source release!",
        ]
        return [
            CommunityPost.objects.create(
                user=random.choice(users),
                title=f"{random.choice(titles)} #{i + 1}",
                content="Curious what everyone here thinks.",
                is_pinned=(i == 0),
                created_at=timezone.now() - timedelta(hours=random.randint(0, 72)),
            )
            for i in range(count)
        ]

    def _create_comments(self, users, projects, posts, count):
        texts = [
            "Great idea, starred!",
            "What did you use for hosting?",
            "Love the UI.",
            "Have you considered open sourcing it?",
            "+1 to this",
        ]
        created = 0
        for _ in range(count):
            if posts and (not projects or random.random() < 0.4):
                create_comment(random.choice(users), random.choice(texts), post_id=random.choice(posts).id)
            else:
                create_comment(random.choice(users), random.choice(texts), project_id=random.choice(projects).id)
            created += 1
        return created

    def _create_interactions(self, users, projects, posts):
        for project in projects:
            for liker in random.sample(users, k=len(users) // 2):
                like_project(liker, project.id)
            for user in random.sample(users, k=min(2, len(users))):
                bookmark_project(user, project.id)
            for _ in range(random.randint(0, 15)):
                record_project_view(project.id, ip_address=f'10.0.0.{random.randint(1, 254)}')

        for post in posts:
            for liker in random.sample(users, k=len(users) // 3):
                like_community_post(liker, post.id)
