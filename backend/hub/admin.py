"""
Django Admin Configuration for Hub Models
"""
from django.contrib import admin, messages

from .count_sync import sync_single_post_counts, sync_single_project_counts
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

COUNTER_FIELDS = ['like_count', 'comment_count', 'counts_last_updated']


@admin.register(UserProfile)
class UserProfileAdmin(admin.ModelAdmin):
    list_display = ['user', 'profile_image_url']
    search_fields = ['user__username', 'user__email']


@admin.register(Project)
class ProjectAdmin(admin.ModelAdmin):
    list_display = ['title', 'user', 'is_featured', 'view_count', 'like_count', 'comment_count', 'created_at']
    list_filter = ['is_featured', 'created_at']
    search_fields = ['title', 'short_description', 'user__username']
    # Cached counters are only written by services.py and count_sync.py
    readonly_fields = ['view_count', *COUNTER_FIELDS, 'created_at', 'updated_at']
    actions = ['recalculate_counts']

    @admin.action(description='Recalculate cached counts')
    def recalculate_counts(self, request, queryset):
        updated = sum(1 for project_id in queryset.values_list('id', flat=True)
                      if sync_single_project_counts(project_id))
        self.message_user(request, f'Recalculated counts for {updated} project(s).', messages.SUCCESS)


@admin.register(CommunityPost)
class CommunityPostAdmin(admin.ModelAdmin):
    list_display = ['title', 'user', 'is_pinned', 'like_count', 'comment_count', 'created_at']
    list_filter = ['is_pinned', 'created_at']
    search_fields = ['title', 'content', 'user__username']
    readonly_fields = [*COUNTER_FIELDS, 'created_at', 'updated_at']
    actions = ['recalculate_counts']

    @admin.action(description='Recalculate cached counts')
    def recalculate_counts(self, request, queryset):
        updated = sum(1 for post_id in queryset.values_list('id', flat=True)
                      if sync_single_post_counts(post_id))
        self.message_user(request, f'Recalculated counts for {updated} post(s).', messages.SUCCESS)


@admin.register(Comment)
class CommentAdmin(admin.ModelAdmin):
    list_display = ['id', 'user', 'project', 'post', 'created_at']
    list_filter = ['created_at']
    search_fields = ['content', 'user__username']
    readonly_fields = ['created_at', 'updated_at']


@admin.register(ProjectLike)
class ProjectLikeAdmin(admin.ModelAdmin):
    list_display = ['user', 'project', 'created_at']
    search_fields = ['user__username', 'project__title']


@admin.register(PostLike)
class PostLikeAdmin(admin.ModelAdmin):
    list_display = ['user', 'post', 'created_at']
    search_fields = ['user__username', 'post__title']


@admin.register(ProjectBookmark)
class ProjectBookmarkAdmin(admin.ModelAdmin):
    list_display = ['user', 'project', 'created_at']
    search_fields = ['user__username', 'project__title']


@admin.register(ProjectView)
class ProjectViewAdmin(admin.ModelAdmin):
    list_display = ['project', 'user', 'ip_address', 'created_at']
    list_filter = ['created_at']
    readonly_fields = ['project', 'user', 'ip_address', 'created_at']

    def has_add_permission(self, request):
        # Views are only recorded by the system
        return False

    def has_change_permission(self, request, obj=None):
        # Append-only log
        return False
