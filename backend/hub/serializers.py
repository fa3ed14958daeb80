"""
DRF Serializers
===============

Serializers handle:
1. Validation of incoming data (the REST layer's job, not the services')
2. Transformation of model instances to JSON

DESIGN DECISIONS:
-----------------
1. Separate read and write serializers - the cached counters are
   read-only on every serializer, clients can never set them
2. Counters are emitted as plain integers straight off the row
3. Owner is set from request.user in the view, never from input
"""

from django.contrib.auth.models import User
from rest_framework import serializers

from .models import Comment, CommunityPost, Project

COUNTER_FIELDS = ['like_count', 'comment_count']


class UserSerializer(serializers.ModelSerializer):
    """Public user representation for embedding in other objects."""
    profile_image_url = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ['id', 'username', 'email', 'first_name', 'last_name', 'profile_image_url']
        read_only_fields = fields

    def get_profile_image_url(self, obj):
        profile = getattr(obj, 'profile', None)
        return profile.profile_image_url if profile else None


class ProjectSerializer(serializers.ModelSerializer):
    """
    Project as returned by list and detail endpoints.

    Expects select_related('user', 'user__profile') on the queryset.
    """
    user = UserSerializer(read_only=True)

    class Meta:
        model = Project
        fields = [
            'id',
            'title',
            'short_description',
            'detailed_description',
            'thumbnail_url',
            'demo_url',
            'source_url',
            'tags',
            'tech_stack',
            'user',
            'is_featured',
            'view_count',
            'like_count',
            'comment_count',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class ProjectWriteSerializer(serializers.ModelSerializer):
    """Create / update input. partial=True for PATCH."""
    tags = serializers.ListField(
        child=serializers.CharField(max_length=50),
        required=False
    )
    tech_stack = serializers.ListField(
        child=serializers.CharField(max_length=50),
        required=False
    )

    class Meta:
        model = Project
        fields = [
            'title',
            'short_description',
            'detailed_description',
            'thumbnail_url',
            'demo_url',
            'source_url',
            'tags',
            'tech_stack',
            'is_featured',
        ]

    def validate_title(self, value):
        if not value.strip():
            raise serializers.ValidationError("Title cannot be empty.")
        return value.strip()

    def validate_tags(self, value):
        return [tag.strip() for tag in value if tag.strip()]

    def validate_tech_stack(self, value):
        return [tech.strip() for tech in value if tech.strip()]


class CommunityPostSerializer(serializers.ModelSerializer):
    user = UserSerializer(read_only=True)

    class Meta:
        model = CommunityPost
        fields = [
            'id',
            'title',
            'content',
            'is_pinned',
            'user',
            *COUNTER_FIELDS,
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class CommunityPostWriteSerializer(serializers.ModelSerializer):

    class Meta:
        model = CommunityPost
        fields = ['title', 'content', 'is_pinned']

    def validate_title(self, value):
        if not value.strip():
            raise serializers.ValidationError("Title cannot be empty.")
        return value.strip()

    def validate_content(self, value):
        if not value.strip():
            raise serializers.ValidationError("Content cannot be empty.")
        return value.strip()


class CommentSerializer(serializers.ModelSerializer):
    user = UserSerializer(read_only=True)

    class Meta:
        model = Comment
        fields = ['id', 'content', 'project', 'post', 'user', 'created_at', 'updated_at']
        read_only_fields = fields


class CommentCreateSerializer(serializers.Serializer):
    """
    Input for POST /api/comments/.

    Validates that exactly one of project / post is given - the
    services assume this already holds.
    """
    content = serializers.CharField()
    project = serializers.UUIDField(required=False, allow_null=True)
    post = serializers.UUIDField(required=False, allow_null=True)

    def validate_content(self, value):
        if not value.strip():
            raise serializers.ValidationError("Comment cannot be empty.")
        return value.strip()

    def validate(self, attrs):
        has_project = attrs.get('project') is not None
        has_post = attrs.get('post') is not None
        if has_project == has_post:
            raise serializers.ValidationError(
                'A comment must target exactly one of "project" or "post".'
            )
        return attrs


class CountSyncResultSerializer(serializers.Serializer):
    projects_updated = serializers.IntegerField()
    posts_updated = serializers.IntegerField()
    errors = serializers.ListField(child=serializers.CharField())
