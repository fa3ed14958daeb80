"""
Django Signals for SidesHub

Trade-off Discussion:
---------------------
Counter maintenance is NOT done with signals. Signals do not fire on
QuerySet.update() / QuerySet.delete() / bulk_create(), and services.py
needs to know whether a row was really inserted or deleted before it
touches a counter. So all counter work is explicit in services.py.

Signals ARE used for:
- Creating a UserProfile for every new User (including createsuperuser
  and admin-created users, which never go through services.upsert_user)
"""

from django.contrib.auth.models import User
from django.db.models.signals import post_save
from django.dispatch import receiver

from .models import UserProfile


@receiver(post_save, sender=User)
def create_user_profile(sender, instance, created, **kwargs):
    """Every user gets exactly one profile row."""
    if created:
        UserProfile.objects.get_or_create(user=instance)
