"""
Hub App Configuration
"""
from django.apps import AppConfig


class HubConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'hub'
    verbose_name = 'SidesHub'

    def ready(self):
        # Import signals when app is ready
        import hub.signals  # noqa
