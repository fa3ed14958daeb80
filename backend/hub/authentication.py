"""
Session authentication for local development.

The original deployment sits behind an OIDC provider; locally a mock
login (views.MockLoginView) creates a session instead. DRF's
SessionAuthentication enforces CSRF on its own, regardless of the CSRF
middleware, so with LOCAL_AUTH on we skip that check.
"""
from django.conf import settings
from rest_framework.authentication import SessionAuthentication


class LocalSessionAuthentication(SessionAuthentication):

    def enforce_csrf(self, request):
        if getattr(settings, 'LOCAL_AUTH', False):
            return
        return super().enforce_csrf(request)
