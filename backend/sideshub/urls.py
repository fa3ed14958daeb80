"""
SidesHub URL Configuration
"""
from django.contrib import admin
from django.http import JsonResponse
from django.urls import include, path


def api_root(request):
    """Root endpoint with API information."""
    return JsonResponse({
        'message': 'SidesHub API Server',
        'version': '1.0',
        'endpoints': {
            'projects': '/api/projects/',
            'community': '/api/community/posts/',
            'comments': '/api/comments/',
            'analytics': '/api/analytics/',
            'health': '/api/health/',
            'auth': '/api/auth/',
        },
        'admin': '/admin/',
    })


urlpatterns = [
    path('', api_root, name='api-root'),
    path('admin/', admin.site.urls),
    path('api/', include('hub.urls')),
]
