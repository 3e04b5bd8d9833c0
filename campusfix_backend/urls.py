"""
URL configuration for CampusFix Backend.

API Structure:
- /api/v1/auth/          - Authentication endpoints
- /api/v1/reports/       - Reports, lifecycle actions, conversation, upvotes
- /api/v1/notifications/ - Activity counts
- /admin/                - Django admin (restricted)
"""

from django.contrib import admin
from django.urls import path, include
from django.http import JsonResponse
from django.conf import settings
from django.conf.urls.static import static


def health_check(request):
    """Health check endpoint for load balancers."""
    return JsonResponse({
        'status': 'healthy',
        'service': 'campusfix-backend'
    })


def api_root(request):
    """API root endpoint with version info."""
    return JsonResponse({
        'name': 'CampusFix API',
        'version': 'v1',
        'endpoints': {
            'auth': '/api/v1/auth/',
            'reports': '/api/v1/reports/',
            'notifications': '/api/v1/notifications/',
        }
    })


urlpatterns = [
    # Health check (public)
    path('health/', health_check, name='health-check'),
    path('api/health/', health_check, name='api-health-check'),

    # API root
    path('api/v1/', api_root, name='api-root'),

    # Authentication endpoints
    path('api/v1/auth/', include('authentication.urls', namespace='auth')),

    # Report endpoints
    path('api/v1/reports/', include('reports.urls', namespace='reports')),

    # Activity notification endpoints
    path('api/v1/notifications/', include('notifications.urls', namespace='notifications')),

    # Django admin (restricted access)
    path('admin/', admin.site.urls),
]

# Serve uploaded report photos during development (DEBUG=True)
if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
