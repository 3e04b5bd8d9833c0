"""
URL configuration for CampusFix activity notifications.

All endpoints are under /api/v1/notifications/
"""

from django.urls import path

from .views import UnseenCountView, MarkSeenView

app_name = 'notifications'

urlpatterns = [
    path('unseen-count/', UnseenCountView.as_view(), name='unseen-count'),
    path('mark-seen/', MarkSeenView.as_view(), name='mark-seen'),
]
