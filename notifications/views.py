"""
Activity views for CampusFix Backend.

GET  /api/v1/notifications/unseen-count/
POST /api/v1/notifications/mark-seen/
"""

from django.conf import settings
from rest_framework import serializers, views
from rest_framework.response import Response

from authentication.permissions import IsAuthenticated
from .services import ActivityService


class MarkSeenSerializer(serializers.Serializer):
    seen_at = serializers.DateTimeField(required=False)


class UnseenCountView(views.APIView):
    """
    Number of relevant reports changed since the caller last marked
    their activity as seen.

    Response:
    {
        "unseen_count": 3,
        "last_seen_at": "2024-01-15T10:30:00Z",
        "poll_interval_seconds": 30
    }
    """

    permission_classes = [IsAuthenticated]

    def get(self, request):
        checkpoint = ActivityService.checkpoint_for(request.user)
        return Response({
            'unseen_count': ActivityService.unseen_count(request.user),
            'last_seen_at': checkpoint.last_seen_at,
            'poll_interval_seconds': settings.ACTIVITY_POLL_INTERVAL_SECONDS,
        })


class MarkSeenView(views.APIView):
    """
    Persist the caller's checkpoint.

    Request (optional body):
    {
        "seen_at": "2024-01-15T10:30:00Z"   // defaults to now
    }
    """

    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = MarkSeenSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        checkpoint = ActivityService.mark_seen(
            request.user,
            now=serializer.validated_data.get('seen_at')
        )
        return Response({
            'success': True,
            'last_seen_at': checkpoint.last_seen_at,
            'unseen_count': ActivityService.unseen_count(request.user),
        })
