"""
Report views for CampusFix Backend.

Provides REST API endpoints for:
- Report creation (students) and role-scoped listing
- Campus feed of all non-rejected reports
- Report detail (shape depends on the viewer's role)
- Assignment with ranked staff candidates (admins)
- Lifecycle actions: reject, start, complete
- Staff/admin conversation
- Upvote toggle

Business rules live in the service modules; views translate HTTP to
service calls and let the exception handler render service errors.
"""

import logging
from rest_framework import generics, status, views
from rest_framework.response import Response

from core import exceptions as errors
from authentication.permissions import IsAuthenticated, IsCoordinator, CanViewReport
from .filters import ReportFilter
from .models import get_report
from .serializers import (
    ReportSerializer,
    ReportCreateSerializer,
    AssignReportSerializer,
    StatusNoteInputSerializer,
    ConversationMessageSerializer,
    ConversationEntrySerializer,
    UpvoteSerializer,
    ResolverCandidateSerializer,
    report_serializer_for,
)
from .services import (
    list_reports_for,
    campus_feed,
    rank_resolvers,
    assign_report,
    reject_report,
    start_progress,
    complete_report,
    append_conversation_message,
    conversation_for,
    toggle_upvote,
)
from .upvotes import upvoted_report_ids

logger = logging.getLogger('campusfix.reports')

REQUEST_ID_HEADER = 'HTTP_X_REQUEST_ID'


def _request_id(request, data):
    """
    Client request id from the X-Request-ID header, else from the body.

    The services trim it and reject ids longer than REQUEST_ID_MAX_LENGTH.
    """
    return request.META.get(REQUEST_ID_HEADER, '').strip() or data.get('request_id') or None


class ReportListCreateView(generics.ListCreateAPIView):
    """
    List reports relevant to the current user, or submit a new one.

    GET /api/v1/reports/?status=pending&priority=urgent
    - student: own reports
    - staff: reports assigned to them
    - admin: all reports

    POST /api/v1/reports/
    {
        "title": "Leaking tap",
        "description": "Second floor washroom",
        "building": "Block A",
        "room": "204",
        "priority": "high",
        "photo": "https://..."      // or multipart "photo_file"
    }

    Only students can submit reports.
    """

    permission_classes = [IsAuthenticated]
    filterset_class = ReportFilter

    def get_queryset(self):
        return list_reports_for(self.request.user)

    def get_serializer_class(self):
        if self.request.method == 'POST':
            return ReportCreateSerializer
        return report_serializer_for(self.request.user)

    def get_serializer_context(self):
        context = super().get_serializer_context()
        if self.request.method == 'GET':
            context['upvoted_ids'] = upvoted_report_ids(self.request.user)
        return context

    def create(self, request, *args, **kwargs):
        serializer = ReportCreateSerializer(data=request.data, context={'request': request})
        serializer.is_valid(raise_exception=True)
        report = serializer.save()

        return Response(
            ReportSerializer(report, context={'request': request}).data,
            status=status.HTTP_201_CREATED
        )


class CampusFeedView(generics.ListAPIView):
    """
    Every non-rejected report, newest first, with the caller's upvote state.

    GET /api/v1/reports/campus/
    """

    permission_classes = [IsAuthenticated]
    serializer_class = ReportSerializer
    filterset_class = ReportFilter

    def get_queryset(self):
        return campus_feed()

    def get_serializer_context(self):
        context = super().get_serializer_context()
        context['upvoted_ids'] = upvoted_report_ids(self.request.user)
        return context


class ReportDetailView(views.APIView):
    """
    Report detail.

    GET /api/v1/reports/{report_id}/

    Staff and admins also receive the assignment note, the status notes
    and the conversation.
    """

    permission_classes = [IsAuthenticated, CanViewReport]

    def get(self, request, report_id):
        report = get_report(report_id)
        self.check_object_permissions(request, report)

        serializer_class = report_serializer_for(request.user, detail=True)
        return Response(serializer_class(report, context={'request': request}).data)


class ResolverCandidatesView(views.APIView):
    """
    Staff members ordered least-busy first, for the assignment picker.

    GET /api/v1/reports/resolvers/
    """

    permission_classes = [IsCoordinator]

    def get(self, request):
        candidates = rank_resolvers()
        return Response(ResolverCandidateSerializer(candidates, many=True).data)


class ReportActionView(views.APIView):
    """Base for lifecycle actions: responds with the updated report."""

    permission_classes = [IsAuthenticated]

    def report_response(self, request, report):
        report.refresh_from_db()
        serializer_class = report_serializer_for(request.user, detail=True)
        return Response(serializer_class(report, context={'request': request}).data)


class AssignReportView(ReportActionView):
    """
    Assign a pending report to a staff member.

    POST /api/v1/reports/{report_id}/assign/
    {
        "staff_id": "5001",
        "note": "check by EOD"      // optional
    }
    """

    def post(self, request, report_id):
        serializer = AssignReportSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        report = assign_report(
            report_id,
            request.user,
            serializer.validated_data['staff_id'],
            note=serializer.validated_data['note'],
            request=request,
        )
        return self.report_response(request, report)


class RejectReportView(ReportActionView):
    """
    Reject a pending report.

    POST /api/v1/reports/{report_id}/reject/
    {
        "note": "duplicate"
    }
    """

    def post(self, request, report_id):
        serializer = StatusNoteInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        report = reject_report(report_id, request.user, serializer.validated_data['note'], request=request)
        return self.report_response(request, report)


class StartProgressView(ReportActionView):
    """
    Start work on a report already attached to the calling staff member.

    POST /api/v1/reports/{report_id}/start/
    {
        "note": "on my way"         // optional
    }
    """

    def post(self, request, report_id):
        serializer = StatusNoteInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        report = start_progress(report_id, request.user, serializer.validated_data['note'], request=request)
        return self.report_response(request, report)


class CompleteReportView(ReportActionView):
    """
    Complete an in-progress report.

    POST /api/v1/reports/{report_id}/complete/
    {
        "note": "fixed"
    }
    """

    def post(self, request, report_id):
        serializer = StatusNoteInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        report = complete_report(report_id, request.user, serializer.validated_data['note'], request=request)
        return self.report_response(request, report)


class ConversationView(views.APIView):
    """
    Private conversation between the assigned staff member and admins.

    GET /api/v1/reports/{report_id}/conversation/?after=3
        Entries in sequence order; with ``after`` only newer ones.

    POST /api/v1/reports/{report_id}/conversation/
    X-Request-ID: <client id>       // optional, drops duplicate deliveries
    {
        "message": "on it",
        "sender_role": "staff"      // optional, must match the caller
    }
    """

    permission_classes = [IsAuthenticated]

    def get(self, request, report_id):
        after = request.query_params.get('after')
        if after is not None:
            try:
                after = int(after)
            except ValueError:
                raise errors.ValidationError("'after' must be a sequence number.")

        report = get_report(report_id)
        entries = conversation_for(report, request.user, after=after)
        return Response({
            'report_id': str(report.id),
            'entries': ConversationEntrySerializer(entries, many=True).data,
        })

    def post(self, request, report_id):
        serializer = ConversationMessageSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        entry = append_conversation_message(
            report_id,
            request.user,
            serializer.validated_data['message'],
            sender_role=serializer.validated_data.get('sender_role'),
            request_id=_request_id(request, serializer.validated_data),
            request=request,
        )
        return Response(
            ConversationEntrySerializer(entry.as_entry()).data,
            status=status.HTTP_201_CREATED
        )


class UpvoteView(views.APIView):
    """
    Toggle the caller's upvote.

    POST /api/v1/reports/{report_id}/upvote/
    X-Request-ID: <client id>       // optional, retries return the first result

    Response:
    {
        "upvoted": true,
        "upvotes_count": 4
    }
    """

    permission_classes = [IsAuthenticated]

    def post(self, request, report_id):
        serializer = UpvoteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = toggle_upvote(
            report_id,
            request.user,
            request_id=_request_id(request, serializer.validated_data),
            request=request,
        )
        return Response(result._asdict())
