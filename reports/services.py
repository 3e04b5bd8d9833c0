"""
Report service functions.

Entry points used by the API views and importable by other apps:
- create_report: a student files a new report
- list_reports_for / campus_feed: role-scoped listings
- the lifecycle, assignment, conversation and upvote operations,
  re-exported from their modules
"""

import logging

from django.db import transaction

from core import exceptions as errors
from authentication.models import UserRole
from audit.models import AuditLog, AuditEventType
from .models import Report, ReportPriority, ReportStatus
from .media import discard_report_photo, store_report_photo

# Re-exported service surface
from .assignment import assign_report, rank_resolvers  # noqa: F401
from .collaboration import append_conversation_message, conversation_for, status_notes_for  # noqa: F401
from .lifecycle import complete_report, reject_report, start_progress  # noqa: F401
from .upvotes import toggle_upvote  # noqa: F401

logger = logging.getLogger('campusfix.reports')

PRIORITY_VALUES = [value for value, _ in ReportPriority.CHOICES]


def relevant_reports_for_user(user):
    """Reports whose activity concerns ``user`` (see ReportQuerySet.relevant_to)."""
    return Report.objects.relevant_to(user)


def visible_reports_for_user(user):
    """Reports ``user`` may open."""
    return Report.objects.visible_to(user)


def _required_text(value, field, max_length):
    value = (value or '').strip()
    if not value:
        raise errors.ValidationError(f"{field} is required.")
    if len(value) > max_length:
        raise errors.ValidationError(f"{field} cannot be longer than {max_length} characters.")
    return value


def create_report(actor, title, description, building, room='', priority=ReportPriority.MEDIUM,
                  photo='', photo_file=None, request=None):
    """
    File a new report as a student.

    The report starts pending, unassigned, with no upvotes and empty logs.
    A photo may be given either as a URL already in the media store or as
    an uploaded file, which is stored in the same transaction as the
    report and removed again if the report cannot be saved.

    Raises:
        Unauthorized: actor is not a student
        ValidationError: missing or malformed fields, rejected photo
    """
    if actor.role != UserRole.SUBMITTER:
        raise errors.Unauthorized("Only students can submit reports.")

    title = _required_text(title, 'Title', 200)
    description = _required_text(description, 'Description', 5000)
    building = _required_text(building, 'Building', 120)
    room = (room or '').strip()
    if len(room) > 60:
        raise errors.ValidationError("Room cannot be longer than 60 characters.")

    priority = priority or ReportPriority.MEDIUM
    if priority not in PRIORITY_VALUES:
        raise errors.ValidationError(f"Unknown priority '{priority}'.")

    stored_photo = None
    try:
        with transaction.atomic():
            if photo_file is not None:
                stored_photo, photo = store_report_photo(photo_file, request=request)

            report = Report.objects.create(
                title=title,
                description=description,
                building=building,
                room=room,
                photo=photo or '',
                priority=priority,
                status=ReportStatus.PENDING,
                submitted_by=actor,
                submitter_student_id=actor.student_id or '',
                submitter_name=actor.name,
            )

            AuditLog.log(
                event_type=AuditEventType.REPORT_CREATED,
                actor=actor,
                target=report,
                request=request,
                description=f"Report created: {report.title}",
                metadata={
                    'priority': report.priority,
                    'building': report.building,
                    'has_photo': bool(report.photo),
                }
            )
    except Exception:
        # The insert rolled back; nothing refers to the stored file
        if stored_photo:
            discard_report_photo(stored_photo)
        raise

    logger.info(f"[Report] {report.id} created by {actor.student_id} ({report.priority})")
    return report


def list_reports_for(user, status=None, priority=None):
    """
    Reports relevant to ``user``, newest first.

    - student: reports they created
    - staff: reports assigned to them
    - admin: all reports
    """
    queryset = relevant_reports_for_user(user).select_related('submitted_by', 'assignee')
    if status:
        queryset = queryset.with_status(ReportStatus.normalize(status))
    if priority:
        queryset = queryset.filter(priority=priority)
    return queryset.order_by('-created_at')


def campus_feed():
    """Every non-rejected report, for the shared campus view."""
    return Report.objects.public().order_by('-created_at')
