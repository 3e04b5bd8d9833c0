"""
Report lifecycle state machine.

    pending -> in-progress -> completed
    pending -> rejected

Each transition runs inside ``transaction.atomic()`` with the report row
locked and re-reads the status under the lock, so two actors racing on
the same report are serialized and the loser gets InvalidState (or its
subclass InvalidTransition).

Admins move a report from pending to in-progress only through
``reports.assignment.assign_report``.
"""

import logging
from django.db import transaction
from django.utils import timezone

from core import exceptions as errors
from authentication.models import UserRole
from audit.models import AuditLog, AuditEventType
from .models import ReportStatus, get_report
from .collaboration import append_status_note

logger = logging.getLogger('campusfix.reports')


def check_transition(current, requested):
    """
    Raise InvalidTransition unless ``current -> requested`` is an edge
    of the lifecycle graph.
    """
    if requested not in ReportStatus.TRANSITIONS.get(current, []):
        raise errors.InvalidTransition(current, requested)


def _required_note(note, message):
    note = (note or '').strip()
    if not note:
        raise errors.ValidationError(message)
    return note


def start_progress(report_id, actor, note=None, request=None):
    """
    Staff self-start: pending -> in-progress for a report that already
    has this staff member attached.

    assign_report moves a report straight to in-progress, so a pending
    report only has an assignee when the row was attached outside the
    assignment flow, as with imported data or records written by older
    clients. Starting a report that assign_report handled is an
    InvalidTransition.

    An optional note is appended as an in-progress status note in the
    same transaction.
    """
    with transaction.atomic():
        report = get_report(report_id, for_update=True)

        if actor.role != UserRole.RESOLVER:
            raise errors.Unauthorized("Only staff members can start work on a report.")

        note = (note or '').strip()

        if report.assignee_id != actor.id:
            raise errors.InvalidState("Only the staff member attached to this report can start it.")

        check_transition(report.status, ReportStatus.IN_PROGRESS)

        report.status = ReportStatus.IN_PROGRESS
        report.was_ever_assigned = True
        report.save(update_fields=['status', 'was_ever_assigned', 'updated_at'])

        if note:
            append_status_note(report, ReportStatus.IN_PROGRESS, note, actor)

        AuditLog.log(
            event_type=AuditEventType.REPORT_STARTED,
            actor=actor,
            target=report,
            request=request,
            description="Work started on report",
            metadata={'with_note': bool(note)}
        )

    logger.info(f"[Lifecycle] {report.id} started by {actor.staff_id}")
    return report


def complete_report(report_id, actor, note, request=None):
    """
    in-progress -> completed by the assigned staff member.

    The transition and its completed status note are one atomic change.
    """
    with transaction.atomic():
        report = get_report(report_id, for_update=True)

        if actor.role != UserRole.RESOLVER:
            raise errors.Unauthorized("Only the assigned staff member can complete a report.")

        note = _required_note(note, "A completion note is required.")

        if report.assignee_id != actor.id:
            raise errors.InvalidState("Only the assigned staff member can complete this report.")

        check_transition(report.status, ReportStatus.COMPLETED)

        report.status = ReportStatus.COMPLETED
        report.completed_at = timezone.now()
        report.save(update_fields=['status', 'completed_at', 'updated_at'])

        append_status_note(report, ReportStatus.COMPLETED, note, actor)

        AuditLog.log(
            event_type=AuditEventType.REPORT_COMPLETED,
            actor=actor,
            target=report,
            request=request,
            description="Report completed"
        )

    logger.info(f"[Lifecycle] {report.id} completed by {actor.staff_id}")
    return report


def reject_report(report_id, actor, note, request=None):
    """pending -> rejected by an admin, with a rejection note shown to the student."""
    with transaction.atomic():
        report = get_report(report_id, for_update=True)

        if actor.role != UserRole.COORDINATOR:
            raise errors.Unauthorized("Only admins can reject reports.")

        note = _required_note(note, "A rejection note is required.")

        check_transition(report.status, ReportStatus.REJECTED)

        report.status = ReportStatus.REJECTED
        report.rejection_note = note
        report.rejected_at = timezone.now()
        report.save(update_fields=['status', 'rejection_note', 'rejected_at', 'updated_at'])

        AuditLog.log(
            event_type=AuditEventType.REPORT_REJECTED,
            actor=actor,
            target=report,
            request=request,
            description="Report rejected",
            metadata={'rejection_note': note}
        )

    logger.info(f"[Lifecycle] {report.id} rejected by {actor.staff_id}")
    return report
