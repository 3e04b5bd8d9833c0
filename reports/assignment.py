"""
Assignment balancer.

Offers admins the staff members ordered by current workload, and
performs the assignment that moves a pending report to in-progress.

Workload = number of in-progress reports assigned to a staff member.
Candidates are sorted by (workload, name case-insensitively, staff id).
The order is advisory; the admin makes the final pick.
"""

import logging
from collections import namedtuple

from django.db import transaction
from django.db.models import Count, Q
from django.utils import timezone

from core import exceptions as errors
from authentication.models import User, UserRole
from audit.models import AuditLog, AuditEventType
from .models import ReportStatus, get_report

logger = logging.getLogger('campusfix.reports')

ResolverCandidate = namedtuple('ResolverCandidate', ['user', 'load'])


def resolver_workloads():
    """Active staff members annotated with ``load``."""
    in_progress = Q(
        assigned_reports__status=ReportStatus.IN_PROGRESS,
        assigned_reports__is_deleted=False,
    )
    return User.objects.filter(
        role=UserRole.RESOLVER,
        is_active=True,
    ).annotate(load=Count('assigned_reports', filter=in_progress))


def _staff_id_key(staff_id):
    # Numeric ids compare as numbers; anything else sorts after them
    staff_id = staff_id or ''
    if staff_id.isdigit():
        return (0, int(staff_id), '')
    return (1, 0, staff_id)


def rank_resolvers():
    """
    Staff members ordered least-busy first.

    Returns:
        list[ResolverCandidate]
    """
    candidates = [
        ResolverCandidate(user=user, load=user.load)
        for user in resolver_workloads()
    ]
    candidates.sort(key=lambda c: (c.load, c.user.name.casefold(), _staff_id_key(c.user.staff_id)))
    return candidates


def assign_report(report_id, actor, resolver_staff_id, note=None, request=None):
    """
    Assign a pending report to a staff member.

    Sets the assignee and their name, marks the report as ever assigned,
    moves it to in-progress, stores the optional assignment note and
    bumps updated_at, all in one update.

    Raises:
        NotFound: report or staff member does not exist
        Unauthorized: actor is not an admin
        ValidationError: no staff member selected
        InvalidState: report is not pending or already has an assignee
    """
    with transaction.atomic():
        report = get_report(report_id, for_update=True)

        if actor.role != UserRole.COORDINATOR:
            raise errors.Unauthorized("Only admins can assign reports.")

        resolver_staff_id = str(resolver_staff_id or '').strip()
        if not resolver_staff_id:
            raise errors.ValidationError("Select a staff member to assign.")

        resolver = User.objects.filter(
            role=UserRole.RESOLVER,
            staff_id=resolver_staff_id,
            is_active=True,
        ).first()
        if resolver is None:
            raise errors.NotFound(f"Staff member {resolver_staff_id} not found.")

        # Re-checked under the lock: two admins racing on one report
        if report.status != ReportStatus.PENDING or report.assignee_id is not None:
            raise errors.InvalidState("Only pending, unassigned reports can be assigned.")

        now = timezone.now()
        report.assignee = resolver
        report.assignee_name = resolver.name
        report.was_ever_assigned = True
        report.status = ReportStatus.IN_PROGRESS
        report.assignment_note = (note or '').strip()
        report.assigned_at = now
        report.save(update_fields=[
            'assignee', 'assignee_name', 'was_ever_assigned', 'status',
            'assignment_note', 'assigned_at', 'updated_at',
        ])

        AuditLog.log(
            event_type=AuditEventType.REPORT_ASSIGNED,
            actor=actor,
            target=report,
            request=request,
            description=f"Report assigned to {resolver.staff_id}",
            metadata={'assignee_staff_id': resolver.staff_id}
        )

    logger.info(f"[Assignment] {report.id} -> {resolver.staff_id} by {actor.staff_id}")
    return report
