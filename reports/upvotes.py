"""
Upvote aggregator.

``toggle_upvote`` flips a user's vote and moves ``upvotes_count`` by one
in the same transaction, with the report row locked, so the counter
always equals the number of Upvote rows even under concurrent toggles.

The toggle is not idempotent by nature (two toggles cancel out). A
client retrying over a flaky connection sends the same request id, and
the retry is answered from the stored OperationReceipt.
"""

import logging
from collections import namedtuple

from django.db import transaction
from django.db.models import F

from core import exceptions as errors
from audit.models import AuditLog, AuditEventType
from .models import OperationReceipt, Upvote, clean_request_id, get_report

logger = logging.getLogger('campusfix.reports')

UpvoteResult = namedtuple('UpvoteResult', ['upvoted', 'upvotes_count'])

TOGGLE_UPVOTE = 'toggle_upvote'


def toggle_upvote(report_id, user, request_id=None, request=None):
    """
    Add the user's upvote if absent, remove it if present.

    Every open report is on the campus feed, so any signed-in user may
    vote on it. Completed and rejected reports are locked for everyone.

    Returns:
        UpvoteResult(upvoted, upvotes_count)

    Raises:
        NotFound: report does not exist
        ValidationError: request id is too long or was used for another action
        Locked: report is completed or rejected
    """
    with transaction.atomic():
        report = get_report(report_id, for_update=True)
        request_id = clean_request_id(request_id)

        if request_id:
            receipt = OperationReceipt.objects.filter(request_id=request_id).first()
            if receipt is not None:
                if not receipt.matches(TOGGLE_UPVOTE, user, report):
                    raise errors.ValidationError("This request id was already used for another action.")
                logger.info(f"[Upvote] duplicate delivery {request_id} on {report.id}")
                return UpvoteResult(**receipt.response)

        if report.is_terminal:
            raise errors.Locked("Voting is closed for this report.")

        existing = Upvote.objects.filter(report=report, user=user).first()
        if existing is not None:
            existing.delete()
            delta = -1
        else:
            Upvote.objects.create(report=report, user=user)
            delta = 1

        report.upvotes_count = F('upvotes_count') + delta
        report.save(update_fields=['upvotes_count', 'updated_at'])
        report.refresh_from_db(fields=['upvotes_count', 'updated_at'])

        result = UpvoteResult(upvoted=delta > 0, upvotes_count=report.upvotes_count)

        if request_id:
            OperationReceipt.objects.create(
                request_id=request_id,
                operation=TOGGLE_UPVOTE,
                actor=user,
                report=report,
                response=result._asdict(),
            )

        AuditLog.log(
            event_type=AuditEventType.REPORT_UPVOTE_TOGGLED,
            actor=user,
            target=report,
            request=request,
            description="Upvote added" if result.upvoted else "Upvote removed",
            metadata={'upvotes_count': result.upvotes_count}
        )

    return result


def has_upvoted(report, user):
    return Upvote.objects.filter(report=report, user=user).exists()


def upvoted_report_ids(user, reports=None):
    """Ids of the reports ``user`` has upvoted, optionally limited to ``reports``."""
    upvotes = Upvote.objects.filter(user=user)
    if reports is not None:
        upvotes = upvotes.filter(report__in=reports)
    return set(upvotes.values_list('report_id', flat=True))
