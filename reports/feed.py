"""
Report change feed.

Delivers a ReportChangeEvent to every subscriber whose predicate matches,
after the transaction that changed the report commits. Consumers:
- notifications.services.ActivityMonitor recomputes unseen counts
- conversation refresh follows one report

Built on django.dispatch: each subscription is a receiver connected to
the feed's signal and disconnected again by ``Subscription.cancel()``.
"""

import logging
import uuid
from collections import namedtuple

from django.dispatch import Signal

from authentication.models import UserRole

logger = logging.getLogger('campusfix.reports')

ReportChangeEvent = namedtuple(
    'ReportChangeEvent',
    ['report_id', 'status', 'assignee_id', 'submitted_by_id', 'updated_at', 'created']
)


def event_for(report, created=False):
    return ReportChangeEvent(
        report_id=report.id,
        status=report.status,
        assignee_id=report.assignee_id,
        submitted_by_id=report.submitted_by_id,
        updated_at=report.updated_at,
        created=created,
    )


class Subscription:
    """Handle returned by ``ReportChangeFeed.subscribe``."""

    def __init__(self, feed, uid):
        self._feed = feed
        self._uid = uid
        self.active = True

    def cancel(self):
        """Stop receiving events. Safe to call more than once."""
        if self.active:
            self._feed._signal.disconnect(dispatch_uid=self._uid)
            self.active = False


class ReportChangeFeed:
    """Subscribe to report mutations matching a predicate."""

    def __init__(self):
        self._signal = Signal()

    def subscribe(self, predicate, callback):
        """
        Call ``callback(event)`` for every published event for which
        ``predicate(event)`` is true.

        Returns:
            Subscription
        """
        def receiver(sender, event, **kwargs):
            if predicate(event):
                callback(event)

        uid = f'report-feed-{uuid.uuid4()}'
        self._signal.connect(receiver, weak=False, dispatch_uid=uid)
        return Subscription(self, uid)

    def publish(self, event):
        """Deliver ``event``; one failing subscriber does not stop the others."""
        for receiver, response in self._signal.send_robust(sender=self.__class__, event=event):
            if isinstance(response, Exception):
                logger.error(
                    f"[Feed] subscriber failed for report {event.report_id}: {response!r}",
                    exc_info=(type(response), response, response.__traceback__)
                )

    def has_subscribers(self):
        return self._signal.has_listeners(sender=self.__class__)


def for_user(user):
    """
    Predicate matching the reports whose changes matter to ``user``:
    staff see their assigned reports, students their own, admins all.
    """
    user_id = user.id
    role = user.role

    def predicate(event):
        if role == UserRole.COORDINATOR:
            return True
        if role == UserRole.RESOLVER:
            return event.assignee_id == user_id
        if role == UserRole.SUBMITTER:
            return event.submitted_by_id == user_id
        return False

    return predicate


def for_report(report_id):
    """Predicate matching changes to one report."""
    report_id = str(report_id)

    def predicate(event):
        return str(event.report_id) == report_id

    return predicate


report_change_feed = ReportChangeFeed()
