"""
Activity notifier for CampusFix Backend.

Counts, per user, the relevant reports that changed since the user last
opened their activity view.

Usage:
    from notifications.services import ActivityService, ActivityMonitor

    ActivityService.unseen_count(user)
    ActivityService.mark_seen(user)

    monitor = ActivityMonitor(user)
    monitor.poll()
    monitor.close()
"""

import logging
from django.conf import settings
from django.db import transaction
from django.db.models import QuerySet
from django.utils import timezone

from reports.feed import for_user, report_change_feed
from reports.services import relevant_reports_for_user
from .models import ActivityCheckpoint

logger = logging.getLogger('campusfix.notifications')


def compute_unseen_count(reports, checkpoint):
    """
    Number of ``reports`` with ``updated_at`` strictly after ``checkpoint``.

    ``reports`` may be a queryset (counted in the database) or any
    iterable of objects with an ``updated_at`` attribute.
    """
    if isinstance(reports, QuerySet):
        return reports.filter(updated_at__gt=checkpoint).count()
    return sum(1 for report in reports if report.updated_at > checkpoint)


class ActivityService:
    """
    Persisted "last seen" checkpoints and the unseen counts derived
    from them.
    """

    @classmethod
    def checkpoint_for(cls, user):
        """The user's checkpoint, created at the epoch on first use."""
        checkpoint, _ = ActivityCheckpoint.objects.get_or_create(user=user)
        return checkpoint

    @classmethod
    def unseen_count(cls, user, since=None):
        """
        Relevant reports updated after the user's checkpoint.

        - staff: reports assigned to them
        - student: reports they created
        - admin: all reports

        ``since`` raises the threshold for this call only.
        """
        threshold = cls.checkpoint_for(user).last_seen_at
        if since is not None and since > threshold:
            threshold = since
        return compute_unseen_count(relevant_reports_for_user(user), threshold)

    @classmethod
    def mark_seen(cls, user, now=None):
        """
        Move the user's checkpoint to ``now``.

        The checkpoint never moves backwards: a ``now`` earlier than the
        stored value leaves it unchanged.
        """
        now = now or timezone.now()

        with transaction.atomic():
            cls.checkpoint_for(user)
            checkpoint = ActivityCheckpoint.objects.select_for_update().get(user=user)
            if now > checkpoint.last_seen_at:
                checkpoint.last_seen_at = now
                checkpoint.save(update_fields=['last_seen_at', 'updated_at'])

        logger.info(f"[Activity] {user.identifier} seen up to {checkpoint.last_seen_at.isoformat()}")
        return checkpoint


class ActivityMonitor:
    """
    Per-session activity notifier.

    Keeps ``count`` current two ways: on ``poll()`` once the poll interval
    has elapsed, and immediately when the change feed reports a change to
    a report relevant to the user.

    ``open_activity_view()`` zeroes the session count without touching the
    persisted checkpoint; later recounts in this session only consider
    changes after that moment.
    """

    def __init__(self, user, poll_interval=None, feed=None):
        self.user = user
        if poll_interval is None:
            poll_interval = settings.ACTIVITY_POLL_INTERVAL_SECONDS
        self.poll_interval = poll_interval
        self.count = 0

        self._last_poll = None
        self._session_floor = None
        self._feed = feed or report_change_feed
        self._subscription = self._feed.subscribe(for_user(user), self._on_change)

    @property
    def closed(self):
        return not self._subscription.active

    def refresh(self):
        """Recompute the count now."""
        self.count = ActivityService.unseen_count(self.user, since=self._session_floor)
        return self.count

    def poll(self, now=None):
        """Recompute if the poll interval has elapsed; returns the count."""
        now = now or timezone.now()
        if self._last_poll is None or (now - self._last_poll).total_seconds() >= self.poll_interval:
            self._last_poll = now
            self.refresh()
        return self.count

    def _on_change(self, event):
        if self.closed:
            return
        logger.debug(f"[Activity] change on {event.report_id} for {self.user.identifier}")
        self.refresh()

    def open_activity_view(self, now=None):
        """The user opened the activity view: zero the session count."""
        self._session_floor = now or timezone.now()
        self.count = 0
        return self.count

    def mark_seen(self, now=None):
        """Persist the checkpoint and recount from it."""
        checkpoint = ActivityService.mark_seen(self.user, now=now)
        self.refresh()
        return checkpoint

    def close(self):
        """Stop listening to the change feed."""
        self._subscription.cancel()
