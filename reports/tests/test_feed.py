import uuid

from django.db import transaction
from django.test import TestCase
from django.utils import timezone

from reports.assignment import assign_report
from reports.feed import ReportChangeEvent, ReportChangeFeed, for_report, for_user, report_change_feed
from reports.models import ReportStatus
from .helpers import CampusFixTestMixin


class ReportChangeFeedTests(CampusFixTestMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.student = self.make_student()
        self.other_student = self.make_student(student_id='22235100002', name='Kiran')
        self.staff = self.make_staff()
        self.admin = self.make_admin()
        self.received = []

    def subscribe(self, predicate):
        subscription = report_change_feed.subscribe(predicate, self.received.append)
        self.addCleanup(subscription.cancel)
        return subscription

    def test_event_delivered_after_commit(self):
        self.subscribe(lambda event: True)

        with self.captureOnCommitCallbacks(execute=True):
            report = self.make_report(self.student)
            self.assertEqual(self.received, [])

        self.assertEqual(len(self.received), 1)
        event = self.received[0]
        self.assertEqual(event.report_id, report.id)
        self.assertEqual(event.status, ReportStatus.PENDING)
        self.assertTrue(event.created)

    def test_for_user_follows_relevance(self):
        admin_events = []
        staff_events = []
        for_admin = report_change_feed.subscribe(for_user(self.admin), admin_events.append)
        for_staff = report_change_feed.subscribe(for_user(self.staff), staff_events.append)
        self.addCleanup(for_admin.cancel)
        self.addCleanup(for_staff.cancel)
        self.subscribe(for_user(self.other_student))

        with self.captureOnCommitCallbacks(execute=True):
            report = self.make_report(self.student)
        with self.captureOnCommitCallbacks(execute=True):
            assign_report(report.id, self.admin, self.staff.staff_id)

        self.assertEqual(len(admin_events), 2)
        self.assertEqual([e.status for e in staff_events], [ReportStatus.IN_PROGRESS])
        self.assertEqual(self.received, [])

    def test_for_report(self):
        watched = self.make_report(self.student)
        self.subscribe(for_report(watched.id))

        with self.captureOnCommitCallbacks(execute=True):
            self.make_report(self.student, title='Flickering light')
            assign_report(watched.id, self.admin, self.staff.staff_id)

        self.assertEqual([e.report_id for e in self.received], [watched.id])

    def test_cancel_stops_delivery(self):
        subscription = self.subscribe(lambda event: True)
        subscription.cancel()
        subscription.cancel()

        with self.captureOnCommitCallbacks(execute=True):
            self.make_report(self.student)

        self.assertFalse(subscription.active)
        self.assertEqual(self.received, [])

    def test_rolled_back_change_is_not_published(self):
        self.subscribe(lambda event: True)

        with self.captureOnCommitCallbacks(execute=True):
            with self.assertRaises(RuntimeError):
                with transaction.atomic():
                    self.make_report(self.student)
                    raise RuntimeError('abort')

        self.assertEqual(self.received, [])


class FailingSubscriberTests(TestCase):
    def test_other_subscribers_still_receive(self):
        feed = ReportChangeFeed()
        received = []
        event = ReportChangeEvent(
            report_id=uuid.uuid4(),
            status=ReportStatus.PENDING,
            assignee_id=None,
            submitted_by_id=uuid.uuid4(),
            updated_at=timezone.now(),
            created=True,
        )

        def broken(event):
            raise RuntimeError('subscriber bug')

        feed.subscribe(lambda event: True, broken)
        feed.subscribe(lambda event: True, received.append)

        with self.assertLogs('campusfix.reports', level='ERROR'):
            feed.publish(event)

        self.assertEqual(received, [event])

    def test_has_subscribers(self):
        feed = ReportChangeFeed()
        self.assertFalse(feed.has_subscribers())

        subscription = feed.subscribe(lambda event: True, lambda event: None)
        self.assertTrue(feed.has_subscribers())

        subscription.cancel()
        self.assertFalse(feed.has_subscribers())
