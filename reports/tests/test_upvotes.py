from io import StringIO

from django.core.management import call_command
from django.test import TestCase

from core import exceptions as errors
from audit.models import AuditLog, AuditEventType
from reports.lifecycle import complete_report, reject_report
from reports.models import OperationReceipt, Report, Upvote
from reports.upvotes import has_upvoted, toggle_upvote, upvoted_report_ids
from .helpers import CampusFixTestMixin


class ToggleUpvoteTests(CampusFixTestMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.owner = self.make_student()
        self.student = self.make_student(student_id='22235100002', name='Kiran')
        self.staff = self.make_staff()
        self.report = self.make_report(self.owner)

    def test_toggle_on_and_off(self):
        first = toggle_upvote(self.report.id, self.student)
        self.assertEqual(first, (True, 1))

        second = toggle_upvote(self.report.id, self.student)
        self.assertEqual(second.upvoted, False)
        self.assertEqual(second.upvotes_count, 0)
        self.assertFalse(Upvote.objects.filter(report=self.report).exists())

    def test_count_matches_rows(self):
        voters = [
            self.make_student(student_id=f'2223510010{i}', name=f'Voter {i}')
            for i in range(6)
        ]
        for voter in voters:
            toggle_upvote(self.report.id, voter)
        # Two change their minds
        toggle_upvote(self.report.id, voters[0])
        toggle_upvote(self.report.id, voters[3])

        self.report.refresh_from_db()
        self.assertEqual(self.report.upvotes_count, 4)
        self.assertEqual(Upvote.objects.filter(report=self.report).count(), 4)

    def test_owner_can_upvote_own_report(self):
        self.assertTrue(toggle_upvote(self.report.id, self.owner).upvoted)

    def test_toggle_is_audited(self):
        toggle_upvote(self.report.id, self.student)

        log = AuditLog.objects.get(event_type=AuditEventType.REPORT_UPVOTE_TOGGLED)
        self.assertEqual(log.metadata, {'upvotes_count': 1})

    def test_retry_with_same_request_id_is_answered_once(self):
        first = toggle_upvote(self.report.id, self.student, request_id='tap-1')
        retry = toggle_upvote(self.report.id, self.student, request_id='tap-1')

        self.assertEqual(first, retry)
        self.report.refresh_from_db()
        self.assertEqual(self.report.upvotes_count, 1)
        self.assertEqual(OperationReceipt.objects.count(), 1)

    def test_request_id_of_another_user_is_refused(self):
        toggle_upvote(self.report.id, self.student, request_id='tap-1')

        with self.assertRaises(errors.ValidationError):
            toggle_upvote(self.report.id, self.owner, request_id='tap-1')

    def test_completed_report_is_locked(self):
        report = self.in_progress_report(self.owner, self.staff, title='Leaking tap')
        complete_report(report.id, self.staff, 'fixed')

        with self.assertRaises(errors.Locked):
            toggle_upvote(report.id, self.student)

    def test_completed_report_is_locked_for_staff_who_did_not_hold_it(self):
        report = self.in_progress_report(self.owner, self.staff, title='Leaking tap')
        complete_report(report.id, self.staff, 'fixed')
        other_staff = self.make_staff(name='Meena Iyer')

        with self.assertRaises(errors.Locked):
            toggle_upvote(report.id, other_staff)
        with self.assertRaises(errors.Locked):
            toggle_upvote(report.id, self.make_admin())

    def test_rejected_report_is_locked_for_everyone(self):
        admin = self.make_admin()
        reject_report(self.report.id, admin, 'duplicate')

        for user in [self.student, self.owner, self.staff, admin]:
            with self.subTest(role=user.role):
                with self.assertRaises(errors.Locked):
                    toggle_upvote(self.report.id, user)

    def test_staff_can_vote_on_open_feed_reports(self):
        self.assertEqual(toggle_upvote(self.report.id, self.staff), (True, 1))

    def test_request_id_is_trimmed(self):
        toggle_upvote(self.report.id, self.student, request_id='  tap-1 ')

        self.assertTrue(OperationReceipt.objects.filter(request_id='tap-1').exists())

    def test_request_id_too_long(self):
        with self.assertRaises(errors.ValidationError):
            toggle_upvote(self.report.id, self.student, request_id='x' * 65)

        self.assertFalse(Upvote.objects.exists())

    def test_unknown_report(self):
        with self.assertRaises(errors.NotFound):
            toggle_upvote('00000000-0000-0000-0000-000000000000', self.student)


class UpvoteQueryTests(CampusFixTestMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.student = self.make_student()
        self.first = self.make_report(self.student, title='Broken projector')
        self.second = self.make_report(self.student, title='Flickering light')

    def test_has_upvoted(self):
        self.assertFalse(has_upvoted(self.first, self.student))

        toggle_upvote(self.first.id, self.student)

        self.assertTrue(has_upvoted(self.first, self.student))
        self.assertFalse(has_upvoted(self.second, self.student))

    def test_upvoted_report_ids(self):
        toggle_upvote(self.first.id, self.student)
        toggle_upvote(self.second.id, self.student)

        self.assertEqual(upvoted_report_ids(self.student), {self.first.id, self.second.id})
        only_first = Report.objects.filter(pk=self.first.pk)
        self.assertEqual(upvoted_report_ids(self.student, only_first), {self.first.id})


class RecountUpvotesCommandTests(CampusFixTestMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.student = self.make_student()
        self.report = self.make_report(self.student)
        toggle_upvote(self.report.id, self.student)
        Report.all_objects.filter(pk=self.report.pk).update(upvotes_count=5)

    def run_command(self, *args):
        out = StringIO()
        call_command('recount_upvotes', *args, stdout=out)
        return out.getvalue()

    def test_dry_run_only_reports_drift(self):
        output = self.run_command('--dry-run')

        self.assertIn('Drifted: 1, Repaired: 0', output)
        self.report.refresh_from_db()
        self.assertEqual(self.report.upvotes_count, 5)

    def test_repairs_drift(self):
        output = self.run_command()

        self.assertIn('Checked: 1, Drifted: 1, Repaired: 1', output)
        self.report.refresh_from_db()
        self.assertEqual(self.report.upvotes_count, 1)
        log = AuditLog.objects.get(event_type=AuditEventType.REPORT_UPVOTES_RECOUNTED)
        self.assertEqual(log.metadata, {'previous': 5, 'actual': 1})

        self.assertIn('Drifted: 0', self.run_command())
