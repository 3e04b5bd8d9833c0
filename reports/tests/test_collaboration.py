from datetime import timedelta

from django.test import TestCase, override_settings
from django.utils import timezone

from core import exceptions as errors
from authentication.models import UserRole
from reports.collaboration import append_conversation_message, conversation_for, status_notes_for
from reports.lifecycle import complete_report, reject_report
from reports.models import ConversationNote, Report
from .helpers import CampusFixTestMixin


class ConversationTests(CampusFixTestMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.student = self.make_student()
        self.staff = self.make_staff()
        self.admin = self.make_admin()
        self.report = self.in_progress_report(self.student, self.staff)

    def test_assignee_and_admin_take_turns(self):
        append_conversation_message(self.report.id, self.staff, 'on it', sender_role=UserRole.RESOLVER)
        append_conversation_message(self.report.id, self.admin, 'thanks')

        entries = conversation_for(self.report, self.admin)

        self.assertEqual([e.sequence for e in entries], [1, 2])
        self.assertEqual([e.message for e in entries], ['on it', 'thanks'])
        self.assertEqual([e.sender_role for e in entries], [UserRole.RESOLVER, UserRole.COORDINATOR])
        self.assertEqual(entries[0].sender_name, self.staff.name)

    def test_message_is_trimmed(self):
        entry = append_conversation_message(self.report.id, self.staff, '   on it  ')

        self.assertEqual(entry.message, 'on it')

    def test_message_bounds(self):
        for message in ['', '   ', 'x' * 501]:
            with self.subTest(length=len(message)):
                with self.assertRaises(errors.ValidationError):
                    append_conversation_message(self.report.id, self.staff, message)

        entry = append_conversation_message(self.report.id, self.staff, 'x' * 500)
        self.assertEqual(len(entry.message), 500)

    @override_settings(CONVERSATION_MESSAGE_MAX_LENGTH=10)
    def test_message_limit_follows_settings(self):
        with self.assertRaises(errors.ValidationError):
            append_conversation_message(self.report.id, self.staff, 'eleven char')

    def test_sender_role_must_match_actor(self):
        with self.assertRaises(errors.Unauthorized):
            append_conversation_message(self.report.id, self.staff, 'on it', sender_role=UserRole.COORDINATOR)

    def test_student_cannot_post(self):
        with self.assertRaises(errors.Unauthorized):
            append_conversation_message(self.report.id, self.student, 'any news?')

    def test_staff_not_assigned_cannot_post(self):
        other = self.make_staff(name='Arjun')

        with self.assertRaises(errors.Unauthorized):
            append_conversation_message(self.report.id, other, 'on it')

    def test_unassigned_report_has_no_conversation(self):
        pending = self.make_report(self.student, title='Wobbly bench')

        with self.assertRaises(errors.InvalidState):
            append_conversation_message(pending.id, self.admin, 'who takes this?')

    def test_terminal_report_is_locked(self):
        complete_report(self.report.id, self.staff, 'fixed')

        with self.assertRaises(errors.Locked):
            append_conversation_message(self.report.id, self.admin, 'great')

    def test_rejected_report_without_assignee(self):
        pending = self.make_report(self.student, title='Wobbly bench')
        reject_report(pending.id, self.admin, 'duplicate')

        with self.assertRaises(errors.InvalidState):
            append_conversation_message(pending.id, self.admin, 'closing')

    def test_duplicate_delivery_is_dropped(self):
        first = append_conversation_message(self.report.id, self.staff, 'on it', request_id='req-1')
        second = append_conversation_message(self.report.id, self.staff, 'on it', request_id='req-1')

        self.assertEqual(first.pk, second.pk)
        self.assertEqual(ConversationNote.objects.filter(report=self.report).count(), 1)

    def test_request_id_of_another_sender_is_refused(self):
        append_conversation_message(self.report.id, self.staff, 'on it', request_id='req-1')

        with self.assertRaises(errors.ValidationError):
            append_conversation_message(self.report.id, self.admin, 'please hurry', request_id='req-1')

        entries = list(conversation_for(self.report, self.admin))
        self.assertEqual([e.message for e in entries], ['on it'])
        self.assertEqual(entries[0].sender_id, self.staff.id)

    def test_request_id_too_long(self):
        with self.assertRaises(errors.ValidationError):
            append_conversation_message(self.report.id, self.staff, 'on it', request_id='m' * 65)

        self.assertFalse(ConversationNote.objects.filter(report=self.report).exists())

    def test_post_bumps_updated_at(self):
        earlier = timezone.now() - timedelta(hours=1)
        Report.all_objects.filter(pk=self.report.pk).update(updated_at=earlier)

        append_conversation_message(self.report.id, self.admin, 'status?')

        self.report.refresh_from_db()
        self.assertGreater(self.report.updated_at, earlier)

    def test_refresh_after_sequence(self):
        for text in ['one', 'two', 'three']:
            append_conversation_message(self.report.id, self.staff, text)

        newer = conversation_for(self.report, self.staff, after=1)

        self.assertEqual([e.message for e in newer], ['two', 'three'])
        self.assertEqual(conversation_for(self.report, self.staff, after=3), ())

    def test_interleaved_appenders_keep_every_entry(self):
        appenders = [self.staff, self.admin, self.make_admin(name='Second Admin')]
        rounds = 5

        for i in range(rounds):
            for actor in appenders:
                append_conversation_message(self.report.id, actor, f'{actor.name} #{i}')

        entries = Report.objects.get(pk=self.report.pk).conversation_notes
        self.assertEqual(len(entries), len(appenders) * rounds)
        self.assertEqual([e.sequence for e in entries], list(range(1, len(appenders) * rounds + 1)))
        for actor in appenders:
            own = [e.message for e in entries if e.sender_id == actor.id]
            self.assertEqual(own, [f'{actor.name} #{i}' for i in range(rounds)])

    def test_entries_are_append_only(self):
        entry = append_conversation_message(self.report.id, self.staff, 'on it')

        entry.message = 'edited'
        with self.assertRaises(PermissionError):
            entry.save()
        with self.assertRaises(PermissionError):
            ConversationNote.objects.filter(pk=entry.pk).delete()


class LogVisibilityTests(CampusFixTestMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.student = self.make_student()
        self.staff = self.make_staff()
        self.admin = self.make_admin()
        self.report = self.in_progress_report(self.student, self.staff)
        append_conversation_message(self.report.id, self.staff, 'on it')

    def test_students_never_see_the_logs(self):
        with self.assertRaises(errors.Unauthorized):
            conversation_for(self.report, self.student)
        with self.assertRaises(errors.Unauthorized):
            status_notes_for(self.report, self.student)

    def test_other_staff_cannot_read(self):
        other = self.make_staff(name='Arjun')

        with self.assertRaises(errors.Unauthorized):
            conversation_for(self.report, other)

    def test_assignee_and_admin_read(self):
        self.assertEqual(len(conversation_for(self.report, self.staff)), 1)
        self.assertEqual(len(conversation_for(self.report, self.admin)), 1)
        self.assertEqual(status_notes_for(self.report, self.admin), ())
