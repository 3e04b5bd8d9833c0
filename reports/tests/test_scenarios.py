"""End-to-end report journeys through the service layer."""

import os
import shutil
import tempfile
from unittest import mock

from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, override_settings

from core import exceptions as errors
from authentication.models import UserRole
from reports import services
from reports.models import Report, ReportPriority, ReportStatus
from .helpers import CampusFixTestMixin


class ReportJourneyTests(CampusFixTestMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.student = self.make_student()
        self.neighbour = self.make_student(student_id='22235100002', name='Kiran')
        self.staff = self.make_staff()
        self.admin = self.make_admin()

    def test_urgent_report_is_fixed(self):
        report = services.create_report(
            self.student,
            title='Water leak',
            description='Water dripping from the ceiling onto the desks.',
            building='Library',
            room='2F',
            priority=ReportPriority.URGENT,
        )
        self.assertEqual(services.toggle_upvote(report.id, self.neighbour).upvotes_count, 1)

        ranked = services.rank_resolvers()
        self.assertEqual(ranked[0].user, self.staff)
        report = services.assign_report(report.id, self.admin, ranked[0].user.staff_id, note='check by EOD')
        self.assertEqual(report.status, ReportStatus.IN_PROGRESS)
        self.assertIn(report, services.list_reports_for(self.staff))

        services.append_conversation_message(report.id, self.staff, 'on it', sender_role=UserRole.RESOLVER)
        report = services.complete_report(report.id, self.staff, 'fixed')

        self.assertEqual(report.status, ReportStatus.COMPLETED)
        self.assertEqual([n.note for n in services.status_notes_for(report, self.admin)], ['fixed'])
        self.assertEqual([e.message for e in services.conversation_for(report, self.admin)], ['on it'])
        with self.assertRaises(errors.Locked):
            services.toggle_upvote(report.id, self.neighbour)
        with self.assertRaises(errors.Locked):
            services.append_conversation_message(report.id, self.admin, 'thanks')

        report.refresh_from_db()
        self.assertEqual(report.upvotes_count, 1)
        self.assertIn(report, services.campus_feed())

    def test_duplicate_report_is_rejected(self):
        report = self.make_report(self.student, title='Broken projector again')

        with self.assertRaises(errors.ValidationError):
            services.reject_report(report.id, self.admin, '')

        services.reject_report(report.id, self.admin, 'duplicate')

        self.assertNotIn(report, services.campus_feed())
        self.assertIn(report, services.list_reports_for(self.student))
        self.assertNotIn(report, services.visible_reports_for_user(self.neighbour))
        with self.assertRaises(errors.InvalidState):
            services.assign_report(report.id, self.admin, self.staff.staff_id)

    def test_deleted_report_is_kept_but_hidden(self):
        report = self.make_report(self.student)

        report.delete()

        self.assertNotIn(report, services.campus_feed())
        self.assertNotIn(report, services.list_reports_for(self.admin))
        self.assertTrue(Report.all_objects.get(pk=report.pk).is_deleted)
        with self.assertRaises(errors.NotFound):
            services.toggle_upvote(report.id, self.neighbour)

        report.restore()
        self.assertIn(report, services.campus_feed())

    def test_list_filters(self):
        urgent = self.make_report(self.student, title='Gas smell', priority=ReportPriority.URGENT)
        low = self.make_report(self.student, title='Squeaky door', priority=ReportPriority.LOW)
        services.reject_report(low.id, self.admin, 'not a facilities issue')
        Report.all_objects.filter(pk=urgent.pk).update(status=ReportStatus.LEGACY_COMPLETED)

        self.assertEqual(
            list(services.list_reports_for(self.admin, status=ReportStatus.COMPLETED)),
            [urgent],
        )
        self.assertEqual(
            list(services.list_reports_for(self.admin, status='resolved')),
            [urgent],
        )
        self.assertEqual(
            list(services.list_reports_for(self.admin, priority=ReportPriority.LOW)),
            [low],
        )
        self.assertEqual(list(services.list_reports_for(self.neighbour)), [])


class CreateReportTests(CampusFixTestMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.student = self.make_student()

    def test_only_students_submit(self):
        for actor in [self.make_staff(), self.make_admin()]:
            with self.subTest(role=actor.role):
                with self.assertRaises(errors.Unauthorized):
                    self.make_report(actor)

    def test_required_fields(self):
        for field in ['title', 'description', 'building']:
            with self.subTest(field=field):
                with self.assertRaises(errors.ValidationError):
                    self.make_report(self.student, **{field: '   '})

    def test_room_is_optional(self):
        report = self.make_report(self.student, room='')

        self.assertEqual(report.location, {'building': 'Block A', 'room': ''})

    def test_title_length(self):
        with self.assertRaises(errors.ValidationError):
            self.make_report(self.student, title='x' * 201)

    def test_unknown_priority(self):
        with self.assertRaises(errors.ValidationError):
            self.make_report(self.student, priority='critical')

    def test_submitter_snapshot(self):
        report = self.make_report(self.student, title='  Broken projector  ')

        self.assertEqual(report.title, 'Broken projector')
        self.assertEqual(report.submitted_by, self.student)
        self.assertEqual(report.submitter_student_id, self.student.student_id)
        self.assertEqual(report.submitter_name, self.student.name)
        self.assertEqual(report.priority, ReportPriority.MEDIUM)


class CreateReportPhotoTests(CampusFixTestMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.media_root = tempfile.mkdtemp()
        self.settings_override = override_settings(MEDIA_ROOT=self.media_root)
        self.settings_override.enable()
        self.student = self.make_student()

    def tearDown(self):
        self.settings_override.disable()
        shutil.rmtree(self.media_root, ignore_errors=True)
        super().tearDown()

    def photo(self):
        return SimpleUploadedFile('window.jpg', b'\xff\xd8\xff\xe0 photo', content_type='image/jpeg')

    def stored_photos(self):
        folder = os.path.join(self.media_root, 'report_photos')
        return os.listdir(folder) if os.path.isdir(folder) else []

    def test_photo_is_kept_with_the_report(self):
        report = self.make_report(self.student, photo_file=self.photo())

        self.assertEqual(len(self.stored_photos()), 1)
        self.assertTrue(report.photo.endswith(self.stored_photos()[0]))

    def test_photo_is_removed_when_the_report_is_not_saved(self):
        with mock.patch('reports.services.AuditLog.log', side_effect=RuntimeError('audit store down')):
            with self.assertRaises(RuntimeError):
                self.make_report(self.student, photo_file=self.photo())

        self.assertEqual(Report.objects.count(), 0)
        self.assertEqual(self.stored_photos(), [])
