import shutil
import tempfile

from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from reports.models import ConversationNote, OperationReceipt, Report, ReportStatus
from .helpers import CampusFixTestMixin

MEDIA_ROOT = tempfile.mkdtemp()


class ReportApiTestCase(CampusFixTestMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.client = APIClient()
        self.student = self.make_student()
        self.neighbour = self.make_student(student_id='22235100002', name='Kiran')
        self.staff = self.make_staff()
        self.admin = self.make_admin()

    def as_user(self, user):
        self.client.force_authenticate(user=user)
        return self.client

    def url(self, report, action=''):
        base = f'/api/v1/reports/{report.id}/'
        return f'{base}{action}/' if action else base


class ReportListCreateApiTests(ReportApiTestCase):
    def test_student_submits_report(self):
        response = self.as_user(self.student).post('/api/v1/reports/', {
            'title': 'Leaking tap',
            'description': 'Second floor washroom tap does not close.',
            'building': 'Block A',
            'room': '204',
            'priority': 'high',
        }, format='json')

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data['status'], ReportStatus.PENDING)
        self.assertEqual(response.data['location'], {'building': 'Block A', 'room': '204'})
        self.assertEqual(response.data['upvotes_count'], 0)
        self.assertEqual(response.data['submitter_student_id'], self.student.student_id)
        self.assertNotIn('conversation', response.data)

    def test_staff_cannot_submit(self):
        response = self.as_user(self.staff).post('/api/v1/reports/', {
            'title': 'Leaking tap',
            'description': 'Second floor washroom.',
            'building': 'Block A',
        }, format='json')

        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.data['error']['code'], 'UNAUTHORIZED')

    def test_missing_title(self):
        response = self.as_user(self.student).post('/api/v1/reports/', {
            'description': 'Second floor washroom.',
            'building': 'Block A',
        }, format='json')

        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.data['success'])

    def test_listing_is_role_scoped(self):
        mine = self.make_report(self.student, title='Broken projector')
        theirs = self.make_report(self.neighbour, title='Flickering light')
        self.in_progress_report(self.neighbour, self.staff, title='Leaking tap')

        response = self.as_user(self.student).get('/api/v1/reports/')
        self.assertEqual([r['id'] for r in response.data['results']], [str(mine.id)])

        response = self.as_user(self.staff).get('/api/v1/reports/')
        self.assertEqual([r['title'] for r in response.data['results']], ['Leaking tap'])
        self.assertEqual(response.data['results'][0]['assignee_staff_id'], self.staff.staff_id)
        self.assertNotIn('conversation', response.data['results'][0])

        response = self.as_user(self.admin).get('/api/v1/reports/')
        self.assertEqual(response.data['count'], 3)
        self.assertIn(str(theirs.id), [r['id'] for r in response.data['results']])

    def test_status_filter_accepts_legacy_name(self):
        done = self.make_report(self.student, title='Broken projector')
        self.make_report(self.student, title='Flickering light')
        Report.all_objects.filter(pk=done.pk).update(status=ReportStatus.LEGACY_COMPLETED)

        for value in ['completed', 'resolved']:
            with self.subTest(status=value):
                response = self.as_user(self.admin).get('/api/v1/reports/', {'status': value})
                self.assertEqual(response.status_code, 200)
                self.assertEqual([r['id'] for r in response.data['results']], [str(done.id)])
                self.assertEqual(response.data['results'][0]['status'], ReportStatus.COMPLETED)

    def test_priority_filter(self):
        self.make_report(self.student, title='Gas smell', priority='urgent')
        self.make_report(self.student, title='Squeaky door', priority='low')

        response = self.as_user(self.admin).get('/api/v1/reports/', {'priority': 'urgent'})

        self.assertEqual([r['title'] for r in response.data['results']], ['Gas smell'])

    def test_unauthenticated(self):
        response = self.client.get('/api/v1/reports/')

        self.assertEqual(response.status_code, 401)


class CampusFeedApiTests(ReportApiTestCase):
    def test_feed_hides_rejected_and_marks_upvotes(self):
        open_report = self.make_report(self.student, title='Broken projector')
        rejected = self.make_report(self.student, title='Duplicate projector')
        Report.all_objects.filter(pk=rejected.pk).update(status=ReportStatus.REJECTED)
        self.as_user(self.neighbour).post(self.url(open_report, 'upvote'))

        response = self.as_user(self.neighbour).get('/api/v1/reports/campus/')

        self.assertEqual(response.status_code, 200)
        results = response.data['results']
        self.assertEqual([r['id'] for r in results], [str(open_report.id)])
        self.assertTrue(results[0]['has_upvoted'])
        self.assertEqual(results[0]['upvotes_count'], 1)


class ReportDetailApiTests(ReportApiTestCase):
    def setUp(self):
        super().setUp()
        self.report = self.in_progress_report(self.student, self.staff)

    def test_student_view_has_no_staff_fields(self):
        response = self.as_user(self.student).get(self.url(self.report))

        self.assertEqual(response.status_code, 200)
        for field in ['conversation', 'status_notes', 'assignment_note']:
            self.assertNotIn(field, response.data)

    def test_staff_view_has_logs(self):
        self.as_user(self.staff).post(self.url(self.report, 'conversation'), {'message': 'on it'}, format='json')

        response = self.as_user(self.admin).get(self.url(self.report))

        self.assertEqual(response.status_code, 200)
        self.assertEqual([e['message'] for e in response.data['conversation']], ['on it'])
        self.assertEqual(response.data['status_notes'], [])

    def test_other_staff_cannot_open(self):
        response = self.as_user(self.make_staff(name='Arjun')).get(self.url(self.report))

        self.assertEqual(response.status_code, 403)

    def test_rejected_report_hidden_from_other_students(self):
        Report.all_objects.filter(pk=self.report.pk).update(status=ReportStatus.REJECTED, assignee=None)

        self.assertEqual(self.as_user(self.neighbour).get(self.url(self.report)).status_code, 403)
        self.assertEqual(self.as_user(self.student).get(self.url(self.report)).status_code, 200)

    def test_unknown_report(self):
        response = self.as_user(self.admin).get('/api/v1/reports/00000000-0000-0000-0000-000000000000/')

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data['error']['code'], 'NOT_FOUND')


class ReportActionApiTests(ReportApiTestCase):
    def setUp(self):
        super().setUp()
        self.report = self.make_report(self.student)

    def test_resolver_candidates(self):
        self.make_staff(name='Arjun')

        response = self.as_user(self.admin).get('/api/v1/reports/resolvers/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual([c['name'] for c in response.data], ['Arjun', 'Ravi Kumar'])
        self.assertEqual(response.data[0]['load'], 0)

        self.assertEqual(self.as_user(self.staff).get('/api/v1/reports/resolvers/').status_code, 403)

    def test_assign_converse_complete(self):
        response = self.as_user(self.admin).post(self.url(self.report, 'assign'), {
            'staff_id': self.staff.staff_id,
            'note': 'check by EOD',
        }, format='json')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['status'], ReportStatus.IN_PROGRESS)
        self.assertEqual(response.data['assignment_note'], 'check by EOD')

        response = self.as_user(self.staff).post(self.url(self.report, 'conversation'), {
            'message': 'on it',
            'sender_role': 'staff',
        }, format='json')
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data['sequence'], 1)

        response = self.as_user(self.staff).post(self.url(self.report, 'complete'), {'note': 'fixed'}, format='json')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['status'], ReportStatus.COMPLETED)
        self.assertEqual([n['note'] for n in response.data['status_notes']], ['fixed'])

        response = self.as_user(self.neighbour).post(self.url(self.report, 'upvote'))
        self.assertEqual(response.status_code, 423)
        self.assertEqual(response.data['error']['code'], 'LOCKED')

    def test_complete_pending_report_is_a_conflict(self):
        self.set_status(self.report, ReportStatus.PENDING, assignee=self.staff)

        response = self.as_user(self.staff).post(self.url(self.report, 'complete'), {'note': 'fixed'}, format='json')

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.data['error']['code'], 'INVALID_TRANSITION')
        self.assertEqual(response.data['error']['current_status'], ReportStatus.PENDING)
        self.assertEqual(response.data['error']['requested_status'], ReportStatus.COMPLETED)

    def test_start_attached_report(self):
        self.set_status(self.report, ReportStatus.PENDING, assignee=self.staff, assignee_name=self.staff.name)

        response = self.as_user(self.staff).post(self.url(self.report, 'start'), {}, format='json')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['status'], ReportStatus.IN_PROGRESS)

    def test_reject_requires_note(self):
        response = self.as_user(self.admin).post(self.url(self.report, 'reject'), {}, format='json')
        self.assertEqual(response.status_code, 400)

        response = self.as_user(self.admin).post(self.url(self.report, 'reject'), {'note': 'duplicate'}, format='json')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['rejection_note'], 'duplicate')

    def test_student_cannot_assign(self):
        response = self.as_user(self.student).post(self.url(self.report, 'assign'), {
            'staff_id': self.staff.staff_id,
        }, format='json')

        self.assertEqual(response.status_code, 403)

    def test_upvote_retry_with_request_id_header(self):
        client = self.as_user(self.neighbour)

        first = client.post(self.url(self.report, 'upvote'), HTTP_X_REQUEST_ID='tap-42')
        retry = client.post(self.url(self.report, 'upvote'), HTTP_X_REQUEST_ID='tap-42')

        self.assertEqual(first.data, {'upvoted': True, 'upvotes_count': 1})
        self.assertEqual(retry.data, first.data)

        second_tap = client.post(self.url(self.report, 'upvote'), {'request_id': 'tap-43'}, format='json')
        self.assertEqual(second_tap.data, {'upvoted': False, 'upvotes_count': 0})

    def test_upvote_request_id_header_too_long(self):
        response = self.as_user(self.neighbour).post(self.url(self.report, 'upvote'), HTTP_X_REQUEST_ID='t' * 65)

        self.assertEqual(response.status_code, 400)
        self.assertEqual(OperationReceipt.objects.count(), 0)
        self.report.refresh_from_db()
        self.assertEqual(self.report.upvotes_count, 0)

    def test_upvote_request_id_header_is_trimmed(self):
        client = self.as_user(self.neighbour)

        client.post(self.url(self.report, 'upvote'), HTTP_X_REQUEST_ID=' tap-42 ')
        retry = client.post(self.url(self.report, 'upvote'), HTTP_X_REQUEST_ID='tap-42')

        self.assertEqual(retry.data, {'upvoted': True, 'upvotes_count': 1})


class ConversationApiTests(ReportApiTestCase):
    def setUp(self):
        super().setUp()
        self.report = self.in_progress_report(self.student, self.staff)

    def post_message(self, user, message, **extra):
        return self.as_user(user).post(self.url(self.report, 'conversation'), {'message': message}, format='json', **extra)

    def test_refresh_after_sequence(self):
        for text in ['one', 'two', 'three']:
            self.post_message(self.staff, text)

        response = self.as_user(self.admin).get(self.url(self.report, 'conversation'), {'after': 1})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['report_id'], str(self.report.id))
        self.assertEqual([e['message'] for e in response.data['entries']], ['two', 'three'])

    def test_after_must_be_a_number(self):
        response = self.as_user(self.admin).get(self.url(self.report, 'conversation'), {'after': 'latest'})

        self.assertEqual(response.status_code, 400)

    def test_duplicate_delivery(self):
        self.post_message(self.staff, 'on it', HTTP_X_REQUEST_ID='msg-1')
        self.post_message(self.staff, 'on it', HTTP_X_REQUEST_ID='msg-1')

        response = self.as_user(self.admin).get(self.url(self.report, 'conversation'))
        self.assertEqual(len(response.data['entries']), 1)

    def test_request_id_header_too_long(self):
        response = self.post_message(self.staff, 'on it', HTTP_X_REQUEST_ID='m' * 65)

        self.assertEqual(response.status_code, 400)
        self.assertFalse(ConversationNote.objects.exists())

    def test_student_cannot_read_or_post(self):
        self.assertEqual(self.post_message(self.student, 'any news?').status_code, 403)
        self.assertEqual(self.as_user(self.student).get(self.url(self.report, 'conversation')).status_code, 403)

    def test_empty_message(self):
        response = self.post_message(self.staff, '   ')

        self.assertEqual(response.status_code, 400)


@override_settings(MEDIA_ROOT=MEDIA_ROOT)
class PhotoUploadApiTests(ReportApiTestCase):
    @classmethod
    def tearDownClass(cls):
        shutil.rmtree(MEDIA_ROOT, ignore_errors=True)
        super().tearDownClass()

    def submit(self, photo):
        return self.as_user(self.student).post('/api/v1/reports/', {
            'title': 'Cracked window',
            'description': 'Window in the reading room is cracked.',
            'building': 'Library',
            'photo_file': photo,
        }, format='multipart')

    def test_photo_is_stored(self):
        response = self.submit(SimpleUploadedFile('window.jpg', b'\xff\xd8\xff\xe0 photo', content_type='image/jpeg'))

        self.assertEqual(response.status_code, 201)
        self.assertTrue(response.data['photo'].startswith('http://testserver/media/report_photos/'))
        self.assertTrue(response.data['photo'].endswith('.jpg'))

    def test_unsupported_type(self):
        response = self.submit(SimpleUploadedFile('notes.txt', b'not a photo', content_type='text/plain'))

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data['error']['message'], 'File type not allowed: .txt')

    @override_settings(REPORT_PHOTO_MAX_BYTES=8)
    def test_oversized_photo(self):
        response = self.submit(SimpleUploadedFile('window.png', b'0123456789', content_type='image/png'))

        self.assertEqual(response.status_code, 400)
        self.assertEqual(Report.objects.count(), 0)
