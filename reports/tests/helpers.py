from django.core.cache import cache

from authentication.models import User, UserRole
from reports.models import Report, ReportStatus
from reports.services import create_report

PASSWORD = 'Campus#2024pass'


class CampusFixTestMixin:
    """Account and report builders shared by the report and activity tests."""

    def setUp(self):
        super().setUp()
        cache.clear()

    def make_student(self, student_id='22235100001', name='Asha Rao'):
        return User.objects.create_submitter(student_id=student_id, password=PASSWORD, name=name)

    def make_staff(self, name='Ravi Kumar', **extra):
        return User.objects.create_staff_member(
            role=UserRole.RESOLVER, password=PASSWORD, name=name, **extra
        )

    def make_admin(self, name='Facilities Admin', **extra):
        return User.objects.create_staff_member(
            role=UserRole.COORDINATOR, password=PASSWORD, name=name, **extra
        )

    def make_report(self, student, **kwargs):
        data = {
            'title': 'Broken projector',
            'description': 'Projector in the lecture hall does not turn on.',
            'building': 'Block A',
            'room': '101',
        }
        data.update(kwargs)
        return create_report(student, **data)

    def set_status(self, report, status, **fields):
        """Write a status directly, bypassing the lifecycle (fixture setup only)."""
        Report.all_objects.filter(pk=report.pk).update(status=status, **fields)
        report.refresh_from_db()
        return report

    def in_progress_report(self, student, staff, **kwargs):
        report = self.make_report(student, **kwargs)
        return self.set_status(
            report,
            ReportStatus.IN_PROGRESS,
            assignee=staff,
            assignee_name=staff.name,
            was_ever_assigned=True,
        )
