"""
Management command to verify report upvote counters.

Usage:
    python manage.py recount_upvotes
    python manage.py recount_upvotes --dry-run

For every report, compares upvotes_count with the number of Upvote rows
and, unless --dry-run is given, repairs drift with the report row locked.
"""

import logging

from django.core.management.base import BaseCommand
from django.db import transaction
from django.db.models import Count

from audit.models import AuditLog, AuditEventType
from reports.models import Report

logger = logging.getLogger('campusfix.reports')


class Command(BaseCommand):
    help = 'Check upvotes_count against Upvote rows and repair drift'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Only report drift, do not repair it',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        checked = 0
        drifted = 0
        repaired = 0

        counts = (
            Report.all_objects
            .annotate(actual=Count('upvotes'))
            .values_list('id', 'upvotes_count', 'actual')
        )

        for report_id, stored, actual in list(counts):
            checked += 1
            if stored == actual:
                continue

            drifted += 1
            self.stdout.write(self.style.WARNING(
                f'  Drift: {report_id} stored={stored} actual={actual}'
            ))
            if dry_run:
                continue

            if self._repair(report_id):
                repaired += 1

        self.stdout.write('')
        self.stdout.write(self.style.SUCCESS(
            f'Done! Checked: {checked}, Drifted: {drifted}, Repaired: {repaired}'
        ))

    def _repair(self, report_id):
        """Recount under the row lock; returns True when the counter changed."""
        with transaction.atomic():
            report = Report.all_objects.select_for_update().get(pk=report_id)
            actual = report.upvotes.count()
            if report.upvotes_count == actual:
                return False

            previous = report.upvotes_count
            # Queryset update leaves updated_at untouched
            Report.all_objects.filter(pk=report_id).update(upvotes_count=actual)

            AuditLog.log(
                event_type=AuditEventType.REPORT_UPVOTES_RECOUNTED,
                target=report,
                description="Upvote counter repaired",
                metadata={'previous': previous, 'actual': actual}
            )

        logger.warning(f"[Upvote] recounted {report_id}: {previous} -> {actual}")
        return True
