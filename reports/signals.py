"""
Signal receivers for reports.

Every saved report is published on the change feed once the surrounding
transaction commits, so subscribers never see a change that rolled back.
"""

from django.db import transaction
from django.db.models.signals import post_save
from django.dispatch import receiver

from .feed import event_for, report_change_feed
from .models import Report


@receiver(post_save, sender=Report, dispatch_uid='reports.publish_report_change')
def publish_report_change(sender, instance, created, **kwargs):
    event = event_for(instance, created=created)
    transaction.on_commit(lambda: report_change_feed.publish(event))
