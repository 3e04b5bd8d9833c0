"""
Notification models for CampusFix Backend.

Provides:
- ActivityCheckpoint: the moment a user last opened their activity view

A report counts as unseen activity for a user when it is relevant to
them and its updated_at is strictly after their checkpoint.
"""

from datetime import datetime, timezone as dt_timezone

from django.conf import settings
from django.db import models

from core.models import BaseModel

# Checkpoint of a user who never opened the activity view
EPOCH = datetime(1970, 1, 1, tzinfo=dt_timezone.utc)


def epoch():
    return EPOCH


class ActivityCheckpoint(BaseModel):
    """
    Per-user "last seen" marker for report activity.

    Created on first check with the epoch as value; moved forward only
    by ActivityService.mark_seen.
    """

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='activity_checkpoint',
        help_text="User this checkpoint belongs to"
    )

    last_seen_at = models.DateTimeField(
        default=epoch,
        help_text="When the user last opened their activity view"
    )

    class Meta:
        db_table = 'activity_checkpoints'
        verbose_name = 'Activity Checkpoint'
        verbose_name_plural = 'Activity Checkpoints'

    def __str__(self):
        return f"[{self.user_id}] seen {self.last_seen_at.isoformat()}"
