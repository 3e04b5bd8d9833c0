"""
Core models for CampusFix Backend.

Every persistent CampusFix record derives from BaseModel:
- UUID primary key
- created/updated timestamps
- soft delete (rows are flagged, never removed)
"""

import uuid
from django.db import models
from django.utils import timezone


class SoftDeleteManager(models.Manager):
    """Default manager: soft-deleted rows are invisible."""

    def get_queryset(self):
        return super().get_queryset().filter(is_deleted=False)


class BaseModel(models.Model):
    """
    Abstract base with UUID key, timestamps and soft delete.

    ``updated_at`` is the last-modified stamp: every ``save()`` bumps it,
    including saves restricted with ``update_fields`` as long as the field
    list names it. ``all_objects`` reaches soft-deleted rows.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False
    )

    created_at = models.DateTimeField(
        auto_now_add=True,
        db_index=True
    )

    updated_at = models.DateTimeField(
        auto_now=True,
        db_index=True,
        help_text="Last modification; drives activity counts"
    )

    is_deleted = models.BooleanField(
        default=False,
        db_index=True
    )

    deleted_at = models.DateTimeField(
        null=True,
        blank=True
    )

    objects = SoftDeleteManager()
    all_objects = models.Manager()

    class Meta:
        abstract = True
        ordering = ['-created_at']

    def delete(self, *args, **kwargs):
        """Flag the row as deleted instead of removing it."""
        self.is_deleted = True
        self.deleted_at = timezone.now()
        self.save(update_fields=['is_deleted', 'deleted_at', 'updated_at'])

    def restore(self):
        self.is_deleted = False
        self.deleted_at = None
        self.save(update_fields=['is_deleted', 'deleted_at', 'updated_at'])
