"""
Report models for CampusFix Backend.

Contains:
- Report: a facility-issue ticket and its denormalized counters
- StatusNote: append-only notes written at lifecycle transitions
- ConversationNote: append-only private staff/admin messages
- Upvote: one row per (report, user) vote
- OperationReceipt: recorded outcome of a retried write

Lifecycle:
    pending -> in-progress -> completed
    pending -> rejected

Reports are never hard-deleted. Both logs are only ever appended to,
under the report row lock (see reports.collaboration).
"""

import uuid
from collections import namedtuple

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import models
from django.db.models import Q

from core import exceptions as errors
from core.models import BaseModel, SoftDeleteManager
from audit.models import AppendOnlyManager
from authentication.models import UserRole


class ReportStatus:
    """
    Report status constants.

    The legacy value 'resolved' may still be stored by older clients.
    It is read as 'completed' and never written.
    """
    PENDING = 'pending'
    IN_PROGRESS = 'in-progress'
    COMPLETED = 'completed'
    REJECTED = 'rejected'

    LEGACY_COMPLETED = 'resolved'

    CHOICES = [
        (PENDING, 'Pending'),
        (IN_PROGRESS, 'In Progress'),
        (COMPLETED, 'Completed'),
        (REJECTED, 'Rejected'),
    ]

    TERMINAL_STATES = [COMPLETED, REJECTED]

    # The only legal edges
    TRANSITIONS = {
        PENDING: [IN_PROGRESS, REJECTED],
        IN_PROGRESS: [COMPLETED],
        COMPLETED: [],
        REJECTED: [],
    }

    @classmethod
    def normalize(cls, value):
        """
        Translate a stored status into one the engine understands.

        Raises:
            ValidationError: for any value that is not a known status
        """
        if value == cls.LEGACY_COMPLETED:
            return cls.COMPLETED
        if value in cls.TRANSITIONS:
            return value
        raise errors.ValidationError(f"Unrecognised report status '{value}'.")

    @classmethod
    def stored_values(cls, status):
        """Every stored value that reads back as ``status``."""
        if status == cls.COMPLETED:
            return [cls.COMPLETED, cls.LEGACY_COMPLETED]
        return [status]


class ReportPriority:
    """Report priority constants."""
    LOW = 'low'
    MEDIUM = 'medium'
    HIGH = 'high'
    URGENT = 'urgent'

    CHOICES = [
        (LOW, 'Low'),
        (MEDIUM, 'Medium'),
        (HIGH, 'High'),
        (URGENT, 'Urgent'),
    ]


class ReportStatusField(models.CharField):
    """
    CharField that normalizes the stored status on every read, so no
    business logic ever sees the legacy alias.
    """

    def from_db_value(self, value, expression, connection):
        if value is None:
            return value
        return ReportStatus.normalize(value)


REQUEST_ID_MAX_LENGTH = 64

# Read-only views over the two logs
StatusNoteEntry = namedtuple(
    'StatusNoteEntry',
    ['sequence', 'status', 'note', 'author_id', 'author_name', 'created_at']
)
ConversationEntry = namedtuple(
    'ConversationEntry',
    ['sequence', 'sender_role', 'sender_id', 'sender_name', 'sender_image', 'message', 'created_at']
)


class ReportQuerySet(models.QuerySet):
    """Role-scoped report lookups."""

    def with_status(self, status):
        return self.filter(status__in=ReportStatus.stored_values(status))

    def public(self):
        """Reports every student may see on the campus feed."""
        return self.exclude(status=ReportStatus.REJECTED)

    def relevant_to(self, user):
        """
        Reports whose changes matter to ``user``.

        - staff: reports currently assigned to them
        - student: reports they created
        - admin: all reports
        """
        if user.role == UserRole.COORDINATOR:
            return self
        if user.role == UserRole.RESOLVER:
            return self.filter(assignee=user)
        if user.role == UserRole.SUBMITTER:
            return self.filter(submitted_by=user)
        return self.none()

    def visible_to(self, user):
        """Reports ``user`` may open: relevant ones, plus the campus feed for students."""
        if user.role == UserRole.SUBMITTER:
            return self.filter(Q(submitted_by=user) | ~Q(status=ReportStatus.REJECTED))
        return self.relevant_to(user)


ReportManager = SoftDeleteManager.from_queryset(ReportQuerySet)


class Report(BaseModel):
    """
    A facility-issue ticket.

    Invariants kept by the engine:
    - status only moves forward along ReportStatus.TRANSITIONS
    - an in-progress report always has an assignee
    - was_ever_assigned never goes back to False
    - upvotes_count equals the number of Upvote rows
    """

    title = models.CharField(
        max_length=200,
        help_text="Short summary of the issue"
    )

    description = models.TextField(
        help_text="Free-text description of the issue"
    )

    building = models.CharField(
        max_length=120,
        help_text="Building where the issue is"
    )

    room = models.CharField(
        max_length=60,
        blank=True,
        help_text="Room or area inside the building"
    )

    photo = models.URLField(
        max_length=500,
        blank=True,
        help_text="Reference URL of the photo in the media store"
    )

    priority = models.CharField(
        max_length=10,
        choices=ReportPriority.CHOICES,
        default=ReportPriority.MEDIUM,
        db_index=True
    )

    status = ReportStatusField(
        max_length=20,
        choices=ReportStatus.CHOICES,
        default=ReportStatus.PENDING,
        db_index=True
    )

    # Submitter
    submitted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='submitted_reports'
    )

    submitter_student_id = models.CharField(
        max_length=32,
        help_text="Student id of the submitter at creation time"
    )

    submitter_name = models.CharField(
        max_length=150,
        help_text="Display name of the submitter at creation time"
    )

    # Assignment
    assignee = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='assigned_reports'
    )

    assignee_name = models.CharField(
        max_length=150,
        blank=True
    )

    assigned_at = models.DateTimeField(
        null=True,
        blank=True
    )

    was_ever_assigned = models.BooleanField(
        default=False,
        help_text="Set on first assignment and never cleared"
    )

    upvotes_count = models.PositiveIntegerField(
        default=0,
        help_text="Number of Upvote rows; only changed by the upvote toggle"
    )

    rejection_note = models.TextField(
        blank=True,
        help_text="Admin-written reason, shown to the submitter"
    )

    assignment_note = models.TextField(
        blank=True,
        help_text="Admin-written instructions, visible to staff and admins only"
    )

    completed_at = models.DateTimeField(null=True, blank=True)
    rejected_at = models.DateTimeField(null=True, blank=True)

    objects = ReportManager()

    class Meta:
        db_table = 'campus_reports'
        verbose_name = 'Report'
        verbose_name_plural = 'Reports'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['submitted_by', 'created_at'], name='report_submitter_idx'),
            models.Index(fields=['assignee', 'status'], name='report_assignee_idx'),
            models.Index(fields=['status', 'updated_at'], name='report_status_updated_idx'),
        ]

    def __str__(self):
        return f"{self.title} [{self.status}]"

    def save(self, *args, **kwargs):
        """Refuse writes that would break the lifecycle invariants."""
        self._guard_invariants()
        super().save(*args, **kwargs)

    def _guard_invariants(self):
        if self.status == ReportStatus.IN_PROGRESS and self.assignee_id is None:
            raise errors.InvalidState("An in-progress report must have an assignee.")

        if self._state.adding:
            if self.status != ReportStatus.PENDING:
                raise errors.InvalidState("New reports start as pending.")
            return

        stored = (
            Report.all_objects.filter(pk=self.pk)
            .values('status', 'was_ever_assigned')
            .first()
        )
        if stored is None:
            return

        if stored['was_ever_assigned'] and not self.was_ever_assigned:
            raise errors.InvalidState("A report that was assigned cannot be marked unassigned.")

        if stored['status'] != self.status:
            # Local import: lifecycle imports this module
            from .lifecycle import check_transition
            check_transition(stored['status'], self.status)

    @property
    def location(self):
        return {'building': self.building, 'room': self.room}

    @property
    def is_terminal(self):
        return self.status in ReportStatus.TERMINAL_STATES

    @property
    def is_public(self):
        """Visible on the campus feed."""
        return self.status != ReportStatus.REJECTED

    @property
    def status_notes(self):
        """Status notes in append order, as an immutable tuple."""
        return tuple(entry.as_entry() for entry in self.status_entries.order_by('sequence'))

    @property
    def conversation_notes(self):
        """Conversation messages in append order, as an immutable tuple."""
        return tuple(entry.as_entry() for entry in self.conversation_entries.order_by('sequence'))


class AppendOnlyEntry(models.Model):
    """
    Abstract base for per-report log entries.

    Entries are numbered per report; the sequence, not the timestamp,
    is the authoritative order.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False
    )

    sequence = models.PositiveIntegerField(
        help_text="Position in the report's log, starting at 1"
    )

    created_at = models.DateTimeField(
        auto_now_add=True,
        help_text="Informational only; order by sequence"
    )

    objects = AppendOnlyManager()

    class Meta:
        abstract = True
        ordering = ['sequence']

    def save(self, *args, **kwargs):
        """Only allows creation, not updates."""
        if not self._state.adding:
            raise PermissionError(f"{self._meta.verbose_name_plural} are append-only and cannot be updated.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise PermissionError(f"{self._meta.verbose_name_plural} are append-only and cannot be deleted.")


class StatusNote(AppendOnlyEntry):
    """Note written together with a lifecycle transition."""

    report = models.ForeignKey(
        Report,
        on_delete=models.PROTECT,
        related_name='status_entries'
    )

    status = models.CharField(
        max_length=20,
        choices=ReportStatus.CHOICES,
        help_text="Status the report moved to"
    )

    note = models.TextField()

    author = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='+'
    )

    author_name = models.CharField(max_length=150)

    class Meta(AppendOnlyEntry.Meta):
        db_table = 'report_status_notes'
        verbose_name = 'Status Note'
        verbose_name_plural = 'Status Notes'
        constraints = [
            models.UniqueConstraint(fields=['report', 'sequence'], name='unique_status_note_sequence'),
        ]

    def __str__(self):
        return f"#{self.sequence} {self.status}: {self.note[:40]}"

    def as_entry(self):
        return StatusNoteEntry(
            sequence=self.sequence,
            status=self.status,
            note=self.note,
            author_id=self.author_id,
            author_name=self.author_name,
            created_at=self.created_at,
        )


class ConversationNote(AppendOnlyEntry):
    """Private message between the assigned staff member and admins."""

    report = models.ForeignKey(
        Report,
        on_delete=models.PROTECT,
        related_name='conversation_entries'
    )

    sender_role = models.CharField(
        max_length=20,
        choices=[
            (UserRole.RESOLVER, 'Staff'),
            (UserRole.COORDINATOR, 'Admin'),
        ]
    )

    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='+'
    )

    sender_name = models.CharField(max_length=150)

    sender_image = models.URLField(max_length=500, blank=True)

    message = models.CharField(max_length=500)

    request_id = models.CharField(
        max_length=REQUEST_ID_MAX_LENGTH,
        blank=True,
        help_text="Client-generated id used to drop duplicate deliveries"
    )

    class Meta(AppendOnlyEntry.Meta):
        db_table = 'report_conversation_notes'
        verbose_name = 'Conversation Note'
        verbose_name_plural = 'Conversation Notes'
        constraints = [
            models.UniqueConstraint(fields=['report', 'sequence'], name='unique_conversation_sequence'),
            models.UniqueConstraint(
                fields=['report', 'request_id'],
                condition=~Q(request_id=''),
                name='unique_conversation_request_id'
            ),
        ]

    def __str__(self):
        return f"#{self.sequence} {self.sender_name}: {self.message[:40]}"

    def as_entry(self):
        return ConversationEntry(
            sequence=self.sequence,
            sender_role=self.sender_role,
            sender_id=self.sender_id,
            sender_name=self.sender_name,
            sender_image=self.sender_image,
            message=self.message,
            created_at=self.created_at,
        )


class Upvote(models.Model):
    """A student's vote for a report. At most one per (report, user)."""

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False
    )

    report = models.ForeignKey(
        Report,
        on_delete=models.CASCADE,
        related_name='upvotes'
    )

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='upvotes'
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'report_upvotes'
        verbose_name = 'Upvote'
        verbose_name_plural = 'Upvotes'
        constraints = [
            models.UniqueConstraint(fields=['report', 'user'], name='unique_upvote_per_user'),
        ]

    def __str__(self):
        return f"{self.user_id} -> {self.report_id}"


class OperationReceipt(models.Model):
    """
    Recorded outcome of a non-idempotent write.

    A retried request carrying the same request id is answered from the
    receipt instead of repeating the side effect.
    """

    OPERATION_CHOICES = [
        ('toggle_upvote', 'Toggle Upvote'),
        ('append_conversation', 'Append Conversation Message'),
    ]

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False
    )

    request_id = models.CharField(
        max_length=REQUEST_ID_MAX_LENGTH,
        unique=True
    )

    operation = models.CharField(
        max_length=40,
        choices=OPERATION_CHOICES
    )

    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='+'
    )

    report = models.ForeignKey(
        Report,
        on_delete=models.CASCADE,
        related_name='+'
    )

    response = models.JSONField(default=dict)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'report_operation_receipts'
        verbose_name = 'Operation Receipt'
        verbose_name_plural = 'Operation Receipts'

    def __str__(self):
        return f"{self.operation} {self.request_id}"

    def matches(self, operation, actor, report):
        """A receipt only answers the same action by the same actor on the same report."""
        return (
            self.operation == operation
            and self.actor_id == actor.id
            and self.report_id == report.id
        )


def get_report(report_id, for_update=False):
    """
    Fetch a report by id, locking the row when ``for_update`` is set.

    Must be called inside ``transaction.atomic()`` when locking.

    Raises:
        NotFound: if the id is malformed or does not resolve
    """
    queryset = Report.objects.all()
    if for_update:
        queryset = queryset.select_for_update()
    try:
        return queryset.get(pk=report_id)
    except (Report.DoesNotExist, DjangoValidationError, ValueError):
        raise errors.NotFound(f"Report {report_id} not found.")


def clean_request_id(request_id):
    """
    Normalize a client request id: surrounding blanks are dropped and an
    empty value means no id.

    Raises:
        ValidationError: if the id is longer than REQUEST_ID_MAX_LENGTH
    """
    request_id = (request_id or '').strip()
    if len(request_id) > REQUEST_ID_MAX_LENGTH:
        raise errors.ValidationError(
            f"Request id must be at most {REQUEST_ID_MAX_LENGTH} characters."
        )
    return request_id or None
