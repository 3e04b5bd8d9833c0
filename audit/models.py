"""
Audit models for CampusFix Backend.

Implements immutable, append-only audit logging.

Audit logs track:
- Authentication events (login, password change)
- Staff account provisioning
- Report lifecycle actions (create, assign, reject, start, complete)
- Staff/admin conversation messages
- Upvote toggles

Design principles:
- Append-only: No updates or deletes allowed
- Immutable: Records cannot be modified
"""

import uuid
from django.db import models
from django.utils import timezone


class AuditEventType:
    """
    Audit event type constants.
    Categorized by module for easier filtering.
    """

    # Authentication events
    AUTH_LOGIN_SUCCESS = 'auth.login.success'
    AUTH_LOGIN_FAILED = 'auth.login.failed'
    AUTH_TOKEN_REVOKED = 'auth.token.revoked'
    AUTH_PASSWORD_CHANGED = 'auth.password.changed'

    # User management events
    USER_REGISTERED = 'user.registered'
    USER_CREATED = 'user.created'
    USER_UPDATED = 'user.updated'

    # Report events
    REPORT_CREATED = 'report.created'
    REPORT_ASSIGNED = 'report.assigned'
    REPORT_REJECTED = 'report.rejected'
    REPORT_STARTED = 'report.started'
    REPORT_COMPLETED = 'report.completed'
    REPORT_MESSAGE_POSTED = 'report.message.posted'
    REPORT_UPVOTE_TOGGLED = 'report.upvote.toggled'
    REPORT_UPVOTES_RECOUNTED = 'report.upvotes.recounted'

    # System events
    SYSTEM_SECURITY_ALERT = 'system.security.alert'

    CHOICES = [
        # Authentication
        (AUTH_LOGIN_SUCCESS, 'Login Success'),
        (AUTH_LOGIN_FAILED, 'Login Failed'),
        (AUTH_TOKEN_REVOKED, 'Token Revoked'),
        (AUTH_PASSWORD_CHANGED, 'Password Changed'),

        # User Management
        (USER_REGISTERED, 'User Registered'),
        (USER_CREATED, 'User Created'),
        (USER_UPDATED, 'User Updated'),

        # Reports
        (REPORT_CREATED, 'Report Created'),
        (REPORT_ASSIGNED, 'Report Assigned'),
        (REPORT_REJECTED, 'Report Rejected'),
        (REPORT_STARTED, 'Report Started'),
        (REPORT_COMPLETED, 'Report Completed'),
        (REPORT_MESSAGE_POSTED, 'Conversation Message Posted'),
        (REPORT_UPVOTE_TOGGLED, 'Upvote Toggled'),
        (REPORT_UPVOTES_RECOUNTED, 'Upvotes Recounted'),

        # System
        (SYSTEM_SECURITY_ALERT, 'Security Alert'),
    ]


class AuditSeverity:
    """Severity levels for audit events."""
    DEBUG = 'debug'
    INFO = 'info'
    WARNING = 'warning'
    ERROR = 'error'
    CRITICAL = 'critical'

    CHOICES = [
        (DEBUG, 'Debug'),
        (INFO, 'Info'),
        (WARNING, 'Warning'),
        (ERROR, 'Error'),
        (CRITICAL, 'Critical'),
    ]


class AppendOnlyQuerySet(models.QuerySet):
    """
    QuerySet for append-only tables.
    Prevents any modifications to existing records, including
    ``Model.objects.filter(...).update()`` and ``.delete()``.
    """

    def update(self, **kwargs):
        """Prevent bulk updates."""
        raise PermissionError(f"{self.model._meta.verbose_name_plural} are immutable and cannot be updated.")

    def delete(self):
        """Prevent bulk deletes."""
        raise PermissionError(f"{self.model._meta.verbose_name_plural} are immutable and cannot be deleted.")


AppendOnlyManager = models.Manager.from_queryset(AppendOnlyQuerySet)


class AuditLog(models.Model):
    """
    Immutable audit log for all sensitive actions.

    Design principles:
    - UUID primary key
    - No foreign keys (stores IDs as strings for immutability)
    - No update/delete operations allowed

    Does not inherit from BaseModel: audit logs are never soft-deleted.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False
    )

    event_type = models.CharField(
        max_length=50,
        choices=AuditEventType.CHOICES,
        db_index=True,
        help_text="Type of event being logged"
    )

    severity = models.CharField(
        max_length=10,
        choices=AuditSeverity.CHOICES,
        default=AuditSeverity.INFO,
        db_index=True,
        help_text="Severity level of the event"
    )

    timestamp = models.DateTimeField(
        default=timezone.now,
        db_index=True,
        help_text="When the event occurred"
    )

    # Actor information (who performed the action)
    actor_id = models.CharField(
        max_length=36,
        blank=True,
        db_index=True,
        help_text="UUID of user who performed action (as string for immutability)"
    )

    actor_role = models.CharField(
        max_length=20,
        blank=True,
        help_text="Role of actor at time of action"
    )

    actor_identifier = models.CharField(
        max_length=255,
        blank=True,
        help_text="Student id or staff id of actor"
    )

    # Target information (what was acted upon)
    target_type = models.CharField(
        max_length=50,
        blank=True,
        help_text="Type of entity being acted upon"
    )

    target_id = models.CharField(
        max_length=36,
        blank=True,
        db_index=True,
        help_text="UUID of target entity (as string)"
    )

    # Request context
    ip_address = models.GenericIPAddressField(
        null=True,
        blank=True,
        help_text="Client IP address"
    )

    user_agent = models.CharField(
        max_length=500,
        blank=True,
        help_text="Client user agent string"
    )

    request_method = models.CharField(
        max_length=10,
        blank=True,
        help_text="HTTP method"
    )

    request_path = models.CharField(
        max_length=500,
        blank=True,
        help_text="API endpoint path"
    )

    description = models.TextField(
        blank=True,
        help_text="Human-readable description of event"
    )

    metadata = models.JSONField(
        default=dict,
        blank=True,
        help_text="Additional structured data about the event"
    )

    success = models.BooleanField(
        default=True,
        help_text="Whether the action was successful"
    )

    objects = AppendOnlyManager()

    class Meta:
        db_table = 'audit_logs'
        verbose_name = 'Audit Log'
        verbose_name_plural = 'Audit Logs'
        ordering = ['-timestamp']
        indexes = [
            models.Index(fields=['event_type', 'timestamp'], name='audit_event_ts_idx'),
            models.Index(fields=['actor_id', 'timestamp'], name='audit_actor_ts_idx'),
            models.Index(fields=['target_id', 'timestamp'], name='audit_target_ts_idx'),
        ]

    def __str__(self):
        return f"{self.timestamp} | {self.event_type} | {self.actor_identifier or 'system'}"

    def save(self, *args, **kwargs):
        """
        Override save to enforce append-only behavior.
        Only allows creation, not updates.
        """
        if not self._state.adding:
            raise PermissionError("Audit logs are immutable and cannot be updated.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        """Prevent deletion of audit logs."""
        raise PermissionError("Audit logs are immutable and cannot be deleted.")

    @classmethod
    def log(cls, event_type, actor=None, target=None, request=None,
            success=True, description='', metadata=None, severity=None):
        """
        Create an audit log entry.

        Args:
            event_type: One of AuditEventType constants
            actor: User performing the action (or None for system)
            target: Object being acted upon (optional)
            request: Django request object for context
            success: Whether action succeeded
            description: Human-readable description
            metadata: Additional structured data
            severity: Severity level (auto-determined if not provided)
        """
        if severity is None:
            if not success:
                severity = AuditSeverity.ERROR
            elif 'failed' in event_type or 'revoked' in event_type or 'alert' in event_type:
                severity = AuditSeverity.WARNING
            else:
                severity = AuditSeverity.INFO

        actor_id = ''
        actor_role = ''
        actor_identifier = ''

        if actor:
            actor_id = str(actor.id)
            actor_role = actor.role
            actor_identifier = actor.identifier or ''

        target_type = ''
        target_id = ''

        if target:
            target_type = target.__class__.__name__
            target_id = str(target.pk)

        ip_address = None
        user_agent = ''
        request_method = ''
        request_path = ''

        if request:
            ip_address = cls._get_client_ip(request)
            user_agent = request.META.get('HTTP_USER_AGENT', '')[:500]
            request_method = request.method
            request_path = request.path[:500]

        return cls.objects.create(
            event_type=event_type,
            severity=severity,
            actor_id=actor_id,
            actor_role=actor_role,
            actor_identifier=actor_identifier,
            target_type=target_type,
            target_id=target_id,
            ip_address=ip_address,
            user_agent=user_agent,
            request_method=request_method,
            request_path=request_path,
            description=description,
            metadata=metadata or {},
            success=success,
        )

    @staticmethod
    def _get_client_ip(request):
        """Extract client IP from request, handling proxies."""
        x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
        if x_forwarded_for:
            return x_forwarded_for.split(',')[0].strip()
        return request.META.get('REMOTE_ADDR')
