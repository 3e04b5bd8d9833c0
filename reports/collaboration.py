"""
Collaboration log for reports.

Two append-only sequences hang off every report:
- status notes, written by the lifecycle together with a transition
- conversation notes, a private thread between the assigned staff
  member and admins

Appends never read-modify-write a client copy of the log. The next
sequence number is computed in the database while the report row is
locked, so concurrent appenders are serialized and no entry is lost or
reordered. Students never see either log.
"""

import logging
from django.conf import settings
from django.db import transaction
from django.db.models import Max

from core import exceptions as errors
from authentication.models import UserRole
from audit.models import AuditLog, AuditEventType
from .models import ConversationNote, StatusNote, clean_request_id, get_report

logger = logging.getLogger('campusfix.reports')


def _next_sequence(entries):
    """Next position in a report's log. Caller holds the report row lock."""
    highest = entries.aggregate(highest=Max('sequence'))['highest']
    return (highest or 0) + 1


def append_status_note(report, status, note, author):
    """
    Append a status note. Only called by the lifecycle, inside its
    transaction, with ``report`` already locked.
    """
    return StatusNote.objects.create(
        report=report,
        sequence=_next_sequence(report.status_entries.all()),
        status=status,
        note=note,
        author=author,
        author_name=author.name,
    )


def _check_can_read_logs(report, viewer):
    if viewer.role == UserRole.COORDINATOR:
        return
    if viewer.role == UserRole.RESOLVER and report.assignee_id == viewer.id:
        return
    raise errors.Unauthorized("You do not have access to this report's staff notes.")


def append_conversation_message(report_id, actor, message, sender_role=None,
                                request_id=None, request=None):
    """
    Append a message to the staff/admin conversation of a report.

    Args:
        report_id: Report to post on
        actor: The assigned staff member or any admin
        message: Text, trimmed, 1 to CONVERSATION_MESSAGE_MAX_LENGTH chars
        sender_role: Role the client tagged the message with; must be
            the actor's own role
        request_id: Client-generated id; a repeated delivery by the same
            sender returns the entry already stored instead of appending
            again. The id of another sender's entry is a ValidationError.

    Returns:
        ConversationNote: the stored entry
    """
    max_length = settings.CONVERSATION_MESSAGE_MAX_LENGTH

    with transaction.atomic():
        report = get_report(report_id, for_update=True)

        if actor.role not in UserRole.STAFF_ROLES:
            raise errors.Unauthorized("Only staff and admins can post to the conversation.")

        if sender_role and sender_role != actor.role:
            raise errors.Unauthorized("You cannot post as a role you do not hold.")

        if actor.role == UserRole.RESOLVER and report.assignee_id != actor.id:
            raise errors.Unauthorized("Only the assigned staff member can post to this conversation.")

        message = (message or '').strip()
        if not message:
            raise errors.ValidationError("Message cannot be empty.")
        if len(message) > max_length:
            raise errors.ValidationError(f"Message cannot be longer than {max_length} characters.")

        request_id = clean_request_id(request_id)
        if request_id:
            duplicate = report.conversation_entries.filter(request_id=request_id).first()
            if duplicate is not None:
                if duplicate.sender_id != actor.id:
                    raise errors.ValidationError("This request id was already used by another sender.")
                logger.info(f"[Conversation] duplicate delivery {request_id} on {report.id}")
                return duplicate

        if report.assignee_id is None:
            raise errors.InvalidState("The conversation opens once the report is assigned.")

        if report.is_terminal:
            raise errors.Locked("The conversation is closed for this report.")

        entry = ConversationNote.objects.create(
            report=report,
            sequence=_next_sequence(report.conversation_entries.all()),
            sender_role=actor.role,
            sender=actor,
            sender_name=actor.name,
            sender_image=actor.profile_image,
            message=message,
            request_id=request_id or '',
        )

        # Bump updated_at so activity counts and conversation refresh see it
        report.save(update_fields=['updated_at'])

        AuditLog.log(
            event_type=AuditEventType.REPORT_MESSAGE_POSTED,
            actor=actor,
            target=report,
            request=request,
            description="Conversation message posted",
            metadata={'sequence': entry.sequence}
        )

    logger.info(f"[Conversation] #{entry.sequence} on {report.id} by {actor.role} {actor.staff_id}")
    return entry


def status_notes_for(report, viewer):
    """Status notes of ``report`` as seen by ``viewer``."""
    _check_can_read_logs(report, viewer)
    return report.status_notes


def conversation_for(report, viewer, after=None):
    """
    Conversation of ``report`` as seen by ``viewer``.

    With ``after``, only entries with a larger sequence are returned,
    for refreshing an open conversation.
    """
    _check_can_read_logs(report, viewer)

    entries = report.conversation_entries.order_by('sequence')
    if after is not None:
        entries = entries.filter(sequence__gt=after)

    return tuple(entry.as_entry() for entry in entries)
