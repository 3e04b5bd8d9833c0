"""
Serializers for CampusFix Reports.

Handles:
- Report creation (students)
- Role-shaped report output: students never see the staff notes,
  the conversation or the assignment note
- Lifecycle action payloads
- Conversation entries and resolver candidates
"""

from rest_framework import serializers

from authentication.models import UserRole
from .models import REQUEST_ID_MAX_LENGTH, Report, ReportPriority
from .services import create_report
from .upvotes import has_upvoted


class StatusNoteEntrySerializer(serializers.Serializer):
    """Read-only view of a StatusNoteEntry."""

    sequence = serializers.IntegerField()
    status = serializers.CharField()
    note = serializers.CharField()
    author_id = serializers.UUIDField()
    author_name = serializers.CharField()
    created_at = serializers.DateTimeField()


class ConversationEntrySerializer(serializers.Serializer):
    """Read-only view of a ConversationEntry."""

    sequence = serializers.IntegerField()
    sender_role = serializers.CharField()
    sender_id = serializers.UUIDField()
    sender_name = serializers.CharField()
    sender_image = serializers.CharField()
    message = serializers.CharField()
    created_at = serializers.DateTimeField()


class ReportSerializer(serializers.ModelSerializer):
    """
    Report as shown to students and on the campus feed.

    ``has_upvoted`` uses the ``upvoted_ids`` set from the context when the
    view provides one, and falls back to a lookup per report.
    """

    location = serializers.DictField(read_only=True)
    has_upvoted = serializers.SerializerMethodField()

    class Meta:
        model = Report
        fields = [
            'id',
            'title',
            'description',
            'location',
            'photo',
            'priority',
            'status',
            'submitter_student_id',
            'submitter_name',
            'assignee_name',
            'upvotes_count',
            'has_upvoted',
            'rejection_note',
            'created_at',
            'updated_at',
            'completed_at',
            'rejected_at',
        ]
        read_only_fields = fields

    def get_has_upvoted(self, obj):
        upvoted_ids = self.context.get('upvoted_ids')
        if upvoted_ids is not None:
            return obj.id in upvoted_ids

        request = self.context.get('request')
        if request is None or not request.user.is_authenticated:
            return False
        return has_upvoted(obj, request.user)


class StaffReportSerializer(ReportSerializer):
    """Report as shown to staff and admins, with both logs."""

    assignee_staff_id = serializers.CharField(source='assignee.staff_id', read_only=True, default=None)
    status_notes = StatusNoteEntrySerializer(many=True, read_only=True)
    conversation = ConversationEntrySerializer(source='conversation_notes', many=True, read_only=True)

    class Meta(ReportSerializer.Meta):
        fields = ReportSerializer.Meta.fields + [
            'assignee_staff_id',
            'assigned_at',
            'was_ever_assigned',
            'assignment_note',
            'status_notes',
            'conversation',
        ]
        read_only_fields = fields


class StaffReportListSerializer(ReportSerializer):
    """Staff/admin listing: assignment fields without the logs."""

    assignee_staff_id = serializers.CharField(source='assignee.staff_id', read_only=True, default=None)

    class Meta(ReportSerializer.Meta):
        fields = ReportSerializer.Meta.fields + [
            'assignee_staff_id',
            'assigned_at',
            'was_ever_assigned',
            'assignment_note',
        ]
        read_only_fields = fields


def report_serializer_for(user, detail=False):
    """Serializer class matching the viewer's role."""
    if user.role in UserRole.STAFF_ROLES:
        return StaffReportSerializer if detail else StaffReportListSerializer
    return ReportSerializer


class ReportCreateSerializer(serializers.Serializer):
    """
    Input for a new report.

    ``photo`` is a URL already in the media store; ``photo_file`` is an
    upload stored by the media store. Either may be given.
    """

    title = serializers.CharField(max_length=200)
    description = serializers.CharField()
    building = serializers.CharField(max_length=120)
    room = serializers.CharField(max_length=60, required=False, allow_blank=True, default='')
    priority = serializers.ChoiceField(choices=ReportPriority.CHOICES, default=ReportPriority.MEDIUM)
    photo = serializers.URLField(max_length=500, required=False, allow_blank=True, default='')
    photo_file = serializers.FileField(required=False, write_only=True)

    def create(self, validated_data):
        request = self.context.get('request')
        return create_report(
            actor=request.user,
            title=validated_data['title'],
            description=validated_data['description'],
            building=validated_data['building'],
            room=validated_data.get('room', ''),
            priority=validated_data.get('priority', ReportPriority.MEDIUM),
            photo=validated_data.get('photo', ''),
            photo_file=validated_data.get('photo_file'),
            request=request,
        )


class AssignReportSerializer(serializers.Serializer):
    staff_id = serializers.CharField(required=False, allow_blank=True, default='')
    note = serializers.CharField(required=False, allow_blank=True, default='')


class StatusNoteInputSerializer(serializers.Serializer):
    """Note sent with start, complete and reject; emptiness is checked by the lifecycle."""

    note = serializers.CharField(required=False, allow_blank=True, default='')


class ConversationMessageSerializer(serializers.Serializer):
    message = serializers.CharField(allow_blank=True)
    sender_role = serializers.ChoiceField(choices=UserRole.CHOICES, required=False)
    request_id = serializers.CharField(max_length=REQUEST_ID_MAX_LENGTH, required=False, allow_blank=True)


class UpvoteSerializer(serializers.Serializer):
    request_id = serializers.CharField(max_length=REQUEST_ID_MAX_LENGTH, required=False, allow_blank=True)


class ResolverCandidateSerializer(serializers.Serializer):
    """A staff member offered for assignment, with their current load."""

    id = serializers.UUIDField(source='user.id')
    staff_id = serializers.CharField(source='user.staff_id')
    name = serializers.CharField(source='user.name')
    profile_image = serializers.CharField(source='user.profile_image')
    load = serializers.IntegerField()
