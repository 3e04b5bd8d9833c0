"""
Admin configuration for reports models.

Design principles:
- READ-ONLY everywhere: status changes go through the lifecycle services
  so every transition is locked, checked and audited
- Status notes and conversation shown inline on the report
"""

from django.contrib import admin

from .models import Report, StatusNote, ConversationNote, Upvote, OperationReceipt


class ReadOnlyAdminMixin:
    """Disallow add, change and delete from the admin site."""

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


class StatusNoteInline(ReadOnlyAdminMixin, admin.TabularInline):
    model = StatusNote
    extra = 0
    fields = ['sequence', 'status', 'note', 'author_name', 'created_at']
    readonly_fields = fields
    ordering = ['sequence']


class ConversationNoteInline(ReadOnlyAdminMixin, admin.TabularInline):
    model = ConversationNote
    extra = 0
    fields = ['sequence', 'sender_role', 'sender_name', 'message', 'created_at']
    readonly_fields = fields
    ordering = ['sequence']


@admin.register(Report)
class ReportAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """Admin for reports - read only."""

    list_display = ['title', 'status', 'priority', 'building', 'submitter_name',
                    'assignee_name', 'upvotes_count', 'created_at']
    list_filter = ['status', 'priority', 'was_ever_assigned', 'created_at']
    search_fields = ['title', 'description', 'building', 'room',
                     'submitter_student_id', 'submitter_name', 'assignee_name']
    ordering = ['-created_at']
    inlines = [StatusNoteInline, ConversationNoteInline]

    readonly_fields = [
        'id', 'title', 'description', 'building', 'room', 'photo', 'priority', 'status',
        'submitted_by', 'submitter_student_id', 'submitter_name',
        'assignee', 'assignee_name', 'assigned_at', 'was_ever_assigned', 'assignment_note',
        'upvotes_count', 'rejection_note', 'completed_at', 'rejected_at',
        'created_at', 'updated_at',
    ]

    fieldsets = (
        ('Report', {
            'fields': ('id', 'title', 'description', 'photo', 'priority', 'status'),
        }),
        ('Location', {
            'fields': ('building', 'room'),
        }),
        ('Submitter', {
            'fields': ('submitted_by', 'submitter_student_id', 'submitter_name'),
        }),
        ('Assignment', {
            'fields': ('assignee', 'assignee_name', 'assigned_at', 'was_ever_assigned', 'assignment_note'),
        }),
        ('Outcome', {
            'fields': ('upvotes_count', 'rejection_note', 'completed_at', 'rejected_at'),
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )


@admin.register(Upvote)
class UpvoteAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = ['report', 'user', 'created_at']
    search_fields = ['report__title', 'user__name', 'user__student_id']
    readonly_fields = ['id', 'report', 'user', 'created_at']


@admin.register(OperationReceipt)
class OperationReceiptAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = ['request_id', 'operation', 'actor', 'report', 'created_at']
    list_filter = ['operation']
    search_fields = ['request_id']
    readonly_fields = ['id', 'request_id', 'operation', 'actor', 'report', 'response', 'created_at']
