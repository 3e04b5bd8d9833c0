"""
Admin configuration for audit models.

Note: Audit logs are read-only in admin.
"""

from django.contrib import admin

from .models import AuditLog


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    """Admin for audit logs - read only."""

    list_display = ['event_type', 'actor_identifier', 'target_type', 'target_id', 'success', 'timestamp']
    list_filter = ['event_type', 'severity', 'success', 'timestamp']
    search_fields = ['actor_identifier', 'target_id', 'ip_address', 'description']
    readonly_fields = ['id', 'timestamp', 'event_type', 'severity', 'actor_id', 'actor_role',
                       'actor_identifier', 'target_type', 'target_id', 'ip_address',
                       'user_agent', 'request_method', 'request_path',
                       'description', 'metadata', 'success']

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
