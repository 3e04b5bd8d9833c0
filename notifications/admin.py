"""Admin configuration for notifications models."""

from django.contrib import admin

from .models import ActivityCheckpoint


@admin.register(ActivityCheckpoint)
class ActivityCheckpointAdmin(admin.ModelAdmin):
    list_display = ['user', 'last_seen_at', 'updated_at']
    search_fields = ['user__name', 'user__student_id', 'user__staff_id']
    readonly_fields = ['id', 'user', 'last_seen_at', 'created_at', 'updated_at']

    def has_add_permission(self, request):
        return False
