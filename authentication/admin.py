"""
Admin configuration for authentication models.
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """Custom admin for User model."""

    list_display = ['name', 'role', 'student_id', 'staff_id', 'is_active', 'is_staff', 'created_at']
    list_filter = ['role', 'is_active', 'is_staff', 'created_at']
    search_fields = ['name', 'email', 'student_id', 'staff_id', 'id']
    ordering = ['-created_at']
    readonly_fields = ['id', 'role', 'created_at', 'updated_at', 'last_login', 'password_changed_at']

    fieldsets = (
        (None, {'fields': ('email', 'password')}),
        ('Profile', {'fields': ('name', 'role', 'student_id', 'staff_id', 'profile_image', 'created_by')}),
        ('Permissions', {'fields': ('is_active', 'is_staff', 'is_superuser', 'groups', 'user_permissions')}),
        ('Security', {'fields': ('last_login', 'password_changed_at')}),
        ('Timestamps', {'fields': ('id', 'created_at', 'updated_at')}),
    )

    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('email', 'name', 'password1', 'password2', 'role', 'student_id', 'staff_id'),
        }),
    )

    def get_readonly_fields(self, request, obj=None):
        # Role is chosen once, on the add form
        if obj is None:
            return [f for f in self.readonly_fields if f != 'role']
        return self.readonly_fields
