"""
Custom permissions for CampusFix Backend.

Implements role-based access control:
- admin (coordinator): sees every report, assigns and rejects
- staff (resolver): works on reports assigned to them
- student (submitter): submits reports, upvotes, sees own reports

All permissions check that the account is active.
"""

from rest_framework import permissions

from .models import UserRole


class IsAuthenticated(permissions.IsAuthenticated):
    """
    Extended IsAuthenticated that also checks user status.
    """

    def has_permission(self, request, view):
        if not super().has_permission(request, view):
            return False

        return request.user.is_active


class RolePermission(permissions.BasePermission):
    """Base class for permissions granted to a fixed set of roles."""

    roles = []

    def has_permission(self, request, view):
        if not request.user.is_authenticated:
            return False

        if not request.user.is_active:
            return False

        return request.user.role in self.roles


class IsSubmitter(RolePermission):
    """Permission for students only."""

    message = "This action is for students only."
    roles = [UserRole.SUBMITTER]


class IsResolver(RolePermission):
    """Permission for staff members only."""

    message = "This action is for staff members only."
    roles = [UserRole.RESOLVER]


class IsCoordinator(RolePermission):
    """
    Permission for admins only.

    Admins can:
    - Assign pending reports to staff
    - Reject pending reports
    - Provision staff and admin accounts
    """

    message = "This action requires admin access."
    roles = [UserRole.COORDINATOR]


class IsStaffMember(RolePermission):
    """Permission for staff members and admins."""

    message = "This action requires staff access."
    roles = UserRole.STAFF_ROLES


class CanViewReport(permissions.BasePermission):
    """
    Object-level permission for viewing a specific report.

    Rules:
    - Admins can view all reports
    - Staff can view reports assigned to them
    - Students can view any report that is not rejected, and their own
      reports in every state
    """

    message = "You do not have permission to view this report."

    def has_object_permission(self, request, view, obj):
        user = request.user

        if user.is_coordinator:
            return True

        if user.is_resolver:
            return obj.assignee_id == user.id

        if user.is_submitter:
            return obj.submitted_by_id == user.id or obj.is_public

        return False
