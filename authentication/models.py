"""
Authentication models for CampusFix Backend.

Contains:
- Custom User model with role-based access control
- UserManager with submitter and staff provisioning

Roles are fixed:
- student: submits reports and upvotes campus issues
- staff:   resolves reports assigned to them
- admin:   triages, assigns and rejects reports
"""

from django.db import models
from django.db.models import Max
from django.db.models.functions import Cast
from django.contrib.auth.models import AbstractBaseUser, BaseUserManager, PermissionsMixin
from django.utils import timezone

from core.models import BaseModel


class UserRole:
    """
    User role constants.

    SUBMITTER:   student reporting an issue
    RESOLVER:    staff member who works on assigned reports
    COORDINATOR: admin who triages and assigns reports
    """
    SUBMITTER = 'student'
    RESOLVER = 'staff'
    COORDINATOR = 'admin'

    CHOICES = [
        (SUBMITTER, 'Student'),
        (RESOLVER, 'Staff'),
        (COORDINATOR, 'Admin'),
    ]

    # Roles that see the private staff/admin logs
    STAFF_ROLES = [RESOLVER, COORDINATOR]

    # First id handed out per staff role; later ids are max(existing) + 1
    STAFF_ID_START = {
        RESOLVER: 5001,
        COORDINATOR: 9001,
    }


class UserManager(BaseUserManager):
    """
    Custom user manager for the CampusFix User model.
    Handles creation of submitters, resolvers and coordinators.
    """

    def get_queryset(self):
        """Return only non-deleted users by default."""
        return super().get_queryset().filter(is_deleted=False)

    def create_user(self, email, password=None, **extra_fields):
        """
        Create and return a user.

        Args:
            email: Login email (internal address for students)
            password: User password
            **extra_fields: Additional fields
        """
        if not email:
            raise ValueError('User must have an email')

        email = self.normalize_email(email)
        user = self.model(email=email, **extra_fields)

        if password:
            user.set_password(password)
        else:
            user.set_unusable_password()

        user.save(using=self._db)
        return user

    def create_submitter(self, student_id, password, name, **extra_fields):
        """
        Create a student account.

        Students never see their email; an internal address is derived
        from the student id when none is supplied.
        """
        if not student_id:
            raise ValueError('Students must have a student id')

        email = extra_fields.pop('email', None) or f'student{student_id}@internal.local'
        extra_fields['role'] = UserRole.SUBMITTER
        extra_fields['student_id'] = student_id

        return self.create_user(email, password, name=name, **extra_fields)

    def next_staff_id(self, role):
        """
        Allocate the next staff id for a resolver or coordinator.

        Resolver ids start at 5001 and coordinator ids at 9001.
        """
        if role not in UserRole.STAFF_ROLES:
            raise ValueError(f'Invalid staff role: {role}')

        start = UserRole.STAFF_ID_START[role]
        highest = (
            self.model.all_objects
            .filter(role=role, staff_id__isnull=False)
            .aggregate(highest=Max(Cast('staff_id', models.IntegerField())))
        )['highest']

        if highest is None or highest < start:
            return str(start)
        return str(highest + 1)

    def create_staff_member(self, role, password, name, created_by=None, **extra_fields):
        """
        Create a resolver or coordinator account.

        Args:
            role: UserRole.RESOLVER or UserRole.COORDINATOR
            password: Initial password (required)
            name: Display name
            created_by: Coordinator provisioning the account
        """
        if role not in UserRole.STAFF_ROLES:
            raise ValueError(f'Invalid staff role: {role}')

        if not password:
            raise ValueError('Staff users must have a password')

        staff_id = extra_fields.pop('staff_id', None) or self.next_staff_id(role)
        email = extra_fields.pop('email', None) or f'{role}{staff_id}@internal.local'

        extra_fields.setdefault('is_staff', role == UserRole.COORDINATOR)
        extra_fields['role'] = role
        extra_fields['staff_id'] = staff_id
        extra_fields['created_by'] = created_by

        return self.create_user(email, password, name=name, **extra_fields)

    def create_superuser(self, email, password, **extra_fields):
        """Create a superuser for admin access."""
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('role', UserRole.COORDINATOR)
        extra_fields.setdefault('name', 'Administrator')

        if extra_fields.get('is_staff') is not True:
            raise ValueError('Superuser must have is_staff=True.')
        if extra_fields.get('is_superuser') is not True:
            raise ValueError('Superuser must have is_superuser=True.')

        if extra_fields['role'] in UserRole.STAFF_ROLES and not extra_fields.get('staff_id'):
            extra_fields['staff_id'] = self.next_staff_id(extra_fields['role'])

        return self.create_user(email, password, **extra_fields)


class User(AbstractBaseUser, PermissionsMixin, BaseModel):
    """
    Custom User model for CampusFix.

    Design decisions:
    - Uses UUID primary key (inherited from BaseModel)
    - email as the Django username field; people log in with their
      student id or staff id
    - Role is fixed at creation and never changes
    - Soft delete only
    """

    email = models.EmailField(
        unique=True,
        help_text="Login email (internal address for students)"
    )

    name = models.CharField(
        max_length=150,
        help_text="Display name"
    )

    role = models.CharField(
        max_length=20,
        choices=UserRole.CHOICES,
        default=UserRole.SUBMITTER,
        db_index=True,
        help_text="User role determining access level"
    )

    student_id = models.CharField(
        max_length=32,
        unique=True,
        null=True,
        blank=True,
        help_text="Student id (students only)"
    )

    staff_id = models.CharField(
        max_length=16,
        unique=True,
        null=True,
        blank=True,
        help_text="Short numeric staff id (staff and admins only)"
    )

    profile_image = models.URLField(
        max_length=500,
        blank=True,
        help_text="Avatar URL"
    )

    created_by = models.ForeignKey(
        'self',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='provisioned_users',
        help_text="Admin who provisioned this staff account"
    )

    is_staff = models.BooleanField(
        default=False,
        help_text="Designates whether user can access admin site"
    )

    is_active = models.BooleanField(
        default=True,
        help_text="Designates whether user account is active"
    )

    password_changed_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Timestamp when password was last changed"
    )

    objects = UserManager()

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['name']

    class Meta:
        db_table = 'campusfix_users'
        verbose_name = 'User'
        verbose_name_plural = 'Users'
        ordering = ['name']
        indexes = [
            models.Index(fields=['role', 'is_active'], name='users_role_active_idx'),
        ]

    def __str__(self):
        return f"{self.name} ({self.identifier})"

    def save(self, *args, **kwargs):
        """Refuse to change the role of an existing user."""
        if not self._state.adding:
            stored_role = (
                User.all_objects.filter(pk=self.pk)
                .values_list('role', flat=True)
                .first()
            )
            if stored_role is not None and stored_role != self.role:
                raise PermissionError("A user's role cannot be changed.")
        super().save(*args, **kwargs)

    @property
    def identifier(self):
        """The id the user logs in with."""
        if self.role == UserRole.SUBMITTER:
            return self.student_id
        return self.staff_id

    @property
    def display_name(self):
        return self.name

    @property
    def is_submitter(self):
        return self.role == UserRole.SUBMITTER

    @property
    def is_resolver(self):
        return self.role == UserRole.RESOLVER

    @property
    def is_coordinator(self):
        return self.role == UserRole.COORDINATOR

    @property
    def is_staff_member(self):
        """Resolvers and coordinators."""
        return self.role in UserRole.STAFF_ROLES

    def change_password(self, current_password, new_password):
        """
        Replace the password after re-verifying the current one.

        Returns False when the current password does not match.
        """
        if not self.check_password(current_password):
            return False

        self.set_password(new_password)
        self.password_changed_at = timezone.now()
        self.save(update_fields=['password', 'password_changed_at', 'updated_at'])
        return True
