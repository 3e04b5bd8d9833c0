"""
Serializers for CampusFix Authentication.

Handles:
- Login with student id / staff id + password
- Student self-registration
- Profile editing and password change
- Staff account provisioning
"""

import logging
from django.contrib.auth import authenticate
from django.contrib.auth.password_validation import validate_password
from django.db.models import Q
from rest_framework import serializers
from rest_framework_simplejwt.tokens import RefreshToken

from .models import User, UserRole
from audit.models import AuditLog, AuditEventType

logger = logging.getLogger('campusfix.auth')


class UserSerializer(serializers.ModelSerializer):
    """Public view of a user account."""

    identifier = serializers.CharField(read_only=True)

    class Meta:
        model = User
        fields = [
            'id', 'identifier', 'name', 'role',
            'student_id', 'staff_id', 'profile_image',
            'is_active', 'last_login', 'created_at',
        ]
        read_only_fields = fields


def issue_tokens(user):
    """Build a refresh/access pair carrying the role claim."""
    refresh = RefreshToken.for_user(user)
    refresh['role'] = user.role
    return {
        'refresh': str(refresh),
        'access': str(refresh.access_token),
        'role': user.role,
        'user': UserSerializer(user).data,
    }


class LoginSerializer(serializers.Serializer):
    """
    Serializer for login.

    Students log in with their student id, staff and admins with their
    staff id. The optional role hint narrows the lookup to one role.
    """

    identifier = serializers.CharField(
        max_length=255,
        help_text="Student id or staff id"
    )
    password = serializers.CharField(
        write_only=True,
        style={'input_type': 'password'}
    )
    role = serializers.ChoiceField(
        choices=UserRole.CHOICES,
        required=False,
        help_text="Role the user is logging in as"
    )

    def validate(self, attrs):
        identifier = attrs['identifier'].strip()
        role = attrs.get('role')
        request = self.context.get('request')

        candidates = User.objects.filter(
            Q(student_id=identifier) | Q(staff_id=identifier) | Q(email__iexact=identifier)
        )
        if role:
            candidates = candidates.filter(role=role)
        existing_user = candidates.first()

        user = None
        if existing_user is not None:
            user = authenticate(
                request=request,
                username=existing_user.email,
                password=attrs['password']
            )

        if not user:
            AuditLog.log(
                event_type=AuditEventType.AUTH_LOGIN_FAILED,
                actor=existing_user,
                request=request,
                success=False,
                description="Invalid password" if existing_user else "Invalid identifier",
                metadata={'identifier': identifier, 'role': role or ''}
            )
            logger.warning(f"[LOGIN] Failed attempt for identifier={identifier}")
            raise serializers.ValidationError({
                'detail': 'Invalid credentials.'
            })

        attrs['user'] = user
        return attrs

    def create(self, validated_data):
        user = validated_data['user']
        request = self.context.get('request')

        result = issue_tokens(user)

        AuditLog.log(
            event_type=AuditEventType.AUTH_LOGIN_SUCCESS,
            actor=user,
            request=request,
            success=True,
            description="Login successful",
            metadata={'role': user.role}
        )
        logger.info(f"[LOGIN] Success for user={user.id} role={user.role}")

        return result


class RegistrationSerializer(serializers.Serializer):
    """
    Serializer for student self-registration.

    The student id must not already be registered.
    """

    student_id = serializers.CharField(max_length=32)
    name = serializers.CharField(max_length=150)
    password = serializers.CharField(
        write_only=True,
        style={'input_type': 'password'}
    )

    def validate_student_id(self, value):
        value = value.strip()
        if User.all_objects.filter(student_id=value).exists():
            raise serializers.ValidationError('This student id is already registered.')
        return value

    def validate_password(self, value):
        validate_password(value)
        return value

    def create(self, validated_data):
        user = User.objects.create_submitter(
            student_id=validated_data['student_id'],
            password=validated_data['password'],
            name=validated_data['name'].strip(),
        )

        AuditLog.log(
            event_type=AuditEventType.USER_REGISTERED,
            actor=user,
            target=user,
            request=self.context.get('request'),
            description="Student self-registration"
        )

        return issue_tokens(user)


class ProfileUpdateSerializer(serializers.ModelSerializer):
    """Owner-only profile edit. Role and ids are never writable."""

    class Meta:
        model = User
        fields = ['name', 'profile_image']

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Name cannot be empty.')
        return value


class ChangePasswordSerializer(serializers.Serializer):
    """Re-verify the current password, then replace it."""

    current_password = serializers.CharField(write_only=True)
    new_password = serializers.CharField(write_only=True)

    def validate_new_password(self, value):
        validate_password(value, user=self.context['request'].user)
        return value

    def save(self, **kwargs):
        request = self.context['request']
        user = request.user

        changed = user.change_password(
            self.validated_data['current_password'],
            self.validated_data['new_password'],
        )

        AuditLog.log(
            event_type=AuditEventType.AUTH_PASSWORD_CHANGED,
            actor=user,
            target=user,
            request=request,
            success=changed,
            description="Password changed" if changed else "Current password is incorrect"
        )

        if not changed:
            raise serializers.ValidationError({
                'current_password': ['Current password is incorrect.']
            })
        return user


class CreateStaffSerializer(serializers.Serializer):
    """
    Serializer for provisioning staff and admin accounts.

    The staff id is allocated by the server.
    """

    role = serializers.ChoiceField(choices=[
        (UserRole.RESOLVER, 'Staff'),
        (UserRole.COORDINATOR, 'Admin'),
    ])
    name = serializers.CharField(max_length=150)
    password = serializers.CharField(
        write_only=True,
        style={'input_type': 'password'}
    )
    email = serializers.EmailField(required=False)

    def validate_email(self, value):
        if User.all_objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError('This email is already in use.')
        return value

    def validate_password(self, value):
        validate_password(value)
        return value

    def create(self, validated_data):
        request = self.context['request']

        user = User.objects.create_staff_member(
            role=validated_data['role'],
            password=validated_data['password'],
            name=validated_data['name'].strip(),
            created_by=request.user,
            email=validated_data.get('email'),
        )

        AuditLog.log(
            event_type=AuditEventType.USER_CREATED,
            actor=request.user,
            target=user,
            request=request,
            description=f"Provisioned {user.role} account {user.staff_id}",
            metadata={'role': user.role, 'staff_id': user.staff_id}
        )

        return user
