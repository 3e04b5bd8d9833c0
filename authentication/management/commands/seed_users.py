"""
Management command to seed demo/test users for CampusFix.

Usage:
    python manage.py seed_users

Creates users for all roles with known passwords for testing:
    - 22235103189 / Student@123 (student)
    - 5001, 5002, 5003 / Staff@123 (staff)
    - 9001 / Admin@123 (admin)
"""

from django.core.management.base import BaseCommand
from authentication.models import User, UserRole


DEMO_USERS = [
    {
        'student_id': '22235103189',
        'password': 'Student@123',
        'role': UserRole.SUBMITTER,
        'name': 'Demo Student',
    },
    {
        'staff_id': '5001',
        'password': 'Staff@123',
        'role': UserRole.RESOLVER,
        'name': 'Ravi Electrician',
    },
    {
        'staff_id': '5002',
        'password': 'Staff@123',
        'role': UserRole.RESOLVER,
        'name': 'Meena Plumber',
    },
    {
        'staff_id': '5003',
        'password': 'Staff@123',
        'role': UserRole.RESOLVER,
        'name': 'Arjun Carpenter',
    },
    {
        'staff_id': '9001',
        'password': 'Admin@123',
        'role': UserRole.COORDINATOR,
        'name': 'Facilities Admin',
        'is_superuser': True,
        'is_staff': True,
    },
]


class Command(BaseCommand):
    help = 'Seed demo/test users for all CampusFix roles'

    def add_arguments(self, parser):
        parser.add_argument(
            '--force',
            action='store_true',
            help='Reset passwords even if users already exist',
        )

    def handle(self, *args, **options):
        force = options['force']
        created_count = 0
        updated_count = 0

        for demo in DEMO_USERS:
            user_data = dict(demo)
            password = user_data.pop('password')
            role = user_data.pop('role')
            is_superuser = user_data.pop('is_superuser', False)
            is_staff = user_data.pop('is_staff', False)

            if role == UserRole.SUBMITTER:
                lookup = {'student_id': user_data['student_id']}
            else:
                lookup = {'staff_id': user_data['staff_id']}
            label = next(iter(lookup.values()))

            user = User.all_objects.filter(**lookup).first()
            if user is not None:
                if force:
                    user.set_password(password)
                    user.is_active = True
                    user.is_deleted = False
                    user.is_superuser = is_superuser
                    user.is_staff = is_staff
                    user.save()
                    updated_count += 1
                    self.stdout.write(self.style.WARNING(
                        f'  Updated: {label} ({user.role})'
                    ))
                else:
                    self.stdout.write(self.style.NOTICE(
                        f'  Exists:  {label} ({user.role}), use --force to reset'
                    ))
                continue

            if role == UserRole.SUBMITTER:
                user = User.objects.create_submitter(password=password, **user_data)
            else:
                user = User.objects.create_staff_member(
                    role=role,
                    password=password,
                    is_staff=is_staff,
                    **user_data,
                )
            user.is_superuser = is_superuser
            user.save()
            created_count += 1
            self.stdout.write(self.style.SUCCESS(
                f'  Created: {label} ({role})'
            ))

        self.stdout.write('')
        self.stdout.write(self.style.SUCCESS(
            f'Done! Created: {created_count}, Updated: {updated_count}'
        ))
