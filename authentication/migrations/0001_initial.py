import authentication.models
import django.db.models.deletion
import uuid
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('auth', '0012_alter_user_first_name_max_length'),
    ]

    operations = [
        migrations.CreateModel(
            name='User',
            fields=[
                ('password', models.CharField(max_length=128, verbose_name='password')),
                ('last_login', models.DateTimeField(blank=True, null=True, verbose_name='last login')),
                ('is_superuser', models.BooleanField(default=False, help_text='Designates that this user has all permissions without explicitly assigning them.', verbose_name='superuser status')),
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('updated_at', models.DateTimeField(auto_now=True, db_index=True, help_text='Last modification; drives activity counts')),
                ('is_deleted', models.BooleanField(db_index=True, default=False)),
                ('deleted_at', models.DateTimeField(blank=True, null=True)),
                ('email', models.EmailField(help_text='Login email (internal address for students)', max_length=254, unique=True)),
                ('name', models.CharField(help_text='Display name', max_length=150)),
                ('role', models.CharField(choices=[('student', 'Student'), ('staff', 'Staff'), ('admin', 'Admin')], db_index=True, default='student', help_text='User role determining access level', max_length=20)),
                ('student_id', models.CharField(blank=True, help_text='Student id (students only)', max_length=32, null=True, unique=True)),
                ('staff_id', models.CharField(blank=True, help_text='Short numeric staff id (staff and admins only)', max_length=16, null=True, unique=True)),
                ('profile_image', models.URLField(blank=True, help_text='Avatar URL', max_length=500)),
                ('is_staff', models.BooleanField(default=False, help_text='Designates whether user can access admin site')),
                ('is_active', models.BooleanField(default=True, help_text='Designates whether user account is active')),
                ('password_changed_at', models.DateTimeField(blank=True, help_text='Timestamp when password was last changed', null=True)),
                ('created_by', models.ForeignKey(blank=True, help_text='Admin who provisioned this staff account', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='provisioned_users', to=settings.AUTH_USER_MODEL)),
                ('groups', models.ManyToManyField(blank=True, help_text='The groups this user belongs to. A user will get all permissions granted to each of their groups.', related_name='user_set', related_query_name='user', to='auth.group', verbose_name='groups')),
                ('user_permissions', models.ManyToManyField(blank=True, help_text='Specific permissions for this user.', related_name='user_set', related_query_name='user', to='auth.permission', verbose_name='user permissions')),
            ],
            options={
                'verbose_name': 'User',
                'verbose_name_plural': 'Users',
                'db_table': 'campusfix_users',
                'ordering': ['name'],
                'indexes': [models.Index(fields=['role', 'is_active'], name='users_role_active_idx')],
            },
            managers=[
                ('objects', authentication.models.UserManager()),
            ],
        ),
    ]
