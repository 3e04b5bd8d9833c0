import django.db.models.deletion
import reports.models
import uuid
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Report',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('updated_at', models.DateTimeField(auto_now=True, db_index=True, help_text='Last modification; drives activity counts')),
                ('is_deleted', models.BooleanField(db_index=True, default=False)),
                ('deleted_at', models.DateTimeField(blank=True, null=True)),
                ('title', models.CharField(help_text='Short summary of the issue', max_length=200)),
                ('description', models.TextField(help_text='Free-text description of the issue')),
                ('building', models.CharField(help_text='Building where the issue is', max_length=120)),
                ('room', models.CharField(blank=True, help_text='Room or area inside the building', max_length=60)),
                ('photo', models.URLField(blank=True, help_text='Reference URL of the photo in the media store', max_length=500)),
                ('priority', models.CharField(choices=[('low', 'Low'), ('medium', 'Medium'), ('high', 'High'), ('urgent', 'Urgent')], db_index=True, default='medium', max_length=10)),
                ('status', reports.models.ReportStatusField(choices=[('pending', 'Pending'), ('in-progress', 'In Progress'), ('completed', 'Completed'), ('rejected', 'Rejected')], db_index=True, default='pending', max_length=20)),
                ('submitter_student_id', models.CharField(help_text='Student id of the submitter at creation time', max_length=32)),
                ('submitter_name', models.CharField(help_text='Display name of the submitter at creation time', max_length=150)),
                ('assignee_name', models.CharField(blank=True, max_length=150)),
                ('assigned_at', models.DateTimeField(blank=True, null=True)),
                ('was_ever_assigned', models.BooleanField(default=False, help_text='Set on first assignment and never cleared')),
                ('upvotes_count', models.PositiveIntegerField(default=0, help_text='Number of Upvote rows; only changed by the upvote toggle')),
                ('rejection_note', models.TextField(blank=True, help_text='Admin-written reason, shown to the submitter')),
                ('assignment_note', models.TextField(blank=True, help_text='Admin-written instructions, visible to staff and admins only')),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('rejected_at', models.DateTimeField(blank=True, null=True)),
                ('assignee', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='assigned_reports', to=settings.AUTH_USER_MODEL)),
                ('submitted_by', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='submitted_reports', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Report',
                'verbose_name_plural': 'Reports',
                'db_table': 'campus_reports',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['submitted_by', 'created_at'], name='report_submitter_idx'), models.Index(fields=['assignee', 'status'], name='report_assignee_idx'), models.Index(fields=['status', 'updated_at'], name='report_status_updated_idx')],
            },
        ),
        migrations.CreateModel(
            name='StatusNote',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('sequence', models.PositiveIntegerField(help_text="Position in the report's log, starting at 1")),
                ('created_at', models.DateTimeField(auto_now_add=True, help_text='Informational only; order by sequence')),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('in-progress', 'In Progress'), ('completed', 'Completed'), ('rejected', 'Rejected')], help_text='Status the report moved to', max_length=20)),
                ('note', models.TextField()),
                ('author_name', models.CharField(max_length=150)),
                ('author', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('report', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='status_entries', to='reports.report')),
            ],
            options={
                'verbose_name': 'Status Note',
                'verbose_name_plural': 'Status Notes',
                'db_table': 'report_status_notes',
                'ordering': ['sequence'],
                'abstract': False,
                'constraints': [models.UniqueConstraint(fields=('report', 'sequence'), name='unique_status_note_sequence')],
            },
        ),
        migrations.CreateModel(
            name='ConversationNote',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('sequence', models.PositiveIntegerField(help_text="Position in the report's log, starting at 1")),
                ('created_at', models.DateTimeField(auto_now_add=True, help_text='Informational only; order by sequence')),
                ('sender_role', models.CharField(choices=[('staff', 'Staff'), ('admin', 'Admin')], max_length=20)),
                ('sender_name', models.CharField(max_length=150)),
                ('sender_image', models.URLField(blank=True, max_length=500)),
                ('message', models.CharField(max_length=500)),
                ('request_id', models.CharField(blank=True, help_text='Client-generated id used to drop duplicate deliveries', max_length=64)),
                ('report', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='conversation_entries', to='reports.report')),
                ('sender', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='+', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Conversation Note',
                'verbose_name_plural': 'Conversation Notes',
                'db_table': 'report_conversation_notes',
                'ordering': ['sequence'],
                'abstract': False,
                'constraints': [models.UniqueConstraint(fields=('report', 'sequence'), name='unique_conversation_sequence'), models.UniqueConstraint(condition=models.Q(('request_id', ''), _negated=True), fields=('report', 'request_id'), name='unique_conversation_request_id')],
            },
        ),
        migrations.CreateModel(
            name='Upvote',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('report', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='upvotes', to='reports.report')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='upvotes', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Upvote',
                'verbose_name_plural': 'Upvotes',
                'db_table': 'report_upvotes',
                'constraints': [models.UniqueConstraint(fields=('report', 'user'), name='unique_upvote_per_user')],
            },
        ),
        migrations.CreateModel(
            name='OperationReceipt',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('request_id', models.CharField(max_length=64, unique=True)),
                ('operation', models.CharField(choices=[('toggle_upvote', 'Toggle Upvote'), ('append_conversation', 'Append Conversation Message')], max_length=40)),
                ('response', models.JSONField(default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('actor', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('report', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='+', to='reports.report')),
            ],
            options={
                'verbose_name': 'Operation Receipt',
                'verbose_name_plural': 'Operation Receipts',
                'db_table': 'report_operation_receipts',
            },
        ),
    ]
