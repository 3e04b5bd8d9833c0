import django.db.models.deletion
import notifications.models
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
            name='ActivityCheckpoint',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('updated_at', models.DateTimeField(auto_now=True, db_index=True, help_text='Last modification; drives activity counts')),
                ('is_deleted', models.BooleanField(db_index=True, default=False)),
                ('deleted_at', models.DateTimeField(blank=True, null=True)),
                ('last_seen_at', models.DateTimeField(default=notifications.models.epoch, help_text='When the user last opened their activity view')),
                ('user', models.OneToOneField(help_text='User this checkpoint belongs to', on_delete=django.db.models.deletion.CASCADE, related_name='activity_checkpoint', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Activity Checkpoint',
                'verbose_name_plural': 'Activity Checkpoints',
                'db_table': 'activity_checkpoints',
            },
        ),
    ]
