import uuid

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('cards', '0001_initial'),
        ('facilities', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='AccessLog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('log_uuid', models.UUIDField(default=uuid.uuid4, editable=False, help_text='Unique identifier for the access log entry', unique=True)),
                ('rfid_number', models.CharField(db_index=True, help_text='RFID number that was scanned', max_length=50)),
                ('hardware_id', models.CharField(blank=True, default='', help_text='Hardware id the reader sent', max_length=100)),
                ('access_status', models.CharField(choices=[('granted', 'Access Granted'), ('denied', 'Access Denied')], help_text='Whether access was granted or denied', max_length=20)),
                ('denial_reason', models.CharField(blank=True, choices=[('invalid_rfid', 'Invalid RFID Number'), ('card_inactive', 'Card is Inactive'), ('card_expired', 'Card has Expired'), ('subject_inactive', 'Card Holder is Inactive'), ('unknown_gate', 'Unknown Gate'), ('gate_unavailable', 'Gate is not Active')], help_text='Reason for access denial (if applicable)', max_length=30, null=True)),
                ('ip_address', models.GenericIPAddressField(blank=True, help_text='IP address of the requesting device', null=True)),
                ('timestamp', models.DateTimeField(db_index=True, default=django.utils.timezone.now, help_text='Timestamp when access was attempted')),
                ('response_time_ms', models.PositiveIntegerField(blank=True, help_text='Response time in milliseconds', null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('card', models.ForeignKey(blank=True, help_text='Live card matching the RFID (if found)', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='access_logs', to='cards.card')),
                ('gate', models.ForeignKey(blank=True, help_text='Gate the reader belongs to (if known)', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='access_logs', to='facilities.accessgate')),
            ],
            options={
                'verbose_name': 'Access Log',
                'verbose_name_plural': 'Access Logs',
                'ordering': ['-timestamp'],
                'indexes': [
                    models.Index(fields=['access_status'], name='idx_accesslog_status'),
                    models.Index(fields=['rfid_number', 'timestamp'], name='idx_accesslog_rfid_time'),
                    models.Index(fields=['access_status', 'timestamp'], name='idx_accesslog_status_time'),
                ],
            },
        ),
    ]
