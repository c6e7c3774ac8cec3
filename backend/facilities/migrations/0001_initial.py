import uuid

import django.db.models.deletion
from django.db import migrations, models

import facilities.validators


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='PhysicalLocation',
            fields=[
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('deleted_at', models.DateTimeField(blank=True, null=True)),
                ('location_id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('location_name', models.CharField(max_length=255)),
                ('location_type', models.CharField(choices=[('campus', 'Campus'), ('building', 'Building'), ('floor', 'Floor'), ('room', 'Room'), ('gate', 'Gate'), ('area', 'Area')], max_length=20)),
                ('description', models.TextField(blank=True, null=True)),
                ('is_restricted', models.BooleanField(default=False)),
            ],
            options={
                'indexes': [
                    models.Index(fields=['location_name'], name='idx_physical_locations_name'),
                    models.Index(fields=['location_type'], name='idx_physical_locations_type'),
                    models.Index(fields=['deleted_at'], name='idx_physical_locations_deleted'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('location_type__in', ['campus', 'building', 'floor', 'room', 'gate', 'area'])), name='check_physical_locations_type'),
                ],
            },
        ),
        migrations.CreateModel(
            name='AccessGate',
            fields=[
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('deleted_at', models.DateTimeField(blank=True, null=True)),
                ('gate_id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('gate_code', models.CharField(max_length=20)),
                ('gate_name', models.CharField(max_length=100)),
                ('gate_type', models.CharField(choices=[('entry', 'Entry'), ('exit', 'Exit'), ('bidirectional', 'Bidirectional')], default='bidirectional', max_length=20)),
                ('hardware_id', models.CharField(max_length=100)),
                ('ip_address', models.CharField(blank=True, max_length=15, null=True, validators=[facilities.validators.validate_ipv4_address])),
                ('mac_address', models.CharField(blank=True, max_length=17, null=True, validators=[facilities.validators.validate_mac_address])),
                ('status', models.CharField(choices=[('active', 'Active'), ('inactive', 'Inactive'), ('maintenance', 'Maintenance'), ('error', 'Error')], default='active', max_length=20)),
                ('emergency_override_enabled', models.BooleanField(default=False)),
                ('backup_power_available', models.BooleanField(default=False)),
                ('location', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='gates', to='facilities.physicallocation')),
            ],
            options={
                'indexes': [
                    models.Index(fields=['gate_code'], name='idx_access_gates_code'),
                    models.Index(fields=['hardware_id'], name='idx_access_gates_hardware'),
                    models.Index(fields=['status'], name='idx_access_gates_status'),
                    models.Index(fields=['deleted_at'], name='idx_access_gates_deleted'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('gate_type__in', ['entry', 'exit', 'bidirectional'])), name='check_access_gates_type'),
                    models.CheckConstraint(condition=models.Q(('status__in', ['active', 'inactive', 'maintenance', 'error'])), name='check_access_gates_status'),
                    models.UniqueConstraint(condition=models.Q(('deleted_at__isnull', True)), fields=('gate_code',), name='uniq_live_gate_code'),
                    models.UniqueConstraint(condition=models.Q(('deleted_at__isnull', True)), fields=('hardware_id',), name='uniq_live_gate_hardware_id'),
                ],
            },
        ),
    ]
