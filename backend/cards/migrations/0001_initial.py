import uuid

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('students', '0001_initial'),
        ('staff', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Card',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('deleted_at', models.DateTimeField(blank=True, null=True)),
                ('card_uuid', models.UUIDField(default=uuid.uuid4, editable=False, help_text='Unique identifier for the card', unique=True)),
                ('rfid_number', models.CharField(help_text='RFID number of the physical card, unique among live cards', max_length=50)),
                ('card_type', models.CharField(choices=[('student', 'Student'), ('staff', 'Staff')], help_text='Type of card (student, staff)', max_length=20)),
                ('is_active', models.BooleanField(default=True)),
                ('issued_date', models.DateTimeField(auto_now_add=True)),
                ('expiry_date', models.DateTimeField(blank=True, help_text='Date when the card expires (optional)', null=True)),
                ('student', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='cards', to='students.student')),
                ('staff', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='cards', to='staff.staff')),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['rfid_number'], name='idx_card_rfid'),
                    models.Index(fields=['is_active'], name='idx_card_active'),
                    models.Index(fields=['card_type'], name='idx_card_type'),
                    models.Index(fields=['deleted_at'], name='idx_card_deleted'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('card_type__in', ['student', 'staff'])), name='check_card_type_valid'),
                    models.CheckConstraint(condition=models.Q(models.Q(('card_type', 'student'), ('staff__isnull', True), ('student__isnull', False)), models.Q(('card_type', 'staff'), ('staff__isnull', False), ('student__isnull', True)), _connector='OR'), name='check_card_single_holder'),
                    models.UniqueConstraint(condition=models.Q(('deleted_at__isnull', True)), fields=('rfid_number',), name='uniq_live_card_rfid'),
                    models.UniqueConstraint(condition=models.Q(('deleted_at__isnull', True), ('student__isnull', False)), fields=('student',), name='uniq_live_card_student'),
                    models.UniqueConstraint(condition=models.Q(('deleted_at__isnull', True), ('staff__isnull', False)), fields=('staff',), name='uniq_live_card_staff'),
                ],
            },
        ),
    ]
