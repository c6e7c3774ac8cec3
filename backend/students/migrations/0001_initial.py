import uuid

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Student',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('student_uuid', models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ('surname', models.CharField(max_length=100)),
                ('first_name', models.CharField(max_length=100)),
                ('middle_name', models.CharField(blank=True, max_length=100, null=True)),
                ('registration_number', models.CharField(max_length=20, unique=True)),
                ('department', models.CharField(max_length=255)),
                ('student_status', models.CharField(choices=[('Enrolled', 'Enrolled'), ('Withdrawn', 'Withdrawn'), ('Suspended', 'Suspended')], default='Enrolled', max_length=20)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'ordering': ['surname', 'first_name'],
                'indexes': [
                    models.Index(fields=['registration_number'], name='idx_student_reg_number'),
                    models.Index(fields=['surname', 'first_name'], name='idx_student_name'),
                    models.Index(fields=['department'], name='idx_student_department'),
                ],
            },
        ),
    ]
