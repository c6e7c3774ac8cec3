import uuid

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Staff',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('staff_uuid', models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ('surname', models.CharField(max_length=100)),
                ('first_name', models.CharField(max_length=100)),
                ('middle_name', models.CharField(blank=True, max_length=100, null=True)),
                ('staff_number', models.CharField(max_length=20, unique=True)),
                ('department', models.CharField(max_length=255)),
                ('position', models.CharField(max_length=100)),
                ('employment_status', models.CharField(choices=[('Active', 'Active'), ('Inactive', 'Inactive'), ('Terminated', 'Terminated'), ('Retired', 'Retired'), ('On Leave', 'On Leave')], default='Active', max_length=50)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'ordering': ['surname', 'first_name'],
                'verbose_name_plural': 'staff',
                'indexes': [
                    models.Index(fields=['staff_number'], name='idx_staff_number'),
                    models.Index(fields=['surname', 'first_name'], name='idx_staff_name'),
                    models.Index(fields=['department'], name='idx_staff_department'),
                ],
            },
        ),
    ]
