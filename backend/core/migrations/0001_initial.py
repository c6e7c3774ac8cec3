from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='UniquenessReservation',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('namespace', models.CharField(choices=[('gate_code', 'Gate Code'), ('hardware_id', 'Gate Hardware ID'), ('rfid_number', 'RFID Number'), ('subject_credential', 'Subject Credential'), ('location_name', 'Location Name')], max_length=30)),
                ('key', models.CharField(max_length=255)),
                ('entity_type', models.CharField(max_length=100)),
                ('entity_id', models.CharField(max_length=64)),
                ('reserved_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'indexes': [models.Index(fields=['entity_type', 'entity_id'], name='idx_reservation_entity')],
                'constraints': [models.UniqueConstraint(fields=('namespace', 'key'), name='uniq_reservation_namespace_key')],
            },
        ),
    ]
