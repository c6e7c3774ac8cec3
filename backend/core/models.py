from django.db import models


class SoftDeleteQuerySet(models.QuerySet):
    def alive(self):
        return self.filter(deleted_at__isnull=True)

    def deleted(self):
        return self.filter(deleted_at__isnull=False)


class SoftDeleteModel(models.Model):
    """
    Base for records that are never physically erased.
    A non-null deleted_at hides the row from default listings.
    """
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    objects = SoftDeleteQuerySet.as_manager()

    class Meta:
        abstract = True

    @property
    def is_deleted(self):
        return self.deleted_at is not None


class UniquenessReservation(models.Model):
    """
    Exclusive claim on a key inside a namespace, held only by live records.
    The (namespace, key) unique constraint is what makes reserve atomic.
    """
    GATE_CODE = 'gate_code'
    HARDWARE_ID = 'hardware_id'
    RFID_NUMBER = 'rfid_number'
    SUBJECT_CREDENTIAL = 'subject_credential'
    LOCATION_NAME = 'location_name'

    NAMESPACE_CHOICES = [
        (GATE_CODE, 'Gate Code'),
        (HARDWARE_ID, 'Gate Hardware ID'),
        (RFID_NUMBER, 'RFID Number'),
        (SUBJECT_CREDENTIAL, 'Subject Credential'),
        (LOCATION_NAME, 'Location Name'),
    ]

    namespace = models.CharField(max_length=30, choices=NAMESPACE_CHOICES)
    key = models.CharField(max_length=255)
    entity_type = models.CharField(max_length=100)
    entity_id = models.CharField(max_length=64)
    reserved_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.namespace}:{self.key} -> {self.entity_type} {self.entity_id}"

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=['namespace', 'key'],
                name='uniq_reservation_namespace_key'
            ),
        ]
        indexes = [
            models.Index(fields=['entity_type', 'entity_id'], name='idx_reservation_entity'),
        ]
