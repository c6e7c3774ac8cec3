import uuid

from django.db import models
from django.utils import timezone

from core.models import SoftDeleteModel
from students.models import Student
from staff.models import Staff


class Card(SoftDeleteModel):
    CARD_TYPE_CHOICES = [
        ('student', 'Student'),
        ('staff', 'Staff'),
    ]

    STATE_PROVISIONED = 'provisioned'
    STATE_DEACTIVATED = 'deactivated'
    STATE_DELETED = 'deleted'

    card_uuid = models.UUIDField(
        default=uuid.uuid4,
        editable=False,
        unique=True,
        help_text="Unique identifier for the card"
    )

    rfid_number = models.CharField(
        max_length=50,
        help_text="RFID number of the physical card, unique among live cards"
    )

    card_type = models.CharField(
        max_length=20,
        choices=CARD_TYPE_CHOICES,
        help_text="Type of card (student, staff)"
    )

    # Exactly one is set, matching card_type. Plain foreign keys so that
    # deleted cards keep their history without blocking reissuance.
    student = models.ForeignKey(
        Student,
        on_delete=models.PROTECT,
        related_name='cards',
        null=True,
        blank=True
    )

    staff = models.ForeignKey(
        Staff,
        on_delete=models.PROTECT,
        related_name='cards',
        null=True,
        blank=True
    )

    is_active = models.BooleanField(default=True)

    issued_date = models.DateTimeField(auto_now_add=True)

    expiry_date = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Date when the card expires (optional)"
    )

    def __str__(self):
        return f"Card {self.card_uuid} - {self.card_holder_name} ({self.card_type})"

    @property
    def card_holder(self):
        if self.card_type == 'student':
            return self.student
        elif self.card_type == 'staff':
            return self.staff
        return None

    @property
    def card_holder_name(self):
        holder = self.card_holder
        return holder.full_name if holder else "Unknown"

    @property
    def card_holder_number(self):
        holder = self.card_holder
        return holder.identifier if holder else None

    @property
    def subject_id(self):
        holder = self.card_holder
        return holder.subject_id if holder else None

    @property
    def department(self):
        holder = self.card_holder
        return holder.department if holder else None

    def is_expired(self, now=None):
        # Evaluated lazily; nothing flips is_active when the date passes
        if self.expiry_date is None:
            return False
        return self.expiry_date <= (now or timezone.now())

    @property
    def state(self):
        if self.deleted_at is not None:
            return self.STATE_DELETED
        return self.STATE_PROVISIONED if self.is_active else self.STATE_DEACTIVATED

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['rfid_number'], name='idx_card_rfid'),
            models.Index(fields=['is_active'], name='idx_card_active'),
            models.Index(fields=['card_type'], name='idx_card_type'),
            models.Index(fields=['deleted_at'], name='idx_card_deleted'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(card_type__in=['student', 'staff']),
                name='check_card_type_valid'
            ),
            models.CheckConstraint(
                condition=(
                    models.Q(card_type='student', student__isnull=False, staff__isnull=True) |
                    models.Q(card_type='staff', staff__isnull=False, student__isnull=True)
                ),
                name='check_card_single_holder'
            ),
            models.UniqueConstraint(
                fields=['rfid_number'],
                condition=models.Q(deleted_at__isnull=True),
                name='uniq_live_card_rfid'
            ),
            models.UniqueConstraint(
                fields=['student'],
                condition=models.Q(deleted_at__isnull=True, student__isnull=False),
                name='uniq_live_card_student'
            ),
            models.UniqueConstraint(
                fields=['staff'],
                condition=models.Q(deleted_at__isnull=True, staff__isnull=False),
                name='uniq_live_card_staff'
            ),
        ]
