import uuid

from django.db import models
from django.db.models import Exists, OuterRef, Q


class StaffQuerySet(models.QuerySet):
    def active(self):
        return self.filter(is_active=True)

    def without_live_card(self):
        card_model = self.model._meta.get_field('cards').related_model
        live_card = card_model.objects.alive().filter(staff=OuterRef('pk'))
        return self.active().exclude(Exists(live_card))

    def search(self, term):
        if not term:
            return self
        return self.filter(
            Q(first_name__icontains=term) |
            Q(surname__icontains=term) |
            Q(staff_number__icontains=term) |
            Q(department__icontains=term)
        )


class Staff(models.Model):
    EMPLOYMENT_STATUS_CHOICES = [
        ('Active', 'Active'),
        ('Inactive', 'Inactive'),
        ('Terminated', 'Terminated'),
        ('Retired', 'Retired'),
        ('On Leave', 'On Leave'),
    ]

    subject_type = 'staff'

    staff_uuid = models.UUIDField(default=uuid.uuid4, editable=False, unique=True)
    surname = models.CharField(max_length=100)
    first_name = models.CharField(max_length=100)
    middle_name = models.CharField(max_length=100, blank=True, null=True)
    staff_number = models.CharField(max_length=20, unique=True)
    department = models.CharField(max_length=255)
    position = models.CharField(max_length=100)
    # HR status is informational; card eligibility follows is_active
    employment_status = models.CharField(max_length=50, choices=EMPLOYMENT_STATUS_CHOICES, default='Active')
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = StaffQuerySet.as_manager()

    def __str__(self):
        return f"{self.first_name} {self.surname} ({self.staff_number})"

    @property
    def subject_id(self):
        return self.staff_uuid

    @property
    def identifier(self):
        return self.staff_number

    @property
    def full_name(self):
        return " ".join(part for part in (self.first_name, self.middle_name, self.surname) if part)

    class Meta:
        ordering = ['surname', 'first_name']
        verbose_name_plural = 'staff'
        indexes = [
            models.Index(fields=['staff_number'], name='idx_staff_number'),
            models.Index(fields=['surname', 'first_name'], name='idx_staff_name'),
            models.Index(fields=['department'], name='idx_staff_department'),
        ]
