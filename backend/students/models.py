import uuid

from django.db import models
from django.db.models import Exists, OuterRef, Q


class StudentQuerySet(models.QuerySet):
    def active(self):
        return self.filter(is_active=True)

    def without_live_card(self):
        """Active students who hold no live card; deleted cards do not count."""
        card_model = self.model._meta.get_field('cards').related_model
        live_card = card_model.objects.alive().filter(student=OuterRef('pk'))
        return self.active().exclude(Exists(live_card))

    def search(self, term):
        if not term:
            return self
        return self.filter(
            Q(first_name__icontains=term) |
            Q(surname__icontains=term) |
            Q(registration_number__icontains=term) |
            Q(department__icontains=term)
        )


class Student(models.Model):
    STUDENT_STATUS_CHOICES = [
        ('Enrolled', 'Enrolled'),
        ('Withdrawn', 'Withdrawn'),
        ('Suspended', 'Suspended'),
    ]

    subject_type = 'student'

    student_uuid = models.UUIDField(default=uuid.uuid4, editable=False, unique=True)

    surname = models.CharField(max_length=100)
    first_name = models.CharField(max_length=100)
    middle_name = models.CharField(max_length=100, blank=True, null=True)

    registration_number = models.CharField(max_length=20, unique=True)
    department = models.CharField(max_length=255)
    student_status = models.CharField(max_length=20, choices=STUDENT_STATUS_CHOICES, default='Enrolled')

    # Only active students can be issued a card or pass a gate
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = StudentQuerySet.as_manager()

    def __str__(self):
        return f"{self.first_name} {self.surname} ({self.registration_number})"

    @property
    def subject_id(self):
        return self.student_uuid

    @property
    def identifier(self):
        return self.registration_number

    @property
    def full_name(self):
        return " ".join(part for part in (self.first_name, self.middle_name, self.surname) if part)

    class Meta:
        ordering = ['surname', 'first_name']
        indexes = [
            models.Index(fields=['registration_number'], name='idx_student_reg_number'),
            models.Index(fields=['surname', 'first_name'], name='idx_student_name'),
            models.Index(fields=['department'], name='idx_student_department'),
        ]
