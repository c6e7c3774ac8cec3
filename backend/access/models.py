from django.db import models
import uuid
from django.utils import timezone
from cards.models import Card
from facilities.models import AccessGate


class AccessLog(models.Model):
    """
    Every RFID access attempt, granted or denied. Entries are append-only.
    """

    ACCESS_STATUS_CHOICES = [
        ('granted', 'Access Granted'),
        ('denied', 'Access Denied'),
    ]

    DENIAL_REASONS = [
        ('invalid_rfid', 'Invalid RFID Number'),
        ('card_inactive', 'Card is Inactive'),
        ('card_expired', 'Card has Expired'),
        ('subject_inactive', 'Card Holder is Inactive'),
        ('unknown_gate', 'Unknown Gate'),
        ('gate_unavailable', 'Gate is not Active'),
    ]

    log_uuid = models.UUIDField(
        default=uuid.uuid4,
        editable=False,
        unique=True,
        help_text="Unique identifier for the access log entry"
    )

    rfid_number = models.CharField(
        max_length=50,
        help_text="RFID number that was scanned",
        db_index=True
    )

    card = models.ForeignKey(
        Card,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='access_logs',
        help_text="Live card matching the RFID (if found)"
    )

    gate = models.ForeignKey(
        AccessGate,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='access_logs',
        help_text="Gate the reader belongs to (if known)"
    )

    hardware_id = models.CharField(
        max_length=100,
        blank=True,
        default='',
        help_text="Hardware id the reader sent"
    )

    access_status = models.CharField(
        max_length=20,
        choices=ACCESS_STATUS_CHOICES,
        help_text="Whether access was granted or denied"
    )

    denial_reason = models.CharField(
        max_length=30,
        choices=DENIAL_REASONS,
        null=True,
        blank=True,
        help_text="Reason for access denial (if applicable)"
    )

    ip_address = models.GenericIPAddressField(
        null=True,
        blank=True,
        help_text="IP address of the requesting device"
    )

    timestamp = models.DateTimeField(
        default=timezone.now,
        help_text="Timestamp when access was attempted",
        db_index=True
    )

    response_time_ms = models.PositiveIntegerField(
        null=True,
        blank=True,
        help_text="Response time in milliseconds"
    )

    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        status_display = "granted" if self.access_status == 'granted' else "denied"
        return f"{self.rfid_number} {status_display} at {self.timestamp.strftime('%Y-%m-%d %H:%M:%S')}"

    class Meta:
        ordering = ['-timestamp']
        indexes = [
            models.Index(fields=['access_status'], name='idx_accesslog_status'),
            models.Index(fields=['rfid_number', 'timestamp'], name='idx_accesslog_rfid_time'),
            models.Index(fields=['access_status', 'timestamp'], name='idx_accesslog_status_time'),
        ]
        verbose_name = "Access Log"
        verbose_name_plural = "Access Logs"
