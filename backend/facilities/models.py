import uuid

from django.db import models

from core.models import SoftDeleteModel
from .validators import validate_ipv4_address, validate_mac_address


class PhysicalLocation(SoftDeleteModel):
    LOCATION_TYPE_CHOICES = [
        ('campus', 'Campus'),
        ('building', 'Building'),
        ('floor', 'Floor'),
        ('room', 'Room'),
        ('gate', 'Gate'),
        ('area', 'Area'),
    ]

    location_id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    location_name = models.CharField(max_length=255)
    location_type = models.CharField(max_length=20, choices=LOCATION_TYPE_CHOICES)
    description = models.TextField(blank=True, null=True)
    is_restricted = models.BooleanField(default=False)

    def __str__(self):
        return f"{self.location_name} ({self.location_type})"

    class Meta:
        indexes = [
            models.Index(fields=['location_name'], name='idx_physical_locations_name'),
            models.Index(fields=['location_type'], name='idx_physical_locations_type'),
            models.Index(fields=['deleted_at'], name='idx_physical_locations_deleted'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(location_type__in=['campus', 'building', 'floor', 'room', 'gate', 'area']),
                name='check_physical_locations_type'
            ),
        ]


class AccessGate(SoftDeleteModel):
    GATE_TYPE_CHOICES = [
        ('entry', 'Entry'),
        ('exit', 'Exit'),
        ('bidirectional', 'Bidirectional'),
    ]

    STATUS_CHOICES = [
        ('active', 'Active'),
        ('inactive', 'Inactive'),
        ('maintenance', 'Maintenance'),
        ('error', 'Error'),
    ]

    gate_id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    gate_code = models.CharField(max_length=20)
    gate_name = models.CharField(max_length=100)
    # Gates outlive their location: deleting a location is a soft delete only
    location = models.ForeignKey(PhysicalLocation, on_delete=models.PROTECT, related_name='gates')
    gate_type = models.CharField(max_length=20, choices=GATE_TYPE_CHOICES, default='bidirectional')
    hardware_id = models.CharField(max_length=100)
    ip_address = models.CharField(max_length=15, blank=True, null=True, validators=[validate_ipv4_address])
    mac_address = models.CharField(max_length=17, blank=True, null=True, validators=[validate_mac_address])
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='active')
    emergency_override_enabled = models.BooleanField(default=False)
    backup_power_available = models.BooleanField(default=False)

    def __str__(self):
        return f"{self.gate_name} [{self.gate_code}]"

    class Meta:
        indexes = [
            models.Index(fields=['gate_code'], name='idx_access_gates_code'),
            models.Index(fields=['hardware_id'], name='idx_access_gates_hardware'),
            models.Index(fields=['status'], name='idx_access_gates_status'),
            models.Index(fields=['deleted_at'], name='idx_access_gates_deleted'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(gate_type__in=['entry', 'exit', 'bidirectional']),
                name='check_access_gates_type'
            ),
            models.CheckConstraint(
                condition=models.Q(status__in=['active', 'inactive', 'maintenance', 'error']),
                name='check_access_gates_status'
            ),
            models.UniqueConstraint(
                fields=['gate_code'],
                condition=models.Q(deleted_at__isnull=True),
                name='uniq_live_gate_code'
            ),
            models.UniqueConstraint(
                fields=['hardware_id'],
                condition=models.Q(deleted_at__isnull=True),
                name='uniq_live_gate_hardware_id'
            ),
        ]
