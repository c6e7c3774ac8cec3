from core.exceptions import ValidationError
from core.models import UniquenessReservation
from core.permissions import OPERATOR_ROLES
from core.store import ResourceStore
from .models import AccessGate, PhysicalLocation


class PhysicalLocationStore(ResourceStore):
    model = PhysicalLocation
    lookup_field = 'location_id'
    verbose_name = 'Physical location'
    unique_fields = {UniquenessReservation.LOCATION_NAME: 'location_name'}
    protected_fields = ResourceStore.protected_fields + ('location_id',)
    search_fields = ('location_name', 'description')
    filter_fields = ('location_type', 'is_restricted')
    ordering_fields = ('location_name', 'location_type', 'created_at')
    write_roles = OPERATOR_ROLES


class AccessGateStore(ResourceStore):
    model = AccessGate
    lookup_field = 'gate_id'
    verbose_name = 'Access gate'
    unique_fields = {
        UniquenessReservation.GATE_CODE: 'gate_code',
        UniquenessReservation.HARDWARE_ID: 'hardware_id',
    }
    protected_fields = ResourceStore.protected_fields + ('gate_id',)
    search_fields = ('gate_code', 'gate_name', 'hardware_id')
    filter_fields = ('gate_type', 'status', 'location')
    ordering_fields = ('gate_name', 'gate_code', 'status', 'created_at')
    write_roles = OPERATOR_ROLES

    def get_queryset(self):
        return AccessGate.objects.select_related('location')

    def clean(self, instance, creating, changed=()):
        super().clean(instance, creating, changed)
        # A gate may keep pointing at a location deleted later on,
        # but it can never be attached to one that is already deleted.
        if (creating or 'location' in changed) and instance.location.is_deleted:
            raise ValidationError(
                f"Physical location '{instance.location.location_name}' is deleted and cannot be assigned to a gate.",
                field='location'
            )
