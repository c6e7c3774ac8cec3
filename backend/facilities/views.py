from core.views import (
    StoreCreateView, StoreDeleteView, StoreDetailView, StoreListView, StoreRestoreView, StoreUpdateView,
)
from .serializers import PhysicalLocationSerializer, AccessGateSerializer
from .stores import PhysicalLocationStore, AccessGateStore


class PhysicalLocationMixin:
    store_class = PhysicalLocationStore
    serializer_class = PhysicalLocationSerializer
    lookup_url_kwarg = 'location_id'


class PhysicalLocationsCreateView(PhysicalLocationMixin, StoreCreateView):
    pass


class PhysicalLocationsListView(PhysicalLocationMixin, StoreListView):
    pass


class PhysicalLocationsDetailView(PhysicalLocationMixin, StoreDetailView):
    pass


class PhysicalLocationsUpdateView(PhysicalLocationMixin, StoreUpdateView):
    pass


class PhysicalLocationsDeleteView(PhysicalLocationMixin, StoreDeleteView):
    pass


class PhysicalLocationsRestoreView(PhysicalLocationMixin, StoreRestoreView):
    pass


class AccessGateMixin:
    store_class = AccessGateStore
    serializer_class = AccessGateSerializer
    lookup_url_kwarg = 'gate_id'


class AccessGatesCreateView(AccessGateMixin, StoreCreateView):
    pass


class AccessGatesListView(AccessGateMixin, StoreListView):
    pass


class AccessGatesDetailView(AccessGateMixin, StoreDetailView):
    pass


class AccessGatesUpdateView(AccessGateMixin, StoreUpdateView):
    pass


class AccessGatesDeleteView(AccessGateMixin, StoreDeleteView):
    pass


class AccessGatesRestoreView(AccessGateMixin, StoreRestoreView):
    pass
