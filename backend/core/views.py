from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from .permissions import IsOperator
from .querying import Query, paginated_response


class StoreViewMixin:
    """
    Binds an APIView to a ResourceStore and a serializer.
    The store is built per request so it acts on behalf of request.user.
    """
    store_class = None
    serializer_class = None
    lookup_url_kwarg = None
    permission_classes = [IsOperator]

    def get_store(self):
        return self.store_class(actor=self.request.user)

    def get_serializer(self, *args, **kwargs):
        kwargs.setdefault('context', {'request': self.request})
        return self.serializer_class(*args, **kwargs)


class StoreCreateView(StoreViewMixin, APIView):
    def post(self, request):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        instance = self.get_store().create(serializer.validated_data)
        return Response(self.get_serializer(instance).data, status=status.HTTP_201_CREATED)


class StoreListView(StoreViewMixin, APIView):
    def get(self, request):
        page = self.get_store().list(Query.from_params(request.query_params))
        return paginated_response(request, page, self.serializer_class)


class StoreDetailView(StoreViewMixin, APIView):
    def get(self, request, **kwargs):
        instance = self.get_store().get(kwargs[self.lookup_url_kwarg])
        return Response(self.get_serializer(instance).data)


class StoreUpdateView(StoreViewMixin, APIView):
    def put(self, request, **kwargs):
        return self._update(request, kwargs[self.lookup_url_kwarg], partial=False)

    def patch(self, request, **kwargs):
        return self._update(request, kwargs[self.lookup_url_kwarg], partial=True)

    def _update(self, request, value, partial):
        store = self.get_store()
        instance = store.get(value)
        serializer = self.get_serializer(instance, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        instance = store.update(value, serializer.validated_data)
        return Response(self.get_serializer(instance).data)


class StoreDeleteView(StoreViewMixin, APIView):
    def delete(self, request, **kwargs):
        record = self.get_store().soft_delete(kwargs[self.lookup_url_kwarg])
        return Response({
            'message': f"{self.store_class.verbose_name} soft deleted successfully",
            'deleted_at': record.deleted_at,
        }, status=status.HTTP_200_OK)


class StoreRestoreView(StoreViewMixin, APIView):
    def post(self, request, **kwargs):
        instance = self.get_store().restore(kwargs[self.lookup_url_kwarg])
        return Response({
            'message': f"{self.store_class.verbose_name} restored successfully",
            'data': self.get_serializer(instance).data,
        }, status=status.HTTP_200_OK)
