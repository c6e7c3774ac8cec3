"""
Query/Filter gateway shared by every list operation.

A list request is reduced to a ``Query`` (page, page size, free-text search,
exact-match filters, ordering, include_deleted) and run against a queryset by
a ``QueryGateway`` configured per collection. Filters compose with AND and an
empty filter value means "no constraint", never "match the empty string".
"""
from dataclasses import dataclass, field
from functools import reduce
import operator

from django.conf import settings
from django.core.paginator import EmptyPage, Paginator
from django.db.models import Q
from django_filters.filterset import filterset_factory
from django_filters.rest_framework import FilterSet
from rest_framework.response import Response
from rest_framework.utils.urls import remove_query_param, replace_query_param

from .exceptions import NotFoundError, ValidationError

RESERVED_PARAMS = ('page', 'page_size', 'search', 'ordering', 'include_deleted')
TRUE_VALUES = ('1', 'true', 'yes', 'on')


def default_page_size():
    return getattr(settings, 'API_PAGE_SIZE', 20)


def max_page_size():
    return getattr(settings, 'API_MAX_PAGE_SIZE', 100)


def _positive_int(value, name):
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a positive integer.", field=name)
    if number < 1:
        raise ValidationError(f"{name} must be a positive integer.", field=name)
    return number


@dataclass
class Query:
    page: int = 1
    page_size: int = field(default_factory=default_page_size)
    search: str = ''
    filters: dict = field(default_factory=dict)
    ordering: str = ''
    include_deleted: bool = False

    @classmethod
    def from_params(cls, params):
        """Build a Query from request query params (a QueryDict or plain dict)."""
        page = _positive_int(params.get('page') or 1, 'page')
        page_size = params.get('page_size')
        page_size = min(_positive_int(page_size, 'page_size'), max_page_size()) if page_size else default_page_size()
        filters = {
            name: params.get(name)
            for name in params.keys()
            if name not in RESERVED_PARAMS
        }
        return cls(
            page=page,
            page_size=page_size,
            search=(params.get('search') or '').strip(),
            filters=filters,
            ordering=(params.get('ordering') or '').strip(),
            include_deleted=str(params.get('include_deleted', '')).lower() in TRUE_VALUES,
        )


@dataclass
class Page:
    count: int
    results: list
    number: int
    page_size: int
    num_pages: int

    @property
    def next_page(self):
        return self.number + 1 if self.number < self.num_pages else None

    @property
    def previous_page(self):
        return self.number - 1 if self.number > 1 else None


class QueryGateway:
    """
    Applies search, filters, ordering and pagination for one collection.

    Works on a plain Query rather than a request, so ResourceStore.list and
    service code share it with the views. Search and the ordering allow-list
    are applied here instead of through DRF's SearchFilter and OrderingFilter
    backends, which need a request and a view; exact filters still go through
    a django-filter FilterSet.
    """

    def __init__(self, model, search_fields=(), filter_fields=(), ordering_fields=(), ordering=('-created_at',)):
        self.model = model
        self.search_fields = tuple(search_fields)
        self.filter_fields = tuple(filter_fields)
        self.ordering_fields = tuple(ordering_fields)
        self.ordering = tuple(ordering)
        self.filterset_class = (
            filterset_factory(model, filterset=FilterSet, fields=list(self.filter_fields))
            if self.filter_fields else None
        )

    def apply_filters(self, queryset, filters):
        data = {name: value for name, value in filters.items() if name in self.filter_fields}
        if not data or self.filterset_class is None:
            return queryset

        filterset = self.filterset_class(data=data, queryset=queryset)
        if not filterset.is_valid():
            name, messages = next(iter(filterset.errors.items()))
            raise ValidationError(f"Invalid value for filter '{name}': {messages[0]}", field=name)
        return filterset.qs

    def apply_search(self, queryset, search):
        if not search or not self.search_fields:
            return queryset

        for term in search.split():
            clauses = [Q(**{f"{name}__icontains": term}) for name in self.search_fields]
            queryset = queryset.filter(reduce(operator.or_, clauses))

        if any('__' in name for name in self.search_fields):
            queryset = queryset.distinct()
        return queryset

    def apply_ordering(self, queryset, ordering):
        if not ordering:
            return queryset.order_by(*self.ordering, 'pk')

        name = ordering.lstrip('-')
        if name not in self.ordering_fields:
            raise ValidationError(
                f"Cannot order by '{name}'. Allowed: {', '.join(self.ordering_fields)}.",
                field='ordering'
            )
        return queryset.order_by(ordering, 'pk')

    def filter(self, queryset, query):
        queryset = self.apply_filters(queryset, query.filters)
        queryset = self.apply_search(queryset, query.search)
        return self.apply_ordering(queryset, query.ordering)

    def paginate(self, queryset, query):
        paginator = Paginator(queryset, query.page_size)
        try:
            page = paginator.page(query.page)
        except EmptyPage:
            raise NotFoundError('Invalid page.', field='page')

        return Page(
            count=paginator.count,
            results=list(page.object_list),
            number=page.number,
            page_size=query.page_size,
            num_pages=paginator.num_pages,
        )

    def run(self, queryset, query):
        return self.paginate(self.filter(queryset, query), query)


def page_link(request, number):
    if number is None:
        return None
    url = request.build_absolute_uri()
    if number == 1:
        return remove_query_param(url, 'page')
    return replace_query_param(url, 'page', number)


def paginated_response(request, page, serializer_class, **extra):
    """Render a Page as the {count, next, previous, results} envelope."""
    data = {
        'count': page.count,
        'next': page_link(request, page.next_page),
        'previous': page_link(request, page.previous_page),
        'results': serializer_class(page.results, many=True, context={'request': request}).data,
    }
    data.update(extra)
    return Response(data)
