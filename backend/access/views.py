from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from core.permissions import IsOperator
from core.querying import Query, QueryGateway, paginated_response

from .models import AccessLog
from .serializers import AccessLogSerializer, AccessRequestSerializer
from .services import evaluate_access


def get_client_ip(request):
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        return x_forwarded_for.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR')


class AccessGrantView(APIView):
    """
    RFID access check called by gate readers. Readers are not users, so the
    endpoint is open; it only reads card state and appends a log entry.
    """
    authentication_classes = []
    permission_classes = [AllowAny]

    def post(self, request):
        serializer = AccessRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        decision = evaluate_access(
            serializer.validated_data['rfid_number'],
            hardware_id=serializer.validated_data.get('hardware_id') or None,
            ip_address=get_client_ip(request),
        )

        response_data = {
            'access_granted': decision.granted,
            'message': decision.message,
            'denial_reason': decision.denial_reason,
            'response_time': decision.log.response_time_ms,
        }
        if decision.granted:
            response_data['person'] = {
                'name': decision.card.card_holder_name,
                'number': decision.card.card_holder_number,
                'department': decision.card.department,
                'card_type': decision.card.card_type,
            }
        return Response(response_data, status=status.HTTP_200_OK)


class AccessLogListView(APIView):
    permission_classes = [IsOperator]

    gateway = QueryGateway(
        AccessLog,
        search_fields=(
            'rfid_number', 'hardware_id', 'card__student__first_name', 'card__student__surname',
            'card__student__registration_number', 'card__staff__first_name',
            'card__staff__surname', 'card__staff__staff_number', 'gate__gate_code',
        ),
        filter_fields=('access_status', 'denial_reason', 'card__card_type', 'gate'),
        ordering_fields=('timestamp', 'access_status', 'rfid_number', 'response_time_ms'),
        ordering=('-timestamp',),
    )

    def get(self, request):
        queryset = AccessLog.objects.select_related('card__student', 'card__staff', 'gate')
        page = self.gateway.run(queryset, Query.from_params(request.query_params))
        return paginated_response(request, page, AccessLogSerializer)
