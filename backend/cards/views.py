import logging

from rest_framework import status, viewsets
from rest_framework.decorators import action, api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from core.permissions import IsAdministrator, IsOperator
from core.querying import Query, paginated_response
from staff.models import Staff
from staff.serializers import StaffWithoutCardSerializer
from students.models import Student
from students.serializers import StudentWithoutCardSerializer

from .lifecycle import CredentialLifecycleManager
from .models import Card
from .provisioning import BulkProvisioningEngine
from .serializers import (
    BulkIssueSerializer, BulkStaffCardsSerializer, BulkStudentCardsSerializer,
    CardIssueSerializer, CardListSerializer, CardSerializer, CardUpdateSerializer,
)
from .subjects import SubjectRef

logger = logging.getLogger(__name__)


class CardViewSet(viewsets.ViewSet):
    """
    Card issuance and lifecycle.

    Permissions:
    - Administrators: everything, including delete and restore
    - Registration Officers: view, issue, update, activate and deactivate
    """
    lookup_field = 'card_uuid'
    permission_classes = [IsOperator]

    def get_permissions(self):
        if self.action in ['destroy', 'restore']:
            permission_classes = [IsAdministrator]
        else:
            permission_classes = [IsOperator]
        return [permission() for permission in permission_classes]

    def get_manager(self):
        return CredentialLifecycleManager(actor=self.request.user)

    def list(self, request):
        page = self.get_manager().list(Query.from_params(request.query_params))

        live = Card.objects.alive()
        total_cards = live.count()
        active_cards = live.filter(is_active=True).count()
        return paginated_response(request, page, CardListSerializer, summary={
            'total_cards': total_cards,
            'active_cards': active_cards,
            'inactive_cards': total_cards - active_cards,
        })

    def create(self, request):
        serializer = CardIssueSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        card = self.get_manager().issue(
            serializer.subject_ref(),
            generate_rfid=data['generate_rfid'],
            rfid_number=data.get('rfid_number'),
            expiry_date=data.get('expiry_date'),
        )
        return Response(CardSerializer(card).data, status=status.HTTP_201_CREATED)

    def retrieve(self, request, card_uuid=None):
        card = self.get_manager().get(card_uuid)
        return Response(CardSerializer(card).data)

    def update(self, request, card_uuid=None):
        serializer = CardUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        card = self.get_manager().update(card_uuid, **serializer.validated_data)
        return Response(CardSerializer(card).data)

    def partial_update(self, request, card_uuid=None):
        return self.update(request, card_uuid)

    def destroy(self, request, card_uuid=None):
        record = self.get_manager().delete(card_uuid)
        return Response({
            'message': 'Card soft deleted successfully',
            'deleted_at': record.deleted_at,
        }, status=status.HTTP_200_OK)

    @action(detail=True, methods=['post'], url_path='restore')
    def restore(self, request, card_uuid=None):
        card = self.get_manager().restore(card_uuid)
        return Response({
            'message': 'Card restored successfully',
            'data': CardSerializer(card).data,
        }, status=status.HTTP_200_OK)

    @action(detail=True, methods=['patch'], url_path='deactivate')
    def deactivate_card(self, request, card_uuid=None):
        card = self.get_manager().deactivate(card_uuid)
        return Response({
            'message': 'Card deactivated successfully.',
            'data': CardSerializer(card).data
        }, status=status.HTTP_200_OK)

    @action(detail=True, methods=['patch'], url_path='activate')
    def activate_card(self, request, card_uuid=None):
        card = self.get_manager().activate(card_uuid)
        return Response({
            'message': 'Card activated successfully.',
            'data': CardSerializer(card).data
        }, status=status.HTTP_200_OK)

    def _bulk_response(self, result, label):
        return Response({
            'message': f'Created {len(result.created)} {label}, {len(result.errors)} errors.',
            'created_cards': CardListSerializer(result.created, many=True).data,
            'errors': result.errors,
            'summary': result.summary,
        }, status=status.HTTP_201_CREATED)

    def _bulk_issue(self, serializer, label):
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        engine = BulkProvisioningEngine(manager=self.get_manager())
        result = engine.bulk_issue(
            serializer.subject_refs_list(),
            generate_rfid=data['generate_rfid'],
            expiry_date=data.get('expiry_date'),
        )
        return self._bulk_response(result, label)

    @action(detail=False, methods=['post'], url_path='bulk-issue')
    def bulk_issue(self, request):
        return self._bulk_issue(BulkIssueSerializer(data=request.data), 'cards')

    @action(detail=False, methods=['post'], url_path='bulk-create-student-cards')
    def bulk_create_student_cards(self, request):
        return self._bulk_issue(BulkStudentCardsSerializer(data=request.data), 'student cards')

    @action(detail=False, methods=['post'], url_path='bulk-create-staff-cards')
    def bulk_create_staff_cards(self, request):
        return self._bulk_issue(BulkStaffCardsSerializer(data=request.data), 'staff cards')

    @action(detail=False, methods=['get'], url_path='students-without-cards')
    def students_without_cards(self, request):
        """
        Active students holding no live card.
        """
        students = Student.objects.without_live_card().search(request.query_params.get('search', ''))

        department = request.query_params.get('department', '')
        if department:
            students = students.filter(department__icontains=department)

        count = students.count()
        return Response({
            'count': count,
            'students': StudentWithoutCardSerializer(students, many=True).data,
            'message': f'Found {count} students without cards.'
        }, status=status.HTTP_200_OK)

    @action(detail=False, methods=['get'], url_path='staff-without-cards')
    def staff_without_cards(self, request):
        staff = Staff.objects.without_live_card().search(request.query_params.get('search', ''))

        department = request.query_params.get('department', '')
        if department:
            staff = staff.filter(department__icontains=department)

        count = staff.count()
        return Response({
            'count': count,
            'staff': StaffWithoutCardSerializer(staff, many=True).data,
            'message': f'Found {count} staff without cards.'
        }, status=status.HTTP_200_OK)


@api_view(['GET'])
@permission_classes([AllowAny])
def verify_subject(request, subject_type, subject_uuid):
    """
    Public endpoint behind the QR code printed on a card. Always answers 200;
    an unknown subject or one without a live card is just ``verified: false``.
    """
    result = CredentialLifecycleManager().verify(SubjectRef(subject_type, subject_uuid))
    logger.info(
        f"Verification of {subject_type} {subject_uuid} from IP {request.META.get('REMOTE_ADDR')}: "
        f"{'verified' if result.verified else 'not verified'}"
    )
    return Response(result.as_dict(), status=status.HTTP_200_OK)
