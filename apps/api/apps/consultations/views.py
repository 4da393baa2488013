"""Consultation views."""
from django.http import HttpResponse
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.clinical.serializers import VisitSerializer
from apps.core.observability import get_sanitized_logger

from .exceptions import NotFoundError, TransientInfraError, UnexpectedError, ValidationError
from .permissions import ConsultationPermission
from .reports import combined_slip, consultation_summary
from .serializers import (
    CompleteConsultationSerializer,
    ConsultationDetailsSerializer,
    ConsultationResultSerializer,
    QuickConsultationSerializer,
)
from .services import complete_consultation, quick_consultation, update_consultation

logger = get_sanitized_logger(__name__)


def _validation_payload(e):
    payload = {'error': 'Validation failed'}
    if hasattr(e, 'message_dict'):
        payload['errors'] = e.message_dict
    else:
        payload['errors'] = {'non_field_errors': e.messages}
    return payload


def consultation_error_response(e):
    """Map workflow errors to HTTP responses."""
    if isinstance(e, ValidationError):
        return Response(_validation_payload(e), status=status.HTTP_400_BAD_REQUEST)
    if isinstance(e, NotFoundError):
        return Response(
            {'error': str(e), 'entity': e.entity},
            status=status.HTTP_404_NOT_FOUND
        )
    if isinstance(e, TransientInfraError):
        return Response(
            {'error': 'Service temporarily unavailable, please retry'},
            status=status.HTTP_503_SERVICE_UNAVAILABLE
        )
    return Response(
        {'error': UnexpectedError.default_message},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR
    )


class ConsultationViewSet(viewsets.ViewSet):
    """
    Consultation Completion Workflow endpoints.

    - POST  /consultations/complete/             - Complete a consultation
    - POST  /consultations/quick/                - Quick consultation (standard prescription)
    - PATCH /consultations/{visit_id}/clinical/  - Partial clinical update
    - GET   /consultations/{visit_id}/summary/   - Plain-text summary
    - GET   /consultations/{visit_id}/slip/      - Plain-text printable slip
    """
    permission_classes = [ConsultationPermission]
    lookup_field = 'visit_id'
    lookup_value_regex = '[0-9a-fA-F-]{36}'

    def _result_response(self, result):
        return Response(
            ConsultationResultSerializer(result).data,
            status=status.HTTP_201_CREATED
        )

    @action(detail=False, methods=['post'], url_path='complete')
    def complete(self, request):
        """
        Complete a consultation.

        Returns:
        - 201: ConsultationResult
        - 400: Validation error (nothing persisted)
        - 404: Unknown patient/doctor/medicine/dose/... id (nothing persisted)
        - 503: Store kept failing transiently
        """
        serializer = CompleteConsultationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            result = complete_consultation(serializer.validated_data, performed_by=request.user)
        except (ValidationError, NotFoundError, TransientInfraError, UnexpectedError) as e:
            logger.warning(
                'Consultation completion failed',
                extra={'event': 'consultation_failed', 'error_type': e.__class__.__name__}
            )
            return consultation_error_response(e)

        return self._result_response(result)

    @action(detail=False, methods=['post'], url_path='quick')
    def quick(self, request):
        serializer = QuickConsultationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            result = quick_consultation(
                data['patient_id'],
                data['doctor_id'],
                data['chief_complaint'],
                data['diagnosis'],
                data['medicine_ids'],
                performed_by=request.user,
            )
        except (ValidationError, NotFoundError, TransientInfraError, UnexpectedError) as e:
            logger.warning(
                'Quick consultation failed',
                extra={'event': 'quick_consultation_failed', 'error_type': e.__class__.__name__}
            )
            return consultation_error_response(e)

        return self._result_response(result)

    @action(detail=True, methods=['patch'], url_path='clinical')
    def clinical(self, request, visit_id=None):
        serializer = ConsultationDetailsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            visit = update_consultation(visit_id, serializer.validated_data, performed_by=request.user)
        except (ValidationError, NotFoundError, TransientInfraError, UnexpectedError) as e:
            return consultation_error_response(e)

        return Response(VisitSerializer(visit).data, status=status.HTTP_200_OK)

    @action(detail=True, methods=['get'], url_path='summary')
    def summary(self, request, visit_id=None):
        try:
            text = consultation_summary(visit_id)
        except NotFoundError as e:
            return consultation_error_response(e)
        return HttpResponse(text, content_type='text/plain; charset=utf-8')

    @action(detail=True, methods=['get'], url_path='slip')
    def slip(self, request, visit_id=None):
        try:
            text = combined_slip(visit_id)
        except NotFoundError as e:
            return consultation_error_response(e)
        return HttpResponse(text, content_type='text/plain; charset=utf-8')
