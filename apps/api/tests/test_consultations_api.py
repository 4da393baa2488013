"""
API tests for /api/v1/consultations/.

Status codes:
- 201 completed
- 400 request shape or domain validation
- 404 unknown id
- 503 transient store failure after retries
- 500 unexpected failure (generic message only)
"""
import uuid
from decimal import Decimal

import pytest
from django.urls import reverse
from rest_framework import status

from apps.billing.models import Bill
from apps.clinical.models import Visit, VisitStatusChoices
from apps.consultations import views
from apps.consultations.exceptions import TransientInfraError, UnexpectedError
from apps.consultations.services import complete_consultation


def _complete_url():
    return reverse('consultation-complete')


def _quick_url():
    return reverse('consultation-quick')


def _detail_url(name, visit_id):
    return reverse(f'consultation-{name}', kwargs={'visit_id': str(visit_id)})


@pytest.fixture
def request_body(patient, doctor, medicine, dose):
    return {
        'patient': {'is_new_patient': False, 'existing_patient_id': str(patient.id)},
        'doctor_id': str(doctor.id),
        'consultation_details': {
            'chief_complaint': 'Fever for 3 days',
            'temperature': '101.2',
            'pulse': 92,
        },
        'medicines': [
            {
                'medicine_id': str(medicine.id),
                'dose_id': str(dose.id),
                'duration_days': 5,
                'quantity': 10,
                'instructions': 'After food',
            },
        ],
        'consultation_fee': '300.00',
        'discount_percentage': '10',
        'tax_percentage': '5',
        'payment': {'amount': '283.50', 'payment_mode': 'Cash', 'transaction_id': 'TXN-1'},
    }


@pytest.fixture
def completed_visit(consultation_payload):
    result = complete_consultation(consultation_payload(
        consultation_details={
            'chief_complaint': 'Fever',
            'diagnosis': 'Viral fever',
            'temperature': Decimal('101.2'),
        },
    ))
    return result.visit


@pytest.mark.django_db
class TestCompleteEndpoint:

    def test_complete_returns_201_with_result(self, practitioner_client, request_body):
        response = practitioner_client.post(_complete_url(), request_body, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data['total_amount'] == '283.50'
        assert data['paid_amount'] == '283.50'
        assert data['due_amount'] == '0.00'
        assert data['is_fully_paid'] is True
        assert data['visit']['status'] == VisitStatusChoices.COMPLETED
        assert data['consultation_id'] == data['visit']['id']
        assert len(data['prescription']['medicines']) == 1
        assert data['bill']['status'] == 'paid'
        assert data['reused']['visit'] is False

    def test_performed_by_recorded(self, practitioner_client, practitioner_user, request_body):
        response = practitioner_client.post(_complete_url(), request_body, format='json')

        visit = Visit.objects.get(pk=response.json()['consultation_id'])
        assert visit.created_by_user == practitioner_user
        assert visit.bill.payments.get().received_by_user == practitioner_user

    def test_new_patient_registration(self, practitioner_client, request_body):
        request_body['patient'] = {
            'is_new_patient': True,
            'new_patient': {'name': 'Ravi Kumar', 'gender': 'Male', 'mobile': '9988776655'},
        }

        response = practitioner_client.post(_complete_url(), request_body, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()['patient']['sex'] == 'male'
        assert response.json()['reused']['new_patient'] is True

    def test_malformed_request_returns_400(self, practitioner_client, request_body):
        del request_body['doctor_id']
        request_body['payment']['payment_mode'] = 'cheque'

        response = practitioner_client.post(_complete_url(), request_body, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'doctor_id' in response.json()
        assert 'payment' in response.json()

    def test_patient_selector_required(self, practitioner_client, request_body):
        request_body['patient'] = {'is_new_patient': True}

        response = practitioner_client.post(_complete_url(), request_body, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert Visit.objects.count() == 0

    def test_domain_validation_returns_400(self, practitioner_client, request_body):
        request_body['consultation_details'] = {'diagnosis': 'Viral fever'}

        response = practitioner_client.post(_complete_url(), request_body, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        data = response.json()
        assert data['error'] == 'Validation failed'
        assert 'chief_complaint' in data['errors']
        assert Visit.objects.count() == 0

    def test_overpayment_returns_400(self, practitioner_client, request_body):
        request_body['payment']['amount'] = '500.00'

        response = practitioner_client.post(_complete_url(), request_body, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'amount' in response.json()['errors']
        assert Bill.objects.count() == 0

    def test_unknown_medicine_returns_404(self, practitioner_client, request_body):
        request_body['medicines'][0]['medicine_id'] = str(uuid.uuid4())

        response = practitioner_client.post(_complete_url(), request_body, format='json')

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()['entity'] == 'Medicine'
        assert Visit.objects.count() == 0

    def test_transient_failure_returns_503(self, practitioner_client, request_body, monkeypatch):
        def failing(*args, **kwargs):
            raise TransientInfraError('complete_consultation', 4)

        monkeypatch.setattr(views, 'complete_consultation', failing)

        response = practitioner_client.post(_complete_url(), request_body, format='json')

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE

    def test_unexpected_failure_returns_generic_500(self, practitioner_client, request_body, monkeypatch):
        def failing(*args, **kwargs):
            raise UnexpectedError()

        monkeypatch.setattr(views, 'complete_consultation', failing)

        response = practitioner_client.post(_complete_url(), request_body, format='json')

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json() == {'error': UnexpectedError.default_message}

    def test_second_post_reuses_aggregates(self, practitioner_client, request_body):
        first = practitioner_client.post(_complete_url(), request_body, format='json').json()
        request_body['payment'] = None
        second = practitioner_client.post(_complete_url(), request_body, format='json').json()

        assert second['consultation_id'] == first['consultation_id']
        assert second['bill']['id'] == first['bill']['id']
        assert second['reused'] == {
            'visit': True,
            'prescription': True,
            'bill': True,
            'new_patient': False,
        }


@pytest.mark.django_db
class TestQuickEndpoint:

    def test_quick_returns_201(self, practitioner_client, patient, doctor, medicine, dose):
        response = practitioner_client.post(_quick_url(), {
            'patient_id': str(patient.id),
            'doctor_id': str(doctor.id),
            'chief_complaint': 'Sore throat',
            'diagnosis': 'Pharyngitis',
            'medicine_ids': [str(medicine.id)],
        }, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()['is_fully_paid'] is True

    def test_quick_requires_medicines(self, practitioner_client, patient, doctor):
        response = practitioner_client.post(_quick_url(), {
            'patient_id': str(patient.id),
            'doctor_id': str(doctor.id),
            'chief_complaint': 'Sore throat',
            'diagnosis': 'Pharyngitis',
            'medicine_ids': [],
        }, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'medicine_ids' in response.json()


@pytest.mark.django_db
class TestClinicalUpdateEndpoint:

    def test_partial_update(self, practitioner_client, completed_visit):
        response = practitioner_client.patch(
            _detail_url('clinical', completed_visit.id),
            {'treatment_plan': 'Paracetamol and rest'},
            format='json',
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data['treatment_plan'] == 'Paracetamol and rest'
        assert data['diagnosis'] == 'Viral fever'
        assert data['temperature'] == '101.2'

    def test_unknown_visit_returns_404(self, practitioner_client):
        response = practitioner_client.patch(
            _detail_url('clinical', uuid.uuid4()), {'diagnosis': 'x'}, format='json'
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()['entity'] == 'Visit'

    def test_cancelled_visit_returns_400(self, practitioner_client, patient, doctor):
        visit = Visit.objects.create(patient=patient, doctor=doctor)
        visit.cancel('Duplicate registration')
        visit.save()

        response = practitioner_client.patch(
            _detail_url('clinical', visit.id), {'diagnosis': 'x'}, format='json'
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'status' in response.json()['errors']


@pytest.mark.django_db
class TestTextOutputs:

    def test_summary_is_plain_text(self, practitioner_client, completed_visit):
        response = practitioner_client.get(_detail_url('summary', completed_visit.id))

        assert response.status_code == status.HTTP_200_OK
        assert response['Content-Type'].startswith('text/plain')
        assert b'Consultation Summary' in response.content

    def test_slip_is_plain_text(self, practitioner_client, completed_visit):
        response = practitioner_client.get(_detail_url('slip', completed_visit.id))

        assert response.status_code == status.HTTP_200_OK
        assert b'MEDICAL CONSULTATION SLIP' in response.content

    def test_unknown_visit_summary_returns_404(self, practitioner_client):
        response = practitioner_client.get(_detail_url('summary', uuid.uuid4()))

        assert response.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.django_db
class TestConsultationPermissions:

    def test_unauthenticated_is_rejected(self, api_client, request_body):
        response = api_client.post(_complete_url(), request_body, format='json')

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_admin_can_complete(self, admin_client, request_body):
        response = admin_client.post(_complete_url(), request_body, format='json')

        assert response.status_code == status.HTTP_201_CREATED

    def test_reception_cannot_complete(self, reception_client, request_body):
        response = reception_client.post(_complete_url(), request_body, format='json')

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert Visit.objects.count() == 0

    def test_reception_can_print_slip(self, reception_client, completed_visit):
        response = reception_client.get(_detail_url('slip', completed_visit.id))

        assert response.status_code == status.HTTP_200_OK

    def test_reception_cannot_update_clinical_details(self, reception_client, completed_visit):
        response = reception_client.patch(
            _detail_url('clinical', completed_visit.id), {'diagnosis': 'x'}, format='json'
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_accounting_has_no_access(self, accounting_client, completed_visit):
        response = accounting_client.get(_detail_url('summary', completed_visit.id))

        assert response.status_code == status.HTTP_403_FORBIDDEN
