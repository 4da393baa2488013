"""
Tests for the quick consultation path (standard prescription, settled in cash).
"""
import uuid
from decimal import Decimal

import pytest
from django.core.exceptions import ValidationError

from apps.billing.models import BillStatusChoices, PaymentModeChoices
from apps.clinical.models import Visit, VisitStatusChoices
from apps.consultations.exceptions import NotFoundError
from apps.consultations.services import (
    QUICK_CONSULTATION_NOTE,
    quick_consultation,
)


@pytest.fixture
def quick(patient, doctor, medicine):
    def run(**overrides):
        kwargs = {
            'patient_id': patient.id,
            'doctor_id': doctor.id,
            'chief_complaint': 'Sore throat',
            'diagnosis': 'Pharyngitis',
            'medicine_ids': [medicine.id],
        }
        kwargs.update(overrides)
        return quick_consultation(**kwargs)
    return run


@pytest.mark.django_db
class TestQuickConsultation:

    def test_completes_and_settles_in_cash(self, quick, dose, doctor):
        result = quick()

        assert result.visit.status == VisitStatusChoices.COMPLETED
        assert result.bill.consultation_fee == doctor.consultation_fee
        assert result.is_fully_paid is True
        assert result.due_amount == Decimal('0.00')
        assert result.bill.status == BillStatusChoices.PAID

        payment = result.bill.payments.get()
        assert payment.payment_mode == PaymentModeChoices.CASH
        assert payment.amount == result.total_amount
        assert payment.transaction_id.startswith('QC_')

    def test_standard_prescription_lines(self, quick, dose, dose_od, medicine, second_medicine):
        result = quick(medicine_ids=[medicine.id, second_medicine.id])

        lines = list(result.prescription.medicine_lines.all())
        assert [line.medicine_id for line in lines] == [medicine.id, second_medicine.id]
        for line in lines:
            assert line.dose_id == dose.id
            assert line.duration_days == 5
            assert line.quantity == 1
            assert line.instructions == 'After food'
        assert result.prescription.diagnosis == 'Pharyngitis'

    def test_falls_back_to_od_without_bd(self, quick, dose_od):
        result = quick()

        assert result.prescription.medicine_lines.get().dose_id == dose_od.id

    def test_no_active_dose_is_a_validation_error(self, quick):
        with pytest.raises(ValidationError) as exc_info:
            quick()

        assert 'dose_id' in exc_info.value.message_dict

    def test_records_quick_consultation_note(self, quick, dose):
        result = quick()

        visit = Visit.objects.get(pk=result.consultation_id)
        assert visit.clinical_notes == QUICK_CONSULTATION_NOTE
        assert visit.chief_complaint == 'Sore throat'
        assert visit.diagnosis == 'Pharyngitis'

    def test_second_call_same_day_reuses_settled_bill(self, quick, dose):
        first = quick()
        second = quick()

        # Same day: the second call reuses the visit and bill, nothing left to pay
        assert second.consultation_id == first.consultation_id
        assert second.bill.payments.count() == 1

    @pytest.mark.parametrize('field, value', [
        ('chief_complaint', '  '),
        ('diagnosis', ''),
        ('medicine_ids', []),
        ('patient_id', None),
    ])
    def test_required_inputs(self, quick, dose, field, value):
        with pytest.raises(ValidationError) as exc_info:
            quick(**{field: value})

        assert field in exc_info.value.message_dict
        assert Visit.objects.count() == 0

    def test_unknown_doctor(self, quick, dose):
        with pytest.raises(NotFoundError) as exc_info:
            quick(doctor_id=uuid.uuid4())

        assert exc_info.value.entity == 'Doctor'

    def test_unknown_medicine_rolls_back(self, quick, dose):
        with pytest.raises(NotFoundError):
            quick(medicine_ids=[uuid.uuid4()])

        assert Visit.objects.count() == 0
