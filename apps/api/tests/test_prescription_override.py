"""
Tests for prescription reuse and override_existing.

Override replaces the medicine, complaint and advice lines of the visit's
prescription; the re-added lines are validated like new ones.
"""
from decimal import Decimal

import pytest
from django.core.exceptions import ValidationError

from apps.clinical.models import Prescription, PrescriptionMedicine
from apps.consultations.services import complete_consultation


def _line(medicine, dose, quantity=10, duration_days=5):
    return {
        'medicine_id': medicine.id,
        'dose_id': dose.id,
        'duration_days': duration_days,
        'quantity': quantity,
    }


@pytest.mark.django_db
class TestPrescriptionOverride:

    def test_override_replaces_medicine_lines(self, consultation_payload, second_medicine, dose):
        first = complete_consultation(consultation_payload())

        result = complete_consultation(consultation_payload(
            override_existing=True,
            medicines=[_line(second_medicine, dose, quantity=4)],
        ))

        assert result.prescription.id == first.prescription.id
        lines = list(result.prescription.medicine_lines.all())
        assert len(lines) == 1
        assert lines[0].medicine_id == second_medicine.id
        assert lines[0].quantity == 4
        assert lines[0].sort_order == 1

    def test_override_clears_advice_and_complaints(self, consultation_payload, advised, complaint):
        complete_consultation(consultation_payload(
            advice=[{'advised_id': advised.id}],
            complaints=[{'complaint_id': complaint.id}],
        ))

        result = complete_consultation(consultation_payload(
            override_existing=True,
            advice=[{'custom_advice': 'Rest for two days'}],
        ))

        assert [a.text for a in result.prescription.advice_lines.all()] == ['Rest for two days']
        assert result.prescription.complaint_lines.count() == 0

    def test_override_revalidates_stock(self, consultation_payload, medicine, dose):
        first = complete_consultation(consultation_payload())
        medicine.current_stock = 3
        medicine.save()

        with pytest.raises(ValidationError) as exc_info:
            complete_consultation(consultation_payload(
                override_existing=True,
                medicines=[_line(medicine, dose, quantity=10)],
            ))

        assert 'quantity' in exc_info.value.message_dict
        # Rolled back: the original line is still there
        prescription = Prescription.objects.get(pk=first.prescription.id)
        assert prescription.medicine_lines.count() == 1

    def test_override_revalidates_active_flag(self, consultation_payload, medicine, dose):
        complete_consultation(consultation_payload())
        medicine.is_active = False
        medicine.save()

        with pytest.raises(ValidationError) as exc_info:
            complete_consultation(consultation_payload(
                override_existing=True,
                medicines=[_line(medicine, dose)],
            ))

        assert 'medicine_id' in exc_info.value.message_dict

    def test_stock_is_not_decremented(self, consultation_payload, medicine):
        complete_consultation(consultation_payload())

        medicine.refresh_from_db()
        assert medicine.current_stock == 100

    def test_stock_checked_across_lines_of_same_medicine(self, consultation_payload, medicine, dose):
        with pytest.raises(ValidationError) as exc_info:
            complete_consultation(consultation_payload(medicines=[
                _line(medicine, dose, quantity=60),
                _line(medicine, dose, quantity=60),
            ]))

        assert 'quantity' in exc_info.value.message_dict
        assert Prescription.objects.count() == 0

    def test_stock_checked_against_lines_from_earlier_call(self, consultation_payload, medicine, dose):
        first = complete_consultation(consultation_payload(medicines=[_line(medicine, dose, quantity=60)]))

        with pytest.raises(ValidationError):
            complete_consultation(consultation_payload(medicines=[_line(medicine, dose, quantity=60)]))

        prescription = Prescription.objects.get(pk=first.prescription.id)
        assert prescription.medicine_lines.count() == 1

    def test_override_without_existing_prescription_creates_one(self, consultation_payload):
        result = complete_consultation(consultation_payload(override_existing=True))

        assert result.reused['prescription'] is False
        assert result.prescription.medicine_lines.count() == 1

    def test_invalid_line_values_rejected(self, consultation_payload, medicine, dose):
        with pytest.raises(ValidationError) as exc_info:
            complete_consultation(consultation_payload(
                medicines=[_line(medicine, dose, quantity=0, duration_days=0)],
            ))

        assert {'quantity', 'duration_days'} <= set(exc_info.value.message_dict)
        assert PrescriptionMedicine.objects.count() == 0

    def test_inactive_dose_rejected(self, consultation_payload, dose):
        dose.is_active = False
        dose.save()

        with pytest.raises(ValidationError) as exc_info:
            complete_consultation(consultation_payload())

        assert 'dose_id' in exc_info.value.message_dict

    def test_prescription_carries_diagnosis_without_medicines(self, consultation_payload):
        result = complete_consultation(consultation_payload(
            medicines=[],
            consultation_details={'chief_complaint': 'Cough', 'diagnosis': 'URTI'},
            consultation_fee=Decimal('150.00'),
        ))

        assert result.prescription is not None
        assert result.prescription.diagnosis == 'URTI'
        assert result.prescription.medicine_lines.count() == 0
