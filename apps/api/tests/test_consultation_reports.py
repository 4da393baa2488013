"""
Tests for the plain-text consultation summary and slip.
"""
import uuid
from decimal import Decimal

import pytest

from apps.clinical.models import Visit
from apps.consultations.exceptions import NotFoundError
from apps.consultations.reports import combined_slip, consultation_summary
from apps.consultations.services import complete_consultation


@pytest.mark.django_db
class TestConsultationSummary:

    def test_summary_lines(self, consultation_payload):
        result = complete_consultation(consultation_payload(
            consultation_details={'chief_complaint': 'Fever', 'diagnosis': 'Viral fever'},
            follow_up={'days': 3},
        ))

        text = consultation_summary(result.consultation_id)
        lines = text.splitlines()

        assert lines[0] == 'Consultation Summary'
        assert 'Patient: Mr. Test Patient' in text
        assert 'Doctor: Dr. Test Doctor (General Medicine)' in text
        assert 'Complaint: Fever' in lines
        assert 'Diagnosis: Viral fever' in lines
        assert 'Status: Completed' in lines
        assert any(line.startswith('Follow-up: ') for line in lines)

    def test_missing_values_shown_as_na(self, patient, doctor):
        visit = Visit.objects.create(patient=patient, doctor=doctor)

        text = consultation_summary(visit.id)

        assert 'Complaint: N/A' in text
        assert 'Diagnosis: N/A' in text
        assert 'Follow-up' not in text

    def test_unknown_visit(self):
        with pytest.raises(NotFoundError):
            consultation_summary(uuid.uuid4())


@pytest.mark.django_db
class TestCombinedSlip:

    def test_slip_sections(self, consultation_payload, advised):
        result = complete_consultation(consultation_payload(
            consultation_details={'chief_complaint': 'Fever', 'diagnosis': 'Viral fever'},
            advice=[{'advised_id': advised.id}],
            bill_items=[{'item_name': 'Dressing', 'quantity': 1, 'unit_price': Decimal('50.00')}],
            discount_percentage=Decimal('10'),
            tax_percentage=Decimal('5'),
            payment={'amount': Decimal('100.00'), 'payment_mode': 'cash'},
        ))

        text = combined_slip(result.consultation_id)

        assert 'MEDICAL CONSULTATION SLIP' in text
        assert f'VISIT NO:    {result.visit.visit_number}' in text
        assert 'Chief Complaint: Fever' in text
        assert '1. Paracetamol 500 mg' in text
        assert '   Dosage: BD (Twice daily)' in text
        assert '  - Drink plenty of fluids' in text
        assert '  * Dressing x 1: 50.00' in text
        # (300 + 50) * 0.9 * 1.05
        assert 'Total Amount: 330.75' in text
        assert 'Paid Amount:  100.00' in text
        assert 'Due Amount:   230.75' in text
        assert 'Status:       Partially Paid' in text
        assert text.rstrip().endswith('Thank you for your visit!')

    def test_slip_without_prescription_or_bill(self, patient, doctor):
        visit = Visit.objects.create(patient=patient, doctor=doctor)

        text = combined_slip(visit.id)

        assert 'PRESCRIPTION: No medicines prescribed' in text
        assert 'BILLING: No bill generated' in text

    def test_unknown_visit(self):
        with pytest.raises(NotFoundError) as exc_info:
            combined_slip(uuid.uuid4())

        assert exc_info.value.entity == 'Visit'
