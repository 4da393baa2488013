"""
Plain-text consultation outputs: the short summary and the combined
consultation slip (visit, clinical, prescription and billing sections).
"""
from django.utils import timezone

from apps.billing.models import Bill
from apps.clinical.models import Prescription, Visit

from .repositories import Repository

SLIP_WIDTH = 44
NOT_AVAILABLE = 'N/A'


def _or_na(value):
    return value if value not in (None, '') else NOT_AVAILABLE


def _local(dt, fmt):
    return timezone.localtime(dt).strftime(fmt)


def _load_visit(visit_id):
    return Repository(Visit).get_by_id(visit_id)


def consultation_summary(visit_id):
    """
    Short plain-text summary of a consultation.

    Raises:
        NotFoundError: unknown visit
    """
    visit = _load_visit(visit_id)
    lines = [
        'Consultation Summary',
        '=' * 20,
        f'Date: {_local(visit.visit_date, "%d/%m/%Y %H:%M")}',
        f'Patient: {visit.patient.display_name} ({visit.patient.patient_number})',
        f'Doctor: {visit.doctor.display_name} ({visit.doctor.specialty})',
        f'Complaint: {_or_na(visit.chief_complaint)}',
        f'Diagnosis: {_or_na(visit.diagnosis)}',
        f'Status: {visit.get_status_display()}',
    ]
    if visit.follow_up_date:
        lines.append(f'Follow-up: {visit.follow_up_date:%d/%m/%Y}')
    return '\n'.join(lines) + '\n'


def _prescription_section(prescription):
    medicine_lines = list(
        prescription.medicine_lines.select_related('medicine', 'dose')
    ) if prescription else []
    if not medicine_lines:
        return ['PRESCRIPTION: No medicines prescribed', '']

    lines = ['PRESCRIPTION:', '-' * 13]
    for counter, line in enumerate(medicine_lines, start=1):
        lines.append(f'{counter}. {line.medicine}')
        lines.append(f'   Dosage: {line.dosage_display}')
        lines.append(f'   Duration: {line.duration_days} days')
        lines.append(f'   Quantity: {line.quantity}')
        if line.instructions:
            lines.append(f'   Instructions: {line.instructions}')
        lines.append('')

    advice = [entry.text for entry in prescription.advice_lines.select_related('advised')]
    if advice:
        lines.append('Advice:')
        lines.extend(f'  - {text}' for text in advice)
        lines.append('')
    return lines


def _billing_section(bill):
    if bill is None:
        return ['BILLING: No bill generated']

    lines = [
        'BILLING DETAILS:',
        '-' * 16,
        f'Bill No:      {bill.bill_number}',
        f'Bill Date:    {_local(bill.bill_date, "%d/%m/%Y")}',
        f'Consultation: {bill.consultation_fee:,.2f}',
    ]
    items = list(bill.items.all())
    if items:
        lines.append('Items:')
        lines.extend(f'  * {item.item_name} x {item.quantity}: {item.line_total:,.2f}' for item in items)
    if bill.discount_amount:
        lines.append(f'Discount:     -{bill.discount_amount:,.2f} ({bill.discount_percentage}%)')
    if bill.tax_amount:
        lines.append(f'Tax:          {bill.tax_amount:,.2f} ({bill.tax_percentage}%)')
    lines.extend([
        f'Total Amount: {bill.total_amount:,.2f}',
        f'Paid Amount:  {bill.paid_amount:,.2f}',
        f'Due Amount:   {bill.due_amount:,.2f}',
        f'Status:       {bill.get_status_display()}',
    ])
    return lines


def combined_slip(visit_id):
    """
    Printable consultation slip.

    Raises:
        NotFoundError: unknown visit
    """
    visit = _load_visit(visit_id)
    prescription = Prescription.objects.filter(visit=visit).first()
    bill = Bill.objects.filter(visit=visit).first()

    lines = [
        '=' * SLIP_WIDTH,
        'MEDICAL CONSULTATION SLIP'.center(SLIP_WIDTH),
        '=' * SLIP_WIDTH,
        '',
        f'DATE:        {_local(visit.visit_date, "%d/%m/%Y %I:%M %p")}',
        f'VISIT NO:    {visit.visit_number}',
        f'PATIENT:     {visit.patient.display_name}',
        f'DOCTOR:      {visit.doctor.display_name}',
    ]
    if visit.doctor.specialty:
        lines.append(f'SPECIALTY:   {visit.doctor.specialty}')
    lines.extend([
        '',
        'CLINICAL INFORMATION:',
        '-' * 21,
        f'Chief Complaint: {_or_na(visit.chief_complaint)}',
        f'Diagnosis:       {_or_na(visit.diagnosis)}',
    ])
    if visit.treatment_plan:
        lines.append(f'Treatment Plan:  {visit.treatment_plan}')
    if visit.follow_up_date:
        lines.append(f'Follow-up:       {visit.follow_up_date:%d/%m/%Y}')
    lines.append('')

    lines.extend(_prescription_section(prescription))
    lines.extend(_billing_section(bill))
    lines.extend([
        '',
        '=' * SLIP_WIDTH,
        'Thank you for your visit!',
    ])
    return '\n'.join(lines) + '\n'
