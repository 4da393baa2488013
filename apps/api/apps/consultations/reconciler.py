"""
Aggregate reconciler.

Decides, for each aggregate of a consultation, whether to reuse an existing
row or create a new one. Resolution order is fixed:

    Patient -> Visit -> Prescription -> Bill

because Prescription and Bill are keyed by the Visit id. All lookups run
inside the caller's transaction; existing rows are locked with
``select_for_update`` so concurrent calls for the same patient serialize.
"""
from decimal import Decimal

from django.utils import timezone

from apps.billing.models import Bill
from apps.clinical.models import INACTIVE_VISIT_STATUSES, Patient, Prescription, Visit, VisitStatusChoices
from apps.core.observability import metrics
from apps.core.observability.logging import get_sanitized_logger

from .exceptions import ValidationError

logger = get_sanitized_logger(__name__)

LIVE_VISIT_STATUSES = [s for s in VisitStatusChoices.values if s not in INACTIVE_VISIT_STATUSES]


def resolve_patient(uow, patient_selector, performed_by=None):
    """
    Create the patient from a new-patient payload or fetch (and lock) an
    existing one.

    Returns:
        (patient, created)

    Raises:
        ValidationError: neither a new-patient payload nor an existing id
        NotFoundError: existing patient id does not resolve
    """
    selector = patient_selector or {}
    new_patient = selector.get('new_patient')
    existing_id = selector.get('existing_patient_id')

    if selector.get('is_new_patient') and new_patient:
        patient = Patient(
            title=new_patient.get('title') or '',
            name=(new_patient.get('name') or '').strip(),
            sex=(new_patient.get('gender') or 'unknown').strip().lower(),
            mobile=(new_patient.get('mobile') or '').strip(),
            birth_date=new_patient.get('dob'),
            email=new_patient.get('email') or '',
            address=new_patient.get('address') or '',
            created_by_user=performed_by,
        )
        uow.patients.add(patient)
        logger.info(
            'Patient registered during consultation',
            extra={'event': 'patient_created', 'patient_id': str(patient.id)}
        )
        return patient, True

    if existing_id:
        return uow.patients.get_by_id(existing_id, for_update=True), False

    raise ValidationError({
        'patient': 'Either a new patient payload or an existing patient id is required'
    })


def resolve_doctor(uow, doctor_id):
    doctor = uow.doctors.get_by_id(doctor_id)
    if not doctor.is_active:
        raise ValidationError({'doctor_id': f'Doctor {doctor_id} is not active'})
    return doctor


def resolve_visit(uow, patient, doctor, *, allow_multiple=False, performed_by=None, now=None):
    """
    Reuse today's live visit for (patient, doctor) or create one.

    A new visit is immediately moved checked_in -> in_progress. When
    ``allow_multiple`` is set and a live visit already exists, the new one is
    flagged ``is_additional_visit`` so the per-day uniqueness rule does not
    apply to it. Without ``allow_multiple`` the earliest live visit of the
    day is reused, additional or not.

    Returns:
        (visit, reused)
    """
    now = now or timezone.now()
    today = timezone.localdate(now)

    existing = uow.visits.find_one(
        for_update=True,
        order_by=['visit_date'],
        patient=patient,
        doctor=doctor,
        visit_day=today,
        status__in=LIVE_VISIT_STATUSES,
    )

    if existing is not None and not allow_multiple:
        metrics.consultation_aggregates_reused_total.labels(aggregate='visit').inc()
        return existing, True

    visit = Visit(
        patient=patient,
        doctor=doctor,
        visit_date=now,
        is_additional_visit=existing is not None,
        created_by_user=performed_by,
        updated_by_user=performed_by,
    )
    visit.start_consultation(user=performed_by)
    uow.visits.add(visit)
    return visit, False


def resolve_prescription(uow, visit, *, override_existing=False, performed_by=None):
    """
    Reuse the visit's prescription or create and link a new one.

    With ``override_existing`` the reused prescription's medicine, complaint
    and advice lines are removed before the new ones are added.

    Returns:
        (prescription, reused)
    """
    prescription = uow.prescriptions.find_one(for_update=True, visit=visit)

    if prescription is not None:
        metrics.consultation_aggregates_reused_total.labels(aggregate='prescription').inc()
        if override_existing:
            removed = prescription.clear_lines()
            logger.info(
                'Prescription lines cleared for override',
                extra={
                    'event': 'prescription_lines_cleared',
                    'prescription_id': str(prescription.id),
                    'lines_removed': removed,
                }
            )
        visit.link_prescription(prescription)
        return prescription, True

    prescription = Prescription(
        visit=visit,
        patient=visit.patient,
        doctor=visit.doctor,
        created_by_user=performed_by,
    )
    uow.prescriptions.add(prescription)
    visit.link_prescription(prescription)
    return prescription, False


def resolve_bill(uow, visit, *, consultation_fee, discount_percentage, tax_percentage,
                 items=None, performed_by=None):
    """
    Reuse the visit's bill (updating discount and tax) or create one.

    A new bill gets the consultation fee and extra items, then discount and
    tax, and is generated (draft -> generated) before being linked to the
    visit. The fee and items of a reused bill are left as they are.

    Returns:
        (bill, reused)
    """
    bill = uow.bills.find_one(for_update=True, visit=visit)

    if bill is not None:
        metrics.consultation_aggregates_reused_total.labels(aggregate='bill').inc()
        if items:
            logger.warning(
                'Extra bill items ignored for an existing bill',
                extra={'event': 'bill_items_ignored', 'bill_id': str(bill.id), 'items': len(items)}
            )
        bill.apply_discount(discount_percentage)
        bill.apply_tax(tax_percentage)
        uow.bills.update(bill)
        visit.link_bill(bill)
        return bill, True

    fee = Decimal(consultation_fee)
    if fee < 0:
        raise ValidationError({'consultation_fee': 'Consultation fee cannot be negative'})

    bill = Bill(
        visit=visit,
        patient=visit.patient,
        doctor=visit.doctor,
        consultation_fee=fee,
        created_by_user=performed_by,
    )
    bill.recalculate_totals()
    uow.bills.add(bill)
    for item in items or []:
        bill.add_item(item['item_name'], item.get('quantity', 1), item['unit_price'])
    bill.apply_discount(discount_percentage)
    bill.apply_tax(tax_percentage)
    bill.generate()
    uow.bills.update(bill)
    visit.link_bill(bill)
    return bill, False
