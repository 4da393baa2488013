"""
Mutation appliers for the consultation workflow.

Clinical details follow partial-update semantics: a field group is applied
only when the request carries a non-empty value for it, so omitted fields
keep what an earlier call recorded.
"""
from decimal import Decimal

from apps.clinical.models import has_text

VITAL_FIELDS = (
    'blood_pressure',
    'temperature',
    'pulse',
    'respiratory_rate',
    'spo2',
    'weight',
    'height',
)


def _present(value):
    if isinstance(value, str):
        return has_text(value)
    return value is not None


def apply_clinical_details(visit, details, user=None, today=None):
    """
    Apply the optional clinical field groups of ``details`` to ``visit``.

    Field groups: chief complaint + history, vitals, examination findings,
    diagnosis, treatment plan, clinical notes (appended), follow-up.
    Mutates the in-memory visit only; the caller persists it.
    """
    if not details:
        return visit

    if _present(details.get('chief_complaint')):
        visit.update_chief_complaint(details['chief_complaint'], user=user)

    visit.update_history(
        history_of_present_illness=details.get('history_of_present_illness'),
        past_history=details.get('past_history'),
        family_history=details.get('family_history'),
        user=user,
    )

    vitals = {field: details.get(field) for field in VITAL_FIELDS if _present(details.get(field))}
    if vitals:
        visit.update_vitals(user=user, **vitals)

    visit.update_examination_findings(
        general_examination=details.get('general_examination'),
        systemic_examination=details.get('systemic_examination'),
        local_examination=details.get('local_examination'),
        user=user,
    )

    if _present(details.get('diagnosis')):
        visit.set_diagnosis(details['diagnosis'], user=user)
    if _present(details.get('treatment_plan')):
        visit.set_treatment_plan(details['treatment_plan'], user=user)
    if _present(details.get('clinical_notes')):
        visit.add_clinical_notes(details['clinical_notes'], user=user)

    if _present(details.get('follow_up_days')):
        visit.set_follow_up(
            details['follow_up_days'],
            instructions=details.get('follow_up_instructions'),
            today=today,
            user=user,
        )
    return visit


def apply_follow_up(visit, follow_up, user=None, today=None):
    """Top-level ``follow_up`` block; wins over ``consultation_details``."""
    if follow_up and _present(follow_up.get('days')):
        visit.set_follow_up(
            follow_up['days'],
            instructions=follow_up.get('instructions'),
            today=today,
            user=user,
        )
    return visit


def apply_prescription_details(uow, prescription, *, medicines=None, advice=None,
                               complaints=None, diagnosis=None, instructions=None):
    """
    Add medicine, advice and complaint lines to ``prescription``.

    Every referenced master-data id is resolved through the unit of work, so
    an unknown id raises ``NotFoundError`` and aborts the whole transaction.
    Medicine lines are validated against the medicine's active flag and stock
    each time, including lines re-added after an override.
    """
    prescription.update_diagnosis(diagnosis)
    prescription.update_instructions(instructions)

    for line in medicines or []:
        medicine = uow.medicines.get_by_id(line.get('medicine_id'))
        dose = uow.doses.get_by_id(line.get('dose_id'))
        prescription.add_medicine(
            medicine,
            dose,
            duration_days=line.get('duration_days'),
            quantity=line.get('quantity', 1),
            instructions=line.get('instructions') or '',
        )

    for entry in advice or []:
        advised_id = entry.get('advised_id')
        advised = uow.advised.get_by_id(advised_id) if advised_id else None
        prescription.add_advice(advised=advised, custom_advice=entry.get('custom_advice') or '')

    for entry in complaints or []:
        complaint_id = entry.get('complaint_id')
        complaint = uow.complaints.get_by_id(complaint_id) if complaint_id else None
        prescription.add_complaint(
            complaint=complaint,
            custom_complaint=entry.get('custom_complaint') or '',
            duration=entry.get('duration') or '',
            severity=entry.get('severity') or '',
        )
    return prescription


def apply_billing(bill, payment, user=None):
    """
    Record the request's payment, if any, on ``bill``.

    A payment is only recorded when its amount is positive. ``settle_in_full``
    pays whatever is currently due.

    Returns:
        The created BillPayment, or None
    """
    if not payment:
        return None

    if payment.get('settle_in_full'):
        amount = bill.due_amount
    else:
        amount = payment.get('amount')
    if amount is None or Decimal(amount) <= 0:
        return None

    return bill.record_payment(
        amount,
        payment.get('payment_mode'),
        transaction_id=payment.get('transaction_id') or '',
        user=user,
    )
