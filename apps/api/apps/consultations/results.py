"""Consultation result snapshot."""
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from apps.billing.models import ZERO


@dataclass(frozen=True)
class ConsultationResult:
    consultation_id: UUID
    patient: object
    visit: object
    prescription: Optional[object]
    bill: object
    total_amount: Decimal
    paid_amount: Decimal
    due_amount: Decimal
    is_fully_paid: bool
    consultation_date: datetime
    follow_up_date: Optional[date] = None
    reused: dict = field(default_factory=dict)


def assemble_result(patient, visit, prescription, bill, reused=None):
    """
    Build the snapshot returned to the caller. ``consultation_id`` is the
    visit id; money figures are copied from the bill as committed.
    """
    return ConsultationResult(
        consultation_id=visit.id,
        patient=patient,
        visit=visit,
        prescription=prescription,
        bill=bill,
        total_amount=bill.total_amount if bill else ZERO,
        paid_amount=bill.paid_amount if bill else ZERO,
        due_amount=bill.due_amount if bill else ZERO,
        is_fully_paid=bill.is_fully_paid if bill else False,
        consultation_date=visit.visit_date,
        follow_up_date=visit.follow_up_date,
        reused=dict(reused or {}),
    )
