"""
Billing models: opd_bill, opd_bill_item, opd_bill_payment.

Totals are always derived from stored inputs (fee, items, discount %, tax %,
payments) by ``Bill.recalculate_totals``:

    subtotal        = consultation_fee + items_subtotal
    discount_amount = subtotal * discount% / 100
    tax_amount      = subtotal * (1 - discount%/100) * tax% / 100
    total_amount    = subtotal * (1 - discount%/100) * (1 + tax%/100)
    due_amount      = total_amount - paid_amount

Each amount is rounded half-up to two places from the unrounded product, so
the rounded discount and tax can differ from the total by a cent. ``paid <= total``
always holds.
"""
import uuid
from decimal import Decimal, ROUND_HALF_UP

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models
from django.db.models import Q, Sum
from django.utils import timezone

from apps.clinical.models import generate_document_number
from apps.core.observability import metrics
from apps.core.observability.events import log_payment_recorded

ZERO = Decimal('0.00')
HUNDRED = Decimal('100')


def money(value):
    return Decimal(value).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)


class BillStatusChoices(models.TextChoices):
    DRAFT = 'draft', 'Draft'
    GENERATED = 'generated', 'Generated'
    PARTIALLY_PAID = 'partially_paid', 'Partially Paid'
    PAID = 'paid', 'Paid'
    CANCELLED = 'cancelled', 'Cancelled'
    REFUNDED = 'refunded', 'Refunded'


class PaymentModeChoices(models.TextChoices):
    CASH = 'cash', 'Cash'
    CARD = 'card', 'Card'
    UPI = 'upi', 'UPI'
    BANK_TRANSFER = 'bank_transfer', 'Bank Transfer'
    INSURANCE = 'insurance', 'Insurance'
    OTHER = 'other', 'Other'


def normalize_payment_mode(mode):
    """'Cash' -> 'cash', 'Bank Transfer' -> 'bank_transfer'."""
    return (mode or '').strip().lower().replace(' ', '_').replace('-', '_')


PERCENTAGE_VALIDATORS = [MinValueValidator(ZERO), MaxValueValidator(Decimal('100.00'))]


class Bill(models.Model):
    """
    Financial record of an OPD visit. Exactly one per visit.

    Lifecycle: draft -> generated -> partially_paid -> paid.
    Payments are only accepted once the bill is generated.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    bill_number = models.CharField(max_length=30, unique=True, editable=False)
    visit = models.OneToOneField('clinical.Visit', on_delete=models.PROTECT, related_name='+')
    patient = models.ForeignKey('clinical.Patient', on_delete=models.PROTECT, related_name='bills')
    doctor = models.ForeignKey('authz.Practitioner', on_delete=models.PROTECT, related_name='bills')
    bill_date = models.DateTimeField(default=timezone.now)
    status = models.CharField(
        max_length=20,
        choices=BillStatusChoices.choices,
        default=BillStatusChoices.DRAFT
    )

    # Inputs
    consultation_fee = models.DecimalField(
        max_digits=10, decimal_places=2, default=ZERO,
        validators=[MinValueValidator(ZERO)]
    )
    discount_percentage = models.DecimalField(
        max_digits=5, decimal_places=2, default=ZERO, validators=PERCENTAGE_VALIDATORS
    )
    tax_percentage = models.DecimalField(
        max_digits=5, decimal_places=2, default=ZERO, validators=PERCENTAGE_VALIDATORS
    )

    # Derived (recalculate_totals)
    items_subtotal = models.DecimalField(max_digits=10, decimal_places=2, default=ZERO)
    subtotal = models.DecimalField(max_digits=10, decimal_places=2, default=ZERO)
    discount_amount = models.DecimalField(max_digits=10, decimal_places=2, default=ZERO)
    tax_amount = models.DecimalField(max_digits=10, decimal_places=2, default=ZERO)
    total_amount = models.DecimalField(max_digits=10, decimal_places=2, default=ZERO)
    paid_amount = models.DecimalField(max_digits=10, decimal_places=2, default=ZERO)
    due_amount = models.DecimalField(max_digits=10, decimal_places=2, default=ZERO)

    notes = models.TextField(blank=True)
    created_by_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='bills_created'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'opd_bill'
        ordering = ['-bill_date']
        indexes = [
            models.Index(fields=['status'], name='idx_bill_status'),
            models.Index(fields=['doctor', 'bill_date'], name='idx_bill_doctor_date'),
        ]
        constraints = [
            models.CheckConstraint(check=Q(consultation_fee__gte=0), name='bill_fee_non_negative'),
            models.CheckConstraint(check=Q(total_amount__gte=0), name='bill_total_non_negative'),
            models.CheckConstraint(check=Q(paid_amount__gte=0), name='bill_paid_non_negative'),
            models.CheckConstraint(check=Q(due_amount__gte=0), name='bill_due_non_negative'),
            models.CheckConstraint(
                check=Q(discount_percentage__gte=0) & Q(discount_percentage__lte=100),
                name='bill_discount_percentage_range',
            ),
            models.CheckConstraint(
                check=Q(tax_percentage__gte=0) & Q(tax_percentage__lte=100),
                name='bill_tax_percentage_range',
            ),
        ]

    def __str__(self):
        return f'{self.bill_number} ({self.get_status_display()})'

    def save(self, *args, **kwargs):
        if not self.bill_number:
            self.bill_number = generate_document_number('BILL', self.bill_date)
        if not kwargs.pop('skip_validation', False):
            self.full_clean()
        super().save(*args, **kwargs)

    def clean(self):
        if self.paid_amount is not None and self.total_amount is not None \
                and self.paid_amount > self.total_amount:
            raise ValidationError({
                'paid_amount': f'Paid amount {self.paid_amount} exceeds total {self.total_amount}'
            })

    # ------------------------------------------------------------------
    # Totals
    # ------------------------------------------------------------------

    def recalculate_totals(self):
        """Recompute every derived amount from stored inputs."""
        if self.pk and not self._state.adding:
            items_total = self.items.aggregate(total=Sum('line_total'))['total'] or ZERO
            paid_total = self.payments.aggregate(total=Sum('amount'))['total'] or ZERO
        else:
            items_total = ZERO
            paid_total = ZERO

        self.items_subtotal = money(items_total)
        self.subtotal = money(Decimal(self.consultation_fee) + self.items_subtotal)
        discount_rate = Decimal(self.discount_percentage) / HUNDRED
        tax_rate = Decimal(self.tax_percentage) / HUNDRED
        self.discount_amount = money(self.subtotal * discount_rate)
        self.tax_amount = money(self.subtotal * (1 - discount_rate) * tax_rate)
        self.total_amount = money(self.subtotal * (1 - discount_rate) * (1 + tax_rate))
        self.paid_amount = money(paid_total)
        self.due_amount = money(self.total_amount - self.paid_amount)
        return self

    def _refresh_payment_status(self):
        if self.status in (BillStatusChoices.DRAFT, BillStatusChoices.CANCELLED, BillStatusChoices.REFUNDED):
            return
        if self.due_amount == ZERO:
            self.status = BillStatusChoices.PAID
        elif self.paid_amount > ZERO:
            self.status = BillStatusChoices.PARTIALLY_PAID
        else:
            self.status = BillStatusChoices.GENERATED

    @property
    def is_fully_paid(self):
        return self.status == BillStatusChoices.PAID and self.due_amount == ZERO

    # ------------------------------------------------------------------
    # Mutators
    # ------------------------------------------------------------------

    def _apply_percentage(self, field, percentage, label):
        percentage = Decimal(percentage)
        if not ZERO <= percentage <= HUNDRED:
            raise ValidationError({field: f'{label} percentage must be between 0 and 100'})
        previous = getattr(self, field)
        setattr(self, field, money(percentage))
        self.recalculate_totals()
        if self.paid_amount > self.total_amount:
            setattr(self, field, previous)
            self.recalculate_totals()
            raise ValidationError({
                field: f'{label} change would reduce the total below the amount already paid'
            })
        self._refresh_payment_status()

    def apply_discount(self, percentage):
        self._apply_percentage('discount_percentage', percentage, 'Discount')

    def apply_tax(self, percentage):
        self._apply_percentage('tax_percentage', percentage, 'Tax')

    def add_item(self, item_name, quantity, unit_price):
        """Add an extra charge line. The bill must be saved and still a draft."""
        if self.status != BillStatusChoices.DRAFT:
            raise ValidationError({'items': 'Items can only be added to a draft bill'})
        errors = {}
        if not (item_name or '').strip():
            errors['item_name'] = 'Item name is required'
        if quantity is None or quantity <= 0:
            errors['quantity'] = 'Quantity must be greater than zero'
        if unit_price is None or Decimal(unit_price) < ZERO:
            errors['unit_price'] = 'Unit price cannot be negative'
        if errors:
            raise ValidationError(errors)

        item = BillItem.objects.create(
            bill=self,
            item_name=item_name.strip(),
            quantity=quantity,
            unit_price=money(unit_price),
        )
        self.recalculate_totals()
        return item

    def generate(self):
        if self.status != BillStatusChoices.DRAFT:
            raise ValidationError({'status': f'Cannot generate bill from {self.status} status'})
        self.recalculate_totals()
        self.status = BillStatusChoices.GENERATED
        self._refresh_payment_status()

    def record_payment(self, amount, payment_mode, transaction_id='', user=None):
        """
        Record a payment. Payments accumulate; overpayment is rejected.

        Raises:
            ValidationError: non-positive amount, unknown mode, bill not
                generated, or amount above the outstanding due
        """
        amount = money(amount) if amount is not None else None
        mode = normalize_payment_mode(payment_mode)
        errors = {}
        if amount is None or amount <= ZERO:
            errors['amount'] = 'Payment amount must be positive'
        if mode not in PaymentModeChoices.values:
            errors['payment_mode'] = f'Unknown payment mode: {payment_mode!r}'
        if self.status in (BillStatusChoices.DRAFT, BillStatusChoices.CANCELLED, BillStatusChoices.REFUNDED):
            errors['status'] = f'Cannot record payment on a {self.status} bill'
        if errors:
            metrics.bill_payments_total.labels(mode=mode or 'unknown', result='validation_error').inc()
            raise ValidationError(errors)

        self.recalculate_totals()
        if amount > self.due_amount:
            metrics.bill_overpayment_blocked_total.inc()
            metrics.bill_payments_total.labels(mode=mode, result='overpayment').inc()
            raise ValidationError({
                'amount': f'Payment {amount} exceeds the amount due {self.due_amount}'
            })

        payment = BillPayment.objects.create(
            bill=self,
            amount=amount,
            payment_mode=mode,
            transaction_id=(transaction_id or '').strip(),
            received_by_user=user,
        )
        self.recalculate_totals()
        self._refresh_payment_status()
        metrics.bill_payments_total.labels(mode=mode, result='success').inc()
        log_payment_recorded(self, payment)
        return payment


class BillItem(models.Model):
    bill = models.ForeignKey(Bill, on_delete=models.CASCADE, related_name='items')
    item_name = models.CharField(max_length=200)
    quantity = models.PositiveIntegerField(default=1)
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)
    line_total = models.DecimalField(max_digits=10, decimal_places=2, default=ZERO)

    class Meta:
        db_table = 'opd_bill_item'
        ordering = ['id']
        constraints = [
            models.CheckConstraint(check=Q(quantity__gt=0), name='bill_item_quantity_positive'),
            models.CheckConstraint(check=Q(unit_price__gte=0), name='bill_item_unit_price_non_negative'),
        ]

    def __str__(self):
        return f'{self.item_name} x {self.quantity}'

    def save(self, *args, **kwargs):
        self.line_total = money(Decimal(self.unit_price) * self.quantity)
        super().save(*args, **kwargs)


class BillPayment(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    bill = models.ForeignKey(Bill, on_delete=models.CASCADE, related_name='payments')
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    payment_mode = models.CharField(max_length=20, choices=PaymentModeChoices.choices)
    transaction_id = models.CharField(max_length=100, blank=True)
    paid_at = models.DateTimeField(default=timezone.now)
    received_by_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='bill_payments_received'
    )

    class Meta:
        db_table = 'opd_bill_payment'
        ordering = ['paid_at']
        constraints = [
            models.CheckConstraint(check=Q(amount__gt=0), name='bill_payment_amount_positive'),
        ]

    def __str__(self):
        return f'{self.amount} {self.payment_mode}'
