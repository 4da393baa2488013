"""
Clinical models: patient, opd_visit, prescription (+ lines), master data.

Visit, Prescription and Bill reference each other by explicit one-to-one
foreign keys. A link, once set, is never reassigned.
"""
import re
import secrets
import uuid
from datetime import timedelta
from decimal import Decimal, ROUND_HALF_UP

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q, Sum
from django.utils import timezone

from apps.core.observability import metrics
from apps.core.observability.events import log_visit_transition


def generate_document_number(prefix, when=None):
    """``PREFIX-YYYYMMDD-XXXXXX`` with a random hex suffix."""
    when = when or timezone.now()
    return f'{prefix}-{timezone.localtime(when):%Y%m%d}-{secrets.token_hex(3).upper()}'


def generate_patient_number(when=None):
    when = when or timezone.now()
    return f'PAT-{timezone.localtime(when):%Y%m%d}-{secrets.randbelow(10000):04d}'


def has_text(value):
    return value is not None and str(value).strip() != ''


# ============================================================================
# Enums
# ============================================================================

class SexChoices(models.TextChoices):
    FEMALE = 'female', 'Female'
    MALE = 'male', 'Male'
    OTHER = 'other', 'Other'
    UNKNOWN = 'unknown', 'Unknown'


class VisitStatusChoices(models.TextChoices):
    """
    OPD visit lifecycle.

    checked_in -> in_progress -> completed
    checked_in -> cancelled | no_show
    """
    CHECKED_IN = 'checked_in', 'Checked In'
    IN_PROGRESS = 'in_progress', 'In Progress'
    COMPLETED = 'completed', 'Completed'
    CANCELLED = 'cancelled', 'Cancelled'
    NO_SHOW = 'no_show', 'No Show'


# Visits in these states do not count as the day's visit for a patient/doctor pair
INACTIVE_VISIT_STATUSES = [VisitStatusChoices.CANCELLED, VisitStatusChoices.NO_SHOW]


class PrescriptionStatusChoices(models.TextChoices):
    DRAFT = 'draft', 'Draft'
    ACTIVE = 'active', 'Active'
    COMPLETED = 'completed', 'Completed'
    CANCELLED = 'cancelled', 'Cancelled'
    EXPIRED = 'expired', 'Expired'


class ComplaintSeverityChoices(models.TextChoices):
    MILD = 'mild', 'Mild'
    MODERATE = 'moderate', 'Moderate'
    SEVERE = 'severe', 'Severe'


# ============================================================================
# Master data
# ============================================================================

class Medicine(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=200)
    generic_name = models.CharField(max_length=200, blank=True)
    strength = models.CharField(max_length=50, blank=True, help_text='e.g. 500 mg')
    form = models.CharField(max_length=50, blank=True, help_text='Tablet, Syrup, Capsule...')
    current_stock = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'medicine'
        ordering = ['name']
        indexes = [
            models.Index(fields=['name'], name='idx_medicine_name'),
            models.Index(fields=['is_active'], name='idx_medicine_active'),
        ]

    def __str__(self):
        return f'{self.name} {self.strength}'.strip()


class Dose(models.Model):
    """Dosage schedule such as OD (once daily) or BD (twice daily)."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    code = models.CharField(max_length=20, unique=True)
    name = models.CharField(max_length=100)
    times_per_day = models.PositiveSmallIntegerField(null=True, blank=True)
    sort_order = models.PositiveSmallIntegerField(default=0)
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = 'dose'
        ordering = ['sort_order', 'code']

    def __str__(self):
        return f'{self.code} ({self.name})'


class Advised(models.Model):
    """Standard advice text (e.g. 'Drink plenty of fluids')."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    text = models.CharField(max_length=500)
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = 'advised'
        verbose_name_plural = 'Advised'
        ordering = ['text']

    def __str__(self):
        return self.text


class Complaint(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=200, unique=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = 'complaint'
        ordering = ['name']

    def __str__(self):
        return self.name


# ============================================================================
# Patient
# ============================================================================

class Patient(models.Model):
    """
    Patient identity and demographics.

    The id never changes once created; name and contact details may be edited.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    patient_number = models.CharField(max_length=30, unique=True, editable=False)
    title = models.CharField(max_length=20, blank=True)
    name = models.CharField(max_length=200)
    sex = models.CharField(
        max_length=10,
        choices=SexChoices.choices,
        default=SexChoices.UNKNOWN
    )
    mobile = models.CharField(max_length=20)
    birth_date = models.DateField(null=True, blank=True)
    email = models.EmailField(blank=True)
    address = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)
    created_by_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='patients_created'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'patient'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['mobile'], name='idx_patient_mobile'),
            models.Index(fields=['name'], name='idx_patient_name'),
        ]

    def __str__(self):
        return f'{self.patient_number}'

    def clean(self):
        errors = {}
        if not has_text(self.name):
            errors['name'] = 'Patient name is required'
        digits = re.sub(r'\D', '', self.mobile or '')
        if len(digits) < 10:
            errors['mobile'] = 'Mobile number must have at least 10 digits'
        if self.birth_date and self.birth_date > timezone.localdate():
            errors['birth_date'] = 'Date of birth cannot be in the future'
        if errors:
            raise ValidationError(errors)

    def save(self, *args, **kwargs):
        if not self.patient_number:
            self.patient_number = self._unused_patient_number()
        # A concurrent duplicate surfaces as IntegrityError and is retried.
        self.full_clean(exclude=['patient_number'])
        super().save(*args, **kwargs)

    @classmethod
    def _unused_patient_number(cls, attempts=10):
        for _ in range(attempts):
            number = generate_patient_number()
            if not cls.objects.filter(patient_number=number).exists():
                break
        return number

    @property
    def display_name(self):
        return f'{self.title} {self.name}'.strip()

    @property
    def age(self):
        if not self.birth_date:
            return None
        today = timezone.localdate()
        years = today.year - self.birth_date.year
        if (today.month, today.day) < (self.birth_date.month, self.birth_date.day):
            years -= 1
        return years


# ============================================================================
# OPD Visit
# ============================================================================

class Visit(models.Model):
    """
    One OPD encounter of a Patient with a Doctor on a calendar day.

    At most one live (not cancelled / no-show) visit per patient, doctor and
    day, unless the visit was explicitly created as an additional visit.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    visit_number = models.CharField(max_length=30, unique=True, editable=False)
    patient = models.ForeignKey(Patient, on_delete=models.PROTECT, related_name='visits')
    doctor = models.ForeignKey(
        'authz.Practitioner',
        on_delete=models.PROTECT,
        related_name='visits'
    )
    visit_date = models.DateTimeField(default=timezone.now)
    visit_day = models.DateField(editable=False)
    status = models.CharField(
        max_length=20,
        choices=VisitStatusChoices.choices,
        default=VisitStatusChoices.CHECKED_IN
    )
    is_additional_visit = models.BooleanField(
        default=False,
        help_text='Extra same-day visit created on explicit request'
    )

    # Complaint and history
    chief_complaint = models.TextField(blank=True)
    history_of_present_illness = models.TextField(blank=True)
    past_history = models.TextField(blank=True)
    family_history = models.TextField(blank=True)

    # Vitals
    blood_pressure = models.CharField(max_length=20, blank=True, help_text='systolic/diastolic mmHg')
    temperature = models.DecimalField(max_digits=4, decimal_places=1, null=True, blank=True)
    pulse = models.PositiveSmallIntegerField(null=True, blank=True)
    respiratory_rate = models.PositiveSmallIntegerField(null=True, blank=True)
    spo2 = models.PositiveSmallIntegerField(null=True, blank=True)
    weight = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True, help_text='kg')
    height = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True, help_text='cm')
    bmi = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)

    # Examination and assessment
    general_examination = models.TextField(blank=True)
    systemic_examination = models.TextField(blank=True)
    local_examination = models.TextField(blank=True)
    diagnosis = models.TextField(blank=True)
    treatment_plan = models.TextField(blank=True)
    clinical_notes = models.TextField(blank=True)

    # Follow-up
    follow_up_date = models.DateField(null=True, blank=True)
    follow_up_days = models.PositiveSmallIntegerField(null=True, blank=True)
    follow_up_instructions = models.TextField(blank=True)

    # Aggregate links (set once)
    prescription = models.OneToOneField(
        'clinical.Prescription',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    bill = models.OneToOneField(
        'billing.Bill',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )

    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    cancellation_reason = models.TextField(blank=True)

    created_by_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='visits_created'
    )
    updated_by_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='visits_updated'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'opd_visit'
        ordering = ['-visit_date']
        indexes = [
            models.Index(fields=['patient', 'doctor', 'visit_day'], name='idx_visit_patient_doctor_day'),
            models.Index(fields=['doctor', 'visit_day'], name='idx_visit_doctor_day'),
            models.Index(fields=['status'], name='idx_visit_status'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['patient', 'doctor', 'visit_day'],
                condition=Q(is_additional_visit=False) & ~Q(status__in=['cancelled', 'no_show']),
                name='uniq_live_visit_per_patient_doctor_day',
            ),
        ]

    def __str__(self):
        return f'{self.visit_number} ({self.get_status_display()})'

    def save(self, *args, **kwargs):
        if not self.visit_number:
            self.visit_number = generate_document_number('OPD', self.visit_date)
        self.visit_day = timezone.localdate(self.visit_date)
        update_fields = kwargs.get('update_fields')
        if update_fields is not None and 'visit_date' in update_fields:
            kwargs['update_fields'] = set(update_fields) | {'visit_day'}
        super().save(*args, **kwargs)

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    @classmethod
    def get_valid_transitions(cls):
        """
        Get valid status transitions.

        Returns dict: {current_status: [allowed_next_statuses]}
        """
        return {
            VisitStatusChoices.CHECKED_IN: [
                VisitStatusChoices.IN_PROGRESS,
                VisitStatusChoices.CANCELLED,
                VisitStatusChoices.NO_SHOW,
            ],
            VisitStatusChoices.IN_PROGRESS: [VisitStatusChoices.COMPLETED],
            VisitStatusChoices.COMPLETED: [],  # Terminal
            VisitStatusChoices.CANCELLED: [],  # Terminal
            VisitStatusChoices.NO_SHOW: [],    # Terminal
        }

    def can_transition_to(self, new_status):
        return new_status in self.get_valid_transitions().get(self.status, [])

    @property
    def is_terminal(self):
        return not self.get_valid_transitions().get(self.status)

    def transition_to(self, new_status, user=None):
        """
        Move the visit to ``new_status``.

        Raises:
            ValidationError: If the transition is not allowed from the current status
        """
        old_status = self.status
        if not self.can_transition_to(new_status):
            valid = self.get_valid_transitions().get(self.status, [])
            metrics.visit_transitions_total.labels(
                from_status=old_status, to_status=new_status, result='invalid'
            ).inc()
            raise ValidationError({
                'status': f'Invalid transition from {old_status} to {new_status}. '
                          f'Valid transitions: {", ".join(valid) if valid else "none (terminal state)"}'
            })

        self.status = new_status
        self._touch(user)
        metrics.visit_transitions_total.labels(
            from_status=old_status, to_status=new_status, result='success'
        ).inc()
        log_visit_transition(self, old_status, new_status)
        return self

    def start_consultation(self, user=None):
        self.transition_to(VisitStatusChoices.IN_PROGRESS, user=user)
        self.started_at = timezone.now()
        return self

    def complete(self, user=None):
        """
        Mark the consultation completed.

        The chief-complaint requirement is checked by the consultation
        service before calling this.
        """
        self.transition_to(VisitStatusChoices.COMPLETED, user=user)
        self.completed_at = timezone.now()
        return self

    def cancel(self, reason, user=None):
        if not has_text(reason):
            raise ValidationError({'cancellation_reason': 'Cancellation reason is required'})
        self.transition_to(VisitStatusChoices.CANCELLED, user=user)
        self.cancellation_reason = reason.strip()
        return self

    def mark_no_show(self, user=None):
        return self.transition_to(VisitStatusChoices.NO_SHOW, user=user)

    # ------------------------------------------------------------------
    # Clinical mutators (partial updates: None / blank leaves a field untouched)
    # ------------------------------------------------------------------

    def update_chief_complaint(self, chief_complaint, user=None):
        if not has_text(chief_complaint):
            raise ValidationError({'chief_complaint': 'Chief complaint is required'})
        self.chief_complaint = chief_complaint.strip()
        self._touch(user)

    def update_history(self, history_of_present_illness=None, past_history=None,
                       family_history=None, user=None):
        self._set_text_fields(
            history_of_present_illness=history_of_present_illness,
            past_history=past_history,
            family_history=family_history,
        )
        self._touch(user)

    def update_vitals(self, blood_pressure=None, temperature=None, pulse=None,
                      respiratory_rate=None, spo2=None, weight=None, height=None,
                      user=None):
        errors = {}
        if has_text(blood_pressure) and not re.fullmatch(r'\d{2,3}/\d{2,3}', blood_pressure.strip()):
            errors['blood_pressure'] = 'Blood pressure must look like 120/80'
        # Accepts Celsius and Fahrenheit readings
        if temperature is not None and not Decimal('30') <= Decimal(temperature) <= Decimal('110'):
            errors['temperature'] = 'Temperature out of range'
        if pulse is not None and not 20 <= pulse <= 250:
            errors['pulse'] = 'Pulse must be between 20 and 250'
        if respiratory_rate is not None and not 4 <= respiratory_rate <= 80:
            errors['respiratory_rate'] = 'Respiratory rate must be between 4 and 80'
        if spo2 is not None and not 0 <= spo2 <= 100:
            errors['spo2'] = 'SpO2 must be between 0 and 100'
        if weight is not None and not Decimal('0') < Decimal(weight) <= Decimal('500'):
            errors['weight'] = 'Weight must be between 0 and 500 kg'
        if height is not None and not Decimal('0') < Decimal(height) <= Decimal('300'):
            errors['height'] = 'Height must be between 0 and 300 cm'
        if errors:
            raise ValidationError(errors)

        if has_text(blood_pressure):
            self.blood_pressure = blood_pressure.strip()
        for field, value in (
            ('temperature', temperature),
            ('pulse', pulse),
            ('respiratory_rate', respiratory_rate),
            ('spo2', spo2),
            ('weight', weight),
            ('height', height),
        ):
            if value is not None:
                setattr(self, field, value)

        if self.weight and self.height:
            meters = Decimal(self.height) / Decimal('100')
            self.bmi = (Decimal(self.weight) / (meters * meters)).quantize(
                Decimal('0.01'), rounding=ROUND_HALF_UP
            )
        self._touch(user)

    def update_examination_findings(self, general_examination=None,
                                    systemic_examination=None, local_examination=None,
                                    user=None):
        self._set_text_fields(
            general_examination=general_examination,
            systemic_examination=systemic_examination,
            local_examination=local_examination,
        )
        self._touch(user)

    def set_diagnosis(self, diagnosis, user=None):
        if not has_text(diagnosis):
            raise ValidationError({'diagnosis': 'Diagnosis is required'})
        self.diagnosis = diagnosis.strip()
        self._touch(user)

    def set_treatment_plan(self, treatment_plan, user=None):
        if not has_text(treatment_plan):
            raise ValidationError({'treatment_plan': 'Treatment plan cannot be empty'})
        self.treatment_plan = treatment_plan.strip()
        self._touch(user)

    def add_clinical_notes(self, notes, user=None):
        if not has_text(notes):
            return
        notes = notes.strip()
        self.clinical_notes = f'{self.clinical_notes}\n{notes}' if self.clinical_notes else notes
        self._touch(user)

    def set_follow_up(self, days, instructions=None, today=None, user=None):
        if days is None or not 1 <= days <= 365:
            raise ValidationError({'follow_up_days': 'Follow-up must be between 1 and 365 days'})
        today = today or timezone.localdate()
        self.follow_up_days = days
        self.follow_up_date = today + timedelta(days=days)
        if has_text(instructions):
            self.follow_up_instructions = instructions.strip()
        self._touch(user)

    # ------------------------------------------------------------------
    # Aggregate links
    # ------------------------------------------------------------------

    def link_prescription(self, prescription):
        """
        Link the visit's prescription. Returns False (no-op) when a
        prescription is already linked.
        """
        if self.prescription_id is not None:
            return False
        if prescription.visit_id != self.id:
            raise ValidationError({'prescription': 'Prescription belongs to another visit'})
        self.prescription = prescription
        return True

    def link_bill(self, bill):
        """Link the visit's bill. Returns False (no-op) when already linked."""
        if self.bill_id is not None:
            return False
        if bill.visit_id != self.id:
            raise ValidationError({'bill': 'Bill belongs to another visit'})
        self.bill = bill
        return True

    def _set_text_fields(self, **values):
        for field, value in values.items():
            if has_text(value):
                setattr(self, field, value.strip())

    def _touch(self, user):
        if user is not None:
            self.updated_by_user = user


# ============================================================================
# Prescription
# ============================================================================

class Prescription(models.Model):
    """
    Clinical order for a Visit: diagnosis, instructions, medicine, complaint
    and advice lines. Exactly one per Visit.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    prescription_number = models.CharField(max_length=30, unique=True, editable=False)
    visit = models.OneToOneField(Visit, on_delete=models.PROTECT, related_name='+')
    patient = models.ForeignKey(Patient, on_delete=models.PROTECT, related_name='prescriptions')
    doctor = models.ForeignKey(
        'authz.Practitioner',
        on_delete=models.PROTECT,
        related_name='prescriptions'
    )
    prescription_date = models.DateTimeField(default=timezone.now)
    diagnosis = models.TextField(blank=True)
    instructions = models.TextField(blank=True)
    validity_days = models.PositiveSmallIntegerField(default=7)
    status = models.CharField(
        max_length=20,
        choices=PrescriptionStatusChoices.choices,
        default=PrescriptionStatusChoices.DRAFT
    )
    created_by_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='prescriptions_created'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'prescription'
        ordering = ['-prescription_date']
        indexes = [
            models.Index(fields=['patient'], name='idx_prescription_patient'),
            models.Index(fields=['status'], name='idx_prescription_status'),
        ]

    def __str__(self):
        return self.prescription_number

    def save(self, *args, **kwargs):
        if not self.prescription_number:
            self.prescription_number = generate_document_number('RX', self.prescription_date)
        super().save(*args, **kwargs)

    @property
    def valid_until(self):
        return timezone.localdate(self.prescription_date) + timedelta(days=self.validity_days)

    def update_diagnosis(self, diagnosis):
        if has_text(diagnosis):
            self.diagnosis = diagnosis.strip()

    def update_instructions(self, instructions):
        if has_text(instructions):
            self.instructions = instructions.strip()

    def add_medicine(self, medicine, dose, duration_days, quantity, instructions=''):
        """
        Append a medicine line. The prescription must already be saved.

        Raises:
            ValidationError: non-positive duration/quantity, inactive medicine
                or dose, or stock below the prescribed quantity
        """
        errors = {}
        if duration_days is None or duration_days <= 0:
            errors['duration_days'] = 'Duration must be greater than zero'
        if quantity is None or quantity <= 0:
            errors['quantity'] = 'Quantity must be greater than zero'
        if not medicine.is_active:
            errors['medicine_id'] = f'Medicine {medicine.name} is not active'
        elif quantity:
            prescribed = self.medicine_lines.filter(medicine=medicine).aggregate(
                total=Sum('quantity')
            )['total'] or 0
            if medicine.current_stock < prescribed + quantity:
                errors['quantity'] = (
                    f'Insufficient stock for {medicine.name}: '
                    f'{medicine.current_stock} available, {prescribed + quantity} prescribed'
                )
        if not dose.is_active:
            errors['dose_id'] = f'Dose {dose.code} is not active'
        if errors:
            raise ValidationError(errors)

        return PrescriptionMedicine.objects.create(
            prescription=self,
            medicine=medicine,
            dose=dose,
            duration_days=duration_days,
            quantity=quantity,
            instructions=(instructions or '').strip(),
            sort_order=self.medicine_lines.count() + 1,
        )

    def add_advice(self, advised=None, custom_advice=''):
        if advised is None and not has_text(custom_advice):
            raise ValidationError({'advice': 'Either advised_id or custom_advice is required'})
        if advised is not None and not advised.is_active:
            raise ValidationError({'advised_id': 'Advice entry is not active'})
        return PrescriptionAdvice.objects.create(
            prescription=self,
            advised=advised,
            custom_advice=(custom_advice or '').strip(),
        )

    def add_complaint(self, complaint=None, custom_complaint='', duration='', severity=''):
        if complaint is None and not has_text(custom_complaint):
            raise ValidationError({'complaints': 'Either complaint_id or custom_complaint is required'})
        return PrescriptionComplaint.objects.create(
            prescription=self,
            complaint=complaint,
            custom_complaint=(custom_complaint or '').strip(),
            duration=(duration or '').strip(),
            severity=severity or '',
        )

    def clear_lines(self):
        """Remove medicine, complaint and advice lines. Returns number removed."""
        removed = 0
        for lines in (self.medicine_lines, self.complaint_lines, self.advice_lines):
            count, _ = lines.all().delete()
            removed += count
        return removed

    def activate(self):
        if self.status == PrescriptionStatusChoices.DRAFT:
            self.status = PrescriptionStatusChoices.ACTIVE


class PrescriptionMedicine(models.Model):
    prescription = models.ForeignKey(
        Prescription,
        on_delete=models.CASCADE,
        related_name='medicine_lines'
    )
    medicine = models.ForeignKey(Medicine, on_delete=models.PROTECT, related_name='+')
    dose = models.ForeignKey(Dose, on_delete=models.PROTECT, related_name='+')
    duration_days = models.PositiveSmallIntegerField()
    quantity = models.PositiveIntegerField()
    instructions = models.CharField(max_length=255, blank=True)
    sort_order = models.PositiveSmallIntegerField(default=0)

    class Meta:
        db_table = 'prescription_medicine'
        ordering = ['sort_order', 'id']
        constraints = [
            models.CheckConstraint(check=Q(duration_days__gt=0), name='prescription_medicine_duration_positive'),
            models.CheckConstraint(check=Q(quantity__gt=0), name='prescription_medicine_quantity_positive'),
        ]

    def __str__(self):
        return f'{self.medicine} {self.dose.code} x {self.duration_days}d'

    @property
    def dosage_display(self):
        return f'{self.dose.code} ({self.dose.name})'


class PrescriptionAdvice(models.Model):
    prescription = models.ForeignKey(
        Prescription,
        on_delete=models.CASCADE,
        related_name='advice_lines'
    )
    advised = models.ForeignKey(Advised, on_delete=models.PROTECT, null=True, blank=True, related_name='+')
    custom_advice = models.TextField(blank=True)

    class Meta:
        db_table = 'prescription_advice'
        ordering = ['id']

    @property
    def text(self):
        return self.custom_advice or (self.advised.text if self.advised_id else '')


class PrescriptionComplaint(models.Model):
    prescription = models.ForeignKey(
        Prescription,
        on_delete=models.CASCADE,
        related_name='complaint_lines'
    )
    complaint = models.ForeignKey(Complaint, on_delete=models.PROTECT, null=True, blank=True, related_name='+')
    custom_complaint = models.CharField(max_length=255, blank=True)
    duration = models.CharField(max_length=50, blank=True, help_text='e.g. 3 days')
    severity = models.CharField(max_length=10, choices=ComplaintSeverityChoices.choices, blank=True)

    class Meta:
        db_table = 'prescription_complaint'
        ordering = ['id']

    @property
    def text(self):
        return self.custom_complaint or (self.complaint.name if self.complaint_id else '')
