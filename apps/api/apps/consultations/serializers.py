"""
Consultation request/response serializers.

Request serializers only check shape and ranges; domain rules (stock,
active master data, state machine, overpayment) are enforced by the models
inside the workflow transaction.
"""
from decimal import Decimal

from rest_framework import serializers

from apps.billing.models import PaymentModeChoices, normalize_payment_mode
from apps.billing.serializers import BillSerializer
from apps.clinical.models import ComplaintSeverityChoices, SexChoices
from apps.clinical.serializers import PatientSerializer, PrescriptionSerializer, VisitSerializer

PERCENTAGE_FIELD_KWARGS = {
    'max_digits': 5,
    'decimal_places': 2,
    'min_value': Decimal('0'),
    'max_value': Decimal('100'),
}


def _optional_text(**kwargs):
    return serializers.CharField(required=False, allow_blank=True, allow_null=True, **kwargs)


class NewPatientSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200)
    title = _optional_text(max_length=20)
    gender = serializers.CharField(max_length=10)
    mobile = serializers.CharField(max_length=20)
    dob = serializers.DateField(required=False, allow_null=True)
    email = serializers.EmailField(required=False, allow_blank=True)
    address = _optional_text()

    def validate_gender(self, value):
        value = value.strip().lower()
        if value not in SexChoices.values:
            raise serializers.ValidationError(
                f"Invalid value. Options: {', '.join(SexChoices.values)}"
            )
        return value


class PatientSelectorSerializer(serializers.Serializer):
    """Either a new-patient payload or an existing patient id"""
    is_new_patient = serializers.BooleanField(default=False)
    new_patient = NewPatientSerializer(required=False, allow_null=True)
    existing_patient_id = serializers.UUIDField(required=False, allow_null=True)

    def validate(self, attrs):
        if attrs.get('is_new_patient'):
            if not attrs.get('new_patient'):
                raise serializers.ValidationError({
                    'new_patient': 'New patient details are required when is_new_patient is true'
                })
        elif not attrs.get('existing_patient_id'):
            raise serializers.ValidationError({
                'existing_patient_id': 'Either a new patient or an existing patient id is required'
            })
        return attrs


class ConsultationDetailsSerializer(serializers.Serializer):
    """
    Optional clinical fields. Omitted, null or blank values leave the stored
    value untouched.
    """
    chief_complaint = _optional_text()
    history_of_present_illness = _optional_text()
    past_history = _optional_text()
    family_history = _optional_text()

    blood_pressure = _optional_text(max_length=20)
    temperature = serializers.DecimalField(max_digits=4, decimal_places=1, required=False, allow_null=True)
    pulse = serializers.IntegerField(required=False, allow_null=True)
    respiratory_rate = serializers.IntegerField(required=False, allow_null=True)
    spo2 = serializers.IntegerField(required=False, allow_null=True)
    weight = serializers.DecimalField(max_digits=5, decimal_places=2, required=False, allow_null=True)
    height = serializers.DecimalField(max_digits=5, decimal_places=2, required=False, allow_null=True)

    general_examination = _optional_text()
    systemic_examination = _optional_text()
    local_examination = _optional_text()

    diagnosis = _optional_text()
    treatment_plan = _optional_text()
    clinical_notes = _optional_text()
    advice = _optional_text(help_text='Free-text advice printed as prescription instructions')

    follow_up_days = serializers.IntegerField(required=False, allow_null=True, min_value=1, max_value=365)
    follow_up_instructions = _optional_text()


class MedicineLineSerializer(serializers.Serializer):
    medicine_id = serializers.UUIDField()
    dose_id = serializers.UUIDField()
    duration_days = serializers.IntegerField(min_value=1)
    quantity = serializers.IntegerField(min_value=1, default=1)
    instructions = _optional_text(max_length=255)


class AdviceLineSerializer(serializers.Serializer):
    advised_id = serializers.UUIDField(required=False, allow_null=True)
    custom_advice = _optional_text()

    def validate(self, attrs):
        if not attrs.get('advised_id') and not (attrs.get('custom_advice') or '').strip():
            raise serializers.ValidationError('Either advised_id or custom_advice is required')
        return attrs


class ComplaintLineSerializer(serializers.Serializer):
    complaint_id = serializers.UUIDField(required=False, allow_null=True)
    custom_complaint = _optional_text(max_length=255)
    duration = _optional_text(max_length=50)
    severity = serializers.ChoiceField(
        choices=ComplaintSeverityChoices.choices,
        required=False,
        allow_blank=True,
    )

    def validate(self, attrs):
        if not attrs.get('complaint_id') and not (attrs.get('custom_complaint') or '').strip():
            raise serializers.ValidationError('Either complaint_id or custom_complaint is required')
        return attrs


class BillItemInputSerializer(serializers.Serializer):
    item_name = serializers.CharField(max_length=200)
    quantity = serializers.IntegerField(min_value=1, default=1)
    unit_price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0'))


class PaymentSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0'))
    payment_mode = serializers.CharField(max_length=20)
    transaction_id = _optional_text(max_length=100)

    def validate_payment_mode(self, value):
        mode = normalize_payment_mode(value)
        if mode not in PaymentModeChoices.values:
            raise serializers.ValidationError(
                f"Invalid value. Options: {', '.join(PaymentModeChoices.values)}"
            )
        return mode


class FollowUpSerializer(serializers.Serializer):
    days = serializers.IntegerField(min_value=1, max_value=365)
    instructions = _optional_text()


class CompleteConsultationSerializer(serializers.Serializer):
    """
    POST /api/v1/consultations/complete/

    consultation_fee defaults to the doctor's fee and tax_percentage to the
    clinic default when omitted.
    """
    patient = PatientSelectorSerializer()
    doctor_id = serializers.UUIDField()
    consultation_details = ConsultationDetailsSerializer(required=False, default=dict)
    medicines = MedicineLineSerializer(many=True, required=False, default=list)
    advice = AdviceLineSerializer(many=True, required=False, default=list)
    complaints = ComplaintLineSerializer(many=True, required=False, default=list)
    bill_items = BillItemInputSerializer(many=True, required=False, default=list)
    consultation_fee = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=Decimal('0'),
        required=False, allow_null=True,
    )
    discount_percentage = serializers.DecimalField(default=Decimal('0'), **PERCENTAGE_FIELD_KWARGS)
    tax_percentage = serializers.DecimalField(required=False, allow_null=True, **PERCENTAGE_FIELD_KWARGS)
    payment = PaymentSerializer(required=False, allow_null=True)
    follow_up = FollowUpSerializer(required=False, allow_null=True)
    consultation_notes = _optional_text()
    allow_multiple_visits_per_day = serializers.BooleanField(default=False)
    override_existing = serializers.BooleanField(default=False)


class QuickConsultationSerializer(serializers.Serializer):
    """POST /api/v1/consultations/quick/"""
    patient_id = serializers.UUIDField()
    doctor_id = serializers.UUIDField()
    chief_complaint = serializers.CharField()
    diagnosis = serializers.CharField()
    medicine_ids = serializers.ListField(child=serializers.UUIDField(), min_length=1)


class ConsultationResultSerializer(serializers.Serializer):
    consultation_id = serializers.UUIDField()
    patient = PatientSerializer()
    visit = VisitSerializer()
    prescription = PrescriptionSerializer(allow_null=True)
    bill = BillSerializer()
    total_amount = serializers.DecimalField(max_digits=10, decimal_places=2)
    paid_amount = serializers.DecimalField(max_digits=10, decimal_places=2)
    due_amount = serializers.DecimalField(max_digits=10, decimal_places=2)
    is_fully_paid = serializers.BooleanField()
    consultation_date = serializers.DateTimeField()
    follow_up_date = serializers.DateField(allow_null=True)
    reused = serializers.DictField(child=serializers.BooleanField())
