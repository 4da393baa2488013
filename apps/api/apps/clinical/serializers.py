"""
Clinical serializers for Patient, Visit and Prescription read models.
"""
from rest_framework import serializers

from apps.clinical.models import (
    Patient,
    Prescription,
    PrescriptionAdvice,
    PrescriptionComplaint,
    PrescriptionMedicine,
    Visit,
)


class PatientSerializer(serializers.ModelSerializer):
    """Patient as returned in consultation results"""
    age = serializers.IntegerField(read_only=True)

    class Meta:
        model = Patient
        fields = [
            'id',
            'patient_number',
            'title',
            'name',
            'sex',
            'mobile',
            'birth_date',
            'age',
            'email',
            'created_at',
        ]
        read_only_fields = fields


class VisitSerializer(serializers.ModelSerializer):
    doctor_name = serializers.CharField(source='doctor.display_name', read_only=True)

    class Meta:
        model = Visit
        fields = [
            'id',
            'visit_number',
            'patient_id',
            'doctor_id',
            'doctor_name',
            'visit_date',
            'status',
            'is_additional_visit',
            'chief_complaint',
            'history_of_present_illness',
            'past_history',
            'family_history',
            'blood_pressure',
            'temperature',
            'pulse',
            'respiratory_rate',
            'spo2',
            'weight',
            'height',
            'bmi',
            'general_examination',
            'systemic_examination',
            'local_examination',
            'diagnosis',
            'treatment_plan',
            'clinical_notes',
            'follow_up_date',
            'follow_up_days',
            'follow_up_instructions',
            'prescription_id',
            'bill_id',
            'started_at',
            'completed_at',
        ]
        read_only_fields = fields


class PrescriptionMedicineSerializer(serializers.ModelSerializer):
    medicine_name = serializers.CharField(source='medicine.name', read_only=True)
    dose_code = serializers.CharField(source='dose.code', read_only=True)

    class Meta:
        model = PrescriptionMedicine
        fields = [
            'id',
            'medicine_id',
            'medicine_name',
            'dose_id',
            'dose_code',
            'duration_days',
            'quantity',
            'instructions',
        ]
        read_only_fields = fields


class PrescriptionAdviceSerializer(serializers.ModelSerializer):
    text = serializers.CharField(read_only=True)

    class Meta:
        model = PrescriptionAdvice
        fields = ['id', 'advised_id', 'custom_advice', 'text']
        read_only_fields = fields


class PrescriptionComplaintSerializer(serializers.ModelSerializer):
    text = serializers.CharField(read_only=True)

    class Meta:
        model = PrescriptionComplaint
        fields = ['id', 'complaint_id', 'custom_complaint', 'duration', 'severity', 'text']
        read_only_fields = fields


class PrescriptionSerializer(serializers.ModelSerializer):
    """Prescription with its medicine, complaint and advice lines"""
    medicines = PrescriptionMedicineSerializer(source='medicine_lines', many=True, read_only=True)
    advice = PrescriptionAdviceSerializer(source='advice_lines', many=True, read_only=True)
    complaints = PrescriptionComplaintSerializer(source='complaint_lines', many=True, read_only=True)
    valid_until = serializers.DateField(read_only=True)

    class Meta:
        model = Prescription
        fields = [
            'id',
            'prescription_number',
            'visit_id',
            'prescription_date',
            'diagnosis',
            'instructions',
            'status',
            'validity_days',
            'valid_until',
            'medicines',
            'advice',
            'complaints',
        ]
        read_only_fields = fields
