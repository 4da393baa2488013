from django.contrib import admin
from .models import (
    Advised,
    Complaint,
    Dose,
    Medicine,
    Patient,
    Prescription,
    PrescriptionAdvice,
    PrescriptionComplaint,
    PrescriptionMedicine,
    Visit,
)


# Master data (maintained here only)

@admin.register(Medicine)
class MedicineAdmin(admin.ModelAdmin):
    list_display = ['name', 'strength', 'form', 'current_stock', 'is_active']
    list_filter = ['is_active', 'form']
    search_fields = ['name', 'generic_name']
    readonly_fields = ['id', 'created_at', 'updated_at']


@admin.register(Dose)
class DoseAdmin(admin.ModelAdmin):
    list_display = ['code', 'name', 'times_per_day', 'sort_order', 'is_active']
    list_filter = ['is_active']
    search_fields = ['code', 'name']


@admin.register(Advised)
class AdvisedAdmin(admin.ModelAdmin):
    list_display = ['text', 'is_active']
    list_filter = ['is_active']
    search_fields = ['text']


@admin.register(Complaint)
class ComplaintAdmin(admin.ModelAdmin):
    list_display = ['name', 'is_active']
    list_filter = ['is_active']
    search_fields = ['name']


@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ['patient_number', 'name', 'sex', 'mobile', 'is_active', 'created_at']
    list_filter = ['sex', 'is_active']
    search_fields = ['patient_number', 'name', 'mobile', 'email']
    readonly_fields = ['id', 'patient_number', 'created_at', 'updated_at']
    autocomplete_fields = ['created_by_user']

    fieldsets = (
        ('Basic Info', {
            'fields': ('id', 'patient_number', 'title', 'name', 'sex', 'birth_date')
        }),
        ('Contact', {
            'fields': ('mobile', 'email', 'address')
        }),
        ('Status', {
            'fields': ('is_active', 'created_by_user', 'created_at', 'updated_at')
        }),
    )


@admin.register(Visit)
class VisitAdmin(admin.ModelAdmin):
    """
    Visits are written by the consultation workflow; status and aggregate
    links are read-only here.
    """
    list_display = ['visit_number', 'patient', 'doctor', 'visit_date', 'status', 'is_additional_visit']
    list_filter = ['status', 'is_additional_visit', 'visit_day']
    search_fields = ['visit_number', 'patient__name', 'patient__patient_number']
    date_hierarchy = 'visit_date'
    readonly_fields = [
        'id', 'visit_number', 'visit_day', 'status', 'prescription', 'bill',
        'bmi', 'started_at', 'completed_at', 'created_at', 'updated_at',
    ]
    autocomplete_fields = ['patient', 'doctor']


class PrescriptionMedicineInline(admin.TabularInline):
    model = PrescriptionMedicine
    extra = 0
    autocomplete_fields = ['medicine', 'dose']


class PrescriptionComplaintInline(admin.TabularInline):
    model = PrescriptionComplaint
    extra = 0


class PrescriptionAdviceInline(admin.TabularInline):
    model = PrescriptionAdvice
    extra = 0


@admin.register(Prescription)
class PrescriptionAdmin(admin.ModelAdmin):
    list_display = ['prescription_number', 'patient', 'doctor', 'prescription_date', 'status']
    list_filter = ['status']
    search_fields = ['prescription_number', 'patient__name']
    readonly_fields = ['id', 'prescription_number', 'visit', 'created_at', 'updated_at']
    inlines = [PrescriptionMedicineInline, PrescriptionComplaintInline, PrescriptionAdviceInline]
