from django.contrib import admin
from .models import Bill, BillItem, BillPayment


class BillItemInline(admin.TabularInline):
    model = BillItem
    extra = 0
    readonly_fields = ['line_total']


class BillPaymentInline(admin.TabularInline):
    model = BillPayment
    extra = 0
    can_delete = False
    readonly_fields = ['amount', 'payment_mode', 'transaction_id', 'paid_at', 'received_by_user']

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Bill)
class BillAdmin(admin.ModelAdmin):
    """Amounts are derived; payments are recorded through the API only."""
    list_display = ['bill_number', 'patient', 'doctor', 'bill_date', 'status', 'total_amount', 'due_amount']
    list_filter = ['status']
    search_fields = ['bill_number', 'patient__name', 'patient__patient_number']
    date_hierarchy = 'bill_date'
    readonly_fields = [
        'id', 'bill_number', 'visit', 'status',
        'items_subtotal', 'subtotal', 'discount_amount', 'tax_amount',
        'total_amount', 'paid_amount', 'due_amount',
        'created_at', 'updated_at',
    ]
    inlines = [BillItemInline, BillPaymentInline]
