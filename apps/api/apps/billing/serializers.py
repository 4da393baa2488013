"""Billing serializers."""
from rest_framework import serializers

from .models import Bill, BillItem, BillPayment


class BillItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = BillItem
        fields = ['id', 'item_name', 'quantity', 'unit_price', 'line_total']
        read_only_fields = fields


class BillPaymentSerializer(serializers.ModelSerializer):
    class Meta:
        model = BillPayment
        fields = ['id', 'amount', 'payment_mode', 'transaction_id', 'paid_at']
        read_only_fields = fields


class BillSerializer(serializers.ModelSerializer):
    """
    Bill with items and payments.

    All amounts are derived by Bill.recalculate_totals and read-only here.
    """
    items = BillItemSerializer(many=True, read_only=True)
    payments = BillPaymentSerializer(many=True, read_only=True)
    is_fully_paid = serializers.BooleanField(read_only=True)

    class Meta:
        model = Bill
        fields = [
            'id',
            'bill_number',
            'visit_id',
            'bill_date',
            'status',
            'consultation_fee',
            'items_subtotal',
            'subtotal',
            'discount_percentage',
            'discount_amount',
            'tax_percentage',
            'tax_amount',
            'total_amount',
            'paid_amount',
            'due_amount',
            'is_fully_paid',
            'items',
            'payments',
        ]
        read_only_fields = fields
