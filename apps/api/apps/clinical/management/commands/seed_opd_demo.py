"""
Management command to seed an OPD demo setup.

Usage:
    python manage.py seed_opd_demo

Idempotent: safe to run multiple times. Ensures roles, a demo doctor and a
receptionist, and the master data a consultation needs (doses, medicines,
standard advice, complaints).
"""
from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction

from apps.authz.models import Practitioner, Role, RoleChoices, User, UserRole
from apps.clinical.models import Advised, Complaint, Dose, Medicine

DOSES = [
    # code, name, times per day
    ('OD', 'Once daily', 1),
    ('BD', 'Twice daily', 2),
    ('TDS', 'Three times daily', 3),
    ('QID', 'Four times daily', 4),
    ('HS', 'At bedtime', 1),
    ('SOS', 'When required', None),
]

MEDICINES = [
    # name, strength, form, stock
    ('Paracetamol', '500 mg', 'Tablet', 500),
    ('Cetirizine', '10 mg', 'Tablet', 300),
    ('Amoxicillin', '500 mg', 'Capsule', 200),
    ('Pantoprazole', '40 mg', 'Tablet', 250),
    ('Cough Syrup', '100 ml', 'Syrup', 80),
]

ADVICE = [
    'Drink plenty of fluids',
    'Take adequate rest',
    'Avoid oily and spicy food',
    'Review if symptoms persist',
]

COMPLAINTS = ['Fever', 'Cough', 'Headache', 'Body ache', 'Cold']

DEMO_USERS = [
    {
        'email': 'doctor@example.com',
        'password': 'doctor123dev',
        'first_name': 'Demo',
        'last_name': 'Doctor',
        'role': RoleChoices.PRACTITIONER,
        'practitioner': {'display_name': 'Dr. Demo Doctor', 'consultation_fee': Decimal('500.00')},
    },
    {
        'email': 'reception@example.com',
        'password': 'reception123dev',
        'first_name': 'Front',
        'last_name': 'Desk',
        'role': RoleChoices.RECEPTION,
    },
]


class Command(BaseCommand):
    help = 'Seed roles, demo staff and OPD master data'

    @transaction.atomic
    def handle(self, *args, **options):
        self.stdout.write('Ensuring roles exist...')
        for role_choice in RoleChoices.values:
            role, created = Role.objects.get_or_create(name=role_choice)
            if created:
                self.stdout.write(self.style.SUCCESS(f'  Created role: {role.name}'))

        for spec in DEMO_USERS:
            self._ensure_user(spec)

        for sort_order, (code, name, times_per_day) in enumerate(DOSES, start=1):
            Dose.objects.get_or_create(
                code=code,
                defaults={'name': name, 'times_per_day': times_per_day, 'sort_order': sort_order},
            )
        for name, strength, form, stock in MEDICINES:
            Medicine.objects.get_or_create(
                name=name,
                strength=strength,
                defaults={'form': form, 'current_stock': stock},
            )
        for text in ADVICE:
            Advised.objects.get_or_create(text=text)
        for name in COMPLAINTS:
            Complaint.objects.get_or_create(name=name)

        self.stdout.write(self.style.SUCCESS(
            f'Master data ready: {Dose.objects.count()} doses, '
            f'{Medicine.objects.count()} medicines, {Advised.objects.count()} advice, '
            f'{Complaint.objects.count()} complaints'
        ))

    def _ensure_user(self, spec):
        user = User.objects.filter(email=spec['email']).first()
        if user is None:
            user = User.objects.create_user(
                email=spec['email'],
                password=spec['password'],
                first_name=spec['first_name'],
                last_name=spec['last_name'],
            )
            self.stdout.write(self.style.SUCCESS(f'  Created user: {user.email}'))

        role = Role.objects.get(name=spec['role'])
        UserRole.objects.get_or_create(user=user, role=role)

        practitioner = spec.get('practitioner')
        if practitioner:
            Practitioner.objects.get_or_create(user=user, defaults=practitioner)
