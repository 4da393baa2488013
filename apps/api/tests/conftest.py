"""
Global test fixtures for pytest.

Provides reusable fixtures for API and workflow testing:
- Authenticated API clients by role
- Doctor (Practitioner), Patient and master data instances
- Request payload builder for the consultation workflow
"""
from decimal import Decimal

import pytest
from rest_framework.test import APIClient

from apps.authz.models import User, Role, UserRole, Practitioner, RoleChoices
from apps.clinical.models import Advised, Complaint, Dose, Medicine, Patient


def _create_user_with_role(email, role_name, **extra):
    user = User.objects.create_user(
        email=email,
        password='testpass123',
        is_active=True,
        **extra
    )
    role, _ = Role.objects.get_or_create(name=role_name)
    UserRole.objects.create(user=user, role=role)
    return user


def _client_for(user):
    client = APIClient()
    client.force_authenticate(user=user)
    return client


# ============================================================================
# API Clients
# ============================================================================

@pytest.fixture
def api_client():
    """Unauthenticated DRF API client."""
    return APIClient()


@pytest.fixture
def admin_user(db):
    return _create_user_with_role(
        'admin@test.com', RoleChoices.ADMIN, is_staff=True, is_superuser=True
    )


@pytest.fixture
def admin_client(admin_user):
    """Authenticated API client with Admin role (full access)."""
    return _client_for(admin_user)


@pytest.fixture
def practitioner_user(db):
    return _create_user_with_role('practitioner@test.com', RoleChoices.PRACTITIONER)


@pytest.fixture
def practitioner_client(practitioner_user):
    """Authenticated API client with Practitioner role (all consultation operations)."""
    return _client_for(practitioner_user)


@pytest.fixture
def reception_client(db):
    """Authenticated API client with Reception role (summary and slip only)."""
    return _client_for(_create_user_with_role('reception@test.com', RoleChoices.RECEPTION))


@pytest.fixture
def accounting_client(db):
    """Authenticated API client with Accounting role (no consultation access)."""
    return _client_for(_create_user_with_role('accounting@test.com', RoleChoices.ACCOUNTING))


# ============================================================================
# Domain fixtures
# ============================================================================

@pytest.fixture
def doctor(db):
    """Active doctor with a 300.00 consultation fee."""
    user = User.objects.create_user(email='doctor@test.com', password='testpass123')
    return Practitioner.objects.create(
        user=user,
        display_name='Dr. Test Doctor',
        specialty='General Medicine',
        registration_number='REG-0001',
        consultation_fee=Decimal('300.00'),
    )


@pytest.fixture
def patient(db):
    return Patient.objects.create(
        title='Mr.',
        name='Test Patient',
        sex='male',
        mobile='9876543210',
    )


@pytest.fixture
def medicine(db):
    return Medicine.objects.create(
        name='Paracetamol',
        strength='500 mg',
        form='Tablet',
        current_stock=100,
    )


@pytest.fixture
def second_medicine(db):
    return Medicine.objects.create(
        name='Cetirizine',
        strength='10 mg',
        form='Tablet',
        current_stock=50,
    )


@pytest.fixture
def dose_od(db):
    return Dose.objects.create(code='OD', name='Once daily', times_per_day=1, sort_order=1)


@pytest.fixture
def dose(db):
    """BD (twice daily), the default dose for quick consultations."""
    return Dose.objects.create(code='BD', name='Twice daily', times_per_day=2, sort_order=2)


@pytest.fixture
def advised(db):
    return Advised.objects.create(text='Drink plenty of fluids')


@pytest.fixture
def complaint(db):
    return Complaint.objects.create(name='Fever')


@pytest.fixture
def consultation_payload(patient, doctor, medicine, dose):
    """
    Build a consultation request for an existing patient.

    Usage:
        payload = consultation_payload(consultation_fee=Decimal('300.00'))
    """
    def build(**overrides):
        payload = {
            'patient': {'is_new_patient': False, 'existing_patient_id': patient.id},
            'doctor_id': doctor.id,
            'consultation_details': {
                'chief_complaint': 'Fever for 3 days',
                'temperature': Decimal('101.2'),
                'pulse': 92,
            },
            'medicines': [
                {
                    'medicine_id': medicine.id,
                    'dose_id': dose.id,
                    'duration_days': 5,
                    'quantity': 10,
                    'instructions': 'After food',
                },
            ],
            'advice': [],
            'consultation_fee': Decimal('300.00'),
            'discount_percentage': Decimal('0'),
            'tax_percentage': Decimal('0'),
            'payment': None,
            'allow_multiple_visits_per_day': False,
            'override_existing': False,
        }
        payload.update(overrides)
        return payload
    return build
