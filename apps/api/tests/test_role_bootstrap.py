"""
Tests for role bootstrap (migration), demo seeding and the superuser command.
"""
from io import StringIO

import pytest
from django.core.management import call_command

from apps.authz.models import Practitioner, Role, RoleChoices, User
from apps.clinical.models import Dose, Medicine
from apps.consultations.services import quick_consultation


@pytest.mark.django_db
class TestRoleBootstrap:

    def test_migration_creates_clinic_roles(self):
        names = set(Role.objects.values_list('name', flat=True))

        assert names == set(RoleChoices.values)


@pytest.mark.django_db
class TestSeedOpdDemo:

    def test_seed_is_idempotent(self):
        call_command('seed_opd_demo', stdout=StringIO())
        counts = (Dose.objects.count(), Medicine.objects.count(), User.objects.count())

        call_command('seed_opd_demo', stdout=StringIO())

        assert (Dose.objects.count(), Medicine.objects.count(), User.objects.count()) == counts

    def test_seeded_data_supports_quick_consultation(self, patient):
        call_command('seed_opd_demo', stdout=StringIO())
        doctor = Practitioner.objects.get(user__email='doctor@example.com')
        medicine = Medicine.objects.get(name='Paracetamol')

        result = quick_consultation(
            patient.id, doctor.id, 'Fever', 'Viral fever', [medicine.id]
        )

        assert result.prescription.medicine_lines.get().dose.code == 'BD'
        assert result.bill.consultation_fee == doctor.consultation_fee
        assert doctor.user.role_names == {RoleChoices.PRACTITIONER}


@pytest.mark.django_db
class TestEnsureSuperuser:

    def test_creates_superuser_with_admin_role(self, monkeypatch):
        monkeypatch.setenv('DJANGO_SUPERUSER_EMAIL', 'root@clinic.test')
        monkeypatch.setenv('DJANGO_SUPERUSER_PASSWORD', 'secret-pass')

        call_command('ensure_superuser', stdout=StringIO())
        call_command('ensure_superuser', stdout=StringIO())

        user = User.objects.get(email='root@clinic.test')
        assert user.is_superuser is True
        assert user.check_password('secret-pass')
        assert user.user_roles.filter(role__name=RoleChoices.ADMIN).count() == 1
