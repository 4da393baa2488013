from django.db import migrations

CLINIC_ROLES = ['admin', 'practitioner', 'reception', 'accounting']


def create_clinic_roles(apps, schema_editor):
    """Create the fixed clinic roles. Idempotent."""
    Role = apps.get_model('authz', 'Role')
    for name in CLINIC_ROLES:
        Role.objects.get_or_create(name=name)


def remove_unassigned_roles(apps, schema_editor):
    """Delete bootstrap roles that no user holds."""
    Role = apps.get_model('authz', 'Role')
    Role.objects.filter(name__in=CLINIC_ROLES, user_roles__isnull=True).delete()


class Migration(migrations.Migration):

    dependencies = [
        ('authz', '0001_initial'),
    ]

    operations = [
        migrations.RunPython(create_clinic_roles, remove_unassigned_roles),
    ]
