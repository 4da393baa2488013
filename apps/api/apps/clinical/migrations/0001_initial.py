import uuid

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('authz', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        # ------------------------------------------------------------------
        # Master data
        # ------------------------------------------------------------------
        migrations.CreateModel(
            name='Medicine',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=200)),
                ('generic_name', models.CharField(blank=True, max_length=200)),
                ('strength', models.CharField(blank=True, help_text='e.g. 500 mg', max_length=50)),
                ('form', models.CharField(blank=True, help_text='Tablet, Syrup, Capsule...', max_length=50)),
                ('current_stock', models.PositiveIntegerField(default=0)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'medicine',
                'ordering': ['name'],
                'indexes': [
                    models.Index(fields=['name'], name='idx_medicine_name'),
                    models.Index(fields=['is_active'], name='idx_medicine_active'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Dose',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('code', models.CharField(max_length=20, unique=True)),
                ('name', models.CharField(max_length=100)),
                ('times_per_day', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('sort_order', models.PositiveSmallIntegerField(default=0)),
                ('is_active', models.BooleanField(default=True)),
            ],
            options={
                'db_table': 'dose',
                'ordering': ['sort_order', 'code'],
            },
        ),
        migrations.CreateModel(
            name='Advised',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('text', models.CharField(max_length=500)),
                ('is_active', models.BooleanField(default=True)),
            ],
            options={
                'db_table': 'advised',
                'verbose_name_plural': 'Advised',
                'ordering': ['text'],
            },
        ),
        migrations.CreateModel(
            name='Complaint',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=200, unique=True)),
                ('is_active', models.BooleanField(default=True)),
            ],
            options={
                'db_table': 'complaint',
                'ordering': ['name'],
            },
        ),
        # ------------------------------------------------------------------
        # Patient
        # ------------------------------------------------------------------
        migrations.CreateModel(
            name='Patient',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('patient_number', models.CharField(editable=False, max_length=30, unique=True)),
                ('title', models.CharField(blank=True, max_length=20)),
                ('name', models.CharField(max_length=200)),
                ('sex', models.CharField(choices=[('female', 'Female'), ('male', 'Male'), ('other', 'Other'), ('unknown', 'Unknown')], default='unknown', max_length=10)),
                ('mobile', models.CharField(max_length=20)),
                ('birth_date', models.DateField(blank=True, null=True)),
                ('email', models.EmailField(blank=True, max_length=254)),
                ('address', models.TextField(blank=True)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by_user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='patients_created', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'patient',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['mobile'], name='idx_patient_mobile'),
                    models.Index(fields=['name'], name='idx_patient_name'),
                ],
            },
        ),
        # ------------------------------------------------------------------
        # Visit
        # ------------------------------------------------------------------
        migrations.CreateModel(
            name='Visit',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('visit_number', models.CharField(editable=False, max_length=30, unique=True)),
                ('visit_date', models.DateTimeField(default=django.utils.timezone.now)),
                ('visit_day', models.DateField(editable=False)),
                ('status', models.CharField(choices=[('checked_in', 'Checked In'), ('in_progress', 'In Progress'), ('completed', 'Completed'), ('cancelled', 'Cancelled'), ('no_show', 'No Show')], default='checked_in', max_length=20)),
                ('is_additional_visit', models.BooleanField(default=False, help_text='Extra same-day visit created on explicit request')),
                ('chief_complaint', models.TextField(blank=True)),
                ('history_of_present_illness', models.TextField(blank=True)),
                ('past_history', models.TextField(blank=True)),
                ('family_history', models.TextField(blank=True)),
                ('blood_pressure', models.CharField(blank=True, help_text='systolic/diastolic mmHg', max_length=20)),
                ('temperature', models.DecimalField(blank=True, decimal_places=1, max_digits=4, null=True)),
                ('pulse', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('respiratory_rate', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('spo2', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('weight', models.DecimalField(blank=True, decimal_places=2, help_text='kg', max_digits=5, null=True)),
                ('height', models.DecimalField(blank=True, decimal_places=2, help_text='cm', max_digits=5, null=True)),
                ('bmi', models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True)),
                ('general_examination', models.TextField(blank=True)),
                ('systemic_examination', models.TextField(blank=True)),
                ('local_examination', models.TextField(blank=True)),
                ('diagnosis', models.TextField(blank=True)),
                ('treatment_plan', models.TextField(blank=True)),
                ('clinical_notes', models.TextField(blank=True)),
                ('follow_up_date', models.DateField(blank=True, null=True)),
                ('follow_up_days', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('follow_up_instructions', models.TextField(blank=True)),
                ('started_at', models.DateTimeField(blank=True, null=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('cancellation_reason', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('patient', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='visits', to='clinical.patient')),
                ('doctor', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='visits', to='authz.practitioner')),
                ('created_by_user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='visits_created', to=settings.AUTH_USER_MODEL)),
                ('updated_by_user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='visits_updated', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'opd_visit',
                'ordering': ['-visit_date'],
                'indexes': [
                    models.Index(fields=['patient', 'doctor', 'visit_day'], name='idx_visit_patient_doctor_day'),
                    models.Index(fields=['doctor', 'visit_day'], name='idx_visit_doctor_day'),
                    models.Index(fields=['status'], name='idx_visit_status'),
                ],
            },
        ),
        migrations.AddConstraint(
            model_name='visit',
            constraint=models.UniqueConstraint(
                condition=models.Q(is_additional_visit=False) & ~models.Q(status__in=['cancelled', 'no_show']),
                fields=('patient', 'doctor', 'visit_day'),
                name='uniq_live_visit_per_patient_doctor_day',
            ),
        ),
        # ------------------------------------------------------------------
        # Prescription
        # ------------------------------------------------------------------
        migrations.CreateModel(
            name='Prescription',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('prescription_number', models.CharField(editable=False, max_length=30, unique=True)),
                ('prescription_date', models.DateTimeField(default=django.utils.timezone.now)),
                ('diagnosis', models.TextField(blank=True)),
                ('instructions', models.TextField(blank=True)),
                ('validity_days', models.PositiveSmallIntegerField(default=7)),
                ('status', models.CharField(choices=[('draft', 'Draft'), ('active', 'Active'), ('completed', 'Completed'), ('cancelled', 'Cancelled'), ('expired', 'Expired')], default='draft', max_length=20)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('visit', models.OneToOneField(on_delete=django.db.models.deletion.PROTECT, related_name='+', to='clinical.visit')),
                ('patient', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='prescriptions', to='clinical.patient')),
                ('doctor', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='prescriptions', to='authz.practitioner')),
                ('created_by_user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='prescriptions_created', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'prescription',
                'ordering': ['-prescription_date'],
                'indexes': [
                    models.Index(fields=['patient'], name='idx_prescription_patient'),
                    models.Index(fields=['status'], name='idx_prescription_status'),
                ],
            },
        ),
        migrations.CreateModel(
            name='PrescriptionMedicine',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('duration_days', models.PositiveSmallIntegerField()),
                ('quantity', models.PositiveIntegerField()),
                ('instructions', models.CharField(blank=True, max_length=255)),
                ('sort_order', models.PositiveSmallIntegerField(default=0)),
                ('prescription', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='medicine_lines', to='clinical.prescription')),
                ('medicine', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='+', to='clinical.medicine')),
                ('dose', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='+', to='clinical.dose')),
            ],
            options={
                'db_table': 'prescription_medicine',
                'ordering': ['sort_order', 'id'],
            },
        ),
        migrations.AddConstraint(
            model_name='prescriptionmedicine',
            constraint=models.CheckConstraint(check=models.Q(duration_days__gt=0), name='prescription_medicine_duration_positive'),
        ),
        migrations.AddConstraint(
            model_name='prescriptionmedicine',
            constraint=models.CheckConstraint(check=models.Q(quantity__gt=0), name='prescription_medicine_quantity_positive'),
        ),
        migrations.CreateModel(
            name='PrescriptionAdvice',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('custom_advice', models.TextField(blank=True)),
                ('prescription', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='advice_lines', to='clinical.prescription')),
                ('advised', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='+', to='clinical.advised')),
            ],
            options={
                'db_table': 'prescription_advice',
                'ordering': ['id'],
            },
        ),
        migrations.CreateModel(
            name='PrescriptionComplaint',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('custom_complaint', models.CharField(blank=True, max_length=255)),
                ('duration', models.CharField(blank=True, help_text='e.g. 3 days', max_length=50)),
                ('severity', models.CharField(blank=True, choices=[('mild', 'Mild'), ('moderate', 'Moderate'), ('severe', 'Severe')], max_length=10)),
                ('prescription', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='complaint_lines', to='clinical.prescription')),
                ('complaint', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='+', to='clinical.complaint')),
            ],
            options={
                'db_table': 'prescription_complaint',
                'ordering': ['id'],
            },
        ),
        migrations.AddField(
            model_name='visit',
            name='prescription',
            field=models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to='clinical.prescription'),
        ),
    ]
