import uuid
from django.db import models


class IntakeSubmission(models.Model):
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('in_review', 'In Review'),
        ('completed', 'Completed'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    # Step 1: incident
    injury_date = models.CharField(max_length=32, blank=True, null=True)
    injury_time = models.CharField(max_length=32, blank=True, null=True)
    injury_location = models.CharField(max_length=255, blank=True, null=True)
    injury_description = models.TextField(blank=True, null=True)
    mechanism_of_injury = models.CharField(max_length=100, blank=True, null=True)
    work_activity = models.CharField(max_length=255, blank=True, null=True)
    employer_name = models.CharField(max_length=200, blank=True, null=True)
    claim_number = models.CharField(max_length=100, blank=True, null=True)

    # Step 2: history
    previous_injuries = models.TextField(blank=True, null=True)
    current_medications = models.TextField(blank=True, null=True)
    allergies = models.TextField(blank=True, null=True)
    medical_history = models.TextField(blank=True, null=True)

    # Step 3: symptoms
    pain_level = models.IntegerField(blank=True, null=True)
    symptoms = models.JSONField(default=list, blank=True)
    affected_body_parts = models.JSONField(default=list, blank=True)

    ai_diagnoses = models.JSONField(default=list, blank=True, editable=False)
    pipeline_status = models.JSONField(blank=True, null=True)
    clinical_steps = models.JSONField(default=dict, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')
    submitted_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'intake_submissions'
        ordering = ['-submitted_at', '-id']


class DoctorNote(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    intake = models.OneToOneField(IntakeSubmission, on_delete=models.CASCADE, related_name='doctor_note')
    prescription = models.TextField(blank=True, null=True)
    personal_info_notes = models.TextField(blank=True, null=True)
    symptoms_notes = models.TextField(blank=True, null=True)
    diagnosis_notes = models.TextField(blank=True, null=True)
    erx_sent = models.BooleanField(default=False)
    secure_email_sent = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'doctor_notes'


class EligibilityCheck(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    payer_name = models.CharField(max_length=200)
    member_id = models.CharField(max_length=100)
    dob = models.CharField(max_length=32)
    first_name = models.CharField(max_length=100, blank=True, null=True)
    last_name = models.CharField(max_length=100, blank=True, null=True)
    eligible = models.BooleanField(default=False)
    copay_amount = models.IntegerField(default=0)
    deductible_amount = models.IntegerField(default=0)
    deductible_met = models.IntegerField(default=0)
    reason = models.TextField(blank=True, null=True)
    checked_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'claims_eligibility'


class Patient(models.Model):
    SYNC_STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('synced', 'Synced'),
        ('failed', 'Failed'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    email = models.EmailField(blank=True, null=True)
    cell_phone = models.CharField(max_length=32, blank=True, null=True)
    date_of_birth = models.CharField(max_length=32, blank=True, null=True)
    address_line_1 = models.CharField(max_length=255, blank=True, null=True)
    address_line_2 = models.CharField(max_length=255, blank=True, null=True)
    city = models.CharField(max_length=100, blank=True, null=True)
    state = models.CharField(max_length=50, blank=True, null=True)
    zip = models.CharField(max_length=20, blank=True, null=True)
    balance_cents = models.IntegerField(blank=True, null=True)

    # billing platform mirror
    billing_id = models.CharField(max_length=100, unique=True, blank=True, null=True)
    sync_status = models.CharField(max_length=20, choices=SYNC_STATUS_CHOICES, default='pending')
    sync_error = models.TextField(blank=True, null=True)
    last_synced_at = models.DateTimeField(blank=True, null=True)

    # CRM mirror
    crm_contact_id = models.CharField(max_length=100, blank=True, null=True)
    crm_sync_status = models.CharField(max_length=20, blank=True, null=True)
    crm_last_sync_at = models.DateTimeField(blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'patients'


class Invoice(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    patient = models.ForeignKey(Patient, on_delete=models.SET_NULL, null=True, blank=True, related_name='invoices')
    billing_id = models.CharField(max_length=100, unique=True, blank=True, null=True)
    billing_patient_id = models.CharField(max_length=100, blank=True, null=True)
    date_of_service = models.CharField(max_length=32, blank=True, null=True)
    total_amount_cents = models.IntegerField(default=0)
    paid_amount_cents = models.IntegerField(default=0)
    balance_cents = models.IntegerField(default=0)
    patient_balance_cents = models.IntegerField(blank=True, null=True)
    insurance_balance_cents = models.IntegerField(blank=True, null=True)
    status = models.CharField(max_length=30, default='pending')
    notes = models.TextField(blank=True, null=True)
    sync_status = models.CharField(max_length=20, default='pending')
    last_synced_at = models.DateTimeField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'invoices'


class LineItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    invoice = models.ForeignKey(Invoice, on_delete=models.CASCADE, related_name='line_items')
    description = models.CharField(max_length=255, blank=True, null=True)
    service_code = models.CharField(max_length=20, blank=True, null=True)
    date_of_service = models.CharField(max_length=32, blank=True, null=True)
    total_charge_amount_cents = models.IntegerField(default=0)
    patient_due_cents = models.IntegerField(default=0)
    quantity = models.IntegerField(default=1)

    class Meta:
        db_table = 'line_items'


class Payment(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    billing_id = models.CharField(max_length=100, unique=True)
    billing_patient_id = models.CharField(max_length=100, blank=True, null=True)
    expected_amount_cents = models.IntegerField(default=0)
    payment_method = models.CharField(max_length=50, blank=True, null=True)
    status = models.CharField(max_length=30, default='pending')
    successful = models.BooleanField(default=False)
    last_synced_at = models.DateTimeField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'payments'


class InvoicePayment(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    billing_id = models.CharField(max_length=100, unique=True)
    billing_invoice_id = models.CharField(max_length=100, blank=True, null=True)
    billing_payment_id = models.CharField(max_length=100, blank=True, null=True)
    paid_amount_cents = models.IntegerField(default=0)
    last_synced_at = models.DateTimeField(blank=True, null=True)

    class Meta:
        db_table = 'invoice_payments'


class WebhookEvent(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    event_type = models.CharField(max_length=100, default='unknown')
    payload = models.JSONField(default=dict, blank=True)
    headers = models.JSONField(default=dict, blank=True)
    received_at = models.DateTimeField(auto_now_add=True)
    processed = models.BooleanField(default=False)
    processed_at = models.DateTimeField(blank=True, null=True)
    processing_result = models.JSONField(blank=True, null=True)
    processing_error = models.TextField(blank=True, null=True)

    class Meta:
        db_table = 'webhook_events'


class EhrPatient(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    ehr_id = models.CharField(max_length=100, unique=True)
    first_name = models.CharField(max_length=100, blank=True, default='')
    last_name = models.CharField(max_length=100, blank=True, default='')
    date_of_birth = models.CharField(max_length=32, blank=True, null=True)
    email = models.CharField(max_length=255, blank=True, null=True)
    phone = models.CharField(max_length=32, blank=True, null=True)
    raw_data = models.JSONField(default=dict, blank=True)
    synced_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'ehr_patients'


class EhrAppointment(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    ehr_id = models.CharField(max_length=100, unique=True)
    ehr_patient_id = models.CharField(max_length=100, blank=True, null=True)
    date = models.CharField(max_length=32, blank=True, null=True)
    time = models.CharField(max_length=32, blank=True, null=True)
    provider_id = models.CharField(max_length=100, blank=True, null=True)
    room_id = models.CharField(max_length=100, blank=True, null=True)
    status = models.CharField(max_length=50, blank=True, null=True)
    raw_data = models.JSONField(default=dict, blank=True)
    synced_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'ehr_appointments'


class EhrInsuranceCard(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    ehr_id = models.CharField(max_length=100, unique=True)
    ehr_patient_id = models.CharField(max_length=100, blank=True, null=True)
    name = models.CharField(max_length=200, blank=True, null=True)
    member_id = models.CharField(max_length=100, blank=True, null=True)
    group_number = models.CharField(max_length=100, blank=True, null=True)
    raw_data = models.JSONField(default=dict, blank=True)
    synced_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'ehr_insurance_cards'
