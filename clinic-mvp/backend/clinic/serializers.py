"""
Response serializers: ORM 对象 → JSON-able dict。

只负责「输出格式化」，不做任何解析或校验。
输入解析在 clinic/intake/ adapter 和 services 里完成。
"""


def _iso(value):
    return value.isoformat() if value else None


def serialize_intake(intake):
    return {
        'id': str(intake.id),
        'injury_date': intake.injury_date,
        'injury_time': intake.injury_time,
        'injury_location': intake.injury_location,
        'injury_description': intake.injury_description,
        'mechanism_of_injury': intake.mechanism_of_injury,
        'work_activity': intake.work_activity,
        'employer_name': intake.employer_name,
        'claim_number': intake.claim_number,
        'previous_injuries': intake.previous_injuries,
        'current_medications': intake.current_medications,
        'allergies': intake.allergies,
        'medical_history': intake.medical_history,
        'pain_level': intake.pain_level,
        'symptoms': intake.symptoms,
        'affected_body_parts': intake.affected_body_parts,
        'ai_diagnoses': intake.ai_diagnoses,
        'pipeline_status': intake.pipeline_status,
        'clinical_steps': intake.clinical_steps,
        'status': intake.status,
        'submitted_at': _iso(intake.submitted_at),
        'updated_at': _iso(intake.updated_at),
    }


def serialize_intake_created(intake, diagnoses):
    """Serialize intake for the POST response."""
    return {
        'success': True,
        'intakeId': str(intake.id),
        'diagnoses': diagnoses,
        'message': 'Intake submitted successfully',
    }


def serialize_doctor_note(note):
    if note is None:
        return None
    return {
        'id': str(note.id),
        'intake_id': str(note.intake_id),
        'prescription': note.prescription,
        'personal_info_notes': note.personal_info_notes,
        'symptoms_notes': note.symptoms_notes,
        'diagnosis_notes': note.diagnosis_notes,
        'erx_sent': note.erx_sent,
        'secure_email_sent': note.secure_email_sent,
        'created_at': _iso(note.created_at),
        'updated_at': _iso(note.updated_at),
    }


def serialize_eligibility_check(check):
    return {
        'id': str(check.id),
        'payer_name': check.payer_name,
        'member_id': check.member_id,
        'dob': check.dob,
        'first_name': check.first_name,
        'last_name': check.last_name,
        'eligible': check.eligible,
        'copay_amount': check.copay_amount,
        'deductible_amount': check.deductible_amount,
        'deductible_met': check.deductible_met,
        'reason': check.reason,
        'checked_at': _iso(check.checked_at),
    }


def serialize_patient(patient):
    return {
        'id': str(patient.id),
        'first_name': patient.first_name,
        'last_name': patient.last_name,
        'email': patient.email,
        'cell_phone': patient.cell_phone,
        'date_of_birth': patient.date_of_birth,
        'address_line_1': patient.address_line_1,
        'address_line_2': patient.address_line_2,
        'city': patient.city,
        'state': patient.state,
        'zip': patient.zip,
        'balance_cents': patient.balance_cents,
        'billing_id': patient.billing_id,
        'sync_status': patient.sync_status,
        'sync_error': patient.sync_error,
        'last_synced_at': _iso(patient.last_synced_at),
        'crm_contact_id': patient.crm_contact_id,
        'crm_sync_status': patient.crm_sync_status,
        'crm_last_sync_at': _iso(patient.crm_last_sync_at),
        'created_at': _iso(patient.created_at),
    }


def serialize_patient_created(patient, billing_error):
    synced = billing_error is None
    if synced:
        message = f'Patient created successfully and synced to billing (ID: {patient.billing_id})'
    else:
        message = 'Patient created locally, but failed to sync to billing'
    return {
        'success': True,
        'patient': serialize_patient(patient),
        'billing_sync': 'success' if synced else 'failed',
        'billing_id': patient.billing_id,
        'billing_error': billing_error,
        'message': message,
    }


def serialize_line_item(item):
    return {
        'id': str(item.id),
        'description': item.description,
        'service_code': item.service_code,
        'date_of_service': item.date_of_service,
        'total_charge_amount_cents': item.total_charge_amount_cents,
        'patient_due_cents': item.patient_due_cents,
        'quantity': item.quantity,
    }


def serialize_invoice(invoice, include_line_items=False):
    patient = invoice.patient
    data = {
        'id': str(invoice.id),
        'billing_id': invoice.billing_id,
        'patient_id': str(invoice.patient_id) if invoice.patient_id else None,
        'patient': {
            'id': str(patient.id),
            'first_name': patient.first_name,
            'last_name': patient.last_name,
            'email': patient.email,
        } if patient else None,
        'date_of_service': invoice.date_of_service,
        'total_amount_cents': invoice.total_amount_cents,
        'paid_amount_cents': invoice.paid_amount_cents,
        'balance_cents': invoice.balance_cents,
        'patient_balance_cents': invoice.patient_balance_cents,
        'insurance_balance_cents': invoice.insurance_balance_cents,
        'status': invoice.status,
        'notes': invoice.notes,
        'sync_status': invoice.sync_status,
        'created_at': _iso(invoice.created_at),
    }
    if include_line_items:
        data['line_items'] = [serialize_line_item(item) for item in invoice.line_items.all()]
    return data


def serialize_payment(payment):
    return {
        'id': str(payment.id),
        'billing_id': payment.billing_id,
        'billing_patient_id': payment.billing_patient_id,
        'expected_amount_cents': payment.expected_amount_cents,
        'payment_method': payment.payment_method,
        'status': payment.status,
        'successful': payment.successful,
        'last_synced_at': _iso(payment.last_synced_at),
        'created_at': _iso(payment.created_at),
    }


def serialize_webhook_event(event):
    return {
        'id': str(event.id),
        'event_type': event.event_type,
        'payload': event.payload,
        'received_at': _iso(event.received_at),
        'processed': event.processed,
        'processed_at': _iso(event.processed_at),
        'processing_result': event.processing_result,
        'processing_error': event.processing_error,
    }


def serialize_ehr_patient(patient):
    return {
        'id': str(patient.id),
        'ehr_id': patient.ehr_id,
        'first_name': patient.first_name,
        'last_name': patient.last_name,
        'date_of_birth': patient.date_of_birth,
        'email': patient.email,
        'phone': patient.phone,
        'synced_at': _iso(patient.synced_at),
    }


def serialize_ehr_appointment(appointment):
    return {
        'id': str(appointment.id),
        'ehr_id': appointment.ehr_id,
        'ehr_patient_id': appointment.ehr_patient_id,
        'date': appointment.date,
        'time': appointment.time,
        'provider_id': appointment.provider_id,
        'room_id': appointment.room_id,
        'status': appointment.status,
        'synced_at': _iso(appointment.synced_at),
    }


def serialize_ehr_insurance_card(card):
    return {
        'id': str(card.id),
        'ehr_id': card.ehr_id,
        'ehr_patient_id': card.ehr_patient_id,
        'name': card.name,
        'member_id': card.member_id,
        'group_number': card.group_number,
        'synced_at': _iso(card.synced_at),
    }


def serialize_page(items, total, limit, offset, key='data'):
    """List 响应统一外壳。"""
    return {
        'success': True,
        key: items,
        'total': total,
        'limit': limit,
        'offset': offset,
    }
