"""
Unit tests for response serializers.
"""
import pytest

from clinic.serializers import (
    serialize_doctor_note,
    serialize_intake,
    serialize_invoice,
    serialize_page,
    serialize_patient_created,
)
from tests.conftest import IntakeSubmissionFactory, InvoiceFactory, PatientFactory


class TestSerializePage:

    def test_default_key(self):
        assert serialize_page([1, 2], 10, 2, 4) == {
            'success': True, 'data': [1, 2], 'total': 10, 'limit': 2, 'offset': 4,
        }

    def test_custom_key(self):
        assert 'patients' in serialize_page([], 0, 50, 0, key='patients')


def test_doctor_note_none():
    assert serialize_doctor_note(None) is None


class TestPatientCreated:

    def test_synced(self):
        patient = PatientFactory.build(billing_id='9001')
        body = serialize_patient_created(patient, None)
        assert body['billing_sync'] == 'success'
        assert body['billing_id'] == '9001'
        assert body['billing_error'] is None
        assert '9001' in body['message']

    def test_failed(self):
        patient = PatientFactory.build()
        body = serialize_patient_created(patient, 'Inbox Health API error: 500 - down')
        assert body['success'] is True
        assert body['billing_sync'] == 'failed'
        assert body['billing_error'] == 'Inbox Health API error: 500 - down'


@pytest.mark.django_db
class TestModelSerializers:

    def test_intake(self):
        intake = IntakeSubmissionFactory()
        data = serialize_intake(intake)
        assert data['id'] == str(intake.id)
        assert data['status'] == 'pending'
        assert data['pipeline_status'] is None
        assert data['submitted_at'] is not None

    def test_invoice_with_line_items(self):
        invoice = InvoiceFactory()
        invoice.line_items.create(description='Visit', total_charge_amount_cents=15000, patient_due_cents=15000)

        data = serialize_invoice(invoice, include_line_items=True)
        assert data['patient']['first_name'] == 'John'
        assert data['line_items'][0]['total_charge_amount_cents'] == 15000

    def test_invoice_without_patient(self):
        invoice = InvoiceFactory(patient=None)
        data = serialize_invoice(invoice)
        assert data['patient'] is None
        assert data['patient_id'] is None
        assert 'line_items' not in data
