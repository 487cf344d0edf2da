"""
Shared fixtures for all tests.

factory-boy factories live here so both unit/ and integration/ can import them.
"""
import pytest
from django.core.cache import cache
from django.test import Client

import factory
from clinic.models import (
    DoctorNote, EhrPatient, IntakeSubmission, Invoice, Patient, Payment, WebhookEvent,
)
from clinic.services import mock_intake_store


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------

class IntakeSubmissionFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = IntakeSubmission

    injury_date = '2024-03-02'
    injury_description = 'Lifted a heavy box'
    mechanism_of_injury = 'lifting'
    employer_name = 'Acme Logistics'
    pain_level = 6
    symptoms = factory.LazyFunction(lambda: ['Sharp pain'])
    affected_body_parts = factory.LazyFunction(lambda: ['Shoulder'])
    status = 'pending'


class DoctorNoteFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = DoctorNote

    intake = factory.SubFactory(IntakeSubmissionFactory)
    prescription = 'Ibuprofen 600mg TID'


class PatientFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Patient

    first_name = 'John'
    last_name = 'Doe'
    email = factory.Sequence(lambda n: f'patient{n}@example.com')
    cell_phone = '+15551234567'
    sync_status = 'pending'


class InvoiceFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Invoice

    patient = factory.SubFactory(PatientFactory)
    total_amount_cents = 15000
    balance_cents = 15000
    status = 'pending'


class PaymentFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Payment

    billing_id = factory.Sequence(lambda n: f'pay-{n}')
    expected_amount_cents = 2500
    status = 'completed'
    successful = True


class WebhookEventFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = WebhookEvent

    event_type = 'patient_created'
    payload = factory.LazyFunction(dict)


class EhrPatientFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = EhrPatient

    ehr_id = factory.Sequence(lambda n: f'ehr-{n}')
    first_name = 'Jane'
    last_name = 'Roe'


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def api_client():
    """Django test client for integration tests."""
    return Client()


@pytest.fixture(autouse=True)
def _reset_process_state():
    """进程内状态（mock intake store / agent session cache）每个测试都清空。"""
    cache.clear()
    mock_intake_store.reset()
    yield
    cache.clear()
    mock_intake_store.reset()


@pytest.fixture
def sample_intake_payload():
    """Full wizard payload for POST /api/intake/."""
    return {
        'injuryDate': '2024-03-02',
        'injuryTime': '14:30',
        'injuryLocation': 'Warehouse B',
        'injuryDescription': 'Lifted a box from the floor and felt a pop',
        'mechanismOfInjury': 'lifting',
        'workActivity': 'Stocking shelves',
        'employerName': 'Acme Logistics',
        'claimNumber': 'WC-2024-118',
        'previousInjuries': '',
        'currentMedications': 'Ibuprofen',
        'allergies': 'None',
        'medicalHistory': '',
        'painLevel': 8,
        'symptoms': ['Sharp pain', 'Limited range of motion', 'Swelling'],
        'affectedBodyParts': ['Shoulder'],
    }
