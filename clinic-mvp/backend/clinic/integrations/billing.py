"""
Billing platform client (Inbox Health REST).

Only patient creation is pushed from here; invoices, payments and balances
flow back in through the webhook endpoint.
"""

from typing import Any, Optional

from django.conf import settings

from .base import BaseAPIClient


class BillingClient(BaseAPIClient):

    service_name = 'Inbox Health'
    error_code = 'BILLING_ERROR'

    def __init__(self, api_key: Optional[str] = None, **kwargs):
        super().__init__(settings.INBOX_HEALTH_API_URL, **kwargs)
        self.api_key = api_key or settings.INBOX_HEALTH_API_KEY

    def _headers(self) -> dict[str, str]:
        if not self.api_key:
            raise self._not_configured('INBOX_HEALTH_API_KEY')
        return {
            'x-api-key': self.api_key,
            'Content-Type': 'application/json',
        }

    def create_patient(self, patient: dict[str, Any]) -> dict:
        return self._request('POST', '/patients', json={'patient': patient})


def patient_to_billing_payload(patient) -> dict[str, Any]:
    return {
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
    }
