"""
Payments platform client (Square REST v2) + co-pay invoice notifications.

Co-pay flow: create order → create invoice for that order → publish.
The pay link is then optionally emailed (Django mail) and texted (Twilio);
notification failures are logged and never fail the invoice.
"""

import logging
import smtplib
import time
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from django.conf import settings
from django.core.mail import send_mail

from ..exceptions import UpstreamError
from .base import BaseAPIClient

logger = logging.getLogger(__name__)

INVOICE_DUE_DAYS = 7


def to_cents(amount) -> int:
    return int((Decimal(str(amount)) * 100).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


@dataclass
class CopayInvoice:
    invoice_id: str
    invoice_url: str
    invoice_number: Optional[str]


class PaymentsClient(BaseAPIClient):

    service_name = 'Square'
    error_code = 'PAYMENTS_ERROR'

    def __init__(self, access_token: Optional[str] = None, location_id: Optional[str] = None, **kwargs):
        super().__init__(settings.SQUARE_API_BASE, **kwargs)
        self.access_token = access_token or settings.SQUARE_ACCESS_TOKEN
        self.location_id = location_id or settings.SQUARE_LOCATION_ID

    def _headers(self) -> dict[str, str]:
        if not self.access_token:
            raise self._not_configured('SQUARE_ACCESS_TOKEN')
        return {
            'Authorization': f'Bearer {self.access_token}',
            'Square-Version': settings.SQUARE_API_VERSION,
            'Content-Type': 'application/json',
        }

    def create_copay_invoice(self, patient_id: str, patient_name: str, amount,
                             email: Optional[str] = None, phone: Optional[str] = None) -> CopayInvoice:
        if not self.location_id:
            raise self._not_configured('SQUARE_LOCATION_ID')

        key = f'invoice-{patient_id}-{int(time.time() * 1000)}'
        names = patient_name.split(' ')
        given_name = names[0]
        family_name = ' '.join(names[1:]) or given_name

        order = self._request('POST', '/orders', json={
            'idempotency_key': f'order-{key}',
            'order': {
                'location_id': self.location_id,
                'line_items': [{
                    'name': 'Co-Pay',
                    'quantity': '1',
                    'base_price_money': {'amount': to_cents(amount), 'currency': 'USD'},
                }],
            },
        })['order']

        recipient = {'given_name': given_name, 'family_name': family_name}
        if email:
            recipient['email_address'] = email
        if phone:
            recipient['phone_number'] = phone

        invoice = self._request('POST', '/invoices', json={
            'idempotency_key': key,
            'invoice': {
                'location_id': self.location_id,
                'order_id': order['id'],
                'primary_recipient': recipient,
                'payment_requests': [{
                    'request_type': 'BALANCE',
                    'due_date': (date.today() + timedelta(days=INVOICE_DUE_DAYS)).isoformat(),
                    'automatic_payment_source': 'NONE',
                }],
                'delivery_method': 'EMAIL',
                'invoice_number': f'COPAY-{int(time.time() * 1000)}',
                'title': 'Co-Pay Invoice',
                'description': f'Co-pay payment for {patient_name}',
                'accepted_payment_methods': {'card': True, 'square_gift_card': False, 'bank_account': False},
            },
        })['invoice']
        logger.info("[Square] invoice %s created for patient %s", invoice['id'], patient_id)

        published = self._request('POST', f"/invoices/{invoice['id']}/publish", json={
            'version': invoice['version'],
            'idempotency_key': f'publish-{key}',
        })['invoice']

        return CopayInvoice(
            invoice_id=invoice['id'],
            invoice_url=published.get('public_url') or '#',
            invoice_number=published.get('invoice_number'),
        )


class SMSClient(BaseAPIClient):
    """Twilio Messages API，只用到发短信。"""

    service_name = 'Twilio'
    error_code = 'SMS_ERROR'

    def __init__(self, **kwargs):
        super().__init__('https://api.twilio.com/2010-04-01', **kwargs)
        self.account_sid = settings.TWILIO_ACCOUNT_SID
        self.session.auth = (self.account_sid, settings.TWILIO_AUTH_TOKEN)

    @property
    def configured(self) -> bool:
        return bool(self.account_sid and settings.TWILIO_AUTH_TOKEN and settings.TWILIO_PHONE_NUMBER)

    def _headers(self) -> dict[str, str]:
        return {}

    def send(self, to: str, body: str) -> dict:
        return self._request(
            'POST', f'/Accounts/{self.account_sid}/Messages.json',
            data={'To': to, 'From': settings.TWILIO_PHONE_NUMBER, 'Body': body},
        )


def send_invoice_email(patient_name: str, email: str, amount, invoice: CopayInvoice) -> bool:
    clinic = settings.CLINIC_NAME
    body = (
        f'Hi {patient_name},\n\n'
        f'Your co-pay invoice for ${float(amount):.2f} is ready.\n\n'
        f'View and pay your invoice: {invoice.invoice_url}\n\n'
        f'Invoice #{invoice.invoice_number or "N/A"}\n\n'
        f'Thank you,\n{clinic}'
    )
    try:
        send_mail(f'Invoice Ready - ${float(amount):.2f}', body, settings.DEFAULT_FROM_EMAIL, [email])
    except (smtplib.SMTPException, OSError) as exc:
        logger.error("[Square] invoice email to %s failed: %s", email, exc)
        return False
    logger.info("[Square] invoice email sent to %s", email)
    return True


def send_invoice_text(patient_name: str, phone: str, amount, invoice: CopayInvoice,
                      client: Optional[SMSClient] = None) -> bool:
    client = client or SMSClient()
    if not client.configured:
        logger.warning("[Square] Twilio credentials not configured, skipping SMS")
        return False
    message = (
        f'Hi {patient_name}, your co-pay invoice for ${float(amount):.2f} is ready. '
        f'View and pay here: {invoice.invoice_url} - {settings.CLINIC_NAME}'
    )
    try:
        client.send(phone, message)
    except UpstreamError as exc:
        logger.error("[Square] invoice SMS to %s failed: %s", phone, exc)
        return False
    return True
