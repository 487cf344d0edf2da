"""
Billing mirror: patients, invoices, payments, webhook ingestion, dashboard.

本地库是计费平台（Inbox Health）的镜像。写入路径：
- patient：先落本地（sync_status=pending），再同步到计费平台；失败只记 sync_status=failed，
  不回滚本地，之后可以用 celery task 补偿。
- invoice：本地原子写入 invoice + line items，等待后续同步。
- webhook：计费平台推回来的变更，按远端 id upsert。
"""

import logging
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from datetime import date

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError, transaction
from django.db.models import Count, Q, Sum
from django.utils import timezone

from .exceptions import NotFoundError, UpstreamError, ValidationError
from .integrations.billing import BillingClient, patient_to_billing_payload
from .integrations.crm import CRMClient, patient_to_contact
from .models import (
    IntakeSubmission, Invoice, InvoicePayment, LineItem, Patient, Payment, WebhookEvent,
)

logger = logging.getLogger(__name__)

PATIENT_REQUIRED_FIELDS = ('first_name', 'last_name', 'email')


# ── patients ───────────────────────────────────────────────────────────────


def get_patient(patient_id):
    try:
        return Patient.objects.get(id=patient_id)
    except (Patient.DoesNotExist, DjangoValidationError, ValueError):
        raise NotFoundError(
            message='Patient not found',
            code='PATIENT_NOT_FOUND',
            detail={'patient_id': str(patient_id)},
        )


def push_patient_to_billing(patient, client=None):
    """
    把一个本地 patient 推到计费平台，并回写 billing_id / sync_status。
    失败时记 sync_status=failed 再把 UpstreamError 往上抛。
    """
    client = client or BillingClient()
    try:
        remote = client.create_patient(patient_to_billing_payload(patient)) or {}
    except UpstreamError as exc:
        patient.sync_status = 'failed'
        patient.sync_error = exc.message
        patient.save(update_fields=['sync_status', 'sync_error', 'updated_at'])
        raise

    patient.billing_id = str(remote['id']) if remote.get('id') else patient.billing_id
    patient.sync_status = 'synced'
    patient.sync_error = None
    patient.last_synced_at = timezone.now()
    patient.save(update_fields=['billing_id', 'sync_status', 'sync_error', 'last_synced_at', 'updated_at'])
    return remote


def create_patient(data, client=None):
    """
    Returns (patient, billing_error)。billing_error 为 None 表示同步成功。
    """
    for field in PATIENT_REQUIRED_FIELDS:
        if not data.get(field):
            raise ValidationError(
                message=f'Missing required field: {field}',
                code='MISSING_FIELD',
                detail={'field': field},
            )

    patient = Patient.objects.create(
        first_name=data['first_name'],
        last_name=data['last_name'],
        email=data['email'],
        cell_phone=data.get('phone') or None,
        date_of_birth=data.get('date_of_birth') or None,
        address_line_1=data.get('address_line1') or None,
        address_line_2=data.get('address_line2') or None,
        city=data.get('city') or None,
        state=data.get('state') or None,
        zip=data.get('zip_code') or None,
        sync_status='pending',
    )
    logger.info("[create_patient] local patient %s created", patient.id)

    try:
        push_patient_to_billing(patient, client=client)
    except UpstreamError as exc:
        logger.warning("[create_patient] billing sync failed for %s: %s", patient.id, exc.message)
        return patient, exc.message
    return patient, None


def list_patients(search=None, limit=50, offset=0):
    queryset = Patient.objects.order_by('-created_at', '-id')
    if search:
        queryset = queryset.filter(
            Q(first_name__icontains=search) | Q(last_name__icontains=search) | Q(email__icontains=search)
        )
    total = queryset.count()
    return list(queryset[offset:offset + limit]), total


def queue_patient_sync(patient_id):
    patient = get_patient(patient_id)
    from .tasks import sync_patient_to_billing
    result = sync_patient_to_billing.delay(str(patient.id))
    logger.info("[queue_patient_sync] patient %s queued as task %s", patient.id, result.id)
    return patient, result.id


def sync_patient_to_crm(patient_id, client=None):
    """patient → CRM contact。已有 crm_contact_id 就更新，否则新建。"""
    patient = get_patient(patient_id)
    client = client or CRMClient()
    contact = patient_to_contact(patient)

    try:
        if patient.crm_contact_id:
            client.update_contact(patient.crm_contact_id, contact)
        else:
            patient.crm_contact_id = client.create_contact(contact)['id']
    except UpstreamError:
        patient.crm_sync_status = 'failed'
        patient.save(update_fields=['crm_sync_status', 'updated_at'])
        raise

    patient.crm_sync_status = 'synced'
    patient.crm_last_sync_at = timezone.now()
    patient.save(update_fields=['crm_contact_id', 'crm_sync_status', 'crm_last_sync_at', 'updated_at'])
    return patient


# ── invoices ───────────────────────────────────────────────────────────────


def to_cents(amount):
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError):
        return 0
    if not value.is_finite():
        return 0
    return int((value * 100).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def _quantity(value):
    try:
        return int(value) or 1
    except (TypeError, ValueError):
        return 1


def create_invoice(data):
    if not data.get('patient_id'):
        raise ValidationError(
            message='Missing required field: patient_id',
            code='MISSING_FIELD',
            detail={'field': 'patient_id'},
        )
    line_items = data.get('line_items')
    if not isinstance(line_items, list) or not line_items:
        raise ValidationError(message='At least one line item is required', code='MISSING_LINE_ITEMS')

    patient = get_patient(data['patient_id'])
    invoice_date = data.get('invoice_date') or date.today().isoformat()
    total = sum(to_cents(item.get('amount')) for item in line_items)

    with transaction.atomic():
        invoice = Invoice.objects.create(
            patient=patient,
            billing_patient_id=patient.billing_id,
            date_of_service=invoice_date,
            total_amount_cents=total,
            paid_amount_cents=0,
            balance_cents=total,
            status='pending',
            notes=data.get('description') or None,
            sync_status='pending',
        )
        LineItem.objects.bulk_create([
            LineItem(
                invoice=invoice,
                description=item.get('description'),
                service_code=item.get('cpt_code') or None,
                date_of_service=item.get('service_date') or invoice_date,
                total_charge_amount_cents=to_cents(item.get('amount')),
                patient_due_cents=to_cents(item.get('amount')),
                quantity=_quantity(item.get('quantity')),
            )
            for item in line_items
        ])

    logger.info("[create_invoice] invoice %s for patient %s total=%d cents", invoice.id, patient.id, total)
    return invoice


def list_invoices(patient_id=None, status=None, limit=50, offset=0):
    queryset = Invoice.objects.select_related('patient').order_by('-created_at', '-id')
    if patient_id:
        queryset = queryset.filter(patient_id=patient_id)
    if status:
        queryset = queryset.filter(status=status)
    total = queryset.count()
    return list(queryset[offset:offset + limit]), total


def list_payments(status=None, limit=50, offset=0):
    queryset = Payment.objects.order_by('-created_at', '-id')
    if status:
        queryset = queryset.filter(status=status)
    total = queryset.count()
    return list(queryset[offset:offset + limit]), total


# ── webhook ingestion ──────────────────────────────────────────────────────

SUPPORTED_WEBHOOK_EVENTS = [
    'patient_created',
    'patient_updated',
    'payment_created',
    'payment_updated',
    'invoice_created',
    'invoice_updated',
    'invoice_payment_created',
    'invoice_payment_updated',
]


def _event_data(body, kind):
    data = body.get('data') or body.get(kind) or body
    return data if isinstance(data, dict) else {}


def _handle_patient_event(body):
    data = _event_data(body, 'patient')
    remote_id = data.get('id') or data.get('patient_id')
    if not remote_id:
        return {'status': 'skipped', 'reason': 'no_patient_id'}

    remote_id = str(remote_id)
    balance = data.get('balance_cents') or data.get('cached_balance_cents')
    now = timezone.now()
    existing = Patient.objects.filter(billing_id=remote_id).first()

    if existing:
        existing.first_name = data.get('first_name') or existing.first_name
        existing.last_name = data.get('last_name') or existing.last_name
        existing.email = data.get('email') or existing.email
        existing.cell_phone = data.get('cell_phone') or existing.cell_phone
        existing.date_of_birth = data.get('date_of_birth') or existing.date_of_birth
        existing.balance_cents = balance
        existing.sync_status = 'synced'
        existing.last_synced_at = now
        existing.save()
        return {'status': 'updated', 'patientId': remote_id, 'localId': str(existing.id)}

    patient = Patient.objects.create(
        billing_id=remote_id,
        first_name=data.get('first_name') or '',
        last_name=data.get('last_name') or '',
        email=data.get('email'),
        cell_phone=data.get('cell_phone'),
        date_of_birth=data.get('date_of_birth'),
        address_line_1=data.get('address_line_1'),
        address_line_2=data.get('address_line_2'),
        city=data.get('city'),
        state=data.get('state'),
        zip=data.get('zip'),
        balance_cents=balance,
        sync_status='synced',
        last_synced_at=now,
    )
    return {'status': 'created', 'patientId': remote_id, 'localId': str(patient.id)}


def _handle_payment_event(body):
    data = _event_data(body, 'payment')
    remote_id = data.get('id') or data.get('payment_id')
    if not remote_id:
        return {'status': 'skipped', 'reason': 'no_payment_id'}

    payment, _ = Payment.objects.update_or_create(
        billing_id=str(remote_id),
        defaults={
            'billing_patient_id': data.get('patient_id'),
            'expected_amount_cents': data.get('expected_amount_cents') or data.get('amount_cents') or 0,
            'payment_method': data.get('payment_method_type'),
            'status': data.get('status') or 'pending',
            'successful': bool(data.get('successful')),
            'last_synced_at': timezone.now(),
        },
    )
    return {'status': 'processed', 'paymentId': str(remote_id), 'localId': str(payment.id)}


def _handle_invoice_event(body):
    data = _event_data(body, 'invoice')
    remote_id = data.get('id') or data.get('invoice_id')
    if not remote_id:
        return {'status': 'skipped', 'reason': 'no_invoice_id'}

    remote_patient_id = data.get('patient_id')
    defaults = {
        'billing_patient_id': remote_patient_id,
        'balance_cents': data.get('total_balance_cents') or 0,
        'patient_balance_cents': data.get('patient_balance_cents'),
        'insurance_balance_cents': data.get('total_insurance_balance_cents'),
        'date_of_service': data.get('date_of_service'),
        'status': data.get('status') or 'pending',
        'sync_status': 'synced',
        'last_synced_at': timezone.now(),
    }
    if remote_patient_id:
        patient = Patient.objects.filter(billing_id=str(remote_patient_id)).first()
        if patient:
            defaults['patient'] = patient

    invoice, _ = Invoice.objects.update_or_create(billing_id=str(remote_id), defaults=defaults)
    return {'status': 'processed', 'invoiceId': str(remote_id), 'localId': str(invoice.id)}


def _handle_invoice_payment_event(body):
    data = _event_data(body, 'invoice_payment')
    remote_id = data.get('id')
    if not remote_id:
        return {'status': 'skipped', 'reason': 'no_invoice_payment_id'}

    link, _ = InvoicePayment.objects.update_or_create(
        billing_id=str(remote_id),
        defaults={
            'billing_invoice_id': data.get('invoice_id'),
            'billing_payment_id': data.get('payment_id'),
            'paid_amount_cents': data.get('paid_amount_cents') or 0,
            'last_synced_at': timezone.now(),
        },
    )
    return {'status': 'processed', 'invoicePaymentId': str(remote_id), 'localId': str(link.id)}


WEBHOOK_HANDLERS = {
    'patient_created': _handle_patient_event,
    'patient_updated': _handle_patient_event,
    'payment_created': _handle_payment_event,
    'payment_updated': _handle_payment_event,
    'invoice_created': _handle_invoice_event,
    'invoice_updated': _handle_invoice_event,
    'invoice_payment_created': _handle_invoice_payment_event,
    'invoice_payment_updated': _handle_invoice_payment_event,
}


def record_unparsed_webhook(raw_body, headers, error):
    """body 不是合法 JSON：原文落库，标记未处理，照样回 200。"""
    logger.warning("[ingest_webhook] unparseable body: %s", error)
    try:
        return WebhookEvent.objects.create(
            event_type='unknown',
            payload={'raw': raw_body},
            headers=headers,
            processed=False,
            processing_error=error,
        )
    except DatabaseError:
        logger.exception("[ingest_webhook] failed to store unparseable webhook")
        return None


def ingest_webhook(body, headers):
    """
    先落一条 WebhookEvent，再按 event_type 分发。

    处理失败只记在 event 行上（processing_error），不往外抛：
    调用方永远回 200，避免计费平台重试风暴。
    Returns (event_or_None, event_type, process_result)。
    """
    body = body if isinstance(body, dict) else {}
    event_type = body.get('event_type') or body.get('type')
    if not isinstance(event_type, str):
        event_type = None

    try:
        event = WebhookEvent.objects.create(
            event_type=event_type or 'unknown',
            payload=body,
            headers=headers,
        )
    except DatabaseError:
        logger.exception("[ingest_webhook] failed to store webhook %s", event_type)
        event = None

    handler = WEBHOOK_HANDLERS.get(event_type)
    if handler is None:
        logger.info("[ingest_webhook] unhandled event type: %s", event_type)
        result = {'status': 'unhandled', 'eventType': event_type}
        if event:
            _mark_processed(event, result)
        return event, event_type, result

    try:
        with transaction.atomic():
            result = handler(body)
    except Exception as exc:
        logger.exception("[ingest_webhook] processing %s failed", event_type)
        if event:
            event.processed = False
            event.processing_error = str(exc)
            event.save(update_fields=['processed', 'processing_error'])
        return event, event_type, None

    if event:
        _mark_processed(event, result)
    logger.info("[ingest_webhook] %s → %s", event_type, result.get('status'))
    return event, event_type, result


def _mark_processed(event, result):
    event.processed = True
    event.processed_at = timezone.now()
    event.processing_result = result
    event.save(update_fields=['processed', 'processed_at', 'processing_result'])


def list_webhook_events(event_type=None, processed=None, limit=50, offset=0):
    queryset = WebhookEvent.objects.order_by('-received_at', '-id')
    if event_type:
        queryset = queryset.filter(event_type=event_type)
    if processed is not None:
        queryset = queryset.filter(processed=processed)
    total = queryset.count()
    return list(queryset[offset:offset + limit]), total


# ── dashboard ──────────────────────────────────────────────────────────────


def dashboard_stats():
    """各项汇总，按顺序逐个查。"""
    intake_counts = {
        row['status']: row['n']
        for row in IntakeSubmission.objects.order_by().values('status').annotate(n=Count('id'))
    }
    invoices = Invoice.objects.aggregate(
        count=Count('id'),
        outstanding=Sum('balance_cents', filter=~Q(status='paid')),
    )
    payments = Payment.objects.aggregate(
        count=Count('id'),
        successful_count=Count('id', filter=Q(successful=True)),
        collected=Sum('expected_amount_cents', filter=Q(successful=True)),
    )
    patients = Patient.objects.aggregate(
        total=Count('id'),
        failed_sync=Count('id', filter=Q(sync_status='failed')),
    )
    unprocessed = WebhookEvent.objects.filter(processed=False).count()

    return {
        'intakes': {
            'total': sum(intake_counts.values()),
            'pending': intake_counts.get('pending', 0),
            'in_review': intake_counts.get('in_review', 0),
            'completed': intake_counts.get('completed', 0),
        },
        'patients': {
            'total': patients['total'],
            'sync_failed': patients['failed_sync'],
        },
        'invoices': {
            'total': invoices['count'],
            'outstanding_balance_cents': invoices['outstanding'] or 0,
        },
        'payments': {
            'total': payments['count'],
            'successful': payments['successful_count'],
            'collected_cents': payments['collected'] or 0,
        },
        'webhooks': {
            'unprocessed': unprocessed,
        },
    }
