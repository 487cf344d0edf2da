"""
HTTP 层。

View 只做三件事：取参数 → 调 service / integration → 序列化。
所有失败都 raise，由 exception_handler.unified_exception_handler 统一格式化。
"""

import logging
from datetime import datetime, timezone

from django.db import DatabaseError, connection
from django.db.models import Q
from django.http import HttpResponse
from rest_framework.exceptions import ParseError
from rest_framework.response import Response
from rest_framework.views import APIView

from . import billing_services, services
from .agent import CRMAgent, list_workflows
from .agent.sessions import DEFAULT_SESSION_ID, AgentSessionStore
from .exceptions import ValidationError
from .integrations import CRMClient, EHRClient, PaymentsClient, ScrapingClient
from .integrations.crm import USER_ROLES
from .integrations.ehr import run_full_sync
from .integrations.payments import send_invoice_email, send_invoice_text
from .intake import WizardIntakeAdapter
from .models import EhrAppointment, EhrInsuranceCard, EhrPatient
from .serializers import (
    serialize_doctor_note, serialize_ehr_appointment, serialize_ehr_insurance_card,
    serialize_ehr_patient, serialize_eligibility_check, serialize_intake, serialize_intake_created,
    serialize_invoice, serialize_page, serialize_patient, serialize_patient_created,
    serialize_payment, serialize_webhook_event,
)

logger = logging.getLogger(__name__)


def _now_iso():
    return datetime.now(timezone.utc).isoformat()


def _body(request):
    """request.data 必须是 JSON object；数组 / 标量一律 400。"""
    data = request.data
    if not isinstance(data, dict):
        raise ValidationError(message='Request body must be a JSON object.', code='INVALID_JSON')
    return data


def _require(data, *fields, message=None):
    missing = [f for f in fields if not data.get(f)]
    if missing:
        raise ValidationError(
            message=message or f"Missing required fields: {', '.join(fields)}",
            code='MISSING_FIELD',
            detail={'missing': missing},
        )


def _pagination(request, default_limit=50):
    return services.parse_pagination(
        request.query_params.get('limit'),
        request.query_params.get('offset'),
        default_limit,
    )


# ── intake ─────────────────────────────────────────────────────────────────


class IntakeView(APIView):
    """POST /api/intake/ · GET /api/intake/?id= · GET /api/intake/?limit=&offset="""

    def post(self, request):
        intake = WizardIntakeAdapter(request.data, request.content_type).process()
        submission, diagnoses = services.create_intake(intake)
        return Response(serialize_intake_created(submission, diagnoses))

    def get(self, request):
        intake_id = request.query_params.get('id')
        if intake_id:
            return Response({'success': True, 'data': serialize_intake(services.get_intake(intake_id))})

        limit, offset = _pagination(request, services.DEFAULT_INTAKE_PAGE_SIZE)
        records, total = services.list_intakes(limit, offset)
        return Response(serialize_page([serialize_intake(r) for r in records], total, limit, offset))


class IntakePipelineView(APIView):
    """GET / PATCH / POST /api/intake/<id>/pipeline/"""

    def get(self, request, intake_id):
        return Response({'pipeline_status': services.get_pipeline_status(intake_id)})

    def patch(self, request, intake_id):
        submission = services.set_pipeline_status(intake_id, _body(request).get('pipeline'))
        return Response({'success': True, 'data': serialize_intake(submission)})

    def post(self, request, intake_id):
        data = _body(request)
        submission = services.submit_clinical_step(intake_id, data.get('step'), data.get('data'), data.get('status'))
        return Response({'success': True, 'data': serialize_intake(submission)})


class MockIntakeView(APIView):
    """/api/intake-mock/: 不落库的 intake，进程重启即清空。"""

    def post(self, request):
        payload = WizardIntakeAdapter(request.data).parse()
        intake_id, diagnoses = services.mock_intake_store.create(payload)
        return Response({
            'success': True,
            'intakeId': intake_id,
            'diagnoses': diagnoses,
            'message': services.MockIntakeStore.MESSAGE,
            'mock': True,
        })

    def get(self, request):
        intake_id = request.query_params.get('id')
        if intake_id:
            return Response({'success': True, 'data': services.mock_intake_store.get(intake_id), 'mock': True})
        records = services.mock_intake_store.all()
        return Response({'success': True, 'data': records, 'total': len(records), 'mock': True})


# ── doctor workspace ───────────────────────────────────────────────────────


class DoctorNotesView(APIView):

    def post(self, request):
        note = services.save_doctor_note(_body(request))
        return Response({'success': True, 'data': serialize_doctor_note(note)})

    def get(self, request):
        note = services.get_doctor_note(request.query_params.get('intakeId'))
        return Response({'success': True, 'data': serialize_doctor_note(note)})


class ERxView(APIView):

    def post(self, request):
        return Response(services.send_erx(_body(request)))


class SecureEmailView(APIView):

    def post(self, request):
        return Response(services.send_secure_email(_body(request)))


# ── revenue cycle ──────────────────────────────────────────────────────────


class EligibilityView(APIView):

    def post(self, request):
        return Response(services.check_eligibility(_body(request)))

    def get(self, request):
        limit, _ = _pagination(request)
        checks = services.eligibility_history(limit)
        return Response({
            'success': True,
            'data': [serialize_eligibility_check(c) for c in checks],
            'count': len(checks),
        })


class ExportView(APIView):

    def post(self, request):
        body, content_type, filename = services.export_records(_body(request))
        response = HttpResponse(body, content_type=content_type)
        response['Content-Disposition'] = f'attachment; filename="{filename}"'
        return response


# ── billing mirror ─────────────────────────────────────────────────────────


class PatientListView(APIView):

    def post(self, request):
        patient, billing_error = billing_services.create_patient(_body(request))
        return Response(serialize_patient_created(patient, billing_error))

    def get(self, request):
        limit, offset = _pagination(request)
        patients, total = billing_services.list_patients(request.query_params.get('search'), limit, offset)
        return Response(serialize_page([serialize_patient(p) for p in patients], total, limit, offset, key='patients'))


class PatientDetailView(APIView):

    def get(self, request, patient_id):
        return Response({'success': True, 'patient': serialize_patient(billing_services.get_patient(patient_id))})


class PatientSyncView(APIView):
    """POST /api/patients/<id>/sync/: 排队补偿同步到计费平台。"""

    def post(self, request, patient_id):
        patient, task_id = billing_services.queue_patient_sync(patient_id)
        return Response({
            'success': True,
            'patient_id': str(patient.id),
            'task_id': task_id,
            'message': 'Billing sync queued',
        }, status=202)


class InvoiceListView(APIView):

    def post(self, request):
        invoice = billing_services.create_invoice(_body(request))
        return Response({
            'success': True,
            'invoice': serialize_invoice(invoice, include_line_items=True),
            'message': 'Invoice created successfully (local only - billing sync pending)',
        })

    def get(self, request):
        limit, offset = _pagination(request)
        invoices, total = billing_services.list_invoices(
            patient_id=request.query_params.get('patient_id'),
            status=request.query_params.get('status'),
            limit=limit,
            offset=offset,
        )
        return Response(serialize_page([serialize_invoice(i) for i in invoices], total, limit, offset, key='invoices'))


class PaymentListView(APIView):

    def get(self, request):
        limit, offset = _pagination(request)
        payments, total = billing_services.list_payments(request.query_params.get('status'), limit, offset)
        return Response(serialize_page([serialize_payment(p) for p in payments], total, limit, offset, key='payments'))


class WebhookView(APIView):
    """计费平台回调。永远 200。"""

    def post(self, request):
        headers = {k: v for k, v in request.headers.items()}
        # 先缓存原始 body，解析失败时还能原文落库
        raw_body = request.body.decode('utf-8', errors='replace')
        try:
            body = request.data
        except ParseError as exc:
            event = billing_services.record_unparsed_webhook(raw_body, headers, str(exc.detail))
            event_type, result = None, None
        else:
            event, event_type, result = billing_services.ingest_webhook(body, headers)
        return Response({
            'success': True,
            'message': 'Webhook received and processed',
            'webhookId': str(event.id) if event else None,
            'eventType': event_type,
            'processResult': result,
        })

    def get(self, request):
        return Response({
            'message': 'Billing webhook endpoint',
            'status': 'active',
            'timestamp': _now_iso(),
            'supportedEvents': billing_services.SUPPORTED_WEBHOOK_EVENTS,
        })


class WebhookEventListView(APIView):

    def get(self, request):
        limit, offset = _pagination(request)
        processed = request.query_params.get('processed')
        if processed is not None:
            processed = processed.lower() in ('1', 'true', 'yes')
        events, total = billing_services.list_webhook_events(
            event_type=request.query_params.get('event_type'),
            processed=processed,
            limit=limit,
            offset=offset,
        )
        return Response(serialize_page([serialize_webhook_event(e) for e in events], total, limit, offset, key='events'))


class DashboardView(APIView):

    def get(self, request):
        return Response({'success': True, 'data': billing_services.dashboard_stats()})


class HealthView(APIView):

    def get(self, request):
        health = {'status': 'ok', 'timestamp': _now_iso(), 'database': {'status': 'connected', 'error': None}}
        try:
            connection.ensure_connection()
        except DatabaseError as exc:
            logger.error("[health] database unreachable: %s", exc)
            health['status'] = 'degraded'
            health['database'] = {'status': 'error', 'error': str(exc)}
        return Response(health, status=200 if health['status'] == 'ok' else 503)


# ── CRM ────────────────────────────────────────────────────────────────────


class CRMContactsView(APIView):

    def get(self, request):
        client = CRMClient()
        contact_id = request.query_params.get('contactId')
        if contact_id:
            return Response({'success': True, 'contact': client.get_contact(contact_id)})

        tags = request.query_params.get('tags')
        limit, _ = _pagination(request, default_limit=20)
        contacts = client.search_contacts(
            query=request.query_params.get('query'),
            tags=tags.split(',') if tags else None,
            limit=limit,
        )
        return Response({'success': True, 'contacts': contacts, 'count': len(contacts)})

    def post(self, request):
        """把本地 patient 同步成 CRM contact。"""
        data = _body(request)
        _require(data, 'patientId', message='patientId is required')
        patient = billing_services.sync_patient_to_crm(data['patientId'])
        return Response({
            'success': True,
            'crmContactId': patient.crm_contact_id,
            'message': 'Patient synced to CRM successfully',
        })

    def put(self, request):
        data = _body(request)
        _require(data, 'contactId', message='contactId is required')
        CRMClient().update_contact(data['contactId'], data.get('updates') or {})
        return Response({'success': True, 'message': 'Contact updated successfully'})


class CRMUsersView(APIView):

    def get(self, request):
        users = CRMClient().list_users()
        return Response({'success': True, 'users': users, 'count': len(users)})

    def post(self, request):
        data = dict(_body(request))
        _require(data, 'firstName', 'lastName', 'email')
        role = data.get('role') or 'user'
        if role not in USER_ROLES:
            raise ValidationError(message='Invalid role. Must be "admin" or "user"', code='INVALID_ROLE')
        data['role'] = role
        user = CRMClient().create_user(data)
        name = user.get('name') or f"{data['firstName']} {data['lastName']}"
        return Response({'success': True, 'user': user, 'message': f'User {name} created successfully!'})


class CRMUserDetailView(APIView):

    def get(self, request, user_id):
        return Response({'success': True, 'user': CRMClient().get_user(user_id)})

    def put(self, request, user_id):
        user = CRMClient().update_user(user_id, dict(_body(request)))
        return Response({'success': True, 'user': user, 'message': 'User updated successfully'})

    def delete(self, request, user_id):
        CRMClient().delete_user(user_id)
        return Response({'success': True, 'message': 'User deleted successfully'})


class CRMCalendarsView(APIView):

    def get(self, request):
        calendars = CRMClient().list_calendars()
        return Response({'success': True, 'calendars': calendars, 'count': len(calendars)})

    def post(self, request):
        data = _body(request)
        _require(data, 'userId', 'firstName', 'lastName', 'slug')
        calendar = CRMClient().create_personal_calendar(
            data['userId'], data['firstName'], data['lastName'], data['slug'],
        )
        return Response({
            'success': True,
            'calendar': calendar,
            'message': f"Calendar created for {data['firstName']} {data['lastName']}",
        })


class CRMAgentView(APIView):
    """POST 提问 · GET 历史 · DELETE 清空历史。sessionId 缺省为 'default'。"""

    def post(self, request):
        data = _body(request)
        result = CRMAgent().query(
            data.get('prompt'),
            session_id=data.get('sessionId'),
            include_history=bool(data.get('includeHistory')),
            max_tokens=data.get('maxTokens'),
        )
        return Response({
            'success': True,
            'response': result.response,
            'toolCalls': result.tool_calls_as_dicts(),
            'sessionId': result.session_id,
        })

    def get(self, request):
        sid = request.query_params.get('sessionId') or DEFAULT_SESSION_ID
        history = AgentSessionStore().get_history(sid)
        return Response({'success': True, 'history': history, 'messageCount': len(history)})

    def delete(self, request):
        sid = request.query_params.get('sessionId') or DEFAULT_SESSION_ID
        AgentSessionStore().clear(sid)
        return Response({'success': True, 'message': 'Conversation history cleared'})


class CRMWorkflowView(APIView):

    def post(self, request):
        data = _body(request)
        name = data.get('workflow')
        result = CRMAgent().run_workflow(name, data.get('params'))
        calls = result.tool_calls_as_dicts()
        return Response({
            'success': True,
            'workflow': name,
            'response': result.response,
            'toolCalls': len(calls),
            'details': calls,
        })

    def get(self, request):
        workflows = list_workflows()
        return Response({'success': True, 'workflows': workflows, 'count': len(workflows)})


# ── EHR mirror ─────────────────────────────────────────────────────────────


class EHRPatientsView(APIView):

    def get(self, request):
        limit, offset = _pagination(request)
        queryset = EhrPatient.objects.order_by('-synced_at', '-id')
        search = request.query_params.get('search')
        if search:
            queryset = queryset.filter(
                Q(first_name__icontains=search) | Q(last_name__icontains=search) | Q(email__icontains=search)
            )
        total = queryset.count()
        rows = [serialize_ehr_patient(p) for p in queryset[offset:offset + limit]]
        return Response(serialize_page(rows, total, limit, offset))


class EHRAppointmentsView(APIView):

    def get(self, request):
        limit, offset = _pagination(request, default_limit=100)
        params = request.query_params
        queryset = EhrAppointment.objects.order_by('-date', '-id')
        if params.get('patientId'):
            queryset = queryset.filter(ehr_patient_id=params['patientId'])
        if params.get('startDate'):
            queryset = queryset.filter(date__gte=params['startDate'])
        if params.get('endDate'):
            queryset = queryset.filter(date__lte=params['endDate'])
        total = queryset.count()
        rows = [serialize_ehr_appointment(a) for a in queryset[offset:offset + limit]]
        return Response(serialize_page(rows, total, limit, offset))


class EHRInsuranceCardsView(APIView):

    def get(self, request):
        limit, offset = _pagination(request)
        queryset = EhrInsuranceCard.objects.order_by('-synced_at', '-id')
        if request.query_params.get('patientId'):
            queryset = queryset.filter(ehr_patient_id=request.query_params['patientId'])
        total = queryset.count()
        rows = [serialize_ehr_insurance_card(c) for c in queryset[offset:offset + limit]]
        return Response(serialize_page(rows, total, limit, offset))


class EHRSyncView(APIView):

    def post(self, request):
        data = _body(request)
        client = EHRClient(username=data.get('username'), password=data.get('password'))
        if not client.username or not client.password:
            raise ValidationError(message='Missing EHR credentials', code='MISSING_CREDENTIALS')
        client.login()
        summary = run_full_sync(client, data.get('startDate'), data.get('endDate'))
        return Response({'success': True, 'message': 'EHR sync completed successfully', 'summary': summary})

    def get(self, request):
        return Response({
            'message': 'Use POST to trigger EHR sync',
            'example': {
                'username': 'your-ehr-username',
                'password': 'your-ehr-password',
                'startDate': '2025-10-01',
                'endDate': '2025-10-31',
            },
        })


# ── payments / scraping ────────────────────────────────────────────────────


class SquareInvoiceView(APIView):

    def post(self, request):
        data = _body(request)
        _require(data, 'patient_id', 'patient_name', 'amount', message='Missing required fields')
        invoice = PaymentsClient().create_copay_invoice(
            patient_id=str(data['patient_id']),
            patient_name=data['patient_name'],
            amount=data['amount'],
            email=data.get('patient_email'),
            phone=data.get('patient_phone'),
        )

        email_sent = bool(data.get('send_email') and data.get('patient_email')) and send_invoice_email(
            data['patient_name'], data['patient_email'], data['amount'], invoice,
        )
        text_sent = bool(data.get('send_text') and data.get('patient_phone')) and send_invoice_text(
            data['patient_name'], data['patient_phone'], data['amount'], invoice,
        )

        return Response({
            'success': True,
            'invoice_id': invoice.invoice_id,
            'invoice_url': invoice.invoice_url,
            'invoice_number': invoice.invoice_number,
            'amount': data['amount'],
            'email_sent': email_sent,
            'text_sent': text_sent,
        })


class ScrapeView(APIView):

    def post(self, request):
        data = _body(request)
        _require(data, 'url', message='url is required')
        return Response({'success': True, 'data': ScrapingClient().scrape(data['url'])})
