import csv
import io
import itertools
import json
import logging
import threading
import time
from datetime import datetime, timezone

from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.serializers.json import DjangoJSONEncoder
from django.db import transaction

from .diagnosis import suggest_diagnoses
from .exceptions import NotFoundError, ValidationError
from .integrations import get_eligibility_checker, get_erx_gateway, get_secure_email_gateway
from .intake import InternalIntake
from .models import DoctorNote, EligibilityCheck, IntakeSubmission

logger = logging.getLogger(__name__)

DEFAULT_INTAKE_PAGE_SIZE = 20
CLINICAL_STEPS = ('nurse_exam', 'imaging', 'ortho_review')
FINAL_STEP = 'ortho_review'


def parse_pagination(limit, offset, default_limit):
    """querystring 里的 limit / offset → int。非法值直接 400。"""
    try:
        limit = int(limit) if limit not in (None, '') else default_limit
        offset = int(offset) if offset not in (None, '') else 0
    except (TypeError, ValueError):
        raise ValidationError(
            message='limit and offset must be integers',
            code='INVALID_PAGINATION',
            detail={'limit': limit, 'offset': offset},
        )
    if limit < 0 or offset < 0:
        raise ValidationError(
            message='limit and offset must not be negative',
            code='INVALID_PAGINATION',
            detail={'limit': limit, 'offset': offset},
        )
    return limit, offset


# ── intake record store ────────────────────────────────────────────────────


def create_intake(intake: InternalIntake):
    """
    算诊断建议 + 一次写入 intake 行。
    Returns (submission, diagnoses)，diagnoses 是 dict 列表，和库里存的一致。
    """
    symptoms = intake.symptoms
    diagnoses = [
        d.to_dict() for d in suggest_diagnoses(
            symptoms.symptoms,
            symptoms.affected_body_parts,
            symptoms.pain_level,
            intake.incident.mechanism_of_injury,
        )
    ]

    submission = IntakeSubmission.objects.create(
        injury_date=intake.incident.injury_date,
        injury_time=intake.incident.injury_time,
        injury_location=intake.incident.injury_location,
        injury_description=intake.incident.injury_description,
        mechanism_of_injury=intake.incident.mechanism_of_injury,
        work_activity=intake.incident.work_activity,
        employer_name=intake.incident.employer_name,
        claim_number=intake.incident.claim_number,
        previous_injuries=intake.history.previous_injuries,
        current_medications=intake.history.current_medications,
        allergies=intake.history.allergies,
        medical_history=intake.history.medical_history,
        pain_level=symptoms.pain_level,
        symptoms=symptoms.symptoms,
        affected_body_parts=symptoms.affected_body_parts,
        ai_diagnoses=diagnoses,
        status='pending',
    )
    logger.info("[create_intake] intake %s stored with %d diagnoses (source=%s)",
                submission.id, len(diagnoses), intake.source)
    return submission, diagnoses


def get_intake(intake_id):
    """Point lookup. Raises NotFoundError on miss or malformed id."""
    try:
        return IntakeSubmission.objects.get(id=intake_id)
    except (IntakeSubmission.DoesNotExist, DjangoValidationError, ValueError):
        raise NotFoundError(
            message='Intake not found',
            code='INTAKE_NOT_FOUND',
            detail={'intake_id': str(intake_id)},
        )


def list_intakes(limit=DEFAULT_INTAKE_PAGE_SIZE, offset=0):
    """Newest first, id desc as tie-breaker. Returns (records, total)."""
    queryset = IntakeSubmission.objects.order_by('-submitted_at', '-id')
    total = queryset.count()
    return list(queryset[offset:offset + limit]), total


# ── clinical pipeline ──────────────────────────────────────────────────────


def get_pipeline_status(intake_id):
    return get_intake(intake_id).pipeline_status


def set_pipeline_status(intake_id, pipeline):
    """
    整体覆盖 pipeline_status，不校验顺序或组合。
    不改 status：四个 flag 全 true 也不会把 intake 标成 completed。
    """
    if not isinstance(pipeline, dict):
        raise ValidationError(
            message='Request body must include a "pipeline" object',
            code='MISSING_PIPELINE',
        )
    submission = get_intake(intake_id)
    submission.pipeline_status = pipeline
    submission.save(update_fields=['pipeline_status', 'updated_at'])
    return submission


def submit_clinical_step(intake_id, step, data, status=None):
    """
    护士检查 / 影像 / 骨科复核 提交。

    - 数据存进 clinical_steps[step]
    - 不带 status 的提交：pending → in_review
    - status='completed' 只允许 ortho_review，这是把 intake 标成 completed 的唯一入口
    """
    if step not in CLINICAL_STEPS:
        raise ValidationError(
            message=f"step must be one of: {', '.join(CLINICAL_STEPS)}",
            code='INVALID_STEP',
            detail={'step': step},
        )
    if status is not None and (status != 'completed' or step != FINAL_STEP):
        raise ValidationError(
            message=f"status 'completed' can only be submitted with step '{FINAL_STEP}'",
            code='INVALID_STEP_STATUS',
            detail={'step': step, 'status': status},
        )

    with transaction.atomic():
        submission = get_intake(intake_id)
        steps = dict(submission.clinical_steps or {})
        steps[step] = data if data is not None else {}
        submission.clinical_steps = steps

        if status == 'completed':
            submission.status = 'completed'
        elif submission.status == 'pending':
            submission.status = 'in_review'

        submission.save(update_fields=['clinical_steps', 'status', 'updated_at'])

    logger.info("[submit_clinical_step] intake %s step=%s status=%s", submission.id, step, submission.status)
    return submission


# ── mock intake store ──────────────────────────────────────────────────────


class MockIntakeStore:
    """
    进程内 intake 存储，不落库，重启即清空。
    数据库不可用时前端可以切到 /api/intake-mock/ 把流程走通。
    """

    MESSAGE = 'Intake submitted successfully (MOCK MODE - No database)'

    def __init__(self):
        self._lock = threading.Lock()
        self._records = []
        self._ids = itertools.count(1)

    @staticmethod
    def diagnoses_for(payload):
        body_parts = payload.get('affectedBodyParts')
        joined = ', '.join(map(str, body_parts)) if isinstance(body_parts, list) else body_parts
        return [
            {
                'name': 'Work-Related Musculoskeletal Strain',
                'icd10': 'M62.838',
                'confidence': 0.82,
                'reasoning': f"Based on {joined} involvement and pain level {payload.get('painLevel')}/10",
                'cptCodes': [
                    {'code': '99203', 'description': 'Office Visit - New Patient (30 min)'},
                    {'code': '97110', 'description': 'Therapeutic exercises'},
                ],
            },
            {
                'name': 'Soft Tissue Injury',
                'icd10': 'M79.9',
                'confidence': 0.71,
                'reasoning': 'Secondary consideration based on symptom presentation',
                'cptCodes': [
                    {'code': '99203', 'description': 'Office Visit - New Patient'},
                    {'code': '97140', 'description': 'Manual therapy'},
                ],
            },
        ]

    def create(self, payload):
        diagnoses = self.diagnoses_for(payload)
        with self._lock:
            intake_id = f'mock-{next(self._ids)}'
            self._records.append({
                'id': intake_id,
                **payload,
                'diagnoses': diagnoses,
                'status': 'pending',
                'submitted_at': datetime.now(timezone.utc).isoformat(),
            })
        return intake_id, diagnoses

    def get(self, intake_id):
        with self._lock:
            for record in self._records:
                if record['id'] == intake_id:
                    return record
        raise NotFoundError(message='Intake not found', code='INTAKE_NOT_FOUND', detail={'intake_id': intake_id})

    def all(self):
        with self._lock:
            return list(self._records)

    def reset(self):
        with self._lock:
            self._records.clear()
            self._ids = itertools.count(1)


mock_intake_store = MockIntakeStore()


# ── doctor workspace ───────────────────────────────────────────────────────


def _require(data, *fields, message='Missing required fields'):
    missing = [f for f in fields if not data.get(f)]
    if missing:
        raise ValidationError(message=message, code='MISSING_FIELD', detail={'missing': missing})


def save_doctor_note(data):
    """按 intake upsert 医生笔记。只更新 body 里出现的字段。"""
    _require(data, 'intakeId', message='Missing intake ID')
    intake = get_intake(data['intakeId'])

    field_map = {
        'prescription': 'prescription',
        'personalInfoNotes': 'personal_info_notes',
        'symptomsNotes': 'symptoms_notes',
        'diagnosisNotes': 'diagnosis_notes',
    }
    defaults = {model_field: data[key] for key, model_field in field_map.items() if key in data}
    note, created = DoctorNote.objects.update_or_create(intake=intake, defaults=defaults)
    logger.info("[save_doctor_note] intake %s note %s", intake.id, 'created' if created else 'updated')
    return note


def get_doctor_note(intake_id):
    if not intake_id:
        raise ValidationError(message='Missing intake ID', code='MISSING_FIELD', detail={'missing': ['intakeId']})
    return DoctorNote.objects.filter(intake_id=get_intake(intake_id).id).first()


def send_erx(data):
    _require(data, 'intakeId', 'prescription')
    intake = get_intake(data['intakeId'])
    receipt = get_erx_gateway().send(str(intake.id), data['prescription'])
    DoctorNote.objects.update_or_create(
        intake=intake,
        defaults={'prescription': data['prescription'], 'erx_sent': True},
    )
    return receipt


def send_secure_email(data):
    _require(data, 'intakeId', 'prescription')
    intake = get_intake(data['intakeId'])
    receipt = get_secure_email_gateway().send(str(intake.id), data['prescription'], data.get('recipient'))
    DoctorNote.objects.update_or_create(
        intake=intake,
        defaults={'prescription': data['prescription'], 'secure_email_sent': True},
    )
    return receipt


# ── revenue cycle ──────────────────────────────────────────────────────────


def check_eligibility(data):
    """查资格 + 每次都落一条 EligibilityCheck。返回 checker 的原始结果。"""
    _require(
        data, 'payerName', 'memberId', 'dob',
        message='Missing required fields: payerName, memberId, and dob are required',
    )
    result = get_eligibility_checker().check(
        payer_name=data['payerName'],
        member_id=str(data['memberId']),
        dob=data['dob'],
        first_name=data.get('firstName'),
        last_name=data.get('lastName'),
    )
    EligibilityCheck.objects.create(
        payer_name=data['payerName'],
        member_id=str(data['memberId']),
        dob=data['dob'],
        first_name=data.get('firstName'),
        last_name=data.get('lastName'),
        eligible=result['eligible'],
        copay_amount=result.get('copay') or 0,
        deductible_amount=result.get('deductible') or 0,
        deductible_met=result.get('deductibleMet') or 0,
        reason=result.get('reason'),
    )
    logger.info("[check_eligibility] %s / %s eligible=%s", data['payerName'], data['memberId'], result['eligible'])
    return result


def eligibility_history(limit=50):
    return list(EligibilityCheck.objects.order_by('-checked_at')[:limit])


EXPORT_SOURCES = {
    'intakes': (IntakeSubmission, 'submitted_at'),
    'claims': (EligibilityCheck, 'checked_at'),
    'notes': (DoctorNote, 'created_at'),
}
EXPORT_FORMATS = {
    'csv': 'text/csv',
    'json': 'application/json',
}
EMPTY_CSV_BODY = 'No data available\n'


def _export_rows(model, timestamp_field, date_range):
    queryset = model.objects.order_by(f'-{timestamp_field}')
    date_range = date_range if isinstance(date_range, dict) else {}
    if date_range.get('start'):
        queryset = queryset.filter(**{f'{timestamp_field}__gte': date_range['start']})
    if date_range.get('end'):
        queryset = queryset.filter(**{f'{timestamp_field}__lte': date_range['end']})

    fields = model._meta.concrete_fields
    return [{f.attname: getattr(obj, f.attname) for f in fields} for obj in queryset]


def _to_csv(rows):
    if not rows:
        return EMPTY_CSV_BODY
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=list(rows[0].keys()), quoting=csv.QUOTE_NONNUMERIC, lineterminator='\n')
    writer.writeheader()
    for row in rows:
        writer.writerow({
            k: json.dumps(v, cls=DjangoJSONEncoder) if isinstance(v, (list, dict)) else ('' if v is None else str(v))
            for k, v in row.items()
        })
    return buffer.getvalue()


def export_records(data):
    """
    Returns (body, content_type, filename).
    exportType: intakes / claims / notes；format: csv / json；dateRange 可选。
    """
    export_type = data.get('exportType')
    fmt = data.get('format')
    if not export_type or not fmt:
        raise ValidationError(message='Missing exportType or format', code='MISSING_FIELD')
    if not isinstance(export_type, str) or export_type not in EXPORT_SOURCES:
        raise ValidationError(
            message='Invalid export type',
            code='INVALID_EXPORT_TYPE',
            detail={'exportType': export_type, 'allowed': list(EXPORT_SOURCES)},
        )
    if not isinstance(fmt, str) or fmt not in EXPORT_FORMATS:
        raise ValidationError(
            message='Invalid format',
            code='INVALID_EXPORT_FORMAT',
            detail={'format': fmt, 'allowed': list(EXPORT_FORMATS)},
        )

    model, timestamp_field = EXPORT_SOURCES[export_type]
    rows = _export_rows(model, timestamp_field, data.get('dateRange'))

    if fmt == 'csv':
        body = _to_csv(rows)
    else:
        body = json.dumps(rows, cls=DjangoJSONEncoder, indent=2)

    filename = f'{export_type}_export_{int(time.time() * 1000)}.{fmt}'
    logger.info("[export_records] %s rows=%d format=%s", export_type, len(rows), fmt)
    return body, EXPORT_FORMATS[fmt], filename
