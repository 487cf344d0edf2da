"""
Integration tests: 真实 HTTP 请求打到 Django View，验证完整流程。

用 Django test Client，走完：
  HTTP Request → urls.py → APIView → service → ORM → DB → Response

覆盖 intake / pipeline / mock intake / 医生工作台 / eligibility / export。
"""
import csv
import io
import json
import uuid
from datetime import timedelta

import pytest
from django.utils import timezone

from clinic.models import DoctorNote, EligibilityCheck, IntakeSubmission
from tests.conftest import DoctorNoteFactory, IntakeSubmissionFactory


# -------------------------------------------------------------------
# Helpers
# -------------------------------------------------------------------

def send(api_client, method, url, payload=None):
    """快捷方式：发 JSON 请求，返回 (status_code, body_dict)。"""
    response = getattr(api_client, method)(
        url,
        data=json.dumps(payload) if payload is not None else None,
        content_type='application/json',
    )
    return response.status_code, json.loads(response.content)


# ===================================================================
# intake
# ===================================================================

@pytest.mark.django_db
class TestIntakeAPI:

    def test_submit_intake(self, api_client, sample_intake_payload):
        status, body = send(api_client, 'post', '/api/intake/', sample_intake_payload)

        assert status == 200
        assert body['success'] is True
        assert body['message'] == 'Intake submitted successfully'
        assert len(body['diagnoses']) == 4
        assert body['diagnoses'][0]['name'] == 'Rotator Cuff Strain'
        assert body['diagnoses'][0]['confidence'] == 0.95

        stored = IntakeSubmission.objects.get(id=body['intakeId'])
        assert stored.status == 'pending'
        assert stored.ai_diagnoses == body['diagnoses']

    def test_submit_empty_object(self, api_client):
        status, body = send(api_client, 'post', '/api/intake/', {})

        assert status == 200
        assert body['diagnoses'][0]['name'] == 'Musculoskeletal Strain'

    def test_malformed_json(self, api_client):
        response = api_client.post('/api/intake/', data='{"painLevel": ', content_type='application/json')
        body = json.loads(response.content)

        assert response.status_code == 400
        assert body['success'] is False
        assert body['code'] == 'INVALID_JSON'
        assert IntakeSubmission.objects.count() == 0

    def test_infinite_pain_level_is_dropped(self, api_client):
        response = api_client.post(
            '/api/intake/',
            data='{"painLevel": 1e400, "affectedBodyParts": ["Knee"]}',
            content_type='application/json',
        )
        body = json.loads(response.content)

        assert response.status_code == 200
        assert body['diagnoses'][0]['name'] == 'Meniscal Tear'
        assert IntakeSubmission.objects.get(id=body['intakeId']).pain_level is None

    def test_get_by_id(self, api_client):
        intake = IntakeSubmissionFactory(employer_name='Acme')
        status, body = send(api_client, 'get', f'/api/intake/?id={intake.id}')

        assert status == 200
        assert body['data']['employer_name'] == 'Acme'

    def test_get_unknown_id(self, api_client):
        status, body = send(api_client, 'get', f'/api/intake/?id={uuid.uuid4()}')

        assert status == 404
        assert body['type'] == 'not_found'
        assert body['code'] == 'INTAKE_NOT_FOUND'

    def test_list_pagination(self, api_client):
        base = timezone.now()
        for minutes in (5, 1, 4, 2, 3):
            intake = IntakeSubmissionFactory()
            IntakeSubmission.objects.filter(id=intake.id).update(submitted_at=base - timedelta(minutes=minutes))

        seen = []
        for offset in range(0, 6, 2):
            status, body = send(api_client, 'get', f'/api/intake/?limit=2&offset={offset}')
            assert status == 200
            assert body['total'] == 5
            assert body['limit'] == 2
            seen.extend(r['id'] for r in body['data'])

        expected = [str(pk) for pk in IntakeSubmission.objects.order_by('-submitted_at', '-id').values_list('id', flat=True)]
        assert seen == expected
        submitted = [IntakeSubmission.objects.get(id=pk).submitted_at for pk in seen]
        assert submitted == sorted(submitted, reverse=True)

    def test_list_default_limit(self, api_client):
        _, body = send(api_client, 'get', '/api/intake/')
        assert body['limit'] == 20
        assert body['offset'] == 0

    def test_bad_pagination(self, api_client):
        status, body = send(api_client, 'get', '/api/intake/?limit=abc')
        assert status == 400
        assert body['code'] == 'INVALID_PAGINATION'


# ===================================================================
# pipeline
# ===================================================================

@pytest.mark.django_db
class TestPipelineAPI:

    def test_flags_in_any_order(self, api_client):
        intake = IntakeSubmissionFactory()
        url = f'/api/intake/{intake.id}/pipeline/'

        for pipeline in (
            {'imaging_complete': True},
            {'ortho_review_complete': True, 'imaging_complete': False},
            {'history_complete': True, 'nurse_exam_complete': True, 'imaging_complete': True, 'ortho_review_complete': True},
            {'nurse_exam_complete': True},
            {},
        ):
            status, body = send(api_client, 'patch', url, {'pipeline': pipeline})
            assert status == 200
            assert body['data']['pipeline_status'] == pipeline

            _, current = send(api_client, 'get', url)
            assert current['pipeline_status'] == pipeline

        intake.refresh_from_db()
        assert intake.status == 'pending'

    def test_patch_without_pipeline(self, api_client):
        intake = IntakeSubmissionFactory()
        status, body = send(api_client, 'patch', f'/api/intake/{intake.id}/pipeline/', {'flags': {}})
        assert status == 400
        assert body['code'] == 'MISSING_PIPELINE'

    def test_patch_with_array_body(self, api_client):
        intake = IntakeSubmissionFactory()
        status, body = send(api_client, 'patch', f'/api/intake/{intake.id}/pipeline/', [1])
        assert status == 400
        assert body['code'] == 'INVALID_JSON'

        intake.refresh_from_db()
        assert intake.pipeline_status is None

    def test_step_with_array_body(self, api_client):
        intake = IntakeSubmissionFactory()
        status, body = send(api_client, 'post', f'/api/intake/{intake.id}/pipeline/', ['nurse_exam'])
        assert status == 400
        assert body['code'] == 'INVALID_JSON'

    def test_patch_unknown_intake(self, api_client):
        status, _ = send(api_client, 'patch', f'/api/intake/{uuid.uuid4()}/pipeline/', {'pipeline': {}})
        assert status == 404

    def test_submit_steps(self, api_client):
        intake = IntakeSubmissionFactory()
        url = f'/api/intake/{intake.id}/pipeline/'

        status, body = send(api_client, 'post', url, {'step': 'nurse_exam', 'data': {'bp': '120/80'}})
        assert status == 200
        assert body['data']['status'] == 'in_review'

        status, body = send(api_client, 'post', url, {'step': 'ortho_review', 'data': {}, 'status': 'completed'})
        assert status == 200
        assert body['data']['status'] == 'completed'
        assert set(body['data']['clinical_steps']) == {'nurse_exam', 'ortho_review'}

    def test_completed_on_wrong_step(self, api_client):
        intake = IntakeSubmissionFactory()
        status, body = send(
            api_client, 'post', f'/api/intake/{intake.id}/pipeline/',
            {'step': 'imaging', 'data': {}, 'status': 'completed'},
        )
        assert status == 400
        assert body['code'] == 'INVALID_STEP_STATUS'


# ===================================================================
# mock intake
# ===================================================================

@pytest.mark.django_db
class TestMockIntakeAPI:

    def test_submit_and_fetch(self, api_client, sample_intake_payload):
        status, body = send(api_client, 'post', '/api/intake-mock/', sample_intake_payload)

        assert status == 200
        assert body['mock'] is True
        assert body['intakeId'] == 'mock-1'
        assert 'MOCK MODE' in body['message']
        assert IntakeSubmission.objects.count() == 0

        _, fetched = send(api_client, 'get', '/api/intake-mock/?id=mock-1')
        assert fetched['data']['employerName'] == 'Acme Logistics'

        _, listing = send(api_client, 'get', '/api/intake-mock/')
        assert listing['total'] == 1

    def test_unknown_mock_id(self, api_client):
        status, _ = send(api_client, 'get', '/api/intake-mock/?id=mock-42')
        assert status == 404


# ===================================================================
# doctor workspace
# ===================================================================

@pytest.mark.django_db
class TestDoctorAPI:

    def test_save_and_load_note(self, api_client):
        intake = IntakeSubmissionFactory()
        status, body = send(api_client, 'post', '/api/doctor/notes/', {
            'intakeId': str(intake.id),
            'prescription': 'Ibuprofen',
            'diagnosisNotes': 'Likely strain',
        })
        assert status == 200
        assert body['data']['diagnosis_notes'] == 'Likely strain'

        _, loaded = send(api_client, 'get', f'/api/doctor/notes/?intakeId={intake.id}')
        assert loaded['data']['prescription'] == 'Ibuprofen'

    def test_load_missing_note_returns_null(self, api_client):
        intake = IntakeSubmissionFactory()
        status, body = send(api_client, 'get', f'/api/doctor/notes/?intakeId={intake.id}')
        assert status == 200
        assert body['data'] is None

    def test_note_without_intake_id(self, api_client):
        status, body = send(api_client, 'post', '/api/doctor/notes/', {'prescription': 'x'})
        assert status == 400
        assert body['error'] == 'Missing intake ID'

    def test_erx(self, api_client):
        note = DoctorNoteFactory()
        status, body = send(api_client, 'post', '/api/doctor/erx/', {
            'intakeId': str(note.intake_id), 'prescription': 'Naproxen',
        })
        assert status == 200
        assert body['message'] == 'e-Rx sent successfully (STUB)'
        assert DoctorNote.objects.get(id=note.id).erx_sent is True

    def test_secure_email_requires_fields(self, api_client):
        status, body = send(api_client, 'post', '/api/doctor/secure-email/', {'intakeId': 'abc'})
        assert status == 400
        assert body['code'] == 'MISSING_FIELD'


# ===================================================================
# revenue cycle
# ===================================================================

@pytest.mark.django_db
class TestEligibilityAPI:

    def test_check_and_history(self, api_client):
        status, body = send(api_client, 'post', '/api/rcm/eligibility/', {
            'payerName': 'Acme WC', 'memberId': 'WC-55', 'dob': '1980-01-01',
        })
        assert status == 200
        assert body['eligible'] is True

        status, body = send(api_client, 'post', '/api/rcm/eligibility/', {
            'payerName': 'Acme', 'memberId': '13', 'dob': '1980-01-01',
        })
        assert body['eligible'] is False
        assert 'not found' in body['reason']

        _, history = send(api_client, 'get', '/api/rcm/eligibility/')
        assert history['count'] == 2
        assert EligibilityCheck.objects.count() == 2

    def test_missing_fields(self, api_client):
        status, body = send(api_client, 'post', '/api/rcm/eligibility/', {'payerName': 'Acme'})
        assert status == 400
        assert body['error'] == 'Missing required fields: payerName, memberId, and dob are required'


@pytest.mark.django_db
class TestExportAPI:

    def test_csv_attachment(self, api_client):
        IntakeSubmissionFactory()
        response = api_client.post(
            '/api/rcm/export/',
            data=json.dumps({'exportType': 'intakes', 'format': 'csv'}),
            content_type='application/json',
        )

        assert response.status_code == 200
        assert response['Content-Type'].startswith('text/csv')
        assert response['Content-Disposition'].startswith('attachment; filename="intakes_export_')
        rows = list(csv.DictReader(io.StringIO(response.content.decode())))
        assert len(rows) == 1

    def test_array_body(self, api_client):
        status, body = send(api_client, 'post', '/api/rcm/export/', ['intakes', 'csv'])
        assert status == 400
        assert body['code'] == 'INVALID_JSON'

    def test_invalid_type(self, api_client):
        status, body = send(api_client, 'post', '/api/rcm/export/', {'exportType': 'everything', 'format': 'csv'})
        assert status == 400
        assert body['code'] == 'INVALID_EXPORT_TYPE'
