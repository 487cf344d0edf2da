"""
Unit tests for clinic.services.

覆盖：
1. intake 创建 / 查询 / 分页
2. clinical pipeline：PATCH 整体覆盖、step 提交的状态流转
3. 医生笔记 upsert、e-Rx / secure email 回写 flag
4. eligibility 落库
5. export CSV / JSON
6. mock intake store
"""
import csv
import io
import json
import uuid

import pytest

from clinic import services
from clinic.exceptions import NotFoundError, ValidationError
from clinic.intake import WizardIntakeAdapter
from clinic.models import DoctorNote, EligibilityCheck
from tests.conftest import DoctorNoteFactory, IntakeSubmissionFactory


# ===================================================================
# parse_pagination
# ===================================================================

class TestParsePagination:

    def test_defaults(self):
        assert services.parse_pagination(None, None, 20) == (20, 0)

    def test_strings_are_converted(self):
        assert services.parse_pagination('5', '10', 20) == (5, 10)

    @pytest.mark.parametrize('limit, offset', [('abc', '0'), ('5', 'x'), ('-1', '0'), ('5', '-3')])
    def test_invalid_values(self, limit, offset):
        with pytest.raises(ValidationError) as exc_info:
            services.parse_pagination(limit, offset, 20)
        assert exc_info.value.code == 'INVALID_PAGINATION'


# ===================================================================
# intake store
# ===================================================================

@pytest.mark.django_db
class TestIntakeStore:

    def test_create_intake_stores_diagnoses(self, sample_intake_payload):
        intake = WizardIntakeAdapter(sample_intake_payload).process()
        submission, diagnoses = services.create_intake(intake)

        submission.refresh_from_db()
        assert submission.status == 'pending'
        assert submission.pipeline_status is None
        assert submission.ai_diagnoses == diagnoses
        assert diagnoses[0]['name'] == 'Rotator Cuff Strain'
        assert diagnoses[0]['confidence'] == 0.95

    def test_get_intake_unknown_id(self):
        with pytest.raises(NotFoundError) as exc_info:
            services.get_intake(uuid.uuid4())
        assert exc_info.value.code == 'INTAKE_NOT_FOUND'

    def test_get_intake_malformed_id(self):
        with pytest.raises(NotFoundError):
            services.get_intake('not-a-uuid')

    def test_list_pages_are_disjoint_and_newest_first(self):
        created = [IntakeSubmissionFactory() for _ in range(5)]

        first, total = services.list_intakes(limit=2, offset=0)
        second, _ = services.list_intakes(limit=2, offset=2)
        third, _ = services.list_intakes(limit=2, offset=4)

        assert total == 5
        ids = [r.id for r in first + second + third]
        assert len(ids) == len(set(ids)) == 5
        assert set(ids) == {c.id for c in created}
        stamps = [r.submitted_at for r in first + second + third]
        assert stamps == sorted(stamps, reverse=True)

    def test_list_offset_past_end(self):
        IntakeSubmissionFactory()
        records, total = services.list_intakes(limit=10, offset=50)
        assert records == []
        assert total == 1


# ===================================================================
# clinical pipeline
# ===================================================================

@pytest.mark.django_db
class TestPipeline:

    def test_patch_overwrites_whole_object(self):
        intake = IntakeSubmissionFactory(pipeline_status={'intake': True, 'nurse': True})
        services.set_pipeline_status(intake.id, {'xray': True})

        intake.refresh_from_db()
        assert intake.pipeline_status == {'xray': True}

    def test_patch_does_not_complete_intake(self):
        intake = IntakeSubmissionFactory()
        services.set_pipeline_status(intake.id, {'intake': True, 'nurse': True, 'xray': True, 'ortho': True})

        intake.refresh_from_db()
        assert intake.status == 'pending'

    def test_patch_requires_object(self):
        intake = IntakeSubmissionFactory()
        with pytest.raises(ValidationError) as exc_info:
            services.set_pipeline_status(intake.id, None)
        assert exc_info.value.code == 'MISSING_PIPELINE'

    def test_get_pipeline_status_never_set(self):
        intake = IntakeSubmissionFactory()
        assert services.get_pipeline_status(intake.id) is None

    def test_step_moves_pending_to_in_review(self):
        intake = IntakeSubmissionFactory()
        services.submit_clinical_step(intake.id, 'nurse_exam', {'bp': '120/80'})

        intake.refresh_from_db()
        assert intake.status == 'in_review'
        assert intake.clinical_steps == {'nurse_exam': {'bp': '120/80'}}

    def test_steps_accumulate(self):
        intake = IntakeSubmissionFactory()
        services.submit_clinical_step(intake.id, 'nurse_exam', {'bp': '120/80'})
        services.submit_clinical_step(intake.id, 'imaging', {'xray': 'negative'})

        intake.refresh_from_db()
        assert set(intake.clinical_steps) == {'nurse_exam', 'imaging'}

    def test_ortho_review_completed(self):
        intake = IntakeSubmissionFactory(status='in_review')
        services.submit_clinical_step(intake.id, 'ortho_review', {'plan': 'PT 6 weeks'}, status='completed')

        intake.refresh_from_db()
        assert intake.status == 'completed'

    def test_completed_only_allowed_on_ortho_review(self):
        intake = IntakeSubmissionFactory()
        with pytest.raises(ValidationError) as exc_info:
            services.submit_clinical_step(intake.id, 'imaging', {}, status='completed')
        assert exc_info.value.code == 'INVALID_STEP_STATUS'

        intake.refresh_from_db()
        assert intake.status == 'pending'

    def test_unknown_step(self):
        intake = IntakeSubmissionFactory()
        with pytest.raises(ValidationError) as exc_info:
            services.submit_clinical_step(intake.id, 'surgery', {})
        assert exc_info.value.code == 'INVALID_STEP'

    def test_completed_intake_stays_completed_on_new_step(self):
        intake = IntakeSubmissionFactory(status='completed')
        services.submit_clinical_step(intake.id, 'imaging', {'mri': 'scheduled'})

        intake.refresh_from_db()
        assert intake.status == 'completed'


# ===================================================================
# doctor workspace
# ===================================================================

@pytest.mark.django_db
class TestDoctorWorkspace:

    def test_save_note_creates_then_updates(self):
        intake = IntakeSubmissionFactory()
        services.save_doctor_note({'intakeId': str(intake.id), 'prescription': 'Rest', 'symptomsNotes': 'mild'})
        services.save_doctor_note({'intakeId': str(intake.id), 'prescription': 'Ice'})

        assert DoctorNote.objects.count() == 1
        note = DoctorNote.objects.get()
        assert note.prescription == 'Ice'
        assert note.symptoms_notes == 'mild'

    def test_save_note_requires_intake_id(self):
        with pytest.raises(ValidationError) as exc_info:
            services.save_doctor_note({'prescription': 'Rest'})
        assert exc_info.value.message == 'Missing intake ID'

    def test_get_note_none_when_absent(self):
        intake = IntakeSubmissionFactory()
        assert services.get_doctor_note(str(intake.id)) is None

    def test_get_note_unknown_intake(self):
        with pytest.raises(NotFoundError):
            services.get_doctor_note(str(uuid.uuid4()))

    def test_send_erx_sets_flag(self):
        note = DoctorNoteFactory(prescription='old')
        receipt = services.send_erx({'intakeId': str(note.intake_id), 'prescription': 'Naproxen 500mg'})

        note.refresh_from_db()
        assert receipt['success'] is True
        assert receipt['erx_id'].startswith('ERX-')
        assert note.erx_sent is True
        assert note.prescription == 'Naproxen 500mg'

    def test_send_erx_requires_prescription(self):
        intake = IntakeSubmissionFactory()
        with pytest.raises(ValidationError):
            services.send_erx({'intakeId': str(intake.id)})

    def test_send_secure_email_creates_note(self):
        intake = IntakeSubmissionFactory()
        receipt = services.send_secure_email({'intakeId': str(intake.id), 'prescription': 'Rest'})

        assert receipt['hipaa_compliant'] is True
        assert DoctorNote.objects.get(intake=intake).secure_email_sent is True


# ===================================================================
# eligibility / export
# ===================================================================

@pytest.mark.django_db
class TestEligibility:

    def test_eligible_member_is_persisted(self):
        result = services.check_eligibility({'payerName': 'Acme WC', 'memberId': 'ABC124', 'dob': '1980-01-01'})

        assert result['eligible'] is True
        check = EligibilityCheck.objects.get()
        assert check.eligible is True
        assert check.copay_amount == result['copay']

    def test_ineligible_member_is_persisted_with_reason(self):
        result = services.check_eligibility({'payerName': 'Acme', 'memberId': 'ABC123', 'dob': '1980-01-01'})

        assert result['eligible'] is False
        check = EligibilityCheck.objects.get()
        assert check.reason == result['reason']

    def test_missing_fields(self):
        with pytest.raises(ValidationError):
            services.check_eligibility({'payerName': 'Acme'})
        assert EligibilityCheck.objects.count() == 0


@pytest.mark.django_db
class TestExport:

    def test_csv_export(self):
        IntakeSubmissionFactory(employer_name='Acme, Inc.')
        body, content_type, filename = services.export_records({'exportType': 'intakes', 'format': 'csv'})

        assert content_type == 'text/csv'
        assert filename.startswith('intakes_export_') and filename.endswith('.csv')
        rows = list(csv.DictReader(io.StringIO(body)))
        assert len(rows) == 1
        assert rows[0]['employer_name'] == 'Acme, Inc.'
        assert json.loads(rows[0]['symptoms']) == ['Sharp pain']

    def test_json_export(self):
        DoctorNoteFactory()
        body, content_type, _ = services.export_records({'exportType': 'notes', 'format': 'json'})

        assert content_type == 'application/json'
        data = json.loads(body)
        assert len(data) == 1
        assert data[0]['prescription'] == 'Ibuprofen 600mg TID'

    def test_empty_csv(self):
        body, _, _ = services.export_records({'exportType': 'claims', 'format': 'csv'})
        assert body == services.EMPTY_CSV_BODY

    @pytest.mark.parametrize('payload, code', [
        ({'format': 'csv'}, 'MISSING_FIELD'),
        ({'exportType': 'payments', 'format': 'csv'}, 'INVALID_EXPORT_TYPE'),
        ({'exportType': 'intakes', 'format': 'xml'}, 'INVALID_EXPORT_FORMAT'),
    ])
    def test_invalid_requests(self, payload, code):
        with pytest.raises(ValidationError) as exc_info:
            services.export_records(payload)
        assert exc_info.value.code == code


# ===================================================================
# mock intake store
# ===================================================================

class TestMockIntakeStore:

    def test_create_and_get(self):
        store = services.MockIntakeStore()
        intake_id, diagnoses = store.create({'painLevel': 5, 'affectedBodyParts': ['Knee', 'Wrist']})

        assert intake_id == 'mock-1'
        assert diagnoses[0]['reasoning'] == 'Based on Knee, Wrist involvement and pain level 5/10'
        record = store.get(intake_id)
        assert record['status'] == 'pending'
        assert record['painLevel'] == 5

    def test_ids_are_sequential(self):
        store = services.MockIntakeStore()
        store.create({})
        second, _ = store.create({})
        assert second == 'mock-2'
        assert len(store.all()) == 2

    def test_get_unknown(self):
        with pytest.raises(NotFoundError):
            services.MockIntakeStore().get('mock-99')

    def test_reset(self):
        store = services.MockIntakeStore()
        store.create({})
        store.reset()
        assert store.all() == []
        assert store.create({})[0] == 'mock-1'
