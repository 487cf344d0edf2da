"""
Unit tests for WizardIntakeAdapter.

测试 parse → transform → validate 流水线：
- camelCase 字段映射到 InternalIntake
- 空字符串存成 None
- painLevel 字符串转 int
- 非 JSON / 非 object 抛 INVALID_JSON
"""
import json

import pytest

from clinic.exceptions import ValidationError
from clinic.intake import InternalIntake, WizardIntakeAdapter


class TestWizardIntakeAdapter:

    def test_full_payload(self, sample_intake_payload):
        intake = WizardIntakeAdapter(sample_intake_payload).process()

        assert isinstance(intake, InternalIntake)
        assert intake.source == 'web_wizard'
        assert intake.incident.injury_date == '2024-03-02'
        assert intake.incident.mechanism_of_injury == 'lifting'
        assert intake.incident.claim_number == 'WC-2024-118'
        assert intake.history.current_medications == 'Ibuprofen'
        assert intake.symptoms.pain_level == 8
        assert intake.symptoms.affected_body_parts == ['Shoulder']
        assert intake.raw_payload is sample_intake_payload

    def test_blank_strings_become_none(self, sample_intake_payload):
        intake = WizardIntakeAdapter(sample_intake_payload).process()
        assert intake.history.previous_injuries is None
        assert intake.history.medical_history is None

    def test_empty_payload_is_accepted(self):
        intake = WizardIntakeAdapter({}).process()
        assert intake.symptoms.pain_level is None
        assert intake.symptoms.symptoms == []
        assert intake.incident.employer_name is None

    def test_pain_level_from_string(self):
        intake = WizardIntakeAdapter({'painLevel': '7'}).process()
        assert intake.symptoms.pain_level == 7

    def test_unparseable_pain_level_is_none(self):
        intake = WizardIntakeAdapter({'painLevel': 'severe'}).process()
        assert intake.symptoms.pain_level is None

    @pytest.mark.parametrize('value', [float('inf'), float('-inf'), float('nan'), 10 ** 12])
    def test_out_of_range_pain_level_is_none(self, value):
        intake = WizardIntakeAdapter({'painLevel': value, 'affectedBodyParts': ['Knee']}).process()
        assert intake.symptoms.pain_level is None
        assert intake.symptoms.affected_body_parts == ['Knee']

    def test_single_string_tag_becomes_list(self):
        intake = WizardIntakeAdapter({'affectedBodyParts': 'Knee'}).process()
        assert intake.symptoms.affected_body_parts == ['Knee']

    def test_bytes_body_is_parsed(self, sample_intake_payload):
        body = json.dumps(sample_intake_payload).encode()
        intake = WizardIntakeAdapter(body, 'application/json').process()
        assert intake.incident.employer_name == 'Acme Logistics'

    def test_invalid_json_raises(self):
        with pytest.raises(ValidationError) as exc_info:
            WizardIntakeAdapter(b'{not json').process()
        assert exc_info.value.code == 'INVALID_JSON'

    def test_non_object_raises(self):
        with pytest.raises(ValidationError) as exc_info:
            WizardIntakeAdapter([1, 2, 3]).process()
        assert exc_info.value.code == 'INVALID_JSON'
