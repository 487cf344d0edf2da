"""
Unit tests for the diagnosis suggestion engine.

纯函数，不碰数据库：
1. 只看第一个 body part 选表
2. 疼痛 >= 7 / 症状 >= 3 上调 confidence，封顶 0.95
3. 表顺序保持不变，不重排
4. reasoning 按名次给固定文案
"""
import pytest

from clinic.diagnosis import suggest_diagnoses
from clinic.diagnosis.engine import adjust_confidence
from clinic.diagnosis.table import DEFAULT_DIAGNOSES, DIAGNOSIS_TABLE


class TestCandidateSelection:

    def test_shoulder_table(self):
        result = suggest_diagnoses(['Sharp pain'], ['Shoulder'], 5)
        assert [d.name for d in result] == [
            'Rotator Cuff Strain',
            'Subacromial Bursitis',
            'Biceps Tendinitis',
            'Glenohumeral Joint Instability',
        ]

    def test_only_first_body_part_counts(self):
        result = suggest_diagnoses([], ['Knee', 'Shoulder'], None)
        assert result[0].name == 'Meniscal Tear'

    @pytest.mark.parametrize('body_parts', [None, [], ['Elbow']])
    def test_default_list_when_no_match(self, body_parts):
        result = suggest_diagnoses([], body_parts, None)
        assert [d.name for d in result] == [c.name for c in DEFAULT_DIAGNOSES]

    def test_every_table_entry_has_four_candidates(self):
        for body_part, candidates in DIAGNOSIS_TABLE.items():
            assert len(candidates) == 4, body_part
        assert len(DEFAULT_DIAGNOSES) == 4


class TestConfidenceAdjustment:

    def test_high_pain_and_many_symptoms_hit_the_cap(self):
        result = suggest_diagnoses(
            ['Sharp pain', 'Limited range of motion', 'Swelling'], ['Shoulder'], 8,
        )
        top = result[0]
        assert top.name == 'Rotator Cuff Strain'
        assert top.icd10 == 'S46.011A'
        assert top.base_confidence == 0.85
        assert top.confidence == 0.95

    def test_no_adjustment_below_thresholds(self):
        result = suggest_diagnoses(['Swelling'], ['Knee'], 3)
        assert result[0].name == 'Meniscal Tear'
        assert result[0].confidence == 0.81

    def test_high_pain_only(self):
        assert adjust_confidence(0.5, 7, 0) == 0.55

    def test_many_symptoms_only(self):
        assert adjust_confidence(0.6, 2, 3) == 0.63

    def test_missing_pain_level_is_not_high(self):
        assert adjust_confidence(0.6, None, 0) == 0.6

    def test_cap_never_exceeded(self):
        for suggestion in suggest_diagnoses(['a', 'b', 'c', 'd'], ['Lower Back'], 10):
            assert suggestion.confidence <= 0.95

    def test_table_order_kept_after_adjustment(self):
        result = suggest_diagnoses(['a', 'b', 'c'], ['Wrist'], 10)
        assert [d.confidence for d in result] == [0.95, 0.88, 0.74, 0.59]
        assert result[0].name == 'Carpal Tunnel Syndrome'


class TestReasoning:

    def test_primary_reasoning_mentions_inputs(self):
        result = suggest_diagnoses(['Sharp pain', 'Swelling', 'Bruising'], ['Neck', 'Shoulder'], 6)
        assert result[0].reasoning == (
            'Primary diagnosis based on Neck, Shoulder involvement, pain level 6/10, '
            'and symptom presentation including Sharp pain and Swelling'
        )

    def test_primary_reasoning_with_missing_inputs(self):
        # 列表字段拼接成空串，缺失的 pain level 原样渲染成 None
        result = suggest_diagnoses([], [], None)
        assert result[0].reasoning == (
            'Primary diagnosis based on  involvement, pain level None/10, '
            'and symptom presentation including '
        )

    def test_lower_ranks_have_fixed_text(self):
        result = suggest_diagnoses([], ['Knee'], 2)
        assert result[1].reasoning.startswith('Secondary consideration')
        assert result[2].reasoning.startswith('Differential diagnosis')
        assert result[3].reasoning.startswith('Less likely')

    def test_to_dict_uses_camel_case(self):
        data = suggest_diagnoses([], ['Knee'], 2)[0].to_dict()
        assert set(data) == {'name', 'icd10', 'baseConfidence', 'confidence', 'reasoning', 'cptCodes'}
        assert data['cptCodes'][0] == {'code': '99203', 'description': 'Office Visit - New Patient'}
