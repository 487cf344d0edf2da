"""
具体 Adapter 实现。

  web_wizard: WizardIntakeAdapter (JSON, 前端三步向导的 camelCase 字段)
"""

from typing import Any, Optional

from .base import BaseIntakeAdapter
from .types import HistoryData, IncidentData, InternalIntake, SymptomData

PAIN_LEVEL_MIN = -2147483648
PAIN_LEVEL_MAX = 2147483647


# ── WizardIntakeAdapter ────────────────────────────────────────────────────
#
# 外部格式示例（JSON，最后一步提交时一次性 POST）:
# {
#   "injuryDate": "2024-03-02", "injuryTime": "14:30",
#   "injuryLocation": "Warehouse B", "injuryDescription": "Lifted a box...",
#   "mechanismOfInjury": "lifting", "workActivity": "Stocking shelves",
#   "employerName": "Acme Logistics", "claimNumber": "WC-2024-118",
#   "previousInjuries": "", "currentMedications": "Ibuprofen",
#   "allergies": "None", "medicalHistory": "",
#   "painLevel": 7,
#   "symptoms": ["Sharp pain", "Limited range of motion", "Swelling"],
#   "affectedBodyParts": ["Shoulder", "Neck"]
# }
#
# 空字符串一律存成 None；painLevel 可能是字符串（表单 range input），转 int。

class WizardIntakeAdapter(BaseIntakeAdapter):
    source = "web_wizard"

    @staticmethod
    def _text(raw: dict, key: str) -> Optional[str]:
        value = raw.get(key)
        if value is None:
            return None
        value = str(value).strip()
        return value or None

    @staticmethod
    def _tags(value: Any) -> list[str]:
        if isinstance(value, str):
            return [value] if value.strip() else []
        if not isinstance(value, (list, tuple)):
            return []
        return [str(v) for v in value if v is not None and str(v).strip()]

    @staticmethod
    def _pain_level(value: Any) -> Optional[int]:
        if value is None or isinstance(value, bool):
            return None
        try:
            level = int(value)
        except (TypeError, ValueError, OverflowError):
            return None
        # 超出 IntegerField 范围的直接丢掉
        if not PAIN_LEVEL_MIN <= level <= PAIN_LEVEL_MAX:
            return None
        return level

    def transform(self) -> InternalIntake:
        raw = self._parsed

        return InternalIntake(
            source=self.source,
            raw_payload=raw,
            incident=IncidentData(
                injury_date=self._text(raw, "injuryDate"),
                injury_time=self._text(raw, "injuryTime"),
                injury_location=self._text(raw, "injuryLocation"),
                injury_description=self._text(raw, "injuryDescription"),
                mechanism_of_injury=self._text(raw, "mechanismOfInjury"),
                work_activity=self._text(raw, "workActivity"),
                employer_name=self._text(raw, "employerName"),
                claim_number=self._text(raw, "claimNumber"),
            ),
            history=HistoryData(
                previous_injuries=self._text(raw, "previousInjuries"),
                current_medications=self._text(raw, "currentMedications"),
                allergies=self._text(raw, "allergies"),
                medical_history=self._text(raw, "medicalHistory"),
            ),
            symptoms=SymptomData(
                pain_level=self._pain_level(raw.get("painLevel")),
                symptoms=self._tags(raw.get("symptoms")),
                affected_body_parts=self._tags(raw.get("affectedBodyParts")),
            ),
        )
