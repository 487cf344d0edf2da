"""
InternalIntake dataclass: 业务逻辑唯一认识的标准格式。

Adapter 的 transform() 必须返回这个结构。
业务层（services.py）只消费这个结构，永远不碰前端原始 payload。
"""

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class IncidentData:
    injury_date: Optional[str] = None
    injury_time: Optional[str] = None
    injury_location: Optional[str] = None
    injury_description: Optional[str] = None
    mechanism_of_injury: Optional[str] = None
    work_activity: Optional[str] = None
    employer_name: Optional[str] = None
    claim_number: Optional[str] = None


@dataclass
class HistoryData:
    previous_injuries: Optional[str] = None
    current_medications: Optional[str] = None
    allergies: Optional[str] = None
    medical_history: Optional[str] = None


@dataclass
class SymptomData:
    pain_level: Optional[int] = None
    symptoms: list[str] = field(default_factory=list)
    affected_body_parts: list[str] = field(default_factory=list)


@dataclass
class InternalIntake:
    """
    标准内部 intake 格式。

    raw_payload  保存原始数据，用于排查问题，不参与业务逻辑。
    source       标识数据来源（目前只有 "web_wizard"）。
    """

    incident: IncidentData
    history: HistoryData
    symptoms: SymptomData
    source: str = ""
    raw_payload: Any = field(default=None, repr=False)
