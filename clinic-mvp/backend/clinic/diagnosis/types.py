"""
诊断建议的数据结构。

DiagnosisCandidate    静态表里的一行（带 base_confidence）。
DiagnosisSuggestion   引擎输出，调整后的 confidence + reasoning。
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class CPTCode:
    code: str
    description: str

    def to_dict(self) -> dict:
        return {'code': self.code, 'description': self.description}


@dataclass(frozen=True)
class DiagnosisCandidate:
    name: str
    icd10: str
    base_confidence: float
    cpt_codes: tuple[CPTCode, ...] = ()


@dataclass
class DiagnosisSuggestion:
    name: str
    icd10: str
    base_confidence: float
    confidence: float
    reasoning: str
    cpt_codes: list[CPTCode] = field(default_factory=list)

    def to_dict(self) -> dict:
        # key 命名跟前端保持一致（camelCase），落库的 ai_diagnoses 也用这个格式
        return {
            'name': self.name,
            'icd10': self.icd10,
            'baseConfidence': self.base_confidence,
            'confidence': self.confidence,
            'reasoning': self.reasoning,
            'cptCodes': [c.to_dict() for c in self.cpt_codes],
        }
