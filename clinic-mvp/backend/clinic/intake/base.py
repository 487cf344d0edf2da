"""
BaseIntakeAdapter: intake 数据源 Adapter 的抽象基类。

三步流水线：parse → transform → validate。
服务端只要求 payload 是能解析的 JSON object，字段是否必填由前端向导负责。
"""

import json
from abc import ABC, abstractmethod
from typing import Any

from ..exceptions import ValidationError
from .types import InternalIntake


class BaseIntakeAdapter(ABC):

    # 子类声明自己对应的 source 标识符
    source: str = ""

    def __init__(self, raw_body: Any, content_type: str = ""):
        self._raw_body = raw_body
        self._content_type = content_type
        self._parsed = None

    # ── 必须实现 ───────────────────────────────────────────────────────────

    @abstractmethod
    def transform(self) -> InternalIntake:
        """
        将 self._parsed 转换为 InternalIntake。
        必须把原始数据存入 InternalIntake.raw_payload。
        """

    # ── 提供默认实现，子类可 override ──────────────────────────────────────

    def parse(self) -> Any:
        """bytes / str → dict；已经是 dict（DRF request.data）时直接用。"""
        raw = self._raw_body
        if isinstance(raw, (bytes, str)):
            try:
                raw = json.loads(raw)
            except ValueError as exc:
                raise ValidationError(
                    message='Request body is not valid JSON.',
                    code='INVALID_JSON',
                    detail={'reason': str(exc)},
                )
        if not isinstance(raw, dict):
            raise ValidationError(
                message='Request body must be a JSON object.',
                code='INVALID_JSON',
            )
        self._parsed = raw
        return raw

    def validate(self, intake: InternalIntake) -> None:
        """默认不做业务校验。"""

    # ── 对外统一入口 ───────────────────────────────────────────────────────

    def process(self) -> InternalIntake:
        """parse → transform → validate，返回 InternalIntake。"""
        self.parse()
        intake = self.transform()
        self.validate(intake)
        return intake
