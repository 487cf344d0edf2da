"""
统一异常处理器。

挂到 DRF 的 EXCEPTION_HANDLER setting 上。
所有失败响应前端都能用同一套逻辑判断：
  response.success === false  → 出问题了，看 type / code

统一错误响应格式：
{
    "success": false,
    "type":    "validation_error" | "not_found" | "block" | "upstream_error",
    "code":    "MISSING_FIELD",
    "error":   "Missing required field: email",
    "detail":  { ... }  // 可选
}
"""

import logging

from django.db import DatabaseError
from django.http import JsonResponse
from rest_framework.exceptions import APIException
from rest_framework.exceptions import ValidationError as DRFValidationError
from rest_framework.views import exception_handler as drf_default_handler

from .exceptions import BaseAppException

logger = logging.getLogger(__name__)


def _error_body(type_, code, message, detail=None):
    body = {
        'success': False,
        'type': type_,
        'code': code,
        'error': message,
    }
    if detail is not None:
        body['detail'] = detail
    return body


def unified_exception_handler(exc, context):
    """
    DRF exception handler entry point.

    优先级：
    1. BaseAppException 及其子类 → 统一格式
    2. DRF 自带的 ValidationError / ParseError 等 → 转成统一格式
    3. 数据库异常 → 500，附带存储层的原始错误信息
    4. 其他异常 → 交给 DRF 默认处理
    """

    view = context.get('view')
    view_name = type(view).__name__ if view is not None else 'unknown'

    # --- 1. 我们自己的异常体系 ---
    if isinstance(exc, BaseAppException):
        if exc.http_status >= 500:
            logger.error("[%s] %s: %s", view_name, exc.code, exc.message)
        else:
            logger.info("[%s] %s: %s", view_name, exc.code, exc.message)
        return JsonResponse(
            _error_body(exc.type, exc.code, exc.message, exc.detail),
            status=exc.http_status,
        )

    # --- 2. DRF 自带的异常（JSON 解析失败、serializer 校验失败）---
    if isinstance(exc, DRFValidationError):
        return JsonResponse(
            _error_body('validation_error', 'VALIDATION_ERROR', 'Request validation failed', exc.detail),
            status=400,
        )
    if isinstance(exc, APIException) and exc.status_code == 400:
        return JsonResponse(
            _error_body('validation_error', 'INVALID_JSON', str(exc.detail)),
            status=400,
        )

    # --- 3. 存储层失败 ---
    if isinstance(exc, DatabaseError):
        logger.exception("[%s] storage failure", view_name)
        return JsonResponse(
            _error_body('upstream_error', 'STORAGE_ERROR', str(exc)),
            status=500,
        )

    # --- 4. 其他的交给 DRF 默认处理 ---
    return drf_default_handler(exc, context)
