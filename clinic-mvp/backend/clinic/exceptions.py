"""
统一异常体系。

所有业务异常继承 BaseAppException，包含：
- type:        错误类型标识（validation_error / not_found / block / upstream_error）
- code:        业务错误码（MISSING_FIELD / INTAKE_NOT_FOUND / CRM_ERROR / ...）
- message:     人类可读的描述
- detail:      可选的附加信息（dict / list / None）
- http_status: HTTP 状态码

View 层只需 raise，exception_handler 统一捕获并格式化响应。
"""


class BaseAppException(Exception):
    """所有业务异常的基类。"""

    type = 'error'
    code = 'UNKNOWN_ERROR'
    http_status = 500

    def __init__(self, message, code=None, detail=None, http_status=None):
        self.message = message
        if code is not None:
            self.code = code
        if http_status is not None:
            self.http_status = http_status
        self.detail = detail
        super().__init__(message)


class ValidationError(BaseAppException):
    """输入验证失败（缺字段 / 类型不对），400。"""

    type = 'validation_error'
    code = 'VALIDATION_ERROR'
    http_status = 400


class NotFoundError(BaseAppException):
    """按 id 查找落空，404。"""

    type = 'not_found'
    code = 'NOT_FOUND'
    http_status = 404


class BlockError(BaseAppException):
    """业务规则阻止操作。service 层抛出，409。"""

    type = 'block'
    code = 'BUSINESS_BLOCK'
    http_status = 409


class UpstreamError(BaseAppException):
    """
    数据库或第三方 SaaS 调用失败。

    message 原样保留上游返回的错误信息，不做改写。
    默认 500；上游拒绝凭证时由 integration 层传 http_status=401。
    """

    type = 'upstream_error'
    code = 'UPSTREAM_ERROR'
    http_status = 500
