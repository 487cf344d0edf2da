"""
BaseAPIClient: 所有第三方 SaaS REST client 的基类。

子类只需：
1. 声明 service_name / error_code
2. 实现 _headers()（鉴权头）
3. 用 self._request() 发请求

非 2xx 响应和网络异常都会变成 UpstreamError，message 原样带上游返回的内容。
不做重试，调用方（view / celery task）自己决定。
"""

import logging
from typing import Any, Optional

import requests
from django.conf import settings

from ..exceptions import UpstreamError

logger = logging.getLogger(__name__)

AUTH_FAILURE_STATUSES = (401, 403)


class BaseAPIClient:

    service_name = 'External'
    error_code = 'UPSTREAM_ERROR'

    def __init__(self, base_url: str, timeout: Optional[float] = None, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout if timeout is not None else getattr(settings, 'INTEGRATION_TIMEOUT', 30)
        self.session = session or requests.Session()

    def _headers(self) -> dict[str, str]:
        return {'Content-Type': 'application/json'}

    def _not_configured(self, setting_name: str) -> UpstreamError:
        return UpstreamError(
            message=f'{setting_name} environment variable is not configured',
            code=f'{self.error_code}_NOT_CONFIGURED',
        )

    def _raise_for_response(self, method: str, path: str, response: requests.Response):
        body = response.text
        logger.warning("[%s] %s %s -> %s", self.service_name, method, path, response.status_code)
        raise UpstreamError(
            message=f'{self.service_name} API error: {response.status_code} - {body}',
            code=f'{self.error_code}_AUTH_FAILED' if response.status_code in AUTH_FAILURE_STATUSES else self.error_code,
            detail={'status': response.status_code, 'path': path},
            http_status=401 if response.status_code in AUTH_FAILURE_STATUSES else 500,
        )

    def _send(self, method: str, path: str, **kwargs) -> requests.Response:
        url = f'{self.base_url}{path}'
        try:
            return self.session.request(method, url, headers=self._headers(), timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            logger.error("[%s] %s %s failed: %s", self.service_name, method, path, exc)
            raise UpstreamError(
                message=f'{self.service_name} request failed: {exc}',
                code=self.error_code,
                detail={'path': path},
            )

    def _request(self, method: str, path: str, **kwargs) -> Any:
        response = self._send(method, path, **kwargs)
        if not response.ok:
            self._raise_for_response(method, path, response)
        if not response.content:
            return None
        return response.json()
