"""Web scraping client (Firecrawl REST v1)."""

import logging
from datetime import datetime, timezone
from typing import Optional

from django.conf import settings

from .base import BaseAPIClient

logger = logging.getLogger(__name__)

DEFAULT_WAIT_MS = 3000
DEFAULT_TIMEOUT_MS = 30000


class ScrapingClient(BaseAPIClient):

    service_name = 'Firecrawl'
    error_code = 'SCRAPER_ERROR'

    def __init__(self, api_key: Optional[str] = None, **kwargs):
        super().__init__(settings.FIRECRAWL_API_URL, **kwargs)
        self.api_key = api_key or settings.FIRECRAWL_API_KEY

    def _headers(self) -> dict[str, str]:
        if not self.api_key:
            raise self._not_configured('FIRECRAWL_API_KEY')
        return {
            'Authorization': f'Bearer {self.api_key}',
            'Content-Type': 'application/json',
        }

    def scrape(self, url: str, wait_for: Optional[int] = None, timeout_ms: Optional[int] = None) -> dict:
        logger.info("[Firecrawl] scraping %s", url)
        data = self._request('POST', '/scrape', json={
            'url': url,
            'formats': ['markdown', 'html'],
            'waitFor': wait_for or DEFAULT_WAIT_MS,
            'timeout': timeout_ms or DEFAULT_TIMEOUT_MS,
        }).get('data') or {}
        metadata = data.get('metadata') or {}
        return {
            'url': url,
            'markdown': data.get('markdown') or '',
            'html': data.get('html'),
            'metadata': {
                'title': metadata.get('title') or '',
                'description': metadata.get('description'),
                'ogTitle': metadata.get('ogTitle'),
                'ogDescription': metadata.get('ogDescription'),
                'statusCode': metadata.get('statusCode'),
            },
            'scrapedAt': datetime.now(timezone.utc).isoformat(),
        }
