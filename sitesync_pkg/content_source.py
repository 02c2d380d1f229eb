"""
HTTP client for the headless CMS that owns the articles.
"""

import logging
import time
from typing import Any, Dict, Iterator, List, Optional

import requests

from .exceptions import SourceUnavailable

USER_AGENT = 'Sitesync/1.0.0 (Static Article Generator)'
RETRY_STATUSES = {429, 500, 502, 503, 504}
MAX_BACKOFF = 30.0


class ContentSourceClient:
    """Reads article records from the content source REST API."""

    def __init__(self, api_url, api_token=None, timeout=15, max_retries=3, page_size=100,
                 session=None, backoff=1.0, sleep=time.sleep):
        self.api_url = api_url.rstrip('/')
        self.api_token = api_token
        self.timeout = timeout
        self.max_retries = max_retries
        self.page_size = page_size
        self.backoff = backoff
        self.session = session or requests.Session()
        self._sleep = sleep
        self.logger = logging.getLogger('Sitesync.ContentSource')

    def _headers(self) -> Dict[str, str]:
        headers = {'Accept': 'application/json', 'User-Agent': USER_AGENT}
        if self.api_token:
            headers['Authorization'] = f'Bearer {self.api_token}'
        return headers

    def _retry_delay(self, attempt, response=None) -> float:
        if response is not None:
            retry_after = response.headers.get('Retry-After')
            if retry_after:
                try:
                    return min(float(retry_after), MAX_BACKOFF)
                except ValueError:
                    pass
        return min(self.backoff * (2 ** attempt), MAX_BACKOFF)

    def get_json(self, path: str, params=None) -> Dict[str, Any]:
        """
        GET a JSON document from the API, retrying rate limits, server errors and
        network failures with exponential backoff.

        Raises:
            SourceUnavailable: the source could not be reached, kept failing, answered
                with a non-2xx status or returned something that is not a JSON object.
        """
        url = f"{self.api_url}/{path.lstrip('/')}"
        attempt = 0
        while True:
            try:
                response = self.session.get(url, params=params, headers=self._headers(), timeout=self.timeout)
            except requests.exceptions.RequestException as e:
                if attempt < self.max_retries:
                    delay = self._retry_delay(attempt)
                    self.logger.warning(f"Network error for {url}: {e}. Retrying in {delay:.1f}s...")
                    self._sleep(delay)
                    attempt += 1
                    continue
                raise SourceUnavailable(f"Content source unreachable at {url}: {e}")

            if response.status_code in RETRY_STATUSES and attempt < self.max_retries:
                delay = self._retry_delay(attempt, response)
                self.logger.warning(f"Content source answered {response.status_code} for {url}. Retrying in {delay:.1f}s...")
                self._sleep(delay)
                attempt += 1
                continue

            if not 200 <= response.status_code < 300:
                raise SourceUnavailable(
                    f"Content source returned HTTP {response.status_code} for {url}",
                    status_code=response.status_code,
                )

            try:
                payload = response.json()
            except ValueError:
                raise SourceUnavailable(f"Content source returned invalid JSON for {url}")
            if not isinstance(payload, dict):
                raise SourceUnavailable(f"Content source returned an unexpected payload for {url}")
            return payload

    def article_params(self, page: int) -> Dict[str, Any]:
        return {
            'populate[0]': 'image',
            'populate[1]': 'video',
            'sort[0]': 'pinned:desc',
            'sort[1]': 'publishedAt:desc',
            'pagination[page]': page,
            'pagination[pageSize]': self.page_size,
        }

    def iter_article_pages(self) -> Iterator[List[Dict[str, Any]]]:
        """Yield the raw `data` list of every page of /articles."""
        page = 1
        while True:
            payload = self.get_json('articles', params=self.article_params(page))
            data = payload.get('data')
            if not isinstance(data, list):
                raise SourceUnavailable("Content source response has no 'data' list")
            yield data

            pagination = (payload.get('meta') or {}).get('pagination') or {}
            page_count = pagination.get('pageCount')
            if not isinstance(page_count, int):
                # Unpaginated response: everything came in one call.
                return
            if page >= page_count or not data:
                return
            page += 1

    def fetch_articles(self) -> List[Dict[str, Any]]:
        """Fetch every article item across all pages. Either returns the full set or raises."""
        items = []
        for data in self.iter_article_pages():
            items.extend(data)
        self.logger.info(f"Fetched {len(items)} articles from content source")
        return items

    def fetch_recent_slugs(self, limit: int) -> List[str]:
        """Slugs of the most recently updated articles, newest first."""
        payload = self.get_json('articles', params={
            'sort[0]': 'updatedAt:desc',
            'pagination[limit]': limit,
            'fields[0]': 'slug',
            'fields[1]': 'updatedAt',
        })
        data = payload.get('data')
        if not isinstance(data, list):
            raise SourceUnavailable("Content source response has no 'data' list")
        slugs = []
        for item in data:
            if not isinstance(item, dict):
                continue
            attrs = item.get('attributes') if isinstance(item.get('attributes'), dict) else item
            slug = attrs.get('slug') or item.get('documentId') or item.get('id')
            if slug:
                slugs.append(str(slug))
        return slugs[:limit]

    def close(self) -> None:
        self.session.close()
