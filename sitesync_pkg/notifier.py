"""
IndexNow submission of recently changed URLs.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

import requests

from .exceptions import NotifyFailure, SourceUnavailable
from .models import GeneratedArticle, parse_timestamp
from .url_validator import article_url, host_from_url, join_url

MAX_URLS = 10000
SUCCESS_STATUSES = (200, 202)

STATUS_REASONS = {
    400: 'Bad request: invalid format',
    403: 'Forbidden: key not valid',
    422: 'Unprocessable entity: URLs do not belong to the host or key mismatch',
    429: 'Too many requests',
}


@dataclass
class NotifyResult:
    ok: bool
    skipped: bool = False
    status_code: Optional[int] = None
    error: Optional[str] = None
    urls: List[str] = field(default_factory=list)


class IndexNowNotifier:
    """Submits URLs to an IndexNow endpoint. Failures are reported, never raised."""

    def __init__(self, site_url, key, endpoint='https://api.indexnow.org/indexnow', static_routes=None,
                 recent_limit=10, timeout=15, source=None, session=None):
        self.site_url = site_url.rstrip('/')
        self.key = key
        self.endpoint = endpoint
        self.static_routes = static_routes or []
        self.recent_limit = recent_limit
        self.timeout = timeout
        self.source = source
        self.session = session or requests.Session()
        self.logger = logging.getLogger('Sitesync.Notifier')

    @property
    def key_location(self) -> str:
        return join_url(self.site_url, f'/{self.key}.txt')

    def recent_slugs(self, articles: Iterable[GeneratedArticle]) -> List[str]:
        """Most recently updated slugs, from the content source when it answers, else from the index."""
        articles = list(articles)
        if self.source is not None:
            try:
                known = {a.slug for a in articles}
                slugs = [s for s in self.source.fetch_recent_slugs(self.recent_limit) if s in known]
                self.logger.debug(f"Found {len(slugs)} recently updated articles in content source")
                return slugs
            except SourceUnavailable as e:
                self.logger.warning(f"Could not fetch recent articles ({e}), falling back to the index")
        newest = sorted(articles, key=lambda a: parse_timestamp(a.publishedAt), reverse=True)
        return [a.slug for a in newest[:self.recent_limit]]

    def collect_urls(self, articles: Iterable[GeneratedArticle]) -> List[str]:
        urls = [join_url(self.site_url, route['url']) for route in self.static_routes]
        urls.extend(article_url(self.site_url, slug) for slug in self.recent_slugs(articles))
        unique = list(dict.fromkeys(urls))
        return unique[:MAX_URLS]

    def build_payload(self, urls: List[str]):
        return {
            'host': host_from_url(self.site_url),
            'key': self.key,
            'keyLocation': self.key_location,
            'urlList': list(urls),
        }

    def notify(self, urls: List[str]) -> NotifyResult:
        """Submit one batch of URLs."""
        if not self.key:
            self.logger.info("Skipping IndexNow submission (no indexnow_key configured)")
            return NotifyResult(ok=True, skipped=True, urls=list(urls))
        if not urls:
            return NotifyResult(ok=True, skipped=True)

        urls = list(urls)[:MAX_URLS]
        self.logger.info(f"Submitting {len(urls)} URLs to IndexNow")
        try:
            failure = None
            response = self.session.post(
                self.endpoint,
                json=self.build_payload(urls),
                headers={'Content-Type': 'application/json; charset=utf-8'},
                timeout=self.timeout,
            )
            if response.status_code not in SUCCESS_STATUSES:
                reason = STATUS_REASONS.get(response.status_code, 'Unexpected response')
                failure = NotifyFailure(f"IndexNow returned HTTP {response.status_code}: {reason}",
                                        status_code=response.status_code)
        except requests.exceptions.RequestException as e:
            failure = NotifyFailure(f"IndexNow request failed: {e}")

        if failure is not None:
            self.logger.error(str(failure))
            return NotifyResult(ok=False, status_code=failure.status_code, error=str(failure), urls=urls)

        self.logger.info(f"IndexNow accepted {len(urls)} URLs (HTTP {response.status_code})")
        return NotifyResult(ok=True, status_code=response.status_code, urls=urls)

    def notify_articles(self, articles: Iterable[GeneratedArticle]) -> NotifyResult:
        if not self.key:
            return self.notify([])
        return self.notify(self.collect_urls(articles))
