"""
XML sitemap generation (sitemaps.org 0.9).
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, List, Optional
from xml.sax.saxutils import escape

from .index_store import write_atomic
from .models import EPOCH, GeneratedArticle, parse_timestamp
from .url_validator import article_url, join_url

ARTICLE_PRIORITY = '0.7'
ARTICLE_CHANGEFREQ = 'weekly'


@dataclass(frozen=True)
class SitemapEntry:
    loc: str
    lastmod: Optional[str]
    changefreq: str
    priority: str


def format_lastmod(value) -> Optional[str]:
    if value is None or value == '':
        return None
    if isinstance(value, (date, datetime)):
        return value.strftime('%Y-%m-%d')
    parsed = parse_timestamp(value)
    if parsed == EPOCH:
        return None
    return parsed.strftime('%Y-%m-%d')


def build_entries(site_url, static_routes, articles: Iterable[GeneratedArticle], today=None) -> List[SitemapEntry]:
    """Static routes first, then one entry per index article, in index order."""
    today = today or date.today()
    entries = []
    for route in static_routes:
        entries.append(SitemapEntry(
            loc=join_url(site_url, route['url']),
            lastmod=format_lastmod(route.get('lastmod')) or today.strftime('%Y-%m-%d'),
            changefreq=route.get('changefreq', 'weekly'),
            priority=str(route.get('priority', '0.5')),
        ))
    for article in articles:
        entries.append(SitemapEntry(
            loc=article_url(site_url, article.slug),
            lastmod=format_lastmod(article.publishedAt),
            changefreq=ARTICLE_CHANGEFREQ,
            priority=ARTICLE_PRIORITY,
        ))
    return entries


def format_xml_sitemap_entry(entry: SitemapEntry) -> str:
    """Format a single sitemap entry."""
    lastmod = f"\n    <lastmod>{entry.lastmod}</lastmod>" if entry.lastmod else ''
    return f'''  <url>
    <loc>{escape(entry.loc)}</loc>{lastmod}
    <changefreq>{escape(entry.changefreq)}</changefreq>
    <priority>{escape(entry.priority)}</priority>
  </url>
'''


def render_sitemap(entries: Iterable[SitemapEntry]) -> str:
    sitemap_content = '''<?xml version="1.0" encoding="UTF-8"?>
<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
'''
    for entry in entries:
        sitemap_content += format_xml_sitemap_entry(entry)
    sitemap_content += '</urlset>\n'
    return sitemap_content


class SitemapBuilder:
    """Writes the sitemap for the static routes plus the current article index."""

    def __init__(self, site_url, static_routes, sitemap_path):
        self.site_url = site_url
        self.static_routes = static_routes
        self.sitemap_path = sitemap_path
        self.logger = logging.getLogger('Sitesync.Sitemap')

    def write(self, articles: Iterable[GeneratedArticle]) -> int:
        """Replace the sitemap file in one step. Returns the number of URLs."""
        entries = build_entries(self.site_url, self.static_routes, articles)
        write_atomic(self.sitemap_path, render_sitemap(entries))
        self.logger.info(f"Generating XML sitemap with {len(entries)} URLs")
        return len(entries)
