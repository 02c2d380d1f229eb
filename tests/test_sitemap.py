"""Tests for XML sitemap generation."""

import os
from datetime import date
from pathlib import Path
from xml.etree import ElementTree

from sitesync_pkg.models import GeneratedArticle
from sitesync_pkg.sitemap import SitemapBuilder, build_entries, format_lastmod, render_sitemap

NS = {'sm': 'http://www.sitemaps.org/schemas/sitemap/0.9'}

ROUTES = [
    {'url': '/', 'priority': '1.0', 'changefreq': 'weekly'},
    {'url': '/news', 'priority': '0.8', 'changefreq': 'daily'},
    {'url': '/legal', 'priority': '0.3', 'changefreq': 'monthly', 'lastmod': '2023-09-01'},
]


def article(slug, published='2024-02-03T10:00:00.000Z'):
    return GeneratedArticle(slug, slug, 'NEWS', published, None, None)


class TestBuildEntries:
    """Test cases for sitemap entries."""

    def test_static_routes_then_articles(self):
        entries = build_entries('https://example.com', ROUTES, [article('a'), article('b')],
                                today=date(2024, 5, 1))

        assert [e.loc for e in entries] == [
            'https://example.com/',
            'https://example.com/news',
            'https://example.com/legal',
            'https://example.com/articles/a/',
            'https://example.com/articles/b/',
        ]
        assert entries[0].lastmod == '2024-05-01'
        assert entries[2].lastmod == '2023-09-01'
        assert (entries[3].lastmod, entries[3].changefreq, entries[3].priority) == ('2024-02-03', 'weekly', '0.7')

    def test_article_without_date_has_no_lastmod(self):
        entries = build_entries('https://example.com', [], [article('undated', published=None)])
        assert entries[0].lastmod is None

    def test_format_lastmod(self):
        assert format_lastmod(date(2024, 1, 9)) == '2024-01-09'
        assert format_lastmod('2024-01-09T23:00:00Z') == '2024-01-09'
        assert format_lastmod('garbage') is None


class TestRenderSitemap:
    """Test cases for the XML document."""

    def test_valid_xml(self):
        xml = render_sitemap(build_entries('https://example.com', ROUTES, [article('a&b')],
                                           today=date(2024, 5, 1)))
        root = ElementTree.fromstring(xml.encode('utf-8'))

        urls = root.findall('sm:url', NS)
        assert len(urls) == 4
        assert urls[3].find('sm:loc', NS).text == 'https://example.com/articles/a%26b/'
        assert urls[1].find('sm:changefreq', NS).text == 'daily'

    def test_lastmod_element_omitted_when_unknown(self):
        xml = render_sitemap(build_entries('https://example.com', [], [article('x', published='')]))
        assert '<lastmod>' not in xml


class TestSitemapBuilder:
    """Test cases for writing the sitemap file."""

    def test_write_returns_url_count(self, temp_dir):
        path = os.path.join(temp_dir, 'sitemap.xml')
        builder = SitemapBuilder('https://example.com', ROUTES, path)

        count = builder.write([article('a'), article('b')])

        assert count == 5
        assert 'https://example.com/articles/b/' in Path(path).read_text(encoding='utf-8')

    def test_empty_index_lists_static_routes(self, temp_dir):
        path = os.path.join(temp_dir, 'sitemap.xml')
        assert SitemapBuilder('https://example.com', ROUTES, path).write([]) == 3
