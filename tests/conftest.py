"""Test configuration and fixtures for Sitesync tests."""

import json
import os
import shutil
import sys
import tempfile
from pathlib import Path
from unittest.mock import Mock

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from sitesync_pkg.exceptions import SourceUnavailable
from sitesync_pkg.reconciler import Reconciler
from sitesync_pkg.renderer import ArticleRenderer


class FakeSource:
    """In-memory stand-in for ContentSourceClient."""

    def __init__(self, items=None, error=None, recent=None):
        self.items = items or []
        self.error = error
        self.recent = recent
        self.calls = 0

    def fetch_articles(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.items)

    def fetch_recent_slugs(self, limit):
        if self.recent is None:
            raise SourceUnavailable("recent articles unavailable")
        return self.recent[:limit]


def make_item(slug, title=None, published='2024-01-01T10:00:00.000Z', pinned=False, image=None,
              content=None, v4=False, **extra):
    """Raw article item as the content source returns it (v5 flat, or v4 with attributes)."""
    attrs = {
        'slug': slug,
        'title': title or slug.replace('-', ' ').title(),
        'description': f'About {slug}',
        'publishedAt': published,
        'updatedAt': published,
        'pinned': pinned,
        'content': content if content is not None else [
            {'type': 'paragraph', 'children': [{'type': 'text', 'text': f'Body of {slug}.'}]}
        ],
    }
    if image:
        attrs['image'] = {'data': {'attributes': {'url': image}}} if v4 else {'url': image}
    attrs.update(extra)
    if v4:
        return {'id': sum(map(ord, slug)), 'attributes': attrs}
    return dict(attrs, id=sum(map(ord, slug)), documentId=f'doc-{slug}')


def write_index(path, entries):
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(entries, f, indent=2)


def read_index(path):
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp_dir = tempfile.mkdtemp()
    yield temp_dir
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def site_paths(temp_dir):
    """Output folder, index and sitemap locations inside the temp dir."""
    output_dir = Path(temp_dir) / 'articles'
    output_dir.mkdir()
    return {
        'output': str(output_dir),
        'index': str(Path(temp_dir) / 'articles.json'),
        'sitemap': str(Path(temp_dir) / 'sitemap.xml'),
    }


@pytest.fixture
def renderer():
    return ArticleRenderer(
        'https://example.com',
        site_name='Example',
        media_base_url='https://cdn.example.com',
    )


@pytest.fixture
def make_reconciler(site_paths, renderer):
    def factory(source):
        return Reconciler(source, renderer, site_paths['output'], site_paths['index'])
    return factory


@pytest.fixture
def mock_session():
    """Create a mock requests session."""
    session = Mock()
    session.headers = {}
    return session


def json_response(payload, status_code=200, headers=None):
    response = Mock()
    response.status_code = status_code
    response.headers = headers or {}
    response.json.return_value = payload
    return response
