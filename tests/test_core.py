"""End-to-end tests for the wired Sitesync chain, with HTTP mocked out."""

import json
import os
from pathlib import Path
from unittest.mock import Mock

import pytest

from conftest import json_response, make_item
from sitesync_pkg.core import Sitesync
from sitesync_pkg.debouncer import Debouncer, RegenerationRunner
from sitesync_pkg.settings import SitesyncSettings, validate_settings


@pytest.fixture
def settings(temp_dir):
    values = dict(SitesyncSettings.DEFAULT_SETTINGS)
    values.update({
        'api_url': 'https://cms.example.com/api',
        'site_url': 'https://www.example.com',
        'media_base_url': 'https://cdn.example.com',
        'output': os.path.join(temp_dir, 'articles'),
        'index_path': os.path.join(temp_dir, 'articles.json'),
        'sitemap_path': os.path.join(temp_dir, 'sitemap.xml'),
        'indexnow_key': 'key123',
    })
    return validate_settings(values)


def cms_session(items, post_status=200):
    session = Mock()
    session.get.return_value = json_response({
        'data': items,
        'meta': {'pagination': {'page': 1, 'pageSize': 100, 'pageCount': 1, 'total': len(items)}},
    })
    post_response = Mock()
    post_response.status_code = post_status
    session.post.return_value = post_response
    return session


class TestSitesync:
    """Test cases for the Sitesync wiring."""

    def test_build_runs_full_chain(self, settings):
        session = cms_session([make_item('alpha', image='/uploads/a.jpg'), make_item('beta')])
        sitesync = Sitesync(settings, session=session)

        result = sitesync.build()

        assert result.ok
        assert Path(settings['output'], 'alpha', 'index.html').exists()
        with open(settings['index_path'], encoding='utf-8') as f:
            index = json.load(f)
        assert {e['slug'] for e in index} == {'alpha', 'beta'}
        sitemap = Path(settings['sitemap_path']).read_text(encoding='utf-8')
        assert '<loc>https://www.example.com/articles/alpha/</loc>' in sitemap
        assert '<loc>https://www.example.com/news</loc>' in sitemap

        payload = session.post.call_args.kwargs['json']
        assert payload['host'] == 'www.example.com'
        assert 'https://www.example.com/articles/beta/' in payload['urlList']
        assert result.stages['notify'].status == 'ok'

    def test_build_with_source_down(self, settings):
        session = Mock()
        session.get.return_value = json_response({}, status_code=401)
        sitesync = Sitesync(settings, session=session)

        result = sitesync.build()

        assert not result.ok
        assert not os.path.exists(settings['index_path'])
        session.post.assert_not_called()

    def test_notify_only_uses_index_on_disk(self, settings):
        session = cms_session([make_item('alpha')])
        sitesync = Sitesync(settings, session=session)
        sitesync.build()
        session.post.reset_mock()

        result = sitesync.notify_only()

        assert result.ok
        session.post.assert_called_once()

    def test_create_scheduler(self, settings):
        sitesync = Sitesync(settings, session=Mock())

        debouncer, runner = sitesync.create_scheduler()

        assert isinstance(debouncer, Debouncer)
        assert isinstance(runner, RegenerationRunner)
        assert debouncer.delay == settings['debounce_delay']
        assert runner.pipeline is sitesync.pipeline

    def test_cleanup_closes_session(self, settings):
        session = Mock()
        Sitesync(settings, session=session).cleanup()
        session.close.assert_called_once()
