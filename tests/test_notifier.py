"""Tests for IndexNow submission."""

from unittest.mock import Mock

import requests

from conftest import FakeSource
from sitesync_pkg.models import GeneratedArticle
from sitesync_pkg.notifier import IndexNowNotifier

ROUTES = [{'url': '/'}, {'url': '/news'}]


def article(slug, published):
    return GeneratedArticle(slug, slug, 'NEWS', published, None, None)


ARTICLES = [
    article('first', '2024-03-01T00:00:00Z'),
    article('second', '2024-02-01T00:00:00Z'),
    article('third', '2024-01-01T00:00:00Z'),
]


def status(code):
    response = Mock()
    response.status_code = code
    return response


class TestIndexNowNotifier:
    """Test cases for IndexNowNotifier."""

    def make_notifier(self, session, key='key123', **kwargs):
        kwargs.setdefault('static_routes', ROUTES)
        return IndexNowNotifier('https://www.example.com', key, session=session, **kwargs)

    def test_accepted_submission(self, mock_session):
        mock_session.post.return_value = status(200)
        notifier = self.make_notifier(mock_session, recent_limit=2)

        result = notifier.notify_articles(ARTICLES)

        assert result.ok and not result.skipped
        assert result.status_code == 200
        payload = mock_session.post.call_args.kwargs['json']
        assert payload == {
            'host': 'www.example.com',
            'key': 'key123',
            'keyLocation': 'https://www.example.com/key123.txt',
            'urlList': [
                'https://www.example.com/',
                'https://www.example.com/news',
                'https://www.example.com/articles/first/',
                'https://www.example.com/articles/second/',
            ],
        }
        assert mock_session.post.call_args.args[0] == 'https://api.indexnow.org/indexnow'

    def test_202_is_success(self, mock_session):
        mock_session.post.return_value = status(202)
        assert self.make_notifier(mock_session).notify(['https://www.example.com/']).ok

    def test_rejected_submission_is_reported(self, mock_session):
        mock_session.post.return_value = status(422)

        result = self.make_notifier(mock_session).notify_articles(ARTICLES)

        assert not result.ok
        assert result.status_code == 422
        assert 'Unprocessable' in result.error

    def test_network_error_is_reported(self, mock_session):
        mock_session.post.side_effect = requests.exceptions.Timeout("slow")

        result = self.make_notifier(mock_session).notify_articles(ARTICLES)

        assert not result.ok
        assert result.status_code is None
        assert 'slow' in result.error

    def test_without_key_nothing_is_sent(self, mock_session):
        result = self.make_notifier(mock_session, key=None).notify_articles(ARTICLES)

        assert result.ok and result.skipped
        mock_session.post.assert_not_called()

    def test_recent_slugs_from_source(self, mock_session):
        source = FakeSource(recent=['third', 'unknown', 'first'])
        notifier = self.make_notifier(mock_session, source=source)

        assert notifier.recent_slugs(ARTICLES) == ['third', 'first']

    def test_recent_slugs_fall_back_to_index(self, mock_session):
        notifier = self.make_notifier(mock_session, source=FakeSource(recent=None), recent_limit=2)

        assert notifier.recent_slugs(ARTICLES) == ['first', 'second']

    def test_urls_are_deduplicated(self, mock_session):
        notifier = self.make_notifier(mock_session, static_routes=[{'url': '/'}, {'url': '/'}])
        urls = notifier.collect_urls([])

        assert urls == ['https://www.example.com/']

    def test_empty_url_list_is_skipped(self, mock_session):
        result = self.make_notifier(mock_session).notify([])

        assert result.skipped
        mock_session.post.assert_not_called()
