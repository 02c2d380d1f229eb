"""
Wires the Sitesync components together from a settings dictionary.
"""

import logging

import requests

from .content_source import ContentSourceClient
from .debouncer import Debouncer, RegenerationRunner
from .index_store import load_index
from .notifier import IndexNowNotifier
from .pipeline import RegenerationPipeline
from .reconciler import Reconciler
from .renderer import ArticleRenderer
from .sitemap import SitemapBuilder


class Sitesync:
    """Builds every component of the regeneration chain from one settings dict."""

    def __init__(self, settings, session=None):
        self.settings = settings
        self.session = session or requests.Session()
        self.logger = logging.getLogger('Sitesync')

        self.source = ContentSourceClient(
            settings['api_url'],
            api_token=settings.get('api_token'),
            timeout=settings['request_timeout'],
            max_retries=settings['max_retries'],
            page_size=settings['page_size'],
            session=self.session,
        )
        self.renderer = ArticleRenderer(
            settings['site_url'],
            site_name=settings['site_name'],
            templates_dir=settings.get('templates'),
            media_base_url=settings.get('media_base_url'),
            default_image=settings.get('default_image'),
            default_category=settings['default_category'],
            default_author=settings.get('default_author'),
        )
        self.reconciler = Reconciler(
            self.source,
            self.renderer,
            settings['output'],
            settings['index_path'],
            default_category=settings['default_category'],
        )
        self.sitemap_builder = SitemapBuilder(settings['site_url'], settings['static_routes'], settings['sitemap_path'])
        self.notifier = IndexNowNotifier(
            settings['site_url'],
            settings.get('indexnow_key'),
            endpoint=settings['indexnow_endpoint'],
            static_routes=settings['static_routes'],
            recent_limit=settings['indexnow_recent'],
            timeout=settings['request_timeout'],
            source=self.source,
            session=self.session,
        )
        self.pipeline = RegenerationPipeline(self.reconciler, self.sitemap_builder, self.notifier)

    def build(self):
        """Run the full chain once, synchronously."""
        return self.pipeline.run()

    def notify_only(self):
        """Submit URLs for the index as it is on disk."""
        return self.notifier.notify_articles(load_index(self.settings['index_path']))

    def create_scheduler(self):
        """Debouncer feeding a single-run-at-a-time runner, as used by the webhook server."""
        runner = RegenerationRunner(self.pipeline)
        debouncer = Debouncer(self.settings['debounce_delay'], runner.request)
        return debouncer, runner

    def cleanup(self):
        """Cleanup resources (close session, etc.)."""
        self.session.close()
