"""
Sitesync - keeps a static article site in step with a headless CMS.

Sitesync fetches published articles from the content source, renders one
static page per article with Jinja2 templates, keeps the article index and
sitemap.xml up to date, and tells search engines about changed URLs through
IndexNow. A small webhook server coalesces bursts of CMS updates into single
regeneration runs.
"""

__version__ = "1.0.0"

from .core import Sitesync
from .reconciler import Reconciler, ReconcileResult
from .sitemap import SitemapBuilder
from .notifier import IndexNowNotifier
from .debouncer import Debouncer

__all__ = ['Sitesync', 'Reconciler', 'ReconcileResult', 'SitemapBuilder', 'IndexNowNotifier', 'Debouncer']
