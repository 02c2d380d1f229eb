"""
The regeneration chain: reconcile, then sitemap, then search engine notification.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Dict, Optional

from .exceptions import SitesyncError

OK = 'ok'
FAILED = 'failed'
SKIPPED = 'skipped'

STAGES = ('reconcile', 'sitemap', 'notify')


@dataclass
class StageResult:
    status: str
    detail: str = ''
    duration: float = 0.0


@dataclass
class PipelineResult:
    stages: Dict[str, StageResult] = field(default_factory=dict)
    reconcile: Optional[object] = None
    notify: Optional[object] = None

    @property
    def ok(self) -> bool:
        """Reconcile and sitemap succeeded. Notification is best effort and not counted."""
        return all(self.stages.get(name, StageResult(FAILED)).status == OK for name in ('reconcile', 'sitemap'))

    def as_dict(self):
        return {
            'ok': self.ok,
            'stages': {
                name: {'status': s.status, 'detail': s.detail, 'duration': round(s.duration, 3)}
                for name, s in self.stages.items()
            },
        }


class RegenerationPipeline:
    """Runs the three stages strictly in sequence. Each stage needs the previous one's output."""

    def __init__(self, reconciler, sitemap_builder, notifier=None):
        self.reconciler = reconciler
        self.sitemap_builder = sitemap_builder
        self.notifier = notifier
        self.logger = logging.getLogger('Sitesync.Pipeline')

    def run(self) -> PipelineResult:
        result = PipelineResult()
        self.logger.info("Starting regeneration...")

        start = time.monotonic()
        try:
            reconcile_result = self.reconciler.reconcile()
        except (SitesyncError, OSError) as e:
            self.logger.error(f"Reconciliation failed, existing output left untouched: {e}")
            result.stages['reconcile'] = StageResult(FAILED, str(e), time.monotonic() - start)
            result.stages['sitemap'] = StageResult(SKIPPED, 'reconcile failed')
            result.stages['notify'] = StageResult(SKIPPED, 'reconcile failed')
            self.log_summary(result)
            return result
        result.reconcile = reconcile_result
        result.stages['reconcile'] = StageResult(OK, reconcile_result.summary(), time.monotonic() - start)

        start = time.monotonic()
        try:
            url_count = self.sitemap_builder.write(reconcile_result.articles)
        except OSError as e:
            self.logger.error(f"Failed to write sitemap: {e}")
            result.stages['sitemap'] = StageResult(FAILED, str(e), time.monotonic() - start)
            result.stages['notify'] = StageResult(SKIPPED, 'sitemap failed')
            self.log_summary(result)
            return result
        result.stages['sitemap'] = StageResult(OK, f"{url_count} URLs", time.monotonic() - start)

        start = time.monotonic()
        if self.notifier is None:
            result.stages['notify'] = StageResult(SKIPPED, 'no notifier configured')
        else:
            notify_result = self.notifier.notify_articles(reconcile_result.articles)
            result.notify = notify_result
            if notify_result.skipped:
                status, detail = SKIPPED, 'nothing to submit'
            elif notify_result.ok:
                status, detail = OK, f"{len(notify_result.urls)} URLs submitted"
            else:
                status, detail = FAILED, notify_result.error or 'submission failed'
            result.stages['notify'] = StageResult(status, detail, time.monotonic() - start)

        self.log_summary(result)
        return result

    def log_summary(self, result: PipelineResult):
        for name in STAGES:
            stage = result.stages.get(name)
            if stage is not None:
                self.logger.info(f"Stage {name}: {stage.status} ({stage.detail}) in {stage.duration:.3f}s")
        if result.ok:
            self.logger.info("Regeneration complete, site is up to date")
        else:
            self.logger.error("Regeneration failed")
