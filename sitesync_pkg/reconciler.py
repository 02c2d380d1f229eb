"""
Brings the generated article folders and the article index in line with the
content source, keeping legacy entries that the content source does not know.
"""

import logging
import os
import shutil
from dataclasses import dataclass, field
from typing import Dict, List, Set

from .exceptions import RecordMalformed, RenderError
from .index_store import load_index, save_index, sort_articles, write_atomic
from .models import GeneratedArticle, LEGACY, normalize_record

PAGE_FILENAME = 'index.html'


@dataclass
class ReconcileResult:
    generated: int = 0
    unchanged: int = 0
    preserved_legacy: int = 0
    deleted_orphans: int = 0
    skipped_records: int = 0
    failed: List[str] = field(default_factory=list)
    index_changed: bool = False
    articles: List[GeneratedArticle] = field(default_factory=list)

    def summary(self) -> str:
        return (f"{self.generated} generated ({self.unchanged} unchanged), "
                f"{self.preserved_legacy} legacy preserved, {self.deleted_orphans} orphans deleted, "
                f"{self.skipped_records} records skipped, {len(self.failed)} failed")


class Reconciler:
    """Synchronises the output folder set and the article index with the content source."""

    def __init__(self, source, renderer, output_dir, index_path, default_category='NEWS'):
        self.source = source
        self.renderer = renderer
        self.output_dir = output_dir
        self.index_path = index_path
        self.default_category = default_category
        self.logger = logging.getLogger('Sitesync.Reconciler')

    def existing_slugs(self) -> Set[str]:
        """Names of the article folders currently on disk. Hidden entries are not ours."""
        if not os.path.isdir(self.output_dir):
            return set()
        return {
            name for name in os.listdir(self.output_dir)
            if not name.startswith('.') and os.path.isdir(os.path.join(self.output_dir, name))
        }

    def fetch_sourced(self, result: ReconcileResult):
        """Fetch and normalise all records. Raises SourceUnavailable before anything is written."""
        records = []
        seen = set()
        for raw in self.source.fetch_articles():
            try:
                record = normalize_record(raw)
            except RecordMalformed as e:
                result.skipped_records += 1
                self.logger.warning(f"Skipping malformed article record: {e}")
                continue
            if record.slug in seen:
                result.skipped_records += 1
                self.logger.warning(f"Skipping duplicate slug from content source: {record.slug}")
                continue
            seen.add(record.slug)
            records.append(record)
        return records

    def to_entry(self, record) -> GeneratedArticle:
        entry = GeneratedArticle.from_record(record, self.default_category)
        entry.image = self.renderer.media(record.image)
        entry.video = self.renderer.media(record.video)
        return entry

    def write_page(self, record) -> bool:
        """Render and write one article page. Returns True when the file changed."""
        article_dir = os.path.join(self.output_dir, record.slug)
        if not os.path.isdir(article_dir):
            os.makedirs(article_dir, exist_ok=True)
            self.logger.debug(f"Created folder: {record.slug}/")
        html = self.renderer.render(record)
        return write_atomic(os.path.join(article_dir, PAGE_FILENAME), html)

    def delete_folder(self, slug) -> bool:
        folder_path = os.path.join(self.output_dir, slug)
        try:
            if os.path.islink(folder_path):
                os.unlink(folder_path)
            else:
                shutil.rmtree(folder_path)
        except (IOError, OSError, PermissionError) as e:
            self.logger.error(f"Failed to delete orphan folder {folder_path}: {e}")
            return False
        self.logger.info(f"Deleted: {slug}/ (no longer in content source)")
        return True

    def reconcile(self) -> ReconcileResult:
        """
        Run one reconciliation pass.

        Raises:
            SourceUnavailable: the content source failed; nothing on disk was touched.
            IndexCorrupt: the previous index is unreadable; nothing on disk was touched.
        """
        result = ReconcileResult()

        existing = self.existing_slugs()
        self.logger.debug(f"Found {len(existing)} existing article folders")

        records = self.fetch_sourced(result)
        sourced_slugs = {record.slug for record in records}

        previous = load_index(self.index_path)
        previous_by_slug: Dict[str, GeneratedArticle] = {a.slug: a for a in previous}
        legacy_articles = [a for a in previous if a.source == LEGACY]
        legacy_slugs = {a.slug for a in legacy_articles}
        self.logger.debug(f"Found {len(legacy_articles)} legacy articles to preserve")

        os.makedirs(self.output_dir, exist_ok=True)

        sourced_articles = []
        superseded = set()
        for record in records:
            try:
                changed = self.write_page(record)
            except (IOError, OSError, PermissionError, RenderError) as e:
                self.logger.error(f"Failed to generate article {record.slug}: {e}")
                result.failed.append(record.slug)
                # The previous entry stays as it was. A legacy one is kept below with its tag.
                carried = previous_by_slug.get(record.slug)
                if carried is not None and carried.source != LEGACY:
                    sourced_articles.append(carried)
                continue
            superseded.add(record.slug)
            result.generated += 1
            if changed:
                self.logger.debug(f"Generated: /articles/{record.slug}/{PAGE_FILENAME}")
            else:
                result.unchanged += 1
            sourced_articles.append(self.to_entry(record))

        protected = sourced_slugs | legacy_slugs
        for slug in sorted(existing - protected):
            if self.delete_folder(slug):
                result.deleted_orphans += 1

        kept_legacy = [a for a in legacy_articles if a.slug not in superseded]
        result.preserved_legacy = len(kept_legacy)

        result.articles = sort_articles(sourced_articles + kept_legacy)
        result.index_changed = save_index(self.index_path, result.articles)

        self.logger.info(f"Reconciliation finished: {result.summary()}")
        return result
