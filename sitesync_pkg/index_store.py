"""
Persistence of the article index (the JSON listing read by the site and the notifier).
"""

import json
import logging
import os
import tempfile
from typing import Iterable, List

from .exceptions import IndexCorrupt, RecordMalformed
from .models import GeneratedArticle, parse_timestamp

logger = logging.getLogger('Sitesync.Index')


def sort_articles(articles: Iterable[GeneratedArticle]) -> List[GeneratedArticle]:
    """Pinned first, then newest publishedAt first. Equal keys keep their input order."""
    by_date = sorted(articles, key=lambda a: parse_timestamp(a.publishedAt), reverse=True)
    return sorted(by_date, key=lambda a: bool(a.pinned), reverse=True)


def serialize_index(articles: Iterable[GeneratedArticle]) -> str:
    return json.dumps([a.to_dict() for a in articles], indent=2, ensure_ascii=False) + '\n'


def load_index(path) -> List[GeneratedArticle]:
    """
    Load the persisted index. A missing file is an empty index.

    Raises:
        IndexCorrupt: the file exists but is not a JSON array.
    """
    if not os.path.exists(path):
        return []
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise IndexCorrupt(f"Article index {path} is not valid JSON: {e}")
    except (IOError, OSError) as e:
        raise IndexCorrupt(f"Failed to read article index {path}: {e}")

    if not isinstance(data, list):
        raise IndexCorrupt(f"Article index {path} must contain a JSON array")

    articles = []
    for position, item in enumerate(data):
        try:
            articles.append(GeneratedArticle.from_dict(item))
        except RecordMalformed as e:
            logger.warning(f"Skipping index entry {position} in {path}: {e}")
    return articles


def write_atomic(path, text: str) -> bool:
    """
    Replace `path` with `text` in one step. Returns False when the file already
    holds exactly this text (nothing is written).
    """
    encoded = text.encode('utf-8')
    try:
        with open(path, 'rb') as f:
            if f.read() == encoded:
                return False
    except FileNotFoundError:
        pass

    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=directory, prefix='.' + os.path.basename(path) + '.', suffix='.tmp')
    try:
        with os.fdopen(fd, 'wb') as f:
            f.write(encoded)
            f.flush()
            os.fsync(f.fileno())
        # mkstemp creates owner-only files; generated files are served publicly.
        os.chmod(tmp_path, 0o644)
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise
    return True


def save_index(path, articles: Iterable[GeneratedArticle]) -> bool:
    """Persist the index wholesale. Returns True when the file changed."""
    return write_atomic(path, serialize_index(articles))
