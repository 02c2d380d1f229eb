"""
Article records as delivered by the content source, and the listing projection
that is persisted in the article index.
"""

import re
from dataclasses import dataclass, field, asdict
from datetime import datetime, date, timezone
from typing import Any, Dict, List, Optional, Union

from .exceptions import RecordMalformed

SOURCED = 'sourced'
LEGACY = 'legacy'

# Older index files tag CMS entries with the CMS name.
SOURCE_ALIASES = {'strapi': SOURCED}

_UNSAFE_SLUG = re.compile(r'[/\\\x00]')

EPOCH = datetime.min.replace(tzinfo=timezone.utc)


@dataclass
class ArticleRecord:
    """A full article as returned by the content source."""
    slug: str
    title: str
    category: Optional[str] = None
    description: Optional[str] = None
    content: Union[str, List[Dict[str, Any]], None] = None
    image: Optional[str] = None
    video: Optional[str] = None
    author: Optional[str] = None
    published_at: Optional[str] = None
    updated_at: Optional[str] = None
    pinned: bool = False
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)


@dataclass
class GeneratedArticle:
    """Listing entry persisted in the article index."""
    title: str
    slug: str
    category: Optional[str]
    publishedAt: Optional[str]
    description: Optional[str]
    image: Optional[str]
    video: Optional[str] = None
    pinned: bool = False
    source: str = SOURCED

    @classmethod
    def from_record(cls, record: ArticleRecord, default_category: Optional[str] = None) -> 'GeneratedArticle':
        return cls(
            title=record.title,
            slug=record.slug,
            category=record.category or default_category,
            publishedAt=record.published_at,
            description=record.description,
            image=record.image,
            video=record.video,
            pinned=record.pinned,
            source=SOURCED,
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'GeneratedArticle':
        """Build an entry from a persisted index item."""
        if not isinstance(data, dict):
            raise RecordMalformed(f"Index entry is not an object: {data!r}")
        slug = data.get('slug')
        if not slug or not isinstance(slug, str):
            raise RecordMalformed("Index entry has no slug")
        source = data.get('source') or SOURCED
        source = SOURCE_ALIASES.get(source, source)
        return cls(
            title=data.get('title') or slug,
            slug=slug,
            category=data.get('category'),
            publishedAt=data.get('publishedAt'),
            description=data.get('description'),
            image=data.get('image'),
            video=data.get('video'),
            pinned=bool(data.get('pinned', data.get('epingle', False))),
            source=source,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        if data['video'] is None:
            del data['video']
        return data


def parse_timestamp(value) -> datetime:
    """Parse an ISO 8601 timestamp. Unparseable or missing values sort as the oldest."""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if not isinstance(value, str) or not value.strip():
        return EPOCH
    text = value.strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        for fmt in ['%Y-%m-%dT%H:%M:%S.%f%z', '%Y-%m-%d']:
            try:
                parsed = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue
        else:
            return EPOCH
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _attributes(raw: Dict[str, Any]) -> Dict[str, Any]:
    # Strapi v4 nests fields under "attributes"; v5 returns them flat.
    attrs = raw.get('attributes')
    return attrs if isinstance(attrs, dict) else raw


def media_url(value) -> Optional[str]:
    """Extract the URL of a populated media relation in either response shape."""
    if not value:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        data = value.get('data')
        if isinstance(data, dict):
            return media_url(data.get('attributes') or data)
        if isinstance(data, list):
            return media_url(data[0]) if data else None
        url = value.get('url')
        return url if isinstance(url, str) else None
    if isinstance(value, list) and value:
        return media_url(value[0])
    return None


def check_slug(slug: str) -> str:
    """Reject slugs that cannot be used as a single directory name."""
    if _UNSAFE_SLUG.search(slug) or slug in ('.', '..') or slug.startswith('.'):
        raise RecordMalformed(f"Unsafe slug: {slug!r}", record_id=slug)
    return slug


def normalize_record(raw: Dict[str, Any]) -> ArticleRecord:
    """
    Turn one raw content source item into an ArticleRecord.

    Raises:
        RecordMalformed: when the item has no usable slug or title.
    """
    if not isinstance(raw, dict):
        raise RecordMalformed(f"Article item is not an object: {type(raw).__name__}")

    attrs = _attributes(raw)
    record_id = raw.get('documentId') or raw.get('id')
    slug = attrs.get('slug') or raw.get('documentId') or raw.get('id')
    if slug is None or slug == '':
        raise RecordMalformed("Article has no slug or id", record_id=record_id)
    slug = check_slug(str(slug).strip())

    title = attrs.get('title')
    if not isinstance(title, str) or not title.strip():
        raise RecordMalformed(f"Article '{slug}' has no title", record_id=record_id)

    author = attrs.get('author')
    if isinstance(author, dict):
        author = _attributes(author.get('data') or author).get('name')

    category = attrs.get('category')
    if isinstance(category, dict):
        category = _attributes(category.get('data') or category).get('name')

    return ArticleRecord(
        slug=slug,
        title=title.strip(),
        category=category,
        description=attrs.get('description'),
        content=attrs.get('content'),
        image=media_url(attrs.get('image')),
        video=media_url(attrs.get('video')),
        author=author,
        published_at=attrs.get('publishedAt'),
        updated_at=attrs.get('updatedAt'),
        pinned=bool(attrs.get('pinned', attrs.get('epingle', False))),
        raw=raw,
    )
