"""
Renders the static HTML page of a single article.
"""

import html
import json
import logging
import os
import re
from urllib.parse import urlparse

import mistune
from jinja2 import ChoiceLoader, Environment, FileSystemLoader, TemplateError, select_autoescape
from markupsafe import Markup

from .exceptions import RenderError
from .models import ArticleRecord, parse_timestamp, EPOCH
from .url_validator import URLValidator, article_url, join_url, resolve_media_url

PACKAGE_TEMPLATES = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'templates')
ARTICLE_TEMPLATE = 'article.html'
DESCRIPTION_LIMIT = 160
WORDS_PER_MINUTE = 200
LINK_SCHEMES = ('mailto:', 'tel:')

_TAG_RE = re.compile(r'<[^>]+>')
_BLOCK_START = re.compile(r'^\s*<(h[1-6]|ul|ol|li|p|div|blockquote|pre|hr|table)', re.IGNORECASE)


def strip_tags(text: str) -> str:
    return _TAG_RE.sub('', text or '')


def plain_description(text, fallback, limit=DESCRIPTION_LIMIT) -> str:
    """Plain-text description for meta tags."""
    plain = ' '.join(strip_tags(text or fallback or '').split())
    return plain[:limit]


def estimate_read_time(content_html: str) -> int:
    words = len(strip_tags(content_html).split())
    return max(1, round(words / WORDS_PER_MINUTE))


def json_ld(data) -> Markup:
    """Serialise structured data for a <script type="application/ld+json"> block."""
    text = json.dumps(data, ensure_ascii=False, indent=4)
    return Markup(text.replace('</', '<\\/'))


class ArticleRenderer:
    """Builds article pages from ArticleRecords with a Jinja2 template."""

    def __init__(self, site_url, site_name='Sitesync', templates_dir=None, media_base_url=None,
                 default_image=None, default_category='NEWS', default_author=None):
        self.site_url = site_url.rstrip('/')
        self.site_name = site_name
        self.media_base_url = media_base_url
        self.default_image = default_image or join_url(self.site_url, '/images/og-image.png')
        self.default_category = default_category
        self.default_author = default_author or f"{site_name} Team"
        self.url_validator = URLValidator()
        self.logger = logging.getLogger('Sitesync.Renderer')

        loaders = []
        if templates_dir and os.path.isdir(templates_dir):
            loaders.append(FileSystemLoader(templates_dir))
        loaders.append(FileSystemLoader(PACKAGE_TEMPLATES))
        self.env = Environment(loader=ChoiceLoader(loaders), autoescape=select_autoescape(['html']))
        self.markdown_parser = self.create_markdown_parser()

    def create_markdown_parser(self):
        """Create a Mistune markdown parser with a custom renderer."""
        class CustomRenderer(mistune.HTMLRenderer):
            def __init__(self):
                super().__init__(escape=False)

            def block_code(self, code, info=None):
                escaped_code = mistune.escape(code)
                return '<pre style="white-space: pre-wrap;"><code>{}</code></pre>'.format(escaped_code)

            def link(self, text, url, title=None):
                return '<a href="{}" target="_blank" rel="noopener">{}</a>'.format(self.safe_url(url), text)

        return mistune.create_markdown(
            renderer=CustomRenderer(),
            plugins=['table', 'strikethrough']
        )

    def markdown_filter(self, text):
        """Convert markdown text to HTML."""
        return self.markdown_parser(text or '').strip()

    def media(self, url):
        return resolve_media_url(url, self.media_base_url, self.url_validator)

    def link_url(self, url):
        """Resolve a rich-text link. Site paths point at the site, not at the media host."""
        if not url or not isinstance(url, str):
            return '#'
        url = url.strip()
        if url.startswith('//') or not self.url_validator._check_url_patterns(url):
            return '#'
        if url.startswith('#') or url.lower().startswith(LINK_SCHEMES):
            return url
        if url.startswith('/'):
            url = join_url(self.site_url, url)
        elif not urlparse(url).scheme:
            # Relative to the article page.
            return url
        is_valid, _ = self.url_validator.validate_config_url(url)
        return url if is_valid else '#'

    def _children_text(self, children, marks=True):
        parts = []
        for child in children or []:
            if not isinstance(child, dict):
                continue
            if child.get('type') == 'link':
                label = self._children_text(child.get('children'), marks)
                href = self.link_url(child.get('url'))
                parts.append(f'<a href="{html.escape(href)}" target="_blank" rel="noopener">{label}</a>')
                continue
            if 'children' in child:
                parts.append(self._children_text(child.get('children'), marks))
                continue
            text = child.get('text') or ''
            if marks:
                if child.get('bold'):
                    text = f'<strong>{text}</strong>'
                if child.get('italic'):
                    text = f'<em>{text}</em>'
                if child.get('underline'):
                    text = f'<u>{text}</u>'
                if child.get('strikethrough'):
                    text = f'<s>{text}</s>'
                if child.get('code'):
                    text = f'<code>{text}</code>'
            parts.append(text)
        return ''.join(parts)

    def format_block(self, block) -> str:
        """Render one CMS rich-text block."""
        if not isinstance(block, dict):
            return ''
        block_type = block.get('type')
        if block_type == 'paragraph':
            # Paragraph text may itself carry markdown (headings, lists, quotes).
            text = self._children_text(block.get('children'))
            if not text.strip():
                return ''
            parsed = self.markdown_filter(text)
            if _BLOCK_START.match(parsed):
                return parsed
            return f'<p>{parsed}</p>'
        if block_type == 'heading':
            level = block.get('level') or 2
            if level not in range(1, 7):
                level = 2
            text = self._children_text(block.get('children'), marks=False)
            return f'<h{level}>{text}</h{level}>'
        if block_type == 'list':
            tag = 'ol' if block.get('format') == 'ordered' else 'ul'
            items = ''.join(
                f"<li>{self._children_text(item.get('children'))}</li>"
                for item in block.get('children') or [] if isinstance(item, dict)
            )
            return f'<{tag}>{items}</{tag}>'
        if block_type == 'quote':
            return f"<blockquote>{self._children_text(block.get('children'))}</blockquote>"
        if block_type == 'code':
            code = self._children_text(block.get('children'), marks=False)
            return '<pre style="white-space: pre-wrap;"><code>{}</code></pre>'.format(html.escape(code))
        if block_type == 'image' and isinstance(block.get('image'), dict):
            image = block['image']
            url = self.media(image.get('url'))
            if not url:
                return ''
            alt = html.escape(image.get('alternativeText') or '')
            return f'<img src="{html.escape(url)}" alt="{alt}" style="max-width:100%; border-radius: 8px; margin: 2rem 0;">'
        return ''

    def format_content(self, content) -> str:
        """Convert CMS blocks or a markdown string to HTML."""
        if not content:
            return '<p>No content available.</p>'
        if isinstance(content, list):
            return '\n'.join(part for part in (self.format_block(b) for b in content) if part)
        if isinstance(content, str):
            parsed = self.markdown_filter(content)
            if not _BLOCK_START.match(parsed):
                parsed = f'<p>{parsed}</p>'
            return parsed
        return '<p>Content format not supported.</p>'

    def format_date(self, value) -> str:
        parsed = parse_timestamp(value)
        if parsed == EPOCH:
            return ''
        return parsed.strftime('%B %d, %Y')

    def build_context(self, record: ArticleRecord):
        """Template variables for one article."""
        canonical_url = article_url(self.site_url, record.slug)
        news_url = join_url(self.site_url, '/news')
        description = plain_description(record.description, record.title)
        image_url = self.media(record.image) or self.default_image
        video_url = self.media(record.video)
        content_html = self.format_content(record.content)
        published_at = record.published_at or record.updated_at or ''
        updated_at = record.updated_at or published_at
        author = record.author or self.default_author

        article_data = {
            '@context': 'https://schema.org',
            '@type': 'Article',
            'headline': record.title,
            'description': description,
            'image': image_url,
            'author': {'@type': 'Organization', 'name': author, 'url': self.site_url},
            'publisher': {'@type': 'Organization', 'name': self.site_name},
            'datePublished': published_at,
            'dateModified': updated_at,
            'mainEntityOfPage': {'@type': 'WebPage', '@id': canonical_url},
        }
        if video_url:
            article_data['video'] = {
                '@type': 'VideoObject',
                'name': record.title,
                'description': description,
                'thumbnailUrl': image_url,
                'uploadDate': published_at,
                'contentUrl': video_url,
            }
        breadcrumb_data = {
            '@context': 'https://schema.org',
            '@type': 'BreadcrumbList',
            'itemListElement': [
                {'@type': 'ListItem', 'position': 1, 'name': 'Home', 'item': self.site_url},
                {'@type': 'ListItem', 'position': 2, 'name': 'News', 'item': news_url},
                {'@type': 'ListItem', 'position': 3, 'name': record.title, 'item': canonical_url},
            ],
        }

        return {
            'title': record.title,
            'slug': record.slug,
            'description': description,
            'description_html': Markup(self.markdown_filter(record.description or record.title)),
            'content': Markup(content_html),
            'category': record.category or self.default_category,
            'author': author,
            'published_at': published_at,
            'updated_at': updated_at,
            'formatted_date': self.format_date(published_at),
            'read_time': estimate_read_time(content_html),
            'canonical_url': canonical_url,
            'news_url': news_url,
            'image_url': image_url,
            'video_url': video_url,
            'site_url': self.site_url,
            'site_name': self.site_name,
            'article_json_ld': json_ld(article_data),
            'breadcrumb_json_ld': json_ld(breadcrumb_data),
        }

    def render(self, record: ArticleRecord) -> str:
        """Render the page for one article. Output depends only on the record."""
        context = self.build_context(record)
        try:
            return self.env.get_template(ARTICLE_TEMPLATE).render(**context)
        except (TemplateError, TypeError) as e:
            raise RenderError(f"Template error for {record.slug}: {e}")
