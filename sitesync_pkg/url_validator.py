"""
URL validation and URL building for Sitesync.
Configured endpoints and media URLs coming from the content source are checked
before they are used in requests or embedded in generated pages.
"""

import re
from urllib.parse import urlparse, quote
from typing import Optional, Set, Tuple


ARTICLES_PATH = '/articles'


class URLValidator:
    """
    Validates configured endpoints and CMS-supplied media URLs.
    """

    # Allowed URL schemes
    ALLOWED_SCHEMES: Set[str] = {'http', 'https'}

    # Patterns that never belong in a URL we embed or request
    SUSPICIOUS_PATTERNS = [
        r'%2f%2f',           # Double slash encoding
        r'%5c%5c',           # Double backslash encoding
        r'\.\./',            # Directory traversal
        r'%2e%2e%2f',        # Encoded directory traversal
        r'file://',          # File scheme
        r'ftp://',           # FTP scheme
        r'gopher://',        # Gopher scheme
        r'data://',          # Data scheme
        r'javascript:',      # JavaScript scheme
        r'[<>"\s]',          # Characters that break out of an HTML attribute
    ]

    def validate_config_url(self, url: Optional[str]) -> Tuple[bool, str]:
        """
        Validate an absolute URL taken from configuration.

        Args:
            url: The URL to validate

        Returns:
            Tuple of (is_valid, error_message)
        """
        if not url or not isinstance(url, str):
            return False, "URL is empty"

        parsed = urlparse(url)
        if not parsed.scheme or not parsed.netloc:
            return False, "Invalid URL format"

        if parsed.scheme.lower() not in self.ALLOWED_SCHEMES:
            return False, f"Unsupported URL scheme: {parsed.scheme}"

        if not parsed.hostname:
            return False, "Invalid hostname in URL"

        if not self._check_url_patterns(url):
            return False, "URL contains suspicious patterns"

        return True, "URL is valid"

    def validate_media_url(self, url: Optional[str]) -> Tuple[bool, str]:
        """
        Validate a media URL from an article record. Relative paths are allowed
        (they are resolved against the media base URL later).

        Args:
            url: The media URL to validate

        Returns:
            Tuple of (is_valid, error_message)
        """
        if not url or not isinstance(url, str):
            return False, "URL is empty"

        if url.startswith('//'):
            return False, "Protocol-relative URLs are not allowed"

        parsed = urlparse(url)
        if parsed.scheme:
            if parsed.scheme.lower() not in self.ALLOWED_SCHEMES:
                return False, f"Unsupported URL scheme: {parsed.scheme}"
            if not parsed.netloc:
                return False, "Invalid URL format"
        elif not url.startswith('/'):
            return False, "Relative media URLs must start with '/'"

        if not self._check_url_patterns(url):
            return False, "URL contains suspicious patterns"

        return True, "URL is valid"

    def _check_url_patterns(self, url: str) -> bool:
        """
        Check URL for suspicious patterns.

        Args:
            url: The URL to check

        Returns:
            True if URL passes pattern checks, False otherwise
        """
        url_lower = url.lower()
        for pattern in self.SUSPICIOUS_PATTERNS:
            if re.search(pattern, url_lower):
                return False

        # Check for @ in netloc (user info) but allow it in query parameters
        parsed = urlparse(url)
        if parsed.netloc and '@' in parsed.netloc:
            return False

        return True


def resolve_media_url(url: Optional[str], media_base_url: Optional[str], validator: URLValidator = None) -> Optional[str]:
    """Return an absolute media URL, or None when the URL is missing or unsafe."""
    validator = validator or URLValidator()
    is_valid, _ = validator.validate_media_url(url)
    if not is_valid:
        return None
    if url.startswith('http://') or url.startswith('https://'):
        return url
    if not media_base_url:
        return url
    return media_base_url.rstrip('/') + url


def join_url(base: str, path: str) -> str:
    """Join a site base URL and an absolute path."""
    if not path.startswith('/'):
        path = '/' + path
    return base.rstrip('/') + path


def article_path(slug: str) -> str:
    """Stable public path of a generated article page."""
    return f"{ARTICLES_PATH}/{quote(slug, safe='-_.~')}/"


def article_url(site_url: str, slug: str) -> str:
    return join_url(site_url, article_path(slug))


def host_from_url(url: str) -> str:
    return urlparse(url).netloc
