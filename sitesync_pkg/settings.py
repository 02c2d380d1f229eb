#!/usr/bin/env python3
"""
Settings loader for Sitesync.
Supports configuration from sitesync.yml, sitesync.yaml, or sitesync.json files,
environment variables, and command-line overrides.
"""

import os
import json
import yaml
from dotenv import load_dotenv
from typing import Dict, Any, Optional, List

from .exceptions import ConfigError
from .url_validator import URLValidator


DEFAULT_STATIC_ROUTES = [
    {'url': '/', 'priority': '1.0', 'changefreq': 'weekly'},
    {'url': '/news', 'priority': '0.8', 'changefreq': 'daily'},
    {'url': '/legal', 'priority': '0.3', 'changefreq': 'monthly'},
]


class SitesyncSettings:
    """Load and manage Sitesync configuration settings."""

    # Default configuration
    DEFAULT_SETTINGS = {
        'api_url': 'http://localhost:1337/api',
        'api_token': None,
        'media_base_url': None,
        'site_url': 'https://example.com',
        'site_name': 'Sitesync',
        'output': 'articles',
        'index_path': 'articles.json',
        'sitemap_path': 'sitemap.xml',
        'templates': None,
        'static_routes': DEFAULT_STATIC_ROUTES,
        'page_size': 100,
        'request_timeout': 15,
        'max_retries': 3,
        'debounce_delay': 10,
        'webhook_source': 'strapi',
        'host': '0.0.0.0',
        'port': 3000,
        'serve_static': None,
        'indexnow_key': None,
        'indexnow_endpoint': 'https://api.indexnow.org/indexnow',
        'indexnow_recent': 10,
        'default_image': None,
        'default_category': 'NEWS',
        'default_author': None,
        'logs': 'logs',
    }

    # Config file names to look for (in order of preference)
    CONFIG_FILES = ['sitesync.yml', 'sitesync.yaml', 'sitesync.json']

    # Environment variables that override file settings. Earlier names win.
    ENV_VARS = {
        'api_url': ['SITESYNC_API_URL', 'STRAPI_API_URL'],
        'api_token': ['SITESYNC_API_TOKEN', 'STRAPI_API_TOKEN'],
        'media_base_url': ['SITESYNC_MEDIA_BASE_URL'],
        'site_url': ['SITESYNC_SITE_URL'],
        'indexnow_key': ['SITESYNC_INDEXNOW_KEY', 'INDEXNOW_KEY'],
        'port': ['SITESYNC_PORT', 'PORT'],
        'debounce_delay': ['SITESYNC_DEBOUNCE_DELAY'],
    }

    INT_KEYS = ('page_size', 'max_retries', 'port', 'indexnow_recent')
    FLOAT_KEYS = ('request_timeout', 'debounce_delay')

    def __init__(self, config_dir: str = None):
        """
        Initialize settings loader.

        Args:
            config_dir: Directory to look for config files. Defaults to current directory.
        """
        self.config_dir = config_dir or os.getcwd()
        self.settings = self.DEFAULT_SETTINGS.copy()
        self.config_file_path = None

    def load_settings(self, environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """
        Load settings from the configuration file and the environment.

        Args:
            environ: Mapping to read environment overrides from. Defaults to os.environ
                after loading a .env file from the config directory.

        Returns:
            Dictionary of configuration settings
        """
        config_file = self._find_config_file()

        if config_file:
            self.config_file_path = config_file
            loaded_settings = self._load_config_file(config_file)
            if loaded_settings:
                # Merge with defaults, giving preference to loaded settings
                self.settings.update(loaded_settings)

        if environ is None:
            load_dotenv(os.path.join(self.config_dir, '.env'))
            environ = os.environ
        self.settings.update(self._read_environment(environ))

        return self.settings.copy()

    def _find_config_file(self) -> Optional[str]:
        """
        Find the first available configuration file.

        Returns:
            Path to config file or None if not found
        """
        for filename in self.CONFIG_FILES:
            config_path = os.path.join(self.config_dir, filename)
            if os.path.exists(config_path):
                return config_path
        return None

    def _load_config_file(self, config_path: str) -> Dict[str, Any]:
        """
        Load configuration from a file.

        Args:
            config_path: Path to the configuration file

        Returns:
            Dictionary of configuration settings
        """
        file_ext = os.path.splitext(config_path)[1].lower()
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                if file_ext in ['.yml', '.yaml']:
                    data = yaml.safe_load(f) or {}
                elif file_ext == '.json':
                    data = json.load(f) or {}
                else:
                    raise ConfigError(f"Unsupported config file format: {file_ext}")
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in configuration file {config_path}: {e}")
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in configuration file {config_path}: {e}")
        except (IOError, OSError) as e:
            raise ConfigError(f"Error reading configuration file {config_path}: {e}")

        if not isinstance(data, dict):
            raise ConfigError(f"Configuration file must contain a mapping: {config_path}")
        return data

    def _read_environment(self, environ) -> Dict[str, Any]:
        overrides = {}
        for key, names in self.ENV_VARS.items():
            for name in names:
                value = environ.get(name)
                if value:
                    overrides[key] = value
                    break
        return overrides

    def create_sample_config(self, file_format: str = 'yml') -> str:
        """
        Create a sample configuration file.

        Args:
            file_format: Format for config file ('yml', 'yaml', or 'json')

        Returns:
            Path to created sample config file
        """
        filename = f'sitesync.{file_format}'
        config_path = os.path.join(self.config_dir, filename)

        sample_config = {
            'api_url': 'http://localhost:1337/api',
            'media_base_url': 'https://res.cloudinary.com/your-cloud',
            'site_url': 'https://example.com',
            'site_name': 'My Site',
            'output': 'articles',
            'index_path': 'articles.json',
            'sitemap_path': 'sitemap.xml',
            'static_routes': DEFAULT_STATIC_ROUTES,
            'debounce_delay': 10,
            'webhook_source': 'strapi',
            'port': 3000,
            'indexnow_key': None,
        }

        try:
            with open(config_path, 'w', encoding='utf-8') as f:
                if file_format in ['yml', 'yaml']:
                    f.write("# Sitesync Configuration File\n")
                    f.write("# Secrets (api_token, indexnow_key) are better kept in the environment or .env\n\n")
                    f.write("# Content source\n")
                    f.write("api_url: http://localhost:1337/api\n")
                    f.write("media_base_url: https://res.cloudinary.com/your-cloud\n\n")
                    f.write("# Site information\n")
                    f.write("site_url: https://example.com\n")
                    f.write("site_name: My Site\n\n")
                    f.write("# Generated files\n")
                    f.write("output: articles\n")
                    f.write("index_path: articles.json\n")
                    f.write("sitemap_path: sitemap.xml\n\n")
                    f.write("# Sitemap static routes\n")
                    f.write(yaml.safe_dump({'static_routes': DEFAULT_STATIC_ROUTES}, sort_keys=False))
                    f.write("\n# Webhook server\n")
                    f.write("debounce_delay: 10  # seconds of quiet before regenerating\n")
                    f.write("webhook_source: strapi\n")
                    f.write("port: 3000\n\n")
                    f.write("# IndexNow\n")
                    f.write("indexnow_key: null\n")
                elif file_format == 'json':
                    json.dump(sample_config, f, indent=2)
                else:
                    raise ConfigError(f"Unsupported config file format: {file_format}")
        except PermissionError:
            raise PermissionError(f"Permission denied creating configuration file: {config_path}")
        except (IOError, OSError) as e:
            raise IOError(f"Error writing configuration file {config_path}: {e}")

        return config_path

    def merge_with_args(self, args_dict: Dict[str, Any]) -> Dict[str, Any]:
        """
        Merge configuration settings with command-line arguments.
        Command-line arguments take precedence over config file settings.

        Args:
            args_dict: Dictionary of command-line arguments

        Returns:
            Merged and validated configuration dictionary
        """
        merged = self.settings.copy()

        # Override with non-None command line arguments
        for key, value in args_dict.items():
            if value is not None:
                merged[key] = value

        return validate_settings(merged)


def validate_settings(settings: Dict[str, Any]) -> Dict[str, Any]:
    """Coerce numeric values, normalise URLs and reject unusable configuration."""
    validated = dict(settings)

    for key in SitesyncSettings.INT_KEYS:
        validated[key] = _coerce(key, validated.get(key), int)
    for key in SitesyncSettings.FLOAT_KEYS:
        validated[key] = _coerce(key, validated.get(key), float)

    if validated['page_size'] < 1:
        raise ConfigError("page_size must be at least 1")
    if validated['debounce_delay'] < 0:
        raise ConfigError("debounce_delay cannot be negative")

    validator = URLValidator()
    for key in ('api_url', 'site_url', 'indexnow_endpoint', 'media_base_url'):
        value = validated.get(key)
        if value is None and key == 'media_base_url':
            continue
        is_valid, error_msg = validator.validate_config_url(value)
        if not is_valid:
            raise ConfigError(f"Invalid {key} '{value}': {error_msg}")
        validated[key] = value.rstrip('/')

    validated['static_routes'] = _validate_routes(validated.get('static_routes'))
    return validated


def _coerce(key, value, kind):
    try:
        return kind(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{key} must be a number, got {value!r}")


def _validate_routes(routes) -> List[Dict[str, str]]:
    if routes is None:
        return []
    if not isinstance(routes, list):
        raise ConfigError("static_routes must be a list")
    cleaned = []
    for route in routes:
        if isinstance(route, str):
            route = {'url': route}
        if not isinstance(route, dict) or not route.get('url'):
            raise ConfigError(f"Invalid static route: {route!r}")
        cleaned.append({
            'url': route['url'] if route['url'].startswith('/') else '/' + route['url'],
            'priority': str(route.get('priority', '0.5')),
            'changefreq': route.get('changefreq', 'weekly'),
            'lastmod': route.get('lastmod'),
        })
    return cleaned
