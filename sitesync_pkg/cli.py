#!/usr/bin/env python3
"""
Command-line interface for Sitesync - article pages, sitemap and IndexNow from a headless CMS.
"""

import argparse
import os
import sys
import time

from .core import Sitesync
from .exceptions import SitesyncError
from .log import setup_logging
from .settings import SitesyncSettings


def create_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Sitesync - static article sync for a headless CMS')
    parser.add_argument('--serve', action='store_true',
                        help='Run the webhook server and regenerate after bursts of CMS updates')
    parser.add_argument('--regenerate-on-start', action='store_true',
                        help='With --serve, run one regeneration as soon as the server starts')
    parser.add_argument('--notify-only', action='store_true',
                        help='Only submit the current index to IndexNow, without regenerating')
    parser.add_argument('--api-url', type=str,
                        help='Content source API base URL')
    parser.add_argument('--site-url', type=str,
                        help='Public site URL used for canonical links, sitemap and IndexNow')
    parser.add_argument('--output', type=str,
                        help='Directory holding one folder per article')
    parser.add_argument('--index-path', type=str,
                        help='Path of the article index JSON file')
    parser.add_argument('--sitemap-path', type=str,
                        help='Path of the generated sitemap.xml')
    parser.add_argument('--templates', type=str,
                        help='Directory with templates overriding the packaged ones')
    parser.add_argument('--host', type=str,
                        help='Webhook server bind address')
    parser.add_argument('--port', type=int,
                        help='Webhook server port')
    parser.add_argument('--debounce-delay', type=float,
                        help='Quiet period in seconds before a webhook burst triggers regeneration')
    parser.add_argument('--verbose', action='store_true',
                        help='Show debug output on the console')
    parser.add_argument('--init', type=str, choices=['yml', 'yaml', 'json'],
                        help='Create a sample configuration file')
    parser.add_argument('--version', action='version', version='%(prog)s 1.0.0')
    return parser


def main(argv=None) -> None:
    """Main CLI entry point."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    # Handle init command
    if args.init:
        settings_loader = SitesyncSettings()
        config_path = settings_loader.create_sample_config(args.init)
        print(f"Created sample configuration file: {config_path}")
        print("Edit the configuration file, then run 'sitesync' to generate your articles.")
        return

    settings_loader = SitesyncSettings()
    try:
        settings_loader.load_settings()
        # Command line arguments take precedence over file and environment
        args_dict = {k: v for k, v in vars(args).items()
                     if v is not None and k in SitesyncSettings.DEFAULT_SETTINGS}
        final_settings = settings_loader.merge_with_args(args_dict)
    except SitesyncError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    for key in ('output', 'index_path', 'sitemap_path', 'templates', 'serve_static', 'logs'):
        if final_settings.get(key):
            final_settings[key] = os.path.expanduser(final_settings[key])

    logger = setup_logging(final_settings.get('logs'), verbose=args.verbose)
    if settings_loader.config_file_path:
        logger.info(f"Loaded configuration from {settings_loader.config_file_path}")

    sitesync = Sitesync(final_settings)
    try:
        if args.serve:
            from .server import run
            run(sitesync, regenerate_on_start=args.regenerate_on_start)
            return

        start_time = time.time()
        if args.notify_only:
            result = sitesync.notify_only()
            ok = result.ok or result.skipped
        else:
            result = sitesync.build()
            ok = result.ok
        logger.info(f"Run completed in {time.time() - start_time:.3f} seconds.")
    except SitesyncError as e:
        logger.error(f"Error: {e}")
        sys.exit(1)
    finally:
        sitesync.cleanup()

    if not ok:
        sys.exit(1)


if __name__ == '__main__':
    main()
