"""
Logging setup shared by the CLI and the webhook server.
"""

import logging
import os
from datetime import datetime

LOGGER_NAME = 'Sitesync'


class InfoFilter(logging.Filter):
    """Filter to allow only selected INFO messages (and anything louder) on the console."""

    allowed_messages = [
        "Starting regeneration",
        "Reconciliation finished",
        "Generating XML sitemap",
        "Submitting",
        "IndexNow accepted",
        "Skipping IndexNow submission",
        "Stage ",
        "Regeneration complete",
        "Relevant update detected",
        "New update received",
        "Regeneration already running",
        "Webhook server listening",
        "Deleted:",
        "Loaded configuration from",
        "Run completed in",
    ]

    def filter(self, record):
        if record.levelno > logging.INFO:
            return True
        return any(msg in record.getMessage() for msg in self.allowed_messages)


def setup_logging(logs_dir='logs', verbose=False):
    """Set up the Sitesync logger: filtered console output plus a full log file per process."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)

    if logger.handlers:
        return logger

    # Console handler with filter
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    if not verbose:
        console_handler.addFilter(InfoFilter())
    console_handler.setFormatter(logging.Formatter('%(message)s'))
    logger.addHandler(console_handler)

    # File handler for all logs
    if logs_dir:
        try:
            os.makedirs(logs_dir, exist_ok=True)
            log_filename = datetime.now().strftime('sitesync_%Y-%m-%d_%H-%M-%S.log')
            file_handler = logging.FileHandler(os.path.join(logs_dir, log_filename), encoding='utf-8')
        except (IOError, OSError) as e:
            logger.warning(f"File logging disabled, cannot write to {logs_dir}: {e}")
        else:
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
            logger.addHandler(file_handler)

    return logger
