#!/usr/bin/env python3
# Copyright (c) 2025 Luc Vincent. All Rights Reserved.
"""
PhotoFrame - Main Application.
Wires the Immich client, the photo cache and the web server together.
"""

import argparse
import logging
import os
import signal
import sys
import threading
from pathlib import Path
from typing import Optional

# Initialize logging early
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)
logger = logging.getLogger(__name__)


def setup_file_logging(log_dir: str) -> None:
    """Set up file logging in addition to console."""
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    file_handler = logging.FileHandler(log_path / 'photoframe.log')
    file_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    ))
    logging.getLogger().addHandler(file_handler)


def build_cache(config, client):
    """
    Create the photo cache selected by ``cache.mode``.

    Args:
        config: PhotoFrameConfig.
        client: ImmichClient the cache draws from.

    Returns:
        A PhotoCache instance.
    """
    from .sampling_cache import RandomAssetCache, SamplingCache
    from .shuffle_cache import ShuffleCache

    mode = config.cache.mode
    if mode == "album":
        return ShuffleCache(client, config.cache.album_id)
    if mode == "random_asset":
        return RandomAssetCache(
            client,
            pages_in_library=config.cache.pages_in_library,
            records_per_page=config.cache.records_per_page
        )
    if mode == "random_page":
        return SamplingCache(
            client,
            pages_in_library=config.cache.pages_in_library,
            records_per_page=config.cache.records_per_page
        )
    raise ValueError(f"Unknown cache mode: {mode}")


class PhotoFrame:
    """Main PhotoFrame application."""

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize PhotoFrame.

        Args:
            config_path: Path to configuration file.
        """
        self.config_path = config_path
        self.config = None
        self.client = None
        self.cache = None
        self.refresher = None

        self._shutdown_event = threading.Event()

        # Set up signal handlers
        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

    def _signal_handler(self, signum, frame):
        """Handle shutdown signals."""
        logger.info(f"Received signal {signum}, initiating shutdown...")
        self.stop()
        sys.exit(0)

    def _load_config(self) -> bool:
        """Load configuration; False if the server can't start."""
        from .config import load_config, missing_required, validate_config

        try:
            self.config = load_config(self.config_path)
        except Exception as e:
            logger.error(f"Failed to load configuration: {e}")
            return False

        missing = missing_required(self.config)
        if missing:
            logger.error(f"{' and '.join(missing)} must be set")
            return False

        for error in validate_config(self.config):
            logger.warning(f"Config warning: {error}")

        logger.info(f"Configuration loaded from: {self.config.config_path or 'defaults'}")
        return True

    def _init_cache(self) -> bool:
        """Initialize the Immich client and the configured cache."""
        from .immich_client import ImmichClient

        immich = self.config.immich
        self.client = ImmichClient(
            immich.url,
            immich.api_key,
            device_model=immich.device_model or None,
            timeout=immich.timeout_seconds
        )

        try:
            self.cache = build_cache(self.config, self.client)
        except ValueError as e:
            logger.error(f"Failed to initialize cache: {e}")
            return False

        logger.info(f"Immich URL: {immich.url}")
        logger.info(f"Device model: {immich.device_model or 'any'}")
        logger.info(f"Cache mode: {self.config.cache.mode}")
        return True

    def _start_refresher(self) -> bool:
        """Load the album and keep it fresh (album mode only)."""
        from .refresher import AlbumRefresher

        self.refresher = AlbumRefresher(
            self.cache,
            interval_minutes=self.config.cache.refresh_interval_minutes,
            initial_retry_seconds=self.config.cache.initial_retry_seconds,
            shutdown_event=self._shutdown_event
        )
        if not self.refresher.load_initial():
            return False
        self.refresher.start()
        return True

    def run(self) -> int:
        """
        Run the server until shutdown.

        Returns:
            Exit code (0 for success).
        """
        logger.info("Starting PhotoFrame...")

        if not self._load_config():
            return 1

        # Set up file logging if configured
        log_dir = os.environ.get('PHOTOFRAME_LOG_DIR')
        if log_dir:
            try:
                setup_file_logging(log_dir)
            except Exception as e:
                logger.warning(f"Could not set up file logging: {e}")

        if not self._init_cache():
            return 1

        if self.config.cache.mode == "album" and not self._start_refresher():
            return 1

        from .web.app import create_app, run_server

        app = create_app(self.config, self.cache, self.client, refresher=self.refresher)
        logger.info(f"Slideshow interval: {self.config.slideshow.interval_seconds}s")

        try:
            run_server(app, self.config.web.host, self.config.web.port)
        except Exception as e:
            logger.error(f"Web server error: {e}")
            return 1
        finally:
            self._cleanup()

        return 0

    def stop(self) -> None:
        """Stop the application."""
        logger.info("Stopping PhotoFrame...")
        self._shutdown_event.set()

    def _cleanup(self) -> None:
        """Clean up resources."""
        if self.refresher:
            self.refresher.stop(timeout=5)
        if self.client:
            self.client.close()
        logger.info("PhotoFrame stopped")


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="PhotoFrame - Immich Photo Frame Server",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    parser.add_argument(
        '-c', '--config',
        help='Path to configuration file'
    )

    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable verbose logging'
    )

    parser.add_argument(
        '--version',
        action='store_true',
        help='Show version and exit'
    )

    args = parser.parse_args()

    if args.version:
        from . import __version__
        print(f"PhotoFrame {__version__}")
        return 0

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    app = PhotoFrame(config_path=args.config)
    return app.run()


if __name__ == "__main__":
    sys.exit(main())
