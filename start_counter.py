#!/usr/bin/env python3
"""Entry point for the People Counter."""

import argparse
import os
import sys
import threading
import time
from typing import List, Optional

from people_counter.config_manager import ConfigManager
from people_counter.detection_pipeline import CountingPipeline
from people_counter.exceptions import InitializationError
from people_counter.logging_config import get_logger, setup_logging

logger = get_logger("start_counter")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Count people crossing a line in a camera stream.")
    parser.add_argument("--config", default=None, help="Path to the JSON configuration file")
    parser.add_argument("--log-level", default=None,
                        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
                        help="Override the configured log level")
    parser.add_argument("--no-web", action="store_true", help="Do not start the web interface")
    parser.add_argument("--export-report", metavar="PATH", nargs="?", const="",
                        help="Export the stored event history to PDF and exit")
    return parser.parse_args(argv)


def start_web_server(pipeline: CountingPipeline, host: str, port: int) -> threading.Thread:
    """Serve the web interface from a daemon thread."""
    from people_counter.web.app import PeopleCounterWebApp

    web_app = PeopleCounterWebApp(pipeline)

    def serve():
        try:
            web_app.run(host=host, port=port)
        except Exception as e:
            logger.error(f"Web server failed: {e}")

    web_thread = threading.Thread(target=serve, name="web-server", daemon=True)
    web_thread.start()
    return web_thread


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the people counter."""
    args = parse_args(argv)

    config_manager = ConfigManager(args.config)
    config = config_manager.get_config()
    setup_logging(args.log_level or config.log_level, config.log_dir)

    logger.info("Starting People Counter")
    logger.info(f"Python version: {sys.version.split()[0]}")
    logger.info(f"Working directory: {os.getcwd()}")

    if not config_manager.validate_config():
        for problem in config_manager.get_validation_errors(config):
            logger.error(f"Invalid configuration: {problem}")
        return 1

    pipeline = CountingPipeline(config_manager)

    if args.export_report is not None:
        try:
            path = pipeline.export_report(args.export_report or None)
        except Exception as e:
            logger.error(f"Report export failed: {e}")
            return 1
        logger.info(f"Report written to {path}")
        return 0

    try:
        pipeline.start()
    except InitializationError as e:
        logger.error(f"Counting pipeline failed to start: {e}")
        return 1

    if not args.no_web:
        start_web_server(pipeline, config.web_host, config.web_port)
        logger.info(f"Web interface on http://{config.web_host}:{config.web_port}")

    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        logger.info("Received shutdown signal")
    finally:
        pipeline.stop()
        logger.info("People Counter stopped")

    return 0


if __name__ == "__main__":
    sys.exit(main())
