#!/usr/bin/env python3
"""Supervisor Log Mailer — Entry Point.

Runs as a supervisord event listener. stdout carries the listener
protocol, so all logging goes to stderr.
"""

import sys
import signal
import asyncio
import argparse
import logging

from logmailer.aggregator import LogAggregator
from logmailer.bus import SupervisorEventBus
from logmailer.classifier import EventClassifier
from logmailer.config import Config, load_config, load_yaml_config
from logmailer.errors import StartupConnectivityError
from logmailer.mailer import SmtpTransport
from logmailer.notifier import Notifier
from logmailer.renderer import TemplateRenderer
from logmailer.scheduler import DispatchScheduler

logger = logging.getLogger(__name__)


def build_cli_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Mail supervisord process logs")
    parser.add_argument(
        "--config", default=None,
        help="Path to YAML config file (targets, smtp, mail settings)",
    )
    parser.add_argument(
        "--template", default=None,
        help="Path to the Jinja2 email template (default: bundled template)",
    )
    return parser


def build_pipeline(config: Config, renderer, transport) -> tuple[LogAggregator, Notifier, DispatchScheduler]:
    """Wire classifier, aggregator, notifier and scheduler around the given collaborators."""
    classifier = EventClassifier(config.targets)
    aggregator = LogAggregator(classifier.categories)
    notifier = Notifier(
        aggregator, renderer, transport,
        subject=config.mail_subject,
        default_label=config.error_category,
    )
    scheduler = DispatchScheduler(
        classifier, aggregator, notifier,
        error_category=config.error_category,
        broadcast_marker=config.broadcast_marker,
        debounce_sec=config.debounce_sec,
    )
    return aggregator, notifier, scheduler


async def run(config: Config, bus: SupervisorEventBus | None = None, transport=None):
    """Verify connectivity, subscribe every category and process events until stdin closes."""
    renderer = TemplateRenderer(config.template_path)
    transport = transport or SmtpTransport(config)

    await transport.verify_connection()
    bus = bus or await SupervisorEventBus.from_stdio()
    await bus.verify_connection()

    aggregator, notifier, scheduler = build_pipeline(config, renderer, transport)
    for category in aggregator.categories:
        bus.subscribe(category, scheduler.handle_event)

    listener = asyncio.create_task(bus.run())
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, listener.cancel)

    try:
        await listener
    except asyncio.CancelledError:
        logger.info("Shutdown signal received, stopping...")
    except Exception:
        logger.exception("Event listener failed, flushing queued logs before exit")
        raise
    finally:
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.remove_signal_handler(sig)

        # flush on every exit path, including a failed listener
        logger.info("Waiting for %d in-flight dispatch(es)", scheduler.in_flight)
        await scheduler.drain()
        aggregator.close()
        logger.info("Stats: %d event(s) seen, %d mail(s) sent, %d failed",
                    bus.events_seen, notifier.sent_count, notifier.failed_count)


def main():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [MAILER] %(levelname)s %(message)s",
        stream=sys.stderr,
    )

    parser = build_cli_parser()
    args = parser.parse_args()

    yaml_data = load_yaml_config(args.config)
    try:
        config = load_config(args, yaml_data)
    except ValueError as e:
        logger.error("Invalid configuration: %s", e)
        sys.exit(1)

    logging.getLogger().setLevel(getattr(logging, config.log_level, logging.INFO))
    logger.info("Config: categories=%s, error_category=%s, debounce=%.1fs, recipients=%d",
                ",".join(config.targets), config.error_category, config.debounce_sec, len(config.mail_to))

    try:
        asyncio.run(run(config))
    except StartupConnectivityError as e:
        logger.error("Startup failed: %s", e)
        sys.exit(1)
    except Exception as e:
        logger.error("Stopped after listener failure: %s", e)
        sys.exit(1)
    logger.info("Supervisor Log Mailer stopped.")


if __name__ == "__main__":
    main()
