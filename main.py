"""
Main orchestration script for the probe reader.
Validates configuration, wires the probe source to a publisher and runs
the polling loop until SIGINT/SIGTERM.
"""
import signal
import sys
import threading

from w1temp.config import (
    logger,
    configure_logging,
    load_settings,
    MAX_READ_WORKERS,
)
from w1temp.cycle import run_forever
from w1temp.errors import ConfigError, PublishError
from w1temp.publishers import make_publisher
from w1temp.watchdog import SystemdWatchdog
from sensors.onewire import BulkReadSource, ConcurrentSource
from sensors.fake import FakeSource


def make_source(settings):
    if settings.mode == "sim":
        return FakeSource()
    if settings.read_mode == "concurrent":
        return ConcurrentSource(settings.bus_root, max_workers=MAX_READ_WORKERS)
    return BulkReadSource(
        settings.bus_root,
        poll_interval=settings.bulk_poll_interval,
        max_wait=settings.bulk_timeout,
    )


def install_signal_handlers(stop_event):
    def handle_signal(signum, frame):
        logger.info(f"Received {signal.Signals(signum).name}, shutting down")
        stop_event.set()

    signal.signal(signal.SIGTERM, handle_signal)
    signal.signal(signal.SIGINT, handle_signal)


def main(environ=None):
    configure_logging()

    try:
        settings = load_settings(environ)
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    logger.info(f"Starting probe reader (mode={settings.mode}, read={settings.read_mode}, publish={settings.publish_mode})")

    source = make_source(settings)
    publisher = make_publisher(settings)
    watchdog = SystemdWatchdog()
    stop_event = threading.Event()
    install_signal_handlers(stop_event)

    try:
        publisher.connect()
    except PublishError as e:
        logger.error(f"Publisher unavailable: {e}")
        return 1

    watchdog.start()
    watchdog.check_interval(settings.poll_interval)
    try:
        run_forever(source, publisher, settings.poll_interval, stop_event, watchdog=watchdog)
    finally:
        watchdog.stop()
        publisher.close()
        logger.info("Probe reader shut down gracefully")

    return 0


if __name__ == "__main__":
    sys.exit(main())
