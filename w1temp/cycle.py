"""
Polling cycle: read every probe, build one batch, hand it to the publisher.
The scheduling loop runs cycles on a fixed cadence until asked to stop.
"""
import time

from w1temp.config import logger
from w1temp.errors import W1TempError


def feed_key(probe_id, unit):
    return f"temp-{probe_id}-{unit}"


def build_batch(readings):
    """Flatten readings into {"temp-<id>-c": celsius, "temp-<id>-f": fahrenheit}"""
    batch = {}
    for reading in readings:
        batch[feed_key(reading.probe_id, "c")] = reading.celsius
        batch[feed_key(reading.probe_id, "f")] = reading.fahrenheit
    return batch


def run_cycle(source, publisher, stop_event=None):
    """
    One read-and-publish pass. Any read error propagates before the
    publisher is touched, so a cycle publishes everything or nothing.
    """
    readings = source.read_all(stop_event)
    for reading in readings:
        logger.info(f"{reading.probe_id}: {reading.celsius:.2f}c {reading.fahrenheit:.2f}f")

    batch = build_batch(readings)
    if not batch:
        logger.warning("No temperature probes found, nothing to publish")
        return batch

    publisher.publish(batch)
    return batch


def run_forever(source, publisher, interval, stop_event, watchdog=None, clock=time.monotonic):
    """Run cycles every `interval` seconds until stop_event is set"""
    logger.info(f"Polling {source} every {interval}s, publishing via {publisher}")
    next_tick = clock()

    while not stop_event.is_set():
        next_tick += interval

        if watchdog is not None:
            watchdog.notify()

        logger.info("Starting probe read cycle")
        try:
            run_cycle(source, publisher, stop_event)
        except W1TempError as e:
            logger.error(f"Cycle skipped: {e}")
        except Exception as e:
            logger.error(f"Unexpected cycle error: {e}", exc_info=True)

        # A cycle that overran its slot starts the next one right away
        now = clock()
        if next_tick < now:
            next_tick = now
        stop_event.wait(next_tick - now)

    logger.info("Polling stopped")
