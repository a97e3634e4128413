"""
DS18B20 probes on the kernel 1-Wire bus (w1_therm driver).

Bulk read protocol, from the w1_therm docs
(https://www.kernel.org/doc/html/latest/w1/slaves/w1_therm.html):
writing "trigger" to therm_bulk_read starts a conversion on every probe.
Reading it back returns 0 if no bulk conversion is pending, -1 if at least
one sensor is still converting, 1 if conversion is complete but at least
one value has not been read yet.
"""
import os
import re
import time
import fnmatch
import threading
from enum import IntEnum
from concurrent.futures import ThreadPoolExecutor, FIRST_EXCEPTION, wait

from w1temp.config import (
    logger,
    PROBE_FAMILY_PREFIX,
    BULK_READ_FILE,
    BULK_READ_TRIGGER,
    MAX_READ_WORKERS,
)
from w1temp.errors import (
    ProbeIOError,
    ProbeParseError,
    BulkReadProtocolError,
    BulkReadTimeoutError,
    CycleCancelledError,
)
from sensors.interface import ProbeReading


class BulkReadState(IntEnum):
    IDLE = 0
    IN_PROGRESS = -1
    COMPLETE = 1


_STATES = {
    "0": BulkReadState.IDLE,
    "-1": BulkReadState.IN_PROGRESS,
    "1": BulkReadState.COMPLETE,
}

# Plain ASCII integer as written by w1_therm; the kernel never exceeds int32
_MILLIDEGREES = re.compile(r"-?\d{1,10}", re.ASCII)


def _read_text(path):
    try:
        with open(path, "r") as f:
            return f.read()
    except OSError as e:
        raise ProbeIOError(f"Failed to read {path}: {e}", path=path) from e


def _write_control(path, token):
    try:
        with open(path, "w") as f:
            f.write(token)
    except OSError as e:
        raise ProbeIOError(f"Failed to write {path}: {e}", path=path) from e


def _read_control(path):
    return _read_text(path).strip()


def parse_bulk_state(text):
    """Map the trimmed content of therm_bulk_read to a BulkReadState"""
    try:
        return _STATES[text.strip()]
    except KeyError:
        raise BulkReadProtocolError(f"Unexpected bulk read state {text!r}") from None


def trigger_bulk_read(bus_root, poll_interval=0.1, max_wait=30.0, stop_event=None, sleep=None, clock=time.monotonic):
    """
    Start a bulk conversion and block until the driver reports it complete.
    Waits on stop_event between polls, so a stop request ends the wait early.
    """
    stop_event = stop_event or threading.Event()
    sleep = sleep or stop_event.wait
    control = os.path.join(bus_root, BULK_READ_FILE)
    _write_control(control, BULK_READ_TRIGGER)
    deadline = clock() + max_wait

    while True:
        if stop_event.is_set():
            raise CycleCancelledError("Stop requested while waiting for bulk read")

        state = parse_bulk_state(_read_control(control))

        if state == BulkReadState.COMPLETE:
            return

        if state == BulkReadState.IDLE:
            raise BulkReadProtocolError(
                "Bulk read reported idle after trigger, driver did not arm"
            )

        if clock() >= deadline:
            raise BulkReadTimeoutError(f"Timed out after {max_wait}s waiting for bulk read")

        logger.debug("Waiting for temperature probes...")
        sleep(poll_interval)


def list_probes(bus_root):
    """Paths of all temperature probes under bus_root, in listing order"""
    try:
        entries = os.listdir(bus_root)
    except OSError as e:
        raise ProbeIOError(f"Cannot list 1-Wire bus at {bus_root}: {e}", path=bus_root) from e

    return [
        os.path.join(bus_root, entry)
        for entry in entries
        if fnmatch.fnmatch(entry, PROBE_FAMILY_PREFIX + "*")
    ]


def probe_id_from_name(name):
    return name.strip().removeprefix(PROBE_FAMILY_PREFIX)


def parse_millidegrees(text, path=None):
    text = text.strip()
    if not _MILLIDEGREES.fullmatch(text):
        raise ProbeParseError(f"Malformed temperature {text!r} in {path}")
    return int(text)


def read_probe(path):
    """Read one probe directory into a ProbeReading"""
    probe_id = probe_id_from_name(_read_text(os.path.join(path, "name")))
    temperature_file = os.path.join(path, "temperature")
    milli_celsius = parse_millidegrees(_read_text(temperature_file), path=temperature_file)
    return ProbeReading.from_millidegrees(probe_id, milli_celsius)


class BulkReadSource:
    """Trigger one conversion for the whole bus, then read every probe"""

    def __init__(self, bus_root, poll_interval=0.1, max_wait=30.0):
        self.bus_root = bus_root
        self.poll_interval = poll_interval
        self.max_wait = max_wait

    def read_all(self, stop_event=None):
        trigger_bulk_read(self.bus_root, self.poll_interval, self.max_wait, stop_event=stop_event)

        readings = []
        for path in list_probes(self.bus_root):
            if stop_event is not None and stop_event.is_set():
                raise CycleCancelledError("Stop requested during probe reads")
            readings.append(read_probe(path))
        return readings

    def __repr__(self):
        return f"BulkReadSource({self.bus_root!r})"


class ConcurrentSource:
    """
    Read every probe in its own worker thread, without a bulk trigger.
    Each read makes the driver run a conversion for that probe alone, so
    running them side by side keeps a cycle close to one conversion time.
    """

    def __init__(self, bus_root, max_workers=MAX_READ_WORKERS):
        self.bus_root = bus_root
        self.max_workers = max_workers

    def read_all(self, stop_event=None):
        paths = list_probes(self.bus_root)
        if not paths:
            return []

        stop_event = stop_event or threading.Event()

        def read_one(path):
            if stop_event.is_set():
                raise CycleCancelledError("Stop requested before probe read")
            return read_probe(path)

        executor = ThreadPoolExecutor(max_workers=min(self.max_workers, len(paths)))
        try:
            futures = {executor.submit(read_one, path): path for path in paths}
            done, pending = wait(futures, return_when=FIRST_EXCEPTION)

            for future in done:
                error = future.exception()
                if error is not None:
                    for other in pending:
                        other.cancel()
                    logger.error(f"Probe read failed for {futures[future]}: {error}")
                    raise error

            results = {futures[future]: future.result() for future in done}
        finally:
            executor.shutdown(wait=True, cancel_futures=True)

        return [results[path] for path in paths]

    def __repr__(self):
        return f"ConcurrentSource({self.bus_root!r})"
