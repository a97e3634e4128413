import threading
import time

import pytest

from sensors.onewire import BulkReadSource, BulkReadState, parse_bulk_state, trigger_bulk_read
from w1temp.errors import BulkReadProtocolError, BulkReadTimeoutError, CycleCancelledError, ProbeIOError


@pytest.mark.parametrize("text, state", [
    ("0", BulkReadState.IDLE),
    ("-1\n", BulkReadState.IN_PROGRESS),
    (" 1 \n", BulkReadState.COMPLETE),
])
def test_parse_bulk_state(text, state):
    assert parse_bulk_state(text) is state


@pytest.mark.parametrize("text", ["", "2", "-1-1", "trigger", "01"])
def test_parse_bulk_state_rejects_unknown(text):
    with pytest.raises(BulkReadProtocolError):
        parse_bulk_state(text)


def test_trigger_writes_token(bus_root, clock, driver_states):
    driver_states("1")

    trigger_bulk_read(str(bus_root), sleep=clock.sleep, clock=clock)

    assert (bus_root / "therm_bulk_read").read_text() == "trigger\n"
    assert clock.sleeps == []


def test_completes_after_two_sleeps(bus_root, clock, driver_states):
    driver_states("-1", "-1", "1")

    trigger_bulk_read(str(bus_root), poll_interval=0.1, max_wait=1.0, sleep=clock.sleep, clock=clock)

    assert clock.sleeps == [0.1, 0.1]


def test_times_out_while_in_progress(bus_root, clock, driver_states):
    driver_states(*["-1"] * 100)

    with pytest.raises(BulkReadTimeoutError):
        trigger_bulk_read(str(bus_root), poll_interval=0.1, max_wait=0.25, sleep=clock.sleep, clock=clock)

    assert clock.sleeps == [0.1, 0.1, 0.1]


def test_timeout_is_builtin_timeout_error(bus_root, clock, driver_states):
    driver_states(*["-1"] * 10)

    with pytest.raises(TimeoutError):
        trigger_bulk_read(str(bus_root), poll_interval=1.0, max_wait=2.0, sleep=clock.sleep, clock=clock)


def test_idle_after_trigger_is_protocol_error(bus_root, clock, driver_states):
    driver_states("0")

    with pytest.raises(BulkReadProtocolError, match="idle"):
        trigger_bulk_read(str(bus_root), sleep=clock.sleep, clock=clock)

    assert clock.sleeps == []


def test_idle_while_waiting_is_protocol_error(bus_root, clock, driver_states):
    driver_states("-1", "0")

    with pytest.raises(BulkReadProtocolError):
        trigger_bulk_read(str(bus_root), sleep=clock.sleep, clock=clock)


def test_unknown_state_is_protocol_error(bus_root, clock, driver_states):
    driver_states("trigger")

    with pytest.raises(BulkReadProtocolError):
        trigger_bulk_read(str(bus_root), sleep=clock.sleep, clock=clock)


def test_missing_bus_is_io_error(tmp_path, clock):
    with pytest.raises(ProbeIOError) as excinfo:
        trigger_bulk_read(str(tmp_path / "missing"), sleep=clock.sleep, clock=clock)

    assert isinstance(excinfo.value.__cause__, OSError)


def test_stop_requested_while_in_progress(bus_root, clock, driver_states):
    driver_states(*["-1"] * 100)
    stop_event = threading.Event()

    def sleep_then_stop(seconds):
        clock.sleep(seconds)
        if len(clock.sleeps) == 2:
            stop_event.set()

    with pytest.raises(CycleCancelledError):
        trigger_bulk_read(
            str(bus_root), poll_interval=0.1, max_wait=30.0,
            stop_event=stop_event, sleep=sleep_then_stop, clock=clock,
        )

    assert clock.sleeps == [0.1, 0.1]


def test_waits_on_stop_event_by_default(bus_root, driver_states):
    driver_states(*["-1"] * 100)
    stop_event = threading.Event()
    stop_event.set()

    started = time.monotonic()
    with pytest.raises(CycleCancelledError):
        trigger_bulk_read(str(bus_root), poll_interval=0.05, max_wait=1.5, stop_event=stop_event)

    assert time.monotonic() - started < 0.5


def test_bulk_source_cancelled_during_conversion(bus_root, make_probe, driver_states):
    make_probe(bus_root, "28-011850aecaff", 37200)
    driver_states(*["-1"] * 100)
    stop_event = threading.Event()
    threading.Timer(0.05, stop_event.set).start()

    started = time.monotonic()
    with pytest.raises(CycleCancelledError):
        BulkReadSource(str(bus_root), poll_interval=0.01, max_wait=5.0).read_all(stop_event)

    assert time.monotonic() - started < 2.0
