import pytest

from sensors import onewire


def _make_probe(bus_root, name, temperature):
    """Create a w1_therm style probe directory with name and temperature files"""
    probe_dir = bus_root / name
    probe_dir.mkdir()
    (probe_dir / "name").write_text(name + "\n")
    (probe_dir / "temperature").write_text(f"{temperature}\n")
    return probe_dir


@pytest.fixture
def bus_root(tmp_path):
    root = tmp_path / "w1_bus_master1"
    root.mkdir()
    (root / "therm_bulk_read").write_text("0\n")
    return root


class FakeClock:
    """Monotonic clock that only moves when sleep() is called"""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def driver_states(monkeypatch):
    """Script the values the driver reports from therm_bulk_read"""
    def script(*states):
        remaining = iter(states)
        monkeypatch.setattr(onewire, "_read_control", lambda path: next(remaining))
    return script


class RecordingPublisher:

    def __init__(self):
        self.batches = []

    def publish(self, batch):
        self.batches.append(dict(batch))


@pytest.fixture
def publisher():
    return RecordingPublisher()


@pytest.fixture
def make_probe():
    return _make_probe
