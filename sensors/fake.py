"""
Stand-in probe source for machines without a 1-Wire bus (SVC_MODE=sim).
Always returns the same two readings.
"""
from sensors.interface import ProbeReading

FAKE_PROBES = {
    "0000000000a1": 21500,
    "0000000000b2": -4250,
}


class FakeSource:

    def read_all(self, stop_event=None):
        return [
            ProbeReading.from_millidegrees(probe_id, milli)
            for probe_id, milli in FAKE_PROBES.items()
        ]

    def __repr__(self):
        return "FakeSource()"
