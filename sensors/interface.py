# sensors/interface.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Protocol
import threading


@dataclass(frozen=True)
class ProbeReading:
    probe_id: str       # e.g. "011850aecaff", family prefix removed
    celsius: float
    fahrenheit: float

    @classmethod
    def from_millidegrees(cls, probe_id: str, milli_celsius: int) -> "ProbeReading":
        celsius = milli_celsius / 1000.0
        return cls(probe_id=probe_id, celsius=celsius, fahrenheit=celsius * 1.8 + 32.0)


class ProbeSource(Protocol):
    """
    Anything that can produce one reading per attached probe.
    Called once per polling cycle.
    """

    def read_all(self, stop_event: Optional[threading.Event] = None) -> list[ProbeReading]:
        """
        Read every probe once. Raises on the first failure; a caller never
        gets a partial list.
        """
        ...
