#!/usr/bin/env python3
"""
Check that the 1-Wire bus and probes are readable on this Raspberry Pi.
Run this before installing the service. Nothing is published.

Usage:
    python check_connection.py                                       # default bus
    W1_BUS_ROOT=/sys/bus/w1/devices/w1_bus_master2 python check_connection.py
"""
import os
import sys

from w1temp.config import DEFAULT_BUS_ROOT
from w1temp.errors import W1TempError
from sensors.onewire import list_probes, read_probe


def check_bus(bus_root):
    """List the probes on the bus, or None if the bus is unreadable"""
    print(f"\n1. Listing probes under {bus_root}...")
    try:
        probes = list_probes(bus_root)
    except W1TempError as e:
        print(f"   ✗ {e}")
        return None

    if not probes:
        print("   ✗ No 28-* probes found")
        return None

    print(f"   ✓ Found {len(probes)} probe(s)")
    return probes


def check_probes(probes):
    print(f"\n2. Reading each probe...")
    ok = True
    for path in probes:
        try:
            reading = read_probe(path)
        except W1TempError as e:
            print(f"   ✗ {os.path.basename(path)}: {e}")
            ok = False
            continue
        print(f"   ✓ {reading.probe_id}: {reading.celsius:.2f}c {reading.fahrenheit:.2f}f")
    return ok


def main(bus_root=None):
    bus_root = bus_root or os.getenv("W1_BUS_ROOT", DEFAULT_BUS_ROOT)

    print("=" * 60)
    print("1-Wire Probe Check")
    print("=" * 60)

    probes = check_bus(bus_root)
    if probes is None:
        print("\n✗ Cannot read the 1-Wire bus. Troubleshooting steps:")
        print("  1. Enable the interface: dtoverlay=w1-gpio in /boot/config.txt")
        print("  2. Check that the w1_therm module is loaded: lsmod | grep w1")
        print("  3. Set W1_BUS_ROOT if the probes sit on another bus master")
        return False

    probes_ok = check_probes(probes)

    print("\n" + "=" * 60)
    if probes_ok:
        print("✓ All probes readable! Ready to run main.py")
    else:
        print("✗ Some probes failed. Check the errors above.")
    print("=" * 60 + "\n")

    return probes_ok


if __name__ == "__main__":
    success = main()
    sys.exit(0 if success else 1)
