"""
Temperature probe readers.
Each source exposes `read_all()`, returning one ProbeReading per probe.
"""
