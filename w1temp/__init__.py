"""
Forward 1-Wire temperature probe readings to Adafruit IO.
"""
__version__ = "0.1.0"
