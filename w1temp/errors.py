"""
Exception hierarchy for the probe reader.
Core operations raise these; only the polling loop catches them.
"""


class W1TempError(Exception):
    """Base class for all probe reader errors"""


class ProbeIOError(W1TempError):
    """A sysfs resource could not be read or written"""

    def __init__(self, message, path=None):
        super().__init__(message)
        self.path = path


class ProbeParseError(W1TempError, ValueError):
    """A temperature file held malformed text"""


class BulkReadProtocolError(W1TempError):
    """The driver answered the bulk read trigger with an unexpected state"""


class BulkReadTimeoutError(W1TempError, TimeoutError):
    """The bulk conversion did not complete before the deadline"""


class ConfigError(W1TempError):
    """Missing or invalid configuration, fatal at startup"""


class PublishError(W1TempError):
    """The telemetry endpoint rejected or never received a batch"""


class CycleCancelledError(W1TempError):
    """A stop was requested while a cycle was in flight"""
