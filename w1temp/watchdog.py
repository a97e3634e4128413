"""
Watchdog support for systemd integration.
Notifies systemd over NOTIFY_SOCKET that the service is alive.
"""
import os
import socket
from w1temp.config import logger


class SystemdWatchdog:
    """
    Sends sd_notify messages when running under a unit with WatchdogSec set.
    Does nothing when NOTIFY_SOCKET or WATCHDOG_USEC is missing.

    Pings only come from notify(), once per polling cycle, so a cycle stuck
    on a sysfs read lets the systemd watchdog fire. WatchdogSec has to be
    longer than POLL_INTERVAL plus the slowest cycle.
    """
    def __init__(self, environ=None):
        environ = os.environ if environ is None else environ
        self.notify_socket = environ.get('NOTIFY_SOCKET')
        self.watchdog_usec = None
        self.enabled = False
        self.running = False
        self._parse_watchdog(environ.get('WATCHDOG_USEC'))

    def _parse_watchdog(self, watchdog_usec):
        if not self.notify_socket or not watchdog_usec:
            logger.info("Watchdog not enabled (NOTIFY_SOCKET or WATCHDOG_USEC not set)")
            return

        try:
            self.watchdog_usec = int(watchdog_usec)
        except ValueError:
            logger.warning(f"Invalid WATCHDOG_USEC value: {watchdog_usec}")
            return

        self.enabled = True
        logger.info(f"Watchdog enabled - systemd timeout {self.timeout:.1f}s")

    @property
    def timeout(self):
        return self.watchdog_usec / 1_000_000

    def _address(self):
        # Abstract namespace sockets are given with a leading '@'
        if self.notify_socket.startswith('@'):
            return '\0' + self.notify_socket[1:]
        return self.notify_socket

    def _send(self, message):
        try:
            with socket.socket(socket.AF_UNIX, socket.SOCK_DGRAM) as sock:
                sock.connect(self._address())
                sock.sendall(message.encode())
        except OSError as e:
            logger.warning(f"Failed to send watchdog message {message!r}: {e}")
            return False
        return True

    def start(self):
        """Report readiness to systemd"""
        if not self.enabled:
            return

        self.running = self._send("READY=1")

    def stop(self):
        if self.running:
            self._send("STOPPING=1")
        self.running = False

    def notify(self):
        """Tell systemd a polling cycle has started"""
        if not self.enabled:
            return False
        sent = self._send("WATCHDOG=1")
        if sent:
            logger.debug("Watchdog ping sent")
        return sent

    def check_interval(self, poll_interval):
        """Warn when the polling cadence is too slow for the systemd timeout"""
        if self.enabled and poll_interval >= self.timeout:
            logger.warning(
                f"POLL_INTERVAL ({poll_interval}s) is not shorter than the systemd watchdog "
                f"timeout ({self.timeout:.1f}s); the service will be restarted between cycles"
            )
            return False
        return True
