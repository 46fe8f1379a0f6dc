"""
apcupsd NIS Collector.

Talks to the apcupsd Network Information Server the same way
``apcaccess -u status`` does: one length-prefixed ``status`` command,
then length-prefixed "NAME : value" records up to an empty record.
"""

import logging
import re
import select
import socket
import struct
from typing import List, Optional, Tuple


logger = logging.getLogger(__name__)


LENGTH_PREFIX = struct.Struct("!H")

# Units apcaccess strips with -u
UNITS = ("Minutes", "Seconds", "Percent", "Volts", "Watts", "Hz", "C")
_UNITS_RE = re.compile(r" (?:%s)$" % "|".join(UNITS))
_SEPARATOR_RE = re.compile(r"\s+:\s+")


class FeedError(Exception):
    """A fetch cycle from apcupsd did not complete."""


class FeedConnectError(FeedError):
    """Could not connect to, or talk to, the apcupsd NIS server."""


class FeedTimeoutError(FeedError):
    """apcupsd did not send anything within the timeout."""


class FeedFramingError(FeedError):
    """The record stream ended or broke before the end marker."""


def frame(payload: str) -> bytes:
    """Length-prefix a command for sending to apcupsd."""
    data = payload.encode("ascii")
    return LENGTH_PREFIX.pack(len(data)) + data


def parse_record(record: str) -> Optional[Tuple[str, str]]:
    """
    Split one status record into (name, value).

    Trailing whitespace and a known unit are removed from the value.
    Returns None for records without a " : " separator.
    """
    record = _UNITS_RE.sub("", record.rstrip())
    parts = _SEPARATOR_RE.split(record, maxsplit=1)
    if len(parts) != 2:
        return None
    name, value = parts
    return name.strip(), value


class ApcupsdCollector:
    """
    One-shot client for the apcupsd NIS status report.

    Each ``fetch()`` opens a fresh connection, and either returns every
    record up to the end marker or raises a ``FeedError``.
    """

    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = 3551,
        timeout: float = 10.0,
        command: str = "status",
    ):
        self.host = host
        self.port = port
        self.timeout = timeout
        self.command = command

    def fetch(self) -> List[Tuple[str, str]]:
        """Run one status exchange and return the (name, value) pairs."""
        try:
            sock = socket.create_connection((self.host, self.port), timeout=self.timeout)
        except socket.timeout as e:
            raise FeedTimeoutError(f"Timed out connecting to apcupsd at {self.host}:{self.port}") from e
        except OSError as e:
            raise FeedConnectError(f"Cannot connect to apcupsd at {self.host}:{self.port}: {e}") from e

        try:
            sock.sendall(frame(self.command))
            self._wait_readable(sock)
            return self._read_records(sock)
        except socket.timeout as e:
            raise FeedTimeoutError(f"Timed out reading from apcupsd: {e}") from e
        except OSError as e:
            raise FeedConnectError(f"Socket error talking to apcupsd: {e}") from e
        finally:
            sock.close()

    def _wait_readable(self, sock: socket.socket):
        readable, _, errored = select.select([sock], [], [sock], self.timeout)
        if errored:
            raise FeedConnectError("Socket error while waiting for apcupsd")
        if not readable:
            raise FeedTimeoutError(f"No response from apcupsd within {self.timeout}s")

    def _read_records(self, sock: socket.socket) -> List[Tuple[str, str]]:
        records: List[Tuple[str, str]] = []
        while True:
            (length,) = LENGTH_PREFIX.unpack(self._read_exact(sock, LENGTH_PREFIX.size))
            if length == 0:
                logger.debug(f"Received {len(records)} records from apcupsd")
                return records

            text = self._read_exact(sock, length).decode("utf-8", errors="replace")
            parsed = parse_record(text)
            if parsed is None:
                logger.debug(f"Skipping unparseable record: {text!r}")
                continue
            records.append(parsed)

    @staticmethod
    def _read_exact(sock: socket.socket, size: int) -> bytes:
        buf = bytearray()
        while len(buf) < size:
            chunk = sock.recv(size - len(buf))
            if not chunk:
                raise FeedFramingError(
                    f"Connection closed mid-record ({len(buf)} of {size} bytes)"
                )
            buf.extend(chunk)
        return bytes(buf)
