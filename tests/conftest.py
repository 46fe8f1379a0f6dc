"""
Shared fixtures: sample apcupsd output, a fake NIS server, a fake clock.
"""

import socketserver
import struct
import threading
import time
from typing import Callable, Iterator, List, Optional, Tuple

import pytest

from apcupsd_snmp.agent.mib_definitions import MIBDefinitions
from apcupsd_snmp.collectors.apcupsd_collector import FeedError


# Raw records as apcupsd's NIS server sends them for a Back-UPS RS 500
STATUS_LINES = [
    "APC      : 001,036,0879\n",
    "DATE     : 2020-11-21 10:00:00 +0000  \n",
    "HOSTNAME : ups-host\n",
    "VERSION  : 3.14.14 (31 May 2016) debian\n",
    "UPSNAME  : ups1\n",
    "CABLE    : USB Cable\n",
    "DRIVER   : USB UPS Driver\n",
    "UPSMODE  : Stand Alone\n",
    "MODEL    : Back-UPS RS 500 \n",
    "STATUS   : ONLINE \n",
    "LINEV    : 230.0 Volts\n",
    "LOADPCT  : 12.0 Percent\n",
    "BCHARGE  : 100.0 Percent\n",
    "TIMELEFT : 45.5 Minutes\n",
    "MBATTCHG : 5 Percent\n",
    "SENSE    : Medium\n",
    "LOTRANS  : 180.0 Volts\n",
    "HITRANS  : 266.0 Volts\n",
    "ALARMDEL : No alarm\n",
    "BATTV    : 13.5 Volts\n",
    "LASTXFER : Low line voltage\n",
    "NUMXFERS : 0\n",
    "TONBATT  : 0 Seconds\n",
    "CUMONBATT: 0 Seconds\n",
    "SELFTEST : NO\n",
    "STATFLAG : 0x05000008\n",
    "SERIALNO : 3B0000X00000\n",
    "BATTDATE : 09-02-26\n",
    "NOMINV   : 230 Volts\n",
    "NOMBATTV : 12.0 Volts\n",
    "FIRMWARE : 30.j5.I USB FW:j5\n",
    "END APC  : 2020-11-21 10:00:05 +0000  \n",
]

# Part of that report after parsing, as (name, value) pairs
STATUS_RECORDS: List[Tuple[str, str]] = [
    ("APC", "001,036,0879"),
    ("UPSNAME", "ups1"),
    ("MODEL", "Back-UPS RS 500"),
    ("STATUS", "ONLINE"),
    ("LINEV", "230.0"),
    ("LOADPCT", "12.0"),
    ("BCHARGE", "100.0"),
    ("TIMELEFT", "45.5"),
    ("SENSE", "Medium"),
    ("LOTRANS", "180.0"),
    ("HITRANS", "266.0"),
    ("ALARMDEL", "No alarm"),
    ("BATTV", "13.5"),
    ("LASTXFER", "Low line voltage"),
    ("TONBATT", "0"),
    ("SELFTEST", "NO"),
    ("STATFLAG", "0x05000008"),
    ("SERIALNO", "3B0000X00000"),
    ("BATTDATE", "09-02-26"),
    ("NOMBATTV", "12.0"),
    ("FIRMWARE", "30.j5.I USB FW:j5"),
]


def encode_records(lines: List[str], terminate: bool = True) -> bytes:
    out = b"".join(struct.pack("!H", len(line.encode())) + line.encode() for line in lines)
    if terminate:
        out += struct.pack("!H", 0)
    return out


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeCollector:
    """Stands in for ApcupsdCollector; counts fetches."""

    def __init__(self, records: Optional[List[Tuple[str, str]]] = None):
        self.records = list(records if records is not None else STATUS_RECORDS)
        self.error: Optional[FeedError] = None
        self.calls = 0

    def fetch(self) -> List[Tuple[str, str]]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.records)


class FakeNISServer:
    """
    Threaded TCP server speaking the apcupsd NIS framing.

    ``respond`` receives the decoded command and returns the raw bytes
    to send back; ``delay`` holds the response back.
    """

    def __init__(self, respond: Callable[[str], bytes], delay: float = 0.0):
        self.commands: List[str] = []
        server = self

        class Handler(socketserver.BaseRequestHandler):
            def handle(self):
                header = self.request.recv(2)
                if len(header) < 2:
                    return
                (length,) = struct.unpack("!H", header)
                command = self.request.recv(length).decode()
                server.commands.append(command)
                if delay:
                    time.sleep(delay)
                self.request.sendall(respond(command))

        socketserver.TCPServer.allow_reuse_address = True
        self._server = socketserver.ThreadingTCPServer(("127.0.0.1", 0), Handler)
        self._server.daemon_threads = True
        self.host, self.port = self._server.server_address
        self._thread = threading.Thread(target=self._server.serve_forever, daemon=True)

    def __enter__(self) -> "FakeNISServer":
        self._thread.start()
        return self

    def __exit__(self, *exc):
        self._server.shutdown()
        self._server.server_close()


@pytest.fixture
def mib() -> MIBDefinitions:
    return MIBDefinitions()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def collector() -> FakeCollector:
    return FakeCollector()


@pytest.fixture
def nis_server() -> Iterator[FakeNISServer]:
    with FakeNISServer(lambda command: encode_records(STATUS_LINES)) as server:
        yield server
