"""
Data models for the apcupsd SNMP bridge.

These dataclasses represent the typed values served over SNMP,
the cached snapshot they live in, and the per-request records
the dispatcher answers.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple, Union


OID = Tuple[int, ...]

# Chain key that precedes every OID; the empty tuple sorts before all others.
CHAIN_START: OID = ()


class ValueType(str, Enum):
    """SNMP syntax of a served value."""

    OCTET_STRING = "OctetString"
    INTEGER = "Integer"
    GAUGE = "Gauge"
    TIME_TICKS = "TimeTicks"


@dataclass(frozen=True)
class TypedValue:
    """A converted value together with its SNMP syntax."""

    value_type: ValueType
    value: Union[int, str]


@dataclass(frozen=True)
class Snapshot:
    """
    Result of one successful fetch from apcupsd.

    ``data`` holds only the OIDs reported in that fetch. ``chain`` links
    each OID to its successor, starting from ``CHAIN_START``. Both are
    replaced together by swapping the whole Snapshot.
    """

    data: Dict[OID, TypedValue] = field(default_factory=dict)
    chain: Dict[OID, OID] = field(default_factory=dict)
    fetched_at: Optional[float] = None

    @property
    def is_empty(self) -> bool:
        return not self.data

    def __len__(self) -> int:
        return len(self.data)


EMPTY_SNAPSHOT = Snapshot()


class RequestMode(str, Enum):
    """Request modes handed to the dispatcher."""

    GET = "get"
    GETNEXT = "getnext"
    GETBULK = "getbulk"
    SET = "set"


class RequestError(int, Enum):
    """Per-request error, valued as the SNMPv1 error-status code."""

    NO_SUCH_NAME = 2
    READ_ONLY = 4


@dataclass
class Request:
    """A single variable of an inbound request batch, answered in place."""

    oid: OID
    value_type: Optional[ValueType] = None
    value: Optional[Union[int, str]] = None
    error: Optional[RequestError] = None

    def set_oid(self, oid: OID):
        self.oid = oid

    def set_value(self, typed: TypedValue):
        self.value_type = typed.value_type
        self.value = typed.value

    def set_error(self, error: RequestError):
        self.error = error

    @property
    def answered(self) -> bool:
        return self.value_type is not None
