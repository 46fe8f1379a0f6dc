"""
Value Converters.

Pure functions turning raw apcupsd status strings into the values
served over SNMP. No converter raises: unparseable input falls back
to a defined default (0, or an all-zero string).
"""

import re
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple, Union

from .models import ValueType


TICKS_PER_SEC = 100
TICKS_PER_MIN = 6000

_NUMBER_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d{1,3})?")
_HEX_RE = re.compile(r"(?:0[xX])?([0-9a-fA-F]+)")

Value = Union[int, str]


class Conversion(str, Enum):
    """Closed set of conversion kinds a mapping row can use."""

    STRING = "string"
    INTEGER = "integer"
    FIXED_POINT = "fixed_point"
    SECONDS_TO_TICKS = "seconds_to_ticks"
    MINUTES_TO_TICKS = "minutes_to_ticks"
    DATE = "date"
    LINE_FAIL_CAUSE = "line_fail_cause"
    ALARM = "alarm"
    SENSITIVITY = "sensitivity"
    TEST_SCHEDULE = "test_schedule"
    DIAGNOSTICS = "diagnostics"
    OUTPUT_STATUS = "output_status"
    BATTERY_STATUS = "battery_status"
    OUTPUT_STATE_FLAGS = "output_state_flags"


def _to_decimal(raw: str) -> Decimal:
    """Leading number of ``raw`` as a Decimal, 0 if there is none."""
    match = _NUMBER_RE.match(raw.strip())
    if not match:
        return Decimal(0)
    try:
        return Decimal(match.group(0))
    except InvalidOperation:
        return Decimal(0)


def _to_hex(raw: str) -> int:
    match = _HEX_RE.match(raw.strip())
    return int(match.group(1), 16) if match else 0


def to_string(raw: str) -> str:
    return str(raw)


def to_integer(raw: str) -> int:
    """Numeric passthrough, truncated toward zero."""
    return int(_to_decimal(raw))


def to_fixed_point(raw: str) -> int:
    """Decimal value x10, keeping one digit of precision in an integer."""
    return int(_to_decimal(raw) * 10)


def seconds_to_ticks(raw: str) -> int:
    return int(_to_decimal(raw) * TICKS_PER_SEC)


def minutes_to_ticks(raw: str) -> int:
    return int(_to_decimal(raw) * TICKS_PER_MIN)


def to_date(raw: str) -> str:
    """
    Convert "YY-MM-DD" or "YYYY-MM-DD" to "MM/DD/YYYY".

    Two-digit years are taken to be in the 2000s.
    """
    parts = [int(_to_decimal(p)) for p in raw.split("-")]
    parts += [0] * (3 - len(parts))
    year, month, day = parts[:3]
    if year < 100:
        year += 2000
    return f"{month:02d}/{day:02d}/{year:04d}"


# Enumerated tables, from apcupsd lib/apcstatus.c onto the PowerNet MIB.
# Entries mapped to None are known apcupsd strings with no MIB equivalent.

LINE_FAIL_CAUSES: Dict[str, Optional[int]] = {
    "No transfers since turnon": 1,          # noTransfer
    "High line voltage": 2,                  # highLineVoltage
    "Low line voltage": 4,                   # blackout
    "Line voltage notch or spike": 8,        # largeMomentarySpike
    "Automatic or explicit self test": 9,    # selfTest
    "Unacceptable line voltage changes": 10, # rateOfVoltageChange
    "Forced by software": None,
    "Input frequency out of range": None,
    "UNKNOWN EVENT": None,
}

ALARM_MODES: Dict[str, Optional[int]] = {
    "30": 1,           # timed
    "5": 1,            # timed
    "Always": 1,       # timed
    "Low Battery": 2,  # atLowBattery
    "No alarm": 3,     # never
}

SENSITIVITIES: Dict[str, Optional[int]] = {
    "Auto Adjust": 1,
    "Low": 2,
    "Medium": 3,
    "High": 4,
    "Unknown": None,
}

TEST_SCHEDULES: Dict[str, Optional[int]] = {
    "None": 1,  # unknown
    "336": 2,   # biweekly
    "168": 3,   # weekly
    "ON": 4,    # atTurnOn
    "OFF": 5,   # never
}

DIAGNOSTIC_RESULTS: Dict[str, Optional[int]] = {
    "OK": 1,  # ok
    "BT": 2,  # failed
    "NG": 3,  # invalidTest
    "IP": 4,  # testInProgress
    "NO": None,
    "WN": None,
    "??": None,
}


def lookup(table: Dict[str, Optional[int]], raw: str, default: int = 0) -> int:
    """Enumerated lookup; unknown or unmapped values give ``default``."""
    value = table.get(raw)
    return default if value is None else value


# upsBasicOutputStatus: first keyword found wins.
STATUS_UNKNOWN = 1
STATUS_KEYWORDS: List[Tuple[str, int]] = [
    ("ONLINE", 2),   # onLine
    ("ONBATT", 3),   # onBattery
    ("BOOST", 4),    # onSmartBoost
    ("TRIM", 12),    # onSmartTrim
]


def to_output_status(raw: str) -> int:
    for keyword, code in STATUS_KEYWORDS:
        if keyword in raw:
            return code
    return STATUS_UNKNOWN


# apcupsd STATFLAG bits (include/defines.h)
UPS_CALIBRATION = 0x00000001
UPS_TRIM = 0x00000002
UPS_BOOST = 0x00000004
UPS_ONLINE = 0x00000008
UPS_ONBATT = 0x00000010
UPS_OVERLOAD = 0x00000020
UPS_BATTLOW = 0x00000040
UPS_REPLACEBATT = 0x00000080
UPS_COMMLOST = 0x00000100
UPS_SHUTDOWN = 0x00000200
UPS_SLAVE = 0x00000400
UPS_SLAVEDOWN = 0x00000800
UPS_ONBATT_MSG = 0x00020000
UPS_FASTPOLL = 0x00040000
UPS_SHUT_LOAD = 0x00080000
UPS_SHUT_BTIME = 0x00100000
UPS_SHUT_LTIME = 0x00200000
UPS_SHUT_EMERG = 0x00400000
UPS_SHUT_REMOTE = 0x00800000
UPS_PLUGGED = 0x01000000
UPS_BATTPRESENT = 0x04000000

BATTERY_NORMAL = 2
BATTERY_LOW = 3


def to_battery_status(raw: str) -> int:
    """upsBasicBatteryStatus from STATFLAG: batteryLow(3) or batteryNormal(2)."""
    return BATTERY_LOW if _to_hex(raw) & UPS_BATTLOW else BATTERY_NORMAL


# upsBasicStateOutputState, one entry per flag position (1-based in the MIB).
# Each entry is (mask, inverted); None pins the position to '0'.
OUTPUT_STATE_FLAGS: List[Optional[Tuple[int, bool]]] = [
    None,                                    # 1 Abnormal Condition Present
    (UPS_ONBATT, False),                     # 2 On Battery
    (UPS_BATTLOW, False),                    # 3 Low Battery
    (UPS_ONLINE, False),                     # 4 On Line
    (UPS_REPLACEBATT, False),                # 5 Replace Battery
    (UPS_COMMLOST, True),                    # 6 Serial Communication Established
    (UPS_BOOST, False),                      # 7 AVR Boost Active
    (UPS_TRIM, False),                       # 8 AVR Trim Active
    (UPS_OVERLOAD, False),                   # 9 Overload
    (UPS_CALIBRATION, False),                # 10 Runtime Calibration
    None,                                    # 11 Batteries Discharged
    None,                                    # 12 Manual Bypass
    None,                                    # 13 Software Bypass
    None,                                    # 14 In Bypass due to Internal Fault
    None,                                    # 15 In Bypass due to Supply Failure
    None,                                    # 16 In Bypass due to Fan Failure
    None,                                    # 17 Sleeping on a Timer
    None,                                    # 18 Sleeping until Utility Power Returns
    None,                                    # 19 On
    None,                                    # 20 Rebooting
    (UPS_COMMLOST, False),                   # 21 Battery Communication Lost
    (UPS_SHUT_LOAD | UPS_SHUT_BTIME | UPS_SHUT_LTIME, False),  # 22 Graceful Shutdown Initiated
    None,                                    # 23 Smart Boost or Smart Trim Fault
    None,                                    # 24 Bad Output Voltage
    None,                                    # 25 Battery Charger Failure
    None,                                    # 26 High Battery Temperature
    None,                                    # 27 Warning Battery Temperature
    None,                                    # 28 Critical Battery Temperature
    None,                                    # 29 Self Test In Progress
    (UPS_BATTLOW | UPS_ONBATT, False),       # 30 Low Battery / On Battery
    (UPS_SHUT_REMOTE, False),                # 31 Graceful Shutdown Issued by Upstream Device
    None,                                    # 32 Graceful Shutdown Issued by Downstream Device
    (UPS_BATTPRESENT, True),                 # 33 No Batteries Attached
    None,                                    # 34 Synchronized Command is in Progress
    None,                                    # 35 Synchronized Sleeping Command is in Progress
    None,                                    # 36 Synchronized Rebooting Command is in Progress
    None,                                    # 37 Inverter DC Imbalance
    None,                                    # 38 Transfer Relay Failure
    None,                                    # 39 Shutdown or Unable to Transfer
    None,                                    # 40 Low Battery Shutdown
    None,                                    # 41 Electronic Unit Fan Failure
    None,                                    # 42 Main Relay Failure
    None,                                    # 43 Bypass Relay Failure
    None,                                    # 44 Temporary Bypass
    None,                                    # 45 High Internal Temperature
    None,                                    # 46 Battery Temperature Sensor Fault
    None,                                    # 47 Input Out of Range for Bypass
    None,                                    # 48 DC Bus Overvoltage
    None,                                    # 49 PFC Failure
    None,                                    # 50 Critical Hardware Fault
    None,                                    # 51 Green Mode/ECO Mode
    None,                                    # 52 Hot Standby
    (UPS_SHUT_EMERG, False),                 # 53 Emergency Power Off (EPO) Activated
    None,                                    # 54 Load Alarm Violation
    None,                                    # 55 Bypass Phase Fault
    None,                                    # 56 UPS Internal Communication Failure
    None,                                    # 57 Efficiency Booster Mode
    None,                                    # 58 Off
    None,                                    # 59 Standby
    None,                                    # 60 Minor or Environment Alarm
    None,                                    # 61 <Not Used>
    None,                                    # 62 <Not Used>
    None,                                    # 63 <Not Used>
    None,                                    # 64 <Not Used>
]


def to_output_state_flags(raw: str) -> str:
    """Expand STATFLAG into the 64-character upsBasicStateOutputState string."""
    flags = _to_hex(raw)
    bits = []
    for entry in OUTPUT_STATE_FLAGS:
        if entry is None:
            bits.append("0")
            continue
        mask, inverted = entry
        is_set = bool(flags & mask)
        bits.append("1" if is_set != inverted else "0")
    return "".join(bits)


CONVERTERS: Dict[Conversion, Callable[[str], Value]] = {
    Conversion.STRING: to_string,
    Conversion.INTEGER: to_integer,
    Conversion.FIXED_POINT: to_fixed_point,
    Conversion.SECONDS_TO_TICKS: seconds_to_ticks,
    Conversion.MINUTES_TO_TICKS: minutes_to_ticks,
    Conversion.DATE: to_date,
    Conversion.LINE_FAIL_CAUSE: lambda raw: lookup(LINE_FAIL_CAUSES, raw),
    Conversion.ALARM: lambda raw: lookup(ALARM_MODES, raw),
    Conversion.SENSITIVITY: lambda raw: lookup(SENSITIVITIES, raw),
    Conversion.TEST_SCHEDULE: lambda raw: lookup(TEST_SCHEDULES, raw),
    Conversion.DIAGNOSTICS: lambda raw: lookup(DIAGNOSTIC_RESULTS, raw),
    Conversion.OUTPUT_STATUS: to_output_status,
    Conversion.BATTERY_STATUS: to_battery_status,
    Conversion.OUTPUT_STATE_FLAGS: to_output_state_flags,
}


def convert(conversion: Conversion, raw: str) -> Value:
    """Apply the converter bound to ``conversion``."""
    return CONVERTERS[conversion](raw)


# Encodable range per SNMP syntax
UNSIGNED32_MAX = 2 ** 32 - 1
INTEGER32_MIN = -(2 ** 31)
INTEGER32_MAX = 2 ** 31 - 1

VALUE_RANGES: Dict[ValueType, Tuple[int, int]] = {
    ValueType.INTEGER: (INTEGER32_MIN, INTEGER32_MAX),
    ValueType.GAUGE: (0, UNSIGNED32_MAX),
    ValueType.TIME_TICKS: (0, UNSIGNED32_MAX),
}


def clamp(value_type: ValueType, value: Value) -> Value:
    """
    Pin a numeric value into the range its SNMP syntax can carry.

    A negative ITEMP served as a Gauge becomes 0; a runaway TIMELEFT
    becomes the largest TimeTicks. Strings pass through unchanged.
    """
    bounds = VALUE_RANGES.get(value_type)
    if bounds is None or not isinstance(value, int):
        return value
    low, high = bounds
    return max(low, min(high, value))
