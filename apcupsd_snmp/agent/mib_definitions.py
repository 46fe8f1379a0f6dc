"""
MIB Definitions for apcupsd status fields.

Maps apcupsd NIS status fields onto the APC PowerNet MIB so that
UPSes without a network management card can be polled like ones
that have one.
"""

from collections import OrderedDict
from dataclasses import dataclass
from typing import Dict, List, Optional

from ..core.converters import Conversion
from ..core.models import OID, ValueType


@dataclass(frozen=True)
class FieldMapping:
    """Binding of one apcupsd field to one PowerNet OID."""
    field_name: str
    oid_suffix: str
    value_type: ValueType
    conversion: Conversion
    name: str = ""


@dataclass(frozen=True)
class OIDInfo:
    """Syntax and conversion for a mapped OID."""
    value_type: ValueType
    conversion: Conversion
    name: str = ""


STR = ValueType.OCTET_STRING
INT = ValueType.INTEGER
GAUGE = ValueType.GAUGE
TICKS = ValueType.TIME_TICKS


class MIBDefinitions:
    """
    PowerNet MIB subset served from apcupsd data.

    Base OID: .1.3.6.1.4.1.318.1.1.1 (upsObjects)

    Structure:
    .1.3.6.1.4.1.318.1.1.1
      ├── .1  upsIdent          model, name, firmware, serial
      ├── .2  upsBattery        status, charge, temperature, runtime, voltages
      ├── .3  upsInput          line voltage, frequency, last transfer cause
      ├── .4  upsOutput         status, voltage, load
      ├── .5  upsConfig         transfer points, alarm, delays, sensitivity
      ├── .7  upsTest           self test schedule and result
      └── .11 upsBasicState     64-flag output state string

    Several OIDs can share one apcupsd field, e.g. BCHARGE feeds both
    upsAdvBatteryCapacity and upsHighPrecBatteryCapacity (x10).
    """

    BASE_OID = "1.3.6.1.4.1.318.1.1.1"

    MAPPINGS: List[FieldMapping] = [
        FieldMapping("MODEL", "1.1.1.0", STR, Conversion.STRING, "upsBasicIdentModel"),
        FieldMapping("UPSNAME", "1.1.2.0", STR, Conversion.STRING, "upsBasicIdentName"),
        FieldMapping("FIRMWARE", "1.2.1.0", STR, Conversion.STRING, "upsAdvIdentFirmwareRevision"),
        FieldMapping("SERIALNO", "1.2.3.0", STR, Conversion.STRING, "upsAdvIdentSerialNumber"),

        FieldMapping("STATFLAG", "2.1.1.0", INT, Conversion.BATTERY_STATUS, "upsBasicBatteryStatus"),
        FieldMapping("TONBATT", "2.1.2.0", TICKS, Conversion.SECONDS_TO_TICKS, "upsBasicBatteryTimeOnBattery"),
        FieldMapping("BATTDATE", "2.1.3.0", STR, Conversion.DATE, "upsBasicBatteryLastReplaceDate"),
        FieldMapping("BCHARGE", "2.2.1.0", GAUGE, Conversion.INTEGER, "upsAdvBatteryCapacity"),
        FieldMapping("ITEMP", "2.2.2.0", GAUGE, Conversion.INTEGER, "upsAdvBatteryTemperature"),
        FieldMapping("TIMELEFT", "2.2.3.0", TICKS, Conversion.MINUTES_TO_TICKS, "upsAdvBatteryRunTimeRemaining"),
        FieldMapping("NOMBATTV", "2.2.7.0", INT, Conversion.INTEGER, "upsAdvBatteryNominalVoltage"),
        FieldMapping("BATTV", "2.2.8.0", INT, Conversion.INTEGER, "upsAdvBatteryActualVoltage"),
        FieldMapping("BCHARGE", "2.3.1.0", GAUGE, Conversion.FIXED_POINT, "upsHighPrecBatteryCapacity"),
        FieldMapping("ITEMP", "2.3.2.0", GAUGE, Conversion.FIXED_POINT, "upsHighPrecBatteryTemperature"),
        FieldMapping("NOMBATTV", "2.3.3.0", INT, Conversion.FIXED_POINT, "upsHighPrecBatteryNominalVoltage"),
        FieldMapping("BATTV", "2.3.4.0", INT, Conversion.FIXED_POINT, "upsHighPrecBatteryActualVoltage"),
        FieldMapping("ITEMP", "2.3.13.0", GAUGE, Conversion.FIXED_POINT, "upsHighPrecExtdBatteryTemperature"),

        FieldMapping("LINEV", "3.2.1.0", GAUGE, Conversion.INTEGER, "upsAdvInputLineVoltage"),
        FieldMapping("LINEFREQ", "3.2.4.0", GAUGE, Conversion.INTEGER, "upsAdvInputFrequency"),
        FieldMapping("LASTXFER", "3.2.5.0", INT, Conversion.LINE_FAIL_CAUSE, "upsAdvInputLineFailCause"),
        FieldMapping("LINEV", "3.3.1.0", GAUGE, Conversion.FIXED_POINT, "upsHighPrecInputLineVoltage"),
        FieldMapping("LINEFREQ", "3.3.4.0", GAUGE, Conversion.FIXED_POINT, "upsHighPrecInputFrequency"),

        FieldMapping("STATUS", "4.1.1.0", INT, Conversion.OUTPUT_STATUS, "upsBasicOutputStatus"),
        FieldMapping("OUTPUTV", "4.2.1.0", GAUGE, Conversion.INTEGER, "upsAdvOutputVoltage"),
        FieldMapping("LOADPCT", "4.2.3.0", GAUGE, Conversion.INTEGER, "upsAdvOutputLoad"),
        FieldMapping("OUTPUTV", "4.3.1.0", GAUGE, Conversion.FIXED_POINT, "upsHighPrecOutputVoltage"),
        FieldMapping("LOADPCT", "4.3.3.0", GAUGE, Conversion.FIXED_POINT, "upsHighPrecOutputLoad"),

        FieldMapping("NOMOUTV", "5.2.1.0", INT, Conversion.INTEGER, "upsAdvConfigRatedOutputVoltage"),
        FieldMapping("HITRANS", "5.2.2.0", INT, Conversion.INTEGER, "upsAdvConfigHighTransferVolt"),
        FieldMapping("LOTRANS", "5.2.3.0", INT, Conversion.INTEGER, "upsAdvConfigLowTransferVolt"),
        FieldMapping("ALARMDEL", "5.2.4.0", INT, Conversion.ALARM, "upsAdvConfigAlarm"),
        FieldMapping("RETPCT", "5.2.6.0", INT, Conversion.INTEGER, "upsAdvConfigMinReturnCapacity"),
        FieldMapping("SENSE", "5.2.7.0", INT, Conversion.SENSITIVITY, "upsAdvConfigSensitivity"),
        FieldMapping("DWAKE", "5.2.9.0", TICKS, Conversion.SECONDS_TO_TICKS, "upsAdvConfigReturnDelay"),
        FieldMapping("DSHUTD", "5.2.10.0", TICKS, Conversion.SECONDS_TO_TICKS, "upsAdvConfigShutoffDelay"),

        FieldMapping("STESTI", "7.2.1.0", INT, Conversion.TEST_SCHEDULE, "upsAdvTestDiagnosticSchedule"),
        FieldMapping("SELFTEST", "7.2.3.0", INT, Conversion.DIAGNOSTICS, "upsAdvTestDiagnosticsResults"),

        FieldMapping("STATFLAG", "11.1.1.0", STR, Conversion.OUTPUT_STATE_FLAGS, "upsBasicStateOutputState"),
    ]

    def __init__(self, base_oid: str = BASE_OID, mappings: Optional[List[FieldMapping]] = None):
        self.base_oid = oid_to_tuple(base_oid)
        self.mappings = list(mappings if mappings is not None else self.MAPPINGS)
        self.name_index: Dict[str, List[OID]] = OrderedDict()
        self.oid_info: Dict[OID, OIDInfo] = {}

        for row in self.mappings:
            oid = self.base_oid + oid_to_tuple(row.oid_suffix)
            if oid in self.oid_info:
                raise ValueError(f"Duplicate OID in mapping table: {tuple_to_oid(oid)}")
            self.name_index.setdefault(row.field_name, []).append(oid)
            self.oid_info[oid] = OIDInfo(row.value_type, row.conversion, row.name)

    def oids_for(self, field_name: str) -> List[OID]:
        """OIDs fed by an apcupsd field; empty for fields we don't map."""
        return self.name_index.get(field_name, [])

    def oid(self, suffix: str) -> OID:
        """Full OID for a suffix under the base OID."""
        return self.base_oid + oid_to_tuple(suffix)


def oid_to_tuple(oid_string: str) -> OID:
    """Convert OID string to tuple of integers."""
    return tuple(int(x) for x in oid_string.split(".") if x)


def tuple_to_oid(oid_tuple: OID) -> str:
    """Convert OID tuple to string."""
    return ".".join(str(x) for x in oid_tuple)
