"""apcupsd SNMP bridge: serves apcupsd UPS status under the APC PowerNet MIB."""

__version__ = "1.0.0"
