"""SNMP Agent module for serving apcupsd data via SNMP."""

from .dispatcher import RequestDispatcher
from .mib_definitions import MIBDefinitions
from .snmp_agent import SNMPAgent

__all__ = ["RequestDispatcher", "MIBDefinitions", "SNMPAgent"]
