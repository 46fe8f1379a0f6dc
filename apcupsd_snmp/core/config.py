"""
Configuration management for the apcupsd SNMP bridge.

Loads configuration from YAML files and environment variables.
Settings are read once at startup.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
import yaml


@dataclass
class ApcupsdConfig:
    """apcupsd NIS server and fetch policy."""

    host: str = "127.0.0.1"
    port: int = 3551
    fetch_interval: float = 20  # Max rate at which apcupsd is queried (seconds)
    timeout: float = 10
    stale_factor: float = 10  # Cached data is dropped after stale_factor * fetch_interval


@dataclass
class SNMPConfig:
    """SNMP agent configuration."""

    host: str = "0.0.0.0"
    port: int = 1161  # Non-privileged port by default
    community: str = "public"
    base_oid: str = "1.3.6.1.4.1.318.1.1.1"  # PowerNet upsObjects


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    debug: bool = False
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file_path: Optional[str] = None
    max_file_size_mb: int = 10
    backup_count: int = 5


@dataclass
class Config:
    """Main configuration container."""

    apcupsd: ApcupsdConfig = field(default_factory=ApcupsdConfig)
    snmp: SNMPConfig = field(default_factory=SNMPConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_yaml(cls, path: str) -> "Config":
        """Load configuration from YAML file."""
        config_path = Path(path)
        if not config_path.exists():
            config = cls()
            config._apply_env_overrides()
            return config

        with open(config_path, "r") as f:
            data = yaml.safe_load(f) or {}

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: dict) -> "Config":
        """Create config from dictionary."""
        config = cls()

        if "apcupsd" in data:
            config.apcupsd = ApcupsdConfig(**data["apcupsd"])

        if "snmp" in data:
            config.snmp = SNMPConfig(**data["snmp"])

        if "logging" in data:
            config.logging = LoggingConfig(**data["logging"])

        # Override with environment variables
        config._apply_env_overrides()

        return config

    def _apply_env_overrides(self):
        """Apply environment variable overrides."""
        # apcupsd settings
        if os.getenv("APCUPSD_HOST"):
            self.apcupsd.host = os.getenv("APCUPSD_HOST")
        if os.getenv("APCUPSD_PORT"):
            self.apcupsd.port = int(os.getenv("APCUPSD_PORT"))
        if os.getenv("APCUPSD_FETCH_INTERVAL"):
            self.apcupsd.fetch_interval = float(os.getenv("APCUPSD_FETCH_INTERVAL"))

        # SNMP settings
        if os.getenv("SNMP_PORT"):
            self.snmp.port = int(os.getenv("SNMP_PORT"))
        if os.getenv("SNMP_COMMUNITY"):
            self.snmp.community = os.getenv("SNMP_COMMUNITY")

        # Logging
        if os.getenv("LOG_LEVEL"):
            self.logging.level = os.getenv("LOG_LEVEL")
        if os.getenv("APCUPSD_SNMP_DEBUG"):
            self.logging.debug = os.getenv("APCUPSD_SNMP_DEBUG").lower() in ("1", "true", "yes")

    def to_yaml(self, path: str):
        """Save configuration to YAML file."""
        data = {
            "apcupsd": {
                "host": self.apcupsd.host,
                "port": self.apcupsd.port,
                "fetch_interval": self.apcupsd.fetch_interval,
                "timeout": self.apcupsd.timeout,
                "stale_factor": self.apcupsd.stale_factor,
            },
            "snmp": {
                "host": self.snmp.host,
                "port": self.snmp.port,
                "community": self.snmp.community,
                "base_oid": self.snmp.base_oid,
            },
            "logging": {
                "level": self.logging.level,
                "debug": self.logging.debug,
                "file_path": self.logging.file_path,
            },
        }

        with open(path, "w") as f:
            yaml.dump(data, f, default_flow_style=False)


def get_default_config_path() -> str:
    """Get the default configuration file path."""
    # Check common locations
    candidates = [
        Path("config/config.yaml"),
        Path("config.yaml"),
        Path.home() / ".apcupsd-snmp" / "config.yaml",
        Path("/etc/apcupsd-snmp/config.yaml"),
    ]

    for path in candidates:
        if path.exists():
            return str(path)

    # Return the first candidate as default
    return str(candidates[0])
