"""
apcupsd SNMP Bridge - Main Entry Point.

Starts an SNMP agent that serves the status of an apcupsd-managed UPS
under the APC PowerNet MIB.
"""

import argparse
import asyncio
import logging
import logging.handlers
import signal
from pathlib import Path

from .agent.dispatcher import RequestDispatcher
from .agent.mib_definitions import MIBDefinitions, tuple_to_oid
from .agent.snmp_agent import SNMPAgent
from .collectors.apcupsd_collector import ApcupsdCollector
from .core.config import Config, LoggingConfig, get_default_config_path
from .core.snapshot_cache import SnapshotCache


logger = logging.getLogger(__name__)


def setup_logging(config: LoggingConfig):
    """Configure the root logger from the logging section."""
    level = logging.DEBUG if config.debug else logging.getLevelName(config.level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    root = logging.getLogger()
    root.setLevel(level)
    for handler in list(root.handlers):
        root.removeHandler(handler)

    formatter = logging.Formatter(config.format)

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    root.addHandler(console)

    if config.file_path:
        Path(config.file_path).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            config.file_path,
            maxBytes=config.max_file_size_mb * 1024 * 1024,
            backupCount=config.backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)


class ApcupsdSNMPApplication:
    """
    Main application that wires the components together.

    - Fetches the UPS status from apcupsd, at most once per interval
    - Serves it via SNMP under the PowerNet MIB
    """

    def __init__(self, config: Config):
        self.config = config
        self.mib = MIBDefinitions(config.snmp.base_oid)
        self.collector = ApcupsdCollector(
            host=config.apcupsd.host,
            port=config.apcupsd.port,
            timeout=config.apcupsd.timeout,
        )
        self.cache = SnapshotCache(
            self.collector,
            self.mib,
            fetch_interval=config.apcupsd.fetch_interval,
            stale_factor=config.apcupsd.stale_factor,
        )
        self.dispatcher = RequestDispatcher(self.cache)
        self.agent = SNMPAgent(
            self.dispatcher,
            host=config.snmp.host,
            port=config.snmp.port,
            community=config.snmp.community,
        )

    async def start(self):
        """Start the application."""
        logger.info("Starting apcupsd SNMP bridge...")

        # Prime the cache so the first request doesn't wait on apcupsd
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self.cache.refresh)

        await self.agent.start()

        logger.info(f"apcupsd at {self.config.apcupsd.host}:{self.config.apcupsd.port}")
        logger.info(f"Registered at .{tuple_to_oid(self.mib.base_oid)}")

    async def stop(self):
        """Stop the application."""
        logger.info("Stopping apcupsd SNMP bridge...")
        await self.agent.stop()

    def print_status(self):
        """Fetch once and print every populated OID."""
        snapshot = self.cache.refresh()
        if snapshot.is_empty:
            print(f"No data from apcupsd at {self.config.apcupsd.host}:{self.config.apcupsd.port}")
            return

        print("=" * 60)
        print(f"apcupsd status as SNMP ({len(snapshot)} OIDs)")
        print("=" * 60)
        for oid, typed in self.dispatcher.walk(snapshot):
            name = self.mib.oid_info[oid].name
            print(f".{tuple_to_oid(oid)}  {name} = {typed.value_type.value}: {typed.value}")


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="SNMP agent serving apcupsd UPS status under the APC PowerNet MIB"
    )

    parser.add_argument(
        "-c", "--config",
        default=None,
        help="Path to configuration file (YAML)"
    )

    parser.add_argument(
        "-p", "--port",
        type=int,
        default=None,
        help="SNMP port to listen on (default: 1161)"
    )

    parser.add_argument(
        "--community",
        default=None,
        help="SNMP community string (default: public)"
    )

    parser.add_argument(
        "--apcupsd-host",
        default=None,
        help="apcupsd NIS host (default: 127.0.0.1)"
    )

    parser.add_argument(
        "--apcupsd-port",
        type=int,
        default=None,
        help="apcupsd NIS port (default: 3551)"
    )

    parser.add_argument(
        "--status",
        action="store_true",
        help="Fetch from apcupsd once, print the OIDs and exit"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging"
    )

    parser.add_argument(
        "--generate-config",
        action="store_true",
        help="Generate a sample configuration file"
    )

    return parser.parse_args()


async def serve(app: ApcupsdSNMPApplication):
    """Run the agent until SIGINT/SIGTERM."""
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    def signal_handler():
        logger.info("Received shutdown signal")
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler)

    await app.start()
    try:
        await stop_event.wait()
    finally:
        await app.stop()


def main():
    """Main entry point."""
    args = parse_args()

    # Generate sample config if requested
    if args.generate_config:
        config = Config()
        config_path = "config/config.yaml"
        Path("config").mkdir(exist_ok=True)
        config.to_yaml(config_path)
        print(f"Generated sample configuration: {config_path}")
        return

    # Load configuration
    config_path = args.config or get_default_config_path()
    config = Config.from_yaml(config_path)

    # Apply command line overrides
    if args.verbose:
        config.logging.debug = True
    if args.port:
        config.snmp.port = args.port
    if args.community:
        config.snmp.community = args.community
    if args.apcupsd_host:
        config.apcupsd.host = args.apcupsd_host
    if args.apcupsd_port:
        config.apcupsd.port = args.apcupsd_port

    setup_logging(config.logging)
    logger.info(f"Loaded configuration from {config_path}")

    app = ApcupsdSNMPApplication(config)

    if args.status:
        app.print_status()
        return

    try:
        asyncio.run(serve(app))
    except KeyboardInterrupt:
        print("\nShutdown complete")


if __name__ == "__main__":
    main()
