#!/usr/bin/env python3
"""
meterpoll - Main Entry Point

Polls grid meters over Modbus RTU and publishes one reading per cycle.

Usage:
    meterpoll --config meters.yaml              # Meters from a YAML file
    meterpoll --device /dev/ttyUSB0 --type SDM  # Single meter from flags
    meterpoll --simulate --type SDM230          # Virtual meter, no hardware
    meterpoll --list-types                      # Supported device families
    meterpoll --config meters.yaml --dry-run    # Print config and exit
"""

import argparse
import asyncio
import sys

from meterpoll.common.config import (
    MeterConfig,
    PollerConfig,
    PollSettings,
    SerialSettings,
    load_config_file,
    validate_poller_config,
)
from meterpoll.common.exceptions import ConfigError
from meterpoll.common.logging_setup import configure_levels, get_service_logger
from meterpoll.meters import default_registry
from meterpoll.services.poller import PollerService, serial_transport
from meterpoll.simulator import VirtualMeter

logger = get_service_logger("main")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="meterpoll",
        description="Modbus RTU grid meter poller",
    )
    parser.add_argument(
        "--config", "-c",
        type=str,
        help="Path to YAML configuration file",
    )
    parser.add_argument(
        "--device", "-d",
        type=str,
        default="/dev/ttyUSB0",
        help="Serial device for a single meter (default: /dev/ttyUSB0)",
    )
    parser.add_argument(
        "--type", "-t",
        type=str,
        default="SDM",
        help="Device type of the single meter (default: SDM)",
    )
    parser.add_argument(
        "--baud", "-b",
        type=int,
        default=9600,
        help="Baud rate (default: 9600, 8N1)",
    )
    parser.add_argument(
        "--address", "-a",
        type=int,
        default=1,
        help="Modbus bus address (default: 1)",
    )
    parser.add_argument(
        "--interval", "-i",
        type=float,
        default=1.0,
        help="Poll interval in seconds (default: 1)",
    )
    parser.add_argument(
        "--simulate",
        action="store_true",
        help="Poll virtual meters instead of serial devices",
    )
    parser.add_argument(
        "--list-types",
        action="store_true",
        help="List supported device types and exit",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print configuration and exit without polling",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        help="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )
    return parser


def config_from_args(args: argparse.Namespace) -> PollerConfig:
    """Load the YAML file if given, otherwise build a single-meter config from flags"""
    if args.config:
        config = load_config_file(args.config)
    else:
        config = PollerConfig(
            meters=[MeterConfig(
                name="meter1",
                device_type=args.type.upper(),
                address=args.address,
                serial=SerialSettings(device=args.device, baudrate=args.baud),
            )],
            poll=PollSettings(interval_s=args.interval),
        )
        validate_poller_config(config)

    if args.log_level:
        config.log_level = args.log_level.upper()
    return config


def print_config_summary(config: PollerConfig, registry) -> None:
    """Print a summary of the configuration."""
    descriptions = registry.describe()
    print("\n" + "=" * 60)
    print("  METERPOLL")
    print("=" * 60)
    print(f"\n  Poll interval: {config.poll.interval_s}s")
    print(f"  Retries: {config.poll.max_retries} (backoff {config.poll.retry_delay_s}s)")
    print(f"  Fail fast: {config.poll.fail_fast}")
    print("\n  Meters:")
    for meter in config.meters:
        serial = meter.serial
        print(
            f"    - {meter.name}: {meter.device_type} "
            f"({descriptions.get(meter.device_type, 'unknown type')}) "
            f"{serial.device} {serial.baudrate} {serial.bytesize}{serial.parity}{serial.stopbits} "
            f"address {meter.address}"
        )
    print("=" * 60 + "\n")


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    registry = default_registry()

    if args.list_types:
        for type_id, description in registry.describe().items():
            print(f"{type_id:10s} {description}")
        return 0

    try:
        config = config_from_args(args)
        configure_levels(config.log_level, config.log_format == "json")

        # Unknown device types are fatal before any polling starts
        for meter in config.meters:
            registry.lookup(meter.device_type)
    except ConfigError as e:
        logger.error(str(e))
        return 1

    print_config_summary(config, registry)

    if args.dry_run:
        print("Dry run mode - exiting without polling")
        return 0

    if args.simulate:
        def transport_factory(meter, producer):
            return VirtualMeter(producer, name=meter.name)
    else:
        transport_factory = serial_transport

    async def run() -> dict[str, str]:
        service = PollerService(config, registry=registry, transport_factory=transport_factory)
        try:
            await service.run()
        finally:
            await service.stop()
        return service.failed

    logger.info("Starting poller...")
    try:
        failed = asyncio.run(run())
    except KeyboardInterrupt:
        print("\nStopped by user")
        return 0
    except ConfigError as e:
        logger.error(str(e))
        return 1

    # A terminated engine is a process failure only when configured to fail fast
    return 1 if failed and config.poll.fail_fast else 0


if __name__ == "__main__":
    sys.exit(main())
