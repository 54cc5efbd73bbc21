"""
Configuration Dataclasses

Type-safe configuration structures for the poller.
Configuration is read from a YAML file or built from CLI flags.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigError


VALID_PARITIES = ("N", "E", "O")
VALID_BAUDRATES = (1200, 2400, 4800, 9600, 19200, 38400, 57600, 115200)


@dataclass
class SerialSettings:
    """Serial line settings (reference default 9600 8N1)"""
    device: str = "/dev/ttyUSB0"
    baudrate: int = 9600
    bytesize: int = 8
    parity: str = "N"   # N=None, E=Even, O=Odd
    stopbits: int = 1
    timeout_s: float = 1.0


@dataclass
class PollSettings:
    """Polling and retry policy"""
    interval_s: float = 1.0
    max_retries: int = 3
    retry_delay_s: float = 1.0
    fail_fast: bool = False
    queue_size: int = 16


@dataclass
class MeterConfig:
    """One physical meter on its own serial link"""
    name: str
    device_type: str = "SDM"
    address: int = 1    # Modbus bus (slave) address
    serial: SerialSettings = field(default_factory=SerialSettings)


@dataclass
class PollerConfig:
    """Complete poller configuration"""
    meters: list[MeterConfig] = field(default_factory=list)
    poll: PollSettings = field(default_factory=PollSettings)
    log_level: str = "INFO"
    log_format: str = "json"
    health_port: int | None = None

    def get_meter(self, name: str) -> MeterConfig | None:
        """Get a meter by name"""
        return next((m for m in self.meters if m.name == name), None)


def validate_poller_config(config: PollerConfig) -> None:
    """
    Validate a configuration, raising ConfigError with every problem found.
    """
    errors = []

    if not config.meters:
        errors.append("no meters configured")

    names = set()
    devices = {}
    for meter in config.meters:
        if meter.name in names:
            errors.append(f"duplicate meter name '{meter.name}'")
        names.add(meter.name)

        if not 1 <= meter.address <= 247:
            errors.append(f"{meter.name}: bus address {meter.address} outside 1..247")

        serial = meter.serial
        if not serial.device:
            errors.append(f"{meter.name}: serial device path is empty")
        elif serial.device in devices:
            # One engine owns one link exclusively
            errors.append(
                f"{meter.name}: serial device {serial.device} already used by {devices[serial.device]}"
            )
        else:
            devices[serial.device] = meter.name

        if serial.baudrate not in VALID_BAUDRATES:
            errors.append(f"{meter.name}: unsupported baud rate {serial.baudrate}")
        if serial.parity not in VALID_PARITIES:
            errors.append(f"{meter.name}: parity must be one of {', '.join(VALID_PARITIES)}")
        if serial.stopbits not in (1, 2):
            errors.append(f"{meter.name}: stopbits must be 1 or 2")
        if serial.bytesize not in (7, 8):
            errors.append(f"{meter.name}: bytesize must be 7 or 8")
        if serial.timeout_s <= 0:
            errors.append(f"{meter.name}: timeout must be positive")

    poll = config.poll
    if poll.interval_s < 0:
        errors.append("poll interval must not be negative")
    if poll.max_retries < 1:
        errors.append("max_retries must be at least 1")
    if poll.retry_delay_s < 0:
        errors.append("retry_delay_s must not be negative")
    if poll.queue_size < 0:
        errors.append("queue_size must not be negative")

    if config.log_format not in ("json", "text"):
        errors.append("log_format must be 'json' or 'text'")

    if errors:
        raise ConfigError("; ".join(errors))


def _load_serial(data: dict[str, Any]) -> SerialSettings:
    return SerialSettings(
        device=data.get("device", "/dev/ttyUSB0"),
        baudrate=int(data.get("baudrate", 9600)),
        bytesize=int(data.get("bytesize", 8)),
        parity=str(data.get("parity", "N")).upper(),
        stopbits=int(data.get("stopbits", 1)),
        timeout_s=float(data.get("timeout_s", 1.0)),
    )


# Helper function to load config from dict
def load_poller_config(data: dict) -> PollerConfig:
    """Load PollerConfig from dictionary (e.g., from a YAML file)"""
    if not isinstance(data, dict):
        raise ConfigError("configuration root must be a mapping")

    poll_data = data.get("poll", {}) or {}
    try:
        poll = PollSettings(
            interval_s=float(poll_data.get("interval_s", 1.0)),
            max_retries=int(poll_data.get("max_retries", 3)),
            retry_delay_s=float(poll_data.get("retry_delay_s", 1.0)),
            fail_fast=bool(poll_data.get("fail_fast", False)),
            queue_size=int(poll_data.get("queue_size", 16)),
        )

        meters = []
        for i, m in enumerate(data.get("meters", []) or []):
            # Serial settings can be nested under "serial" or at root level
            serial_data = dict(m)
            serial_data.update(m.get("serial", {}) or {})
            meters.append(MeterConfig(
                name=m.get("name") or f"meter{i + 1}",
                device_type=str(m.get("device_type", m.get("type", "SDM"))).upper(),
                address=int(m.get("address", 1)),
                serial=_load_serial(serial_data),
            ))
    except (TypeError, ValueError, AttributeError) as e:
        raise ConfigError(f"invalid value: {e}") from e

    health_port = data.get("health_port")

    config = PollerConfig(
        meters=meters,
        poll=poll,
        log_level=str(data.get("log_level", "INFO")).upper(),
        log_format=str(data.get("log_format", "json")).lower(),
        health_port=int(health_port) if health_port else None,
    )
    validate_poller_config(config)
    return config


def load_config_file(config_path: str | Path) -> PollerConfig:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to configuration file

    Returns:
        Validated PollerConfig
    """
    path = Path(config_path)
    if not path.exists():
        raise ConfigError(f"configuration file not found: {config_path}")

    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"cannot parse {config_path}: {e}") from e

    return load_poller_config(data)
