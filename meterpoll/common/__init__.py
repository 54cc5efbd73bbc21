"""
Common Utilities

Shared modules used across the poller:
- config.py - Configuration dataclasses
- exceptions.py - Custom exception classes
- logging_setup.py - Structured logging setup
"""

from .config import (
    SerialSettings,
    PollSettings,
    MeterConfig,
    PollerConfig,
    load_poller_config,
    load_config_file,
    validate_poller_config,
)
from .exceptions import (
    MeterPollError,
    ConfigError,
    DuplicateProducerError,
    UnknownDeviceTypeError,
    DeviceError,
    CommunicationError,
    CycleAbortedError,
    DecodeError,
    ProgrammingError,
    UnmappedMeasurementError,
    OpcodeAliasError,
)
from .logging_setup import (
    setup_logging,
    get_service_logger,
    configure_levels,
    log_operation_read,
    log_reading,
)

__all__ = [
    # Config
    "SerialSettings",
    "PollSettings",
    "MeterConfig",
    "PollerConfig",
    "load_poller_config",
    "load_config_file",
    "validate_poller_config",
    # Exceptions
    "MeterPollError",
    "ConfigError",
    "DuplicateProducerError",
    "UnknownDeviceTypeError",
    "DeviceError",
    "CommunicationError",
    "CycleAbortedError",
    "DecodeError",
    "ProgrammingError",
    "UnmappedMeasurementError",
    "OpcodeAliasError",
    # Logging
    "setup_logging",
    "get_service_logger",
    "configure_levels",
    "log_operation_read",
    "log_reading",
]
