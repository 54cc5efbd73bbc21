"""
Custom Exception Classes for meterpoll

Hierarchical exception structure shared by the meter profiles,
the query engine and the poller service.
"""


class MeterPollError(Exception):
    """Base exception for all meterpoll errors"""

    def __init__(self, message: str, recoverable: bool = True):
        self.message = message
        self.recoverable = recoverable
        super().__init__(message)


class ConfigError(MeterPollError):
    """Configuration errors, fatal at startup"""

    def __init__(self, message: str, recoverable: bool = False):
        super().__init__(f"Config Error: {message}", recoverable)


class DuplicateProducerError(ConfigError):
    """A device type identifier was registered twice"""

    def __init__(self, type_id: str):
        self.type_id = type_id
        super().__init__(f"device type '{type_id}' is already registered")


class UnknownDeviceTypeError(ConfigError):
    """No producer is registered for the requested device type"""

    def __init__(self, type_id: str, known: list[str] | None = None):
        self.type_id = type_id
        self.known = known or []
        message = f"no such device family '{type_id}'"
        if self.known:
            message += f" (known: {', '.join(self.known)})"
        super().__init__(message)


class DeviceError(MeterPollError):
    """Device communication errors"""

    def __init__(
        self,
        message: str,
        meter: str | None = None,
        recoverable: bool = True,
    ):
        self.meter = meter
        super().__init__(f"Device Error: {message}", recoverable)


class CommunicationError(DeviceError):
    """Transport connect/read failure (timeout, I/O fault, exception response)"""

    def __init__(
        self,
        message: str,
        meter: str | None = None,
        port: str | None = None,
        address: int | None = None,
    ):
        self.port = port
        self.address = address
        super().__init__(message, meter, recoverable=True)


class CycleAbortedError(DeviceError):
    """Retries exhausted for one operation, the poll cycle is dropped"""

    def __init__(
        self,
        message: str,
        meter: str | None = None,
        measurement: str | None = None,
        attempts: int = 0,
    ):
        self.measurement = measurement
        self.attempts = attempts
        super().__init__(message, meter, recoverable=True)


class DecodeError(MeterPollError):
    """Register payload does not match the operation's encoding"""

    def __init__(self, message: str, expected: int | None = None, actual: int | None = None):
        self.expected = expected
        self.actual = actual
        super().__init__(f"Decode Error: {message}", recoverable=False)


class ProgrammingError(MeterPollError):
    """A producer definition is inconsistent"""

    def __init__(self, message: str):
        super().__init__(message, recoverable=False)


class UnmappedMeasurementError(ProgrammingError):
    """An operation was requested for a measurement missing from the opcode table"""

    def __init__(self, measurement: str, table: str | None = None):
        self.measurement = measurement
        self.table = table
        where = f" in {table}" if table else ""
        super().__init__(f"measurement {measurement} has no register{where}")


class OpcodeAliasError(ProgrammingError):
    """Two measurements share a register without a declared alias"""

    def __init__(self, address: int, first: str, second: str):
        self.address = address
        self.first = first
        self.second = second
        super().__init__(
            f"{first} and {second} both map to register 0x{address:04X} "
            f"but neither is declared as an alias of the other"
        )
