"""
Producer Registry

Catalogue of producer factories keyed by device type identifier.
Populated once during startup, read-only afterwards.
"""

from typing import Callable

from meterpoll.common.exceptions import ConfigError, DuplicateProducerError, UnknownDeviceTypeError
from meterpoll.common.logging_setup import get_service_logger
from .producer import Producer

logger = get_service_logger("meters.registry")

ProducerFactory = Callable[[], Producer]


class ProducerRegistry:
    """
    Device type -> producer factory.

    Registration is append-only. Once seal() is called the registry is
    read-only, so engines can look up factories without locking.
    """

    def __init__(self):
        self._factories: dict[str, ProducerFactory] = {}
        self._descriptions: dict[str, str] = {}
        self._sealed = False

    @property
    def sealed(self) -> bool:
        return self._sealed

    def register(self, factory: ProducerFactory) -> str:
        """
        Add a factory under the type identifier its producer reports.

        Returns:
            The registered type identifier

        Raises:
            DuplicateProducerError: identifier already taken
            ConfigError: registry already sealed
        """
        if self._sealed:
            raise ConfigError("producer registry is sealed, register producers during startup")

        # Ask a throwaway instance for its identifier
        producer = factory()
        type_id = producer.type_id
        if not type_id:
            raise ConfigError(f"{factory!r} reports an empty device type")
        if type_id in self._factories:
            raise DuplicateProducerError(type_id)

        self._factories[type_id] = factory
        self._descriptions[type_id] = producer.description
        logger.debug(f"Registered producer {type_id} ({producer.description})")
        return type_id

    def seal(self) -> None:
        """End the population phase"""
        self._sealed = True

    def lookup(self, type_id: str) -> ProducerFactory:
        """Return the factory for a device type"""
        try:
            return self._factories[type_id]
        except KeyError:
            raise UnknownDeviceTypeError(type_id, self.types()) from None

    def create(self, type_id: str) -> Producer:
        """Instantiate the producer for a device type"""
        return self.lookup(type_id)()

    def types(self) -> list[str]:
        return sorted(self._factories)

    def describe(self) -> dict[str, str]:
        """Device type -> human description"""
        return {t: self._descriptions[t] for t in self.types()}

    def __contains__(self, type_id: str) -> bool:
        return type_id in self._factories

    def __len__(self) -> int:
        return len(self._factories)
