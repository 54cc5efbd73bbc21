"""
Test the producer registry.
"""

import pytest

from meterpoll.common.exceptions import ConfigError, DuplicateProducerError, UnknownDeviceTypeError
from meterpoll.meters import Measurement, Opcodes, Producer, ProducerRegistry, default_registry
from meterpoll.meters.sdm import SDMProducer


class AcmeProducer(Producer):
    TYPE = "ACME"
    DESCRIPTION = "Acme test meter"

    def make_opcodes(self):
        return Opcodes({Measurement.VOLTAGE_L1: 0x0100})


class OtherSDMProducer(Producer):
    TYPE = "SDM"
    DESCRIPTION = "Clashing SDM profile"

    def make_opcodes(self):
        return Opcodes({Measurement.VOLTAGE_L1: 0x0000})


def test_distinct_types_are_independently_retrievable():
    registry = ProducerRegistry()
    assert registry.register(SDMProducer) == "SDM"
    assert registry.register(AcmeProducer) == "ACME"

    assert registry.lookup("SDM") is SDMProducer
    assert registry.lookup("ACME") is AcmeProducer
    assert isinstance(registry.create("ACME"), AcmeProducer)
    assert registry.types() == ["ACME", "SDM"]
    assert len(registry) == 2
    assert "SDM" in registry


def test_duplicate_type_is_a_config_error():
    registry = ProducerRegistry()
    registry.register(SDMProducer)

    with pytest.raises(DuplicateProducerError) as exc_info:
        registry.register(OtherSDMProducer)

    assert isinstance(exc_info.value, ConfigError)
    assert exc_info.value.type_id == "SDM"
    # First registration is untouched
    assert registry.lookup("SDM") is SDMProducer


def test_unknown_type_lists_known_types():
    registry = ProducerRegistry()
    registry.register(SDMProducer)

    with pytest.raises(UnknownDeviceTypeError) as exc_info:
        registry.lookup("JANITZA")

    assert isinstance(exc_info.value, ConfigError)
    assert exc_info.value.known == ["SDM"]


def test_sealed_registry_rejects_registration():
    registry = ProducerRegistry()
    registry.register(SDMProducer)
    registry.seal()

    assert registry.sealed
    with pytest.raises(ConfigError):
        registry.register(AcmeProducer)
    assert registry.lookup("SDM") is SDMProducer


def test_empty_type_is_rejected():
    class Nameless(AcmeProducer):
        TYPE = ""

    with pytest.raises(ConfigError):
        ProducerRegistry().register(Nameless)


def test_default_registry_holds_builtin_families():
    registry = default_registry()
    assert registry.sealed
    assert registry.describe() == {
        "SDM": "Eastron SDM630",
        "SDM220": "Eastron SDM220",
        "SDM230": "Eastron SDM230",
    }


def test_default_registries_are_independent():
    first = default_registry()
    second = default_registry()
    assert first is not second
    assert first.types() == second.types()
