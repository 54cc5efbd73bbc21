"""
Test the measurement vocabulary, opcode tables and device family producers.
"""

import pytest

from meterpoll.common.exceptions import OpcodeAliasError, UnmappedMeasurementError
from meterpoll.meters import FunctionCode, Measurement, Opcode, Opcodes, Producer, describe
from meterpoll.meters.measurement import PHASE_GROUPS
from meterpoll.meters.sdm import SDM220Producer, SDM230Producer, SDMProducer
from meterpoll.meters.transforms import rtu_ieee754_to_float64

M = Measurement

PRODUCERS = [SDMProducer, SDM220Producer, SDM230Producer]


def test_measurement_identifiers_are_unique():
    assert len(Measurement.__members__) == len(Measurement)
    assert len({m.value for m in Measurement}) == len(Measurement)


def test_every_measurement_is_described():
    for measurement in Measurement:
        description, unit = describe(measurement)
        assert description
        assert isinstance(unit, str)
    assert describe(M.VOLTAGE_L1) == ("L1 Voltage", "V")


def test_phase_groups_are_triples_of_distinct_measurements():
    for group, members in PHASE_GROUPS.items():
        assert len(set(members)) == 3, group


@pytest.mark.parametrize("producer_cls", PRODUCERS)
def test_produce_has_one_operation_per_opcode(producer_cls):
    producer = producer_cls()
    operations = producer.produce()

    targets = [op.measurement for op in operations]
    assert len(targets) == len(set(targets))
    assert set(targets) == set(producer.opcodes)

    for op in operations:
        assert op.address == producer.opcodes.address(op.measurement)
        assert op.function_code == FunctionCode.READ_INPUT_REGISTERS
        assert op.length == 2
        assert op.transform is rtu_ieee754_to_float64


@pytest.mark.parametrize("producer_cls", PRODUCERS)
def test_probe_reads_a_register_of_the_cycle(producer_cls):
    producer = producer_cls()
    probe = producer.probe()
    assert probe.address in {op.address for op in producer.produce()}
    assert probe.measurement == M.VOLTAGE_L1


@pytest.mark.parametrize("producer_cls", PRODUCERS)
def test_produce_order_is_stable(producer_cls):
    first = producer_cls().produce()
    second = producer_cls().produce()
    assert first == second
    assert [op.measurement for op in first] == list(producer_cls().opcodes)


def test_produce_returns_a_fresh_list():
    producer = SDMProducer()
    operations = producer.produce()
    operations.clear()
    assert len(producer.produce()) == len(producer.opcodes)


def test_sdm630_reference_addresses():
    producer = SDMProducer()
    assert producer.type_id == "SDM"
    assert producer.description == "Eastron SDM630"
    assert producer.opcode(M.VOLTAGE_L1) == 0x0000
    assert producer.opcode(M.CURRENT_L1) == 0x0006
    assert producer.opcode(M.IMPORT) == 0x0048
    assert producer.opcode(M.SUM) == 0x0156
    assert producer.opcode(M.COSPHI) == 0x003E
    assert producer.opcode(M.FREQUENCY) == 0x0046
    assert producer.opcode(M.CURRENT) == 0x00E0
    assert producer.opcodes[M.CURRENT].note == "neutral current"


def test_sdm630_flags_uncertain_sign_conventions():
    uncertain = set(SDMProducer().opcodes.uncertain())
    assert {M.REACTIVE_POWER_L1, M.REACTIVE_POWER, M.REACTIVE_IMPORT_L1, M.REACTIVE_EXPORT_L3} <= uncertain
    assert M.POWER not in uncertain

    ops = {op.measurement: op for op in SDMProducer().produce()}
    assert ops[M.REACTIVE_POWER_L2].sign_uncertain
    assert not ops[M.VOLTAGE_L1].sign_uncertain


def test_sdm230_sum_aliases_import():
    producer = SDM230Producer()
    assert producer.opcode(M.SUM) == producer.opcode(M.IMPORT) == 0x0048
    assert producer.opcodes.aliases() == {M.SUM: M.IMPORT}


def test_sdm220_sum_has_its_own_register():
    producer = SDM220Producer()
    assert producer.opcode(M.SUM) == 0x0156
    assert producer.opcodes.aliases() == {}


def test_unmapped_measurement_fails_loudly():
    producer = SDM220Producer()
    assert not producer.supports(M.VOLTAGE_L3)
    with pytest.raises(UnmappedMeasurementError):
        producer.opcode(M.VOLTAGE_L3)
    with pytest.raises(UnmappedMeasurementError):
        producer.opcodes[M.THD]


def test_undeclared_shared_register_is_rejected():
    with pytest.raises(OpcodeAliasError) as exc_info:
        Opcodes({M.IMPORT: 0x0048, M.SUM: 0x0048}, name="broken")
    assert exc_info.value.address == 0x0048


def test_alias_must_share_the_register():
    with pytest.raises(OpcodeAliasError):
        Opcodes({M.IMPORT: 0x0048, M.SUM: Opcode(0x0156, alias_of=M.IMPORT)})


def test_alias_target_must_be_mapped():
    with pytest.raises(UnmappedMeasurementError):
        Opcodes({M.SUM: Opcode(0x0048, alias_of=M.IMPORT)})


def test_alias_may_be_declared_before_its_target():
    opcodes = Opcodes({M.SUM: Opcode(0x0048, alias_of=M.IMPORT), M.IMPORT: 0x0048})
    assert opcodes.address(M.SUM) == opcodes.address(M.IMPORT)


def test_register_address_must_be_16_bit():
    with pytest.raises(ValueError):
        Opcode(0x10000)


def test_probe_outside_the_table_is_a_programming_error():
    class NoVoltage(Producer):
        TYPE = "NOVOLT"
        DESCRIPTION = "meter without voltage register"

        def make_opcodes(self):
            return Opcodes({M.IMPORT: 0x0048})

    with pytest.raises(UnmappedMeasurementError):
        NoVoltage().probe()
