"""
Test the command line entry point.
"""

import pytest

from meterpoll.common.logging_setup import setup_logging
from meterpoll.main import build_parser, config_from_args, main


@pytest.fixture(autouse=True)
def restore_logging():
    # main() points the log handler at the captured stdout of the test
    yield
    setup_logging()


def test_list_types(capsys):
    assert main(["--list-types"]) == 0
    out = capsys.readouterr().out
    assert "SDM " in out
    assert "Eastron SDM630" in out
    assert "SDM230" in out


def test_flags_build_a_single_meter_config():
    args = build_parser().parse_args([
        "--device", "/dev/ttyAMA0", "--type", "sdm220", "--baud", "19200",
        "--address", "7", "--interval", "5", "--log-level", "debug",
    ])
    config = config_from_args(args)

    meter = config.meters[0]
    assert meter.device_type == "SDM220"
    assert meter.address == 7
    assert meter.serial.device == "/dev/ttyAMA0"
    assert meter.serial.baudrate == 19200
    assert config.poll.interval_s == 5.0
    assert config.log_level == "DEBUG"


def test_dry_run(capsys):
    assert main(["--dry-run"]) == 0
    out = capsys.readouterr().out
    assert "Eastron SDM630" in out
    assert "9600 8N1" in out


def test_unknown_type_exits_with_error():
    assert main(["--type", "JANITZA", "--dry-run"]) == 1


def test_invalid_address_exits_with_error():
    assert main(["--address", "300", "--dry-run"]) == 1


def test_config_file(tmp_path, capsys):
    path = tmp_path / "meters.yaml"
    path.write_text("meters:\n  - name: grid\n    type: SDM220\n    device: /dev/ttyS1\n")
    assert main(["--config", str(path), "--dry-run"]) == 0
    assert "grid: SDM220" in capsys.readouterr().out


def test_missing_config_file_exits_with_error(tmp_path):
    assert main(["--config", str(tmp_path / "absent.yaml"), "--dry-run"]) == 1
