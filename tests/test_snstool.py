from unittest import mock

import pytest

from ipcprobe.sensors import SensorContext
from ipcprobe.snstool import (
    Register,
    format_readout,
    monitor,
    read_register_value,
    registers_for,
)


def make_reader(values, calls=None):
    def read(i2c_addr, reg_addr, reg_width, data_width):
        if calls is not None:
            calls.append((i2c_addr, reg_addr, reg_width, data_width))
        return values.get(reg_addr, 0)

    return read


def test_registers_for_sc2315e_is_big_endian():
    registers, big_endian = registers_for("SC2315E")
    assert big_endian is True
    assert registers[0] == Register("EXP", 0x3E00, 3)
    assert len(registers) == 10


def test_registers_for_imx385_is_little_endian():
    registers, big_endian = registers_for("IMX385")
    assert big_endian is False
    assert [reg.name for reg in registers] == [
        "SHS1", "GAIN", "HCG", "SHS2", "VMAX", "RHS1", "YOUT",
    ]


def test_registers_for_unknown_model():
    assert registers_for("IMX291") is None


def test_read_big_endian_value():
    ctx = SensorContext(addr=0x30)
    read = make_reader({0x3E00: 0x12, 0x3E01: 0x34, 0x3E02: 0x56})
    assert read_register_value(read, ctx, Register("EXP", 0x3E00, 3), True) == 0x123456


def test_read_little_endian_value():
    ctx = SensorContext(addr=0x34)
    read = make_reader({0x3020: 0x56, 0x3021: 0x34, 0x3022: 0x12})
    assert read_register_value(read, ctx, Register("SHS1", 0x3020, 3), False) == 0x123456


def test_read_passes_context_widths():
    calls = []
    ctx = SensorContext(addr=0x1A, reg_width=2, data_width=1)
    read_register_value(make_reader({}, calls), ctx, Register("GAIN", 0x3014, 2), False)
    assert calls == [(0x1A, 0x3015, 2, 1), (0x1A, 0x3014, 2, 1)]


def test_read_failure_sets_all_bits():
    ctx = SensorContext(addr=0x30)

    def read(*_):
        return -1

    value = read_register_value(read, ctx, Register("HCG", 0x3009, 1), True)
    assert value == 0xFFFFFFFFFFFFFFFF


def test_format_readout():
    assert format_readout([("EXP", 0x1A), ("GAIN", 255)]) == "EXP\t1a\tGAIN\tff\t"


def test_format_readout_empty():
    assert format_readout([]) == ""


def test_monitor_unsupported_sensor():
    ctx = SensorContext(sensor_id="IMX291")
    with pytest.raises(ValueError, match="IMX291"):
        next(monitor(ctx, make_reader({}), interval=0, iterations=1))


def test_monitor_yields_requested_lines():
    ctx = SensorContext(sensor_id="IMX385", addr=0x34)
    read = make_reader({0x3357: 0x02, 0x3358: 0x01})
    lines = list(monitor(ctx, read, interval=0, iterations=2))
    assert len(lines) == 2
    assert lines[0] == lines[1]
    assert lines[0].startswith("SHS1\t0\t")
    assert lines[0].endswith("YOUT\t102\t")


def test_monitor_sleeps_between_readouts():
    ctx = SensorContext(sensor_id="SC2315E", addr=0x30)
    with mock.patch("time.sleep") as sleep:
        lines = list(monitor(ctx, make_reader({}), interval=5, iterations=3))
    assert len(lines) == 3
    assert sleep.call_args_list == [mock.call(5), mock.call(5)]