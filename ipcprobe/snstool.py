"""Live readout of exposure and gain registers of supported image sensors."""

from __future__ import annotations

import itertools
import time
from dataclasses import dataclass
from typing import Iterable, Iterator

from ipcprobe.sensors import ReadRegister, SensorContext

DEFAULT_INTERVAL = 2
_MASK64 = 0xFFFFFFFFFFFFFFFF


@dataclass(frozen=True)
class Register:
    """A multi-byte sensor register spread over consecutive addresses."""

    name: str
    base_addr: int
    length: int


_SC2315E_REGISTERS = (
    Register("EXP", 0x3E00, 3),
    Register("AGAIN", 0x3E08, 2),
    Register("DGAIN", 0x3E06, 2),
    Register("VMAX", 0x320E, 2),
    Register("R3301", 0x3301, 1),
    Register("R3314", 0x3314, 1),
    Register("R3632", 0x3632, 1),
    Register("R3812", 0x3812, 1),
    Register("R5781", 0x5781, 1),
    Register("R5785", 0x5785, 1),
)

_IMX385_REGISTERS = (
    Register("SHS1", 0x3020, 3),
    Register("GAIN", 0x3014, 2),
    Register("HCG", 0x3009, 1),
    Register("SHS2", 0x3018, 3),
    Register("VMAX", 0x3018, 3),
    Register("RHS1", 0x302C, 3),
    Register("YOUT", 0x3357, 2),
)

# model -> (registers, big endian byte order)
_SENSOR_REGISTERS: dict[str, tuple[tuple[Register, ...], bool]] = {
    "SC2315E": (_SC2315E_REGISTERS, True),
    "IMX385": (_IMX385_REGISTERS, False),
}


def registers_for(model: str) -> tuple[tuple[Register, ...], bool] | None:
    """Return the registers to watch for ``model`` and whether they are big endian.

    Returns None when the model is not supported.
    """
    return _SENSOR_REGISTERS.get(model)


def read_register_value(
    read: ReadRegister, ctx: SensorContext, reg: Register, big_endian: bool
) -> int:
    """Assemble the value of ``reg`` from its bytes, most significant first."""
    value = 0
    for i in range(reg.length):
        offset = i if big_endian else reg.length - i - 1
        byte = read(ctx.addr, reg.base_addr + offset, ctx.reg_width, ctx.data_width)
        value = ((value << 8) | (byte & _MASK64)) & _MASK64
    return value


def format_readout(values: Iterable[tuple[str, int]]) -> str:
    """Format ``(name, value)`` pairs as one tab-separated line of hex values."""
    return "".join(f"{name}\t{value:x}\t" for name, value in values)


def monitor(
    ctx: SensorContext,
    read: ReadRegister,
    interval: float = DEFAULT_INTERVAL,
    iterations: int | None = None,
) -> Iterator[str]:
    """Yield a readout line of the sensor's registers every ``interval`` seconds.

    Runs forever unless ``iterations`` is given.  Raises ValueError for a
    sensor whose registers are not known.
    """
    table = registers_for(ctx.sensor_id)
    if table is None:
        raise ValueError(f"Sensor {ctx.sensor_id} is not supported")
    registers, big_endian = table
    counter = itertools.count() if iterations is None else range(iterations)
    for index in counter:
        if index:
            time.sleep(interval)
        yield format_readout(
            (reg.name, read_register_value(read, ctx, reg, big_endian))
            for reg in registers
        )