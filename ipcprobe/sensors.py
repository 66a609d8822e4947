"""Identification of camera image sensors by probing their registers."""

from __future__ import annotations

import itertools
import sys
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterable, Mapping

from ipcprobe.tools import lower_truncated

# read(i2c_addr, reg_addr, reg_width, data_width) -> value, or -1 on failure
ReadRegister = Callable[[int, int, int, int], int]

_IDENTITY_SIZE = 16
_SONY_BASE = 0x3000


class Vendor(Enum):
    """Sensor manufacturers, valued by their display names."""

    SOI = "Silicon Optronics"
    ONSEMI = "ON Semiconductor"
    OMNIVISION = "OmniVision"
    SONY = "Sony"
    SMARTSENS = "SmartSens"
    GALAXYCORE = "GalaxyCore"
    SUPERPIX = "SuperPix"


@dataclass
class SensorContext:
    """What is known about a detected sensor and how to talk to it."""

    sensor_id: str = ""
    control: str = ""
    vendor: Vendor | None = None
    addr: int = 0
    reg_width: int = 2
    data_width: int = 1
    params: dict[str, Any] | None = None


def _hex(value: int) -> str:
    return format(value & 0xFFFFFFFF, "x")


def _unexpected(family: str, value: int) -> None:
    print(f"Error: unexpected value for {family} == 0x{_hex(value)}", file=sys.stderr)


_IMX291_FPS = (
    {0x044C: 120, 0x0528: 100},
    {0x0898: 60, 0x0A50: 50},
    {0x1130: 30, 0x14A0: 25},
)

_IMX291_DATABUS = {
    0x0: "Parallel CMOS SDR",
    0xD: "LVDS 2 ch",
    0xE: "LVDS 4 ch",
    0xF: "LVDS 8 ch",
}


def sony_imx291_fps(frsel: int, hmax: int) -> int:
    """Frame rate implied by the FRSEL and HMAX registers, or 0 if unknown."""
    if not 0 <= frsel < len(_IMX291_FPS):
        return 0
    for level in range(frsel, -1, -1):
        fps = _IMX291_FPS[level].get(hmax)
        if fps is not None:
            return fps
    return 0


def sony_imx291_databus(odbit: int) -> str | None:
    """Name of the output data bus for an ODBIT value."""
    return _IMX291_DATABUS.get(odbit)


def sony_imx291_params(read: Callable[[int], int]) -> dict[str, Any]:
    """Read bitness, data bus and frame rate; ``read`` takes an offset from 0x3000."""
    params: dict[str, Any] = {"bitness": 12 if read(0x5) & 1 else 10}
    databus = sony_imx291_databus((read(0x46) & 0xF0) >> 4)
    if databus is not None:
        params["databus"] = databus
    frsel = read(0x9) & 3
    hmax = read(0x1D) << 8 | read(0x1C)
    params["fps"] = sony_imx291_fps(frsel, hmax)
    return params


def detect_sony(ctx: SensorContext, read: ReadRegister) -> bool:
    """Probe for a Sony sensor at ``ctx.addr``."""

    def reg(offset: int) -> int:
        return read(ctx.addr, offset + _SONY_BASE, 2, 1)

    def found(name: str) -> bool:
        ctx.sensor_id = name
        return True

    if reg(0x57) == 0x06:
        return found("IMX347")

    ret16a = reg(0x16A)
    if ret16a == -1:
        return False
    if ret16a > 0 and (ret16a & 0xFC) == 0x7C:
        return found("IMX335")

    if reg(0x13) == 0x40:
        return found("IMX323" if reg(0x4F) == 0x07 else "IMX322")

    if reg(0xB00) in (0x2E, 0x28):
        return found("IMX415")
    if reg(0x3B4) in (0x96, 0xFE):
        return found("IMX178")
    if reg(0x120) == 0x80 and reg(0x129) == 0x0D:
        return found("IMX274")
    if reg(0x03A) == 0xD1:
        return found("IMX385")
    if reg(0x015) == 0x3C:
        return found("IMX185")
    if reg(0x41C) == 0x47:
        if reg(0x02E) == 0x18:
            ctx.sensor_id = "IMX334"
        return True
    if reg(0x5B8) == 0xFA:
        return found("IMX294")
    if reg(0x1C) == 0x8B:
        return found("IMX226")
    if reg(0xCE) == 0x16:
        return found("IMX122")

    if reg(0x1E) == 0xB2 and reg(0x1DC) == 0x1:
        variant = reg(0x1D8)
        if variant == 0x1:
            ctx.sensor_id = "IMX291"
        elif variant == 0x0:
            ctx.sensor_id = "IMX290"
        ctx.params = sony_imx291_params(reg)
        return True

    if reg(0x45) == 0x32:
        return found("IMX226")
    if reg(0x4) == 0x10 and reg(0x9E) == 0x71:
        return found("IMX123")

    if reg(0x1E0) > 0 and reg(0x1E) == 0x1:
        val = ((0xC0 & reg(0x1E0)) >> 6) & 0xFF
        if val == 3:
            return found("IMX224")
        if val == 0:
            return found("IMX225")

    ret1dc = reg(0x1DC)
    if ret1dc != 0xFF:
        kind = ret1dc & 6
        if kind == 4:
            return found("IMX307")
        if kind == 6:
            return found("IMX327")
    return False


def detect_soi(ctx: SensorContext, read: ReadRegister) -> bool:
    """Probe for a Silicon Optronics (JX) sensor at ``ctx.addr``."""
    pid = read(ctx.addr, 0xA, 1, 1)
    if pid == -1:
        return False
    ver = read(ctx.addr, 0xB, 1, 1)
    if pid == 0xF:
        ctx.sensor_id = f"JXF{_hex(ver)}"
        return True
    if pid in (0xA0, 0xA):
        ctx.sensor_id = f"JXH{_hex(ver)}"
        return True
    if pid == 0x5:
        ctx.sensor_id = f"JXK{_hex(ver):0>2}"
        return True
    if pid in (0, 0xFF):
        return False
    _unexpected("SOI", (pid << 8) + ver)
    return False


_ONSEMI_IDS = {0x2402: 0x0130, 0x256: 0x0237, 0x2602: 0x0331, 0x2604: 0x0330}


def detect_onsemi(ctx: SensorContext, read: ReadRegister) -> bool:
    """Probe for an ON Semiconductor (Aptina) sensor at ``ctx.addr``."""
    pid = read(ctx.addr, 0x3000, 2, 2)
    sid = _ONSEMI_IDS.get(pid)
    if sid is None:
        if pid & 0xFFFFFFFF not in (0, 0xFFFFFFFF, 0xFFFF):
            _unexpected("Aptina", pid)
        return False
    ctx.sensor_id = f"AR{sid:04x}"
    return True


_SMARTSENS_NAMES = {
    0x2032: "SC2035",
    0x2238: "SC2315E",
    0x2311: "SC2315",
    0x5300: "SC335E",
    0xCB07: "SC2232H",
    0xCB10: "SC2239",
    0xCB1C: "SC307H",
    0xCC05: "SC3235",
    0xCC1A: "SC3335",
    0x4210: "SC4210",
    0xCD01: "SC4335P",
    0xCB3E: "SC223A",
    0xCD2E: "SC401AI",
    0xCE1A: "SC5332",
    0xCE1F: "SC501AI",
}

_SMARTSENS_MODELS = {
    0x1235: 0x1235,
    0x2135: 0x2135,
    0x2145: 0x2145,
    0x2045: 0x2045,
    0x0010: 0x1035,
    0x2235: 0x2235,
    0x2245: 0x1145,
    0x1045: 0x1045,
    0x1145: 0x1145,
    0x2310: 0x2310,
    0x2330: 0x2330,
    0x3035: 0x3035,
    0x3235: 0x4236,
    0x5235: 0x5235,
    0xCB14: 0x2335,
    0xCB17: 0x2232,
}


def detect_smartsens(ctx: SensorContext, read: ReadRegister) -> bool:
    """Probe for a SmartSens sensor at ``ctx.addr``."""
    high = read(ctx.addr, 0x3107, 2, 1)
    if high == -1:
        return False
    lower = read(ctx.addr, 0x3108, 2, 1)
    if lower == -1:
        return False

    res = high << 8 | lower
    if res == 0x1245:
        switch = read(ctx.addr, 0x3020, 2, 1)
        ctx.sensor_id = f"SC2145H_{'A' if switch == 2 else 'B'}"
        return True
    if res == 0x2232:
        variant = read(ctx.addr, 0x3109, 2, 1)
        ctx.sensor_id = "SC2235E" if variant == 0x20 else "SC2235P"
        return True
    if res in _SMARTSENS_NAMES:
        ctx.sensor_id = _SMARTSENS_NAMES[res]
        return True
    if res in _SMARTSENS_MODELS:
        ctx.sensor_id = f"SC{_SMARTSENS_MODELS[res]:04x}"
        return True
    if res not in (0, 0xFFFF):
        _unexpected("SmartSens", res)
    return False


_OMNI_DIRECT = {
    0x4688: "OV4689",
    0x2710: "OV2710",
    0x2715: "OV2715",
    0x2718: "OV2718",
    0x9732: "OV9732",
    0x5305: "OS05A",
    0x5308: "OS08A",
}

_OMNI_MODELS = {
    0x4688: 0x4689,
    0x9711: 0x9712,
    0x2710: 0x2710,
    0x2715: 0x2715,
    0x9732: 0x9732,
    0x9750: 0x9750,
    0x5305: 0x5305,
}


def detect_omni(ctx: SensorContext, read: ReadRegister) -> bool:
    """Probe for an OmniVision sensor at ``ctx.addr``."""
    res = read(ctx.addr, 0x300A, 2, 1) << 8 | read(ctx.addr, 0x300B, 2, 1)
    if res in _OMNI_DIRECT:
        ctx.sensor_id = _OMNI_DIRECT[res]
        return True

    mfg_msb = read(ctx.addr, 0x301C, 1, 1)
    mfg_lsb = read(ctx.addr, 0x301D, 1, 1)
    if mfg_msb != 0x7F or mfg_lsb != 0xA2:
        return False

    prod_msb = read(ctx.addr, 0x300A, 1, 1)
    if prod_msb == -1:
        return False
    prod_lsb = read(ctx.addr, 0x300B, 1, 1)
    if prod_lsb == -1:
        return False

    res = prod_msb << 8 | prod_lsb
    if not res or res == 0xFFFF:
        return False
    model = _OMNI_MODELS.get(res)
    if model is None:
        _unexpected("OmniVision", res)
        return False
    ctx.sensor_id = f"OV{model:04x}"
    return True


def _read_pair(read: ReadRegister, addr: int, msb_reg: int, lsb_reg: int, reg_width: int) -> int | None:
    msb = read(addr, msb_reg, reg_width, 1)
    if msb == -1:
        return None
    lsb = read(addr, lsb_reg, reg_width, 1)
    if lsb == -1:
        return None
    return msb << 8 | lsb


def detect_galaxycore(ctx: SensorContext, read: ReadRegister) -> bool:
    """Probe for a GalaxyCore sensor at ``ctx.addr``."""
    res = _read_pair(read, ctx.addr, 0x3F0, 0x3F1, 2)
    if res is None:
        return False
    if res in (0x2053, 0x4653):
        ctx.sensor_id = f"GC{res:04x}"
        return True

    res = _read_pair(read, ctx.addr, 0xF0, 0xF1, 1)
    if not res or res == 0xFFFF:
        return False
    if res not in (0x2023, 0x2053, 0x2063):
        _unexpected("GalaxyCore", res)
        return False
    ctx.sensor_id = f"GC{res:04x}"
    return True


def detect_superpix(ctx: SensorContext, read: ReadRegister) -> bool:
    """Probe for a SuperPix sensor at ``ctx.addr``."""
    res = _read_pair(read, ctx.addr, 0x02, 0x03, 1)
    if not res:
        return False
    if res == 0x2735:
        ctx.sensor_id = f"OV{res:04x}"
        return True

    res = _read_pair(read, ctx.addr, 0xFA, 0xFB, 1)
    if not res or res == 0xFFFF:
        return False
    if res != 0x2073:
        _unexpected("SuperPix", res)
        return False
    ctx.sensor_id = "SP2305"
    return True


_I2C_PROBES: tuple[tuple[Vendor, Callable[[SensorContext, ReadRegister], bool], int, int], ...] = (
    (Vendor.SOI, detect_soi, 1, 1),
    (Vendor.ONSEMI, detect_onsemi, 2, 2),
    (Vendor.OMNIVISION, detect_omni, 2, 1),
    (Vendor.SONY, detect_sony, 2, 1),
    (Vendor.SMARTSENS, detect_smartsens, 2, 1),
    (Vendor.GALAXYCORE, detect_galaxycore, 1, 1),
    (Vendor.SUPERPIX, detect_superpix, 1, 1),
)


def detect_i2c(read: ReadRegister, addresses: Mapping[Vendor, Iterable[int]]) -> SensorContext | None:
    """Try each vendor at its candidate I2C addresses, in priority order."""
    for vendor, detector, reg_width, data_width in _I2C_PROBES:
        for addr in itertools.takewhile(bool, addresses.get(vendor, ())):
            ctx = SensorContext(addr=addr)
            if detector(ctx, read):
                ctx.vendor = vendor
                ctx.reg_width = reg_width
                ctx.data_width = data_width
                return ctx
    return None


def detect_spi(read: ReadRegister) -> SensorContext | None:
    """Probe for a Sony sensor on the SPI bus."""
    ctx = SensorContext(addr=0)
    if detect_sony(ctx, read):
        ctx.vendor = Vendor.SONY
        return ctx
    return None


def get_sensor_id(
    i2c_read: ReadRegister | None,
    addresses: Mapping[Vendor, Iterable[int]],
    spi_read: ReadRegister | None = None,
) -> SensorContext | None:
    """Detect the sensor over I2C, falling back to SPI; None if nothing answers."""
    if i2c_read is None:
        return None
    ctx = detect_i2c(i2c_read, addresses)
    if ctx is not None:
        ctx.control = "i2c"
        return ctx
    if spi_read is None:
        return None
    ctx = detect_spi(spi_read)
    if ctx is not None:
        ctx.control = "spi"
    return ctx


def sensor_json(ctx: SensorContext) -> dict[str, Any]:
    """Describe a detected sensor as a JSON-ready document."""
    control: dict[str, Any] = {"bus": 0, "type": ctx.control}
    if ctx.addr:
        control["addr"] = f"0x{ctx.addr:x}"
    sensor: dict[str, Any] = {
        "vendor": ctx.vendor.value if ctx.vendor else "",
        "model": ctx.sensor_id,
        "control": control,
    }
    if ctx.params:
        sensor["params"] = dict(ctx.params)
    return {"sensors": [sensor]}


def sensor_identity(ctx: SensorContext) -> str:
    """Lowercase ``model_control`` identifier, truncated to fit 15 characters."""
    return lower_truncated(f"{ctx.sensor_id}_{ctx.control}", _IDENTITY_SIZE)


def sensor_short(ctx: SensorContext) -> str:
    """Lowercase model name, truncated to fit 15 characters."""
    return lower_truncated(ctx.sensor_id, _IDENTITY_SIZE)