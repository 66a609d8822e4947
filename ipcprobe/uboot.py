"""U-Boot environment: locating it in a flash image, reading and editing it."""

from __future__ import annotations

import zlib
from dataclasses import dataclass, field
from typing import Iterator

CRC_SIZE = 4
DEFAULT_ENV_SIZE = 0x10000
ENV_SIZES = (0x10000, 0x40000, 0x20000)
ENV_MTD_NUM = 2
_ENCODING = "latin-1"


def crc32(data: bytes, crc: int = 0) -> int:
    """Return the CRC-32 of ``data``, continuing from ``crc``."""
    return zlib.crc32(data, crc) & 0xFFFFFFFF


@dataclass(frozen=True)
class EnvLocation:
    """Where an environment area was found inside a flash image."""

    offset: int
    length: int


def detect_env(buf: bytes, erasesize: int) -> EnvLocation | None:
    """Find a U-Boot environment area by checking CRCs at each erase block.

    Returns None when no block holds a valid environment.
    """
    if erasesize <= 0:
        raise ValueError("erase size must be positive")
    view = memoryview(buf)
    size = len(view)
    for base in range(0, size, erasesize):
        if base + CRC_SIZE > size:
            break
        expected = int.from_bytes(view[base:base + CRC_SIZE], "little")
        for length in ENV_SIZES:
            if base + length > size:
                continue
            if crc32(view[base + CRC_SIZE:base + length]) == expected:
                return EnvLocation(base, length)
    return None


@dataclass
class UbootEnv:
    """An environment area: ``key=value`` entries stored in a fixed-size block."""

    entries: list[str] = field(default_factory=list)
    length: int = DEFAULT_ENV_SIZE

    @classmethod
    def from_bytes(cls, data: bytes) -> "UbootEnv":
        """Parse an environment block that starts with its CRC."""
        if len(data) <= CRC_SIZE:
            raise ValueError("environment block is too short")
        entries = []
        for chunk in bytes(data[CRC_SIZE:]).split(b"\0"):
            if not chunk:
                break
            entries.append(chunk.decode(_ENCODING))
        return cls(entries, len(data))

    def items(self) -> Iterator[tuple[str, str]]:
        """Yield ``(key, value)`` pairs in stored order."""
        for entry in self.entries:
            key, _, value = entry.partition("=")
            yield key, value

    def get(self, name: str) -> str | None:
        """Return the value of ``name``, or None when it is not set."""
        prefix = f"{name}="
        for entry in self.entries:
            if entry.startswith(prefix):
                return entry[len(prefix):]
        return None

    def set(self, key: str, value: str) -> bool:
        """Set ``key`` to ``value`` and return whether anything changed.

        Every entry whose text starts with ``key`` is treated as a match.
        A value of the same length as the old one is written in place of
        the first match only; otherwise each match is replaced by
        ``key=value``, or dropped when ``value`` is empty.  A key with no
        match is appended.
        """
        rebuilt: list[str] = []
        found = False
        for index, entry in enumerate(self.entries):
            if not entry.startswith(key):
                rebuilt.append(entry)
                continue
            found = True
            name, sep, old = entry.partition("=")
            if not sep:
                raise ValueError(f"Bad uboot parameter '{entry}'")
            if len(value) == len(old):
                if value == old:
                    return False
                self.entries[index] = f"{name}={value}"
                return True
            if value:
                rebuilt.append(f"{key}={value}")
        if not found:
            rebuilt.append(f"{key}={value}")
        self._check_fits(rebuilt)
        self.entries = rebuilt
        return True

    def lines(self) -> list[str]:
        """Return the entries as they are printed."""
        return list(self.entries)

    def to_bytes(self) -> bytes:
        """Serialise to a block of ``length`` bytes with a fresh CRC."""
        self._check_fits(self.entries)
        body = b"".join(entry.encode(_ENCODING) + b"\0" for entry in self.entries)
        body = body.ljust(self.length - CRC_SIZE, b"\0")
        return crc32(body).to_bytes(CRC_SIZE, "little") + body

    def _check_fits(self, entries: list[str]) -> None:
        used = CRC_SIZE + sum(len(entry.encode(_ENCODING)) + 1 for entry in entries) + 1
        if used > self.length:
            raise ValueError(
                f"environment needs {used} bytes but only {self.length} are available"
            )


def print_env(buf: bytes, erasesize: int) -> UbootEnv | None:
    """Print every entry of the environment found in ``buf`` and return it."""
    location = detect_env(buf, erasesize)
    if location is None:
        return None
    env = UbootEnv.from_bytes(buf[location.offset:location.offset + location.length])
    for line in env.lines():
        print(line)
    return env