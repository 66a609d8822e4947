"""Small helpers: register access through a memory device, file and text utilities."""

from __future__ import annotations

import mmap
import os
import re
import struct

_WINDOW_MASK = 0xFFFF0000
_WINDOW_SIZE = 0x10000
_WORD = struct.Struct("=I")
_ASCII_LOWER = str.maketrans(
    "ABCDEFGHIJKLMNOPQRSTUVWXYZ", "abcdefghijklmnopqrstuvwxyz"
)


class MemoryRegisters:
    """32-bit register access through a mapped window of a memory device.

    A 64 KiB window containing the requested address is mapped and kept
    until an address outside it is touched.
    """

    def __init__(self, path: str = "/dev/mem") -> None:
        self.path = path
        self._fd: int | None = None
        self._area: mmap.mmap | None = None
        self._offset: int | None = None

    def _window(self, addr: int) -> tuple[mmap.mmap, int]:
        if not addr:
            raise ValueError("register address must be non-zero")
        offset = addr & _WINDOW_MASK
        if self._area is not None and offset != self._offset:
            self._area.close()
            self._area = None
        if self._fd is None:
            self._fd = os.open(self.path, os.O_RDWR | getattr(os, "O_SYNC", 0))
        if self._area is None:
            self._area = mmap.mmap(
                self._fd, _WINDOW_SIZE, access=mmap.ACCESS_WRITE, offset=offset
            )
            self._offset = offset
        return self._area, addr - offset

    def read(self, addr: int) -> int:
        """Read the 32-bit word at ``addr``."""
        area, pos = self._window(addr)
        return _WORD.unpack_from(area, pos)[0]

    def write(self, addr: int, value: int) -> None:
        """Write a 32-bit word to ``addr``."""
        area, pos = self._window(addr)
        _WORD.pack_into(area, pos, value & 0xFFFFFFFF)

    def close(self) -> None:
        """Release the mapped window and the device."""
        if self._area is not None:
            self._area.close()
            self._area = None
            self._offset = None
        if self._fd is not None:
            os.close(self._fd)
            self._fd = None

    def __enter__(self) -> "MemoryRegisters":
        return self

    def __exit__(self, *args) -> None:
        self.close()


class PrintkSilencer:
    """Silence kernel console messages and put the previous levels back."""

    def __init__(self, path: str = "/proc/sys/kernel/printk") -> None:
        self.path = path
        self.saved: str | None = None

    def disable(self) -> None:
        """Remember the current levels and set them all to zero."""
        if self.saved:
            return
        try:
            with open(self.path, "r+") as fp:
                line = fp.readline(14)
        except OSError:
            return
        if not line:
            return
        self.saved = line
        with open(self.path, "w") as fp:
            fp.write("0 0 0 0\n")

    def restore(self) -> None:
        """Write back the levels saved by :meth:`disable`."""
        if not self.saved:
            return
        with open(self.path, "w") as fp:
            fp.write(self.saved)


def ceil_up(n: int, offset: int) -> int:
    """Round ``n`` up to a multiple of ``offset``."""
    rounded = n - n % offset
    if n % offset:
        rounded += offset
    return rounded & 0xFFFFFFFF


def read_le32(data: bytes) -> int:
    """Decode an unsigned little-endian 32-bit integer from the first four bytes."""
    if len(data) < 4:
        raise ValueError("need at least 4 bytes")
    return int.from_bytes(bytes(data[:4]), "little")


def lower_truncated(text: str, size: int) -> str:
    """Fit ``text`` into a buffer of ``size`` (terminator included) and lowercase it."""
    if size <= 0:
        return ""
    return text[: size - 1].translate(_ASCII_LOWER)


def compile_regex(pattern: str) -> re.Pattern:
    """Compile a case-insensitive, line-oriented pattern."""
    try:
        return re.compile(pattern, re.IGNORECASE | re.MULTILINE)
    except re.error as exc:
        raise ValueError(f"Regex error compiling '{pattern}': {exc}") from exc


def get_regex_line_from_file(filename: str, pattern: str) -> str | None:
    """Return the first group of the first line matching ``pattern``.

    Returns None when the file cannot be opened or no line matches.
    """
    regex = compile_regex(pattern)
    if not regex.groups:
        raise ValueError(f"pattern '{pattern}' has no capturing group")
    try:
        with open(filename, errors="replace") as fp:
            for line in fp:
                match = regex.search(line)
                if match:
                    return match.group(1)
    except OSError:
        return None
    return None


def read_to_buffer(filename: str, round_up: int = 0) -> tuple[bytes, int]:
    """Read a file, padding it with 0xff up to a multiple of ``round_up``.

    Returns the padded buffer and the number of bytes actually read.
    """
    with open(filename, "rb") as fp:
        payload = fp.read()
    size = ceil_up(len(payload), round_up) if round_up else len(payload)
    return payload + b"\xff" * (size - len(payload)), len(payload)


def file_to_buf(filename: str) -> bytes:
    """Return the whole contents of a file."""
    return read_to_buffer(filename)[0]