"""Self-contained SHA-1 message digest."""

from __future__ import annotations

import struct

_MASK = 0xFFFFFFFF
_BLOCK_SIZE = 64
_INITIAL_STATE = (0x67452301, 0xEFCDAB89, 0x98BADCFE, 0x10325476, 0xC3D2E1F0)


def _rol(value: int, bits: int) -> int:
    return ((value << bits) | (value >> (32 - bits))) & _MASK


def _schedule(block: bytes) -> list[int]:
    words = list(struct.unpack(">16I", block))
    for _ in range(64):
        words.append(_rol(words[-3] ^ words[-8] ^ words[-14] ^ words[-16], 1))
    return words


def _round_function(step: int, b: int, c: int, d: int) -> tuple[int, int]:
    if step < 20:
        return (b & (c ^ d)) ^ d, 0x5A827999
    if step < 40:
        return b ^ c ^ d, 0x6ED9EBA1
    if step < 60:
        return ((b | c) & d) | (b & c), 0x8F1BBCDC
    return b ^ c ^ d, 0xCA62C1D6


def _transform(state: tuple[int, ...], block: bytes) -> tuple[int, ...]:
    """Hash a single 512-bit block into the running state."""
    a, b, c, d, e = state
    for step, word in enumerate(_schedule(block)):
        f, k = _round_function(step, b, c, d)
        temp = (_rol(a, 5) + f + e + k + word) & _MASK
        a, b, c, d, e = temp, a, _rol(b, 30), c, d
    return tuple((x + y) & _MASK for x, y in zip(state, (a, b, c, d, e)))


class Sha1:
    """Incremental SHA-1 hasher."""

    digest_size = 20
    block_size = _BLOCK_SIZE

    def __init__(self, data: bytes = b"") -> None:
        self._state: tuple[int, ...] = _INITIAL_STATE
        self._length = 0
        self._pending = b""
        if data:
            self.update(data)

    def update(self, data: bytes) -> None:
        """Feed more bytes into the hash."""
        chunk = self._pending + bytes(memoryview(data))
        self._length += len(chunk) - len(self._pending)
        full = len(chunk) - len(chunk) % _BLOCK_SIZE
        for start in range(0, full, _BLOCK_SIZE):
            self._state = _transform(self._state, chunk[start:start + _BLOCK_SIZE])
        self._pending = chunk[full:]

    def copy(self) -> "Sha1":
        """Return an independent copy of the current hashing state."""
        clone = Sha1()
        clone._state = self._state
        clone._length = self._length
        clone._pending = self._pending
        return clone

    def digest(self) -> bytes:
        """Return the 20-byte digest of everything fed so far."""
        bit_length = (self._length * 8) & 0xFFFFFFFFFFFFFFFF
        padding_len = (55 - self._length) % _BLOCK_SIZE
        tail = self._pending + b"\x80" + b"\x00" * padding_len + struct.pack(">Q", bit_length)
        state = self._state
        for start in range(0, len(tail), _BLOCK_SIZE):
            state = _transform(state, tail[start:start + _BLOCK_SIZE])
        return struct.pack(">5I", *state)

    def hexdigest(self) -> str:
        """Return the digest as lowercase hexadecimal."""
        return self.digest().hex()


def sha1(data: bytes) -> bytes:
    """Return the SHA-1 digest of ``data``."""
    return Sha1(data).digest()