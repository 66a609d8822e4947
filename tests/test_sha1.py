import hashlib

import pytest

from ipcprobe.sha1 import Sha1, sha1


def test_fips_abc():
    assert Sha1(b"abc").hexdigest() == "a9993e364706816aba3e25717850c26c9cd0d89d"


def test_fips_two_blocks():
    data = b"abcdbcdecdefdefgefghfghighijhijkijkljklmklmnlmnomnopnopq"
    assert sha1(data).hex() == "84983e441c3bd26ebaae4aa1f95129e5e54670f1"


def test_fips_million_a():
    hasher = Sha1()
    chunk = b"a" * 1000
    for _ in range(1000):
        hasher.update(chunk)
    assert hasher.hexdigest() == "34aa973cd4c4daa4f61eeb2bdbad27316534016f"


@pytest.mark.parametrize("length", [0, 1, 55, 56, 63, 64, 65, 119, 120, 128, 1000])
def test_matches_reference(length):
    data = bytes((i * 7 + 3) & 0xFF for i in range(length))
    assert sha1(data) == hashlib.sha1(data).digest()


def test_incremental_equals_one_shot():
    data = bytes(range(256)) * 3
    hasher = Sha1()
    for size in (1, 7, 64, 100, 3):
        hasher.update(data[:size])
        data = data[size:]
    hasher.update(data)
    assert hasher.digest() == sha1(bytes(range(256)) * 3)


def test_digest_does_not_finalize():
    hasher = Sha1(b"ab")
    first = hasher.digest()
    hasher.update(b"c")
    assert hasher.digest() == sha1(b"abc")
    assert first == sha1(b"ab")


def test_copy_is_independent():
    original = Sha1(b"hello ")
    clone = original.copy()
    clone.update(b"world")
    assert original.digest() == sha1(b"hello ")
    assert clone.digest() == sha1(b"hello world")


def test_digest_length_and_hex():
    hasher = Sha1(b"xyz")
    assert len(hasher.digest()) == 20
    assert hasher.hexdigest() == hasher.digest().hex()


def test_rejects_text():
    with pytest.raises(TypeError):
        Sha1("abc")