import errno
import os
import struct
from unittest import mock

import pytest

from ipcprobe import watchdog as wd


class FakeDriver:
    def __init__(self, values=None, failing=()):
        self.values = dict(values or {})
        self.failing = set(failing)
        self.calls = []

    def __call__(self, fd, request, buf, mutate=True):
        self.calls.append((request, bytes(buf)))
        if request in self.failing:
            raise OSError(errno.EIO, os.strerror(errno.EIO))
        if request == wd.WDIOC_GETSUPPORT:
            struct.pack_into("=II32s", buf, 0, 0x8180, 1, b"fake-wdt")
        elif request in self.values:
            struct.pack_into("i", buf, 0, self.values[request])
        return 0


@pytest.fixture
def device(tmp_path):
    path = tmp_path / "watchdog"
    path.write_bytes(b"")
    return path


def open_dog(device, driver, new_hisi=None):
    with mock.patch("fcntl.ioctl", side_effect=driver):
        return wd.Watchdog(str(device), new_hisi)


@pytest.mark.parametrize("new_hisi, request_number", [
    (False, 0x80045705),
    (True, 0x5705),
])
def test_keep_alive_request_numbers(device, new_hisi, request_number):
    driver = FakeDriver()
    with mock.patch("fcntl.ioctl", side_effect=driver):
        dog = wd.Watchdog(str(device), new_hisi)
        assert dog.keep_alive() is True
        dog.close()
    requests = [request for request, _ in driver.calls]
    assert request_number in requests


def test_info_read_on_open(device):
    dog = open_dog(device, FakeDriver())
    info = dog.info()
    dog.close()
    assert info == wd.WatchdogInfo("fake-wdt", 1, 0x8180)


def test_missing_device(tmp_path):
    with pytest.raises(FileNotFoundError):
        wd.Watchdog(str(tmp_path / "absent"))


def test_getsupport_failure(device):
    driver = FakeDriver(failing={wd.WDIOC_GETSUPPORT})
    with mock.patch("fcntl.ioctl", side_effect=driver):
        with pytest.raises(wd.WatchdogError) as excinfo:
            wd.Watchdog(str(device))
    assert excinfo.value.errno == errno.EIO


def test_getters_and_setters(device):
    driver = FakeDriver({wd.WDIOC_GETTIMEOUT: 30, wd.WDIOC_GETTIMELEFT: 12,
                         wd.WDIOC_GETBOOTSTATUS: 1})
    with mock.patch("fcntl.ioctl", side_effect=driver):
        dog = wd.Watchdog(str(device))
        assert dog.get_timeout() == 30
        assert dog.get_timeleft() == 12
        assert dog.boot_status() is True
        assert dog.set_timeout(10) == 10
        dog.close()
    assert (wd.WDIOC_SETTIMEOUT, struct.pack("i", 10)) in driver.calls


def test_getter_failure_raises(device):
    driver = FakeDriver(failing={wd.WDIOC_GETPRETIMEOUT})
    with mock.patch("fcntl.ioctl", side_effect=driver):
        dog = wd.Watchdog(str(device))
        with pytest.raises(wd.WatchdogError) as excinfo:
            dog.get_pretimeout()
        dog.close()
    assert excinfo.value.errno == errno.EIO


def test_new_hisi_uses_new_requests(device):
    driver = FakeDriver()
    with mock.patch("fcntl.ioctl", side_effect=driver):
        dog = wd.Watchdog(str(device), True)
        dog.set_enabled(False)
        assert dog.keep_alive() is True
        dog.close()
    requests = [request for request, _ in driver.calls]
    assert (wd.HISINEW_WDIOC_SETOPTIONS,
            struct.pack("i", wd.WDIOS_DISABLECARD)) in driver.calls
    assert wd.HISINEW_WDIOC_KEEPALIVE in requests


def test_old_hisi_stop_uses_ioctl(device):
    driver = FakeDriver()
    with mock.patch("fcntl.ioctl", side_effect=driver):
        dog = wd.Watchdog(str(device), False)
        dog.stop()
        dog.close()
    assert driver.calls[-1] == (wd.WDIOC_SETOPTIONS, struct.pack("i", wd.WDIOS_DISABLECARD))
    assert device.read_bytes() == b""


def test_generic_stop_writes_magic(device):
    dog = open_dog(device, FakeDriver())
    dog.stop()
    dog.close()
    assert device.read_bytes() == b"V"


def test_keep_alive_failure(device):
    driver = FakeDriver(failing={wd.WDIOC_KEEPALIVE})
    with mock.patch("fcntl.ioctl", side_effect=driver):
        dog = wd.Watchdog(str(device))
        assert dog.keep_alive() is False
        dog.close()


def test_parse_args_order_and_forms():
    actions = wd.parse_args(["-d", "-t", "10", "--pingrate=5", "-e", "-n7"])
    assert actions == [("d", None), ("t", "10"), ("p", "5"), ("e", None), ("n", "7")]


def test_parse_args_clusters_and_prefixes():
    assert wd.parse_args(["-bT", "--getpre", "--file", "x"]) == [
        ("b", None), ("T", None), ("N", None), ("f", "x")]


def test_parse_args_errors():
    assert wd.parse_args(["-x"]) == [("?", "-x")]
    assert wd.parse_args(["-t"]) == [("?", "-t")]
    assert wd.parse_args(["--get"]) == [("?", "--get")]


def test_usage_text():
    text = wd.usage("prog")
    assert text.startswith("Usage: prog [options]\n")
    assert f"(default {wd.DEFAULT_PING_RATE})" in text
    assert "Example: prog -t 12 -T -n 7 -N" in text


def test_main_oneshot(device, capsys):
    driver = FakeDriver({wd.WDIOC_GETTIMEOUT: 30})
    with mock.patch("fcntl.ioctl", side_effect=driver):
        status = wd.main(["-f", str(device), "-p", "0", "-T", "-i"])
    out = capsys.readouterr().out
    assert status == 0
    assert f"Watchdog ping rate set to {wd.DEFAULT_PING_RATE} seconds." in out
    assert "WDIOC_GETTIMEOUT returns 30 seconds." in out
    assert " identity:\t\tfake-wdt" in out
    assert device.read_bytes() == b"V"


def test_main_help(device, capsys):
    with mock.patch("fcntl.ioctl", side_effect=FakeDriver()):
        status = wd.main(["--file", str(device), "-h"])
    assert status == 0
    assert "Usage: watchdog [options]" in capsys.readouterr().out


def test_main_missing_device(tmp_path, capsys):
    path = tmp_path / "absent"
    assert wd.main(["-f", str(path)]) == 255
    assert f"Watchdog device ({path}) not found." in capsys.readouterr().out