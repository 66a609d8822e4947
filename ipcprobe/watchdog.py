"""Control of a Linux watchdog device and the ``watchdog`` command."""

from __future__ import annotations

import fcntl
import os
import re
import struct
import sys
import time
from dataclasses import dataclass

DEFAULT_DEVICE = "/dev/watchdog"
DEFAULT_PING_RATE = 1

_IOC_NONE = 0
_IOC_WRITE = 1
_IOC_READ = 2
_WATCHDOG_IOCTL_BASE = ord("W")
_INT = struct.Struct("i")
_INFO = struct.Struct("=II32s")


def _ioc(direction: int, nr: int, size: int) -> int:
    return (direction << 30) | (size << 16) | (_WATCHDOG_IOCTL_BASE << 8) | nr


WDIOC_GETSUPPORT = _ioc(_IOC_READ, 0, _INFO.size)
WDIOC_GETBOOTSTATUS = _ioc(_IOC_READ, 2, _INT.size)
WDIOC_SETOPTIONS = _ioc(_IOC_READ, 4, _INT.size)
WDIOC_KEEPALIVE = _ioc(_IOC_READ, 5, _INT.size)
WDIOC_SETTIMEOUT = _ioc(_IOC_READ | _IOC_WRITE, 6, _INT.size)
WDIOC_GETTIMEOUT = _ioc(_IOC_READ, 7, _INT.size)
WDIOC_SETPRETIMEOUT = _ioc(_IOC_READ | _IOC_WRITE, 8, _INT.size)
WDIOC_GETPRETIMEOUT = _ioc(_IOC_READ, 9, _INT.size)
WDIOC_GETTIMELEFT = _ioc(_IOC_READ, 10, _INT.size)
HISINEW_WDIOC_KEEPALIVE = _ioc(_IOC_NONE, 5, 0)
HISINEW_WDIOC_SETOPTIONS = _ioc(_IOC_READ | _IOC_WRITE, 4, _INT.size)

WDIOS_DISABLECARD = 0x0001
WDIOS_ENABLECARD = 0x0002


class WatchdogError(OSError):
    """A watchdog ioctl failed."""


@dataclass(frozen=True)
class WatchdogInfo:
    """What the driver reports about itself."""

    identity: str
    firmware_version: int
    options: int


def _to_c_int(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value >= 0x80000000 else value


class Watchdog:
    """An open watchdog device.

    ``new_hisi`` selects the control style: True for newer HiSilicon
    drivers, False for older HiSilicon drivers, None for other chips,
    which are stopped by writing the magic character.
    """

    def __init__(self, path: str = DEFAULT_DEVICE, new_hisi: bool | None = None) -> None:
        self.path = path
        self.new_hisi = new_hisi
        self._fd: int | None = os.open(path, os.O_WRONLY)
        try:
            buf = bytearray(_INFO.size)
            self._ioctl(WDIOC_GETSUPPORT, buf)
        except WatchdogError:
            self.close()
            raise
        identity, = (_INFO.unpack(buf)[2],)
        options, firmware = _INFO.unpack(buf)[:2]
        self._info = WatchdogInfo(
            identity.split(b"\0", 1)[0].decode("latin-1"), firmware, options
        )

    def _ioctl(self, request: int, buf: bytearray) -> None:
        if self._fd is None:
            raise ValueError("watchdog device is closed")
        try:
            fcntl.ioctl(self._fd, request, buf, True)
        except OSError as exc:
            raise WatchdogError(exc.errno, exc.strerror or os.strerror(exc.errno or 0)) from exc

    def _ioctl_int(self, request: int, value: int = 0) -> int:
        buf = bytearray(_INT.pack(_to_c_int(value)))
        self._ioctl(request, buf)
        return _INT.unpack(buf)[0]

    @property
    def _setoptions(self) -> int:
        return HISINEW_WDIOC_SETOPTIONS if self.new_hisi else WDIOC_SETOPTIONS

    def keep_alive(self) -> bool:
        """Ping the watchdog; return whether the driver accepted it."""
        request = HISINEW_WDIOC_KEEPALIVE if self.new_hisi else WDIOC_KEEPALIVE
        try:
            self._ioctl_int(request)
        except WatchdogError:
            return False
        return True

    def stop(self) -> None:
        """Stop the watchdog from firing."""
        if self.new_hisi is None:
            if self._fd is None:
                raise ValueError("watchdog device is closed")
            try:
                os.write(self._fd, b"V")
            except OSError as exc:
                raise WatchdogError(exc.errno, exc.strerror) from exc
        else:
            self._ioctl_int(self._setoptions, WDIOS_DISABLECARD)

    def set_enabled(self, enabled: bool) -> None:
        """Turn the watchdog card on or off."""
        self._ioctl_int(self._setoptions, WDIOS_ENABLECARD if enabled else WDIOS_DISABLECARD)

    def boot_status(self) -> bool:
        """Return True when the last boot was caused by the watchdog."""
        return self._ioctl_int(WDIOC_GETBOOTSTATUS) != 0

    def get_timeout(self) -> int:
        """Return the timeout in seconds."""
        return self._ioctl_int(WDIOC_GETTIMEOUT) & 0xFFFFFFFF

    def set_timeout(self, seconds: int) -> int:
        """Set the timeout; return the value the driver settled on."""
        return self._ioctl_int(WDIOC_SETTIMEOUT, seconds) & 0xFFFFFFFF

    def get_pretimeout(self) -> int:
        """Return the pretimeout in seconds."""
        return self._ioctl_int(WDIOC_GETPRETIMEOUT) & 0xFFFFFFFF

    def set_pretimeout(self, seconds: int) -> int:
        """Set the pretimeout; return the value the driver settled on."""
        return self._ioctl_int(WDIOC_SETPRETIMEOUT, seconds) & 0xFFFFFFFF

    def get_timeleft(self) -> int:
        """Return the seconds left before the timer expires."""
        return self._ioctl_int(WDIOC_GETTIMELEFT) & 0xFFFFFFFF

    def info(self) -> WatchdogInfo:
        """Return the driver information read when the device was opened."""
        return self._info

    def close(self) -> None:
        """Close the device."""
        if self._fd is not None:
            os.close(self._fd)
            self._fd = None


_SHORT_OPTIONS = "bdehp:t:Tn:NLf:i"
_TAKES_ARGUMENT = {
    letter: following == ":"
    for letter, following in zip(_SHORT_OPTIONS, _SHORT_OPTIONS[1:] + " ")
    if letter != ":"
}
_LONG_OPTIONS = {
    "bootstatus": "b",
    "disable": "d",
    "enable": "e",
    "help": "h",
    "pingrate": "p",
    "timeout": "t",
    "gettimeout": "T",
    "pretimeout": "n",
    "getpretimeout": "N",
    "gettimeleft": "L",
    "file": "f",
    "info": "i",
}


def _match_long(name: str) -> str | None:
    if name in _LONG_OPTIONS:
        return _LONG_OPTIONS[name]
    candidates = {letter for long, letter in _LONG_OPTIONS.items() if long.startswith(name)}
    if name and len(candidates) == 1:
        return candidates.pop()
    return None


def parse_args(argv: list[str]) -> list[tuple[str, str | None]]:
    """Turn arguments into ordered ``(option letter, argument)`` actions.

    Bad options and missing arguments become ``("?", text)``; words that
    are not options are skipped.
    """
    actions: list[tuple[str, str | None]] = []
    args = iter(argv)
    for arg in args:
        if arg == "--":
            break
        if arg.startswith("--"):
            name, eq, value = arg[2:].partition("=")
            letter = _match_long(name)
            if letter is None:
                actions.append(("?", arg))
            elif _TAKES_ARGUMENT[letter]:
                if not eq:
                    value = next(args, None)
                actions.append((letter, value) if value is not None else ("?", arg))
            else:
                actions.append(("?", arg) if eq else (letter, None))
        elif arg.startswith("-") and len(arg) > 1:
            rest = arg[1:]
            while rest:
                letter, rest = rest[0], rest[1:]
                if letter not in _TAKES_ARGUMENT:
                    actions.append(("?", f"-{letter}"))
                elif _TAKES_ARGUMENT[letter]:
                    value = rest or next(args, None)
                    rest = ""
                    actions.append((letter, value) if value is not None else ("?", f"-{letter}"))
                else:
                    actions.append((letter, None))
    return actions


def usage(progname: str) -> str:
    """Return the help text."""
    return (
        f"Usage: {progname} [options]\n"
        " -f, --file\t\tOpen watchdog device file\n"
        f"\t\t\tDefault is {DEFAULT_DEVICE}\n"
        " -i, --info\t\tShow watchdog_info\n"
        " -b, --bootstatus\tGet last boot status (Watchdog/POR)\n"
        " -d, --disable\t\tTurn off the watchdog timer\n"
        " -e, --enable\t\tTurn on the watchdog timer\n"
        " -h, --help\t\tPrint the help message\n"
        f" -p, --pingrate=P\tSet ping rate to P seconds (default {DEFAULT_PING_RATE})\n"
        " -t, --timeout=T\tSet timeout to T seconds\n"
        " -T, --gettimeout\tGet the timeout\n"
        " -n, --pretimeout=T\tSet the pretimeout to T seconds\n"
        " -N, --getpretimeout\tGet the pretimeout\n"
        " -L, --gettimeleft\tGet the time left until timer expires\n"
        "\n"
        "Parameters are parsed left-to-right in real-time.\n"
        f"Example: {progname} -d -t 10 -p 5 -e\n"
        f"Example: {progname} -t 12 -T -n 7 -N\n"
    )


def _strtoul(text: str) -> int:
    match = re.match(r"\s*([+-]?)(0[xX][0-9a-fA-F]+|0[0-7]*|[1-9][0-9]*)", text)
    if not match:
        return 0
    sign, digits = match.groups()
    if digits[:2].lower() == "0x":
        value = int(digits, 16)
    elif digits.startswith("0"):
        value = int(digits, 8)
    else:
        value = int(digits)
    return (-value if sign == "-" else value) & 0xFFFFFFFF


def _run_action(dog: Watchdog, letter: str, value: str | None, state: dict) -> None:
    if letter == "b":
        state["oneshot"] = True
        try:
            cause = "Watchdog" if dog.boot_status() else "Power-On-Reset"
            print(f"Last boot is caused by: {cause}.")
        except WatchdogError as exc:
            print(f"WDIOC_GETBOOTSTATUS error '{exc.strerror}'")
    elif letter in "de":
        enable = letter == "e"
        try:
            dog.set_enabled(enable)
            print(f"Watchdog card {'enabled' if enable else 'disabled'}.")
        except WatchdogError as exc:
            name = "WDIOS_ENABLECARD" if enable else "WDIOS_DISABLECARD"
            print(f"{name} error '{exc.strerror}'")
            state["oneshot"] = True
    elif letter == "p":
        state["ping_rate"] = _strtoul(value or "") or DEFAULT_PING_RATE
        print(f"Watchdog ping rate set to {state['ping_rate']} seconds.")
    elif letter in "tn":
        setter, label, name = (
            (dog.set_timeout, "timeout", "WDIOC_SETTIMEOUT")
            if letter == "t"
            else (dog.set_pretimeout, "pretimeout", "WDIOC_SETPRETIMEOUT")
        )
        try:
            print(f"Watchdog {label} set to {setter(_strtoul(value or ''))} seconds.")
        except WatchdogError as exc:
            print(f"{name} error '{exc.strerror}'")
            state["oneshot"] = True
    elif letter in "TNL":
        state["oneshot"] = True
        getter, name = {
            "T": (dog.get_timeout, "WDIOC_GETTIMEOUT"),
            "N": (dog.get_pretimeout, "WDIOC_GETPRETIMEOUT"),
            "L": (dog.get_timeleft, "WDIOC_GETTIMELEFT"),
        }[letter]
        try:
            print(f"{name} returns {getter()} seconds.")
        except WatchdogError as exc:
            print(f"{name} error '{exc.strerror}'")
    elif letter == "i":
        state["oneshot"] = True
        info = dog.info()
        print("watchdog_info:")
        print(f" identity:\t\t{info.identity}")
        print(f" firmware_version:\t{info.firmware_version}")
        print(f" options:\t\t{info.options:08x}")


def main(argv: list[str] | None = None) -> int:
    """Run the watchdog command; return the exit status."""
    if argv is None:
        argv = sys.argv[1:]
    progname = "watchdog"
    actions = parse_args(argv)
    path = DEFAULT_DEVICE
    for letter, value in actions:
        if letter == "f" and value is not None:
            path = value

    try:
        dog = Watchdog(path)
    except WatchdogError as exc:
        print(f"WDIOC_GETSUPPORT error '{exc.strerror}'")
        return 255
    except FileNotFoundError:
        print(f"Watchdog device ({path}) not found.")
        return 255
    except PermissionError:
        print("Run watchdog as root.")
        return 255
    except OSError as exc:
        print(f"Watchdog device open failed {exc.strerror}")
        return 255

    state = {"oneshot": False, "ping_rate": DEFAULT_PING_RATE}
    try:
        for letter, value in actions:
            if letter in "h?":
                if letter == "?":
                    print(f"{progname}: invalid option '{value}'", file=sys.stderr)
                print(usage(progname), end="")
                state["oneshot"] = True
                break
            _run_action(dog, letter, value, state)

        if not state["oneshot"]:
            print("Watchdog Ticking Away!", flush=True)
            try:
                while True:
                    if dog.keep_alive():
                        print(".", end="", flush=True)
                    time.sleep(state["ping_rate"])
            except KeyboardInterrupt:
                try:
                    dog.stop()
                    print("\nStopping watchdog ticks...")
                except WatchdogError as exc:
                    print(f"\nStopping watchdog ticks failed ({exc.errno})...")
                return 0

        try:
            dog.stop()
        except WatchdogError as exc:
            print(f"Stopping watchdog ticks failed ({exc.errno})...")
    finally:
        dog.close()
    return 0