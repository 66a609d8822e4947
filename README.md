# ipcprobe

Tools for inspecting embedded IP camera boards running Linux.

- `ipcprobe.sensors` identifies the image sensor by reading its ID
  registers. Sony, Silicon Optronics, ON Semiconductor, OmniVision,
  SmartSens, GalaxyCore and SuperPix parts are recognised. You supply the
  register read function and the candidate I2C addresses, so detection
  works with any bus access layer, and with a fake one in tests.
- `ipcprobe.uboot` finds a U-Boot environment block in a flash dump by its
  CRC-32. It lists, reads and changes variables, then serialises the block
  with a fresh checksum.
- `ipcprobe.watchdog` drives a Linux watchdog device through ioctls. It
  provides the `Watchdog` class and the `ipcprobe-watchdog` command.
- `ipcprobe.snstool` reads exposure, gain and timing registers of the
  SC2315E and IMX385 sensors. Its `monitor()` generator yields one readout
  line at each interval.
- `ipcprobe.tools` holds helpers: `MemoryRegisters` for 32-bit register
  access through `/dev/mem`, `PrintkSilencer` to mute kernel console
  messages and restore them, regex line lookup in files, and file reading
  with 0xff padding.
- `ipcprobe.sha1` is a self-contained SHA-1.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Command line

```
ipcprobe-watchdog --help
ipcprobe-watchdog -d -t 10 -p 5 -e
ipcprobe-watchdog -t 12 -T -n 7 -N
```

Options are applied from left to right. The query options `-b`, `-T`,
`-N`, `-L` and `-i`, and any failed set operation, make the run a
one-shot: the tool stops the watchdog and exits. Without a one-shot, the
tool pings the watchdog every `-p` seconds until you press Ctrl-C, and
then stops it. Use `-f/--file` to choose a device other than
`/dev/watchdog`.

The command stops the watchdog by writing the magic character `V`. To use
the ioctl-based control of HiSilicon drivers, construct
`Watchdog(path, new_hisi=True)` (newer drivers) or `new_hisi=False`
(older drivers) yourself.

## Library use

Detecting a sensor with your own register reader:

```python
from ipcprobe.sensors import Vendor, get_sensor_id, sensor_identity, sensor_json

def i2c_read(addr, reg, reg_width, data_width):
    ...  # return the register value, or -1 when there is no answer

addresses = {Vendor.SONY: [0x34], Vendor.SMARTSENS: [0x60, 0x64]}

ctx = get_sensor_id(i2c_read, addresses, spi_read=None)
if ctx is not None:
    print(sensor_identity(ctx))   # e.g. "imx291_i2c"
    print(sensor_json(ctx))       # {"sensors": [{"vendor": ..., "model": ..., ...}]}
```

Watching the registers of a detected sensor:

```python
from ipcprobe.snstool import monitor

for line in monitor(ctx, i2c_read, interval=2, iterations=5):
    print(line)
```

`monitor()` raises `ValueError` for a sensor it has no register table for.

Editing a U-Boot environment taken from a flash dump:

```python
from ipcprobe.uboot import UbootEnv, detect_env

location = detect_env(dump, erasesize=0x10000)
if location is not None:
    env = UbootEnv.from_bytes(dump[location.offset:location.offset + location.length])
    print(env.get("bootargs"))
    changed = env.set("bootdelay", "3")
    block = env.to_bytes()
```

`print_env(dump, erasesize)` finds the environment and prints every entry.

Hashing:

```python
from ipcprobe.sha1 import Sha1, sha1

sha1(b"abc").hex()       # 'a9993e364706816aba3e25717850c26c9cd0d89d'
Sha1(b"abc").hexdigest() # same
```

## What it does not do

- It has no I2C or SPI bus access of its own. Sensor detection and
  register monitoring need a read function from the caller.
- It does not identify the SoC. Nothing chooses the HiSilicon watchdog
  style for you.
- It does not enumerate MTD partitions or write to flash. The U-Boot
  functions work on bytes that you read and write yourself.
- Sensor detection and register monitoring have no command line. They are
  library functions only.