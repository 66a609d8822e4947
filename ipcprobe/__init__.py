"""Probe IP camera boards: sensor identification, U-Boot environment, watchdog, sensor registers and helpers."""

__version__ = "0.1.0"
__all__ = ["sha1", "tools", "uboot", "watchdog", "sensors", "snstool"]