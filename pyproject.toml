[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ipcprobe"
version = "0.1.0"
description = "Probe IP camera boards: image sensor identification, U-Boot environment editing, watchdog control and sensor register readout"
requires-python = ">=3.10"
dependencies = []
keywords = ["ip-camera", "image-sensor", "u-boot", "watchdog", "i2c", "embedded"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Hardware",
    "Topic :: Software Development :: Embedded Systems",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
ipcprobe-watchdog = "ipcprobe.watchdog:main"

[tool.hatch.build.targets.wheel]
packages = ["ipcprobe"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
