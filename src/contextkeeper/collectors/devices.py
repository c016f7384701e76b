"""Attached Android devices via `adb` and `fastboot`."""

from __future__ import annotations

from contextkeeper.collectors.base import Runner, or_default, run_command
from contextkeeper.models import AdbDevice


def parse_adb_devices(stdout: str) -> list[AdbDevice]:
    devices = []
    # First line is the "List of devices attached" banner
    for line in stdout.splitlines()[1:]:
        parts = line.split()
        if len(parts) < 2 or parts[1] == "offline":
            continue
        devices.append(AdbDevice(serial=parts[0], state=parts[1], device_type="adb"))
    return devices


def parse_fastboot_devices(stdout: str) -> list[AdbDevice]:
    devices = []
    for line in stdout.splitlines():
        parts = line.split()
        if parts:
            devices.append(AdbDevice(serial=parts[0], state="fastboot", device_type="fastboot"))
    return devices


def collect_devices(runner: Runner = run_command) -> list[AdbDevice]:
    adb = or_default(runner(["adb", "devices", "-l"], None), parse_adb_devices, [])
    fastboot = or_default(
        runner(["fastboot", "devices", "-l"], None), parse_fastboot_devices, []
    )
    return adb + fastboot
