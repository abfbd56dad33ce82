"""Wired (USB) transport backed by the local adb server."""

from __future__ import annotations

import logging
from typing import Any

from adbutils import AdbError

from droidctl.core.errors import NoDeviceFound
from droidctl.core.identity import is_usb_serial
from droidctl.core.model import TransportKind
from droidctl.transports.base import ShellTransport

LOGGER = logging.getLogger(__name__)


class WiredTransport(ShellTransport):
    kind = TransportKind.USB

    @classmethod
    def autodetect(cls, client: Any, *, timeout_s: float = 10.0) -> WiredTransport:
        """Claim the single attached wired device.

        Raises `NoDeviceFound` when no wired device or more than one is attached.
        """
        try:
            devices = client.device_list()
        except (AdbError, OSError) as exc:
            raise NoDeviceFound(f"Could not query adb server for devices: {exc}") from exc

        wired = [d for d in devices if is_usb_serial(d.serial)]
        if not wired:
            raise NoDeviceFound("No device found. Connect a device over USB and enable USB debugging.")
        if len(wired) > 1:
            serials = ", ".join(d.serial for d in wired)
            raise NoDeviceFound(
                f"Multiple wired devices found: {serials}. Disconnect all but one."
            )

        device = wired[0]
        LOGGER.debug("Autodetected wired device %s", device.serial)
        return cls(device, identity=device.serial, timeout_s=timeout_s)
