"""Stable public API for building tooling on top of droidctl.

This module is the supported integration surface for third-party callers.
Avoid importing from private/internal modules unless intentionally depending on
non-stable internals.
"""

from __future__ import annotations

from collections.abc import Callable
from concurrent.futures import Future
from pathlib import Path
from typing import Any, TypeVar

from droidctl.core.errors import (
    CommunicationError,
    ConfigLoadError,
    ConfigValidationError,
    ConnectionRefused,
    ConnectionTimeout,
    DiscoveryError,
    DroidctlError,
    FileTransferError,
    InvalidAddress,
    InvalidPairingCode,
    NoDeviceFound,
    PairingFailure,
    PairingProtocolError,
    PartialDataUnavailable,
    TransportError,
)
from droidctl.core.model import (
    BatteryInfo,
    BuildInfo,
    CommandResult,
    ConnectedDevice,
    DeviceReport,
    DiscoveredWirelessDevice,
    DisplayInfo,
    FileEntry,
    FileKind,
    HardwareInfo,
    NetworkInfo,
    NetworkInterfaceRecord,
    PairingData,
    ServiceKind,
    Settings,
    SystemReport,
    TransportKind,
)
from droidctl.core.service import DeviceService
from droidctl.core.tasks import DeviceTaskRunner
from droidctl.transports.base import Transport

__all__ = [
    "DroidctlError",
    "ConfigLoadError",
    "ConfigValidationError",
    "TransportError",
    "NoDeviceFound",
    "ConnectionRefused",
    "ConnectionTimeout",
    "CommunicationError",
    "InvalidAddress",
    "InvalidPairingCode",
    "PairingFailure",
    "PairingProtocolError",
    "PartialDataUnavailable",
    "DiscoveryError",
    "FileTransferError",
    "BatteryInfo",
    "BuildInfo",
    "CommandResult",
    "ConnectedDevice",
    "DeviceReport",
    "DiscoveredWirelessDevice",
    "DisplayInfo",
    "FileEntry",
    "FileKind",
    "HardwareInfo",
    "NetworkInfo",
    "NetworkInterfaceRecord",
    "PairingData",
    "ServiceKind",
    "Settings",
    "SystemReport",
    "TransportKind",
    "Transport",
    "Client",
]

T = TypeVar("T")


class Client:
    """Public client for interacting with droidctl core capabilities.

    A `Client` wraps device transports, discovery, pairing and report
    assembly behind a stable API intended for third-party tools
    (GUI/TUI/services/scripts). Every operation either returns a typed record
    or raises a `DroidctlError` with a human-readable message.

    Operations block the calling thread. Callers that must stay responsive
    hand them to `background`, which returns a future resolving to a
    `CommandResult`.
    """

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        service: DeviceService | None = None,
    ) -> None:
        self._service = service or DeviceService(settings=settings)
        self._runner: DeviceTaskRunner | None = None

    @property
    def load_warnings(self) -> tuple[str, ...]:
        return self._service.load_warnings

    @property
    def settings(self) -> Settings:
        return self._service.settings

    def list_devices(self) -> list[ConnectedDevice]:
        return self._service.list_devices()

    def connect(self, ip: str, port: int | None = None) -> DeviceReport:
        return self._service.connect(ip, port)

    def disconnect(self, identity: str) -> str:
        return self._service.disconnect(identity)

    def reconnect(self, identity: str) -> Transport | None:
        return self._service.reconnect(identity)

    def discover(self, window_s: float | None = None) -> list[DiscoveredWirelessDevice]:
        return self._service.discover(window_s)

    def pair(self, ip: str, port: int, code: str) -> DeviceReport:
        return self._service.pair(ip, port, code)

    def pairing_data(self, host_ip: str | None = None) -> PairingData:
        return self._service.pairing_data(host_ip)

    def device_report(self, identity: str | None = None) -> DeviceReport:
        return self._service.device_report(identity)

    def list_files(self, path: str, identity: str | None = None) -> list[FileEntry]:
        return self._service.list_files(path, identity)

    def pull_file(self, remote_path: str, local_path: str | Path, identity: str | None = None) -> Path:
        return self._service.pull_file(remote_path, local_path, identity)

    def run_command(self, command: str, identity: str | None = None) -> str:
        return self._service.run_command(command, identity)

    def list_packages(self, identity: str | None = None) -> list[str]:
        return self._service.list_packages(identity)

    def logcat(self, lines: int = 500, identity: str | None = None) -> str:
        return self._service.logcat(lines, identity)

    def hardware_info(self, identity: str | None = None) -> HardwareInfo:
        return self._service.hardware_info(identity)

    def display_info(self, identity: str | None = None) -> DisplayInfo:
        return self._service.display_info(identity)

    def battery_info(self, identity: str | None = None) -> BatteryInfo | None:
        return self._service.battery_info(identity)

    def build_info(self, identity: str | None = None) -> BuildInfo:
        return self._service.build_info(identity)

    def network_info(self, identity: str | None = None) -> NetworkInfo:
        return self._service.network_info(identity)

    def system_report(self, identity: str | None = None) -> SystemReport:
        return self._service.system_report(identity)

    def background(self, operation: Callable[..., T], *args: Any, **kwargs: Any) -> Future[CommandResult[T]]:
        """Run *operation* (usually one of this client's methods) on the worker pool."""
        if self._runner is None:
            self._runner = DeviceTaskRunner(self._service.settings.workers.max_workers)
        return self._runner.submit(operation, *args, **kwargs)

    def close(self) -> None:
        if self._runner is not None:
            self._runner.shutdown()
            self._runner = None
