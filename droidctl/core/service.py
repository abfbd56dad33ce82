"""Service layer used by CLI and API frontends."""

from __future__ import annotations

import logging
import shlex
from collections.abc import Callable
from contextlib import closing
from dataclasses import replace
from pathlib import Path
from typing import Any

from adbutils import AdbClient, AdbError

from droidctl.core import sysinfo
from droidctl.core.config import load_settings
from droidctl.core.device_info import (
    ANDROID_VERSION_PROPERTY,
    MODEL_PROPERTY,
    SDK_VERSION_PROPERTY,
    build_report,
    fetch_property,
)
from droidctl.core.discovery import DiscoveryService
from droidctl.core.errors import CommunicationError, FileTransferError, NoDeviceFound
from droidctl.core.identity import format_identity, is_network_identity, is_usb_serial, reconnect
from droidctl.core.model import (
    BatteryInfo,
    BuildInfo,
    ConnectedDevice,
    DeviceReport,
    DiscoveredWirelessDevice,
    DisplayInfo,
    FileEntry,
    HardwareInfo,
    NetworkInfo,
    PairingData,
    PairingRecord,
    Settings,
    SystemReport,
    TransportKind,
)
from droidctl.core.pairing import AdbPairHandshake, PairingWorkflow, validate_ipv4
from droidctl.core.parsers import decode_output, parse_file_listing, parse_packages
from droidctl.transports.base import ShellTransport, Transport
from droidctl.transports.tcp import NetworkTransport
from droidctl.transports.usb import WiredTransport

LOGGER = logging.getLogger(__name__)

ONLINE_STATE = "device"


class DeviceService:
    def __init__(
        self,
        *,
        settings: Settings | None = None,
        client: Any | None = None,
        discovery: DiscoveryService | None = None,
        handshake: Callable[[PairingRecord], str] | None = None,
    ) -> None:
        if settings is None:
            loaded = load_settings()
            settings = loaded.settings
            self.load_warnings = loaded.warnings
        else:
            self.load_warnings = ()
        self.settings = settings
        self.client = client or AdbClient(host=settings.adb.host, port=settings.adb.port)
        self.discovery = discovery or DiscoveryService(
            settings.discovery,
            connected_identities=self._connected_identities,
        )
        self.pairing = PairingWorkflow(
            settings.pairing,
            connector=self.connect_transport,
            handshake=handshake
            or AdbPairHandshake(settings.adb.executable, timeout_s=settings.pairing.handshake_timeout_s),
            advertised_port=self.discovery.connection_port_for,
        )

    # Transports

    def autodetect_transport(self) -> WiredTransport:
        return WiredTransport.autodetect(self.client, timeout_s=self.settings.adb.command_timeout_s)

    def connect_transport(self, ip: str, port: int) -> NetworkTransport:
        return NetworkTransport.connect(
            self.client,
            ip,
            port,
            connect_timeout_s=self.settings.adb.connect_timeout_s,
            timeout_s=self.settings.adb.command_timeout_s,
        )

    def reconnect(self, identity: str) -> Transport | None:
        return reconnect(identity, wired=self.autodetect_transport, network=self.connect_transport)

    def open_transport(self, identity: str | None = None) -> Transport:
        """Transport for *identity*, or the single wired device when omitted."""
        if identity is None:
            return self.autodetect_transport()
        transport = self.reconnect(identity)
        if transport is None:
            raise NoDeviceFound(f"Failed to connect to device {identity}")
        return transport

    # Devices and connections

    def list_devices(self) -> list[ConnectedDevice]:
        """Every device the adb server knows, including unauthorized and offline ones.

        Properties are only read from devices in the ``device`` state.
        """
        try:
            entries = self.client.list()
        except (AdbError, OSError) as exc:
            raise CommunicationError(f"Could not query adb server for devices: {exc}") from exc

        timeout_s = self.settings.adb.command_timeout_s
        devices: list[ConnectedDevice] = []
        for entry in entries:
            kind = TransportKind.USB if is_usb_serial(entry.serial) else TransportKind.TCP
            if entry.state != ONLINE_STATE:
                devices.append(
                    ConnectedDevice(identity=entry.serial, transport=kind, state=entry.state, is_connected=False)
                )
                continue

            handle = self.client.device(serial=entry.serial)
            transport: ShellTransport
            if kind is TransportKind.TCP:
                transport = NetworkTransport(handle, identity=entry.serial, timeout_s=timeout_s)
            else:
                transport = WiredTransport(handle, identity=entry.serial, timeout_s=timeout_s)
            with transport:
                devices.append(
                    ConnectedDevice(
                        identity=entry.serial,
                        transport=kind,
                        model=fetch_property(transport, MODEL_PROPERTY),
                        android_version=fetch_property(transport, ANDROID_VERSION_PROPERTY),
                        sdk_version=fetch_property(transport, SDK_VERSION_PROPERTY),
                    )
                )
        return devices

    def connect(self, ip: str, port: int | None = None) -> DeviceReport:
        """Connect over the network; *port* defaults to ``pairing.default_connection_port``."""
        if port is None:
            port = self.settings.pairing.default_connection_port
        ip = validate_ipv4(ip)
        transport = self.connect_transport(ip, port)
        try:
            report = build_report(transport)
        finally:
            transport.close()
        return replace(report, serial_no=format_identity(ip, port))

    def disconnect(self, identity: str) -> str:
        if not is_network_identity(identity):
            raise NoDeviceFound(f"'{identity}' is not a network device identity (expected ip:port)")
        try:
            return self.client.disconnect(identity, raise_error=True)
        except (AdbError, OSError) as exc:
            raise CommunicationError(f"Could not disconnect {identity}: {exc}") from exc

    def discover(self, window_s: float | None = None) -> list[DiscoveredWirelessDevice]:
        return self.discovery.discover(window_s)

    def pair(self, ip: str, port: int, code: str) -> DeviceReport:
        return self.pairing.pair(ip, port, code)

    def pairing_data(self, host_ip: str | None = None) -> PairingData:
        return self.pairing.pairing_data(host_ip)

    def device_report(self, identity: str | None = None) -> DeviceReport:
        with closing(self.open_transport(identity)) as transport:
            return build_report(transport)

    # Files and commands

    def list_files(self, path: str, identity: str | None = None) -> list[FileEntry]:
        with closing(self.open_transport(identity)) as transport:
            output = decode_output(transport.execute(["ls", "-la", path]))
        return parse_file_listing(output, path)

    def pull_file(self, remote_path: str, local_path: str | Path, identity: str | None = None) -> Path:
        with closing(self.open_transport(identity)) as transport:
            data = transport.execute(["cat", remote_path])
        target = Path(local_path)
        try:
            target.write_bytes(data)
        except OSError as exc:
            raise FileTransferError(f"Failed to write file {target}: {exc}") from exc
        LOGGER.info("Pulled %s to %s (%d bytes)", remote_path, target, len(data))
        return target

    def run_command(self, command: str, identity: str | None = None) -> str:
        try:
            argv = shlex.split(command)
        except ValueError as exc:
            raise CommunicationError(f"Could not parse command {command!r}: {exc}") from exc
        if not argv:
            raise CommunicationError("Command must not be empty")
        with closing(self.open_transport(identity)) as transport:
            return decode_output(transport.execute(argv))

    def list_packages(self, identity: str | None = None) -> list[str]:
        with closing(self.open_transport(identity)) as transport:
            return parse_packages(decode_output(transport.execute(["pm", "list", "packages"])))

    def logcat(self, lines: int, identity: str | None = None) -> str:
        with closing(self.open_transport(identity)) as transport:
            return decode_output(transport.execute(["logcat", "-d", "-t", str(lines)]))

    # System reports

    def hardware_info(self, identity: str | None = None) -> HardwareInfo:
        with closing(self.open_transport(identity)) as transport:
            return sysinfo.fetch_hardware_info(transport)

    def display_info(self, identity: str | None = None) -> DisplayInfo:
        with closing(self.open_transport(identity)) as transport:
            return sysinfo.fetch_display_info(transport)

    def battery_info(self, identity: str | None = None) -> BatteryInfo | None:
        with closing(self.open_transport(identity)) as transport:
            return sysinfo.fetch_battery_info(transport)

    def build_info(self, identity: str | None = None) -> BuildInfo:
        with closing(self.open_transport(identity)) as transport:
            return sysinfo.fetch_build_info(transport)

    def network_info(self, identity: str | None = None) -> NetworkInfo:
        with closing(self.open_transport(identity)) as transport:
            return sysinfo.fetch_network_info(transport, self.settings.network_probe)

    def system_report(self, identity: str | None = None) -> SystemReport:
        with closing(self.open_transport(identity)) as transport:
            return sysinfo.fetch_system_report(transport, self.settings.network_probe)

    def _connected_identities(self) -> set[str]:
        return {d.serial for d in self.client.device_list()}
