"""Core data models used across transports, parsers, service, and CLI."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class TransportKind(str, Enum):
    USB = "USB"
    TCP = "TCP"


class FileKind(str, Enum):
    FILE = "file"
    DIRECTORY = "directory"
    SYMLINK = "symlink"


class ServiceKind(str, Enum):
    PAIRING = "pairing"
    CONNECTION = "connection"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class DeviceReport:
    transport: TransportKind
    serial_no: str
    model: str
    android_version: str
    sdk_version: str


@dataclass(frozen=True)
class ConnectedDevice:
    identity: str
    transport: TransportKind
    model: str | None = None
    android_version: str | None = None
    sdk_version: str | None = None
    state: str = "device"
    is_connected: bool = True


@dataclass(frozen=True)
class FileEntry:
    name: str
    directory: str
    path: str
    kind: FileKind
    size: int | None
    permissions: str
    link_target: str | None = None

    @property
    def is_directory(self) -> bool:
        return self.kind is FileKind.DIRECTORY


@dataclass(frozen=True)
class Announcement:
    """Raw network service announcement as delivered by the listener."""

    fullname: str
    service_type: str
    addresses: tuple[str, ...]
    port: int


@dataclass(frozen=True)
class DiscoveredWirelessDevice:
    name: str
    fullname: str
    addresses: tuple[str, ...]
    port: int
    service: ServiceKind
    connection_port: int | None = None
    paired: bool = False
    connected: bool = False


@dataclass(frozen=True)
class PairingRecord:
    ip: str
    port: int
    code: str


@dataclass(frozen=True)
class PairingData:
    ip: str
    port: int
    service_name: str
    password: str
    qr_data: str


@dataclass(frozen=True)
class StorageUsage:
    total: str
    available: str


@dataclass(frozen=True)
class HardwareInfo:
    cpu_architecture: str | None = None
    cpu_abi_list: str | None = None
    total_memory: str | None = None
    available_memory: str | None = None
    internal_storage_total: str | None = None
    internal_storage_available: str | None = None
    manufacturer: str | None = None
    brand: str | None = None
    board: str | None = None
    hardware: str | None = None


@dataclass(frozen=True)
class DisplayInfo:
    resolution: str | None = None
    density: str | None = None
    lcd_density: str | None = None
    refresh_rate: str | None = None
    orientation: str | None = None


@dataclass(frozen=True)
class BatteryInfo:
    level: int | None = None
    status: str | None = None
    health: str | None = None
    temperature: float | None = None
    voltage: int | None = None
    technology: str | None = None


@dataclass(frozen=True)
class BuildInfo:
    fingerprint: str | None = None
    build_date: str | None = None
    build_user: str | None = None
    build_host: str | None = None
    security_patch: str | None = None
    bootloader: str | None = None
    baseband: str | None = None
    build_id: str | None = None
    build_tags: str | None = None
    build_type: str | None = None


@dataclass(frozen=True)
class NetworkInterfaceRecord:
    name: str
    ip_address: str | None = None
    mac_address: str | None = None
    status: str = "DOWN"


@dataclass(frozen=True)
class NetworkInfo:
    wifi_status: str | None = None
    connection_type: str | None = None
    signal_strength: int | None = None
    upload_speed: str | None = None
    download_speed: str | None = None
    ip_addresses: tuple[str, ...] = ()
    mac_addresses: tuple[str, ...] = ()
    network_interfaces: tuple[NetworkInterfaceRecord, ...] = ()


@dataclass(frozen=True)
class SystemReport:
    hardware: HardwareInfo
    display: DisplayInfo
    battery: BatteryInfo | None
    build: BuildInfo
    network: NetworkInfo


@dataclass(frozen=True)
class CommandResult(Generic[T]):
    """Outcome of a delegated operation: a value or a human-readable error."""

    value: T | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class AdbSettings:
    host: str = "127.0.0.1"
    port: int = 5037
    executable: str = "adb"
    command_timeout_s: float = 10.0
    connect_timeout_s: float = 5.0


@dataclass(frozen=True)
class DiscoverySettings:
    window_s: float = 5.0
    poll_interval_s: float = 0.1
    resolve_timeout_s: float = 3.0
    service_types: tuple[str, ...] = (
        "_adb-tls-pairing._tcp.local.",
        "_adb-tls-connect._tcp.local.",
        "_adb._tcp.local.",
    )


@dataclass(frozen=True)
class PairingSettings:
    default_connection_port: int = 5555
    candidate_ports: tuple[int, ...] = (5555, 5556, 5557, 5558, 5559)
    default_pairing_port: int = 37000
    fallback_host_ip: str = "192.168.1.100"
    handshake_timeout_s: float = 30.0


@dataclass(frozen=True)
class NetworkProbeSettings:
    target: str = "8.8.8.8"
    count: int = 3


@dataclass(frozen=True)
class WorkerSettings:
    max_workers: int = 4


@dataclass(frozen=True)
class Settings:
    adb: AdbSettings = field(default_factory=AdbSettings)
    discovery: DiscoverySettings = field(default_factory=DiscoverySettings)
    pairing: PairingSettings = field(default_factory=PairingSettings)
    network_probe: NetworkProbeSettings = field(default_factory=NetworkProbeSettings)
    workers: WorkerSettings = field(default_factory=WorkerSettings)
