"""Time-boxed discovery of wireless-debugging devices over mDNS."""

from __future__ import annotations

import ipaddress
import logging
import queue
import time
from collections.abc import Callable, Iterable
from dataclasses import replace
from enum import Enum
from typing import Protocol

from zeroconf import ServiceBrowser, ServiceListener, Zeroconf

from droidctl.core.errors import DiscoveryError
from droidctl.core.identity import format_identity
from droidctl.core.model import (
    Announcement,
    DiscoveredWirelessDevice,
    DiscoverySettings,
    ServiceKind,
)

LOGGER = logging.getLogger(__name__)

PAIRING_SERVICE_MARKER = "_adb-tls-pairing"
CONNECTION_SERVICE_MARKER = "_adb-tls-connect"


class DiscoveryState(str, Enum):
    IDLE = "idle"
    LISTENING = "listening"
    DRAINING = "draining"


class AnnouncementSource(Protocol):
    def start(self, emit: Callable[[Announcement], None]) -> None:
        """Begin delivering announcements to *emit* (may be called from another thread)."""

    def stop(self) -> None:
        """Stop delivering announcements and release network resources."""


class _ResolvingListener(ServiceListener):
    def __init__(
        self,
        emit: Callable[[Announcement], None],
        resolve_timeout_ms: int,
        deadline: float | None = None,
    ) -> None:
        self._emit = emit
        self._resolve_timeout_ms = resolve_timeout_ms
        self._deadline = deadline

    def add_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        self._resolve(zc, type_, name)

    def update_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        self._resolve(zc, type_, name)

    def remove_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        LOGGER.debug("Service removed: %s", name)

    def _timeout_ms(self) -> int:
        if self._deadline is None:
            return self._resolve_timeout_ms
        remaining_ms = int((self._deadline - time.monotonic()) * 1000)
        return min(self._resolve_timeout_ms, remaining_ms)

    def _resolve(self, zc: Zeroconf, type_: str, name: str) -> None:
        # never block the browser thread past the listening window
        timeout_ms = self._timeout_ms()
        if timeout_ms <= 0:
            LOGGER.debug("Listening window closed before %s could be resolved", name)
            return
        info = zc.get_service_info(type_, name, timeout=timeout_ms)
        if info is None or info.port is None:
            LOGGER.debug("Could not resolve %s", name)
            return
        self._emit(
            Announcement(
                fullname=name,
                service_type=type_,
                addresses=tuple(info.parsed_addresses()),
                port=int(info.port),
            )
        )


class ZeroconfAnnouncementSource:
    """Announcement source browsing the configured DNS-SD service types.

    With *window_s* set, each resolution is capped at the time left in the
    window and announcements arriving after it are not resolved.
    """

    def __init__(
        self,
        service_types: Iterable[str],
        *,
        resolve_timeout_s: float = 3.0,
        window_s: float | None = None,
    ) -> None:
        self.service_types = list(service_types)
        self.resolve_timeout_s = resolve_timeout_s
        self.window_s = window_s
        self._zeroconf: Zeroconf | None = None
        self._browser: ServiceBrowser | None = None

    def start(self, emit: Callable[[Announcement], None]) -> None:
        self._zeroconf = Zeroconf()
        deadline = None if self.window_s is None else time.monotonic() + self.window_s
        listener = _ResolvingListener(emit, int(self.resolve_timeout_s * 1000), deadline)
        self._browser = ServiceBrowser(self._zeroconf, self.service_types, listener=listener)

    def stop(self) -> None:
        try:
            if self._browser is not None:
                self._browser.cancel()
        finally:
            if self._zeroconf is not None:
                self._zeroconf.close()
            self._browser = None
            self._zeroconf = None


def classify_service(fullname: str, service_type: str = "") -> ServiceKind:
    advertised = f"{fullname} {service_type}"
    if PAIRING_SERVICE_MARKER in advertised:
        return ServiceKind.PAIRING
    if CONNECTION_SERVICE_MARKER in advertised:
        return ServiceKind.CONNECTION
    return ServiceKind.UNKNOWN


def ipv4_only(addresses: Iterable[str]) -> tuple[str, ...]:
    kept: list[str] = []
    for address in addresses:
        try:
            ip = ipaddress.ip_address(address)
        except ValueError:
            continue
        if ip.version == 4:
            kept.append(str(ip))
    return tuple(kept)


def build_discovered_device(
    announcement: Announcement,
    connected_identities: frozenset[str] = frozenset(),
) -> DiscoveredWirelessDevice | None:
    """Turn one announcement into a device record, or ``None`` without IPv4 addresses."""
    addresses = ipv4_only(announcement.addresses)
    if not addresses:
        return None

    kind = classify_service(announcement.fullname, announcement.service_type)
    connection_port = announcement.port if kind is ServiceKind.CONNECTION else None
    identities = {format_identity(ip, announcement.port) for ip in addresses}
    return DiscoveredWirelessDevice(
        name=announcement.fullname.split(".", 1)[0],
        fullname=announcement.fullname,
        addresses=addresses,
        port=announcement.port,
        service=kind,
        connection_port=connection_port,
        paired=kind is ServiceKind.CONNECTION,
        connected=bool(identities & connected_identities),
    )


class DiscoveryService:
    """Blocking, single-pass collection of network announcements.

    Each `discover` call moves IDLE -> LISTENING -> DRAINING -> IDLE and returns
    one snapshot. Concurrent windows on the same instance are not supported.
    """

    def __init__(
        self,
        settings: DiscoverySettings | None = None,
        *,
        source_factory: Callable[[DiscoverySettings], AnnouncementSource] | None = None,
        connected_identities: Callable[[], Iterable[str]] | None = None,
    ) -> None:
        self.settings = settings or DiscoverySettings()
        self._source_factory = source_factory or (
            lambda s: ZeroconfAnnouncementSource(
                s.service_types,
                resolve_timeout_s=s.resolve_timeout_s,
                window_s=s.window_s,
            )
        )
        self._connected_identities = connected_identities
        self._state = DiscoveryState.IDLE
        self._last_snapshot: tuple[DiscoveredWirelessDevice, ...] = ()

    @property
    def state(self) -> DiscoveryState:
        return self._state

    @property
    def last_snapshot(self) -> tuple[DiscoveredWirelessDevice, ...]:
        return self._last_snapshot

    def discover(self, window_s: float | None = None) -> list[DiscoveredWirelessDevice]:
        window = self.settings.window_s if window_s is None else window_s
        events: queue.Queue[Announcement] = queue.Queue()
        source = self._source_factory(replace(self.settings, window_s=window))

        try:
            source.start(events.put)
        except Exception as exc:
            self._stop_quietly(source)
            raise DiscoveryError(f"Could not start service discovery: {exc}") from exc

        self._state = DiscoveryState.LISTENING
        LOGGER.debug("Listening for announcements for %.1fs", window)
        connected = self._connected()
        found: dict[str, DiscoveredWirelessDevice] = {}
        try:
            deadline = time.monotonic() + window
            while time.monotonic() < deadline:
                try:
                    announcement = events.get(timeout=self.settings.poll_interval_s)
                except queue.Empty:
                    continue
                self._accept(announcement, connected, found)
        finally:
            self._state = DiscoveryState.DRAINING
            try:
                source.stop()
            except Exception as exc:
                self._state = DiscoveryState.IDLE
                raise DiscoveryError(f"Could not stop service discovery: {exc}") from exc

        while True:
            try:
                self._accept(events.get_nowait(), connected, found)
            except queue.Empty:
                break

        self._state = DiscoveryState.IDLE
        self._last_snapshot = tuple(found.values())
        LOGGER.info("Discovery finished with %d device(s)", len(found))
        return list(found.values())

    def connection_port_for(self, ip: str) -> int | None:
        """Connection port advertised for *ip* in the most recent snapshot."""
        for device in self._last_snapshot:
            if ip in device.addresses and device.connection_port is not None:
                return device.connection_port
        return None

    def _accept(
        self,
        announcement: Announcement,
        connected: frozenset[str],
        found: dict[str, DiscoveredWirelessDevice],
    ) -> None:
        device = build_discovered_device(announcement, connected)
        if device is None:
            LOGGER.debug("Dropping %s: no IPv4 address", announcement.fullname)
            return
        found[device.fullname] = device

    def _connected(self) -> frozenset[str]:
        if self._connected_identities is None:
            return frozenset()
        try:
            return frozenset(self._connected_identities())
        except Exception as exc:
            LOGGER.debug("Could not list connected devices: %s", exc)
            return frozenset()

    @staticmethod
    def _stop_quietly(source: AnnouncementSource) -> None:
        try:
            source.stop()
        except Exception as exc:
            LOGGER.debug("Ignoring stop failure after failed start: %s", exc)
