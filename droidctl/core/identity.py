"""Device identity strings and transport re-derivation."""

from __future__ import annotations

import ipaddress
import logging
from collections.abc import Callable

from droidctl.core.errors import TransportError
from droidctl.transports.base import Transport

LOGGER = logging.getLogger(__name__)


def format_identity(ip: str, port: int) -> str:
    return f"{ip}:{port}"


def parse_network_identity(identity: str) -> tuple[str, int] | None:
    """Return ``(ip, port)`` when *identity* is an ``<IPv4>:<port>`` string."""
    host, sep, port_text = identity.strip().rpartition(":")
    if not sep or not port_text.isascii() or not port_text.isdigit():
        return None
    try:
        ip = ipaddress.IPv4Address(host)
    except ValueError:
        return None
    port = int(port_text)
    if not 0 < port <= 65535:
        return None
    return str(ip), port


def is_network_identity(identity: str) -> bool:
    return parse_network_identity(identity) is not None


EMULATOR_SERIAL_PREFIX = "emulator-"
MDNS_SERIAL_SUFFIXES = ("._adb-tls-connect._tcp", "._adb._tcp")


def is_usb_serial(serial: str) -> bool:
    """True for serials the adb server reports for USB-attached devices.

    Network links appear as ``ip:port``, as emulator consoles
    (``emulator-5554``) or as mDNS service names
    (``adb-<serial>-xxxx._adb-tls-connect._tcp``).
    """
    serial = serial.strip()
    if not serial or is_network_identity(serial):
        return False
    if serial.startswith(EMULATOR_SERIAL_PREFIX):
        return False
    return not serial.rstrip(".").endswith(MDNS_SERIAL_SUFFIXES)


def reconnect(
    identity: str,
    *,
    wired: Callable[[], Transport],
    network: Callable[[str, int], Transport],
) -> Transport | None:
    """Re-derive a transport from an identity string.

    ``ip:port`` identities connect over the network to exactly that address;
    anything else falls back to wired autodetect.
    """
    address = parse_network_identity(identity)
    try:
        if address is not None:
            return network(*address)
        return wired()
    except TransportError as exc:
        LOGGER.debug("Reconnect to %s failed: %s", identity, exc)
        return None
