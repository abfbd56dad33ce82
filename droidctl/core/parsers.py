"""Tolerant parsers for device shell output.

Every function here is pure and total: malformed or truncated input yields
fewer entries or ``None`` fields, never an exception.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from droidctl.core.model import (
    BatteryInfo,
    FileEntry,
    FileKind,
    NetworkInterfaceRecord,
    StorageUsage,
)

_LISTING_FIELDS = 8
_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")
_SYMLINK_SEPARATOR = " -> "
_INTERFACE_NAME_TOKENS = ("wlan", "eth", "lo", "rmnet", "ccmni")
_INTERFACE_HEADER_RE = re.compile(r"^\d+:\s+(\S+?):?\s")
_UP_RE = re.compile(r"\bUP\b")
_DATA_CONNECTED_RE = re.compile(r"mDataConnectionState=2\b|\bCONNECTED\b")
_TELEPHONY_RSSI_RE = re.compile(r"rssi=(-?\d+)")
_WIFI_RSSI_RE = re.compile(r"rssi:\s*(-?\d+)", re.IGNORECASE)
_PING_SUMMARY_RE = re.compile(r"min/avg/max\S*\s*=\s*([\d.]+)/([\d.]+)/")

ORIENTATIONS = {
    "0": "Portrait",
    "1": "Landscape",
    "2": "Reverse Portrait",
    "3": "Reverse Landscape",
}

MOBILE_GENERATIONS = {
    "LTE": "4G LTE",
    "LTEA": "4G LTE",
    "UMTS": "3G",
    "HSDPA": "3G",
    "HSUPA": "3G",
    "HSPA": "3G",
    "EDGE": "2G",
    "GPRS": "2G",
    "NR": "5G",
}


def decode_output(raw: bytes) -> str:
    return raw.decode("utf-8", errors="replace")


def parse_property(text: str) -> str:
    return text.strip()


def _parse_unsigned(value: str) -> int | None:
    if value.isascii() and value.isdigit():
        return int(value)
    return None


def join_device_path(directory: str, name: str) -> str:
    if directory.endswith("/"):
        return f"{directory}{name}"
    return f"{directory}/{name}"


def parse_file_listing(text: str, directory: str) -> list[FileEntry]:
    """Parse ``ls -la`` output for *directory* into file entries."""
    entries: list[FileEntry] = []
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("total "):
            continue

        # toybox prints an ISO date and time; busybox prints "Mon DD HH:MM" or "Mon DD YYYY"
        fields = stripped.split(None, _LISTING_FIELDS)
        if len(fields) > 5 and fields[5] in _MONTHS:
            if len(fields) <= _LISTING_FIELDS:
                continue
        else:
            fields = stripped.split(None, _LISTING_FIELDS - 1)
            if len(fields) < _LISTING_FIELDS:
                continue

        permissions, raw_name = fields[0], fields[-1]
        marker = permissions[0]
        link_target: str | None = None
        if marker == "d":
            kind = FileKind.DIRECTORY
            name = raw_name
            size = None
        elif marker == "-":
            kind = FileKind.FILE
            name = raw_name
            size = _parse_unsigned(fields[4])
        elif marker == "l":
            kind = FileKind.SYMLINK
            name, sep, target = raw_name.partition(_SYMLINK_SEPARATOR)
            link_target = target if sep else ""
            size = _parse_unsigned(fields[4])
        else:
            continue

        if name in (".", ".."):
            continue

        entries.append(
            FileEntry(
                name=name,
                directory=directory,
                path=join_device_path(directory, name),
                kind=kind,
                size=size,
                permissions=permissions,
                link_target=link_target,
            )
        )
    return entries


def format_memory(kb: int) -> str:
    mb = kb // 1024
    if mb >= 1024:
        return f"{mb / 1024:.1f} GB"
    return f"{mb} MB"


def parse_memory_field(text: str, field: str) -> str | None:
    """Read *field* (e.g. ``MemTotal``) from ``/proc/meminfo`` output."""
    for line in text.splitlines():
        if not line.startswith(field):
            continue
        parts = line.split()
        if len(parts) < 2:
            return None
        kb = _parse_unsigned(parts[1])
        return format_memory(kb) if kb is not None else None
    return None


def parse_storage_usage(text: str, path: str) -> StorageUsage | None:
    for line in text.splitlines():
        if path in line or line.startswith("/dev/"):
            parts = line.split()
            if len(parts) >= 4:
                return StorageUsage(total=parts[1], available=parts[3])
    return None


def parse_labeled_value(text: str, label: str) -> str | None:
    """Return the text after *label* on the first line that contains it."""
    for line in text.splitlines():
        if label in line:
            value = line.split(label, 1)[1].strip()
            return value or None
    return None


def parse_refresh_rate(text: str) -> str | None:
    value = parse_labeled_value(text, "refreshRate=")
    if value is None:
        return None
    rate = value.split(",", 1)[0].strip()
    return f"{rate} Hz" if rate else None


def decode_orientation(code: str) -> str:
    code = code.strip()
    return ORIENTATIONS.get(code, code)


def parse_orientation(text: str) -> str | None:
    value = parse_labeled_value(text, "SurfaceOrientation:")
    if value is None:
        return None
    return decode_orientation(value)


def _parse_int(value: str) -> int | None:
    try:
        return int(value.strip())
    except ValueError:
        return None


def parse_battery(text: str) -> BatteryInfo:
    """Parse ``dumpsys battery`` output; unknown or malformed lines are ignored."""
    level: int | None = None
    status: str | None = None
    health: str | None = None
    temperature: float | None = None
    voltage: int | None = None
    technology: str | None = None
    for raw_line in text.splitlines():
        line = raw_line.strip()
        label, sep, rest = line.partition(": ")
        if not sep:
            continue
        if label == "level":
            level = _parse_int(rest)
        elif label == "status":
            status = rest
        elif label == "health":
            health = rest
        elif label == "temperature":
            tenths = _parse_int(rest)
            temperature = tenths / 10.0 if tenths is not None else None
        elif label == "voltage":
            voltage = _parse_int(rest)
        elif label == "technology":
            technology = rest
    return BatteryInfo(
        level=level,
        status=status,
        health=health,
        temperature=temperature,
        voltage=voltage,
        technology=technology,
    )


def parse_network_interfaces(text: str) -> list[NetworkInterfaceRecord]:
    """Parse ``ip addr show`` output into interface records."""
    interfaces: list[NetworkInterfaceRecord] = []
    name: str | None = None
    status = "DOWN"
    ip_address: str | None = None
    mac_address: str | None = None

    for raw_line in text.splitlines():
        line = raw_line.strip()
        header = _INTERFACE_HEADER_RE.match(line + " ")
        if header:
            if name is not None:
                interfaces.append(
                    NetworkInterfaceRecord(name=name, ip_address=ip_address, mac_address=mac_address, status=status)
                )
            candidate = header.group(1)
            name = candidate if any(token in candidate for token in _INTERFACE_NAME_TOKENS) else None
            status = "UP" if _UP_RE.search(line) else "DOWN"
            ip_address = None
            mac_address = None
            continue

        if name is None:
            continue
        if line.startswith("inet ") and ip_address is None:
            parts = line.split()
            if len(parts) >= 2:
                ip_address = parts[1].split("/", 1)[0]
        elif line.startswith("link/ether "):
            parts = line.split()
            if len(parts) >= 2:
                mac_address = parts[1]

    if name is not None:
        interfaces.append(
            NetworkInterfaceRecord(name=name, ip_address=ip_address, mac_address=mac_address, status=status)
        )
    return interfaces


def parse_wifi_status(text: str) -> str | None:
    for line in text.splitlines():
        if "Wi-Fi is " in line:
            if "enabled" in line:
                return "Connected"
            if "disabled" in line:
                return "Disconnected"
    return None


def wifi_connected(wifi_dump: str | None) -> bool:
    return bool(wifi_dump) and "mWifiInfo" in wifi_dump and "state: COMPLETED" in wifi_dump


def mobile_data_connected(telephony_dump: str | None) -> bool:
    return bool(telephony_dump) and _DATA_CONNECTED_RE.search(telephony_dump) is not None


def mobile_generation(radio_type: str | None) -> str:
    if not radio_type:
        return "Mobile Data"
    primary = radio_type.split(",", 1)[0].strip().upper()
    return MOBILE_GENERATIONS.get(primary, "Mobile Data")


def classify_connection(
    wifi_dump: str | None,
    telephony_dump: str | None,
    radio_type: str | None,
    interfaces: Iterable[NetworkInterfaceRecord],
) -> str:
    if wifi_connected(wifi_dump):
        return "WiFi"
    if mobile_data_connected(telephony_dump):
        return mobile_generation(radio_type)
    for interface in interfaces:
        if "eth" in interface.name and interface.status == "UP" and interface.ip_address:
            return "Ethernet"
    return "Unknown"


def rssi_to_percent(rssi: int) -> int:
    if rssi <= -100:
        return 0
    if rssi >= -50:
        return 100
    return (rssi + 100) * 2


def parse_signal_strength(telephony_dump: str | None, wifi_dump: str | None) -> int | None:
    """Signal quality 0-100 from the telephony dump, falling back to Wi-Fi."""
    for line in (telephony_dump or "").splitlines():
        if "mSignalStrength" in line:
            match = _TELEPHONY_RSSI_RE.search(line)
            if match:
                return rssi_to_percent(int(match.group(1)))
    for line in (wifi_dump or "").splitlines():
        match = _WIFI_RSSI_RE.search(line)
        if match:
            return rssi_to_percent(int(match.group(1)))
    return None


def parse_ping_average(text: str) -> float | None:
    match = _PING_SUMMARY_RE.search(text)
    if not match:
        return None
    try:
        return float(match.group(2))
    except ValueError:
        return None


def estimate_throughput(ping_output: str | None) -> str | None:
    average = parse_ping_average(ping_output or "")
    if average is None:
        return None
    if average < 50.0:
        return "Good (>10 Mbps)"
    if average < 100.0:
        return "Fair (1-10 Mbps)"
    return "Slow (<1 Mbps)"


def parse_packages(text: str) -> list[str]:
    return [
        line.strip()[len("package:"):]
        for line in text.splitlines()
        if line.strip().startswith("package:")
    ]
