"""Best-effort system reports composed from shell commands and parsers."""

from __future__ import annotations

from droidctl.core import parsers
from droidctl.core.device_info import fetch_property, run_text
from droidctl.core.model import (
    BatteryInfo,
    BuildInfo,
    DisplayInfo,
    HardwareInfo,
    NetworkInfo,
    NetworkProbeSettings,
    SystemReport,
)
from droidctl.transports.base import Transport

DATA_PARTITION = "/data"

BUILD_PROPERTIES = {
    "fingerprint": "ro.build.fingerprint",
    "build_date": "ro.build.date",
    "build_user": "ro.build.user",
    "build_host": "ro.build.host",
    "security_patch": "ro.build.version.security_patch",
    "bootloader": "ro.bootloader",
    "baseband": "ro.baseband",
    "build_id": "ro.build.id",
    "build_tags": "ro.build.tags",
    "build_type": "ro.build.type",
}


def fetch_hardware_info(transport: Transport) -> HardwareInfo:
    meminfo = run_text(transport, ["cat", "/proc/meminfo"]) or ""
    df = run_text(transport, ["df", "-h", DATA_PARTITION]) or ""
    storage = parsers.parse_storage_usage(df, DATA_PARTITION)
    return HardwareInfo(
        cpu_architecture=fetch_property(transport, "ro.product.cpu.abi"),
        cpu_abi_list=fetch_property(transport, "ro.product.cpu.abilist"),
        total_memory=parsers.parse_memory_field(meminfo, "MemTotal"),
        available_memory=parsers.parse_memory_field(meminfo, "MemAvailable"),
        internal_storage_total=storage.total if storage else None,
        internal_storage_available=storage.available if storage else None,
        manufacturer=fetch_property(transport, "ro.product.manufacturer"),
        brand=fetch_property(transport, "ro.product.brand"),
        board=fetch_property(transport, "ro.product.board"),
        hardware=fetch_property(transport, "ro.hardware"),
    )


def fetch_display_info(transport: Transport) -> DisplayInfo:
    size = run_text(transport, ["wm", "size"]) or ""
    density = run_text(transport, ["wm", "density"]) or ""
    display = run_text(transport, ["dumpsys", "display"]) or ""
    input_dump = run_text(transport, ["dumpsys", "input"]) or ""
    lcd_density = fetch_property(transport, "ro.sf.lcd_density")
    return DisplayInfo(
        resolution=parsers.parse_labeled_value(size, "Physical size:"),
        density=parsers.parse_labeled_value(density, "Physical density:"),
        lcd_density=f"{lcd_density} dpi" if lcd_density else None,
        refresh_rate=parsers.parse_refresh_rate(display),
        orientation=parsers.parse_orientation(input_dump),
    )


def fetch_battery_info(transport: Transport) -> BatteryInfo | None:
    """Battery report, or ``None`` when the battery service cannot be queried."""
    output = run_text(transport, ["dumpsys", "battery"])
    if output is None:
        return None
    return parsers.parse_battery(output)


def fetch_build_info(transport: Transport) -> BuildInfo:
    return BuildInfo(**{key: fetch_property(transport, prop) for key, prop in BUILD_PROPERTIES.items()})


def fetch_network_info(
    transport: Transport,
    probe: NetworkProbeSettings | None = None,
) -> NetworkInfo:
    probe = probe or NetworkProbeSettings()
    wifi = run_text(transport, ["dumpsys", "wifi"])
    telephony = run_text(transport, ["dumpsys", "telephony.registry"])
    interfaces = parsers.parse_network_interfaces(run_text(transport, ["ip", "addr", "show"]) or "")

    radio_type = None
    if not parsers.wifi_connected(wifi) and parsers.mobile_data_connected(telephony):
        radio_type = fetch_property(transport, "gsm.network.type")

    ping = run_text(transport, ["ping", "-c", str(probe.count), probe.target])
    speed = parsers.estimate_throughput(ping)

    return NetworkInfo(
        wifi_status=parsers.parse_wifi_status(wifi or ""),
        connection_type=parsers.classify_connection(wifi, telephony, radio_type, interfaces),
        signal_strength=parsers.parse_signal_strength(telephony, wifi),
        upload_speed=speed,
        download_speed=speed,
        ip_addresses=tuple(i.ip_address for i in interfaces if i.ip_address),
        mac_addresses=tuple(i.mac_address for i in interfaces if i.mac_address),
        network_interfaces=tuple(interfaces),
    )


def fetch_system_report(
    transport: Transport,
    probe: NetworkProbeSettings | None = None,
) -> SystemReport:
    return SystemReport(
        hardware=fetch_hardware_info(transport),
        display=fetch_display_info(transport),
        battery=fetch_battery_info(transport),
        build=fetch_build_info(transport),
        network=fetch_network_info(transport, probe),
    )
