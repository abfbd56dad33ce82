"""Typer CLI entrypoint."""

from __future__ import annotations

import logging
from dataclasses import fields

import typer

from droidctl.core.errors import DiscoveryError, DroidctlError
from droidctl.core.model import DeviceReport, FileKind
from droidctl.core.service import DeviceService

app = typer.Typer(help="Android device control and introspection over adb")

DeviceOption = typer.Option(None, "--device", "-d", help="Serial or ip:port; defaults to the single USB device")


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging")) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _build_service() -> DeviceService:
    service = DeviceService()
    for warning in getattr(service, "load_warnings", ()):
        typer.echo(f"Warning: {warning}", err=True)
    return service


def _fail(exc: DroidctlError) -> typer.Exit:
    typer.echo(f"Error: {exc}", err=True)
    return typer.Exit(code=1)


def _echo_record(record: object) -> None:
    for item in fields(record):  # type: ignore[arg-type]
        value = getattr(record, item.name)
        if isinstance(value, tuple):
            value = ", ".join(str(v) for v in value) or "-"
        elif hasattr(value, "value"):
            value = value.value
        typer.echo(f"{item.name}: {value if value is not None else '-'}")


def _echo_report(report: DeviceReport) -> None:
    typer.echo(
        f"{report.serial_no} {report.model} (Android {report.android_version}, "
        f"SDK {report.sdk_version}) via {report.transport.value}"
    )


@app.command("devices")
def list_devices() -> None:
    """List devices currently known to the adb server."""
    try:
        devices = _build_service().list_devices()
        if not devices:
            typer.echo("No devices found")
            return
        for device in devices:
            if not device.is_connected:
                typer.echo(f"{device.identity} {device.transport.value} {device.state}")
                continue
            typer.echo(
                f"{device.identity} {device.transport.value} {device.model or '<unknown-model>'} "
                f"Android {device.android_version or '?'}"
            )
    except DroidctlError as exc:
        raise _fail(exc) from None


@app.command("connect")
def connect(
    ip: str,
    port: int | None = typer.Argument(None, help="Connection port; defaults to pairing.default_connection_port"),
) -> None:
    """Connect to a device over the network."""
    try:
        _echo_report(_build_service().connect(ip, port))
    except DroidctlError as exc:
        raise _fail(exc) from None


@app.command("disconnect")
def disconnect(identity: str) -> None:
    """Drop a network device (ip:port) from the adb server."""
    try:
        typer.echo(_build_service().disconnect(identity))
    except DroidctlError as exc:
        raise _fail(exc) from None


@app.command("discover")
def discover(
    window: float | None = typer.Option(None, "--window", help="Listening window in seconds"),
) -> None:
    """Listen for wireless-debugging announcements on the local network."""
    try:
        devices = _build_service().discover(window)
        if not devices:
            typer.echo("No wireless devices found")
            return
        for device in devices:
            flags = []
            if device.paired:
                flags.append("paired")
            if device.connected:
                flags.append("connected")
            suffix = f" [{', '.join(flags)}]" if flags else ""
            typer.echo(
                f"{device.name} {', '.join(device.addresses)} port={device.port} "
                f"service={device.service.value}{suffix}"
            )
    except DroidctlError as exc:
        raise _fail(exc) from None


@app.command("pair")
def pair(
    ip: str,
    port: int,
    code: str,
    discover: bool = typer.Option(
        True,
        "--discover/--no-discover",
        help="Listen for the advertised connection port before pairing",
    ),
) -> None:
    """Pair with a device using its six-digit pairing code, then connect."""
    try:
        service = _build_service()
        if discover:
            try:
                service.discover()
            except DiscoveryError as exc:
                typer.echo(f"Warning: {exc}; trying candidate connection ports", err=True)
        report = service.pair(ip, port, code)
        typer.echo("Paired and connected:")
        _echo_report(report)
    except DroidctlError as exc:
        raise _fail(exc) from None


@app.command("pairing-qr")
def pairing_qr(host: str | None = typer.Option(None, "--host", help="Host IPv4 address")) -> None:
    """Print a QR payload for pairing a device with this host."""
    try:
        data = _build_service().pairing_data(host)
        typer.echo(f"Host: {data.ip}:{data.port}")
        typer.echo(f"QR: {data.qr_data}")
    except DroidctlError as exc:
        raise _fail(exc) from None


@app.command("info")
def info(device: str | None = DeviceOption) -> None:
    """Show serial, model and Android version."""
    try:
        _echo_report(_build_service().device_report(device))
    except DroidctlError as exc:
        raise _fail(exc) from None


@app.command("ls")
def list_files(path: str = typer.Argument("/sdcard"), device: str | None = DeviceOption) -> None:
    """List a directory on the device."""
    try:
        for entry in _build_service().list_files(path, device):
            size = "" if entry.size is None else str(entry.size)
            name = entry.name
            if entry.kind is FileKind.SYMLINK:
                name = f"{name} -> {entry.link_target}"
            elif entry.kind is FileKind.DIRECTORY:
                name = f"{name}/"
            typer.echo(f"{entry.permissions} {size:>10} {name}")
    except DroidctlError as exc:
        raise _fail(exc) from None


@app.command("pull")
def pull(remote: str, local: str, device: str | None = DeviceOption) -> None:
    """Copy a file from the device to a local path."""
    try:
        target = _build_service().pull_file(remote, local, device)
        typer.echo(f"Pulled {remote} -> {target}")
    except DroidctlError as exc:
        raise _fail(exc) from None


@app.command("shell")
def shell(command: str, device: str | None = DeviceOption) -> None:
    """Run a shell command on the device."""
    try:
        typer.echo(_build_service().run_command(command, device), nl=False)
    except DroidctlError as exc:
        raise _fail(exc) from None


@app.command("packages")
def packages(device: str | None = DeviceOption) -> None:
    """List installed packages."""
    try:
        for package in _build_service().list_packages(device):
            typer.echo(package)
    except DroidctlError as exc:
        raise _fail(exc) from None


@app.command("logcat")
def logcat(lines: int = typer.Option(500, "--lines", "-n"), device: str | None = DeviceOption) -> None:
    """Dump the most recent log lines."""
    try:
        typer.echo(_build_service().logcat(lines, device), nl=False)
    except DroidctlError as exc:
        raise _fail(exc) from None


@app.command("hardware")
def hardware(device: str | None = DeviceOption) -> None:
    """Show CPU, memory and storage facts."""
    try:
        _echo_record(_build_service().hardware_info(device))
    except DroidctlError as exc:
        raise _fail(exc) from None


@app.command("display")
def display(device: str | None = DeviceOption) -> None:
    """Show resolution, density, refresh rate and orientation."""
    try:
        _echo_record(_build_service().display_info(device))
    except DroidctlError as exc:
        raise _fail(exc) from None


@app.command("battery")
def battery(device: str | None = DeviceOption) -> None:
    """Show battery state."""
    try:
        report = _build_service().battery_info(device)
        if report is None:
            typer.echo("No battery information available")
            return
        _echo_record(report)
    except DroidctlError as exc:
        raise _fail(exc) from None


@app.command("build")
def build(device: str | None = DeviceOption) -> None:
    """Show build fingerprint and related properties."""
    try:
        _echo_record(_build_service().build_info(device))
    except DroidctlError as exc:
        raise _fail(exc) from None


@app.command("network")
def network(device: str | None = DeviceOption) -> None:
    """Show connectivity, signal strength and interfaces."""
    try:
        report = _build_service().network_info(device)
        for name in ("wifi_status", "connection_type", "signal_strength", "download_speed"):
            value = getattr(report, name)
            typer.echo(f"{name}: {value if value is not None else '-'}")
        for interface in report.network_interfaces:
            typer.echo(
                f"  {interface.name} {interface.status} "
                f"{interface.ip_address or '-'} {interface.mac_address or '-'}"
            )
    except DroidctlError as exc:
        raise _fail(exc) from None


@app.command("sysinfo")
def system_report(device: str | None = DeviceOption) -> None:
    """Show the full system report."""
    try:
        report = _build_service().system_report(device)
        for section in ("hardware", "display", "battery", "build", "network"):
            typer.echo(f"[{section}]")
            value = getattr(report, section)
            if value is None:
                typer.echo("unavailable")
            else:
                _echo_record(value)
    except DroidctlError as exc:
        raise _fail(exc) from None


def run() -> None:
    app()


if __name__ == "__main__":
    run()
