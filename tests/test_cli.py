from __future__ import annotations

from typer.testing import CliRunner

from droidctl import cli
from droidctl.core.errors import DiscoveryError, InvalidPairingCode, NoDeviceFound
from droidctl.core.model import (
    BatteryInfo,
    BuildInfo,
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
    SystemReport,
    TransportKind,
)

REPORT = DeviceReport(
    transport=TransportKind.TCP,
    serial_no="192.168.1.20:5555",
    model="Pixel 7",
    android_version="14",
    sdk_version="34",
)


class FakeService:
    load_warnings: tuple[str, ...] = ()

    def list_devices(self):
        return [ConnectedDevice(identity="ABC123", transport=TransportKind.USB, model="Pixel 7", android_version="14")]

    def connect(self, ip, port):
        return REPORT

    def disconnect(self, identity):
        return f"disconnected {identity}"

    def discover(self, window_s=None):
        return [
            DiscoveredWirelessDevice(
                name="adb-XYZ",
                fullname="adb-XYZ._adb-tls-connect._tcp.local.",
                addresses=("192.168.1.20",),
                port=41234,
                service=ServiceKind.CONNECTION,
                connection_port=41234,
                paired=True,
                connected=True,
            )
        ]

    def pair(self, ip, port, code):
        return REPORT

    def pairing_data(self, host_ip=None):
        return PairingData(
            ip=host_ip or "192.168.1.100",
            port=37000,
            service_name="droidctl-abc123",
            password="123456",
            qr_data="WIFI:T:ADB;S:droidctl-abc123;P:123456;;",
        )

    def device_report(self, identity=None):
        return REPORT

    def list_files(self, path, identity=None):
        return [
            FileEntry("DCIM", path, f"{path}/DCIM", FileKind.DIRECTORY, None, "drwxrwx--x"),
            FileEntry("sdcard", path, f"{path}/sdcard", FileKind.SYMLINK, 21, "lrwxrwxrwx", "/storage/self/primary"),
        ]

    def pull_file(self, remote_path, local_path, identity=None):
        return local_path

    def run_command(self, command, identity=None):
        return "hello\n"

    def list_packages(self, identity=None):
        return ["com.android.chrome"]

    def logcat(self, lines, identity=None):
        return f"{lines} lines\n"

    def hardware_info(self, identity=None):
        return HardwareInfo(cpu_architecture="arm64-v8a", total_memory="7.5 GB")

    def display_info(self, identity=None):
        return DisplayInfo(resolution="1080x2400", orientation="Portrait")

    def battery_info(self, identity=None):
        return BatteryInfo(level=85, temperature=28.7)

    def build_info(self, identity=None):
        return BuildInfo(build_type="user")

    def network_info(self, identity=None):
        return NetworkInfo(
            connection_type="WiFi",
            signal_strength=90,
            network_interfaces=(NetworkInterfaceRecord("wlan0", "192.168.1.20", "aa:bb:cc:dd:ee:ff", "UP"),),
        )

    def system_report(self, identity=None):
        return SystemReport(
            hardware=self.hardware_info(),
            display=self.display_info(),
            battery=None,
            build=self.build_info(),
            network=self.network_info(),
        )


runner = CliRunner()


def test_devices_command(monkeypatch):
    monkeypatch.setattr(cli, "DeviceService", FakeService)
    result = runner.invoke(cli.app, ["devices"])
    assert result.exit_code == 0
    assert "ABC123 USB Pixel 7 Android 14" in result.stdout


def test_devices_command_shows_unusable_state(monkeypatch):
    class MixedService(FakeService):
        def list_devices(self):
            return [
                ConnectedDevice(identity="XYZ789", transport=TransportKind.USB, state="unauthorized", is_connected=False)
            ]

    monkeypatch.setattr(cli, "DeviceService", MixedService)
    result = runner.invoke(cli.app, ["devices"])
    assert result.exit_code == 0
    assert "XYZ789 USB unauthorized" in result.stdout


def test_devices_command_without_devices(monkeypatch):
    class EmptyService(FakeService):
        def list_devices(self):
            return []

    monkeypatch.setattr(cli, "DeviceService", EmptyService)
    result = runner.invoke(cli.app, ["devices"])
    assert result.exit_code == 0
    assert "No devices found" in result.stdout


def test_connect_command(monkeypatch):
    monkeypatch.setattr(cli, "DeviceService", FakeService)
    result = runner.invoke(cli.app, ["connect", "192.168.1.20"])
    assert result.exit_code == 0
    assert "192.168.1.20:5555 Pixel 7 (Android 14, SDK 34) via TCP" in result.stdout


def test_connect_command_leaves_port_to_configuration(monkeypatch):
    ports = []

    class RecordingService(FakeService):
        def connect(self, ip, port):
            ports.append(port)
            return REPORT

    monkeypatch.setattr(cli, "DeviceService", RecordingService)
    assert runner.invoke(cli.app, ["connect", "192.168.1.20"]).exit_code == 0
    assert runner.invoke(cli.app, ["connect", "192.168.1.20", "5557"]).exit_code == 0
    assert ports == [None, 5557]


def test_discover_command_flags(monkeypatch):
    monkeypatch.setattr(cli, "DeviceService", FakeService)
    result = runner.invoke(cli.app, ["discover", "--window", "1"])
    assert result.exit_code == 0
    assert "adb-XYZ 192.168.1.20 port=41234 service=connection [paired, connected]" in result.stdout


def test_pair_command(monkeypatch):
    monkeypatch.setattr(cli, "DeviceService", FakeService)
    result = runner.invoke(cli.app, ["pair", "192.168.1.20", "37123", "123456"])
    assert result.exit_code == 0
    assert "Paired and connected:" in result.stdout


class SnapshotService(FakeService):
    calls: list[str] = []

    def __init__(self):
        self.snapshot_port = None

    def discover(self, window_s=None):
        self.calls.append("discover")
        devices = super().discover(window_s)
        self.snapshot_port = devices[0].connection_port
        return devices

    def pair(self, ip, port, code):
        self.calls.append("pair")
        connection_port = self.snapshot_port or 5555
        return DeviceReport(TransportKind.TCP, f"{ip}:{connection_port}", "Pixel 7", "14", "34")


def test_pair_command_listens_for_connection_port_first(monkeypatch):
    monkeypatch.setattr(SnapshotService, "calls", [])
    monkeypatch.setattr(cli, "DeviceService", SnapshotService)
    result = runner.invoke(cli.app, ["pair", "192.168.1.20", "37123", "123456"])
    assert result.exit_code == 0
    assert SnapshotService.calls == ["discover", "pair"]
    assert "192.168.1.20:41234 Pixel 7" in result.stdout


def test_pair_command_without_discovery(monkeypatch):
    monkeypatch.setattr(SnapshotService, "calls", [])
    monkeypatch.setattr(cli, "DeviceService", SnapshotService)
    result = runner.invoke(cli.app, ["pair", "192.168.1.20", "37123", "123456", "--no-discover"])
    assert result.exit_code == 0
    assert SnapshotService.calls == ["pair"]
    assert "192.168.1.20:5555 Pixel 7" in result.stdout


def test_pair_command_continues_when_discovery_fails(monkeypatch):
    class NoMulticastService(FakeService):
        def discover(self, window_s=None):
            raise DiscoveryError("Could not start mDNS browser: no multicast route")

    monkeypatch.setattr(cli, "DeviceService", NoMulticastService)
    result = runner.invoke(cli.app, ["pair", "192.168.1.20", "37123", "123456"])
    assert result.exit_code == 0
    assert "Warning: Could not start mDNS browser" in result.stderr
    assert "Paired and connected:" in result.stdout


def test_pair_command_error_is_clean(monkeypatch):
    class FailingService(FakeService):
        def pair(self, ip, port, code):
            raise InvalidPairingCode("Pairing code must be exactly 6 digits")

    monkeypatch.setattr(cli, "DeviceService", FailingService)
    result = runner.invoke(cli.app, ["pair", "192.168.1.20", "37123", "12"])
    assert result.exit_code == 1
    assert "Error: Pairing code must be exactly 6 digits" in result.stderr
    assert "Traceback" not in result.stdout
    assert "Traceback" not in result.stderr


def test_pairing_qr_command(monkeypatch):
    monkeypatch.setattr(cli, "DeviceService", FakeService)
    result = runner.invoke(cli.app, ["pairing-qr", "--host", "10.0.0.7"])
    assert result.exit_code == 0
    assert "Host: 10.0.0.7:37000" in result.stdout
    assert "QR: WIFI:T:ADB;S:droidctl-abc123;P:123456;;" in result.stdout


def test_ls_command(monkeypatch):
    monkeypatch.setattr(cli, "DeviceService", FakeService)
    result = runner.invoke(cli.app, ["ls", "/sdcard", "--device", "ABC123"])
    assert result.exit_code == 0
    assert "DCIM/" in result.stdout
    assert "sdcard -> /storage/self/primary" in result.stdout


def test_shell_and_logcat_commands(monkeypatch):
    monkeypatch.setattr(cli, "DeviceService", FakeService)
    assert runner.invoke(cli.app, ["shell", "echo hello"]).stdout == "hello\n"
    assert runner.invoke(cli.app, ["logcat", "-n", "20"]).stdout == "20 lines\n"


def test_battery_and_sysinfo_commands(monkeypatch):
    monkeypatch.setattr(cli, "DeviceService", FakeService)
    battery = runner.invoke(cli.app, ["battery"])
    assert "level: 85" in battery.stdout
    assert "technology: -" in battery.stdout

    report = runner.invoke(cli.app, ["sysinfo"])
    assert report.exit_code == 0
    assert "[battery]\nunavailable" in report.stdout
    assert "cpu_architecture: arm64-v8a" in report.stdout


def test_network_command(monkeypatch):
    monkeypatch.setattr(cli, "DeviceService", FakeService)
    result = runner.invoke(cli.app, ["network"])
    assert result.exit_code == 0
    assert "connection_type: WiFi" in result.stdout
    assert "wlan0 UP 192.168.1.20 aa:bb:cc:dd:ee:ff" in result.stdout


def test_info_command_without_device(monkeypatch):
    class NoDeviceService(FakeService):
        def device_report(self, identity=None):
            raise NoDeviceFound("No device found. Connect a device over USB and enable USB debugging.")

    monkeypatch.setattr(cli, "DeviceService", NoDeviceService)
    result = runner.invoke(cli.app, ["info"])
    assert result.exit_code == 1
    assert "Error: No device found" in result.stderr


def test_load_warning_is_printed(monkeypatch):
    class WarnService(FakeService):
        load_warnings = ("User config /tmp/cfg/droidctl/config.yaml overrides: adb.port",)

    monkeypatch.setattr(cli, "DeviceService", WarnService)
    result = runner.invoke(cli.app, ["packages"])
    assert result.exit_code == 0
    assert "com.android.chrome" in result.stdout
    assert "Warning: User config /tmp/cfg/droidctl/config.yaml overrides: adb.port" in result.stderr
