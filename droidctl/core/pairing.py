"""Wireless-debugging pairing: code validation, handshake, and port resolution."""

from __future__ import annotations

import ipaddress
import logging
import secrets
import string
import subprocess
from collections.abc import Callable
from dataclasses import replace

from droidctl.core.device_info import build_report
from droidctl.core.errors import (
    InvalidAddress,
    InvalidPairingCode,
    PairingFailure,
    PairingProtocolError,
    TransportError,
)
from droidctl.core.identity import format_identity
from droidctl.core.model import DeviceReport, PairingData, PairingRecord, PairingSettings
from droidctl.transports.base import Transport

LOGGER = logging.getLogger(__name__)

PAIRING_CODE_LENGTH = 6
_ASCII_DIGITS = frozenset(string.digits)
_SUCCESS_MARKER = "successfully paired"

_FAILURE_MESSAGES = {
    PairingFailure.PARSE_ERROR: (
        "Pairing with {addr} failed: the device reply could not be parsed. "
        "Make sure you are using the pairing port shown in the pairing dialog, not the connection port."
    ),
    PairingFailure.CONNECTION_REFUSED: (
        "Pairing with {addr} failed: connection refused. "
        "Keep the 'Pair device with pairing code' dialog open on the device and check the port."
    ),
    PairingFailure.TIMEOUT: (
        "Pairing with {addr} timed out. "
        "Make sure the device and this computer are on the same network."
    ),
    PairingFailure.OTHER: "Pairing with {addr} failed: {detail}",
}


def validate_pairing_code(code: str) -> str:
    """Return the trimmed code, or raise `InvalidPairingCode`."""
    trimmed = code.strip()
    if len(trimmed) != PAIRING_CODE_LENGTH or not set(trimmed) <= _ASCII_DIGITS:
        raise InvalidPairingCode("Pairing code must be exactly 6 digits")
    return trimmed


def validate_ipv4(ip: str) -> str:
    try:
        return str(ipaddress.IPv4Address(ip.strip()))
    except ValueError as exc:
        raise InvalidAddress(f"Invalid IP address format: {ip!r}") from exc


def classify_pairing_failure(detail: str) -> PairingFailure:
    lowered = detail.lower()
    if "protocol fault" in lowered or "parse" in lowered or "malformed" in lowered:
        return PairingFailure.PARSE_ERROR
    if "refused" in lowered:
        return PairingFailure.CONNECTION_REFUSED
    if "timed out" in lowered or "timeout" in lowered:
        return PairingFailure.TIMEOUT
    return PairingFailure.OTHER


def pairing_error(record: PairingRecord, detail: str, kind: PairingFailure | None = None) -> PairingProtocolError:
    kind = kind or classify_pairing_failure(detail)
    addr = format_identity(record.ip, record.port)
    message = _FAILURE_MESSAGES[kind].format(addr=addr, detail=detail.strip() or "unknown error")
    return PairingProtocolError(message, kind)


class AdbPairHandshake:
    """Runs the pairing handshake through the ``adb pair`` command."""

    def __init__(self, executable: str = "adb", *, timeout_s: float = 30.0) -> None:
        self.executable = executable
        self.timeout_s = timeout_s

    def __call__(self, record: PairingRecord) -> str:
        cmd = [self.executable, "pair", format_identity(record.ip, record.port), record.code]
        try:
            result = subprocess.run(
                cmd,
                check=False,
                capture_output=True,
                text=True,
                timeout=self.timeout_s,
            )
        except subprocess.TimeoutExpired as exc:
            raise pairing_error(record, str(exc), PairingFailure.TIMEOUT) from exc
        except OSError as exc:
            raise pairing_error(record, f"could not run {self.executable}: {exc}", PairingFailure.OTHER) from exc

        output = f"{result.stdout or ''}\n{result.stderr or ''}".strip()
        if result.returncode != 0 or _SUCCESS_MARKER not in output.lower():
            raise pairing_error(record, output or f"exit code {result.returncode}")
        return output


class PairingWorkflow:
    def __init__(
        self,
        settings: PairingSettings | None = None,
        *,
        connector: Callable[[str, int], Transport],
        handshake: Callable[[PairingRecord], str] | None = None,
        advertised_port: Callable[[str], int | None] | None = None,
    ) -> None:
        self.settings = settings or PairingSettings()
        self._connector = connector
        self._handshake = handshake or AdbPairHandshake()
        self._advertised_port = advertised_port or (lambda ip: None)

    def pair(self, ip: str, port: int, code: str) -> DeviceReport:
        record = PairingRecord(ip=validate_ipv4(ip), port=port, code=validate_pairing_code(code))

        LOGGER.info("Pairing with %s", format_identity(record.ip, record.port))
        self._handshake(record)

        connection_port = self.resolve_connection_port(record.ip)
        LOGGER.info("Attempting to connect to paired device on port %d", connection_port)
        try:
            transport = self._connector(record.ip, connection_port)
        except TransportError as exc:
            raise type(exc)(
                f"Failed to connect to paired device on port {connection_port}. "
                "The device may not be advertising a connection service or wireless debugging "
                f"may have been disabled. ({exc})"
            ) from exc

        try:
            report = build_report(transport)
        finally:
            transport.close()
        return replace(report, serial_no=format_identity(record.ip, connection_port))

    def resolve_connection_port(self, ip: str) -> int:
        advertised = self._advertised_port(ip)
        if advertised is not None:
            LOGGER.debug("Using advertised connection port %d for %s", advertised, ip)
            return advertised

        for candidate in self.settings.candidate_ports:
            try:
                probe = self._connector(ip, candidate)
            except TransportError as exc:
                LOGGER.debug("Probe %s failed: %s", format_identity(ip, candidate), exc)
                continue
            probe.close()
            return candidate

        return self.settings.default_connection_port

    def pairing_data(self, host_ip: str | None = None) -> PairingData:
        """QR payload for pairing a device with this host."""
        ip = validate_ipv4(host_ip) if host_ip else self.settings.fallback_host_ip
        service_name = f"droidctl-{secrets.token_hex(3)}"
        password = "".join(secrets.choice(string.digits) for _ in range(PAIRING_CODE_LENGTH))
        return PairingData(
            ip=ip,
            port=self.settings.default_pairing_port,
            service_name=service_name,
            password=password,
            qr_data=f"WIFI:T:ADB;S:{service_name};P:{password};;",
        )

