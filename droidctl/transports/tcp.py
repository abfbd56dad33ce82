"""Network (TCP) transport backed by the local adb server."""

from __future__ import annotations

import logging
from typing import Any

from adbutils import AdbError, AdbTimeout

from droidctl.core.errors import ConnectionRefused, ConnectionTimeout
from droidctl.core.identity import format_identity
from droidctl.core.model import TransportKind
from droidctl.transports.base import ShellTransport

LOGGER = logging.getLogger(__name__)

_CONNECTED_PREFIXES = ("connected to", "already connected to")


class NetworkTransport(ShellTransport):
    kind = TransportKind.TCP

    @classmethod
    def connect(
        cls,
        client: Any,
        ip: str,
        port: int,
        *,
        connect_timeout_s: float = 5.0,
        timeout_s: float = 10.0,
    ) -> NetworkTransport:
        addr = format_identity(ip, port)
        try:
            response = client.connect(addr, timeout=connect_timeout_s)
        except AdbTimeout as exc:
            raise ConnectionTimeout(f"Connection to {addr} timed out") from exc
        except TimeoutError as exc:
            raise ConnectionTimeout(f"Connection to {addr} timed out") from exc
        except (AdbError, OSError) as exc:
            raise ConnectionRefused(f"Connection to {addr} failed: {exc}") from exc

        message = (response or "").strip()
        lowered = message.lower()
        if not lowered.startswith(_CONNECTED_PREFIXES):
            if "timed out" in lowered or "timeout" in lowered:
                raise ConnectionTimeout(f"Connection to {addr} timed out: {message}")
            raise ConnectionRefused(f"Connection to {addr} refused: {message or 'no response'}")

        LOGGER.info("Connected to %s", addr)
        return cls(client.device(serial=addr), identity=addr, timeout_s=timeout_s)
