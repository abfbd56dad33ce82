"""Device identity aggregation and shared command helpers."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from droidctl.core.errors import CommunicationError, PartialDataUnavailable
from droidctl.core.model import DeviceReport
from droidctl.core.parsers import decode_output, parse_property
from droidctl.transports.base import Transport

LOGGER = logging.getLogger(__name__)

SERIAL_PROPERTY = "ro.serialno"
MODEL_PROPERTY = "ro.product.model"
ANDROID_VERSION_PROPERTY = "ro.build.version.release"
SDK_VERSION_PROPERTY = "ro.build.version.sdk"


def run_text(transport: Transport, command: Sequence[str]) -> str | None:
    """Execute *command* and decode its output, or ``None`` if execution failed."""
    try:
        return decode_output(transport.execute(command))
    except CommunicationError as exc:
        LOGGER.debug("Degraded result for %s: %s", list(command), exc)
        return None


def fetch_property(transport: Transport, name: str) -> str | None:
    text = run_text(transport, ["getprop", name])
    return parse_property(text) if text is not None else None


def build_report(transport: Transport) -> DeviceReport:
    """Fetch the four identity properties; all of them must be present."""
    values: dict[str, str] = {}
    for key, prop in (
        ("serial_no", SERIAL_PROPERTY),
        ("model", MODEL_PROPERTY),
        ("android_version", ANDROID_VERSION_PROPERTY),
        ("sdk_version", SDK_VERSION_PROPERTY),
    ):
        value = fetch_property(transport, prop)
        if value is None:
            raise PartialDataUnavailable(
                f"Failed to get device info: property '{prop}' unavailable on {transport.identity}"
            )
        values[key] = value
    return DeviceReport(transport=transport.kind, **values)
