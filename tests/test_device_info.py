from __future__ import annotations

from collections.abc import Sequence

import pytest

from droidctl.core.device_info import build_report, fetch_property, run_text
from droidctl.core.errors import CommunicationError, PartialDataUnavailable
from droidctl.core.model import TransportKind


class ScriptedTransport:
    kind = TransportKind.USB
    identity = "R58M123ABC"

    def __init__(self, outputs: dict[tuple[str, ...], bytes]) -> None:
        self.outputs = outputs

    def execute(self, command: Sequence[str]) -> bytes:
        try:
            return self.outputs[tuple(command)]
        except KeyError:
            raise CommunicationError(f"no output for {command}") from None

    def close(self) -> None:
        pass


FULL = {
    ("getprop", "ro.serialno"): b"R58M123ABC\n",
    ("getprop", "ro.product.model"): b"  SM-G991B \n",
    ("getprop", "ro.build.version.release"): b"13\n",
    ("getprop", "ro.build.version.sdk"): b"33\n",
}


def test_build_report_trims_properties() -> None:
    report = build_report(ScriptedTransport(FULL))
    assert report.transport is TransportKind.USB
    assert report.serial_no == "R58M123ABC"
    assert report.model == "SM-G991B"
    assert report.android_version == "13"
    assert report.sdk_version == "33"


def test_missing_property_fails_whole_report() -> None:
    partial = dict(FULL)
    del partial[("getprop", "ro.build.version.sdk")]
    with pytest.raises(PartialDataUnavailable, match="ro.build.version.sdk"):
        build_report(ScriptedTransport(partial))


def test_empty_property_is_a_value() -> None:
    props = dict(FULL)
    props[("getprop", "ro.product.model")] = b"\n"
    assert build_report(ScriptedTransport(props)).model == ""


def test_failed_command_degrades_to_none() -> None:
    transport = ScriptedTransport({})
    assert run_text(transport, ["dumpsys", "battery"]) is None
    assert fetch_property(transport, "ro.hardware") is None
