"""Transport interfaces."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, Protocol

from adbutils import AdbError, AdbTimeout

from droidctl.core.errors import CommunicationError
from droidctl.core.model import TransportKind

LOGGER = logging.getLogger(__name__)


class Transport(Protocol):
    kind: TransportKind
    identity: str

    def execute(self, command: Sequence[str]) -> bytes:
        """Run an argv-style command on the device shell and return raw output."""

    def close(self) -> None:
        """Release the link handle."""


class ShellTransport:
    """Shell command channel over an `adbutils.AdbDevice` handle.

    Subclasses only decide how the handle is obtained; the command contract is
    shared so downstream parsing never depends on the link kind.
    """

    kind: TransportKind

    def __init__(self, device: Any, *, identity: str, timeout_s: float = 10.0) -> None:
        self._device = device
        self.identity = identity
        self.timeout_s = timeout_s

    @property
    def closed(self) -> bool:
        return self._device is None

    def execute(self, command: Sequence[str]) -> bytes:
        if self._device is None:
            raise CommunicationError(f"Transport to {self.identity} is closed")
        argv = list(command)
        LOGGER.debug("%s %s: %s", self.kind.value, self.identity, argv)
        try:
            output = self._device.shell(argv, timeout=self.timeout_s, encoding=None)
        except AdbTimeout as exc:
            raise CommunicationError(
                f"Command {' '.join(argv)!r} timed out on {self.identity}"
            ) from exc
        except (AdbError, OSError) as exc:
            raise CommunicationError(
                f"Command {' '.join(argv)!r} failed on {self.identity}: {exc}"
            ) from exc
        if isinstance(output, str):
            return output.encode("utf-8")
        return bytes(output)

    def close(self) -> None:
        self._device = None

    def __enter__(self) -> ShellTransport:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(identity={self.identity!r})"
