"""Domain-specific errors for droidctl."""

from __future__ import annotations

from enum import Enum


class DroidctlError(Exception):
    """Base error for droidctl."""


class ConfigValidationError(DroidctlError):
    """Raised when a configuration file does not conform to schema or semantics."""


class ConfigLoadError(DroidctlError):
    """Raised when reading configuration sources fails."""


class TransportError(DroidctlError):
    """Base transport error."""


class NoDeviceFound(TransportError):
    """Raised when wired autodetect finds zero or several devices."""


class ConnectionRefused(TransportError):
    """Raised when a network connect is refused."""


class ConnectionTimeout(TransportError):
    """Raised when a network connect times out."""


class CommunicationError(TransportError):
    """Raised when executing a command on a transport fails."""


class InvalidAddress(DroidctlError):
    """Raised when an IP address argument is not a valid IPv4 literal."""


class InvalidPairingCode(DroidctlError):
    """Raised when a pairing code is not exactly six ASCII digits."""


class PairingFailure(str, Enum):
    PARSE_ERROR = "parse-error"
    CONNECTION_REFUSED = "connection-refused"
    TIMEOUT = "timeout"
    OTHER = "other"


class PairingProtocolError(DroidctlError):
    """Raised when the pairing handshake fails."""

    def __init__(self, message: str, kind: PairingFailure = PairingFailure.OTHER) -> None:
        super().__init__(message)
        self.kind = kind


class PartialDataUnavailable(DroidctlError):
    """Raised when a device report cannot be fully assembled."""


class DiscoveryError(DroidctlError):
    """Raised when the network announcement listener cannot be started or stopped."""


class FileTransferError(DroidctlError):
    """Raised when a pulled file cannot be written locally."""
