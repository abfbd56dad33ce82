"""Configuration loading and validation for YAML-based droidctl settings."""

from __future__ import annotations

import ipaddress
import json
import logging
import os
from dataclasses import dataclass
from importlib import resources
from importlib.resources.abc import Traversable
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError, validators

from droidctl.core.errors import ConfigLoadError, ConfigValidationError
from droidctl.core.model import (
    AdbSettings,
    DiscoverySettings,
    NetworkProbeSettings,
    PairingSettings,
    Settings,
    WorkerSettings,
)

LOGGER = logging.getLogger(__name__)


class UniqueKeyLoader(yaml.SafeLoader):
    """YAML loader that rejects duplicate mapping keys."""


def _construct_mapping(loader: UniqueKeyLoader, node: yaml.Node, deep: bool = False) -> dict[str, Any]:
    mapping: dict[str, Any] = {}
    for key_node, value_node in node.value:
        key = loader.construct_object(key_node, deep=deep)
        if key in mapping:
            raise ConfigValidationError(f"Duplicate key '{key}' in YAML document")
        mapping[key] = loader.construct_object(value_node, deep=deep)
    return mapping


UniqueKeyLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG,
    _construct_mapping,
)


@dataclass(frozen=True)
class LoadedSettings:
    settings: Settings
    warnings: tuple[str, ...]


def _load_schema_validator() -> Any:
    schema_text = resources.files("droidctl.schemas").joinpath("config.schema.json").read_text(
        encoding="utf-8"
    )
    schema = json.loads(schema_text)
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def user_config_path() -> Path:
    xdg_config = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return xdg_config / "droidctl/config.yaml"


def _read_yaml(path: Path | Traversable) -> dict[str, Any]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigLoadError(f"Could not read config file {path}: {exc}") from exc

    try:
        loaded = yaml.load(content, Loader=UniqueKeyLoader)
    except yaml.YAMLError as exc:
        raise ConfigValidationError(f"Invalid YAML in {path}: {exc}") from exc

    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigValidationError(f"Config file {path} must contain a mapping at root")
    return loaded


def _merge(base: dict[str, Any], override: dict[str, Any], prefix: str = "") -> tuple[dict[str, Any], list[str]]:
    merged = dict(base)
    touched: list[str] = []
    for key, value in override.items():
        dotted = f"{prefix}{key}"
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key], nested = _merge(merged[key], value, prefix=f"{dotted}.")
            touched.extend(nested)
        else:
            merged[key] = value
            touched.append(dotted)
    return merged, touched


def _validate(doc: dict[str, Any], source: str) -> None:
    validator = _load_schema_validator()
    try:
        validator.validate(doc)
    except ValidationError as exc:
        path = ".".join(str(p) for p in exc.path)
        where = f" ({path})" if path else ""
        raise ConfigValidationError(f"Schema validation failed for {source}{where}: {exc.message}") from exc


def _normalize_ipv4(value: str, *, context: str) -> str:
    try:
        return str(ipaddress.IPv4Address(value.strip()))
    except ValueError as exc:
        raise ConfigValidationError(f"{context} must be an IPv4 address") from exc


def _build_settings(doc: dict[str, Any]) -> Settings:
    adb = doc.get("adb", {})
    discovery = doc.get("discovery", {})
    pairing = doc.get("pairing", {})
    probe = doc.get("network_probe", {})
    workers = doc.get("workers", {})

    discovery_settings = DiscoverySettings(
        window_s=float(discovery.get("window_s", DiscoverySettings.window_s)),
        poll_interval_s=float(discovery.get("poll_interval_s", DiscoverySettings.poll_interval_s)),
        resolve_timeout_s=float(discovery.get("resolve_timeout_s", DiscoverySettings.resolve_timeout_s)),
        service_types=tuple(discovery.get("service_types", DiscoverySettings().service_types)),
    )
    if discovery_settings.poll_interval_s > discovery_settings.window_s:
        raise ConfigValidationError("discovery.poll_interval_s must not exceed discovery.window_s")

    return Settings(
        adb=AdbSettings(
            host=str(adb.get("host", AdbSettings.host)),
            port=int(adb.get("port", AdbSettings.port)),
            executable=str(adb.get("executable", AdbSettings.executable)),
            command_timeout_s=float(adb.get("command_timeout_s", AdbSettings.command_timeout_s)),
            connect_timeout_s=float(adb.get("connect_timeout_s", AdbSettings.connect_timeout_s)),
        ),
        discovery=discovery_settings,
        pairing=PairingSettings(
            default_connection_port=int(
                pairing.get("default_connection_port", PairingSettings.default_connection_port)
            ),
            candidate_ports=tuple(
                int(p) for p in pairing.get("candidate_ports", PairingSettings().candidate_ports)
            ),
            default_pairing_port=int(pairing.get("default_pairing_port", PairingSettings.default_pairing_port)),
            fallback_host_ip=_normalize_ipv4(
                str(pairing.get("fallback_host_ip", PairingSettings.fallback_host_ip)),
                context="pairing.fallback_host_ip",
            ),
            handshake_timeout_s=float(pairing.get("handshake_timeout_s", PairingSettings.handshake_timeout_s)),
        ),
        network_probe=NetworkProbeSettings(
            target=str(probe.get("target", NetworkProbeSettings.target)),
            count=int(probe.get("count", NetworkProbeSettings.count)),
        ),
        workers=WorkerSettings(max_workers=int(workers.get("max_workers", WorkerSettings.max_workers))),
    )


def load_settings(path: Path | None = None) -> LoadedSettings:
    """Load packaged defaults and apply the user override file, if present."""
    warnings: list[str] = []
    defaults_path = resources.files("droidctl.defaults").joinpath("config.yaml")
    doc = _read_yaml(defaults_path)
    _validate(doc, str(defaults_path))

    override_path = path or user_config_path()
    if override_path.exists():
        override = _read_yaml(override_path)
        _validate(override, str(override_path))
        doc, touched = _merge(doc, override)
        if touched:
            warning = f"User config {override_path} overrides: {', '.join(touched)}"
            LOGGER.warning(warning)
            warnings.append(warning)
    elif path is not None:
        raise ConfigLoadError(f"Config file {path} does not exist")

    return LoadedSettings(settings=_build_settings(doc), warnings=tuple(warnings))
