from __future__ import annotations

from pathlib import Path

import pytest

from droidctl.core.config import load_settings, user_config_path
from droidctl.core.errors import ConfigLoadError, ConfigValidationError
from droidctl.core.model import Settings


def _write_config(root: Path, content: str) -> Path:
    path = root / "droidctl" / "config.yaml"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture
def config_home(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "cfg"))
    return tmp_path / "cfg"


def test_packaged_defaults_match_model_defaults(config_home: Path) -> None:
    loaded = load_settings()
    assert loaded.settings == Settings()
    assert loaded.warnings == ()


def test_user_config_path_follows_xdg(config_home: Path) -> None:
    assert user_config_path() == config_home / "droidctl" / "config.yaml"


def test_user_override_is_merged_and_reported(config_home: Path) -> None:
    _write_config(
        config_home,
        """
adb:
  port: 5038
discovery:
  window_s: 2.5
pairing:
  candidate_ports: [5555, 6000]
""",
    )

    loaded = load_settings()

    assert loaded.settings.adb.port == 5038
    assert loaded.settings.adb.host == "127.0.0.1"
    assert loaded.settings.discovery.window_s == 2.5
    assert loaded.settings.pairing.candidate_ports == (5555, 6000)
    [warning] = loaded.warnings
    assert "overrides" in warning
    assert "adb.port" in warning
    assert "pairing.candidate_ports" in warning


def test_empty_user_config_is_ignored(config_home: Path) -> None:
    _write_config(config_home, "")
    assert load_settings().warnings == ()


@pytest.mark.parametrize(
    "content",
    [
        "adb:\n  port: 70000\n",
        "adb:\n  colour: blue\n",
        "discovery:\n  window_s: 0\n",
        "discovery:\n  service_types: [adb.local]\n",
        "workers:\n  max_workers: 0\n",
        "- just\n- a list\n",
    ],
)
def test_invalid_user_config_rejected(config_home: Path, content: str) -> None:
    _write_config(config_home, content)
    with pytest.raises(ConfigValidationError):
        load_settings()


def test_duplicate_yaml_keys_rejected(config_home: Path) -> None:
    _write_config(config_home, "adb:\n  port: 5038\n  port: 5039\n")
    with pytest.raises(ConfigValidationError, match="Duplicate key 'port'"):
        load_settings()


def test_poll_interval_longer_than_window_rejected(config_home: Path) -> None:
    _write_config(config_home, "discovery:\n  window_s: 0.5\n  poll_interval_s: 1.0\n")
    with pytest.raises(ConfigValidationError, match="poll_interval_s"):
        load_settings()


def test_fallback_host_must_be_ipv4(config_home: Path) -> None:
    _write_config(config_home, "pairing:\n  fallback_host_ip: my-laptop\n")
    with pytest.raises(ConfigValidationError, match="IPv4"):
        load_settings()


def test_explicit_missing_path_rejected(tmp_path: Path) -> None:
    with pytest.raises(ConfigLoadError):
        load_settings(tmp_path / "nope.yaml")


def test_explicit_path_is_used(config_home: Path, tmp_path: Path) -> None:
    path = tmp_path / "custom.yaml"
    path.write_text("network_probe:\n  target: 1.1.1.1\n  count: 5\n", encoding="utf-8")
    settings = load_settings(path).settings
    assert settings.network_probe.target == "1.1.1.1"
    assert settings.network_probe.count == 5
