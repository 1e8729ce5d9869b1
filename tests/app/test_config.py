from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from app.config import DEFAULT_CONFIG_PATH, ApiSettings, BrowserSettings, load_settings


def test_defaults_without_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)

    settings = load_settings()

    assert settings.api.base_url == "http://localhost:3000"
    assert settings.api.timeout_seconds == 10.0
    assert settings.browser.initial_depth == 1
    assert settings.browser.expand_depth == 1
    assert settings.browser.node_limit is None
    assert settings.browser.search_debounce_seconds == 0.28


def test_yaml_config_and_env_override(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config_path = tmp_path / "browser.yaml"
    config_path.write_text(
        "\n".join(
            [
                "api:",
                "  base_url: http://parts.internal/api/",
                "  timeout_seconds: 3",
                "browser:",
                "  initial_depth: all",
                "  expand_depth: 2",
                "  node_limit: 200",
            ]
        ),
        encoding="utf-8",
    )
    monkeypatch.setenv("BOM_BROWSER__EXPAND_DEPTH", "3")

    settings = load_settings(config_path)

    assert settings.api.base_url == "http://parts.internal/api"
    assert settings.api.timeout_seconds == 3.0
    assert settings.browser.initial_depth == "all"
    assert settings.browser.expand_depth == 3
    assert settings.browser.node_limit == 200


def test_config_path_from_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config_path = tmp_path / "env.yaml"
    config_path.write_text("browser:\n  search_debounce_seconds: 0.5\n", encoding="utf-8")
    monkeypatch.setenv("BOM_CONFIG_PATH", str(config_path))

    assert load_settings().browser.search_debounce_seconds == 0.5


def test_default_config_file_is_used(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    DEFAULT_CONFIG_PATH.parent.mkdir(parents=True)
    DEFAULT_CONFIG_PATH.write_text("api:\n  base_url: http://default.test\n", encoding="utf-8")

    assert load_settings().api.base_url == "http://default.test"


def test_missing_config_file_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_settings(tmp_path / "missing.yaml")


@pytest.mark.parametrize("depth", [0, -1, "deep", None])
def test_invalid_depth_rejected(depth: object) -> None:
    with pytest.raises(ValidationError):
        BrowserSettings(initial_depth=depth)


def test_api_settings_validation() -> None:
    assert ApiSettings(base_url="  ").base_url == "http://localhost:3000"
    with pytest.raises(ValidationError):
        ApiSettings(timeout_seconds=0)
    with pytest.raises(ValidationError):
        BrowserSettings(node_limit=0)
