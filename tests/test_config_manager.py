"""Unit tests for configuration management."""

from pathlib import Path

import pytest

from foldersort.config import (
    ConfigError,
    ConfigManager,
    FolderSortConfig,
    resolve_with_precedence,
)


def _fresh_manager(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> ConfigManager:
    monkeypatch.setenv("HOME", str(tmp_path))
    return ConfigManager()


def test_ensure_exists_creates_default_file(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)

    path = manager.ensure_exists()

    assert path == tmp_path / ".foldersort" / "config.yaml"
    text = path.read_text(encoding="utf-8")
    assert "FolderSort configuration file" in text
    assert "Last updated:" in text
    assert manager.load(include_env=False) == FolderSortConfig()


def test_resolve_with_precedence_respects_order(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)
    manager.save({"catalog": {"recursive": True}, "tags": {"normalization": "lower"}})

    env = {
        "FOLDERSORT__RELOCATION__CONFLICT_SEPARATOR": ".",
        "FOLDERSORT__TAGS__NORMALIZATION": "none",
        "UNRELATED": "ignored",
    }
    cli = {"relocation.conflict_separator": "+"}

    config = manager.load(cli_overrides=cli, env_overrides=env)

    assert config.catalog.recursive is True
    assert config.tags.normalization == "none"
    # CLI overrides take precedence over environment
    assert config.relocation.conflict_separator == "+"


def test_invalid_yaml_raises_config_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)
    manager.ensure_exists()

    manager.config_path.write_text("- not-a-mapping", encoding="utf-8")

    with pytest.raises(ConfigError):
        manager.load()


def test_unknown_keys_are_rejected(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)
    manager.save({"catalog": {"depth": 3}})

    with pytest.raises(ConfigError):
        manager.load(include_env=False)


def test_set_value_persists_and_validates(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)

    config = manager.set_value("catalog.include_hidden", False)

    assert config.catalog.include_hidden is False
    assert manager.load_file_overrides()["catalog"]["include_hidden"] is False

    with pytest.raises(ConfigError):
        manager.set_value("logging.level", "LOUD")
    assert manager.load(include_env=False).logging.level == "WARNING"


def test_resolve_with_precedence_invalid_value_raises() -> None:
    with pytest.raises(ConfigError):
        resolve_with_precedence(
            defaults=FolderSortConfig(),
            file_overrides={"tags": {"normalization": "upper"}},
        )
