from pathlib import Path

import pytest

from content_studio_cli.exceptions import ConfigurationError
from content_studio_cli.settings import StudioSettings, default_settings_path, load_settings


def test_default_settings_file_loads() -> None:
    assert default_settings_path().exists()

    settings = load_settings()

    assert settings.batch.size == 2
    assert settings.batch.delay_seconds == 1.5
    assert settings.references.max_sent == 8
    assert settings.retry.retryable_statuses == [429, 502, 503]


def test_partial_settings_keep_defaults(tmp_path: Path) -> None:
    settings_file = tmp_path / "studio.yaml"
    settings_file.write_text("batch:\n  size: 3\nlanguage: en-US\n", encoding="utf-8")

    settings = load_settings(settings_file)

    assert settings.batch.size == 3
    assert settings.batch.delay_seconds == 1.5
    assert settings.language == "en-US"
    assert settings.retry == StudioSettings().retry


def test_json_settings(tmp_path: Path) -> None:
    settings_file = tmp_path / "studio.json"
    settings_file.write_text('{"retry": {"max_attempts": 5}}', encoding="utf-8")

    assert load_settings(settings_file).retry.max_attempts == 5


def test_unknown_key_fails_schema(tmp_path: Path) -> None:
    settings_file = tmp_path / "studio.yaml"
    settings_file.write_text("batch:\n  parallelism: 4\n", encoding="utf-8")

    with pytest.raises(ConfigurationError, match="schema validation failed"):
        load_settings(settings_file)


def test_missing_explicit_file(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError, match="not found"):
        load_settings(tmp_path / "nope.yaml")


def test_unsupported_format(tmp_path: Path) -> None:
    settings_file = tmp_path / "studio.toml"
    settings_file.write_text("x = 1\n", encoding="utf-8")

    with pytest.raises(ConfigurationError, match="Unsupported settings format"):
        load_settings(settings_file)
