from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError as JsonSchemaValidationError
from jsonschema import validate
from pydantic import BaseModel, Field

from content_studio_cli.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class RetrySettings(BaseModel):
    max_attempts: int = Field(default=3, ge=1, le=10)
    backoff_step_seconds: float = Field(default=3.0, ge=0)
    jitter_seconds: float = Field(default=2.0, ge=0)
    retryable_statuses: list[int] = Field(default_factory=lambda: [429, 502, 503])


class BatchSettings(BaseModel):
    size: int = Field(default=2, ge=1)
    delay_seconds: float = Field(default=1.5, ge=0)


class ReferenceSettings(BaseModel):
    fetch_limit: int = Field(default=12, ge=1)
    max_sent: int = Field(default=8, ge=1)
    min_tier_matches: int = Field(default=3, ge=1)


class SafeAreaSettings(BaseModel):
    top_px: int = Field(default=80, ge=0)
    bottom_px: int = Field(default=120, ge=0)


class StudioSettings(BaseModel):
    gateway_url: str = "https://ai.gateway.lovable.dev/v1/chat/completions"
    text_model: str = "google/gemini-3-flash-preview"
    image_model: str = "google/gemini-2.5-flash-image"
    background_model: str = "google/gemini-3-pro-image-preview"
    request_timeout_seconds: float = Field(default=120.0, gt=0)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    batch: BatchSettings = Field(default_factory=BatchSettings)
    references: ReferenceSettings = Field(default_factory=ReferenceSettings)
    safe_area: SafeAreaSettings = Field(default_factory=SafeAreaSettings)
    language: str = "pt-BR"
    storage_bucket: str = "generated-images"
    public_base_url: str | None = None


def _load_json_or_yaml(path: Path) -> dict[str, Any]:
    suffix = path.suffix.lower()
    content = path.read_text(encoding="utf-8")

    if suffix in {".yaml", ".yml"}:
        parsed = yaml.safe_load(content)
    elif suffix == ".json":
        parsed = json.loads(content)
    else:
        raise ConfigurationError(f"Unsupported settings format: {path}")

    if parsed is None:
        return {}
    if not isinstance(parsed, dict):
        raise ConfigurationError("Studio settings must be a top-level object/map")
    return parsed


def project_root() -> Path:
    return Path(__file__).resolve().parents[2]


def default_settings_path() -> Path:
    return project_root() / "config" / "studio.yaml"


def _default_schema_path() -> Path:
    return project_root() / "schemas" / "studio_settings.schema.json"


def load_settings(settings_path: Path | None = None) -> StudioSettings:
    """Load settings from *settings_path*, or the project default when present.

    An explicit path that does not exist is a configuration error; a missing
    default file yields built-in defaults.
    """
    if settings_path is None:
        settings_path = default_settings_path()
        if not settings_path.exists():
            logger.debug("No settings file at %s, using defaults.", settings_path)
            return StudioSettings()
    elif not settings_path.exists():
        raise ConfigurationError(f"Settings file not found: {settings_path}")

    data = _load_json_or_yaml(settings_path)
    schema_path = _default_schema_path()

    if schema_path.exists():
        schema = json.loads(schema_path.read_text(encoding="utf-8"))
        try:
            validate(instance=data, schema=schema)
        except JsonSchemaValidationError as exc:
            raise ConfigurationError(f"Settings schema validation failed: {exc.message}") from exc

    return StudioSettings.model_validate(data)
