from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

from content_studio_cli.exceptions import InsufficientDataError
from content_studio_cli.models.brand import BrandExample, BrandRecord, StyleGalleryEntry, TemplateSet

MIN_VALID_EXAMPLE_YAML = """brands:
  - id: acme
    name: "Acme"
    palette: ["#a4d3eb", "#10559a", "#c52244"]
brand_examples:
  - id: ex1
    brand_id: acme
    image_url: "https://cdn.example.com/acme/1.png"
    content_type: carousel
    created_at: "2026-01-10T12:00:00Z"
"""


class WorkspaceValidationError(InsufficientDataError):
    pass


class WorkspaceSeed(BaseModel):
    brands: list[BrandRecord] = Field(default_factory=list)
    brand_examples: list[BrandExample] = Field(default_factory=list)
    template_sets: list[TemplateSet] = Field(default_factory=list)
    style_gallery: list[StyleGalleryEntry] = Field(default_factory=list)


def _parse_workspace_file(path: Path) -> dict[str, Any]:
    suffix = path.suffix.lower()
    content = path.read_text(encoding="utf-8")

    if suffix in {".yaml", ".yml"}:
        parsed = yaml.safe_load(content)
    elif suffix == ".json":
        parsed = json.loads(content)
    else:
        raise WorkspaceValidationError(
            "Unsupported workspace format. Use .yaml, .yml, or .json files.\n\n"
            f"Minimal valid YAML example:\n{MIN_VALID_EXAMPLE_YAML}"
        )

    if not isinstance(parsed, dict):
        raise WorkspaceValidationError(
            "Workspace root must be an object/map.\n\n"
            f"Minimal valid YAML example:\n{MIN_VALID_EXAMPLE_YAML}"
        )
    return parsed


def load_workspace(path: Path) -> WorkspaceSeed:
    if not path.exists():
        raise WorkspaceValidationError(f"Workspace file not found: {path}")

    try:
        parsed = _parse_workspace_file(path)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise WorkspaceValidationError(
            f"Unable to parse workspace file: {exc}\n\n"
            f"Minimal valid YAML example:\n{MIN_VALID_EXAMPLE_YAML}"
        ) from exc

    try:
        return WorkspaceSeed.model_validate(parsed)
    except ValidationError as exc:
        errors = []
        for item in exc.errors():
            location = ".".join(str(part) for part in item["loc"])
            errors.append(f"- {location}: {item['msg']}")
        raise WorkspaceValidationError(
            "Workspace validation failed:\n"
            + "\n".join(errors)
            + "\n\nMinimal valid YAML example:\n"
            + MIN_VALID_EXAMPLE_YAML
        ) from exc
