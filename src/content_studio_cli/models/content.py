from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from .brand import BrandTokens, ContentFormat

SlideRole = Literal["cover", "context", "insight", "bullets", "closing", "cta"]
ContentStatus = Literal["draft", "approved", "scheduled", "rejected", "published"]
VisualMode = Literal["brand_strict", "brand_guided", "free"]
ContentStyle = Literal["news", "quote", "tip", "educational", "curiosity"]
RenderMode = Literal["legacy_image", "ai_bg_overlay"]

SLIDE_COUNT_BY_FORMAT: dict[str, int] = {"post": 1, "story": 1, "carousel": 5}
FORMAT_DIMENSIONS: dict[str, tuple[int, int]] = {"post": (1080, 1350), "carousel": (1080, 1350), "story": (1080, 1920)}

# Roles the copy collaborator emits that are not part of the canonical set.
_ROLE_ALIASES = {
    "content": "context",
    "quote": "context",
    "question": "context",
    "list": "bullets",
}

# camelCase / legacy keys accepted on input, folded into the snake_case field.
_SLIDE_KEY_ALIASES = {
    "templateHint": "template_hint",
    "speakerNotes": "speaker_notes",
    "illustrationPrompt": "illustration_prompt",
    "imagePrompt": "illustration_prompt",
    "image_prompt": "illustration_prompt",
    "backgroundImageUrl": "background_image_url",
    "imageStale": "image_stale",
    "renderMode": "render_mode",
    "roleLocked": "role_locked",
}
_IMAGE_KEYS = ("image_url", "previewImage", "imageUrl", "image")
_CANONICAL_ROLES = frozenset({"cover", "context", "insight", "bullets", "closing", "cta"})


def fold_slide_keys(data: dict[str, Any]) -> dict[str, Any]:
    """Fold camelCase and legacy image keys into snake_case fields.

    The first non-empty image key wins; empty image values are dropped so they
    never clear a stored image.  ``None`` headline/body fall back to the default.
    """
    folded = dict(data)
    for alias, field_name in _SLIDE_KEY_ALIASES.items():
        if alias in folded:
            value = folded.pop(alias)
            folded.setdefault(field_name, value)

    image_url = None
    for key in _IMAGE_KEYS:
        candidate = folded.pop(key, None)
        if candidate and image_url is None:
            image_url = candidate
    if image_url is not None:
        folded["image_url"] = image_url
    for text_field in ("headline", "body"):
        if folded.get(text_field) is None:
            folded.pop(text_field, None)
    return folded


class Trend(BaseModel):
    title: str = Field(min_length=1)
    description: str = ""
    theme: str = "general"
    keywords: list[str] = Field(default_factory=list)
    source_url: str | None = None


class Slide(BaseModel):
    role: SlideRole = "context"
    role_locked: bool = False
    template: str | None = None
    template_hint: str | None = None
    headline: str = ""
    body: str = ""
    bullets: list[str] | None = None
    speaker_notes: str | None = None
    illustration_prompt: str | None = None
    image_url: str | None = None
    background_image_url: str | None = None
    image_stale: bool = False
    render_mode: RenderMode | None = None

    @model_validator(mode="before")
    @classmethod
    def _fold_aliases(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        return fold_slide_keys(data)

    @field_validator("role", mode="before")
    @classmethod
    def _normalize_role(cls, value: Any) -> Any:
        if isinstance(value, str):
            lowered = value.strip().lower()
            lowered = _ROLE_ALIASES.get(lowered, lowered)
            return lowered if lowered in _CANONICAL_ROLES else "context"
        return value

    def to_payload(self) -> dict[str, Any]:
        """Serialize for callers that still read ``previewImage``."""
        payload = self.model_dump(mode="json")
        payload["previewImage"] = self.image_url
        return payload


class GeneratedContent(BaseModel):
    id: str = Field(min_length=1)
    title: str = ""
    caption: str = ""
    hashtags: list[str] = Field(default_factory=list)
    slides: list[Slide] = Field(default_factory=list)
    content_type: ContentFormat = "carousel"
    content_style: ContentStyle | None = None
    status: ContentStatus = "draft"
    scheduled_at: datetime | None = None
    brand_id: str | None = None
    brand_snapshot: BrandTokens | None = None
    visual_mode: VisualMode = "free"
    template_set_id: str | None = None
    category_id: str | None = None
    style_gallery_id: str | None = None
    trend_title: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @model_validator(mode="after")
    def _scheduled_requires_timestamp(self) -> GeneratedContent:
        if self.status == "scheduled" and self.scheduled_at is None:
            raise ValueError("status 'scheduled' requires scheduled_at")
        return self
