from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

ContentFormat = Literal["post", "story", "carousel"]

HEX_PATTERN = re.compile(r"^#[0-9a-fA-F]{3,8}$")


class PaletteColor(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    hex: str
    role: str | None = None

    @field_validator("hex")
    @classmethod
    def _check_hex(cls, value: str) -> str:
        if not HEX_PATTERN.match(value):
            raise ValueError(f"invalid hex color: {value!r}")
        return value


class BrandFonts(BaseModel):
    model_config = ConfigDict(frozen=True)

    headings: str = "Inter"
    body: str = "Inter"


class BrandTypography(BaseModel):
    model_config = ConfigDict(frozen=True)

    headline_weight: int = Field(default=800, ge=100, le=900)
    body_weight: int = Field(default=400, ge=100, le=900)
    uppercase_headlines: bool = False


class LogoPlacement(BaseModel):
    model_config = ConfigDict(frozen=True)

    preferred_position: Literal["top-left", "top-right", "bottom-left", "bottom-right", "bottom-center"] = (
        "bottom-center"
    )
    watermark_opacity: float = Field(default=0.35, ge=0.0, le=1.0)


class StyleGuide(BaseModel):
    model_config = ConfigDict(frozen=True)

    recommended_templates: tuple[str, ...] = ("wave_cover", "wave_text_card")
    role_to_template: dict[str, str] = Field(default_factory=dict)
    typography: BrandTypography = Field(default_factory=BrandTypography)
    logo: LogoPlacement = Field(default_factory=LogoPlacement)
    notes: tuple[str, ...] = ()


class BrandTokens(BaseModel):
    """Frozen snapshot of a brand's visual identity, copied into every generated content."""

    model_config = ConfigDict(frozen=True)

    name: str
    palette: tuple[PaletteColor, ...] = ()
    fonts: BrandFonts = Field(default_factory=BrandFonts)
    visual_tone: str = "clean"
    logo_url: str | None = None
    do_rules: str | None = None
    dont_rules: str | None = None
    style_guide: StyleGuide | None = None


class BrandRecord(BaseModel):
    """A brand row as stored. ``palette`` and ``style_guide`` keep their raw, heterogeneous shape."""

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    palette: Any = None
    fonts: dict[str, str] | None = None
    visual_tone: str | None = None
    logo_url: str | None = None
    do_rules: str | None = None
    dont_rules: str | None = None
    style_guide: dict[str, Any] | None = None
    created_at: datetime | None = None


class BrandExample(BaseModel):
    id: str = Field(min_length=1)
    brand_id: str = Field(min_length=1)
    image_url: str | None = None
    description: str | None = None
    category_id: str | None = None
    content_type: ContentFormat | None = None
    created_at: datetime


class TemplateRules(BaseModel):
    waves: bool = False
    phone_mockup: bool = False
    body_in_card: bool = False
    inner_frame: bool = False
    uppercase_headlines: bool = False


class VisualSignature(BaseModel):
    primary_bg_mode: str | None = None
    card_style: str | None = None
    decorative_shape: str | None = None


class LayoutBackground(BaseModel):
    type: Literal["solid", "gradient"] = "solid"
    colors: list[str] = Field(default_factory=list)
    palette_index: int = Field(default=0, ge=0)


class LayoutShape(BaseModel):
    type: Literal["none", "wave", "diagonal"] = "none"
    position: Literal["top", "bottom"] = "bottom"
    height_pct: float = Field(default=18.0, gt=0, le=60)
    palette_index: int = Field(default=2, ge=0)


class LayoutCard(BaseModel):
    enabled: bool = False
    palette_index: int | None = None
    width_pct: float = Field(default=85.0, gt=0, le=100)
    radius: int = Field(default=24, ge=0)


class LayoutText(BaseModel):
    alignment: Literal["left", "center"] = "center"
    vertical: Literal["top", "center", "bottom"] = "center"
    headline_size: int = Field(default=56, ge=12)
    body_size: int = Field(default=28, ge=10)
    uppercase: bool = False
    headline_palette_index: int = Field(default=1, ge=0)
    body_palette_index: int = Field(default=1, ge=0)


class LayoutAccentBar(BaseModel):
    enabled: bool = True
    palette_index: int = Field(default=2, ge=0)


class LayoutParams(BaseModel):
    bg: LayoutBackground = Field(default_factory=LayoutBackground)
    shape: LayoutShape = Field(default_factory=LayoutShape)
    card: LayoutCard = Field(default_factory=LayoutCard)
    text: LayoutText = Field(default_factory=LayoutText)
    accent_bar: LayoutAccentBar = Field(default_factory=LayoutAccentBar)


class TemplateSet(BaseModel):
    id: str = Field(min_length=1)
    brand_id: str = Field(min_length=1)
    name: str = "Template set"
    category_id: str | None = None
    status: Literal["active", "archived"] = "active"
    templates_by_role: dict[str, str] = Field(default_factory=dict)
    layout_params: dict[str, LayoutParams] | None = None
    rules: TemplateRules = Field(default_factory=TemplateRules)
    visual_signature: VisualSignature | None = None
    created_at: datetime | None = None


class StyleGalleryEntry(BaseModel):
    """A system-provided style used when no brand is selected."""

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    style_prompt: str = ""
    # format -> role -> image urls
    reference_images: dict[str, dict[str, list[str]]] = Field(default_factory=dict)
