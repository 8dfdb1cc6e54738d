"""Brand token resolution.

Stored brands carry their palette in one of three shapes:

* a list of hex strings: ``["#a4d3eb", "10559a"]``
* a list of objects: ``[{"hex": "#a4d3eb", "name": "Sky", "role": "background"}]``
* a role -> hex map: ``{"background": "#a4d3eb", "accent": "#c52244"}``

``classify_palette`` tags the shape once at the boundary (lists are labelled by their
first entry, but every entry is read on its own) and ``normalize_palette``
turns every shape into the same ordered list of :class:`PaletteColor`.  Nothing
downstream branches on the raw shape again.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Literal

from pydantic import ValidationError

from content_studio_cli.exceptions import InsufficientDataError
from content_studio_cli.models.brand import HEX_PATTERN, BrandFonts, BrandRecord, BrandTokens, PaletteColor, StyleGuide

logger = logging.getLogger(__name__)


PaletteShape = Literal["empty", "hex_list", "object_list", "role_map"]

# Positional convention: 0 background, 1 dark text, 2 accent, 3 card background.
BACKGROUND_INDEX = 0
TEXT_INDEX = 1
ACCENT_INDEX = 2
CARD_INDEX = 3
POSITIONAL_FALLBACKS: tuple[str, ...] = ("#a4d3eb", "#10559a", "#c52244", "#ffffff")

DEFAULT_PALETTE: tuple[PaletteColor, ...] = (
    PaletteColor(name="background", hex=POSITIONAL_FALLBACKS[0], role="background"),
    PaletteColor(name="text", hex=POSITIONAL_FALLBACKS[1], role="text"),
    PaletteColor(name="accent", hex=POSITIONAL_FALLBACKS[2], role="accent"),
)


def _coerce_hex(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    candidate = value.strip()
    if candidate and not candidate.startswith("#"):
        candidate = f"#{candidate}"
    if not HEX_PATTERN.match(candidate):
        return None
    return candidate


def classify_palette(raw: Any) -> PaletteShape:
    if isinstance(raw, Mapping):
        return "role_map" if raw else "empty"
    if isinstance(raw, (list, tuple)) and raw:
        first = raw[0]
        if isinstance(first, str):
            return "hex_list"
        return "object_list"
    return "empty"


def _from_object_list(raw: list[Any]) -> list[PaletteColor]:
    palette: list[PaletteColor] = []
    for index, item in enumerate(raw):
        if isinstance(item, PaletteColor):
            item = item.model_dump()
        if isinstance(item, str):
            # mixed lists show up when a UI appends a bare hex to an object list
            hex_value = _coerce_hex(item)
            if hex_value is not None:
                palette.append(PaletteColor(name=f"color{index + 1}", hex=hex_value))
            continue
        if not isinstance(item, Mapping):
            continue
        hex_value = _coerce_hex(item.get("hex"))
        if hex_value is None:
            continue
        name = item.get("name")
        role = item.get("role")
        palette.append(
            PaletteColor(
                name=name if isinstance(name, str) and name else f"color{index + 1}",
                hex=hex_value,
                role=role if isinstance(role, str) and role else None,
            )
        )
    return palette


def _from_role_map(raw: Mapping[str, Any]) -> list[PaletteColor]:
    palette: list[PaletteColor] = []
    for role, value in raw.items():
        hex_value = _coerce_hex(value)
        if hex_value is None:
            continue
        palette.append(PaletteColor(name=str(role), hex=hex_value, role=str(role)))
    return palette


def normalize_palette(raw: Any) -> list[PaletteColor]:
    """Return the canonical ordered palette. Invalid entries are dropped; never raises."""
    shape = classify_palette(raw)
    if shape in ("hex_list", "object_list"):
        return _from_object_list(list(raw))
    if shape == "role_map":
        return _from_role_map(raw)
    return []


def palette_hex(palette: tuple[PaletteColor, ...] | list[PaletteColor], index: int, fallback: str | None = None) -> str:
    if 0 <= index < len(palette):
        return palette[index].hex
    if fallback is not None:
        return fallback
    if index < len(POSITIONAL_FALLBACKS):
        return POSITIONAL_FALLBACKS[index]
    return "#000000"


def effective_palette(tokens: BrandTokens | None) -> tuple[PaletteColor, ...]:
    if tokens is None or not tokens.palette:
        return DEFAULT_PALETTE
    return tokens.palette


def _parse_recommended_templates(raw: Any) -> list[str]:
    if not isinstance(raw, list):
        return []
    templates: list[str] = []
    for item in raw:
        if isinstance(item, str) and item:
            templates.append(item)
        elif isinstance(item, Mapping) and isinstance(item.get("id"), str):
            templates.append(item["id"])
    return templates


def parse_style_guide(raw: Mapping[str, Any] | None) -> StyleGuide | None:
    """Fold the stored style-guide blob (flat or nested under ``brand_tokens``) into a StyleGuide."""
    if not raw:
        return None

    nested = raw.get("brand_tokens") if isinstance(raw.get("brand_tokens"), Mapping) else {}
    data: dict[str, Any] = {}

    recommended = _parse_recommended_templates(raw.get("recommended_templates"))
    if recommended:
        data["recommended_templates"] = tuple(recommended)
    if isinstance(raw.get("role_to_template"), Mapping):
        data["role_to_template"] = dict(raw["role_to_template"])

    typography = raw.get("typography") or nested.get("typography")
    if isinstance(typography, Mapping):
        data["typography"] = {
            "headline_weight": typography.get("headline_weight", 800),
            "body_weight": typography.get("body_weight", 400),
            "uppercase_headlines": bool(
                typography.get("uppercase_headlines", typography.get("uppercase", False))
            ),
        }

    logo = raw.get("logo") or nested.get("logo")
    if isinstance(logo, Mapping):
        data["logo"] = {
            key: logo[key] for key in ("preferred_position", "watermark_opacity") if key in logo
        }

    notes = raw.get("notes")
    if isinstance(notes, list):
        data["notes"] = tuple(str(note) for note in notes)

    try:
        return StyleGuide.model_validate(data)
    except ValidationError as exc:
        raise InsufficientDataError(f"Invalid style guide: {exc.errors()[0]['msg']}") from exc


def build_brand_tokens(brand: BrandRecord) -> BrandTokens:
    palette = normalize_palette(brand.palette)
    fonts_raw = brand.fonts or {}
    fonts = BrandFonts(
        headings=fonts_raw.get("headings") or fonts_raw.get("heading") or "Inter",
        body=fonts_raw.get("body") or "Inter",
    )
    tokens = BrandTokens(
        name=brand.name,
        palette=tuple(palette),
        fonts=fonts,
        visual_tone=brand.visual_tone or "clean",
        logo_url=brand.logo_url,
        do_rules=brand.do_rules,
        dont_rules=brand.dont_rules,
        style_guide=parse_style_guide(brand.style_guide),
    )
    logger.info(
        "Brand tokens built for %s: %d palette colors (shape=%s), tone=%s",
        brand.name,
        len(palette),
        classify_palette(brand.palette),
        tokens.visual_tone,
    )
    return tokens
