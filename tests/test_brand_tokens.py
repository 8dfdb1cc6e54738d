import pytest
from pydantic import ValidationError

from content_studio_cli.brand.tokens import (
    DEFAULT_PALETTE,
    build_brand_tokens,
    classify_palette,
    effective_palette,
    normalize_palette,
    palette_hex,
    parse_style_guide,
)
from content_studio_cli.exceptions import InsufficientDataError
from content_studio_cli.models.brand import BrandRecord, BrandTokens, PaletteColor


def test_classify_palette_shapes() -> None:
    assert classify_palette(None) == "empty"
    assert classify_palette([]) == "empty"
    assert classify_palette({}) == "empty"
    assert classify_palette(["#ffffff"]) == "hex_list"
    assert classify_palette([{"hex": "#ffffff"}]) == "object_list"
    assert classify_palette({"background": "#ffffff"}) == "role_map"


def test_normalize_hex_list_adds_hash_and_drops_invalid() -> None:
    palette = normalize_palette(["#a4d3eb", "10559a", "not-a-color", 42])

    assert [color.hex for color in palette] == ["#a4d3eb", "#10559a"]
    assert [color.name for color in palette] == ["color1", "color2"]


def test_normalize_mixed_list_starting_with_string_keeps_objects() -> None:
    palette = normalize_palette(["#ffffff", {"hex": "#000000", "name": "ink"}, "nothex"])

    assert [color.hex for color in palette] == ["#ffffff", "#000000"]
    assert [color.name for color in palette] == ["color1", "ink"]


def test_normalize_object_list_keeps_name_and_role() -> None:
    palette = normalize_palette(
        [
            {"hex": "#a4d3eb", "name": "Sky", "role": "background"},
            {"name": "Missing hex"},
            {"hex": "c52244"},
        ]
    )

    assert palette == [
        PaletteColor(name="Sky", hex="#a4d3eb", role="background"),
        PaletteColor(name="color3", hex="#c52244", role=None),
    ]


def test_normalize_role_map_uses_keys_as_roles() -> None:
    palette = normalize_palette({"background": "#fff", "accent": "c52244", "text": 5})

    assert [(color.role, color.hex) for color in palette] == [("background", "#fff"), ("accent", "#c52244")]


@pytest.mark.parametrize(
    "raw",
    [
        ["#a4d3eb", "10559a", "zzz"],
        [{"hex": "#a4d3eb", "name": "Sky"}, {"hex": "#10559a", "role": "text"}],
        {"background": "#a4d3eb", "accent": "#c52244"},
    ],
)
def test_normalize_palette_is_idempotent(raw) -> None:
    once = normalize_palette(raw)
    assert normalize_palette(once) == once


def test_normalize_palette_never_raises_on_garbage() -> None:
    assert normalize_palette("#ffffff") == []
    assert normalize_palette(12) == []
    assert normalize_palette([None, {}, []]) == []


def test_palette_hex_uses_positional_fallbacks() -> None:
    palette = normalize_palette(["#111111", "#222222"])

    assert palette_hex(palette, 0) == "#111111"
    assert palette_hex(palette, 2) == "#c52244"
    assert palette_hex(palette, 3) == "#ffffff"
    assert palette_hex(palette, 9) == "#000000"
    assert palette_hex(palette, 9, fallback="#abcdef") == "#abcdef"


def test_effective_palette_defaults_when_brand_has_no_colors() -> None:
    assert effective_palette(None) == DEFAULT_PALETTE


def test_parse_style_guide_reads_nested_brand_tokens() -> None:
    guide = parse_style_guide(
        {
            "recommended_templates": ["wave_cover", {"id": "wave_bullets"}],
            "role_to_template": {"cover": "wave_cover"},
            "brand_tokens": {
                "typography": {"headline_weight": 900, "uppercase": True},
                "logo": {"preferred_position": "top-right", "watermark_opacity": 0.5},
            },
        }
    )

    assert guide is not None
    assert guide.recommended_templates == ("wave_cover", "wave_bullets")
    assert guide.typography.headline_weight == 900
    assert guide.typography.uppercase_headlines is True
    assert guide.logo.preferred_position == "top-right"


def test_parse_style_guide_rejects_invalid_values() -> None:
    with pytest.raises(InsufficientDataError):
        parse_style_guide({"typography": {"headline_weight": 5000}})


def test_build_brand_tokens_snapshot() -> None:
    brand = BrandRecord(
        id="acme",
        name="Acme",
        palette={"background": "#a4d3eb", "text": "#10559a"},
        fonts={"heading": "Montserrat"},
        visual_tone="bold",
        dont_rules="no stock photos",
    )

    tokens = build_brand_tokens(brand)

    assert tokens.name == "Acme"
    assert len(tokens.palette) == 2
    assert tokens.fonts.headings == "Montserrat"
    assert tokens.fonts.body == "Inter"
    assert tokens.visual_tone == "bold"
    assert tokens.style_guide is None


def test_palette_color_rejects_malformed_hex() -> None:
    with pytest.raises(ValidationError, match="invalid hex color"):
        PaletteColor(name="ink", hex="black")


def test_brand_snapshot_with_malformed_hex_fails_to_load() -> None:
    with pytest.raises(ValidationError):
        BrandTokens.model_validate({"name": "Acme", "palette": [{"name": "ink", "hex": "#12"}]})
