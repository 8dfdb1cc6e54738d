from __future__ import annotations

import io

from PIL import Image

from content_studio_cli.models.brand import (
    BrandTokens,
    BrandTypography,
    LayoutParams,
    PaletteColor,
    StyleGuide,
)
from content_studio_cli.models.content import Slide
from content_studio_cli.providers.mock import MockImageProvider
from content_studio_cli.rendering.rasterize import export_slide_png, load_local_image
from content_studio_cli.rendering.templates import (
    DEFAULT_REGISTRY,
    RenderContext,
    TemplateRegistry,
    render_slide,
    render_wave_cover,
)
from content_studio_cli.rendering.tree import Circle, GradientRect, ImageLayer, Polygon, Rect, TextBlock, wrap_by_chars

POST_SIZE = (1080, 1350)
STORY_SIZE = (1080, 1920)


def _tokens(*hexes: str, uppercase: bool = False, logo_url: str | None = None) -> BrandTokens:
    return BrandTokens(
        name="Acme",
        palette=tuple(PaletteColor(name=f"c{index}", hex=value) for index, value in enumerate(hexes)),
        logo_url=logo_url,
        style_guide=StyleGuide(typography=BrandTypography(uppercase_headlines=uppercase)),
    )


def test_unknown_template_falls_back_and_records_request() -> None:
    tree = render_slide(Slide(headline="Hello"), None, "neon_grid", POST_SIZE)

    assert tree.template_id == "wave_text_card"
    assert tree.fallback_from == "neon_grid"


def test_known_template_has_no_fallback() -> None:
    tree = render_slide(Slide(role="cover", headline="Hello"), _tokens("#111111"), "wave_cover", POST_SIZE)

    assert tree.template_id == "wave_cover"
    assert tree.fallback_from is None
    assert (tree.width, tree.height) == POST_SIZE


def test_rendering_is_deterministic() -> None:
    slide = Slide(role="bullets", headline="Three things", bullets=["one", "two", "three"])

    first = render_slide(slide, _tokens("#a4d3eb", "#10559a"), "wave_bullets", POST_SIZE, 2, 5)
    second = render_slide(slide, _tokens("#a4d3eb", "#10559a"), "wave_bullets", POST_SIZE, 2, 5)

    assert first.to_dict() == second.to_dict()
    assert first.to_svg() == second.to_svg()
    assert sum(isinstance(node, Circle) for node in first.nodes) == 3


def test_short_palette_uses_positional_fallbacks() -> None:
    ctx = RenderContext(slide=Slide(headline="x"), tokens=_tokens("#111111", "#222222"), width=1080, height=1350)

    assert ctx.background == "#111111"
    assert ctx.text_color == "#222222"
    assert ctx.accent == "#c52244"
    assert ctx.card == "#ffffff"


def test_text_card_draws_card_in_fallback_color() -> None:
    tree = render_slide(Slide(headline="Card"), _tokens("#111111", "#222222"), "wave_text_card", POST_SIZE)

    cards = [node for node in tree.nodes if isinstance(node, Rect) and node.radius == 24]
    assert cards and cards[0].fill == "#ffffff"


def test_uppercase_headlines_from_style_guide() -> None:
    tree = render_slide(Slide(role="cover", headline="Big news"), _tokens("#111111", uppercase=True), "wave_cover", POST_SIZE)

    assert "BIG NEWS" in tree.texts()


def test_badge_labels() -> None:
    cover = render_slide(Slide(role="cover", headline="a"), None, "wave_cover", POST_SIZE, 0, 5)
    third = render_slide(Slide(role="context", headline="b"), None, "wave_text_card", POST_SIZE, 2, 5)

    assert "CAPA" in cover.texts()
    assert "3/5" in third.texts()


def test_background_image_sits_above_base_fill() -> None:
    slide = Slide(headline="x", background_image_url="file:///tmp/bg.png")

    tree = render_slide(slide, None, "wave_cover", POST_SIZE)

    assert isinstance(tree.nodes[0], Rect)
    assert tree.nodes[1] == ImageLayer("file:///tmp/bg.png", 0, 0, 1080, 1350)


def test_generic_free_uses_gradient_and_image() -> None:
    slide = Slide(headline="Free", image_url="https://cdn.test/free.png")

    tree = render_slide(slide, None, "generic_free", POST_SIZE)

    assert isinstance(tree.nodes[0], GradientRect)
    assert isinstance(tree.nodes[1], ImageLayer)
    assert tree.nodes[1].href == "https://cdn.test/free.png"


def test_logo_placement_follows_style_guide() -> None:
    tokens = _tokens("#111111", logo_url="https://cdn.test/logo.png")

    tree = render_slide(Slide(role="cover", headline="x"), tokens, "wave_cover", POST_SIZE)

    logos = [node for node in tree.nodes if isinstance(node, ImageLayer)]
    assert len(logos) == 1
    assert logos[0].opacity == 0.35
    assert logos[0].y > 1000


def test_parameterized_template_reads_layout_params() -> None:
    params = LayoutParams.model_validate(
        {
            "bg": {"type": "solid", "colors": ["#000000"]},
            "shape": {"type": "diagonal", "position": "top"},
            "card": {"enabled": True, "palette_index": 2},
            "text": {"uppercase": True},
        }
    )

    tree = render_slide(Slide(headline="Layout"), _tokens("#111111"), "parameterized", POST_SIZE, layout_params=params)

    assert tree.nodes[0] == Rect(0, 0, 1080, 1350, "#000000")
    assert isinstance(tree.nodes[1], Polygon)
    assert any(isinstance(node, Rect) and node.fill == "#c52244" and node.radius == 24 for node in tree.nodes)
    assert "LAYOUT" in tree.texts()


def test_story_cover_keeps_body_out_of_bottom_area() -> None:
    slide = Slide(role="cover", headline="Story", body="word " * 400)

    tree = render_slide(slide, None, "story_cover", STORY_SIZE)

    blocks = [node for node in tree.nodes if isinstance(node, TextBlock)]
    assert all(block.y + block.height <= 1920 - 260 for block in blocks)


def test_svg_escapes_text() -> None:
    tree = render_slide(Slide(headline="Fish & <chips>"), None, "wave_text_card", POST_SIZE)

    svg = tree.to_svg()
    assert svg.startswith("<svg")
    assert "Fish &amp; &lt;chips&gt;" in svg


def test_custom_registry_entry() -> None:
    registry = TemplateRegistry()
    registry.register("wave_text_card", render_wave_cover)
    registry.register("minimal", lambda ctx: [Rect(0, 0, ctx.width, ctx.height, ctx.accent)])

    tree = render_slide(Slide(headline="x"), None, "minimal", POST_SIZE, registry=registry)

    assert tree.nodes == [Rect(0, 0, 1080, 1350, "#c52244")]
    assert "minimal" not in DEFAULT_REGISTRY


def test_wrap_by_chars_splits_long_words() -> None:
    assert wrap_by_chars("aaaaaaaaaaaa bb", 5) == ["aaaaa", "aaaaa", "aa bb"]
    assert wrap_by_chars("", 5) == []


def test_png_export_matches_format_size() -> None:
    slide = Slide(role="cover", headline="Export me", body="Body text")

    png = export_slide_png(render_slide(slide, _tokens("#a4d3eb", "#10559a"), "wave_cover", POST_SIZE))

    image = Image.open(io.BytesIO(png))
    assert image.format == "PNG"
    assert image.size == POST_SIZE


def test_png_export_composites_data_url_background() -> None:
    data_url = MockImageProvider(size=(20, 20)).generate_image("bg", [], "mock")
    slide = Slide(headline="x", background_image_url=data_url)

    png = export_slide_png(render_slide(slide, None, "wave_text_card", POST_SIZE))

    assert Image.open(io.BytesIO(png)).size == POST_SIZE
    assert load_local_image(data_url).size == (20, 20)
    assert load_local_image("https://cdn.test/remote.png") is None
