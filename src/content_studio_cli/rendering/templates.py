"""Deterministic slide templates.

Every template is a pure function ``RenderContext -> list[Node]`` registered in a
:class:`TemplateRegistry` under its id.  Unknown ids render with the registry
default and the tree records the id that was asked for.

Palette convention (shared with every brand kit): index 0 background, 1 dark
text, 2 accent, 3 card background.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field, replace

from content_studio_cli.brand.tokens import (
    ACCENT_INDEX,
    BACKGROUND_INDEX,
    CARD_INDEX,
    TEXT_INDEX,
    effective_palette,
    palette_hex,
)
from content_studio_cli.models.brand import BrandTokens, LayoutParams
from content_studio_cli.models.content import Slide
from content_studio_cli.templates.resolver import DEFAULT_TEMPLATE_ID

from .tree import (
    Circle,
    GradientRect,
    ImageLayer,
    Node,
    Polygon,
    Rect,
    RenderTree,
    TextBlock,
    chars_per_line,
    wave_points,
    wrap_by_chars,
)

BASE_WIDTH = 1080
WHITE = "#ffffff"
FREE_GRADIENT = ("#667eea", "#764ba2")
FREE_OVERLAY = "#000000"


@dataclass(slots=True)
class RenderContext:
    slide: Slide
    tokens: BrandTokens | None
    width: int
    height: int
    slide_index: int = 0
    slide_count: int = 1
    layout_params: LayoutParams | None = None

    @property
    def scale(self) -> float:
        return self.width / BASE_WIDTH

    def color(self, index: int) -> str:
        return palette_hex(effective_palette(self.tokens), index)

    @property
    def background(self) -> str:
        return self.color(BACKGROUND_INDEX)

    @property
    def text_color(self) -> str:
        return self.color(TEXT_INDEX)

    @property
    def accent(self) -> str:
        return self.color(ACCENT_INDEX)

    @property
    def card(self) -> str:
        return self.color(CARD_INDEX)

    @property
    def heading_font(self) -> str:
        return self.tokens.fonts.headings if self.tokens else "Inter"

    @property
    def body_font(self) -> str:
        return self.tokens.fonts.body if self.tokens else "Inter"

    @property
    def headline_weight(self) -> int:
        if self.tokens and self.tokens.style_guide:
            return self.tokens.style_guide.typography.headline_weight
        return 800

    @property
    def body_weight(self) -> int:
        if self.tokens and self.tokens.style_guide:
            return self.tokens.style_guide.typography.body_weight
        return 400

    def headline_text(self) -> str:
        upper = bool(self.tokens and self.tokens.style_guide and self.tokens.style_guide.typography.uppercase_headlines)
        return self.slide.headline.upper() if upper else self.slide.headline


RenderFunction = Callable[[RenderContext], list[Node]]


def text_block(
    text: str,
    x: float,
    y: float,
    max_width: float,
    size: float,
    fill: str,
    font_family: str,
    weight: int = 400,
    align: str = "left",
) -> TextBlock:
    return TextBlock(
        x=round(x, 2),
        y=round(y, 2),
        lines=tuple(wrap_by_chars(text, chars_per_line(max_width, size))),
        size=round(size, 2),
        fill=fill,
        font_family=font_family,
        weight=weight,
        align=align,
        max_width=round(max_width, 2),
    )


def badge_nodes(ctx: RenderContext, fill: str, text_fill: str) -> list[Node]:
    label = "CAPA" if ctx.slide_index == 0 else f"{ctx.slide_index + 1}/{ctx.slide_count}"
    s = ctx.scale
    size = 22 * s
    pill_w = (len(label) * size * 0.62) + 32 * s
    pill_h = size + 20 * s
    x = ctx.width - 56 * s - pill_w
    y = 56 * s
    return [
        Rect(x=round(x, 2), y=round(y, 2), width=round(pill_w, 2), height=round(pill_h, 2), fill=fill, radius=round(pill_h / 2, 2)),
        TextBlock(
            x=round(x, 2),
            y=round(y + 10 * s, 2),
            lines=(label,),
            size=round(size, 2),
            fill=text_fill,
            font_family=ctx.body_font,
            weight=700,
            align="center",
            max_width=round(pill_w, 2),
        ),
    ]


def logo_nodes(ctx: RenderContext) -> list[Node]:
    if ctx.tokens is None or not ctx.tokens.logo_url:
        return []
    logo = ctx.tokens.style_guide.logo if ctx.tokens.style_guide else None
    position = logo.preferred_position if logo else "bottom-center"
    opacity = logo.watermark_opacity if logo else 0.35

    s = ctx.scale
    width, height, margin = 160 * s, 64 * s, 48 * s
    if position.endswith("left"):
        x = margin
    elif position.endswith("right"):
        x = ctx.width - margin - width
    else:
        x = (ctx.width - width) / 2
    y = margin if position.startswith("top") else ctx.height - margin - height
    return [
        ImageLayer(
            href=ctx.tokens.logo_url,
            x=round(x, 2),
            y=round(y, 2),
            width=round(width, 2),
            height=round(height, 2),
            opacity=opacity,
        )
    ]


def wave_node(ctx: RenderContext, fill: str, height_pct: float, top: bool = False) -> Polygon:
    wave_h = ctx.height * height_pct / 100
    y = 0.0 if top else ctx.height - wave_h
    return Polygon(points=wave_points(0.0, y, float(ctx.width), wave_h, flip=top), fill=fill)


# ----------------------------------------------------------------------
# Wave family
# ----------------------------------------------------------------------


def render_wave_cover(ctx: RenderContext) -> list[Node]:
    s = ctx.scale
    pad = 80 * s
    content_w = ctx.width - 2 * pad
    nodes: list[Node] = [Rect(0, 0, ctx.width, ctx.height, ctx.background), wave_node(ctx, ctx.text_color, 18)]

    headline = text_block(
        ctx.headline_text(), pad, 0, content_w, 64 * s, ctx.text_color, ctx.heading_font, ctx.headline_weight
    )
    body = text_block(ctx.slide.body, pad, 0, content_w, 28 * s, ctx.text_color, ctx.body_font, ctx.body_weight)
    bar_h = 6 * s
    gap = 32 * s
    block_h = bar_h + gap + headline.height + (gap + body.height if body.lines else 0)
    top = max(pad, (ctx.height * 0.82 - block_h) / 2)

    nodes.append(Rect(round(pad, 2), round(top, 2), round(60 * s, 2), round(bar_h, 2), ctx.accent, radius=round(3 * s, 2)))
    y = top + bar_h + gap
    nodes.append(_moved(headline, y))
    if body.lines:
        nodes.append(_moved(body, y + headline.height + gap))
    nodes.extend(badge_nodes(ctx, ctx.accent, WHITE))
    nodes.extend(logo_nodes(ctx))
    return nodes


def render_wave_text_card(ctx: RenderContext) -> list[Node]:
    s = ctx.scale
    card_w = ctx.width * 0.85
    padding = 48 * s
    inner_w = card_w - 2 * padding
    nodes: list[Node] = [Rect(0, 0, ctx.width, ctx.height, ctx.background), wave_node(ctx, ctx.accent, 18)]

    headline = text_block(ctx.headline_text(), 0, 0, inner_w, 48 * s, ctx.text_color, ctx.heading_font, ctx.headline_weight)
    body = text_block(ctx.slide.body, 0, 0, inner_w, 28 * s, ctx.text_color, ctx.body_font, ctx.body_weight)
    bar_h = 4 * s
    gap = 24 * s
    card_h = 2 * padding + bar_h + gap + headline.height + (gap + body.height if body.lines else 0)
    card_x = (ctx.width - card_w) / 2
    card_y = max(80 * s, (ctx.height * 0.82 - card_h) / 2)

    nodes.append(Rect(round(card_x, 2), round(card_y, 2), round(card_w, 2), round(card_h, 2), ctx.card, radius=round(24 * s, 2)))
    x = card_x + padding
    y = card_y + padding
    nodes.append(Rect(round(x, 2), round(y, 2), round(48 * s, 2), round(bar_h, 2), ctx.accent))
    y += bar_h + gap
    nodes.append(_moved(headline, y, x))
    if body.lines:
        nodes.append(_moved(body, y + headline.height + gap, x))
    nodes.extend(badge_nodes(ctx, ctx.text_color, WHITE))
    nodes.extend(logo_nodes(ctx))
    return nodes


def render_wave_bullets(ctx: RenderContext) -> list[Node]:
    s = ctx.scale
    pad = 80 * s
    content_w = ctx.width - 2 * pad
    nodes: list[Node] = [Rect(0, 0, ctx.width, ctx.height, ctx.background), wave_node(ctx, ctx.accent, 15)]

    y = 160 * s
    headline = text_block(ctx.headline_text(), pad, y, content_w, 48 * s, ctx.text_color, ctx.heading_font, ctx.headline_weight)
    nodes.append(headline)
    y += headline.height + 48 * s

    bullets = ctx.slide.bullets or ([ctx.slide.body] if ctx.slide.body else [])
    radius = 18 * s
    text_x = pad + 2 * radius + 24 * s
    for number, bullet in enumerate(bullets, start=1):
        nodes.append(Circle(round(pad + radius, 2), round(y + radius, 2), round(radius, 2), ctx.accent))
        nodes.append(
            TextBlock(
                x=round(pad, 2),
                y=round(y + radius - 11 * s, 2),
                lines=(str(number),),
                size=round(20 * s, 2),
                fill=WHITE,
                font_family=ctx.body_font,
                weight=700,
                align="center",
                max_width=round(2 * radius, 2),
            )
        )
        item = text_block(bullet, text_x, y, ctx.width - pad - text_x, 28 * s, ctx.text_color, ctx.body_font, ctx.body_weight)
        nodes.append(item)
        y += max(item.height, 2 * radius) + 28 * s

    nodes.extend(badge_nodes(ctx, ctx.text_color, WHITE))
    nodes.extend(logo_nodes(ctx))
    return nodes


def render_wave_closing(ctx: RenderContext) -> list[Node]:
    s = ctx.scale
    pad = 80 * s
    content_w = ctx.width - 2 * pad
    nodes: list[Node] = [Rect(0, 0, ctx.width, ctx.height, ctx.text_color), wave_node(ctx, ctx.background, 18)]

    headline = text_block(ctx.headline_text(), pad, 0, content_w, 56 * s, WHITE, ctx.heading_font, ctx.headline_weight, "center")
    body = text_block(ctx.slide.body, pad, 0, content_w, 28 * s, WHITE, ctx.body_font, ctx.body_weight, "center")
    gap = 32 * s
    block_h = headline.height + (gap + body.height if body.lines else 0)
    top = max(pad, (ctx.height * 0.82 - block_h) / 2)
    nodes.append(_moved(headline, top))
    if body.lines:
        nodes.append(_moved(body, top + headline.height + gap))
    nodes.extend(badge_nodes(ctx, ctx.accent, WHITE))
    nodes.extend(logo_nodes(ctx))
    return nodes


def render_story_cover(ctx: RenderContext) -> list[Node]:
    s = ctx.scale
    pad_x = 80 * s
    content_w = ctx.width - 2 * pad_x
    nodes: list[Node] = [Rect(0, 0, ctx.width, ctx.height, ctx.background), wave_node(ctx, ctx.text_color, 15)]

    y = 220 * s
    nodes.append(Rect(round(pad_x, 2), round(y, 2), round(60 * s, 2), round(6 * s, 2), ctx.accent))
    y += 6 * s + 40 * s
    headline = text_block(ctx.headline_text(), pad_x, y, content_w, 72 * s, ctx.text_color, ctx.heading_font, 900)
    nodes.append(headline)
    y += headline.height + 40 * s
    body = text_block(ctx.slide.body, pad_x, y, content_w, 32 * s, ctx.text_color, ctx.body_font, ctx.body_weight)
    # keep the body clear of the bottom safe area
    max_lines = max(0, int((ctx.height - 260 * s - y) // body.line_height)) if body.lines else 0
    if body.lines and max_lines:
        nodes.append(replace(body, lines=body.lines[:max_lines]))
    nodes.extend(logo_nodes(ctx))
    return nodes


# ----------------------------------------------------------------------
# Free and parameterized
# ----------------------------------------------------------------------


def render_generic_free(ctx: RenderContext) -> list[Node]:
    s = ctx.scale
    pad = 80 * s
    content_w = ctx.width - 2 * pad
    nodes: list[Node] = [GradientRect(0, 0, ctx.width, ctx.height, *FREE_GRADIENT)]
    if ctx.slide.image_url:
        nodes.append(ImageLayer(ctx.slide.image_url, 0, 0, ctx.width, ctx.height))
        nodes.append(Rect(0, 0, ctx.width, ctx.height, FREE_OVERLAY, opacity=0.45))

    headline = text_block(ctx.slide.headline, pad, 0, content_w, 60 * s, WHITE, ctx.heading_font, 800, "center")
    body = text_block(ctx.slide.body, pad, 0, content_w, 30 * s, WHITE, ctx.body_font, 400, "center")
    gap = 32 * s
    block_h = headline.height + (gap + body.height if body.lines else 0)
    top = max(pad, (ctx.height - block_h) / 2)
    nodes.append(_moved(headline, top))
    if body.lines:
        nodes.append(_moved(body, top + headline.height + gap))
    return nodes


def render_parameterized(ctx: RenderContext) -> list[Node]:
    params = ctx.layout_params or LayoutParams()
    s = ctx.scale
    nodes: list[Node] = []

    if params.bg.type == "gradient":
        colors = params.bg.colors or [ctx.color(params.bg.palette_index), ctx.accent]
        end = colors[1] if len(colors) > 1 else colors[0]
        nodes.append(GradientRect(0, 0, ctx.width, ctx.height, colors[0], end))
    else:
        fill = params.bg.colors[0] if params.bg.colors else ctx.color(params.bg.palette_index)
        nodes.append(Rect(0, 0, ctx.width, ctx.height, fill))

    shape = params.shape
    shape_fill = ctx.color(shape.palette_index)
    shape_h = ctx.height * shape.height_pct / 100
    if shape.type == "wave":
        nodes.append(wave_node(ctx, shape_fill, shape.height_pct, top=shape.position == "top"))
    elif shape.type == "diagonal":
        if shape.position == "top":
            points = ((0.0, 0.0), (float(ctx.width), 0.0), (0.0, shape_h))
        else:
            points = ((0.0, float(ctx.height)), (float(ctx.width), ctx.height - shape_h), (float(ctx.width), float(ctx.height)))
        nodes.append(Polygon(points=tuple((round(x, 2), round(y, 2)) for x, y in points), fill=shape_fill))

    text = params.text
    headline_text = ctx.slide.headline.upper() if text.uppercase else ctx.headline_text()
    pad = 80 * s
    region_w = ctx.width * params.card.width_pct / 100 if params.card.enabled else ctx.width - 2 * pad
    inner_pad = 48 * s if params.card.enabled else 0.0
    inner_w = region_w - 2 * inner_pad
    region_x = (ctx.width - region_w) / 2

    headline = text_block(
        headline_text, 0, 0, inner_w, text.headline_size * s, ctx.color(text.headline_palette_index),
        ctx.heading_font, ctx.headline_weight, text.alignment,
    )
    body = text_block(
        ctx.slide.body, 0, 0, inner_w, text.body_size * s, ctx.color(text.body_palette_index),
        ctx.body_font, ctx.body_weight, text.alignment,
    )
    bar_h = 4 * s if params.accent_bar.enabled else 0.0
    gap = 24 * s
    content_h = bar_h + (gap if bar_h else 0) + headline.height + (gap + body.height if body.lines else 0)
    region_h = content_h + 2 * inner_pad

    if text.vertical == "top":
        region_y = pad + 40 * s
    elif text.vertical == "bottom":
        region_y = ctx.height - pad - shape_h - region_h
    else:
        region_y = (ctx.height - region_h) / 2
    region_y = max(pad, region_y)

    if params.card.enabled:
        card_fill = ctx.color(params.card.palette_index) if params.card.palette_index is not None else ctx.card
        nodes.append(
            Rect(round(region_x, 2), round(region_y, 2), round(region_w, 2), round(region_h, 2), card_fill, radius=params.card.radius * s)
        )

    x = region_x + inner_pad
    y = region_y + inner_pad
    if params.accent_bar.enabled:
        bar_w = 48 * s
        bar_x = x + (inner_w - bar_w) / 2 if text.alignment == "center" else x
        nodes.append(Rect(round(bar_x, 2), round(y, 2), round(bar_w, 2), round(bar_h, 2), ctx.color(params.accent_bar.palette_index)))
        y += bar_h + gap
    nodes.append(_moved(headline, y, x))
    if body.lines:
        nodes.append(_moved(body, y + headline.height + gap, x))
    nodes.extend(badge_nodes(ctx, ctx.accent, WHITE))
    nodes.extend(logo_nodes(ctx))
    return nodes


def _moved(block: TextBlock, y: float, x: float | None = None) -> TextBlock:
    if x is None:
        return replace(block, y=round(y, 2))
    return replace(block, x=round(x, 2), y=round(y, 2))


# ----------------------------------------------------------------------
# Registry
# ----------------------------------------------------------------------


@dataclass(slots=True)
class TemplateRegistry:
    default_id: str = DEFAULT_TEMPLATE_ID
    _templates: dict[str, RenderFunction] = field(default_factory=dict)

    def register(self, template_id: str, render: RenderFunction) -> None:
        self._templates[template_id] = render

    def __contains__(self, template_id: str) -> bool:
        return template_id in self._templates

    def ids(self) -> list[str]:
        return sorted(self._templates)

    def resolve(self, template_id: str | None) -> tuple[str, RenderFunction, str | None]:
        """Return ``(used_id, render, fallback_from)``."""
        if template_id and template_id in self._templates:
            return template_id, self._templates[template_id], None
        return self.default_id, self._templates[self.default_id], template_id


def build_default_registry() -> TemplateRegistry:
    registry = TemplateRegistry()
    registry.register("wave_cover", render_wave_cover)
    registry.register("wave_text_card", render_wave_text_card)
    registry.register("wave_bullets", render_wave_bullets)
    registry.register("wave_closing", render_wave_closing)
    registry.register("wave_closing_cta", render_wave_closing)
    registry.register("wave_cta", render_wave_closing)
    registry.register("story_cover", render_story_cover)
    registry.register("generic_free", render_generic_free)
    registry.register("parameterized", render_parameterized)
    return registry


DEFAULT_REGISTRY = build_default_registry()


def render_slide(
    slide: Slide,
    tokens: BrandTokens | None,
    template_id: str | None,
    size: tuple[int, int],
    slide_index: int = 0,
    slide_count: int = 1,
    layout_params: LayoutParams | None = None,
    registry: TemplateRegistry | None = None,
) -> RenderTree:
    registry = registry or DEFAULT_REGISTRY
    used_id, render, fallback_from = registry.resolve(template_id)
    ctx = RenderContext(
        slide=slide,
        tokens=tokens,
        width=size[0],
        height=size[1],
        slide_index=slide_index,
        slide_count=slide_count,
        layout_params=layout_params,
    )
    nodes = render(ctx)

    # AI background sits between the base fill and the deterministic layers
    if slide.background_image_url and used_id != "generic_free":
        nodes.insert(1, ImageLayer(slide.background_image_url, 0, 0, size[0], size[1]))

    return RenderTree(width=size[0], height=size[1], template_id=used_id, nodes=nodes, fallback_from=fallback_from)
