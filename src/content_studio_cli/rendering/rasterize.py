from __future__ import annotations

import io
import logging
from collections.abc import Callable
from pathlib import Path
from urllib.parse import unquote, urlparse

from PIL import Image, ImageDraw, ImageFont, ImageOps

from content_studio_cli.providers.data_url import decode_data_url

from .tree import Circle, GradientRect, ImageLayer, Polygon, Rect, RenderTree, TextBlock

logger = logging.getLogger(__name__)

# Optional font files shipped next to the project, resolved relative to this module file
_BUNDLED_FONTS_DIR = Path(__file__).resolve().parents[3] / "assets" / "fonts"

MIN_FONT_SIZE_PX = 10
BOLD_WEIGHT_THRESHOLD = 600

ImageLoader = Callable[[str], Image.Image | None]


def _normalize_hex_color(color: str, alpha: int = 255) -> tuple[int, int, int, int]:
    value = color.strip().lstrip("#")
    if len(value) in {3, 4}:
        value = "".join(character * 2 for character in value)
    if len(value) == 8:
        alpha = int(value[6:8], 16)
        value = value[:6]
    if len(value) != 6:
        return 255, 255, 255, alpha
    return int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16), alpha


def _font_candidates(family: str, weight: int) -> list[str]:
    bold = weight >= BOLD_WEIGHT_THRESHOLD
    compact = family.replace(" ", "")
    if bold:
        names = [f"{compact}-Bold.ttf", f"{compact}Bold.ttf", "DejaVuSans-Bold.ttf", "arialbd.ttf"]
    else:
        names = [f"{compact}-Regular.ttf", f"{compact}.ttf", "DejaVuSans.ttf", "arial.ttf"]

    seen: set[str] = set()
    ordered: list[str] = []
    for name in names:
        if name not in seen:
            seen.add(name)
            ordered.append(name)
    return ordered


def _pick_font(family: str, weight: int, font_size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    """Resolve the best available font.

    Search order:
    1. Bundled fonts in ``assets/fonts/``.
    2. System font lookup via Pillow.
    3. Pillow's built-in scalable default.
    """
    for font_name in _font_candidates(family, weight):
        bundled_path = _BUNDLED_FONTS_DIR / font_name
        if bundled_path.exists():
            try:
                return ImageFont.truetype(str(bundled_path), font_size)
            except OSError:
                pass
        try:
            return ImageFont.truetype(font_name, font_size)
        except OSError:
            continue
    return ImageFont.load_default(size=font_size)


def _text_width(draw: ImageDraw.ImageDraw, text: str, font: ImageFont.FreeTypeFont | ImageFont.ImageFont) -> int:
    bbox = draw.textbbox((0, 0), text, font=font)
    return int(bbox[2] - bbox[0])


def _fit_font(
    draw: ImageDraw.ImageDraw,
    block: TextBlock,
) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    """Largest font no bigger than the block size whose widest line fits ``max_width``."""
    target = max(MIN_FONT_SIZE_PX, int(round(block.size)))
    best_font = _pick_font(block.font_family, block.weight, target)
    if block.max_width <= 0 or not block.lines:
        return best_font

    def fits(font: ImageFont.FreeTypeFont | ImageFont.ImageFont) -> bool:
        return max(_text_width(draw, line, font) for line in block.lines) <= block.max_width

    if fits(best_font):
        return best_font

    low, high = MIN_FONT_SIZE_PX, target - 1
    best_font = _pick_font(block.font_family, block.weight, MIN_FONT_SIZE_PX)
    while low <= high:
        font_size = (low + high) // 2
        font = _pick_font(block.font_family, block.weight, font_size)
        if fits(font):
            best_font = font
            low = font_size + 1
        else:
            high = font_size - 1
    return best_font


def load_local_image(href: str) -> Image.Image | None:
    """Resolve data URLs, ``file://`` URLs and plain paths. Remote URLs return ``None``."""
    if href.startswith("data:"):
        data, _ = decode_data_url(href)
        return Image.open(io.BytesIO(data))

    parsed = urlparse(href)
    if parsed.scheme in {"http", "https"}:
        logger.debug("Skipping remote image without a loader: %s", href)
        return None
    path = Path(unquote(parsed.path)) if parsed.scheme == "file" else Path(href)
    if not path.exists():
        logger.warning("Image not found for render layer: %s", href)
        return None
    return Image.open(path)


def _draw_vertical_gradient(canvas: Image.Image, node: GradientRect) -> None:
    start = _normalize_hex_color(node.start)
    end = _normalize_hex_color(node.end)
    draw = ImageDraw.Draw(canvas)
    x1, y1 = int(node.x), int(node.y)
    x2, height = int(node.x + node.width), max(int(node.height), 1)
    for offset in range(height):
        blend = offset / max(height - 1, 1)
        color = tuple(int(start[i] * (1 - blend) + end[i] * blend) for i in range(4))
        draw.line([(x1, y1 + offset), (x2, y1 + offset)], fill=color)


def _composite(canvas: Image.Image, painter: Callable[[ImageDraw.ImageDraw], None]) -> Image.Image:
    overlay = Image.new("RGBA", canvas.size, (0, 0, 0, 0))
    painter(ImageDraw.Draw(overlay))
    return Image.alpha_composite(canvas, overlay)


def rasterize(tree: RenderTree, image_loader: ImageLoader = load_local_image) -> Image.Image:
    canvas = Image.new("RGBA", (tree.width, tree.height), (255, 255, 255, 255))

    for node in tree.nodes:
        if isinstance(node, Rect):
            fill = _normalize_hex_color(node.fill, int(255 * node.opacity))
            box = [(node.x, node.y), (node.x + node.width, node.y + node.height)]
            canvas = _composite(canvas, lambda draw: draw.rounded_rectangle(box, radius=node.radius, fill=fill))
        elif isinstance(node, GradientRect):
            _draw_vertical_gradient(canvas, node)
        elif isinstance(node, Polygon):
            fill = _normalize_hex_color(node.fill, int(255 * node.opacity))
            canvas = _composite(canvas, lambda draw: draw.polygon(list(node.points), fill=fill))
        elif isinstance(node, Circle):
            fill = _normalize_hex_color(node.fill)
            box = [(node.cx - node.r, node.cy - node.r), (node.cx + node.r, node.cy + node.r)]
            ImageDraw.Draw(canvas).ellipse(box, fill=fill)
        elif isinstance(node, ImageLayer):
            source = image_loader(node.href)
            if source is None:
                continue
            size = (max(int(node.width), 1), max(int(node.height), 1))
            layer = ImageOps.fit(source.convert("RGBA"), size)
            if node.opacity < 1.0:
                alpha = layer.getchannel("A").point(lambda value: int(value * node.opacity))
                layer.putalpha(alpha)
            canvas.alpha_composite(layer, (int(node.x), int(node.y)))
        elif isinstance(node, TextBlock):
            draw = ImageDraw.Draw(canvas)
            font = _fit_font(draw, node)
            fill = _normalize_hex_color(node.fill)
            for index, line in enumerate(node.lines):
                line_x = node.x
                if node.align == "center":
                    line_x += max(0, (node.max_width - _text_width(draw, line, font)) / 2)
                draw.text((line_x, node.y + index * node.line_height), line, fill=fill, font=font)

    return canvas.convert("RGB")


def export_slide_png(tree: RenderTree, image_loader: ImageLoader = load_local_image) -> bytes:
    buffer = io.BytesIO()
    rasterize(tree, image_loader).save(buffer, format="PNG")
    return buffer.getvalue()
