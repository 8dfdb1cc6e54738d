"""Render tree: the resolved, pixel-positioned layout of one slide.

Templates produce a :class:`RenderTree`; the same tree is serialized to SVG for
previews and rasterized with Pillow for export, so both outputs agree on every
position and line break.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from html import escape

CHAR_WIDTH_RATIO = 0.52
LINE_HEIGHT_RATIO = 1.2

# Wave divider in a 1080x200 box, as cubic segments from (0, 80).
WAVE_VIEWBOX = (1080.0, 200.0)
WAVE_SEGMENTS: tuple[tuple[tuple[float, float], tuple[float, float], tuple[float, float]], ...] = (
    ((180.0, 20.0), (360.0, 140.0), (540.0, 80.0)),
    ((720.0, 20.0), (900.0, 140.0), (1080.0, 80.0)),
)
WAVE_START = (0.0, 80.0)
_BEZIER_STEPS = 24


@dataclass(slots=True, frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float
    fill: str
    radius: float = 0.0
    opacity: float = 1.0


@dataclass(slots=True, frozen=True)
class GradientRect:
    x: float
    y: float
    width: float
    height: float
    start: str
    end: str


@dataclass(slots=True, frozen=True)
class Polygon:
    points: tuple[tuple[float, float], ...]
    fill: str
    opacity: float = 1.0


@dataclass(slots=True, frozen=True)
class Circle:
    cx: float
    cy: float
    r: float
    fill: str


@dataclass(slots=True, frozen=True)
class TextBlock:
    x: float
    y: float
    lines: tuple[str, ...]
    size: float
    fill: str
    font_family: str = "Inter"
    weight: int = 400
    align: str = "left"
    max_width: float = 0.0

    @property
    def line_height(self) -> float:
        return self.size * LINE_HEIGHT_RATIO

    @property
    def height(self) -> float:
        return self.line_height * len(self.lines)


@dataclass(slots=True, frozen=True)
class ImageLayer:
    href: str
    x: float
    y: float
    width: float
    height: float
    opacity: float = 1.0


Node = Rect | GradientRect | Polygon | Circle | TextBlock | ImageLayer


@dataclass(slots=True)
class RenderTree:
    width: int
    height: int
    template_id: str
    nodes: list[Node] = field(default_factory=list)
    fallback_from: str | None = None

    def to_dict(self) -> dict:
        return {
            "width": self.width,
            "height": self.height,
            "template_id": self.template_id,
            "fallback_from": self.fallback_from,
            "nodes": [{"type": type(node).__name__, **asdict(node)} for node in self.nodes],
        }

    def texts(self) -> list[str]:
        return [line for node in self.nodes if isinstance(node, TextBlock) for line in node.lines]

    def to_svg(self) -> str:
        defs: list[str] = []
        body: list[str] = []
        for index, node in enumerate(self.nodes):
            if isinstance(node, Rect):
                body.append(
                    f'<rect x="{node.x:g}" y="{node.y:g}" width="{node.width:g}" height="{node.height:g}" '
                    f'rx="{node.radius:g}" fill="{node.fill}" fill-opacity="{node.opacity:g}"/>'
                )
            elif isinstance(node, GradientRect):
                gradient_id = f"g{index}"
                defs.append(
                    f'<linearGradient id="{gradient_id}" x1="0" y1="0" x2="1" y2="1">'
                    f'<stop offset="0%" stop-color="{node.start}"/><stop offset="100%" stop-color="{node.end}"/>'
                    "</linearGradient>"
                )
                body.append(
                    f'<rect x="{node.x:g}" y="{node.y:g}" width="{node.width:g}" height="{node.height:g}" '
                    f'fill="url(#{gradient_id})"/>'
                )
            elif isinstance(node, Polygon):
                points = " ".join(f"{x:.1f},{y:.1f}" for x, y in node.points)
                body.append(f'<polygon points="{points}" fill="{node.fill}" fill-opacity="{node.opacity:g}"/>')
            elif isinstance(node, Circle):
                body.append(f'<circle cx="{node.cx:g}" cy="{node.cy:g}" r="{node.r:g}" fill="{node.fill}"/>')
            elif isinstance(node, ImageLayer):
                body.append(
                    f'<image href="{escape(node.href)}" x="{node.x:g}" y="{node.y:g}" width="{node.width:g}" '
                    f'height="{node.height:g}" opacity="{node.opacity:g}" preserveAspectRatio="xMidYMid slice"/>'
                )
            elif isinstance(node, TextBlock):
                anchor = "middle" if node.align == "center" else "start"
                anchor_x = node.x + node.max_width / 2 if node.align == "center" else node.x
                for line_index, line in enumerate(node.lines):
                    baseline = node.y + node.size + line_index * node.line_height
                    body.append(
                        f'<text x="{anchor_x:g}" y="{baseline:g}" font-family="{escape(node.font_family)}" '
                        f'font-size="{node.size:g}" font-weight="{node.weight}" fill="{node.fill}" '
                        f'text-anchor="{anchor}">{escape(line)}</text>'
                    )

        defs_block = f"<defs>{''.join(defs)}</defs>" if defs else ""
        return (
            f'<svg xmlns="http://www.w3.org/2000/svg" width="{self.width}" height="{self.height}" '
            f'viewBox="0 0 {self.width} {self.height}">{defs_block}{"".join(body)}</svg>'
        )


def wrap_by_chars(text: str, max_chars: int) -> list[str]:
    if not text:
        return []
    max_chars = max(1, max_chars)
    lines: list[str] = []
    current = ""
    for word in text.split():
        while len(word) > max_chars:
            if current:
                lines.append(current)
                current = ""
            lines.append(word[:max_chars])
            word = word[max_chars:]
        candidate = f"{current} {word}".strip()
        if len(candidate) <= max_chars:
            current = candidate
        else:
            lines.append(current)
            current = word
    if current:
        lines.append(current)
    return lines


def chars_per_line(max_width: float, size: float) -> int:
    return max(8, int(max_width / (size * CHAR_WIDTH_RATIO)))


def _cubic(p0: tuple[float, float], p1: tuple[float, float], p2: tuple[float, float], p3: tuple[float, float], t: float) -> tuple[float, float]:
    u = 1 - t
    x = u**3 * p0[0] + 3 * u**2 * t * p1[0] + 3 * u * t**2 * p2[0] + t**3 * p3[0]
    y = u**3 * p0[1] + 3 * u**2 * t * p1[1] + 3 * u * t**2 * p2[1] + t**3 * p3[1]
    return x, y


def wave_points(x: float, y: float, width: float, height: float, flip: bool = False) -> tuple[tuple[float, float], ...]:
    """Sample the wave divider into a closed polygon filling the box below the curve."""
    view_w, view_h = WAVE_VIEWBOX
    sampled: list[tuple[float, float]] = [WAVE_START]
    start = WAVE_START
    for c1, c2, end in WAVE_SEGMENTS:
        for step in range(1, _BEZIER_STEPS + 1):
            sampled.append(_cubic(start, c1, c2, end, step / _BEZIER_STEPS))
        start = end
    sampled.extend([(view_w, view_h), (0.0, view_h)])

    points: list[tuple[float, float]] = []
    for px, py in sampled:
        if flip:
            py = view_h - py
        points.append((round(x + px / view_w * width, 2), round(y + py / view_h * height, 2)))
    return tuple(points)
