from __future__ import annotations

import logging
import re
import zipfile
from pathlib import Path

from content_studio_cli.models.brand import TemplateSet
from content_studio_cli.models.content import FORMAT_DIMENSIONS, GeneratedContent
from content_studio_cli.rendering.rasterize import ImageLoader, export_slide_png, load_local_image
from content_studio_cli.rendering.templates import TemplateRegistry, render_slide
from content_studio_cli.templates.resolver import layout_params_for

logger = logging.getLogger(__name__)

CAPTIONS_FILENAME = "legenda.txt"


def bundle_filename(title: str) -> str:
    stem = re.sub(r"[^a-zA-Z0-9]", "_", (title or "content")[:30])
    return f"{stem}_content.zip"


def captions_text(content: GeneratedContent) -> str:
    brand_name = content.brand_snapshot.name if content.brand_snapshot else "-"
    lines = [
        f"Title: {content.title}",
        f"Brand: {brand_name}",
        "",
        "Caption:",
        content.caption,
        "",
        "Hashtags:",
        " ".join(content.hashtags),
        "",
    ]
    for index, slide in enumerate(content.slides, start=1):
        lines.append(f"--- Slide {index} ({slide.role}) ---")
        lines.append(slide.headline)
        if slide.body:
            lines.append(slide.body)
        for bullet in slide.bullets or []:
            lines.append(f"- {bullet}")
        lines.append("")
    return "\n".join(lines)


def write_bundle(
    content: GeneratedContent,
    output_dir: Path,
    template_set: TemplateSet | None = None,
    registry: TemplateRegistry | None = None,
    image_loader: ImageLoader = load_local_image,
) -> Path:
    """Render every slide deterministically and zip them with a captions file."""
    size = FORMAT_DIMENSIONS[content.content_type]
    output_dir.mkdir(parents=True, exist_ok=True)
    bundle_path = output_dir / bundle_filename(content.title)

    with zipfile.ZipFile(bundle_path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for index, slide in enumerate(content.slides):
            tree = render_slide(
                slide,
                content.brand_snapshot,
                slide.template,
                size,
                slide_index=index,
                slide_count=len(content.slides),
                layout_params=layout_params_for(template_set, slide.role),
                registry=registry,
            )
            if tree.fallback_from:
                logger.warning("Slide %d: template '%s' missing, rendered %s", index, tree.fallback_from, tree.template_id)
            archive.writestr(f"slide_{index + 1}.png", export_slide_png(tree, image_loader))
        archive.writestr(CAPTIONS_FILENAME, captions_text(content))

    logger.info("Wrote export bundle %s", bundle_path)
    return bundle_path
