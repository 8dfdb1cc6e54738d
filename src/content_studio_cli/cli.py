from __future__ import annotations

import argparse
import json
import logging
import os
from datetime import datetime
from pathlib import Path

from content_studio_cli.exceptions import ConfigurationError, ContentStudioError
from content_studio_cli.models.content import Trend
from content_studio_cli.pipeline import ContentStudio, GenerationRequest, SlideImageRequest
from content_studio_cli.providers.factory import create_image_generator, create_text_generator
from content_studio_cli.rendering.rasterize import export_slide_png
from content_studio_cli.settings import load_settings
from content_studio_cli.storage.datastore import JsonFileDataStore
from content_studio_cli.storage.object_storage import create_object_storage
from content_studio_cli.storage.workspace import load_workspace


def _strip_optional_quotes(value: str) -> str:
    trimmed = value.strip()
    if len(trimmed) >= 2 and ((trimmed[0] == '"' and trimmed[-1] == '"') or (trimmed[0] == "'" and trimmed[-1] == "'")):
        return trimmed[1:-1]
    return trimmed


def _load_env_file(env_path: Path) -> None:
    if not env_path.exists() or not env_path.is_file():
        return

    for raw_line in env_path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue

        key, raw_value = line.split("=", 1)
        key = key.strip()
        if not key:
            continue

        value = _strip_optional_quotes(raw_value)
        os.environ.setdefault(key, value)


def _load_default_env_files() -> None:
    cwd_env = Path.cwd() / ".env"
    project_root_env = Path(__file__).resolve().parents[2] / ".env"

    _load_env_file(project_root_env)
    if cwd_env != project_root_env:
        _load_env_file(cwd_env)


def _iso_timestamp(value: str) -> datetime:
    try:
        return datetime.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid ISO timestamp: {value!r}") from exc


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Content studio: branded slide generation")
    parser.add_argument("--data", default="./storage/studio.json", help="Path to the JSON data store")
    parser.add_argument("--storage-root", default="./storage", help="Local object storage root for generated images")
    parser.add_argument(
        "--provider",
        choices=["mock", "gateway", "gemini"],
        default="mock",
        help="Generation backend (gemini only affects images; copy always uses the gateway)",
    )
    parser.add_argument(
        "--settings",
        default=None,
        help="Path to studio settings (.yaml/.yml/.json). If omitted, config/studio.yaml is used when present.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    seed = subparsers.add_parser("seed", help="Import brands, examples, template sets and styles from a workspace file")
    seed.add_argument("--workspace", required=True, help="Path to workspace file (.yaml/.yml/.json)")

    generate = subparsers.add_parser("generate", help="Generate copy and templates for a trend")
    generate.add_argument("--trend-title", required=True)
    generate.add_argument("--trend-description", default="")
    generate.add_argument("--theme", default="general")
    generate.add_argument("--keywords", default="", help="Comma-separated keywords")
    generate.add_argument("--format", choices=["post", "story", "carousel"], default="carousel")
    generate.add_argument("--style", choices=["news", "quote", "tip", "educational", "curiosity"], default="news")
    generate.add_argument("--mode", choices=["brand_strict", "brand_guided", "free"], default=None)
    generate.add_argument("--brand", default=None, help="Brand id")
    generate.add_argument("--template-set", default=None, help="Template set id (defaults to the active set)")
    generate.add_argument("--category", default=None, help="Category id used for reference selection")
    generate.add_argument("--style-gallery", default=None, help="Style gallery id when no brand is used")
    generate.add_argument("--tone", default=None)
    generate.add_argument("--audience", default=None)
    generate.add_argument("--language", default=None)
    generate.add_argument("--generate-images", action="store_true", help="Synthesize slide images after copy")

    slide_image = subparsers.add_parser("slide-image", help="Synthesize the image of one slide")
    slide_image.add_argument("--content-id", required=True)
    slide_image.add_argument("--slide", type=int, required=True, help="Zero-based slide index")
    slide_image.add_argument("--with-text", action="store_true", help="Ask the model to render the slide text")

    generate_all = subparsers.add_parser("generate-all", help="Synthesize images for every slide in batches")
    generate_all.add_argument("--content-id", required=True)

    render = subparsers.add_parser("render", help="Render one slide deterministically to SVG or PNG")
    render.add_argument("--content-id", required=True)
    render.add_argument("--slide", type=int, required=True)
    render.add_argument("--out", required=True, help="Output file (.svg or .png)")

    export = subparsers.add_parser("export", help="Export all slides and captions as a ZIP bundle")
    export.add_argument("--content-id", required=True)
    export.add_argument("--output", default="./output")

    status = subparsers.add_parser("status", help="Move content through its lifecycle")
    status.add_argument("--content-id", required=True)
    status.add_argument("--set", dest="status", choices=["draft", "approved", "scheduled", "rejected", "published"])
    status.add_argument("--at", type=_iso_timestamp, default=None, help="ISO timestamp, required with --set scheduled")
    status.add_argument("--remove-schedule", action="store_true")

    return parser.parse_args(argv)


def _build_studio(args: argparse.Namespace) -> ContentStudio:
    settings = load_settings(Path(args.settings) if args.settings else None)
    store = JsonFileDataStore(Path(args.data))
    studio = ContentStudio(
        store=store,
        image_generator=create_image_generator(args.provider, settings),
        text_generator=create_text_generator(args.provider, settings),
        object_storage=create_object_storage(Path(args.storage_root), settings.storage_bucket, settings.public_base_url),
        settings=settings,
    )
    return studio


def _run(args: argparse.Namespace) -> dict:
    if args.command == "seed":
        seed = load_workspace(Path(args.workspace))
        store = JsonFileDataStore(Path(args.data))
        store.import_records(seed.brands, seed.brand_examples, seed.template_sets, seed.style_gallery)
        return {
            "brands": len(seed.brands),
            "brand_examples": len(seed.brand_examples),
            "template_sets": len(seed.template_sets),
            "style_gallery": len(seed.style_gallery),
        }

    studio = _build_studio(args)

    if args.command == "generate":
        keywords = [keyword.strip() for keyword in args.keywords.split(",") if keyword.strip()]
        response = studio.generate_content(
            GenerationRequest(
                trend=Trend(title=args.trend_title, description=args.trend_description, theme=args.theme, keywords=keywords),
                content_format=args.format,
                content_style=args.style,
                visual_mode=args.mode,
                brand_id=args.brand,
                template_set_id=args.template_set,
                category_id=args.category,
                style_gallery_id=args.style_gallery,
                tone=args.tone,
                target_audience=args.audience,
                language=args.language,
                generate_images=args.generate_images,
            )
        )
        return response.to_dict()

    if args.command == "slide-image":
        return studio.generate_slide_image(
            SlideImageRequest(content_id=args.content_id, slide_index=args.slide, render_with_text=args.with_text)
        ).to_dict()

    if args.command == "generate-all":
        return studio.generate_all_slide_images(args.content_id).to_dict()

    if args.command == "render":
        tree = studio.render_preview(args.content_id, args.slide)
        out_path = Path(args.out)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        if out_path.suffix.lower() == ".png":
            out_path.write_bytes(export_slide_png(tree))
        else:
            out_path.write_text(tree.to_svg(), encoding="utf-8")
        return {"template_id": tree.template_id, "fallback_from": tree.fallback_from, "path": str(out_path)}

    if args.command == "export":
        return {"bundle": str(studio.export_content(args.content_id, Path(args.output)))}

    if args.command == "status":
        if args.remove_schedule:
            content = studio.remove_schedule(args.content_id)
        elif args.status:
            content = studio.set_status(args.content_id, args.status, args.at)
        else:
            raise SystemExit("status requires --set or --remove-schedule")
        return {"id": content.id, "status": content.status, "scheduled_at": content.scheduled_at and content.scheduled_at.isoformat()}

    raise SystemExit(f"Unknown command: {args.command}")


def main(argv: list[str] | None = None) -> None:
    _load_default_env_files()
    args = parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s | %(levelname)s | %(message)s")

    try:
        result = _run(args)
    except ConfigurationError as exc:
        raise SystemExit(f"Configuration error:\n{exc}") from exc
    except ContentStudioError as exc:
        raise SystemExit(f"Command failed: {exc}") from exc

    print(json.dumps(result, indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
