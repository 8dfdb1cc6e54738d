"""Request handlers tying copy, templates, references, synthesis and storage together.

Handlers return structured ``success: false`` responses for every pipeline error
except :class:`ConfigurationError`, which propagates to the caller.
"""

from __future__ import annotations

import io
import logging
import time
import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

import httpx
from PIL import Image

from content_studio_cli.brand.tokens import build_brand_tokens
from content_studio_cli.copywriting.generator import CopyGenerator, CopyRequest
from content_studio_cli.exceptions import ConfigurationError, ContentStudioError, InsufficientDataError
from content_studio_cli.lifecycle import ContentLifecycle, apply_slide_edit
from content_studio_cli.models.brand import BrandTokens, ContentFormat, TemplateSet
from content_studio_cli.models.content import (
    FORMAT_DIMENSIONS,
    ContentStatus,
    ContentStyle,
    GeneratedContent,
    Trend,
    VisualMode,
)
from content_studio_cli.output.bundle import write_bundle
from content_studio_cli.output.debug import utc_now
from content_studio_cli.providers.base import ImageGenerator, TextGenerator
from content_studio_cli.rendering.rasterize import load_local_image
from content_studio_cli.rendering.templates import render_slide
from content_studio_cli.rendering.tree import RenderTree
from content_studio_cli.settings import StudioSettings
from content_studio_cli.storage.datastore import DataStore
from content_studio_cli.storage.object_storage import ObjectStorage
from content_studio_cli.synthesis.synthesizer import BatchResult, ImageSynthesizer, SynthesisRequest, SynthesisResult
from content_studio_cli.templates.resolver import apply_plan, layout_params_for, normalize_slide_roles, plan_slides

logger = logging.getLogger(__name__)


def _new_content_id() -> str:
    return str(uuid.uuid4())


@dataclass(slots=True)
class GenerationRequest:
    trend: Trend
    content_format: ContentFormat = "carousel"
    content_style: ContentStyle = "news"
    visual_mode: VisualMode | None = None
    brand_id: str | None = None
    template_set_id: str | None = None
    category_id: str | None = None
    style_gallery_id: str | None = None
    tone: str | None = None
    target_audience: str | None = None
    language: str | None = None
    generate_images: bool = False
    content_id: str | None = None


@dataclass(slots=True)
class GenerationResponse:
    success: bool
    content: GeneratedContent | None = None
    error: str | None = None
    batch: BatchResult | None = None

    def to_dict(self) -> dict:
        if not self.success or self.content is None:
            return {"success": False, "error": self.error}
        content = self.content
        payload: dict[str, Any] = {
            "success": True,
            "content": {
                "id": content.id,
                "title": content.title,
                "caption": content.caption,
                "hashtags": content.hashtags,
                "slides": [slide.to_payload() for slide in content.slides],
                "contentType": content.content_type,
                "contentStyle": content.content_style,
                "status": content.status,
                "visualMode": content.visual_mode,
                "brandSnapshot": content.brand_snapshot.model_dump(mode="json") if content.brand_snapshot else None,
            },
        }
        if self.batch is not None:
            payload["imageFailures"] = [outcome.slide_index for outcome in self.batch.failures]
        return payload


@dataclass(slots=True)
class SlideImageRequest:
    content_id: str
    slide_index: int
    render_with_text: bool = False


@dataclass(slots=True)
class SlideImageResponse:
    success: bool
    result: SynthesisResult | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        if not self.success or self.result is None:
            return {"success": False, "error": self.error}
        return self.result.to_dict()


@dataclass(slots=True)
class _BrandContext:
    tokens: BrandTokens | None = None
    template_set: TemplateSet | None = None
    example_descriptions: list[str] = field(default_factory=list)


class ContentStudio:
    def __init__(
        self,
        store: DataStore,
        image_generator: ImageGenerator,
        text_generator: TextGenerator,
        object_storage: ObjectStorage,
        settings: StudioSettings | None = None,
        sleep: Callable[[float], None] = time.sleep,
        lifecycle: ContentLifecycle | None = None,
        id_factory: Callable[[], str] = _new_content_id,
        http_client: httpx.Client | None = None,
    ) -> None:
        self.store = store
        self.settings = settings or StudioSettings()
        self.copy_generator = CopyGenerator(text_generator, self.settings)
        self.synthesizer = ImageSynthesizer(image_generator, object_storage, store, self.settings, sleep=sleep)
        self.lifecycle = lifecycle or ContentLifecycle()
        self._id_factory = id_factory
        self._http = http_client

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _require_content(self, content_id: str) -> GeneratedContent:
        content = self.store.get_content(content_id)
        if content is None:
            raise InsufficientDataError(f"Content not found: {content_id}")
        return content

    def _template_set(
        self, brand_id: str, template_set_id: str | None, category_id: str | None
    ) -> TemplateSet | None:
        if template_set_id:
            template_set = self.store.get_template_set(template_set_id)
            if template_set is None:
                raise InsufficientDataError(f"Template set not found: {template_set_id}")
            return template_set
        return self.store.get_active_template_set(brand_id, category_id)

    def _brand_context(self, request: GenerationRequest) -> _BrandContext:
        if not request.brand_id:
            return _BrandContext()
        brand = self.store.get_brand(request.brand_id)
        if brand is None:
            raise InsufficientDataError(f"Brand not found: {request.brand_id}")

        examples = self.store.list_brand_examples(brand.id, limit=5)
        return _BrandContext(
            tokens=build_brand_tokens(brand),
            template_set=self._template_set(brand.id, request.template_set_id, request.category_id),
            example_descriptions=[example.description for example in examples if example.description],
        )

    # ------------------------------------------------------------------
    # Whole-content generation
    # ------------------------------------------------------------------

    def generate_content(self, request: GenerationRequest) -> GenerationResponse:
        try:
            return self._generate_content(request)
        except ConfigurationError:
            raise
        except ContentStudioError as exc:
            logger.error("Content generation failed: %s", exc)
            return GenerationResponse(success=False, error=str(exc))

    def _generate_content(self, request: GenerationRequest) -> GenerationResponse:
        visual_mode: VisualMode = request.visual_mode or ("brand_guided" if request.brand_id else "free")
        if visual_mode == "brand_strict" and not request.brand_id:
            raise InsufficientDataError("brand_strict mode requires a brand")
        if visual_mode == "brand_guided" and not (request.brand_id or request.style_gallery_id):
            raise InsufficientDataError("brand_guided mode requires a brand or a style gallery entry")

        context = self._brand_context(request)
        draft = self.copy_generator.generate(
            CopyRequest(
                trend=request.trend,
                content_format=request.content_format,
                content_style=request.content_style,
                tone=request.tone,
                target_audience=request.target_audience,
                language=request.language,
                tokens=context.tokens,
                example_descriptions=context.example_descriptions,
            )
        )

        slides = normalize_slide_roles(draft.slides, request.content_format)
        style_guide = context.tokens.style_guide if context.tokens else None
        plans = plan_slides(slides, visual_mode, request.content_format, context.template_set, style_guide)
        slides = apply_plan(slides, plans)

        now = utc_now()
        category_id = request.category_id
        if category_id is None and context.template_set is not None:
            category_id = context.template_set.category_id
        content = GeneratedContent(
            id=request.content_id or self._id_factory(),
            title=draft.title,
            caption=draft.caption,
            hashtags=draft.hashtags,
            slides=slides,
            content_type=request.content_format,
            content_style=request.content_style,
            brand_id=request.brand_id,
            brand_snapshot=context.tokens,
            visual_mode=visual_mode,
            template_set_id=context.template_set.id if context.template_set else None,
            category_id=category_id,
            style_gallery_id=request.style_gallery_id,
            trend_title=request.trend.title,
            created_at=now,
            updated_at=now,
        )
        self.store.save_content(content)
        logger.info(
            "Generated %s %s (%d slides, mode=%s)", content.content_type, content.id, len(content.slides), visual_mode
        )

        batch = None
        if request.generate_images and visual_mode != "brand_strict":
            batch = self.synthesizer.generate_all(
                content,
                tokens=context.tokens,
                template_set=context.template_set,
                style_gallery_id=request.style_gallery_id,
            )
            content = self.store.get_content(content.id) or content
        return GenerationResponse(success=True, content=content, batch=batch)

    # ------------------------------------------------------------------
    # Slide images
    # ------------------------------------------------------------------

    def _content_template_set(self, content: GeneratedContent) -> TemplateSet | None:
        if content.template_set_id:
            return self.store.get_template_set(content.template_set_id)
        if content.brand_id:
            return self.store.get_active_template_set(content.brand_id, content.category_id)
        return None

    def generate_slide_image(self, request: SlideImageRequest) -> SlideImageResponse:
        try:
            content = self._require_content(request.content_id)
            if not 0 <= request.slide_index < len(content.slides):
                raise InsufficientDataError(f"Content {content.id} has no slide {request.slide_index}")

            result = self.synthesizer.synthesize(
                SynthesisRequest(
                    slide=content.slides[request.slide_index],
                    slide_index=request.slide_index,
                    content_format=content.content_type,
                    visual_mode=content.visual_mode,
                    content_id=content.id,
                    brand_id=content.brand_id,
                    tokens=content.brand_snapshot,
                    template_set=self._content_template_set(content),
                    category_id=content.category_id,
                    style_gallery_id=content.style_gallery_id,
                    render_with_text=request.render_with_text,
                )
            )
            if result.image_url:
                field_name = "background_image_url" if result.background_only else "image_url"
                self.store.upsert_slide_media(content.id, request.slide_index, **{field_name: result.image_url})
        except ConfigurationError:
            raise
        except ContentStudioError as exc:
            logger.error("Slide %d image failed: %s", request.slide_index, exc)
            return SlideImageResponse(success=False, error=str(exc))
        return SlideImageResponse(success=True, result=result)

    def generate_all_slide_images(self, content_id: str) -> BatchResult:
        try:
            content = self._require_content(content_id)
            return self.synthesizer.generate_all(
                content,
                tokens=content.brand_snapshot,
                template_set=self._content_template_set(content),
                style_gallery_id=content.style_gallery_id,
            )
        except ConfigurationError:
            raise
        except ContentStudioError as exc:
            logger.error("Batch image generation for %s failed: %s", content_id, exc)
            return BatchResult(slides=[], error=str(exc))

    # ------------------------------------------------------------------
    # Rendering and export
    # ------------------------------------------------------------------

    def render_preview(self, content_id: str, slide_index: int) -> RenderTree:
        content = self._require_content(content_id)
        if not 0 <= slide_index < len(content.slides):
            raise InsufficientDataError(f"Content {content.id} has no slide {slide_index}")
        slide = content.slides[slide_index]
        return render_slide(
            slide,
            content.brand_snapshot,
            slide.template,
            FORMAT_DIMENSIONS[content.content_type],
            slide_index=slide_index,
            slide_count=len(content.slides),
            layout_params=layout_params_for(self._content_template_set(content), slide.role),
        )

    def _load_image(self, href: str) -> Image.Image | None:
        if not href.startswith(("http://", "https://")):
            return load_local_image(href)
        if self._http is None:
            self._http = httpx.Client(timeout=30.0, follow_redirects=True)
        response = self._http.get(href)
        response.raise_for_status()
        return Image.open(io.BytesIO(response.content))

    def export_content(self, content_id: str, output_dir: Path) -> Path:
        content = self._require_content(content_id)
        return write_bundle(
            content,
            output_dir,
            template_set=self._content_template_set(content),
            image_loader=self._load_image,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def set_status(
        self, content_id: str, status: ContentStatus, scheduled_at: datetime | None = None
    ) -> GeneratedContent:
        content = self._require_content(content_id)
        return self.store.save_content(self.lifecycle.set_status(content, status, scheduled_at))

    def remove_schedule(self, content_id: str) -> GeneratedContent:
        content = self._require_content(content_id)
        return self.store.save_content(self.lifecycle.remove_schedule(content))

    def edit_slide(self, content_id: str, slide_index: int, changes: Mapping[str, Any]) -> GeneratedContent:
        content = self._require_content(content_id)
        if not 0 <= slide_index < len(content.slides):
            raise InsufficientDataError(f"Content {content.id} has no slide {slide_index}")
        slides = list(content.slides)
        slides[slide_index] = apply_slide_edit(slides[slide_index], changes)
        return self.store.save_content(content.model_copy(update={"slides": slides, "updated_at": utc_now()}))
