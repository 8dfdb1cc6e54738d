from __future__ import annotations

import logging
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field

from content_studio_cli.exceptions import (
    ConfigurationError,
    ContentStudioError,
    InsufficientDataError,
    InsufficientReferencesError,
)
from content_studio_cli.lifecycle import merge_slide_media
from content_studio_cli.models.brand import BrandTokens, ContentFormat, TemplateSet
from content_studio_cli.models.content import GeneratedContent, Slide, VisualMode
from content_studio_cli.output.debug import GenerationDebug
from content_studio_cli.output.metrics import BatchMetrics, Timer
from content_studio_cli.providers.base import ImageGenerator
from content_studio_cli.providers.data_url import decode_data_url, extension_for
from content_studio_cli.references.selector import (
    NO_REFERENCES,
    ReferenceSet,
    select_references,
    select_style_gallery_references,
)
from content_studio_cli.settings import StudioSettings
from content_studio_cli.storage.datastore import DataStore
from content_studio_cli.storage.object_storage import ObjectStorage, background_image_key, slide_image_key

from .prompts import build_background_prompt, build_free_prompt, build_text_slide_prompt
from .retry import RetryPolicy

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(slots=True)
class SynthesisRequest:
    slide: Slide
    slide_index: int
    content_format: ContentFormat
    visual_mode: VisualMode
    content_id: str | None = None
    brand_id: str | None = None
    tokens: BrandTokens | None = None
    template_set: TemplateSet | None = None
    category_id: str | None = None
    style_gallery_id: str | None = None
    render_with_text: bool = False


@dataclass(slots=True)
class SynthesisResult:
    slide_index: int
    image_url: str | None
    background_only: bool
    debug: GenerationDebug

    def to_dict(self) -> dict:
        payload: dict = {"success": True, "debug": self.debug.to_dict()}
        payload["backgroundImageUrl" if self.background_only else "imageUrl"] = self.image_url
        return payload


@dataclass(slots=True)
class SlideOutcome:
    slide_index: int
    result: SynthesisResult | None = None
    error: str | None = None
    error_type: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(slots=True)
class BatchResult:
    slides: list[Slide]
    outcomes: list[SlideOutcome] = field(default_factory=list)
    metrics: BatchMetrics = field(default_factory=BatchMetrics)
    error: str | None = None

    @property
    def failures(self) -> list[SlideOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.ok]

    def to_dict(self) -> dict:
        payload = {
            "success": self.error is None and not self.failures,
            "slides": [slide.to_payload() for slide in self.slides],
            "failures": [
                {"slide_index": outcome.slide_index, "error": outcome.error, "error_type": outcome.error_type}
                for outcome in self.failures
            ],
            "metrics": self.metrics.to_dict(),
        }
        if self.error is not None:
            payload["error"] = self.error
        return payload


class ImageSynthesizer:
    def __init__(
        self,
        generator: ImageGenerator,
        storage: ObjectStorage,
        store: DataStore,
        settings: StudioSettings | None = None,
        retry_policy: RetryPolicy | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock_ms: Callable[[], int] = _now_ms,
    ) -> None:
        self.generator = generator
        self.storage = storage
        self.store = store
        self.settings = settings or StudioSettings()
        self.retry_policy = retry_policy or RetryPolicy.from_settings(self.settings.retry, sleep=sleep)
        self._sleep = sleep
        self._clock_ms = clock_ms

    # ------------------------------------------------------------------
    # Single slide
    # ------------------------------------------------------------------

    def _references(self, request: SynthesisRequest) -> ReferenceSet:
        if request.visual_mode == "free":
            return NO_REFERENCES

        if request.brand_id:
            category_id = request.category_id
            if category_id is None and request.template_set is not None:
                category_id = request.template_set.category_id
            return select_references(
                self.store,
                request.brand_id,
                request.content_format,
                category_id=category_id,
                settings=self.settings.references,
            )

        if request.style_gallery_id:
            entry = self.store.get_style_gallery_entry(request.style_gallery_id)
            if entry is None:
                raise InsufficientDataError(f"Style gallery entry not found: {request.style_gallery_id}")
            return select_style_gallery_references(
                entry, request.content_format, request.slide.role, settings=self.settings.references
            )

        raise InsufficientReferencesError()

    def _prompt(self, request: SynthesisRequest) -> tuple[str, str, bool]:
        """Return ``(prompt, model, background_only)``."""
        if request.visual_mode == "free":
            return build_free_prompt(request.slide, request.tokens), self.settings.image_model, False

        if request.render_with_text and request.tokens is not None:
            prompt = build_text_slide_prompt(request.slide, request.content_format, request.tokens)
            return prompt, self.settings.image_model, False

        style_entry = None
        if request.brand_id is None and request.style_gallery_id:
            style_entry = self.store.get_style_gallery_entry(request.style_gallery_id)
        prompt = build_background_prompt(
            request.slide,
            request.content_format,
            tokens=request.tokens,
            template_set=request.template_set,
            style_entry=style_entry,
            safe_area=self.settings.safe_area,
        )
        return prompt, self.settings.background_model, True

    def synthesize(self, request: SynthesisRequest) -> SynthesisResult:
        if request.visual_mode == "brand_strict":
            raise InsufficientDataError("brand_strict slides are rendered from templates only")

        references = self._references(request)
        prompt, model, background_only = self._prompt(request)

        def attempt() -> tuple[bytes, str] | None:
            data_url = self.generator.generate_image(prompt, references.image_urls, model)
            if data_url is None:
                return None
            return decode_data_url(data_url)

        timer = Timer()
        decoded, attempts = self.retry_policy.call(attempt)
        elapsed_ms = timer.elapsed_ms()

        image_url: str | None = None
        if decoded is not None:
            data, mime_type = decoded
            key_builder = background_image_key if background_only else slide_image_key
            path = key_builder(request.content_id, request.slide_index, self._clock_ms(), extension_for(mime_type))
            image_url = self.storage.upload(path, data, mime_type)
            logger.info("Slide %d image stored at %s", request.slide_index, path)

        debug = GenerationDebug(
            fallbackLevel=references.fallback_level,
            referencesUsedCount=references.count,
            image_model=model,
            image_generation_ms=elapsed_ms,
            visual_mode=request.visual_mode,
            backgroundOnly=background_only,
            referenceExampleIds=list(references.example_ids),
            attempts=attempts,
        )
        return SynthesisResult(
            slide_index=request.slide_index,
            image_url=image_url,
            background_only=background_only,
            debug=debug,
        )

    # ------------------------------------------------------------------
    # Batch
    # ------------------------------------------------------------------

    def _run_one(self, request: SynthesisRequest, persist: bool) -> SlideOutcome:
        try:
            result = self.synthesize(request)
        except ConfigurationError:
            raise
        except ContentStudioError as exc:
            logger.warning("Slide %d generation failed: %s", request.slide_index, exc)
            return SlideOutcome(slide_index=request.slide_index, error=str(exc), error_type=type(exc).__name__)

        if persist and result.image_url and request.content_id:
            field_name = "background_image_url" if result.background_only else "image_url"
            try:
                self.store.upsert_slide_media(request.content_id, request.slide_index, **{field_name: result.image_url})
            except (ContentStudioError, OSError) as exc:
                logger.warning("Slide %d media could not be saved: %s", request.slide_index, exc)
                return SlideOutcome(
                    slide_index=request.slide_index, result=result, error=str(exc), error_type=type(exc).__name__
                )
        return SlideOutcome(slide_index=request.slide_index, result=result)

    def generate_all(
        self,
        content: GeneratedContent,
        tokens: BrandTokens | None = None,
        template_set: TemplateSet | None = None,
        style_gallery_id: str | None = None,
        persist: bool = True,
    ) -> BatchResult:
        """Synthesize every slide in small concurrent batches, keeping slide order.

        A failed slide keeps its previous media and never aborts its siblings.
        """
        timer = Timer()
        metrics = BatchMetrics(slides_requested=len(content.slides))
        slides = list(content.slides)

        if content.visual_mode == "brand_strict":
            metrics.slides_skipped = len(slides)
            return BatchResult(slides=slides, metrics=metrics)

        requests = [
            SynthesisRequest(
                slide=slide,
                slide_index=index,
                content_format=content.content_type,
                visual_mode=content.visual_mode,
                content_id=content.id,
                brand_id=content.brand_id,
                tokens=tokens or content.brand_snapshot,
                template_set=template_set,
                category_id=content.category_id,
                style_gallery_id=style_gallery_id,
            )
            for index, slide in enumerate(slides)
        ]

        batch_size = self.settings.batch.size
        outcomes: dict[int, SlideOutcome] = {}
        for batch_number, start in enumerate(range(0, len(requests), batch_size)):
            if batch_number:
                self._sleep(self.settings.batch.delay_seconds)
            batch = requests[start : start + batch_size]
            metrics.batches += 1
            with ThreadPoolExecutor(max_workers=len(batch)) as executor:
                futures = {executor.submit(self._run_one, request, persist): request.slide_index for request in batch}
                for future in as_completed(futures):
                    outcome = future.result()
                    outcomes[outcome.slide_index] = outcome

        ordered = [outcomes[index] for index in sorted(outcomes)]
        for outcome in ordered:
            if not outcome.ok:
                metrics.slides_failed += 1
                continue
            result = outcome.result
            if result is None or result.image_url is None:
                metrics.images_empty += 1
                continue
            metrics.images_generated += 1
            if result.background_only:
                slides[outcome.slide_index] = merge_slide_media(
                    slides[outcome.slide_index], background_image_url=result.image_url
                )
            else:
                slides[outcome.slide_index] = merge_slide_media(slides[outcome.slide_index], image_url=result.image_url)

        metrics.execution_time_seconds = round(timer.elapsed(), 3)
        logger.info(
            "Batch for content %s: %d generated, %d empty, %d failed",
            content.id,
            metrics.images_generated,
            metrics.images_empty,
            metrics.slides_failed,
        )
        return BatchResult(slides=slides, outcomes=ordered, metrics=metrics)
