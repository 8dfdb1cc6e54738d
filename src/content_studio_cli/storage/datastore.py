"""Record store for brands, examples, template sets and generated content.

``InMemoryDataStore`` holds everything in dicts behind a lock so batch workers
can upsert slide media concurrently.  ``JsonFileDataStore`` adds a JSON file
that is rewritten after every mutation; concurrent writers to the same content
follow last-write-wins.
"""

from __future__ import annotations

import json
import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from content_studio_cli.exceptions import InsufficientDataError
from content_studio_cli.lifecycle import merge_slide_media
from content_studio_cli.models.brand import BrandExample, BrandRecord, StyleGalleryEntry, TemplateSet
from content_studio_cli.models.content import GeneratedContent
from content_studio_cli.output.debug import utc_now

logger = logging.getLogger(__name__)


def _created_key(record: BrandExample | TemplateSet) -> float:
    return record.created_at.timestamp() if record.created_at else 0.0


class DataStore(ABC):
    @abstractmethod
    def get_brand(self, brand_id: str) -> BrandRecord | None:
        raise NotImplementedError

    @abstractmethod
    def list_brand_examples(
        self,
        brand_id: str,
        category_id: str | None = None,
        content_types: Iterable[str] | None = None,
        limit: int | None = None,
    ) -> list[BrandExample]:
        """Examples of *brand_id*, most recent first, optionally filtered and capped."""
        raise NotImplementedError

    @abstractmethod
    def get_template_set(self, template_set_id: str) -> TemplateSet | None:
        raise NotImplementedError

    @abstractmethod
    def get_active_template_set(self, brand_id: str, category_id: str | None = None) -> TemplateSet | None:
        raise NotImplementedError

    @abstractmethod
    def save_template_set(self, template_set: TemplateSet) -> TemplateSet:
        raise NotImplementedError

    @abstractmethod
    def activate_template_set(self, template_set_id: str) -> TemplateSet:
        raise NotImplementedError

    @abstractmethod
    def get_style_gallery_entry(self, entry_id: str) -> StyleGalleryEntry | None:
        raise NotImplementedError

    @abstractmethod
    def get_content(self, content_id: str) -> GeneratedContent | None:
        raise NotImplementedError

    @abstractmethod
    def save_content(self, content: GeneratedContent) -> GeneratedContent:
        raise NotImplementedError

    @abstractmethod
    def upsert_slide_media(
        self,
        content_id: str,
        slide_index: int,
        image_url: str | None = None,
        background_image_url: str | None = None,
    ) -> GeneratedContent:
        """Idempotent write keyed by ``(content_id, slide_index)``."""
        raise NotImplementedError


class InMemoryDataStore(DataStore):
    def __init__(
        self,
        brands: Iterable[BrandRecord] = (),
        brand_examples: Iterable[BrandExample] = (),
        template_sets: Iterable[TemplateSet] = (),
        style_gallery: Iterable[StyleGalleryEntry] = (),
        contents: Iterable[GeneratedContent] = (),
    ) -> None:
        self._lock = threading.RLock()
        self._brands = {brand.id: brand for brand in brands}
        self._examples = {example.id: example for example in brand_examples}
        self._template_sets = {template_set.id: template_set for template_set in template_sets}
        self._style_gallery = {entry.id: entry for entry in style_gallery}
        self._contents = {content.id: content for content in contents}

    # ------------------------------------------------------------------
    # Brands and references
    # ------------------------------------------------------------------

    def get_brand(self, brand_id: str) -> BrandRecord | None:
        return self._brands.get(brand_id)

    def list_brand_examples(
        self,
        brand_id: str,
        category_id: str | None = None,
        content_types: Iterable[str] | None = None,
        limit: int | None = None,
    ) -> list[BrandExample]:
        wanted_types = set(content_types) if content_types is not None else None
        with self._lock:
            matches = [
                example
                for example in self._examples.values()
                if example.brand_id == brand_id
                and (category_id is None or example.category_id == category_id)
                and (wanted_types is None or example.content_type in wanted_types)
            ]
        matches.sort(key=_created_key, reverse=True)
        return matches[:limit] if limit is not None else matches

    def get_style_gallery_entry(self, entry_id: str) -> StyleGalleryEntry | None:
        return self._style_gallery.get(entry_id)

    # ------------------------------------------------------------------
    # Template sets
    # ------------------------------------------------------------------

    def get_template_set(self, template_set_id: str) -> TemplateSet | None:
        return self._template_sets.get(template_set_id)

    def get_active_template_set(self, brand_id: str, category_id: str | None = None) -> TemplateSet | None:
        with self._lock:
            candidates = [
                template_set
                for template_set in self._template_sets.values()
                if template_set.brand_id == brand_id
                and template_set.status == "active"
                and template_set.category_id == category_id
            ]
        if not candidates:
            return None
        return max(candidates, key=_created_key)

    def save_template_set(self, template_set: TemplateSet) -> TemplateSet:
        with self._lock:
            self._template_sets[template_set.id] = template_set
            self._flush()
        return template_set

    def activate_template_set(self, template_set_id: str) -> TemplateSet:
        """Mark a set active and archive every other active set of the same brand+category."""
        with self._lock:
            target = self._template_sets.get(template_set_id)
            if target is None:
                raise InsufficientDataError(f"Template set not found: {template_set_id}")
            for other in list(self._template_sets.values()):
                if (
                    other.id != target.id
                    and other.brand_id == target.brand_id
                    and other.category_id == target.category_id
                    and other.status == "active"
                ):
                    self._template_sets[other.id] = other.model_copy(update={"status": "archived"})
                    logger.info("Archived template set %s", other.id)
            activated = target.model_copy(update={"status": "active"})
            self._template_sets[activated.id] = activated
            self._flush()
        return activated

    # ------------------------------------------------------------------
    # Contents
    # ------------------------------------------------------------------

    def get_content(self, content_id: str) -> GeneratedContent | None:
        return self._contents.get(content_id)

    def save_content(self, content: GeneratedContent) -> GeneratedContent:
        with self._lock:
            self._contents[content.id] = content
            self._flush()
        return content

    def upsert_slide_media(
        self,
        content_id: str,
        slide_index: int,
        image_url: str | None = None,
        background_image_url: str | None = None,
    ) -> GeneratedContent:
        with self._lock:
            content = self._contents.get(content_id)
            if content is None:
                raise InsufficientDataError(f"Content not found: {content_id}")
            if not 0 <= slide_index < len(content.slides):
                raise InsufficientDataError(f"Content {content_id} has no slide {slide_index}")

            slides = list(content.slides)
            slides[slide_index] = merge_slide_media(slides[slide_index], image_url, background_image_url)
            updated = content.model_copy(update={"slides": slides, "updated_at": utc_now()})
            self._contents[content_id] = updated
            self._flush()
        return updated

    def _flush(self) -> None:
        """Hook for persistent subclasses. Called with the lock held."""


class JsonFileDataStore(InMemoryDataStore):
    """In-memory store mirrored to a single JSON document on disk."""

    def __init__(self, path: Path) -> None:
        self.path = path
        data: dict[str, Any] = {}
        if path.exists():
            data = json.loads(path.read_text(encoding="utf-8"))
        super().__init__(
            brands=[BrandRecord.model_validate(item) for item in data.get("brands", [])],
            brand_examples=[BrandExample.model_validate(item) for item in data.get("brand_examples", [])],
            template_sets=[TemplateSet.model_validate(item) for item in data.get("template_sets", [])],
            style_gallery=[StyleGalleryEntry.model_validate(item) for item in data.get("style_gallery", [])],
            contents=[GeneratedContent.model_validate(item) for item in data.get("contents", [])],
        )

    def import_records(
        self,
        brands: Iterable[BrandRecord] = (),
        brand_examples: Iterable[BrandExample] = (),
        template_sets: Iterable[TemplateSet] = (),
        style_gallery: Iterable[StyleGalleryEntry] = (),
    ) -> None:
        with self._lock:
            self._brands.update({brand.id: brand for brand in brands})
            self._examples.update({example.id: example for example in brand_examples})
            self._template_sets.update({template_set.id: template_set for template_set in template_sets})
            self._style_gallery.update({entry.id: entry for entry in style_gallery})
            self._flush()

    def _flush(self) -> None:
        document = {
            "brands": [brand.model_dump(mode="json") for brand in self._brands.values()],
            "brand_examples": [example.model_dump(mode="json") for example in self._examples.values()],
            "template_sets": [template_set.model_dump(mode="json") for template_set in self._template_sets.values()],
            "style_gallery": [entry.model_dump(mode="json") for entry in self._style_gallery.values()],
            "contents": [content.model_dump(mode="json") for content in self._contents.values()],
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(document, indent=2, ensure_ascii=False), encoding="utf-8")
