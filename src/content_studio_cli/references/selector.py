"""Reference image selection for grounded image synthesis.

Brand references come from a cascade that stops at the first tier with enough
usable examples:

1. ``exact_category``     same category and same content type
2. ``category_any_type``  same category, any content type
3. ``brand_wide``         any example of the brand

Tiers 1 and 2 need ``min_tier_matches`` examples; the brand-wide tier accepts
any non-empty result and tags it as degraded.  Without a brand, a style-gallery
entry supplies pre-generated references keyed by format and role.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal

from content_studio_cli.exceptions import InsufficientReferencesError
from content_studio_cli.models.brand import BrandExample, ContentFormat, StyleGalleryEntry
from content_studio_cli.settings import ReferenceSettings
from content_studio_cli.storage.datastore import DataStore

logger = logging.getLogger(__name__)

FallbackLevel = Literal["exact_category", "category_any_type", "brand_wide", "style_gallery", "none"]

GALLERY_FALLBACK_FORMAT = "post"


@dataclass(slots=True, frozen=True)
class ReferenceSet:
    image_urls: tuple[str, ...]
    fallback_level: FallbackLevel
    example_ids: tuple[str, ...] = ()
    matched_count: int = 0

    @property
    def count(self) -> int:
        return len(self.image_urls)

    @property
    def degraded(self) -> bool:
        return self.fallback_level not in {"exact_category", "style_gallery"}


NO_REFERENCES = ReferenceSet(image_urls=(), fallback_level="none")


def _usable(examples: list[BrandExample]) -> list[BrandExample]:
    return [example for example in examples if example.image_url]


def select_references(
    store: DataStore,
    brand_id: str,
    content_format: ContentFormat,
    category_id: str | None = None,
    settings: ReferenceSettings | None = None,
) -> ReferenceSet:
    settings = settings or ReferenceSettings()

    tiers: list[tuple[FallbackLevel, dict]] = []
    if category_id:
        tiers.append(("exact_category", {"category_id": category_id, "content_types": [content_format]}))
        tiers.append(("category_any_type", {"category_id": category_id}))
    tiers.append(("brand_wide", {}))

    for level, filters in tiers:
        examples = _usable(store.list_brand_examples(brand_id, limit=settings.fetch_limit, **filters))
        threshold = 1 if level == "brand_wide" else settings.min_tier_matches
        if len(examples) >= threshold:
            sent = examples[: settings.max_sent]
            logger.info(
                "References for brand %s: level=%s matched=%d sent=%d",
                brand_id,
                level,
                len(examples),
                len(sent),
            )
            return ReferenceSet(
                image_urls=tuple(example.image_url for example in sent if example.image_url),
                fallback_level=level,
                example_ids=tuple(example.id for example in sent),
                matched_count=len(examples),
            )
        logger.info("Reference tier %s for brand %s had %d usable examples", level, brand_id, len(examples))

    raise InsufficientReferencesError()


def select_style_gallery_references(
    entry: StyleGalleryEntry,
    content_format: ContentFormat,
    role: str,
    settings: ReferenceSettings | None = None,
) -> ReferenceSet:
    settings = settings or ReferenceSettings()

    by_role = entry.reference_images.get(content_format) or entry.reference_images.get(GALLERY_FALLBACK_FORMAT) or {}
    urls: list[str] = list(by_role.get(role) or by_role.get("content") or [])
    if not urls:
        seen: set[str] = set()
        for role_urls in by_role.values():
            for url in role_urls:
                if url not in seen:
                    seen.add(url)
                    urls.append(url)

    urls = [url for url in urls if url]
    if not urls:
        raise InsufficientReferencesError(f"Style '{entry.name}' has no reference images for {content_format}")

    return ReferenceSet(
        image_urls=tuple(urls[: settings.max_sent]),
        fallback_level="style_gallery",
        matched_count=len(urls),
    )
