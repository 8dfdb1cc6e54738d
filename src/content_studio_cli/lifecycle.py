"""Content status state machine and slide edit rules.

::

    draft -> approved -> scheduled -> published
    draft -> rejected                               (terminal)
    approved | scheduled -> draft                   (reopen)
    scheduled -> approved                           (remove schedule)

Entering ``scheduled`` requires a present-or-future timestamp; leaving it clears
the timestamp.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError

from content_studio_cli.exceptions import LifecycleError
from content_studio_cli.models.content import ContentStatus, GeneratedContent, Slide, fold_slide_keys

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    "draft": frozenset({"approved", "rejected"}),
    "approved": frozenset({"scheduled", "draft"}),
    "scheduled": frozenset({"scheduled", "published", "approved", "draft"}),
    "rejected": frozenset(),
    "published": frozenset(),
}

# Fields whose change invalidates an AI image that was generated from the old text.
_TEXT_FIELDS = ("headline", "body")


def _utc_now() -> datetime:
    return datetime.now(UTC)


class ContentLifecycle:
    def __init__(self, clock: Callable[[], datetime] = _utc_now) -> None:
        self._clock = clock

    def set_status(
        self,
        content: GeneratedContent,
        status: ContentStatus,
        scheduled_at: datetime | None = None,
    ) -> GeneratedContent:
        current = content.status
        if status not in ALLOWED_TRANSITIONS[current]:
            raise LifecycleError(f"Cannot move content {content.id} from '{current}' to '{status}'")

        if status == "scheduled":
            if scheduled_at is None:
                raise LifecycleError("Scheduling requires a scheduled_at timestamp")
            if scheduled_at.tzinfo is None:
                scheduled_at = scheduled_at.replace(tzinfo=UTC)
            now = self._clock()
            # second granularity, a timestamp picked "now" in a form is still valid
            if scheduled_at.replace(microsecond=0) < now.replace(microsecond=0):
                raise LifecycleError(f"scheduled_at {scheduled_at.isoformat()} is in the past")
        else:
            scheduled_at = None

        logger.info("Content %s: %s -> %s", content.id, current, status)
        return content.model_copy(
            update={"status": status, "scheduled_at": scheduled_at, "updated_at": self._clock()}
        )

    def approve(self, content: GeneratedContent) -> GeneratedContent:
        return self.set_status(content, "approved")

    def schedule(self, content: GeneratedContent, scheduled_at: datetime | None) -> GeneratedContent:
        return self.set_status(content, "scheduled", scheduled_at)

    def remove_schedule(self, content: GeneratedContent) -> GeneratedContent:
        if content.status != "scheduled":
            raise LifecycleError(f"Content {content.id} is not scheduled")
        return self.set_status(content, "approved")

    def reopen(self, content: GeneratedContent) -> GeneratedContent:
        return self.set_status(content, "draft")

    def reject(self, content: GeneratedContent) -> GeneratedContent:
        return self.set_status(content, "rejected")

    def publish(self, content: GeneratedContent) -> GeneratedContent:
        return self.set_status(content, "published")


def apply_slide_edit(slide: Slide, changes: Mapping[str, Any]) -> Slide:
    """Apply a manual edit. Changing headline/body over an existing AI image marks it stale."""
    update = {key: value for key, value in fold_slide_keys(dict(changes)).items() if key in Slide.model_fields}
    try:
        edited = Slide.model_validate({**slide.model_dump(), **update})
    except ValidationError as exc:
        raise LifecycleError(f"Invalid slide edit: {exc}") from exc

    text_changed = any(getattr(edited, field_name) != getattr(slide, field_name) for field_name in _TEXT_FIELDS)
    if text_changed and slide.image_url:
        return edited.model_copy(update={"image_stale": True})
    return edited


def merge_slide_media(
    slide: Slide,
    image_url: str | None = None,
    background_image_url: str | None = None,
) -> Slide:
    """Merge freshly generated media. Empty values never clear what is already there."""
    update: dict[str, Any] = {}
    if image_url:
        update["image_url"] = image_url
        update["image_stale"] = False
    if background_image_url:
        update["background_image_url"] = background_image_url
    if not update:
        return slide

    has_background = bool(background_image_url or slide.background_image_url)
    update["render_mode"] = "ai_bg_overlay" if has_background else "legacy_image"
    return slide.model_copy(update=update)
