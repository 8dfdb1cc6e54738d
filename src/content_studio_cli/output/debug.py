from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime


def utc_now() -> datetime:
    return datetime.now(UTC)


def utc_now_iso() -> str:
    return utc_now().isoformat()


@dataclass(slots=True)
class GenerationDebug:
    """Diagnostics attached to every slide-image response."""

    fallbackLevel: str
    referencesUsedCount: int
    image_model: str
    image_generation_ms: int
    generated_at: str = field(default_factory=utc_now_iso)
    visual_mode: str | None = None
    backgroundOnly: bool = False
    referenceExampleIds: list[str] = field(default_factory=list)
    attempts: int = 1

    def to_dict(self) -> dict:
        return asdict(self)
