from __future__ import annotations

from dataclasses import asdict, dataclass
from time import perf_counter


@dataclass(slots=True)
class BatchMetrics:
    slides_requested: int = 0
    slides_skipped: int = 0
    images_generated: int = 0
    images_empty: int = 0
    slides_failed: int = 0
    batches: int = 0
    execution_time_seconds: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


class Timer:
    def __init__(self) -> None:
        self._start = perf_counter()

    def elapsed(self) -> float:
        return perf_counter() - self._start

    def elapsed_ms(self) -> int:
        return int(self.elapsed() * 1000)
