from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_incrementing,
    wait_random,
)

from content_studio_cli.exceptions import (
    ProviderGenerationError,
    QuotaExceededError,
    TransientProviderError,
)
from content_studio_cli.settings import RetrySettings

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(slots=True)
class RetryPolicy:
    """Bounded retry shared by slide and background synthesis.

    Waits ``attempt * backoff_step_seconds`` plus up to ``jitter_seconds`` of
    random jitter between attempts.  Quota errors and non-retryable statuses
    surface on the first failure.
    """

    max_attempts: int = 3
    backoff_step_seconds: float = 3.0
    jitter_seconds: float = 2.0
    retryable_statuses: frozenset[int] = frozenset({429, 502, 503})
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)

    @classmethod
    def from_settings(cls, settings: RetrySettings, sleep: Callable[[float], None] = time.sleep) -> RetryPolicy:
        return cls(
            max_attempts=settings.max_attempts,
            backoff_step_seconds=settings.backoff_step_seconds,
            jitter_seconds=settings.jitter_seconds,
            retryable_statuses=frozenset(settings.retryable_statuses),
            sleep=sleep,
        )

    def is_retryable(self, exc: BaseException) -> bool:
        if isinstance(exc, QuotaExceededError):
            return False
        if isinstance(exc, TransientProviderError):
            return True
        if isinstance(exc, ProviderGenerationError):
            return exc.status in self.retryable_statuses
        return False

    def retrying(self) -> Retrying:
        return Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_incrementing(start=self.backoff_step_seconds, increment=self.backoff_step_seconds)
            + wait_random(0, self.jitter_seconds),
            retry=retry_if_exception(self.is_retryable),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            sleep=self.sleep,
            reraise=True,
        )

    def call(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> tuple[T, int]:
        """Run *fn* under the policy and return ``(result, attempts_used)``."""
        retrying = self.retrying()
        result = retrying(fn, *args, **kwargs)
        return result, int(retrying.statistics.get("attempt_number", 1))
