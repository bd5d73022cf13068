"""
Rate-limit aware retry policy for remote model calls.

Two tiers: when the provider names the wait it needs, sleep exactly that
long plus a safety margin; otherwise back off exponentially. Errors that
are not rate limits are never retried.
"""

import logging
import re
import time
from dataclasses import dataclass, field
from typing import Callable, Optional, TypeVar

import openai

from retail_assistant import config

logger = logging.getLogger(__name__)

T = TypeVar("T")

_RETRY_IN = re.compile(r"retry in\s+(\d+(?:\.\d+)?)\s*s", re.IGNORECASE)
_RETRY_DELAY = re.compile(r"""["']?retryDelay["']?\s*[:=]\s*["']?(\d+(?:\.\d+)?)s""", re.IGNORECASE)
_RATE_LIMIT_TEXT = re.compile(
    r"\b429\b|rate[ _]limit|resource_exhausted|quota exceeded|exceeded your current quota|insufficient_quota",
    re.IGNORECASE
)


class RateLimitExceeded(RuntimeError):
    """Raised when a call is still rate limited after every retry."""


def parse_retry_delay(error: BaseException) -> Optional[float]:
    """
    Extract the wait a provider asked for, in seconds.

    Looks at the error text ("retry in 2.5s", "retryDelay": "3s") and then
    at a retry-after header on the HTTP response, if any.
    """
    message = str(error)
    for pattern in (_RETRY_IN, _RETRY_DELAY):
        match = pattern.search(message)
        if match:
            return float(match.group(1))

    response = getattr(error, "response", None)
    headers = getattr(response, "headers", None)
    if headers:
        value = headers.get("retry-after")
        try:
            return float(value) if value is not None else None
        except (TypeError, ValueError):
            return None
    return None


def is_rate_limit_error(error: BaseException) -> bool:
    if isinstance(error, openai.RateLimitError):
        return True
    if getattr(error, "status_code", None) == 429:
        return True
    return bool(_RATE_LIMIT_TEXT.search(str(error)))


@dataclass
class RetryPolicy:
    """
    Retry strategy with pluggable timing.

    Attributes:
        base_delay: First exponential backoff pause
        multiplier: Growth factor applied after each backoff
        max_delay: Cap on a single exponential backoff pause
        max_retries: Retries allowed after the first attempt
        safety_margin: Added to every provider-requested wait
        sleep: Blocking sleep function, replaceable in tests
    """
    base_delay: float = field(default_factory=lambda: config.RETRY_BASE_DELAY)
    multiplier: float = field(default_factory=lambda: config.RETRY_MULTIPLIER)
    max_delay: float = field(default_factory=lambda: config.RETRY_MAX_DELAY)
    max_retries: int = field(default_factory=lambda: config.RETRY_MAX_RETRIES)
    safety_margin: float = field(default_factory=lambda: config.RETRY_SAFETY_MARGIN)
    sleep: Callable[[float], None] = time.sleep

    def call(self, fn: Callable[[], T]) -> T:
        """
        Run fn, retrying on rate-limit errors.

        Raises:
            RateLimitExceeded: If still rate limited once retries run out
            Exception: Any non-rate-limit error from fn, unchanged
        """
        retries = 0
        backoff = self.base_delay
        while True:
            try:
                return fn()
            except Exception as error:
                if not (is_rate_limit_error(error) or parse_retry_delay(error) is not None):
                    raise
                if retries >= self.max_retries:
                    raise RateLimitExceeded(
                        f"Rate limited after {retries} retries: {error}"
                    ) from error

                requested = parse_retry_delay(error)
                if requested is not None:
                    pause = requested + self.safety_margin
                else:
                    pause = min(backoff, self.max_delay)
                    backoff *= self.multiplier

                retries += 1
                logger.warning(
                    "Model call rate limited (retry %d/%d), waiting %.2fs: %s",
                    retries, self.max_retries, pause, error
                )
                self.sleep(pause)
