from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

import requests

from sentiscope.errors import QuotaExceededError, RateLimitedError, UpstreamError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HttpConfig:
    timeout_sec: float
    rate_limit_retries: int
    backoff_base_sec: float
    backoff_max_sec: float
    user_agent: str = "sentiscope/0.1"


class HttpClient:
    """
    Thin JSON-over-HTTP client wrapper:
    - Local timeout on every request
    - Status classification: 429 -> RateLimitedError, 402 -> QuotaExceededError,
      other non-2xx -> UpstreamError
    - Optional retry with exponential backoff, for 429 only

    With rate_limit_retries=0 a 429 aborts immediately.
    """

    def __init__(
            self,
            config: HttpConfig,
            session: Optional[requests.Session] = None,
            sleep: Callable[[float], None] = time.sleep,
    ):
        self._cfg = config
        self._session = session or requests.Session()
        self._session.headers.update({"User-Agent": self._cfg.user_agent})
        self._sleep = sleep

    def post_json(self, url: str, payload: Mapping[str, Any], headers: Optional[Mapping[str, str]] = None) -> Any:
        """
        POST a JSON payload and return the decoded JSON body.

        Raises:
            RateLimitedError: 429 after retries
            QuotaExceededError: 402
            UpstreamError: other non-2xx, network errors, non-JSON body
        """
        for attempt in range(self._cfg.rate_limit_retries + 1):
            try:
                resp = self._session.post(
                    url,
                    json=dict(payload),
                    headers=dict(headers or {}),
                    timeout=self._cfg.timeout_sec,
                )
            except requests.RequestException as e:
                logger.error("HTTP POST failed: url=%s err=%s", url, e)
                raise UpstreamError(f"Request to AI service failed: {e}") from e

            if resp.status_code == 429:
                if attempt >= self._cfg.rate_limit_retries:
                    logger.error("Rate limited: url=%s attempts=%s", url, attempt + 1)
                    raise RateLimitedError()
                sleep_sec = self._compute_backoff(attempt)
                logger.warning(
                    "Rate limited (retrying): attempt=%s url=%s sleep=%.2fs",
                    attempt + 1,
                    url,
                    sleep_sec,
                )
                self._sleep(sleep_sec)
                continue

            if resp.status_code == 402:
                logger.error("AI usage quota exhausted: url=%s", url)
                raise QuotaExceededError()

            if not resp.ok:
                logger.error("AI API error %s: %s", resp.status_code, _preview(resp.text))
                raise UpstreamError(f"AI API error: {resp.status_code}", status_code=resp.status_code)

            try:
                return resp.json()
            except ValueError as e:
                raise UpstreamError(f"AI API returned a non-JSON body: {_preview(resp.text)}") from e

        # Should not reach here
        raise RateLimitedError()

    def _compute_backoff(self, attempt: int) -> float:
        # Exponential backoff with cap + jitter
        base = self._cfg.backoff_base_sec * (2**attempt)
        capped = min(base, self._cfg.backoff_max_sec)
        return capped + random.uniform(0.0, 0.5)


def _preview(text: str, limit: int = 200) -> str:
    text = text or ""
    return text if len(text) <= limit else text[:limit] + "..."
