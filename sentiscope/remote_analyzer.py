from __future__ import annotations

import json
import logging
import re
import time
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Iterator, Optional, Protocol, Sequence

from sentiscope.errors import RemoteAnalysisError
from sentiscope.sentiment_types import SENTIMENTS, AnalysisProgress, Sentiment, SentimentResult

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a sentiment analysis expert. Analyze the sentiment of each comment and "
    "respond with a JSON array of sentiments, in the same order as the comments. "
    "Each sentiment must be exactly 'positive', 'negative', or 'neutral'. "
    'Format: [{"sentiment": "positive"}, {"sentiment": "negative"}]'
)

_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)


class ChatCompleter(Protocol):
    def complete(self, messages: Sequence[dict[str, str]]) -> str: ...


@dataclass(frozen=True)
class RemoteAnalyzerConfig:
    batch_size: int = 10
    batch_delay_sec: float = 1.0


class RemoteBatchAnalyzer:
    """
    Classify comments through a hosted chat model, several per request.

    - One request per batch, ceil(N / batch_size) requests in total
    - Fixed delay between batches, none after the last
    - Unparseable reply -> whole batch neutral; invalid entry -> that item neutral
    - 429 / 402 / other HTTP failures abort the run
    """

    def __init__(
            self,
            client: ChatCompleter,
            cfg: RemoteAnalyzerConfig = RemoteAnalyzerConfig(),
            sleep: Callable[[float], None] = time.sleep,
    ):
        if cfg.batch_size <= 0:
            raise ValueError("batch_size must be > 0")
        if cfg.batch_delay_sec < 0:
            raise ValueError("batch_delay_sec must be >= 0")
        self._client = client
        self._cfg = cfg
        self._sleep = sleep

    def iter_analysis(self, comments: Sequence[str]) -> Iterator[AnalysisProgress]:
        """
        Yield one progress event per comment, emitted once its batch returns.

        Raises:
            RemoteAnalysisError: on hard upstream failure, with partial_results
                set to what completed batches produced.
        """
        total = len(comments)
        batches = list(_batched(comments, self._cfg.batch_size))
        done: list[SentimentResult] = []
        logger.info("Analyzing %s comments in %s batches", total, len(batches))

        for batch_num, batch in enumerate(batches):
            if batch_num > 0 and self._cfg.batch_delay_sec > 0:
                self._sleep(self._cfg.batch_delay_sec)

            try:
                content = self._client.complete(build_messages(batch))
            except RemoteAnalysisError as e:
                logger.error(
                    "Batch %s/%s failed, aborting run: err=%s",
                    batch_num + 1,
                    len(batches),
                    e,
                )
                e.attach_partial(done)
                raise

            for comment, sentiment in zip(batch, parse_sentiments(content, len(batch))):
                result = SentimentResult(comment=comment, sentiment=sentiment)
                done.append(result)
                yield AnalysisProgress(current=len(done), total=total, result=result)

        logger.info("Analysis complete: %s results", len(done))

    def analyze(self, comments: Sequence[str]) -> list[SentimentResult]:
        return [event.result for event in self.iter_analysis(comments)]


def build_messages(batch: Sequence[str]) -> list[dict[str, str]]:
    numbered = "\n".join(f"{idx + 1}. {c}" for idx, c in enumerate(batch))
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": f"Analyze these comments:\n{numbered}"},
    ]


def parse_sentiments(content: str, expected: int) -> list[Sentiment]:
    """
    Turn a model reply into exactly `expected` sentiments.

    A reply with no parseable JSON array yields all neutral. Entries that are
    missing or not one of the three labels become neutral individually.
    """
    entries = extract_json_array(content)
    if entries is None:
        logger.warning("Failed to parse AI response, batch defaults to neutral: %s", content[:200])
        return ["neutral"] * expected

    out: list[Sentiment] = []
    for idx in range(expected):
        entry = entries[idx] if idx < len(entries) else None
        out.append(_entry_sentiment(entry))
    return out


def extract_json_array(text: str) -> Optional[list[Any]]:
    """
    Return the first well-formed JSON array found in `text`, or None.

    Fenced code blocks are searched first, then the whole text.
    """
    s = (text or "").strip()
    candidates = [m.group(1).strip() for m in _FENCE_RE.finditer(s)] + [s]
    for candidate in candidates:
        value = _find_array(candidate)
        if value is not None:
            return value
    return None


def _find_array(s: str) -> Optional[list[Any]]:
    # Common case: the whole span from the first '[' to the last ']'
    start, end = s.find("["), s.rfind("]")
    if start == -1 or end <= start:
        return None
    try:
        value = json.loads(s[start : end + 1])
        if isinstance(value, list):
            return value
    except ValueError:
        pass

    decoder = json.JSONDecoder()
    for bracket in re.finditer(r"\[", s):
        try:
            value, _ = decoder.raw_decode(s, bracket.start())
        except ValueError:
            continue
        if isinstance(value, list):
            return value
    return None


def _entry_sentiment(entry: Any) -> Sentiment:
    if isinstance(entry, dict):
        entry = entry.get("sentiment")
    if not isinstance(entry, str):
        return "neutral"
    value = entry.strip().lower()
    return value if value in SENTIMENTS else "neutral"  # type: ignore[return-value]


def _batched(items: Sequence[str], batch_size: int) -> Iterable[Sequence[str]]:
    for i in range(0, len(items), batch_size):
        yield items[i : i + batch_size]
