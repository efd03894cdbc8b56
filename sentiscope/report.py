from __future__ import annotations

import re
from collections import Counter
from dataclasses import asdict, dataclass
from typing import Any, Optional, Sequence

from sentiscope.sentiment_types import SENTIMENTS, Sentiment, SentimentResult

TOP_WORDS = 30
MIN_WORD_LEN = 4

# First match wins
DOMAIN_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("Product", re.compile(r"product|quality|feature|design|interface")),
    ("Service", re.compile(r"service|support|help|assist|response")),
    ("Pricing", re.compile(r"price|cost|expensive|cheap|value|worth")),
    ("Delivery", re.compile(r"delivery|shipping|arrived|package|time")),
)
DEFAULT_DOMAIN = "General"


@dataclass(frozen=True)
class WordCount:
    text: str
    value: int


@dataclass(frozen=True)
class DomainBreakdown:
    domain: str
    positive: int = 0
    negative: int = 0
    neutral: int = 0

    @property
    def total(self) -> int:
        return self.positive + self.negative + self.neutral


@dataclass(frozen=True)
class AnalysisReport:
    """Aggregate view over a finished run, ready to be rendered or exported."""

    total: int
    counts: dict[str, int]
    percentages: dict[str, float]
    dominant_sentiment: Sentiment
    domains: list[DomainBreakdown]
    most_discussed_domain: Optional[str]
    top_words: dict[str, list[WordCount]]
    avg_comment_length: int
    longest_comment: Optional[str]
    results: list[SentimentResult]

    def to_payload(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["domains"] = [dict(asdict(d), total=d.total) for d in self.domains]
        return payload


def classify_domain(comment: str) -> str:
    lower = comment.lower()
    for name, pattern in DOMAIN_PATTERNS:
        if pattern.search(lower):
            return name
    return DEFAULT_DOMAIN


def top_words(comments: Sequence[str], limit: int = TOP_WORDS) -> list[WordCount]:
    freq: Counter[str] = Counter()
    for c in comments:
        freq.update(w for w in c.lower().split() if len(w) >= MIN_WORD_LEN)
    # Counter.most_common keeps first-seen order among equal counts
    return [WordCount(text=w, value=n) for w, n in freq.most_common(limit)]


def summarize(results: Sequence[SentimentResult]) -> AnalysisReport:
    total = len(results)
    counts = {s: 0 for s in SENTIMENTS}
    for r in results:
        counts[r.sentiment] += 1

    percentages = {s: (round(counts[s] / total * 100, 1) if total else 0.0) for s in SENTIMENTS}

    dominant: Sentiment = "neutral"
    if total:
        dominant = max(SENTIMENTS, key=lambda s: counts[s])

    domains: dict[str, dict[str, int]] = {}
    for r in results:
        bucket = domains.setdefault(classify_domain(r.comment), {s: 0 for s in SENTIMENTS})
        bucket[r.sentiment] += 1
    breakdown = [DomainBreakdown(domain=name, **c) for name, c in domains.items()]
    most_discussed = max(breakdown, key=lambda d: d.total).domain if breakdown else None

    words = {s: top_words([r.comment for r in results if r.sentiment == s]) for s in SENTIMENTS}

    avg_len = round(sum(len(r.comment) for r in results) / total) if total else 0
    longest = max(results, key=lambda r: len(r.comment)).comment if total else None

    return AnalysisReport(
        total=total,
        counts=counts,
        percentages=percentages,
        dominant_sentiment=dominant,
        domains=breakdown,
        most_discussed_domain=most_discussed,
        top_words=words,
        avg_comment_length=avg_len,
        longest_comment=longest,
        results=list(results),
    )
