from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Mapping

from sentiscope.sentiment_types import SENTIMENTS, RawClassification, Sentiment

PolicyMode = Literal["three_class", "cutoff", "band"]

_BINARY_LABELS = ("positive", "negative")


@dataclass(frozen=True)
class LabelPolicy:
    """
    How a raw (label, score) pair becomes a sentiment.

    Modes:
    - three_class: model already emits positive/negative/neutral; score ignored
    - cutoff: binary model; score below `cutoff` -> neutral
    - band: binary model; score within [band_low, band_high] -> neutral

    `aliases` maps lowercased model labels (e.g. "label_2", "pos") onto the
    canonical names before matching.
    """

    mode: PolicyMode = "cutoff"
    cutoff: float = 0.7
    band_low: float = 0.4
    band_high: float = 0.6
    aliases: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.mode not in ("three_class", "cutoff", "band"):
            raise ValueError(f"Unknown policy mode: {self.mode}")
        if not 0.0 <= self.cutoff <= 1.0:
            raise ValueError("cutoff must be within [0, 1]")
        if not 0.0 <= self.band_low <= self.band_high <= 1.0:
            raise ValueError("band must satisfy 0 <= band_low <= band_high <= 1")


def normalize_label(label: str, aliases: Mapping[str, str] | None = None) -> str:
    key = (label or "").strip().lower()
    if aliases:
        key = str(aliases.get(key, key)).strip().lower()
    return key


def map_label(raw: RawClassification, policy: LabelPolicy) -> Sentiment:
    """Map a raw model output to a sentiment. Never raises."""
    label = normalize_label(raw.label, policy.aliases)

    if policy.mode == "three_class":
        return label if label in SENTIMENTS else "neutral"  # type: ignore[return-value]

    if _is_low_confidence(raw.score, policy):
        return "neutral"
    if label in _BINARY_LABELS:
        return label  # type: ignore[return-value]
    return "neutral"


def _is_low_confidence(score: float, policy: LabelPolicy) -> bool:
    if policy.mode == "band":
        return policy.band_low <= score <= policy.band_high
    return score < policy.cutoff
