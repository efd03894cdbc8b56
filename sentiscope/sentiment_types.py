from __future__ import annotations

from dataclasses import dataclass
from typing import Literal


Sentiment = Literal["positive", "negative", "neutral"]
FaceEmotion = Literal["happy", "sad", "neutral"]

SENTIMENTS: tuple[Sentiment, ...] = ("positive", "negative", "neutral")
FACE_EMOTIONS: tuple[FaceEmotion, ...] = ("happy", "sad", "neutral")


@dataclass(frozen=True)
class RawClassification:
    """Top-1 output of a model or API, before the label policy is applied."""

    label: str
    score: float


@dataclass(frozen=True)
class SentimentResult:
    """Classified comment. `sentiment` is always one of SENTIMENTS."""

    comment: str
    sentiment: Sentiment


@dataclass(frozen=True)
class AnalysisProgress:
    """
    Progress event emitted after each item is classified.

    - current: 1-based index of the finished item
    - total: number of items in the run
    - result: the item's classification
    """

    current: int
    total: int
    result: SentimentResult


@dataclass(frozen=True)
class FaceBox:
    xmin: float
    ymin: float
    xmax: float
    ymax: float


@dataclass(frozen=True)
class FaceDetection:
    box: FaceBox
    sentiment: FaceEmotion
    confidence: float


@dataclass(frozen=True)
class Frame:
    """A single encoded camera frame (JPEG by default)."""

    image: bytes
    width: int
    height: int
    mime_type: str = "image/jpeg"
    # Face regions in pixel coordinates; empty = classify the whole frame
    regions: tuple[FaceBox, ...] = ()
