from __future__ import annotations

import base64
import io
import logging
from typing import Any, Mapping, Optional, Protocol

from PIL import Image

from sentiscope.errors import QuotaExceededError, RateLimitedError, RemoteAnalysisError
from sentiscope.sentiment_types import FaceBox, FaceDetection, FaceEmotion, Frame

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE = 0.85
DEFAULT_MAX_REGIONS = 3
REGION_PADDING = 0.1

_HAPPY_KEYWORDS = ("happy", "joy", "smile")
_SAD_KEYWORDS = ("sad", "angry", "anger", "fear", "disgust")


class ImageAnalyzer(Protocol):
    def analyze(self, image_data_url: str) -> Mapping[str, Any]: ...


def map_emotion_label(label: str) -> FaceEmotion:
    """Keyword match on a free-form emotion label; anything else is neutral."""
    lower = (label or "").lower()
    if any(k in lower for k in _HAPPY_KEYWORDS):
        return "happy"
    if any(k in lower for k in _SAD_KEYWORDS):
        return "sad"
    return "neutral"


def encode_frame(frame: Frame) -> str:
    return _data_url(frame.image, frame.mime_type)


def crop_region(frame: Frame, box: FaceBox, padding: float = REGION_PADDING) -> bytes:
    """Cut a face region (plus padding, clamped to the frame) and re-encode it as JPEG."""
    with Image.open(io.BytesIO(frame.image)) as img:
        w, h = img.size
        bw, bh = box.xmax - box.xmin, box.ymax - box.ymin
        left = max(0, int(box.xmin - bw * padding))
        top = max(0, int(box.ymin - bh * padding))
        right = min(w, int(box.xmax + bw * padding))
        bottom = min(h, int(box.ymax + bh * padding))

        out = io.BytesIO()
        img.crop((left, top, right, bottom)).convert("RGB").save(out, format="JPEG", quality=70)
    return out.getvalue()


class FaceEmotionClassifier:
    """
    One frame in, zero or more detections out.

    - Frame without regions: one remote call for the whole frame
    - Frame with regions: one remote call per region, at most `max_regions`
    - A region that is rate limited or fails upstream is dropped on its own
    - Quota exhaustion propagates

    No state is kept between calls.
    """

    def __init__(
            self,
            vision: ImageAnalyzer,
            confidence: float = DEFAULT_CONFIDENCE,
            max_regions: int = DEFAULT_MAX_REGIONS,
    ):
        if max_regions <= 0:
            raise ValueError("max_regions must be > 0")
        self._vision = vision
        self._confidence = confidence
        self._max_regions = max_regions

    def classify_frame(self, frame: Frame) -> list[FaceDetection]:
        """
        Raises:
            QuotaExceededError: AI credits exhausted
        """
        if not frame.regions:
            whole = FaceBox(xmin=0.0, ymin=0.0, xmax=float(frame.width), ymax=float(frame.height))
            det = self._classify_image(encode_frame(frame), whole)
            return [det] if det is not None else []

        out: list[FaceDetection] = []
        for box in frame.regions[: self._max_regions]:
            try:
                image = crop_region(frame, box)
            except OSError as e:
                logger.warning("Could not crop face region %s: %s", box, e)
                continue
            det = self._classify_image(_data_url(image, "image/jpeg"), box)
            if det is not None:
                out.append(det)
        return out

    def _classify_image(self, image_data_url: str, box: FaceBox) -> Optional[FaceDetection]:
        try:
            data = self._vision.analyze(image_data_url)
        except RateLimitedError:
            logger.warning("Face emotion request rate limited; skipping")
            return None
        except QuotaExceededError:
            raise
        except RemoteAnalysisError as e:
            logger.warning("Face emotion analysis error: %s", e)
            return None

        if data.get("rateLimited"):
            logger.warning("Face emotion service reported rate limiting; skipping")
            return None
        if data.get("error"):
            logger.warning("Face emotion service error: %s", data.get("error"))
            return None

        label = data.get("sentiment")
        if not isinstance(label, str) or not label.strip():
            logger.debug("Face emotion reply carried no label: %s", data)
            return None

        return FaceDetection(
            box=box,
            sentiment=map_emotion_label(label),
            confidence=_confidence(data.get("confidence"), self._confidence),
        )


def _data_url(image: bytes, mime_type: str) -> str:
    encoded = base64.b64encode(image).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def _confidence(value: Any, default: float) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool) and 0.0 <= value <= 1.0:
        return float(value)
    return default
