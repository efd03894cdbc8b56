from __future__ import annotations

import base64
import io

import pytest
from PIL import Image

from sentiscope.errors import QuotaExceededError, RateLimitedError, UpstreamError
from sentiscope.face_emotion import FaceEmotionClassifier, crop_region, encode_frame, map_emotion_label
from sentiscope.sentiment_types import FaceBox, Frame


class _FakeVision:
    """Returns scripted replies (or raises scripted errors), one per call; the last one repeats."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.images: list[str] = []

    def analyze(self, image_data_url: str):
        self.images.append(image_data_url)
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        return reply


def _jpeg(width: int = 640, height: int = 480) -> bytes:
    out = io.BytesIO()
    Image.new("RGB", (width, height), (120, 90, 60)).save(out, format="JPEG")
    return out.getvalue()


def _frame(**kw) -> Frame:
    return Frame(image=_jpeg(), width=640, height=480, **kw)


def _decoded_size(data_url: str) -> tuple[int, int]:
    raw = base64.b64decode(data_url.split(",", 1)[1])
    with Image.open(io.BytesIO(raw)) as img:
        return img.size


@pytest.mark.parametrize(
    "label,expected",
    [
        ("Joy", "happy"),
        ("big smile", "happy"),
        ("HAPPY", "happy"),
        ("angry", "sad"),
        ("Fear", "sad"),
        ("disgusted", "sad"),
        ("sad", "sad"),
        ("surprised", "neutral"),
        ("", "neutral"),
    ],
)
def test_map_emotion_label(label, expected):
    assert map_emotion_label(label) == expected


def test_encode_frame_is_data_url():
    frame = Frame(image=b"\xff\xd8jpeg", width=1, height=1)
    url = encode_frame(frame)
    assert url.startswith("data:image/jpeg;base64,")
    assert base64.b64decode(url.split(",", 1)[1]) == b"\xff\xd8jpeg"


def test_whole_frame_detection_uses_default_confidence_and_full_box():
    vision = _FakeVision({"sentiment": "joyful"})

    dets = FaceEmotionClassifier(vision).classify_frame(_frame())

    assert len(dets) == 1
    assert dets[0].sentiment == "happy"
    assert dets[0].confidence == 0.85
    assert dets[0].box == FaceBox(0.0, 0.0, 640.0, 480.0)
    assert len(vision.images) == 1


def test_each_region_classified_separately_with_its_own_box():
    left = FaceBox(10, 20, 110, 140)
    right = FaceBox(300, 40, 420, 200)
    vision = _FakeVision({"sentiment": "joy"}, {"sentiment": "anger", "confidence": 0.6})

    dets = FaceEmotionClassifier(vision).classify_frame(_frame(regions=(left, right)))

    assert [(d.box, d.sentiment, d.confidence) for d in dets] == [(left, "happy", 0.85), (right, "sad", 0.6)]
    assert len(vision.images) == 2
    # padded by 10% on each side
    assert _decoded_size(vision.images[0]) == (120, 144)


def test_regions_capped_at_max():
    boxes = tuple(FaceBox(i * 100, 0, i * 100 + 50, 50) for i in range(5))
    vision = _FakeVision({"sentiment": "neutral"})

    dets = FaceEmotionClassifier(vision, max_regions=3).classify_frame(_frame(regions=boxes))

    assert len(dets) == 3
    assert len(vision.images) == 3


def test_failed_region_dropped_others_kept():
    boxes = (FaceBox(0, 0, 50, 50), FaceBox(100, 100, 200, 200), FaceBox(300, 300, 400, 400))
    vision = _FakeVision(RateLimitedError(), UpstreamError("AI API error: 500", status_code=500), {"sentiment": "smile"})

    dets = FaceEmotionClassifier(vision).classify_frame(_frame(regions=boxes))

    assert [(d.box, d.sentiment) for d in dets] == [(boxes[2], "happy")]


def test_crop_region_clamps_to_frame():
    data = crop_region(_frame(), FaceBox(600, 440, 640, 480))
    with Image.open(io.BytesIO(data)) as img:
        assert img.size == (44, 44)


@pytest.mark.parametrize("reply", [RateLimitedError(), {"rateLimited": True}, {"error": "Rate limit"}, {}])
def test_rate_limited_or_empty_reply_yields_no_detection(reply):
    assert FaceEmotionClassifier(_FakeVision(reply)).classify_frame(_frame()) == []


def test_quota_error_propagates():
    with pytest.raises(QuotaExceededError):
        FaceEmotionClassifier(_FakeVision(QuotaExceededError())).classify_frame(_frame(regions=(FaceBox(0, 0, 10, 10),)))
