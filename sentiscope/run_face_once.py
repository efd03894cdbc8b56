from __future__ import annotations

import io
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any, Optional, Sequence

from PIL import Image

from sentiscope.errors import SentimentError
from sentiscope.face_emotion import FaceEmotionClassifier
from sentiscope.face_session import FaceAnalysisSession
from sentiscope.gateway_client import VisionClient
from sentiscope.http_client import HttpClient, HttpConfig
from sentiscope.sentiment_types import FaceDetection, Frame
from sentiscope.settings import load_settings

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)


class ImageFileSource:
    """Frame source that replays image files, one per read()."""

    def __init__(self, paths: Sequence[str]):
        self._paths = [Path(p) for p in paths]
        self._pos = 0
        self.current_path: Optional[Path] = None

    def open(self) -> None:
        missing = [str(p) for p in self._paths if not p.is_file()]
        if missing:
            raise FileNotFoundError(f"Image files not found: {missing}")
        self._pos = 0

    def read(self) -> Optional[Frame]:
        """
        Raises:
            OSError: file is not a readable image
        """
        if self._pos >= len(self._paths):
            return None
        p = self._paths[self._pos]
        self._pos += 1
        self.current_path = p

        data = p.read_bytes()
        with Image.open(io.BytesIO(data)) as img:
            width, height = img.size
            mime = Image.MIME.get(img.format or "", "image/jpeg")
        return Frame(image=data, width=width, height=height, mime_type=mime)

    def close(self) -> None:
        self._pos = len(self._paths)


def main(argv: list[str] | None = None) -> int:
    s = load_settings()
    paths = sys.argv[1:] if argv is None else argv
    if not paths:
        logger.error("Usage: python -m sentiscope.run_face_once IMAGE [IMAGE ...]")
        return 2
    if not s.vision_url:
        logger.error("VISION_URL not configured")
        return 2

    http = HttpClient(
        HttpConfig(
            timeout_sec=s.request_timeout_sec,
            rate_limit_retries=0,
            backoff_base_sec=s.backoff_base_sec,
            backoff_max_sec=s.backoff_max_sec,
        )
    )
    classifier = FaceEmotionClassifier(
        VisionClient(s.vision_url, http, api_key=s.ai_gateway_api_key),
        confidence=s.face_confidence,
        max_regions=s.face_max_regions,
    )

    source = ImageFileSource(paths)
    collected: list[dict[str, Any]] = []

    def _record(detections: list[FaceDetection]) -> None:
        collected.append(
            {
                "image": str(source.current_path),
                "detections": [asdict(d) for d in detections],
            }
        )

    session = FaceAnalysisSession(source, classifier, s.face_interval_sec, _record)
    try:
        session.start(run_timer=False)
    except SentimentError as e:
        logger.error("%s", e)
        return 1
    try:
        for _ in paths:
            session.tick()
    finally:
        session.stop()

    print(json.dumps(collected, ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
