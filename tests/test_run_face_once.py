from __future__ import annotations

import json

from PIL import Image

from sentiscope import run_face_once
from sentiscope.run_face_once import ImageFileSource


class _FakeVisionClient:
    replies: list = []
    images: list[str] = []

    def __init__(self, url, http, api_key=""):
        self.url = url

    def analyze(self, image_data_url: str):
        type(self).images.append(image_data_url)
        return type(self).replies.pop(0)


def _image(tmp_path, name: str, size: tuple[int, int], fmt: str):
    p = tmp_path / name
    Image.new("RGB", size, (200, 180, 160)).save(p, format=fmt)
    return p


def test_image_file_source_reads_real_dimensions(tmp_path):
    png = _image(tmp_path, "a.png", (320, 240), "PNG")
    source = ImageFileSource([str(png)])
    source.open()

    frame = source.read()

    assert (frame.width, frame.height) == (320, 240)
    assert frame.mime_type == "image/png"
    assert source.current_path == png
    assert source.read() is None


def test_main_prints_detections_with_full_frame_boxes(monkeypatch, tmp_path, capsys):
    jpg = _image(tmp_path, "smile.jpg", (640, 480), "JPEG")
    png = _image(tmp_path, "frown.png", (200, 100), "PNG")
    monkeypatch.setenv("VISION_URL", "https://vision.example/analyze")
    _FakeVisionClient.replies = [{"sentiment": "joy"}, {"sentiment": "angry", "confidence": 0.5}]
    _FakeVisionClient.images = []
    monkeypatch.setattr(run_face_once, "VisionClient", _FakeVisionClient)

    assert run_face_once.main([str(jpg), str(png)]) == 0

    out = json.loads(capsys.readouterr().out)
    assert [e["image"] for e in out] == [str(jpg), str(png)]
    first, second = (e["detections"][0] for e in out)
    assert first["sentiment"] == "happy"
    assert first["confidence"] == 0.85
    assert first["box"] == {"xmin": 0.0, "ymin": 0.0, "xmax": 640.0, "ymax": 480.0}
    assert second["sentiment"] == "sad"
    assert second["confidence"] == 0.5
    assert second["box"] == {"xmin": 0.0, "ymin": 0.0, "xmax": 200.0, "ymax": 100.0}
    assert _FakeVisionClient.images[0].startswith("data:image/jpeg;base64,")
    assert _FakeVisionClient.images[1].startswith("data:image/png;base64,")


def test_main_missing_image_exits_non_zero(monkeypatch, tmp_path):
    monkeypatch.setenv("VISION_URL", "https://vision.example/analyze")
    monkeypatch.setattr(run_face_once, "VisionClient", _FakeVisionClient)

    assert run_face_once.main([str(tmp_path / "nope.jpg")]) == 1


def test_main_without_images_is_usage_error():
    assert run_face_once.main([]) == 2
