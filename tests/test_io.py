"""
Tests for input discovery, output sinks and serialization.
"""

import csv
import json
import os

import cv2
import numpy as np
import pytest

from smartclip.config import AppConfig, OutputConfig
from smartclip.crop import CropBox, ScoreBreakdown
from smartclip.input_handler import InputHandler, _orient_like, read_image
from smartclip.output_handler import OutputHandler
from smartclip.serializer import save_csv, save_json

_SCORE = ScoreBreakdown(detail=1.0, saturation=2.0, skin=3.0, boost=0.0, total=0.25)


def _write_image(path, image):
    assert cv2.imwrite(str(path), image)
    return str(path)


def test_input_handler_directory(tmp_path):
    _write_image(tmp_path / "b.png", np.zeros((8, 8, 3), dtype=np.uint8))
    _write_image(tmp_path / "a.png", np.zeros((8, 8, 3), dtype=np.uint8))
    (tmp_path / "notes.txt").write_text("ignored", encoding="utf-8")

    handler = InputHandler(str(tmp_path))
    items = list(handler)

    assert len(handler) == 2
    assert [os.path.basename(path) for _, path, _ in items] == ["a.png", "b.png"]
    assert items[0][2].shape == (8, 8, 3)


def test_input_handler_skips_unreadable(tmp_path):
    (tmp_path / "broken.jpg").write_bytes(b"not a jpeg")
    _write_image(tmp_path / "ok.png", np.zeros((4, 4, 3), dtype=np.uint8))

    items = list(InputHandler(str(tmp_path)))

    assert len(items) == 1
    assert items[0][1].endswith("ok.png")


def test_input_handler_errors(tmp_path):
    with pytest.raises(FileNotFoundError):
        InputHandler(str(tmp_path / "missing"))

    with pytest.raises(ValueError):
        InputHandler(str(tmp_path))

    other = tmp_path / "clip.mp4"
    other.write_bytes(b"")
    with pytest.raises(ValueError, match="extension"):
        InputHandler(str(other))


def test_read_image_keeps_alpha(tmp_path):
    bgra = np.full((4, 4, 4), 255, dtype=np.uint8)
    bgra[0, 0, 3] = 0
    path = _write_image(tmp_path / "alpha.png", bgra)

    image = read_image(path)

    assert image.shape == (4, 4, 4)
    assert image[0, 0, 3] == 0


def test_serializers(tmp_path):
    records = {0: ("a.jpg", CropBox(x=1, y=2, width=30, height=40, score=_SCORE))}

    json_path = tmp_path / "out" / "crops.json"
    csv_path = tmp_path / "out" / "crops.csv"
    save_json(records, str(json_path))
    save_csv(records, str(csv_path))

    payload = json.loads(json_path.read_text(encoding="utf-8"))
    assert payload["total_images"] == 1
    assert payload["images"][0]["crop"] == {"x": 1, "y": 2, "width": 30, "height": 40, "score": 0.25}
    assert payload["images"][0]["breakdown"]["skin"] == 3.0

    with open(csv_path, newline="", encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    assert rows == [{
        "image_id": "0", "source": "a.jpg", "x": "1", "y": "2",
        "width": "30", "height": "40", "score": "0.25",
    }]


def test_output_handler_writes_all_sinks(tmp_path):
    config = AppConfig(output=OutputConfig(
        mode="save_image,save_debug,save_json,save_csv",
        save_path=str(tmp_path),
    ))
    handler = OutputHandler(config)
    image = np.full((300, 400, 3), 90, dtype=np.uint8)
    box = CropBox(x=50, y=0, width=300, height=300, score=_SCORE)

    written = handler.process_image(0, "photos/beach.png", image, box)
    handler.finalize()

    assert written == tmp_path / "beach.jpg"
    thumb = cv2.imread(str(written))
    assert thumb.shape == (210, 210, 3)
    assert (tmp_path / "beach_crop.jpg").is_file()
    assert (tmp_path / "crops.json").is_file()
    assert (tmp_path / "crops.csv").is_file()


def test_output_handler_keeps_transparency_as_png(tmp_path):
    config = AppConfig(output=OutputConfig(mode="save_image", save_path=str(tmp_path)))
    handler = OutputHandler(config)
    image = np.zeros((100, 100, 4), dtype=np.uint8)
    box = CropBox(x=0, y=0, width=100, height=100, score=_SCORE)

    written = handler.process_image(0, "logo.png", image, box)

    assert written.suffix == ".png"
    assert cv2.imread(str(written), cv2.IMREAD_UNCHANGED).shape == (210, 210, 4)


def test_orient_like_applies_color_transform_to_alpha():
    rng = np.random.default_rng(7)
    stored = rng.integers(0, 256, size=(3, 5, 4), dtype=np.uint8)
    expected = np.rot90(stored, 1)[:, ::-1]
    oriented_color = np.ascontiguousarray(expected[:, :, :3])

    result = _orient_like(stored, oriented_color)

    assert result.shape == (5, 3, 4)
    assert np.array_equal(result, expected)


def test_read_image_without_auto_orient_keeps_alpha(tmp_path):
    bgra = np.full((4, 6, 4), 200, dtype=np.uint8)
    bgra[:, :3, 3] = 0
    path = _write_image(tmp_path / "alpha.png", bgra)

    image = read_image(path, auto_orient=False)

    assert image.shape == (4, 6, 4)
    assert np.array_equal(image, bgra)


def test_output_handler_never_overwrites_same_stem(tmp_path):
    config = AppConfig(output=OutputConfig(mode="save_image,save_debug", save_path=str(tmp_path)))
    handler = OutputHandler(config)
    box = CropBox(x=0, y=0, width=50, height=50, score=_SCORE)
    dark = np.full((50, 50, 3), 20, dtype=np.uint8)
    light = np.full((50, 50, 3), 230, dtype=np.uint8)

    first = handler.process_image(0, "photos/a.png", dark, box)
    second = handler.process_image(1, "photos/a.jpg", light, box)

    assert first == tmp_path / "a.jpg"
    assert second == tmp_path / "a_1.jpg"
    assert cv2.imread(str(first))[105, 105, 0] < 100
    assert cv2.imread(str(second))[105, 105, 0] > 150
    assert (tmp_path / "a_crop.jpg").is_file()
    assert (tmp_path / "a_1_crop.jpg").is_file()
