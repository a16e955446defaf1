"""
Tests for the CLI entry point.
"""

import json

import cv2
import numpy as np
import pytest

import main
from facescrub.config import AppConfig
from facescrub.detection import FaceBox


class StubDetector:
    def __init__(self, config):
        self.config = config
        self.frames = 0

    def detect(self, frame):
        self.frames += 1
        return [FaceBox(1.0, 1.0, 4.0, 4.0, 0.8)]


def test_cli_overrides_apply():
    """Test that CLI flags override the loaded configuration."""
    args = main.parse_args(
        ["--source", "pics/", "--model", "https://x/face.onnx", "--confidence", "0.7",
         "--tta", "--output-mode", "SAVE_JSON", "--output-path", "out/"]
    )

    config = main.apply_cli_overrides(AppConfig(), args)

    assert config.input.source == "pics/"
    assert config.model.source == "https://x/face.onnx"
    assert config.detection.confidence_threshold == 0.7
    assert config.detection.tta_flip is True
    assert config.output.mode == "save_json"
    assert config.output.save_path == "out/"


def test_cli_overrides_are_validated():
    """Test that an out-of-range CLI value is rejected."""
    args = main.parse_args(["--confidence", "2.0"])
    with pytest.raises(ValueError, match="confidence_threshold"):
        main.apply_cli_overrides(AppConfig(), args)


def test_main_runs_pipeline(tmp_path, monkeypatch):
    """Test a full run with the detector stubbed out."""
    images = tmp_path / "images"
    images.mkdir()
    cv2.imwrite(str(images / "a.png"), np.zeros((16, 16, 3), dtype=np.uint8))
    cv2.imwrite(str(images / "b.png"), np.zeros((16, 16, 3), dtype=np.uint8))
    out_dir = tmp_path / "out"
    monkeypatch.setattr(main, "FaceDetector", StubDetector)

    code = main.main(
        ["--source", str(images), "--output-mode", "save_json", "--output-path", str(out_dir)]
    )

    assert code == 0
    payload = json.loads((out_dir / "faces.json").read_text(encoding="utf-8"))
    assert payload["total_images"] == 2
    assert payload["total_faces"] == 2


def test_main_reports_missing_model(tmp_path):
    """Test that a missing model file exits with status 1."""
    image = tmp_path / "a.png"
    cv2.imwrite(str(image), np.zeros((16, 16, 3), dtype=np.uint8))

    code = main.main(
        ["--source", str(image), "--model", str(tmp_path / "missing.onnx"),
         "--output-path", str(tmp_path / "out")]
    )

    assert code == 1


def test_main_reports_bad_config():
    """Test that an invalid configuration exits with status 1."""
    assert main.main(["--confidence", "-1"]) == 1
