"""
Tests for the configuration module.
"""

import pytest

from facescrub.config import (
    AppConfig,
    DetectionConfig,
    LetterboxConfig,
    ModelConfig,
    OutputConfig,
    RedactionConfig,
    load_config,
    validate_config,
)


def test_load_defaults():
    """Test loading configuration without any file."""
    config = load_config(None)
    assert isinstance(config, AppConfig)
    assert config.model.input_size == 640
    assert config.model.reg_max is None
    assert config.detection.confidence_threshold == 0.35
    assert config.detection.fusion_iou == 0.4
    assert config.detection.prefilter_min_side_ratio == 0.0
    assert config.detection.tta_flip is False
    assert config.letterbox.pad_small_side == 0.0
    assert config.letterbox.pad_large_side == 0.0


def test_validation_failure():
    """Test fail-fast validation."""
    bad_config = AppConfig(
        detection=DetectionConfig(confidence_threshold=1.5)
    )
    with pytest.raises(ValueError, match="confidence_threshold"):
        validate_config(bad_config)

    bad_config = AppConfig(model=ModelConfig(input_size=0))
    with pytest.raises(ValueError, match="input_size"):
        validate_config(bad_config)

    bad_config = AppConfig(model=ModelConfig(reg_max=0))
    with pytest.raises(ValueError, match="reg_max"):
        validate_config(bad_config)

    bad_config = AppConfig(letterbox=LetterboxConfig(pad_small_side=-1.0))
    with pytest.raises(ValueError, match="pad biases"):
        validate_config(bad_config)

    bad_config = AppConfig(redaction=RedactionConfig(blur_strength=150))
    with pytest.raises(ValueError, match="blur_strength"):
        validate_config(bad_config)

    bad_config = AppConfig(output=OutputConfig(mode="save_image,display"))
    with pytest.raises(ValueError, match="output.mode"):
        validate_config(bad_config)


def test_aspect_bounds_must_be_ordered():
    """Test that an inverted aspect-ratio window is rejected."""
    bad_config = AppConfig(
        detection=DetectionConfig(prefilter_ar_min=2.0, prefilter_ar_max=0.5)
    )
    with pytest.raises(ValueError, match="prefilter_ar_min"):
        validate_config(bad_config)


def test_env_override(monkeypatch):
    """Test environment variable overrides."""
    monkeypatch.setenv("FACE_SCRUB_DETECTION_CONFIDENCE_THRESHOLD", "0.9")
    monkeypatch.setenv("FACE_SCRUB_DETECTION_TTA_FLIP", "true")
    monkeypatch.setenv("FACE_SCRUB_MODEL_REG_MAX", "16")
    monkeypatch.setenv("FACE_SCRUB_MODEL_PROVIDERS", "CUDAExecutionProvider,CPUExecutionProvider")

    config = load_config(None)

    assert config.detection.confidence_threshold == 0.9
    assert config.detection.tta_flip is True
    assert config.model.reg_max == 16
    assert config.model.providers == ("CUDAExecutionProvider", "CPUExecutionProvider")


def test_yaml_file(tmp_path):
    """Test loading values from a YAML file."""
    path = tmp_path / "config.yaml"
    path.write_text(
        "model:\n"
        "  source: https://example.com/face.onnx\n"
        "  input_size: 416\n"
        "detection:\n"
        "  tta_flip: true\n"
        "  max_faces: null\n"
        "letterbox:\n"
        "  pad_small_side: 12\n"
        "output:\n"
        "  mode: save_json,save_csv\n",
        encoding="utf-8",
    )

    config = load_config(str(path))

    assert config.model.source == "https://example.com/face.onnx"
    assert config.model.input_size == 416
    assert config.detection.tta_flip is True
    assert config.detection.max_faces is None
    assert config.letterbox.pad_small_side == 12.0
    assert config.output.mode == "save_json,save_csv"


def test_missing_file(tmp_path):
    """Test that a missing config file fails loudly."""
    with pytest.raises(FileNotFoundError):
        load_config(str(tmp_path / "nope.yaml"))


def test_bad_boolean(monkeypatch):
    """Test that an unparseable boolean is rejected."""
    monkeypatch.setenv("FACE_SCRUB_DETECTION_TTA_FLIP", "maybe")
    with pytest.raises(ValueError, match="boolean"):
        load_config(None)
