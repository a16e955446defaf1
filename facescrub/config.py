"""
Configuration management for the face redaction system.

Provides a layered configuration system with the following precedence
(highest to lowest):

    CLI arguments > Environment variables > YAML config file > Defaults

Design constraints:
    - The system MUST run with zero configuration (safe defaults only).
    - Missing or invalid values fail early and loudly.
    - No detection logic, I/O, or model loading belongs here.

Non-goals:
    - No dynamic reloading.
    - No database-backed or remote configuration.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

import yaml

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Project root resolution
# ---------------------------------------------------------------------------
# Resolved relative to this file's location: facescrub/config.py → repo root
_PROJECT_ROOT = Path(__file__).resolve().parent.parent


def get_project_root() -> Path:
    """Return the resolved project root directory."""
    return _PROJECT_ROOT


# ---------------------------------------------------------------------------
# Configuration dataclasses
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ModelConfig:
    """Model-related configuration.

    Attributes:
        source: ONNX model location. Either an http(s) URL or a file path
                (relative paths resolve against the project root).
        input_size: Side of the square network input. Used only when the
                    model does not declare a concrete input shape.
        reg_max: DFL bins per box side. None infers it from the output
                 row width.
        providers: ONNX Runtime execution providers, in priority order.
        request_timeout: Seconds to wait for an HTTP model download.
    """

    source: str = "models/face/yolov11n-face.onnx"
    input_size: int = 640
    reg_max: Optional[int] = None
    providers: Tuple[str, ...] = ("CPUExecutionProvider",)
    request_timeout: float = 30.0


@dataclass(frozen=True)
class DetectionConfig:
    """Decode, prefilter and fusion parameters.

    Attributes:
        confidence_threshold: Minimum score to keep a candidate (exclusive).
        fusion_iou: IoU above which a candidate joins a cluster seed.
        fusion_contain: Containment ratio (intersection / smaller area)
                        above which a candidate joins a seed. 0 disables.
        fusion_center: Center distance, relative to the smaller mean side,
                       below which a candidate joins a seed. 0 disables.
        max_faces: Upper bound on returned faces. None means unbounded.
        prefilter_min_side_ratio: Minimum longer side as a fraction of the
                                  network input side. 0 disables.
        prefilter_ar_min: Minimum w/h aspect ratio. 0 disables.
        prefilter_ar_max: Maximum w/h aspect ratio. 0 disables.
        tta_flip: Also run a horizontally flipped pass and fuse results.
        force_center_norm: Treat direct (non-DFL) head coordinates as
                           normalized to [0, 1] regardless of their range.
    """

    confidence_threshold: float = 0.35
    fusion_iou: float = 0.4
    fusion_contain: float = 0.0
    fusion_center: float = 0.0
    max_faces: Optional[int] = 50
    prefilter_min_side_ratio: float = 0.0
    prefilter_ar_min: float = 0.0
    prefilter_ar_max: float = 0.0
    tta_flip: bool = False
    force_center_norm: bool = False


@dataclass(frozen=True)
class LetterboxConfig:
    """Letterbox canvas parameters.

    Attributes:
        pad_small_side: Extra leading pad (network pixels) on the axis of
                        the smaller image dimension.
        pad_large_side: Extra leading pad (network pixels) on the axis of
                        the larger image dimension.
        fill_value: Gray level used for the padding area.
    """

    pad_small_side: float = 0.0
    pad_large_side: float = 0.0
    fill_value: int = 114


@dataclass(frozen=True)
class RedactionConfig:
    """Blur rendering parameters.

    Attributes:
        blur_strength: Blur strength on a 0-100 scale.
        pad_ratio_at_small: Box expansion ratio for small faces.
        pad_ratio_at_large: Box expansion ratio for large faces.
        small_face_side: Shorter side (px) at or below which a face is small.
        large_face_side: Shorter side (px) at or above which a face is large.
        vertical_shift: Fraction of box height to move the blur upward.
    """

    blur_strength: int = 40
    pad_ratio_at_small: float = 0.18
    pad_ratio_at_large: float = 0.06
    small_face_side: float = 140.0
    large_face_side: float = 420.0
    vertical_shift: float = 0.0


@dataclass(frozen=True)
class InputConfig:
    """Input source configuration.

    Attributes:
        source: Image file or directory of images.
    """

    source: str = "images/"


@dataclass(frozen=True)
class OutputConfig:
    """Output behavior configuration.

    Attributes:
        mode: Output mode(s). Supports multiple comma-separated values:
              'save_image', 'save_json', 'save_csv'.
              Example: "save_image,save_json"
        save_path: Directory where output artifacts are written.
    """

    mode: str = "save_image"
    save_path: str = "output/"


@dataclass(frozen=True)
class AppConfig:
    """Top-level application configuration.

    Aggregates all sub-configurations into a single, frozen object.
    """

    model: ModelConfig = field(default_factory=ModelConfig)
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    letterbox: LetterboxConfig = field(default_factory=LetterboxConfig)
    redaction: RedactionConfig = field(default_factory=RedactionConfig)
    input: InputConfig = field(default_factory=InputConfig)
    output: OutputConfig = field(default_factory=OutputConfig)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

_VALID_OUTPUT_MODES = {"save_image", "save_json", "save_csv"}


def validate_config(config: AppConfig) -> None:
    """Validate configuration values. Raises ValueError on invalid state."""

    if config.model.input_size <= 0:
        raise ValueError(
            f"model.input_size must be positive, got {config.model.input_size}."
        )

    if config.model.reg_max is not None and config.model.reg_max < 1:
        raise ValueError(
            f"model.reg_max must be >= 1 or None, got {config.model.reg_max}."
        )

    if not config.model.providers:
        raise ValueError("model.providers must list at least one provider.")

    if config.model.request_timeout <= 0:
        raise ValueError(
            f"model.request_timeout must be positive, "
            f"got {config.model.request_timeout}."
        )

    det = config.detection
    for name in ("confidence_threshold", "fusion_iou", "fusion_contain", "fusion_center"):
        value = getattr(det, name)
        if not (0.0 <= value <= 1.0):
            raise ValueError(f"detection.{name} must be in [0.0, 1.0], got {value}.")

    if det.max_faces is not None and det.max_faces <= 0:
        raise ValueError(
            f"detection.max_faces must be positive or None, got {det.max_faces}."
        )

    for name in ("prefilter_min_side_ratio", "prefilter_ar_min", "prefilter_ar_max"):
        if getattr(det, name) < 0:
            raise ValueError(f"detection.{name} must be >= 0, got {getattr(det, name)}.")

    if det.prefilter_ar_max and det.prefilter_ar_min > det.prefilter_ar_max:
        raise ValueError(
            f"detection.prefilter_ar_min ({det.prefilter_ar_min}) exceeds "
            f"prefilter_ar_max ({det.prefilter_ar_max})."
        )

    lb = config.letterbox
    if lb.pad_small_side < 0 or lb.pad_large_side < 0:
        raise ValueError(
            f"letterbox pad biases must be >= 0, "
            f"got small={lb.pad_small_side}, large={lb.pad_large_side}."
        )

    if not (0 <= lb.fill_value <= 255):
        raise ValueError(f"letterbox.fill_value must be in [0, 255], got {lb.fill_value}.")

    red = config.redaction
    if not (0 <= red.blur_strength <= 100):
        raise ValueError(
            f"redaction.blur_strength must be in [0, 100], got {red.blur_strength}."
        )

    if red.small_face_side > red.large_face_side:
        raise ValueError(
            f"redaction.small_face_side ({red.small_face_side}) exceeds "
            f"large_face_side ({red.large_face_side})."
        )

    # Validate each mode in comma-separated list
    modes = set(m.strip() for m in config.output.mode.split(','))
    invalid_modes = modes - _VALID_OUTPUT_MODES
    if invalid_modes:
        raise ValueError(
            f"Invalid output.mode(s): {invalid_modes}. "
            f"Valid modes: {_VALID_OUTPUT_MODES}. "
            f"Use comma-separated values for multiple outputs."
        )


# ---------------------------------------------------------------------------
# YAML loading
# ---------------------------------------------------------------------------

def _parse_bool(value) -> bool:
    """Accept YAML booleans and their string forms from the environment."""
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("1", "true", "yes", "on"):
        return True
    if text in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"Expected a boolean, got {value!r}")


def _parse_optional_int(value) -> Optional[int]:
    if value is None or str(value).strip().lower() in ("", "none", "null"):
        return None
    return int(value)


def _parse_providers(value) -> Tuple[str, ...]:
    if isinstance(value, (list, tuple)):
        return tuple(str(v) for v in value)
    return tuple(p.strip() for p in str(value).split(",") if p.strip())


def _build_model_config(raw: dict) -> ModelConfig:
    """Build ModelConfig from a raw YAML dict."""
    kwargs = {}
    if "source" in raw:
        kwargs["source"] = str(raw["source"])
    if "input_size" in raw:
        kwargs["input_size"] = int(raw["input_size"])
    if "reg_max" in raw:
        kwargs["reg_max"] = _parse_optional_int(raw["reg_max"])
    if "providers" in raw:
        kwargs["providers"] = _parse_providers(raw["providers"])
    if "request_timeout" in raw:
        kwargs["request_timeout"] = float(raw["request_timeout"])
    return ModelConfig(**kwargs)


def _build_detection_config(raw: dict) -> DetectionConfig:
    """Build DetectionConfig from a raw YAML dict."""
    kwargs = {}
    for key in (
        "confidence_threshold",
        "fusion_iou",
        "fusion_contain",
        "fusion_center",
        "prefilter_min_side_ratio",
        "prefilter_ar_min",
        "prefilter_ar_max",
    ):
        if key in raw:
            kwargs[key] = float(raw[key])
    if "max_faces" in raw:
        kwargs["max_faces"] = _parse_optional_int(raw["max_faces"])
    if "tta_flip" in raw:
        kwargs["tta_flip"] = _parse_bool(raw["tta_flip"])
    if "force_center_norm" in raw:
        kwargs["force_center_norm"] = _parse_bool(raw["force_center_norm"])
    return DetectionConfig(**kwargs)


def _build_letterbox_config(raw: dict) -> LetterboxConfig:
    """Build LetterboxConfig from a raw YAML dict."""
    kwargs = {}
    if "pad_small_side" in raw:
        kwargs["pad_small_side"] = float(raw["pad_small_side"])
    if "pad_large_side" in raw:
        kwargs["pad_large_side"] = float(raw["pad_large_side"])
    if "fill_value" in raw:
        kwargs["fill_value"] = int(raw["fill_value"])
    return LetterboxConfig(**kwargs)


def _build_redaction_config(raw: dict) -> RedactionConfig:
    """Build RedactionConfig from a raw YAML dict."""
    kwargs = {}
    if "blur_strength" in raw:
        kwargs["blur_strength"] = int(raw["blur_strength"])
    for key in (
        "pad_ratio_at_small",
        "pad_ratio_at_large",
        "small_face_side",
        "large_face_side",
        "vertical_shift",
    ):
        if key in raw:
            kwargs[key] = float(raw[key])
    return RedactionConfig(**kwargs)


def _build_input_config(raw: dict) -> InputConfig:
    """Build InputConfig from a raw YAML dict."""
    kwargs = {}
    if "source" in raw:
        kwargs["source"] = str(raw["source"])
    return InputConfig(**kwargs)


def _build_output_config(raw: dict) -> OutputConfig:
    """Build OutputConfig from a raw YAML dict."""
    kwargs = {}
    if "mode" in raw:
        kwargs["mode"] = str(raw["mode"]).lower()
    if "save_path" in raw:
        kwargs["save_path"] = str(raw["save_path"])
    return OutputConfig(**kwargs)


# ---------------------------------------------------------------------------
# Environment variable overrides
# ---------------------------------------------------------------------------

_ENV_PREFIX = "FACE_SCRUB_"


def _apply_env_overrides(raw: dict) -> dict:
    """Apply environment variable overrides to the raw config dict.

    Environment variables follow the pattern:
        FACE_SCRUB_MODEL_SOURCE=https://example.com/face.onnx
        FACE_SCRUB_DETECTION_TTA_FLIP=true

    The variable name maps to the nested config key by replacing
    underscores after the section name with dots.
    """
    env_map = {
        f"{_ENV_PREFIX}MODEL_SOURCE": ("model", "source"),
        f"{_ENV_PREFIX}MODEL_INPUT_SIZE": ("model", "input_size"),
        f"{_ENV_PREFIX}MODEL_REG_MAX": ("model", "reg_max"),
        f"{_ENV_PREFIX}MODEL_PROVIDERS": ("model", "providers"),
        f"{_ENV_PREFIX}DETECTION_CONFIDENCE_THRESHOLD": ("detection", "confidence_threshold"),
        f"{_ENV_PREFIX}DETECTION_FUSION_IOU": ("detection", "fusion_iou"),
        f"{_ENV_PREFIX}DETECTION_MAX_FACES": ("detection", "max_faces"),
        f"{_ENV_PREFIX}DETECTION_PREFILTER_MIN_SIDE_RATIO": ("detection", "prefilter_min_side_ratio"),
        f"{_ENV_PREFIX}DETECTION_TTA_FLIP": ("detection", "tta_flip"),
        f"{_ENV_PREFIX}LETTERBOX_PAD_SMALL_SIDE": ("letterbox", "pad_small_side"),
        f"{_ENV_PREFIX}LETTERBOX_PAD_LARGE_SIDE": ("letterbox", "pad_large_side"),
        f"{_ENV_PREFIX}REDACTION_BLUR_STRENGTH": ("redaction", "blur_strength"),
        f"{_ENV_PREFIX}INPUT_SOURCE": ("input", "source"),
        f"{_ENV_PREFIX}OUTPUT_MODE": ("output", "mode"),
        f"{_ENV_PREFIX}OUTPUT_SAVE_PATH": ("output", "save_path"),
    }

    for env_var, (section, key) in env_map.items():
        value = os.environ.get(env_var)
        if value is not None:
            raw.setdefault(section, {})[key] = value
            logger.debug("Config override from env: %s=%s", env_var, value)

    return raw


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------

def load_config(config_path: Optional[str] = None) -> AppConfig:
    """Load and validate application configuration.

    Precedence (highest → lowest):
        Environment variables > YAML file > Hard-coded defaults

    Args:
        config_path: Path to a YAML configuration file. If None,
                     the system runs entirely on defaults (safe for
                     programmatic usage).

    Returns:
        A validated, frozen AppConfig instance.

    Raises:
        FileNotFoundError: If config_path is provided but does not exist.
        ValueError: If any configuration value is invalid.
        yaml.YAMLError: If the YAML file is malformed.
    """
    raw: dict = {}

    # --- Layer 1: YAML file ---
    if config_path is not None:
        resolved = Path(config_path)
        if not resolved.is_absolute():
            resolved = _PROJECT_ROOT / resolved

        if not resolved.is_file():
            raise FileNotFoundError(
                f"Configuration file not found: {resolved}. "
                f"Provide a valid path or omit to use defaults."
            )

        logger.info("Loading config from: %s", resolved)
        with open(resolved, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}

    # --- Layer 2: Environment variable overrides ---
    raw = _apply_env_overrides(raw)

    # --- Build typed configs ---
    config = AppConfig(
        model=_build_model_config(raw.get("model", {})),
        detection=_build_detection_config(raw.get("detection", {})),
        letterbox=_build_letterbox_config(raw.get("letterbox", {})),
        redaction=_build_redaction_config(raw.get("redaction", {})),
        input=_build_input_config(raw.get("input", {})),
        output=_build_output_config(raw.get("output", {})),
    )

    # --- Validate ---
    validate_config(config)

    logger.debug("Configuration loaded: %s", config)
    return config
