"""
FaceDetector — the single public API for face detection.

Public contract:
    FaceDetector.detect(frame: np.ndarray, score_threshold=None) -> list[FaceBox]

Pipeline per call:
    letterbox geometry -> preprocess -> inference -> decode -> (flipped
    pass, when tta_flip is on) -> fusion.

Constraints:
    - Input must be a BGR numpy array (as returned by OpenCV); a 4-channel
      BGRA array is accepted and its alpha channel ignored.
    - The passes share no mutable state; fusion starts only once every
      pass has produced its list.
    - Inference errors propagate unchanged to the caller.
    - Thread-safety is not guaranteed (single-threaded design).

Non-goals:
    - No file reading or output writing.
    - No tracking or temporal state.
"""

import logging
from typing import List, Optional

import numpy as np

from facescrub.config import AppConfig, load_config
from facescrub.detection import FaceBox
from facescrub.fusion import fuse
from facescrub.letterbox import LetterboxInfo, compute_letterbox
from facescrub.model_loader import SessionRegistry
from facescrub.postprocessor import decode_yolo_output
from facescrub.preprocessor import flip_horizontal, preprocess

logger = logging.getLogger(__name__)


class FaceDetector:
    """Face detector over an ONNX YOLO-style face model.

    Usage:
        detector = FaceDetector()                      # Uses safe defaults
        detector = FaceDetector(config=my_config)      # Custom config
        detector = FaceDetector(session=my_session)    # Pre-built session
        faces = detector.detect(frame)                 # BGR numpy array

    The constructor resolves the session once. Subsequent detect() calls
    reuse it; there is no per-frame setup cost beyond preprocessing and
    inference.
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        session=None,
        registry: Optional[SessionRegistry] = None,
    ) -> None:
        """Initialize the detector and resolve the inference session.

        Args:
            config: Application configuration. If None, safe defaults
                    are used (no config file required).
            session: An inference session to use instead of loading
                     config.model.source.
            registry: Session cache used when loading from the config.

        Raises:
            FileNotFoundError: If a local model file is missing.
            ModelLoadError: If the model download is rejected.
            ValueError: If the model's input is not a square image.
        """
        if config is None:
            config = load_config()
        self._config = config

        if session is None:
            if registry is None:
                registry = SessionRegistry(
                    providers=config.model.providers,
                    timeout=config.model.request_timeout,
                )
            session = registry.get(config.model.source)
        self._session = session

        inputs = session.get_inputs()
        outputs = session.get_outputs()
        if not inputs or not outputs:
            raise ValueError("Model must declare at least one input and one output.")

        self._input_name = inputs[0].name
        self._output_name = outputs[0].name
        self._target = self._resolve_target(inputs[0], config.model.input_size)

        logger.info(
            "FaceDetector initialized (target=%d, tta_flip=%s, threshold=%.2f)",
            self._target,
            config.detection.tta_flip,
            config.detection.confidence_threshold,
        )

    def detect(
        self,
        frame: np.ndarray,
        score_threshold: Optional[float] = None,
    ) -> List[FaceBox]:
        """Detect faces in a single BGR frame.

        Args:
            frame: A BGR image as a numpy array with shape (H, W, 3)
                   and dtype uint8.
            score_threshold: Overrides detection.confidence_threshold
                             for this call.

        Returns:
            A list of FaceBox objects in original-image pixels, sorted by
            score (descending). Empty if no faces are detected.

        Raises:
            TypeError: If frame is not a numpy ndarray.
            ValueError: If frame has incorrect shape, or the model output
                        does not match the expected head layout.
        """
        self._validate_frame(frame)
        if frame.shape[2] == 4:
            frame = frame[:, :, :3]

        det = self._config.detection
        threshold = det.confidence_threshold if score_threshold is None else score_threshold

        h, w = frame.shape[:2]
        letterbox = compute_letterbox(
            w,
            h,
            self._target,
            pad_small_side=self._config.letterbox.pad_small_side,
            pad_large_side=self._config.letterbox.pad_large_side,
        )

        normal = self._run_pass(frame, letterbox, threshold, flipped=False)
        flipped = None
        if det.tta_flip:
            flipped = self._run_pass(flip_horizontal(frame), letterbox, threshold, flipped=True)

        faces = fuse(
            normal,
            flipped,
            iou_threshold=det.fusion_iou,
            contain_threshold=det.fusion_contain,
            center_threshold=det.fusion_center,
            max_faces=det.max_faces,
        )

        logger.debug(
            "detect: %dx%d -> %d faces (normal=%d, flipped=%s)",
            w, h, len(faces), len(normal),
            "off" if flipped is None else len(flipped),
        )
        return faces

    def _run_pass(
        self,
        frame: np.ndarray,
        letterbox: LetterboxInfo,
        threshold: float,
        flipped: bool,
    ) -> List[FaceBox]:
        """Preprocess, infer and decode one (possibly mirrored) frame."""
        blob = preprocess(frame, letterbox, fill_value=self._config.letterbox.fill_value)
        outputs = self._session.run([self._output_name], {self._input_name: blob})

        h, w = frame.shape[:2]
        return decode_yolo_output(
            outputs[0],
            letterbox,
            w,
            h,
            threshold,
            flipped=flipped,
            config=self._config.detection,
            reg_max=self._config.model.reg_max,
        )

    @property
    def config(self) -> AppConfig:
        """Return the active configuration (read-only)."""
        return self._config

    @property
    def target(self) -> int:
        """Side of the square network input."""
        return self._target

    @staticmethod
    def _resolve_target(model_input, fallback: int) -> int:
        """Read the square input side from the model, else use fallback.

        Dynamic axes (None or symbolic names) fall back to the configured
        input size.
        """
        shape = list(getattr(model_input, "shape", None) or [])
        if len(shape) != 4:
            return fallback

        h, w = shape[2], shape[3]
        if not (isinstance(h, int) and isinstance(w, int)) or h <= 0 or w <= 0:
            return fallback
        if h != w:
            raise ValueError(
                f"Non-square model input {h}x{w} is not supported."
            )
        return h

    @staticmethod
    def _validate_frame(frame: np.ndarray) -> None:
        """Validate that the input frame meets the API contract.

        Raises:
            TypeError: If frame is not a numpy ndarray.
            ValueError: If frame is empty or has wrong dimensions.
        """
        if not isinstance(frame, np.ndarray):
            raise TypeError(
                f"Expected frame to be a numpy ndarray, "
                f"got {type(frame).__name__}. "
                f"Use cv2.imread() to obtain frames."
            )

        if frame.size == 0:
            raise ValueError(
                "Frame is empty (zero size). "
                "Ensure the input source is providing valid frames."
            )

        if frame.ndim != 3:
            raise ValueError(
                f"Expected a 3-dimensional frame (H, W, C), "
                f"got {frame.ndim} dimensions with shape {frame.shape}. "
                f"Grayscale images must be converted to BGR first."
            )

        if frame.shape[2] not in (3, 4):
            raise ValueError(
                f"Expected 3 channels (BGR) or 4 (BGRA), got {frame.shape[2]} channels. "
                f"Input must be a BGR image as returned by OpenCV."
            )
