"""
facescrub — face detection and redaction over ONNX YOLO face models.

Public API:
    - FaceDetector: The entry point for face detection on a BGR frame.
    - FaceBox: Data transfer object representing a detected face.
    - decode_yolo_output: Pure decode of one precomputed output tensor.
    - compute_letterbox / LetterboxInfo: Input geometry.
    - fuse: Cross-pass clustering of face candidates.
    - load_face_model / SessionRegistry / ModelLoadError: Model loading.
    - redact_faces: Blur faces on a copy of a frame.

Usage:
    from facescrub import FaceDetector

    detector = FaceDetector()
    faces = detector.detect(frame)
"""

from facescrub.detection import FaceBox
from facescrub.detector import FaceDetector
from facescrub.fusion import fuse
from facescrub.letterbox import LetterboxInfo, compute_letterbox
from facescrub.model_loader import ModelLoadError, SessionRegistry, load_face_model
from facescrub.postprocessor import decode_yolo_output
from facescrub.redactor import redact_faces

__all__ = [
    "FaceDetector",
    "FaceBox",
    "decode_yolo_output",
    "compute_letterbox",
    "LetterboxInfo",
    "fuse",
    "load_face_model",
    "SessionRegistry",
    "ModelLoadError",
    "redact_faces",
]
