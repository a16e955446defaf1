"""
Output handling for the face redaction pipeline.

Responsibility:
    Route detection results to configured output sinks: redacted image
    files, JSON, or CSV. Supports multiple orthogonal outputs
    simultaneously.

Non-goals:
    - No detection logic.
    - No input acquisition.
"""

import logging
from pathlib import Path
from typing import Dict, List, Set

import cv2
import numpy as np

from facescrub.config import AppConfig, get_project_root
from facescrub.detection import FaceBox
from facescrub.redactor import redact_faces
from facescrub.serializer import save_csv, save_json

logger = logging.getLogger(__name__)


class OutputHandler:
    """Routes detection results to configured output sinks.

    Supports orthogonal outputs - multiple modes can be active simultaneously:
        - 'save_image': Write a blurred copy of each image.
        - 'save_json': Accumulate faces, write JSON on finalize.
        - 'save_csv': Accumulate faces, write CSV on finalize.

    Usage:
        handler = OutputHandler(config)
        handler.process_image(path, frame, faces)
        ...
        handler.finalize()  # Flush any buffered output
    """

    def __init__(self, config: AppConfig) -> None:
        """Initialize the output handler.

        Args:
            config: Application configuration (output mode, paths, redaction).
        """
        self._config = config

        # Parse output modes (comma-separated for multiple outputs)
        mode_str = config.output.mode
        self._modes: Set[str] = set(m.strip() for m in mode_str.split(','))

        # Buffer for serialization modes
        self._faces_buffer: Dict[str, List[FaceBox]] = {}

        # Resolve output path
        save_path = Path(config.output.save_path)
        if not save_path.is_absolute():
            save_path = get_project_root() / save_path
        self._save_path = save_path
        self._save_path.mkdir(parents=True, exist_ok=True)

        logger.info("OutputHandler initialized: modes=%s, save_path=%s",
                    self._modes, self._save_path)

    @property
    def save_path(self) -> Path:
        return self._save_path

    def process_image(
        self,
        path: Path,
        frame: np.ndarray,
        faces: List[FaceBox],
    ) -> None:
        """Process a single image's faces through the output pipeline.

        Args:
            path: Source path of the image (used for output naming).
            frame: Original BGR image.
            faces: FaceBox list for this image.
        """
        if 'save_image' in self._modes:
            self._handle_save_image(path, frame, faces)

        if 'save_json' in self._modes or 'save_csv' in self._modes:
            self._faces_buffer[path.name] = faces

    def _handle_save_image(
        self,
        path: Path,
        frame: np.ndarray,
        faces: List[FaceBox],
    ) -> None:
        """Save a redacted copy of the image."""
        redacted = redact_faces(frame, faces, self._config.redaction)
        output_file = self._save_path / f"{path.stem}_redacted{path.suffix}"
        if not cv2.imwrite(str(output_file), redacted):
            raise OSError(f"Failed to write redacted image: {output_file}")
        logger.debug("Saved %s (%d faces) to %s", path.name, len(faces), output_file)

    def finalize(self) -> None:
        """Flush buffered output.

        Must be called after all images have been processed.
        """
        if 'save_json' in self._modes and self._faces_buffer:
            output_file = str(self._save_path / "faces.json")
            save_json(self._faces_buffer, output_file)

        if 'save_csv' in self._modes and self._faces_buffer:
            output_file = str(self._save_path / "faces.csv")
            save_csv(self._faces_buffer, output_file)

        self._faces_buffer.clear()
        logger.info("OutputHandler finalized.")
