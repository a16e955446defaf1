"""
Input handling for the face redaction pipeline.

Responsibility:
    Abstract away image acquisition from a single image file or a
    directory of images. Provides a uniform iterator interface yielding
    (image_id, path, frame) tuples.

Non-goals:
    - No detection, drawing, or output writing.
    - No video or webcam sources.
    - No implicit fallback between source types.

Robustness:
    - Validates the source at initialization time.
    - Logs and skips unreadable images (never crashes the pipeline).
"""

import logging
from pathlib import Path
from typing import Iterator, List, Tuple

import cv2
import numpy as np

logger = logging.getLogger(__name__)

# Image extensions recognized by this handler
_IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".bmp", ".tiff", ".tif", ".webp"}


class InputHandler:
    """Uniform image iterator for files and directories.

    The source type is auto-detected at initialization:
        - File with image extension → single image
        - Directory path → all images in directory (sorted)

    Usage:
        handler = InputHandler(source="photos/")
        for image_id, path, frame in handler:
            # process frame

    Unreadable images are logged and skipped. The iterator never raises
    on a single bad image.
    """

    def __init__(self, source: str) -> None:
        """Initialize the input handler and validate the source.

        Args:
            source: Image file path or directory path.

        Raises:
            FileNotFoundError: If the source does not exist.
            ValueError: If the source is not a supported image or holds
                        no images.
        """
        source_path = Path(str(source).strip())

        if source_path.is_file():
            ext = source_path.suffix.lower()
            if ext not in _IMAGE_EXTENSIONS:
                raise ValueError(
                    f"Unrecognized file extension: '{ext}' for source '{source_path}'. "
                    f"Supported images: {_IMAGE_EXTENSIONS}."
                )
            self._mode = "image"
            self._image_paths: List[Path] = [source_path]
        elif source_path.is_dir():
            self._mode = "directory"
            self._image_paths = sorted(
                p for p in source_path.iterdir()
                if p.suffix.lower() in _IMAGE_EXTENSIONS
            )
            if not self._image_paths:
                raise ValueError(
                    f"No image files found in directory: '{source_path}'. "
                    f"Supported extensions: {_IMAGE_EXTENSIONS}."
                )
            logger.info("Found %d images in directory: %s", len(self._image_paths), source_path)
        else:
            raise FileNotFoundError(
                f"Input source not found: '{source_path}'. "
                f"Provide a valid image file or directory."
            )

        logger.info("InputHandler initialized: mode=%s, source=%s", self._mode, source_path)

    def __len__(self) -> int:
        return len(self._image_paths)

    def __iter__(self) -> Iterator[Tuple[int, Path, np.ndarray]]:
        """Iterate over images from the configured source.

        Yields:
            Tuples of (image_id, path, frame) where image_id is a 0-based
            index and frame is a BGR numpy array.
        """
        for idx, path in enumerate(self._image_paths):
            frame = cv2.imread(str(path))
            if frame is None:
                logger.warning(
                    "Skipping unreadable image (image_id=%d): %s", idx, path
                )
                continue
            yield idx, path, frame
