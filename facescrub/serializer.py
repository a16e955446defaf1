"""
Serialization for the face redaction pipeline.

Responsibility:
    Export detected face boxes to structured file formats (JSON, CSV)
    for downstream consumption or offline review.

Non-goals:
    - No rendering, display, or detection logic.
    - No streaming output; complete files are written on finalize.
"""

import csv
import json
import logging
from pathlib import Path
from typing import Dict, List

from facescrub.detection import FaceBox

logger = logging.getLogger(__name__)


def save_json(
    faces_by_image: Dict[str, List[FaceBox]],
    output_path: str,
) -> None:
    """Export all face boxes to a JSON file.

    Output schema:
        {
            "images": [
                {
                    "image": "photo.jpg",
                    "faces": [
                        {"x": ..., "y": ..., "w": ..., "h": ..., "score": ...}
                    ]
                }
            ],
            "total_images": N,
            "total_faces": M
        }

    Args:
        faces_by_image: Mapping of image name → list of FaceBox objects.
        output_path: Path to the output JSON file.

    Raises:
        OSError: If the output path is not writable.
    """
    _ensure_parent_dir(output_path)

    images = []
    total_faces = 0

    for name in sorted(faces_by_image.keys()):
        faces = faces_by_image[name]
        total_faces += len(faces)
        images.append({
            "image": name,
            "faces": [f.to_dict() for f in faces],
        })

    payload = {
        "images": images,
        "total_images": len(images),
        "total_faces": total_faces,
    }

    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)

    logger.info(
        "JSON output saved: %s (%d images, %d faces)",
        output_path, len(images), total_faces,
    )


def save_csv(
    faces_by_image: Dict[str, List[FaceBox]],
    output_path: str,
) -> None:
    """Export all face boxes to a CSV file.

    Columns: image, x, y, w, h, score

    Args:
        faces_by_image: Mapping of image name → list of FaceBox objects.
        output_path: Path to the output CSV file.

    Raises:
        OSError: If the output path is not writable.
    """
    _ensure_parent_dir(output_path)

    fieldnames = ["image", "x", "y", "w", "h", "score"]

    with open(output_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()

        total = 0
        for name in sorted(faces_by_image.keys()):
            for face in faces_by_image[name]:
                writer.writerow({
                    "image": name,
                    **face.to_dict(),
                })
                total += 1

    logger.info("CSV output saved: %s (%d rows)", output_path, total)


def _ensure_parent_dir(path: str) -> None:
    """Create parent directories if they don't exist."""
    parent = Path(path).parent
    parent.mkdir(parents=True, exist_ok=True)
