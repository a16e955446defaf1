"""
Box data transfer objects.

This module defines the two box records that cross module boundaries:

    - DecodedBox: a candidate in network (padded-square) pixel space, as
      produced by the decoders in postprocessor.
    - FaceBox: a face in original-image pixel space. This is the single
      output type returned by FaceDetector.detect().

Both are frozen containers with no behavior beyond data access.

Non-goals:
    - No rendering logic.
    - No file I/O.
    - No coordinate transformation methods (that belongs in postprocessor).
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class DecodedBox:
    """A candidate box in network input space (corner form)."""

    x0: float
    y0: float
    x1: float
    y1: float
    score: float

    @property
    def width(self) -> float:
        return self.x1 - self.x0

    @property
    def height(self) -> float:
        return self.y1 - self.y0


@dataclass(frozen=True, slots=True)
class FaceBox:
    """A single detected face with bounding box and confidence score.

    Attributes:
        x: Left edge (original-image pixels).
        y: Top edge (original-image pixels).
        w: Box width in pixels.
        h: Box height in pixels.
        score: Detection confidence in [0.0, 1.0].
    """

    x: float
    y: float
    w: float
    h: float
    score: float

    def to_dict(self) -> dict:
        """Return a plain dict suitable for JSON serialization."""
        return {
            "x": round(self.x, 2),
            "y": round(self.y, 2),
            "w": round(self.w, 2),
            "h": round(self.h, 2),
            "score": round(self.score, 4),
        }

    @property
    def x1(self) -> float:
        """Right edge in pixels."""
        return self.x + self.w

    @property
    def y1(self) -> float:
        """Bottom edge in pixels."""
        return self.y + self.h

    @property
    def area(self) -> float:
        """Bounding box area in pixels."""
        return self.w * self.h
