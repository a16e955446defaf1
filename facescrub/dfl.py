"""
Distribution Focal Loss (DFL) box decoding.

A DFL head predicts each box side (left, top, right, bottom distance from
the anchor center) as a distribution over reg_max discrete bins. The
continuous distance is the expectation of the bin index under the softmax
of those logits:

    d = sum_i softmax(logits)_i * i

The result is in stride units; callers multiply by the anchor stride.

Row layout (width 4 * reg_max + 1):
    [l_0 .. l_{R-1}, t_0 .. t_{R-1}, r_0 .. r_{R-1}, b_0 .. b_{R-1}, score]
"""

from typing import NamedTuple

import numpy as np


class DflDistances(NamedTuple):
    """Decoded side distances (stride units) and the raw score logit."""

    l: float
    t: float
    r: float
    b: float
    score_logit: float


def softmax(x: np.ndarray, axis: int = -1) -> np.ndarray:
    """Numerically stable softmax (row max subtracted before exp)."""
    shifted = x - np.max(x, axis=axis, keepdims=True)
    e = np.exp(shifted)
    return e / np.sum(e, axis=axis, keepdims=True)


def sigmoid(x):
    """Logistic activation; accepts scalars or arrays."""
    return 1.0 / (1.0 + np.exp(-np.asarray(x, dtype=np.float64)))


def row_width(reg_max: int) -> int:
    """Width of one DFL output row for the given bin count."""
    return 4 * reg_max + 1


def decode_row(row: np.ndarray, reg_max: int) -> DflDistances:
    """Decode one raw output row into side distances.

    Args:
        row: 1-D array of length 4 * reg_max + 1.
        reg_max: Number of bins per side.

    Returns:
        DflDistances with l, t, r, b in stride units and the
        un-activated score logit.

    Raises:
        ValueError: If reg_max < 1 or the row length does not match.
    """
    if reg_max < 1:
        raise ValueError(f"reg_max must be >= 1, got {reg_max}.")

    row = np.asarray(row, dtype=np.float64).reshape(-1)
    expected = row_width(reg_max)
    if row.shape[0] != expected:
        raise ValueError(
            f"DFL row has {row.shape[0]} values, expected {expected} "
            f"(4 * reg_max + 1 with reg_max={reg_max})."
        )

    bins = row[: 4 * reg_max].reshape(4, reg_max)
    probs = softmax(bins, axis=1)
    l, t, r, b = probs @ np.arange(reg_max, dtype=np.float64)

    return DflDistances(float(l), float(t), float(r), float(b), float(row[-1]))
