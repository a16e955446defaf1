"""
Anchor enumeration for the multi-scale detection head.

The detector emits one row per anchor point, flattened across pyramid
levels. Levels are laid out in increasing stride order, each holding side ** 2
rows in row-major order (y outer, x inner), where side is target / stride
rounded half up.
iter_anchors() reproduces that ordering lazily so a row index can be
paired with its grid cell without materializing an anchor table.
"""

import math
from typing import Iterator, NamedTuple, Sequence

DEFAULT_STRIDES = (8, 16, 32)


class Anchor(NamedTuple):
    grid_x: int
    grid_y: int
    stride: int

    @property
    def center(self):
        """Anchor center in network pixels."""
        return (self.grid_x + 0.5) * self.stride, (self.grid_y + 0.5) * self.stride


def grid_size(target: int, stride: int) -> int:
    return math.floor(target / stride + 0.5)


def anchor_count(target: int, strides: Sequence[int] = DEFAULT_STRIDES) -> int:
    """Total number of rows a head with these strides emits for target."""
    return sum(grid_size(target, s) ** 2 for s in strides)


def iter_anchors(
    target: int,
    strides: Sequence[int] = DEFAULT_STRIDES,
) -> Iterator[Anchor]:
    """Yield one Anchor per output row, in tensor row order."""
    for stride in sorted(strides):
        side = grid_size(target, stride)
        for gy in range(side):
            for gx in range(side):
                yield Anchor(gx, gy, stride)
