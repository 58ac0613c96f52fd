"""
Raw detector output with explicit shape metadata.

The export layout is (batch=1, channels=4+K[+1], anchors=N), row-major: the
value for channel `c` of anchor `i` sits at flat offset `c * N + i`. Channel
rows are therefore contiguous slices of the flat buffer and are read as views,
never copied or transposed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import numpy as np

from .boxes import as_float
from .errors import ShapeError


@dataclass(frozen=True, eq=False)
class RawPrediction:
    data: np.ndarray
    shape: Tuple[int, int, int]

    def __post_init__(self) -> None:
        if len(self.shape) != 3:
            raise ShapeError(f"Expected shape (1, C, N), got {self.shape}")
        batch, channels, anchors = (int(v) for v in self.shape)
        if batch != 1:
            raise ShapeError(f"Batch > 1 is not supported (got shape {self.shape}). Pass one image at a time.")
        if channels < 0 or anchors < 0:
            raise ShapeError(f"Negative dimension in shape {self.shape}")
        flat = np.ascontiguousarray(as_float(self.data)).reshape(-1)
        if flat.size != channels * anchors:
            raise ShapeError(f"Buffer holds {flat.size} values, shape {self.shape} needs {channels * anchors}")
        flat.flags.writeable = False
        object.__setattr__(self, "data", flat)
        object.__setattr__(self, "shape", (batch, channels, anchors))

    @classmethod
    def from_array(cls, arr: np.ndarray) -> "RawPrediction":
        """
        Wrap a (1, C, N) or (C, N) array. The array is not transposed; a
        (N, C) export must be converted by the caller.
        """

        p = np.asarray(arr)
        if p.ndim == 2:
            p = p[None, ...]
        if p.ndim != 3:
            raise ShapeError(f"Unsupported output shape: {p.shape}")
        return cls(data=p, shape=tuple(int(v) for v in p.shape))

    @property
    def num_channels(self) -> int:
        return self.shape[1]

    @property
    def num_anchors(self) -> int:
        return self.shape[2]

    def row(self, channel: int) -> np.ndarray:
        """Read-only view of one channel across all anchors."""

        n = self.num_anchors
        return self.data[channel * n : (channel + 1) * n]

    def rows(self, start: int, stop: int) -> np.ndarray:
        """Read-only (stop - start, N) view of a channel range."""

        n = self.num_anchors
        return self.data[start * n : stop * n].reshape(stop - start, n)
