from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .types import Detection


class DetkitError(Exception):
    """Base class for errors raised by detkit."""


class ShapeError(DetkitError, ValueError):
    """Tensor dimensions are malformed or incompatible with the decoder layout."""


class ConfigError(DetkitError, ValueError):
    """Out-of-range threshold or unsupported activation / mode."""


@dataclass(frozen=True)
class IndexAnomaly:
    """
    A detection whose class id has no entry in the label table.

    Never raised: the detection is dropped, the anomaly is logged and reported
    back to the caller in `PostprocessResult.anomalies`.
    """

    class_id: int
    num_labels: int
    detection: Optional[Detection] = None

    @property
    def message(self) -> str:
        return f"class_id {self.class_id} outside label table of size {self.num_labels}"
