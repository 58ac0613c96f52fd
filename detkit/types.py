from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class Detection:
    """
    Axis-aligned detection in model input space (e.g. 0..640), corner form.
    """

    x1: float
    y1: float
    x2: float
    y2: float
    score: float
    class_id: int

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        return self.x1, self.y1, self.x2, self.y2

    def as_cxcywh(self) -> Tuple[float, float, float, float]:
        w = self.x2 - self.x1
        h = self.y2 - self.y1
        return self.x1 + w / 2, self.y1 + h / 2, w, h

    @property
    def area(self) -> float:
        return (self.x2 - self.x1) * (self.y2 - self.y1)
