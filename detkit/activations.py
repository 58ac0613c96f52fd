from __future__ import annotations

from enum import Enum
from typing import Union

import numpy as np

from .boxes import as_float
from .errors import ConfigError


class ActivationKind(str, Enum):
    IDENTITY = "identity"
    SIGMOID = "sigmoid"
    SOFTMAX = "softmax"


def parse_activation(kind: Union[str, ActivationKind]) -> ActivationKind:
    if isinstance(kind, ActivationKind):
        return kind
    try:
        return ActivationKind(str(kind).lower())
    except ValueError as exc:
        raise ConfigError(f"Unsupported activation kind: {kind!r}") from exc


def sigmoid(x: np.ndarray) -> np.ndarray:
    # Split by sign so large |x| never overflows exp().
    x = as_float(x)
    out = np.empty_like(x)
    pos = x >= 0
    out[pos] = 1.0 / (1.0 + np.exp(-x[pos]))
    ex = np.exp(x[~pos])
    out[~pos] = ex / (1.0 + ex)
    return out


def softmax(x: np.ndarray, axis: int = 0) -> np.ndarray:
    x = as_float(x)
    shifted = x - np.max(x, axis=axis, keepdims=True)
    ex = np.exp(shifted)
    return ex / np.sum(ex, axis=axis, keepdims=True)


def apply_activation(kind: ActivationKind, x: np.ndarray, axis: int = 0) -> np.ndarray:
    """
    Apply `kind` to `x`. For softmax, `axis` is the class axis.
    """

    if kind is ActivationKind.IDENTITY:
        return as_float(x)
    if kind is ActivationKind.SIGMOID:
        return sigmoid(x)
    if kind is ActivationKind.SOFTMAX:
        return softmax(x, axis=axis)
    raise ConfigError(f"Unsupported activation kind: {kind!r}")
