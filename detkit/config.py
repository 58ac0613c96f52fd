from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .errors import ConfigError
from .postprocess import PostprocessConfig

SCHEMA_VERSION = 1

_ALLOWED_KEYS = {
    "schema_version",
    "score_threshold",
    "iou_threshold",
    "max_outputs",
    "activation",
    "has_objectness",
    "suppression_mode",
    "label_table",
    "nms_score_threshold",
    "apply_nms",
    "class_ids",
}


def _require_number(payload: Dict[str, Any], key: str) -> float:
    if key not in payload:
        raise ConfigError(f"Missing required key: {key}")
    return _as_number(payload[key], key)


def _as_number(value: Any, key: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{key} must be a number")
    return float(value)


def _as_int(value: Any, key: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{key} must be an integer")
    return int(value)


def _as_bool(value: Any, key: str) -> bool:
    if not isinstance(value, bool):
        raise ConfigError(f"{key} must be true or false")
    return value


def _as_str_list(value: Any, key: str) -> List[str]:
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"{key} must be a list of strings")
    return list(value)


def _as_int_list(value: Any, key: str) -> List[int]:
    if not isinstance(value, list):
        raise ConfigError(f"{key} must be a list of integers")
    return [_as_int(v, key) for v in value]


def postprocess_config_from_dict(payload: Dict[str, Any]) -> PostprocessConfig:
    unknown = sorted(set(payload.keys()) - _ALLOWED_KEYS)
    if unknown:
        raise ConfigError(f"Unknown postprocess config keys: {unknown}")

    schema_version = _as_int(payload.get("schema_version", SCHEMA_VERSION), "schema_version")
    if schema_version != SCHEMA_VERSION:
        raise ConfigError(f"schema_version must be {SCHEMA_VERSION}")

    kwargs: Dict[str, Any] = {
        "score_threshold": _require_number(payload, "score_threshold"),
        "iou_threshold": _require_number(payload, "iou_threshold"),
        "max_outputs": _as_int(payload.get("max_outputs", 100), "max_outputs"),
    }

    activation = payload.get("activation", {})
    if not isinstance(activation, dict):
        raise ConfigError("activation must be an object with `objectness` / `class` keys")
    extra = sorted(set(activation.keys()) - {"objectness", "class"})
    if extra:
        raise ConfigError(f"Unknown activation keys: {extra}")
    if "objectness" in activation:
        kwargs["objectness_activation"] = activation["objectness"]
    if "class" in activation:
        kwargs["class_activation"] = activation["class"]

    if "has_objectness" in payload:
        kwargs["has_objectness"] = _as_bool(payload["has_objectness"], "has_objectness")
    if "suppression_mode" in payload:
        mode = payload["suppression_mode"]
        if not isinstance(mode, str):
            raise ConfigError("suppression_mode must be a string")
        kwargs["suppression_mode"] = mode
    if payload.get("label_table") is not None:
        kwargs["label_table"] = _as_str_list(payload["label_table"], "label_table")
    if payload.get("nms_score_threshold") is not None:
        kwargs["nms_score_threshold"] = _as_number(payload["nms_score_threshold"], "nms_score_threshold")
    if "apply_nms" in payload:
        kwargs["apply_nms"] = _as_bool(payload["apply_nms"], "apply_nms")
    if payload.get("class_ids") is not None:
        kwargs["class_ids"] = _as_int_list(payload["class_ids"], "class_ids")

    # Range checks and enum parsing happen in PostprocessConfig.__post_init__.
    return PostprocessConfig(**kwargs)


def load_postprocess_config(path: Union[str, Path], label_table: Optional[List[str]] = None) -> PostprocessConfig:
    """
    Read a JSON postprocess config, e.g.

        {
          "schema_version": 1,
          "score_threshold": 0.25,
          "iou_threshold": 0.45,
          "max_outputs": 100,
          "activation": {"objectness": "identity", "class": "identity"},
          "suppression_mode": "class_agnostic"
        }

    `label_table` (e.g. from `load_label_table`) overrides the file's table.
    """

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Postprocess config not found: {path}")
    raw = path.read_text(encoding="utf-8")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid postprocess config JSON: {path}") from exc
    if not isinstance(payload, dict):
        raise ConfigError("Postprocess config must be a JSON object")

    if label_table is not None:
        payload = dict(payload, label_table=list(label_table))
    return postprocess_config_from_dict(payload)
