from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import numpy as np

from trackmath.core.intrinsics import CameraIntrinsics
from trackmath.schema import intrinsics_to_dict, parse_intrinsics_dict

logger = logging.getLogger(__name__)


def _token(v: float | int) -> str:
    # repr() of a Python float round-trips exactly.
    return str(v) if isinstance(v, int) else repr(float(v))


def dumps_intrinsics(intr: CameraIntrinsics) -> str:
    """
    Text archive: the serialize() record as whitespace-separated tokens on one line.
    """
    return " ".join(_token(v) for v in intr.serialize()) + "\n"


def loads_intrinsics(text: str, dtype: Any = np.float64) -> CameraIntrinsics:
    return CameraIntrinsics.deserialize(text.split(), dtype=dtype)


def save_intrinsics(path: Path, intr: CameraIntrinsics) -> Path:
    """
    Save intrinsics by suffix: `.json` writes the JSON document, anything else
    the text archive.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.suffix.lower() == ".json":
        path.write_text(json.dumps(intrinsics_to_dict(intr), indent=2, sort_keys=True), encoding="utf-8")
    else:
        path.write_text(dumps_intrinsics(intr), encoding="utf-8")
    logger.debug(f"Wrote intrinsics ({intr.dtype}, radial_size={intr.radial_size}) to {path}")
    return path


def load_intrinsics(path: Path, dtype: Any = np.float64) -> CameraIntrinsics:
    """
    Load intrinsics written by save_intrinsics(). For JSON documents the dtype
    stored in the document wins over `dtype`.
    """
    path = Path(path)
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        intr = parse_intrinsics_dict(json.loads(text))
    else:
        intr = loads_intrinsics(text, dtype=dtype)
    logger.debug(f"Loaded intrinsics from {path}: dimension={intr.dimension}, radial_size={intr.radial_size}")
    return intr
