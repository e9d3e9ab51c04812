from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import numpy as np

from trackmath.core.intrinsics import RADIAL_SIZES, CameraIntrinsics, IntrinsicsValidationError, as_count

SCHEMA_VERSION = "trackmath.intrinsics.v0"

_DTYPES = {"float32": np.float32, "float64": np.float64}


def _require(cond: bool, msg: str) -> None:
    if not cond:
        raise IntrinsicsValidationError(msg)


def _number_list(value: Any, name: str, sizes: tuple[int, ...]) -> list[float]:
    _require(isinstance(value, (list, tuple)), f"{name} must be a list")
    _require(len(value) in sizes, f"{name} must have {' or '.join(str(s) for s in sizes)} entries")
    try:
        out = [float(v) for v in value]
    except (TypeError, ValueError) as exc:
        raise IntrinsicsValidationError(f"{name} entries must be numbers") from exc
    _require(all(np.isfinite(out)), f"{name} entries must be finite")
    return out


def _image_size(width: Any, height: Any) -> tuple[int, int]:
    w = as_count(width, "dimension[0]")
    h = as_count(height, "dimension[1]")
    _require(w > 0 and h > 0, "dimension values must be > 0")
    return w, h


def load_intrinsics_dict(path: Path) -> CameraIntrinsics:
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return parse_intrinsics_dict(data)


def parse_intrinsics_dict(data: dict[str, Any]) -> CameraIntrinsics:
    """
    Validate an intrinsics document and build the CameraIntrinsics.

    When the ordered `fields` record is present it is authoritative; otherwise
    the readable `matrix` / `dimension` / `radial` / `tangential` keys are used.
    """
    _require(isinstance(data, dict), "intrinsics document must be a JSON object")
    schema_version = data.get("schema_version")
    _require(schema_version == SCHEMA_VERSION, f"schema_version must be {SCHEMA_VERSION}")

    dtype_name = str(data.get("dtype", "float64"))
    _require(dtype_name in _DTYPES, "dtype must be float32 or float64")
    dtype = _DTYPES[dtype_name]

    record = data.get("fields")
    if record is not None:
        _require(isinstance(record, list), "fields must be a list")
        intr = CameraIntrinsics.deserialize(record, dtype=dtype)
        _image_size(*intr.dimension)
        return intr

    matrix = data.get("matrix")
    _require(
        isinstance(matrix, (list, tuple)) and len(matrix) == 3,
        "matrix is required as a 3x3 nested list",
    )
    rows = [_number_list(row, "matrix row", (3,)) for row in matrix]

    dimension = data.get("dimension", [1, 1])
    _require(isinstance(dimension, (list, tuple)) and len(dimension) == 2, "dimension must be [width, height]")
    width, height = _image_size(dimension[0], dimension[1])

    radial = _number_list(data.get("radial", []), "radial", RADIAL_SIZES)
    tangential = _number_list(data.get("tangential", [0.0, 0.0]), "tangential", (2,))

    return CameraIntrinsics.from_coeffs(
        np.asarray(rows, dtype=dtype),
        radial,
        tangential,
        dimension=(width, height),
    )


def intrinsics_to_dict(intr: CameraIntrinsics) -> dict[str, Any]:
    return {
        "schema_version": SCHEMA_VERSION,
        "dtype": str(intr.dtype),
        "matrix": np.asarray(intr.matrix, dtype=np.float64).tolist(),
        "dimension": [int(intr.dimension[0]), int(intr.dimension[1])],
        "radial": [float(v) for v in intr.radial],
        "tangential": [float(v) for v in intr.tangential_params],
        "fields": intr.serialize(),
    }
