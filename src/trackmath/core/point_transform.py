"""
Spatial transformation of 2D/3D points by fixed-size matrices.

Supported (matrix shape -> accepted point dimensions -> output dimension):

  2x3 -> 2, 3    -> 2   (2D point: [x, y, 1])
  3x3 -> 2, 3    -> 3   (2D point: [x, y, 1])
  3x4 -> 2, 3, 4 -> 3   (2D point: [x, y, 0, 1], 3D point: [x, y, z, 1])
  4x4 -> 2, 3, 4 -> 4   (same padding as 3x4)

The result is always matrix @ augmented(point). Shapes and scalar types are
checked before any arithmetic; anything outside the table raises
PointTransformTypeError.
"""

from __future__ import annotations

from typing import Any, Iterable

import numpy as np

SUPPORTED_SHAPES: dict[tuple[int, int], tuple[int, ...]] = {
    (2, 3): (2, 3),
    (3, 3): (2, 3),
    (3, 4): (2, 3, 4),
    (4, 4): (2, 3, 4),
}

# (matrix columns, point dimension) -> homogeneous padding
_PADDING: dict[tuple[int, int], tuple[float, ...]] = {
    (3, 2): (1.0,),
    (3, 3): (),
    (4, 2): (0.0, 1.0),
    (4, 3): (1.0,),
    (4, 4): (),
}

_FLOAT_TYPES = (np.dtype(np.float32), np.dtype(np.float64))


class PointTransformTypeError(TypeError):
    pass


def _as_transform_matrix(matrix: Any) -> np.ndarray:
    if isinstance(matrix, np.ndarray):
        if matrix.dtype not in _FLOAT_TYPES:
            raise PointTransformTypeError(f"matrix must be float32 or float64, got {matrix.dtype}")
    else:
        matrix = np.asarray(matrix, dtype=np.float64)
    if matrix.ndim != 2 or tuple(matrix.shape) not in SUPPORTED_SHAPES:
        raise PointTransformTypeError(
            f"unsupported transformation matrix shape {matrix.shape}; expected one of {sorted(SUPPORTED_SHAPES)}"
        )
    return matrix


def _as_point(point: Any, matrix: np.ndarray) -> np.ndarray:
    if isinstance(point, np.ndarray):
        if point.dtype != matrix.dtype:
            raise PointTransformTypeError(
                f"matrix and point need the same scalar type, got {matrix.dtype} and {point.dtype}"
            )
    else:
        point = np.asarray(point, dtype=matrix.dtype)
    if point.ndim != 1:
        raise PointTransformTypeError(f"point must be a vector, got shape {point.shape}")
    accepted = SUPPORTED_SHAPES[tuple(matrix.shape)]
    if point.shape[0] not in accepted:
        raise PointTransformTypeError(
            f"a {matrix.shape[0]}x{matrix.shape[1]} matrix accepts points of dimension {accepted}, "
            f"got {point.shape[0]}"
        )
    return point


def augment_point(point: np.ndarray, n_cols: int) -> np.ndarray:
    """Pad a point with homogeneous coordinates to match n_cols."""
    pad = _PADDING[(n_cols, point.shape[0])]
    if not pad:
        return point
    return np.concatenate([point, np.asarray(pad, dtype=point.dtype)])


class PointTransform:
    """
    A transformation matrix bound for repeated application to points.

    The matrix is validated once; each call validates only the point.
    """

    def __init__(self, matrix: Any):
        self.matrix = _as_transform_matrix(matrix)

    @property
    def output_dim(self) -> int:
        return int(self.matrix.shape[0])

    @property
    def accepted_dims(self) -> tuple[int, ...]:
        return SUPPORTED_SHAPES[tuple(self.matrix.shape)]

    def __call__(self, point: Any) -> np.ndarray:
        p = _as_point(point, self.matrix)
        return self.matrix @ augment_point(p, self.matrix.shape[1])


def transform_point(matrix: Any, point: Any) -> np.ndarray:
    return PointTransform(matrix)(point)


def transform_points(matrix: Any, points: Iterable[Any], out: Any = None) -> Any:
    """
    Transform every point of `points` (any iterable) with `matrix`, in order.

    Output handling:
      - out is None: a new list is returned;
      - out has `append` (e.g. a list): results are appended;
      - otherwise out is treated as pre-sized and written at indices 0..N-1.

    `out` may be the input container itself (in-place transformation); it is
    then written by index even if it supports append. All points must share one
    dimension and scalar type.

    Returns `out` (or the new list).
    """
    transform = PointTransform(matrix)
    if out is None:
        out = []
    # Writing back into the input container is always index-based.
    append = None if out is points else getattr(out, "append", None)

    first: tuple[int, np.dtype] | None = None
    for i, point in enumerate(points):
        p = _as_point(point, transform.matrix)
        key = (int(p.shape[0]), p.dtype)
        if first is None:
            first = key
        elif key != first:
            raise PointTransformTypeError(
                f"all points must have the same type; point {i} has dimension {key[0]}, expected {first[0]}"
            )
        result = transform(p)
        if append is not None:
            append(result)
        else:
            out[i] = result
    return out
