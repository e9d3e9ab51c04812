from __future__ import annotations

import numpy as np


class SingularMatrixError(np.linalg.LinAlgError):
    pass


def invert_matrix(m: np.ndarray) -> np.ndarray:
    """
    Inverse of a square matrix, keeping its floating dtype.

    Raises SingularMatrixError for singular, non-finite or numerically
    singular input (condition number above 1/eps of the dtype). No
    best-effort inverse is returned.
    """
    m = np.asarray(m)
    if m.ndim != 2 or m.shape[0] != m.shape[1]:
        raise ValueError(f"expected a square matrix, got shape {m.shape}")
    dtype = m.dtype if m.dtype in (np.float32, np.float64) else np.float64
    m = m.astype(dtype, copy=False)
    if not np.all(np.isfinite(m)):
        raise SingularMatrixError("matrix has non-finite entries")

    # Condition number is evaluated in float64 even for float32 input.
    cond = np.linalg.cond(m.astype(np.float64))
    if not np.isfinite(cond) or cond > 1.0 / np.finfo(dtype).eps:
        raise SingularMatrixError(f"matrix is singular to working precision (cond={cond:.3g})")
    try:
        inv = np.linalg.inv(m)
    except np.linalg.LinAlgError as exc:
        raise SingularMatrixError(str(exc)) from exc
    return inv.astype(dtype, copy=False)


def skew(v: np.ndarray) -> np.ndarray:
    """Cross-product matrix: skew(v) @ w == cross(v, w)."""
    x, y, z = (float(c) for c in np.asarray(v, dtype=np.float64).reshape(3))
    return np.array([[0.0, -z, y], [z, 0.0, -x], [-y, x, 0.0]], dtype=np.float64)
