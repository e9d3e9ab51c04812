from __future__ import annotations

from typing import Any

import numpy as np

from trackmath.core.intrinsics import CameraIntrinsics
from trackmath.core.linalg import invert_matrix, skew
from trackmath.core.pose import Pose


def _inverse_intrinsics(K: Any) -> np.ndarray:
    if isinstance(K, CameraIntrinsics):
        return np.asarray(K.matrix_inv, dtype=np.float64)
    return invert_matrix(np.asarray(K, dtype=np.float64).reshape(3, 3))


def essential_matrix_from_poses(pose1: Pose, pose2: Pose) -> np.ndarray:
    """
    Essential matrix between two cameras given as world->camera poses.

    With the relative pose (R, t) = pose2 * ~pose1 (camera 1 -> camera 2),
    E = [t]x R and x2^T E x1 = 0 for normalized image points.
    """
    rel = pose2 * ~pose1
    return skew(rel.translation) @ rel.rotation.as_matrix()


def fundamental_matrix_from_poses(pose1: Pose, pose2: Pose, K1: Any, K2: Any) -> np.ndarray:
    """
    Fundamental matrix F with x2^T F x1 = 0, where x_i are the pixel projections
    through P_i = K_i [R_i | t_i]. K1/K2 may be 3x3 arrays or CameraIntrinsics.
    """
    E = essential_matrix_from_poses(pose1, pose2)
    return _inverse_intrinsics(K2).T @ E @ _inverse_intrinsics(K1)


def epipolar_residuals(F: np.ndarray, x1: np.ndarray, x2: np.ndarray) -> np.ndarray:
    """Algebraic residuals x2^T F x1 for matching (N,2) pixel arrays."""
    F = np.asarray(F, dtype=np.float64).reshape(3, 3)
    x1 = np.asarray(x1, dtype=np.float64).reshape(-1, 2)
    x2 = np.asarray(x2, dtype=np.float64).reshape(-1, 2)
    if x1.shape != x2.shape:
        raise ValueError("x1 and x2 must have the same number of points")
    h1 = np.concatenate([x1, np.ones((x1.shape[0], 1))], axis=1)
    h2 = np.concatenate([x2, np.ones((x2.shape[0], 1))], axis=1)
    return np.einsum("ni,ij,nj->n", h2, F, h1)


def hom_matrix_diff(a: np.ndarray, b: np.ndarray) -> float:
    """
    Difference between two matrices defined up to scale: both are scaled to unit
    Frobenius norm, the sign of b is aligned with a, then the largest absolute
    entry difference is returned.
    """
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    if a.shape != b.shape:
        raise ValueError("matrices must have the same shape")
    na = np.linalg.norm(a)
    nb = np.linalg.norm(b)
    if na == 0.0 or nb == 0.0:
        raise ValueError("zero matrix has no projective equivalent")
    a = a / na
    b = b / nb
    if float(np.sum(a * b)) < 0.0:
        b = -b
    return float(np.max(np.abs(a - b)))
