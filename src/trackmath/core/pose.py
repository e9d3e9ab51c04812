"""
Rigid transforms (rotation + translation) and their algebra.

A Pose maps a point x to R(x) + t. Composition `a * b` applies b first, then a:
  (a * b)(x) = a(b(x))
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np
from scipy.spatial.transform import Rotation


def _as_rotation(rotation: Any) -> Rotation:
    if isinstance(rotation, Rotation):
        if not rotation.single:
            raise ValueError("pose rotation must be a single rotation")
        return rotation
    q = np.array(rotation, dtype=np.float64).reshape(-1)
    if q.size != 4:
        raise ValueError("rotation must be a Rotation or a quaternion (x, y, z, w)")
    # from_quat normalizes; a zero quaternion raises ValueError.
    return Rotation.from_quat(q)


def slerp(a: Rotation, b: Rotation, t: float) -> Rotation:
    """
    Spherical linear interpolation along the shortest arc from a (t=0) to b (t=1).

    t is not clamped: values outside [0, 1] continue along the same geodesic.
    """
    delta = (a.inv() * b).as_rotvec()
    return a * Rotation.from_rotvec(float(t) * delta)


@dataclass(frozen=True, eq=False)
class Pose:
    rotation: Rotation
    translation: np.ndarray

    def __post_init__(self) -> None:
        t = np.array(self.translation, dtype=np.float64).reshape(-1)
        if t.size != 3:
            raise ValueError(f"translation must have 3 entries, got {t.size}")
        t.setflags(write=False)
        object.__setattr__(self, "rotation", _as_rotation(self.rotation))
        object.__setattr__(self, "translation", t)

    @classmethod
    def identity(cls) -> Pose:
        return cls(Rotation.identity(), np.zeros(3, dtype=np.float64))

    @classmethod
    def from_matrix(cls, mat: np.ndarray) -> Pose:
        """
        From a 3x4 or 4x4 homogeneous transform [R | t]. The upper 3x3 block is
        converted to a quaternion, the translation is the last column.
        """
        mat = np.array(mat, dtype=np.float64)
        if mat.shape not in ((3, 4), (4, 4)):
            raise ValueError(f"expected a 3x4 or 4x4 matrix, got shape {mat.shape}")
        return cls(Rotation.from_matrix(mat[:3, :3]), mat[:3, 3])

    @property
    def quaternion(self) -> np.ndarray:
        """Scalar-last quaternion (x, y, z, w)."""
        return self.rotation.as_quat()

    def as_matrix3x4(self) -> np.ndarray:
        m = np.empty((3, 4), dtype=np.float64)
        m[:, :3] = self.rotation.as_matrix()
        m[:, 3] = self.translation
        return m

    def as_matrix(self) -> np.ndarray:
        m = np.eye(4, dtype=np.float64)
        m[:3, :] = self.as_matrix3x4()
        return m

    def __invert__(self) -> Pose:
        rinv = self.rotation.inv()
        return Pose(rinv, -rinv.apply(np.array(self.translation)))

    def __mul__(self, other: Any) -> Any:
        if isinstance(other, Pose):
            return Pose(
                self.rotation * other.rotation,
                self.rotation.apply(np.array(other.translation)) + self.translation,
            )
        try:
            x = np.array(other, dtype=np.float64)
        except (TypeError, ValueError):
            return NotImplemented
        if x.ndim not in (1, 2) or x.shape[-1] != 3:
            raise ValueError(f"expected a 3-vector or an (N,3) array, got shape {x.shape}")
        return self.rotation.apply(x) + self.translation

    def is_close(self, other: Pose, atol: float = 1e-9) -> bool:
        """Equal translation and rotation (as an angle) within atol."""
        angle = (self.rotation.inv() * other.rotation).magnitude()
        return bool(np.allclose(self.translation, other.translation, rtol=0.0, atol=atol) and angle <= atol)

    def __str__(self) -> str:
        return f"{np.array2string(self.translation)} {np.array2string(self.quaternion)}"


def linear_interpolate(x: Pose, y: Pose, t: float) -> Pose:
    """Slerp on the rotations, linear interpolation on the translations."""
    t = float(t)
    return Pose(
        slerp(x.rotation, y.rotation, t),
        (1.0 - t) * x.translation + t * y.translation,
    )
