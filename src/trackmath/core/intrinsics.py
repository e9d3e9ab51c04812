"""
Camera intrinsic parameters as one compact value.

A CameraIntrinsics bundles the 3x3 intrinsic matrix (and its inverse), the
calibration image size and the lens distortion coefficients, so that
calibration results can be handed between modules as a single object.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Iterable

import numpy as np

from trackmath.core.distortion import RationalDistortion, rational_from_coeffs
from trackmath.core.linalg import invert_matrix

RADIAL_SIZES = (0, 2, 6)
TANGENTIAL_DIM = 2

_END = object()


class IntrinsicsValidationError(ValueError):
    pass


def _require(cond: bool, msg: str) -> None:
    if not cond:
        raise IntrinsicsValidationError(msg)


def _scalar_dtype(x: np.ndarray) -> np.dtype:
    if x.dtype in (np.float32, np.float64):
        return x.dtype
    return np.dtype(np.float64)


def _frozen(x: np.ndarray) -> np.ndarray:
    x = np.array(x, copy=True)
    x.setflags(write=False)
    return x


def _as_float(v: Any, what: str) -> float:
    try:
        return float(v)
    except (TypeError, ValueError) as exc:
        raise IntrinsicsValidationError(f"{what} must be a number, got {v!r}") from exc


def as_count(v: Any, what: str) -> int:
    """Non-negative integer from an int, an integral float or its string token."""
    _require(not isinstance(v, (bool, np.bool_)), f"{what} must be an integer, got {v!r}")
    f = _as_float(v, what)
    _require(f.is_integer() and f >= 0, f"{what} must be a non-negative integer, got {v!r}")
    return int(f)


@dataclass(frozen=True, eq=False)
class CameraIntrinsics:
    """
    Pinhole intrinsics plus radial/tangential lens distortion.

    The scalar type is taken from `matrix` (float32 or float64, anything else is
    promoted to float64); all coefficient arrays share it. `matrix_inv` is derived
    from `matrix` on construction and is never set independently.

    `dimension` is the calibration image size (width, height); (1, 1) means the
    matrix is normalized. Only the first `radial_size` entries of the 6-slot
    `radial_params` are meaningful, the remaining slots are zero.
    """

    matrix: np.ndarray = field(default_factory=lambda: np.eye(3, dtype=np.float64))
    dimension: tuple[int, int] = (1, 1)
    radial_size: int = 0
    radial_params: np.ndarray = field(default_factory=lambda: np.zeros(6, dtype=np.float64))
    tangential_params: np.ndarray = field(default_factory=lambda: np.zeros(TANGENTIAL_DIM, dtype=np.float64))
    matrix_inv: np.ndarray = field(init=False, repr=False)

    def __post_init__(self) -> None:
        matrix = np.asarray(self.matrix)
        dtype = _scalar_dtype(matrix)
        matrix = matrix.astype(dtype)
        _require(matrix.shape == (3, 3), f"matrix must be 3x3, got shape {matrix.shape}")

        _require(len(self.dimension) == 2, "dimension must be (width, height)")
        dimension = (as_count(self.dimension[0], "dimension[0]"), as_count(self.dimension[1], "dimension[1]"))

        radial_size = as_count(self.radial_size, "radial_size")
        _require(radial_size in RADIAL_SIZES, f"radial_size must be one of {RADIAL_SIZES}, got {radial_size}")
        radial = np.asarray(self.radial_params, dtype=dtype).reshape(-1)
        _require(radial.size == 6, "radial_params must have 6 slots")
        _require(bool(np.all(radial[radial_size:] == 0)), "radial_params beyond radial_size must be zero")

        tangential = np.asarray(self.tangential_params, dtype=dtype).reshape(-1)
        _require(tangential.size == TANGENTIAL_DIM, "tangential_params must have 2 entries")

        object.__setattr__(self, "matrix", _frozen(matrix))
        object.__setattr__(self, "matrix_inv", _frozen(invert_matrix(matrix)))
        object.__setattr__(self, "dimension", dimension)
        object.__setattr__(self, "radial_size", radial_size)
        object.__setattr__(self, "radial_params", _frozen(radial))
        object.__setattr__(self, "tangential_params", _frozen(tangential))

    @classmethod
    def from_coeffs(
        cls,
        matrix: np.ndarray,
        radial: Iterable[float] = (),
        tangential: Iterable[float] = (0.0, 0.0),
        *,
        dimension: tuple[int, int] = (1, 1),
    ) -> CameraIntrinsics:
        """
        Build from an intrinsic matrix and 0, 2 (older OpenCV) or 6 (rational model)
        radial coefficients plus 2 tangential coefficients.
        """
        matrix = np.asarray(matrix)
        dtype = _scalar_dtype(matrix)
        radial_arr = np.asarray(list(radial), dtype=dtype).reshape(-1)
        _require(
            radial_arr.size in RADIAL_SIZES,
            f"expected {RADIAL_SIZES} radial coefficients, got {radial_arr.size}",
        )
        radial_params = np.zeros(6, dtype=dtype)
        radial_params[: radial_arr.size] = radial_arr
        return cls(
            matrix=matrix,
            dimension=dimension,
            radial_size=int(radial_arr.size),
            radial_params=radial_params,
            tangential_params=np.asarray(list(tangential), dtype=dtype),
        )

    @classmethod
    def from_opencv(
        cls,
        K: np.ndarray,
        dist: np.ndarray,
        *,
        dimension: tuple[int, int] = (1, 1),
    ) -> CameraIntrinsics:
        """
        Build from OpenCV's (K, distCoeffs) with 4, 5 or 8 coefficients
        ordered (k1, k2, p1, p2[, k3[, k4, k5, k6]]).
        """
        K = np.asarray(K)
        d = np.asarray(dist, dtype=np.float64).reshape(-1)
        _require(d.size in (4, 5, 8), f"expected 4, 5 or 8 OpenCV distortion coefficients, got {d.size}")
        tangential = d[2:4]
        if d.size == 4:
            radial = d[:2]
        else:
            radial = np.zeros(6, dtype=np.float64)
            radial[:2] = d[:2]
            radial[2 : 2 + d.size - 4] = d[4:]
        return cls.from_coeffs(K, radial, tangential, dimension=dimension)

    @property
    def dtype(self) -> np.dtype:
        return self.matrix.dtype

    @property
    def radial(self) -> np.ndarray:
        """The populated radial coefficients (length radial_size)."""
        return self.radial_params[: self.radial_size]

    @property
    def has_distortion(self) -> bool:
        return bool(np.any(self.radial != 0) or np.any(self.tangential_params != 0))

    def copy(self) -> CameraIntrinsics:
        # Field-by-field copy, the inverse is carried over, not recomputed.
        clone = object.__new__(type(self))
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, np.ndarray):
                value = _frozen(value)
            object.__setattr__(clone, f.name, value)
        return clone

    def serialize(self) -> list[float | int]:
        """
        Ordered field sequence for persistence:

          9 matrix entries (row-major), width, height, radial_size,
          radial_size radial values, tangential dimension (always 2),
          2 tangential values.

        The inverse matrix is not part of the record.
        """
        values: list[float | int] = [float(v) for v in self.matrix.reshape(9)]
        values += [int(self.dimension[0]), int(self.dimension[1]), int(self.radial_size)]
        values += [float(v) for v in self.radial]
        values.append(TANGENTIAL_DIM)
        values += [float(v) for v in self.tangential_params]
        return values

    @classmethod
    def deserialize(cls, values: Iterable[Any], dtype: Any = np.float64) -> CameraIntrinsics:
        """
        Inverse of serialize(). Values may be numbers or their string tokens.
        The inverse matrix is recomputed from the loaded matrix.
        """
        it = iter(values)

        def take(what: str) -> Any:
            v = next(it, _END)
            _require(v is not _END, f"truncated intrinsics record: missing {what}")
            return v

        matrix = np.array([_as_float(take("matrix entry"), "matrix entry") for _ in range(9)], dtype=dtype)
        width = as_count(take("dimension"), "dimension[0]")
        height = as_count(take("dimension"), "dimension[1]")
        radial_size = as_count(take("radial_size"), "radial_size")
        _require(radial_size in RADIAL_SIZES, f"radial_size must be one of {RADIAL_SIZES}, got {radial_size}")
        radial = [_as_float(take("radial coefficient"), "radial coefficient") for _ in range(radial_size)]
        tan_dim = as_count(take("tangential dimension"), "tangential dimension")
        _require(tan_dim == TANGENTIAL_DIM, f"tangential dimension must be {TANGENTIAL_DIM}, got {tan_dim}")
        tangential = [_as_float(take("tangential coefficient"), "tangential coefficient") for _ in range(TANGENTIAL_DIM)]
        _require(next(it, _END) is _END, "trailing values after intrinsics record")

        return cls.from_coeffs(matrix.reshape(3, 3), radial, tangential, dimension=(width, height))

    def distortion(self) -> RationalDistortion:
        return rational_from_coeffs(self.radial_params, self.tangential_params)

    def to_opencv(self) -> tuple[np.ndarray, np.ndarray]:
        """
        (K, distCoeffs) in OpenCV order: (k1, k2, p1, p2) for up to 2 radial
        coefficients, (k1, k2, p1, p2, k3, k4, k5, k6) for 6.
        """
        K = np.array(self.matrix, dtype=np.float64)
        r = np.asarray(self.radial_params, dtype=np.float64)
        p = np.asarray(self.tangential_params, dtype=np.float64)
        if self.radial_size == 6:
            dist = np.array([r[0], r[1], p[0], p[1], r[2], r[3], r[4], r[5]], dtype=np.float64)
        else:
            dist = np.array([r[0], r[1], p[0], p[1]], dtype=np.float64)
        return K, dist

    def project(self, XYZ_cam: np.ndarray) -> np.ndarray:
        """
        Project camera-frame points (N,3) to pixels (N,2). Points with Z == 0
        or non-finite coordinates map to NaN.
        """
        XYZ_cam = np.asarray(XYZ_cam, dtype=np.float64).reshape(-1, 3)
        uv = np.full((XYZ_cam.shape[0], 2), np.nan, dtype=np.float64)
        Z = XYZ_cam[:, 2]
        good = np.all(np.isfinite(XYZ_cam), axis=1) & (np.abs(Z) > 1e-12)
        if not np.any(good):
            return uv

        x = XYZ_cam[good, 0] / Z[good]
        y = XYZ_cam[good, 1] / Z[good]
        xd, yd = self.distortion().distort(x, y)
        h = np.asarray(self.matrix, dtype=np.float64) @ np.stack([xd, yd, np.ones_like(xd)], axis=0)
        uv[good, 0] = h[0] / h[2]
        uv[good, 1] = h[1] / h[2]
        return uv

    def unproject(self, uv_px: np.ndarray, iterations: int = 10) -> np.ndarray:
        """
        Pixels (N,2) -> undistorted normalized coordinates (N,2), using matrix_inv.
        """
        uv_px = np.asarray(uv_px, dtype=np.float64).reshape(-1, 2)
        h = np.asarray(self.matrix_inv, dtype=np.float64) @ np.stack(
            [uv_px[:, 0], uv_px[:, 1], np.ones(uv_px.shape[0])], axis=0
        )
        xd = h[0] / h[2]
        yd = h[1] / h[2]
        x, y = self.distortion().undistort(xd, yd, iterations=iterations)
        return np.stack([x, y], axis=-1)

    def __str__(self) -> str:
        if self.radial_size:
            radial = ", ".join(f"{float(v):.6g}" for v in self.radial)
        else:
            radial = "none"
        tangential = ", ".join(f"{float(v):.6g}" for v in self.tangential_params)
        return (
            "Matrix:\n"
            f"{np.array2string(np.asarray(self.matrix))}\n"
            f"Resolution: {self.dimension[0]}x{self.dimension[1]}\n"
            f"Distortion radial: {radial}\n"
            f"Distortion tangential: {tangential}\n"
        )
