from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class RationalDistortion:
    """
    Rational lens distortion on normalized camera coordinates (x=X/Z, y=Y/Z).

    Parameters follow OpenCV's rational model:
      radial numerator: k1, k2, k3
      radial denominator: k4, k5, k6
      tangential: p1, p2

    With k4=k5=k6=0 this is the Brown-Conrady model; with k3=0 as well it is
    the two-coefficient model of older OpenCV calibrations.
    """

    k1: float = 0.0
    k2: float = 0.0
    k3: float = 0.0
    k4: float = 0.0
    k5: float = 0.0
    k6: float = 0.0
    p1: float = 0.0
    p2: float = 0.0

    @property
    def is_identity(self) -> bool:
        return not any((self.k1, self.k2, self.k3, self.k4, self.k5, self.k6, self.p1, self.p2))

    def _gain(self, r2: np.ndarray) -> np.ndarray:
        # Horner form of (1 + k1 r^2 + k2 r^4 + k3 r^6) / (1 + k4 r^2 + k5 r^4 + k6 r^6)
        num = 1.0 + r2 * (self.k1 + r2 * (self.k2 + r2 * self.k3))
        den = 1.0 + r2 * (self.k4 + r2 * (self.k5 + r2 * self.k6))
        return num / den

    def _decentering(self, x: np.ndarray, y: np.ndarray, r2: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        two_xy = 2.0 * x * y
        return (
            self.p1 * two_xy + self.p2 * (r2 + 2.0 * x * x),
            self.p2 * two_xy + self.p1 * (r2 + 2.0 * y * y),
        )

    def distort(self, x: np.ndarray, y: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        x = np.asarray(x, dtype=np.float64)
        y = np.asarray(y, dtype=np.float64)
        r2 = np.square(x) + np.square(y)
        g = self._gain(r2)
        dx, dy = self._decentering(x, y, r2)
        return g * x + dx, g * y + dy

    def undistort(self, xd: np.ndarray, yd: np.ndarray, iterations: int = 10) -> tuple[np.ndarray, np.ndarray]:
        """
        Inverse of distort() by fixed-point iteration: remove the decentering
        offset of the current estimate, then divide out its radial gain.
        Converges for small/moderate distortion.
        """
        xd = np.asarray(xd, dtype=np.float64)
        yd = np.asarray(yd, dtype=np.float64)
        if self.is_identity:
            return xd.copy(), yd.copy()
        x, y = xd, yd
        for _ in range(int(iterations)):
            r2 = np.square(x) + np.square(y)
            dx, dy = self._decentering(x, y, r2)
            g = self._gain(r2)
            x, y = (xd - dx) / g, (yd - dy) / g
        return np.array(x, dtype=np.float64), np.array(y, dtype=np.float64)


def rational_from_coeffs(radial: np.ndarray, tangential: np.ndarray) -> RationalDistortion:
    """
    Build a RationalDistortion from a radial vector (k1..k6, shorter vectors are
    zero-padded) and a tangential pair (p1, p2).
    """
    r = np.zeros(6, dtype=np.float64)
    radial = np.asarray(radial, dtype=np.float64).reshape(-1)
    if radial.size > 6:
        raise ValueError("at most 6 radial coefficients are supported")
    r[: radial.size] = radial
    p1, p2 = (float(v) for v in np.asarray(tangential, dtype=np.float64).reshape(2))
    return RationalDistortion(
        k1=float(r[0]),
        k2=float(r[1]),
        k3=float(r[2]),
        k4=float(r[3]),
        k5=float(r[4]),
        k6=float(r[5]),
        p1=p1,
        p2=p2,
    )
