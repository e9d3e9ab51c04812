from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import numpy as np

from trackmath.api.intrinsics_io import load_intrinsics, save_intrinsics
from trackmath.core.intrinsics import IntrinsicsValidationError
from trackmath.core.point_transform import PointTransformTypeError, transform_points

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def _load_rows(path: Path) -> np.ndarray:
    return np.loadtxt(path, dtype=np.float64, ndmin=2)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="trackmath")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    sub = parser.add_subparsers(dest="cmd", required=True)

    show = sub.add_parser("show-intrinsics", help="Print camera intrinsics (.json or text archive).")
    show.add_argument("path", type=Path)

    conv = sub.add_parser(
        "convert-intrinsics",
        help="Convert intrinsics between the JSON document (.json) and the text archive (other suffixes).",
    )
    conv.add_argument("src", type=Path)
    conv.add_argument("dst", type=Path)

    tp = sub.add_parser(
        "transform-points",
        help="Apply a 2x3, 3x3, 3x4 or 4x4 matrix to points (one point per row, whitespace separated).",
    )
    tp.add_argument("--matrix", type=Path, required=True)
    tp.add_argument("--points", type=Path, required=True)
    tp.add_argument("--out", type=Path, default=None, help="Output text file (default: stdout).")

    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    try:
        if args.cmd == "show-intrinsics":
            intr = load_intrinsics(args.path)
            print(intr, end="")
            return 0

        if args.cmd == "convert-intrinsics":
            intr = load_intrinsics(args.src)
            save_intrinsics(args.dst, intr)
            print(f"Wrote {args.dst}")
            return 0

        if args.cmd == "transform-points":
            matrix = _load_rows(args.matrix)
            points = _load_rows(args.points)
            logger.info(f"Transforming {points.shape[0]} points with a {matrix.shape[0]}x{matrix.shape[1]} matrix")
            out = np.asarray(transform_points(matrix, points), dtype=np.float64)
            if args.out is not None:
                np.savetxt(args.out, out)
                print(f"Wrote {args.out}")
            else:
                np.savetxt(sys.stdout, out)
            return 0
    except (IntrinsicsValidationError, PointTransformTypeError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    raise AssertionError(f"Unhandled cmd: {args.cmd}")


if __name__ == "__main__":
    raise SystemExit(main())
