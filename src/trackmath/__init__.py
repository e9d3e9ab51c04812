from trackmath.api import dumps_intrinsics, load_intrinsics, loads_intrinsics, save_intrinsics
from trackmath.core.intrinsics import CameraIntrinsics, IntrinsicsValidationError
from trackmath.core.linalg import SingularMatrixError
from trackmath.core.point_transform import PointTransform, PointTransformTypeError, transform_point, transform_points
from trackmath.core.pose import Pose, linear_interpolate, slerp

__all__ = [
    "CameraIntrinsics",
    "IntrinsicsValidationError",
    "SingularMatrixError",
    "PointTransform",
    "PointTransformTypeError",
    "transform_point",
    "transform_points",
    "Pose",
    "linear_interpolate",
    "slerp",
    "dumps_intrinsics",
    "loads_intrinsics",
    "save_intrinsics",
    "load_intrinsics",
]
