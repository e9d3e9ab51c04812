from trackmath.api.intrinsics_io import dumps_intrinsics, load_intrinsics, loads_intrinsics, save_intrinsics

__all__ = [
    "dumps_intrinsics",
    "loads_intrinsics",
    "save_intrinsics",
    "load_intrinsics",
]
