import numpy as np
import pytest

from trackmath.core.intrinsics import CameraIntrinsics, IntrinsicsValidationError
from trackmath.core.linalg import SingularMatrixError


def _K() -> np.ndarray:
    return np.array([[400.0, 0.0, -160.0], [0.0, 400.0, -120.0], [0.0, 0.0, -1.0]], dtype=np.float64)


def test_default_intrinsics():
    intr = CameraIntrinsics()
    assert intr.dimension == (1, 1)
    assert np.array_equal(intr.matrix, np.eye(3))
    assert np.array_equal(intr.matrix_inv, np.eye(3))
    assert intr.radial_size == 0
    assert np.all(intr.radial_params == 0)
    assert intr.radial_params.shape == (6,)
    assert np.all(intr.tangential_params == 0)
    assert not intr.has_distortion


def test_two_radial_coefficients_fill_first_slots():
    intr = CameraIntrinsics.from_coeffs(_K(), [0.1, -0.02], [0.001, 0.002])
    assert intr.radial_size == 2
    assert np.array_equal(intr.radial_params, [0.1, -0.02, 0.0, 0.0, 0.0, 0.0])
    assert np.array_equal(intr.tangential_params, [0.001, 0.002])
    assert np.allclose(intr.matrix @ intr.matrix_inv, np.eye(3), atol=1e-12)
    assert intr.dimension == (1, 1)


def test_six_radial_coefficients_stored_verbatim():
    radial = [0.1, -0.2, 0.3, -0.4, 0.5, -0.6]
    intr = CameraIntrinsics.from_coeffs(_K(), radial, [0.0, 0.01], dimension=(640, 480))
    assert intr.radial_size == 6
    assert np.array_equal(intr.radial_params, radial)
    assert np.array_equal(intr.radial, radial)
    assert intr.dimension == (640, 480)


@pytest.mark.parametrize("n", [1, 3, 4, 5, 7])
def test_unsupported_radial_count_rejected(n):
    with pytest.raises(IntrinsicsValidationError):
        CameraIntrinsics.from_coeffs(_K(), [0.1] * n, [0.0, 0.0])


def test_radial_slots_beyond_size_must_be_zero():
    with pytest.raises(IntrinsicsValidationError):
        CameraIntrinsics(matrix=_K(), radial_size=2, radial_params=[0.1, 0.2, 0.3, 0.0, 0.0, 0.0])


def test_singular_matrix_raises():
    K = np.array([[1.0, 2.0, 3.0], [2.0, 4.0, 6.0], [0.0, 0.0, 1.0]])
    with pytest.raises(SingularMatrixError):
        CameraIntrinsics.from_coeffs(K, [0.0, 0.0], [0.0, 0.0])


def test_float32_intrinsics_keep_scalar_type():
    intr = CameraIntrinsics.from_coeffs(_K().astype(np.float32), [0.1, 0.2], [0.0, 0.0])
    assert intr.dtype == np.float32
    assert intr.matrix_inv.dtype == np.float32
    assert intr.radial_params.dtype == np.float32
    assert intr.tangential_params.dtype == np.float32


def test_intrinsics_are_immutable():
    intr = CameraIntrinsics.from_coeffs(_K(), [0.1, 0.2], [0.0, 0.0])
    with pytest.raises(ValueError):
        intr.matrix[0, 0] = 1.0
    with pytest.raises(AttributeError):
        intr.radial_size = 6  # type: ignore[misc]


def test_copy_carries_inverse():
    intr = CameraIntrinsics.from_coeffs(_K(), [0.1, 0.2, 0.3, 0.4, 0.5, 0.6], [0.01, 0.02], dimension=(320, 240))
    c = intr.copy()
    assert c is not intr
    assert c.dimension == intr.dimension
    assert c.radial_size == intr.radial_size
    for name in ("matrix", "matrix_inv", "radial_params", "tangential_params"):
        assert np.array_equal(getattr(c, name), getattr(intr, name))
        assert getattr(c, name) is not getattr(intr, name)


def test_serialize_order():
    intr = CameraIntrinsics.from_coeffs(_K(), [0.5, -0.25], [0.125, 0.0625], dimension=(640, 480))
    values = intr.serialize()
    assert values[:9] == [400.0, 0.0, -160.0, 0.0, 400.0, -120.0, 0.0, 0.0, -1.0]
    assert values[9:12] == [640, 480, 2]
    assert values[12:14] == [0.5, -0.25]
    assert values[14] == 2
    assert values[15:] == [0.125, 0.0625]
    assert len(values) == 17


def test_serialize_roundtrip_six_radial():
    K = np.array([[812.25, 0.5, 321.125], [0.0, 809.75, 239.875], [0.0, 0.0, 1.0]])
    radial = [-0.28340811, 0.07395907, 0.00019359, 1.76187114e-05, -0.0011, 0.2]
    intr = CameraIntrinsics.from_coeffs(K, radial, [0.00119, -0.00053], dimension=(640, 480))

    back = CameraIntrinsics.deserialize(intr.serialize())

    assert np.array_equal(back.matrix, intr.matrix)
    assert back.dimension == intr.dimension
    assert back.radial_size == 6
    assert np.array_equal(back.radial_params, intr.radial_params)
    assert np.array_equal(back.tangential_params, intr.tangential_params)
    assert np.allclose(back.matrix_inv, np.linalg.inv(back.matrix), rtol=0, atol=1e-15)


def test_serialize_roundtrip_without_distortion():
    intr = CameraIntrinsics()
    values = intr.serialize()
    assert len(values) == 9 + 3 + 0 + 1 + 2
    back = CameraIntrinsics.deserialize(values)
    assert back.radial_size == 0
    assert np.array_equal(back.matrix_inv, np.eye(3))


def test_deserialize_accepts_string_tokens():
    tokens = "1 0 0 0 1 0 0 0 1 1 1 2 0.5 0.25 2 0 0".split()
    intr = CameraIntrinsics.deserialize(tokens)
    assert intr.radial_size == 2
    assert np.array_equal(intr.radial, [0.5, 0.25])


@pytest.mark.parametrize(
    "tokens",
    [
        "1 0 0 0 1 0 0 0 1 1 1 3 0.5 0.25 0.1 2 0 0",  # radial count not 0/2/6
        "1 0 0 0 1 0 0 0 1 1 1 2 0.5 0.25 3 0 0 0",  # tangential marker
        "1 0 0 0 1 0 0 0 1 1 1 2 0.5 0.25 2 0",  # truncated
        "1 0 0 0 1 0 0 0 1 1 1 2 0.5 0.25 2 0 0 7",  # trailing value
        "1 0 0 0 1 0 0 0 1 1.5 1 0 2 0 0",  # fractional dimension
        "1 0 0 0 1 0 0 0 x 1 1 0 2 0 0",  # not a number
    ],
)
def test_deserialize_rejects_malformed_records(tokens):
    with pytest.raises(IntrinsicsValidationError):
        CameraIntrinsics.deserialize(tokens.split())


def test_str_format():
    intr = CameraIntrinsics.from_coeffs(_K(), [0.5, -0.25], [0.125, 0.0625], dimension=(640, 480))
    text = str(intr)
    assert text.startswith("Matrix:\n")
    assert "Resolution: 640x480\n" in text
    assert "Distortion radial: 0.5, -0.25\n" in text
    assert "Distortion tangential: 0.125, 0.0625\n" in text


def test_str_without_radial_coefficients():
    text = str(CameraIntrinsics())
    assert "Resolution: 1x1\n" in text
    assert "Distortion radial: none\n" in text


def test_opencv_coefficient_order_roundtrip():
    dist = np.array([-0.1, 0.02, 0.001, -0.002, 0.003, 0.1, -0.01, 0.001])
    intr = CameraIntrinsics.from_opencv(_K(), dist)
    assert intr.radial_size == 6
    assert np.array_equal(intr.radial, [-0.1, 0.02, 0.003, 0.1, -0.01, 0.001])
    assert np.array_equal(intr.tangential_params, [0.001, -0.002])
    K, dist2 = intr.to_opencv()
    assert np.array_equal(K, _K())
    assert np.array_equal(dist2, dist)


def test_opencv_five_coefficients_map_to_six_radial():
    intr = CameraIntrinsics.from_opencv(_K(), [0.1, 0.2, 0.0, 0.0, 0.3])
    assert intr.radial_size == 6
    assert np.array_equal(intr.radial, [0.1, 0.2, 0.3, 0.0, 0.0, 0.0])


def test_unproject_inverts_project():
    K = np.array([[800.0, 0.0, 320.0], [0.0, 780.0, 240.0], [0.0, 0.0, 1.0]])
    intr = CameraIntrinsics.from_coeffs(K, [-0.05, 0.01], [0.0005, -0.0003], dimension=(640, 480))
    rng = np.random.default_rng(0)
    XYZ = np.stack([rng.uniform(-0.2, 0.2, 50), rng.uniform(-0.15, 0.15, 50), np.ones(50)], axis=-1)
    uv = intr.project(XYZ)
    xy = intr.unproject(uv, iterations=30)
    assert np.max(np.abs(xy - XYZ[:, :2])) < 1e-9


def test_project_marks_points_on_camera_plane():
    uv = CameraIntrinsics().project(np.array([[1.0, 1.0, 0.0], [1.0, 2.0, 2.0]]))
    assert np.all(np.isnan(uv[0]))
    assert np.allclose(uv[1], [0.5, 1.0])


def test_project_matches_opencv():
    cv2 = pytest.importorskip("cv2")
    K = np.array([[800.0, 0.0, 320.0], [0.0, 780.0, 240.0], [0.0, 0.0, 1.0]])
    dist = np.array([-0.1, 0.02, 0.001, -0.002, 0.003, 0.05, -0.01, 0.002])
    intr = CameraIntrinsics.from_opencv(K, dist, dimension=(640, 480))

    rng = np.random.default_rng(1)
    XYZ = np.stack([rng.uniform(-0.3, 0.3, 40), rng.uniform(-0.2, 0.2, 40), rng.uniform(1.0, 3.0, 40)], axis=-1)
    uv_cv, _ = cv2.projectPoints(XYZ.reshape(-1, 1, 3), np.zeros(3), np.zeros(3), K, dist)
    uv = intr.project(XYZ)
    assert np.max(np.abs(uv - uv_cv.reshape(-1, 2))) < 1e-6
