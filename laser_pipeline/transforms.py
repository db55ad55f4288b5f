"""Camera geometry utilities for pixel unprojection.

Conventions used throughout the package:
    - Matrices are 4x4 numpy arrays in row-major order; a 16-element payload
      ``[m00, m01, m02, m03, m10, ...]`` fills the matrix row by row.
    - A pose maps camera space to world space: ``p_world = pose @ [p_cam, 1]``.
      Its translation column is the camera origin in world space.
    - Projection matrices follow the locatable-camera layout: focal lengths on
      the diagonal, principal point in column 2 scaled by the perspective-divide
      term ``m22`` (``-1`` for a camera looking down -Z).
    - Pixel coordinates have a top-left origin with Y pointing down; normalized
      device coordinates span [-1, 1] with Y pointing up.
"""

import struct
from typing import Optional, Sequence, Tuple

import numpy as np

from .errors import DegenerateGeometryError, MalformedFrameError

EPS = 1e-9

DEFAULT_PROJECTION = np.array(
    [
        [2.31029, 0.0, 0.09614, 0.0],
        [0.0, 4.10427, -0.06231, 0.0],
        [0.0, 0.0, -1.0, 0.0],
        [0.0, 0.0, -1.0, 0.0],
    ],
    dtype=np.float64,
)


def bytes_to_matrix(payload: bytes) -> np.ndarray:
    """
    Decode a 64-byte little-endian float32 payload into a 4x4 matrix.

    Args:
        payload: 16 packed float32 values, row-major

    Returns:
        4x4 float64 matrix
    """
    if payload is None:
        raise MalformedFrameError("matrix payload is missing")
    if len(payload) != 64:
        raise MalformedFrameError(
            f"Cannot convert bytes to 4x4 matrix: expected 64 bytes, got {len(payload)}"
        )
    values = struct.unpack("<16f", bytes(payload))
    return np.array(values, dtype=np.float64).reshape(4, 4)


def float_array_to_matrix(values: Sequence[float]) -> np.ndarray:
    """
    Convert 16 floats (row-major) into a 4x4 matrix.

    Args:
        values: Flat sequence of 16 numbers

    Returns:
        4x4 float64 matrix
    """
    if values is None:
        raise MalformedFrameError("matrix values are missing")
    arr = np.asarray(values, dtype=np.float64).reshape(-1)
    if arr.size != 16:
        raise MalformedFrameError(f"expected 16 matrix values, got {arr.size}")
    return arr.reshape(4, 4)


def matrix_to_float_array(M: np.ndarray) -> list[float]:
    """Flatten a 4x4 matrix to 16 floats, row-major."""
    M = np.asarray(M, dtype=np.float64)
    if M.shape != (4, 4):
        raise MalformedFrameError(f"expected a 4x4 matrix, got shape {M.shape}")
    return [float(v) for v in M.reshape(16)]


def as_matrix(value, name: str = "matrix") -> np.ndarray:
    """Accept a 4x4 array, 16 floats or a 64-byte payload and return a finite 4x4 matrix."""
    if value is None:
        raise MalformedFrameError(f"{name} is missing")
    if isinstance(value, (bytes, bytearray, memoryview)):
        M = bytes_to_matrix(value)
    else:
        try:
            arr = np.asarray(value, dtype=np.float64)
        except (TypeError, ValueError) as exc:
            raise MalformedFrameError(f"{name} is not a numeric matrix payload") from exc
        M = arr if arr.shape == (4, 4) else float_array_to_matrix(arr)
    if not np.all(np.isfinite(M)):
        raise MalformedFrameError(f"{name} contains non-finite values")
    return M


def invert_transform(T: np.ndarray) -> np.ndarray:
    """
    Invert a 4x4 rigid transformation matrix.

    For an orthogonal rotation block: T^-1 = [R^T, -R^T * t; 0, 1]

    Args:
        T: 4x4 transformation matrix

    Returns:
        4x4 inverted transformation matrix
    """
    T_inv = np.eye(4)
    R = T[:3, :3]
    t = T[:3, 3]

    R_T = R.T
    T_inv[:3, :3] = R_T
    T_inv[:3, 3] = -R_T @ t

    return T_inv


def validate_pose(pose: np.ndarray) -> np.ndarray:
    """Reject poses whose rotation block cannot be inverted."""
    if abs(np.linalg.det(pose[:3, :3])) < EPS:
        raise DegenerateGeometryError("pose matrix is not invertible")
    return pose


def camera_to_world_from_view(view_transform: np.ndarray, coords_to_world: np.ndarray) -> np.ndarray:
    """
    Build a camera-to-world pose from a device view transform.

    Both inputs use the row-vector convention of the capture runtime, so they are
    transposed first. The view transform is inverted, chained with the
    camera-coordinates-to-world transform, and the third row is negated to move
    from a right-handed to a left-handed world.

    Args:
        view_transform: 4x4 world-to-view matrix (row-vector convention)
        coords_to_world: 4x4 camera-coordinate-system-to-world matrix (row-vector convention)

    Returns:
        4x4 camera-to-world pose (column-vector convention)
    """
    view = np.asarray(view_transform, dtype=np.float64).T
    coords = np.asarray(coords_to_world, dtype=np.float64).T
    try:
        view_to_camera_coords = np.linalg.inv(view)
    except np.linalg.LinAlgError as exc:
        raise DegenerateGeometryError("view transform is not invertible") from exc

    pose = coords @ view_to_camera_coords
    pose[2, :] *= -1.0
    return pose


def pixel_to_ndc(pixel: Tuple[float, float], width: int, height: int) -> Tuple[float, float]:
    """Map a top-left-origin pixel to [-1, 1] coordinates with Y pointing up."""
    half_w = width / 2.0
    half_h = height / 2.0
    x = (pixel[0] - half_w) / half_w
    y = (pixel[1] - half_h) / half_h * -1.0
    return x, y


def projection_parameters(projection: np.ndarray) -> Tuple[float, float, float, float, float]:
    """
    Recover (fx, fy, cx, cy, norm) from a projection matrix.

    The principal point is normalized by the perspective-divide term.
    """
    fx = float(projection[0, 0])
    fy = float(projection[1, 1])
    norm = float(projection[2, 2])
    if abs(fx) < EPS or abs(fy) < EPS:
        raise DegenerateGeometryError("projection matrix has zero focal length")
    if abs(norm) < EPS:
        raise DegenerateGeometryError("projection matrix has zero perspective-divide term")
    cx = float(projection[0, 2]) / norm
    cy = float(projection[1, 2]) / norm
    return fx, fy, cx, cy, norm


def camera_ray_from_projection(ndc: Tuple[float, float], projection: np.ndarray) -> np.ndarray:
    """Camera-space ray through a normalized device coordinate."""
    fx, fy, cx, cy, norm = projection_parameters(projection)
    return np.array([(ndc[0] - cx) / fx, (ndc[1] - cy) / fy, 1.0 / norm], dtype=np.float64)


def rotate_to_world(ray: np.ndarray, pose: np.ndarray) -> np.ndarray:
    """Rotate a camera-space direction by the pose (dot product with each of the first three rows)."""
    ray = np.asarray(ray, dtype=np.float64).reshape(3)
    return np.array([np.dot(pose[i, :3], ray) for i in range(3)], dtype=np.float64)


def pixel_to_world_direction(
    pose: np.ndarray,
    projection: np.ndarray,
    width: int,
    height: int,
    pixel: Tuple[float, float],
) -> np.ndarray:
    """
    Direction from the camera optical center through a pixel, in world space.

    Args:
        pose: 4x4 camera-to-world matrix
        projection: 4x4 projection matrix
        width: Image width in pixels
        height: Image height in pixels
        pixel: (x, y) pixel coordinate

    Returns:
        Unnormalized (3,) world-space direction
    """
    ndc = pixel_to_ndc(pixel, width, height)
    return rotate_to_world(camera_ray_from_projection(ndc, projection), pose)


def pose_origin(pose: np.ndarray) -> np.ndarray:
    return np.array(pose[:3, 3], dtype=np.float64)


def pose_forward(pose: np.ndarray) -> np.ndarray:
    """Rows of the pose dotted with +Z, i.e. the camera Z axis in world space."""
    forward = np.array([0.0, 0.0, 1.0])
    return np.array([np.dot(forward, pose[i, :3]) for i in range(3)], dtype=np.float64)


def normalize(v: np.ndarray) -> np.ndarray:
    v = np.asarray(v, dtype=np.float64)
    n = float(np.linalg.norm(v))
    if n < EPS or not np.isfinite(n):
        raise DegenerateGeometryError("cannot normalize a zero-length vector")
    return v / n


def rotation_facing_view(pose: np.ndarray) -> np.ndarray:
    """
    Look rotation with forward = -column 2 and up = column 1 of the pose.

    Returns:
        3x3 rotation whose columns are (right, up, forward)
    """
    forward = normalize(-np.asarray(pose[:3, 2], dtype=np.float64))
    up = np.asarray(pose[:3, 1], dtype=np.float64)
    right = np.cross(up, forward)
    right = normalize(right)
    up = np.cross(forward, right)
    return np.column_stack([right, up, forward])


def project_world_point(
    point: Sequence[float],
    pose: np.ndarray,
    projection: np.ndarray,
    width: int,
    height: int,
) -> Optional[Tuple[float, float]]:
    """
    Project a world-space point to pixel coordinates (inverse of the unprojection path).

    Returns:
        (x, y) pixel coordinate, or None when the point lies behind the camera
    """
    fx, fy, cx, cy, norm = projection_parameters(projection)
    p = np.append(np.asarray(point, dtype=np.float64).reshape(3), 1.0)
    p_cam = invert_transform(pose) @ p

    scale = p_cam[2] * norm
    if scale <= EPS:
        return None

    ndc_x = p_cam[0] * fx / scale + cx
    ndc_y = p_cam[1] * fy / scale + cy
    half_w = width / 2.0
    half_h = height / 2.0
    return ndc_x * half_w + half_w, half_h - ndc_y * half_h
