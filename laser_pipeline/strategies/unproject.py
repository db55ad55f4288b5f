from typing import Sequence, Tuple

import cv2
import numpy as np

from ..errors import DegenerateGeometryError, MalformedFrameError
from ..ip_types import Ray
from ..transforms import (
    camera_ray_from_projection,
    normalize,
    pixel_to_ndc,
    pose_origin,
    rotate_to_world,
    rotation_facing_view,
)


class PinholeIntrinsics:
    """
    Camera intrinsics supporting unprojection to the plane one unit in front of the camera.
    Lens distortion is removed with cv2.undistortPoints when coefficients are given.
    """
    def __init__(self, fx: float, fy: float, cx: float, cy: float, distortion: Sequence[float] = ()):
        if abs(fx) < 1e-9 or abs(fy) < 1e-9:
            raise DegenerateGeometryError("intrinsics have zero focal length")
        self.K = np.array([[fx, 0.0, cx], [0.0, fy, cy], [0.0, 0.0, 1.0]], dtype=np.float64)
        self.dist = np.asarray(distortion, dtype=np.float64).reshape(-1, 1) if len(distortion) else None

    def unproject_at_unit_depth(self, x: float, y: float) -> Tuple[float, float]:
        pts = np.array([[[x, y]]], dtype=np.float64)
        und = cv2.undistortPoints(pts, self.K, self.dist)
        return float(und[0, 0, 0]), float(und[0, 0, 1])


class IntrinsicsUnproject:
    """Unproject through per-frame intrinsics, then apply the manual calibration offset."""

    def __init__(self, offset: Tuple[float, float] = (0.0, -0.05)):
        self.offset = offset

    def camera_ray(self, pixel, intrinsics) -> np.ndarray:
        try:
            x, y = intrinsics.unproject_at_unit_depth(float(pixel[0]), float(pixel[1]))
            return np.array([x + self.offset[0], y + self.offset[1], 1.0], dtype=np.float64)
        except (TypeError, ValueError, cv2.error) as exc:
            raise MalformedFrameError(f"intrinsics unprojection failed: {exc}") from exc

    def estimate(self, pixel, pose: np.ndarray, intrinsics) -> Ray:
        ray = self.camera_ray(pixel, intrinsics)
        if not np.all(np.isfinite(ray)):
            raise DegenerateGeometryError("intrinsics unprojection produced non-finite values")
        direction = normalize(rotation_facing_view(pose) @ ray)
        return Ray(pose_origin(pose), direction)


class ProjectionUnproject:
    """Unproject through the projection matrix (used when no intrinsics are available)."""

    def estimate(self, pixel, pose: np.ndarray, projection: np.ndarray, width: int, height: int) -> Ray:
        ndc = pixel_to_ndc(pixel, width, height)
        camera_ray = camera_ray_from_projection(ndc, projection)
        direction = normalize(rotate_to_world(camera_ray, pose))
        return Ray(pose_origin(pose), direction)
