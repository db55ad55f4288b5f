from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from ..config import SPATIAL_AWARENESS_LAYER
from ..ip_types import HitResult, Ray

EPS = 1e-9


def _layer_enabled(layer: int, layer_mask: int) -> bool:
    return bool(layer_mask & (1 << layer))


class Environment(ABC):
    """Collision geometry a ray can be cast against."""

    @abstractmethod
    def raycast(
        self,
        origin: np.ndarray,
        direction: np.ndarray,
        max_distance: float,
        layer_mask: int,
    ) -> Optional[np.ndarray]:
        """Return the closest hit point within max_distance, or None."""
        ...


class EmptyEnvironment(Environment):
    def raycast(self, origin, direction, max_distance, layer_mask) -> Optional[np.ndarray]:
        return None


@dataclass
class Plane:
    point: Sequence[float]
    normal: Sequence[float]
    layer: int = SPATIAL_AWARENESS_LAYER


class PlaneEnvironment(Environment):
    """Infinite planes, e.g. floor and walls of a reconstructed room."""

    def __init__(self, planes: Sequence[Plane] = ()):
        self.planes = list(planes)

    def raycast(self, origin, direction, max_distance, layer_mask) -> Optional[np.ndarray]:
        origin = np.asarray(origin, dtype=np.float64)
        direction = np.asarray(direction, dtype=np.float64)
        best_t = None
        for plane in self.planes:
            if not _layer_enabled(plane.layer, layer_mask):
                continue
            n = np.asarray(plane.normal, dtype=np.float64)
            denom = float(np.dot(n, direction))
            if abs(denom) < EPS:
                continue
            t = float(np.dot(n, np.asarray(plane.point, dtype=np.float64) - origin)) / denom
            if t < 0 or t > max_distance:
                continue
            if best_t is None or t < best_t:
                best_t = t
        if best_t is None:
            return None
        return origin + direction * best_t


class MeshEnvironment(Environment):
    """
    Triangle soup collision mesh (spatial mapping output).

    Intersection uses the Moller-Trumbore test, vectorized over all triangles.

    Args:
        vertices: (N, 3) vertex positions
        triangles: (M, 3) vertex indices
        layer: Layer index the mesh belongs to
    """
    def __init__(self, vertices, triangles, layer: int = SPATIAL_AWARENESS_LAYER):
        v = np.asarray(vertices, dtype=np.float64).reshape(-1, 3)
        tri = np.asarray(triangles, dtype=np.int64).reshape(-1, 3)
        self.v0 = v[tri[:, 0]]
        self.e1 = v[tri[:, 1]] - self.v0
        self.e2 = v[tri[:, 2]] - self.v0
        self.layer = layer

    def raycast(self, origin, direction, max_distance, layer_mask) -> Optional[np.ndarray]:
        if len(self.v0) == 0 or not _layer_enabled(self.layer, layer_mask):
            return None
        origin = np.asarray(origin, dtype=np.float64)
        direction = np.asarray(direction, dtype=np.float64)

        p = np.cross(direction, self.e2)
        det = np.einsum("ij,ij->i", self.e1, p)
        valid = np.abs(det) > EPS
        inv_det = np.zeros_like(det)
        inv_det[valid] = 1.0 / det[valid]

        s = origin - self.v0
        u = np.einsum("ij,ij->i", s, p) * inv_det
        q = np.cross(s, self.e1)
        w = (q @ direction) * inv_det
        t = np.einsum("ij,ij->i", self.e2, q) * inv_det

        hit = valid & (u >= 0) & (w >= 0) & (u + w <= 1) & (t >= 0) & (t <= max_distance)
        if not np.any(hit):
            return None
        best = float(np.min(t[hit]))
        return origin + direction * best


class RaycastLocalize:
    """
    Resolve a ray to a world point: the nearest surface hit on the allowed layers,
    or a point at a fixed distance along the ray when nothing is hit.
    """
    def __init__(
        self,
        environment: Optional[Environment] = None,
        layer_mask: int = 1 << SPATIAL_AWARENESS_LAYER,
        max_distance: float = float("inf"),
        fallback_distance: float = 5.0,
    ):
        self.environment = environment or EmptyEnvironment()
        self.layer_mask = layer_mask
        self.max_distance = max_distance
        self.fallback_distance = fallback_distance

    def estimate(self, ray: Ray, frame_idx: int = 0, pixel=None) -> HitResult:
        hit = self.environment.raycast(ray.origin, ray.direction, self.max_distance, self.layer_mask)
        surface_hit = hit is not None
        if not surface_hit:
            hit = ray.origin + ray.direction * self.fallback_distance
        point = tuple(float(c) for c in hit)
        distance = float(np.linalg.norm(np.asarray(point) - ray.origin))
        return HitResult(frame_idx, True, point, pixel, surface_hit, distance)
