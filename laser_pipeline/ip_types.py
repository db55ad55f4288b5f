from dataclasses import dataclass
from typing import Any, Optional, Tuple

FOUND = "found"
NOT_FOUND = "not_found"
SKIPPED = "skipped"


@dataclass
class CapturedFrame:
    idx: int
    ts_iso: str
    buffer: Any  # bytes or uint8 ndarray, 4 channels
    width: int
    height: int
    pose: Any  # 16 floats row-major camera-to-world, or 4x4 ndarray
    projection: Any = None  # 16 floats row-major, or 4x4 ndarray
    intrinsics: Any = None  # object with unproject_at_unit_depth(x, y)
    pixel_format: Optional[str] = None  # None = pipeline default


@dataclass
class Ray:
    origin: Any  # (3,) ndarray
    direction: Any  # (3,) unit ndarray


@dataclass
class FrameResult:
    frame_idx: int
    status: str
    pixel: Optional[Tuple[int, int]] = None
    ray: Optional[Ray] = None
    reason: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.status == FOUND


@dataclass
class HitResult:
    frame_idx: int
    found: bool
    world_point: Optional[Tuple[float, float, float]] = None
    pixel: Optional[Tuple[int, int]] = None
    surface_hit: bool = False
    distance: Optional[float] = None
    skipped: bool = False
