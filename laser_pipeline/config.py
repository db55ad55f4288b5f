from dataclasses import dataclass, field
from typing import Tuple

SPATIAL_AWARENESS_LAYER = 31


@dataclass
class RunConfig:
    detection_area: Tuple[float, float] = (0.5, 0.5)
    fast_detection: bool = False
    unprojection_offset: Tuple[float, float] = (0.0, -0.05)  # meters, applied at unit depth
    layer_mask: int = 1 << SPATIAL_AWARENESS_LAYER
    max_distance: float = float("inf")
    fallback_distance: float = 5.0
    pixel_format: str = "BGRA"
    high_res_width: int = 1600
    hsv_bands: Tuple[Tuple[Tuple[int, int, int], Tuple[int, int, int]], ...] = field(
        default_factory=lambda: (
            ((0, 30, 220), (10, 240, 255)),
            ((170, 30, 220), (180, 240, 255)),
        )
    )

    def validate(self) -> "RunConfig":
        fx, fy = self.detection_area
        if not (0.0 < fx <= 1.0 and 0.0 < fy <= 1.0):
            raise ValueError(f"detection_area factors must be in (0, 1], got {self.detection_area}")
        if self.fallback_distance <= 0:
            raise ValueError("fallback_distance must be positive")
        if self.max_distance <= 0:
            raise ValueError("max_distance must be positive")
        if self.pixel_format.upper() not in {"BGRA", "RGBA"}:
            raise ValueError(f"unsupported pixel_format: {self.pixel_format}")
        return self
