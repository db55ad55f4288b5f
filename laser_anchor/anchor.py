from __future__ import annotations

import time
from typing import Optional

import numpy as np

from laser_pipeline.ip_types import HitResult


class FpsCounter:
    """Frames per second averaged over a sliding window of about `window_sec` seconds."""

    def __init__(self, window_sec: float = 3.0):
        self.window_sec = window_sec
        self.time_span = 0.0
        self.prev_time = -1.0
        self.num_frames = 0

    def tick(self, now: Optional[float] = None) -> float:
        now = time.monotonic() if now is None else now
        if self.prev_time < 0:
            self.prev_time = now
            return 0.0

        if self.time_span > self.window_sec and self.num_frames > 0:
            self.time_span *= (self.num_frames - 1.0) / self.num_frames
        else:
            self.num_frames += 1
        self.time_span += now - self.prev_time
        self.prev_time = now
        if self.time_span <= 0:
            return 0.0
        return self.num_frames / self.time_span


class AnchorTracker:
    """
    Scene-side state for the virtual marker.

    The anchor only moves when a new hit is at least `min_move` away from the
    current position; the label shows the camera-to-anchor distance.
    """
    def __init__(self, min_move: float = 0.01, show_fps: bool = False):
        self.min_move = min_move
        self.show_fps = show_fps
        self.position: Optional[np.ndarray] = None
        self.label = ""
        self.moves = 0

    def update(self, hit: HitResult, fps: float = 0.0) -> bool:
        if not hit.found or hit.world_point is None:
            return False
        point = np.asarray(hit.world_point, dtype=np.float64)
        if self.position is not None and np.linalg.norm(self.position - point) < self.min_move:
            return False

        self.position = point
        self.moves += 1
        self.label = f"{hit.distance:.2f} m"
        if self.show_fps:
            self.label += f", {fps:.1f} FPS"
        return True
