import math
import re
import time
from abc import ABC, abstractmethod
from typing import Any, Optional, Sequence

import cv2
import numpy as np

from laser_pipeline.ip_types import CapturedFrame
from laser_pipeline.transforms import DEFAULT_PROJECTION, project_world_point

LASER_BGRA = (60, 60, 250, 255)
LASER_CORE_BGRA = (40, 40, 255, 255)
BACKGROUND_BGRA = (90, 90, 90, 255)


class BaseCapture(ABC):
    finished: bool = False

    @abstractmethod
    def start(self) -> None: ...

    @abstractmethod
    def next_frame(self) -> CapturedFrame | None: ...

    @abstractmethod
    def stop(self) -> None: ...


class DeviceCapture(BaseCapture):
    """
    OpenCV capture (camera index, /dev/videoN or video file).

    Frames are converted to BGRA and tagged with a fixed pose and projection,
    since a plain webcam does not report either.
    """
    def __init__(
        self,
        device: int | str,
        fps: int,
        width: int,
        height: int,
        pose: Optional[np.ndarray] = None,
        projection: Optional[np.ndarray] = None,
    ):
        self.device = device
        self.fps = fps
        self.width = width
        self.height = height
        self.pose = np.eye(4) if pose is None else np.asarray(pose, dtype=np.float64)
        self.projection = DEFAULT_PROJECTION if projection is None else np.asarray(projection, dtype=np.float64)
        self.cap: Any = None
        self.idx = 0
        self.finished = False
        self._is_file = False

    def start(self) -> None:
        if isinstance(self.device, int):
            self.cap = cv2.VideoCapture(self.device, cv2.CAP_V4L2)
        else:
            dev_str = str(self.device)
            match = re.match(r"^/dev/video(\d+)$", dev_str)
            if match:
                self.cap = cv2.VideoCapture(int(match.group(1)), cv2.CAP_V4L2)
            else:
                self._is_file = True
                self.cap = cv2.VideoCapture(dev_str)

        if not self._is_file:
            self.cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
            self.cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
            self.cap.set(cv2.CAP_PROP_FPS, self.fps)

        if not self.cap.isOpened():
            raise RuntimeError(f"Failed to open capture: {self.device}")

    def next_frame(self) -> CapturedFrame | None:
        ok, img = self.cap.read()
        if not ok:
            if self._is_file:
                self.finished = True
            return None
        self.idx += 1
        bgra = cv2.cvtColor(img, cv2.COLOR_BGR2BGRA)
        h, w = bgra.shape[:2]
        ts = time.strftime("%Y-%m-%dT%H:%M:%S")
        return CapturedFrame(
            self.idx, ts, bgra.tobytes(), w, h, self.pose, self.projection, pixel_format="BGRA"
        )

    def stop(self) -> None:
        if self.cap is not None:
            self.cap.release()
            self.cap = None


class SyntheticCapture(BaseCapture):
    """
    Renders a laser dot on a plain background for dry runs.

    The dot circles around a world-space target point; its pixel position is the
    projection of that point through the configured pose and projection.
    """
    def __init__(
        self,
        fps: int,
        width: int,
        height: int,
        target: Sequence[float] = (0.0, 0.0, -2.0),
        orbit_radius: float = 0.1,
        dot_radius: int = 3,
        pose: Optional[np.ndarray] = None,
        projection: Optional[np.ndarray] = None,
    ):
        self.fps = fps
        self.width = width
        self.height = height
        self.target = np.asarray(target, dtype=np.float64)
        self.orbit_radius = orbit_radius
        self.dot_radius = dot_radius
        self.pose = np.eye(4) if pose is None else np.asarray(pose, dtype=np.float64)
        self.projection = DEFAULT_PROJECTION if projection is None else np.asarray(projection, dtype=np.float64)
        self.idx = 0
        self._last = 0.0

    def start(self) -> None:
        self._last = time.time()

    def dot_world_point(self, idx: int) -> np.ndarray:
        angle = idx * (2.0 * math.pi / 60.0)
        offset = np.array([math.cos(angle), math.sin(angle), 0.0]) * self.orbit_radius
        return self.target + offset

    def render(self, idx: int) -> np.ndarray:
        img = np.empty((self.height, self.width, 4), dtype=np.uint8)
        img[:] = BACKGROUND_BGRA
        pixel = project_world_point(
            self.dot_world_point(idx), self.pose, self.projection, self.width, self.height
        )
        if pixel is not None:
            center = (int(round(pixel[0])), int(round(pixel[1])))
            cv2.circle(img, center, self.dot_radius, LASER_BGRA, -1)
            cv2.circle(img, center, 1, LASER_CORE_BGRA, -1)
        return img

    def next_frame(self) -> CapturedFrame | None:
        now = time.time()
        if self.fps > 0:
            wait = max(0.0, (1.0 / self.fps) - (now - self._last))
            if wait > 0:
                time.sleep(wait)
        self._last = time.time()
        self.idx += 1
        img = self.render(self.idx)
        ts = time.strftime("%Y-%m-%dT%H:%M:%S")
        return CapturedFrame(
            self.idx, ts, img.tobytes(), self.width, self.height, self.pose, self.projection,
            pixel_format="BGRA",
        )

    def stop(self) -> None:
        return None
