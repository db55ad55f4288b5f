import logging
import time
from dataclasses import dataclass
from typing import Optional

import cv2
import numpy as np

from .errors import MalformedFrameError
from .ip_types import FOUND, NOT_FOUND, SKIPPED, CapturedFrame, FrameResult, HitResult
from .transforms import as_matrix, projection_parameters, validate_pose


@dataclass
class DecodedFrame:
    idx: int
    image: np.ndarray  # (h, w, 4) BGRA
    pose: np.ndarray
    projection: Optional[np.ndarray]
    intrinsics: object


@dataclass
class PipelineStats:
    frames: int = 0
    found: int = 0
    skipped: int = 0
    last_ms: float = 0.0
    total_ms: float = 0.0


def _frame_size(f: CapturedFrame) -> tuple[int, int]:
    try:
        w, h = int(f.width), int(f.height)
    except (TypeError, ValueError) as exc:
        raise MalformedFrameError(f"invalid frame size {f.width!r}x{f.height!r}") from exc
    if w <= 0 or h <= 0:
        raise MalformedFrameError(f"invalid frame size {w}x{h}")
    return w, h


def _pixel_data(buffer) -> np.ndarray:
    if buffer is None:
        raise MalformedFrameError("pixel buffer is missing")
    if isinstance(buffer, np.ndarray):
        if buffer.dtype != np.uint8:
            raise MalformedFrameError(f"pixel buffer must be uint8, got {buffer.dtype}")
        return buffer.reshape(-1)
    if not isinstance(buffer, (bytes, bytearray, memoryview)):
        raise MalformedFrameError(f"pixel buffer must be bytes-like, got {type(buffer).__name__}")
    return np.frombuffer(bytes(buffer), dtype=np.uint8)


def decode_frame(f: CapturedFrame, default_format: str = "BGRA") -> DecodedFrame:
    """
    Validate a raw frame payload before any image processing runs.

    Frames without a pixel format are read as `default_format`.
    """
    w, h = _frame_size(f)

    fmt = str(f.pixel_format or default_format).upper()
    if fmt not in {"BGRA", "RGBA"}:
        raise MalformedFrameError(f"unsupported pixel format: {f.pixel_format}")

    data = _pixel_data(f.buffer)
    if data.size != 4 * w * h:
        raise MalformedFrameError(
            f"buffer holds {data.size} bytes, expected {4 * w * h} for {w}x{h} 4-channel frame"
        )
    image = data.reshape(h, w, 4)
    if fmt == "RGBA":
        image = cv2.cvtColor(image, cv2.COLOR_RGBA2BGRA)

    pose = validate_pose(as_matrix(f.pose, "pose"))

    projection = None
    if f.intrinsics is None:
        projection = as_matrix(f.projection, "projection")
        projection_parameters(projection)
    elif not hasattr(f.intrinsics, "unproject_at_unit_depth"):
        raise MalformedFrameError("intrinsics object does not support unit-depth unprojection")

    return DecodedFrame(f.idx, image, pose, projection, f.intrinsics)


class LaserPointerFacade:
    """
    Per-frame laser pointer pipeline.

    process() runs detection and unprojection and is safe on the capture thread;
    resolve() casts the resulting ray against the environment and belongs to the
    consumer that owns scene state. locate() does both in one call.
    """
    def __init__(
        self,
        roi,
        seg,
        scorer,
        intr_unproj,
        proj_unproj,
        loc,
        logger: Optional[logging.Logger] = None,
        fast_detection: bool = False,
        high_res_width: int = 1600,
        pixel_format: str = "BGRA",
    ):
        self.roi = roi
        self.seg = seg
        self.scorer = scorer
        self.intr_unproj = intr_unproj
        self.proj_unproj = proj_unproj
        self.loc = loc
        self.log = logger or logging.getLogger(__name__)
        self.fast_detection = fast_detection
        self.high_res_width = high_res_width
        self.pixel_format = pixel_format
        self.stats = PipelineStats()

    def find_laser_pointer(self, image: np.ndarray) -> Optional[tuple[int, int]]:
        """Return the laser pointer pixel in full-frame coordinates, or None."""
        full_h, full_w = image.shape[:2]
        cropped, (x0, y0, _rw, _rh) = self.roi.apply(image)
        if cropped.size == 0:
            return None

        if not self.fast_detection and full_w > self.high_res_width:
            cropped = cv2.GaussianBlur(cropped, (3, 3), 0)

        mask = self.seg.apply(cropped)
        if self.seg.is_empty(mask):
            return None

        x, y = self.scorer.score(cropped, mask, full_w)
        return x + x0, y + y0

    def _unproject(self, frame: DecodedFrame, pixel):
        if frame.intrinsics is not None:
            return self.intr_unproj.estimate(pixel, frame.pose, frame.intrinsics)
        h, w = frame.image.shape[:2]
        return self.proj_unproj.estimate(pixel, frame.pose, frame.projection, w, h)

    def process(self, f: CapturedFrame) -> FrameResult:
        t0 = time.perf_counter()
        self.stats.frames += 1
        try:
            frame = decode_frame(f, self.pixel_format)
            pixel = self.find_laser_pointer(frame.image)
            if pixel is None:
                result = FrameResult(f.idx, NOT_FOUND)
            else:
                ray = self._unproject(frame, pixel)
                result = FrameResult(f.idx, FOUND, pixel, ray)
                self.stats.found += 1
        except MalformedFrameError as e:
            self.stats.skipped += 1
            self.log.warning("frame=%s skipped: %s", f.idx, e)
            result = FrameResult(f.idx, SKIPPED, reason=str(e))

        elapsed = (time.perf_counter() - t0) * 1000.0
        self.stats.last_ms = elapsed
        self.stats.total_ms += elapsed
        self.log.debug("frame=%s status=%s pixel=%s %.1fms", f.idx, result.status, result.pixel, elapsed)
        return result

    def resolve(self, result: FrameResult) -> HitResult:
        if result.status != FOUND:
            return HitResult(result.frame_idx, False, skipped=result.status == SKIPPED)
        return self.loc.estimate(result.ray, result.frame_idx, result.pixel)

    def locate(self, f: CapturedFrame) -> HitResult:
        return self.resolve(self.process(f))
