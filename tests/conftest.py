import numpy as np
import pytest

from laser_pipeline.ip_types import CapturedFrame

BACKGROUND = (90, 90, 90, 255)
LASER = (60, 60, 250, 255)

# fx = fy = 2, principal point at the image center, camera looking down -Z
CENTERED_PROJECTION = [
    2.0, 0.0, 0.0, 0.0,
    0.0, 2.0, 0.0, 0.0,
    0.0, 0.0, -1.0, 0.0,
    0.0, 0.0, -1.0, 0.0,
]

IDENTITY_POSE = [float(v) for v in np.eye(4).reshape(16)]


def blank_bgra(width: int, height: int, color=BACKGROUND) -> np.ndarray:
    img = np.empty((height, width, 4), dtype=np.uint8)
    img[:] = color
    return img


def frame_from_image(image: np.ndarray, idx: int = 1, **kwargs) -> CapturedFrame:
    h, w = image.shape[:2]
    fields = dict(pose=IDENTITY_POSE, projection=CENTERED_PROJECTION)
    fields.update(kwargs)
    return CapturedFrame(idx, "ts", image.tobytes(), w, h, **fields)


@pytest.fixture
def laser_frame():
    """64x48 BGRA frame with a single laser pixel at (30, 20)."""
    img = blank_bgra(64, 48)
    img[20, 30] = LASER
    return frame_from_image(img)
