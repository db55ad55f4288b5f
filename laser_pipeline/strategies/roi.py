from typing import Tuple

import numpy as np

Rect = Tuple[int, int, int, int]  # x, y, width, height


class CenteredROI:
    """
    Strategy: crop a centered detection area of the frame.
    Width and height are rounded to even values (never above the frame size)
    so the crop stays symmetric.
    """
    def __init__(self, fx: float = 0.5, fy: float = 0.5):
        self.fx, self.fy = fx, fy

    def rect(self, w: int, h: int) -> Rect:
        rw = max(0, min(w - w % 2, int(round(w * self.fx * 0.5)) * 2))
        rh = max(0, min(h - h % 2, int(round(h * self.fy * 0.5)) * 2))
        return (w - rw) // 2, (h - rh) // 2, rw, rh

    def apply(self, image) -> Tuple[object, Rect]:
        h, w = image.shape[:2]
        x, y, rw, rh = self.rect(w, h)
        return np.ascontiguousarray(image[y:y + rh, x:x + rw]), (x, y, rw, rh)
