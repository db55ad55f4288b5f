import cv2
import numpy as np

RED_BANDS = (
    ((0, 30, 220), (10, 240, 255)),
    ((170, 30, 220), (180, 240, 255)),
)


class RedHueMask:
    """
    Strategy: mask reddish, bright pixels.
    Red wraps around the hue circle, so two inclusive HSV bands are OR-ed together.
    """
    def __init__(self, bands=RED_BANDS):
        self.bands = [(np.array(lo, dtype=np.uint8), np.array(hi, dtype=np.uint8)) for lo, hi in bands]

    def to_hsv(self, bgra: np.ndarray) -> np.ndarray:
        bgr = cv2.cvtColor(bgra, cv2.COLOR_BGRA2BGR)
        return cv2.cvtColor(bgr, cv2.COLOR_BGR2HSV)

    def apply(self, bgra: np.ndarray) -> np.ndarray:
        hsv = self.to_hsv(bgra)
        mask = np.zeros(hsv.shape[:2], dtype=np.uint8)
        for lo, hi in self.bands:
            mask |= cv2.inRange(hsv, lo, hi)
        return mask

    @staticmethod
    def is_empty(mask: np.ndarray) -> bool:
        return mask.size == 0 or cv2.countNonZero(mask) == 0
