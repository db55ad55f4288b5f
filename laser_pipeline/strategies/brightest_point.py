from abc import ABC, abstractmethod
from typing import Tuple

import cv2
import numpy as np

Point = Tuple[int, int]

HIGH_RES_WIDTH = 1600

BLUE, GREEN, RED = 0, 1, 2


class BrightestPointStrategy(ABC):
    """Find the single best laser-pointer candidate among masked pixels of a BGRA image."""

    def __init__(self, high_res_width: int = HIGH_RES_WIDTH):
        self.high_res_width = high_res_width

    @abstractmethod
    def score(self, bgra: np.ndarray, mask: np.ndarray, hint_width: int) -> Point: ...

    @staticmethod
    def _masked_argmax(score_map: np.ndarray, mask: np.ndarray) -> Point:
        _min_val, _max_val, _min_loc, max_loc = cv2.minMaxLoc(score_map, mask)
        return int(max_loc[0]), int(max_loc[1])


class FastBrightestPoint(BrightestPointStrategy):
    """
    Local red contrast: red channel minus its box-blurred neighbourhood.
    A single-channel pass, cheap enough for every frame.
    """
    def kernel_size(self, hint_width: int) -> int:
        return 15 if hint_width > self.high_res_width else 11

    def score(self, bgra: np.ndarray, mask: np.ndarray, hint_width: int) -> Point:
        k = self.kernel_size(hint_width)
        blurred = cv2.blur(bgra, (k, k))
        red_blurred = cv2.extractChannel(blurred, RED)
        red = cv2.extractChannel(bgra, RED)
        contrast = cv2.subtract(red, red_blurred)  # saturates at 0
        return self._masked_argmax(contrast, mask)


class AccurateBrightestPoint(BrightestPointStrategy):
    """
    Multi-channel Laplacian contrast.

    score = 2*red - 3*lap(red) + lap(blue) + lap(green)

    Red brightness counts double, a negative red curvature (neighbours less red)
    is boosted, and blue/green curvature rewards an isolated red highlight over a
    broad red surface. The weights are empirical.
    """
    RED_WEIGHT = 2
    RED_CONTRAST_WEIGHT = -3
    BLUE_CONTRAST_WEIGHT = 1
    GREEN_CONTRAST_WEIGHT = 1

    def kernel_size(self, hint_width: int) -> int:
        return 5 if hint_width > self.high_res_width else 3

    def _laplacian(self, channel: np.ndarray, ksize: int) -> np.ndarray:
        lap = cv2.Laplacian(channel, cv2.CV_16S, ksize=ksize, scale=1, delta=0,
                            borderType=cv2.BORDER_REPLICATE)
        return lap.astype(np.int32)

    def score_map(self, bgra: np.ndarray, hint_width: int) -> np.ndarray:
        k = self.kernel_size(hint_width)
        blue = cv2.extractChannel(bgra, BLUE)
        green = cv2.extractChannel(bgra, GREEN)
        red = cv2.extractChannel(bgra, RED)

        total = red.astype(np.int32) * self.RED_WEIGHT
        total += self.RED_CONTRAST_WEIGHT * self._laplacian(red, k)
        total += self.BLUE_CONTRAST_WEIGHT * self._laplacian(blue, k)
        total += self.GREEN_CONTRAST_WEIGHT * self._laplacian(green, k)
        return total

    def score(self, bgra: np.ndarray, mask: np.ndarray, hint_width: int) -> Point:
        return self._masked_argmax(self.score_map(bgra, hint_width), mask)
