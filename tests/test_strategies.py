import numpy as np
import pytest

from conftest import LASER, blank_bgra
from laser_pipeline.strategies.brightest_point import AccurateBrightestPoint, FastBrightestPoint
from laser_pipeline.strategies.roi import CenteredROI
from laser_pipeline.strategies.segment_red import RedHueMask

SCORERS = [FastBrightestPoint, AccurateBrightestPoint]


@pytest.mark.parametrize("w,h", [(1, 1), (3, 5), (17, 9), (640, 480), (1281, 721), (1920, 1080)])
@pytest.mark.parametrize("fx,fy", [(0.01, 0.01), (0.25, 0.75), (0.5, 0.5), (0.77, 0.33), (1.0, 1.0)])
def test_roi_is_even_centered_and_in_bounds(w, h, fx, fy):
    """The detection area is even-sized, centered within 1px and inside the frame."""
    x, y, rw, rh = CenteredROI(fx, fy).rect(w, h)

    assert rw % 2 == 0 and rh % 2 == 0
    assert 0 <= rw <= w and 0 <= rh <= h
    assert x >= 0 and y >= 0
    assert abs(x - (w - rw - x)) <= 1
    assert abs(y - (h - rh - y)) <= 1


def test_roi_crop_matches_rect():
    roi = CenteredROI(0.5, 0.5)
    img = blank_bgra(640, 480)
    cropped, rect = roi.apply(img)

    assert rect == (160, 120, 320, 240)
    assert cropped.shape == (240, 320, 4)


def test_roi_full_frame():
    assert CenteredROI(1.0, 1.0).rect(1920, 1080) == (0, 0, 1920, 1080)


def test_red_mask_accepts_both_hue_bands():
    """Low-hue and high-hue reds are both candidates."""
    img = blank_bgra(10, 10)
    img[2, 3] = LASER               # hue ~0
    img[7, 6] = (100, 40, 250, 255)  # hue ~171

    mask = RedHueMask().apply(img)

    assert mask.dtype == np.uint8
    assert mask[2, 3] == 255
    assert mask[7, 6] == 255
    assert int(np.count_nonzero(mask)) == 2


def test_red_mask_rejects_out_of_range_pixels():
    """Oversaturated, dim and non-red pixels are excluded."""
    img = blank_bgra(10, 10)
    img[1, 1] = (0, 0, 255, 255)      # saturation above 240
    img[2, 2] = (30, 30, 120, 255)    # too dark
    img[3, 3] = (60, 250, 60, 255)    # green
    img[4, 4] = (250, 250, 250, 255)  # white, no saturation

    mask = RedHueMask().apply(img)
    assert RedHueMask.is_empty(mask)


@pytest.mark.parametrize("scorer_cls", SCORERS)
def test_single_masked_pixel_is_returned(scorer_cls):
    """With one candidate the arg-max is that pixel, on every run."""
    img = blank_bgra(20, 16)
    img[5, 7] = LASER
    mask = np.zeros((16, 20), dtype=np.uint8)
    mask[5, 7] = 255

    scorer = scorer_cls()
    results = {scorer.score(img, mask, 20) for _ in range(3)}
    assert results == {(7, 5)}


@pytest.mark.parametrize("scorer_cls", SCORERS)
def test_isolated_dot_wins_over_background(scorer_cls):
    """An isolated laser pixel outscores everything else even with a full mask."""
    img = blank_bgra(32, 32)
    img[12, 19] = LASER
    mask = np.full((32, 32), 255, dtype=np.uint8)

    assert scorer_cls().score(img, mask, 32) == (19, 12)


@pytest.mark.parametrize("scorer_cls", SCORERS)
def test_winner_is_always_masked(scorer_cls):
    """The winning coordinate lies inside the mask, even when brighter pixels are unmasked."""
    rng = np.random.default_rng(7)
    img = rng.integers(0, 256, size=(40, 50, 4), dtype=np.uint8)
    mask = np.zeros((40, 50), dtype=np.uint8)
    for x, y in [(3, 4), (10, 30), (25, 12), (49, 39), (31, 31)]:
        mask[y, x] = 255

    x, y = scorer_cls().score(img, mask, 50)
    assert mask[y, x] == 255


def test_kernel_sizes_follow_source_width():
    assert FastBrightestPoint().kernel_size(1280) == 11
    assert FastBrightestPoint().kernel_size(1920) == 15
    assert AccurateBrightestPoint().kernel_size(1600) == 3
    assert AccurateBrightestPoint().kernel_size(1601) == 5


def test_accurate_score_pins_weighting():
    """score = 2*red - 3*lap(red) + lap(blue) + lap(green) at an isolated dot."""
    img = blank_bgra(9, 9)
    img[4, 4] = LASER

    scores = AccurateBrightestPoint().score_map(img, 9)

    # 3x3 Laplacian aperture is [[2, 0, 2], [0, -8, 0], [2, 0, 2]]
    lap_red = 2 * 4 * 90 - 8 * 250
    lap_blue = 2 * 4 * 90 - 8 * 60
    assert scores[4, 4] == 2 * 250 - 3 * lap_red + 2 * lap_blue
    assert scores[0, 0] == 2 * 90
