from unittest.mock import patch

import pytest

from laser_pipeline.config import RunConfig
from laser_pipeline.factory import StrategyFactory
from laser_pipeline.strategies.brightest_point import AccurateBrightestPoint, FastBrightestPoint
from laser_pipeline.strategies.raycast import PlaneEnvironment


@patch("laser_pipeline.factory.RaycastLocalize")
@patch("laser_pipeline.factory.IntrinsicsUnproject")
@patch("laser_pipeline.factory.AccurateBrightestPoint")
@patch("laser_pipeline.factory.FastBrightestPoint")
@patch("laser_pipeline.factory.RedHueMask")
@patch("laser_pipeline.factory.CenteredROI")
def test_strategy_factory_configures_components(
    mock_roi,
    mock_seg,
    mock_fast,
    mock_accurate,
    mock_intr,
    mock_localize,
):
    """StrategyFactory should construct every strategy with correct arguments."""
    cfg = RunConfig(
        detection_area=(0.25, 0.75),
        fast_detection=True,
        unprojection_offset=(0.01, -0.02),
        layer_mask=1 << 4,
        max_distance=20.0,
        fallback_distance=3.0,
    )
    env = PlaneEnvironment()

    roi, seg, scorer, *_ = StrategyFactory.from_config(cfg, env)

    mock_roi.assert_called_once_with(0.25, 0.75)
    mock_seg.assert_called_once_with(cfg.hsv_bands)
    mock_fast.assert_called_once_with(cfg.high_res_width)
    mock_accurate.assert_not_called()
    mock_intr.assert_called_once_with((0.01, -0.02))
    mock_localize.assert_called_once_with(
        env, layer_mask=1 << 4, max_distance=20.0, fallback_distance=3.0
    )
    assert roi == mock_roi.return_value
    assert scorer == mock_fast.return_value


def test_factory_defaults_to_accurate_scorer():
    _, _, scorer, *_ = StrategyFactory.from_config(RunConfig())
    assert isinstance(scorer, AccurateBrightestPoint)

    _, _, scorer, *_ = StrategyFactory.from_config(RunConfig(fast_detection=True))
    assert isinstance(scorer, FastBrightestPoint)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"detection_area": (0.0, 0.5)},
        {"detection_area": (0.5, 1.5)},
        {"fallback_distance": 0.0},
        {"max_distance": -1.0},
        {"pixel_format": "YUYV"},
    ],
)
def test_factory_rejects_invalid_config(kwargs):
    with pytest.raises(ValueError):
        StrategyFactory.from_config(RunConfig(**kwargs))


def test_build_facade_carries_detection_flags():
    facade = StrategyFactory.build_facade(RunConfig(fast_detection=True, high_res_width=800))
    assert facade.fast_detection is True
    assert facade.high_res_width == 800
