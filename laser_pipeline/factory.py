import logging
from typing import Optional

from .config import RunConfig
from .facade import LaserPointerFacade
from .strategies.brightest_point import AccurateBrightestPoint, FastBrightestPoint
from .strategies.raycast import Environment, RaycastLocalize
from .strategies.roi import CenteredROI
from .strategies.segment_red import RedHueMask
from .strategies.unproject import IntrinsicsUnproject, ProjectionUnproject


class StrategyFactory:
    @staticmethod
    def from_config(config: RunConfig, environment: Optional[Environment] = None):
        config.validate()

        # Detection area and segmentation
        roi = CenteredROI(*config.detection_area)
        seg = RedHueMask(config.hsv_bands)

        # Scoring strategy
        if config.fast_detection:
            scorer = FastBrightestPoint(config.high_res_width)
        else:
            scorer = AccurateBrightestPoint(config.high_res_width)

        # Unprojection and raycast
        intr = IntrinsicsUnproject(config.unprojection_offset)
        proj = ProjectionUnproject()
        loc = RaycastLocalize(
            environment,
            layer_mask=config.layer_mask,
            max_distance=config.max_distance,
            fallback_distance=config.fallback_distance,
        )

        return roi, seg, scorer, intr, proj, loc

    @staticmethod
    def build_facade(
        config: RunConfig,
        environment: Optional[Environment] = None,
        logger: Optional[logging.Logger] = None,
    ) -> LaserPointerFacade:
        roi, seg, scorer, intr, proj, loc = StrategyFactory.from_config(config, environment)
        return LaserPointerFacade(
            roi, seg, scorer, intr, proj, loc,
            logger=logger,
            fast_detection=config.fast_detection,
            high_res_width=config.high_res_width,
            pixel_format=config.pixel_format.upper(),
        )
