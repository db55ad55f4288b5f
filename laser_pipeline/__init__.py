"""Laser pointer detection and world-space unprojection core."""

from .config import RunConfig
from .facade import LaserPointerFacade
from .ip_types import CapturedFrame, FrameResult, HitResult

__all__ = ["CapturedFrame", "FrameResult", "HitResult", "LaserPointerFacade", "RunConfig"]
