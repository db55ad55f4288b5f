"""Laser pointer anchoring service."""

from .config import AnchorConfig
from .worker import AnchorWorker

__all__ = ["AnchorConfig", "AnchorWorker"]
