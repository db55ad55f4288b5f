from __future__ import annotations

import json
import math
from dataclasses import dataclass, asdict, field
from pathlib import Path
from typing import Any, Optional

from laser_pipeline.config import RunConfig, SPATIAL_AWARENESS_LAYER


@dataclass
class SourceConfig:
    """Configuration for the frame source."""

    type: str = "synthetic"  # "synthetic", "device"
    device: int | str = 0  # camera index, device path or video file

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class PublishConfig:
    enabled: bool = False
    broker_ip: str = "127.0.0.1"
    broker_port: int = 1883
    topic: str = "laser/anchor"
    client_id: str = "laser-anchor"

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class AnchorConfig:
    source_name: str = "hololens"
    fps: int = 15
    width: int = 1280
    height: int = 720
    session_root: str = "data/sessions"
    duration_sec: float = 30.0
    max_frames: Optional[int] = None
    dry_run: bool = False
    detection_area: tuple[float, float] = (0.5, 0.5)
    fast_detection: bool = False
    unprojection_offset: tuple[float, float] = (0.0, -0.05)
    layer_mask: int = 1 << SPATIAL_AWARENESS_LAYER
    max_distance: Optional[float] = None  # None = unlimited
    fallback_distance: float = 5.0
    pixel_format: str = "BGRA"  # used for frames that do not carry a format
    min_anchor_move: float = 0.01
    show_fps: bool = False
    save_annotated: bool = False
    tick_sec: float = 1.0 / 60.0
    queue_size: int = 0  # 0 = unbounded
    projection: Optional[list[float]] = None  # 16 floats row-major
    planes: list[dict[str, Any]] = field(default_factory=list)
    source: Optional[SourceConfig] = None
    publish: Optional[PublishConfig] = None

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)

    def apply_overrides(self, **kwargs: Any) -> "AnchorConfig":
        for key, value in kwargs.items():
            if value is not None and hasattr(self, key):
                setattr(self, key, value)
        return self

    def to_run_config(self) -> RunConfig:
        max_distance = math.inf if self.max_distance is None else float(self.max_distance)
        return RunConfig(
            detection_area=tuple(self.detection_area),
            fast_detection=self.fast_detection,
            unprojection_offset=tuple(self.unprojection_offset),
            layer_mask=self.layer_mask,
            max_distance=max_distance,
            fallback_distance=self.fallback_distance,
            pixel_format=self.pixel_format,
        )


def _pair(value: Any, name: str) -> tuple[float, float]:
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        raise ValueError(f"{name} must be a pair of numbers")
    return float(value[0]), float(value[1])


def _load_yaml(path: Path) -> dict[str, Any]:
    try:
        import yaml  # type: ignore
    except Exception as exc:  # pragma: no cover - optional dependency
        raise RuntimeError(
            "YAML config requested but PyYAML is not installed. "
            "Install with: pip install pyyaml"
        ) from exc
    with path.open("r", encoding="utf-8") as fp:
        data = yaml.safe_load(fp) or {}
    if not isinstance(data, dict):
        raise ValueError("YAML config root must be a mapping")
    return data


def load_config(path: str | Path) -> AnchorConfig:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Config not found: {p}")

    if p.suffix.lower() in {".yaml", ".yml"}:
        raw = _load_yaml(p)
    else:
        with p.open("r", encoding="utf-8") as fp:
            raw = json.load(fp)

    if not isinstance(raw, dict):
        raise ValueError("Config root must be a JSON/YAML object")

    cfg = AnchorConfig()
    cfg.source_name = str(raw.get("source_name", cfg.source_name))
    cfg.fps = int(raw.get("fps", cfg.fps))
    cfg.width = int(raw.get("width", cfg.width))
    cfg.height = int(raw.get("height", cfg.height))
    cfg.session_root = str(raw.get("session_root", cfg.session_root))
    cfg.duration_sec = float(raw.get("duration_sec", cfg.duration_sec))
    cfg.max_frames = raw.get("max_frames", cfg.max_frames)
    if cfg.max_frames is not None:
        cfg.max_frames = int(cfg.max_frames)
    cfg.dry_run = bool(raw.get("dry_run", cfg.dry_run))
    cfg.detection_area = _pair(raw.get("detection_area", cfg.detection_area), "detection_area")
    cfg.fast_detection = bool(raw.get("fast_detection", cfg.fast_detection))
    cfg.unprojection_offset = _pair(
        raw.get("unprojection_offset", cfg.unprojection_offset), "unprojection_offset"
    )
    cfg.layer_mask = int(raw.get("layer_mask", cfg.layer_mask))
    cfg.max_distance = raw.get("max_distance", cfg.max_distance)
    if cfg.max_distance is not None:
        cfg.max_distance = float(cfg.max_distance)
    cfg.fallback_distance = float(raw.get("fallback_distance", cfg.fallback_distance))
    cfg.pixel_format = str(raw.get("pixel_format", cfg.pixel_format)).upper()
    cfg.min_anchor_move = float(raw.get("min_anchor_move", cfg.min_anchor_move))
    cfg.show_fps = bool(raw.get("show_fps", cfg.show_fps))
    cfg.save_annotated = bool(raw.get("save_annotated", cfg.save_annotated))
    cfg.tick_sec = float(raw.get("tick_sec", cfg.tick_sec))
    cfg.queue_size = int(raw.get("queue_size", cfg.queue_size))

    projection = raw.get("projection", cfg.projection)
    if projection is not None:
        if not isinstance(projection, list) or len(projection) != 16:
            raise ValueError("projection must be a list of 16 numbers (row-major)")
        cfg.projection = [float(v) for v in projection]

    planes = raw.get("planes", [])
    if not isinstance(planes, list):
        raise ValueError("planes must be a list of {point, normal, layer} mappings")
    cfg.planes = [dict(p) for p in planes]

    src_raw = raw.get("source")
    if src_raw is not None and isinstance(src_raw, dict):
        src_cfg = SourceConfig()
        src_cfg.type = str(src_raw.get("type", src_cfg.type))
        src_cfg.device = src_raw.get("device", src_cfg.device)
        cfg.source = src_cfg

    pub_raw = raw.get("publish")
    if pub_raw is not None and isinstance(pub_raw, dict):
        pub_cfg = PublishConfig()
        pub_cfg.enabled = bool(pub_raw.get("enabled", pub_cfg.enabled))
        pub_cfg.broker_ip = str(pub_raw.get("broker_ip", pub_cfg.broker_ip))
        pub_cfg.broker_port = int(pub_raw.get("broker_port", pub_cfg.broker_port))
        pub_cfg.topic = str(pub_raw.get("topic", pub_cfg.topic))
        pub_cfg.client_id = str(pub_raw.get("client_id", pub_cfg.client_id))
        cfg.publish = pub_cfg

    return cfg
