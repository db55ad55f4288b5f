import argparse
import signal
import sys

from .config import AnchorConfig, PublishConfig, SourceConfig, load_config
from .worker import AnchorWorker


def _build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Run the laser pointer anchoring worker")
    ap.add_argument("--config", help="Path to JSON/YAML config")

    ap.add_argument("--source-name")
    ap.add_argument("--device", help="Camera index, /dev/videoN or video file")
    ap.add_argument("--fps", type=int)
    ap.add_argument("--width", type=int)
    ap.add_argument("--height", type=int)
    ap.add_argument("--out")
    ap.add_argument("--duration", type=float)
    ap.add_argument("--max-frames", type=int)
    ap.add_argument("--detection-area", nargs=2, type=float, metavar=("FX", "FY"))
    ap.add_argument("--offset", nargs=2, type=float, metavar=("OX", "OY"))
    ap.add_argument("--fallback-distance", type=float)
    ap.add_argument("--fast", action="store_true", help="Use the fast detection strategy")
    ap.add_argument("--dry-run", action="store_true", help="Use synthetic frames")
    ap.add_argument("--show-fps", action="store_true")
    ap.add_argument("--save-annotated", action="store_true")
    ap.add_argument("--publish", action="store_true", help="Publish anchor points over MQTT")
    ap.add_argument("--broker-ip")
    ap.add_argument("--broker-port", type=int)

    return ap


def _apply_args(cfg: AnchorConfig, args: argparse.Namespace) -> AnchorConfig:
    if args.device is not None:
        cfg.source = SourceConfig(type="device", device=args.device)

    if args.publish or args.broker_ip:
        pub = cfg.publish or PublishConfig()
        pub.enabled = True
        if args.broker_ip:
            pub.broker_ip = args.broker_ip
        if args.broker_port:
            pub.broker_port = args.broker_port
        cfg.publish = pub

    cfg.apply_overrides(
        source_name=args.source_name,
        fps=args.fps,
        width=args.width,
        height=args.height,
        session_root=args.out,
        duration_sec=args.duration,
        max_frames=args.max_frames,
        detection_area=tuple(args.detection_area) if args.detection_area else None,
        unprojection_offset=tuple(args.offset) if args.offset else None,
        fallback_distance=args.fallback_distance,
        fast_detection=True if args.fast else None,
        dry_run=True if args.dry_run else None,
        show_fps=True if args.show_fps else None,
        save_annotated=True if args.save_annotated else None,
    )
    return cfg


def main(argv=None) -> int:
    ap = _build_parser()
    args = ap.parse_args(argv)

    cfg = load_config(args.config) if args.config else AnchorConfig()
    cfg = _apply_args(cfg, args)

    worker = AnchorWorker(cfg)

    def _handle_signal(_sig, _frame):
        worker.stop()

    signal.signal(signal.SIGINT, _handle_signal)
    if hasattr(signal, "SIGTERM"):
        signal.signal(signal.SIGTERM, _handle_signal)

    summary = worker.run()
    print(summary)
    return 0


if __name__ == "__main__":
    sys.exit(main())
