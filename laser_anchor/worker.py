from __future__ import annotations

import queue
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import cv2
import numpy as np

from laser_pipeline.factory import StrategyFactory
from laser_pipeline.ip_types import CapturedFrame, FrameResult, HitResult
from laser_pipeline.services.storage import SessionStorage
from laser_pipeline.strategies.raycast import Environment, Plane, PlaneEnvironment

from .anchor import AnchorTracker, FpsCounter
from .capture import BaseCapture, DeviceCapture, SyntheticCapture
from .config import AnchorConfig
from .logging_utils import add_file_handler, setup_logger
from .output import CsvOutput, MqttOutput, OutputSink


@dataclass
class SessionSummary:
    session_path: str
    frames_processed: int
    found: int
    skipped: int
    csv_path: str
    log_path: str
    avg_fps: float
    errors: int


class AnchorWorker:
    """
    Runs the laser pointer pipeline on a capture thread and resolves results on the
    calling thread.

    The producer pushes FrameResult values into `results`, in arrival order; the
    consumer drains the queue once per tick, raycasts, moves the anchor and writes
    outputs.
    """
    def __init__(
        self,
        config: AnchorConfig,
        logger=None,
        outputs: Optional[list[OutputSink]] = None,
        capture: Optional[BaseCapture] = None,
        environment: Optional[Environment] = None,
        results: Optional[queue.Queue] = None,
    ):
        self.config = config
        self.logger = logger or setup_logger(config.source_name)

        if outputs is None:
            outputs = [CsvOutput()]
            pub = config.publish
            if pub is not None and pub.enabled:
                outputs.append(
                    MqttOutput(pub.broker_ip, pub.broker_port, pub.topic, pub.client_id, logger=self.logger)
                )

        self.outputs = outputs
        self.capture = capture
        self.environment = environment
        self.results = results if results is not None else queue.Queue(maxsize=config.queue_size)
        self.anchor = AnchorTracker(config.min_anchor_move, config.show_fps)
        self.fps = FpsCounter()
        self._stop_event = threading.Event()
        self._producer_done = threading.Event()
        self._producer_error: Optional[BaseException] = None
        self._frames = 0
        self._errors = 0

    def stop(self) -> None:
        self._stop_event.set()

    def _projection(self) -> Optional[np.ndarray]:
        if self.config.projection is None:
            return None
        return np.asarray(self.config.projection, dtype=np.float64).reshape(4, 4)

    def _build_capture(self) -> BaseCapture:
        if self.capture is not None:
            return self.capture
        src = self.config.source
        if self.config.dry_run or src is None or src.type == "synthetic":
            return SyntheticCapture(
                self.config.fps, self.config.width, self.config.height, projection=self._projection()
            )
        if src.type != "device":
            raise ValueError(f"Unknown source type: {src.type}")
        device = src.device
        if isinstance(device, str) and device.isdigit():
            device = int(device)
        return DeviceCapture(
            device, self.config.fps, self.config.width, self.config.height, projection=self._projection()
        )

    def _build_environment(self) -> Environment:
        if self.environment is not None:
            return self.environment
        planes = [
            Plane(p["point"], p["normal"], int(p.get("layer", 31))) for p in self.config.planes
        ]
        return PlaneEnvironment(planes)

    def _produce(self, cap: BaseCapture, facade, storage: SessionStorage) -> None:
        t0 = time.time()
        try:
            while True:
                if self._stop_event.is_set():
                    break
                if self.config.duration_sec and (time.time() - t0) >= self.config.duration_sec:
                    break
                if self.config.max_frames and self._frames >= self.config.max_frames:
                    break

                f = cap.next_frame()
                if f is None:
                    if cap.finished:
                        break
                    self._errors += 1
                    continue

                result = facade.process(f)
                if result.found and self.config.save_annotated:
                    self._save_annotated(storage, f, result)
                if not self._enqueue(result):
                    break
                self._frames += 1
        except Exception as e:
            self._producer_error = e
            self.logger.exception("capture thread failed")
        finally:
            self._producer_done.set()

    def _enqueue(self, result: FrameResult) -> bool:
        while not self._stop_event.is_set():
            try:
                self.results.put(result, timeout=0.1)
                return True
            except queue.Full:
                continue
        return False

    def _save_annotated(self, storage: SessionStorage, f: CapturedFrame, result: FrameResult) -> None:
        image = np.frombuffer(bytes(f.buffer), dtype=np.uint8).reshape(f.height, f.width, 4)
        if str(f.pixel_format or self.config.pixel_format).upper() == "RGBA":
            image = cv2.cvtColor(image, cv2.COLOR_RGBA2BGRA)
        storage.save_annotated(f.idx, image, result.pixel)

    def drain(self, facade) -> list[HitResult]:
        """Resolve every queued result, oldest first."""
        hits = []
        while True:
            try:
                result = self.results.get_nowait()
            except queue.Empty:
                break
            hit = facade.resolve(result)
            fps = self.fps.tick() if self.config.show_fps else 0.0
            if self.anchor.update(hit, fps):
                self.logger.debug("anchor moved to %s (%s)", hit.world_point, self.anchor.label)
            ts_unix = time.time()
            for out in self.outputs:
                out.write_hit(ts_unix, hit)
            hits.append(hit)
        return hits

    def run(self) -> SessionSummary:
        storage = SessionStorage(self.config.session_root, name=f"{self.config.source_name}_session")
        session_path = storage.begin()
        storage.write_manifest(self.config.as_dict())

        log_file = str(Path(storage.logs_dir) / "session.log")
        file_handler = add_file_handler(self.logger, self.config.source_name, log_file)

        cap = None
        producer = None
        found = 0
        skipped = 0
        t0 = time.time()
        try:
            for out in self.outputs:
                out.open(Path(storage.session_dir))

            cap = self._build_capture()
            facade = StrategyFactory.build_facade(
                self.config.to_run_config(), self._build_environment(), self.logger
            )

            self.logger.info("session started: %s", session_path)
            self.logger.info("config: %s", self.config.as_dict())

            cap.start()
            t0 = time.time()
            producer = threading.Thread(
                target=self._produce, args=(cap, facade, storage), name="laser-capture", daemon=True
            )
            producer.start()

            while True:
                for hit in self.drain(facade):
                    found += int(hit.found)
                    skipped += int(hit.skipped)
                if self._producer_done.is_set() and self.results.empty():
                    break
                time.sleep(self.config.tick_sec)
        finally:
            self.stop()
            if producer is not None:
                producer.join()
            if cap is not None:
                try:
                    cap.stop()
                except Exception as e:
                    self.logger.warning("capture stop failed: %s", e)

            for out in self.outputs:
                try:
                    out.close()
                except Exception as e:
                    self.logger.warning("output close failed: %s", e)

            frames = self._frames
            avg = frames / max(1e-6, (time.time() - t0))
            self.logger.info(
                "summary frames=%d found=%d skipped=%d avg_fps=%.2f errors=%d",
                frames, found, skipped, avg, self._errors,
            )
            self.logger.removeHandler(file_handler)
            file_handler.close()

        if self._producer_error is not None:
            raise RuntimeError("capture thread failed") from self._producer_error

        csv_path = str(Path(storage.session_dir) / "hits.csv")
        return SessionSummary(
            str(session_path),
            frames,
            found,
            skipped,
            csv_path,
            log_file,
            avg,
            self._errors,
        )
