from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional

from laser_pipeline.ip_types import HitResult
from laser_pipeline.services.csv_writer import CsvWriter


class OutputSink(ABC):
    @abstractmethod
    def open(self, session_dir: Path) -> None: ...

    @abstractmethod
    def write_hit(self, ts_unix: float, hit: HitResult) -> None: ...

    @abstractmethod
    def close(self) -> None: ...


class CsvOutput(OutputSink):
    def __init__(self, filename: str = "hits.csv"):
        self.filename = filename
        self._writer: Optional[CsvWriter] = None

    def open(self, session_dir: Path) -> None:
        path = session_dir / self.filename
        self._writer = CsvWriter(str(path))
        self._writer.open()

    def write_hit(self, ts_unix: float, hit: HitResult) -> None:
        if self._writer is None:
            return
        self._writer.append(ts_unix, hit)

    def close(self) -> None:
        if self._writer is not None:
            self._writer.close()
            self._writer = None


class MqttOutput(OutputSink):
    """Publish resolved anchor points as CSV lines over MQTT."""

    def __init__(
        self,
        broker_ip: str,
        broker_port: int = 1883,
        topic: str = "laser/anchor",
        client_id: str = "laser-anchor",
        client: Any = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.broker_ip = broker_ip
        self.broker_port = broker_port
        self.topic = topic
        self.client_id = client_id
        self.client = client
        self.log = logger or logging.getLogger(__name__)
        self._published_header = False

    def open(self, session_dir: Path) -> None:
        if self.client is None:
            import paho.mqtt.client as mqtt

            self.client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2, client_id=self.client_id)
        self.client.connect(self.broker_ip, self.broker_port, 60)
        self.client.loop_start()

    def _publish_header_once(self) -> None:
        if not self._published_header:
            self.client.publish(self.topic, ",".join(CsvWriter.HEADER))
            self._published_header = True

    def write_hit(self, ts_unix: float, hit: HitResult) -> None:
        if self.client is None or not hit.found:
            return
        try:
            self._publish_header_once()
            self.client.publish(self.topic, CsvWriter.to_csv_line(ts_unix, hit))
        except Exception as e:
            self.log.warning("Anchor publish failed: %s", e)

    def close(self) -> None:
        if self.client is not None:
            self.client.loop_stop()
            self.client.disconnect()
            self.client = None


class NullOutput(OutputSink):
    def open(self, session_dir: Path) -> None:
        return None

    def write_hit(self, ts_unix: float, hit: HitResult) -> None:
        return None

    def close(self) -> None:
        return None
