import json
from pathlib import Path

import cv2
import numpy as np

from laser_pipeline.ip_types import HitResult
from laser_pipeline.services.csv_writer import CsvWriter
from laser_pipeline.services.storage import SessionStorage


def test_session_storage_creates_dirs_and_manifest(tmp_path):
    """SessionStorage should create directories, save annotated frames, and emit config."""
    storage = SessionStorage(tmp_path, name="demo")
    session_dir = Path(storage.begin())
    assert session_dir.name.startswith("demo_")
    assert (session_dir / "annotated").exists()
    assert (session_dir / "logs").exists()

    bgra = np.zeros((40, 60, 4), dtype=np.uint8)
    path = storage.save_annotated(3, bgra, (30, 20))
    assert path.endswith("f000003_laser.jpg")
    saved = cv2.imread(path)
    assert saved.shape == (40, 60, 3)

    storage.write_manifest({"name": "demo", "root": Path("/tmp")})
    manifest = json.loads((session_dir / "config.json").read_text())
    assert manifest["name"] == "demo"
    assert manifest["root"] == "/tmp"


def test_csv_writer_persists_rows_and_formats_lines(tmp_path):
    """CsvWriter should emit one row per hit with NaN for missing values."""
    csv_path = tmp_path / "hits.csv"
    writer = CsvWriter(str(csv_path))
    writer.open()
    writer.append(1.234567, HitResult(1, True, (0.5, 0.25, -2.0), (30, 20), True, 2.0))
    writer.append(2.0, HitResult(2, False))
    writer.close()

    lines = csv_path.read_text().strip().splitlines()
    assert lines[0] == ",".join(CsvWriter.HEADER)
    assert lines[1] == "1.234567,1,1,30.0,20.0,0.5,0.25,-2.0,1,2.0"
    assert lines[2].split(",")[1:3] == ["2", "0"]
    assert lines[2].split(",")[3] == "nan"

    inline = CsvWriter.to_csv_line(3.0, HitResult(5, True, (1.0, 2.0, 3.0), (4, 5), False, 3.7))
    assert inline.startswith("3.000000,5,1")
    assert inline.endswith(",0,3.7")


def test_csv_writer_close_is_idempotent(tmp_path):
    writer = CsvWriter(str(tmp_path / "hits.csv"))
    writer.close()
    writer.open()
    writer.close()
    writer.close()
    assert (tmp_path / "hits.csv").read_text().startswith("recorded_at")
