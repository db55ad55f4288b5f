import csv
import io

import numpy as np


class CsvWriter:
    HEADER = [
        "recorded_at",
        "frame_idx", "found",
        "pixel_x", "pixel_y",
        "world_x", "world_y", "world_z",
        "surface_hit", "distance_m",
    ]

    def __init__(self, csv_path: str):
        self.csv_path = csv_path
        self._opened = False
        self._fh = None
        self._w = None

    def open(self):
        self._fh = open(self.csv_path, "w", newline="")
        self._w = csv.writer(self._fh)
        self._w.writerow(self.HEADER)
        self._opened = True

    @staticmethod
    def _vec(vec, n):
        if vec is None:
            return [float("nan")] * n
        a = np.array(vec, dtype=float).reshape(-1).tolist()
        if len(a) < n:
            a += [float("nan")] * (n - len(a))
        return a[:n]

    @classmethod
    def _row(cls, ts_unix, hit):
        distance = hit.distance if hit.distance is not None else float("nan")
        return [
            f"{ts_unix:.6f}",
            hit.frame_idx, int(hit.found),
            *cls._vec(hit.pixel, 2),
            *cls._vec(hit.world_point, 3),
            int(hit.surface_hit), distance,
        ]

    def append(self, ts_unix, hit):
        self._w.writerow(self._row(ts_unix, hit))

    @classmethod
    def to_csv_line(cls, ts_unix, hit):
        buf = io.StringIO()
        w = csv.writer(buf)
        w.writerow(cls._row(ts_unix, hit))
        return buf.getvalue().strip()

    def close(self):
        if self._opened and self._fh:
            self._fh.close()
            self._opened = False
            self._fh = None
            self._w = None
