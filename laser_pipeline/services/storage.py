from pathlib import Path
import json

import cv2


class SessionStorage:
    def __init__(self, root: str, name: str = "session"):
        self.root = Path(root)
        self.session_dir = None
        self.annotated_dir = None
        self.logs_dir = None
        self.name = name

    def begin(self) -> str:
        from time import strftime
        sid = f"{self.name}_{strftime('%Y%m%d_%H%M%S')}"
        self.session_dir = self.root / sid
        self.annotated_dir = self.session_dir / "annotated"
        self.logs_dir = self.session_dir / "logs"
        for d in (self.annotated_dir, self.logs_dir):
            d.mkdir(parents=True, exist_ok=True)
        return str(self.session_dir)

    def save_annotated(self, idx: int, bgra, pixel=None) -> str:
        """Save a debug copy of the frame with the detected pixel circled."""
        draw = cv2.cvtColor(bgra, cv2.COLOR_BGRA2BGR)
        if pixel is not None:
            cv2.circle(draw, (int(pixel[0]), int(pixel[1])), 12, (0, 255, 0), 2, cv2.LINE_AA)
        p = self.annotated_dir / f"f{idx:06d}_laser.jpg"
        cv2.imwrite(str(p), draw)
        return str(p)

    def write_manifest(self, meta: dict):
        with open(self.session_dir / "config.json", "w") as fp:
            json.dump(meta, fp, indent=2, default=str)
