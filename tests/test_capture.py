from unittest.mock import MagicMock, patch

import cv2
import numpy as np
import pytest

from laser_anchor.capture import LASER_BGRA, DeviceCapture, SyntheticCapture
from laser_pipeline.transforms import DEFAULT_PROJECTION, project_world_point


def _fake_video(reads):
    cap = MagicMock()
    cap.isOpened.return_value = True
    cap.read.side_effect = reads
    return cap


@patch("laser_anchor.capture.cv2.VideoCapture")
def test_device_capture_opens_v4l2_path_and_converts_to_bgra(mock_vc):
    """/dev/videoN paths open the V4L2 index and frames come out as BGRA bytes."""
    img = np.zeros((6, 8, 3), dtype=np.uint8)
    img[..., 2] = 200
    mock_vc.return_value = _fake_video([(True, img)])

    cap = DeviceCapture("/dev/video3", 15, 8, 6)
    cap.start()
    frame = cap.next_frame()

    mock_vc.assert_called_once_with(3, cv2.CAP_V4L2)
    mock_vc.return_value.set.assert_any_call(cv2.CAP_PROP_FPS, 15)
    assert frame.idx == 1
    assert (frame.width, frame.height) == (8, 6)
    assert len(frame.buffer) == 8 * 6 * 4
    assert np.array_equal(frame.pose, np.eye(4))
    assert np.array_equal(frame.projection, DEFAULT_PROJECTION)
    pixel = np.frombuffer(frame.buffer, dtype=np.uint8).reshape(6, 8, 4)[0, 0]
    assert tuple(pixel) == (0, 0, 200, 255)


@patch("laser_anchor.capture.cv2.VideoCapture")
def test_device_capture_file_source_finishes(mock_vc):
    """A video file that runs out of frames marks the capture finished."""
    mock_vc.return_value = _fake_video([(False, None)])

    cap = DeviceCapture("clip.mp4", 15, 640, 480)
    cap.start()

    assert cap.next_frame() is None
    assert cap.finished is True
    mock_vc.assert_called_once_with("clip.mp4")
    mock_vc.return_value.set.assert_not_called()

    cap.stop()
    assert cap.cap is None


@patch("laser_anchor.capture.cv2.VideoCapture")
def test_device_capture_open_failure_raises(mock_vc):
    mock_vc.return_value.isOpened.return_value = False
    with pytest.raises(RuntimeError):
        DeviceCapture(0, 15, 640, 480).start()


def test_synthetic_dot_is_painted_at_projected_point():
    cap = SyntheticCapture(0, 320, 240)
    img = cap.render(5)

    x, y = project_world_point(cap.dot_world_point(5), cap.pose, cap.projection, 320, 240)
    assert tuple(img[int(round(y)), int(round(x)) + 2]) == LASER_BGRA
    assert tuple(img[0, 0]) == (90, 90, 90, 255)


def test_synthetic_dot_behind_camera_is_not_drawn():
    cap = SyntheticCapture(0, 64, 48, target=(0.0, 0.0, 2.0))
    img = cap.render(1)
    assert np.all(img == np.array((90, 90, 90, 255), dtype=np.uint8))
