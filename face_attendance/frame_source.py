# coding: utf-8

"""
Frame Sources

Anything that can hand over "the current frame" as a BGR numpy array.
Camera permissioning and device selection stay with OpenCV.
"""

import base64
import binascii
import itertools
import logging
import threading
from typing import Iterable, Optional, Protocol

import cv2
import numpy as np

from .errors import ValidationError


class FrameSource(Protocol):
    """Capability consumed by enrollment and recognition"""

    def read(self) -> Optional[np.ndarray]:
        """Return the current frame, or None when no frame is available"""
        ...


class CameraFrameSource:
    """
    OpenCV camera source

    The device is opened lazily on the first read and released by
    ``release()`` or on leaving a ``with`` block. Reads are serialized so the
    enrollment loop and the recognition poller can share one camera.
    """

    def __init__(
        self,
        camera_index: int = 0,
        width: Optional[int] = None,
        height: Optional[int] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.camera_index = camera_index
        self.width = width
        self.height = height
        self.logger = logger or logging.getLogger(__name__)
        self._capture = None
        self._lock = threading.Lock()

    def _open(self):
        capture = cv2.VideoCapture(self.camera_index)
        if not capture.isOpened():
            capture.release()
            self.logger.error(f"Unable to open camera {self.camera_index}")
            return None
        if self.width:
            capture.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        if self.height:
            capture.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
        self.logger.info(f"Opened camera {self.camera_index}")
        return capture

    def read(self) -> Optional[np.ndarray]:
        with self._lock:
            if self._capture is None:
                self._capture = self._open()
                if self._capture is None:
                    return None
            ok, frame = self._capture.read()
        if not ok or frame is None:
            self.logger.warning(f"Camera {self.camera_index} returned no frame")
            return None
        return frame

    def release(self):
        with self._lock:
            if self._capture is not None:
                self._capture.release()
                self._capture = None
                self.logger.info(f"Released camera {self.camera_index}")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()


class StaticFrameSource:
    """Cycles through a fixed list of frames (still images, tests)"""

    def __init__(self, frames: Iterable[Optional[np.ndarray]], repeat: bool = True):
        self.frames = list(frames)
        self.repeat = repeat
        self._iterator = itertools.cycle(self.frames) if repeat else iter(self.frames)
        self._lock = threading.Lock()

    def read(self) -> Optional[np.ndarray]:
        with self._lock:
            return next(self._iterator, None)


def decode_base64_image(data: str) -> np.ndarray:
    """
    Decode a base64 image (optionally a ``data:image/...;base64,`` URL) to BGR

    Raises:
        ValidationError: payload is not valid base64 or not a decodable image
    """
    data = (data or "").strip()
    if not data:
        raise ValidationError("Empty image payload")
    if data.startswith("data:"):
        _, _, data = data.partition(",")
    try:
        raw = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValidationError(f"Invalid base64 image: {e}") from e

    image = cv2.imdecode(np.frombuffer(raw, dtype=np.uint8), cv2.IMREAD_COLOR)
    if image is None:
        raise ValidationError("Payload is not a decodable image")
    return image
