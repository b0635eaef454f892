"""
Camera Capture Source
======================

Owns one camera device and keeps its most recent decoded frame in memory.
A background thread pulls frames as fast as the device delivers them; the
scheduler only ever looks at the newest one, so a slow detector drops
frames instead of queueing them.
"""

import os
import sys
import threading
import time
import logging
from dataclasses import dataclass, fields
from typing import Optional, Tuple

import cv2
import numpy as np

from ..core.errors import DeviceUnavailable, DeviceUnsupported, PermissionDenied

logger = logging.getLogger(__name__)


@dataclass
class CameraConfig:
    """Capture device settings."""
    device_id: int = 0
    width: int = 320
    height: int = 240
    fps: int = 30
    buffer_size: int = 1
    flip_horizontal: bool = True  # mirror view
    warmup_frames: int = 5

    @classmethod
    def from_dict(cls, config: dict) -> "CameraConfig":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in config.items() if k in known})


@dataclass
class Frame:
    """One decoded BGR frame stamped with a monotonic capture time."""
    image: np.ndarray
    timestamp_ms: int
    frame_number: int

    @property
    def rgb(self) -> np.ndarray:
        return cv2.cvtColor(self.image, cv2.COLOR_BGR2RGB)


def _monotonic_ms() -> int:
    return int(time.monotonic() * 1000)


class Camera:
    """
    Threaded camera capture source.

    acquire() opens the device, checks that it decodes a frame, discards the
    warm-up frames and starts the reader thread. release() undoes all of it
    and is a no-op when nothing is held.

    Example:
        >>> with Camera(CameraConfig(device_id=0)) as camera:
        ...     frame = camera.read()
    """

    def __init__(self, config: Optional[CameraConfig] = None):
        self.config = config or CameraConfig()
        self._cap: Optional["cv2.VideoCapture"] = None
        self._reader: Optional[threading.Thread] = None
        self._running = False
        self._count = 0

        self._frame_lock = threading.Lock()
        self._latest: Optional[Frame] = None

    def acquire(self) -> "Camera":
        """
        Attach to the device and begin streaming.

        Raises:
            PermissionDenied: the device node exists but cannot be opened
                (access refused or held by another consumer)
            DeviceUnavailable: there is no such device
            DeviceUnsupported: the device opens but never decodes a frame
        """
        if self._running:
            return self

        cfg = self.config
        logger.info("Opening camera %s (%dx%d, %d fps requested)",
                    cfg.device_id, cfg.width, cfg.height, cfg.fps)

        attached = False
        for backend in self._backends():
            cap = cv2.VideoCapture(cfg.device_id, backend)
            if not cap.isOpened():
                logger.warning("Camera %s: backend %s did not open", cfg.device_id, backend)
                cap.release()
                continue

            attached = True
            self._configure(cap)
            ok, image = cap.read()
            if ok and image is not None:
                self._cap = cap
                break

            logger.warning("Camera %s: backend %s opened but returned no frame", cfg.device_id, backend)
            cap.release()

        if self._cap is None:
            if attached:
                raise DeviceUnsupported("camera {} produced no decodable frames".format(cfg.device_id))
            raise self._open_failure()

        logger.info("Camera streaming at %dx%d",
                    int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
                    int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT)))

        for _ in range(max(cfg.warmup_frames, 0)):
            self._cap.read()

        self._count = 0
        self._running = True
        self._reader = threading.Thread(target=self._read_loop, name="camera-reader", daemon=True)
        self._reader.start()
        return self

    def release(self) -> None:
        """Stop the reader and free the device. Safe to call at any time."""
        held = self._running or self._cap is not None
        self._running = False

        reader, self._reader = self._reader, None
        if reader is not None and reader is not threading.current_thread():
            reader.join(timeout=1.0)

        cap, self._cap = self._cap, None
        if cap is not None:
            cap.release()

        with self._frame_lock:
            self._latest = None

        if held:
            logger.info("Camera %s released", self.config.device_id)

    def read(self) -> Optional[Frame]:
        """Newest frame, or None while not streaming."""
        if not self._running:
            return None
        with self._frame_lock:
            return self._latest

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_ready(self) -> bool:
        """Streaming, with at least one frame buffered."""
        return self._running and self._latest is not None

    @property
    def resolution(self) -> Tuple[int, int]:
        return (self.config.width, self.config.height)

    def _backends(self):
        # V4L2 first on Linux; CAP_ANY may pick GStreamer, which ignores buffer size
        if sys.platform.startswith("linux"):
            return [cv2.CAP_V4L2, cv2.CAP_ANY]
        return [cv2.CAP_ANY]

    def _configure(self, cap) -> None:
        cfg = self.config
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, cfg.width)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, cfg.height)
        cap.set(cv2.CAP_PROP_FPS, cfg.fps)
        cap.set(cv2.CAP_PROP_BUFFERSIZE, cfg.buffer_size)

    def _open_failure(self) -> Exception:
        device_id = self.config.device_id
        node = "/dev/video{}".format(device_id) if isinstance(device_id, int) else None
        if node is None or not os.path.exists(node):
            return DeviceUnavailable("no camera device {}".format(device_id))
        if not os.access(node, os.R_OK | os.W_OK):
            return PermissionDenied("access to {} refused".format(node))
        return PermissionDenied("{} is held by another process".format(node))

    def _grab(self) -> Optional[Frame]:
        cap = self._cap
        if cap is None:
            return None
        ok, image = cap.read()
        if not ok or image is None:
            return None
        if self.config.flip_horizontal:
            image = cv2.flip(image, 1)
        self._count += 1
        return Frame(image=image, timestamp_ms=_monotonic_ms(), frame_number=self._count)

    def _read_loop(self) -> None:
        while self._running:
            frame = self._grab()
            if frame is None:
                time.sleep(0.005)
                continue
            with self._frame_lock:
                self._latest = frame

    def __enter__(self):
        return self.acquire()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()
        return False
