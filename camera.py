import logging
import os
import threading
import time

import cv2
import numpy as np

logger = logging.getLogger(__name__)


class ThreadedDepthSource:
    """
    Produces depth frames (float32 meters, shape (H, W)) on a background
    thread. Subclasses implement _open() and _grab(); read() always returns
    the most recent frame.
    """

    def __init__(self, fps=30):
        self.fps = fps
        self.ret = False
        self.frame = None
        self.frame_count = 0
        self.running = False
        self.thread = None
        self.lock = threading.Lock()

    def _open(self):
        return True

    def _grab(self):
        raise NotImplementedError

    def _close(self):
        pass

    def start(self):
        if not self._open():
            return self
        self.running = True
        self.thread = threading.Thread(target=self._loop, daemon=True)
        self.thread.start()
        return self

    @property
    def opened(self):
        return self.running

    def _loop(self):
        period = 1.0 / self.fps if self.fps else 0.0
        while self.running:
            t0 = time.monotonic()
            ret, depth = self._grab()
            if ret:
                with self.lock:
                    self.ret = True
                    self.frame = depth
                    self.frame_count += 1
            time.sleep(max(0.001, period - (time.monotonic() - t0)))

    def read(self):
        with self.lock:
            return self.ret, self.frame.copy() if self.frame is not None else None

    def stop(self):
        self.running = False
        if self.thread:
            self.thread.join(timeout=1.0)
        self._close()


# ============================================================================
# HARDWARE
# ============================================================================

class OpenCVDepthCamera(ThreadedDepthSource):
    """Depth camera through OpenCV: OpenNI2 devices first, then a raw 16-bit UVC stream."""

    # CAP_OPENNI (the pre-OpenNI2 backend) is absent from newer OpenCV builds
    OPENNI_BACKENDS = [getattr(cv2, name) for name in ("CAP_OPENNI2", "CAP_OPENNI2_ASTRA", "CAP_OPENNI")
                       if hasattr(cv2, name)]

    def __init__(self, src=0, width=640, height=480, fps=30, depth_scale=0.001, kind="openni"):
        super().__init__(fps=fps)
        self.src = src
        self.width = width
        self.height = height
        self.depth_scale = depth_scale
        self.kind = kind
        self.cap = None
        self.openni = False

    def _open(self):
        if self.kind == "openni":
            for backend in self.OPENNI_BACKENDS:
                self.cap = cv2.VideoCapture(backend)
                if self.cap.isOpened():
                    self.openni = True
                    logger.info(f"Depth camera opened with OpenNI backend {backend}")
                    return True
                self.cap.release()

        self.cap = cv2.VideoCapture(self.src)
        if not self.cap.isOpened():
            logger.error(f"Could not open depth camera {self.src}")
            self.cap = None
            return False
        # Keep the native Y16 stream instead of letting OpenCV convert to BGR
        self.cap.set(cv2.CAP_PROP_CONVERT_RGB, 0)
        self.cap.set(cv2.CAP_PROP_FOURCC, cv2.VideoWriter_fourcc('Y', '1', '6', ' '))
        self.cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        self.cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
        self.cap.set(cv2.CAP_PROP_FPS, self.fps)
        self.cap.set(cv2.CAP_PROP_BUFFERSIZE, 1)
        logger.info(f"Depth camera {self.src} opened as UVC Y16 stream")
        return True

    def _grab(self):
        if self.openni:
            if not self.cap.grab():
                return False, None
            ret, raw = self.cap.retrieve(None, getattr(cv2, "CAP_OPENNI_DEPTH_MAP", 0))
        else:
            ret, raw = self.cap.read()
        if not ret or raw is None:
            return False, None
        if raw.ndim == 3:
            raw = raw[:, :, 0]
        return True, raw.astype(np.float32) * self.depth_scale

    def _close(self):
        if self.cap and self.cap.isOpened():
            self.cap.release()


# ============================================================================
# PLAYBACK / SIMULATION
# ============================================================================

class RecordedDepthSource(ThreadedDepthSource):
    """Replays a .npy recording, either one (H, W) frame or a (N, H, W) sequence, in a loop."""

    def __init__(self, path, fps=30, depth_scale=1.0):
        super().__init__(fps=fps)
        self.path = path
        self.depth_scale = depth_scale
        self.frames = None
        self.index = 0

    def _open(self):
        if not os.path.exists(self.path):
            logger.error(f"Recording {self.path} not found.")
            return False
        frames = np.load(self.path).astype(np.float32) * self.depth_scale
        if frames.ndim == 2:
            frames = frames[None]
        if frames.ndim != 3 or len(frames) == 0:
            logger.error(f"Recording {self.path} has shape {frames.shape}, expected (H, W) or (N, H, W)")
            return False
        self.frames = frames
        logger.info(f"Loaded {len(frames)} frames of {frames.shape[2]}x{frames.shape[1]} from {self.path}")
        return True

    def _grab(self):
        depth = self.frames[self.index % len(self.frames)]
        self.index += 1
        return True, depth


class SyntheticDepthSource(ThreadedDepthSource):
    """
    Rolling hills seen from above, for running without a sensor.
    Depth is `base` meters minus a few overlapping sine ridges that drift slowly.
    """

    def __init__(self, width=256, height=192, fps=30, base=2.0, relief=0.6):
        super().__init__(fps=fps)
        self.width = width
        self.height = height
        self.base = base
        self.relief = relief
        self.t = 0.0
        ys, xs = np.mgrid[0:height, 0:width].astype(np.float32)
        self.u = xs / max(width - 1, 1)
        self.v = ys / max(height - 1, 1)

    def depth_at(self, t):
        u, v = self.u, self.v
        hills = (np.sin(2 * np.pi * (1.3 * u + 0.05 * t)) * np.cos(2 * np.pi * (0.9 * v - 0.03 * t))
                 + 0.5 * np.sin(2 * np.pi * (2.7 * u + 3.1 * v) + 0.4 * t))
        return (self.base - self.relief * hills / 1.5).astype(np.float32)

    def _grab(self):
        depth = self.depth_at(self.t)
        self.t += 1.0 / self.fps if self.fps else 0.033
        return True, depth


def open_depth_source(s_cfg):
    """Builds the source described by the `source` config section."""
    kind = s_cfg.get("kind", "synthetic")
    fps = s_cfg.get("fps", 30)
    if kind == "synthetic":
        return SyntheticDepthSource(s_cfg.get("width", 256), s_cfg.get("height", 192), fps=fps)
    if kind == "recording":
        return RecordedDepthSource(s_cfg.get("recording_path") or "", fps=fps,
                                   depth_scale=s_cfg.get("recording_scale", 1.0))
    if kind in ("openni", "uvc"):
        return OpenCVDepthCamera(s_cfg.get("device", 0), s_cfg.get("width", 640),
                                 s_cfg.get("height", 480), fps=fps,
                                 depth_scale=s_cfg.get("depth_scale", 0.001), kind=kind)
    raise ValueError(f"Unknown depth source kind: {kind}")
