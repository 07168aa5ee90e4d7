"""
Media Capture - Camera sessions, selfie capture and video recording.

A MediaSession owns the capture device for one step. release() is the
only way the device is closed and is safe to call any number of times;
it runs after a capture, after a recording stops, when starting fails,
on step change and on teardown.

VideoRecorder states: idle -> recording -> stopped.
- stop() before the minimum duration is rejected with an error toast and
  recording continues
- tick() stops automatically once the maximum duration is reached

OpenCVCamera records video only. There is no audio track. It stops writing
frames once max_duration has passed, so a late stop() never yields a longer
video.
"""

import os
import time
import logging
import tempfile
import threading
from enum import Enum
from typing import Any, Callable, Optional

from config.settings import settings
from config.kyc_schema import FileUpload
from backend.image_processor import frame_to_jpeg
from backend.notifications import Notifier

logger = logging.getLogger(__name__)

SELFIE_FILENAME = "selfie.jpg"
VIDEO_FILENAME = "verification.mp4"


class MediaCaptureError(Exception):
    """Raised when a capture device cannot be opened or read."""
    pass


# ============================================================================
# DEVICES
# ============================================================================

class MediaDevice:
    """Interface of a capture device."""

    content_type = "video/mp4"

    def open(self):
        raise NotImplementedError

    def read(self) -> Any:
        """Return a single frame."""
        raise NotImplementedError

    def start_recording(self, max_duration: Optional[float] = None):
        """Start recording. The device stops writing frames after max_duration seconds."""
        raise NotImplementedError

    def stop_recording(self) -> bytes:
        raise NotImplementedError

    def close(self):
        raise NotImplementedError


class OpenCVCamera(MediaDevice):
    """Local webcam through OpenCV."""

    content_type = "video/mp4"

    def __init__(self, index: Optional[int] = None, fps: float = 20.0):
        self.index = index if index is not None else settings.CAMERA_INDEX
        self.fps = fps
        self._capture = None
        self._writer = None
        self._record_path: Optional[str] = None
        self._record_stop: Optional[threading.Event] = None
        self._record_thread: Optional[threading.Thread] = None
        self._max_duration: Optional[float] = None
        self._frame_lock = threading.Lock()

    def open(self):
        import cv2

        capture = cv2.VideoCapture(self.index)
        if not capture.isOpened():
            capture.release()
            raise MediaCaptureError(f"Could not open camera {self.index}")
        self._capture = capture

    def read(self) -> Any:
        if self._capture is None:
            raise MediaCaptureError("Camera is not open")
        with self._frame_lock:
            ok, frame = self._capture.read()
        if not ok:
            raise MediaCaptureError("Failed to read frame from camera")
        return frame

    def start_recording(self, max_duration: Optional[float] = None):
        import cv2

        if self._capture is None:
            raise MediaCaptureError("Camera is not open")

        fd, self._record_path = tempfile.mkstemp(suffix=".mp4")
        os.close(fd)
        width = int(self._capture.get(cv2.CAP_PROP_FRAME_WIDTH)) or 640
        height = int(self._capture.get(cv2.CAP_PROP_FRAME_HEIGHT)) or 480
        self._writer = cv2.VideoWriter(
            self._record_path,
            cv2.VideoWriter_fourcc(*"mp4v"),
            self.fps,
            (width, height),
        )
        if not self._writer.isOpened():
            self._discard_recording()
            raise MediaCaptureError("Could not start video writer")

        self._max_duration = max_duration
        self._record_stop = threading.Event()
        self._record_thread = threading.Thread(target=self._record_loop, daemon=True)
        self._record_thread.start()
        logger.info(f"[Media] Recording to {self._record_path}")

    def _record_loop(self):
        interval = 1.0 / self.fps
        started = time.monotonic()
        while not self._record_stop.is_set():
            if self._max_duration is not None and time.monotonic() - started >= self._max_duration:
                logger.info(f"[Media] Maximum duration of {self._max_duration:g}s reached, frames no longer written")
                self._record_stop.set()
                return
            with self._frame_lock:
                ok, frame = self._capture.read()
            if ok:
                self._writer.write(frame)
            self._record_stop.wait(interval)

    def stop_recording(self) -> bytes:
        if self._record_thread is None:
            raise MediaCaptureError("Not recording")
        self._record_stop.set()
        self._record_thread.join()
        self._record_thread = None
        self._writer.release()
        self._writer = None
        try:
            with open(self._record_path, "rb") as f:
                return f.read()
        finally:
            self._discard_recording()

    def _discard_recording(self):
        if self._writer is not None:
            self._writer.release()
            self._writer = None
        if self._record_path and os.path.exists(self._record_path):
            os.remove(self._record_path)
        self._record_path = None

    def close(self):
        if self._record_thread is not None:
            self._record_stop.set()
            self._record_thread.join()
            self._record_thread = None
        self._discard_recording()
        if self._capture is not None:
            self._capture.release()
            self._capture = None


# ============================================================================
# SESSION
# ============================================================================

class MediaSession:
    """Scoped ownership of a capture device."""

    def __init__(self, device: Optional[MediaDevice] = None):
        self.device = device or OpenCVCamera()
        self.active = False

    def acquire(self):
        if self.active:
            return
        self.device.open()
        self.active = True
        logger.info("[Media] Camera acquired")

    def release(self):
        if not self.active:
            return
        self.active = False
        try:
            self.device.close()
        finally:
            logger.info("[Media] Camera released")

    def __enter__(self) -> "MediaSession":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
        return False


# ============================================================================
# SELFIE
# ============================================================================

class SelfieCapture:
    """Single-frame capture. The camera is released once the photo is taken."""

    def __init__(self, session: Optional[MediaSession] = None, notifier: Optional[Notifier] = None):
        self.session = session or MediaSession()
        self.notifier = notifier or Notifier()
        self.photo: Optional[FileUpload] = None

    def start(self) -> bool:
        try:
            self.session.acquire()
        except Exception as e:
            logger.error(f"[Media] Error accessing camera: {e}")
            self.session.release()
            self.notifier.error("Unable to access camera. Please check permissions.")
            return False
        return True

    def capture(self) -> Optional[FileUpload]:
        if not self.session.active and not self.start():
            return None
        try:
            frame = self.session.device.read()
            content = frame_to_jpeg(frame)
        except Exception as e:
            logger.error(f"[Media] Selfie capture failed: {e}")
            self.notifier.error("Failed to capture photo. Please try again.")
            return None
        finally:
            self.session.release()

        self.photo = FileUpload(filename=SELFIE_FILENAME, content=content, content_type="image/jpeg")
        return self.photo

    def retake(self):
        """Discard the photo. The camera starts again on the next capture()."""
        self.photo = None
        self.session.release()

    def close(self):
        self.session.release()


# ============================================================================
# VIDEO
# ============================================================================

class RecorderState(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"
    STOPPED = "stopped"


class VideoRecorder:
    """Verification video recorder with minimum and maximum duration."""

    def __init__(
        self,
        session: Optional[MediaSession] = None,
        notifier: Optional[Notifier] = None,
        min_duration: Optional[float] = None,
        max_duration: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.session = session or MediaSession()
        self.notifier = notifier or Notifier()
        self.min_duration = min_duration if min_duration is not None else settings.VIDEO_MIN_DURATION
        self.max_duration = max_duration if max_duration is not None else settings.VIDEO_MAX_DURATION
        self._clock = clock
        self.state = RecorderState.IDLE
        self.recording: Optional[FileUpload] = None
        self._started_at: Optional[float] = None

    @property
    def is_recording(self) -> bool:
        return self.state == RecorderState.RECORDING

    @property
    def elapsed(self) -> float:
        if self._started_at is None:
            return 0.0
        return self._clock() - self._started_at

    @property
    def remaining(self) -> float:
        return max(self.max_duration - self.elapsed, 0.0)

    def start(self) -> bool:
        if self.is_recording:
            return True
        self.recording = None
        try:
            self.session.acquire()
            self.session.device.start_recording(max_duration=self.max_duration)
        except Exception as e:
            logger.error(f"[Media] Error starting recording: {e}")
            self.session.release()
            self.state = RecorderState.IDLE
            self.notifier.error("Failed to start recording. Please check camera permissions.")
            return False

        self._started_at = self._clock()
        self.state = RecorderState.RECORDING
        logger.info("[Media] Recording started")
        return True

    def stop(self, force: bool = False) -> Optional[FileUpload]:
        """
        Stop recording.

        Returns:
            The recorded file, or None if nothing was recorded or the
            recording is shorter than min_duration (it keeps running)
        """
        if not self.is_recording:
            return None

        elapsed = self.elapsed
        if not force and elapsed < self.min_duration:
            self.notifier.error(f"Recording must be at least {self.min_duration:g} seconds")
            return None

        try:
            content = self.session.device.stop_recording()
        except Exception as e:
            logger.error(f"[Media] Error stopping recording: {e}")
            self.notifier.error("Failed to save recording. Please try again.")
            self.state = RecorderState.IDLE
            return None
        finally:
            self.session.release()
            self._started_at = None

        self.state = RecorderState.STOPPED
        self.recording = FileUpload(
            filename=VIDEO_FILENAME,
            content=content,
            content_type=self.session.device.content_type,
        )
        logger.info(f"[Media] Recording stopped after {elapsed:.1f}s, {self.recording.size} bytes")
        return self.recording

    def tick(self) -> Optional[FileUpload]:
        """Auto-stop once max_duration is reached."""
        if self.is_recording and self.elapsed >= self.max_duration:
            return self.stop(force=True)
        return None

    def reset(self):
        """Discard the recording and release the camera."""
        self.session.release()
        self.state = RecorderState.IDLE
        self.recording = None
        self._started_at = None

    def close(self):
        self.reset()
