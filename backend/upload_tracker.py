"""
Upload Tracker - observable wrapper around the upload router.

Provides:
- upload() with is_uploading / last_upload_result state
- A simulated upload_progress percentage
- Service information for display (active service, health check)

NOTE: upload_progress is a simulation. Neither upload strategy exposes
transfer progress, so a ticker adds a random 0-10% every tick while the
request is in flight, stops at 90%, and jumps to 100% once the request
returns. Do not read it as bytes sent.
"""

import random
import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional

from config.settings import settings
from config.kyc_schema import FileUpload, UploadRequest, UploadResponse
from backend.upload_service import UploadServiceRouter, get_upload_router

logger = logging.getLogger(__name__)

SIMULATED_PROGRESS_CAP = 90.0
SIMULATED_PROGRESS_STEP = 10.0


@dataclass
class UploadSnapshot:
    """Current upload state as seen by the UI."""
    is_uploading: bool = False
    upload_progress: float = 0.0
    last_upload_result: Optional[UploadResponse] = None


class UploadTracker:
    """Runs uploads and exposes their state."""

    def __init__(
        self,
        router: Optional[UploadServiceRouter] = None,
        tick_interval: Optional[float] = None,
        reset_delay: Optional[float] = None,
        on_progress: Optional[Callable[[float], None]] = None,
        rng: Callable[[], float] = random.random,
    ):
        self.router = router or get_upload_router()
        self.tick_interval = tick_interval if tick_interval is not None else settings.PROGRESS_TICK_SECONDS
        # A negative delay disables the automatic reset
        self.reset_delay = reset_delay if reset_delay is not None else settings.PROGRESS_RESET_SECONDS
        self.on_progress = on_progress
        self._rng = rng
        self._lock = threading.Lock()
        self._state = UploadSnapshot()
        self._reset_timer: Optional[threading.Timer] = None

    # ------------------------------------------------------------------
    # state
    # ------------------------------------------------------------------

    @property
    def is_uploading(self) -> bool:
        return self._state.is_uploading

    @property
    def upload_progress(self) -> float:
        return self._state.upload_progress

    @property
    def last_upload_result(self) -> Optional[UploadResponse]:
        return self._state.last_upload_result

    @property
    def current_service(self) -> str:
        return self.router.service.value

    @property
    def is_new_service(self) -> bool:
        return self.router.is_new_service

    @property
    def is_existing_service(self) -> bool:
        return self.router.is_existing_service

    @property
    def service_config(self) -> dict:
        return self.router.get_upload_service_config()

    def snapshot(self) -> UploadSnapshot:
        with self._lock:
            return UploadSnapshot(**vars(self._state))

    def _set_progress(self, value: float):
        with self._lock:
            self._state.upload_progress = value
        if self.on_progress:
            self.on_progress(value)

    # ------------------------------------------------------------------
    # upload
    # ------------------------------------------------------------------

    def upload(self, request: UploadRequest) -> UploadResponse:
        """Upload through the router while simulating progress."""
        if self._reset_timer is not None:
            self._reset_timer.cancel()
            self._reset_timer = None

        with self._lock:
            self._state.is_uploading = True
            self._state.last_upload_result = None
        self._set_progress(0.0)

        stop = threading.Event()
        ticker = threading.Thread(target=self._simulate_progress, args=(stop,), daemon=True)
        ticker.start()

        try:
            result = self.router.upload_file(request)
        except Exception as e:
            with self._lock:
                self._state.last_upload_result = UploadResponse.failure(str(e) or "Upload failed")
            raise
        else:
            stop.set()
            ticker.join()
            self._set_progress(100.0)
            with self._lock:
                self._state.last_upload_result = result
        finally:
            stop.set()
            ticker.join()
            with self._lock:
                self._state.is_uploading = False
            self._schedule_reset()

        logger.info(
            f"[Upload] {request.document_type} via {self.current_service}: "
            f"success={result.success} document_id={result.document_id}"
        )
        return result

    def _simulate_progress(self, stop: threading.Event):
        while not stop.wait(self.tick_interval):
            current = self.upload_progress
            if current >= SIMULATED_PROGRESS_CAP:
                return
            self._set_progress(min(current + self._rng() * SIMULATED_PROGRESS_STEP, SIMULATED_PROGRESS_CAP))

    def _schedule_reset(self):
        if self.reset_delay < 0:
            return
        self._reset_timer = threading.Timer(self.reset_delay, self._set_progress, args=(0.0,))
        self._reset_timer.daemon = True
        self._reset_timer.start()

    # ------------------------------------------------------------------
    # service checks
    # ------------------------------------------------------------------

    def is_new_service_available(self) -> bool:
        return self.router.is_new_service_available()

    def test_new_service(self, test_file: FileUpload) -> UploadResponse:
        return self.router.test_new_service(test_file)
