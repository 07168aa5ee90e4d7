"""
Document Upload Sections - Per-step upload logic of the wizard.

Each section binds one document type to the step flow and the upload
tracker:
- select()   check the file against the document's accept rules, build a preview
- upload()   send it through the active upload service
- retake()   discard the selection
- complete() finish the step once the document is uploaded

Failed uploads leave the document in the error state; the user retries
manually.
"""

import logging
from typing import Optional

from config.settings import settings
from config.kyc_schema import (
    DocumentType,
    FileUpload,
    StepId,
    UploadRequest,
    UploadResponse,
    UploadState,
    UploadStatus,
)
from config.step_context import get_document_spec, get_step_for_document
from backend.form_validator import parse_case_id, validate_upload_file
from backend.image_processor import (
    ImageProcessingError,
    calculate_md5_checksum,
    is_image_readable,
    make_preview,
)
from backend.media_capture import SelfieCapture, VideoRecorder
from backend.step_flow import StepFlowController
from backend.upload_tracker import UploadTracker

logger = logging.getLogger(__name__)


class DocumentUploadSection:
    """Upload of a single document type."""

    def __init__(
        self,
        flow: StepFlowController,
        tracker: UploadTracker,
        doc_type: DocumentType,
        max_size_mb: Optional[float] = None,
    ):
        self.flow = flow
        self.tracker = tracker
        self.doc_type = DocumentType(doc_type)
        self.spec = get_document_spec(self.doc_type)
        self.title: str = self.spec["title"]
        self.step: Optional[StepId] = get_step_for_document(self.doc_type)
        self.max_size_mb = max_size_mb if max_size_mb is not None else settings.MAX_FILE_SIZE_MB

    @property
    def notifier(self):
        return self.flow.notifier

    @property
    def state(self) -> UploadState:
        return self.flow.uploads[self.doc_type]

    @property
    def is_uploaded(self) -> bool:
        return self.state.status == UploadStatus.SUCCESS

    def select(self, file: FileUpload) -> bool:
        """Validate a selected file and keep it with its preview."""
        is_valid, error = validate_upload_file(file, self.spec, self.max_size_mb)
        if not is_valid:
            self.notifier.error(error)
            return False

        preview = None
        if file.content_type.startswith("image/"):
            if not is_image_readable(file.content):
                self.notifier.error(f"Could not read the {self.title.lower()} image. Please choose another file.")
                return False
            try:
                preview = make_preview(file.content)
            except ImageProcessingError as e:
                logger.warning(f"[Upload] Preview failed for {self.doc_type.value}: {e}")

        self.flow.set_upload_file(self.doc_type, file, preview)
        logger.info(
            f"[Upload] Selected {file.filename} for {self.doc_type.value} "
            f"({file.size} bytes, md5 {calculate_md5_checksum(file.content)})"
        )
        return True

    def retake(self):
        self.flow.remove_upload(self.doc_type)

    def upload(self) -> Optional[UploadResponse]:
        """
        Upload the selected file.

        Returns:
            The upload result, or None when nothing was sent
            (no file selected or invalid case id)
        """
        file = self.state.file
        if file is None:
            self.notifier.error(f"Please select your {self.title.lower()} first")
            return None

        try:
            case_id = parse_case_id(self.flow.case_id)
        except ValueError as e:
            self.flow.set_upload_status(self.doc_type, UploadStatus.ERROR, str(e))
            self.notifier.error(str(e))
            return None

        self.flow.set_upload_status(self.doc_type, UploadStatus.UPLOADING)
        result = self.tracker.upload(UploadRequest(
            file=file,
            kyc_case_id=str(case_id),
            document_type=self.doc_type.value,
        ))

        if result.success:
            self.flow.mark_file_uploaded(self.doc_type)
            self.notifier.success(f"{self.title} uploaded successfully")
        else:
            self.flow.set_upload_status(self.doc_type, UploadStatus.ERROR, result.error)
            self.notifier.error(f"Failed to upload {self.title.lower()}. Please try again.")
        return result

    def complete(self) -> bool:
        if not self.is_uploaded:
            self.notifier.error(f"Please upload your {self.title.lower()}")
            return False
        self.flow.complete_step(self.step)
        return True


class AadharUploadSection:
    """Front and back of the Aadhar card, uploaded independently."""

    def __init__(self, flow: StepFlowController, tracker: UploadTracker, max_size_mb: Optional[float] = None):
        self.flow = flow
        self.front = DocumentUploadSection(flow, tracker, DocumentType.AADHAR_FRONT, max_size_mb)
        self.back = DocumentUploadSection(flow, tracker, DocumentType.AADHAR_BACK, max_size_mb)

    @property
    def sections(self) -> tuple:
        return (self.front, self.back)

    def complete(self) -> bool:
        if not (self.front.is_uploaded and self.back.is_uploaded):
            self.flow.notifier.error("Please upload both front and back images of your Aadhar card")
            return False
        self.flow.complete_step(StepId.AADHAR)
        return True


class SelfieSection(DocumentUploadSection):
    """Selfie taken with the camera."""

    def __init__(
        self,
        flow: StepFlowController,
        tracker: UploadTracker,
        capture: Optional[SelfieCapture] = None,
    ):
        super().__init__(flow, tracker, DocumentType.SELFIE)
        self.capture = capture or SelfieCapture(notifier=flow.notifier)
        flow.add_step_listener(self._on_step_change)

    def _on_step_change(self, old: StepId, new: StepId):
        if old == StepId.SELFIE:
            self.capture.close()

    def take_photo(self) -> bool:
        photo = self.capture.capture()
        return photo is not None and self.select(photo)

    def retake(self):
        super().retake()
        self.capture.retake()


class VideoSection(DocumentUploadSection):
    """Verification video recorded with the camera."""

    def __init__(
        self,
        flow: StepFlowController,
        tracker: UploadTracker,
        recorder: Optional[VideoRecorder] = None,
    ):
        super().__init__(flow, tracker, DocumentType.VIDEO)
        self.recorder = recorder or VideoRecorder(notifier=flow.notifier)
        flow.add_step_listener(self._on_step_change)

    def _on_step_change(self, old: StepId, new: StepId):
        if old == StepId.VIDEO:
            self.recorder.close()

    def start_recording(self) -> bool:
        return self.recorder.start()

    def stop_recording(self) -> bool:
        recording = self.recorder.stop()
        return recording is not None and self.select(recording)

    def tick(self) -> bool:
        """Returns True when the recorder auto-stopped and the video was kept."""
        recording = self.recorder.tick()
        return recording is not None and self.select(recording)

    def retake(self):
        super().retake()
        self.recorder.reset()
