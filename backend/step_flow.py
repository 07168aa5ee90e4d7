"""
Step Flow Controller - State machine of the self-service KYC wizard.

Owns:
- The current step (exactly one) and the set of completed steps
- Per-document upload state
- Screen data used to pre-populate the review form

Server progress is authoritative: fetch_progress() replaces local step
state wholesale. Local moves (advance / retreat / complete_step) are
optimistic and reconciled on the next fetch. Once the server reports the
case as submitted the flow is locked on kyc_submitted and the review form
is read-only for good.
"""

import logging
from typing import Callable, Dict, List, Optional, Union

import requests

from config.kyc_schema import (
    BackendStepStatus,
    CaseProgress,
    DocumentType,
    FileUpload,
    KycFormData,
    RegistrationData,
    ScreenData,
    StepId,
    UploadState,
    UploadStatus,
)
from config.step_context import (
    get_required_documents,
    get_step_order,
    map_backend_step,
    new_upload_states,
)
from backend.form_validator import (
    parse_case_id,
    validate_registration,
    validate_review_form,
)
from backend.kyc_api import (
    FETCH_ERRORS,
    KycApiClient,
    KycApiError,
    documents_from_backend,
    form_from_backend_details,
    get_kyc_client,
)
from backend.notifications import Notifier

logger = logging.getLogger(__name__)

StepListener = Callable[[StepId, StepId], None]


class StepFlowController:
    """Drives one KYC case through the wizard."""

    def __init__(
        self,
        case_id: Union[int, str],
        client: Optional[KycApiClient] = None,
        notifier: Optional[Notifier] = None,
    ):
        self.case_id = str(case_id)
        self.client = client or get_kyc_client()
        self.notifier = notifier or Notifier()

        self.step_order: List[StepId] = get_step_order()
        self.current_step: StepId = self.step_order[0]
        self.completed_steps: set[StepId] = set()
        self.uploads: Dict[DocumentType, UploadState] = new_upload_states()

        self.screen_data: Optional[ScreenData] = None
        self.submission_status: Optional[str] = None
        self.kyc_details = None
        self.field_errors: Dict[str, str] = {}

        self._submitted = False
        self._listeners: List[StepListener] = []

    # ------------------------------------------------------------------
    # queries
    # ------------------------------------------------------------------

    @property
    def current_index(self) -> int:
        return self.step_order.index(self.current_step)

    @property
    def review_read_only(self) -> bool:
        return self._submitted

    def is_current_step(self, step: StepId) -> bool:
        return self.current_step == step

    def is_step_complete(self, step: StepId) -> bool:
        return step in self.completed_steps

    def is_next_enabled(self, step: Optional[StepId] = None) -> bool:
        """
        Whether the user may move past a step.
        Upload steps need every required document uploaded (Aadhar: both sides).
        """
        step = step or self.current_step
        if step in (StepId.REVIEW, StepId.SUBMITTED):
            return False

        required = get_required_documents(step)
        if required:
            return all(self.uploads[doc].status == UploadStatus.SUCCESS for doc in required)
        return self.is_step_complete(step)

    # ------------------------------------------------------------------
    # navigation
    # ------------------------------------------------------------------

    def add_step_listener(self, listener: StepListener):
        """Register a callback run as listener(old_step, new_step) on every step change."""
        self._listeners.append(listener)

    def _set_current(self, step: StepId):
        if self._submitted:
            step = StepId.SUBMITTED
        if step == self.current_step:
            return
        old = self.current_step
        self.current_step = step
        logger.info(f"[StepFlow] Case {self.case_id}: {old.value} -> {step.value}")
        for listener in list(self._listeners):
            listener(old, step)

    def advance(self):
        """Move to the next step. kyc_submitted is only reached through a confirmed submission."""
        index = self.current_index
        if index >= len(self.step_order) - 1:
            return
        next_step = self.step_order[index + 1]
        if next_step == StepId.SUBMITTED:
            return
        self._set_current(next_step)

    def retreat(self):
        if self.current_step == StepId.SUBMITTED:
            return
        index = self.current_index
        if index == 0:
            return
        self._set_current(self.step_order[index - 1])

    def mark_complete(self, step: StepId):
        self.completed_steps.add(StepId(step))

    def complete_step(self, step: StepId):
        """Optimistically complete a step, move past it, then reconcile with the server."""
        step = StepId(step)
        self.mark_complete(step)
        index = self.step_order.index(step)
        if index < len(self.step_order) - 1:
            next_step = self.step_order[index + 1]
            if next_step != StepId.SUBMITTED:
                self._set_current(next_step)
        self.fetch_progress()

    # ------------------------------------------------------------------
    # server reconciliation
    # ------------------------------------------------------------------

    def fetch_progress(self) -> bool:
        """
        Replace step state with the server's view of the case.

        Returns:
            True if progress was applied, False if the fetch failed
            (local state is kept)
        """
        try:
            progress = self.client.get_progress(self.case_id)
        except FETCH_ERRORS as e:
            logger.error(f"[StepFlow] Failed to fetch progress for case {self.case_id}: {e}")
            return False

        self.apply_progress(progress)
        return True

    def apply_progress(self, progress: CaseProgress):
        completed = set()
        for step in progress.steps:
            mapped = map_backend_step(step.id)
            if mapped and step.status == BackendStepStatus.COMPLETED.value:
                completed.add(mapped)

        if progress.kyc_submitted is not None:
            self.submission_status = progress.kyc_submitted.status

        if (
            StepId.SUBMITTED in completed
            or self.submission_status == BackendStepStatus.COMPLETED.value
        ):
            self._lock_submitted()

        if self._submitted:
            completed.add(StepId.SUBMITTED)
        self.completed_steps = completed

        current = map_backend_step(progress.current_step)
        if current is not None:
            self._set_current(current)
        elif self._submitted:
            self._set_current(StepId.SUBMITTED)

    def _lock_submitted(self):
        if not self._submitted:
            logger.info(f"[StepFlow] Case {self.case_id} is submitted, review is now read-only")
        self._submitted = True
        self._set_current(StepId.SUBMITTED)

    def load_screen_data(self) -> bool:
        """Fetch case details and documents for the review step."""
        try:
            self.screen_data = self.client.get_screen_data(self.case_id)
        except FETCH_ERRORS as e:
            logger.error(f"[StepFlow] Failed to fetch KYC screen data for case {self.case_id}: {e}")
            return False

        submitted = self.screen_data.kyc_submitted
        if submitted is not None:
            self.submission_status = submitted.status
            if submitted.status == BackendStepStatus.COMPLETED.value:
                self._lock_submitted()
        return True

    def review_form(self) -> KycFormData:
        """Review form pre-populated from screen data."""
        if self.screen_data is None:
            return KycFormData()
        return form_from_backend_details(self.screen_data.details)

    def review_documents(self) -> Dict[DocumentType, str]:
        if self.screen_data is None:
            return {}
        return documents_from_backend(self.screen_data.documents)

    # ------------------------------------------------------------------
    # uploads
    # ------------------------------------------------------------------

    def set_upload_file(self, doc_type: DocumentType, file: FileUpload, preview: Optional[str] = None):
        state = self.uploads[DocumentType(doc_type)]
        state.file = file
        state.preview = preview
        state.status = UploadStatus.PENDING
        state.error = None

    def set_upload_status(self, doc_type: DocumentType, status: UploadStatus, error: Optional[str] = None):
        state = self.uploads[DocumentType(doc_type)]
        state.status = UploadStatus(status)
        state.error = error

    def mark_file_uploaded(self, doc_type: DocumentType):
        self.set_upload_status(doc_type, UploadStatus.SUCCESS)

    def remove_upload(self, doc_type: DocumentType):
        doc_type = DocumentType(doc_type)
        self.uploads[doc_type] = new_upload_states()[doc_type]

    # ------------------------------------------------------------------
    # forms
    # ------------------------------------------------------------------

    def _numeric_case_id(self) -> Optional[int]:
        try:
            return parse_case_id(self.case_id)
        except ValueError as e:
            self.notifier.error(str(e))
            return None

    def register(self, data: RegistrationData) -> bool:
        """Validate and submit the registration step."""
        is_valid, self.field_errors = validate_registration(data)
        if not is_valid:
            self.notifier.error(next(iter(self.field_errors.values())))
            return False

        case_id = self._numeric_case_id()
        if case_id is None:
            return False

        try:
            self.client.register(case_id, data)
        except KycApiError as e:
            self.notifier.error(e.message or "Failed to register user")
            return False
        except requests.RequestException as e:
            logger.error(f"[StepFlow] Registration failed for case {self.case_id}: {e}")
            self.notifier.error("Failed to register. Please try again.")
            return False

        self.mark_complete(StepId.REGISTRATION)
        self._set_current(StepId.AADHAR)
        self.notifier.success("Registration successful!")
        self.fetch_progress()
        return True

    def submit_review(self, form: KycFormData) -> bool:
        """Validate and submit the review form. Locks the flow on success."""
        if self.review_read_only:
            self.notifier.error("KYC has already been submitted")
            return False

        self.field_errors = validate_review_form(form)
        if self.field_errors:
            self.notifier.error("Please fill in all required fields")
            return False

        case_id = self._numeric_case_id()
        if case_id is None:
            return False

        try:
            self.kyc_details = self.client.submit_details(case_id, form)
        except KycApiError as e:
            self.notifier.error(e.message or "Failed to submit KYC")
            return False
        except requests.RequestException as e:
            logger.error(f"[StepFlow] Submission failed for case {self.case_id}: {e}")
            self.notifier.error("Failed to submit KYC. Please try again.")
            return False

        self.mark_complete(StepId.REVIEW)
        self.fetch_progress()
        self.completed_steps.update({StepId.REVIEW, StepId.SUBMITTED})
        self._lock_submitted()
        self.load_screen_data()
        self.notifier.success("KYC submitted successfully")
        return True
