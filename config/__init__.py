# Config module
from .settings import settings, validate_settings, configure_logging
from .step_context import (
    get_steps,
    get_step,
    get_step_order,
    map_backend_step,
    get_required_documents,
    get_step_for_document,
    get_document_spec,
    get_high_risk_countries,
    new_upload_states,
)
from .kyc_schema import (
    StepId,
    Step,
    UploadStatus,
    DocumentSide,
    DocumentType,
    MediaKind,
    UploadServiceType,
    BackendStepStatus,
    FileUpload,
    UploadState,
    UploadRequest,
    UploadResponse,
    StepProgress,
    SubmissionStatus,
    CaseProgress,
    ScreenData,
    Address,
    KycFormData,
    RegistrationData,
)

__all__ = [
    "settings",
    "validate_settings",
    "configure_logging",
    "get_steps",
    "get_step",
    "get_step_order",
    "map_backend_step",
    "get_required_documents",
    "get_step_for_document",
    "get_document_spec",
    "get_high_risk_countries",
    "new_upload_states",
    "StepId",
    "Step",
    "UploadStatus",
    "DocumentSide",
    "DocumentType",
    "MediaKind",
    "UploadServiceType",
    "BackendStepStatus",
    "FileUpload",
    "UploadState",
    "UploadRequest",
    "UploadResponse",
    "StepProgress",
    "SubmissionStatus",
    "CaseProgress",
    "ScreenData",
    "Address",
    "KycFormData",
    "RegistrationData",
]
