"""
Schema definitions for the self-service KYC flow.
These models describe the wizard steps, per-document upload state and the
request/response shapes exchanged with the KYC backend and upload services.
"""

import mimetypes
from enum import Enum
from pathlib import Path
from typing import Optional, List, Any, Union

from pydantic import BaseModel, Field, ConfigDict


class StepId(str, Enum):
    """Steps of the self-KYC wizard, in order."""
    REGISTRATION = "registration"
    AADHAR = "aadhar"
    PANCARD = "pancard"
    PASSPORT = "passport"
    PHOTO = "photo"
    SELFIE = "selfie"
    VIDEO = "video"
    REVIEW = "review"
    SUBMITTED = "kyc_submitted"


class UploadStatus(str, Enum):
    """Lifecycle of a single document upload."""
    PENDING = "pending"
    UPLOADING = "uploading"
    SUCCESS = "success"
    ERROR = "error"


class DocumentSide(str, Enum):
    """Which side of a dual-sided document is being uploaded."""
    FRONT = "front"
    BACK = "back"


class DocumentType(str, Enum):
    """Document types as the backend names them (doc_type)."""
    AADHAR_FRONT = "aadhar_front"
    AADHAR_BACK = "aadhar_back"
    PANCARD = "pancard"
    PASSPORT = "passport"
    PHOTO = "photo"
    SELFIE = "selfie"
    VIDEO = "video"


class MediaKind(str, Enum):
    IMAGE = "image"
    PDF = "pdf"
    VIDEO = "video"


class UploadServiceType(str, Enum):
    """Interchangeable upload backends."""
    EXISTING = "existing"  # multipart form to the KYC API
    NEW = "new"            # base64 JSON to the Lambda endpoint


class BackendStepStatus(str, Enum):
    NOT_STARTED = "not_started"
    PENDING = "pending"
    COMPLETED = "completed"


# ============================================================================
# STEPS & FILES
# ============================================================================

class Step(BaseModel):
    """A single wizard step. Immutable once loaded."""
    model_config = ConfigDict(frozen=True)

    id: StepId
    title: str
    description: str


class FileUpload(BaseModel):
    """An in-memory file selected, captured or recorded by the user."""
    filename: str
    content: bytes = Field(repr=False)
    content_type: str = "application/octet-stream"

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def extension(self) -> str:
        return Path(self.filename).suffix.lower()

    @classmethod
    def from_path(cls, path: Union[str, Path], content_type: Optional[str] = None) -> "FileUpload":
        """Read a file from disk."""
        path = Path(path)
        guessed, _ = mimetypes.guess_type(path.name)
        return cls(
            filename=path.name,
            content=path.read_bytes(),
            content_type=content_type or guessed or "application/octet-stream",
        )

    @classmethod
    def from_uploaded(cls, uploaded: Any) -> "FileUpload":
        """Wrap an object exposing name / type / getvalue() (e.g. a Streamlit UploadedFile)."""
        content_type = getattr(uploaded, "type", None)
        if not content_type:
            content_type, _ = mimetypes.guess_type(uploaded.name)
        return cls(
            filename=uploaded.name,
            content=uploaded.getvalue(),
            content_type=content_type or "application/octet-stream",
        )


class UploadState(BaseModel):
    """Client-side state of one document type for the current session."""
    media_kind: MediaKind = MediaKind.IMAGE
    file: Optional[FileUpload] = None
    preview: Optional[str] = None  # data URL for images
    status: UploadStatus = UploadStatus.PENDING
    error: Optional[str] = None
    side: Optional[DocumentSide] = None


# ============================================================================
# UPLOAD SERVICE
# ============================================================================

class UploadRequest(BaseModel):
    """A single upload attempt. Built fresh for every attempt."""
    file: FileUpload
    kyc_case_id: str
    document_type: str
    user_id: Optional[str] = None


class UploadResponse(BaseModel):
    """
    Normalized upload result.
    Same shape regardless of which upload backend served the request.
    """
    success: bool
    document_id: Optional[Union[int, str]] = None
    s3_url: Optional[str] = None
    s3_key: Optional[str] = None
    original_filename: Optional[str] = None
    file_size: Optional[int] = None
    content_type: Optional[str] = None
    uploaded_at: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def failure(cls, error: str) -> "UploadResponse":
        return cls(success=False, error=error or "Upload failed")


# ============================================================================
# BACKEND PROGRESS & SCREEN DATA
# ============================================================================

class StepProgress(BaseModel):
    """Server status of one backend step."""
    id: str
    status: str = BackendStepStatus.NOT_STARTED.value


class SubmissionStatus(BaseModel):
    status: str = "pending"


class CaseProgress(BaseModel):
    """Response of GET /kyc/progress/{case_id}."""
    current_step: Optional[str] = None
    steps: List[StepProgress] = Field(default_factory=list)
    kyc_submitted: Optional[SubmissionStatus] = None


class ScreenData(BaseModel):
    """Response of GET /kyc/screen-data/{case_id}."""
    case: Optional[dict] = None
    details: Optional[dict] = None
    documents: List[dict] = Field(default_factory=list)
    status: Optional[Any] = None
    kyc_submitted: Optional[SubmissionStatus] = None


# ============================================================================
# FORMS
# ============================================================================

class Address(BaseModel):
    street: str = ""
    city: str = ""
    state: str = ""
    pincode: str = ""


class KycFormData(BaseModel):
    """
    Review form model.
    The first block is auto-populated from documents, the rest is user input.
    """
    # Auto-populated from documents
    name: str = ""
    date_of_birth: str = ""
    gender: str = ""
    address: Address = Field(default_factory=Address)
    father_name: str = ""
    aadhar_number: str = ""
    pan_number: str = ""

    # User input
    email: str = ""
    phone: str = ""
    alternate_phone: str = ""
    occupation: str = ""
    employer: str = ""
    business_type: str = ""
    source_of_funds: str = ""
    is_pep: bool = False
    pep_details: str = ""
    annual_income: str = ""
    purpose_of_account: str = ""

    # Additional
    nationality: str = ""
    marital_status: str = ""
    nominee_name: str = ""
    nominee_relation: str = ""
    nominee_contact: str = ""


class RegistrationData(BaseModel):
    """Registration step form."""
    email: str
    phone: str
    password: str
    # Checked locally, never sent
    confirm_password: str = Field("", exclude=True, repr=False)
    email_verified: bool = False
    phone_verified: bool = False
    security_questions: List[str] = Field(default_factory=list)
