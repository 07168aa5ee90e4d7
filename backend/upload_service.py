"""
Upload Service Router: one upload call, two interchangeable backends.

- existing: multipart form POST to the KYC API ({API_URL}/kyc/upload)
- new:      base64 JSON POST to the Lambda upload endpoint

The service is chosen once, when the router is constructed. Both strategies
return the same UploadResponse shape, and every exception raised while
uploading is converted into UploadResponse(success=False, error=...), so
callers only ever check `success`.
"""

import base64
import logging
from typing import Optional, Union

import requests

from config.settings import settings
from config.kyc_schema import (
    FileUpload,
    UploadRequest,
    UploadResponse,
    UploadServiceType,
)

logger = logging.getLogger(__name__)

EXISTING_UPLOAD_PATH = "/kyc/upload"

# Multipart field names of the existing upload endpoint.
# Call sites in the wild disagree (kycCaseId / kyc_case_id); see DESIGN.md.
EXISTING_FORM_FIELDS = {
    "case_id": "kyc_case_id",
    "document_type": "doc_type",
}


class FileEncodingError(Exception):
    """Raised when a file cannot be read or encoded before upload."""
    pass


# ============================================================================
# ENCODING HELPERS
# ============================================================================

def file_to_base64(file: FileUpload) -> str:
    """
    Encode file content as base64 text.
    Content is always treated as raw bytes, whatever it starts with.

    Raises:
        FileEncodingError: If the file is empty
    """
    if not file.content:
        raise FileEncodingError("Failed to convert file to base64: no data found")

    encoded = base64.b64encode(file.content).decode("ascii")

    logger.debug(
        f"[Upload] File converted to base64: {file.filename}, size: {file.size}, "
        f"base64 length: {len(encoded)}"
    )
    return encoded


def clean_content_type(content_type: str) -> str:
    """Drop codec parameters from video content types ('video/webm;codecs=vp8' -> 'video/webm')."""
    if content_type and content_type.startswith("video/"):
        return content_type.split(";")[0].strip()
    return content_type


def _truncate(value: str, length: int = 50) -> str:
    return value[:length] + "..." if len(value) > length else value


# ============================================================================
# ROUTER
# ============================================================================

class UploadServiceRouter:
    """
    Uploads a file through the configured backend.

    All settings are resolved at construction time; pass values explicitly
    to get a router that does not depend on the environment.
    """

    def __init__(
        self,
        service: Optional[Union[UploadServiceType, str]] = None,
        api_url: Optional[str] = None,
        upload_api_url: Optional[str] = None,
        health_url: Optional[str] = None,
        default_user_id: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
    ):
        self.service = UploadServiceType(service or settings.UPLOAD_SERVICE)
        self.api_url = (api_url or settings.API_URL).rstrip("/")
        self.upload_api_url = upload_api_url or settings.UPLOAD_API_URL
        self.health_url = health_url or settings.UPLOAD_HEALTH_URL
        self.default_user_id = default_user_id or settings.DEFAULT_USER_ID
        self.session = session or requests.Session()
        self.timeout = timeout if timeout is not None else settings.REQUEST_TIMEOUT

    @property
    def existing_upload_url(self) -> str:
        return f"{self.api_url}{EXISTING_UPLOAD_PATH}"

    @property
    def is_new_service(self) -> bool:
        return self.service == UploadServiceType.NEW

    @property
    def is_existing_service(self) -> bool:
        return self.service == UploadServiceType.EXISTING

    def upload_file(self, request: UploadRequest) -> UploadResponse:
        """Upload through the active service. Never raises."""
        logger.info(f"[Upload] Using upload service: {self.service.value}")

        try:
            if self.service == UploadServiceType.NEW:
                return self.upload_to_new_service(request)
            return self.upload_to_existing_service(request)
        except Exception as e:
            logger.error(f"[Upload] {self.service.value} upload service error: {e}")
            return UploadResponse.failure(str(e) or "Upload failed")

    # ------------------------------------------------------------------
    # existing service: multipart form
    # ------------------------------------------------------------------

    def upload_to_existing_service(self, request: UploadRequest) -> UploadResponse:
        file = request.file
        data = {
            EXISTING_FORM_FIELDS["case_id"]: str(request.kyc_case_id),
            EXISTING_FORM_FIELDS["document_type"]: request.document_type,
        }
        files = {"file": (file.filename, file.content, file.content_type)}

        response = self.session.post(
            self.existing_upload_url,
            data=data,
            files=files,
            headers={"Accept": "application/json"},
            timeout=self.timeout,
        )

        if not response.ok:
            return UploadResponse.failure(
                f"Upload failed: {response.status_code} {response.reason or ''}".strip()
            )

        result = response.json()
        return UploadResponse(
            success=bool(result.get("success", False)),
            document_id=result.get("documentId"),
            s3_url=result.get("s3Url"),
            error=result.get("error"),
        )

    # ------------------------------------------------------------------
    # new service: base64 JSON (Lambda)
    # ------------------------------------------------------------------

    def build_new_service_payload(self, request: UploadRequest) -> dict:
        """
        Build the JSON body for the Lambda endpoint.

        Raises:
            FileEncodingError: If the file cannot be encoded
            ValueError: If case id or user id are not numeric
        """
        file = request.file
        return {
            "fileBuffer": file_to_base64(file),
            "originalFilename": file.filename,
            "contentType": clean_content_type(file.content_type),
            "kycCaseId": int(request.kyc_case_id),
            "docType": request.document_type,
            "userId": int(request.user_id or self.default_user_id),
        }

    def upload_to_new_service(self, request: UploadRequest) -> UploadResponse:
        payload = self.build_new_service_payload(request)

        logger.info(f"[Upload] Upload payload: {dict(payload, fileBuffer=_truncate(payload['fileBuffer']))}")

        response = self.session.post(
            self.upload_api_url,
            json=payload,
            headers={"Content-Type": "application/json"},
            timeout=self.timeout,
        )

        if not response.ok:
            error_text = response.text.strip()
            logger.error(f"[Upload] Upload response error: {error_text}")
            return UploadResponse.failure(
                error_text or f"Upload failed: {response.status_code} {response.reason or ''}".strip()
            )

        result = response.json()
        success = bool(result.get("success", False))
        return UploadResponse(
            success=success,
            document_id=result.get("documentId"),
            s3_url=result.get("s3Url"),
            s3_key=result.get("s3Key"),
            original_filename=result.get("originalFilename"),
            file_size=result.get("fileSize"),
            content_type=result.get("contentType"),
            uploaded_at=result.get("uploadedAt"),
            error=None if success else (result.get("error") or result.get("message") or "Upload failed"),
        )

    # ------------------------------------------------------------------
    # utilities
    # ------------------------------------------------------------------

    def is_new_service_available(self) -> bool:
        """Health check of the Lambda service. Any failure means unavailable."""
        try:
            response = self.session.get(self.health_url, timeout=self.timeout)
            return response.ok
        except Exception as e:
            logger.warning(f"[Upload] Health check failed: {e}")
            return False

    def test_new_service(self, test_file: FileUpload) -> UploadResponse:
        """Send a test file through the active service."""
        return self.upload_file(UploadRequest(
            file=test_file,
            kyc_case_id="1",
            document_type="test-document",
            user_id="1",
        ))

    def get_upload_service_config(self) -> dict:
        return {
            "active_service": self.service.value,
            "new_service_url": self.upload_api_url,
            "existing_service_url": self.existing_upload_url,
            "is_new_service": self.is_new_service,
            "is_existing_service": self.is_existing_service,
        }


# ============================================================================
# MODULE-LEVEL INSTANCE
# ============================================================================

_router = None


def get_upload_router() -> UploadServiceRouter:
    """Get singleton router built from settings."""
    global _router
    if _router is None:
        _router = UploadServiceRouter()
    return _router


def upload_file(request: UploadRequest) -> UploadResponse:
    """Convenience function: upload through the default router."""
    return get_upload_router().upload_file(request)
