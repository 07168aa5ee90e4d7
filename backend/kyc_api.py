"""
KYC API Client - REST calls to the KYC backend.

Endpoints used by the self-service flow:
- GET  /kyc/progress/{case_id}     server-side step progress
- GET  /kyc/screen-data/{case_id}  case, details and documents for review
- POST /kyc/register               registration step
- POST /kyc/details                review form submission
- GET  /kyc/details?kyc_case_id=   submitted details
- POST /kyc/case                   create a new case (multipart user_id)
- GET  /customers                  customer list
- GET  /files/{path}               signed download URL for a stored document

Non-2xx responses raise KycApiError. The message is the body's `detail`
when the backend sends one.
"""

import logging
from typing import Any, Optional, Union
from urllib.parse import quote

import requests
from pydantic import ValidationError

from config.settings import settings
from config.kyc_schema import (
    Address,
    CaseProgress,
    DocumentType,
    KycFormData,
    RegistrationData,
    ScreenData,
)

logger = logging.getLogger(__name__)


class KycApiError(Exception):
    """Raised when the KYC backend returns an error response."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


# Read-call failures that leave the caller's state untouched
FETCH_ERRORS = (KycApiError, requests.RequestException, ValidationError, ValueError)


# ============================================================================
# CLIENT
# ============================================================================

class KycApiClient:
    """Thin requests-based client for the KYC backend."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
    ):
        self.base_url = (base_url or settings.API_URL).rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout if timeout is not None else settings.REQUEST_TIMEOUT

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _request(self, method: str, path: str, **kwargs) -> Any:
        kwargs.setdefault("timeout", self.timeout)
        headers = kwargs.pop("headers", {})
        headers.setdefault("Accept", "application/json")

        response = self.session.request(method, self._url(path), headers=headers, **kwargs)

        if not response.ok:
            detail = None
            try:
                body = response.json()
                if isinstance(body, dict):
                    detail = body.get("detail")
            except ValueError:
                pass
            message = str(detail) if detail else f"HTTP error! status: {response.status_code}"
            logger.warning(f"[KYC API] {method} {path} failed: {message}")
            raise KycApiError(message, status_code=response.status_code)

        if "application/json" in response.headers.get("Content-Type", ""):
            return response.json()
        return response.text

    # ------------------------------------------------------------------
    # self-service flow
    # ------------------------------------------------------------------

    def get_progress(self, case_id: Union[int, str]) -> CaseProgress:
        data = self._request("GET", f"/kyc/progress/{case_id}")
        logger.debug(f"[KYC API] Progress response: {data}")
        return CaseProgress.model_validate(data)

    def get_screen_data(self, case_id: Union[int, str]) -> ScreenData:
        data = self._request("GET", f"/kyc/screen-data/{case_id}")
        return ScreenData.model_validate(data)

    def register(self, case_id: int, data: RegistrationData) -> Any:
        body = data.model_dump()
        body["kyc_case_id"] = int(case_id)
        return self._request(
            "POST", "/kyc/register",
            json=body,
            headers={"Content-Type": "application/json"},
        )

    def submit_details(self, case_id: int, form: KycFormData) -> Any:
        return self._request(
            "POST", "/kyc/details",
            json=to_backend_details(form, case_id),
            headers={"Content-Type": "application/json"},
        )

    def get_details(self, case_id: Union[int, str]) -> Any:
        return self._request("GET", "/kyc/details", params={"kyc_case_id": case_id})

    # ------------------------------------------------------------------
    # cases, customers, files
    # ------------------------------------------------------------------

    def create_case(self, user_id: Union[int, str]) -> str:
        """Create a KYC case and return its id."""
        # Multipart body, same as a browser FormData post
        data = self._request("POST", "/kyc/case", files={"user_id": (None, str(user_id))})
        case_id = data.get("kyc_case_id") if isinstance(data, dict) else None
        if case_id is None:
            raise KycApiError("Backend did not return a kyc_case_id")
        logger.info(f"[KYC API] Created case {case_id} for user {user_id}")
        return str(case_id)

    def list_customers(self) -> list:
        data = self._request("GET", "/customers")
        return data if isinstance(data, list) else []

    def get_file_url(self, s3_path: str) -> str:
        """Resolve a stored file path to a download URL. Falls back to the path itself."""
        try:
            data = self._request("GET", f"/files/{quote(s3_path, safe='')}")
            if isinstance(data, dict) and data.get("download_url"):
                return data["download_url"]
        except (KycApiError, requests.RequestException) as e:
            logger.warning(f"[KYC API] Could not resolve file URL for {s3_path}: {e}")
        return s3_path

    def check_health(self) -> bool:
        try:
            self._request("GET", "/health")
            return True
        except (KycApiError, requests.RequestException) as e:
            logger.warning(f"[KYC API] Health check failed: {e}")
            return False


# ============================================================================
# FIELD MAPPING
# ============================================================================

def format_address(address: Address) -> str:
    return f"{address.street}, {address.city}, {address.state}, {address.pincode}"


def parse_address(value: Optional[str]) -> Address:
    """Split 'street, city, state, pincode' back into its parts."""
    if not value:
        return Address()
    parts = [part.strip() for part in value.split(",")]
    parts += [""] * (4 - len(parts))
    street, city, state, pincode = parts[:4]
    return Address(street=street, city=city, state=state, pincode=pincode)


def to_backend_details(form: KycFormData, case_id: Union[int, str]) -> dict:
    """Review form -> POST /kyc/details body."""
    return {
        "name": form.name,
        "dob": form.date_of_birth,
        "gender": form.gender,
        "address": format_address(form.address),
        "father_name": form.father_name,
        "aadhar_number": form.aadhar_number,
        "pan_number": form.pan_number,
        "email": form.email,
        "phone": form.phone,
        "occupation": form.occupation,
        "source_of_funds": form.source_of_funds,
        "is_pep": form.is_pep,
        "annual_income": form.annual_income,
        "employer": form.employer,
        "alternate_phone": form.alternate_phone,
        "business_type": form.business_type,
        "pep_details": form.pep_details,
        "kyc_case_id": int(case_id),
    }


def form_from_backend_details(details: Optional[dict]) -> KycFormData:
    """Backend details record -> review form, missing values left blank."""
    if not details:
        return KycFormData()

    def text(key: str) -> str:
        value = details.get(key)
        return "" if value is None else str(value)

    return KycFormData(
        name=text("name"),
        date_of_birth=text("dob"),
        gender=text("gender"),
        address=parse_address(details.get("address")),
        father_name=text("father_name"),
        aadhar_number=text("aadhar_number"),
        pan_number=text("pan_number"),
        email=text("email"),
        phone=text("phone"),
        alternate_phone=text("alternate_phone"),
        occupation=text("occupation"),
        employer=text("employer"),
        business_type=text("business_type"),
        source_of_funds=text("source_of_funds"),
        is_pep=bool(details.get("is_pep") or False),
        pep_details=text("pep_details"),
        annual_income=text("annual_income"),
        purpose_of_account=text("purpose_of_account"),
        nationality=text("nationality"),
        marital_status=text("marital_status"),
        nominee_name=text("nominee_name"),
        nominee_relation=text("nominee_relation"),
        nominee_contact=text("nominee_contact"),
    )


def documents_from_backend(documents: Optional[list]) -> dict[DocumentType, str]:
    """Map backend document records to {doc_type: file_path}."""
    known = {doc.value for doc in DocumentType}
    doc_map = {}
    for doc in documents or []:
        doc_type = doc.get("doc_type")
        if doc_type in known and doc.get("file_path"):
            doc_map[DocumentType(doc_type)] = doc["file_path"]
    return doc_map


# ============================================================================
# MODULE-LEVEL INSTANCE
# ============================================================================

_client = None


def get_kyc_client() -> KycApiClient:
    """Get singleton client built from settings."""
    global _client
    if _client is None:
        _client = KycApiClient()
    return _client
