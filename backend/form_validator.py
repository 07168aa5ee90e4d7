"""
Form Validator - Validation logic for the self-service KYC forms.

Provides:
- Validators for contact details and passwords
- Registration and review form validation with per-field errors
- Case id parsing and upload file checks

Everything here runs before any network call.
"""

import re
from typing import Dict, Optional, Tuple

from config.kyc_schema import FileUpload, KycFormData, RegistrationData


EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"
PHONE_PATTERN = r"^[0-9]{10}$"
PASSWORD_PATTERN = r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]{8,}$"

INVALID_CASE_ID = "Invalid KYC case ID"

# Review form fields filled from documents, never editable by the user
DOCUMENT_DERIVED_FIELDS = {
    "name",
    "date_of_birth",
    "gender",
    "father_name",
    "aadhar_number",
    "pan_number",
    "address",
}

# Review form fields the user must fill, with their labels
REQUIRED_REVIEW_FIELDS = {
    "email": "Email",
    "phone": "Phone number",
    "occupation": "Occupation",
    "source_of_funds": "Source of funds",
    "annual_income": "Annual income",
}


# ============================================================================
# CONTACT & CREDENTIALS
# ============================================================================

def validate_email(email: str) -> Tuple[bool, Optional[str]]:
    """
    Validate an email address.

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not email:
        return False, "Email is required"

    if not re.match(EMAIL_PATTERN, email.strip()):
        return False, "Invalid email format"

    return True, None


def validate_phone(phone: str) -> Tuple[bool, Optional[str]]:
    """Validate a 10 digit phone number."""
    if not phone:
        return False, "Phone number is required"

    phone = phone.strip().replace(" ", "").replace("-", "")

    if not re.match(PHONE_PATTERN, phone):
        return False, "Phone number must be 10 digits"

    return True, None


def validate_password(password: str) -> Tuple[bool, Optional[str]]:
    """
    Validate password strength.
    At least 8 characters with upper case, lower case, a digit and one of @$!%*?&

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not password:
        return False, "Password is required"

    if len(password) < 8:
        return False, "Password must be at least 8 characters"

    if not re.match(PASSWORD_PATTERN, password):
        return False, (
            "Password must contain at least one uppercase letter, one lowercase letter, "
            "one number and one special character"
        )

    return True, None


# ============================================================================
# FORM VALIDATORS
# ============================================================================

def validate_registration(data: RegistrationData) -> Tuple[bool, Dict[str, str]]:
    """
    Validate the registration step.
    Email and phone must both be verified and the passwords must match.

    Returns:
        Tuple of (is_valid, field_errors)
    """
    field_errors = {}

    for field_id, validator in (
        ("email", validate_email),
        ("phone", validate_phone),
        ("password", validate_password),
    ):
        is_valid, error = validator(getattr(data, field_id))
        if not is_valid:
            field_errors[field_id] = error

    if data.password != data.confirm_password:
        field_errors["confirm_password"] = "Passwords do not match"

    if not (data.email_verified and data.phone_verified):
        field_errors["verification"] = "Please verify your email and phone number"

    return len(field_errors) == 0, field_errors


def validate_review_form(form: KycFormData) -> Dict[str, str]:
    """
    Validate the user-editable part of the review form.
    Document-derived fields are not checked; they come from the backend.

    Returns:
        Dict of field_id -> error message (empty when valid)
    """
    field_errors = {}

    for field_id, label in REQUIRED_REVIEW_FIELDS.items():
        value = getattr(form, field_id)
        if not str(value).strip():
            field_errors[field_id] = f"{label} is required"

    if "email" not in field_errors:
        is_valid, error = validate_email(form.email)
        if not is_valid:
            field_errors["email"] = error

    if "phone" not in field_errors:
        is_valid, error = validate_phone(form.phone)
        if not is_valid:
            field_errors["phone"] = error

    if form.alternate_phone:
        is_valid, error = validate_phone(form.alternate_phone)
        if not is_valid:
            field_errors["alternate_phone"] = error

    if form.is_pep and not form.pep_details.strip():
        field_errors["pep_details"] = "Please provide PEP details"

    return field_errors


def is_field_editable(field_id: str, read_only: bool = False) -> bool:
    """Nothing is editable once submitted; document-derived fields never are."""
    if read_only:
        return False
    return field_id not in DOCUMENT_DERIVED_FIELDS


# ============================================================================
# CASE ID & FILES
# ============================================================================

def parse_case_id(value) -> int:
    """
    Parse a KYC case id.

    Raises:
        ValueError: If the value is not a base-10 integer
    """
    text = str(value).strip() if value is not None else ""
    if not re.match(r"^-?\d+$", text):
        raise ValueError(INVALID_CASE_ID)
    return int(text)


def validate_upload_file(
    file: FileUpload,
    spec: dict,
    max_size_mb: Optional[float] = None
) -> Tuple[bool, Optional[str]]:
    """
    Check a file against a document's accept rules.

    Args:
        file: Selected file
        spec: Document spec with 'title' and 'accept' {mime: [extensions]}
        max_size_mb: Size limit (no limit when None)

    Returns:
        Tuple of (is_valid, error_message)
    """
    if file is None or not file.content:
        return False, "Please select a file"

    accept = spec.get("accept", {})
    if accept:
        mime = file.content_type.split(";")[0].strip().lower()
        extensions = [ext for exts in accept.values() for ext in exts]
        if mime not in accept and file.extension not in extensions:
            return False, f"File format not accepted. Use: {', '.join(extensions)}"

    if max_size_mb is not None and file.size > max_size_mb * 1024 * 1024:
        return False, f"File too large. Maximum size is {max_size_mb}MB"

    return True, None
