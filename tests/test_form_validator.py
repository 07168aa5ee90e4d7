"""
Test Suite: Form Validation

Tests:
1. Email, phone and password
2. Registration form
3. Review form and field editability
4. Case id parsing
5. Upload file checks
"""

import sys
import os

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from backend.form_validator import (
    is_field_editable,
    parse_case_id,
    validate_email,
    validate_password,
    validate_phone,
    validate_registration,
    validate_review_form,
    validate_upload_file,
)
from config.kyc_schema import DocumentType, FileUpload, KycFormData, RegistrationData
from config.step_context import get_document_spec


def test_contact_and_password():
    """Email, phone and password rules."""
    print("\nTEST 1: Contact Details and Password")
    print("-" * 40)

    assert validate_email("asha@example.com") == (True, None)
    assert validate_email("asha@example")[0] is False
    assert validate_email("asha @example.com")[0] is False
    assert validate_email("")[1] == "Email is required"

    assert validate_phone("9876543210") == (True, None)
    assert validate_phone("98765 43210") == (True, None)
    assert validate_phone("987654321")[0] is False
    assert validate_phone("98765432ab")[0] is False

    assert validate_password("Secret@123") == (True, None)
    assert validate_password("Sec@1")[1] == "Password must be at least 8 characters"
    assert validate_password("secret@123")[0] is False
    assert validate_password("Secret1234")[0] is False
    assert validate_password("Secret#123")[0] is False
    print("   '#' is not an accepted special character")

    print(" PASSED: Contact details and password")


def test_registration():
    """Registration returns one error per invalid field."""
    print("\nTEST 2: Registration Form")
    print("-" * 40)

    valid = RegistrationData(
        email="asha@example.com", phone="9876543210",
        password="Secret@123", confirm_password="Secret@123",
        email_verified=True, phone_verified=True,
    )
    ok, errors = validate_registration(valid)
    assert ok is True and errors == {}

    ok, errors = validate_registration(valid.model_copy(update={"email": "asha", "phone": "98"}))
    assert ok is False
    assert set(errors) == {"email", "phone"}

    ok, errors = validate_registration(valid.model_copy(update={"confirm_password": "Secret@124"}))
    assert ok is False
    assert errors == {"confirm_password": "Passwords do not match"}

    ok, errors = validate_registration(valid.model_copy(update={"phone_verified": False}))
    assert ok is False
    assert errors == {"verification": "Please verify your email and phone number"}
    print("   Unverified contact details are rejected")

    # The confirmation is never part of the request body
    assert "confirm_password" not in valid.model_dump()

    print(" PASSED: Registration form")


def test_review_form():
    """Required fields, formats and PEP details."""
    print("\nTEST 3: Review Form")
    print("-" * 40)

    errors = validate_review_form(KycFormData())
    assert set(errors) == {"email", "phone", "occupation", "source_of_funds", "annual_income"}
    assert errors["email"] == "Email is required"

    form = KycFormData(
        email="asha@example.com", phone="9876543210", occupation="Engineer",
        source_of_funds="salary", annual_income="10-25",
    )
    assert validate_review_form(form) == {}

    pep = form.model_copy(update={"is_pep": True})
    assert set(validate_review_form(pep)) == {"pep_details"}
    pep = form.model_copy(update={"is_pep": True, "pep_details": "Former MLA"})
    assert validate_review_form(pep) == {}

    bad = form.model_copy(update={"email": "asha@", "alternate_phone": "123"})
    assert set(validate_review_form(bad)) == {"email", "alternate_phone"}

    assert is_field_editable("email") is True
    assert is_field_editable("email", read_only=True) is False
    assert is_field_editable("name") is False
    assert is_field_editable("address") is False
    assert is_field_editable("aadhar_number") is False

    print(" PASSED: Review form")


def test_parse_case_id():
    """Only base-10 integers are case ids."""
    print("\nTEST 4: Case ID Parsing")
    print("-" * 40)

    assert parse_case_id("42") == 42
    assert parse_case_id(" 7 ") == 7
    assert parse_case_id(15) == 15

    for bad in ["abc", "", None, "12abc", "4.2"]:
        try:
            parse_case_id(bad)
            assert False, f"{bad!r} should be rejected"
        except ValueError as e:
            assert str(e) == "Invalid KYC case ID"

    print(" PASSED: Case ID parsing")


def test_upload_file_checks():
    """Accept rules and size limits."""
    print("\nTEST 5: Upload File Checks")
    print("-" * 40)

    pan_spec = get_document_spec(DocumentType.PANCARD)
    video_spec = get_document_spec(DocumentType.VIDEO)

    pdf = FileUpload(filename="pan.pdf", content=b"%PDF-1.4", content_type="application/pdf")
    assert validate_upload_file(pdf, pan_spec) == (True, None)

    # Extension is enough when the browser sent a generic type
    jpg = FileUpload(filename="PAN.JPG", content=b"\xff\xd8\xff", content_type="application/octet-stream")
    assert validate_upload_file(jpg, pan_spec) == (True, None)

    webm = FileUpload(filename="v.webm", content=b"x", content_type="video/webm;codecs=vp8")
    assert validate_upload_file(webm, video_spec) == (True, None)
    assert validate_upload_file(webm, pan_spec)[0] is False

    big = FileUpload(filename="pan.pdf", content=b"x" * 2048, content_type="application/pdf")
    ok, error = validate_upload_file(big, pan_spec, max_size_mb=0.001)
    assert ok is False and error.startswith("File too large")

    empty = FileUpload(filename="pan.pdf", content=b"", content_type="application/pdf")
    assert validate_upload_file(empty, pan_spec)[1] == "Please select a file"

    print(" PASSED: Upload file checks")


def run_all_tests():
    """Run all form validation tests."""
    print("\n" + "=" * 60)
    print("FORM VALIDATION - TEST SUITE")
    print("=" * 60)

    tests = [
        test_contact_and_password,
        test_registration,
        test_review_form,
        test_parse_case_id,
        test_upload_file_checks,
    ]

    passed = 0
    failed = 0

    for test in tests:
        try:
            test()
            passed += 1
        except Exception as e:
            failed += 1
            print(f" FAILED: {test.__name__}")
            print(f"   Error: {e}")
            import traceback
            traceback.print_exc()

    print("\n" + "=" * 60)
    if failed == 0:
        print("All form validation tests passed!")
    else:
        print(f"Results: {passed} passed, {failed} failed")
    print("=" * 60)

    return failed == 0


if __name__ == "__main__":
    success = run_all_tests()
    sys.exit(0 if success else 1)
