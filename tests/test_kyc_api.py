"""
Test Suite: KYC API Client

Tests:
1. Progress and screen data parsing
2. Registration and details request bodies
3. Error responses raise KycApiError
4. Case creation and file URL fallback
5. Field mapping to and from the backend
"""

import sys
import os

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import requests

from http_fakes import FakeAdapter, make_session, request_json

API_URL = "http://kyc.test"


def make_client(adapter):
    from backend.kyc_api import KycApiClient
    return KycApiClient(base_url=API_URL, session=make_session(adapter))


def sample_form():
    from config.kyc_schema import Address, KycFormData
    return KycFormData(
        name="Asha Rao",
        date_of_birth="1990-04-12",
        gender="F",
        address=Address(street="12 MG Road", city="Bengaluru", state="Karnataka", pincode="560001"),
        father_name="Ravi Rao",
        aadhar_number="234567890123",
        pan_number="ABCPR1234K",
        email="asha@example.com",
        phone="9876543210",
        occupation="Engineer",
        source_of_funds="salary",
        annual_income="10-25",
    )


def test_progress_and_screen_data():
    """GET progress and screen data into models."""
    print("\nTEST 1: Progress and Screen Data")
    print("-" * 40)

    adapter = FakeAdapter()
    adapter.add("GET", f"{API_URL}/kyc/progress/42", json_body={
        "current_step": "pan_upload",
        "steps": [
            {"id": "registration", "status": "completed"},
            {"id": "aadhar_upload", "status": "completed"},
            {"id": "pan_upload", "status": "pending"},
        ],
    })
    adapter.add("GET", f"{API_URL}/kyc/screen-data/42", json_body={
        "case": {"id": 42},
        "details": {"name": "Asha Rao"},
        "documents": [{"doc_type": "pancard", "file_path": "s3://b/pan.pdf"}],
        "status": "in_progress",
        "kyc_submitted": {"status": "pending"},
    })
    client = make_client(adapter)

    progress = client.get_progress("42")
    assert progress.current_step == "pan_upload"
    assert [s.status for s in progress.steps] == ["completed", "completed", "pending"]
    assert progress.kyc_submitted is None

    screen = client.get_screen_data(42)
    assert screen.details["name"] == "Asha Rao"
    assert screen.kyc_submitted.status == "pending"
    assert len(screen.documents) == 1

    print(" PASSED: Progress and screen data")


def test_request_bodies():
    """Registration and details are JSON with a numeric case id."""
    print("\nTEST 2: Request Bodies")
    print("-" * 40)

    from config.kyc_schema import RegistrationData

    adapter = FakeAdapter()
    adapter.add("POST", f"{API_URL}/kyc/register", json_body={"ok": True})
    adapter.add("POST", f"{API_URL}/kyc/details", json_body={"id": 1})
    adapter.add("GET", f"{API_URL}/kyc/details", json_body={"name": "Asha Rao"})
    client = make_client(adapter)

    client.register(42, RegistrationData(email="asha@example.com", phone="9876543210", password="Secret@123"))
    body = request_json(adapter.calls("POST", f"{API_URL}/kyc/register")[0])
    assert body["kyc_case_id"] == 42
    assert body["email"] == "asha@example.com"
    assert body["email_verified"] is False
    assert body["security_questions"] == []

    client.submit_details(42, sample_form())
    body = request_json(adapter.calls("POST", f"{API_URL}/kyc/details")[0])
    assert body["kyc_case_id"] == 42
    assert body["dob"] == "1990-04-12"
    assert body["address"] == "12 MG Road, Bengaluru, Karnataka, 560001"
    assert body["source_of_funds"] == "salary"
    assert body["is_pep"] is False

    details = client.get_details(42)
    assert details["name"] == "Asha Rao"
    assert adapter.calls("GET", f"{API_URL}/kyc/details")[0].url.endswith("?kyc_case_id=42")

    print(" PASSED: Request bodies")


def test_error_responses():
    """Non-2xx raises KycApiError with the backend detail."""
    print("\nTEST 3: Error Responses")
    print("-" * 40)

    from backend.kyc_api import KycApiError

    adapter = FakeAdapter()
    adapter.add("GET", f"{API_URL}/kyc/progress/9", status=404, json_body={"detail": "KYC case not found"})
    adapter.add("GET", f"{API_URL}/kyc/progress/10", status=500, text="oops")
    client = make_client(adapter)

    try:
        client.get_progress(9)
        assert False, "Should raise"
    except KycApiError as e:
        assert e.message == "KYC case not found"
        assert e.status_code == 404

    try:
        client.get_progress(10)
        assert False, "Should raise"
    except KycApiError as e:
        assert e.message == "HTTP error! status: 500"

    assert client.check_health() is False

    print(" PASSED: Error responses")


def test_cases_customers_and_files():
    """Case creation, customer list and file URL fallback."""
    print("\nTEST 4: Cases, Customers and Files")
    print("-" * 40)

    from urllib.parse import quote

    path = "kyc/42/aadhar front.jpg"
    adapter = FakeAdapter()
    adapter.add("POST", f"{API_URL}/kyc/case", json_body={"kyc_case_id": 77})
    adapter.add("GET", f"{API_URL}/customers", json_body=[{"id": 1}, {"id": 2}])
    adapter.add("GET", f"{API_URL}/files/{quote(path, safe='')}", json_body={"download_url": "https://signed/url"})
    adapter.add("GET", f"{API_URL}/files/missing.jpg", status=404, json_body={"detail": "Not found"})
    adapter.add("GET", f"{API_URL}/health", json_body={"status": "ok"})
    client = make_client(adapter)

    assert client.create_case(1) == "77"
    sent = adapter.calls("POST", f"{API_URL}/kyc/case")[0]
    assert sent.headers["Content-Type"].startswith("multipart/form-data")
    assert b'name="user_id"' in sent.body

    assert len(client.list_customers()) == 2
    assert client.get_file_url(path) == "https://signed/url"
    assert client.get_file_url("missing.jpg") == "missing.jpg"
    assert client.check_health() is True

    adapter = FakeAdapter()
    adapter.add("GET", f"{API_URL}/files/x.jpg", exc=requests.ConnectionError("down"))
    assert make_client(adapter).get_file_url("x.jpg") == "x.jpg"

    print(" PASSED: Cases, customers and files")


def test_field_mapping():
    """Backend details map back onto the review form."""
    print("\nTEST 5: Field Mapping")
    print("-" * 40)

    from backend.kyc_api import (
        documents_from_backend,
        form_from_backend_details,
        to_backend_details,
    )
    from config.kyc_schema import DocumentType, KycFormData

    form = sample_form()
    details = to_backend_details(form, "42")
    details.update({"nationality": "Indian", "nominee_name": "Ravi Rao"})

    mapped = form_from_backend_details(details)
    assert mapped.name == form.name
    assert mapped.date_of_birth == form.date_of_birth
    assert mapped.address == form.address
    assert mapped.nationality == "Indian"
    assert mapped.nominee_name == "Ravi Rao"

    partial = form_from_backend_details({"address": "Flat 3, Pune", "is_pep": None})
    assert partial.address.street == "Flat 3"
    assert partial.address.city == "Pune"
    assert partial.address.pincode == ""
    assert partial.is_pep is False
    assert partial.email == ""

    assert form_from_backend_details(None) == KycFormData()

    docs = documents_from_backend([
        {"doc_type": "aadhar_front", "file_path": "s3://b/front.jpg"},
        {"doc_type": "selfie", "file_path": "s3://b/selfie.jpg"},
        {"doc_type": "utility_bill", "file_path": "s3://b/bill.pdf"},
    ])
    assert docs == {
        DocumentType.AADHAR_FRONT: "s3://b/front.jpg",
        DocumentType.SELFIE: "s3://b/selfie.jpg",
    }

    print(" PASSED: Field mapping")


def run_all_tests():
    """Run all KYC API tests."""
    print("\n" + "=" * 60)
    print("KYC API CLIENT - TEST SUITE")
    print("=" * 60)

    tests = [
        test_progress_and_screen_data,
        test_request_bodies,
        test_error_responses,
        test_cases_customers_and_files,
        test_field_mapping,
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
        print("All KYC API tests passed!")
    else:
        print(f"Results: {passed} passed, {failed} failed")
    print("=" * 60)

    return failed == 0


if __name__ == "__main__":
    success = run_all_tests()
    sys.exit(0 if success else 1)
