"""
Test Suite: Self-KYC Frontend Helpers

Tests:
1. Accepted extensions for the file uploader
2. Stepper states
3. File signatures
4. Form field keys and labels
5. Starting a new case
"""

import sys
import os

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from http_fakes import FakeAdapter, make_session
from config.kyc_schema import DocumentType, StepId

API_URL = "http://kyc.test"


class FakeUploadedFile:
    """Mimics a Streamlit UploadedFile."""

    def __init__(self, name, content, type="image/png"):
        self.name = name
        self.type = type
        self._content = content
        self.size = len(content)

    def getvalue(self):
        return self._content


def make_flow():
    from backend.kyc_api import KycApiClient
    from backend.step_flow import StepFlowController
    client = KycApiClient(base_url=API_URL, session=make_session(FakeAdapter()))
    return StepFlowController("42", client=client)


def test_accepted_extensions():
    """Extensions come from the document rules, without dots or duplicates."""
    print("\nTEST 1: Accepted Extensions")
    print("-" * 40)

    from frontend.self_kyc import accepted_extensions
    from backend.document_uploader import DocumentUploadSection
    from backend.upload_tracker import UploadTracker
    from backend.upload_service import UploadServiceRouter

    flow = make_flow()
    tracker = UploadTracker(router=UploadServiceRouter(service="existing", api_url=API_URL), reset_delay=-1)

    pancard = DocumentUploadSection(flow, tracker, DocumentType.PANCARD)
    assert accepted_extensions(pancard) == ["jpeg", "jpg", "png", "pdf"]

    video = DocumentUploadSection(flow, tracker, DocumentType.VIDEO)
    assert accepted_extensions(video) == ["webm", "mp4"]

    print(" PASSED: Accepted extensions")


def test_stepper_states():
    """Current step wins over complete; the rest are pending."""
    print("\nTEST 2: Stepper States")
    print("-" * 40)

    from frontend.self_kyc import stepper_states

    flow = make_flow()
    flow.mark_complete(StepId.REGISTRATION)
    flow.advance()
    flow.mark_complete(StepId.AADHAR)

    states = dict(stepper_states(flow))
    assert len(states) == 9
    assert states[StepId.REGISTRATION] == "complete"
    assert states[StepId.AADHAR] == "current"
    assert states[StepId.PANCARD] == "pending"
    assert states[StepId.SUBMITTED] == "pending"

    print(" PASSED: Stepper states")


def test_file_signature():
    """Same content gives the same signature."""
    print("\nTEST 3: File Signatures")
    print("-" * 40)

    from frontend.self_kyc import get_file_signature

    a = FakeUploadedFile("front.png", b"abc")
    b = FakeUploadedFile("front.png", b"abc")
    c = FakeUploadedFile("front.png", b"abd")

    assert get_file_signature(None) is None
    assert get_file_signature(a) == get_file_signature(b)
    assert get_file_signature(a) != get_file_signature(c)
    assert get_file_signature(a).startswith("front.png:3:")

    print(" PASSED: File signatures")


def test_field_helpers():
    """Session keys and required labels."""
    print("\nTEST 4: Form Field Helpers")
    print("-" * 40)

    from frontend.form_fields import ANNUAL_INCOME_OPTIONS, field_label, get_field_key

    assert get_field_key("email") == "form_email"
    assert get_field_key("email", prefix="review") == "review_email"
    assert field_label("Email", required=True) == "Email *"
    assert field_label("Employer") == "Employer"
    assert "50+" in ANNUAL_INCOME_OPTIONS

    print(" PASSED: Form field helpers")


def test_start_new_case():
    """Case creation reports backend and network failures instead of raising."""
    print("\nTEST 5: Start New Case")
    print("-" * 40)

    import requests
    from backend.kyc_api import KycApiClient
    from frontend.self_kyc import start_new_case

    adapter = FakeAdapter()
    adapter.add("POST", f"{API_URL}/kyc/case", json_body={"kyc_case_id": 77})
    client = KycApiClient(base_url=API_URL, session=make_session(adapter))
    assert start_new_case(client, 1) == ("77", None)

    adapter = FakeAdapter()
    adapter.add("POST", f"{API_URL}/kyc/case", status=500, json_body={"detail": "Database unavailable"})
    client = KycApiClient(base_url=API_URL, session=make_session(adapter))
    assert start_new_case(client, 1) == (None, "Could not create a KYC case: Database unavailable")

    adapter = FakeAdapter()
    adapter.add("POST", f"{API_URL}/kyc/case", exc=requests.ConnectionError("refused"))
    client = KycApiClient(base_url=API_URL, session=make_session(adapter))
    case_id, error = start_new_case(client, 1)
    assert case_id is None
    assert error == "Could not reach the KYC service. Please try again."
    print("   Connection failure reported as a message")

    print(" PASSED: Start new case")


def run_all_tests():
    """Run all frontend helper tests."""
    print("\n" + "=" * 60)
    print("SELF-KYC FRONTEND - TEST SUITE")
    print("=" * 60)

    tests = [
        test_accepted_extensions,
        test_stepper_states,
        test_file_signature,
        test_field_helpers,
        test_start_new_case,
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
        print("All frontend helper tests passed!")
    else:
        print(f"Results: {passed} passed, {failed} failed")
    print("=" * 60)

    return failed == 0


if __name__ == "__main__":
    success = run_all_tests()
    sys.exit(0 if success else 1)
