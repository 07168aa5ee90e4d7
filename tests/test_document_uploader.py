"""
Test Suite: Document Upload Sections

Tests:
1. File selection and previews
2. Invalid case id never reaches the network
3. Successful and failed uploads
4. Step completion (single document and Aadhar front/back)
5. Selfie and video sections
"""

import sys
import os
import io

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from PIL import Image

from http_fakes import FakeAdapter, make_session
from test_media_capture import FakeCamera, FakeClock
from config.kyc_schema import DocumentType, FileUpload, StepId, UploadStatus

API_URL = "http://kyc.test"
UPLOAD_URL = f"{API_URL}/kyc/upload"


def make_png(size=(80, 50)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, (30, 90, 160)).save(buffer, format="PNG")
    return buffer.getvalue()


def png_file(name="front.png"):
    return FileUpload(filename=name, content=make_png(), content_type="image/png")


def pdf_file(name="pan.pdf"):
    return FileUpload(filename=name, content=b"%PDF-1.4\n% test document\n", content_type="application/pdf")


def make_env(case_id="42"):
    """Flow and tracker sharing one fake backend."""
    from backend.kyc_api import KycApiClient
    from backend.step_flow import StepFlowController
    from backend.upload_service import UploadServiceRouter
    from backend.upload_tracker import UploadTracker

    adapter = FakeAdapter()
    session = make_session(adapter)
    flow = StepFlowController(case_id, client=KycApiClient(base_url=API_URL, session=session))
    router = UploadServiceRouter(service="existing", api_url=API_URL, session=session)
    tracker = UploadTracker(router=router, tick_interval=0.005, reset_delay=-1)
    return adapter, flow, tracker


def test_select_file():
    """Accepted files are kept with a preview; others are rejected."""
    print("\nTEST 1: File Selection")
    print("-" * 40)

    from backend.document_uploader import DocumentUploadSection
    from backend.image_processor import data_url_to_bytes

    adapter, flow, tracker = make_env()
    section = DocumentUploadSection(flow, tracker, DocumentType.PHOTO)

    assert section.select(png_file("me.png")) is True
    state = flow.uploads[DocumentType.PHOTO]
    assert state.file.filename == "me.png"
    assert state.status == UploadStatus.PENDING
    assert state.preview.startswith("data:image/jpeg;base64,")
    assert data_url_to_bytes(state.preview)[:3] == b"\xff\xd8\xff"

    text = FileUpload(filename="notes.txt", content=b"hello", content_type="text/plain")
    assert section.select(text) is False
    assert flow.notifier.last.message.startswith("File format not accepted")

    broken = FileUpload(filename="broken.png", content=b"\x89PNG not really", content_type="image/png")
    assert section.select(broken) is False
    assert state.file.filename == "me.png"

    small = DocumentUploadSection(flow, tracker, DocumentType.PHOTO, max_size_mb=0.00001)
    assert small.select(png_file()) is False
    assert flow.notifier.last.message.startswith("File too large")

    pancard = DocumentUploadSection(flow, tracker, DocumentType.PANCARD)
    assert pancard.select(pdf_file()) is True
    assert flow.uploads[DocumentType.PANCARD].preview is None

    assert adapter.requests == []
    print(" PASSED: File selection")


def test_invalid_case_id():
    """A non-numeric case id fails locally without any request."""
    print("\nTEST 2: Invalid Case ID")
    print("-" * 40)

    from backend.document_uploader import DocumentUploadSection

    adapter, flow, tracker = make_env(case_id="abc")
    adapter.add("POST", UPLOAD_URL, json_body={"success": True})
    section = DocumentUploadSection(flow, tracker, DocumentType.PANCARD)
    section.select(pdf_file())

    assert section.upload() is None
    state = flow.uploads[DocumentType.PANCARD]
    assert state.status == UploadStatus.ERROR
    assert state.error == "Invalid KYC case ID"
    assert flow.notifier.last.message == "Invalid KYC case ID"
    assert adapter.requests == []
    print("   No network call made")

    print(" PASSED: Invalid case ID")


def test_upload_success_and_failure():
    """Upload results drive the document state and toasts."""
    print("\nTEST 3: Upload Success and Failure")
    print("-" * 40)

    from backend.document_uploader import DocumentUploadSection

    adapter, flow, tracker = make_env()
    adapter.add("POST", UPLOAD_URL, status=500, text="boom")
    adapter.add("POST", UPLOAD_URL, json_body={"success": True, "documentId": 9})
    section = DocumentUploadSection(flow, tracker, DocumentType.PANCARD)

    assert section.upload() is None
    assert flow.notifier.last.message == "Please select your pan card first"

    section.select(pdf_file())
    result = section.upload()
    assert result.success is False
    state = flow.uploads[DocumentType.PANCARD]
    assert state.status == UploadStatus.ERROR
    assert state.error == "Upload failed: 500 Internal Server Error"
    assert flow.notifier.last.message == "Failed to upload pan card. Please try again."
    assert flow.is_next_enabled(StepId.PANCARD) is False

    # Manual retry
    result = section.upload()
    assert result.success is True
    assert result.document_id == 9
    assert flow.uploads[DocumentType.PANCARD].status == UploadStatus.SUCCESS
    assert flow.notifier.last.message == "PAN Card uploaded successfully"
    assert flow.is_next_enabled(StepId.PANCARD) is True
    assert len(adapter.calls("POST", UPLOAD_URL)) == 2

    print(" PASSED: Upload success and failure")


def test_complete_steps():
    """Steps complete only once their documents are uploaded."""
    print("\nTEST 4: Step Completion")
    print("-" * 40)

    from backend.document_uploader import AadharUploadSection, DocumentUploadSection

    adapter, flow, tracker = make_env()
    adapter.add("POST", UPLOAD_URL, json_body={"success": True, "documentId": 1})
    flow.advance()
    aadhar = AadharUploadSection(flow, tracker)

    aadhar.front.select(png_file("front.png"))
    aadhar.front.upload()
    assert aadhar.complete() is False
    assert flow.notifier.last.message == "Please upload both front and back images of your Aadhar card"
    assert flow.current_step == StepId.AADHAR

    aadhar.back.select(png_file("back.png"))
    aadhar.back.upload()
    assert aadhar.complete() is True
    assert flow.current_step == StepId.PANCARD
    assert StepId.AADHAR in flow.completed_steps
    print("   Aadhar completes with both sides")

    pancard = DocumentUploadSection(flow, tracker, DocumentType.PANCARD)
    assert pancard.complete() is False
    assert flow.notifier.last.message == "Please upload your pan card"
    pancard.select(pdf_file())
    pancard.upload()
    assert pancard.complete() is True
    assert flow.current_step == StepId.PASSPORT

    pancard.retake()
    assert flow.uploads[DocumentType.PANCARD].file is None
    assert flow.uploads[DocumentType.PANCARD].status == UploadStatus.PENDING

    print(" PASSED: Step completion")


def test_selfie_and_video_sections():
    """Camera-backed sections feed captures into the upload flow."""
    print("\nTEST 5: Selfie and Video Sections")
    print("-" * 40)

    from backend.document_uploader import SelfieSection, VideoSection
    from backend.media_capture import MediaSession, SelfieCapture, VideoRecorder

    adapter, flow, tracker = make_env()
    adapter.add("POST", UPLOAD_URL, json_body={"success": True, "documentId": 2})

    camera = FakeCamera()
    selfie = SelfieSection(flow, tracker, SelfieCapture(MediaSession(camera), flow.notifier))
    assert selfie.take_photo() is True
    assert flow.uploads[DocumentType.SELFIE].file.filename == "selfie.jpg"
    assert camera.is_open is False
    assert selfie.upload().success is True

    video_camera = FakeCamera()
    clock = FakeClock()
    recorder = VideoRecorder(MediaSession(video_camera), flow.notifier, min_duration=5, max_duration=10, clock=clock)
    video = VideoSection(flow, tracker, recorder)

    # Move to the video step so a later step change releases the camera
    for _ in range(6):
        flow.advance()
    assert flow.current_step == StepId.VIDEO

    assert video.start_recording() is True
    clock.advance(2)
    assert video.stop_recording() is False
    assert flow.notifier.last.message == "Recording must be at least 5 seconds"
    assert flow.uploads[DocumentType.VIDEO].file is None

    clock.advance(8)
    assert video.tick() is True
    assert flow.uploads[DocumentType.VIDEO].file.filename == "verification.mp4"
    assert video.upload().success is True

    video.retake()
    video.start_recording()
    assert video_camera.is_open
    flow.retreat()
    assert video_camera.is_open is False
    print("   Leaving the video step released the camera")

    print(" PASSED: Selfie and video sections")


def run_all_tests():
    """Run all document upload tests."""
    print("\n" + "=" * 60)
    print("DOCUMENT UPLOAD SECTIONS - TEST SUITE")
    print("=" * 60)

    tests = [
        test_select_file,
        test_invalid_case_id,
        test_upload_success_and_failure,
        test_complete_steps,
        test_selfie_and_video_sections,
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
        print("All document upload tests passed!")
    else:
        print(f"Results: {passed} passed, {failed} failed")
    print("=" * 60)

    return failed == 0


if __name__ == "__main__":
    success = run_all_tests()
    sys.exit(0 if success else 1)
