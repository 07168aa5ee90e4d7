"""
Self-Service KYC - Multi-step wizard for one KYC case

A Streamlit application that walks a customer through:
- Registration
- Aadhar (front and back), PAN card, passport and photo uploads
- Selfie and verification video
- Review and submission

Step state lives in a StepFlowController kept in session state and is
reconciled with the backend's progress endpoint. Run with:

    streamlit run frontend/self_kyc.py
"""

import streamlit as st
import sys
import time
import hashlib
import logging
from pathlib import Path
from typing import Optional, Tuple

import requests

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from config.settings import settings, configure_logging, validate_settings
from config.kyc_schema import FileUpload, StepId, UploadStatus
from config.step_context import get_step
from backend.notifications import NotificationLevel, Notifier
from backend.step_flow import StepFlowController
from backend.upload_tracker import UploadTracker
from backend.document_uploader import (
    AadharUploadSection,
    DocumentUploadSection,
    SelfieSection,
    VideoSection,
)
from backend.kyc_api import KycApiError, get_kyc_client
from backend.registration import RegistrationForm
from backend.risk_scorer import analyze_case_risk
from backend.image_processor import data_url_to_bytes
from frontend.form_fields import render_registration_form, render_review_form

logger = logging.getLogger(__name__)

TOAST_ICONS = {
    NotificationLevel.SUCCESS: "✅",
    NotificationLevel.INFO: "ℹ️",
    NotificationLevel.ERROR: "⚠️",
}

RECORDING_POLL_SECONDS = 0.5

STATUS_LABELS = {
    UploadStatus.PENDING: "Not uploaded",
    UploadStatus.UPLOADING: "Uploading...",
    UploadStatus.SUCCESS: "Uploaded",
    UploadStatus.ERROR: "Upload failed",
}


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def get_file_signature(uploaded_file) -> Optional[str]:
    if uploaded_file is None:
        return None
    digest = hashlib.md5(uploaded_file.getvalue()).hexdigest()
    return f"{uploaded_file.name}:{uploaded_file.size}:{digest}"


def accepted_extensions(section: DocumentUploadSection) -> list[str]:
    """Extensions for st.file_uploader (no leading dot)."""
    extensions = []
    for exts in section.spec.get("accept", {}).values():
        for ext in exts:
            ext = ext.lstrip(".")
            if ext not in extensions:
                extensions.append(ext)
    return extensions


def start_new_case(client, user_id) -> Tuple[Optional[str], Optional[str]]:
    """
    Create a KYC case.

    Returns:
        Tuple of (case_id, error_message)
    """
    try:
        return client.create_case(user_id), None
    except KycApiError as e:
        return None, f"Could not create a KYC case: {e.message}"
    except requests.RequestException as e:
        logger.error(f"[KYC API] Case creation failed: {e}")
        return None, "Could not reach the KYC service. Please try again."


def stepper_states(flow: StepFlowController) -> list[tuple[StepId, str]]:
    """(step, 'complete' | 'current' | 'pending') for every step."""
    states = []
    for step in flow.step_order:
        if flow.is_current_step(step):
            states.append((step, "current"))
        elif flow.is_step_complete(step):
            states.append((step, "complete"))
        else:
            states.append((step, "pending"))
    return states


# =============================================================================
# SESSION STATE
# =============================================================================

def init_self_kyc_state(case_id: str):
    """Build the flow and its sections once per case."""
    if st.session_state.get("kyc_case_id") == case_id and "flow" in st.session_state:
        return

    previous = st.session_state.get("sections")
    if previous:
        previous["selfie"].capture.close()
        previous["video"].recorder.close()

    notifier = Notifier()
    flow = StepFlowController(case_id, notifier=notifier)
    tracker = UploadTracker()

    st.session_state.kyc_case_id = case_id
    st.session_state.flow = flow
    st.session_state.tracker = tracker
    st.session_state.sections = {
        "aadhar": AadharUploadSection(flow, tracker),
        "pancard": DocumentUploadSection(flow, tracker, "pancard"),
        "passport": DocumentUploadSection(flow, tracker, "passport"),
        "photo": DocumentUploadSection(flow, tracker, "photo"),
        "selfie": SelfieSection(flow, tracker),
        "video": VideoSection(flow, tracker),
    }
    st.session_state.registration = RegistrationForm()
    st.session_state.file_signatures = {}
    st.session_state.risk_assessment = None

    flow.fetch_progress()
    if flow.current_step in (StepId.REVIEW, StepId.SUBMITTED):
        flow.load_screen_data()


# =============================================================================
# LAYOUT
# =============================================================================

def render_stepper(flow: StepFlowController):
    """Render the step indicator."""
    steps_html = '<div style="display:flex;flex-wrap:wrap;justify-content:center;gap:6px;margin:16px 0;">'
    for i, (step_id, state) in enumerate(stepper_states(flow), 1):
        step = get_step(step_id)
        if state == "complete":
            color, marker, weight = "#28a745", "&#10003;", 500
        elif state == "current":
            color, marker, weight = "#ff444f", str(i), 600
        else:
            color, marker, weight = "#6c757d", str(i), 400
        steps_html += f'''
        <div style="text-align:center;min-width:64px;">
            <span style="display:inline-block;width:26px;height:26px;line-height:26px;border-radius:50%;
                border:2px solid {color};color:{color};font-size:12px;">{marker}</span>
            <div style="font-size:11px;color:{color};margin-top:4px;font-weight:{weight};">{step.title}</div>
        </div>
        '''
    steps_html += '</div>'
    st.markdown(steps_html, unsafe_allow_html=True)
    st.markdown("---")


def render_notifications(notifier: Notifier):
    for note in notifier.drain():
        st.toast(note.message, icon=TOAST_ICONS[note.level])


def render_upload_section(section: DocumentUploadSection, key: str):
    """File picker, preview, upload button and status for one document."""
    state = section.state
    st.markdown(f"**{section.title}**")

    if state.status != UploadStatus.SUCCESS:
        uploaded = st.file_uploader(
            f"Choose {section.title.lower()}",
            type=accepted_extensions(section),
            key=f"uploader_{key}",
        )
        signature = get_file_signature(uploaded)
        if signature and st.session_state.file_signatures.get(key) != signature:
            st.session_state.file_signatures[key] = signature
            section.select(FileUpload.from_uploaded(uploaded))

    if state.preview:
        st.image(data_url_to_bytes(state.preview), use_container_width=True)
    elif state.file is not None:
        st.caption(f"{state.file.filename} ({state.file.size / 1024:.0f} KB)")

    st.caption(f"Status: {STATUS_LABELS[state.status]}")
    if state.status == UploadStatus.ERROR and state.error:
        st.error(state.error)

    col1, col2 = st.columns(2)
    with col1:
        can_upload = state.file is not None and state.status != UploadStatus.SUCCESS
        if st.button("Upload", key=f"upload_{key}", disabled=not can_upload, use_container_width=True):
            with st.spinner(f"Uploading {section.title.lower()}..."):
                section.upload()
            st.rerun()
    with col2:
        if st.button("Remove", key=f"remove_{key}", disabled=state.file is None, use_container_width=True):
            section.retake()
            st.session_state.file_signatures.pop(key, None)
            st.rerun()


# =============================================================================
# STEPS
# =============================================================================

def render_step_registration(flow: StepFlowController):
    if flow.is_step_complete(StepId.REGISTRATION):
        st.success("You are registered. Continue with your documents.")
        return
    data = render_registration_form(st.session_state.registration, flow.field_errors)
    if data is not None:
        # Rerun either way so field errors show inline
        flow.register(data)
        st.rerun()


def render_step_aadhar(section: AadharUploadSection):
    col1, col2 = st.columns(2)
    with col1:
        render_upload_section(section.front, "aadhar_front")
    with col2:
        render_upload_section(section.back, "aadhar_back")


def render_step_selfie(section: SelfieSection):
    state = section.state
    if state.status != UploadStatus.SUCCESS:
        photo = st.camera_input("Take a selfie", key="selfie_camera")
        signature = get_file_signature(photo)
        if signature and st.session_state.file_signatures.get("selfie") != signature:
            st.session_state.file_signatures["selfie"] = signature
            section.select(FileUpload.from_uploaded(photo))
    render_upload_section(section, "selfie")


def render_step_video(section: VideoSection):
    recorder = section.recorder
    min_s, max_s = recorder.min_duration, recorder.max_duration
    st.caption(f"Record a short video of yourself ({min_s:g} to {max_s:g} seconds).")

    if section.tick():
        st.rerun()

    if section.state.status != UploadStatus.SUCCESS:
        col1, col2 = st.columns(2)
        with col1:
            if st.button("Start recording", disabled=recorder.is_recording, use_container_width=True):
                section.start_recording()
                st.rerun()
        with col2:
            if st.button("Stop recording", disabled=not recorder.is_recording, use_container_width=True):
                section.stop_recording()
                st.rerun()
        if recorder.is_recording:
            st.progress(min(recorder.elapsed / max_s, 1.0), text=f"Recording... {recorder.elapsed:.0f}s")
            render_notifications(section.notifier)
            # Rerun until tick() stops the recording at max_duration
            time.sleep(RECORDING_POLL_SECONDS)
            st.rerun()

    render_upload_section(section, "video")


def render_step_review(flow: StepFlowController):
    if flow.screen_data is None:
        with st.spinner("Loading your details..."):
            flow.load_screen_data()

    submitted = render_review_form(
        flow.review_form(),
        read_only=flow.review_read_only,
        field_errors=flow.field_errors,
        documents=flow.review_documents(),
    )
    if submitted is not None and flow.submit_review(submitted):
        st.rerun()


def render_step_submitted(flow: StepFlowController):
    st.success("Your KYC has been submitted. We will notify you once it is verified.")

    if st.session_state.risk_assessment is None:
        if st.button("Run risk analysis"):
            st.session_state.risk_assessment = analyze_case_risk(flow.case_id, notifier=flow.notifier)
            st.rerun()
    else:
        assessment = st.session_state.risk_assessment
        st.markdown(f"### Risk Level: {assessment.risk_level.value.upper()}")
        st.caption(assessment.recommendation)
        factors = assessment.factors
        col1, col2 = st.columns(2)
        with col1:
            st.metric("PEP Status", "PEP Identified" if factors.pep_status else "No PEP")
            st.metric("High-Risk Country", "Yes" if factors.high_risk_country else "No")
        with col2:
            st.metric("High-Value Transaction", "Yes" if factors.high_value_transaction else "No")
            st.metric("Document Verification", f"{factors.document_verification_score:.0%}")

    render_review_form(flow.review_form(), read_only=True, documents=flow.review_documents())


def render_navigation(flow: StepFlowController, sections: dict):
    step = flow.current_step
    if step in (StepId.REVIEW, StepId.SUBMITTED):
        if step == StepId.REVIEW and st.button("Back", key="nav_back"):
            flow.retreat()
            st.rerun()
        return

    st.markdown("---")
    col1, _, col3 = st.columns([1, 2, 1])
    with col1:
        if st.button("Back", key="nav_back", disabled=flow.current_index == 0, use_container_width=True):
            flow.retreat()
            st.rerun()
    with col3:
        if st.button("Next", key="nav_next", type="primary",
                     disabled=not flow.is_next_enabled(), use_container_width=True):
            section = sections.get(step.value)
            if section is not None:
                section.complete()
            else:
                flow.advance()
            if flow.current_step in (StepId.REVIEW, StepId.SUBMITTED):
                flow.load_screen_data()
            st.rerun()


# =============================================================================
# SIDEBAR
# =============================================================================

def render_sidebar(tracker: Optional[UploadTracker]):
    with st.sidebar:
        st.markdown("### Self KYC")

        case_id = st.text_input("KYC case ID", value=st.query_params.get("case_id", ""))

        if st.button("Start new KYC", use_container_width=True):
            new_case_id, error = start_new_case(get_kyc_client(), settings.DEFAULT_USER_ID)
            if error:
                st.error(error)
            else:
                st.query_params["case_id"] = new_case_id
                st.rerun()

        if tracker is not None:
            st.markdown("---")
            config = tracker.service_config
            st.caption(f"Upload service: **{config['active_service']}**")
            if tracker.is_new_service and st.button("Check upload service", use_container_width=True):
                if tracker.is_new_service_available():
                    st.success("Upload service is available")
                else:
                    st.error("Upload service is unavailable")

        is_valid, issues = validate_settings()
        if not is_valid:
            for issue in issues:
                st.warning(issue)

    return case_id.strip()


# =============================================================================
# MAIN
# =============================================================================

def main():
    """Main application entry point."""
    st.set_page_config(page_title="Self KYC", layout="centered")
    configure_logging()

    case_id = render_sidebar(st.session_state.get("tracker"))
    if not case_id:
        st.title("Self-Service KYC")
        st.info("Enter your KYC case ID in the sidebar, or start a new KYC.")
        return

    init_self_kyc_state(case_id)
    flow: StepFlowController = st.session_state.flow
    sections = st.session_state.sections

    st.title(get_step(flow.current_step).title)
    st.caption(get_step(flow.current_step).description)
    render_stepper(flow)

    step = flow.current_step
    if step == StepId.REGISTRATION:
        render_step_registration(flow)
    elif step == StepId.AADHAR:
        render_step_aadhar(sections["aadhar"])
    elif step in (StepId.PANCARD, StepId.PASSPORT, StepId.PHOTO):
        render_upload_section(sections[step.value], step.value)
    elif step == StepId.SELFIE:
        render_step_selfie(sections["selfie"])
    elif step == StepId.VIDEO:
        render_step_video(sections["video"])
    elif step == StepId.REVIEW:
        render_step_review(flow)
    elif step == StepId.SUBMITTED:
        render_step_submitted(flow)

    render_navigation(flow, sections)
    render_notifications(flow.notifier)


if __name__ == "__main__":
    main()
