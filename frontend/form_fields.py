"""
Reusable Form Field Components for the self-KYC forms

Provides Streamlit-based field renderers that:
- Support text, select and checkbox fields
- Render disabled when the field is read-only
- Show field-specific errors returned by the validators
"""

import streamlit as st
from typing import Optional, Dict

from config.kyc_schema import Address, KycFormData, RegistrationData
from backend.form_validator import is_field_editable
from backend.registration import MOCK_OTP_CODE, RegistrationForm, RegistrationStage


SOURCE_OF_FUNDS_OPTIONS = {
    "": "Select Source of Funds",
    "salary": "Salary",
    "business": "Business Income",
    "investments": "Investments",
    "inheritance": "Inheritance",
    "other": "Other",
}

ANNUAL_INCOME_OPTIONS = {
    "": "Select Annual Income",
    "0-5": "Less than 5 Lakhs",
    "5-10": "5-10 Lakhs",
    "10-25": "10-25 Lakhs",
    "25-50": "25-50 Lakhs",
    "50+": "More than 50 Lakhs",
}

BUSINESS_TYPE_OPTIONS = {
    "": "Select Business Type",
    "salaried": "Salaried",
    "self-employed": "Self Employed",
    "business": "Business",
    "professional": "Professional",
    "other": "Other",
}

def get_field_key(field_id: str, prefix: str = "form") -> str:
    """Generate unique session state key for a field."""
    return f"{prefix}_{field_id}"


def field_label(label: str, required: bool = False) -> str:
    return f"{label} *" if required else label


def render_text_field(
    field_id: str,
    label: str,
    value: str = "",
    required: bool = False,
    disabled: bool = False,
    placeholder: str = "",
    help_text: str = "",
    error: Optional[str] = None,
    password: bool = False,
    prefix: str = "form"
) -> str:
    """
    Render a text input field.

    Returns:
        The entered value
    """
    result = st.text_input(
        field_label(label, required),
        value=value,
        key=get_field_key(field_id, prefix),
        placeholder=placeholder,
        help=help_text or None,
        disabled=disabled,
        type="password" if password else "default",
    )
    if error:
        st.error(error)
    return result


def render_select_field(
    field_id: str,
    label: str,
    options: Dict[str, str],
    value: str = "",
    required: bool = False,
    disabled: bool = False,
    error: Optional[str] = None,
    prefix: str = "form"
) -> str:
    """
    Render a dropdown select field.

    Args:
        options: value -> display label

    Returns:
        The selected value
    """
    keys = list(options.keys())
    if value and value not in options:
        # Keep values the backend sent even if they are not in our list
        keys.append(value)

    result = st.selectbox(
        field_label(label, required),
        options=keys,
        index=keys.index(value) if value in keys else 0,
        format_func=lambda v: options.get(v, v),
        key=get_field_key(field_id, prefix),
        disabled=disabled,
    )
    if error:
        st.error(error)
    return result


def render_checkbox_field(
    field_id: str,
    label: str,
    value: bool = False,
    disabled: bool = False,
    prefix: str = "form"
) -> bool:
    return st.checkbox(label, value=value, key=get_field_key(field_id, prefix), disabled=disabled)


def render_address_fields(address: Address, disabled: bool = True, prefix: str = "review") -> Address:
    """Address block, one input per part."""
    col1, col2 = st.columns(2)
    with col1:
        street = render_text_field("address_street", "Street", address.street, disabled=disabled, prefix=prefix)
        state = render_text_field("address_state", "State", address.state, disabled=disabled, prefix=prefix)
    with col2:
        city = render_text_field("address_city", "City", address.city, disabled=disabled, prefix=prefix)
        pincode = render_text_field("address_pincode", "PIN Code", address.pincode, disabled=disabled, prefix=prefix)
    return Address(street=street, city=city, state=state, pincode=pincode)


# =============================================================================
# FORMS
# =============================================================================

REGISTRATION_TITLES = {
    RegistrationStage.DETAILS: "Contact details",
    RegistrationStage.VERIFICATION: "Verify your email and phone",
    RegistrationStage.PASSWORD: "Choose a password",
}


def render_otp_channel(registration: RegistrationForm, channel: str, label: str, value: str):
    """One verification row: the contact value, then Send OTP or the code input."""
    prefix = "registration"
    st.text_input(label, value=value, disabled=True, key=get_field_key(f"{channel}_display", prefix))

    if registration.verified[channel]:
        st.success(f"{label} verified")
        return

    if not registration.otp_sent[channel]:
        if st.button("Send OTP", key=get_field_key(f"{channel}_send_otp", prefix)):
            registration.send_otp(channel)
            st.rerun()
        return

    code = st.text_input("Enter OTP", key=get_field_key(f"{channel}_otp", prefix), max_chars=6)
    if st.button(f"Verify {label.lower()}", key=get_field_key(f"{channel}_verify", prefix)):
        registration.verify_otp(channel, code)
        st.rerun()


def render_registration_form(
    registration: RegistrationForm,
    field_errors: Optional[Dict[str, str]] = None
) -> Optional[RegistrationData]:
    """
    Render the current registration stage.

    Args:
        registration: Stage state kept in session state
        field_errors: Errors of the last registration request

    Returns:
        RegistrationData when the password stage was submitted, otherwise None
    """
    field_errors = {**registration.field_errors, **(field_errors or {})}
    prefix = "registration"
    st.markdown(f"#### {REGISTRATION_TITLES[registration.stage]}")

    if registration.stage == RegistrationStage.DETAILS:
        with st.form("registration_details"):
            email = render_text_field(
                "email", "Email", registration.email, required=True,
                error=field_errors.get("email"), prefix=prefix,
            )
            phone = render_text_field(
                "phone", "Phone number", registration.phone, required=True,
                placeholder="10 digit mobile number", error=field_errors.get("phone"), prefix=prefix,
            )
            submitted = st.form_submit_button("Continue", type="primary", use_container_width=True)
        if submitted and registration.submit_details(email, phone):
            st.rerun()
        return None

    if registration.stage == RegistrationStage.VERIFICATION:
        render_otp_channel(registration, "email", "Email", registration.email)
        render_otp_channel(registration, "phone", "Phone", registration.phone)
        if field_errors.get("otp"):
            st.error(field_errors["otp"])
        st.caption(f"For testing, use OTP: {MOCK_OTP_CODE}")
        if st.button("Back", key=get_field_key("verification_back", prefix)):
            registration.back()
            st.rerun()
        return None

    with st.form("registration_password"):
        password = render_text_field(
            "password", "Password", required=True, password=True,
            help_text="At least 8 characters with upper case, lower case, a number and a special character",
            error=field_errors.get("password"), prefix=prefix,
        )
        confirm_password = render_text_field(
            "confirm_password", "Confirm password", required=True, password=True,
            error=field_errors.get("confirm_password") or field_errors.get("verification"), prefix=prefix,
        )
        submitted = st.form_submit_button("Complete registration", type="primary", use_container_width=True)

    if st.button("Back", key=get_field_key("password_back", prefix)):
        registration.back()
        st.rerun()

    if not submitted:
        return None
    return registration.build(password, confirm_password)


def render_review_form(
    form: KycFormData,
    read_only: bool = False,
    field_errors: Optional[Dict[str, str]] = None,
    documents: Optional[Dict] = None,
) -> Optional[KycFormData]:
    """
    Render the review form.
    Document-derived fields are always disabled; everything is disabled once read_only.

    Returns:
        The edited form when submitted, otherwise None
    """
    field_errors = field_errors or {}
    prefix = "review"

    def disabled(field_id: str) -> bool:
        return not is_field_editable(field_id, read_only)

    if read_only:
        st.info("Your KYC has been submitted. The details below can no longer be changed.")

    with st.form("review_form"):
        st.markdown("#### From your documents")
        col1, col2 = st.columns(2)
        with col1:
            name = render_text_field("name", "Full name", form.name, disabled=disabled("name"), prefix=prefix)
            gender = render_text_field("gender", "Gender", form.gender, disabled=disabled("gender"), prefix=prefix)
            aadhar_number = render_text_field(
                "aadhar_number", "Aadhar number", form.aadhar_number,
                disabled=disabled("aadhar_number"), prefix=prefix,
            )
        with col2:
            date_of_birth = render_text_field(
                "date_of_birth", "Date of birth", form.date_of_birth,
                disabled=disabled("date_of_birth"), prefix=prefix,
            )
            father_name = render_text_field(
                "father_name", "Father's name", form.father_name,
                disabled=disabled("father_name"), prefix=prefix,
            )
            pan_number = render_text_field(
                "pan_number", "PAN number", form.pan_number,
                disabled=disabled("pan_number"), prefix=prefix,
            )
        address = render_address_fields(form.address, disabled=disabled("address"), prefix=prefix)

        st.markdown("#### Your details")
        col1, col2 = st.columns(2)
        with col1:
            email = render_text_field(
                "email", "Email", form.email, required=True, disabled=disabled("email"),
                error=field_errors.get("email"), prefix=prefix,
            )
            occupation = render_text_field(
                "occupation", "Occupation", form.occupation, required=True,
                disabled=disabled("occupation"), error=field_errors.get("occupation"), prefix=prefix,
            )
            business_type = render_select_field(
                "business_type", "Business type", BUSINESS_TYPE_OPTIONS, form.business_type,
                disabled=disabled("business_type"), prefix=prefix,
            )
            annual_income = render_select_field(
                "annual_income", "Annual income", ANNUAL_INCOME_OPTIONS, form.annual_income,
                required=True, disabled=disabled("annual_income"),
                error=field_errors.get("annual_income"), prefix=prefix,
            )
        with col2:
            phone = render_text_field(
                "phone", "Phone number", form.phone, required=True, disabled=disabled("phone"),
                error=field_errors.get("phone"), prefix=prefix,
            )
            alternate_phone = render_text_field(
                "alternate_phone", "Alternate phone", form.alternate_phone,
                disabled=disabled("alternate_phone"), error=field_errors.get("alternate_phone"), prefix=prefix,
            )
            employer = render_text_field(
                "employer", "Employer", form.employer, disabled=disabled("employer"), prefix=prefix,
            )
            source_of_funds = render_select_field(
                "source_of_funds", "Source of funds", SOURCE_OF_FUNDS_OPTIONS, form.source_of_funds,
                required=True, disabled=disabled("source_of_funds"),
                error=field_errors.get("source_of_funds"), prefix=prefix,
            )

        is_pep = render_checkbox_field(
            "is_pep", "I am a Politically Exposed Person (PEP)", form.is_pep,
            disabled=disabled("is_pep"), prefix=prefix,
        )
        pep_details = render_text_field(
            "pep_details", "PEP details", form.pep_details, disabled=disabled("pep_details"),
            error=field_errors.get("pep_details"), prefix=prefix,
        )

        if documents:
            st.markdown("#### Documents")
            for doc_type, path in documents.items():
                st.caption(f"{doc_type.value}: {path}")

        submitted = st.form_submit_button(
            "Submit KYC", type="primary", use_container_width=True, disabled=read_only,
        )

    if not submitted or read_only:
        return None

    return form.model_copy(update={
        "name": name,
        "date_of_birth": date_of_birth,
        "gender": gender,
        "father_name": father_name,
        "aadhar_number": aadhar_number,
        "pan_number": pan_number,
        "address": address,
        "email": email.strip(),
        "phone": phone.strip(),
        "alternate_phone": alternate_phone.strip(),
        "occupation": occupation.strip(),
        "employer": employer.strip(),
        "business_type": business_type,
        "source_of_funds": source_of_funds,
        "annual_income": annual_income,
        "is_pep": is_pep,
        "pep_details": pep_details.strip(),
    })
