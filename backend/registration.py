"""
Registration - Contact verification before the registration request.

Three stages, in order:
1. details       email and phone number
2. verification  one-time code for email and for phone
3. password      password and confirmation, then RegistrationData is built

Codes are not delivered anywhere yet; every code is MOCK_OTP_CODE.
"""

import logging
from enum import Enum
from typing import Dict, Optional

from config.kyc_schema import RegistrationData
from backend.form_validator import validate_email, validate_phone

logger = logging.getLogger(__name__)

MOCK_OTP_CODE = "1234"
INVALID_OTP = "Invalid OTP. Please try again."

CHANNELS = ("email", "phone")


class RegistrationStage(str, Enum):
    DETAILS = "details"
    VERIFICATION = "verification"
    PASSWORD = "password"


class RegistrationForm:
    """State of the registration step for one session."""

    def __init__(self):
        self.stage = RegistrationStage.DETAILS
        self.email = ""
        self.phone = ""
        self.otp_sent: Dict[str, bool] = {channel: False for channel in CHANNELS}
        self.verified: Dict[str, bool] = {channel: False for channel in CHANNELS}
        self.field_errors: Dict[str, str] = {}

    @property
    def email_verified(self) -> bool:
        return self.verified["email"]

    @property
    def phone_verified(self) -> bool:
        return self.verified["phone"]

    @property
    def is_verified(self) -> bool:
        return all(self.verified.values())

    # ------------------------------------------------------------------
    # stages
    # ------------------------------------------------------------------

    def submit_details(self, email: str, phone: str) -> bool:
        """Check the contact details and move on to verification."""
        self.field_errors = {}
        email, phone = email.strip(), phone.strip()

        for field_id, validator, value in (
            ("email", validate_email, email),
            ("phone", validate_phone, phone),
        ):
            is_valid, error = validator(value)
            if not is_valid:
                self.field_errors[field_id] = error
        if self.field_errors:
            return False

        # Changed details need verifying again
        if email != self.email:
            self._reset_channel("email")
        if phone != self.phone:
            self._reset_channel("phone")

        self.email, self.phone = email, phone
        self.stage = RegistrationStage.PASSWORD if self.is_verified else RegistrationStage.VERIFICATION
        return True

    def send_otp(self, channel: str) -> bool:
        if self.stage != RegistrationStage.VERIFICATION or self.verified[channel]:
            return False
        self.otp_sent[channel] = True
        self.field_errors.pop("otp", None)
        target = self.email if channel == "email" else self.phone
        logger.info(f"[Registration] OTP requested for {channel} {target}")
        return True

    def verify_otp(self, channel: str, code: str) -> bool:
        """Check a code. Both channels verified moves the form to the password stage."""
        if not self.otp_sent[channel]:
            self.field_errors["otp"] = f"Please request an OTP for your {channel} first"
            return False
        if code.strip() != MOCK_OTP_CODE:
            self.field_errors["otp"] = INVALID_OTP
            return False

        self.verified[channel] = True
        self.field_errors.pop("otp", None)
        logger.info(f"[Registration] {channel} verified")
        if self.is_verified:
            self.stage = RegistrationStage.PASSWORD
        return True

    def back(self):
        if self.stage == RegistrationStage.PASSWORD:
            self.stage = RegistrationStage.VERIFICATION
        elif self.stage == RegistrationStage.VERIFICATION:
            self.stage = RegistrationStage.DETAILS

    def build(self, password: str, confirm_password: str) -> Optional[RegistrationData]:
        """Registration request for the password stage; None before it."""
        if self.stage != RegistrationStage.PASSWORD:
            return None
        return RegistrationData(
            email=self.email,
            phone=self.phone,
            password=password,
            confirm_password=confirm_password,
            email_verified=self.email_verified,
            phone_verified=self.phone_verified,
        )

    def _reset_channel(self, channel: str):
        self.otp_sent[channel] = False
        self.verified[channel] = False
