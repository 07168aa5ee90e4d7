"""
Risk Scoring - Rule-based risk profile of a KYC case.

Scores the details the customer submitted:
- PEP status (+3)
- High-risk nationality (+2)
- High-value customer, annual income over 1,000,000 (+2)
- Unusual activity flag (+3)
- Document verification score (weighted x2)

Returns: risk_level (low/medium/high), risk_score, factors, recommendation
"""

import logging
from typing import Any, Dict, Optional
from dataclasses import dataclass, asdict
from enum import Enum

from config.step_context import get_high_risk_countries

logger = logging.getLogger(__name__)

HIGH_VALUE_INCOME = 1_000_000
DEFAULT_DOCUMENT_SCORE = 0.85

HIGH_RISK_THRESHOLD = 7
MEDIUM_RISK_THRESHOLD = 4


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


RISK_MESSAGES = {
    RiskLevel.LOW: "Low risk profile detected. Standard verification process completed.",
    RiskLevel.MEDIUM: "Medium risk profile detected. Additional verification may be required.",
    RiskLevel.HIGH: "High risk profile detected. Enhanced due diligence required.",
}


@dataclass
class RiskFactors:
    pep_status: bool = False
    high_risk_country: bool = False
    high_value_transaction: bool = False
    unusual_activity: bool = False
    document_verification_score: float = DEFAULT_DOCUMENT_SCORE


@dataclass
class RiskAssessment:
    """Result of a risk assessment."""
    risk_level: RiskLevel
    risk_score: float
    factors: RiskFactors
    recommendation: str

    def to_dict(self) -> dict:
        result = asdict(self)
        result["risk_level"] = self.risk_level.value
        return result


# ============================================================================
# RULES
# ============================================================================

def _parse_income(value: Any) -> Optional[int]:
    """Leading integer of an income value ('1500000', '1,500,000' or 1500000)."""
    if value is None:
        return None
    digits = ""
    for ch in str(value).replace(",", "").strip():
        if not ch.isdigit():
            break
        digits += ch
    return int(digits) if digits else None


def extract_risk_factors(
    details: Optional[Dict[str, Any]],
    document_score: float = DEFAULT_DOCUMENT_SCORE,
    unusual_activity: bool = False,
) -> RiskFactors:
    """Derive the risk factors from a case's submitted details."""
    details = details or {}
    income = _parse_income(details.get("annual_income"))
    nationality = str(details.get("nationality") or "").strip().lower()
    high_risk = {country.lower() for country in get_high_risk_countries()}

    return RiskFactors(
        pep_status=bool(details.get("is_pep") or False),
        high_risk_country=bool(nationality) and nationality in high_risk,
        high_value_transaction=income is not None and income > HIGH_VALUE_INCOME,
        unusual_activity=unusual_activity,
        document_verification_score=document_score,
    )


def score_risk(factors: RiskFactors) -> RiskAssessment:
    risk_score = 0.0
    if factors.pep_status:
        risk_score += 3
    if factors.high_risk_country:
        risk_score += 2
    if factors.high_value_transaction:
        risk_score += 2
    if factors.unusual_activity:
        risk_score += 3
    risk_score += factors.document_verification_score * 2

    if risk_score >= HIGH_RISK_THRESHOLD:
        level = RiskLevel.HIGH
    elif risk_score >= MEDIUM_RISK_THRESHOLD:
        level = RiskLevel.MEDIUM
    else:
        level = RiskLevel.LOW

    return RiskAssessment(
        risk_level=level,
        risk_score=round(risk_score, 2),
        factors=factors,
        recommendation=RISK_MESSAGES[level],
    )


# ============================================================================
# CASE ANALYSIS
# ============================================================================

def analyze_case_risk(case_id, client=None, notifier=None) -> Optional[RiskAssessment]:
    """
    Fetch a case's screen data and score it.

    Returns None (and notifies) when the case data cannot be fetched.
    """
    from backend.kyc_api import FETCH_ERRORS, get_kyc_client

    client = client or get_kyc_client()
    try:
        screen_data = client.get_screen_data(case_id)
    except FETCH_ERRORS as e:
        logger.error(f"[Risk] Error in risk analysis for case {case_id}: {e}")
        if notifier:
            notifier.error("Failed to complete risk analysis")
        return None

    assessment = score_risk(extract_risk_factors(screen_data.details))
    logger.info(
        f"[Risk] Case {case_id}: {assessment.risk_level.value} "
        f"(score {assessment.risk_score})"
    )
    return assessment
