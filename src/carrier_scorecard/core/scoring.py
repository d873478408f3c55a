"""Carrier scorecard auto-scoring model.

Maps a normalized CarrierProfile onto six weighted categories, evaluates the
automatic reject triggers, and derives a recommendation and letter grade.
Everything here is pure: no I/O, no shared state, and identical profiles
always produce identical scores (only `checked_at` differs).
"""

from __future__ import annotations

import logging
import math
from typing import Callable

from .models import (
    AuthorityStatus,
    CallbackStatus,
    CarrierProfile,
    CategoryScore,
    MCS150Status,
    RejectTrigger,
    RiskLevel,
    SafetyRating,
    ScoreCategory,
    ScoreResult,
)

logger = logging.getLogger(__name__)

MAX_CATEGORY_SCORE = 100

WEIGHTS: dict[ScoreCategory, float] = {
    ScoreCategory.AUTHORITY_AGE: 0.20,
    ScoreCategory.DOUBLE_BROKERAGE_RISK: 0.25,
    ScoreCategory.SAFETY_COMPLIANCE: 0.20,
    ScoreCategory.INSPECTIONS_OOS: 0.15,
    ScoreCategory.INSURANCE_VERIFICATION: 0.15,
    ScoreCategory.BUSINESS_LEGITIMACY: 0.05,
}

SAFETY_RATING_BASE = {
    SafetyRating.SATISFACTORY: 100,
    SafetyRating.NONE: 70,
    SafetyRating.CONDITIONAL: 50,
    SafetyRating.UNSATISFACTORY: 0,
}

BIPD_MINIMUM_USD = 1_000_000

APPROVED_THRESHOLD = 86
CONDITIONAL_THRESHOLD = 75

GRADE_THRESHOLDS = [
    (95, "A+"),
    (90, "A"),
    (85, "B+"),
    (80, "B"),
    (75, "C+"),
    (70, "C"),
    (65, "D"),
]


def _clamp(score: float) -> int:
    return int(max(0, min(MAX_CATEGORY_SCORE, score)))


def score_authority_age(profile: CarrierProfile) -> int:
    """USDOT/authority status, authority age, and MCS-150 currency."""
    score = 0
    if profile.usdot_status == AuthorityStatus.ACTIVE:
        score += 25
    if profile.operating_authority_status == AuthorityStatus.ACTIVE:
        score += 35

    if profile.authority_age_months >= 36:
        score += 25
    elif profile.authority_age_months >= 24:
        score += 18
    elif profile.authority_age_months >= 12:
        score += 10

    if profile.mcs150_biennial_update == MCS150Status.CURRENT:
        score += 15
    return _clamp(score)


def score_double_brokerage_risk(profile: CarrierProfile) -> int:
    """Start from a clean 100 and subtract a penalty for each risk indicator."""
    score = 100
    if profile.authority_scope_mismatch:
        score -= 30
    if profile.load_reposting_observed and not profile.reposting_disclosed:
        score -= 40
    if profile.contact_mismatch:
        score -= 20
    if profile.insurance_holder_is_third_party:
        score -= 10
    return _clamp(score)


def score_safety_compliance(profile: CarrierProfile) -> int:
    score = SAFETY_RATING_BASE.get(profile.safety_rating, SAFETY_RATING_BASE[SafetyRating.NONE])
    if profile.drug_alcohol_violations > 0:
        score -= 20
    if _has_at_fault_fatal_crash(profile):
        score -= 30
    return _clamp(score)


def _oos_penalty(rate: float, national_avg: float) -> int:
    if rate > national_avg * 2:
        return 40
    if rate > national_avg:
        return 20
    return 0


def score_inspections_oos(profile: CarrierProfile) -> int:
    """Vehicle and driver out-of-service rates against the national averages."""
    score = 100
    score -= _oos_penalty(profile.vehicle_oos_rate_pct, profile.national_avg_vehicle)
    score -= _oos_penalty(profile.driver_oos_rate_pct, profile.national_avg_driver)
    return _clamp(score)


def score_insurance_verification(profile: CarrierProfile) -> int:
    score = 0
    if profile.bipd_filing_active:
        score += 40
    if profile.bipd_limit_usd >= BIPD_MINIMUM_USD:
        score += 30
    if profile.cargo_insurance_verified:
        score += 20
    if profile.insurer_callback_status in (CallbackStatus.CONFIRMED, CallbackStatus.VERIFIED):
        score += 10
    return _clamp(score)


def score_business_legitimacy(profile: CarrierProfile) -> int:
    score = 0
    if profile.website_active_12mo:
        score += 20
    if profile.facebook_active_12mo:
        score += 20
    if profile.address_consistent_with_fmcsa:
        score += 30
    if profile.growth_trend_pct > 0:
        score += 30
    return _clamp(score)


CATEGORY_SCORERS: dict[ScoreCategory, Callable[[CarrierProfile], int]] = {
    ScoreCategory.AUTHORITY_AGE: score_authority_age,
    ScoreCategory.DOUBLE_BROKERAGE_RISK: score_double_brokerage_risk,
    ScoreCategory.SAFETY_COMPLIANCE: score_safety_compliance,
    ScoreCategory.INSPECTIONS_OOS: score_inspections_oos,
    ScoreCategory.INSURANCE_VERIFICATION: score_insurance_verification,
    ScoreCategory.BUSINESS_LEGITIMACY: score_business_legitimacy,
}


def _has_at_fault_fatal_crash(profile: CarrierProfile) -> bool:
    return profile.fatal_crashes > 0 and profile.fatal_crash_at_fault


def check_reject_triggers(profile: CarrierProfile) -> list[RejectTrigger]:
    """Evaluate the automatic reject triggers, independent of the weighted score.

    Triggers are returned in a fixed order so results are comparable across calls.
    """
    triggers = []

    if _has_at_fault_fatal_crash(profile):
        triggers.append(RejectTrigger(id="SAFETY_FATAL_CRASH", reason="Fatal crash with carrier fault"))

    if profile.drug_alcohol_violations > 0:
        triggers.append(RejectTrigger(id="SAFETY_DRUG_ALCOHOL", reason="Drug/Alcohol violation present"))

    if profile.safety_rating == SafetyRating.UNSATISFACTORY:
        triggers.append(RejectTrigger(id="SAFETY_RATING_UNSAT", reason="FMCSA safety rating Unsatisfactory"))

    if profile.insurer_callback_status == CallbackStatus.REFUSED:
        triggers.append(RejectTrigger(id="DB_REFUSED_INSURER_CALLBACK", reason="Refused insurer callback"))

    if profile.authority_scope_mismatch:
        triggers.append(RejectTrigger(id="DB_OUTSIDE_AUTHORITY_SCOPE", reason="Operating outside authority scope"))

    if profile.insurance_holder_is_third_party:
        triggers.append(RejectTrigger(id="DB_THIRD_PARTY_INS_HOLDER", reason="Third party listed as insurance holder"))

    if profile.load_reposting_observed and not profile.reposting_disclosed:
        triggers.append(RejectTrigger(id="DB_REPOSTING_NO_DISCLOSURE", reason="Load reposting without disclosure"))

    return triggers


def get_recommendation(score: int, triggers: list[RejectTrigger]) -> tuple[str, RiskLevel]:
    """Map the total score and fired triggers to a recommendation and risk level."""
    if triggers:
        return "Reject / Do Not Use", RiskLevel.AUTO_REJECT
    if score >= APPROVED_THRESHOLD:
        return "Approved Low Risk", RiskLevel.LOW
    if score >= CONDITIONAL_THRESHOLD:
        return "Conditional Verification Required", RiskLevel.MODERATE
    return "Reject / Do Not Use", RiskLevel.HIGH


def score_to_grade(score: int) -> str:
    for threshold, grade in GRADE_THRESHOLDS:
        if score >= threshold:
            return grade
    return "F"


def calculate_scorecard(profile: CarrierProfile) -> ScoreResult:
    """Score a carrier profile across all six weighted categories.

    The total is the weighted sum of the clamped category sub-scores, rounded
    to the nearest integer. Any reject trigger forces rejection regardless of
    the total.
    """
    categories = {
        category: CategoryScore(score=scorer(profile), max_score=MAX_CATEGORY_SCORE)
        for category, scorer in CATEGORY_SCORERS.items()
    }

    weighted = sum(categories[category].score * weight for category, weight in WEIGHTS.items())
    total = _clamp(_round_half_up(weighted))

    triggers = check_reject_triggers(profile)
    recommendation, risk_level = get_recommendation(total, triggers)

    logger.debug(
        "Scored carrier profile: total=%d recommendation=%s triggers=%s",
        total, recommendation, [t.id for t in triggers],
    )

    return ScoreResult(
        score=total,
        grade=score_to_grade(total),
        recommendation=recommendation,
        risk_level=risk_level,
        categories=categories,
        reject_triggers=triggers,
    )


def _round_half_up(value: float) -> int:
    # Totals round half up (round() would round 97.5 to 98 but 86.5 to 86).
    return int(math.floor(round(value, 6) + 0.5))
