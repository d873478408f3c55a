import pytest

from carrier_scorecard.core.models import CarrierProfile, RiskLevel, ScoreCategory
from carrier_scorecard.core.scoring import (
    WEIGHTS,
    calculate_scorecard,
    check_reject_triggers,
    get_recommendation,
    score_authority_age,
    score_business_legitimacy,
    score_double_brokerage_risk,
    score_inspections_oos,
    score_insurance_verification,
    score_safety_compliance,
    score_to_grade,
)


def _profile(base: CarrierProfile, **changes) -> CarrierProfile:
    return CarrierProfile(**{**base.model_dump(), **changes})


def test_weights_sum_to_one():
    assert sum(WEIGHTS.values()) == pytest.approx(1.0)


def test_perfect_profile_scores_100_and_is_approved(perfect_profile):
    result = calculate_scorecard(perfect_profile)

    assert result.score == 100
    assert result.grade == "A+"
    assert result.recommendation == "Approved Low Risk"
    assert result.risk_level == RiskLevel.LOW
    assert result.reject_triggers == []
    assert result.auto_reject is False
    assert all(c.score == 100 for c in result.categories.values())


def test_third_party_insurance_holder_forces_rejection(perfect_profile):
    result = calculate_scorecard(_profile(perfect_profile, insurance_holder_is_third_party=True))

    assert result.categories[ScoreCategory.DOUBLE_BROKERAGE_RISK].score == 90
    assert result.score == 98
    assert [t.id for t in result.reject_triggers] == ["DB_THIRD_PARTY_INS_HOLDER"]
    assert result.recommendation == "Reject / Do Not Use"
    assert result.risk_level == RiskLevel.AUTO_REJECT
    assert result.auto_reject is True


def test_at_fault_fatal_crash_always_rejects(perfect_profile):
    result = calculate_scorecard(_profile(perfect_profile, fatal_crashes=1, fatal_crash_at_fault=True))

    assert result.categories[ScoreCategory.SAFETY_COMPLIANCE].score == 70
    assert result.score == 94
    assert result.reject_triggers[0].id == "SAFETY_FATAL_CRASH"
    assert result.recommendation == "Reject / Do Not Use"


def test_fatal_crash_not_at_fault_does_not_trigger(perfect_profile):
    result = calculate_scorecard(_profile(perfect_profile, fatal_crashes=1, fatal_crash_at_fault=False))

    assert result.score == 100
    assert result.reject_triggers == []


def test_empty_profile_uses_conservative_defaults():
    result = calculate_scorecard(CarrierProfile())

    scores = {k: v.score for k, v in result.categories.items()}
    assert scores == {
        ScoreCategory.AUTHORITY_AGE: 0,
        ScoreCategory.DOUBLE_BROKERAGE_RISK: 100,
        ScoreCategory.SAFETY_COMPLIANCE: 70,
        ScoreCategory.INSPECTIONS_OOS: 100,
        ScoreCategory.INSURANCE_VERIFICATION: 0,
        ScoreCategory.BUSINESS_LEGITIMACY: 0,
    }
    assert result.score == 54
    assert result.grade == "F"
    assert result.recommendation == "Reject / Do Not Use"
    assert result.risk_level == RiskLevel.HIGH
    assert result.auto_reject is False


def test_moderate_profile_needs_conditional_verification(perfect_profile):
    profile = _profile(
        perfect_profile,
        safety_rating="Conditional",
        vehicle_oos_rate_pct=30.0,
        driver_oos_rate_pct=15.0,
    )
    result = calculate_scorecard(profile)

    assert result.categories[ScoreCategory.SAFETY_COMPLIANCE].score == 50
    assert result.categories[ScoreCategory.INSPECTIONS_OOS].score == 40
    assert result.score == 81
    assert result.grade == "B"
    assert result.recommendation == "Conditional Verification Required"
    assert result.risk_level == RiskLevel.MODERATE


def test_half_point_total_rounds_up_into_approved_band(perfect_profile):
    # 20 + 25 + 14 + 9 + 13.5 + 5 = 86.5
    profile = _profile(
        perfect_profile,
        safety_rating="None",
        vehicle_oos_rate_pct=30.0,
        driver_oos_rate_pct=10.0,
        insurer_callback_status="NotDone",
    )
    result = calculate_scorecard(profile)

    assert result.categories[ScoreCategory.SAFETY_COMPLIANCE].score == 70
    assert result.categories[ScoreCategory.INSPECTIONS_OOS].score == 60
    assert result.categories[ScoreCategory.INSURANCE_VERIFICATION].score == 90
    assert result.reject_triggers == []
    assert result.score == 87
    assert result.grade == "B+"
    assert result.recommendation == "Approved Low Risk"
    assert result.risk_level == RiskLevel.LOW


@pytest.mark.parametrize("months, expected", [(0, 0), (11, 0), (12, 10), (23, 10), (24, 18), (35, 18), (36, 25), (120, 25)])
def test_authority_age_tiers(months, expected):
    assert score_authority_age(CarrierProfile(authority_age_months=months)) == expected


def test_authority_status_and_mcs150():
    profile = CarrierProfile(usdot_status="active", operating_authority_status="ACTIVE", mcs150_biennial_update="current")
    assert score_authority_age(profile) == 75


def test_double_brokerage_penalties_floor_at_zero():
    profile = CarrierProfile(
        authority_scope_mismatch=True,
        load_reposting_observed=True,
        contact_mismatch=True,
        insurance_holder_is_third_party=True,
    )
    assert score_double_brokerage_risk(profile) == 0


def test_disclosed_reposting_is_not_penalized():
    profile = CarrierProfile(load_reposting_observed=True, reposting_disclosed=True)
    assert score_double_brokerage_risk(profile) == 100
    assert check_reject_triggers(profile) == []


def test_undisclosed_reposting_is_penalized_and_rejected():
    profile = CarrierProfile(load_reposting_observed=True)
    assert score_double_brokerage_risk(profile) == 60
    assert [t.id for t in check_reject_triggers(profile)] == ["DB_REPOSTING_NO_DISCLOSURE"]


@pytest.mark.parametrize("rating, expected", [
    ("Satisfactory", 100),
    ("None", 70),
    ("Conditional", 50),
    ("Unsatisfactory", 0),
])
def test_safety_rating_base(rating, expected):
    assert score_safety_compliance(CarrierProfile(safety_rating=rating)) == expected


def test_safety_penalties_never_go_negative():
    profile = CarrierProfile(
        safety_rating="Unsatisfactory",
        drug_alcohol_violations=3,
        fatal_crashes=2,
        fatal_crash_at_fault=True,
    )
    assert score_safety_compliance(profile) == 0


@pytest.mark.parametrize("vehicle, driver, expected", [
    (10.0, 3.0, 100),
    (22.26, 6.67, 100),
    (30.0, 3.0, 80),
    (50.0, 3.0, 60),
    (10.0, 7.0, 80),
    (10.0, 14.0, 60),
    (50.0, 14.0, 20),
])
def test_inspection_oos_penalties(vehicle, driver, expected):
    profile = CarrierProfile(
        vehicle_oos_rate_pct=vehicle,
        driver_oos_rate_pct=driver,
        national_avg_vehicle=22.26,
        national_avg_driver=6.67,
    )
    assert score_inspections_oos(profile) == expected


def test_insurance_verification_components():
    assert score_insurance_verification(CarrierProfile(bipd_filing_active=True)) == 40
    assert score_insurance_verification(CarrierProfile(bipd_limit_usd=999_999)) == 0
    assert score_insurance_verification(CarrierProfile(bipd_limit_usd=1_000_000)) == 30
    assert score_insurance_verification(CarrierProfile(cargo_insurance_verified=True)) == 20
    assert score_insurance_verification(CarrierProfile(insurer_callback_status="Confirmed")) == 10
    assert score_insurance_verification(CarrierProfile(insurer_callback_status="Verified")) == 10
    assert score_insurance_verification(CarrierProfile(insurer_callback_status="Refused")) == 0


def test_business_legitimacy_requires_positive_growth():
    assert score_business_legitimacy(CarrierProfile(growth_trend_pct=-5.0)) == 0
    assert score_business_legitimacy(CarrierProfile(growth_trend_pct=0.0)) == 0
    assert score_business_legitimacy(CarrierProfile(growth_trend_pct=0.5)) == 30


def test_reject_triggers_fire_in_fixed_order():
    profile = CarrierProfile(
        fatal_crashes=1,
        fatal_crash_at_fault=True,
        drug_alcohol_violations=1,
        safety_rating="Unsatisfactory",
        insurer_callback_status="Refused",
        authority_scope_mismatch=True,
        insurance_holder_is_third_party=True,
        load_reposting_observed=True,
    )
    assert [t.id for t in check_reject_triggers(profile)] == [
        "SAFETY_FATAL_CRASH",
        "SAFETY_DRUG_ALCOHOL",
        "SAFETY_RATING_UNSAT",
        "DB_REFUSED_INSURER_CALLBACK",
        "DB_OUTSIDE_AUTHORITY_SCOPE",
        "DB_THIRD_PARTY_INS_HOLDER",
        "DB_REPOSTING_NO_DISCLOSURE",
    ]


@pytest.mark.parametrize("score, text, level", [
    (100, "Approved Low Risk", RiskLevel.LOW),
    (86, "Approved Low Risk", RiskLevel.LOW),
    (85, "Conditional Verification Required", RiskLevel.MODERATE),
    (75, "Conditional Verification Required", RiskLevel.MODERATE),
    (74, "Reject / Do Not Use", RiskLevel.HIGH),
    (0, "Reject / Do Not Use", RiskLevel.HIGH),
])
def test_recommendation_thresholds(score, text, level):
    assert get_recommendation(score, []) == (text, level)


@pytest.mark.parametrize("score, grade", [
    (100, "A+"), (95, "A+"), (94, "A"), (90, "A"), (85, "B+"), (80, "B"),
    (75, "C+"), (70, "C"), (65, "D"), (64, "F"), (0, "F"),
])
def test_score_to_grade(score, grade):
    assert score_to_grade(score) == grade


@pytest.mark.parametrize("changes", [
    {},
    {"safety_rating": "Unsatisfactory", "drug_alcohol_violations": 9, "fatal_crashes": 4, "fatal_crash_at_fault": True},
    {"vehicle_oos_rate_pct": 500.0, "driver_oos_rate_pct": 500.0},
    {"authority_scope_mismatch": True, "contact_mismatch": True, "load_reposting_observed": True, "insurance_holder_is_third_party": True},
    {"growth_trend_pct": -80.0, "website_active_12mo": False, "facebook_active_12mo": False, "bipd_limit_usd": 0},
])
def test_scores_stay_within_bounds(perfect_profile, changes):
    for profile in (CarrierProfile(**changes), _profile(perfect_profile, **changes)):
        result = calculate_scorecard(profile)
        assert 0 <= result.score <= 100
        for category in result.categories.values():
            assert 0 <= category.score <= category.max_score == 100


def test_scoring_is_idempotent(perfect_profile):
    profile = _profile(perfect_profile, contact_mismatch=True, vehicle_oos_rate_pct=25.0)
    first = calculate_scorecard(profile).model_dump(exclude={"checked_at"})
    second = calculate_scorecard(profile).model_dump(exclude={"checked_at"})
    assert first == second


def test_to_json_uses_camel_case(perfect_profile):
    payload = calculate_scorecard(perfect_profile).to_json()

    assert payload["score"] == 100
    assert payload["riskLevel"] == "Low Risk"
    assert payload["autoReject"] is False
    assert payload["rejectTriggers"] == []
    assert payload["categories"]["fmcsaAuthorityAge"] == {"score": 100, "maxScore": 100}
    assert payload["categoryScores"] == payload["categories"]
    assert payload["checkedAt"].endswith("Z") or "+00:00" in payload["checkedAt"]
