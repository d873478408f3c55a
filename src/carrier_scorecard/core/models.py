"""Pydantic data models: the shared business objects.

The HTTP endpoints, the MCP tools, the normalizer and the scorer all use these
models as the common interface for carrier data and scorecard results.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _CaseInsensitiveEnum(str, Enum):
    """String enum that accepts any casing of its values."""

    @classmethod
    def _missing_(cls, value: object):
        if isinstance(value, str):
            wanted = value.strip().lower()
            for member in cls:
                if member.value.lower() == wanted:
                    return member
        return None


class AuthorityStatus(_CaseInsensitiveEnum):
    """USDOT / operating authority status."""

    ACTIVE = "Active"
    INACTIVE = "Inactive"
    UNKNOWN = "Unknown"


class MCS150Status(_CaseInsensitiveEnum):
    """Biennial MCS-150 update status."""

    CURRENT = "Current"
    OUTDATED = "Outdated"


class SafetyRating(_CaseInsensitiveEnum):
    """FMCSA safety rating."""

    SATISFACTORY = "Satisfactory"
    CONDITIONAL = "Conditional"
    UNSATISFACTORY = "Unsatisfactory"
    NONE = "None"


class EmailType(_CaseInsensitiveEnum):
    """How the carrier's contact email relates to its business domain."""

    DOMAIN_MATCH = "DomainMatch"
    FREE_EMAIL = "FreeEmail"
    UNKNOWN = "Unknown"


class CallbackStatus(_CaseInsensitiveEnum):
    """Result of calling the insurer listed on the certificate."""

    VERIFIED = "Verified"
    CONFIRMED = "Confirmed"
    NOT_DONE = "NotDone"
    REFUSED = "Refused"


class ScoreCategory(str, Enum):
    """Weighted scorecard categories."""

    AUTHORITY_AGE = "fmcsaAuthorityAge"
    DOUBLE_BROKERAGE_RISK = "doubleBrokerageRisk"
    SAFETY_COMPLIANCE = "safetyCompliance"
    INSPECTIONS_OOS = "inspectionsOOS"
    INSURANCE_VERIFICATION = "insuranceVerification"
    BUSINESS_LEGITIMACY = "businessLegitimacy"


class RiskLevel(str, Enum):
    """Risk level attached to a recommendation."""

    LOW = "Low Risk"
    MODERATE = "Moderate Risk"
    HIGH = "High Risk"
    AUTO_REJECT = "High Risk (Auto-Reject)"


class _NullsAsMissing(BaseModel):
    """Drop explicit nulls so field defaults apply."""

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


class CarrierProfile(_NullsAsMissing):
    """Flat record of carrier attributes consumed by the scorer.

    Every field defaults to 0, False, or the most conservative enum value so a
    profile built from sparse provider data is still scoreable.
    """

    model_config = ConfigDict(extra="ignore")

    # Authority
    usdot_status: AuthorityStatus = AuthorityStatus.UNKNOWN
    operating_authority_status: AuthorityStatus = AuthorityStatus.UNKNOWN
    authority_age_months: int = Field(0, ge=0)
    mcs150_biennial_update: MCS150Status = MCS150Status.OUTDATED

    # Safety
    safety_rating: SafetyRating = SafetyRating.NONE
    drug_alcohol_violations: int = Field(0, ge=0)
    fatal_crashes: int = Field(0, ge=0)
    injury_crashes: int = Field(0, ge=0)
    fatal_crash_at_fault: bool = False

    # Double-brokerage risk indicators
    authority_scope_mismatch: bool = False
    contact_mismatch: bool = False
    insurance_holder_is_third_party: bool = False
    load_reposting_observed: bool = False
    reposting_disclosed: bool = False
    email_type: EmailType = EmailType.UNKNOWN
    insurer_callback_status: CallbackStatus = CallbackStatus.NOT_DONE

    # Inspections
    vehicle_oos_rate_pct: float = Field(0.0, ge=0)
    driver_oos_rate_pct: float = Field(0.0, ge=0)
    national_avg_vehicle: float = Field(0.0, ge=0)
    national_avg_driver: float = Field(0.0, ge=0)
    total_inspections_24mo: int = Field(0, ge=0)

    # Insurance
    bipd_filing_active: bool = False
    bipd_limit_usd: int = Field(0, ge=0)
    cargo_insurance_verified: bool = False

    # Business legitimacy
    website_active_12mo: bool = False
    facebook_active_12mo: bool = False
    address_consistent_with_fmcsa: bool = False
    growth_trend_pct: float = 0.0


class BrokerChecks(_NullsAsMissing):
    """Broker-supplied verification results that FMCSA data cannot provide.

    Only fields that were actually supplied override the normalized profile.
    """

    model_config = ConfigDict(extra="forbid")

    fatal_crash_at_fault: Optional[bool] = None
    authority_scope_mismatch: Optional[bool] = None
    contact_mismatch: Optional[bool] = None
    insurance_holder_is_third_party: Optional[bool] = None
    load_reposting_observed: Optional[bool] = None
    reposting_disclosed: Optional[bool] = None
    email_type: Optional[EmailType] = None
    insurer_callback_status: Optional[CallbackStatus] = None
    cargo_insurance_verified: Optional[bool] = None
    website_active_12mo: Optional[bool] = None
    facebook_active_12mo: Optional[bool] = None
    address_consistent_with_fmcsa: Optional[bool] = None
    growth_trend_pct: Optional[float] = None


class CategoryScore(BaseModel):
    """Sub-score for one scorecard category."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    score: int = Field(ge=0, le=100)
    max_score: int = 100


class RejectTrigger(BaseModel):
    """An auto-reject condition that fired."""

    id: str
    reason: str


class ScoreResult(BaseModel):
    """Output of the scorecard model."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    version: str = "1.0.0"
    name: str = "Standard Carrier Scorecard Auto-Scoring Model"
    score: int = Field(ge=0, le=100, description="Weighted total score")
    grade: str = Field(description="Letter grade derived from the weighted score")
    recommendation: str
    risk_level: RiskLevel
    categories: dict[ScoreCategory, CategoryScore]
    reject_triggers: list[RejectTrigger] = Field(default_factory=list)
    checked_at: datetime = Field(default_factory=_utcnow)

    @property
    def auto_reject(self) -> bool:
        return bool(self.reject_triggers)

    def to_json(self) -> dict:
        """camelCase JSON payload, with `categoryScores` mirroring `categories`."""
        payload = self.model_dump(mode="json", by_alias=True)
        payload["categoryScores"] = payload["categories"]
        payload["autoReject"] = self.auto_reject
        return payload


class CrashEvent(BaseModel):
    """One crash after collapsing per-vehicle line items by report number."""

    report_number: Optional[str] = None
    fatal: bool = False
    injury: bool = False
    at_fault: bool = False
    line_items: int = 1


class InspectionEvent(BaseModel):
    """One roadside inspection after collapsing line items by report number."""

    report_number: Optional[str] = None
    inspection_date: Optional[date] = None
    vehicle_oos: bool = False
    driver_oos: bool = False
    line_items: int = 1


class CarrierBundle(BaseModel):
    """Raw provider payloads gathered for a single carrier lookup."""

    snapshot: dict = Field(default_factory=dict)
    inspections: Any = Field(default_factory=dict)
    violations: Any = Field(default_factory=dict)
    crashes: Any = Field(default_factory=dict)
    fmcsa_carrier: Optional[dict] = Field(None, description="FMCSA QCMobile carrier record, when configured")


class CarrierEvents(BaseModel):
    """Deduplicated events extracted once per lookup and shared by profile and response."""

    crashes: list[CrashEvent] = Field(default_factory=list)
    inspections: list[InspectionEvent] = Field(default_factory=list)
    violations: list[dict] = Field(default_factory=list)
