"""Normalize heterogeneous provider payloads into a CarrierProfile.

SaferWebAPI and FMCSA QCMobile name the same concepts differently
(`total_fatalities` vs `fatalities`, `carrier_status` vs `statusCode`, ...).
Each lookup below tries the known aliases in order and falls back to the
conservative default when none is present.
"""

from __future__ import annotations

import logging
import math
import re
from datetime import date, datetime
from typing import Any, Iterable, Optional

from .models import (
    AuthorityStatus,
    BrokerChecks,
    CarrierBundle,
    CarrierEvents,
    CarrierProfile,
    CrashEvent,
    InspectionEvent,
    MCS150Status,
    SafetyRating,
)

logger = logging.getLogger(__name__)

# Published FMCSA national out-of-service averages (percent).
NATIONAL_AVG_VEHICLE_OOS = 22.26
NATIONAL_AVG_DRIVER_OOS = 6.67

MCS150_CURRENT_MONTHS = 24
INSPECTION_WINDOW_MONTHS = 24

REPORT_NUMBER_KEYS = ("report_number", "reportNumber", "crash_report_number", "inspection_report_number", "inspection_id", "report_id")
FATALITY_KEYS = ("total_fatalities", "fatalities", "num_fatalities", "fatal")
INJURY_KEYS = ("total_injuries", "injuries", "num_injuries", "injury")
AT_FAULT_KEYS = ("at_fault", "carrier_at_fault", "preventable")
INSPECTION_DATE_KEYS = ("inspection_date", "insp_date", "report_date", "date")
VEHICLE_OOS_KEYS = ("vehicle_oos_total", "vehicle_oos", "veh_oos_total", "vehicle_oos_count")
DRIVER_OOS_KEYS = ("driver_oos_total", "driver_oos", "drv_oos_total", "driver_oos_count")

CRASH_RECORD_KEYS = ("crash_records", "crashes", "records", "data")
INSPECTION_RECORD_KEYS = ("inspection_records", "inspections", "records", "data")
VIOLATION_RECORD_KEYS = ("violation_records", "violations", "records", "data")

DRUG_ALCOHOL_PATTERN = re.compile(r"drug|alcohol|controlled substance", re.IGNORECASE)
DRUG_ALCOHOL_CODE_PREFIXES = ("382", "392.4", "392.5")

SAFETY_RATING_CODES = {
    "S": SafetyRating.SATISFACTORY,
    "C": SafetyRating.CONDITIONAL,
    "U": SafetyRating.UNSATISFACTORY,
    "N": SafetyRating.NONE,
}

_DATE_FORMATS = ("%Y-%m-%d", "%m/%d/%Y", "%Y%m%d", "%d-%b-%y", "%b %d, %Y")


# ─── Primitive coercion ──────────────────────────────────────────────────────


def _first(record: dict, keys: Iterable[str]) -> Any:
    for key in keys:
        value = record.get(key)
        if value is not None and value != "":
            return value
    return None


def _coalesce(*values: Any) -> Any:
    return next((v for v in values if v is not None), None)


def _as_float(value: Any) -> float:
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    try:
        number = float(str(value).replace(",", "").replace("%", "").replace("$", "").strip())
    except ValueError:
        return 0.0
    return number if math.isfinite(number) else 0.0


def _as_int(value: Any) -> int:
    return int(_as_float(value))


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().upper() in ("Y", "YES", "TRUE", "T", "1")
    return bool(value)


def _as_date(value: Any) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    logger.debug("Unparseable date value: %r", value)
    return None


def _months_between(start: date, end: date) -> int:
    months = (end.year - start.year) * 12 + (end.month - start.month)
    if end.day < start.day:
        months -= 1
    return max(0, months)


def extract_records(payload: Any, keys: Iterable[str]) -> list[dict]:
    if not payload:
        return []
    if isinstance(payload, list):
        return [r for r in payload if isinstance(r, dict)]
    for key in keys:
        value = payload.get(key)
        if isinstance(value, list):
            return [r for r in value if isinstance(r, dict)]
    return []


def _report_number(record: dict) -> Optional[str]:
    value = _first(record, REPORT_NUMBER_KEYS)
    return str(value).strip() if value is not None else None


def _group_by_report(records: list[dict]) -> list[list[dict]]:
    """Group line items by report number, keeping first-seen order.

    Records without a report number cannot be matched and stay separate.
    """
    groups: dict[str, list[dict]] = {}
    ordered: list[list[dict]] = []
    for record in records:
        key = _report_number(record)
        if key is None:
            ordered.append([record])
            continue
        if key not in groups:
            groups[key] = []
            ordered.append(groups[key])
        groups[key].append(record)
    return ordered


# ─── Deduplication ───────────────────────────────────────────────────────────


def dedupe_crashes(records: list[dict]) -> list[CrashEvent]:
    """Collapse per-vehicle crash line items into one event per report number.

    An event is fatal (or injurious) if any line item in its group reports a
    nonzero count.
    """
    events = []
    for group in _group_by_report(records):
        events.append(CrashEvent(
            report_number=_report_number(group[0]),
            fatal=any(_as_float(_first(r, FATALITY_KEYS)) > 0 for r in group),
            injury=any(_as_float(_first(r, INJURY_KEYS)) > 0 for r in group),
            at_fault=any(_as_bool(_first(r, AT_FAULT_KEYS)) for r in group),
            line_items=len(group),
        ))
    return events


def dedupe_inspections(records: list[dict]) -> list[InspectionEvent]:
    """Collapse per-violation inspection line items into one event per report number."""
    events = []
    for group in _group_by_report(records):
        inspected_on = next((d for d in (_as_date(_first(r, INSPECTION_DATE_KEYS)) for r in group) if d), None)
        events.append(InspectionEvent(
            report_number=_report_number(group[0]),
            inspection_date=inspected_on,
            vehicle_oos=any(_as_float(_first(r, VEHICLE_OOS_KEYS)) > 0 for r in group),
            driver_oos=any(_as_float(_first(r, DRIVER_OOS_KEYS)) > 0 for r in group),
            line_items=len(group),
        ))
    return events


def count_drug_alcohol_violations(records: list[dict]) -> int:
    count = 0
    for record in records:
        text = " ".join(
            str(record.get(k, "")) for k in ("basic", "basic_desc", "category", "description", "violation_description", "group_desc")
        )
        code = str(_first(record, ("code", "violation_code", "viol_code")) or "").strip()
        if DRUG_ALCOHOL_PATTERN.search(text) or code.startswith(DRUG_ALCOHOL_CODE_PREFIXES):
            count += 1
    return count


# ─── Snapshot fields ─────────────────────────────────────────────────────────


def _fmcsa_record(bundle: CarrierBundle) -> dict:
    """Unwrap the QCMobile `content.carrier` envelope."""
    record = bundle.fmcsa_carrier or {}
    content = record.get("content", record)
    if isinstance(content, list):
        content = content[0] if content else {}
    if not isinstance(content, dict):
        return {}
    carrier = content.get("carrier", content)
    return carrier if isinstance(carrier, dict) else {}


def _status(value: Any) -> AuthorityStatus:
    if value is None:
        return AuthorityStatus.UNKNOWN
    if isinstance(value, bool):
        return AuthorityStatus.ACTIVE if value else AuthorityStatus.INACTIVE
    normalized = str(value).strip().upper()
    if normalized in ("", "UNKNOWN"):
        return AuthorityStatus.UNKNOWN
    # SAFER reports e.g. "AUTHORIZED FOR Property"; "NOT AUTHORIZED" does not match.
    if normalized in ("ACTIVE", "A", "Y") or normalized.startswith("AUTHORIZED"):
        return AuthorityStatus.ACTIVE
    return AuthorityStatus.INACTIVE


def carrier_status_text(bundle: CarrierBundle) -> str:
    """Human-readable carrier status as reported by the snapshot provider."""
    value = _first(bundle.snapshot, ("carrier_status", "operating_status", "status"))
    return str(value) if value is not None else "Unknown"


def _safety_rating(value: Any) -> SafetyRating:
    if value is None:
        return SafetyRating.NONE
    text = str(value).strip()
    if text.upper() in SAFETY_RATING_CODES:
        return SAFETY_RATING_CODES[text.upper()]
    try:
        return SafetyRating(text)
    except ValueError:
        return SafetyRating.NONE


def _mcs150_status(snapshot: dict, fmcsa: dict, as_of: date) -> MCS150Status:
    outdated_flag = _first(fmcsa, ("mcs150Outdated",))
    if outdated_flag is None:
        outdated_flag = _first(snapshot, ("mcs150_outdated",))
    if outdated_flag is not None:
        return MCS150Status.OUTDATED if _as_bool(outdated_flag) else MCS150Status.CURRENT

    form_date = _as_date(_first(snapshot, ("mcs150_form_date", "mcs_150_form_date", "mcs150_date")))
    if form_date and _months_between(form_date, as_of) < MCS150_CURRENT_MONTHS:
        return MCS150Status.CURRENT
    return MCS150Status.OUTDATED


def _oos_rate(provider_rate: Any, events: list[InspectionEvent], attr: str) -> float:
    if provider_rate is not None:
        return max(0.0, _as_float(provider_rate))
    if not events:
        return 0.0
    oos = sum(1 for e in events if getattr(e, attr))
    return round(oos / len(events) * 100, 2)


def _within_window(event: InspectionEvent, as_of: date) -> bool:
    if event.inspection_date is None:
        return True
    return _months_between(event.inspection_date, as_of) < INSPECTION_WINDOW_MONTHS


# ─── Profile ─────────────────────────────────────────────────────────────────


def extract_events(bundle: CarrierBundle) -> CarrierEvents:
    """Deduplicated crash and inspection events plus raw violation line items."""
    return CarrierEvents(
        crashes=dedupe_crashes(extract_records(bundle.crashes, CRASH_RECORD_KEYS)),
        inspections=dedupe_inspections(extract_records(bundle.inspections, INSPECTION_RECORD_KEYS)),
        violations=extract_records(bundle.violations, VIOLATION_RECORD_KEYS),
    )


def build_profile(
    bundle: CarrierBundle,
    checks: Optional[BrokerChecks] = None,
    as_of: Optional[date] = None,
    events: Optional[CarrierEvents] = None,
) -> CarrierProfile:
    """Map raw provider payloads (plus any broker checks) onto a CarrierProfile.

    Pass `events` when the caller already ran `extract_events` on the bundle.
    """
    as_of = as_of or date.today()
    snapshot = bundle.snapshot or {}
    fmcsa = _fmcsa_record(bundle)

    if events is None:
        events = extract_events(bundle)
    crashes, inspections, violations = events.crashes, events.inspections, events.violations

    usdot_status = _status(_first(snapshot, ("usdot_status", "entity_status", "carrier_status", "operating_status", "status")))
    if usdot_status == AuthorityStatus.UNKNOWN:
        usdot_status = _status(_first(fmcsa, ("statusCode", "allowedToOperate")))

    authority_status = _status(_first(snapshot, ("operating_authority_status", "authority_status", "common_authority_status", "operating_status")))
    if authority_status == AuthorityStatus.UNKNOWN:
        authority_status = _status(_first(fmcsa, ("commonAuthorityStatus", "contractAuthorityStatus")))

    granted = _as_date(_first(snapshot, ("authority_granted_date", "authority_date", "operating_authority_date", "add_date")))
    authority_age = _months_between(granted, as_of) if granted else 0

    bipd_usd = _as_int(_first(snapshot, ("bipd_limit_usd",)))
    if not bipd_usd:
        # QCMobile and SAFER report insurance on file in thousands of dollars.
        bipd_usd = _as_int(_coalesce(_first(snapshot, ("bipd_insurance_on_file",)), _first(fmcsa, ("bipdInsuranceOnFile",)))) * 1000
    bipd_required = _as_int(_coalesce(_first(snapshot, ("bipd_insurance_required", "bipd_required_amount")), _first(fmcsa, ("bipdRequiredAmount",))))
    bipd_active = _first(snapshot, ("bipd_filing_active",))
    cargo = _coalesce(_first(snapshot, ("cargo_insurance_on_file",)), _first(fmcsa, ("cargoInsuranceOnFile",)))

    fatal_events = [c for c in crashes if c.fatal]

    profile = CarrierProfile(
        usdot_status=usdot_status,
        operating_authority_status=authority_status,
        authority_age_months=authority_age,
        mcs150_biennial_update=_mcs150_status(snapshot, fmcsa, as_of),
        safety_rating=_safety_rating(_coalesce(_first(snapshot, ("safety_rating", "rating")), _first(fmcsa, ("safetyRating",)))),
        drug_alcohol_violations=count_drug_alcohol_violations(violations),
        fatal_crashes=len(fatal_events),
        injury_crashes=sum(1 for c in crashes if c.injury),
        fatal_crash_at_fault=any(c.at_fault for c in fatal_events),
        vehicle_oos_rate_pct=_oos_rate(_coalesce(_first(snapshot, ("vehicle_oos_rate_pct", "vehicle_oos_rate")), _first(fmcsa, ("vehicleOosRate",))), inspections, "vehicle_oos"),
        driver_oos_rate_pct=_oos_rate(_coalesce(_first(snapshot, ("driver_oos_rate_pct", "driver_oos_rate")), _first(fmcsa, ("driverOosRate",))), inspections, "driver_oos"),
        national_avg_vehicle=_as_float(_coalesce(_first(snapshot, ("national_avg_vehicle",)), _first(fmcsa, ("vehicleOosRateNationalAverage",)))) or NATIONAL_AVG_VEHICLE_OOS,
        national_avg_driver=_as_float(_coalesce(_first(snapshot, ("national_avg_driver",)), _first(fmcsa, ("driverOosRateNationalAverage",)))) or NATIONAL_AVG_DRIVER_OOS,
        total_inspections_24mo=sum(1 for e in inspections if _within_window(e, as_of)),
        bipd_filing_active=_as_bool(bipd_active) if bipd_active is not None else (bipd_usd > 0 and bipd_usd >= bipd_required * 1000),
        bipd_limit_usd=max(0, bipd_usd),
        cargo_insurance_verified=_as_float(cargo) > 0 if cargo is not None else False,
    )

    if checks is not None:
        overrides = checks.model_dump(exclude_none=True)
        if overrides:
            profile = profile.model_copy(update=overrides)

    logger.debug(
        "Normalized carrier: %d crash events (%d fatal), %d inspection events, %d violation line items",
        len(crashes), len(fatal_events), len(inspections), len(violations),
    )
    return profile
