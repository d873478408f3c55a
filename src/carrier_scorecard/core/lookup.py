"""Carrier lookup pipeline: validate identifier, fetch, normalize, score, respond."""

from __future__ import annotations

import logging
import re
from datetime import date, datetime, timezone
from typing import Optional

from pydantic import BaseModel

from .fetcher import CarrierDataFetcher
from .models import BrokerChecks, CarrierBundle
from .normalize import (
    build_profile,
    carrier_status_text,
    extract_events,
)
from .scoring import calculate_scorecard

logger = logging.getLogger(__name__)

_PREFIX = re.compile(r"^(USDOT|DOT|MC|MX|FF)[\s#:-]*", re.IGNORECASE)


class InvalidIdentifierError(ValueError):
    """The request did not carry a usable MC or USDOT number."""


class CarrierIdentifier(BaseModel):
    mc_number: Optional[str] = None
    usdot_number: Optional[str] = None

    @property
    def carrier_id(self) -> str:
        return self.usdot_number or self.mc_number or ""


def _clean(value: object, label: str) -> Optional[str]:
    if value is None:
        return None
    text = _PREFIX.sub("", str(value).strip()).strip()
    if not text:
        return None
    if not (text.isascii() and text.isdigit()):
        raise InvalidIdentifierError(f"Invalid {label}: {value}")
    return text


def parse_identifier(mc_number: object = None, usdot_number: object = None) -> CarrierIdentifier:
    """Normalize 'MC-123456' / 'USDOT 987' style input to bare digits."""
    identifier = CarrierIdentifier(
        mc_number=_clean(mc_number, "MC number"),
        usdot_number=_clean(usdot_number, "USDOT number"),
    )
    if not identifier.carrier_id:
        raise InvalidIdentifierError("MC or USDOT number required")
    return identifier


def _utc_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def build_response(
    identifier: CarrierIdentifier,
    bundle: CarrierBundle,
    checks: Optional[BrokerChecks] = None,
    as_of: Optional[date] = None,
) -> dict:
    """Flat JSON response for one scored carrier."""
    events = extract_events(bundle)
    profile = build_profile(bundle, checks=checks, as_of=as_of, events=events)
    result = calculate_scorecard(profile)
    snapshot = bundle.snapshot or {}

    reasons = [t.reason for t in result.reject_triggers]

    return {
        "carrier_name": snapshot.get("legal_name") or "N/A",
        "dba": snapshot.get("dba_name") or "N/A",
        "mc_number": identifier.mc_number,
        "usdot_number": identifier.usdot_number or snapshot.get("usdot") or snapshot.get("usdot_number") or identifier.carrier_id,
        "carrier_status": carrier_status_text(bundle),
        "score": result.score,
        "total_score": result.score,
        "grade": result.grade,
        "recommendation": result.recommendation,
        "risk_level": result.risk_level.value,
        "categories": {k.value: v.model_dump(by_alias=True) for k, v in result.categories.items()},
        "reject_triggers": [t.model_dump() for t in result.reject_triggers],
        "auto_reject": result.auto_reject,
        "auto_reject_reasons": " | ".join(reasons) or "None",
        "inspections_count": len(events.inspections),
        "violations_count": len(events.violations),
        "crash_count": len(events.crashes),
        "fatal_crashes": profile.fatal_crashes,
        "profile": profile.model_dump(mode="json"),
        "checked_at": result.checked_at.isoformat(),
    }


async def lookup_and_score(
    identifier: CarrierIdentifier,
    fetcher: CarrierDataFetcher,
    checks: Optional[BrokerChecks] = None,
) -> dict:
    bundle = await fetcher.fetch(mc_number=identifier.mc_number, usdot_number=identifier.usdot_number)
    response = build_response(identifier, bundle, checks=checks)
    logger.info(
        "Scored carrier %s: score=%d grade=%s auto_reject=%s",
        identifier.carrier_id, response["score"], response["grade"], response["auto_reject"],
    )
    return response


def degraded_response(identifier: Optional[CarrierIdentifier], exc: Exception) -> dict:
    """Worst-case payload returned when the upstream fetch fails."""
    message = str(exc) or exc.__class__.__name__
    return {
        "error": True,
        "error_message": message,
        "mc_number": identifier.mc_number if identifier else None,
        "usdot_number": identifier.carrier_id if identifier else None,
        "score": 0,
        "total_score": 0,
        "grade": "F",
        "recommendation": "Reject / Do Not Use",
        "auto_reject": True,
        "auto_reject_reasons": f"API Error: {message}",
        "checked_at": _utc_iso(),
    }
