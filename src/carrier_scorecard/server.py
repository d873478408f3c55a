"""Carrier Scorecard MCP server.

FastMCP server exposing carrier lookup and scorecard tools, plus plain HTTP
endpoints for callers that do not speak MCP.
Run: carrier-scorecard-mcp
"""

from __future__ import annotations

import json
import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import httpx
from mcp.server.fastmcp import FastMCP
from mcp.types import ToolAnnotations
from pydantic import ValidationError
from starlette.requests import Request
from starlette.responses import JSONResponse

from . import __version__
from .config import load_config
from .core.clients.saferweb import CarrierDataError
from .core.fetcher import CarrierDataFetcher
from .core.lookup import CarrierIdentifier, InvalidIdentifierError, degraded_response, lookup_and_score, parse_identifier
from .core.models import BrokerChecks, CarrierProfile
from .core.scoring import calculate_scorecard

logger = logging.getLogger(__name__)

READ_ONLY = ToolAnnotations(readOnlyHint=True, destructiveHint=False, idempotentHint=True, openWorldHint=True)
PURE = ToolAnnotations(readOnlyHint=True, destructiveHint=False, idempotentHint=True, openWorldHint=False)

ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]

UPSTREAM_ERRORS = (httpx.HTTPError, CarrierDataError, ValueError)


@asynccontextmanager
async def lifespan(server: FastMCP) -> AsyncIterator[None]:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
    logger.info("Carrier Scorecard %s starting", __version__)
    yield


mcp = FastMCP(
    "Carrier Scorecard",
    instructions="Look up a motor carrier by MC or USDOT number and score its FMCSA authority, safety, inspection, insurance and double-brokerage risk.",
    lifespan=lifespan,
)


def _get_fetcher() -> CarrierDataFetcher:
    return CarrierDataFetcher(load_config())


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def _validation_message(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        location = ".".join(str(p) for p in err["loc"]) or "body"
        parts.append(f"{location}: {err['msg']}")
    return "; ".join(parts)


async def _read_body(request: Request) -> dict:
    if request.method not in ("POST", "PUT", "PATCH"):
        return {}
    raw = await request.body()
    if not raw.strip():
        return {}
    body = json.loads(raw)
    if not isinstance(body, dict):
        raise ValueError("Request body must be a JSON object")
    return body


async def _score_carrier(identifier: CarrierIdentifier, checks: Optional[BrokerChecks]) -> tuple[dict, int]:
    """Run the lookup; upstream failures become a degraded 500 payload."""
    try:
        fetcher = _get_fetcher()
        return await lookup_and_score(identifier, fetcher, checks=checks), 200
    except UPSTREAM_ERRORS as exc:
        logger.warning("Carrier lookup failed for %s: %s", identifier.carrier_id, exc)
        return degraded_response(identifier, exc), 500


# ─── HTTP: Carrier Lookup ────────────────────────────────────────────────────


@mcp.custom_route("/api/carrier-lookup", methods=ALL_METHODS)
async def carrier_lookup_endpoint(request: Request) -> JSONResponse:
    """Score a carrier fetched live from FMCSA data providers.

    Accepts `mc_number` / `usdot_number` in the JSON body (POST) or the query
    string (GET), plus an optional `checks` object of broker verification results.
    """
    if request.method not in ("GET", "POST"):
        return _error("Method not allowed", 405)

    try:
        body = await _read_body(request)
    except ValueError:
        return _error("Request body must be a JSON object", 400)

    params = request.query_params
    try:
        identifier = parse_identifier(
            body.get("mc_number") or params.get("mc_number"),
            body.get("usdot_number") or params.get("usdot_number"),
        )
        checks = BrokerChecks.model_validate(body["checks"]) if body.get("checks") else None
    except InvalidIdentifierError as exc:
        return _error(str(exc), 400)
    except ValidationError as exc:
        return _error(f"Invalid checks: {_validation_message(exc)}", 400)

    payload, status_code = await _score_carrier(identifier, checks)
    return JSONResponse(payload, status_code=status_code)


# ─── HTTP: Scorecard ─────────────────────────────────────────────────────────


@mcp.custom_route("/api/carrier-scorecard", methods=ALL_METHODS)
async def carrier_scorecard_endpoint(request: Request) -> JSONResponse:
    """Score a caller-supplied CarrierProfile. No upstream calls."""
    if request.method != "POST":
        return _error("Method not allowed", 405)

    try:
        body = await _read_body(request)
        profile = CarrierProfile.model_validate(body)
    except ValidationError as exc:
        return _error(f"Invalid carrier profile: {_validation_message(exc)}", 400)
    except ValueError:
        return _error("Request body must be a JSON object", 400)

    return JSONResponse(calculate_scorecard(profile).to_json())


@mcp.custom_route("/health", methods=["GET"])
async def health(request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok", "version": __version__})


# ─── Tool 1: Carrier Lookup ──────────────────────────────────────────────────


@mcp.tool(annotations=READ_ONLY)
async def carrier_lookup(
    mc_number: Optional[str] = None,
    usdot_number: Optional[str] = None,
    checks: Optional[dict] = None,
) -> dict:
    """Fetch a carrier's FMCSA data and score it on the carrier scorecard.

    Args:
        mc_number: MC docket number, e.g. '123456' or 'MC-123456'.
        usdot_number: USDOT number. Used for history lookups when given.
        checks: Optional broker verification results, e.g.
            {"insurer_callback_status": "Verified", "website_active_12mo": true}.
    """
    identifier = parse_identifier(mc_number, usdot_number)
    broker_checks = BrokerChecks.model_validate(checks) if checks else None
    payload, _ = await _score_carrier(identifier, broker_checks)
    return payload


# ─── Tool 2: Scorecard ───────────────────────────────────────────────────────


@mcp.tool(annotations=PURE)
async def carrier_scorecard(profile: dict) -> dict:
    """Score a carrier profile without fetching anything.

    Args:
        profile: CarrierProfile fields, e.g. {"usdot_status": "Active",
            "authority_age_months": 40, "safety_rating": "Satisfactory"}.
            Missing fields take their most conservative value.
    """
    return calculate_scorecard(CarrierProfile.model_validate(profile)).to_json()


def main():
    """Entry point for the CLI command."""
    mcp.run(transport=os.environ.get("MCP_TRANSPORT", "streamable-http"))


if __name__ == "__main__":
    main()
