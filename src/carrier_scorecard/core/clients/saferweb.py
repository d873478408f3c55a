"""SaferWebAPI client: FMCSA SAFER snapshots and carrier history.

API docs: https://saferwebapi.com/documentation
Requires an API key, sent in the `x-api-key` header.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from ...config import ProviderConfig

logger = logging.getLogger(__name__)


class CarrierDataError(Exception):
    """A provider answered, but not with a usable payload."""


class SaferWebClient:
    """Fetches SAFER data for one carrier per call. Holds no per-carrier state."""

    def __init__(self, config: ProviderConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = config.saferweb_base_url
        self._api_key = config.saferweb_api_key
        self._timeout = config.timeout
        self._transport = transport

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers={"x-api-key": self._api_key, "accept": "application/json"},
            timeout=self._timeout,
            transport=self._transport,
        )

    async def fetch_snapshot(
        self,
        client: httpx.AsyncClient,
        mc_number: Optional[str] = None,
        usdot_number: Optional[str] = None,
    ) -> dict:
        """Fetch the carrier snapshot. MC numbers take precedence over USDOT numbers."""
        if mc_number:
            path = f"/v2/mcmx/snapshot/{mc_number}"
        elif usdot_number:
            path = f"/v2/usdot/snapshot/{usdot_number}"
        else:
            raise ValueError("An MC or USDOT number is required")
        return await self._get_json(client, path)

    async def fetch_inspections(self, client: httpx.AsyncClient, carrier_id: str) -> dict:
        return await self._get_json(client, f"/v3/history/inspection/{carrier_id}")

    async def fetch_violations(self, client: httpx.AsyncClient, carrier_id: str) -> dict:
        return await self._get_json(client, f"/v3/history/violation/{carrier_id}")

    async def fetch_crashes(self, client: httpx.AsyncClient, carrier_id: str) -> dict:
        return await self._get_json(client, f"/v3/history/crash/{carrier_id}")

    async def _get_json(self, client: httpx.AsyncClient, path: str) -> dict:
        response = await client.get(path)
        response.raise_for_status()
        try:
            data = response.json()
        except ValueError as exc:
            raise CarrierDataError(f"SaferWebAPI returned invalid JSON for {path}") from exc
        if isinstance(data, list):
            return {"records": data}
        if not isinstance(data, dict):
            raise CarrierDataError(f"Unexpected SaferWebAPI payload for {path}: {type(data).__name__}")
        return data
