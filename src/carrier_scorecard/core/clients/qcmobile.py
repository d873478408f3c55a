"""FMCSA QCMobile API client.

API docs: https://mobile.fmcsa.dot.gov/QCDevsite/docs/qcApi
Requires a free web key, passed as the `webKey` query parameter.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from ...config import ProviderConfig
from .saferweb import CarrierDataError

logger = logging.getLogger(__name__)


class QCMobileClient:
    def __init__(self, config: ProviderConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        if not config.fmcsa_web_key:
            raise ValueError("FMCSA_WEB_KEY is required for the QCMobile client")
        self.base_url = config.fmcsa_base_url
        self._web_key = config.fmcsa_web_key
        self._timeout = config.timeout
        self._transport = transport

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=self._timeout, transport=self._transport)

    async def fetch_carrier(
        self,
        client: httpx.AsyncClient,
        mc_number: Optional[str] = None,
        usdot_number: Optional[str] = None,
    ) -> dict:
        """Fetch the QCMobile carrier record by USDOT number, or by MC docket number."""
        if usdot_number:
            path = f"/carriers/{usdot_number}"
        elif mc_number:
            path = f"/carriers/docket-number/{mc_number}"
        else:
            raise ValueError("An MC or USDOT number is required")

        response = await client.get(path, params={"webKey": self._web_key})
        response.raise_for_status()
        data = response.json()

        content = data.get("content") if isinstance(data, dict) else None
        if isinstance(content, list):
            content = content[0] if content else None
        carrier = content.get("carrier") if isinstance(content, dict) else None
        if not isinstance(carrier, dict) or not carrier:
            raise CarrierDataError(f"Carrier not found in FMCSA QCMobile ({path})")
        return data
