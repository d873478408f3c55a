"""Parallel upstream fetch for a single carrier lookup.

All provider requests for a carrier are issued together and joined. The
lookup succeeds only if every request succeeds; there is no partial-result
fallback and no retry.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import AsyncExitStack
from typing import Optional

import httpx

from ..config import ProviderConfig
from .clients.qcmobile import QCMobileClient
from .clients.saferweb import SaferWebClient
from .models import CarrierBundle

logger = logging.getLogger(__name__)


class CarrierDataFetcher:
    """Fans out to every configured provider and collects a CarrierBundle."""

    def __init__(self, config: ProviderConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.saferweb = SaferWebClient(config, transport=transport)
        self.qcmobile = QCMobileClient(config, transport=transport) if config.fmcsa_web_key else None

    async def fetch(self, mc_number: Optional[str] = None, usdot_number: Optional[str] = None) -> CarrierBundle:
        """Fetch snapshot, inspections, violations, crashes (and the QCMobile record if enabled).

        History endpoints are keyed by the USDOT number when one is given,
        otherwise by the MC number.
        """
        carrier_id = usdot_number or mc_number
        if not carrier_id:
            raise ValueError("An MC or USDOT number is required")

        async with AsyncExitStack() as stack:
            saferweb = await stack.enter_async_context(self.saferweb.client())
            requests = [
                self.saferweb.fetch_snapshot(saferweb, mc_number=mc_number, usdot_number=usdot_number),
                self.saferweb.fetch_inspections(saferweb, carrier_id),
                self.saferweb.fetch_violations(saferweb, carrier_id),
                self.saferweb.fetch_crashes(saferweb, carrier_id),
            ]
            if self.qcmobile is not None:
                qcmobile = await stack.enter_async_context(self.qcmobile.client())
                requests.append(self.qcmobile.fetch_carrier(qcmobile, mc_number=mc_number, usdot_number=usdot_number))

            results = await asyncio.gather(*requests, return_exceptions=True)

        failures = [r for r in results if isinstance(r, BaseException)]
        if failures:
            logger.warning("Carrier data fetch failed for %s (%d of %d requests): %s", carrier_id, len(failures), len(results), failures[0])
            raise failures[0]

        snapshot, inspections, violations, crashes = results[:4]
        return CarrierBundle(
            snapshot=snapshot,
            inspections=inspections,
            violations=violations,
            crashes=crashes,
            fmcsa_carrier=results[4] if len(results) > 4 else None,
        )
