"""Provider configuration read from the process environment.

API keys are never embedded in code. `load_config()` builds a ProviderConfig
that is handed to the fetcher when it is constructed.
"""

from __future__ import annotations

import os
from typing import Optional

import httpx
from pydantic import BaseModel, Field

DEFAULT_SAFERWEB_BASE_URL = "https://saferwebapi.com"
DEFAULT_FMCSA_BASE_URL = "https://mobile.fmcsa.dot.gov/qc/services"


class ProviderConfig(BaseModel):
    """Credentials and endpoints for the carrier data providers."""

    saferweb_api_key: str = Field(min_length=1, repr=False)
    saferweb_base_url: str = DEFAULT_SAFERWEB_BASE_URL
    fmcsa_web_key: Optional[str] = Field(None, repr=False, description="Enables the FMCSA QCMobile lookup when set")
    fmcsa_base_url: str = DEFAULT_FMCSA_BASE_URL
    timeout_seconds: float = Field(30.0, gt=0)
    connect_timeout_seconds: float = Field(10.0, gt=0)

    @property
    def timeout(self) -> httpx.Timeout:
        return httpx.Timeout(self.timeout_seconds, connect=self.connect_timeout_seconds)


def load_config() -> ProviderConfig:
    key = os.environ.get("SAFERWEB_API_KEY", "")
    if not key:
        raise ValueError("SAFERWEB_API_KEY environment variable is required. Get a key at https://saferwebapi.com")

    return ProviderConfig(
        saferweb_api_key=key,
        saferweb_base_url=os.environ.get("SAFERWEB_BASE_URL", DEFAULT_SAFERWEB_BASE_URL).rstrip("/"),
        fmcsa_web_key=os.environ.get("FMCSA_WEB_KEY") or None,
        fmcsa_base_url=os.environ.get("FMCSA_BASE_URL", DEFAULT_FMCSA_BASE_URL).rstrip("/"),
        timeout_seconds=float(os.environ.get("HTTP_TIMEOUT_SECONDS", "30")),
    )
