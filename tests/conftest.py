"""Shared fixtures: carrier profiles and provider payloads."""

import pytest

from carrier_scorecard.core.models import CarrierBundle, CarrierProfile


@pytest.fixture
def perfect_profile_data():
    """A carrier that earns full marks in every category."""
    return {
        "usdot_status": "Active",
        "operating_authority_status": "Active",
        "authority_age_months": 48,
        "mcs150_biennial_update": "Current",
        "safety_rating": "Satisfactory",
        "drug_alcohol_violations": 0,
        "fatal_crashes": 0,
        "injury_crashes": 0,
        "fatal_crash_at_fault": False,
        "authority_scope_mismatch": False,
        "contact_mismatch": False,
        "insurance_holder_is_third_party": False,
        "load_reposting_observed": False,
        "reposting_disclosed": False,
        "email_type": "DomainMatch",
        "insurer_callback_status": "Verified",
        "vehicle_oos_rate_pct": 0.0,
        "driver_oos_rate_pct": 0.0,
        "national_avg_vehicle": 22.26,
        "national_avg_driver": 6.67,
        "total_inspections_24mo": 20,
        "bipd_filing_active": True,
        "bipd_limit_usd": 1_000_000,
        "cargo_insurance_verified": True,
        "website_active_12mo": True,
        "facebook_active_12mo": True,
        "address_consistent_with_fmcsa": True,
        "growth_trend_pct": 12.5,
    }


@pytest.fixture
def perfect_profile(perfect_profile_data):
    return CarrierProfile(**perfect_profile_data)


@pytest.fixture
def clean_bundle():
    """SaferWebAPI payloads for an established carrier with a clean record."""
    return CarrierBundle(
        snapshot={
            "legal_name": "ACME FREIGHT LLC",
            "dba_name": "ACME",
            "usdot": "1234567",
            "carrier_status": "ACTIVE",
            "operating_authority_status": "Active",
            "authority_granted_date": "2015-03-01",
            "mcs150_outdated": "N",
            "safety_rating": "Satisfactory",
            "bipd_insurance_on_file": "1,000",
            "cargo_insurance_on_file": "100",
        },
        inspections={"inspection_records": [
            {"report_number": "MD0001", "vehicle_oos_total": 0, "driver_oos_total": 0},
            {"report_number": "MD0002", "vehicle_oos_total": 0, "driver_oos_total": 0},
        ]},
        violations={"violation_records": []},
        crashes={"crash_records": []},
    )
