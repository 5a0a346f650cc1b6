# SPDX-License-Identifier: Apache-2.0

"""
Donor matching policy.

Pure functions translating a request's urgency into a search radius and a
recency window, and selecting the final match set from ranked candidates.
"""

import os
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, List, Sequence

from ..models.entities import Donor, BloodRequest, Hospital, MAX_MATCHED_DONORS
from ..models.enums import Urgency, UserRole
from .eligibility import donation_cutoff


@dataclass
class MatchingConfig:
    """Donor matching settings."""
    radius_km: float = 50.0
    critical_radius_km: float = 100.0
    min_interval_days: int = 56
    critical_min_interval_days: int = 28
    max_donors: int = MAX_MATCHED_DONORS
    candidate_limit: int = 100
    allow_recipient_trigger: bool = False

    def __post_init__(self):
        if not 0 < self.max_donors <= MAX_MATCHED_DONORS:
            raise ValueError(f"max_donors must be between 1 and {MAX_MATCHED_DONORS}")
        if self.radius_km <= 0 or self.critical_radius_km <= 0:
            raise ValueError("Search radius must be positive")

    @classmethod
    def from_env(cls) -> "MatchingConfig":
        """Build the configuration from MATCH_* environment variables."""
        return cls(
            radius_km=float(os.getenv('MATCH_RADIUS_KM', '50')),
            critical_radius_km=float(os.getenv('MATCH_CRITICAL_RADIUS_KM', '100')),
            min_interval_days=int(os.getenv('MATCH_MIN_INTERVAL_DAYS', '56')),
            critical_min_interval_days=int(os.getenv('MATCH_CRITICAL_INTERVAL_DAYS', '28')),
            max_donors=int(os.getenv('MATCH_MAX_DONORS', str(MAX_MATCHED_DONORS))),
            candidate_limit=int(os.getenv('MATCH_CANDIDATE_LIMIT', '100')),
            allow_recipient_trigger=os.getenv('MATCH_ALLOW_RECIPIENT', 'false').lower() == 'true'
        )


@dataclass(frozen=True)
class MatchPolicy:
    """Search parameters derived from a request's urgency."""
    radius_km: float
    min_interval_days: int


def policy_for(urgency: str, config: MatchingConfig) -> MatchPolicy:
    """Critical requests search wider and accept more recent donors."""
    if urgency == Urgency.CRITICAL:
        return MatchPolicy(config.critical_radius_km, config.critical_min_interval_days)
    return MatchPolicy(config.radius_km, config.min_interval_days)


def build_donor_filter(blood_type: str, policy: MatchPolicy, now: datetime,
                       exclude_ids: Iterable[str] = None) -> Dict[str, Any]:
    """
    Store filter for eligible donors, applied alongside the radius query.

    Only users with the donor role qualify. Donors who never donated have a
    null ``lastDonationDate`` and qualify. ``exclude_ids`` keeps specific
    users, such as the request's recipient, out of the candidate set.
    """
    filters = {
        "role": UserRole.DONOR.value,
        "bloodType": blood_type,
        "donationEligibility": True,
        "$or": [
            {"lastDonationDate": None},
            {"lastDonationDate": {"$lte": donation_cutoff(now, policy.min_interval_days)}}
        ]
    }
    if exclude_ids:
        filters["id"] = {"$nin": list(exclude_ids)}
    return filters


def select_top(ranked: Sequence[Donor], limit: int) -> List[Donor]:
    """Take the best ``limit`` donors, never more than the request can hold."""
    return list(ranked[:min(limit, MAX_MATCHED_DONORS)])


def potential_match_message(hospital: Hospital, blood_request: BloodRequest) -> str:
    return (
        f"You have been matched for a blood donation request at {hospital.name} "
        f"for blood type {blood_request.blood_type}. Please check the app for details."
    )
