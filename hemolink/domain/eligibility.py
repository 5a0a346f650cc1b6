# SPDX-License-Identifier: Apache-2.0

"""
Donor eligibility rules.

Pure predicates deciding whether a donor may be matched to a request, given
the blood type asked for and the minimum interval since the donor's last
donation.
"""

from datetime import datetime, timedelta
from typing import Iterable, List, Optional

from ..models.entities import Donor


def donation_cutoff(now: datetime, min_interval_days: int) -> datetime:
    """Latest last-donation date that still satisfies the interval."""
    return now - timedelta(days=min_interval_days)


def is_eligible(donor: Donor, blood_type: str, min_interval_days: int,
                now: Optional[datetime] = None) -> bool:
    """
    Check if a donor can be matched.

    Args:
        donor: Candidate donor
        blood_type: Requested blood type, matched exactly
        min_interval_days: Minimum days since the donor's last donation
        now: Reference time (naive UTC), defaults to the current time

    Returns:
        True iff the blood type matches, the eligibility flag is set and the
        last donation is absent or at least ``min_interval_days`` old
    """
    if donor.blood_type != blood_type:
        return False

    if not donor.donation_eligibility:
        return False

    if donor.last_donation_date is None:
        return True

    now = now or datetime.utcnow()
    return now - donor.last_donation_date >= timedelta(days=min_interval_days)


def filter_eligible(donors: Iterable[Donor], blood_type: str, min_interval_days: int,
                    now: Optional[datetime] = None) -> List[Donor]:
    """Keep only eligible donors, preserving input order."""
    now = now or datetime.utcnow()
    return [d for d in donors if is_eligible(d, blood_type, min_interval_days, now)]
