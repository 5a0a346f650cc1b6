# SPDX-License-Identifier: Apache-2.0

"""
Donor ranking by proximity.

Distances are great-circle distances on a spherical Earth, the same model the
store's ``$nearSphere`` radius query uses, so the ranking agrees with the
candidate search.
"""

from typing import List, Optional, Sequence

from geopy.distance import great_circle

from ..models.entities import Donor, GeoPoint


def distance_km(origin: GeoPoint, point: Optional[GeoPoint]) -> float:
    """
    Great-circle distance between two GeoJSON points in kilometres.

    Returns infinity when ``point`` is missing so unlocated donors sort last.
    """
    if point is None:
        return float("inf")
    # geopy takes (latitude, longitude)
    return great_circle(
        (origin.latitude, origin.longitude),
        (point.latitude, point.longitude)
    ).km


def rank(candidates: Sequence[Donor], origin: GeoPoint) -> List[Donor]:
    """
    Order donors by ascending distance from ``origin``.

    The sort is stable: donors at equal distance, and donors without a
    location (placed last), keep their input order.
    """
    return sorted(candidates, key=lambda donor: distance_km(origin, donor.location))
