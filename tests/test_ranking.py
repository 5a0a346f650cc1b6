# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Unit tests for proximity ranking.
"""

import math

from hemolink.domain.ranking import rank, distance_km
from hemolink.models.entities import Donor, GeoPoint

ORIGIN = GeoPoint.from_lng_lat(0.0, 0.0)


def donor_at(lng=None, lat=None, name=None):
    location = GeoPoint.from_lng_lat(lng, lat) if lng is not None else None
    return Donor(blood_type="O-", location=location, full_name=name)


class TestDistance:

    def test_one_degree_of_latitude(self):
        # ~111.2 km on a 6371 km sphere
        assert math.isclose(distance_km(ORIGIN, GeoPoint.from_lng_lat(0.0, 1.0)), 111.19, rel_tol=1e-3)

    def test_missing_location_is_infinite(self):
        assert distance_km(ORIGIN, None) == float("inf")


class TestRank:
    """Test ranking order and stability."""

    def test_sorted_ascending(self):
        far = donor_at(0.5, 0.5, "far")
        near = donor_at(0.01, 0.0, "near")
        middle = donor_at(0.1, 0.1, "middle")

        ranked = rank([far, near, middle], ORIGIN)

        assert [d.full_name for d in ranked] == ["near", "middle", "far"]
        distances = [distance_km(ORIGIN, d.location) for d in ranked]
        assert distances == sorted(distances)

    def test_reranking_is_noop(self):
        donors = [donor_at(0.3, 0.0), donor_at(0.1, 0.0), donor_at(0.2, 0.0)]

        once = rank(donors, ORIGIN)
        twice = rank(once, ORIGIN)

        assert twice == once

    def test_unlocated_donors_last_and_stable(self):
        lost_a = donor_at(name="lost-a")
        lost_b = donor_at(name="lost-b")
        located = donor_at(1.0, 1.0, "located")

        ranked = rank([lost_a, located, lost_b], ORIGIN)

        assert [d.full_name for d in ranked] == ["located", "lost-a", "lost-b"]

    def test_empty(self):
        assert rank([], ORIGIN) == []
