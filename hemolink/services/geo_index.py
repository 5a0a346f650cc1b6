# SPDX-License-Identifier: Apache-2.0

"""
Spatial candidate lookup over user and hospital locations.
"""

import logging
from typing import Any, Dict, List

from opentelemetry import trace

from ..models.entities import Donor, GeoPoint
from .lookups import USERS

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class GeoIndex:
    """Radius queries against the store's spherical geospatial index."""

    def __init__(self, mongodb_service, collection: str = USERS):
        self.mongodb_service = mongodb_service
        self.collection = collection

    def donors_within(self, center: GeoPoint, radius_km: float,
                      filters: Dict[str, Any] = None, limit: int = None) -> List[Donor]:
        """
        Donors whose location lies within ``radius_km`` of ``center``.

        Documents that fail to parse as donors are skipped with a warning.
        """
        with tracer.start_as_current_span(
            "geo_index.donors_within",
            attributes={
                "geo.center.lng": center.longitude,
                "geo.center.lat": center.latitude,
                "geo.radius_km": radius_km
            }
        ) as span:
            documents = self.mongodb_service.find_within_radius(
                self.collection, center.as_lng_lat(), radius_km, filters=filters, limit=limit
            )

            donors = []
            for document in documents:
                try:
                    donors.append(Donor.from_document(document))
                except ValueError as e:
                    logger.warning(
                        "Skipping malformed donor document",
                        extra={"user_id": document.get("id"), "error": str(e)}
                    )

            span.set_attribute("geo.candidates", len(donors))
            return donors
