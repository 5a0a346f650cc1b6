# SPDX-License-Identifier: Apache-2.0

"""
Hospital registration and lookup.
"""

import logging
from typing import List, Optional

from opentelemetry import trace
from pydantic import ValidationError

from ..models.entities import GeoPoint, Hospital, UserContext
from ..models.enums import UserRole
from ..domain import authorization
from ..domain.errors import ValidationException
from .geocoding import Geocoder
from .lookups import USERS, HOSPITALS, load_hospital

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class HospitalService:
    """Registers hospitals, resolving their location from the address when needed."""

    def __init__(self, mongodb_service, geocoder: Geocoder):
        self.mongodb_service = mongodb_service
        self.geocoder = geocoder

    def register_hospital(self, actor: UserContext, name: str, address: str,
                          admins: List[str] = None, location: Optional[GeoPoint] = None) -> Hospital:
        """
        Register a hospital.

        Raises:
            AuthorizationException: actor is not a system admin
            ValidationException: the name is blank, or an admin ID is not a
                hospital admin user
            UpstreamUnavailableException: no location given and the address
                cannot be geocoded
        """
        authorization.enforce(
            authorization.check_capability(actor, authorization.HOSPITAL_REGISTER)
        )
        if not name or not name.strip():
            raise ValidationException("Hospital name cannot be empty")
        admins = list(admins or [])

        with tracer.start_as_current_span("hospitals.register") as span:
            self._validate_admins(admins)

            if location is None:
                location = self.geocoder.require_geocode(address).location
                span.set_attribute("hospital.geocoded", True)

            try:
                hospital = Hospital(name=name, address=address, location=location, admins=admins)
            except ValidationError as e:
                raise ValidationException("Invalid hospital data", [err["msg"] for err in e.errors()])

            hospital.id = self.mongodb_service.insert(HOSPITALS, hospital.to_document())
            span.set_attribute("hospital.id", hospital.id)

            logger.info(
                "Hospital registered",
                extra={"hospital_id": hospital.id, "admins": len(admins), "user_id": actor.user_id}
            )
            return hospital

    def get_hospital(self, hospital_id: str, actor: UserContext) -> Hospital:
        hospital = load_hospital(self.mongodb_service, hospital_id)
        authorization.enforce(authorization.can_view_hospital(actor, hospital))
        return hospital

    def _validate_admins(self, admins: List[str]) -> None:
        if not admins:
            return
        if len(set(admins)) != len(admins):
            raise ValidationException("Hospital admin IDs must be unique")

        try:
            found = self.mongodb_service.find(
                USERS, {"id": {"$in": admins}, "role": UserRole.HOSPITAL_ADMIN.value}
            )
        except ValueError:
            raise ValidationException("One or more provided admin IDs are not valid IDs")

        missing = set(admins) - {doc["id"] for doc in found}
        if missing:
            raise ValidationException(
                "One or more provided admin IDs are invalid or not hospital admins",
                sorted(missing)
            )
