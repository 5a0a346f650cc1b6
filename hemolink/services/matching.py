# SPDX-License-Identifier: Apache-2.0

"""
Donor matching for blood requests.

Finds donors near the request's hospital, keeps the eligible ones, ranks them
by distance and records the closest on the request. The request update is a
compare-and-swap on the status read at the start, so two concurrent matching
runs cannot both write their match set.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from ..models.entities import BloodRequest, Donor, UserContext
from ..models.enums import RequestStatus, NotificationType
from ..domain import authorization
from ..domain.errors import ConflictException, InvalidTransitionException
from ..domain.eligibility import filter_eligible
from ..domain.matching import (
    MatchingConfig, policy_for, build_donor_filter, select_top, potential_match_message
)
from ..domain.ranking import rank
from .geo_index import GeoIndex
from .lookups import BLOOD_REQUESTS, load_request, load_hospital
from .notifications import NotificationDispatcher

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


@dataclass
class MatchResult:
    """Outcome of a matching run. An empty donor list is a valid result."""
    request: BloodRequest
    matched_donors: List[Donor] = field(default_factory=list)


class MatchingEngine:
    """Orchestrates GeoIndex, eligibility filtering and ranking."""

    def __init__(self, mongodb_service, geo_index: GeoIndex, dispatcher: NotificationDispatcher,
                 config: Optional[MatchingConfig] = None):
        self.mongodb_service = mongodb_service
        self.geo_index = geo_index
        self.dispatcher = dispatcher
        self.config = config or MatchingConfig()

    def match_donors(self, request_id: str, actor: UserContext,
                     now: Optional[datetime] = None) -> MatchResult:
        """
        Match donors to a blood request.

        Args:
            request_id: Blood request ID
            actor: Authenticated user triggering the match
            now: Reference time for eligibility windows (naive UTC)

        Returns:
            MatchResult with the (possibly unchanged) request and the donors
            matched by this run

        Raises:
            NotFoundException: request or hospital missing
            AuthorizationException: actor may not trigger matching
            InvalidTransitionException: request already fulfilled or cancelled
            ConflictException: the request changed while matching ran
        """
        now = now or datetime.utcnow()

        with tracer.start_as_current_span(
            "matching.match_donors",
            attributes={"request.id": request_id, "user.id": actor.user_id}
        ) as span:
            blood_request = load_request(self.mongodb_service, request_id)
            hospital = load_hospital(self.mongodb_service, blood_request.hospital_id)

            authorization.enforce(authorization.can_trigger_matching(
                actor, hospital, blood_request, self.config.allow_recipient_trigger
            ))

            if blood_request.is_terminal():
                raise InvalidTransitionException(
                    blood_request.status, RequestStatus.MATCHED.value,
                    f"Cannot match donors for a {blood_request.status} request"
                )

            policy = policy_for(blood_request.urgency, self.config)
            span.set_attributes({
                "request.urgency": blood_request.urgency,
                "request.blood_type": blood_request.blood_type,
                "matching.radius_km": policy.radius_km,
                "matching.min_interval_days": policy.min_interval_days
            })

            candidates = self.geo_index.donors_within(
                hospital.location,
                policy.radius_km,
                filters=build_donor_filter(
                    blood_request.blood_type, policy, now, exclude_ids=[blood_request.recipient_id]
                ),
                limit=self.config.candidate_limit
            )
            eligible = filter_eligible(
                candidates, blood_request.blood_type, policy.min_interval_days, now
            )
            matched = select_top(rank(eligible, hospital.location), self.config.max_donors)

            span.set_attributes({
                "matching.candidates": len(candidates),
                "matching.eligible": len(eligible),
                "matching.matched": len(matched)
            })

            if not matched:
                logger.info(
                    "No donors found for request",
                    extra={
                        "request_id": request_id,
                        "blood_type": blood_request.blood_type,
                        "radius_km": policy.radius_km
                    }
                )
                return MatchResult(request=blood_request, matched_donors=[])

            updated = self._record_matches(blood_request, [d.id for d in matched])
            span.set_status(Status(StatusCode.OK))

            logger.info(
                "Donors matched to request",
                extra={
                    "request_id": request_id,
                    "matched_count": len(matched),
                    "user_id": actor.user_id
                }
            )

            message = potential_match_message(hospital, updated)
            for donor in matched:
                self.dispatcher.dispatch(donor.id, message, NotificationType.POTENTIAL_MATCH.value)

            return MatchResult(request=updated, matched_donors=matched)

    def _record_matches(self, blood_request: BloodRequest, donor_ids: List[str]) -> BloodRequest:
        """Write the match set, provided the request is as we read it."""
        document = self.mongodb_service.update_by_id(
            BLOOD_REQUESTS,
            blood_request.id,
            {"$set": {
                "matchedDonorIds": donor_ids,
                "status": RequestStatus.MATCHED.value
            }},
            precondition={
                "status": blood_request.status,
                "matchedDonorIds": blood_request.matched_donor_ids
            }
        )
        if document is None:
            logger.warning(
                "Request changed during matching",
                extra={"request_id": blood_request.id, "observed_status": blood_request.status}
            )
            raise ConflictException(
                "Blood request was modified concurrently; matching was not applied"
            )
        return BloodRequest.from_document(document)
