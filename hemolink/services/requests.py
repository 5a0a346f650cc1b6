# SPDX-License-Identifier: Apache-2.0

"""
Blood request lifecycle service.

Creates requests, serves them to the parties involved and applies the
externally requested status changes (fulfil or cancel). Status writes are
compare-and-swap on the status read before the change.
"""

import logging
from typing import List, Optional

from opentelemetry import trace

from ..models.entities import BloodRequest, Hospital, UserContext
from ..models.enums import NotificationType, UserRole
from ..domain import authorization
from ..domain.errors import ConflictException, NotFoundException
from ..domain.request_status import validate_transition, transition_notices
from .lookups import USERS, HOSPITALS, BLOOD_REQUESTS, load_request, load_hospital
from .notifications import NotificationDispatcher

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class BloodRequestService:
    """Service for blood request operations."""

    def __init__(self, mongodb_service, dispatcher: NotificationDispatcher):
        self.mongodb_service = mongodb_service
        self.dispatcher = dispatcher

    def create_request(self, actor: UserContext, hospital_id: str, blood_type: str,
                       quantity: int, urgency: str = "medium") -> BloodRequest:
        """
        Raise a new blood request on behalf of ``actor``.

        The request starts ``pending`` with no matched donors, and the
        hospital's first admin is told about it.

        Raises:
            AuthorizationException: role may not create requests
            NotFoundException: recipient or hospital does not exist
        """
        authorization.enforce(authorization.check_capability(actor, authorization.REQUEST_CREATE))

        with tracer.start_as_current_span(
            "requests.create", attributes={"user.id": actor.user_id, "hospital.id": hospital_id}
        ) as span:
            if self.mongodb_service.find_by_id(USERS, actor.user_id) is None:
                raise NotFoundException("Recipient not found")
            hospital = load_hospital(self.mongodb_service, hospital_id)

            blood_request = BloodRequest(
                recipient_id=actor.user_id,
                hospital_id=hospital.id,
                blood_type=blood_type,
                quantity=quantity,
                urgency=urgency
            )
            blood_request.id = self.mongodb_service.insert(BLOOD_REQUESTS, blood_request.to_document())
            span.set_attribute("request.id", blood_request.id)

            logger.info(
                "Blood request created",
                extra={
                    "request_id": blood_request.id,
                    "hospital_id": hospital.id,
                    "blood_type": blood_request.blood_type,
                    "urgency": blood_request.urgency
                }
            )

            if hospital.primary_admin_id:
                self.dispatcher.dispatch(
                    hospital.primary_admin_id,
                    f"New blood request for {blood_request.blood_type} "
                    f"({blood_request.quantity}ml, urgency: {blood_request.urgency}).",
                    NotificationType.NEW_REQUEST.value
                )
            return blood_request

    def get_request(self, request_id: str, actor: UserContext) -> BloodRequest:
        """Fetch a request visible to ``actor``."""
        blood_request = load_request(self.mongodb_service, request_id)
        authorization.enforce(authorization.can_view_request(
            actor, self._find_hospital(blood_request.hospital_id), blood_request
        ))
        return blood_request

    def list_requests_for(self, actor: UserContext) -> List[BloodRequest]:
        """
        Requests relevant to ``actor``, newest first.

        Recipients see their own requests, hospital admins the requests at
        hospitals they administer, donors those they were matched on, and
        system admins all requests.
        """
        if actor.role == UserRole.RECIPIENT:
            filters = {"recipientId": actor.user_id}
        elif actor.role == UserRole.HOSPITAL_ADMIN:
            hospitals = self.mongodb_service.find(HOSPITALS, {"admins": actor.user_id})
            filters = {"hospitalId": {"$in": [h["id"] for h in hospitals]}}
        elif actor.role == UserRole.DONOR:
            filters = {"matchedDonorIds": actor.user_id}
        else:
            filters = {}

        documents = self.mongodb_service.find(BLOOD_REQUESTS, filters, sort=[("createdAt", -1)])
        return [BloodRequest.from_document(doc) for doc in documents]

    def update_status(self, request_id: str, new_status: str, actor: UserContext) -> BloodRequest:
        """
        Fulfil or cancel a request.

        Args:
            request_id: Blood request ID
            new_status: ``fulfilled`` or ``cancelled``
            actor: Authenticated user

        Returns:
            The updated request

        Raises:
            NotFoundException: request does not exist
            AuthorizationException: actor is not the recipient or a hospital admin
            ValidationException: unknown status value
            InvalidTransitionException: the move is not allowed from the current status
            ConflictException: the request changed concurrently
        """
        with tracer.start_as_current_span(
            "requests.update_status",
            attributes={"request.id": request_id, "request.target_status": str(new_status)}
        ) as span:
            blood_request = load_request(self.mongodb_service, request_id)
            hospital = self._find_hospital(blood_request.hospital_id)

            authorization.enforce(
                authorization.can_update_request_status(actor, hospital, blood_request)
            )
            target = validate_transition(blood_request.status, new_status, external=True)
            span.set_attribute("request.current_status", blood_request.status)

            document = self.mongodb_service.update_by_id(
                BLOOD_REQUESTS,
                request_id,
                {"$set": {"status": target.value}},
                precondition={"status": blood_request.status}
            )
            if document is None:
                logger.warning(
                    "Request status changed concurrently",
                    extra={"request_id": request_id, "observed_status": blood_request.status}
                )
                raise ConflictException(
                    "Blood request was modified concurrently; status was not updated"
                )
            updated = BloodRequest.from_document(document)

            logger.info(
                "Blood request status updated",
                extra={
                    "request_id": request_id,
                    "from_status": blood_request.status,
                    "to_status": target.value,
                    "user_id": actor.user_id
                }
            )

            for notice in transition_notices(updated, hospital, target):
                self.dispatcher.dispatch(notice.user_id, notice.message, notice.type.value)

            return updated

    def _find_hospital(self, hospital_id: str) -> Optional[Hospital]:
        # A request may outlive its hospital; callers degrade to no admin.
        document = self.mongodb_service.find_by_id(HOSPITALS, hospital_id)
        return Hospital.from_document(document) if document else None


