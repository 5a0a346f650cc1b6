# SPDX-License-Identifier: Apache-2.0

"""
Blood request endpoints.

Creation, lookup, donor matching and status updates. Handlers delegate to
the services attached to the application and let application exceptions
reach the registered error handlers.
"""

from flask import jsonify, current_app, g
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace
import logging

from ..models.requests import RequestPath, CreateBloodRequestRequest, UpdateRequestStatusRequest
from ..middleware.auth import require_jwt

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

requests_tag = Tag(name="Blood Requests", description="Blood request lifecycle and donor matching")
requests_bp = APIBlueprint(
    'blood_requests',
    __name__,
    url_prefix='/api/requests',
    abp_tags=[requests_tag]
)


@requests_bp.post('')
@require_jwt
def create_blood_request(body: CreateBloodRequestRequest):
    """
    Create a blood request.

    The authenticated user becomes the request's recipient.
    """
    user_context = g.user_context
    blood_request = current_app.request_service.create_request(
        user_context,
        hospital_id=body.hospital_id,
        blood_type=body.blood_type.value,
        quantity=body.quantity,
        urgency=body.urgency.value
    )
    return jsonify({"success": True, "data": blood_request.to_response()}), 201


@requests_bp.get('/mine')
@require_jwt
def list_my_requests():
    """List blood requests relevant to the authenticated user."""
    requests = current_app.request_service.list_requests_for(g.user_context)
    return jsonify({
        "success": True,
        "count": len(requests),
        "data": [r.to_response() for r in requests]
    })


@requests_bp.get('/<request_id>')
@require_jwt
def get_blood_request(path: RequestPath):
    """Get a blood request."""
    blood_request = current_app.request_service.get_request(path.request_id, g.user_context)
    return jsonify({"success": True, "data": blood_request.to_response()})


@requests_bp.post('/match/<request_id>')
@require_jwt
def match_donors(path: RequestPath):
    """
    Match donors to a blood request.

    Finding no eligible donors is not an error: the request is returned
    unchanged with ``matchedDonorsCount`` 0.
    """
    user_context = g.user_context
    with tracer.start_as_current_span(
        "blood_request.match",
        attributes={"request.id": path.request_id, "user.id": user_context.user_id}
    ) as span:
        result = current_app.matching_engine.match_donors(path.request_id, user_context)
        span.set_attribute("matching.matched", len(result.matched_donors))

        message = "Donors matched" if result.matched_donors else "No eligible donors found"
        return jsonify({
            "success": True,
            "message": message,
            "data": result.request.to_response(),
            "matchedDonorsCount": len(result.matched_donors)
        })


@requests_bp.put('/<request_id>/status')
@require_jwt
def update_request_status(path: RequestPath, body: UpdateRequestStatusRequest):
    """Fulfil or cancel a blood request."""
    blood_request = current_app.request_service.update_status(
        path.request_id, body.status, g.user_context
    )
    return jsonify({"success": True, "data": blood_request.to_response()})
