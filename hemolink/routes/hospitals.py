# SPDX-License-Identifier: Apache-2.0

"""
Hospital endpoints.
"""

from flask import jsonify, current_app, g
from flask_openapi3 import APIBlueprint, Tag

from ..models.requests import HospitalPath, RegisterHospitalRequest
from ..middleware.auth import require_jwt

hospitals_tag = Tag(name="Hospitals", description="Hospital registration")
hospitals_bp = APIBlueprint(
    'hospitals',
    __name__,
    url_prefix='/api/hospitals',
    abp_tags=[hospitals_tag]
)


@hospitals_bp.post('/register')
@require_jwt
def register_hospital(body: RegisterHospitalRequest):
    """Register a hospital. The address is geocoded when no location is given."""
    hospital = current_app.hospital_service.register_hospital(
        g.user_context,
        name=body.name,
        address=body.address,
        admins=body.admins,
        location=body.location
    )
    return jsonify({"success": True, "data": hospital.to_response()}), 201


@hospitals_bp.get('/<hospital_id>')
@require_jwt
def get_hospital(path: HospitalPath):
    """Get hospital details."""
    hospital = current_app.hospital_service.get_hospital(path.hospital_id, g.user_context)
    return jsonify({"success": True, "data": hospital.to_response()})
