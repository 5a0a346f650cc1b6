# SPDX-License-Identifier: Apache-2.0

"""
Hospital inventory endpoints.
"""

from flask import jsonify, current_app, g
from flask_openapi3 import APIBlueprint, Tag
import logging

from ..models.requests import HospitalPath, SetInventoryRequest, AddUnitsRequest, RemoveUnitsRequest
from ..middleware.auth import require_jwt

logger = logging.getLogger(__name__)

inventory_tag = Tag(name="Inventory", description="Per-hospital blood stock management")
inventory_bp = APIBlueprint(
    'inventory',
    __name__,
    url_prefix='/api/inventory',
    abp_tags=[inventory_tag]
)


@inventory_bp.get('/<hospital_id>')
@require_jwt
def get_inventory(path: HospitalPath):
    """List a hospital's stock."""
    records = current_app.inventory_ledger.get_inventory(path.hospital_id, actor=g.user_context)
    return jsonify({
        "success": True,
        "count": len(records),
        "data": [r.to_response() for r in records]
    })


@inventory_bp.put('/<hospital_id>')
@require_jwt
def set_inventory(path: HospitalPath, body: SetInventoryRequest):
    """Set the quantity and expiry of one blood type."""
    record = current_app.inventory_ledger.set_quantity(
        path.hospital_id,
        body.blood_type.value,
        body.quantity,
        body.expiry_date,
        actor=g.user_context
    )
    return jsonify({"success": True, "data": record.to_response()})


@inventory_bp.post('/<hospital_id>/add')
@require_jwt
def add_units(path: HospitalPath, body: AddUnitsRequest):
    """Add stock of one blood type."""
    record = current_app.inventory_ledger.add_units(
        path.hospital_id,
        body.blood_type.value,
        body.amount,
        body.expiry_date,
        actor=g.user_context
    )
    return jsonify({"success": True, "data": record.to_response()})


@inventory_bp.post('/<hospital_id>/remove')
@require_jwt
def remove_units(path: HospitalPath, body: RemoveUnitsRequest):
    """Remove stock of one blood type; fails without change when stock is insufficient."""
    record = current_app.inventory_ledger.remove_units(
        path.hospital_id,
        body.blood_type.value,
        body.amount,
        actor=g.user_context
    )
    return jsonify({"success": True, "data": record.to_response()})


@inventory_bp.post('/<hospital_id>/expire')
@require_jwt
def expire_stock(path: HospitalPath):
    """Remove expired stock records."""
    removed = current_app.inventory_ledger.expire_stock(path.hospital_id, actor=g.user_context)
    return jsonify({"success": True, "removed": removed})
