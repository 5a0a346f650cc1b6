# SPDX-License-Identifier: Apache-2.0

"""
Entity lookups shared by the services, raising NotFoundException on misses.
"""

from ..models.entities import BloodRequest, Hospital
from ..domain.errors import NotFoundException

USERS = "users"
HOSPITALS = "hospitals"
BLOOD_REQUESTS = "blood_requests"
BLOOD_INVENTORY = "blood_inventory"
NOTIFICATIONS = "notifications"


def load_request(mongodb_service, request_id: str) -> BloodRequest:
    document = mongodb_service.find_by_id(BLOOD_REQUESTS, request_id)
    if document is None:
        raise NotFoundException("Blood request not found")
    return BloodRequest.from_document(document)


def load_hospital(mongodb_service, hospital_id: str) -> Hospital:
    document = mongodb_service.find_by_id(HOSPITALS, hospital_id)
    if document is None:
        raise NotFoundException("Hospital not found")
    return Hospital.from_document(document)
