# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Pytest configuration and fixtures.

The services run against ``InMemoryStore``, a dictionary-backed stand-in for
MongoDBService that supports the filter and update operators the services
use, including a great-circle radius query.
"""

import copy
import os
from datetime import datetime
from typing import Any, Dict, List, Optional

import pytest
from bson import ObjectId
from geopy.distance import great_circle

os.environ['ENVIRONMENT'] = 'test'
os.environ['OTEL_ENABLED'] = 'false'

from hemolink.models.entities import GeoPoint, Notification, UserContext  # noqa: E402
from hemolink.services.notifications import NotificationGateway, NotificationDispatcher  # noqa: E402


def _get(document: Dict[str, Any], field: str) -> Any:
    value = document
    for part in field.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


def _compare(actual: Any, op: str, expected: Any) -> bool:
    if op == "$in":
        if isinstance(actual, list):
            return any(item in expected for item in actual)
        return actual in expected
    if op == "$nin":
        if isinstance(actual, list):
            return not any(item in expected for item in actual)
        return actual not in expected
    if op == "$ne":
        return actual != expected
    if actual is None:
        return False
    if op == "$gte":
        return actual >= expected
    if op == "$gt":
        return actual > expected
    if op == "$lte":
        return actual <= expected
    if op == "$lt":
        return actual < expected
    raise NotImplementedError(f"Unsupported operator {op}")


def matches(document: Dict[str, Any], filters: Optional[Dict[str, Any]]) -> bool:
    """Evaluate a MongoDB-style filter against a document."""
    for field, condition in (filters or {}).items():
        if field == "$or":
            if not any(matches(document, clause) for clause in condition):
                return False
            continue

        actual = _get(document, field)
        if isinstance(condition, dict) and condition and all(k.startswith("$") for k in condition):
            if not all(_compare(actual, op, expected) for op, expected in condition.items()):
                return False
        elif condition is None:
            if actual is not None:
                return False
        elif isinstance(actual, list) and not isinstance(condition, list):
            if condition not in actual:
                return False
        elif actual != condition:
            return False
    return True


def _apply_update(document: Dict[str, Any], update: Dict[str, Any], inserting: bool) -> None:
    for field, value in update.get("$set", {}).items():
        document[field] = copy.deepcopy(value)
    for field, amount in update.get("$inc", {}).items():
        document[field] = document.get(field, 0) + amount
    for field, value in update.get("$max", {}).items():
        if document.get(field) is None or value > document[field]:
            document[field] = value
    if inserting:
        for field, value in update.get("$setOnInsert", {}).items():
            document.setdefault(field, value)


class InMemoryStore:
    """Dictionary-backed document store mirroring MongoDBService."""

    def __init__(self):
        self.collections: Dict[str, List[Dict[str, Any]]] = {}

    def _docs(self, collection: str) -> List[Dict[str, Any]]:
        return self.collections.setdefault(collection, [])

    def _check_ids(self, filters: Optional[Dict[str, Any]]) -> None:
        value = (filters or {}).get("id")
        if isinstance(value, dict):
            ids = [v for operand in value.values() for v in (operand if isinstance(operand, list) else [operand])]
        else:
            ids = [value] if value is not None else []
        for doc_id in ids:
            if not ObjectId.is_valid(doc_id):
                raise ValueError(f"Invalid ObjectId format: {doc_id}")

    def find_by_id(self, collection: str, doc_id: str) -> Optional[Dict]:
        for document in self._docs(collection):
            if document["id"] == doc_id:
                return copy.deepcopy(document)
        return None

    def find(self, collection: str, filters: Dict = None, sort=None, limit: int = None) -> List[Dict]:
        self._check_ids(filters)
        found = [copy.deepcopy(d) for d in self._docs(collection) if matches(d, filters)]
        for field, direction in reversed(sort or []):
            found.sort(key=lambda d: _get(d, field), reverse=direction < 0)
        return found[:limit] if limit else found

    def find_within_radius(self, collection: str, center, radius_km: float,
                           filters: Dict = None, field: str = "location", limit: int = None) -> List[Dict]:
        lng, lat = center
        found = []
        for document in self.find(collection, filters):
            point = document.get(field)
            if not point:
                continue
            p_lng, p_lat = point["coordinates"]
            distance = great_circle((lat, lng), (p_lat, p_lng)).km
            if distance <= radius_km:
                found.append((distance, document))
        found = [document for _, document in sorted(found, key=lambda pair: pair[0])]
        return found[:limit] if limit else found

    def count(self, collection: str, filters: Dict = None) -> int:
        return len(self.find(collection, filters))

    def insert(self, collection: str, document: Dict) -> str:
        document = copy.deepcopy(document)
        document["id"] = document.get("id") or str(ObjectId())
        now = datetime.utcnow()
        document.setdefault("createdAt", now)
        document.setdefault("updatedAt", now)
        self._docs(collection).append(document)
        return document["id"]

    def upsert(self, collection: str, key: Dict, update: Dict) -> Dict:
        for document in self._docs(collection):
            if matches(document, key):
                _apply_update(document, update, inserting=False)
                document["updatedAt"] = datetime.utcnow()
                return copy.deepcopy(document)

        document = {"id": str(ObjectId()), "createdAt": datetime.utcnow()}
        document.update(copy.deepcopy(key))
        _apply_update(document, update, inserting=True)
        document["updatedAt"] = datetime.utcnow()
        self._docs(collection).append(document)
        return copy.deepcopy(document)

    def update_where(self, collection: str, filters: Dict, update: Dict) -> Optional[Dict]:
        try:
            self._check_ids(filters)
        except ValueError:
            return None
        for document in self._docs(collection):
            if matches(document, filters):
                _apply_update(document, update, inserting=False)
                document["updatedAt"] = datetime.utcnow()
                return copy.deepcopy(document)
        return None

    def update_by_id(self, collection: str, doc_id: str, update: Dict,
                     precondition: Dict = None) -> Optional[Dict]:
        filters = dict(precondition or {})
        filters["id"] = doc_id
        return self.update_where(collection, filters, update)

    def update_many(self, collection: str, filters: Dict, update: Dict) -> int:
        try:
            self._check_ids(filters)
        except ValueError:
            return 0
        modified = 0
        for document in self._docs(collection):
            if matches(document, filters):
                _apply_update(document, update, inserting=False)
                document["updatedAt"] = datetime.utcnow()
                modified += 1
        return modified

    def delete_where(self, collection: str, filters: Dict) -> int:
        docs = self._docs(collection)
        kept = [d for d in docs if not matches(d, filters)]
        removed = len(docs) - len(kept)
        self.collections[collection] = kept
        return removed

    def create_indexes(self) -> None:
        pass

    def health_check(self) -> Dict[str, Any]:
        return {"status": "healthy", "database": "memory"}


class RecordingGateway(NotificationGateway):
    """Gateway that records every notification request."""

    def __init__(self, fail: bool = False):
        self.sent: List[Dict[str, str]] = []
        self.fail = fail

    def notify(self, target_user_id: str, message: str, type_tag: str) -> Optional[Notification]:
        if self.fail:
            raise ConnectionError("notification backend unavailable")
        self.sent.append({"user_id": target_user_id, "message": message, "type": type_tag})
        return Notification(user_id=target_user_id, message=message, type=type_tag)

    def sent_to(self, user_id: str) -> List[Dict[str, str]]:
        return [n for n in self.sent if n["user_id"] == user_id]

    def of_type(self, type_tag: str) -> List[Dict[str, str]]:
        return [n for n in self.sent if n["type"] == type_tag]


@pytest.fixture
def store():
    """Empty in-memory document store."""
    return InMemoryStore()


@pytest.fixture
def gateway():
    return RecordingGateway()


@pytest.fixture
def dispatcher(gateway):
    """Inline dispatcher over the recording gateway."""
    return NotificationDispatcher(gateway)


@pytest.fixture
def now():
    return datetime(2024, 6, 1, 12, 0, 0)


@pytest.fixture
def make_user(store):
    """Factory inserting user documents."""
    def _make_user(role="donor", blood_type="O-", location=(0.0, 0.0), eligible=True,
                   last_donation=None, full_name="Test User"):
        document = {
            "fullName": full_name,
            "role": role,
            "bloodType": blood_type,
            "donationEligibility": eligible,
            "lastDonationDate": last_donation,
        }
        if location is not None:
            document["location"] = GeoPoint.from_lng_lat(*location).model_dump()
        return store.insert("users", document)
    return _make_user


@pytest.fixture
def make_hospital(store):
    """Factory inserting hospital documents."""
    def _make_hospital(admins=None, location=(0.0, 0.0), name="General Hospital"):
        return store.insert("hospitals", {
            "name": name,
            "address": "1 Main Street",
            "location": GeoPoint.from_lng_lat(*location).model_dump(),
            "admins": list(admins or []),
        })
    return _make_hospital


@pytest.fixture
def make_request(store):
    """Factory inserting blood request documents."""
    def _make_request(recipient_id, hospital_id, blood_type="O-", quantity=450,
                      urgency="medium", status="pending", matched=None):
        return store.insert("blood_requests", {
            "recipientId": recipient_id,
            "hospitalId": hospital_id,
            "bloodType": blood_type,
            "quantity": quantity,
            "urgency": urgency,
            "status": status,
            "matchedDonorIds": list(matched or []),
        })
    return _make_request


@pytest.fixture
def make_context():
    def _make_context(user_id, role):
        return UserContext(user_id=user_id, role=role)
    return _make_context


@pytest.fixture
def failing_dispatcher():
    """Inline dispatcher whose gateway raises on every delivery."""
    return NotificationDispatcher(RecordingGateway(fail=True))
