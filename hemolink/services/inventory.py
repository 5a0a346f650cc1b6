# SPDX-License-Identifier: Apache-2.0

"""
Per-hospital blood inventory ledger.

Every mutation is a single atomic document operation keyed on the unique
(hospitalId, bloodType) index, so concurrent changes to one record cannot
lose updates and a removal is never partially applied.
"""

import logging
from datetime import datetime
from typing import List, Optional

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from ..models.entities import Hospital, InventoryRecord, UserContext
from ..models.enums import NotificationType
from ..domain import authorization
from ..domain.errors import NotFoundException, InsufficientStockException
from ..domain.inventory import (
    InventoryConfig,
    validate_blood_type,
    validate_quantity,
    validate_amount,
    validate_expiry,
    is_low_stock,
    low_stock_message
)
from .lookups import BLOOD_INVENTORY, load_hospital
from .notifications import NotificationDispatcher

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class InventoryLedger:
    """
    Stock operations for hospitals.

    Operations accept an optional ``actor``; when given, the actor must be
    allowed to manage the hospital's inventory. Internal callers such as
    scheduled expiry run without one.
    """

    def __init__(self, mongodb_service, dispatcher: NotificationDispatcher,
                 config: Optional[InventoryConfig] = None):
        self.mongodb_service = mongodb_service
        self.dispatcher = dispatcher
        self.config = config or InventoryConfig()

    def get_inventory(self, hospital_id: str, actor: UserContext = None) -> List[InventoryRecord]:
        """List a hospital's stock, one record per blood type."""
        self._resolve_hospital(hospital_id, actor, write=False)
        documents = self.mongodb_service.find(
            BLOOD_INVENTORY, {"hospitalId": hospital_id}, sort=[("bloodType", 1)]
        )
        return [InventoryRecord.from_document(doc) for doc in documents]

    def set_quantity(self, hospital_id: str, blood_type: str, quantity: int,
                     expiry_date: datetime, actor: UserContext = None) -> InventoryRecord:
        """
        Overwrite the stock of one blood type.

        Creates the record when it does not exist. Applying the same values
        twice leaves the same state.

        Raises:
            ValidationException: negative quantity, unknown blood type or past expiry
            NotFoundException: hospital does not exist
        """
        blood_type = validate_blood_type(blood_type)
        quantity = validate_quantity(quantity)
        now = datetime.utcnow()
        expiry_date = validate_expiry(expiry_date, now)

        with tracer.start_as_current_span(
            "inventory.set_quantity",
            attributes={"hospital.id": hospital_id, "inventory.blood_type": blood_type}
        ) as span:
            hospital = self._resolve_hospital(hospital_id, actor)

            document = self.mongodb_service.upsert(
                BLOOD_INVENTORY,
                {"hospitalId": hospital_id, "bloodType": blood_type},
                {"$set": {"quantity": quantity, "expiryDate": expiry_date, "lastUpdated": now}}
            )
            record = InventoryRecord.from_document(document)
            span.set_attribute("inventory.quantity", record.quantity)

            logger.info(
                "Inventory quantity set",
                extra={"hospital_id": hospital_id, "blood_type": blood_type, "quantity": quantity}
            )
            self._check_low_stock(hospital, record)
            return record

    def add_units(self, hospital_id: str, blood_type: str, amount: int,
                  expiry_date: datetime, actor: UserContext = None) -> InventoryRecord:
        """
        Add stock, creating the record if needed.

        The stored expiry keeps the later of the existing and the new date.
        """
        blood_type = validate_blood_type(blood_type)
        amount = validate_amount(amount, "add")
        now = datetime.utcnow()
        expiry_date = validate_expiry(expiry_date, now)

        with tracer.start_as_current_span(
            "inventory.add_units",
            attributes={
                "hospital.id": hospital_id,
                "inventory.blood_type": blood_type,
                "inventory.amount": amount
            }
        ) as span:
            hospital = self._resolve_hospital(hospital_id, actor)

            document = self.mongodb_service.upsert(
                BLOOD_INVENTORY,
                {"hospitalId": hospital_id, "bloodType": blood_type},
                {
                    "$inc": {"quantity": amount},
                    "$max": {"expiryDate": expiry_date},
                    "$set": {"lastUpdated": now}
                }
            )
            record = InventoryRecord.from_document(document)
            span.set_attribute("inventory.quantity", record.quantity)

            logger.info(
                "Inventory units added",
                extra={
                    "hospital_id": hospital_id,
                    "blood_type": blood_type,
                    "amount": amount,
                    "quantity": record.quantity
                }
            )
            self._check_low_stock(hospital, record)
            return record

    def remove_units(self, hospital_id: str, blood_type: str, amount: int,
                     actor: UserContext = None) -> InventoryRecord:
        """
        Remove stock.

        The decrement only applies when the record holds at least ``amount``;
        otherwise nothing changes.

        Raises:
            NotFoundException: hospital or inventory record does not exist
            InsufficientStockException: ``amount`` exceeds the stored quantity
        """
        blood_type = validate_blood_type(blood_type)
        amount = validate_amount(amount, "remove")

        with tracer.start_as_current_span(
            "inventory.remove_units",
            attributes={
                "hospital.id": hospital_id,
                "inventory.blood_type": blood_type,
                "inventory.amount": amount
            }
        ) as span:
            hospital = self._resolve_hospital(hospital_id, actor)
            key = {"hospitalId": hospital_id, "bloodType": blood_type}

            document = self.mongodb_service.update_where(
                BLOOD_INVENTORY,
                dict(key, quantity={"$gte": amount}),
                {"$inc": {"quantity": -amount}, "$set": {"lastUpdated": datetime.utcnow()}}
            )

            if document is None:
                existing = self.mongodb_service.find(BLOOD_INVENTORY, key, limit=1)
                if not existing:
                    raise NotFoundException(
                        f"Inventory record for blood type {blood_type} not found at this hospital"
                    )
                available = existing[0].get("quantity", 0)
                span.set_status(Status(StatusCode.ERROR, "insufficient stock"))
                logger.warning(
                    "Insufficient stock for removal",
                    extra={
                        "hospital_id": hospital_id,
                        "blood_type": blood_type,
                        "available": available,
                        "requested": amount
                    }
                )
                raise InsufficientStockException(blood_type, available, amount)

            record = InventoryRecord.from_document(document)
            span.set_attribute("inventory.quantity", record.quantity)

            logger.info(
                "Inventory units removed",
                extra={
                    "hospital_id": hospital_id,
                    "blood_type": blood_type,
                    "amount": amount,
                    "quantity": record.quantity
                }
            )
            self._check_low_stock(hospital, record)
            return record

    def expire_stock(self, hospital_id: str, now: Optional[datetime] = None,
                     actor: UserContext = None) -> int:
        """Delete records whose expiry date has passed; returns how many were removed."""
        now = now or datetime.utcnow()

        with tracer.start_as_current_span(
            "inventory.expire_stock", attributes={"hospital.id": hospital_id}
        ) as span:
            self._resolve_hospital(hospital_id, actor)

            removed = self.mongodb_service.delete_where(
                BLOOD_INVENTORY, {"hospitalId": hospital_id, "expiryDate": {"$lt": now}}
            )
            span.set_attribute("inventory.expired", removed)

            logger.info(
                "Expired inventory removed",
                extra={"hospital_id": hospital_id, "removed": removed}
            )
            return removed

    def _resolve_hospital(self, hospital_id: str, actor: Optional[UserContext],
                          write: bool = True) -> Hospital:
        hospital = load_hospital(self.mongodb_service, hospital_id)
        if actor is not None:
            authorization.enforce(authorization.can_manage_inventory(actor, hospital, write=write))
        return hospital

    def _check_low_stock(self, hospital: Hospital, record: InventoryRecord) -> None:
        if not is_low_stock(record.quantity, self.config.low_stock_threshold_ml):
            return

        admin_id = hospital.primary_admin_id
        if admin_id is None:
            logger.warning(
                "Low stock with no hospital admin to alert",
                extra={"hospital_id": hospital.id, "blood_type": record.blood_type}
            )
            return

        self.dispatcher.dispatch(
            admin_id,
            low_stock_message(record.blood_type, hospital.name, record.quantity),
            NotificationType.ALERT.value
        )
