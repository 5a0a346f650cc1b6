# SPDX-License-Identifier: Apache-2.0

"""
Inventory rules: input validation and low-stock detection.
"""

import os
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..models.enums import BloodType
from .errors import ValidationException

LOW_STOCK_THRESHOLD_ML = 2000


@dataclass
class InventoryConfig:
    """Inventory alerting settings."""
    low_stock_threshold_ml: int = LOW_STOCK_THRESHOLD_ML

    @classmethod
    def from_env(cls) -> "InventoryConfig":
        return cls(
            low_stock_threshold_ml=int(os.getenv('LOW_STOCK_THRESHOLD_ML', str(LOW_STOCK_THRESHOLD_ML)))
        )


def validate_blood_type(blood_type: str) -> str:
    try:
        return BloodType(blood_type).value
    except ValueError:
        raise ValidationException(f"Invalid blood type: '{blood_type}'")


def validate_quantity(quantity) -> int:
    """Quantities are whole, non-negative millilitres."""
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationException("Quantity must be an integer number of ml")
    if quantity < 0:
        raise ValidationException("Invalid quantity provided: must not be negative")
    return quantity


def validate_amount(amount, action: str) -> int:
    """Amounts added or removed must be strictly positive."""
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise ValidationException(f"Quantity to {action} must be a positive integer")
    return amount


def validate_expiry(expiry_date, now: Optional[datetime] = None) -> datetime:
    """Expiry dates must be real datetimes not already in the past."""
    if not isinstance(expiry_date, datetime):
        raise ValidationException("Invalid expiry date provided")
    now = now or datetime.utcnow()
    if expiry_date < now:
        raise ValidationException("Expiry date cannot be in the past")
    return expiry_date


def is_low_stock(quantity: int, threshold: int) -> bool:
    """Low stock is positive but under the threshold; empty stock does not alert."""
    return 0 < quantity < threshold


def low_stock_message(blood_type: str, hospital_name: str, quantity: int) -> str:
    return f"Low stock alert: Blood type {blood_type} at {hospital_name} is now at {quantity}ml."
