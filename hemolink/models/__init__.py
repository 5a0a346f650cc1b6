# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Models package - Pydantic schemas and data models for HemoLink.
"""

# Base models
from .base import BaseEntity

# Enumerations
from .enums import (
    BloodType,
    Urgency,
    RequestStatus,
    UserRole,
    NotificationStatus,
    NotificationType
)

# Core entities
from .entities import (
    GeoPoint,
    Donor,
    Hospital,
    BloodRequest,
    InventoryRecord,
    Notification,
    UserContext
)

__all__ = [
    # Base models
    "BaseEntity",

    # Enumerations
    "BloodType",
    "Urgency",
    "RequestStatus",
    "UserRole",
    "NotificationStatus",
    "NotificationType",

    # Core entities
    "GeoPoint",
    "Donor",
    "Hospital",
    "BloodRequest",
    "InventoryRecord",
    "Notification",
    "UserContext"
]
