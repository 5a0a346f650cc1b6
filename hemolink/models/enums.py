# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Enumeration types for the HemoLink platform.
"""

from enum import Enum


class BloodType(str, Enum):
    """ABO/Rh blood types."""
    A_POSITIVE = "A+"
    A_NEGATIVE = "A-"
    B_POSITIVE = "B+"
    B_NEGATIVE = "B-"
    O_POSITIVE = "O+"
    O_NEGATIVE = "O-"
    AB_POSITIVE = "AB+"
    AB_NEGATIVE = "AB-"


class Urgency(str, Enum):
    """Blood request urgency levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class RequestStatus(str, Enum):
    """Blood request lifecycle status."""
    PENDING = "pending"
    MATCHED = "matched"
    FULFILLED = "fulfilled"
    CANCELLED = "cancelled"


class UserRole(str, Enum):
    """Closed set of platform roles."""
    DONOR = "donor"
    RECIPIENT = "recipient"
    HOSPITAL_ADMIN = "hospital_admin"
    SYSTEM_ADMIN = "system_admin"


class NotificationStatus(str, Enum):
    """Notification read status (unread -> read only)."""
    UNREAD = "unread"
    READ = "read"


class NotificationType(str, Enum):
    """Notification type tags."""
    ALERT = "alert"
    NEW_REQUEST = "new_request"
    POTENTIAL_MATCH = "potential_match"
    REQUEST_FULFILLED = "request_fulfilled"
    REQUEST_FULFILLED_ADMIN = "request_fulfilled_admin"
    REQUEST_FULFILLED_DONOR = "request_fulfilled_donor"
    REQUEST_CANCELLED = "request_cancelled"
    REQUEST_CANCELLED_ADMIN = "request_cancelled_admin"
    REQUEST_CANCELLED_DONOR = "request_cancelled_donor"
