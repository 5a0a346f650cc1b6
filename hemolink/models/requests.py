# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Request models for API endpoints.
"""

from datetime import datetime, timezone
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator

from .entities import GeoPoint
from .enums import BloodType, Urgency, NotificationStatus


def _as_naive_utc(value: datetime) -> datetime:
    """Stored timestamps are naive UTC; convert aware inputs."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class RequestPath(BaseModel):
    """Path parameters addressing a blood request."""

    request_id: str = Field(..., description="Blood request ID")


class HospitalPath(BaseModel):
    """Path parameters addressing a hospital."""

    hospital_id: str = Field(..., description="Hospital ID")


class NotificationPath(BaseModel):
    """Path parameters addressing a notification."""

    notification_id: str = Field(..., description="Notification ID")


class CreateBloodRequestRequest(BaseModel):
    """Request model for raising a blood request."""

    hospital_id: str = Field(..., alias="hospitalId", description="Hospital ID")
    blood_type: BloodType = Field(..., alias="bloodType", description="Requested blood type")
    quantity: int = Field(..., gt=0, description="Quantity in ml")
    urgency: Urgency = Field(default=Urgency.MEDIUM, description="Urgency level")

    model_config = {"populate_by_name": True}


class UpdateRequestStatusRequest(BaseModel):
    """Request model for moving a blood request to a new status."""

    status: str = Field(..., description="Target status (fulfilled or cancelled)")


class SetInventoryRequest(BaseModel):
    """Request model for overwriting a hospital's stock of one blood type."""

    blood_type: BloodType = Field(..., alias="bloodType", description="Blood type")
    quantity: int = Field(..., description="New quantity in ml")
    expiry_date: datetime = Field(..., alias="expiryDate", description="Expiry date")

    model_config = {"populate_by_name": True}

    @field_validator('expiry_date')
    @classmethod
    def normalize_expiry(cls, v):
        return _as_naive_utc(v)


class AddUnitsRequest(BaseModel):
    """Request model for adding stock."""

    blood_type: BloodType = Field(..., alias="bloodType", description="Blood type")
    amount: int = Field(..., description="Quantity to add in ml")
    expiry_date: datetime = Field(..., alias="expiryDate", description="Expiry of the added stock")

    model_config = {"populate_by_name": True}

    @field_validator('expiry_date')
    @classmethod
    def normalize_expiry(cls, v):
        return _as_naive_utc(v)


class RemoveUnitsRequest(BaseModel):
    """Request model for removing stock."""

    blood_type: BloodType = Field(..., alias="bloodType", description="Blood type")
    amount: int = Field(..., description="Quantity to remove in ml")

    model_config = {"populate_by_name": True}


class NotificationQuery(BaseModel):
    """Query parameters for listing notifications."""

    status: NotificationStatus = Field(default=NotificationStatus.UNREAD, description="Read status filter")


class MarkNotificationsReadRequest(BaseModel):
    """Request model for marking several notifications read."""

    notification_ids: List[str] = Field(..., alias="notificationIds", min_length=1,
                                        description="Notification IDs to mark read")

    model_config = {"populate_by_name": True}


class RegisterHospitalRequest(BaseModel):
    """Request model for registering a hospital."""

    name: str = Field(..., min_length=1, max_length=200, description="Hospital name")
    address: str = Field(..., min_length=1, description="Postal address")
    location: Optional[GeoPoint] = Field(None, description="Known location; geocoded from the address when omitted")
    admins: List[str] = Field(default_factory=list, description="Hospital admin user IDs, first is primary")
