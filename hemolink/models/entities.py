# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Core entity models for the HemoLink platform.
"""

from datetime import datetime
from typing import List, Optional, Tuple
from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict
from .base import BaseEntity
from .enums import (
    BloodType,
    Urgency,
    RequestStatus,
    UserRole,
    NotificationStatus,
    NotificationType
)

MAX_MATCHED_DONORS = 5


class GeoPoint(BaseModel):
    """GeoJSON point, coordinates ordered [longitude, latitude]."""

    type: str = Field(default="Point", description="GeoJSON geometry type")
    coordinates: List[float] = Field(..., min_length=2, max_length=2, description="[lng, lat]")

    @field_validator('type')
    @classmethod
    def validate_type(cls, v):
        """Only GeoJSON points are supported."""
        if v != "Point":
            raise ValueError('Location type must be "Point"')
        return v

    @field_validator('coordinates')
    @classmethod
    def validate_coordinates(cls, v):
        """Validate longitude/latitude ranges."""
        lng, lat = v
        if not -180 <= lng <= 180:
            raise ValueError(f'Longitude out of range: {lng}')
        if not -90 <= lat <= 90:
            raise ValueError(f'Latitude out of range: {lat}')
        return v

    @classmethod
    def from_lng_lat(cls, longitude: float, latitude: float) -> "GeoPoint":
        return cls(coordinates=[longitude, latitude])

    @property
    def longitude(self) -> float:
        return self.coordinates[0]

    @property
    def latitude(self) -> float:
        return self.coordinates[1]

    def as_lng_lat(self) -> Tuple[float, float]:
        return self.coordinates[0], self.coordinates[1]


class Donor(BaseEntity):
    """Subset of a user document relevant to donor matching."""

    full_name: Optional[str] = Field(None, alias="fullName", description="User full name")
    role: UserRole = Field(default=UserRole.DONOR, description="Platform role")
    blood_type: BloodType = Field(..., alias="bloodType", description="Donor blood type")
    donation_eligibility: bool = Field(default=True, alias="donationEligibility",
                                       description="Medical eligibility flag")
    last_donation_date: Optional[datetime] = Field(None, alias="lastDonationDate",
                                                   description="Date of last donation")
    location: Optional[GeoPoint] = Field(None, description="Home location")


class Hospital(BaseEntity):
    """Hospital with its location and ordered admin list."""

    name: str = Field(..., min_length=1, max_length=200, description="Hospital name")
    address: Optional[str] = Field(None, description="Postal address")
    location: GeoPoint = Field(..., description="Hospital location")
    admins: List[str] = Field(default_factory=list, description="Admin user IDs, first is primary")

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        """Validate hospital name."""
        if not v.strip():
            raise ValueError('Hospital name cannot be empty')
        return v.strip()

    @property
    def primary_admin_id(self) -> Optional[str]:
        """First admin, used as the target of hospital-level notifications."""
        return self.admins[0] if self.admins else None

    def is_admin(self, user_id: str) -> bool:
        return user_id in self.admins


class BloodRequest(BaseEntity):
    """Blood request raised by a recipient at a hospital."""

    recipient_id: str = Field(..., alias="recipientId", description="Requesting recipient user ID")
    hospital_id: str = Field(..., alias="hospitalId", description="Hospital ID")
    blood_type: BloodType = Field(..., alias="bloodType", description="Requested blood type")
    quantity: int = Field(..., gt=0, description="Requested quantity in ml")
    urgency: Urgency = Field(default=Urgency.MEDIUM, description="Urgency level")
    status: RequestStatus = Field(default=RequestStatus.PENDING, description="Lifecycle status")
    matched_donor_ids: List[str] = Field(default_factory=list, alias="matchedDonorIds",
                                         max_length=MAX_MATCHED_DONORS,
                                         description="Matched donor user IDs, best first")

    @model_validator(mode='after')
    def validate_matches(self):
        """Reject duplicate donor references."""
        if len(set(self.matched_donor_ids)) != len(self.matched_donor_ids):
            raise ValueError('Matched donor IDs must be unique')
        return self

    def is_terminal(self) -> bool:
        return self.status in (RequestStatus.FULFILLED, RequestStatus.CANCELLED)


class InventoryRecord(BaseEntity):
    """Stock of one blood type at one hospital."""

    hospital_id: str = Field(..., alias="hospitalId", description="Hospital ID")
    blood_type: BloodType = Field(..., alias="bloodType", description="Blood type")
    quantity: int = Field(..., ge=0, description="Quantity in ml")
    expiry_date: datetime = Field(..., alias="expiryDate", description="Expiry of the stock")
    last_updated: Optional[datetime] = Field(None, alias="lastUpdated", description="Last mutation time")


class Notification(BaseEntity):
    """User-facing notification."""

    user_id: str = Field(..., alias="userId", description="Target user ID")
    message: str = Field(..., min_length=1, description="Notification text")
    type: NotificationType = Field(default=NotificationType.ALERT, description="Type tag")
    status: NotificationStatus = Field(default=NotificationStatus.UNREAD, description="Read status")

    @field_validator('message')
    @classmethod
    def validate_message(cls, v):
        """Validate message text."""
        if not v.strip():
            raise ValueError('Notification message cannot be empty')
        return v.strip()

    def mark_read(self) -> None:
        self.status = NotificationStatus.READ


class UserContext(BaseModel):
    """Authenticated caller identity used for authorization decisions."""

    user_id: str = Field(..., description="Authenticated user ID")
    role: UserRole = Field(..., description="User's platform role")
    email: Optional[str] = Field(None, description="User email")
    ip_address: Optional[str] = Field(None, description="Client IP address")
    user_agent: Optional[str] = Field(None, description="Client user agent")

    model_config = ConfigDict(
        use_enum_values=True
    )
