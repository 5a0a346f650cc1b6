# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Base entity models with common fields and validation.
"""

from datetime import datetime
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field, ConfigDict
from bson import ObjectId


def generate_object_id() -> str:
    """Generate a new MongoDB ObjectId as string."""
    return str(ObjectId())


class BaseEntity(BaseModel):
    """Base entity with common fields for all stored documents."""

    model_config = ConfigDict(
        # Allow population by field name or alias
        populate_by_name=True,
        # Use enum values instead of enum objects
        use_enum_values=True,
        # Validate assignment
        validate_assignment=True,
        # Ignore unknown document fields (e.g. password hashes on users)
        extra="ignore"
    )

    id: str = Field(default_factory=generate_object_id, description="Unique identifier")
    created_at: datetime = Field(default_factory=datetime.utcnow, alias="createdAt",
                                 description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt", description="Last update timestamp")

    @classmethod
    def from_document(cls, document: Dict[str, Any]):
        """Build an entity from a stored document (camelCase keys)."""
        return cls.model_validate(document)

    def to_document(self) -> Dict[str, Any]:
        """Serialize to a camelCase document for storage."""
        return self.model_dump(by_alias=True, exclude_none=True)

    def to_response(self) -> Dict[str, Any]:
        """Serialize to JSON-safe camelCase for API responses."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
