# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Base entity models with common fields and document conversion.
"""

from datetime import datetime
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator
from pydantic.alias_generators import to_camel
from bson import ObjectId

from utils.clock import utc_now


def generate_object_id() -> str:
    """Generate a new MongoDB ObjectId as string."""
    return str(ObjectId())


class DocumentModel(BaseModel):
    """
    Model persisted as a MongoDB document.

    Documents are stored with camelCase field names and an ObjectId ``_id``;
    foreign keys are stored as id strings.
    """

    model_config = ConfigDict(
        # Field names in python, camelCase in MongoDB
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        validate_assignment=True,
        arbitrary_types_allowed=True
    )

    id: str = Field(default_factory=generate_object_id, alias="_id", description="Unique identifier")

    @field_validator('id', mode='before')
    @classmethod
    def coerce_object_id(cls, v):
        """Accept ObjectId values read from MongoDB."""
        if isinstance(v, ObjectId):
            return str(v)
        return v

    @classmethod
    def from_document(cls, document: Dict[str, Any]):
        """Build the model from a raw MongoDB document."""
        return cls.model_validate(document)

    def to_document(self) -> Dict[str, Any]:
        """Serialize to a MongoDB document with an ObjectId primary key."""
        document = self.model_dump(by_alias=True)
        document["_id"] = ObjectId(self.id)
        return document


class BaseEntity(DocumentModel):
    """Base entity with common fields for all tenant-scoped domain objects."""

    organization_id: str = Field(..., description="Organization scope identifier")
    created_at: datetime = Field(default_factory=utc_now, description="Creation timestamp")
    updated_at: datetime = Field(default_factory=utc_now, description="Last update timestamp")
    created_by: str = Field(..., description="User ID who created this entity")
    updated_by: Optional[str] = Field(None, description="User ID who last updated this entity")
    schema_version: int = Field(default=1, description="Schema version for migrations")
