"""
Base Model Components and Mixins

Shared behaviour for every document model:

- DateTimeMixin: naive datetimes are taken to be UTC, so everything written to
  Cosmos DB carries an explicit offset
- CosmosDocumentMixin: conversion between models and Cosmos DB items using the
  wire names declared as pydantic aliases

## Wire names

Each persisted property is declared with ``Field(alias=...)``. The alias is the
JSON property name stored in Cosmos DB, the Python attribute name is what the
application code uses::

    class TestDocument(CosmosDocumentMixin, BaseModel):
        partition_key: str = Field("", alias="pk")

    doc = TestDocument(partition_key="p1")      # construct by attribute name
    doc.to_cosmos_item()                        # {"pk": "p1", ...}
    TestDocument.from_cosmos_item({"pk": "p1"}) # materialize by wire name

Store-managed system properties (``_rid``, ``_self``, ``_ts``, ``_attachments``)
are ignored on materialization. ``_etag`` is read when the model declares it
but never written back, since the store assigns it.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, ValidationError as PydanticValidationError, field_validator

from ..exceptions import ValidationError

logger = logging.getLogger(__name__)


class DateTimeMixin(BaseModel):
    """
    Mixin normalizing datetime fields to timezone-aware UTC.

    Applies to every field; values that are not datetimes pass through
    unchanged. ISO strings (including a trailing ``Z``) are parsed by pydantic
    before this validator runs.
    """

    @field_validator('*', mode='after')
    @classmethod
    def ensure_utc_datetimes(cls, v):
        if isinstance(v, datetime):
            if v.tzinfo is None:
                return v.replace(tzinfo=timezone.utc)
            return v.astimezone(timezone.utc)
        return v


class CosmosDocumentMixin(BaseModel):
    """
    Mixin providing Cosmos DB serialization and deserialization.

    Features:
    - Serialization by wire name (to_cosmos_item)
    - Materialization by wire name, ignoring system properties (from_cosmos_item)
    - Enum values written as their string value, datetimes as ISO-8601 strings
    - Owned collections serialized inline with their own wire names
    """

    model_config = ConfigDict(
        populate_by_name=True,
        validate_assignment=True,
        extra='ignore',
    )

    @classmethod
    def etag_field_name(cls):
        """Name of the field holding the store's ``_etag``, if the model declares one."""
        meta = getattr(cls, 'Meta', None)
        return getattr(meta, 'etag_field', None)

    def to_cosmos_item(self) -> Dict[str, Any]:
        """
        Convert model to a Cosmos DB item.

        Returns:
            JSON-compatible dictionary keyed by wire names

        Example:
            item = document.to_cosmos_item()
            gateway.create_item(item)
        """
        exclude = set()
        etag_field = self.etag_field_name()
        if etag_field:
            exclude.add(etag_field)
        return self.model_dump(mode='json', by_alias=True, exclude=exclude)

    @classmethod
    def from_cosmos_item(cls, item: Dict[str, Any]):
        """
        Create model instance from a Cosmos DB item.

        Args:
            item: Item returned by the service, keyed by wire names

        Returns:
            Model instance

        Raises:
            ValidationError: If item data is invalid for the model
        """
        try:
            return cls.model_validate(item)
        except PydanticValidationError as e:
            logger.error(f"Failed to convert Cosmos DB item to {cls.__name__}: {e}")
            raise ValidationError(
                f"Failed to convert Cosmos DB item to {cls.__name__}: {e}",
                errors={'errors': e.errors()},
                original_error=e
            ) from e
