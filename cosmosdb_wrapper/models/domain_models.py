"""
Domain Models for the Cosmos DB Wrapper

The three document shapes stored by the demo, each in its own container and
each partitioned by the two-level hierarchical key (``pk``, ``queryfield``):

1. TestDocument - generic document with a nullable city
2. MessageDocument - message with an owned list of DataItem records
3. SimpleTestDocument - document carrying the store-assigned ``_etag``

Python attribute names are snake_case; the wire names stored in Cosmos DB are
declared as field aliases.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..mapping import ContainerMeta
from .base import CosmosDocumentMixin, DateTimeMixin


# =============================================================================
# Owned Types
# =============================================================================

class ValueType(str, Enum):
    """Whether a data item's quantity is a delta or a running total."""
    DIFFERENCE = "Difference"
    TOTAL = "Total"


class DataItem(DateTimeMixin, BaseModel):
    """
    Owned line item of a MessageDocument.

    Has no identity of its own: it is stored inline in the parent's ``data``
    array and only ever read or written together with the parent.
    """

    system_id: str = Field("", alias="systemId")
    date: datetime = Field(..., alias="date")
    category_id: int = Field(0, alias="categoryId")
    subcategory: str = Field("", alias="subcategory")
    name: str = Field("", alias="name")
    value_type: ValueType = Field(..., alias="valueType")
    quantity: float = Field(0.0, alias="quantity")
    unit: str = Field("", alias="unit")
    data: str = Field("", alias="data", description="Opaque JSON payload")

    model_config = ConfigDict(
        populate_by_name=True,
        validate_assignment=True,
        extra='ignore',
    )


# =============================================================================
# Documents
# =============================================================================

class TestDocument(CosmosDocumentMixin, BaseModel):
    """Generic test document keyed by (partition_key, query_field)."""

    __test__ = False  # not a pytest test class

    id: str = Field("", alias="id")
    query_field: Optional[str] = Field(None, alias="queryfield")
    partition_key: str = Field("", alias="pk")
    city: Optional[str] = Field(None, alias="city")

    class Meta(ContainerMeta):
        container_name = "TestDocuments"
        partition_key = ["partition_key", "query_field"]


class MessageDocument(CosmosDocumentMixin, BaseModel):
    """Message with embedded data items."""

    id: str = Field("", alias="id")
    message_id: str = Field("", alias="messageId")
    partition_key: str = Field("", alias="pk")
    query_field: str = Field("message", alias="queryfield")
    data: List[DataItem] = Field(default_factory=list, alias="data")

    class Meta(ContainerMeta):
        container_name = "MessageDocuments"
        partition_key = ["partition_key", "query_field"]


class SimpleTestDocument(CosmosDocumentMixin, BaseModel):
    """Minimal document whose ``_etag`` is enforced as a concurrency token."""

    __test__ = False

    id: str = Field("", alias="id")
    foo: str = Field("", alias="foo")
    partition_key: str = Field("", alias="pk")
    query_field: str = Field("simple", alias="queryfield")
    etag: Optional[str] = Field(None, alias="_etag", description="Assigned by the store on every write")

    class Meta(ContainerMeta):
        container_name = "SimpleTestDocuments"
        partition_key = ["partition_key", "query_field"]
        etag_field = "etag"
        concurrency_token = True
