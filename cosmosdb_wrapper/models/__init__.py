# Base mixins
from .base import (
    CosmosDocumentMixin,
    DateTimeMixin,
)

from .domain_models import (
    # Owned types
    DataItem,
    ValueType,

    # Documents
    MessageDocument,
    SimpleTestDocument,
    TestDocument,
)

__all__ = [
    # Base mixins
    "CosmosDocumentMixin",
    "DateTimeMixin",

    # Owned types
    "DataItem",
    "ValueType",

    # Documents
    "MessageDocument",
    "SimpleTestDocument",
    "TestDocument",
]
