# Base exception class
from .base import CosmosDBWrapperError

from .domain_exceptions import (
    ValidationError,
    MappingError,
    PartitionKeyModificationError,
    ItemNotFoundError,
    NotFoundError,
    ConflictError,
    ConcurrencyConflictError,
    ConnectionError,
    RetryableError,
)

__all__ = [
    # Base exception
    "CosmosDBWrapperError",

    # Domain exceptions (alphabetically ordered)
    "ConcurrencyConflictError",
    "ConflictError",
    "ConnectionError",
    "ItemNotFoundError",
    "MappingError",
    "NotFoundError",
    "PartitionKeyModificationError",
    "RetryableError",
    "ValidationError",
]
