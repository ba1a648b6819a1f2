"""
Cosmos DB Wrapper

Document mapping, snapshot change tracking and optimistic concurrency over
Azure Cosmos DB (NoSQL API) using azure-cosmos and Pydantic, plus a scripted
demo that exercises create/read/update/upsert/delete, ordered queries and
change tracking against the local emulator.
"""

from .config import CosmosDBConfig
from .exceptions import (
    ConcurrencyConflictError,
    ConflictError,
    ConnectionError,
    CosmosDBWrapperError,
    ItemNotFoundError,
    MappingError,
    NotFoundError,
    PartitionKeyModificationError,
    RetryableError,
    ValidationError,
)
from .mapping import (
    ContainerMeta,
    EntityMapping,
    MappingRegistry,
    build_entity_mapping,
)
from .models import (
    DataItem,
    MessageDocument,
    SimpleTestDocument,
    TestDocument,
    ValueType,
)
from .core import (
    ContainerGateway,
    DatabaseGateway,
)
from .context import (
    DocumentContext,
    DocumentSet,
    EntityState,
)

__version__ = "1.0.0"
__all__ = [
    # Configuration
    "CosmosDBConfig",

    # Exceptions
    "ConcurrencyConflictError",
    "ConflictError",
    "ConnectionError",
    "CosmosDBWrapperError",
    "ItemNotFoundError",
    "MappingError",
    "NotFoundError",
    "PartitionKeyModificationError",
    "RetryableError",
    "ValidationError",

    # Mapping
    "ContainerMeta",
    "EntityMapping",
    "MappingRegistry",
    "build_entity_mapping",

    # Models
    "DataItem",
    "MessageDocument",
    "SimpleTestDocument",
    "TestDocument",
    "ValueType",

    # Gateways
    "ContainerGateway",
    "DatabaseGateway",

    # Unit of work
    "DocumentContext",
    "DocumentSet",
    "EntityState",
]
