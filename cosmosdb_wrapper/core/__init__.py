"""
Core infrastructure components for Cosmos DB operations.

This module contains the foundational components used by the document context:
- DatabaseGateway: client ownership and database/container provisioning
- ContainerGateway: thin wrapper over azure-cosmos item operations
- map_cosmos_error: SDK status codes to domain exceptions
"""

from .container_gateway import (
    ContainerGateway,
    DatabaseGateway,
    create_container_gateway,
    create_cosmos_client,
    map_cosmos_error,
)

__all__ = [
    "ContainerGateway",
    "DatabaseGateway",
    "create_container_gateway",
    "create_cosmos_client",
    "map_cosmos_error",
]
