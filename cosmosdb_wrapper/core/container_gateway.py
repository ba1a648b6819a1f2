"""
Thin Cosmos DB Gateways

This module provides a lightweight wrapper around the azure-cosmos SDK.

- DatabaseGateway owns the CosmosClient for one document context and handles
  database/container provisioning (ensure_created / ensure_deleted).
- ContainerGateway exposes the handful of item operations the document
  context needs: point read, parameterized query, create, replace (optionally
  conditional on ``_etag``), upsert and delete.

Every SDK failure is converted by ``map_cosmos_error`` into a domain exception
and raised ``from`` the original CosmosHttpResponseError, so callers never
handle SDK exception types directly.
"""

import logging
from contextlib import ExitStack
from typing import Any, Dict, Iterable, List, Optional

from azure.core import MatchConditions
from azure.cosmos import CosmosClient, PartitionKey
from azure.cosmos.exceptions import CosmosHttpResponseError, CosmosResourceExistsError, CosmosResourceNotFoundError

from ..config import CosmosDBConfig
from ..exceptions import (
    ConcurrencyConflictError,
    ConflictError,
    ConnectionError,
    ItemNotFoundError,
    NotFoundError,
    RetryableError,
    ValidationError,
)
from ..mapping import EntityMapping

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = (408, 429, 449, 500, 503)


def map_cosmos_error(
    error: CosmosHttpResponseError,
    operation: str,
    container_name: str,
    resource_id: Optional[str] = None,
    partition_key: Any = None
) -> Exception:
    """Map a CosmosHttpResponseError to a domain-specific exception.

    Args:
        error: The SDK error
        operation: The operation that failed (e.g., "ReadItem", "ReplaceItem")
        container_name: The container (or database) the operation targeted
        resource_id: Optional document id for context
        partition_key: Optional partition key value for context

    Returns:
        Appropriate domain exception
    """
    status_code = getattr(error, 'status_code', None)
    error_message = getattr(error, 'message', None) or str(error)

    context = f"{operation} on {container_name}"
    if resource_id:
        context += f" (resource: {resource_id})"

    full_message = f"{context}: {error_message}"

    if status_code == 404:
        if resource_id:
            return ItemNotFoundError(
                container_name, {'id': resource_id, 'partition_key': partition_key}, original_error=error
            )
        return NotFoundError(f"Resource not found - {full_message}", 'container', container_name, original_error=error)

    elif status_code == 409:
        return ConflictError(f"Document already exists - {full_message}", resource_id, original_error=error)

    elif status_code == 412:
        return ConcurrencyConflictError(
            f"Document was modified since it was read - {full_message}", resource_id, original_error=error
        )

    elif status_code in (400, 413):
        return ValidationError(f"Request rejected - {full_message}", original_error=error)

    elif status_code in (401, 403):
        return ConnectionError(f"Authentication/authorization failed - {full_message}", original_error=error)

    elif status_code in RETRYABLE_STATUS_CODES:
        headers = getattr(error, 'headers', None) or {}
        retry_after = headers.get('x-ms-retry-after-ms')
        return RetryableError(
            f"Transient failure ({status_code}) - {full_message}",
            int(retry_after) if retry_after else None,
            original_error=error
        )

    logger.warning(f"Unknown Cosmos DB status code '{status_code}' mapped to ConnectionError")
    return ConnectionError(f"Cosmos DB operation failed - {full_message}", original_error=error)


def create_cosmos_client(config: CosmosDBConfig) -> CosmosClient:
    """Create a CosmosClient from configuration.

    Raises:
        ConnectionError: If the client cannot be constructed
    """
    try:
        return CosmosClient(config.endpoint, credential=config.key, **config.client_options())
    except CosmosHttpResponseError as e:
        raise map_cosmos_error(e, "CreateClient", config.endpoint) from e
    except Exception as e:
        logger.error(f"Failed to create Cosmos DB client: {e}")
        raise ConnectionError(f"Failed to connect to Cosmos DB: {e}", e) from e


class DatabaseGateway:
    """
    Owns the client and database handle for one document context.

    The client is created lazily on first use. A client passed in by the caller
    is used as-is and left open on ``close()``; a client created here is closed.
    """

    def __init__(self, config: CosmosDBConfig, client: Optional[CosmosClient] = None):
        """Initialize database gateway.

        Args:
            config: Cosmos DB configuration
            client: Optional externally owned client
        """
        self.config = config
        self.database_name = config.database_name
        self._client = client
        self._database = None
        self._exit_stack = ExitStack()

    @property
    def client(self) -> CosmosClient:
        """Lazy initialization of the Cosmos DB client."""
        if self._client is None:
            client = create_cosmos_client(self.config)
            self._client = self._exit_stack.enter_context(client)
            logger.debug(f"Opened Cosmos DB client for {self.config.endpoint}")
        return self._client

    @property
    def database(self):
        """DatabaseProxy for the configured database."""
        if self._database is None:
            self._database = self.client.get_database_client(self.database_name)
        return self._database

    def container(self, container_name: str):
        """ContainerProxy for a container of the configured database."""
        return self.database.get_container_client(container_name)

    def ensure_created(self, mappings: Iterable[EntityMapping]) -> bool:
        """
        Create the database and a container for every mapping.

        Containers use a MultiHash partition key when the mapping declares a
        hierarchical key. Existing containers are left as they are.

        Returns:
            True if the database did not exist before the call
        """
        try:
            self.client.create_database(id=self.database_name)
            created = True
            logger.info(f"Created database {self.database_name}")
        except CosmosResourceExistsError:
            created = False
            logger.debug(f"Database {self.database_name} already exists")
        except CosmosHttpResponseError as e:
            raise map_cosmos_error(e, "CreateDatabase", self.database_name) from e

        for mapping in mappings:
            paths = mapping.partition_key_paths
            if mapping.is_hierarchical:
                partition_key = PartitionKey(path=paths, kind='MultiHash')
            else:
                partition_key = PartitionKey(path=paths[0])
            try:
                self.database.create_container_if_not_exists(id=mapping.container_name, partition_key=partition_key)
            except CosmosHttpResponseError as e:
                raise map_cosmos_error(e, "CreateContainer", mapping.container_name) from e
            logger.info(f"Ensured container {mapping.container_name} with partition key {paths}")

        return created

    def ensure_deleted(self) -> bool:
        """
        Delete the database and everything in it.

        Returns:
            True if the database existed and was deleted
        """
        try:
            self.client.delete_database(self.database_name)
        except CosmosResourceNotFoundError:
            logger.debug(f"Database {self.database_name} does not exist")
            return False
        except CosmosHttpResponseError as e:
            raise map_cosmos_error(e, "DeleteDatabase", self.database_name) from e
        finally:
            self._database = None
        logger.info(f"Deleted database {self.database_name}")
        return True

    def close(self) -> None:
        """Close the client if this gateway created it."""
        self._exit_stack.close()
        self._database = None


class ContainerGateway:
    """
    Thin gateway for the item operations of one container.

    Partition key arguments are passed through in SDK form: a list of values
    for hierarchical keys, a scalar otherwise.
    """

    def __init__(self, database: DatabaseGateway, container_name: str):
        """Initialize container gateway.

        Args:
            database: Gateway owning the client and database handle
            container_name: Name of the Cosmos DB container
        """
        self.database = database
        self.container_name = container_name
        self._container = None

    @property
    def container(self):
        """ContainerProxy used for every item operation."""
        if self._container is None:
            self._container = self.database.container(self.container_name)
        return self._container

    def read_item(self, item_id: str, partition_key: Any) -> Optional[Dict[str, Any]]:
        """
        Point read by id and full partition key.

        Returns:
            The stored item, or None if it does not exist
        """
        try:
            return self.container.read_item(item=item_id, partition_key=partition_key)
        except CosmosResourceNotFoundError:
            return None
        except CosmosHttpResponseError as e:
            raise map_cosmos_error(e, "ReadItem", self.container_name, item_id, partition_key) from e

    def query_items(
        self,
        query: str,
        parameters: Optional[List[Dict[str, Any]]] = None,
        partition_key: Any = None
    ) -> List[Dict[str, Any]]:
        """
        Execute a parameterized SQL query.

        Args:
            query: Cosmos DB SQL text
            parameters: ``[{'name': '@p0', 'value': ...}]``
            partition_key: Full partition key to scope the query to, or None
                for a cross-partition query

        Returns:
            All result items
        """
        query_kwargs = {'query': query}
        if parameters:
            query_kwargs['parameters'] = parameters
        if partition_key is not None:
            query_kwargs['partition_key'] = partition_key
        else:
            query_kwargs['enable_cross_partition_query'] = True

        logger.debug(f"Query on {self.container_name}: {query} {parameters or []}")
        try:
            return list(self.container.query_items(**query_kwargs))
        except CosmosHttpResponseError as e:
            raise map_cosmos_error(e, "QueryItems", self.container_name) from e

    def create_item(self, body: Dict[str, Any]) -> Dict[str, Any]:
        """
        Insert a new item.

        Raises:
            ConflictError: An item with the same id exists in the logical partition
        """
        try:
            created = self.container.create_item(body=body)
            logger.info(f"Created item in {self.container_name}: {body.get('id')}")
            return created
        except CosmosHttpResponseError as e:
            raise map_cosmos_error(e, "CreateItem", self.container_name, body.get('id')) from e

    def replace_item(self, item_id: str, body: Dict[str, Any], etag: Optional[str] = None) -> Dict[str, Any]:
        """
        Replace an existing item.

        Args:
            item_id: Document id
            body: Complete new item
            etag: When given, the replace only succeeds if the stored ``_etag``
                still matches

        Raises:
            ItemNotFoundError: The item does not exist
            ConcurrencyConflictError: The ``_etag`` precondition failed
        """
        replace_kwargs = {'item': item_id, 'body': body}
        if etag is not None:
            replace_kwargs['etag'] = etag
            replace_kwargs['match_condition'] = MatchConditions.IfNotModified
        try:
            replaced = self.container.replace_item(**replace_kwargs)
            logger.info(f"Replaced item in {self.container_name}: {item_id}")
            return replaced
        except CosmosHttpResponseError as e:
            raise map_cosmos_error(e, "ReplaceItem", self.container_name, item_id) from e

    def upsert_item(self, body: Dict[str, Any]) -> Dict[str, Any]:
        """Create or replace an item in a single request."""
        try:
            upserted = self.container.upsert_item(body=body)
            logger.info(f"Upserted item in {self.container_name}: {body.get('id')}")
            return upserted
        except CosmosHttpResponseError as e:
            raise map_cosmos_error(e, "UpsertItem", self.container_name, body.get('id')) from e

    def delete_item(self, item_id: str, partition_key: Any, etag: Optional[str] = None) -> None:
        """
        Delete an item.

        Raises:
            ItemNotFoundError: The item does not exist
            ConcurrencyConflictError: The ``_etag`` precondition failed
        """
        delete_kwargs = {'item': item_id, 'partition_key': partition_key}
        if etag is not None:
            delete_kwargs['etag'] = etag
            delete_kwargs['match_condition'] = MatchConditions.IfNotModified
        try:
            self.container.delete_item(**delete_kwargs)
            logger.info(f"Deleted item from {self.container_name}: {item_id}")
        except CosmosHttpResponseError as e:
            raise map_cosmos_error(e, "DeleteItem", self.container_name, item_id, partition_key) from e


def create_container_gateway(database: DatabaseGateway, mapping: EntityMapping) -> ContainerGateway:
    """
    Factory function to create a ContainerGateway for a mapped entity.

    Args:
        database: Database gateway owning the client
        mapping: Entity mapping naming the container

    Returns:
        Configured ContainerGateway instance
    """
    return ContainerGateway(database, mapping.container_name)
