"""
Domain-Specific Exceptions for the Cosmos DB Wrapper

This module consolidates all domain-specific exceptions that extend the base
CosmosDBWrapperError. Status codes returned by the Cosmos DB service are mapped
onto these in ``core.container_gateway.map_cosmos_error``.

Organized by category:
1. Data Validation and Mapping Errors
2. Resource Not Found Errors
3. Conflict and Concurrency Errors
4. Infrastructure and Retry Errors
"""

from typing import Any, Dict, List, Optional

from .base import CosmosDBWrapperError


# =============================================================================
# Data Validation and Mapping Errors
# =============================================================================

class ValidationError(CosmosDBWrapperError):
    """Raised when data validation fails.

    Used for:
    - Pydantic model validation failures on materialization
    - Bad requests rejected by the service (HTTP 400)
    - Attempts to change a document id in place
    """

    def __init__(self, message: str, errors: Optional[Dict[str, Any]] = None, original_error: Optional[Exception] = None):
        """Initialize validation error.

        Args:
            message: Human-readable error message
            errors: Dictionary of field-level validation errors
            original_error: The original exception that caused this error
        """
        self.errors = errors or {}
        context = {}
        if self.errors:
            context['validation_errors'] = self.errors
        super().__init__(message, original_error, context)


class MappingError(CosmosDBWrapperError):
    """Raised when an entity's container mapping is invalid.

    Always raised while the mapping registry is built, never mid-operation.
    """

    def __init__(self, message: str, model_name: Optional[str] = None):
        self.model_name = model_name
        context = {'model': model_name} if model_name else {}
        super().__init__(message, None, context)


class PartitionKeyModificationError(CosmosDBWrapperError):
    """Raised when a save would change a partition-key property in place.

    Partition-key values decide where a document lives; changing one requires
    deleting the document and creating it again.
    """

    def __init__(self, model_name: str, document_id: str, properties: List[str]):
        self.model_name = model_name
        self.document_id = document_id
        self.properties = properties
        message = (
            f"Cannot modify partition key property {', '.join(properties)} of "
            f"{model_name} '{document_id}'; delete and re-create the document instead"
        )
        super().__init__(message, None, {'model': model_name, 'id': document_id})


# =============================================================================
# Resource Not Found Errors
# =============================================================================

class ItemNotFoundError(CosmosDBWrapperError):
    """Raised when a specific document is not found in a container.

    Used for:
    - Point reads that return 404
    - Replace/Delete operations on documents that no longer exist
    """

    def __init__(self, container_name: str, key: dict, original_error: Optional[Exception] = None):
        """Initialize item not found error.

        Args:
            container_name: Name of the Cosmos DB container
            key: The id/partition key that was not found
            original_error: The original exception that caused this error
        """
        self.container_name = container_name
        self.key = key
        message = f"Item not found in container '{container_name}' with key: {key}"
        context = {
            'container_name': container_name,
            'key': key
        }
        super().__init__(message, original_error, context)


class NotFoundError(CosmosDBWrapperError):
    """Raised when a database or container is not found."""

    def __init__(self, message: str, resource_type: Optional[str] = None, resource_name: Optional[str] = None, original_error: Optional[Exception] = None):
        self.resource_type = resource_type
        self.resource_name = resource_name
        context = {}
        if resource_type:
            context['resource_type'] = resource_type
        if resource_name:
            context['resource_name'] = resource_name
        super().__init__(message, original_error, context)


# =============================================================================
# Conflict and Concurrency Errors
# =============================================================================

class ConflictError(CosmosDBWrapperError):
    """Raised when a write collides with existing data.

    Used for:
    - HTTP 409: a document with the same id exists in the logical partition
    - Base class for optimistic concurrency failures
    """

    def __init__(self, message: str, resource_id: Optional[str] = None, original_error: Optional[Exception] = None):
        """Initialize conflict error.

        Args:
            message: Human-readable error message
            resource_id: ID of the conflicting document
            original_error: The original exception that caused this error
        """
        self.resource_id = resource_id
        context = {}
        if resource_id:
            context['resource_id'] = resource_id
        super().__init__(message, original_error, context)


class ConcurrencyConflictError(ConflictError):
    """Raised when an ``If-Match`` precondition on ``_etag`` fails (HTTP 412).

    The document was changed by someone else since it was read.
    """


# =============================================================================
# Infrastructure and Retry Errors
# =============================================================================

class ConnectionError(CosmosDBWrapperError):
    """Raised when the Cosmos DB account cannot be reached or authenticated.

    Used for:
    - Client construction failures
    - Authentication/authorization failures (HTTP 401/403)
    - Unknown service errors
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, original_error, context)


class RetryableError(CosmosDBWrapperError):
    """Raised when an operation fails for a transient reason.

    Used for:
    - Request rate too large (HTTP 429)
    - Request timeout (HTTP 408) and retry-with (HTTP 449)
    - Service unavailable / internal errors (HTTP 500, 503)

    The wrapper surfaces these; it does not retry beyond the SDK's own policy.
    """

    def __init__(self, message: str, retry_after_ms: Optional[int] = None, original_error: Optional[Exception] = None):
        """Initialize retryable error.

        Args:
            message: Human-readable error message
            retry_after_ms: Retry delay suggested by the service, in milliseconds
            original_error: The original exception that caused this error
        """
        self.retry_after_ms = retry_after_ms
        context = {}
        if retry_after_ms:
            context['retry_after_ms'] = retry_after_ms
        super().__init__(message, original_error, context)
