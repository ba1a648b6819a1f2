"""
Document Context

The unit of work over one Cosmos DB database: it holds the validated entity
mappings, the change tracker and one client, and writes pending changes with
``save_changes()``.

A context is a scoped resource; use it as a context manager so the client it
created is released when the unit of work ends::

    with DocumentContext(config) as context:
        context.test_documents.add(TestDocument(id="document1", ...))
        context.save_changes()

Two contexts built from the same config talk to the same database but share
no state: each has its own client, tracker and identity map.
"""

import logging
from typing import Dict, Iterable, Optional, Type

from azure.cosmos import CosmosClient
from pydantic import BaseModel

from ..config import CosmosDBConfig
from ..core import ContainerGateway, DatabaseGateway, create_container_gateway
from ..exceptions import ConcurrencyConflictError
from ..mapping import EntityMapping, MappingRegistry
from ..models import MessageDocument, SimpleTestDocument, TestDocument
from .change_tracker import ChangeTracker, EntityEntry, EntityState
from .document_set import DocumentSet

logger = logging.getLogger(__name__)

DEFAULT_MODELS = (TestDocument, MessageDocument, SimpleTestDocument)


class DocumentContext:
    """Unit of work over the mapped containers of one database."""

    def __init__(
        self,
        config: Optional[CosmosDBConfig] = None,
        models: Optional[Iterable[Type[BaseModel]]] = None,
        client: Optional[CosmosClient] = None
    ):
        """Initialize the context.

        Args:
            config: Cosmos DB configuration (read from the environment if omitted)
            models: Entity classes to map (the three demo documents by default)
            client: Optional externally owned CosmosClient

        Raises:
            MappingError: If any model's mapping declaration is invalid
        """
        self.config = config or CosmosDBConfig.from_env()
        self.mappings = MappingRegistry(models or DEFAULT_MODELS)
        self.database = DatabaseGateway(self.config, client=client)
        self.change_tracker = ChangeTracker()
        self._gateways: Dict[str, ContainerGateway] = {}
        self._sets: Dict[Type[BaseModel], DocumentSet] = {}

    def __enter__(self) -> 'DocumentContext':
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    def close(self) -> None:
        """Release the client and forget tracked documents."""
        self.change_tracker.clear()
        self._gateways.clear()
        self.database.close()

    # Provisioning

    def ensure_created(self) -> bool:
        """Create the database and every mapped container if missing.

        Returns:
            True if the database was created by this call
        """
        return self.database.ensure_created(self.mappings)

    def ensure_deleted(self) -> bool:
        """Delete the database.

        Returns:
            True if the database existed
        """
        self._gateways.clear()
        return self.database.ensure_deleted()

    # Sets and entries

    def set(self, model_class: Type[BaseModel]) -> DocumentSet:
        """Document set for a mapped entity class."""
        if model_class not in self._sets:
            self._sets[model_class] = DocumentSet(self, self.mappings.get(model_class))
        return self._sets[model_class]

    @property
    def test_documents(self) -> DocumentSet:
        return self.set(TestDocument)

    @property
    def message_documents(self) -> DocumentSet:
        return self.set(MessageDocument)

    @property
    def simple_test_documents(self) -> DocumentSet:
        return self.set(SimpleTestDocument)

    def entry(self, document: BaseModel) -> EntityEntry:
        """Tracking entry for a document; untracked documents report Detached."""
        entry = self.change_tracker.entry(document)
        if entry is None:
            entry = EntityEntry(document, self.mappings.for_document(document), EntityState.DETACHED)
        return entry

    def gateway_for(self, mapping: EntityMapping) -> ContainerGateway:
        if mapping.container_name not in self._gateways:
            self._gateways[mapping.container_name] = create_container_gateway(self.database, mapping)
        return self._gateways[mapping.container_name]

    # Unit of work

    def save_changes(self) -> int:
        """
        Write every pending change to the store.

        Added documents are created, Modified documents replaced (with an
        ``_etag`` precondition when the entity enforces its concurrency
        token) and Deleted documents deleted, in tracking order. After each
        write the store's ``_etag`` is copied onto the document and the entry
        becomes Unchanged; deleted documents stop being tracked.

        Returns:
            Number of documents written

        Raises:
            PartitionKeyModificationError: A tracked document's partition key changed
            ConflictError: A created document's id already exists in its partition
            ConcurrencyConflictError: A replaced/deleted document changed since it was read
                or carries no _etag although its entity enforces one
        """
        pending = [
            entry for entry in self.change_tracker.entries()
            if entry.state in (EntityState.ADDED, EntityState.MODIFIED, EntityState.DELETED)
        ]
        for entry in pending:
            if entry.state == EntityState.MODIFIED:
                entry.validate_key_unchanged()
            if entry.state != EntityState.ADDED:
                self._require_concurrency_etag(entry)

        written = 0
        for entry in pending:
            mapping = entry.mapping
            document = entry.document
            gateway = self.gateway_for(mapping)
            etag = self._concurrency_etag(entry)

            if entry.state == EntityState.ADDED:
                stored = gateway.create_item(document.to_cosmos_item())
            elif entry.state == EntityState.MODIFIED:
                stored = gateway.replace_item(document.id, document.to_cosmos_item(), etag=etag)
            else:
                gateway.delete_item(
                    document.id, mapping.sdk_partition_key(entry.original_partition_key), etag=etag
                )
                self.change_tracker.stop_tracking(entry)
                written += 1
                continue

            self._apply_store_values(entry, stored)
            entry.accept_changes()
            written += 1

        logger.info(f"Saved {written} document change(s)")
        return written

    @staticmethod
    def _require_concurrency_etag(entry: EntityEntry) -> None:
        mapping = entry.mapping
        if mapping.concurrency_token and not getattr(entry.document, mapping.etag_field):
            raise ConcurrencyConflictError(
                f"{mapping.model_name} {entry.document.id} has no _etag to send as If-Match; "
                f"read it from the store before replacing or deleting it",
                resource_id=entry.document.id
            )

    @staticmethod
    def _concurrency_etag(entry: EntityEntry) -> Optional[str]:
        mapping = entry.mapping
        if not mapping.concurrency_token:
            return None
        return getattr(entry.document, mapping.etag_field)

    @staticmethod
    def _apply_store_values(entry: EntityEntry, stored) -> None:
        etag_field = entry.mapping.etag_field
        if etag_field and stored and '_etag' in stored:
            setattr(entry.document, etag_field, stored['_etag'])
