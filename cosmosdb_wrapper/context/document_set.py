"""
Document Sets and Queries

A DocumentSet is the per-entity entry point of a DocumentContext: it stages
adds and removes with the change tracker, performs point reads, and builds
parameterized Cosmos DB SQL queries from property names::

    docs = context.test_documents.where(partition_key="p1").order_by("city").to_list()

    # SELECT * FROM c WHERE c["pk"] = @p0 ORDER BY c["city"] ASC

Filters are equality comparisons on model properties, translated to wire names
through the entity mapping. When the filters fix every level of the partition
key the query is scoped to that logical partition, otherwise it runs
cross-partition. Ordering (including where nulls sort) is the store's.

Every materialized document passes through identity resolution: if the context
already tracks a document with the same id and partition key, the tracked
instance is returned and the stored values are not applied over it.
"""

import logging
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Generic, List, Optional, Tuple, Type, TypeVar, Union

from pydantic import BaseModel

from ..exceptions import ValidationError
from ..mapping import EntityMapping
from .change_tracker import EntityEntry, EntityState

if TYPE_CHECKING:
    from .document_context import DocumentContext

T = TypeVar('T', bound=BaseModel)

logger = logging.getLogger(__name__)


def to_wire_value(value: Any) -> Any:
    """Convert a filter value to its stored JSON form."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def build_query(
    mapping: EntityMapping,
    filters: Dict[str, Any],
    order: Optional[Tuple[str, bool]] = None,
    top: Optional[int] = None
) -> Tuple[str, List[Dict[str, Any]]]:
    """
    Build a parameterized Cosmos DB SQL query.

    Args:
        mapping: Mapping of the queried entity
        filters: Property name -> required value (equality)
        order: (property name, descending) or None
        top: Optional row limit

    Returns:
        Tuple of (query text, parameters)
    """
    select = f"SELECT TOP {int(top)} * FROM c" if top else "SELECT * FROM c"
    clauses = []
    parameters = []
    for index, (name, value) in enumerate(filters.items()):
        param = f"@p{index}"
        clauses.append(f'c["{mapping.wire_name(name)}"] = {param}')
        parameters.append({'name': param, 'value': to_wire_value(value)})

    query = select
    if clauses:
        query += " WHERE " + " AND ".join(clauses)
    if order is not None:
        name, descending = order
        query += f' ORDER BY c["{mapping.wire_name(name)}"] {"DESC" if descending else "ASC"}'
    return query, parameters


class DocumentQuery(Generic[T]):
    """Immutable query over one document set; each refinement returns a new query."""

    def __init__(
        self,
        document_set: 'DocumentSet[T]',
        filters: Optional[Dict[str, Any]] = None,
        order: Optional[Tuple[str, bool]] = None
    ):
        self.document_set = document_set
        self.filters = dict(filters or {})
        self.order = order

    def where(self, **equals: Any) -> 'DocumentQuery[T]':
        for name in equals:
            self.document_set.mapping.wire_name(name)
        return DocumentQuery(self.document_set, {**self.filters, **equals}, self.order)

    def order_by(self, property_name: str) -> 'DocumentQuery[T]':
        self.document_set.mapping.wire_name(property_name)
        return DocumentQuery(self.document_set, self.filters, (property_name, False))

    def order_by_descending(self, property_name: str) -> 'DocumentQuery[T]':
        self.document_set.mapping.wire_name(property_name)
        return DocumentQuery(self.document_set, self.filters, (property_name, True))

    def _partition_key(self) -> Any:
        mapping = self.document_set.mapping
        if not mapping.is_full_partition_key(self.filters):
            return None
        return mapping.sdk_partition_key([self.filters[name] for name in mapping.partition_key_fields])

    def _execute(self, top: Optional[int] = None) -> List[T]:
        query, parameters = build_query(self.document_set.mapping, self.filters, self.order, top)
        items = self.document_set.gateway.query_items(query, parameters, partition_key=self._partition_key())
        return [self.document_set._materialize(item) for item in items]

    def to_list(self) -> List[T]:
        """Run the query and return every matching document."""
        return self._execute()

    def first_or_default(self) -> Optional[T]:
        """Run the query for a single document; None when nothing matches."""
        results = self._execute(top=1)
        return results[0] if results else None

    def __iter__(self):
        return iter(self.to_list())


class DocumentSet(Generic[T]):
    """Per-entity entry point of a document context."""

    def __init__(self, context: 'DocumentContext', mapping: EntityMapping):
        self.context = context
        self.mapping = mapping
        self.model_class: Type[T] = mapping.model_class

    @property
    def gateway(self):
        return self.context.gateway_for(self.mapping)

    def _check_type(self, document: Any) -> None:
        if not isinstance(document, self.model_class):
            raise ValidationError(
                f"Expected {self.model_class.__name__}, got {type(document).__name__}"
            )

    def add(self, document: T) -> EntityEntry:
        """Stage a new document for insertion on the next save."""
        self._check_type(document)
        entry = self.context.change_tracker.entry(document)
        if entry is not None:
            if entry.state == EntityState.DELETED:
                entry.state = EntityState.MODIFIED
            return entry
        return self.context.change_tracker.track(document, self.mapping, EntityState.ADDED)

    def attach(self, document: T) -> EntityEntry:
        """Track a document known to exist in the store, as Unchanged."""
        self._check_type(document)
        return self.context.change_tracker.track(document, self.mapping, EntityState.UNCHANGED)

    def remove(self, document: T) -> EntityEntry:
        """Stage a document for deletion on the next save."""
        self._check_type(document)
        tracker = self.context.change_tracker
        entry = tracker.entry(document)
        if entry is None:
            entry = tracker.track(document, self.mapping, EntityState.DELETED)
        elif entry.state == EntityState.ADDED:
            tracker.stop_tracking(entry)
        else:
            entry.state = EntityState.DELETED
        return entry

    def find(self, document_id: str, partition_key: Union[List[Any], Any]) -> Optional[T]:
        """
        Point read by id and full partition key.

        Args:
            document_id: Document id
            partition_key: Partition key values in declaration order (a scalar
                is accepted for single-level keys)

        Returns:
            The document, or None if it does not exist or is pending deletion
            in this context
        """
        values = list(partition_key) if isinstance(partition_key, (list, tuple)) else [partition_key]
        if len(values) != len(self.mapping.partition_key_fields):
            raise ValidationError(
                f"{self.mapping.model_name} partition key has {len(self.mapping.partition_key_fields)} "
                f"level(s), got {len(values)}"
            )
        tracked = self.context.change_tracker.find(self.mapping, (document_id, *values))
        if tracked is not None:
            if tracked.state == EntityState.DELETED:
                return None
            return tracked.document

        item = self.gateway.read_item(document_id, self.mapping.sdk_partition_key(values))
        if item is None:
            return None
        return self._materialize(item)

    def query(self) -> DocumentQuery[T]:
        return DocumentQuery(self)

    def where(self, **equals: Any) -> DocumentQuery[T]:
        return self.query().where(**equals)

    def order_by(self, property_name: str) -> DocumentQuery[T]:
        return self.query().order_by(property_name)

    def order_by_descending(self, property_name: str) -> DocumentQuery[T]:
        return self.query().order_by_descending(property_name)

    def first_or_default(self, **equals: Any) -> Optional[T]:
        return self.where(**equals).first_or_default()

    def to_list(self) -> List[T]:
        return self.query().to_list()

    def __iter__(self):
        return iter(self.to_list())

    def _materialize(self, item: Dict[str, Any]) -> T:
        document = self.model_class.from_cosmos_item(item)
        tracker = self.context.change_tracker
        tracked = tracker.find(self.mapping, self.mapping.document_key(document))
        if tracked is not None:
            return tracked.document
        tracker.track(document, self.mapping, EntityState.UNCHANGED)
        return document
