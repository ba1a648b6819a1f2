"""
Snapshot Change Tracking

Every document a context adds, attaches or materializes gets an EntityEntry.
The entry keeps a snapshot of the document's field values taken when it was
last in sync with the store; comparing the live instance against that snapshot
is how modifications are detected. No proxies or ``__setattr__`` hooks are
involved, so plain attribute assignment on the pydantic model is all it takes
to make a document dirty.

States follow the usual unit-of-work lifecycle::

    add()      -> Added     --save-->  Unchanged
    materialize/attach      ->         Unchanged
    mutate                  ->         Modified  --save--> Unchanged
    remove()   -> Deleted   --save-->  Detached

The store-assigned ``_etag`` field is excluded from snapshots: it changes on
every write and is never a user modification.
"""

import copy
import logging
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple

from pydantic import BaseModel

from ..exceptions import PartitionKeyModificationError, ValidationError
from ..mapping import EntityMapping

logger = logging.getLogger(__name__)


class EntityState(str, Enum):
    """Lifecycle state of a tracked document."""
    DETACHED = "Detached"
    UNCHANGED = "Unchanged"
    ADDED = "Added"
    MODIFIED = "Modified"
    DELETED = "Deleted"


class PropertyEntry:
    """Original and current value of one property of a tracked document."""

    def __init__(self, name: str, original_value: Any, current_value: Any):
        self.name = name
        self.original_value = original_value
        self.current_value = current_value

    @property
    def is_modified(self) -> bool:
        return self.original_value != self.current_value

    def __repr__(self) -> str:
        return (
            f"PropertyEntry(name={self.name!r}, original_value={self.original_value!r}, "
            f"current_value={self.current_value!r})"
        )


class EntityEntry:
    """Tracking information for one document."""

    def __init__(self, document: BaseModel, mapping: EntityMapping, state: EntityState):
        self.document = document
        self.mapping = mapping
        self._state = state
        self._snapshot: Dict[str, Any] = {}
        self.original_key: Tuple[Any, ...] = ()
        self._take_snapshot()

    def _current_values(self) -> Dict[str, Any]:
        exclude = {self.mapping.etag_field} if self.mapping.etag_field else set()
        return self.document.model_dump(exclude=exclude)

    def _take_snapshot(self) -> None:
        self._snapshot = copy.deepcopy(self._current_values())
        self.original_key = self.mapping.document_key(self.document)

    @property
    def state(self) -> EntityState:
        """Current state, running change detection first for persisted documents."""
        if self._state in (EntityState.UNCHANGED, EntityState.MODIFIED):
            self.detect_changes()
        return self._state

    @state.setter
    def state(self, value: EntityState) -> None:
        self._state = value

    @property
    def original_partition_key(self) -> List[Any]:
        """Partition key values as last synchronized with the store."""
        return list(self.original_key[1:])

    def modified_property_names(self) -> List[str]:
        current = self._current_values()
        return [name for name, value in current.items() if self._snapshot.get(name) != value]

    def detect_changes(self) -> bool:
        """Move between Unchanged and Modified based on the snapshot.

        Returns:
            True if the document differs from its snapshot
        """
        modified = bool(self.modified_property_names())
        if self._state == EntityState.UNCHANGED and modified:
            self._state = EntityState.MODIFIED
            logger.debug(f"Detected changes on {self.mapping.model_name} '{self.document.id}'")
        elif self._state == EntityState.MODIFIED and not modified:
            self._state = EntityState.UNCHANGED
        return modified

    @property
    def properties(self) -> List[PropertyEntry]:
        current = self._current_values()
        return [PropertyEntry(name, self._snapshot.get(name), value) for name, value in current.items()]

    def modified_properties(self) -> List[PropertyEntry]:
        return [prop for prop in self.properties if prop.is_modified]

    def validate_key_unchanged(self) -> None:
        """Reject in-place changes to the id or partition key.

        Raises:
            ValidationError: The id was changed
            PartitionKeyModificationError: A partition key property was changed
        """
        changed = self.modified_property_names()
        if 'id' in changed:
            raise ValidationError(
                f"Cannot change the id of tracked {self.mapping.model_name} '{self.original_key[0]}'"
            )
        key_changes = [name for name in self.mapping.partition_key_fields if name in changed]
        if key_changes:
            raise PartitionKeyModificationError(self.mapping.model_name, self.document.id, key_changes)

    def accept_changes(self) -> None:
        """Mark the document as in sync with the store."""
        self._take_snapshot()
        self._state = EntityState.UNCHANGED

    def reject_changes(self) -> None:
        """Restore the snapshot values onto the document."""
        for name, value in copy.deepcopy(self._snapshot).items():
            if getattr(self.document, name) != value:
                setattr(self.document, name, value)
        self._state = EntityState.UNCHANGED

    def __repr__(self) -> str:
        return f"EntityEntry({self.mapping.model_name} id={self.document.id!r}, state={self._state.value})"


class ChangeTracker:
    """Entries of every document tracked by one context, with identity resolution."""

    def __init__(self):
        self._entries: Dict[int, EntityEntry] = {}

    @staticmethod
    def _identity(mapping: EntityMapping, key: Tuple[Any, ...]) -> Tuple[Any, ...]:
        return (mapping.container_name, *key)

    def track(self, document: BaseModel, mapping: EntityMapping, state: EntityState) -> EntityEntry:
        """Start tracking a document, or return its existing entry."""
        existing = self._entries.get(id(document))
        if existing is not None:
            return existing
        entry = EntityEntry(document, mapping, state)
        self._entries[id(document)] = entry
        logger.debug(f"Tracking {entry}")
        return entry

    def entry(self, document: BaseModel) -> Optional[EntityEntry]:
        return self._entries.get(id(document))

    def find(self, mapping: EntityMapping, key: Tuple[Any, ...]) -> Optional[EntityEntry]:
        """Tracked entry for a container/key, if any."""
        identity = self._identity(mapping, key)
        for entry in self._entries.values():
            if self._identity(entry.mapping, entry.original_key) == identity:
                return entry
        return None

    def stop_tracking(self, entry: EntityEntry) -> None:
        self._entries.pop(id(entry.document), None)
        entry.state = EntityState.DETACHED

    def entries(self) -> List[EntityEntry]:
        return list(self._entries.values())

    def detect_changes(self) -> None:
        for entry in self._entries.values():
            if entry.state in (EntityState.UNCHANGED, EntityState.MODIFIED):
                entry.detect_changes()

    def has_changes(self) -> bool:
        return any(
            entry.state in (EntityState.ADDED, EntityState.MODIFIED, EntityState.DELETED)
            for entry in self.entries()
        )

    def reject_changes(self) -> None:
        """Discard pending work: forget Added documents, restore the rest."""
        for entry in self.entries():
            state = entry.state
            if state == EntityState.ADDED:
                self.stop_tracking(entry)
            elif state in (EntityState.MODIFIED, EntityState.DELETED):
                entry.reject_changes()

    def clear(self) -> None:
        for entry in self.entries():
            self.stop_tracking(entry)

    def __iter__(self) -> Iterator[EntityEntry]:
        return iter(self.entries())

    def __len__(self) -> int:
        return len(self._entries)
