"""
Document context: unit of work, document sets and change tracking.

Usage:
    from cosmosdb_wrapper.context import DocumentContext

    with DocumentContext(config) as context:
        doc = context.test_documents.first_or_default(id="document1", partition_key="p1")
        doc.city = None
        context.save_changes()
"""

from .change_tracker import ChangeTracker, EntityEntry, EntityState, PropertyEntry
from .document_context import DEFAULT_MODELS, DocumentContext
from .document_set import DocumentQuery, DocumentSet, build_query

__all__ = [
    "ChangeTracker",
    "DEFAULT_MODELS",
    "DocumentContext",
    "DocumentQuery",
    "DocumentSet",
    "EntityEntry",
    "EntityState",
    "PropertyEntry",
    "build_query",
]
