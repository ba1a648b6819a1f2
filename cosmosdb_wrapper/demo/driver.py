"""
Scripted Cosmos DB document demo.

Runs a fixed sequence of operations through a DocumentContext and prints a
progress line for each. Every step catches its own failures, prints them and
lets the scenario continue; only provisioning (at the start) and teardown (at
the end) propagate errors to the caller.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, List, Optional, Tuple

from ..config import CosmosDBConfig
from ..context import DocumentContext, EntityState
from ..exceptions import ConcurrencyConflictError, PartitionKeyModificationError
from ..models import DataItem, MessageDocument, SimpleTestDocument, TestDocument, ValueType

logger = logging.getLogger(__name__)


def first_day_of_current_month() -> datetime:
    now = datetime.now(timezone.utc)
    return datetime(now.year, now.month, 1, tzinfo=timezone.utc)


def describe(document: TestDocument) -> str:
    return (
        f"Id={document.id}, QueryField={document.query_field}, "
        f"PartitionKey={document.partition_key}, City={document.city}"
    )


class DocumentDemo:
    """Demo driver; each public method is one step of the scenario."""

    def __init__(
        self,
        config: Optional[CosmosDBConfig] = None,
        context_factory: Optional[Callable[[], DocumentContext]] = None
    ):
        """Initialize the demo.

        Args:
            config: Configuration shared by every context the demo opens
            context_factory: Builds a new, independent context; defaults to
                ``DocumentContext(config)`` so all contexts use the same database
        """
        self.config = config or CosmosDBConfig.from_env()
        self.context_factory = context_factory or (lambda: DocumentContext(self.config))

    def _report_error(self, action: str, error: Exception, context: Optional[DocumentContext] = None) -> None:
        print(f"Error {action}: {error}")
        cause = error.__cause__ or getattr(error, 'original_error', None)
        if cause is not None:
            print(f"Inner exception: {cause}")
        logger.debug(f"Step failed while {action}", exc_info=error)
        if context is not None:
            context.change_tracker.reject_changes()

    def run(self) -> None:
        """Run the whole scenario against a freshly created database."""
        with self.context_factory() as context:
            print("Creating database and containers...")
            context.ensure_deleted()
            context.ensure_created()

            partition_key1 = "p1"
            partition_key2 = "p2"

            print("Creating test documents...")
            self.create_test_document(context, "document1", "field1", partition_key1, "Seattle")
            self.create_test_document(context, "document2", "field2", partition_key2, "Portland")

            print("Reading all documents unchanged...")
            self.query_all_test_documents(context)

            print("\nUpdating document...")
            self.update_test_document_and_verify(context, "document1", partition_key1, None)

            print("\nUpserting new document...")
            self.upsert_test_document_and_verify(context, "document3", "field1", partition_key2, "New Orleans")

            print("\nUpserting existing document...")
            self.upsert_test_document_and_verify(context, "document2", "field1", partition_key2, "Miami")

            print("Reading documents with partition key filter...")
            self.query_test_documents_by_partition_key(context, partition_key1)

            print("Reading all documents after updates...")
            self.query_all_test_documents(context)

            print("\nQuerying documents with order by...")
            self.query_test_documents_with_order_by(context, partition_key1)

            print("\nDeleting document...")
            self.delete_test_document_and_verify(context, "document1", partition_key1)

            print("\nTesting message document insertion...")
            self.insert_message_document(context)

            print("\nTesting SimpleTestDocument operations...")
            self.run_simple_document_operations(context)

            print("\nTesting change tracking features...")
            self.run_change_tracking_demo(context)

            print("\nTesting the _etag concurrency token...")
            self.run_concurrency_token_demo(context)

            print("\nTesting partition key immutability...")
            self.run_partition_key_immutability_demo(context, "document2", [partition_key2, "field2"])

            print("Cleaning up database...")
            context.ensure_deleted()

    # Create / read / update / upsert / delete

    def create_test_document(
        self,
        context: DocumentContext,
        document_id: str,
        query_field: Optional[str],
        partition_key: str,
        city: Optional[str]
    ) -> Optional[TestDocument]:
        document = TestDocument(id=document_id, query_field=query_field, partition_key=partition_key, city=city)
        try:
            context.test_documents.add(document)
            context.save_changes()
        except Exception as e:
            self._report_error("creating document", e, context)
            return None
        print(f"Created test document {document_id} with hierarchical partition key [{partition_key}, {query_field}]")
        return document

    def update_test_document_and_verify(
        self,
        context: DocumentContext,
        document_id: str,
        partition_key: str,
        new_city: Optional[str]
    ) -> Optional[TestDocument]:
        print(f"Updating document {document_id} with new city: {new_city if new_city is not None else 'null'}")
        try:
            existing = context.test_documents.first_or_default(id=document_id, partition_key=partition_key)
            if existing is None:
                print(f"Document with id {document_id} not found!")
                return None

            print(f"Retrieved document: Id={existing.id}, City={existing.city}, QueryField={existing.query_field}")

            # Only non-partition-key properties may change in place
            existing.city = new_city
            context.save_changes()
            print("Updated document successfully (QueryField is part of the partition key and cannot be modified)")

            print("Verifying update by querying the document:")
            updated = context.test_documents.first_or_default(id=document_id, partition_key=partition_key)
            if updated is not None:
                print(f"Verified document: Id={updated.id}, City={updated.city}, QueryField={updated.query_field}")
            return updated
        except Exception as e:
            self._report_error("updating document", e, context)
            return None

    def upsert_test_document_and_verify(
        self,
        context: DocumentContext,
        document_id: str,
        query_field: str,
        partition_key: str,
        city: str
    ) -> Optional[str]:
        """Update the document with this exact key, or create it.

        Returns:
            "updated" or "created" for the path taken, None on failure
        """
        print(f"Upserting document {document_id} with hierarchical partition key [{partition_key}, {query_field}]")
        try:
            existing = context.test_documents.first_or_default(
                id=document_id, partition_key=partition_key, query_field=query_field
            )
            if existing is not None:
                existing.city = city
                outcome = "updated"
                print("Document exists with exact partition key, updating City...")
            else:
                context.test_documents.add(
                    TestDocument(id=document_id, query_field=query_field, partition_key=partition_key, city=city)
                )
                outcome = "created"
                print("Document does not exist with exact partition key, creating new...")

            context.save_changes()
            print("Upserted document successfully")

            print("Verifying upsert by reading the document:")
            upserted = context.test_documents.find(document_id, [partition_key, query_field])
            if upserted is not None:
                print(f"Verified document: {describe(upserted)}")
            return outcome
        except Exception as e:
            self._report_error("upserting document", e, context)
            return None

    def delete_test_document_and_verify(self, context: DocumentContext, document_id: str, partition_key: str) -> bool:
        """Delete a document and confirm it is gone.

        Returns:
            True if the document was deleted and no longer found
        """
        print(f"Deleting document {document_id} with partition key {partition_key}")
        try:
            document = context.test_documents.first_or_default(id=document_id, partition_key=partition_key)
            if document is None:
                print(f"Document with id {document_id} not found!")
                return False

            print(f"Found document to delete: Id={document.id}, QueryField={document.query_field}")
            context.test_documents.remove(document)
            context.save_changes()
            print("Deleted document successfully")

            print("Verifying deletion by attempting to find the document:")
            deleted = context.test_documents.first_or_default(id=document_id, partition_key=partition_key)
            if deleted is None:
                print("Document deletion verified - document not found")
                return True
            print("WARNING: Document still exists after deletion attempt")
            return False
        except Exception as e:
            self._report_error("deleting document", e, context)
            return False

    # Queries

    def query_test_documents_by_partition_key(self, context: DocumentContext, partition_key: str) -> List[TestDocument]:
        print(f"Querying documents with primary partition key: {partition_key}")
        try:
            documents = context.test_documents.where(partition_key=partition_key).to_list()
        except Exception as e:
            self._report_error("querying documents by partition key", e)
            return []
        for document in documents:
            print(f"Found document: {describe(document)}")
        print(f"Found {len(documents)} document(s) with primary partition key {partition_key}")
        return documents

    def query_all_test_documents(self, context: DocumentContext) -> List[TestDocument]:
        print("Querying all test documents...")
        try:
            documents = context.test_documents.to_list()
        except Exception as e:
            self._report_error("querying all documents", e)
            return []
        for document in documents:
            print(f"Found document: {describe(document)}")
        print(f"Found {len(documents)} document(s) in total")
        return documents

    def query_test_documents_with_order_by(
        self,
        context: DocumentContext,
        partition_key: str = "p1"
    ) -> Tuple[List[TestDocument], List[TestDocument]]:
        print("\nQuerying documents ordered by City...")
        try:
            print("Results in ascending order by City:")
            ascending = context.test_documents.where(partition_key=partition_key).order_by("city").to_list()
            for document in ascending:
                print(f"Found document: {describe(document)}")
            print(f"Found {len(ascending)} document(s) in ascending order")

            print("\nResults in descending order by City:")
            descending = context.test_documents.where(partition_key=partition_key).order_by_descending("city").to_list()
            for document in descending:
                print(f"Found document: {describe(document)}")
            print(f"Found {len(descending)} document(s) in descending order")
            return ascending, descending
        except Exception as e:
            self._report_error("querying documents with order by", e)
            return [], []

    # Owned collections and system properties

    def insert_message_document(self, context: DocumentContext) -> Optional[MessageDocument]:
        print("Creating message document with owned data items...")
        message_id = str(uuid.uuid4())
        message = MessageDocument(
            id=message_id,
            message_id=message_id,
            partition_key=message_id,
            query_field="message",
            data=[
                DataItem(
                    system_id="PUT001",
                    date=first_day_of_current_month(),
                    category_id=0,
                    subcategory="TestSubCategory",
                    name="TestName1",
                    value_type=ValueType.DIFFERENCE,
                    quantity=123.5,
                    unit="TestUnit1",
                    data='{"ReferringUnit":"system 1"}'
                ),
                DataItem(
                    system_id="PUT001",
                    date=first_day_of_current_month(),
                    category_id=2,
                    subcategory="TestSubCategory2",
                    name="TestName2",
                    value_type=ValueType.TOTAL,
                    quantity=200,
                    unit="TestUnit2",
                    data='{"ReferringUnit":"system 1"}'
                ),
            ]
        )

        try:
            context.message_documents.add(message)
            context.save_changes()
            print(f"Message document created successfully with ID: {message.id}")
            print(f"Message contains {len(message.data)} data items")

            retrieved = context.message_documents.first_or_default(id=message_id)
            if retrieved is not None:
                print(f"Retrieved message document: ID={retrieved.id}, MessageId={retrieved.message_id}")
                print(f"Retrieved message contains {len(retrieved.data)} data items")
                for item in retrieved.data:
                    print(f"  Data item: {item.name}, Quantity: {item.quantity}, ValueType: {item.value_type.value}")
            return retrieved
        except Exception as e:
            self._report_error("creating message document", e, context)
            return None

    def run_simple_document_operations(self, context: DocumentContext) -> Tuple[Optional[str], Optional[str]]:
        """Create and update a SimpleTestDocument, reporting its ``_etag``.

        Returns:
            The ``_etag`` after creation and after the update
        """
        print("=== Testing SimpleTestDocument Operations ===")
        try:
            document_id = str(uuid.uuid4())
            document = SimpleTestDocument(id=document_id, foo="InitialValue", partition_key="simple-pk")

            print(f"Creating SimpleTestDocument with ID: {document_id}")
            context.simple_test_documents.add(document)
            context.save_changes()

            created = context.simple_test_documents.find(document_id, ["simple-pk", "simple"])
            if created is None:
                print(f"Document with id {document_id} not found!")
                return None, None
            created_etag = created.etag
            print(f"Created document ETag: {created_etag}")

            print("Updating the document...")
            created.foo = "UpdatedValue"
            context.save_changes()

            updated = context.simple_test_documents.find(document_id, ["simple-pk", "simple"])
            updated_etag = updated.etag if updated is not None else None
            print(f"Updated document Foo: {updated.foo if updated else None}, ETag: {updated_etag}")
            if created_etag != updated_etag:
                print("ETag changed after update, as assigned by the store")
            return created_etag, updated_etag
        except Exception as e:
            self._report_error("in SimpleTestDocument operations", e, context)
            return None, None

    # Change tracking, concurrency and key immutability

    def run_change_tracking_demo(self, context: DocumentContext) -> Optional[bool]:
        """Walk a TestDocument through the tracked states, then save it from two contexts.

        Returns:
            Whether the second context's save raised a concurrency conflict, or
            None if the demo failed before reaching that point
        """
        print("=== Testing Change Tracking Features ===")
        try:
            document_id = str(uuid.uuid4())
            partition_key = "tracking-test"
            document = TestDocument(id=document_id, query_field="tracking", partition_key=partition_key, city="OriginalCity")

            print("Adding document to context (not yet saved)...")
            context.test_documents.add(document)
            entry = context.entry(document)
            print(f"Entity state before save_changes: {entry.state.value}")

            context.save_changes()
            print(f"Entity state after save_changes: {entry.state.value}")

            print("Modifying the document (City property only)...")
            document.city = "ModifiedCity"
            print(f"Entity state after modification: {entry.state.value}")

            if entry.state == EntityState.MODIFIED:
                print("SUCCESS: change tracking detected the modification")
                for prop in entry.modified_properties():
                    print(f"  Modified property: {prop.name}")
                    print(f"    Original value: {prop.original_value}")
                    print(f"    Current value: {prop.current_value}")

            context.save_changes()
            print(f"Entity state after second save_changes: {entry.state.value}")

            print("\nTesting concurrent modifications simulation...")
            return self._save_from_two_contexts(
                context,
                document,
                lambda other: other.test_documents.first_or_default(id=document_id, partition_key=partition_key),
                "city",
                ("CityFromContext1", "CityFromContext2"),
            )
        except Exception as e:
            self._report_error("in change tracking test", e, context)
            return None

    def run_concurrency_token_demo(self, context: DocumentContext) -> Optional[bool]:
        """Repeat the two-context save on a document whose ``_etag`` is enforced.

        Returns:
            Whether the second context's save raised a concurrency conflict
        """
        try:
            document_id = str(uuid.uuid4())
            document = SimpleTestDocument(id=document_id, foo="Original", partition_key="concurrency-pk")
            context.simple_test_documents.add(document)
            context.save_changes()
            print(f"Created SimpleTestDocument {document_id} with ETag {document.etag}")
            return self._save_from_two_contexts(
                context,
                document,
                lambda other: other.simple_test_documents.find(document_id, ["concurrency-pk", "simple"]),
                "foo",
                ("FooFromContext1", "FooFromContext2"),
            )
        except Exception as e:
            self._report_error("in concurrency token test", e, context)
            return None

    def _save_from_two_contexts(self, context, document, load, field, values) -> Optional[bool]:
        mapping = context.mappings.for_document(document)
        expect_conflict = mapping.concurrency_token

        with self.context_factory() as other_context:
            other_document = load(other_context)
            if other_document is None:
                print("Document not visible from the second context!")
                return None

            setattr(document, field, values[0])
            setattr(other_document, field, values[1])

            context.save_changes()
            print("Saved changes from first context")

            conflict = False
            try:
                other_context.save_changes()
                print("Saved changes from second context - no conflict detected")
            except ConcurrencyConflictError as e:
                conflict = True
                print(f"Concurrent modification conflict: {e}")
                other_context.change_tracker.reject_changes()

        if conflict == expect_conflict:
            policy = "enforced" if expect_conflict else "not configured"
            print(f"Outcome matches {mapping.model_name} mapping (concurrency token {policy})")
        else:
            print(f"WARNING: unexpected outcome for {mapping.model_name}; conflict raised={conflict}")
        return conflict

    def run_partition_key_immutability_demo(
        self,
        context: DocumentContext,
        document_id: str,
        partition_key: List[str]
    ) -> bool:
        """Show that changing a partition key property in place is refused.

        Returns:
            True if the save was rejected
        """
        try:
            document = context.test_documents.find(document_id, partition_key)
            if document is None:
                print(f"Document with id {document_id} not found!")
                return False
            original = document.query_field
            document.query_field = f"{original}-changed"
            try:
                context.save_changes()
            except PartitionKeyModificationError as e:
                print(f"Partition key change rejected as expected: {e}")
                context.change_tracker.reject_changes()
                print(f"Reverted QueryField to {document.query_field}")
                return True
            print("WARNING: partition key change was saved in place")
            return False
        except Exception as e:
            self._report_error("changing partition key", e, context)
            return False
