"""
Tests for DocumentContext: provisioning, save_changes and concurrency.
"""

import pytest
from unittest.mock import patch

from azure.core import MatchConditions

from cosmosdb_wrapper import DocumentContext
from cosmosdb_wrapper.context import EntityState
from cosmosdb_wrapper.exceptions import (
    ConcurrencyConflictError,
    ConflictError,
    ItemNotFoundError,
    MappingError,
    NotFoundError,
    PartitionKeyModificationError,
)
from cosmosdb_wrapper.models import MessageDocument, SimpleTestDocument, TestDocument


class TestProvisioning:
    """Test cases for ensure_created / ensure_deleted."""

    def test_ensure_created(self, context_factory, fake_client):
        with context_factory() as context:
            assert context.ensure_created() is True
            assert context.ensure_created() is False

        assert set(fake_client.databases["test-database"]) == {
            "TestDocuments", "MessageDocuments", "SimpleTestDocuments"
        }
        definition = fake_client.container_definitions[("test-database", "TestDocuments")]
        assert definition['paths'] == ["/pk", "/queryfield"]
        assert definition['kind'] == "MultiHash"

    def test_ensure_deleted(self, context, fake_client):
        assert context.ensure_deleted() is True
        assert context.ensure_deleted() is False
        assert "test-database" not in fake_client.databases

    def test_operations_after_delete_fail(self, context):
        context.ensure_deleted()

        with pytest.raises(NotFoundError):
            context.test_documents.to_list()

    def test_custom_models(self, cosmos_config, fake_client):
        context = DocumentContext(cosmos_config, models=[TestDocument], client=fake_client)

        with pytest.raises(MappingError):
            context.message_documents

    def test_injected_client_left_open(self, context_factory, fake_client):
        with context_factory() as context:
            context.ensure_created()

        assert fake_client.closed is False

    def test_owned_client_closed(self, cosmos_config, fake_client):
        with patch('cosmosdb_wrapper.core.container_gateway.CosmosClient', return_value=fake_client):
            with DocumentContext(cosmos_config) as context:
                context.ensure_created()

        assert fake_client.closed is True


class TestSaveChanges:
    """Test cases for save_changes."""

    def test_create(self, context, fake_client):
        doc = TestDocument(id="document1", query_field="field1", partition_key="p1", city="Seattle")
        context.test_documents.add(doc)

        assert context.entry(doc).state == EntityState.ADDED
        assert context.save_changes() == 1
        assert context.entry(doc).state == EntityState.UNCHANGED

        stored = fake_client.stored_items("test-database", "TestDocuments")
        assert len(stored) == 1
        assert stored[0]["pk"] == "p1"
        assert stored[0]["queryfield"] == "field1"

    def test_create_duplicate_conflicts(self, context, other_context):
        context.test_documents.add(TestDocument(id="document1", query_field="field1", partition_key="p1"))
        context.save_changes()

        other_context.test_documents.add(TestDocument(id="document1", query_field="field1", partition_key="p1"))
        with pytest.raises(ConflictError):
            other_context.save_changes()

    def test_same_id_in_other_partition_is_allowed(self, context, fake_client):
        context.test_documents.add(TestDocument(id="document2", query_field="field2", partition_key="p2"))
        context.test_documents.add(TestDocument(id="document2", query_field="field1", partition_key="p2"))

        assert context.save_changes() == 2
        assert len(fake_client.stored_items("test-database", "TestDocuments")) == 2

    def test_update_non_key_property(self, context, other_context):
        doc = TestDocument(id="document1", query_field="field1", partition_key="p1", city="Seattle")
        context.test_documents.add(doc)
        context.save_changes()

        doc.city = None
        assert context.save_changes() == 1

        reread = other_context.test_documents.find("document1", ["p1", "field1"])
        assert reread.city is None
        assert reread.query_field == "field1"

    def test_unchanged_documents_not_written(self, context, fake_client):
        context.test_documents.add(TestDocument(id="document1", partition_key="p1"))
        context.save_changes()

        assert context.save_changes() == 0
        assert fake_client.requests_for("TestDocuments", "replace_item") == []

    def test_partition_key_change_rejected(self, context, fake_client):
        doc = TestDocument(id="document1", query_field="field1", partition_key="p1")
        context.test_documents.add(doc)
        context.save_changes()

        doc.query_field = "field9"
        with pytest.raises(PartitionKeyModificationError):
            context.save_changes()

        assert fake_client.requests_for("TestDocuments", "replace_item") == []

    def test_delete(self, context, other_context, fake_client):
        doc = TestDocument(id="document1", query_field="field1", partition_key="p1")
        context.test_documents.add(doc)
        context.save_changes()

        entry = context.test_documents.remove(doc)
        assert entry.state == EntityState.DELETED
        assert context.save_changes() == 1

        assert entry.state == EntityState.DETACHED
        assert context.change_tracker.entry(doc) is None
        assert other_context.test_documents.first_or_default(id="document1", partition_key="p1") is None

    def test_delete_missing_document(self, context):
        ghost = TestDocument(id="ghost", query_field="q", partition_key="p1")
        context.test_documents.attach(ghost)
        context.test_documents.remove(ghost)

        with pytest.raises(ItemNotFoundError):
            context.save_changes()

    def test_readd_deleted_document(self, context):
        doc = TestDocument(id="document1", query_field="field1", partition_key="p1")
        context.test_documents.add(doc)
        context.save_changes()
        context.test_documents.remove(doc)

        context.test_documents.add(doc)

        # Re-adding cancels the pending delete
        assert context.entry(doc).state == EntityState.UNCHANGED
        assert context.save_changes() == 0

    def test_untracked_entry_is_detached(self, context):
        assert context.entry(TestDocument(id="x")).state == EntityState.DETACHED

    def test_message_document(self, context, other_context):
        message = MessageDocument(id="m1", message_id="m1", partition_key="m1")
        context.message_documents.add(message)
        context.save_changes()

        restored = other_context.message_documents.find("m1", ["m1", "message"])

        assert restored.message_id == "m1"


class TestConcurrency:
    """Test cases for the _etag concurrency token."""

    def test_etag_copied_after_writes(self, context):
        doc = SimpleTestDocument(id="s1", foo="a", partition_key="pk")
        context.simple_test_documents.add(doc)
        context.save_changes()
        created_etag = doc.etag

        doc.foo = "b"
        context.save_changes()

        assert created_etag is not None
        assert doc.etag is not None
        assert doc.etag != created_etag
        assert context.entry(doc).state == EntityState.UNCHANGED

    def test_replace_sends_if_match(self, context, fake_client):
        doc = SimpleTestDocument(id="s1", foo="a", partition_key="pk")
        context.simple_test_documents.add(doc)
        context.save_changes()
        etag = doc.etag

        doc.foo = "b"
        context.save_changes()

        request = fake_client.requests_for("SimpleTestDocuments", "replace_item")[-1]
        assert request['etag'] == etag
        assert request['match_condition'] == MatchConditions.IfNotModified

    def test_stale_etag_conflicts(self, context, other_context):
        doc = SimpleTestDocument(id="s1", foo="a", partition_key="pk")
        context.simple_test_documents.add(doc)
        context.save_changes()
        other = other_context.simple_test_documents.find("s1", ["pk", "simple"])

        doc.foo = "from-first"
        other.foo = "from-second"
        context.save_changes()

        with pytest.raises(ConcurrencyConflictError):
            other_context.save_changes()

        assert context.simple_test_documents.find("s1", ["pk", "simple"]).foo == "from-first"

    def test_stale_delete_conflicts(self, context, other_context):
        doc = SimpleTestDocument(id="s1", foo="a", partition_key="pk")
        context.simple_test_documents.add(doc)
        context.save_changes()
        other = other_context.simple_test_documents.find("s1", ["pk", "simple"])

        doc.foo = "b"
        context.save_changes()
        other_context.simple_test_documents.remove(other)

        with pytest.raises(ConcurrencyConflictError):
            other_context.save_changes()

    def test_attached_without_etag_is_rejected(self, context, other_context, fake_client):
        """Test an enforced entity is never replaced without If-Match."""
        doc = SimpleTestDocument(id="s1", foo="a", partition_key="pk")
        context.simple_test_documents.add(doc)
        context.save_changes()
        doc.foo = "b"
        context.save_changes()

        blind = SimpleTestDocument(id="s1", foo="a", partition_key="pk")
        other_context.simple_test_documents.attach(blind)
        blind.foo = "c"

        with pytest.raises(ConcurrencyConflictError, match="no _etag"):
            other_context.save_changes()

        assert [item["foo"] for item in fake_client.stored_items("test-database", "SimpleTestDocuments")] == ["b"]
        # Only the first context's replace reached the store
        assert len(fake_client.requests_for("SimpleTestDocuments", "replace_item")) == 1

    def test_remove_without_etag_is_rejected(self, context, other_context, fake_client):
        context.simple_test_documents.add(SimpleTestDocument(id="s1", foo="a", partition_key="pk"))
        context.save_changes()

        other_context.simple_test_documents.remove(SimpleTestDocument(id="s1", foo="a", partition_key="pk"))

        with pytest.raises(ConcurrencyConflictError):
            other_context.save_changes()
        assert len(fake_client.stored_items("test-database", "SimpleTestDocuments")) == 1

    def test_last_writer_wins_without_token(self, context, other_context, fake_client):
        """Test TestDocument replaces are unconditional."""
        doc = TestDocument(id="t1", query_field="tracking", partition_key="tracking-test", city="OriginalCity")
        context.test_documents.add(doc)
        context.save_changes()
        other = other_context.test_documents.first_or_default(id="t1", partition_key="tracking-test")

        doc.city = "CityFromContext1"
        other.city = "CityFromContext2"
        context.save_changes()
        other_context.save_changes()

        stored = fake_client.stored_items("test-database", "TestDocuments")
        assert stored[0]["city"] == "CityFromContext2"
        request = fake_client.requests_for("TestDocuments", "replace_item")[-1]
        assert request['etag'] is None
