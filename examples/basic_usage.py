#!/usr/bin/env python3
"""
Basic usage examples for the Cosmos DB wrapper library.

This example walks through the document context API:
1. Setting up configuration
2. Provisioning the database and containers
3. Adding documents and saving them
4. Point reads, filtered and ordered queries
5. Change tracking and the _etag concurrency token
"""

from datetime import datetime, timezone

from cosmosdb_wrapper import (
    ConcurrencyConflictError,
    CosmosDBConfig,
    DataItem,
    DocumentContext,
    MessageDocument,
    PartitionKeyModificationError,
    SimpleTestDocument,
    TestDocument,
    ValueType,
)


def main():
    """Demonstrate basic usage of the document context."""

    # 1. Configure the Cosmos DB connection
    print("1. Setting up Cosmos DB configuration...")
    config = CosmosDBConfig.from_env()  # Uses environment variables / .env

    # For the local emulator with a fixed database, you might use:
    # config = CosmosDBConfig.for_local_emulator(database_name="basic-usage")

    with DocumentContext(config) as context:
        # 2. Create the database and one container per mapped document type
        print("2. Provisioning database and containers...")
        context.ensure_created()

        # 3. Stage documents and write them in one save
        print("3. Creating documents...")
        context.test_documents.add(TestDocument(id="seattle", query_field="cities", partition_key="wa", city="Seattle"))
        context.test_documents.add(TestDocument(id="spokane", query_field="cities", partition_key="wa", city="Spokane"))
        context.message_documents.add(
            MessageDocument(
                id="message-1",
                message_id="message-1",
                partition_key="message-1",
                data=[
                    DataItem(
                        system_id="PUT001",
                        date=datetime(2024, 1, 1, tzinfo=timezone.utc),
                        name="Meter",
                        value_type=ValueType.TOTAL,
                        quantity=42.0,
                        unit="kWh"
                    )
                ]
            )
        )
        written = context.save_changes()
        print(f"   Saved {written} documents")

        # 4. Point read and queries
        print("4. Reading documents...")
        seattle = context.test_documents.find("seattle", ["wa", "cities"])
        print(f"   Point read: {seattle.city}")

        for doc in context.test_documents.where(partition_key="wa").order_by_descending("city"):
            print(f"   {doc.id}: {doc.city}")

        # 5. Change tracking
        print("5. Updating through change tracking...")
        seattle.city = "Seattle, WA"
        entry = context.entry(seattle)
        print(f"   State: {entry.state.value}, modified: {[p.name for p in entry.modified_properties()]}")
        context.save_changes()

        # Partition key values cannot change in place
        seattle.query_field = "towns"
        try:
            context.save_changes()
        except PartitionKeyModificationError as e:
            print(f"   Rejected: {e}")
            context.change_tracker.reject_changes()

        # 6. Optimistic concurrency on SimpleTestDocument
        print("6. Optimistic concurrency...")
        simple = SimpleTestDocument(id="simple-1", foo="v1", partition_key="demo")
        context.simple_test_documents.add(simple)
        context.save_changes()

        with DocumentContext(config) as other:
            stale = other.simple_test_documents.find("simple-1", ["demo", "simple"])
            simple.foo = "v2"
            context.save_changes()

            stale.foo = "v3"
            try:
                other.save_changes()
            except ConcurrencyConflictError as e:
                print(f"   Conflict detected: {e}")

        # 7. Clean up
        print("7. Deleting database...")
        context.ensure_deleted()


if __name__ == "__main__":
    main()
