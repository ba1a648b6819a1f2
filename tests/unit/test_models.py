"""
Tests for the document models and their Cosmos DB serialization.
"""

from datetime import datetime, timedelta, timezone

import pytest

from cosmosdb_wrapper.exceptions import ValidationError
from cosmosdb_wrapper.models import DataItem, MessageDocument, SimpleTestDocument, TestDocument, ValueType


def make_data_item(**overrides) -> DataItem:
    values = dict(
        system_id="PUT001",
        date=datetime(2024, 5, 1, tzinfo=timezone.utc),
        category_id=2,
        subcategory="TestSubCategory",
        name="TestName1",
        value_type=ValueType.DIFFERENCE,
        quantity=123.5,
        unit="TestUnit1",
        data='{"ReferringUnit":"system 1"}',
    )
    values.update(overrides)
    return DataItem(**values)


class TestTestDocument:
    """Test cases for TestDocument."""

    def test_to_cosmos_item_uses_wire_names(self):
        """Test serialization emits only wire names."""
        doc = TestDocument(id="document1", query_field="field1", partition_key="p1", city="Seattle")

        assert doc.to_cosmos_item() == {
            "id": "document1",
            "queryfield": "field1",
            "pk": "p1",
            "city": "Seattle",
        }

    def test_nullable_fields_serialize_as_null(self):
        """Test null city and query field are stored as JSON null."""
        doc = TestDocument(id="document1", partition_key="p1")

        item = doc.to_cosmos_item()

        assert item["city"] is None
        assert item["queryfield"] is None

    def test_from_cosmos_item_ignores_system_properties(self):
        """Test materialization by wire name drops _rid/_ts and friends."""
        item = {
            "id": "document2",
            "queryfield": "field2",
            "pk": "p2",
            "city": "Portland",
            "_rid": "abc",
            "_self": "dbs/x/colls/y/docs/abc",
            "_etag": '"0000"',
            "_attachments": "attachments/",
            "_ts": 1700000000,
        }

        doc = TestDocument.from_cosmos_item(item)

        assert doc.id == "document2"
        assert doc.query_field == "field2"
        assert doc.partition_key == "p2"
        assert doc.city == "Portland"
        assert not hasattr(doc, "_rid")

    def test_populate_by_field_name_or_alias(self):
        """Test both attribute names and wire names are accepted."""
        by_name = TestDocument(id="d", partition_key="p1", query_field="q")
        by_alias = TestDocument(**{"id": "d", "pk": "p1", "queryfield": "q"})

        assert by_name == by_alias

    def test_from_cosmos_item_invalid(self):
        """Test invalid items raise the domain ValidationError."""
        with pytest.raises(ValidationError) as exc_info:
            TestDocument.from_cosmos_item({"id": "d", "pk": ["not", "a", "string"]})

        assert "TestDocument" in str(exc_info.value)
        assert exc_info.value.original_error is not None

    def test_assignment_is_validated(self):
        """Test assignment goes through pydantic validation."""
        doc = TestDocument(id="d", partition_key="p1")

        with pytest.raises(Exception):
            doc.city = ["Seattle"]


class TestMessageDocument:
    """Test cases for MessageDocument and its owned data items."""

    def test_owned_items_serialize_inline(self):
        """Test data items are written inline with their wire names."""
        message = MessageDocument(
            id="m1",
            message_id="m1",
            partition_key="m1",
            data=[make_data_item(), make_data_item(name="TestName2", value_type=ValueType.TOTAL, quantity=200)]
        )

        item = message.to_cosmos_item()

        assert item["queryfield"] == "message"
        assert item["messageId"] == "m1"
        assert len(item["data"]) == 2
        first = item["data"][0]
        assert first == {
            "systemId": "PUT001",
            "date": "2024-05-01T00:00:00Z",
            "categoryId": 2,
            "subcategory": "TestSubCategory",
            "name": "TestName1",
            "valueType": "Difference",
            "quantity": 123.5,
            "unit": "TestUnit1",
            "data": '{"ReferringUnit":"system 1"}',
        }
        assert item["data"][1]["valueType"] == "Total"

    def test_round_trip_preserves_owned_items(self):
        """Test owned items survive a store round trip."""
        message = MessageDocument(id="m1", message_id="m1", partition_key="m1", data=[make_data_item()])

        restored = MessageDocument.from_cosmos_item(message.to_cosmos_item())

        assert restored == message
        assert restored.data[0].value_type is ValueType.DIFFERENCE

    def test_default_data_is_empty(self):
        """Test a message without data items has an empty list."""
        assert MessageDocument(id="m1").data == []


class TestDataItem:
    """Test cases for DataItem datetime handling."""

    def test_naive_datetime_becomes_utc(self):
        """Test naive datetimes are taken as UTC."""
        item = make_data_item(date=datetime(2024, 5, 1))

        assert item.date.tzinfo == timezone.utc
        assert item.date == datetime(2024, 5, 1, tzinfo=timezone.utc)

    def test_aware_datetime_is_converted_to_utc(self):
        """Test offsets are normalized to UTC."""
        plus_two = timezone(timedelta(hours=2))
        item = make_data_item(date=datetime(2024, 5, 1, 2, 0, tzinfo=plus_two))

        assert item.date == datetime(2024, 5, 1, 0, 0, tzinfo=timezone.utc)
        assert item.date.utcoffset() == timedelta(0)

    def test_iso_string_is_parsed(self):
        """Test stored ISO strings are parsed on materialization."""
        item = DataItem.model_validate({"date": "2024-05-01T00:00:00Z", "valueType": "Total"})

        assert item.date == datetime(2024, 5, 1, tzinfo=timezone.utc)
        assert item.value_type is ValueType.TOTAL

    def test_value_type_values(self):
        """Test ValueType serializes as its name in the store."""
        assert ValueType.DIFFERENCE.value == "Difference"
        assert ValueType.TOTAL.value == "Total"
        assert ValueType("Total") is ValueType.TOTAL


class TestSimpleTestDocument:
    """Test cases for SimpleTestDocument."""

    def test_etag_is_read_but_not_written(self):
        """Test _etag is materialized but excluded from writes."""
        doc = SimpleTestDocument.from_cosmos_item({"id": "s1", "foo": "bar", "pk": "pk1", "queryfield": "simple", "_etag": '"1"'})

        assert doc.etag == '"1"'
        assert "_etag" not in doc.to_cosmos_item()
        assert doc.to_cosmos_item() == {"id": "s1", "foo": "bar", "pk": "pk1", "queryfield": "simple"}

    def test_default_query_field(self):
        """Test the second partition key level defaults to 'simple'."""
        assert SimpleTestDocument(id="s1").query_field == "simple"
