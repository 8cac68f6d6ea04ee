"""DynamoDB deposu unit testleri (AWS çağrıları mock'lanır)."""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from depo_takip.config import Settings
from depo_takip.errors import ConcurrentUpdateError, DuplicateItemError, NotFoundError, StorageError
from depo_takip.models.order import Order, OrderStatus
from depo_takip.models.warehouse import (
    ItemStatus,
    MovementKind,
    MovementMetadata,
    MovementType,
    StockMovement,
    WarehouseItem,
)
from depo_takip.storage.dynamodb import DynamoDBStore


def _client_error(code: str, operation: str = "UpdateItem", reasons=None) -> ClientError:
    response = {"Error": {"Code": code, "Message": code}}
    if reasons is not None:
        response["CancellationReasons"] = [{"Code": r} for r in reasons]
    return ClientError(response, operation)


def _create_store():
    """Tablo başına ayrı mock döndüren depo oluşturur."""
    tables = {}
    resource = MagicMock()
    resource.Table.side_effect = lambda name: tables.setdefault(name, MagicMock(name=name))
    client = MagicMock()
    store = DynamoDBStore(
        settings=Settings(table_prefix="test_"),
        dynamodb_resource=resource,
        dynamodb_client=client,
    )
    return store, tables, client


def _record(**overrides) -> dict:
    record = {
        "id": "DK250821A01",
        "barcode": "DK250821A01",
        "material": "BOPP",
        "cm": Decimal("70"),
        "mikron": Decimal("20"),
        "current_weight": Decimal("12.5"),
        "original_weight": Decimal("500"),
        "bobin_count": Decimal("3"),
        "status": "Stokta",
        "stock_type": "general",
        "received_date": "2025-08-21T00:00:00+00:00",
        "last_movement_date": "2025-08-21T00:00:00+00:00",
        "version": Decimal("2"),
    }
    record.update(overrides)
    return record


class TestReads:
    def test_table_names_use_prefix(self):
        store, tables, _ = _create_store()
        assert set(tables) == {"test_WarehouseItems", "test_StockMovements", "test_Orders"}

    def test_get_missing_item_returns_none(self):
        store, tables, _ = _create_store()
        tables["test_WarehouseItems"].get_item.return_value = {}
        assert store.get_warehouse_item("yok") is None

    def test_get_item_converts_decimals(self):
        store, tables, _ = _create_store()
        tables["test_WarehouseItems"].get_item.return_value = {"Item": _record()}
        item = store.get_warehouse_item("DK250821A01")
        assert item.current_weight == 12.5
        assert item.bobin_count == 3
        assert item.version == 2
        assert item.status == ItemStatus.STOKTA

    def test_scan_paginates(self):
        store, tables, _ = _create_store()
        tables["test_WarehouseItems"].scan.side_effect = [
            {"Items": [_record(id="A")], "LastEvaluatedKey": {"id": "A"}},
            {"Items": [_record(id="B")]},
        ]
        items = store.list_warehouse_items()
        assert {i.id for i in items} == {"A", "B"}
        second_call = tables["test_WarehouseItems"].scan.call_args_list[1]
        assert second_call.kwargs["ExclusiveStartKey"] == {"id": "A"}

    def test_movements_queried_newest_first(self):
        store, tables, _ = _create_store()
        tables["test_StockMovements"].query.return_value = {"Items": []}
        store.list_movements("DK250821A01")
        kwargs = tables["test_StockMovements"].query.call_args.kwargs
        assert kwargs["ScanIndexForward"] is False

    def test_find_items_by_order_uses_index(self):
        store, tables, _ = _create_store()
        tables["test_WarehouseItems"].query.return_value = {"Items": [_record(order_id="o1")]}
        items = store.find_items_by_order("o1")
        assert items[0].order_id == "o1"
        assert tables["test_WarehouseItems"].query.call_args.kwargs["IndexName"] == "OrderIndex"

    def test_item_read_is_consistent(self):
        store, tables, _ = _create_store()
        tables["test_WarehouseItems"].get_item.return_value = {"Item": _record()}
        store.get_warehouse_item("DK250821A01")
        assert tables["test_WarehouseItems"].get_item.call_args.kwargs["ConsistentRead"] is True

    def test_read_after_commit_is_consistent(self):
        store, tables, _ = _create_store()
        tables["test_WarehouseItems"].get_item.return_value = {"Item": _record(version=Decimal("3"))}
        updated = store.commit_item_change("DK250821A01", {"current_weight": 2.0}, expected_version=2)
        assert updated.version == 3
        assert tables["test_WarehouseItems"].get_item.call_args.kwargs["ConsistentRead"] is True

    def test_movement_query_paginates(self):
        store, tables, _ = _create_store()
        tables["test_StockMovements"].query.side_effect = [
            {
                "Items": [{"id": "m2", "warehouse_item_id": "A", "type": "Çıkan", "quantity": Decimal("-5"),
                           "movement_date": "2025-08-22T00:00:00+00:00"}],
                "LastEvaluatedKey": {"warehouse_item_id": "A", "movement_sort": "x"},
            },
            {
                "Items": [{"id": "m1", "warehouse_item_id": "A", "type": "Gelen", "quantity": Decimal("500"),
                           "movement_date": "2025-08-21T00:00:00+00:00"}],
            },
        ]
        movements = store.list_movements("A")
        assert [m.id for m in movements] == ["m2", "m1"]
        second_call = tables["test_StockMovements"].query.call_args_list[1]
        assert second_call.kwargs["ExclusiveStartKey"] == {"warehouse_item_id": "A", "movement_sort": "x"}
        assert second_call.kwargs["ScanIndexForward"] is False

    def test_order_index_query_paginates(self):
        store, tables, _ = _create_store()
        tables["test_WarehouseItems"].query.side_effect = [
            {"Items": [_record(id="A", order_id="o1")], "LastEvaluatedKey": {"id": "A"}},
            {"Items": [_record(id="B", order_id="o1")]},
        ]
        assert [i.id for i in store.find_items_by_order("o1")] == ["A", "B"]


class TestErrorMapping:
    """Arka uç hataları StorageError, koşul hataları ConcurrentUpdateError olur."""

    def test_backend_error_becomes_storage_error(self):
        store, tables, _ = _create_store()
        tables["test_WarehouseItems"].get_item.side_effect = _client_error(
            "ProvisionedThroughputExceededException", "GetItem"
        )
        with pytest.raises(StorageError) as exc:
            store.get_warehouse_item("DK250821A01")
        assert exc.value.operation == "get_warehouse_item"
        assert isinstance(exc.value.__cause__, ClientError)

    def test_stale_version_on_commit(self):
        store, _, client = _create_store()
        client.transact_write_items.side_effect = _client_error(
            "TransactionCanceledException", "TransactWriteItems", ["ConditionalCheckFailed", "None"]
        )
        with pytest.raises(ConcurrentUpdateError):
            store.commit_item_change("DK250821A01", {"current_weight": 10.0}, expected_version=1)

    def test_transaction_failure_without_condition_is_storage_error(self):
        store, _, client = _create_store()
        client.transact_write_items.side_effect = _client_error(
            "TransactionCanceledException", "TransactWriteItems", ["None", "ThrottlingError"]
        )
        with pytest.raises(StorageError):
            store.commit_item_change("DK250821A01", {"current_weight": 10.0}, expected_version=1)

    def test_update_missing_item(self):
        store, tables, _ = _create_store()
        tables["test_WarehouseItems"].update_item.side_effect = _client_error(
            "ConditionalCheckFailedException"
        )
        with pytest.raises(NotFoundError):
            store.update_warehouse_item("yok", {"location": "Raf 1"})

    def test_update_stale_version(self):
        store, tables, _ = _create_store()
        tables["test_WarehouseItems"].update_item.side_effect = _client_error(
            "ConditionalCheckFailedException"
        )
        with pytest.raises(ConcurrentUpdateError):
            store.update_warehouse_item("DK250821A01", {"location": "Raf 1"}, expected_version=3)

    def test_duplicate_insert(self):
        store, tables, _ = _create_store()
        tables["test_WarehouseItems"].put_item.side_effect = _client_error(
            "ConditionalCheckFailedException", "PutItem"
        )
        item = WarehouseItem.from_record(_record())
        with pytest.raises(ConcurrentUpdateError):
            store.insert_warehouse_item(item)


class TestAtomicWrites:
    def test_commit_writes_update_and_movement_together(self):
        store, tables, client = _create_store()
        tables["test_WarehouseItems"].get_item.return_value = {"Item": _record(version=Decimal("2"))}
        movement = StockMovement(
            id="m1",
            warehouse_item_id="DK250821A01",
            type=MovementType.CIKAN,
            quantity=-10.5,
            metadata=MovementMetadata(kind=MovementKind.EXIT, exit_location="kesim"),
            movement_date="2025-08-21T10:00:00+00:00",
        )

        updated = store.commit_item_change(
            "DK250821A01",
            {"current_weight": 2.0, "status": ItemStatus.STOKTA, "customer_name": None},
            expected_version=1,
            movement=movement,
        )

        assert updated.version == 2
        transact = client.transact_write_items.call_args.kwargs["TransactItems"]
        assert len(transact) == 2
        update = transact[0]["Update"]
        assert update["TableName"] == "test_WarehouseItems"
        assert update["ConditionExpression"] == "attribute_exists(#id) AND #cv = :expected"
        assert update["ExpressionAttributeValues"][":expected"] == {"N": "1"}
        assert "REMOVE" in update["UpdateExpression"]
        assert {"S": "Stokta"} in update["ExpressionAttributeValues"].values()
        put = transact[1]["Put"]
        assert put["TableName"] == "test_StockMovements"
        assert put["Item"]["movement_sort"] == {"S": "2025-08-21T10:00:00+00:00#m1"}
        assert put["Item"]["type"] == {"S": "Çıkan"}

    def test_receive_claims_order_and_puts_item(self):
        store, _, client = _create_store()
        item = WarehouseItem.from_record(_record(order_id="o1"))
        store.insert_item_for_order("o1", {"is_in_warehouse": True}, item)
        transact = client.transact_write_items.call_args.kwargs["TransactItems"]
        update = transact[0]["Update"]
        assert update["TableName"] == "test_Orders"
        assert "attribute_not_exists(#link)" in update["ConditionExpression"]
        assert transact[1]["Put"]["TableName"] == "test_WarehouseItems"

    def test_receive_conflict(self):
        store, _, client = _create_store()
        client.transact_write_items.side_effect = _client_error(
            "TransactionCanceledException", "TransactWriteItems", ["ConditionalCheckFailed", "None"]
        )
        item = WarehouseItem.from_record(_record(order_id="o1"))
        with pytest.raises(ConcurrentUpdateError):
            store.insert_item_for_order("o1", {"is_in_warehouse": True}, item)

    def test_receive_writes_receipt_in_same_transaction(self):
        store, tables, client = _create_store()
        item = WarehouseItem.from_record(_record(order_id="o1"))
        movement = StockMovement(
            id="m1",
            warehouse_item_id=item.id,
            type=MovementType.GELEN,
            quantity=500,
            movement_date="2025-08-21T10:00:00+00:00",
        )
        store.insert_item_for_order("o1", {"is_in_warehouse": True}, item, movement)
        transact = client.transact_write_items.call_args.kwargs["TransactItems"]
        assert [list(t)[0] for t in transact] == ["Update", "Put", "Put"]
        assert transact[2]["Put"]["TableName"] == "test_StockMovements"
        assert transact[2]["Put"]["Item"]["type"] == {"S": "Gelen"}
        tables["test_StockMovements"].put_item.assert_not_called()

    def test_taken_item_id_on_receive(self):
        store, _, client = _create_store()
        client.transact_write_items.side_effect = _client_error(
            "TransactionCanceledException", "TransactWriteItems", ["None", "ConditionalCheckFailed", "None"]
        )
        item = WarehouseItem.from_record(_record(order_id="o1"))
        with pytest.raises(DuplicateItemError):
            store.insert_item_for_order("o1", {"is_in_warehouse": True}, item)

    def test_claimed_order_wins_over_taken_id(self):
        store, _, client = _create_store()
        client.transact_write_items.side_effect = _client_error(
            "TransactionCanceledException", "TransactWriteItems",
            ["ConditionalCheckFailed", "ConditionalCheckFailed", "None"],
        )
        item = WarehouseItem.from_record(_record(order_id="o1"))
        with pytest.raises(ConcurrentUpdateError) as exc:
            store.insert_item_for_order("o1", {"is_in_warehouse": True}, item)
        assert not isinstance(exc.value, DuplicateItemError)

    def test_insert_item_with_receipt_is_transactional(self):
        store, tables, client = _create_store()
        item = WarehouseItem.from_record(_record())
        movement = StockMovement(id="m1", warehouse_item_id=item.id, type=MovementType.GELEN, quantity=500)
        store.insert_warehouse_item(item, movement)
        transact = client.transact_write_items.call_args.kwargs["TransactItems"]
        assert transact[0]["Put"]["TableName"] == "test_WarehouseItems"
        assert transact[0]["Put"]["ConditionExpression"] == "attribute_not_exists(id)"
        assert transact[1]["Put"]["TableName"] == "test_StockMovements"
        tables["test_WarehouseItems"].put_item.assert_not_called()


class TestOrders:
    def test_get_order(self):
        store, tables, _ = _create_store()
        tables["test_Orders"].get_item.return_value = {
            "Item": {"id": "o1", "supplier": "Polinas", "status": "Delivered", "price_per_unit": Decimal("2.5")}
        }
        order = store.get_order("o1")
        assert tables["test_Orders"].get_item.call_args.kwargs["ConsistentRead"] is True
        assert isinstance(order, Order)
        assert order.status == OrderStatus.DELIVERED
        assert order.price_per_unit == 2.5
