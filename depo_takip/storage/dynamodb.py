"""DynamoDB tabanlı depo.

Eşzamanlı güncellemeler her lottaki `version` alanı üzerinden iyimser
kilitleme ile korunur: lot güncellemesi ve hareket kaydı tek bir
transact_write_items çağrısında, sürüm koşuluyla birlikte yazılır.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable, Optional

import boto3
from boto3.dynamodb.conditions import Key
from boto3.dynamodb.types import TypeSerializer
from botocore.exceptions import ClientError

from depo_takip.config import BOTO_CONFIG, Settings
from depo_takip.errors import ConcurrentUpdateError, DuplicateItemError, NotFoundError, StorageError
from depo_takip.models.order import Order
from depo_takip.models.warehouse import StockMovement, WarehouseFilters, WarehouseItem
from depo_takip.storage.base import WarehouseStore
from depo_takip.utils import from_dynamo, iso_now, to_dynamo

logger = logging.getLogger(__name__)

_serializer = TypeSerializer()


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, list):
        return [_plain(v) for v in value]
    return value


def _update_parts(
    patch: dict[str, Any],
    extra: Optional[dict[str, Any]] = None,
    raw_sets: tuple[str, ...] = (),
) -> tuple[str, dict[str, str], dict[str, Any]]:
    """patch sözlüğünden SET/REMOVE ifadesi, isim ve değer eşlemeleri üretir."""
    names: dict[str, str] = {}
    values: dict[str, Any] = {}
    sets: list[str] = list(raw_sets)
    removes: list[str] = []
    for i, (field_name, value) in enumerate({**patch, **(extra or {})}.items()):
        names[f"#f{i}"] = field_name
        if value is None:
            removes.append(f"#f{i}")
        else:
            values[f":v{i}"] = to_dynamo(_plain(value))
            sets.append(f"#f{i} = :v{i}")
    expression = ""
    if sets:
        expression += "SET " + ", ".join(sets)
    if removes:
        expression += (" " if expression else "") + "REMOVE " + ", ".join(removes)
    return expression, names, values


def _is_conditional_failure(error: ClientError) -> bool:
    code = error.response.get("Error", {}).get("Code", "")
    if code == "ConditionalCheckFailedException":
        return True
    if code == "TransactionCanceledException":
        reasons = error.response.get("CancellationReasons", [])
        return any(r.get("Code") == "ConditionalCheckFailed" for r in reasons)
    return False


def _cancellation_codes(error: ClientError) -> list[str]:
    return [r.get("Code", "None") for r in error.response.get("CancellationReasons", [])]


def _movement_record(movement: StockMovement) -> dict[str, Any]:
    record = movement.to_record()
    record["movement_sort"] = f"{movement.movement_date}#{movement.id}"
    return to_dynamo(record)


def _serialized(record: dict[str, Any]) -> dict[str, Any]:
    return {k: _serializer.serialize(v) for k, v in record.items()}


class DynamoDBStore(WarehouseStore):
    """WarehouseItems, StockMovements ve Orders tablolarını kullanan depo."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        dynamodb_resource: Optional[Any] = None,
        dynamodb_client: Optional[Any] = None,
    ):
        self.settings = settings or Settings.from_env()
        region = self.settings.aws_region

        # AWS istemcileri - dependency injection destekli
        self.dynamodb = dynamodb_resource or boto3.resource(
            "dynamodb", region_name=region, config=BOTO_CONFIG
        )
        self.client = dynamodb_client or boto3.client(
            "dynamodb", region_name=region, config=BOTO_CONFIG
        )

        self.items_table = self.dynamodb.Table(self.settings.warehouse_items_table)
        self.movements_table = self.dynamodb.Table(self.settings.stock_movements_table)
        self.orders_table = self.dynamodb.Table(self.settings.orders_table)

    def _call(self, operation: str, fn: Callable[..., Any], **kwargs: Any) -> Any:
        try:
            return fn(**kwargs)
        except ClientError as e:
            if _is_conditional_failure(e):
                raise
            logger.error("DynamoDB hatası [%s]: %s", operation, e)
            raise StorageError(f"Veri deposu hatası ({operation}): {e}", operation) from e

    def _paginate(self, operation: str, fn: Callable[..., Any], **kwargs: Any) -> list[dict]:
        """scan/query sonuçlarını LastEvaluatedKey bitene kadar toplar."""
        items: list[dict] = []
        while True:
            resp = self._call(operation, fn, **kwargs)
            items.extend(resp.get("Items", []))
            last_key = resp.get("LastEvaluatedKey")
            if not last_key:
                return items
            kwargs["ExclusiveStartKey"] = last_key

    def _movement_put(self, movement: StockMovement) -> dict[str, Any]:
        return {
            "Put": {
                "TableName": self.settings.stock_movements_table,
                "Item": _serialized(_movement_record(movement)),
            }
        }

    def _item_put(self, item: WarehouseItem) -> dict[str, Any]:
        return {
            "Put": {
                "TableName": self.settings.warehouse_items_table,
                "Item": _serialized(to_dynamo(item.to_record())),
                "ConditionExpression": "attribute_not_exists(id)",
            }
        }

    # --- Depo lotları ---

    def list_warehouse_items(self, filters: Optional[WarehouseFilters] = None) -> list[WarehouseItem]:
        records = self._paginate("list_warehouse_items", self.items_table.scan)
        items = [WarehouseItem.from_record(from_dynamo(r)) for r in records]
        if filters:
            items = [i for i in items if filters.matches(i)]
        return sorted(items, key=lambda i: i.received_date, reverse=True)

    def get_warehouse_item(self, item_id: str) -> Optional[WarehouseItem]:
        # Oku-değiştir-yaz döngüsü ve yazma sonrası okuma güncel sürümü görmeli
        resp = self._call(
            "get_warehouse_item",
            self.items_table.get_item,
            Key={"id": item_id},
            ConsistentRead=True,
        )
        if "Item" not in resp:
            return None
        return WarehouseItem.from_record(from_dynamo(resp["Item"]))

    def find_items_by_order(self, order_id: str) -> list[WarehouseItem]:
        records = self._paginate(
            "find_items_by_order",
            self.items_table.query,
            IndexName="OrderIndex",
            KeyConditionExpression=Key("order_id").eq(order_id),
        )
        return [WarehouseItem.from_record(from_dynamo(r)) for r in records]

    def insert_warehouse_item(
        self,
        item: WarehouseItem,
        movement: Optional[StockMovement] = None,
    ) -> WarehouseItem:
        try:
            if movement is None:
                self._call(
                    "insert_warehouse_item",
                    self.items_table.put_item,
                    Item=to_dynamo(item.to_record()),
                    ConditionExpression="attribute_not_exists(id)",
                )
            else:
                self._call(
                    "insert_warehouse_item",
                    self.client.transact_write_items,
                    TransactItems=[self._item_put(item), self._movement_put(movement)],
                )
        except ClientError as e:
            raise DuplicateItemError(f"Lot zaten mevcut: {item.id}") from e
        return item

    def update_warehouse_item(
        self,
        item_id: str,
        patch: dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> WarehouseItem:
        expression, names, values = _update_parts(
            patch,
            {"last_movement_date": iso_now()},
            raw_sets=("#version = #version + :one",),
        )
        names["#id"] = "id"
        names["#version"] = "version"
        values[":one"] = 1
        condition = "attribute_exists(#id)"
        if expected_version is not None:
            condition += " AND #version = :expected"
            values[":expected"] = expected_version
        try:
            resp = self._call(
                "update_warehouse_item",
                self.items_table.update_item,
                Key={"id": item_id},
                UpdateExpression=expression,
                ConditionExpression=condition,
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
                ReturnValues="ALL_NEW",
            )
        except ClientError as e:
            if expected_version is None:
                raise NotFoundError(f"Lot bulunamadı: {item_id}") from e
            raise ConcurrentUpdateError(f"Lot {item_id} başka bir işlemle değişti") from e
        return WarehouseItem.from_record(from_dynamo(resp["Attributes"]))

    def delete_warehouse_item(self, item_id: str) -> bool:
        resp = self._call(
            "delete_warehouse_item",
            self.items_table.delete_item,
            Key={"id": item_id},
            ReturnValues="ALL_OLD",
        )
        return "Attributes" in resp

    # --- Stok hareketleri ---

    def list_movements(self, item_id: Optional[str] = None) -> list[StockMovement]:
        if item_id is None:
            records = self._paginate("list_movements", self.movements_table.scan)
        else:
            records = self._paginate(
                "list_movements",
                self.movements_table.query,
                KeyConditionExpression=Key("warehouse_item_id").eq(item_id),
                ScanIndexForward=False,
            )
        movements = [StockMovement.from_record(from_dynamo(r)) for r in records]
        return sorted(movements, key=lambda m: m.movement_date, reverse=True)

    def commit_item_change(
        self,
        item_id: str,
        patch: dict[str, Any],
        expected_version: int,
        movement: Optional[StockMovement] = None,
    ) -> WarehouseItem:
        expression, names, values = _update_parts(
            patch, {"last_movement_date": iso_now(), "version": expected_version + 1}
        )
        names["#id"] = "id"
        names["#cv"] = "version"
        values[":expected"] = expected_version

        transact: list[dict[str, Any]] = [
            {
                "Update": {
                    "TableName": self.settings.warehouse_items_table,
                    "Key": {"id": _serializer.serialize(item_id)},
                    "UpdateExpression": expression,
                    "ConditionExpression": "attribute_exists(#id) AND #cv = :expected",
                    "ExpressionAttributeNames": names,
                    "ExpressionAttributeValues": _serialized(values),
                }
            }
        ]
        if movement is not None:
            transact.append(self._movement_put(movement))

        try:
            self._call("commit_item_change", self.client.transact_write_items, TransactItems=transact)
        except ClientError as e:
            raise ConcurrentUpdateError(
                f"Lot {item_id} başka bir işlemle değişti (beklenen sürüm {expected_version})"
            ) from e

        updated = self.get_warehouse_item(item_id)
        if updated is None:
            raise NotFoundError(f"Lot bulunamadı: {item_id}")
        return updated

    # --- Siparişler ---

    def list_orders(self) -> list[Order]:
        records = self._paginate("list_orders", self.orders_table.scan)
        orders = [Order.from_record(from_dynamo(r)) for r in records]
        return sorted(orders, key=lambda o: o.created_at, reverse=True)

    def get_order(self, order_id: str) -> Optional[Order]:
        resp = self._call(
            "get_order", self.orders_table.get_item, Key={"id": order_id}, ConsistentRead=True
        )
        if "Item" not in resp:
            return None
        return Order.from_record(from_dynamo(resp["Item"]))

    def insert_order(self, order: Order) -> Order:
        try:
            self._call(
                "insert_order",
                self.orders_table.put_item,
                Item=to_dynamo(order.to_record()),
                ConditionExpression="attribute_not_exists(id)",
            )
        except ClientError as e:
            raise ConcurrentUpdateError(f"Sipariş zaten mevcut: {order.id}") from e
        return order

    def update_order(self, order_id: str, patch: dict[str, Any]) -> Order:
        expression, names, values = _update_parts(patch)
        names["#id"] = "id"
        kwargs: dict[str, Any] = {
            "Key": {"id": order_id},
            "UpdateExpression": expression,
            "ConditionExpression": "attribute_exists(#id)",
            "ExpressionAttributeNames": names,
            "ReturnValues": "ALL_NEW",
        }
        if values:
            kwargs["ExpressionAttributeValues"] = values
        try:
            resp = self._call("update_order", self.orders_table.update_item, **kwargs)
        except ClientError as e:
            raise NotFoundError(f"Sipariş bulunamadı: {order_id}") from e
        return Order.from_record(from_dynamo(resp["Attributes"]))

    def delete_order(self, order_id: str) -> bool:
        resp = self._call(
            "delete_order",
            self.orders_table.delete_item,
            Key={"id": order_id},
            ReturnValues="ALL_OLD",
        )
        return "Attributes" in resp

    def insert_item_for_order(
        self,
        order_id: str,
        order_patch: dict[str, Any],
        item: WarehouseItem,
        movement: Optional[StockMovement] = None,
    ) -> WarehouseItem:
        expression, names, values = _update_parts(order_patch, {"warehouse_item_id": item.id})
        names["#id"] = "id"
        names["#link"] = "warehouse_item_id"
        transact = [
            {
                "Update": {
                    "TableName": self.settings.orders_table,
                    "Key": {"id": _serializer.serialize(order_id)},
                    "UpdateExpression": expression,
                    "ConditionExpression": "attribute_exists(#id) AND attribute_not_exists(#link)",
                    "ExpressionAttributeNames": names,
                    "ExpressionAttributeValues": _serialized(values),
                }
            },
            self._item_put(item),
        ]
        if movement is not None:
            transact.append(self._movement_put(movement))
        try:
            self._call("insert_item_for_order", self.client.transact_write_items, TransactItems=transact)
        except ClientError as e:
            # İptal nedenleri TransactItems sırasıyla gelir: [sipariş, lot, hareket]
            codes = _cancellation_codes(e)
            if codes[:1] != ["ConditionalCheckFailed"] and codes[1:2] == ["ConditionalCheckFailed"]:
                raise DuplicateItemError(f"Lot zaten mevcut: {item.id}") from e
            raise ConcurrentUpdateError(f"Sipariş zaten bir lota bağlı: {order_id}") from e
        return item
