"""DynamoDB tablo oluşturma ve sipariş verisi yükleme.

4 tablo: WarehouseItems, StockMovements, Orders, ActivityLogs
(isimlerin önüne DEPO_TABLE_PREFIX eklenir)
"""
import json
import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Optional

import boto3
from botocore.exceptions import ClientError

from depo_takip.config import BOTO_CONFIG, Settings
from depo_takip.models.order import Order
from depo_takip.utils import to_dynamo

logger = logging.getLogger(__name__)


def table_definitions(settings: Settings) -> list:
    return [
        {
            "TableName": settings.warehouse_items_table,
            "KeySchema": [
                {"AttributeName": "id", "KeyType": "HASH"},
            ],
            "AttributeDefinitions": [
                {"AttributeName": "id", "AttributeType": "S"},
                {"AttributeName": "order_id", "AttributeType": "S"},
            ],
            "GlobalSecondaryIndexes": [
                {
                    # Sipariş başına en fazla bir lot; reconciler bu indeksle arar
                    "IndexName": "OrderIndex",
                    "KeySchema": [
                        {"AttributeName": "order_id", "KeyType": "HASH"},
                    ],
                    "Projection": {"ProjectionType": "ALL"},
                },
            ],
            "BillingMode": "PAY_PER_REQUEST",
        },
        {
            "TableName": settings.stock_movements_table,
            "KeySchema": [
                {"AttributeName": "warehouse_item_id", "KeyType": "HASH"},
                {"AttributeName": "movement_sort", "KeyType": "RANGE"},
            ],
            "AttributeDefinitions": [
                {"AttributeName": "warehouse_item_id", "AttributeType": "S"},
                {"AttributeName": "movement_sort", "AttributeType": "S"},
            ],
            "BillingMode": "PAY_PER_REQUEST",
        },
        {
            "TableName": settings.orders_table,
            "KeySchema": [
                {"AttributeName": "id", "KeyType": "HASH"},
            ],
            "AttributeDefinitions": [
                {"AttributeName": "id", "AttributeType": "S"},
            ],
            "BillingMode": "PAY_PER_REQUEST",
        },
        {
            "TableName": settings.activity_logs_table,
            "KeySchema": [
                {"AttributeName": "log_id", "KeyType": "HASH"},
            ],
            "AttributeDefinitions": [
                {"AttributeName": "log_id", "AttributeType": "S"},
            ],
            "BillingMode": "PAY_PER_REQUEST",
        },
    ]


def _client(settings: Settings):
    return boto3.client("dynamodb", region_name=settings.aws_region, config=BOTO_CONFIG)


def create_tables(settings: Optional[Settings] = None, client=None) -> list:
    """Eksik tabloları oluşturur, oluşturulan tablo adlarını döndürür."""
    settings = settings or Settings.from_env()
    dynamodb = client or _client(settings)
    created = []

    for table_def in table_definitions(settings):
        table_name = table_def["TableName"]
        try:
            dynamodb.describe_table(TableName=table_name)
            print(f"  ⏭️  {table_name} zaten mevcut, atlanıyor")
        except ClientError as e:
            if e.response["Error"]["Code"] == "ResourceNotFoundException":
                print(f"  🔨 {table_name} oluşturuluyor...")
                dynamodb.create_table(**table_def)
                # Tablonun aktif olmasını bekle
                waiter = dynamodb.get_waiter("table_exists")
                waiter.wait(TableName=table_name)
                print(f"  ✓  {table_name} oluşturuldu")
                created.append(table_name)
            else:
                raise
    return created


def load_orders(path: str, settings: Optional[Settings] = None, threads: int = 4) -> int:
    """JSON dosyasındaki siparişleri Orders tablosuna yükler (paralel batch write)."""
    settings = settings or Settings.from_env()
    with open(path, "r", encoding="utf-8") as f:
        records = [to_dynamo(Order.from_record(r).to_record()) for r in json.load(f)]

    total = len(records)
    counter = {"done": 0}
    lock = threading.Lock()

    def upload_chunk(chunk):
        dynamodb = boto3.resource("dynamodb", region_name=settings.aws_region, config=BOTO_CONFIG)
        table = dynamodb.Table(settings.orders_table)
        with table.batch_writer() as batch:
            for record in chunk:
                batch.put_item(Item=record)
        with lock:
            counter["done"] += len(chunk)

    chunk_size = 500
    chunks = [records[i:i + chunk_size] for i in range(0, total, chunk_size)]

    with ThreadPoolExecutor(max_workers=threads) as executor:
        futures = [executor.submit(upload_chunk, chunk) for chunk in chunks]
        for future in as_completed(futures):
            future.result()  # hata varsa raise eder

    print(f"  ✓  {settings.orders_table}: {counter['done']} sipariş yüklendi")
    return counter["done"]


def delete_tables(settings: Optional[Settings] = None, client=None) -> None:
    """Tüm tabloları siler (dikkatli kullan)."""
    settings = settings or Settings.from_env()
    dynamodb = client or _client(settings)
    for table_def in table_definitions(settings):
        table_name = table_def["TableName"]
        try:
            dynamodb.delete_table(TableName=table_name)
            print(f"  🗑️  {table_name} silindi")
        except ClientError as e:
            logger.debug("Silme atlandı %s: %s", table_name, e)
            print(f"  ⏭️  {table_name} bulunamadı, atlanıyor")
