"""AWS altyapısını kurar ve (isteğe bağlı) sipariş verisini yükler.

Kullanım:
    python -m data_layer.scripts.setup_aws                          # Tabloları kur
    python -m data_layer.scripts.setup_aws --orders orders.json     # Kur ve siparişleri yükle
    python -m data_layer.scripts.setup_aws --delete                 # Her şeyi sil
    python -m data_layer.scripts.setup_aws --region eu-west-1       # Farklı region
"""
import logging
import sys
from dataclasses import replace

from data_layer.infrastructure.dynamodb_setup import create_tables, delete_tables, load_orders
from depo_takip.config import Settings


def main(argv=None):
    settings = Settings.from_env()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )
    delete_mode = False
    orders_path = None

    # Argümanları parse et
    args = sys.argv[1:] if argv is None else argv
    for i, arg in enumerate(args):
        if arg == "--delete":
            delete_mode = True
        elif arg == "--region" and i + 1 < len(args):
            settings = replace(settings, aws_region=args[i + 1])
        elif arg == "--orders" and i + 1 < len(args):
            orders_path = args[i + 1]

    if delete_mode:
        print("🗑️  DynamoDB tabloları siliniyor...\n")
        delete_tables(settings)
        print("\n✅ Tüm tablolar silindi!")
        return

    print("=" * 60)
    print("🚀 AWS Altyapı Kurulumu - Depo Takip")
    print(f"   Region: {settings.aws_region}")
    print("=" * 60)

    print("\n📊 ADIM 1: DynamoDB Tabloları")
    print("-" * 40)
    created = create_tables(settings)

    if orders_path:
        print("\n📤 ADIM 2: Sipariş Verisi")
        print("-" * 40)
        load_orders(orders_path, settings)

    print("\n" + "=" * 60)
    print("✅ AWS altyapısı hazır!")
    print(f"   DynamoDB: {len(created)} yeni tablo oluşturuldu")
    print(f"   Region: {settings.aws_region}")
    print("=" * 60)


if __name__ == "__main__":
    main()
