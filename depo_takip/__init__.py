"""Depo takip çekirdeği: barkod çözümleme, stok defteri, stok önerisi, sipariş-depo eşleştirme."""

__version__ = "0.1.0"
