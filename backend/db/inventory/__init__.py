"""
Stockpile inventory organized into stocktaking snapshots.

Models:
- Item (catalog entry, optional default unit)
- Stocktaking (named, dated count; exactly one is active)
- StockRecord (quantity of an item at a location, owned by one stocktaking)
"""

from .item import Item
from .stocktaking import Stocktaking
from .record import StockRecord

__all__ = ["Item", "Stocktaking", "StockRecord"]
