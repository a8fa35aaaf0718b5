"""
Stock ledger.

Models:
- StockEntry (one IN / OUT / ADJUSTMENT movement, append-only)
- StockEntryItem (per-product line of an entry, with the change it applied)
"""

from .entry import StockEntry, StockEntryItem  # noqa: F401
