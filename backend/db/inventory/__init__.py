"""
Inventory ledger tables.

Models:
- InventoryState (current quantity per product, mutated only by the ledger engine)
- StockMovement (append-only audit trail, one row per committed adjustment)
"""
