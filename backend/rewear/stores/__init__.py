"""
ReWear Backend — Stores
=========================

What:  One store per entity collection, each owning its table behind a
       find / insert / update / delete interface.

Store Inventory:
    - IdentityStore: users and point balances
    - CatalogStore:  listings with availability and approval flags
    - SwapLedger:    swap requests

Stores never commit. The caller owns the transaction boundary: the request
session dependency for ordinary operations, SwapService for settlement.
"""

from rewear.stores.identity import IdentityStore
from rewear.stores.catalog import CatalogStore
from rewear.stores.ledger import SwapLedger

__all__ = ["IdentityStore", "CatalogStore", "SwapLedger"]
