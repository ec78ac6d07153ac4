"""
ReWear Backend — ORM Models
=============================

Importing this package registers every table on `Base.metadata`
(used by `init_models()` and Alembic autogenerate).
"""

from rewear.models.user import User
from rewear.models.item import Item
from rewear.models.swap import SwapRequest, SwapStatus

__all__ = ["User", "Item", "SwapRequest", "SwapStatus"]
