"""
Persistence error hierarchy.

These are the hard errors of the circulation engine: unexpected storage or
connectivity faults. Business outcomes (item unavailable, limit reached,
...) are reported through ``CirculationStatus`` instead.
"""


class StoreError(Exception):
    """Base exception for persistence operations."""


class NotFoundError(StoreError):
    """Raised when an entity is not found."""


class LoanConflictError(StoreError):
    """Raised when an item already has a loan that is lent and not returned."""

    def __init__(self, item_code: str):
        super().__init__(f"Item {item_code} is already on loan")
        self.item_code = item_code
