"""
Reservation priority.

Reservations form a first-come queue per item. A member may take or renew
an item when nobody has reserved it or when the member holds the earliest
reservation.
"""

from typing import Protocol

from ..models.loan import Reservation


class ReservationSource(Protocol):
    def list_reservations(self, item_code: str) -> list[Reservation]:
        """Reservations on an item, earliest first."""
        ...


class ReservationPriorityGuard:
    def __init__(self, reservations: ReservationSource):
        self.reservations = reservations

    def _queue(self, item_code: str) -> list[Reservation]:
        return sorted(
            self.reservations.list_reservations(item_code),
            key=lambda r: (r.reserved_at, r.reserve_id),
        )

    def first_claimant(self, item_code: str) -> str | None:
        """Member holding the earliest reservation on an item, if any."""
        queue = self._queue(item_code)
        return queue[0].member_id if queue else None

    def may_take(self, item_code: str, member_id: str) -> bool:
        claimant = self.first_claimant(item_code)
        return claimant is None or claimant == member_id

    def reserved_by_other(self, item_code: str, member_id: str) -> str | None:
        """Return the first member other than ``member_id`` who reserved the item."""
        for reservation in self._queue(item_code):
            if reservation.member_id != member_id:
                return reservation.member_id
        return None
