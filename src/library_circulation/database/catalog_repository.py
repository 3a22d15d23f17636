"""
Catalogue repository for the Library Circulation server.

Reads items together with the biblio fields circulation needs (title,
classification, material designation) and the explicit holiday dates used
to build the library calendar.
"""

import logging
from datetime import date

from sqlalchemy import select
from sqlalchemy.orm import joinedload

from ..config import CirculationConfig
from ..models.loan import Item
from ..rules.calendar import HolidayCalendar
from .repository import BaseRepository
from .schema import Holiday as HolidayDB
from .schema import ItemRecord as ItemDB

logger = logging.getLogger(__name__)


def _to_item(row: ItemDB) -> Item:
    biblio = row.biblio
    status = row.item_status
    return Item(
        item_code=row.item_code,
        biblio_id=row.biblio_id,
        title=biblio.title,
        classification=biblio.classification,
        coll_type_id=row.coll_type_id,
        gmd_id=biblio.gmd_id,
        no_loan=bool(status is not None and status.no_loan),
    )


class CatalogRepository(BaseRepository):
    """Read-only access to items and holidays."""

    def get_item(self, item_code: str) -> Item | None:
        """
        Get an item by its code.

        Returns:
            The item with its biblio fields, or None if the code is unknown
        """
        row = self._query(
            lambda s: s.execute(
                select(ItemDB)
                .options(joinedload(ItemDB.biblio), joinedload(ItemDB.item_status))
                .where(ItemDB.item_code == item_code)
            ).scalar_one_or_none(),
            f"Failed to get item {item_code}",
        )
        if row is None:
            return None
        return _to_item(row)

    def list_holiday_dates(self) -> frozenset[date]:
        dates = self._query(
            lambda s: s.execute(select(HolidayDB.holiday_date)).scalars().all(),
            "Failed to list holidays",
        )
        return frozenset(dates)

    def load_calendar(self, config: CirculationConfig) -> HolidayCalendar:
        """Build the calendar from the configured weekdays and the holiday table."""
        holiday_dates = self.list_holiday_dates()
        logger.debug(
            "Loaded calendar: weekdays=%s, %d explicit holidays",
            sorted(config.holiday_weekday_numbers),
            len(holiday_dates),
        )
        return HolidayCalendar(
            holiday_weekdays=config.holiday_weekday_numbers,
            holiday_dates=holiday_dates,
        )
