"""
Holiday calendar data access.
"""

from datetime import date
from typing import List

from sqlalchemy import select
from sqlalchemy.orm import Session

from hrportal.models.holiday import Holiday
from hrportal.repositories.base import BaseRepository


class HolidayRepository(BaseRepository[Holiday]):
    def __init__(self, db: Session):
        super().__init__(Holiday, db)

    def dates_in_year(self, year: int) -> List[date]:
        stmt = (
            select(Holiday.holiday_date)
            .where(Holiday.holiday_date >= date(year, 1, 1))
            .where(Holiday.holiday_date <= date(year, 12, 31))
            .order_by(Holiday.holiday_date)
        )
        return list(self.db.execute(stmt).scalars().all())
