"""
Holiday calendar used for business day counting.

Holidays are loaded per calendar year and memoised in the injected
``CacheService``.
"""

from datetime import date
from typing import Callable, FrozenSet, Iterable

from hrportal.core.logging import get_logger
from hrportal.repositories.holiday import HolidayRepository
from hrportal.services.base.cache_service import CacheService
from hrportal.services.base.transaction_manager import TransactionManager

HolidayLoader = Callable[[int], Iterable[date]]


def sql_holiday_loader(transaction_manager: TransactionManager) -> HolidayLoader:
    """Loader reading one year of holidays in a short read-only unit of work."""

    def load(year: int) -> Iterable[date]:
        with transaction_manager.start() as ctx:
            return HolidayRepository(ctx.session).dates_in_year(year)

    return load


class HolidayCalendar:
    """Answers ``is_business_day`` from weekdays plus the cached holiday list."""

    CACHE_PREFIX = "holidays"

    def __init__(self, cache: CacheService, loader: HolidayLoader, ttl_seconds: int = 3600):
        self.cache = cache
        self.loader = loader
        self.ttl_seconds = ttl_seconds
        self._logger = get_logger(self.__class__.__name__)

    def holidays_in_year(self, year: int) -> FrozenSet[date]:
        key = f"{self.CACHE_PREFIX}:{year}"
        cached = self.cache.get(key)
        if cached is None:
            cached = sorted(d.isoformat() for d in self.loader(year))
            self.cache.set(key, cached, self.ttl_seconds)
            self._logger.debug(f"Loaded {len(cached)} holidays for {year}")
        return frozenset(date.fromisoformat(d) for d in cached)

    def is_holiday(self, day: date) -> bool:
        return day in self.holidays_in_year(day.year)

    def is_business_day(self, day: date) -> bool:
        if day.weekday() >= 5:
            return False
        return not self.is_holiday(day)

    def invalidate(self, year: int) -> None:
        self.cache.delete(f"{self.CACHE_PREFIX}:{year}")
