from hrportal.repositories.holiday.holiday_repository import HolidayRepository

__all__ = ["HolidayRepository"]
