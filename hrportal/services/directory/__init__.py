from hrportal.services.directory.directory_lookup import DirectoryLookup, SqlDirectory
from hrportal.services.directory.holiday_calendar import HolidayCalendar, sql_holiday_loader

__all__ = ["DirectoryLookup", "HolidayCalendar", "SqlDirectory", "sql_holiday_loader"]
