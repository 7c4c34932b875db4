from hrportal.config.settings import (
    CacheSettings,
    DatabaseSettings,
    LoggingSettings,
    Settings,
    VacationSettings,
    WorkflowSettings,
    get_settings,
)

__all__ = [
    "CacheSettings",
    "DatabaseSettings",
    "LoggingSettings",
    "Settings",
    "VacationSettings",
    "WorkflowSettings",
    "get_settings",
]
