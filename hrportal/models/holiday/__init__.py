from hrportal.models.holiday.holiday import Holiday

__all__ = ["Holiday"]
