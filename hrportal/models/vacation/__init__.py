from hrportal.models.vacation.vacation_schedule import VacationSchedule

__all__ = ["VacationSchedule"]
