from hrportal.repositories.vacation.vacation_schedule_repository import VacationScheduleRepository

__all__ = ["VacationScheduleRepository"]
