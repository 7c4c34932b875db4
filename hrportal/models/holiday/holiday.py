"""Public holiday calendar entries."""

from datetime import date

from sqlalchemy import Date, String
from sqlalchemy.orm import Mapped, mapped_column

from hrportal.models.base import TimestampModel

__all__ = ["Holiday"]


class Holiday(TimestampModel):
    """A non-working date excluded from business day counts."""

    __tablename__ = "holidays"

    holiday_date: Mapped[date] = mapped_column(Date, nullable=False, unique=True, comment="Holiday date")
    name: Mapped[str] = mapped_column(String(200), nullable=False, comment="Holiday name")
