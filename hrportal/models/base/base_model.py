"""
Base model configuration for SQLAlchemy ORM.

Provides the declarative base and abstract classes shared by all
database models: string UUID primary keys and timestamp tracking.
"""

import re
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from sqlalchemy import DateTime, String
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, declarative_base, declared_attr, mapped_column
from sqlalchemy.sql import func

Base = declarative_base()


def utc_now() -> datetime:
    """Timezone-aware current UTC time used for all workflow timestamps."""
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid4())


class BaseModel(Base):
    """
    Abstract base model with a UUID primary key and dict conversion.
    """

    __abstract__ = True

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=new_id,
        nullable=False,
        comment="Primary key (UUID)",
    )

    @declared_attr
    def __tablename__(cls) -> str:
        name = re.sub("(.)([A-Z][a-z]+)", r"\1_\2", cls.__name__)
        return re.sub("([a-z0-9])([A-Z])", r"\1_\2", name).lower() + "s"

    def to_dict(self, exclude: Optional[List[str]] = None) -> Dict[str, Any]:
        """
        Convert model instance to dictionary.

        Args:
            exclude: List of column names to exclude

        Returns:
            Dictionary of column values with dates rendered as ISO strings
        """
        exclude = exclude or []
        result = {}
        for column in self.__table__.columns:
            if column.name in exclude:
                continue
            value = getattr(self, column.key, None)
            if isinstance(value, (datetime, date)):
                result[column.name] = value.isoformat()
            elif hasattr(value, "value") and not isinstance(value, (int, str)):
                result[column.name] = value.value
            else:
                result[column.name] = value
        return result

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} id={self.id}>"


class TimestampModel(BaseModel):
    """
    Base model with automatic creation and update timestamps.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        server_default=func.now(),
        comment="Record creation timestamp",
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
        server_default=func.now(),
        comment="Record last update timestamp",
    )


def enum_type(enum_cls, name: str) -> SAEnum:
    """Portable enum column type persisting the member values."""
    return SAEnum(
        enum_cls,
        name=name,
        native_enum=False,
        length=32,
        validate_strings=True,
        values_callable=lambda members: [m.value for m in members],
    )
