# intake/db/base.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, MetaData, inspect
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func

# Use naming convention for constraints
convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    metadata = MetaData(naming_convention=convention)

    def __repr__(self) -> str:
        """String representation of model."""
        attrs = []
        for attr in inspect(self).mapper.column_attrs:
            if attr.key in ["created_at", "updated_at"]:
                continue
            value = getattr(self, attr.key, None)
            if value is not None and not isinstance(value, (dict, list)):
                attrs.append(f"{attr.key}={repr(value)}")

        return f"<{self.__class__.__name__}({', '.join(attrs)})>"


class TimestampMixin:
    """created_at / updated_at columns maintained by the database."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


__all__ = [
    "Base",
    "TimestampMixin",
]
