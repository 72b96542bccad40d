"""
Module: esg_kernel.db.base
Responsibility: declarative base, column type conventions and the tracked
    (who/when) mixin shared by every ESG table.
Architecture position: Kernel > DB.  The bottom of the kernel's import
    graph; it imports nothing from models/, services/ or domain/.

Invariants enforced:
    - Every row has a uuid4 primary key stored as String(36), so rollover
      ids, data point ids and lineage pointers never collide across
      periods or databases.
    - Actor columns (created_by, updated_by, owner ids) are opaque user id
      strings owned by the external user registry.
    - str Enums are stored by value, so the database holds "missing",
      "copy-as-draft" or "locked" rather than member names.

Audit relevance:
    created_at/created_by say who wrote a row.  updated_at/updated_by are
    the only fields allowed to change on frozen rows (db/immutability.py).
"""

from datetime import date, datetime
from enum import Enum
from typing import ClassVar
from uuid import UUID as PyUUID, uuid4

from sqlalchemy import Date, DateTime, String, func
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """A UUID kept as its 36-char text form on every backend."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else PyUUID(value)


class Base(DeclarativeBase):
    """Declarative base: a uuid4 ``id`` and the kernel's column type map."""

    type_annotation_map: ClassVar[dict] = {
        datetime: DateTime(timezone=True),
        date: Date(),
        PyUUID: UUIDString(),
    }

    id: Mapped[PyUUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)


class TrackedBase(Base):
    """
    Adds creation and last-update metadata.

    ``created_by`` is required; ``updated_by`` is set by the service that
    changes the row.  Both timestamps default to the database clock.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
    created_by: Mapped[str] = mapped_column(String(100), nullable=False)
    updated_by: Mapped[str | None] = mapped_column(String(100), nullable=True)


def enum_column_type(enum_cls: type[Enum], length: int = 30) -> SAEnum:
    """VARCHAR column holding ``enum_cls`` values, loaded back as members."""
    return SAEnum(
        enum_cls,
        native_enum=False,
        length=length,
        values_callable=lambda members: [m.value for m in members],
        validate_strings=True,
    )


UUID = PyUUID
