from uuid import UUID, uuid4
from datetime import datetime, timezone

from sqlalchemy import Integer, Sequence, Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, declared_attr


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """SQLite hands timestamps back naive; they are stored as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def is_past(value: datetime | None) -> bool:
    return value is not None and as_utc(value) < utcnow()


class Base(DeclarativeBase):
    id: Mapped[int] = mapped_column(Integer, Sequence("id_seq", start=1000), primary_key=True)
    uuid: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), default=uuid4, unique=True, nullable=False)

    @declared_attr
    def __tablename__(self) -> str:
        return self.__name__.lower()
