from datetime import datetime
from typing import List, Optional

from sqlalchemy import String, Text, Integer, DateTime, Boolean, ForeignKey, func
from sqlalchemy.orm import Mapped, relationship, mapped_column

from core.base import Base, utcnow


class Poll(Base):
    __tablename__ = "polls"

    title: Mapped[str] = mapped_column(String(300), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_public: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    allow_multiple_votes: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    allow_anonymous_votes: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_by: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )

    poll_options: Mapped[List["PollOption"]] = relationship(
        back_populates="poll",
        order_by="PollOption.order_index",
        lazy="selectin",
        passive_deletes=True,
    )
