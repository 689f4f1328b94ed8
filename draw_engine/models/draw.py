"""Draw ORM model.

One betting round for one time-slot on one calendar date.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum

from sqlalchemy import Date, DateTime, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from draw_engine.models.base import Base, TimestampMixin


class DrawStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"
    SETTLED = "settled"


# Lifecycle order; status only ever moves forward along it.
DRAW_LIFECYCLE = (DrawStatus.OPEN, DrawStatus.CLOSED, DrawStatus.SETTLED)


class Draw(TimestampMixin, Base):
    """A scheduled draw.

    ``status`` and ``winning_number`` are written only by the draw state machine.
    """

    __tablename__ = "draws"
    __table_args__ = (UniqueConstraint("draw_date", "slot", name="uq_draws_date_slot"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    draw_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    slot: Mapped[str] = mapped_column(String(16), nullable=False)
    draw_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    cutoff_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=DrawStatus.OPEN.value, index=True)

    winning_number: Mapped[str | None] = mapped_column(String(8), nullable=True)
    result_entered_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    result_entered_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    settled_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    def __repr__(self) -> str:
        return f"<Draw {self.id} {self.draw_date} {self.slot} {self.status}>"
