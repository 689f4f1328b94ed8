"""Bet limit models.

``BetLimit`` holds the default ceiling per bet type. ``BetLimitEntry`` is the
per-draw exposure counter for one (combination, bet type) and is the only
place cumulative wagers are tracked.
"""

from __future__ import annotations

from sqlalchemy import Boolean, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from draw_engine.models.base import Base, TimestampMixin


class BetLimit(TimestampMixin, Base):
    __tablename__ = "bet_limits"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    bet_type: Mapped[str] = mapped_column(String(16), nullable=False, unique=True)
    limit_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class BetLimitEntry(TimestampMixin, Base):
    __tablename__ = "bet_limit_entries"
    __table_args__ = (
        UniqueConstraint("draw_id", "combination", "bet_type", name="uq_bet_limit_entries_key"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    draw_id: Mapped[int] = mapped_column(Integer, ForeignKey("draws.id"), nullable=False, index=True)
    combination: Mapped[str] = mapped_column(String(8), nullable=False)
    bet_type: Mapped[str] = mapped_column(String(16), nullable=False)
    limit_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    current_amount: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # Reserved bet lines; a ticket repeating a number counts once per line.
    bet_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    sold_out: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    @property
    def remaining_amount(self) -> int:
        return max(0, int(self.limit_amount) - int(self.current_amount))
