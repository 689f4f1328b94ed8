"""Settlement output: one row per winning bet."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from draw_engine.models.base import Base
from draw_engine.utils.clock import utcnow


class WinningTicket(Base):
    __tablename__ = "winning_tickets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    bet_id: Mapped[int] = mapped_column(Integer, ForeignKey("bets.id"), nullable=False, unique=True)
    ticket_id: Mapped[int] = mapped_column(Integer, ForeignKey("tickets.id"), nullable=False, index=True)
    draw_id: Mapped[int] = mapped_column(Integer, ForeignKey("draws.id"), nullable=False, index=True)
    prize_key: Mapped[str] = mapped_column(String(32), nullable=False)
    prize_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
