"""Ticket and Bet ORM models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from draw_engine.models.base import Base, TimestampMixin
from draw_engine.utils.clock import utcnow


class TicketStatus(str, Enum):
    PENDING = "pending"
    VALIDATED = "validated"
    PENDING_APPROVAL = "pending_approval"
    VOID = "void"


class BetType(str, Enum):
    STANDARD = "standard"
    RAMBOLITO = "rambolito"


class Ticket(TimestampMixin, Base):
    """One sale event by one agent against one draw."""

    __tablename__ = "tickets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    ticket_number: Mapped[str] = mapped_column(String(17), nullable=False, unique=True)
    agent_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    draw_id: Mapped[int] = mapped_column(Integer, ForeignKey("draws.id"), nullable=False, index=True)
    total_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=TicketStatus.PENDING.value)

    bets: Mapped[list[Bet]] = relationship(
        back_populates="ticket",
        order_by="Bet.id",
        cascade="all, delete-orphan",
    )


class Bet(Base):
    """One wagered combination within a ticket. Immutable once created."""

    __tablename__ = "bets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    ticket_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False, index=True
    )
    combination: Mapped[str] = mapped_column(String(8), nullable=False)
    bet_type: Mapped[str] = mapped_column(String(16), nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    ticket: Mapped[Ticket] = relationship(back_populates="bets")
