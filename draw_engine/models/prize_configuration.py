"""Prize configuration per prize key (bet type or rambolito sub-variant)."""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import Boolean, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from draw_engine.models.base import Base, TimestampMixin


class PrizeConfiguration(TimestampMixin, Base):
    __tablename__ = "prize_configurations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    prize_key: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)
    multiplier: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    base_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("10"))
    base_prize: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
