"""Repository layer for prize configuration."""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from draw_engine.models.prize_configuration import PrizeConfiguration


class PrizeConfigurationRepository:
    def list_all(self, session: Session) -> Sequence[PrizeConfiguration]:
        stmt = select(PrizeConfiguration).order_by(PrizeConfiguration.prize_key.asc())
        return list(session.scalars(stmt).all())

    def get_by_key(self, session: Session, prize_key: str) -> PrizeConfiguration | None:
        stmt = select(PrizeConfiguration).where(PrizeConfiguration.prize_key == prize_key)
        return session.scalars(stmt).first()

    def active_multipliers(self, session: Session) -> dict[str, Decimal]:
        stmt = select(PrizeConfiguration).where(PrizeConfiguration.is_active.is_(True))
        return {c.prize_key: Decimal(c.multiplier) for c in session.scalars(stmt).all()}

    def upsert(
        self,
        session: Session,
        prize_key: str,
        *,
        multiplier: Decimal,
        base_amount: Decimal,
        description: str | None = None,
    ) -> PrizeConfiguration:
        config = self.get_by_key(session, prize_key)
        if config is None:
            config = PrizeConfiguration(prize_key=prize_key, is_active=True)
            session.add(config)
        config.multiplier = multiplier
        config.base_amount = base_amount
        config.base_prize = (base_amount * multiplier).quantize(Decimal("0.01"))
        if description is not None:
            config.description = description
        session.flush()
        return config
