"""Prize configuration use-cases."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.orm import Session

from draw_engine.errors import NotFoundError, ValidationError
from draw_engine.models.prize_configuration import PrizeConfiguration
from draw_engine.models.ticket import BetType
from draw_engine.repositories.prize_configuration_repository import PrizeConfigurationRepository
from draw_engine.services.bet_rules import (
    RAMBOLITO_DOUBLE,
    BetLine,
    BetRules,
    compute_prize,
    prize_key_for,
    winning_permutations,
)

PRIZE_KEYS = (BetType.STANDARD.value, BetType.RAMBOLITO.value, RAMBOLITO_DOUBLE)

_DESCRIPTIONS = {
    BetType.STANDARD.value: "Exact order",
    BetType.RAMBOLITO.value: "Any order, three distinct digits",
    RAMBOLITO_DOUBLE: "Any order, one repeated digit",
}


@dataclass(frozen=True)
class PrizeQuote:
    bet_type: str
    combination: str
    amount: int
    prize_key: str
    multiplier: Decimal
    prize_amount: Decimal
    winning_combinations: list[str]


class PrizeService:
    """Resolve multipliers: active configuration first, configured defaults second."""

    def __init__(
        self,
        default_multipliers: Mapping[str, int | Decimal] | None = None,
        rules: BetRules | None = None,
        repository: PrizeConfigurationRepository | None = None,
    ) -> None:
        self._defaults = {k: Decimal(v) for k, v in (default_multipliers or {}).items()}
        self._rules = rules or BetRules()
        self._repo = repository or PrizeConfigurationRepository()

    def multipliers(self, session: Session) -> dict[str, Decimal]:
        resolved = dict(self._defaults)
        resolved.update(self._repo.active_multipliers(session))
        return resolved

    def list_configurations(self, session: Session) -> list[PrizeConfiguration]:
        return list(self._repo.list_all(session))

    def upsert(
        self,
        session: Session,
        prize_key: str,
        multiplier: Decimal,
        base_amount: Decimal = Decimal("10"),
        description: str | None = None,
    ) -> PrizeConfiguration:
        if prize_key not in PRIZE_KEYS:
            raise ValidationError(message="Invalid prize key", details={"prize_key": prize_key})
        if multiplier <= 0:
            raise ValidationError(message="Multiplier must be positive", details={"multiplier": str(multiplier)})
        return self._repo.upsert(
            session,
            prize_key,
            multiplier=Decimal(multiplier),
            base_amount=Decimal(base_amount),
            description=description,
        )

    def toggle(self, session: Session, prize_key: str) -> PrizeConfiguration:
        config = self._repo.get_by_key(session, prize_key)
        if config is None:
            raise NotFoundError(message=f"Prize configuration {prize_key} not found")
        config.is_active = not config.is_active
        session.flush()
        return config

    def seed_defaults(self, session: Session) -> int:
        """Create a configuration row for every default that has none yet."""

        created = 0
        for key, multiplier in self._defaults.items():
            if key in PRIZE_KEYS and self._repo.get_by_key(session, key) is None:
                self._repo.upsert(
                    session,
                    key,
                    multiplier=multiplier,
                    base_amount=Decimal("10"),
                    description=_DESCRIPTIONS.get(key),
                )
                created += 1
        return created

    def quote(self, session: Session, bet_type: str, combination: str, amount: int) -> PrizeQuote:
        """What a bet would pay if it won."""

        errors = self._rules.line_errors(BetLine(combination=combination, bet_type=bet_type, amount=amount))
        if errors:
            raise ValidationError(message=errors[0], details={"errors": errors})

        key = prize_key_for(bet_type, combination)
        multiplier = self.multipliers(session).get(key)
        if multiplier is None:
            raise ValidationError(message="No prize configured", details={"prize_key": key})

        if bet_type == BetType.STANDARD.value:
            winners = [combination]
        else:
            winners = sorted(winning_permutations(combination))
        return PrizeQuote(
            bet_type=bet_type,
            combination=combination,
            amount=int(amount),
            prize_key=key,
            multiplier=multiplier,
            prize_amount=compute_prize(amount, multiplier),
            winning_combinations=winners,
        )
