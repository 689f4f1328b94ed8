"""Bet limit ledger: the single gate for per-number exposure.

``check_and_reserve`` never reads a total and writes it back. It runs one
conditional UPDATE (``current + amount <= limit``) so that concurrent sales
of the same number serialize in the database and the ceiling holds.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from draw_engine.errors import NotFoundError, Rejection, RejectionReason, ValidationError
from draw_engine.models.bet_limit import BetLimit, BetLimitEntry
from draw_engine.models.draw import DrawStatus
from draw_engine.models.ticket import BetType
from draw_engine.repositories.bet_limit_repository import BetLimitRepository
from draw_engine.repositories.draw_repository import DrawRepository
from draw_engine.services.bet_rules import BetLine, BetRules

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Reservation:
    draw_id: int
    combination: str
    bet_type: str
    amount: int


@dataclass(frozen=True)
class ExposureRow:
    combination: str
    bet_type: str
    current_amount: int
    limit_amount: int
    bet_count: int
    sold_out: bool

    @property
    def utilization(self) -> float:
        if self.limit_amount <= 0:
            return 0.0
        return round(self.current_amount / self.limit_amount * 100, 2)


@dataclass(frozen=True)
class Availability:
    """Room left on one number, whether or not it has sold yet."""

    draw_id: int
    combination: str
    bet_type: str
    current_amount: int
    limit_amount: int
    bet_count: int
    sold_out: bool
    source: str

    @property
    def remaining_amount(self) -> int:
        return max(0, self.limit_amount - self.current_amount)


def _row(entry: BetLimitEntry) -> ExposureRow:
    return ExposureRow(
        combination=entry.combination,
        bet_type=entry.bet_type,
        current_amount=int(entry.current_amount),
        limit_amount=int(entry.limit_amount),
        bet_count=int(entry.bet_count),
        sold_out=bool(entry.sold_out),
    )


class BetLimitLedger:
    """Reserve and release capacity against per-draw, per-number ceilings."""

    def __init__(
        self,
        default_limits: Mapping[str, int] | None = None,
        max_retries: int = 3,
        rules: BetRules | None = None,
        repository: BetLimitRepository | None = None,
        draw_repository: DrawRepository | None = None,
    ) -> None:
        self._default_limits = dict(default_limits or {})
        self._max_retries = max(0, int(max_retries))
        self._rules = rules or BetRules()
        self._repo = repository or BetLimitRepository()
        self._draws = draw_repository or DrawRepository()

    def ceiling_for(self, session: Session, bet_type: str) -> int:
        limit = self._repo.get_active_limit(session, bet_type)
        if limit is not None:
            return int(limit.limit_amount)
        if bet_type in self._default_limits:
            return int(self._default_limits[bet_type])
        raise ValidationError(
            message="Bet limits not configured for this bet type",
            details={"bet_type": bet_type},
        )

    def check_and_reserve(
        self,
        session: Session,
        draw_id: int,
        combination: str,
        bet_type: str,
        amount: int,
    ) -> Reservation | Rejection:
        """Reserve ``amount`` on one number, or explain why not.

        Deadlocks and lock timeouts are retried a bounded number of times; each
        attempt is its own savepoint so a failed attempt leaves nothing behind.
        """

        attempt = 0
        while True:
            savepoint = session.begin_nested()
            try:
                reserved = self._reserve_once(session, draw_id, combination, bet_type, amount)
            except OperationalError:
                savepoint.rollback()
                attempt += 1
                if attempt > self._max_retries:
                    raise
                logger.warning(
                    "Retrying reservation draw=%s %s %s (attempt %s)", draw_id, bet_type, combination, attempt
                )
                continue
            except Exception:
                savepoint.rollback()
                raise
            savepoint.commit()
            break

        if reserved:
            return Reservation(draw_id=draw_id, combination=combination, bet_type=bet_type, amount=int(amount))

        rejection = self._explain_rejection(session, draw_id, combination, bet_type, amount)
        logger.info(
            "Reservation rejected draw=%s %s %s amount=%s: %s",
            draw_id,
            bet_type,
            combination,
            amount,
            rejection.reason.value,
        )
        return rejection

    def _reserve_once(self, session: Session, draw_id: int, combination: str, bet_type: str, amount: int) -> bool:
        if self._repo.get_entry(session, draw_id, combination, bet_type) is None:
            self._repo.create_entry_if_absent(
                session, draw_id, combination, bet_type, self.ceiling_for(session, bet_type)
            )
        return self._repo.try_increment(session, draw_id, combination, bet_type, int(amount))

    def _explain_rejection(
        self,
        session: Session,
        draw_id: int,
        combination: str,
        bet_type: str,
        amount: int,
    ) -> Rejection:
        details = {"draw_id": draw_id, "combination": combination, "bet_type": bet_type, "amount": int(amount)}

        draw = self._draws.get(session, draw_id, refresh=True)
        if draw is None or draw.status != DrawStatus.OPEN.value:
            return Rejection(RejectionReason.DRAW_NOT_OPEN, "Draw is not open for betting", details)

        entry = self._repo.get_entry(session, draw_id, combination, bet_type)
        if entry is None:
            return Rejection(RejectionReason.LIMIT_EXCEEDED, "Bet limit exceeded", details)

        details.update(
            current_amount=int(entry.current_amount),
            limit_amount=int(entry.limit_amount),
            remaining_amount=entry.remaining_amount,
        )
        if entry.sold_out or entry.current_amount >= entry.limit_amount:
            return Rejection(
                RejectionReason.SOLD_OUT,
                f"Number {combination} is sold out for {bet_type} in this draw",
                details,
            )
        return Rejection(
            RejectionReason.LIMIT_EXCEEDED,
            f"Bet limit exceeded. Only {entry.remaining_amount} left on {combination} ({bet_type})",
            details,
        )

    def release(self, session: Session, reservation: Reservation) -> bool:
        released = self._repo.decrement(
            session,
            reservation.draw_id,
            reservation.combination,
            reservation.bet_type,
            reservation.amount,
        )
        if not released:
            logger.warning("Release found no matching exposure: %s", reservation)
        return released

    # Administration

    def set_default_limit(self, session: Session, bet_type: str, limit_amount: int, is_active: bool = True) -> BetLimit:
        self._check_bet_type(bet_type)
        return self._repo.upsert_limit(session, bet_type, int(limit_amount), is_active=is_active)

    def list_default_limits(self, session: Session) -> list[dict[str, object]]:
        stored = {limit.bet_type: limit for limit in self._repo.list_limits(session)}
        out: list[dict[str, object]] = []
        for bet_type in BetType:
            limit = stored.get(bet_type.value)
            if limit is not None:
                amount, is_active, source = int(limit.limit_amount), bool(limit.is_active), "configured"
            elif bet_type.value in self._default_limits:
                amount, is_active, source = int(self._default_limits[bet_type.value]), True, "default"
            else:
                continue
            out.append({"bet_type": bet_type.value, "limit_amount": amount, "is_active": is_active, "source": source})
        return out

    def set_number_limit(
        self,
        session: Session,
        draw_id: int,
        combination: str,
        bet_type: str,
        limit_amount: int,
    ) -> ExposureRow:
        self._check_number(combination, bet_type)
        if self._draws.get(session, draw_id) is None:
            raise NotFoundError(message=f"Draw {draw_id} not found")
        return _row(self._repo.set_entry_limit(session, draw_id, combination, bet_type, int(limit_amount)))

    def availability(self, session: Session, draw_id: int, combination: str, bet_type: str) -> Availability:
        """Current total and effective ceiling for one number. Read only.

        A number with no sales yet reports the ceiling a first reservation
        would get: the active limit for its bet type, else the default.
        """

        self._check_number(combination, bet_type)
        if self._draws.get(session, draw_id) is None:
            raise NotFoundError(message=f"Draw {draw_id} not found")

        entry = self._repo.get_entry(session, draw_id, combination, bet_type)
        if entry is not None:
            return Availability(
                draw_id=draw_id,
                combination=combination,
                bet_type=bet_type,
                current_amount=int(entry.current_amount),
                limit_amount=int(entry.limit_amount),
                bet_count=int(entry.bet_count),
                sold_out=bool(entry.sold_out),
                source="number",
            )

        configured = self._repo.get_active_limit(session, bet_type) is not None
        return Availability(
            draw_id=draw_id,
            combination=combination,
            bet_type=bet_type,
            current_amount=0,
            limit_amount=self.ceiling_for(session, bet_type),
            bet_count=0,
            sold_out=False,
            source="configured" if configured else "default",
        )

    def current_totals(
        self,
        session: Session,
        draw_id: int,
        *,
        bet_type: str | None = None,
        combination: str | None = None,
    ) -> Sequence[ExposureRow]:
        entries = self._repo.list_entries(session, draw_id, bet_type=bet_type, combination=combination)
        return [_row(e) for e in entries]

    def sold_out_combinations(self, session: Session, draw_id: int) -> Sequence[ExposureRow]:
        return [_row(e) for e in self._repo.list_entries(session, draw_id, sold_out_only=True)]

    @staticmethod
    def _check_bet_type(bet_type: str) -> None:
        if bet_type not in {t.value for t in BetType}:
            raise ValidationError(message="Invalid bet type", details={"bet_type": bet_type})

    def _check_number(self, combination: str, bet_type: str) -> None:
        # Any number a bet line could not carry has no exposure to track.
        errors = self._rules.line_errors(
            BetLine(combination=combination, bet_type=bet_type, amount=self._rules.min_amount)
        )
        if errors:
            raise ValidationError(message=errors[0], details={"combination": combination, "bet_type": bet_type})
