"""Pure betting rules: line validation, win matching and prize keys.

Standard bets win on an exact positional match. Rambolito bets win on any
ordering of the same digits; the payout depends on how many distinct
orderings the combination has:

- three distinct digits ("123") -> 6 orderings, prize key ``rambolito``
- exactly two distinct digits ("112") -> 3 orderings, prize key ``rambolito_double``
- a triple ("111") has a single ordering and is not a valid rambolito bet
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from decimal import Decimal
from itertools import permutations
from math import factorial

from draw_engine.models.ticket import BetType

RAMBOLITO_DOUBLE = "rambolito_double"


@dataclass(frozen=True)
class BetLine:
    combination: str
    bet_type: str
    amount: int


@dataclass(frozen=True)
class BetRules:
    combination_length: int = 3
    min_amount: int = 1
    max_amount: int = 10_000
    max_lines: int = 10

    @classmethod
    def from_config(cls, config: dict) -> BetRules:
        return cls(
            combination_length=int(config.get("COMBINATION_LENGTH", 3)),
            min_amount=int(config.get("MIN_BET_AMOUNT", 1)),
            max_amount=int(config.get("MAX_BET_AMOUNT", 10_000)),
            max_lines=int(config.get("MAX_BETS_PER_TICKET", 10)),
        )

    def is_valid_number(self, value: str) -> bool:
        return len(value) == self.combination_length and value.isascii() and value.isdigit()

    def line_errors(self, line: BetLine) -> list[str]:
        """Return the problems with one bet line (empty when valid)."""

        errors: list[str] = []
        if line.bet_type not in {t.value for t in BetType}:
            errors.append(f"Unknown bet type {line.bet_type!r}")
        if not self.is_valid_number(line.combination):
            errors.append(f"Combination must be exactly {self.combination_length} digits")
        elif line.bet_type == BetType.RAMBOLITO.value and distinct_orderings(line.combination) == 1:
            errors.append("Triple numbers are not allowed for rambolito")
        if isinstance(line.amount, bool) or not isinstance(line.amount, int):
            errors.append("Amount must be a whole number")
        elif line.amount < self.min_amount:
            errors.append(f"Amount must be at least {self.min_amount}")
        elif line.amount > self.max_amount:
            errors.append(f"Amount must be at most {self.max_amount}")
        return errors


def distinct_orderings(combination: str) -> int:
    """Number of distinct permutations of the combination's digits."""

    total = factorial(len(combination))
    for count in Counter(combination).values():
        total //= factorial(count)
    return total


def winning_permutations(combination: str) -> set[str]:
    return {"".join(p) for p in permutations(combination)}


def is_winner(bet_type: str, combination: str, winning_number: str) -> bool:
    if bet_type == BetType.STANDARD.value:
        return combination == winning_number
    if bet_type == BetType.RAMBOLITO.value:
        return len(combination) == len(winning_number) and sorted(combination) == sorted(winning_number)
    return False


def prize_key_for(bet_type: str, combination: str) -> str:
    """Which prize configuration pays a winning bet."""

    if bet_type == BetType.RAMBOLITO.value and distinct_orderings(combination) < factorial(len(combination)):
        return RAMBOLITO_DOUBLE
    return bet_type


def compute_prize(amount: int, multiplier: Decimal) -> Decimal:
    return (Decimal(int(amount)) * Decimal(multiplier)).quantize(Decimal("0.01"))
