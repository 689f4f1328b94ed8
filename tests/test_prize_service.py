from __future__ import annotations

from decimal import Decimal

import pytest

from draw_engine.errors import NotFoundError, ValidationError


def test_defaults_apply_without_configuration(session, services):
    assert services.prizes.multipliers(session) == {
        "standard": Decimal(450),
        "rambolito": Decimal(75),
        "rambolito_double": Decimal(150),
    }


def test_seed_defaults_once(session, services):
    assert services.prizes.seed_defaults(session) == 3
    assert services.prizes.seed_defaults(session) == 0

    configs = {c.prize_key: c for c in services.prizes.list_configurations(session)}
    assert configs["standard"].base_prize == Decimal("4500.00")
    assert configs["rambolito_double"].description


def test_upsert_and_toggle(session, services):
    config = services.prizes.upsert(session, "rambolito", Decimal("80"), base_amount=Decimal("5"))
    assert config.base_prize == Decimal("400.00")
    assert services.prizes.multipliers(session)["rambolito"] == Decimal("80")

    toggled = services.prizes.toggle(session, "rambolito")
    assert toggled.is_active is False
    assert services.prizes.multipliers(session)["rambolito"] == Decimal(75)


def test_upsert_rejects_bad_input(session, services):
    with pytest.raises(ValidationError):
        services.prizes.upsert(session, "jackpot", Decimal("10"))
    with pytest.raises(ValidationError):
        services.prizes.upsert(session, "standard", Decimal("0"))


def test_toggle_unknown_key(session, services):
    with pytest.raises(NotFoundError):
        services.prizes.toggle(session, "standard")


def test_quote(session, services):
    quote = services.prizes.quote(session, "rambolito", "112", 10)
    assert quote.prize_key == "rambolito_double"
    assert quote.prize_amount == Decimal("1500.00")
    assert quote.winning_combinations == ["112", "121", "211"]

    standard = services.prizes.quote(session, "standard", "123", 2)
    assert standard.prize_amount == Decimal("900.00")
    assert standard.winning_combinations == ["123"]

    with pytest.raises(ValidationError):
        services.prizes.quote(session, "rambolito", "111", 10)
