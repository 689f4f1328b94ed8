"""Wire configured service instances for the app."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from flask import current_app

from draw_engine.services.bet_limit_ledger import BetLimitLedger
from draw_engine.services.bet_rules import BetRules
from draw_engine.services.draw_scheduler import DrawScheduler
from draw_engine.services.draw_state_machine import DrawStateMachine
from draw_engine.services.prize_service import PrizeService
from draw_engine.services.settlement_service import SettlementEngine
from draw_engine.services.ticket_service import TicketService


@dataclass(frozen=True)
class Services:
    rules: BetRules
    state_machine: DrawStateMachine
    ledger: BetLimitLedger
    tickets: TicketService
    scheduler: DrawScheduler
    prizes: PrizeService
    settlement: SettlementEngine


def build_services(config: Mapping[str, Any]) -> Services:
    rules = BetRules.from_config(dict(config))
    state_machine = DrawStateMachine()
    ledger = BetLimitLedger(
        default_limits=config.get("DEFAULT_BET_LIMITS") or {},
        max_retries=int(config.get("LEDGER_MAX_RETRIES", 3)),
        rules=rules,
    )
    prizes = PrizeService(default_multipliers=config.get("DEFAULT_PRIZE_MULTIPLIERS") or {}, rules=rules)
    return Services(
        rules=rules,
        state_machine=state_machine,
        ledger=ledger,
        tickets=TicketService(ledger, rules=rules, state_machine=state_machine),
        scheduler=DrawScheduler.from_config(dict(config)),
        prizes=prizes,
        settlement=SettlementEngine(prizes, rules=rules, state_machine=state_machine),
    )


def get_services() -> Services:
    return current_app.extensions["services"]
