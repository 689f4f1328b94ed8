"""ORM models."""

from draw_engine.models.bet_limit import BetLimit, BetLimitEntry
from draw_engine.models.draw import Draw, DrawStatus
from draw_engine.models.prize_configuration import PrizeConfiguration
from draw_engine.models.ticket import Bet, BetType, Ticket, TicketStatus
from draw_engine.models.winning_ticket import WinningTicket

__all__ = [
    "Bet",
    "BetLimit",
    "BetLimitEntry",
    "BetType",
    "Draw",
    "DrawStatus",
    "PrizeConfiguration",
    "Ticket",
    "TicketStatus",
    "WinningTicket",
]
