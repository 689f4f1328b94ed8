"""Draw lifecycle: open -> closed -> settled.

These transitions are the only writers of ``Draw.status`` and
``Draw.winning_number``. Each one is a conditional UPDATE on the current
status, so concurrent callers racing for the same transition get exactly one
winner; the others observe a no-op or a clean ``InvalidStateTransition``.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.orm import Session

from draw_engine.errors import InvalidStateTransition, NotFoundError
from draw_engine.models.draw import Draw, DrawStatus
from draw_engine.repositories.draw_repository import DrawRepository
from draw_engine.utils.clock import to_naive_utc, utcnow

logger = logging.getLogger(__name__)


class DrawStateMachine:
    """Guarded transitions for a single draw."""

    def __init__(self, repository: DrawRepository | None = None) -> None:
        self._repo = repository or DrawRepository()

    @staticmethod
    def can_accept_bet(draw: Draw, at_time: datetime) -> bool:
        """True iff the draw is open and ``at_time`` is strictly before cutoff.

        The clock comparison is authoritative: a draw whose stored status still
        says open is refused once its cutoff has passed.
        """

        return draw.status == DrawStatus.OPEN.value and to_naive_utc(at_time) < draw.cutoff_at

    def _load(self, session: Session, draw_id: int) -> Draw:
        draw = self._repo.get(session, draw_id, refresh=True)
        if draw is None:
            raise NotFoundError(message=f"Draw {draw_id} not found")
        return draw

    def try_close(self, session: Session, draw_id: int) -> bool:
        """Close an open draw. True only for the caller that performed the transition."""

        changed = self._repo.compare_and_set(
            session,
            draw_id,
            where=[Draw.status == DrawStatus.OPEN.value],
            values={"status": DrawStatus.CLOSED.value},
        )
        if changed:
            logger.info("Draw %s closed", draw_id)
        return changed

    def close(self, session: Session, draw_id: int) -> Draw:
        """Close a draw; closing a closed or settled draw is a no-op."""

        self.try_close(session, draw_id)
        return self._load(session, draw_id)

    def record_result(
        self,
        session: Session,
        draw_id: int,
        winning_number: str,
        entered_by: int | None = None,
    ) -> Draw:
        """Record the official result on a closed draw.

        Re-recording the same number is a no-op; the status stays closed until
        ``settle``.
        """

        changed = self._repo.compare_and_set(
            session,
            draw_id,
            where=[Draw.status == DrawStatus.CLOSED.value, Draw.winning_number.is_(None)],
            values={
                "winning_number": winning_number,
                "result_entered_by": entered_by,
                "result_entered_at": utcnow(),
            },
        )
        draw = self._load(session, draw_id)
        if changed:
            logger.info("Draw %s result recorded: %s", draw_id, winning_number)
            return draw

        if draw.status != DrawStatus.CLOSED.value:
            raise InvalidStateTransition(
                message=f"Cannot record a result for a draw that is {draw.status}",
                details={"draw_id": draw_id, "status": draw.status},
            )
        if draw.winning_number != winning_number:
            raise InvalidStateTransition(
                message="A different result is already recorded for this draw",
                details={"draw_id": draw_id, "winning_number": draw.winning_number},
            )
        return draw

    def settle(self, session: Session, draw_id: int) -> Draw:
        """Mark a closed draw with a recorded result as settled, exactly once."""

        changed = self._repo.compare_and_set(
            session,
            draw_id,
            where=[Draw.status == DrawStatus.CLOSED.value, Draw.winning_number.is_not(None)],
            values={"status": DrawStatus.SETTLED.value, "settled_at": utcnow()},
        )
        draw = self._load(session, draw_id)
        if not changed:
            raise InvalidStateTransition(
                message=f"Cannot settle a draw that is {draw.status}"
                + ("" if draw.winning_number else " without a recorded result"),
                details={"draw_id": draw_id, "status": draw.status},
            )
        logger.info("Draw %s settled", draw_id)
        return draw
