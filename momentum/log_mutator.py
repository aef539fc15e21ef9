"""
Log Mutator for Persona Momentum.

The only write path for daily logs. A toggle either creates the log for
(action, day) with status=True or flips the existing one, keeping its id; there is
no way to set a status directly. After every toggle the owning persona's
scores are recomputed and published to subscribers.
"""
from dataclasses import replace
from datetime import date, datetime
from typing import Callable, List, Optional

from momentum.logger import get_logger
from momentum.models import ActionId, DailyLog, LogId
from momentum.momentum_engine import ScoreSnapshot, score_snapshot
from momentum.schedule import DateLike, local_today, to_calendar_date
from momentum.store import RecordStore, new_id

logger = get_logger("log_mutator")

ScoreListener = Callable[[ScoreSnapshot], None]


class LogMutator:
    """Toggles daily logs and republishes persona scores."""

    def __init__(
        self,
        store: RecordStore,
        today_provider: Optional[Callable[[], date]] = None,
    ):
        self.store = store
        self._today = today_provider or local_today
        self._listeners: List[ScoreListener] = []
        self.last_scores: Optional[ScoreSnapshot] = None

    def subscribe(self, listener: ScoreListener) -> Callable[[], None]:
        """Register a score listener; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def toggle(self, action_id: ActionId, day: DateLike) -> DailyLog:
        """
        Flip completion for (action, calendar day).

        The first toggle always marks the day complete. Later toggles flip
        the same record, so its id and created_at never change.

        Raises:
            RecordNotFoundError: the action does not exist
        """
        self.store.require_action(action_id)
        log_date = to_calendar_date(day)

        log = self.store.find_log(action_id, log_date)
        if log is None:
            log = DailyLog(
                id=LogId(new_id("log")),
                action_id=action_id,
                log_date=log_date,
                status=True,
                created_at=datetime.now(),
            )
        else:
            # flip a copy so a failed save leaves the stored record untouched
            log = replace(log, status=not log.status)
        self.store.put_log(log)
        logger.info(f"Toggled {action_id} on {log_date.isoformat()} -> {log.status}")

        self.recompute_for_action(action_id)
        return log

    def recompute_for_action(self, action_id: ActionId) -> Optional[ScoreSnapshot]:
        persona = self.store.persona_of_action(action_id)
        if persona is None:
            return None
        return self.recompute(persona.id)

    def recompute(self, persona_id: str) -> ScoreSnapshot:
        """Recompute and publish scores for one persona."""
        data = self.store.persona_slice(persona_id)
        snapshot = score_snapshot(
            persona_id=data.persona.id,
            actions=data.actions,
            logs=data.logs,
            persona_created_at=data.persona.created_at,
            today=self._today(),
        )
        self.last_scores = snapshot
        for listener in list(self._listeners):
            listener(snapshot)
        return snapshot
