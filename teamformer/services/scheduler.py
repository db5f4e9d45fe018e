from __future__ import annotations

import asyncio
import logging
import os
from datetime import datetime, timedelta
from typing import Optional

from teamformer.services.errors import SelectionError
from teamformer.services.team_formation import FormationOutcome, TeamFormationService

_LOGGER = logging.getLogger(__name__)


def _env_interval() -> int:
    try:
        return int(os.getenv("TEAM_FORMATION_INTERVAL", "60"))
    except ValueError:
        return 60


def scheduler_enabled() -> bool:
    return os.getenv("TEAM_FORMATION_ENABLED", "1").lower() not in {"0", "false", "no", "off"}


class TeamFormationScheduler:
    """Owns the periodic trigger that runs team formation passes."""

    def __init__(self, service: TeamFormationService, *, interval: Optional[float] = None) -> None:
        self.service = service
        self.interval = interval if interval is not None else _env_interval()
        self._task: Optional[asyncio.Task] = None
        self._last_tick_at: Optional[datetime] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def tick(self, now: Optional[datetime] = None) -> list[FormationOutcome]:
        """Run one formation pass; a failed selection only costs this tick.

        Each window starts where the previous successful selection ended.
        """

        now = now or self.service.clock()
        _LOGGER.debug("Team formation tick at %s", now)
        try:
            outcomes = await self.service.run_formation_pass(now, since=self._last_tick_at)
        except SelectionError:
            _LOGGER.exception("Team formation tick aborted")
            return []
        self._last_tick_at = now
        return outcomes

    async def start(self) -> None:
        if self.interval <= 0 or self._task:
            return

        async def _loop():
            loop = asyncio.get_running_loop()
            next_at = loop.time()
            while True:
                try:
                    await self.tick()
                except asyncio.CancelledError:  # pragma: no cover - task cancelled intentionally
                    raise
                except Exception as exc:
                    _LOGGER.exception("Team formation pass failed: %s", exc)
                # Fixed rate: a slow pass shortens the wait instead of pushing the schedule
                next_at += self.interval
                delay = next_at - loop.time()
                if delay < 0:
                    _LOGGER.warning("Team formation pass overran the %ss interval", self.interval)
                    next_at = loop.time()
                    delay = 0
                await asyncio.sleep(delay)

        self._task = asyncio.create_task(_loop())
        _LOGGER.info("Team formation scheduler started (every %ss)", self.interval)

    async def stop(self) -> None:
        if not self._task:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:  # pragma: no cover - expected during shutdown
            pass
        finally:
            self._task = None
        _LOGGER.info("Team formation scheduler stopped")


_scheduler: Optional[TeamFormationScheduler] = None


def get_team_formation_scheduler() -> TeamFormationScheduler:
    global _scheduler
    if _scheduler is None:
        # Imported here so database globals are read after startup reconfiguration
        import teamformer.database as database
        from teamformer.realtime import get_connection_manager
        from teamformer.services.notifier import EmailNotificationSender

        interval = _env_interval()
        service = TeamFormationService(
            lambda: database.SessionLocal(),
            sender=EmailNotificationSender(),
            event_bus=get_connection_manager(),
            interval=timedelta(seconds=max(interval, 1)),
        )
        _scheduler = TeamFormationScheduler(service, interval=interval)
    return _scheduler
