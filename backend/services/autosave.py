"""
Autosave "debounce" pour les sessions de coleta.

Un seul job APScheduler par session (id "autosave:<collection_id>").
Chaque édition remplace le job en attente (replace_existing=True):
seul l'état après une période calme est sauvegardé.

  schedule()  -> (re)programme le job dans delay_seconds
  cancel()    -> supprime le job en attente
  is_pending()
"""

import logging
from datetime import datetime, timezone, timedelta
from typing import Awaitable, Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger

from config import AUTOSAVE_DELAY_SECONDS, SCHEDULER_TIMEZONE

logger = logging.getLogger("autosave")


def autosave_job_id(key: str) -> str:
    return f"autosave:{key}"


class AutosaveScheduler:
    """Gestionnaire des jobs d'autosave (un par session)"""

    def __init__(self, delay_seconds: float = AUTOSAVE_DELAY_SECONDS, scheduler: Optional[AsyncIOScheduler] = None):
        self.delay_seconds = delay_seconds
        self.scheduler = scheduler or AsyncIOScheduler(timezone=SCHEDULER_TIMEZONE)

    @property
    def running(self) -> bool:
        return self.scheduler.running

    def start(self):
        """Démarre le scheduler (doit être appelé depuis la boucle asyncio)"""
        if not self.scheduler.running:
            self.scheduler.start()
            logger.info(f"[AUTOSAVE] Scheduler démarré (délai {self.delay_seconds}s)")

    def stop(self):
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("[AUTOSAVE] Scheduler arrêté")

    def schedule(self, key: str, callback: Callable[[], Awaitable[None]]):
        """(Re)programme l'autosave de `key`; le job précédent est remplacé"""
        self.start()
        run_date = datetime.now(timezone.utc) + timedelta(seconds=self.delay_seconds)
        self.scheduler.add_job(
            callback,
            DateTrigger(run_date=run_date),
            id=autosave_job_id(key),
            name=f"Autosave {key}",
            replace_existing=True,
            misfire_grace_time=None,
            max_instances=2,
        )
        logger.debug(f"[AUTOSAVE] {key} programmé pour {run_date.isoformat()}")

    def cancel(self, key: str) -> bool:
        job_id = autosave_job_id(key)
        if not self.scheduler.running or self.scheduler.get_job(job_id) is None:
            return False
        self.scheduler.remove_job(job_id)
        return True

    def is_pending(self, key: str) -> bool:
        return self.scheduler.running and self.scheduler.get_job(autosave_job_id(key)) is not None
