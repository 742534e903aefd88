"""
Notifications utilisateur (toasts) émises par la session de coleta.

notify(kind, message) est "fire-and-forget": le moteur n'attend aucun
retour. MemoryNotifier garde les messages pour que la couche HTTP les
renvoie au front (drain à chaque réponse).
"""

import logging
from collections import deque
from typing import Dict, List

from config import now_iso

logger = logging.getLogger("notifications")

SUCCESS = "success"
ERROR = "error"
VALID_KINDS = (SUCCESS, ERROR)


class Notifier:
    def notify(self, kind: str, message: str) -> None:
        raise NotImplementedError


class LogNotifier(Notifier):
    """Notifications vers le logger uniquement"""

    def notify(self, kind: str, message: str) -> None:
        if kind not in VALID_KINDS:
            raise ValueError(f"Type de notification invalide: {kind}")
        if kind == ERROR:
            logger.warning(f"[NOTIFY] {message}")
        else:
            logger.info(f"[NOTIFY] {message}")


class MemoryNotifier(LogNotifier):
    """Garde les N derniers messages en attente de lecture"""

    def __init__(self, max_pending: int = 50):
        self._pending = deque(maxlen=max_pending)

    def notify(self, kind: str, message: str) -> None:
        super().notify(kind, message)
        self._pending.append({"kind": kind, "message": message, "created_at": now_iso()})

    @property
    def pending(self) -> List[Dict[str, str]]:
        return list(self._pending)

    def drain(self) -> List[Dict[str, str]]:
        items = list(self._pending)
        self._pending.clear()
        return items
