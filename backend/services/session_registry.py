"""
Registre des sessions de coleta ouvertes dans le process.

Une seule session vivante par contact: deux requêtes qui ouvrent le même
contact partagent la même session (même document, même timer d'autosave).
Fermer une session (close) écrit ses modifications en attente et la retire
du registre: la prochaine ouverture relit le schéma et le document.
À l'arrêt de l'application, close_all() ferme toutes les sessions.
"""

import asyncio
import logging
from typing import Callable, Dict, Optional

from services.autosave import AutosaveScheduler
from services.collection_session import CollectionSession
from services.data_collection_errors import SessionStateError
from services.notifier import MemoryNotifier, Notifier

logger = logging.getLogger("session_registry")


class SessionRegistry:

    def __init__(
        self,
        store,
        autosave: Optional[AutosaveScheduler] = None,
        notifier_factory: Callable[[], Notifier] = MemoryNotifier,
    ):
        self.store = store
        self.autosave = autosave
        self.notifier_factory = notifier_factory
        self._sessions: Dict[str, CollectionSession] = {}
        self._lock: Optional[asyncio.Lock] = None

    def __len__(self):
        return len(self._sessions)

    def __contains__(self, contact_id: str):
        return contact_id in self._sessions

    @property
    def lock(self) -> asyncio.Lock:
        # créé au premier usage, dans la boucle qui sert les requêtes
        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock

    async def open(self, contact_id: str, collected_by: Optional[str] = None) -> CollectionSession:
        """Retourne la session du contact, créée et initialisée si besoin"""
        async with self.lock:
            session = self._sessions.get(contact_id)
            if session is not None and session.is_ready:
                return session

            session = CollectionSession(
                contact_id,
                self.store,
                autosave=self.autosave,
                notifier=self.notifier_factory(),
                collected_by=collected_by,
            )
            # DataCollectionLoadError remonte: la session n'est pas enregistrée
            await session.initialize()
            self._sessions[contact_id] = session
            logger.info(f"[REGISTRY] Session ouverte pour contact {contact_id} ({len(self._sessions)} actives)")
            return session

    def get(self, contact_id: str) -> CollectionSession:
        session = self._sessions.get(contact_id)
        if session is None:
            raise SessionStateError(f"Aucune session ouverte pour le contact {contact_id}")
        return session

    async def close(self, contact_id: str) -> Optional[CollectionSession]:
        """
        Écrit les modifications en attente puis retire la session.
        Returns: la session fermée, ou None si le contact n'en avait pas.
        Si l'écriture échoue la session reste enregistrée (dirty conservé).
        """
        async with self.lock:
            session = self._sessions.get(contact_id)
            if session is None:
                return None
            await session.close()
            if session.dirty:
                logger.warning(f"[REGISTRY] Session {contact_id} non fermée: modifications non sauvegardées")
                return session
            del self._sessions[contact_id]
            logger.info(f"[REGISTRY] Session fermée pour contact {contact_id} ({len(self._sessions)} actives)")
            return session

    async def close_all(self):
        """Flush de toutes les sessions (shutdown)"""
        sessions = list(self._sessions.values())
        self._sessions.clear()
        for session in sessions:
            await session.close()
        if sessions:
            logger.info(f"[REGISTRY] {len(sessions)} sessions fermées")
