"""
Session Store - Opaque handles to the inputs of earlier generations
"""
import logging
import time
import uuid
from typing import Callable, Optional

from .bounded import BoundedStore
from ..config import settings
from ..exceptions import SessionNotFoundError
from ..models.session import SessionRecord


logger = logging.getLogger(__name__)


class SessionStore(BoundedStore[SessionRecord]):
    """Bounded map of session handle to SessionRecord."""

    def __init__(
        self,
        max_entries: Optional[int] = None,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        super().__init__(
            max_entries=max_entries or settings.SESSION_MAX_ENTRIES,
            ttl_seconds=settings.SESSION_TTL_SECONDS if ttl_seconds is None else ttl_seconds,
            clock=clock
        )

    def create(self, record: SessionRecord) -> str:
        session_id = uuid.uuid4().hex
        record.session_id = session_id
        self.set(session_id, record)
        logger.info(f"Created session {session_id} ({record.screenshot_count} screenshots)")
        return session_id

    def require(self, session_id: str) -> SessionRecord:
        """Return the stored record or raise SessionNotFoundError."""
        record = self.get(session_id)
        if record is None:
            raise SessionNotFoundError(session_id)
        return record

    def update(self, record: SessionRecord) -> None:
        if not record.session_id:
            raise SessionNotFoundError("")
        self.set(record.session_id, record)
