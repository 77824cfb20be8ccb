"""
Editor Sessions
===============

In-process registry of open editor sessions. Each session owns exactly one
BlockDocument (and so one history); closing the editor discards it.

Editors that are navigated away from never send a close, so sessions idle
for longer than idle_timeout seconds are dropped, and the store never holds
more than max_sessions documents (least recently used go first).
"""

import threading
import time
import uuid
import logging
from collections import OrderedDict

from mailblocks.core.config import Config
from .document import BlockDocument
from .errors import SessionNotFound

logger = logging.getLogger(__name__)


class SessionStore:
    """Thread-safe mapping of session id -> BlockDocument"""

    def __init__(self, idle_timeout=None, max_sessions=None):
        self.idle_timeout = Config.EDITOR_SESSION_TIMEOUT if idle_timeout is None else idle_timeout
        self.max_sessions = Config.EDITOR_MAX_SESSIONS if max_sessions is None else max_sessions
        self._lock = threading.Lock()
        # session_id -> [document, last_access], oldest access first
        self._sessions = OrderedDict()

    def _evict(self, now):
        """Drop idle sessions, then the least recently used over the cap. Lock held."""
        if self.idle_timeout:
            expired = [sid for sid, (_, seen) in self._sessions.items()
                       if now - seen > self.idle_timeout]
            for sid in expired:
                del self._sessions[sid]
            if expired:
                logger.info(f"Expired {len(expired)} idle editor session(s)")
        if self.max_sessions:
            while len(self._sessions) > self.max_sessions:
                sid, _ = self._sessions.popitem(last=False)
                logger.info(f"Evicted editor session {sid} (store full)")

    def create(self, structure=None, template_id=None):
        """Open a session, optionally loaded from a persisted structure."""
        if structure:
            document = BlockDocument.from_structure(structure)
        else:
            document = BlockDocument()
        document.template_id = template_id
        session_id = uuid.uuid4().hex
        with self._lock:
            now = time.monotonic()
            self._sessions[session_id] = [document, now]
            self._evict(now)
        return session_id, document

    def get(self, session_id):
        with self._lock:
            now = time.monotonic()
            self._evict(now)
            entry = self._sessions.get(session_id)
            if entry is not None:
                entry[1] = now
                self._sessions.move_to_end(session_id)
        if entry is None:
            raise SessionNotFound(session_id)
        return entry[0]

    def discard(self, session_id):
        with self._lock:
            if self._sessions.pop(session_id, None) is None:
                raise SessionNotFound(session_id)

    def __len__(self):
        with self._lock:
            return len(self._sessions)


# Default store used by the editor blueprint
sessions = SessionStore()
