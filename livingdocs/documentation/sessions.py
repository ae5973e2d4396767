"""Per-repository generation sessions."""

import uuid
from collections import OrderedDict
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterator, Optional

from .models import GenerationState
from ..exceptions import ConcurrencyConflict
from ..utils import logger, utcnow

# Finished repositories whose terminal state is remembered.
LAST_STATE_LIMIT = 256


@dataclass
class GenerationSession:
    """Handle for one in-flight generation of a repository."""
    repository_id: str
    token: str = field(default_factory=lambda: uuid.uuid4().hex)
    started_at: datetime = field(default_factory=utcnow)
    state: GenerationState = GenerationState.INITIALIZING

    def advance(self, state: GenerationState):
        logger.debug(f"Generation {self.repository_id}: {self.state.value} -> {state.value}")
        self.state = state


class GenerationSessionManager:
    """Registry of active generation sessions keyed by repository id.

    A session is inserted when ``session()`` is entered and removed when it
    exits, whatever the outcome. All callers share one event loop, so the
    check and the insert happen without a suspension point in between.
    """

    def __init__(self, last_state_limit: int = LAST_STATE_LIMIT):
        self._sessions: Dict[str, GenerationSession] = {}
        self._last_state: "OrderedDict[str, GenerationState]" = OrderedDict()
        self.last_state_limit = last_state_limit

    def is_active(self, repository_id: str) -> bool:
        return repository_id in self._sessions

    def get(self, repository_id: str) -> Optional[GenerationSession]:
        return self._sessions.get(repository_id)

    def state(self, repository_id: str) -> GenerationState:
        """Current state, or the terminal state of the last finished run."""
        session = self._sessions.get(repository_id)
        if session:
            return session.state
        return self._last_state.get(repository_id, GenerationState.IDLE)

    def acquire(self, repository_id: str) -> GenerationSession:
        if repository_id in self._sessions:
            raise ConcurrencyConflict(repository_id)
        session = GenerationSession(repository_id=repository_id)
        self._sessions[repository_id] = session
        self._last_state.pop(repository_id, None)
        return session

    def release(self, session: GenerationSession):
        current = self._sessions.get(session.repository_id)
        if current is not None and current.token == session.token:
            del self._sessions[session.repository_id]
            self._last_state[session.repository_id] = session.state
            # Only the most recently finished repositories keep a terminal state.
            while len(self._last_state) > self.last_state_limit:
                self._last_state.popitem(last=False)

    @contextmanager
    def session(self, repository_id: str) -> Iterator[GenerationSession]:
        session = self.acquire(repository_id)
        try:
            yield session
        finally:
            self.release(session)

    def __len__(self) -> int:
        return len(self._sessions)
