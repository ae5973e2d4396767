"""Presence and broadcast for one user in one collaboration room."""

import asyncio
import inspect
import uuid
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional, Set

from .events import (
    CollaborationEvent,
    EditingStarted,
    EditingStopped,
    EventKind,
    event_from_payload,
)
from .hub import PresenceUser, RealtimeHub
from .leases import EditingLease, LeaseRegistry
from ..constants import DEFAULT_ROOM
from ..utils import logger

EventHandler = Callable[[CollaborationEvent], Any]
PresenceHandler = Callable[[List[PresenceUser]], Any]


class CollaborationChannel:
    """A user's subscription to a collaboration room.

    Events sent by the channel's own user are never passed to its handlers.
    Editing state is advisory: any number of users may edit the same
    document at once, ``editors()`` only reports who says they are.
    """

    def __init__(
        self,
        hub: RealtimeHub,
        user: PresenceUser,
        room: str = DEFAULT_ROOM,
        leases: Optional[LeaseRegistry] = None,
    ):
        self.hub = hub
        self.user = user
        self.room = room
        self.connection_id = uuid.uuid4().hex
        self.leases = leases or LeaseRegistry()
        self.members: List[PresenceUser] = []
        self.editing: Optional[str] = None
        self._joined = False
        self._handlers: Dict[EventKind, List[EventHandler]] = defaultdict(list)
        self._presence_handlers: List[PresenceHandler] = []
        self._tasks: Set[asyncio.Task] = set()

    @property
    def joined(self) -> bool:
        return self._joined

    async def join(self) -> List[PresenceUser]:
        """Subscribe, announce presence and return the current members."""
        if not self._joined:
            self.hub.connect(self.room, self.connection_id, self._receive, self._presence_sync)
            self._joined = True
        self.members = self.hub.track(self.room, self.connection_id, self.user)
        logger.debug(f"{self.user.name} joined {self.room} ({len(self.members)} online)")
        return list(self.members)

    async def leave(self):
        """Stop editing, withdraw presence and unsubscribe."""
        if not self._joined:
            return
        if self.editing:
            await self.stop_editing()
        self.hub.untrack(self.room, self.connection_id)
        self.hub.disconnect(self.room, self.connection_id)
        self._joined = False
        self.members = []
        logger.debug(f"{self.user.name} left {self.room}")

    async def __aenter__(self) -> 'CollaborationChannel':
        await self.join()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.leave()

    async def update_presence(self, **meta: Any):
        """Re-announce presence with extra fields such as a cursor position."""
        if not self._joined:
            return
        self.user.meta.update(meta)
        self.members = self.hub.track(self.room, self.connection_id, self.user)

    def on(self, kind: EventKind, handler: EventHandler) -> Callable[[], None]:
        """Register a handler for one event kind; returns an unregister function."""
        self._handlers[kind].append(handler)

        def off():
            if handler in self._handlers[kind]:
                self._handlers[kind].remove(handler)

        return off

    def on_presence(self, handler: PresenceHandler) -> Callable[[], None]:
        self._presence_handlers.append(handler)

        def off():
            if handler in self._presence_handlers:
                self._presence_handlers.remove(handler)

        return off

    async def broadcast(self, event: CollaborationEvent) -> bool:
        """Send an event to the room, fire-and-forget.

        Returns False, without raising, when the channel is not joined.
        """
        if not self._joined:
            logger.debug(f"Dropping {event.kind.value}: not joined to {self.room}")
            return False
        self.hub.publish(self.room, event.kind.value, event.to_payload())
        return True

    async def start_editing(self, documentation_id: str) -> List[EditingLease]:
        """Announce editing; returns leases of others editing the same document."""
        if self.editing and self.editing != documentation_id:
            await self.stop_editing()
        self.editing = documentation_id
        others = self.leases.claim(documentation_id, self.user.id, self.user.name)
        await self.broadcast(EditingStarted(
            user_id=self.user.id,
            user_name=self.user.name,
            documentation_id=documentation_id,
        ))
        if others:
            names = ", ".join(lease.owner_name or lease.owner_id for lease in others)
            logger.info(f"Document {documentation_id} is also being edited by {names}")
        return others

    async def heartbeat(self):
        """Renew the editing lease here and on every receiver."""
        if not self.editing:
            return
        self.leases.claim(self.editing, self.user.id, self.user.name)
        await self.broadcast(EditingStarted(
            user_id=self.user.id,
            user_name=self.user.name,
            documentation_id=self.editing,
        ))

    async def stop_editing(self):
        if not self.editing:
            return
        documentation_id, self.editing = self.editing, None
        self.leases.release(documentation_id, self.user.id)
        await self.broadcast(EditingStopped(
            user_id=self.user.id,
            user_name=self.user.name,
            documentation_id=documentation_id,
        ))

    def editors(self, documentation_id: str) -> List[EditingLease]:
        return self.leases.holders(documentation_id)

    def _receive(self, name: str, payload: Dict[str, Any]):
        try:
            event = event_from_payload(name, payload)
        except (KeyError, ValueError, TypeError) as e:
            logger.warning(f"Ignoring malformed {name} event in {self.room}: {e}")
            return

        if event.user_id == self.user.id:
            return

        if isinstance(event, EditingStarted):
            self.leases.claim(event.documentation_id, event.user_id, event.user_name)
        elif isinstance(event, EditingStopped):
            self.leases.release(event.documentation_id, event.user_id)

        for handler in list(self._handlers.get(event.kind, [])):
            self._dispatch(handler, event)

    def _presence_sync(self, members: List[PresenceUser]):
        self.members = members
        online = {member.id for member in members}
        # Editors who dropped out of the room stop counting as editors.
        for document_id in self.leases.documents():
            for lease in self.leases.holders(document_id):
                if lease.owner_id not in online:
                    self.leases.release(document_id, lease.owner_id)

        for handler in list(self._presence_handlers):
            self._dispatch(handler, list(members))

    def _dispatch(self, handler: Callable[[Any], Any], argument: Any):
        try:
            result = handler(argument)
        except Exception as e:
            logger.error(f"Error in collaboration handler: {e}")
            return
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._tasks.add(task)
            task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task):
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Error in collaboration handler: {task.exception()}")
