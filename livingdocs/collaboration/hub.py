"""In-process realtime transport with rooms, presence and broadcast."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from ..utils import logger, utcnow

EventCallback = Callable[[str, Dict[str, Any]], None]
PresenceCallback = Callable[[List['PresenceUser']], None]


@dataclass
class PresenceUser:
    """A user connected to a room. Never persisted."""
    id: str
    name: str
    avatar: Optional[str] = None
    last_seen: datetime = field(default_factory=utcnow)
    meta: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = {'id': self.id, 'name': self.name, 'lastSeen': self.last_seen.isoformat()}
        if self.avatar:
            data['avatar'] = self.avatar
        data.update(self.meta)
        return data


@dataclass
class _Connection:
    connection_id: str
    on_event: EventCallback
    on_presence: PresenceCallback
    user: Optional[PresenceUser] = None


class RealtimeHub:
    """Named-room publish/subscribe.

    Broadcasts are delivered synchronously to every connection of the room,
    the sender's included, in the order each sender publishes them. Nothing
    is queued for connections that join later.
    """

    def __init__(self):
        self._rooms: Dict[str, Dict[str, _Connection]] = {}

    def connect(
        self,
        room: str,
        connection_id: str,
        on_event: EventCallback,
        on_presence: PresenceCallback,
    ):
        self._rooms.setdefault(room, {})[connection_id] = _Connection(
            connection_id=connection_id,
            on_event=on_event,
            on_presence=on_presence,
        )
        logger.debug(f"Connection {connection_id} subscribed to {room}")

    def disconnect(self, room: str, connection_id: str):
        connections = self._rooms.get(room, {})
        connection = connections.pop(connection_id, None)
        if not connections:
            self._rooms.pop(room, None)
        if connection and connection.user:
            self._sync_presence(room)

    def drop(self, connection_id: str):
        """Forget a connection everywhere, as when its socket dies."""
        for room in [name for name, members in self._rooms.items() if connection_id in members]:
            self.disconnect(room, connection_id)

    def track(self, room: str, connection_id: str, user: PresenceUser) -> List[PresenceUser]:
        connection = self._rooms.get(room, {}).get(connection_id)
        if connection is None:
            raise KeyError(f"Connection {connection_id} is not subscribed to {room}")
        user.last_seen = utcnow()
        connection.user = user
        self._sync_presence(room)
        return self.presence(room)

    def untrack(self, room: str, connection_id: str):
        connection = self._rooms.get(room, {}).get(connection_id)
        if connection and connection.user:
            connection.user = None
            self._sync_presence(room)

    def presence(self, room: str) -> List[PresenceUser]:
        """Current members, one entry per user id."""
        members: Dict[str, PresenceUser] = {}
        for connection in self._rooms.get(room, {}).values():
            if connection.user and connection.user.id not in members:
                members[connection.user.id] = connection.user
        return list(members.values())

    def publish(self, room: str, event: str, payload: Dict[str, Any]) -> int:
        """Deliver a broadcast to the room; returns the number of receivers."""
        connections = list(self._rooms.get(room, {}).values())
        for connection in connections:
            try:
                connection.on_event(event, payload)
            except Exception as e:
                logger.error(f"Error delivering {event} to {connection.connection_id}: {e}")
        return len(connections)

    def room_names(self) -> List[str]:
        return list(self._rooms)

    def _sync_presence(self, room: str):
        members = self.presence(room)
        for connection in list(self._rooms.get(room, {}).values()):
            try:
                connection.on_presence(list(members))
            except Exception as e:
                logger.error(f"Error in presence callback for {connection.connection_id}: {e}")
