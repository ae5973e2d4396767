"""Realtime presence and broadcast for collaborative documentation."""

from .channel import CollaborationChannel
from .events import (
    CollaborationEvent,
    DocumentCreated,
    DocumentViewing,
    EditingStarted,
    EditingStopped,
    EventKind,
    GenerationCompleted,
    GenerationStarted,
    RepositorySelected,
    SectionUpdated,
    event_from_payload,
)
from .hub import PresenceUser, RealtimeHub
from .leases import EditingLease, LeaseRegistry

__all__ = [
    'CollaborationChannel',
    'CollaborationEvent',
    'DocumentCreated',
    'DocumentViewing',
    'EditingStarted',
    'EditingStopped',
    'EventKind',
    'GenerationCompleted',
    'GenerationStarted',
    'RepositorySelected',
    'SectionUpdated',
    'event_from_payload',
    'PresenceUser',
    'RealtimeHub',
    'EditingLease',
    'LeaseRegistry',
]
