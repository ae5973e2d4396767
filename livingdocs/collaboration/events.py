"""Broadcast events exchanged in collaboration rooms."""

import re
from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, ClassVar, Dict, Optional, Type


class EventKind(Enum):
    """Names of the broadcast events on the wire."""
    GENERATION_STARTED = "doc-generation-started"
    GENERATION_COMPLETED = "doc-generation-completed"
    EDITING_STARTED = "doc-editing-started"
    EDITING_STOPPED = "doc-editing-stopped"
    SECTION_UPDATED = "doc-section-updated"
    DOC_CREATED = "doc-created"
    DOC_VIEWING = "doc-viewing"
    REPO_SELECTED = "repo-selected"


def _camel(name: str) -> str:
    head, *rest = name.split('_')
    return head + ''.join(part.title() for part in rest)


def _snake(name: str) -> str:
    return re.sub(r'(?<!^)(?=[A-Z])', '_', name).lower()


@dataclass(frozen=True)
class CollaborationEvent:
    """Base of all broadcast events; every payload names its sender."""
    user_id: str
    user_name: str

    kind: ClassVar[EventKind]

    def to_payload(self) -> Dict[str, Any]:
        return {
            _camel(f.name): getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }


@dataclass(frozen=True)
class GenerationStarted(CollaborationEvent):
    repository_id: Optional[str] = None

    kind: ClassVar[EventKind] = EventKind.GENERATION_STARTED


@dataclass(frozen=True)
class GenerationCompleted(CollaborationEvent):
    repository_id: Optional[str] = None
    documentation_id: Optional[str] = None
    status: Optional[str] = None

    kind: ClassVar[EventKind] = EventKind.GENERATION_COMPLETED


@dataclass(frozen=True)
class EditingStarted(CollaborationEvent):
    documentation_id: str = ""

    kind: ClassVar[EventKind] = EventKind.EDITING_STARTED


@dataclass(frozen=True)
class EditingStopped(CollaborationEvent):
    documentation_id: str = ""

    kind: ClassVar[EventKind] = EventKind.EDITING_STOPPED


@dataclass(frozen=True)
class SectionUpdated(CollaborationEvent):
    documentation_id: str = ""
    section_id: Optional[str] = None
    repository_id: Optional[str] = None
    version: Optional[int] = None

    kind: ClassVar[EventKind] = EventKind.SECTION_UPDATED


@dataclass(frozen=True)
class DocumentCreated(CollaborationEvent):
    repository_id: str = ""
    documentation_id: str = ""

    kind: ClassVar[EventKind] = EventKind.DOC_CREATED


@dataclass(frozen=True)
class DocumentViewing(CollaborationEvent):
    repository_id: str = ""
    documentation_id: str = ""

    kind: ClassVar[EventKind] = EventKind.DOC_VIEWING


@dataclass(frozen=True)
class RepositorySelected(CollaborationEvent):
    repository_id: str = ""
    repository_name: Optional[str] = None

    kind: ClassVar[EventKind] = EventKind.REPO_SELECTED


EVENT_TYPES: Dict[EventKind, Type[CollaborationEvent]] = {
    cls.kind: cls
    for cls in (
        GenerationStarted,
        GenerationCompleted,
        EditingStarted,
        EditingStopped,
        SectionUpdated,
        DocumentCreated,
        DocumentViewing,
        RepositorySelected,
    )
}


def event_from_payload(name: str, payload: Dict[str, Any]) -> CollaborationEvent:
    """Rebuild a typed event from its wire name and payload.

    Raises:
        ValueError: Unknown event name or payload without sender fields
    """
    event_type = EVENT_TYPES[EventKind(name)]
    known = {f.name for f in fields(event_type)}
    values = {
        _snake(key): value
        for key, value in payload.items()
        if _snake(key) in known
    }
    if 'user_id' not in values or 'user_name' not in values:
        raise ValueError(f"Event {name} is missing userId/userName")
    return event_type(**values)
