"""Collaborator contracts consumed by the documentation engine."""

from typing import Any, Callable, Dict, List, Protocol, runtime_checkable

from .documentation.models import (
    DocumentationSection,
    GeneratedDocumentation,
    RepositoryAnalysis,
)
from .specs.models import BusinessSpec, SpecChangeAnalysis


@runtime_checkable
class TextGenerationService(Protocol):
    """AI completion endpoint turning an analysis into section drafts."""

    def is_available(self) -> bool:
        ...

    async def generate_sections(self, analysis: RepositoryAnalysis) -> List[DocumentationSection]:
        ...


@runtime_checkable
class TextAnalysisService(Protocol):
    """Classifies documentation edits."""

    async def analyze_diff(self, old: str, new: str, title: str) -> SpecChangeAnalysis:
        ...


@runtime_checkable
class DocumentationPersistence(Protocol):
    """Storage for generated documentation."""

    def store_documentation(self, documentation: GeneratedDocumentation) -> Any:
        ...

    def update_documentation(self, documentation: GeneratedDocumentation) -> Any:
        ...


@runtime_checkable
class SpecPersistence(Protocol):
    """Storage for business specs."""

    def create_spec(self, spec: BusinessSpec) -> BusinessSpec:
        ...


@runtime_checkable
class RealtimeTransport(Protocol):
    """Named-room publish/subscribe with presence."""

    def connect(self, room: str, connection_id: str, on_event: Callable[..., Any], on_presence: Callable[..., Any]):
        ...

    def disconnect(self, room: str, connection_id: str):
        ...

    def track(self, room: str, connection_id: str, user: Any) -> List[Any]:
        ...

    def untrack(self, room: str, connection_id: str):
        ...

    def presence(self, room: str) -> List[Any]:
        ...

    def publish(self, room: str, event: str, payload: Dict[str, Any]) -> int:
        ...
