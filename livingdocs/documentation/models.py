"""Data models for living documentation."""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Dict, Optional, Any, Union
from datetime import datetime

from ..constants import SECTION_ORDER, UNKNOWN_SECTION_ORDER
from ..utils import utcnow, parse_timestamp, count_words


class SectionType(Enum):
    """Types of documentation sections."""
    OVERVIEW = "overview"
    ARCHITECTURE = "architecture"
    API = "api"
    COMPONENTS = "components"
    SETUP = "setup"
    CUSTOM = "custom"


class DocStatus(Enum):
    """Lifecycle status of a generated document."""
    GENERATING = "generating"
    COMPLETED = "completed"
    ERROR = "error"


class GenerationState(Enum):
    """Per-repository generation pipeline state."""
    IDLE = "idle"
    INITIALIZING = "initializing"
    ANALYZING = "analyzing"
    GENERATING = "generating"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


class ExportFormat(Enum):
    """Supported export formats."""
    MARKDOWN = "markdown"
    HTML = "html"
    JSON = "json"


def _section_type(value: Union[str, SectionType]) -> Union[str, SectionType]:
    # Unknown type names are kept verbatim and sort last on export.
    if isinstance(value, SectionType):
        return value
    try:
        return SectionType(value)
    except ValueError:
        return value


def section_order(section_type: Union[str, SectionType]) -> int:
    """Export priority of a section type."""
    name = section_type.value if isinstance(section_type, SectionType) else section_type
    return SECTION_ORDER.get(name, UNKNOWN_SECTION_ORDER)


@dataclass(frozen=True)
class DocumentationSection:
    """One titled, typed unit of generated documentation text."""
    id: str
    title: str
    content: str
    type: Union[SectionType, str] = SectionType.CUSTOM
    word_count: int = 0
    last_generated: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        object.__setattr__(self, 'type', _section_type(self.type))

    @property
    def type_name(self) -> str:
        return self.type.value if isinstance(self.type, SectionType) else str(self.type)

    def with_content(self, content: str) -> 'DocumentationSection':
        """Return an edited copy; the original value is left untouched."""
        return replace(self, content=content, word_count=count_words(content))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'title': self.title,
            'content': self.content,
            'type': self.type_name,
            'wordCount': self.word_count,
            'lastGenerated': self.last_generated.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DocumentationSection':
        content = data.get('content') or ''
        word_count = data.get('wordCount', data.get('word_count'))
        return cls(
            id=data['id'],
            title=data.get('title', ''),
            content=content,
            type=data.get('type', 'custom'),
            word_count=count_words(content) if word_count is None else word_count,
            last_generated=parse_timestamp(
                data.get('lastGenerated') or data.get('last_generated')
            ) or utcnow(),
        )


@dataclass
class GeneratedDocumentation:
    """Documentation produced for a repository by one generation run."""
    id: str
    repository_id: str
    sections: List[DocumentationSection] = field(default_factory=list)
    generated_at: datetime = field(default_factory=utcnow)
    last_updated: datetime = field(default_factory=utcnow)
    status: DocStatus = DocStatus.GENERATING
    error: Optional[str] = None

    def __post_init__(self):
        if self.status == DocStatus.ERROR:
            self.sections = []

    @classmethod
    def failed(cls, doc_id: str, repository_id: str, message: str) -> 'GeneratedDocumentation':
        now = utcnow()
        return cls(
            id=doc_id,
            repository_id=repository_id,
            sections=[],
            generated_at=now,
            last_updated=now,
            status=DocStatus.ERROR,
            error=message,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'id': self.id,
            'repositoryId': self.repository_id,
            'sections': [section.to_dict() for section in self.sections],
            'generatedAt': self.generated_at.isoformat(),
            'lastUpdated': self.last_updated.isoformat(),
            'status': self.status.value,
        }
        if self.error is not None:
            data['error'] = self.error
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'GeneratedDocumentation':
        return cls(
            id=data['id'],
            repository_id=data['repositoryId'],
            sections=[DocumentationSection.from_dict(s) for s in data.get('sections', [])],
            generated_at=parse_timestamp(data.get('generatedAt')) or utcnow(),
            last_updated=parse_timestamp(data.get('lastUpdated')) or utcnow(),
            status=DocStatus(data.get('status', 'completed')),
            error=data.get('error'),
        )


@dataclass(frozen=True)
class Author:
    """Creator of a documentation version."""
    id: str
    name: str
    email: str = ""


@dataclass(frozen=True)
class DocumentationVersion:
    """Immutable, numbered snapshot of a repository's documentation."""
    id: str
    repository_id: str
    version: int
    title: str
    sections: tuple
    created_at: datetime
    created_by: Optional[Author] = None
    change_log: Optional[str] = None
    status: DocStatus = DocStatus.COMPLETED
    generated_at: Optional[datetime] = None
    error: Optional[str] = None

    def to_documentation(self) -> GeneratedDocumentation:
        """View this snapshot as the repository's current document."""
        return GeneratedDocumentation(
            id=self.id,
            repository_id=self.repository_id,
            sections=list(self.sections),
            generated_at=self.generated_at or self.created_at,
            last_updated=self.created_at,
            status=self.status,
            error=self.error,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'repositoryId': self.repository_id,
            'version': self.version,
            'title': self.title,
            'sections': [section.to_dict() for section in self.sections],
            'createdAt': self.created_at.isoformat(),
            'createdBy': {
                'id': self.created_by.id,
                'name': self.created_by.name,
                'email': self.created_by.email,
            } if self.created_by else None,
            'changeLog': self.change_log,
            'status': self.status.value,
        }


@dataclass
class Repository:
    """A connected source repository."""
    id: str
    name: str
    url: Optional[str] = None
    last_updated: datetime = field(default_factory=utcnow)
    description: Optional[str] = None
    language: Optional[str] = None


@dataclass
class AnalysisSummary:
    """Headline numbers of a repository analysis."""
    total_files: int = 0
    total_lines: int = 0
    primary_language: str = "Unknown"
    last_activity: Optional[datetime] = None
    commit_frequency: float = 0.0


@dataclass
class RepositoryAnalysis:
    """Structural summary of a codebase, the input to generation."""
    repository: Repository
    structure: Dict[str, Any] = field(default_factory=dict)
    contributors: List[Dict[str, Any]] = field(default_factory=list)
    languages: Dict[str, int] = field(default_factory=dict)
    recent_commits: List[Dict[str, Any]] = field(default_factory=list)
    summary: AnalysisSummary = field(default_factory=AnalysisSummary)


@dataclass(frozen=True)
class GenerationProgress:
    """A progress checkpoint emitted by the generation pipeline."""
    step: str
    progress: int
    message: str
