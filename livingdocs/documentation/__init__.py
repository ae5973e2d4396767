"""Documentation generation for livingdocs."""

from .generator import DocumentationGenerator, PROGRESS_CHECKPOINTS, markdown_to_html
from .models import (
    DocStatus,
    DocumentationSection,
    DocumentationVersion,
    ExportFormat,
    GeneratedDocumentation,
    GenerationProgress,
    GenerationState,
    Repository,
    RepositoryAnalysis,
    SectionType,
)
from .postprocess import SectionPostProcessor
from .sessions import GenerationSessionManager, GenerationSession

__all__ = [
    'DocumentationGenerator',
    'PROGRESS_CHECKPOINTS',
    'markdown_to_html',
    'DocStatus',
    'DocumentationSection',
    'DocumentationVersion',
    'ExportFormat',
    'GeneratedDocumentation',
    'GenerationProgress',
    'GenerationState',
    'Repository',
    'RepositoryAnalysis',
    'SectionType',
    'SectionPostProcessor',
    'GenerationSessionManager',
    'GenerationSession',
]
