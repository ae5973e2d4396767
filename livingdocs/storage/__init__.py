"""Persistence, version history and search for living documentation."""

from .store import DocumentationStore, ChangeNotification, ChangeEventType
from .versions import VersionStore, VersionMetadata
from .search import SearchIndexer, SearchResult, build_excerpt

__all__ = [
    'DocumentationStore',
    'ChangeNotification',
    'ChangeEventType',
    'VersionStore',
    'VersionMetadata',
    'SearchIndexer',
    'SearchResult',
    'build_excerpt',
]
