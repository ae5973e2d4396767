"""Search over the latest documentation of each repository."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from .store import DocumentationStore
from ..constants import EXCERPT_FALLBACK_LENGTH, EXCERPT_RADIUS, SEARCH_RESULT_LIMIT
from ..utils import logger, parse_timestamp, utcnow


@dataclass
class SearchResult:
    """One documentation match with a preview excerpt."""
    id: str
    title: str
    repository_name: str
    last_updated: datetime
    version: int
    excerpt: str


def build_excerpt(sections: List[Dict[str, Any]], query: str) -> str:
    """Text window around the first match of ``query`` in ``sections``.

    Falls back to the start of the first section when no section content
    contains the query (e.g. the document matched by title only).
    """
    if not sections:
        return ""

    needle = query.lower()
    for section in sections:
        content = section.get('content') or ""
        index = content.lower().find(needle)
        if index < 0:
            continue
        start = max(0, index - EXCERPT_RADIUS)
        end = min(len(content), index + len(query) + EXCERPT_RADIUS)
        return content[start:end] + ("..." if end < len(content) else "")

    first = sections[0].get('content') or ""
    return first[:EXCERPT_FALLBACK_LENGTH] + "..."


class SearchIndexer:
    """Case-insensitive text search with ranked excerpts."""

    def __init__(self, store: DocumentationStore, limit: int = SEARCH_RESULT_LIMIT):
        self.store = store
        self.limit = limit

    def search(self, query: str, team_id: Optional[str] = None) -> List[SearchResult]:
        """Search titles and section content, most recently updated first."""
        query = (query or "").strip()
        if not query:
            return []

        needle = query.lower()
        results = []
        for row in self.store.latest_version_rows(team_id or self.store.team_id):
            if not self._matches(row, needle):
                continue
            results.append(SearchResult(
                id=row['id'],
                title=row['title'],
                repository_name=row.get('repository_name') or 'Unknown',
                last_updated=parse_timestamp(row['created_at']) or utcnow(),
                version=row['version'],
                excerpt=build_excerpt(row['sections'], query),
            ))
            if len(results) >= self.limit:
                break

        logger.debug(f"Search for '{query}' returned {len(results)} results")
        return results

    @staticmethod
    def _matches(row: Dict[str, Any], needle: str) -> bool:
        if needle in (row.get('title') or "").lower():
            return True
        return any(
            needle in (section.get('content') or "").lower()
            or needle in (section.get('title') or "").lower()
            for section in row.get('sections') or []
        )
