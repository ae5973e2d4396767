"""Append-only version history of repository documentation."""

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from .store import DocumentationStore
from ..documentation.models import (
    Author,
    DocStatus,
    DocumentationSection,
    DocumentationVersion,
    GeneratedDocumentation,
)
from ..exceptions import NotFound
from ..utils import logger, utcnow, parse_timestamp


@dataclass
class VersionMetadata:
    """Descriptive fields stored alongside a snapshot."""
    title: Optional[str] = None
    created_by: Optional[Author] = None
    status: DocStatus = DocStatus.COMPLETED
    generated_at: Optional[datetime] = None
    error: Optional[str] = None
    version_id: Optional[str] = None


class VersionStore:
    """Number and record immutable documentation snapshots.

    Version numbers start at 1 and grow by one per successful create. The
    next number is computed inside the same storage transaction as the insert
    (see ``DocumentationStore.insert_version``), so two concurrent creates for
    one repository never share a number.
    """

    def __init__(self, store: DocumentationStore, author: Optional[Author] = None):
        self.store = store
        self.author = author

    def latest_version(self, repository_id: str) -> int:
        return self.store.max_version(repository_id)

    def create_version(
        self,
        repository_id: str,
        sections: Sequence[DocumentationSection],
        metadata: Optional[VersionMetadata] = None,
        change_log: Optional[str] = None,
    ) -> DocumentationVersion:
        """Write the next snapshot for a repository and return it."""
        metadata = metadata or VersionMetadata()
        now = utcnow()
        created_by = metadata.created_by or self.author

        record = {
            'id': metadata.version_id or str(uuid.uuid4()),
            'repository_id': repository_id,
            'title': metadata.title or self._default_title(repository_id),
            'sections': [section.to_dict() for section in sections],
            'status': metadata.status.value,
            'generation_metadata': {
                'generatedAt': (metadata.generated_at or now).isoformat(),
                'lastUpdated': now.isoformat(),
                'error': metadata.error,
                'changeLog': change_log,
            },
            'created_by': {
                'id': created_by.id,
                'name': created_by.name,
                'email': created_by.email,
            } if created_by else None,
            'created_at': now.isoformat(),
        }

        row = self.store.insert_version(record)
        logger.info(f"Created documentation version {row['version']} for {repository_id}")
        return self._to_version(row)

    def version_history(self, repository_id: str) -> List[DocumentationVersion]:
        """All versions of a repository, latest first."""
        return [self._to_version(row) for row in self.store.list_version_rows(repository_id)]

    def get_version(self, version_id: str) -> DocumentationVersion:
        row = self.store.get_version_row(version_id)
        if row is None:
            raise NotFound(f"Documentation version {version_id} not found")
        return self._to_version(row)

    def create_new_version(
        self,
        original_id: str,
        changes: Optional[Dict[str, Any]] = None,
        change_log: Optional[str] = None,
    ) -> DocumentationVersion:
        """Derive a new version from an existing one.

        Args:
            original_id: Id of the version to start from
            changes: Partial fields (``sections``, ``title``, ``status``,
                ``error``, ``created_by``); sections replace the original
                list wholesale when given
            change_log: Description of the change

        Raises:
            NotFound: ``original_id`` does not resolve
        """
        original = self.get_version(original_id)
        changes = changes or {}

        sections = changes.get('sections')
        if sections is None:
            sections = original.sections

        status = changes.get('status', original.status)
        metadata = VersionMetadata(
            title=changes.get('title') or original.title,
            created_by=changes.get('created_by'),
            status=DocStatus(status) if isinstance(status, str) else status,
            generated_at=changes.get('generated_at') or original.generated_at,
            error=changes.get('error', original.error),
        )
        return self.create_version(original.repository_id, sections, metadata, change_log)

    def latest_documentation(self, repository_id: str) -> Optional[GeneratedDocumentation]:
        """The repository's current document, i.e. its newest version."""
        rows = self.store.list_version_rows(repository_id)
        if not rows:
            return None
        return self._to_version(rows[0]).to_documentation()

    # DocumentationPersistence

    def store_documentation(self, documentation: GeneratedDocumentation) -> DocumentationVersion:
        version_id = documentation.id
        if self.store.get_version_row(version_id) is not None:
            # Ids are minted per millisecond; two runs in the same one collide.
            version_id = f"{documentation.id}-{uuid.uuid4().hex[:8]}"
            logger.info(f"Version id {documentation.id} is taken, storing as {version_id}")
        return self.create_version(
            documentation.repository_id,
            documentation.sections,
            VersionMetadata(
                status=documentation.status,
                generated_at=documentation.generated_at,
                error=documentation.error,
                version_id=version_id,
            ),
            change_log="Generated documentation",
        )

    def update_documentation(self, documentation: GeneratedDocumentation) -> DocumentationVersion:
        # Snapshots are immutable, an update is recorded as the next version.
        return self.create_version(
            documentation.repository_id,
            documentation.sections,
            VersionMetadata(
                status=documentation.status,
                generated_at=documentation.generated_at,
                error=documentation.error,
            ),
            change_log="Regenerated documentation sections",
        )

    def _default_title(self, repository_id: str) -> str:
        repository = self.store.get_repository(repository_id)
        return repository.name if repository else repository_id

    @staticmethod
    def _to_version(row: Dict[str, Any]) -> DocumentationVersion:
        metadata = row.get('generation_metadata') or {}
        creator = row.get('created_by')
        return DocumentationVersion(
            id=row['id'],
            repository_id=row['repository_id'],
            version=row['version'],
            title=row['title'],
            sections=tuple(DocumentationSection.from_dict(s) for s in row.get('sections') or []),
            created_at=parse_timestamp(row['created_at']),
            created_by=Author(
                id=creator['id'],
                name=creator.get('name') or creator.get('email', ''),
                email=creator.get('email', ''),
            ) if creator else None,
            change_log=metadata.get('changeLog'),
            status=DocStatus(row.get('status', 'completed')),
            generated_at=parse_timestamp(metadata.get('generatedAt')),
            error=metadata.get('error'),
        )
