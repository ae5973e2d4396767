"""Documentation workspace: generation, viewing and editing announced to a room."""

import inspect
from typing import Iterable, Optional, Tuple

from .collaboration import (
    CollaborationChannel,
    CollaborationEvent,
    DocumentCreated,
    DocumentViewing,
    GenerationCompleted,
    GenerationStarted,
    RepositorySelected,
    SectionUpdated,
)
from .documentation import (
    DocStatus,
    DocumentationGenerator,
    PROGRESS_CHECKPOINTS,
    DocumentationVersion,
    GenerationProgress,
    GenerationState,
    GeneratedDocumentation,
    Repository,
    RepositoryAnalysis,
)
from .documentation.generator import ProgressCallback
from .exceptions import AnalysisFailure, NotFound, PersistenceFailure
from .specs import BusinessSpec, ChangeSpecAnalyzer
from .storage import VersionStore
from .utils import logger


class DocsWorkspace:
    """One user's view of a team's documentation.

    Every user-visible state change is announced on the collaboration
    channel when one is attached; without a channel the workspace works
    offline.
    """

    def __init__(
        self,
        generator: DocumentationGenerator,
        versions: VersionStore,
        analyzer: Optional[ChangeSpecAnalyzer] = None,
        channel: Optional[CollaborationChannel] = None,
    ):
        self.generator = generator
        self.versions = versions
        self.analyzer = analyzer
        self.channel = channel

    async def select_repository(self, repository: Repository) -> Optional[GeneratedDocumentation]:
        """Register the repository and return its current documentation."""
        self.versions.store.save_repository(repository)
        await self._announce(RepositorySelected, repository_id=repository.id, repository_name=repository.name)
        return self.versions.latest_documentation(repository.id)

    async def generate(
        self,
        repository: Repository,
        analysis: RepositoryAnalysis,
        on_progress: Optional[ProgressCallback] = None,
    ) -> GeneratedDocumentation:
        """Generate documentation and tell the room about it.

        The start is announced at the first progress checkpoint, so precondition
        and concurrency errors propagate without anything being announced.
        """
        self.versions.store.save_repository(repository)

        async def relay(progress: GenerationProgress):
            if progress.step == PROGRESS_CHECKPOINTS[GenerationState.INITIALIZING][0]:
                await self._announce(GenerationStarted, repository_id=repository.id)
            if on_progress is not None:
                result = on_progress(progress)
                if inspect.isawaitable(result):
                    await result

        documentation = await self.generator.generate(repository, analysis, relay)
        await self._announce(
            GenerationCompleted,
            repository_id=repository.id,
            documentation_id=documentation.id,
            status=documentation.status.value,
        )
        if documentation.status == DocStatus.COMPLETED:
            await self._announce(DocumentCreated, repository_id=repository.id, documentation_id=documentation.id)
        return documentation

    async def view(self, repository_id: str) -> GeneratedDocumentation:
        documentation = self.versions.latest_documentation(repository_id)
        if documentation is None:
            raise NotFound(f"No documentation for repository {repository_id}")
        await self._announce(DocumentViewing, repository_id=repository_id, documentation_id=documentation.id)
        return documentation

    async def edit_section(
        self,
        version_id: str,
        section_id: str,
        content: str,
        tags: Optional[Iterable[str]] = None,
    ) -> Tuple[DocumentationVersion, Optional[BusinessSpec]]:
        """Save an edited section as a new version and derive a spec from it.

        The edit is stored first; a failed change analysis is logged and
        leaves the new version in place.

        Raises:
            NotFound: The version or the section does not exist
        """
        original = self.versions.get_version(version_id)
        target = next((section for section in original.sections if section.id == section_id), None)
        if target is None:
            raise NotFound(f"Section {section_id} not found in version {version_id}")

        sections = [
            section.with_content(content)
            if section.id == section_id else section
            for section in original.sections
        ]
        version = self.versions.create_new_version(
            version_id,
            {'sections': sections},
            change_log=f"Edited {target.title}",
        )
        await self._announce(
            SectionUpdated,
            documentation_id=version.id,
            section_id=section_id,
            repository_id=version.repository_id,
            version=version.version,
        )

        spec = None
        if self.analyzer is not None and target.content != content:
            try:
                spec = await self.analyzer.process_change(
                    target.content, content, target.title,
                    tags=tags, repository_id=version.repository_id,
                )
            except (AnalysisFailure, PersistenceFailure) as e:
                logger.warning(f"Could not derive a spec from the edit of {target.title}: {e}")
        return version, spec

    async def _announce(self, event_type, **fields) -> bool:
        if self.channel is None:
            return False
        event: CollaborationEvent = event_type(
            user_id=self.channel.user.id,
            user_name=self.channel.user.name,
            **fields,
        )
        return await self.channel.broadcast(event)
