"""Tests for the documentation workspace."""

import shutil
import tempfile
from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest

from livingdocs.collaboration import CollaborationChannel, EventKind, PresenceUser, RealtimeHub
from livingdocs.documentation import (
    DocStatus,
    DocumentationGenerator,
    DocumentationSection,
    Repository,
    RepositoryAnalysis,
    SectionType,
)
from livingdocs.exceptions import NotFound, PreconditionFailed
from livingdocs.service import DocsWorkspace
from livingdocs.specs import ChangeSpecAnalyzer, SpecChangeAnalysis, SuggestedSpec
from livingdocs.storage import DocumentationStore, VersionStore


class TestDocsWorkspace:
    def setup_method(self):
        self.temp_dir = tempfile.mkdtemp()
        self.versions = VersionStore(DocumentationStore(Path(self.temp_dir) / "docs.db"))

        self.ai_service = Mock()
        self.ai_service.is_available.return_value = True
        self.ai_service.generate_sections = AsyncMock(return_value=[
            DocumentationSection(id="overview", title="Project Overview", content="Sells things.",
                                 type=SectionType.OVERVIEW),
        ])
        self.analysis_service = Mock()
        self.analysis_service.analyze_diff = AsyncMock(return_value=SpecChangeAnalysis(
            has_significant_changes=False, change_analysis="Wording only",
        ))

        self.hub = RealtimeHub()
        self.channel = CollaborationChannel(self.hub, PresenceUser(id="u1", name="Ann"))
        self.observer = CollaborationChannel(self.hub, PresenceUser(id="u2", name="Bob"))
        self.seen = []
        for kind in EventKind:
            self.observer.on(kind, self.seen.append)

        self.workspace = DocsWorkspace(
            DocumentationGenerator(self.ai_service, store=self.versions),
            self.versions,
            analyzer=ChangeSpecAnalyzer(self.analysis_service),
            channel=self.channel,
        )
        self.repository = Repository(id="r1", name="shop")
        self.analysis = RepositoryAnalysis(
            repository=self.repository,
            structure={"app.py": {"type": "file", "language": "Python", "lines": 1}},
        )

    def teardown_method(self):
        shutil.rmtree(self.temp_dir)

    async def join(self):
        await self.channel.join()
        await self.observer.join()

    @pytest.mark.asyncio
    async def test_generate_announces_and_stores(self):
        await self.join()

        doc = await self.workspace.generate(self.repository, self.analysis)

        assert doc.status == DocStatus.COMPLETED
        assert [event.kind for event in self.seen] == [
            EventKind.GENERATION_STARTED,
            EventKind.GENERATION_COMPLETED,
            EventKind.DOC_CREATED,
        ]
        assert self.seen[1].status == "completed"
        assert self.seen[2].documentation_id == doc.id
        assert self.versions.latest_documentation("r1").id == doc.id

    @pytest.mark.asyncio
    async def test_failed_generation_announces_completion_only(self):
        await self.join()
        self.ai_service.generate_sections.side_effect = RuntimeError("quota")

        doc = await self.workspace.generate(self.repository, self.analysis)

        assert doc.status == DocStatus.ERROR
        assert [event.kind for event in self.seen] == [
            EventKind.GENERATION_STARTED,
            EventKind.GENERATION_COMPLETED,
        ]
        assert self.seen[1].status == "error"

    @pytest.mark.asyncio
    async def test_precondition_failure_announces_nothing(self):
        await self.join()
        self.ai_service.is_available.return_value = False

        with pytest.raises(PreconditionFailed):
            await self.workspace.generate(self.repository, self.analysis)
        assert self.seen == []

    @pytest.mark.asyncio
    async def test_progress_is_relayed(self):
        updates = []
        await self.workspace.generate(self.repository, self.analysis, updates.append)
        assert [u.progress for u in updates] == [0, 10, 25, 80, 100]

    @pytest.mark.asyncio
    async def test_select_and_view(self):
        await self.join()
        assert await self.workspace.select_repository(self.repository) is None
        doc = await self.workspace.generate(self.repository, self.analysis)

        viewed = await self.workspace.view("r1")

        assert viewed.id == doc.id
        assert self.seen[0].kind == EventKind.REPO_SELECTED
        assert self.seen[0].repository_name == "shop"
        assert self.seen[-1].kind == EventKind.DOC_VIEWING

    @pytest.mark.asyncio
    async def test_view_missing(self):
        with pytest.raises(NotFound):
            await self.workspace.view("r1")

    @pytest.mark.asyncio
    async def test_edit_section_creates_version(self):
        await self.join()
        doc = await self.workspace.generate(self.repository, self.analysis)

        version, spec = await self.workspace.edit_section(doc.id, "overview", "Sells things worldwide.")

        assert version.version == 2
        assert version.sections[0].content == "Sells things worldwide."
        assert version.sections[0].word_count == 3
        assert spec is None
        self.analysis_service.analyze_diff.assert_awaited_once_with(
            "Sells things.", "Sells things worldwide.", "Project Overview"
        )
        updated = self.seen[-1]
        assert updated.kind == EventKind.SECTION_UPDATED
        assert (updated.section_id, updated.version) == ("overview", 2)

    @pytest.mark.asyncio
    async def test_edit_section_derives_spec(self):
        doc = await self.workspace.generate(self.repository, self.analysis)
        self.analysis_service.analyze_diff.return_value = SpecChangeAnalysis(
            has_significant_changes=True,
            change_analysis="Adds international shipping",
            suggested_spec=SuggestedSpec(title="International shipping"),
        )

        _, spec = await self.workspace.edit_section(doc.id, "overview", "Ships worldwide.", tags=["shipping"])

        assert spec.title == "International shipping"
        assert spec.repository_id == "r1"
        assert "shipping" in spec.tags

    @pytest.mark.asyncio
    async def test_edit_with_malformed_suggestion_still_derives_spec(self):
        doc = await self.workspace.generate(self.repository, self.analysis)
        self.analysis_service.analyze_diff.return_value = SpecChangeAnalysis.from_dict({
            "hasSignificantChanges": True,
            "changeAnalysis": "Adds gift cards",
            "suggestedSpec": {
                "title": "Gift cards",
                "acceptanceCriteria": [None, "Cards can be redeemed"],
                "technicalRequirements": "Card ledger table",
            },
        })

        version, spec = await self.workspace.edit_section(doc.id, "overview", "Sells gift cards.")

        assert version.version == 2
        assert spec.acceptance_criteria == ["Cards can be redeemed"]
        assert spec.technical_requirements == ["Card ledger table"]

    @pytest.mark.asyncio
    async def test_edit_kept_when_analysis_fails(self):
        doc = await self.workspace.generate(self.repository, self.analysis)
        self.analysis_service.analyze_diff.side_effect = RuntimeError("timeout")

        version, spec = await self.workspace.edit_section(doc.id, "overview", "New text")

        assert spec is None
        assert self.versions.latest_version("r1") == version.version == 2

    @pytest.mark.asyncio
    async def test_edit_unknown_section(self):
        doc = await self.workspace.generate(self.repository, self.analysis)
        with pytest.raises(NotFound):
            await self.workspace.edit_section(doc.id, "missing", "text")

    @pytest.mark.asyncio
    async def test_offline_workspace(self):
        workspace = DocsWorkspace(DocumentationGenerator(self.ai_service, store=self.versions), self.versions)
        doc = await workspace.generate(self.repository, self.analysis)
        assert doc.status == DocStatus.COMPLETED
