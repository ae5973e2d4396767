"""Tests for change analysis and business spec storage."""

import shutil
import tempfile
from pathlib import Path
from unittest.mock import AsyncMock, Mock, patch

import pytest

from livingdocs.exceptions import AnalysisFailure, NotFound, PersistenceFailure
from livingdocs.specs import (
    BusinessSpec,
    BusinessSpecStore,
    ChangeSpecAnalyzer,
    SpecChangeAnalysis,
    SpecPriority,
    SpecStatus,
    SuggestedSpec,
)


def significant(**suggestion):
    return SpecChangeAnalysis(
        has_significant_changes=True,
        change_analysis="Adds rate limiting to the public API",
        suggested_spec=SuggestedSpec(**suggestion),
    )


@pytest.fixture
def analysis_service():
    service = Mock()
    service.analyze_diff = AsyncMock()
    return service


@pytest.fixture
def spec_store():
    store = Mock()
    store.create_spec = Mock(side_effect=lambda spec: spec)
    return store


@pytest.fixture
def analyzer(analysis_service, spec_store):
    return ChangeSpecAnalyzer(analysis_service, spec_store=spec_store)


class TestSpecChangeAnalysis:
    def test_from_camel_case(self):
        analysis = SpecChangeAnalysis.from_dict({
            "hasSignificantChanges": True,
            "changeAnalysis": "New endpoint",
            "suggestedSpec": {
                "title": "Add endpoint",
                "acceptanceCriteria": ["returns 200"],
                "priority": "high",
            },
        })
        assert analysis.has_significant_changes is True
        assert analysis.suggested_spec.title == "Add endpoint"
        assert analysis.suggested_spec.acceptance_criteria == ["returns 200"]
        assert analysis.suggested_spec.priority == SpecPriority.HIGH

    def test_defaults(self):
        analysis = SpecChangeAnalysis.from_dict({})
        assert analysis.has_significant_changes is False
        assert analysis.change_analysis == "No significant changes detected"
        assert analysis.suggested_spec is None

    def test_invalid_priority_dropped(self):
        suggestion = SuggestedSpec.from_dict({"priority": "urgent"})
        assert suggestion.priority is None

    @pytest.mark.parametrize("value, expected", [
        ("false", False),
        ("FALSE", False),
        ("true", True),
        (" True ", True),
        ("yes", False),
        (1, False),
        (None, False),
    ])
    def test_significance_read_from_strings(self, value, expected):
        analysis = SpecChangeAnalysis.from_dict({"hasSignificantChanges": value})
        assert analysis.has_significant_changes is expected

    def test_string_criteria_is_one_item(self):
        suggestion = SuggestedSpec.from_dict({"acceptanceCriteria": "Users can log in"})
        assert suggestion.acceptance_criteria == ["Users can log in"]

    def test_non_string_criteria_items_dropped(self):
        suggestion = SuggestedSpec.from_dict({
            "acceptanceCriteria": ["ok", None, 3],
            "technicalRequirements": [None],
        })
        assert suggestion.acceptance_criteria == ["ok"]
        assert suggestion.technical_requirements == []

    @pytest.mark.parametrize("value", [5, {"a": "b"}])
    def test_non_list_criteria_ignored(self, value):
        suggestion = SuggestedSpec.from_dict({"acceptanceCriteria": value, "technicalRequirements": value})
        assert suggestion.acceptance_criteria == []
        assert suggestion.technical_requirements == []


class TestDeriveSpec:
    def test_defaults_filled_in(self, analyzer):
        spec = analyzer.derive_spec(significant(), "Project Overview")

        assert spec.title == "Changes to Project Overview"
        assert spec.description == "Adds rate limiting to the public API"
        assert spec.acceptance_criteria == []
        assert spec.technical_requirements == []
        assert spec.priority == SpecPriority.MEDIUM
        assert spec.status == SpecStatus.DRAFT
        assert spec.tags == ["auto-generated", "documentation-changes"]

    def test_suggestion_values_used(self, analyzer):
        spec = analyzer.derive_spec(
            significant(title="Rate limiting", description="Limit requests",
                        acceptance_criteria=["429 after 100 req/min", "  "],
                        technical_requirements=["Redis counter"],
                        priority=SpecPriority.CRITICAL),
            "API Documentation",
            tags=["api", "auto-generated"],
            repository_id="r1",
        )

        assert spec.title == "Rate limiting"
        assert spec.description == "Limit requests"
        assert spec.acceptance_criteria == ["429 after 100 req/min"]
        assert spec.technical_requirements == ["Redis counter"]
        assert spec.priority == SpecPriority.CRITICAL
        assert spec.status == SpecStatus.DRAFT
        assert spec.tags == ["auto-generated", "documentation-changes", "api"]
        assert spec.repository_id == "r1"

    def test_malformed_items_skipped(self, analyzer):
        spec = analyzer.derive_spec(
            significant(acceptance_criteria=[None, "Sessions expire"], technical_requirements=[7, None]),
            "Authentication",
        )

        assert spec.acceptance_criteria == ["Sessions expire"]
        assert spec.technical_requirements == []


class TestProcessChange:
    @pytest.mark.asyncio
    async def test_insignificant_change_creates_nothing(self, analyzer, analysis_service, spec_store):
        analysis_service.analyze_diff.return_value = SpecChangeAnalysis(
            has_significant_changes=False, change_analysis="Typo fix"
        )

        with patch.object(analyzer, "derive_spec") as derive:
            assert await analyzer.process_change("old", "new", "Overview") is None
            derive.assert_not_called()
        spec_store.create_spec.assert_not_called()

    @pytest.mark.asyncio
    async def test_false_string_creates_nothing(self, analyzer, analysis_service, spec_store):
        analysis_service.analyze_diff.return_value = SpecChangeAnalysis.from_dict({
            "hasSignificantChanges": "false",
            "changeAnalysis": "Whitespace only",
            "suggestedSpec": {"title": "Nothing to do"},
        })

        assert await analyzer.process_change("old", "new", "Overview") is None
        spec_store.create_spec.assert_not_called()

    @pytest.mark.asyncio
    async def test_significant_without_suggestion_creates_nothing(self, analyzer, analysis_service, spec_store):
        analysis_service.analyze_diff.return_value = SpecChangeAnalysis(
            has_significant_changes=True, change_analysis="Something changed"
        )
        assert await analyzer.process_change("old", "new", "Overview") is None
        spec_store.create_spec.assert_not_called()

    @pytest.mark.asyncio
    async def test_significant_change_persists_spec(self, analyzer, analysis_service, spec_store):
        analysis_service.analyze_diff.return_value = significant(title="Rate limiting")

        spec = await analyzer.process_change("old", "new", "API", tags=["api"], repository_id="r1")

        analysis_service.analyze_diff.assert_awaited_once_with("old", "new", "API")
        spec_store.create_spec.assert_called_once_with(spec)
        assert spec.title == "Rate limiting"
        assert "api" in spec.tags

    @pytest.mark.asyncio
    async def test_async_spec_store(self, analysis_service):
        store = Mock()
        store.create_spec = AsyncMock(side_effect=lambda spec: spec)
        analysis_service.analyze_diff.return_value = significant()

        spec = await ChangeSpecAnalyzer(analysis_service, spec_store=store).process_change("a", "b", "S")
        store.create_spec.assert_awaited_once()
        assert spec.status == SpecStatus.DRAFT

    @pytest.mark.asyncio
    async def test_analysis_failure_propagates(self, analyzer, analysis_service, spec_store):
        analysis_service.analyze_diff.side_effect = RuntimeError("timeout")

        with pytest.raises(AnalysisFailure):
            await analyzer.process_change("old", "new", "Overview")
        spec_store.create_spec.assert_not_called()

    @pytest.mark.asyncio
    async def test_persistence_failure_propagates(self, analyzer, analysis_service, spec_store):
        analysis_service.analyze_diff.return_value = significant()
        spec_store.create_spec.side_effect = RuntimeError("db locked")

        with pytest.raises(PersistenceFailure):
            await analyzer.process_change("old", "new", "Overview")

    @pytest.mark.asyncio
    async def test_without_store_returns_derived_spec(self, analysis_service):
        analysis_service.analyze_diff.return_value = significant()
        spec = await ChangeSpecAnalyzer(analysis_service).process_change("a", "b", "Setup")
        assert spec.title == "Changes to Setup"


class TestBusinessSpecStore:
    def setup_method(self):
        self.temp_dir = tempfile.mkdtemp()
        self.store = BusinessSpecStore(Path(self.temp_dir) / "specs.db", team_id="team-a")

    def teardown_method(self):
        shutil.rmtree(self.temp_dir)

    def test_create_and_get(self):
        spec = BusinessSpec(title="Rate limiting", description="Limit requests",
                            acceptance_criteria=["429"], tags=["auto-generated"])
        created = self.store.create_spec(spec)

        assert created.team_id == "team-a"
        loaded = self.store.get_spec(spec.id)
        assert loaded.title == "Rate limiting"
        assert loaded.acceptance_criteria == ["429"]
        assert loaded.status == SpecStatus.DRAFT

    def test_get_missing(self):
        with pytest.raises(NotFound):
            self.store.get_spec("missing")

    def test_duplicate_id(self):
        spec = BusinessSpec(title="A", description="")
        self.store.create_spec(spec)
        with pytest.raises(PersistenceFailure):
            self.store.create_spec(spec)

    def test_list_and_filter(self):
        first = self.store.create_spec(BusinessSpec(title="First", description=""))
        self.store.create_spec(BusinessSpec(title="Second", description=""))
        self.store.update_status(first.id, SpecStatus.APPROVED)

        assert {s.title for s in self.store.list_specs()} == {"First", "Second"}
        assert [s.title for s in self.store.list_specs(SpecStatus.APPROVED)] == ["First"]
        assert [s.title for s in self.store.list_specs(SpecStatus.DRAFT)] == ["Second"]

    @pytest.mark.asyncio
    async def test_works_as_analyzer_store(self):
        service = Mock()
        service.analyze_diff = AsyncMock(return_value=significant(title="Stored"))
        analyzer = ChangeSpecAnalyzer(service, spec_store=self.store)

        spec = await analyzer.process_change("a", "b", "Overview")
        assert self.store.get_spec(spec.id).title == "Stored"
