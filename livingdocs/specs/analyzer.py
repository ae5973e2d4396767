"""Turn significant documentation edits into business specs."""

import inspect
from typing import Iterable, List, Optional

from .models import BusinessSpec, SpecChangeAnalysis, SpecPriority, SpecStatus
from ..constants import SPEC_TAGS
from ..exceptions import AnalysisFailure, LivingDocsError, PersistenceFailure
from ..utils import logger


class ChangeSpecAnalyzer:
    """Classify documentation edits and derive specs from significant ones."""

    def __init__(self, analysis_service, spec_store=None):
        """Initialize the analyzer.

        Args:
            analysis_service: Text-analysis collaborator (``analyze_diff``)
            spec_store: Spec persistence collaborator (``create_spec``)
        """
        self.analysis_service = analysis_service
        self.spec_store = spec_store

    async def analyze(self, old_content: str, new_content: str, section_title: str) -> SpecChangeAnalysis:
        """Ask the text-analysis service whether an edit is significant."""
        try:
            return await self.analysis_service.analyze_diff(old_content, new_content, section_title)
        except AnalysisFailure:
            raise
        except Exception as e:
            raise AnalysisFailure(f"Failed to analyze changes to {section_title}: {e}") from e

    def derive_spec(
        self,
        analysis: SpecChangeAnalysis,
        section_title: str,
        tags: Optional[Iterable[str]] = None,
        repository_id: Optional[str] = None,
    ) -> BusinessSpec:
        """Build a draft spec from an analysis, filling in defaults."""
        suggestion = analysis.suggested_spec

        all_tags = []
        for tag in list(SPEC_TAGS) + list(tags or []):
            if tag and tag not in all_tags:
                all_tags.append(tag)

        return BusinessSpec(
            title=(suggestion and suggestion.title) or f"Changes to {section_title}",
            description=(suggestion and suggestion.description) or analysis.change_analysis,
            acceptance_criteria=_non_blank(suggestion and suggestion.acceptance_criteria),
            technical_requirements=_non_blank(suggestion and suggestion.technical_requirements),
            priority=(suggestion and suggestion.priority) or SpecPriority.MEDIUM,
            status=SpecStatus.DRAFT,
            tags=all_tags,
            repository_id=repository_id,
        )

    async def process_change(
        self,
        old_content: str,
        new_content: str,
        section_title: str,
        tags: Optional[Iterable[str]] = None,
        repository_id: Optional[str] = None,
    ) -> Optional[BusinessSpec]:
        """Analyze an edit and persist a spec when it is significant.

        Returns:
            The created spec, or None when the change is not significant

        Raises:
            AnalysisFailure: The analysis call failed
            PersistenceFailure: The spec could not be stored
        """
        analysis = await self.analyze(old_content, new_content, section_title)

        if not analysis.has_significant_changes or analysis.suggested_spec is None:
            logger.info(f"No significant changes in {section_title}: {analysis.change_analysis}")
            return None

        spec = self.derive_spec(analysis, section_title, tags=tags, repository_id=repository_id)
        if self.spec_store is None:
            return spec

        try:
            created = self.spec_store.create_spec(spec)
            if inspect.isawaitable(created):
                created = await created
        except LivingDocsError:
            raise
        except Exception as e:
            raise PersistenceFailure(f"Failed to create spec '{spec.title}': {e}") from e

        logger.info(f"Created business spec '{created.title}' from changes to {section_title}")
        return created


def _non_blank(items) -> List[str]:
    return [item for item in items or [] if isinstance(item, str) and item.strip()]
