"""Documentation generator for livingdocs."""

import html
import inspect
import json
import re
from datetime import datetime, timedelta
from typing import Awaitable, Callable, List, Optional, Union

from jinja2 import Template
from markupsafe import Markup

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
    section_order,
)
from .postprocess import SectionPostProcessor
from .sessions import GenerationSessionManager
from ..constants import STALENESS_DAYS
from ..exceptions import (
    ConcurrencyConflict,
    GenerationFailure,
    NotFound,
    PreconditionFailed,
    UnsupportedFormat,
)
from ..utils import logger, utcnow, to_utc, timestamp_ms

ProgressCallback = Callable[[GenerationProgress], Union[None, Awaitable[None]]]

# (step, percentage, message) emitted in this order by every successful run.
PROGRESS_CHECKPOINTS = {
    GenerationState.INITIALIZING: ("initialization", 0, "Initializing documentation generation..."),
    GenerationState.ANALYZING: ("analysis", 10, "Analyzing repository structure..."),
    GenerationState.GENERATING: ("generation", 25, "Generating documentation sections..."),
    GenerationState.PROCESSING: ("processing", 80, "Processing and formatting documentation..."),
    GenerationState.COMPLETED: ("completion", 100, "Documentation generation completed!"),
}

HTML_TEMPLATE = Template("""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{{ title }}</title>
    <style>
        body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; line-height: 1.6; max-width: 800px; margin: 0 auto; padding: 20px; }
        h1, h2, h3 { color: #333; }
        pre { background: #f5f5f5; padding: 15px; border-radius: 5px; overflow-x: auto; }
        code { background: #f0f0f0; padding: 2px 4px; border-radius: 3px; }
    </style>
</head>
<body>
    <h1>{{ title }}</h1>
    <p><em>Generated on {{ generated_on }}</em></p>
    <hr>
{% for section in sections %}
    <section>
        <h2>{{ section.title }}</h2>
        {{ section.body }}
    </section>
    <hr>
{% endfor %}
</body>
</html>
""", autoescape=True)

FENCED_CODE_PATTERN = re.compile(r"```([\w+#.-]*)\n?(.*?)```", re.DOTALL)
INLINE_CODE_PATTERN = re.compile(r"`([^`\n]*)`")


class DocumentationGenerator:
    """Generate living documentation for repositories."""

    def __init__(
        self,
        ai_service,
        store=None,
        sessions: Optional[GenerationSessionManager] = None,
        staleness_days: int = STALENESS_DAYS,
    ):
        """Initialize the documentation generator.

        Args:
            ai_service: Text-generation collaborator
            store: Persistence collaborator, optional
            sessions: Generation session registry (one per process by default)
            staleness_days: Age after which documentation needs an update
        """
        self.ai_service = ai_service
        self.store = store
        self.sessions = sessions or GenerationSessionManager()
        self.staleness_window = timedelta(days=staleness_days)
        self._init_formatters()

    def _init_formatters(self):
        """Initialize format-specific exporters."""
        self.formatters = {
            ExportFormat.MARKDOWN: self._export_markdown,
            ExportFormat.HTML: self._export_html,
            ExportFormat.JSON: self._export_json,
        }

    def is_generating(self, repository_id: str) -> bool:
        return self.sessions.is_active(repository_id)

    def state(self, repository_id: str) -> GenerationState:
        return self.sessions.state(repository_id)

    async def generate(
        self,
        repository: Repository,
        analysis: RepositoryAnalysis,
        on_progress: Optional[ProgressCallback] = None,
    ) -> GeneratedDocumentation:
        """Generate documentation for a repository.

        Args:
            repository: Repository being documented
            analysis: Structural analysis of the repository
            on_progress: Called at each progress checkpoint, may be async

        Returns:
            A ``completed`` document, or an ``error`` document when generation
            failed after the preconditions held.

        Raises:
            ConcurrencyConflict: A generation for this repository is running
            PreconditionFailed: No text-generation service or empty analysis
        """
        if self.sessions.is_active(repository.id):
            raise ConcurrencyConflict(repository.id)
        self._check_preconditions(analysis)

        doc_id = f"doc-{repository.id}-{timestamp_ms()}"

        with self.sessions.session(repository.id) as session:
            try:
                await self._emit(on_progress, GenerationState.INITIALIZING)

                session.advance(GenerationState.ANALYZING)
                await self._emit(on_progress, GenerationState.ANALYZING)

                session.advance(GenerationState.GENERATING)
                await self._emit(on_progress, GenerationState.GENERATING)
                sections = await self.ai_service.generate_sections(analysis)

                session.advance(GenerationState.PROCESSING)
                await self._emit(on_progress, GenerationState.PROCESSING)
                processed = SectionPostProcessor(repository).process_all(sections or [])

                session.advance(GenerationState.COMPLETED)
                await self._emit(on_progress, GenerationState.COMPLETED)

            except Exception as e:
                session.advance(GenerationState.ERROR)
                logger.error(f"Documentation generation failed for {repository.name}: {e}")
                return GeneratedDocumentation.failed(doc_id, repository.id, str(e) or type(e).__name__)

            now = utcnow()
            documentation = GeneratedDocumentation(
                id=doc_id,
                repository_id=repository.id,
                sections=processed,
                generated_at=now,
                last_updated=now,
                status=DocStatus.COMPLETED,
            )

            stored = await self._persist(documentation, update=False)
            if isinstance(stored, DocumentationVersion) and stored.id != documentation.id:
                documentation.id = stored.id
            logger.info(
                f"Generated {len(processed)} documentation sections for {repository.name}"
            )
            return documentation

    async def update_documentation(
        self,
        existing: GeneratedDocumentation,
        repository: Repository,
        analysis: RepositoryAnalysis,
        sections_to_update: Optional[List[str]] = None,
    ) -> GeneratedDocumentation:
        """Regenerate selected sections of existing documentation.

        Sections whose id is listed are replaced, sections the service now
        produces for the first time are appended, the rest are carried over.
        """
        if not self.ai_service.is_available():
            raise PreconditionFailed("AI service is not available")

        wanted = set(sections_to_update or [SectionType.OVERVIEW.value])
        try:
            fresh = await self.ai_service.generate_sections(analysis)
        except Exception as e:
            logger.error(f"Documentation update failed for {repository.name}: {e}")
            raise GenerationFailure(f"Failed to update documentation: {e}") from e

        fresh_by_id = {section.id: section for section in fresh}
        existing_ids = {section.id for section in existing.sections}

        updated = [
            fresh_by_id[section.id] if section.id in fresh_by_id and section.id in wanted else section
            for section in existing.sections
        ]
        updated.extend(section for section in fresh if section.id not in existing_ids)

        documentation = GeneratedDocumentation(
            id=existing.id,
            repository_id=existing.repository_id,
            sections=SectionPostProcessor(repository).process_all(updated),
            generated_at=existing.generated_at,
            last_updated=utcnow(),
            status=DocStatus.COMPLETED,
            error=None,
        )

        await self._persist(documentation, update=True)
        return documentation

    async def generate_section(
        self,
        repository: Repository,
        analysis: RepositoryAnalysis,
        section_type: Union[SectionType, str],
    ) -> DocumentationSection:
        """Generate a single section of the given type."""
        if not self.ai_service.is_available():
            raise PreconditionFailed("AI service is not available")

        wanted = section_type.value if isinstance(section_type, SectionType) else section_type
        sections = await self.ai_service.generate_sections(analysis)
        for section in sections:
            if section.type_name == wanted:
                return SectionPostProcessor(repository).process(section)

        raise NotFound(f"Section type '{wanted}' not found")

    def needs_update(
        self,
        documentation: GeneratedDocumentation,
        repository: Repository,
        now: Optional[datetime] = None,
    ) -> bool:
        """Check whether documentation is behind its repository or stale."""
        now = to_utc(now or utcnow())
        doc_updated = to_utc(documentation.last_updated)

        if to_utc(repository.last_updated) > doc_updated:
            return True
        return now - doc_updated > self.staleness_window

    def export_documentation(
        self,
        documentation: GeneratedDocumentation,
        format: Union[ExportFormat, str] = ExportFormat.MARKDOWN,
    ) -> str:
        """Render documentation as markdown, html or json."""
        try:
            export_format = ExportFormat(format) if isinstance(format, str) else format
        except ValueError:
            raise UnsupportedFormat(str(format))

        formatter = self.formatters.get(export_format)
        if not formatter:
            raise UnsupportedFormat(str(format))
        return formatter(documentation)

    def _check_preconditions(self, analysis: RepositoryAnalysis):
        if not self.ai_service.is_available():
            raise PreconditionFailed(
                "AI service is not available. Please check your API key configuration."
            )
        if not analysis or not analysis.structure:
            raise PreconditionFailed("Repository structure analysis is incomplete")

    async def _emit(self, callback: Optional[ProgressCallback], state: GenerationState):
        step, progress, message = PROGRESS_CHECKPOINTS[state]
        logger.debug(f"[{progress:3d}%] {message}")
        if callback is None:
            return
        result = callback(GenerationProgress(step=step, progress=progress, message=message))
        if inspect.isawaitable(result):
            await result

    async def _persist(self, documentation: GeneratedDocumentation, update: bool):
        # Storage failures must not lose an AI result.
        if self.store is None:
            return None
        try:
            if update:
                result = self.store.update_documentation(documentation)
            else:
                result = self.store.store_documentation(documentation)
            if inspect.isawaitable(result):
                result = await result
            return result
        except Exception as e:
            logger.warning(f"Failed to store documentation {documentation.id}: {e}")
            return None

    @staticmethod
    def _ordered_sections(documentation: GeneratedDocumentation) -> List[DocumentationSection]:
        # sorted() is stable, ties keep input order.
        return sorted(documentation.sections, key=lambda section: section_order(section.type))

    @staticmethod
    def _generated_on(documentation: GeneratedDocumentation) -> str:
        return documentation.generated_at.strftime("%Y-%m-%d")

    def _export_markdown(self, documentation: GeneratedDocumentation) -> str:
        """Format documentation as Markdown."""
        lines = [
            "# Documentation\n\n",
            f"*Generated on {self._generated_on(documentation)}*\n\n",
            "---\n\n",
        ]
        for section in self._ordered_sections(documentation):
            lines.append(f"# {section.title}\n\n")
            lines.append(f"{section.content}\n\n")
            lines.append("---\n\n")
        return "".join(lines)

    def _export_html(self, documentation: GeneratedDocumentation) -> str:
        """Format documentation as a standalone HTML page."""
        sections = [
            {'title': section.title, 'body': Markup(markdown_to_html(section.content))}
            for section in self._ordered_sections(documentation)
        ]
        return HTML_TEMPLATE.render(
            title="Documentation",
            generated_on=self._generated_on(documentation),
            sections=sections,
        )

    def _export_json(self, documentation: GeneratedDocumentation) -> str:
        return json.dumps(documentation.to_dict(), indent=2, ensure_ascii=False)


def markdown_to_html(markdown: str) -> str:
    """Best-effort Markdown to HTML conversion.

    Handles headings 1-3, bold, italic, fenced and inline code, ``- `` list
    items and line breaks. Anything else passes through as escaped text.
    """
    blocks: List[str] = []

    def stash_code(match: "re.Match[str]") -> str:
        language, code = match.group(1), match.group(2)
        css = f' class="language-{language}"' if language else ''
        blocks.append(f"<pre><code{css}>{html.escape(code, quote=False)}</code></pre>")
        return f"\x00{len(blocks) - 1}\x00"

    def stash_inline(match: "re.Match[str]") -> str:
        blocks.append(f"<code>{html.escape(match.group(1), quote=False)}</code>")
        return f"\x00{len(blocks) - 1}\x00"

    text = FENCED_CODE_PATTERN.sub(stash_code, markdown or "")
    text = INLINE_CODE_PATTERN.sub(stash_inline, text)
    text = html.escape(text, quote=False)

    text = re.sub(r"^### (.*)$", r"<h3>\1</h3>", text, flags=re.MULTILINE)
    text = re.sub(r"^## (.*)$", r"<h2>\1</h2>", text, flags=re.MULTILINE)
    text = re.sub(r"^# (.*)$", r"<h1>\1</h1>", text, flags=re.MULTILINE)
    text = re.sub(r"\*\*(.+?)\*\*", r"<strong>\1</strong>", text)
    text = re.sub(r"\*(.+?)\*", r"<em>\1</em>", text)
    text = re.sub(r"^- (.*)$", r"<li>\1</li>", text, flags=re.MULTILINE)
    text = text.replace("\n", "<br>\n")

    return re.sub(r"\x00(\d+)\x00", lambda m: blocks[int(m.group(1))], text)
