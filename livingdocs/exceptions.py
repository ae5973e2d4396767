"""Error taxonomy for the living documentation engine."""


class LivingDocsError(Exception):
    """Base class for all livingdocs errors."""


class ConfigurationError(LivingDocsError):
    """Invalid or missing configuration."""


class PreconditionFailed(LivingDocsError):
    """A generation precondition did not hold (no AI service, empty analysis).

    Raised before any state change and never retried automatically.
    """


class ConcurrencyConflict(LivingDocsError):
    """A generation is already running for the same repository."""

    def __init__(self, repository_id: str):
        self.repository_id = repository_id
        super().__init__(
            f"Documentation generation already in progress for repository {repository_id}"
        )


class GenerationFailure(LivingDocsError):
    """The text-generation collaborator or post-processing failed."""


class AnalysisFailure(LivingDocsError):
    """The text-analysis collaborator failed to classify a change."""


class PersistenceFailure(LivingDocsError):
    """A storage operation failed."""


class NotFound(LivingDocsError):
    """A referenced document, version or spec does not exist."""


class UnsupportedFormat(LivingDocsError, ValueError):
    """An export format outside markdown/html/json was requested."""

    def __init__(self, format_name: str):
        self.format_name = format_name
        super().__init__(f"Unsupported export format: {format_name}")
