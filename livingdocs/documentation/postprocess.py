"""Pure text transforms applied to generated sections."""

import re
from dataclasses import replace
from typing import List

from .models import DocumentationSection, Repository
from ..utils import count_words

REPOSITORY_PLACEHOLDER = "{repositoryName}"

GETTING_STARTED_PATTERN = re.compile(r"^## Getting Started[ \t]*$", re.MULTILINE)
CODE_FENCE_PATTERN = re.compile(r"```[ \t]*([\w+#.-]+)?[ \t]*\n")


class SectionPostProcessor:
    """Clean up AI section drafts for a specific repository.

    Every transform is deterministic and free of I/O, so the processor can be
    applied again to already processed sections without duplicating links.
    """

    def __init__(self, repository: Repository):
        self.repository = repository

    def process_all(self, sections: List[DocumentationSection]) -> List[DocumentationSection]:
        return [self.process(section) for section in sections]

    def process(self, section: DocumentationSection) -> DocumentationSection:
        content = section.content or ""
        content = self.substitute_placeholders(content)
        content = self.add_repository_link(content)
        content = self.format_code_blocks(content)

        return replace(section, content=content, word_count=count_words(content))

    def substitute_placeholders(self, content: str) -> str:
        return content.replace(REPOSITORY_PLACEHOLDER, self.repository.name)

    def repository_link(self) -> str:
        return f"🔗 **Repository**: [{self.repository.name}]({self.repository.url})"

    def add_repository_link(self, content: str) -> str:
        """Insert the repository link under the first Getting Started heading."""
        if not self.repository.url:
            return content

        link = self.repository_link()
        if link in content:
            return content

        return GETTING_STARTED_PATTERN.sub(
            lambda match: f"{match.group(0)}\n\n{link}\n",
            content,
            count=1,
        )

    @staticmethod
    def format_code_blocks(content: str) -> str:
        """Normalise opening code fences, keeping the language tag if any."""
        return CODE_FENCE_PATTERN.sub(
            lambda match: f"```{match.group(1) or ''}\n",
            content,
        )
