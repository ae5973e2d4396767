"""Tests for section post-processing."""

import pytest

from livingdocs.documentation import DocumentationSection, Repository, SectionPostProcessor, SectionType
from livingdocs.utils import count_words


@pytest.fixture
def repository():
    return Repository(id="repo-1", name="acme-api", url="https://github.com/acme/acme-api")


@pytest.fixture
def processor(repository):
    return SectionPostProcessor(repository)


def make_section(content, section_type=SectionType.OVERVIEW):
    return DocumentationSection(id="overview", title="Project Overview", content=content, type=section_type)


class TestPlaceholders:
    def test_repository_name_substituted(self, processor):
        section = processor.process(make_section("Welcome to {repositoryName}. {repositoryName} rocks."))
        assert section.content == "Welcome to acme-api. acme-api rocks."

    def test_content_without_placeholder_unchanged(self, processor):
        assert processor.substitute_placeholders("plain text") == "plain text"


class TestRepositoryLink:
    def test_link_injected_under_getting_started(self, processor):
        content = "# Intro\n\n## Getting Started\nRun it.\n"
        result = processor.add_repository_link(content)

        assert result == (
            "# Intro\n\n## Getting Started\n\n"
            "🔗 **Repository**: [acme-api](https://github.com/acme/acme-api)\n"
            "\nRun it.\n"
        )

    def test_only_first_heading_receives_link(self, processor):
        content = "## Getting Started\nA\n## Getting Started\nB\n"
        result = processor.add_repository_link(content)
        assert result.count("🔗 **Repository**") == 1
        assert result.index("🔗") < result.index("A")

    def test_processing_twice_adds_link_once(self, processor):
        once = processor.process(make_section("## Getting Started\nSteps"))
        twice = processor.process(once)
        assert twice.content.count("🔗 **Repository**") == 1
        assert twice.content == once.content

    def test_no_url_no_link(self):
        processor = SectionPostProcessor(Repository(id="r", name="local"))
        content = "## Getting Started\nSteps"
        assert processor.add_repository_link(content) == content

    def test_heading_must_match_exactly(self, processor):
        content = "### Getting Started\n## Getting Started Quickly\n"
        assert processor.add_repository_link(content) == content


class TestCodeBlocks:
    def test_language_tag_kept(self, processor):
        assert processor.format_code_blocks("```python\nprint(1)\n```") == "```python\nprint(1)\n```"

    def test_blank_tag_renders_bare_fence(self, processor):
        result = processor.format_code_blocks("```  \ncode\n```")
        assert result == "```\ncode\n```"
        assert "undefined" not in result
        assert "None" not in result

    def test_spaces_around_tag_trimmed(self, processor):
        assert processor.format_code_blocks("``` bash \nls\n```") == "```bash\nls\n```"


class TestWordCount:
    @pytest.mark.parametrize("content", [
        "one two three",
        "  leading and trailing  ",
        "line one\n\nline two\tthree",
        "",
    ])
    def test_word_count_matches_final_content(self, processor, content):
        section = processor.process(make_section(content))
        assert section.word_count == count_words(section.content)

    def test_word_count_includes_injected_link(self, processor):
        section = processor.process(make_section("## Getting Started\nGo"))
        assert section.word_count == len(section.content.split())
        assert section.word_count > 4

    def test_original_section_untouched(self, processor):
        original = make_section("{repositoryName}")
        processed = processor.process(original)
        assert original.content == "{repositoryName}"
        assert processed is not original

    def test_process_all_keeps_order(self, processor):
        sections = [
            DocumentationSection(id="a", title="A", content="x"),
            DocumentationSection(id="b", title="B", content="y"),
        ]
        assert [s.id for s in processor.process_all(sections)] == ["a", "b"]
