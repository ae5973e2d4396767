"""Prompt templates for documentation generation and change analysis."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

SYSTEM_PROMPT = (
    "You are an expert technical writer and software architect. Generate clear, "
    "comprehensive, and accurate documentation and technical specifications. Always "
    "format responses in clean Markdown unless specifically requested otherwise."
)


@dataclass
class PromptTemplate:
    """A named prompt with required variables."""
    name: str
    template: str
    variables: List[str]
    system_prompt: Optional[str] = SYSTEM_PROMPT
    tags: List[str] = field(default_factory=list)

    def format(self, **kwargs) -> str:
        """Format the template with variables."""
        missing = set(self.variables) - set(kwargs.keys())
        if missing:
            raise ValueError(f"Missing required variables: {sorted(missing)}")

        try:
            return self.template.format(**kwargs)
        except KeyError as e:
            raise ValueError(f"Template formatting error: {e}")


OVERVIEW = PromptTemplate(
    name="overview",
    template="""Analyze the following codebase structure and generate a comprehensive overview documentation.

Repository: {repository_name}
Description: {repository_description}
Primary Language: {primary_language}

Structure Analysis:
{structure_analysis}

Languages:
{languages}

Please generate:
1. Project Overview (2-3 paragraphs)
2. Architecture Summary
3. Key Components and Services
4. Technology Stack
5. Getting Started Guide, under a "## Getting Started" heading

Use {{repositoryName}} wherever the project name appears in prose.
Format the response in clean Markdown with proper headings and structure.""",
    variables=["repository_name", "repository_description", "primary_language",
               "structure_analysis", "languages"],
    tags=["documentation", "overview"],
)

API = PromptTemplate(
    name="api",
    template="""Generate API documentation based on the following codebase analysis:

API Modules:
{api_modules}

Services:
{services}

Languages:
{languages}

Please generate comprehensive API documentation including:
1. API Overview
2. Authentication (if applicable)
3. Endpoints and Methods
4. Request/Response Examples
5. Error Handling

Format as clean Markdown with code examples.""",
    variables=["api_modules", "services", "languages"],
    tags=["documentation", "api"],
)

COMPONENTS = PromptTemplate(
    name="components",
    template="""Generate component documentation for the following modules:

Components:
{components}

Structure:
{structure}

Please generate:
1. Component Overview
2. Interfaces and Parameters
3. Usage Examples
4. Extension Points
5. Best Practices

Format as clean Markdown with code examples.""",
    variables=["components", "structure"],
    tags=["documentation", "components"],
)

ARCHITECTURE = PromptTemplate(
    name="architecture",
    template="""Generate architecture documentation for the following project:

Project: {repository_name}
Languages: {languages}
Total Files: {total_files}

Key directories and files found:
{structure_analysis}

Please generate:
1. High-level architecture overview
2. Key architectural patterns used
3. Data flow and component relationships
4. Deployment considerations
5. Scalability and performance notes

Format as clean Markdown.""",
    variables=["repository_name", "languages", "total_files", "structure_analysis"],
    tags=["documentation", "architecture"],
)

CHANGE_ANALYSIS = PromptTemplate(
    name="change_analysis",
    template="""Analyze the following documentation changes and determine if they warrant a new business specification:

Section: {section_title}

Original Content:
{old_content}

Updated Content:
{new_content}

Analyze the changes and determine:
1. Are there significant functional changes that require new development work?
2. Do the changes introduce new features or modify existing behavior?
3. Are there new requirements or acceptance criteria implied?

If significant changes are detected, generate a business specification.

Return JSON only:
{{
  "hasSignificantChanges": boolean,
  "changeAnalysis": "Description of what changed",
  "suggestedSpec": {{
    "title": "Spec title",
    "description": "Detailed description",
    "acceptanceCriteria": ["criteria 1", "criteria 2"],
    "technicalRequirements": ["requirement 1", "requirement 2"],
    "priority": "low|medium|high|critical"
  }}
}}""",
    variables=["section_title", "old_content", "new_content"],
    system_prompt="You are a product analyst. Respond with a single JSON object and nothing else.",
    tags=["analysis", "specs"],
)

TEMPLATES: Dict[str, PromptTemplate] = {
    template.name: template
    for template in (OVERVIEW, API, COMPONENTS, ARCHITECTURE, CHANGE_ANALYSIS)
}


def get_template(name: str) -> PromptTemplate:
    try:
        return TEMPLATES[name]
    except KeyError:
        raise ValueError(f"Unknown prompt template: {name}")
