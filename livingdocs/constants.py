"""
Constants for livingdocs.
"""

CONFIG_FILES = [
    ".livingdocs.yaml",
    ".livingdocs.yml",
    ".livingdocs.toml",
    ".livingdocs.json",
    "livingdocs.yaml",
]

DEFAULT_CONFIG = {
    "project": {
        "name": "My Project",
        "team_id": "default",
    },
    "ai": {
        "provider": "groq",
        "model": "llama-3.3-70b-versatile",
        "temperature": 0.3,
        "max_tokens": 2048,
    },
    "storage": {
        "db_path": "~/.livingdocs/livingdocs.db",
    },
    "collaboration": {
        "room": "docs-collaboration",
        "lease_ttl": 60.0,
    },
    "generation": {
        "staleness_days": 7,
        "search_limit": 20,
    },
    "logging": {
        "level": "INFO",
    },
}

# Providers speaking the OpenAI chat-completions protocol share one client.
AI_PROVIDERS = {
    "openai": {
        "base_url": None,
        "env_key": "OPENAI_API_KEY",
        "models": ["gpt-4o", "gpt-4o-mini", "gpt-4.1", "gpt-4.1-mini"],
    },
    "groq": {
        "base_url": "https://api.groq.com/openai/v1",
        "env_key": "GROQ_API_KEY",
        "models": ["llama-3.3-70b-versatile", "llama-3.1-8b-instant", "mixtral-8x7b-32768"],
    },
    "anthropic": {
        "base_url": None,
        "env_key": "ANTHROPIC_API_KEY",
        "models": ["claude-3-5-sonnet-latest", "claude-3-5-haiku-latest"],
    },
    "local": {
        "base_url": "http://localhost:11434",
        "env_key": None,
        "models": [],
    },
}

DEFAULT_ROOM = "docs-collaboration"

# Export ordering of section types; anything else sorts last.
SECTION_ORDER = {
    "overview": 1,
    "architecture": 2,
    "api": 3,
    "components": 4,
    "setup": 5,
    "custom": 6,
}
UNKNOWN_SECTION_ORDER = 999

STALENESS_DAYS = 7
SEARCH_RESULT_LIMIT = 20
EXCERPT_RADIUS = 50
EXCERPT_FALLBACK_LENGTH = 150

SPEC_TAGS = ["auto-generated", "documentation-changes"]

IGNORED_DIRECTORIES = {
    ".git", "node_modules", "__pycache__", ".venv", "venv", "dist", "build",
    ".mypy_cache", ".pytest_cache", ".tox", ".idea", ".vscode",
}

LANGUAGE_EXTENSIONS = {
    ".py": "Python",
    ".js": "JavaScript",
    ".jsx": "JavaScript",
    ".ts": "TypeScript",
    ".tsx": "TypeScript",
    ".go": "Go",
    ".rs": "Rust",
    ".java": "Java",
    ".kt": "Kotlin",
    ".rb": "Ruby",
    ".php": "PHP",
    ".c": "C",
    ".h": "C",
    ".cpp": "C++",
    ".cs": "C#",
    ".swift": "Swift",
    ".sql": "SQL",
    ".sh": "Shell",
    ".html": "HTML",
    ".css": "CSS",
    ".md": "Markdown",
}
